from __future__ import annotations

import threading

from .config import EngineConfig, get_engine_config


class FindingIdSequence:
    """Monotonic finding ids (``PF-5001``, ``PF-5002``, ...).

    Ids stay unique under concurrent evaluations; ordering is only deterministic
    for callers that reset the sequence and evaluate serially.
    """

    def __init__(self, prefix: str = "PF", base: int = 5000):
        self.prefix = prefix
        self.base = base
        self._value = base
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: EngineConfig) -> "FindingIdSequence":
        return cls(prefix=config.finding_id_prefix, base=config.finding_id_base)

    def next_id(self) -> str:
        with self._lock:
            self._value += 1
            return f"{self.prefix}-{self._value}"

    def reset(self) -> None:
        with self._lock:
            self._value = self.base

    @property
    def last_value(self) -> int:
        return self._value


default_sequence = FindingIdSequence.from_config(get_engine_config())


def reset_plugin_finding_counter() -> None:
    default_sequence.reset()
