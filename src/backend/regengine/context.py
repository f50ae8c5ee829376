from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Mapping, Sequence

from .models import LookupTable

COMPUTED_PREFIX = "computed."

_TOKEN_RE = re.compile(r"\{([^}]+)\}")


class _Missing:
    """Marker for a path that does not resolve. Distinct from None, False, 0 and ""."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def resolve_path(obj: Any, path: str) -> Any:
    """Walk a dotted path through nested mappings/sequences; MISSING when any step fails."""
    current = obj
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not part.isdigit() or int(part) >= len(current):
                return MISSING
            current = current[int(part)]
        else:
            return MISSING
    return current


def scalar_text(value: Any) -> str:
    """Key text for a scalar, as used for lookup-table keys and ordinal scales."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (float, Decimal)) and _is_integral(value):
        return str(int(value))
    return str(value)


def format_value(value: Any, *, missing_text: str = "(not defined)", decimal_places: int = 2) -> str:
    if value is MISSING or value is None:
        return missing_text
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (float, Decimal)):
        if _is_integral(value):
            return str(int(value))
        return f"{float(value):.{decimal_places}f}"
    return str(value)


def _is_integral(value: float | Decimal) -> bool:
    if isinstance(value, Decimal):
        return value.is_finite() and value == value.to_integral_value()
    return value.is_integer()


@dataclass(frozen=True)
class EvaluationContext:
    """What a condition can see: the project (with its global `computed` namespace),
    the evaluating plugin's own computed values, and its lookup tables."""

    project: Mapping[str, Any]
    computed: Mapping[str, Any] = field(default_factory=dict)
    tables: Mapping[str, LookupTable] = field(default_factory=dict)
    missing_text: str = "(not defined)"
    decimal_places: int = 2

    def resolve(self, path: str) -> Any:
        if path.startswith(COMPUTED_PREFIX):
            key = path[len(COMPUTED_PREFIX):]
            if key in self.computed:
                return self.computed[key]
            # Fall through to the shared namespace attached to the project.
        return resolve_path(self.project, path)

    def format(self, value: Any) -> str:
        return format_value(value, missing_text=self.missing_text, decimal_places=self.decimal_places)

    def interpolate(self, template: str) -> str:
        return _TOKEN_RE.sub(lambda m: self.format(self.resolve(m.group(1).strip())), template)

    def table(self, table_id: str) -> LookupTable | None:
        return self.tables.get(table_id)


def index_tables(tables: Sequence[LookupTable]) -> Dict[str, LookupTable]:
    return {t.id: t for t in tables}
