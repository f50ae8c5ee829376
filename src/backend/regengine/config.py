from __future__ import annotations

import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .models import RegulationStatus


load_dotenv()


class EngineConfig(BaseModel):
    # Unknown operator literals reaching evaluation raise instead of evaluating as a non-match.
    strict_operators: bool = False
    # Rules under regulations in these statuses are not evaluated and are reported as skipped regulations.
    skipped_regulation_statuses: List[str] = Field(
        default_factory=lambda: [RegulationStatus.SUPERSEDED.value, RegulationStatus.REVOKED.value]
    )
    finding_id_prefix: str = "PF"
    # First finding after a reset is base + 1.
    finding_id_base: int = 5000
    missing_value_text: str = "(not defined)"
    decimal_places: int = 2


def get_engine_config() -> EngineConfig:
    """
    Load engine configuration from environment variables (a `.env` file is honoured).

    Reads:
      REGENGINE_STRICT_OPERATORS, REGENGINE_SKIPPED_REGULATION_STATUSES,
      REGENGINE_FINDING_ID_PREFIX, REGENGINE_FINDING_ID_BASE,
      REGENGINE_MISSING_VALUE_TEXT, REGENGINE_DECIMAL_PLACES
    Unset variables keep the model defaults.
    """
    defaults = EngineConfig()
    return EngineConfig(
        strict_operators=_env_bool("REGENGINE_STRICT_OPERATORS", defaults.strict_operators),
        skipped_regulation_statuses=_env_list(
            "REGENGINE_SKIPPED_REGULATION_STATUSES", defaults.skipped_regulation_statuses
        ),
        finding_id_prefix=os.getenv("REGENGINE_FINDING_ID_PREFIX", defaults.finding_id_prefix).strip()
        or defaults.finding_id_prefix,
        finding_id_base=_env_int("REGENGINE_FINDING_ID_BASE", defaults.finding_id_base),
        missing_value_text=os.getenv("REGENGINE_MISSING_VALUE_TEXT", defaults.missing_value_text),
        decimal_places=_env_int("REGENGINE_DECIMAL_PLACES", defaults.decimal_places),
    )


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r}).")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer (got {raw!r}).") from exc


def _env_list(name: str, default: List[str]) -> List[str]:
    raw: Optional[str] = os.getenv(name)
    if raw is None or not raw.strip():
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]
