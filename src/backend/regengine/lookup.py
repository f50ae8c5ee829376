from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from .context import MISSING, EvaluationContext, scalar_text
from .models import Condition, LookupTable


def lookup_table_value(
    table: LookupTable,
    ctx: EvaluationContext,
    *,
    key_paths: Optional[Sequence[str]] = None,
    sub_key: Optional[str] = None,
) -> Any:
    """Resolve ``table.values[k1][k2]...`` where each ``k`` is a project field value.

    ``key_paths`` overrides the table's own key paths, ``sub_key`` its ``subKey``.
    Returns MISSING when a key field is unresolved or the path is absent.
    """
    current: Any = table.values
    for key_path in key_paths or table.keys:
        if not isinstance(current, Mapping):
            return MISSING
        key_value = ctx.resolve(key_path)
        if key_value is MISSING or key_value is None:
            return MISSING
        current = current.get(scalar_text(key_value), MISSING)

    projection = sub_key or table.sub_key
    if projection and isinstance(current, Mapping):
        current = current.get(projection, MISSING)

    if current is None:
        return MISSING
    return current


def resolve_condition_threshold(condition: Condition, ctx: EvaluationContext) -> Any:
    """Threshold a lookup condition compares against; MISSING when the table is unknown."""
    if not condition.table:
        return MISSING
    table = ctx.table(condition.table)
    if table is None:
        return MISSING
    return lookup_table_value(table, ctx, key_paths=condition.keys, sub_key=condition.sub_key)
