"""Computed fields: derived scalars evaluated once per pass, exposed as ``computed.<id>``.

A computation that cannot produce a value (unresolved operand, division by
zero, no matching tier) leaves its id out of the result map, so conditions on
it resolve as missing and never fire.
"""

from __future__ import annotations

import logging
import operator
from typing import Any, Callable, Dict, Iterable, Mapping, Sequence

from .context import MISSING, EvaluationContext, is_number
from .models import (
    ArithmeticComputation,
    ComputedField,
    ConditionalComputation,
    Plugin,
    TierComputation,
)

logger = logging.getLogger(__name__)

ARITHMETIC_OPERATIONS: Dict[str, Callable[[Any, Any], Any]] = {
    "divide": operator.truediv,
    "multiply": operator.mul,
    "add": operator.add,
    "subtract": operator.sub,
}


def is_truthy(value: Any) -> bool:
    if value is MISSING or value is None or value is False:
        return False
    if is_number(value):
        return value != 0
    if isinstance(value, str):
        return value != ""
    return True


def evaluate_computed_fields(
    project: Mapping[str, Any],
    computed_fields: Sequence[ComputedField],
) -> Dict[str, Any]:
    results: Dict[str, Any] = {}
    # Later fields may reference earlier ones in the same pass through `computed.<id>`.
    ctx = EvaluationContext(project=project, computed=results)
    for cf in computed_fields:
        value = _evaluate_computation(cf, ctx)
        if value is not MISSING:
            results[cf.id] = value
    return results


def _evaluate_computation(cf: ComputedField, ctx: EvaluationContext) -> Any:
    comp = cf.computation
    if isinstance(comp, ArithmeticComputation):
        return _arithmetic(cf.id, comp, ctx)
    if isinstance(comp, TierComputation):
        return _tier(comp, ctx)
    if isinstance(comp, ConditionalComputation):
        return comp.if_true if is_truthy(ctx.resolve(comp.field)) else comp.if_false
    return MISSING


def _arithmetic(field_id: str, comp: ArithmeticComputation, ctx: EvaluationContext) -> Any:
    op = ARITHMETIC_OPERATIONS.get(comp.operation)
    if op is None:
        logger.warning("Computed field %s uses unknown arithmetic operation %r", field_id, comp.operation)
        return MISSING
    if len(comp.operands) < 2:
        return MISSING

    values = [ctx.resolve(path) for path in comp.operands]
    if not all(is_number(v) for v in values):
        return MISSING

    result = values[0]
    for value in values[1:]:
        if op is operator.truediv and value == 0:
            return MISSING
        result = op(result, value)
    return result


def _tier(comp: TierComputation, ctx: EvaluationContext) -> Any:
    value = ctx.resolve(comp.field)
    if not is_number(value):
        return MISSING
    for tier in comp.tiers:
        above_min = tier.min is None or value >= tier.min
        below_max = tier.max is None or value <= tier.max
        if above_min and below_max:
            return tier.result
    return MISSING


def build_global_computed(project: Mapping[str, Any], plugins: Iterable[Plugin]) -> Dict[str, Any]:
    """Evaluate every plugin's computed fields into one map; later plugins overwrite earlier ids."""
    merged: Dict[str, Any] = {}
    existing = project.get("computed")
    if isinstance(existing, Mapping):
        merged.update(existing)
    for plugin in plugins:
        merged.update(evaluate_computed_fields(project, plugin.computed_fields))
    return merged


def enrich_project(project: Mapping[str, Any], plugins: Iterable[Plugin]) -> Dict[str, Any]:
    """Shallow copy of the project with the shared ``computed`` namespace attached."""
    enriched = dict(project)
    enriched["computed"] = build_global_computed(project, plugins)
    return enriched
