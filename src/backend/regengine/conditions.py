from __future__ import annotations

import logging
import operator
from enum import Enum
from typing import Any, Callable, Dict, Sequence

from .context import MISSING, EvaluationContext, is_number, scalar_text
from .lookup import resolve_condition_threshold
from .models import Condition, Operator, OperatorFamily

logger = logging.getLogger(__name__)

# Euroclass reaction-to-fire scale, best (A1) to worst.
EUROCLASS_SCALE = ("A1", "A2", "B", "C", "D", "E", "F", "CFL-s1", "CFL-s2", "DFL-s1", "EFL", "FFL")


class UnknownOperatorError(ValueError):
    pass


class Outcome(str, Enum):
    MATCH = "MATCH"
    NO_MATCH = "NO_MATCH"
    # The field could not be resolved, so the condition says nothing either way.
    UNRESOLVED = "UNRESOLVED"

    @classmethod
    def of(cls, matched: bool) -> "Outcome":
        return cls.MATCH if matched else cls.NO_MATCH


_ORDERING: Dict[str, Callable[[Any, Any], bool]] = {
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}

_DIRECT_ORDERING: Dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.GT: operator.gt,
    Operator.GTE: operator.ge,
    Operator.LT: operator.lt,
    Operator.LTE: operator.le,
}


def strict_equals(a: Any, b: Any) -> bool:
    """Equality that does not conflate booleans with numbers or missing with null."""
    if a is MISSING or b is MISSING:
        return a is b
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    if is_number(a) != is_number(b):
        return False
    return a == b


def is_present(value: Any) -> bool:
    # None and "" count as absent, as do False and MISSING.
    return not (value is MISSING or value is None or value is False or value == "")


def evaluate_condition(condition: Condition, ctx: EvaluationContext, *, strict: bool = False) -> Outcome:
    op = condition.parsed_operator
    if op is None:
        if strict:
            raise UnknownOperatorError(f"Unknown condition operator: {condition.operator!r}")
        logger.warning("Unknown condition operator %r on field %s; treated as no match", condition.operator, condition.field)
        return Outcome.NO_MATCH

    family = op.family
    value = ctx.resolve(condition.field)

    if family is OperatorFamily.EXISTENCE:
        if op is Operator.EXISTS and value is MISSING:
            return Outcome.UNRESOLVED
        present = is_present(value)
        return Outcome.of(present if op is Operator.EXISTS else not present)

    if family is OperatorFamily.LOOKUP:
        return _evaluate_lookup(op, condition, value, ctx)

    if value is MISSING:
        return Outcome.UNRESOLVED

    if family is OperatorFamily.DIRECT:
        return Outcome.of(_evaluate_direct(op, value, condition.value))
    if family is OperatorFamily.MEMBERSHIP:
        members = condition.value
        if not isinstance(members, (list, tuple)):
            return Outcome.of(op is Operator.NOT_IN)
        contained = any(strict_equals(value, m) for m in members)
        return Outcome.of(contained if op is Operator.IN else not contained)
    if family is OperatorFamily.RANGE:
        return Outcome.of(_evaluate_range(op, value, condition.value))
    if family is OperatorFamily.ORDINAL:
        if not condition.scale:
            return Outcome.NO_MATCH
        return _evaluate_ordinal(op.comparison, value, condition.value, condition.scale)
    if family is OperatorFamily.REACTION_CLASS:
        # Lower index is a better class, so "less than" means ranked worse.
        return _evaluate_ordinal(op.comparison, value, condition.value, EUROCLASS_SCALE, reverse=True)

    return Outcome.NO_MATCH  # pragma: no cover


def _evaluate_direct(op: Operator, value: Any, operand: Any) -> bool:
    if op is Operator.EQ:
        return strict_equals(value, operand)
    if op is Operator.NEQ:
        return not strict_equals(value, operand)
    if not (is_number(value) and is_number(operand)):
        return False
    return _DIRECT_ORDERING[op](value, operand)


def _evaluate_range(op: Operator, value: Any, bounds: Any) -> bool:
    if not is_number(value) or not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
        return False
    low, high = bounds
    if not (is_number(low) and is_number(high)):
        return False
    inside = low <= value <= high
    return inside if op is Operator.BETWEEN else not inside


def _evaluate_ordinal(
    comparison: str,
    value: Any,
    threshold: Any,
    scale: Sequence[str],
    *,
    reverse: bool = False,
) -> Outcome:
    ranks = list(scale)
    value_key = scalar_text(value)
    threshold_key = scalar_text(threshold)
    if value_key not in ranks or threshold_key not in ranks:
        return Outcome.UNRESOLVED
    value_rank = ranks.index(value_key)
    threshold_rank = ranks.index(threshold_key)
    if reverse:
        value_rank, threshold_rank = threshold_rank, value_rank
    return Outcome.of(_ORDERING[comparison](value_rank, threshold_rank))


def _evaluate_lookup(op: Operator, condition: Condition, value: Any, ctx: EvaluationContext) -> Outcome:
    threshold = resolve_condition_threshold(condition, ctx)
    # Unresolvable lookups never fire.
    if threshold is MISSING or value is MISSING:
        return Outcome.NO_MATCH

    comparison = op.comparison
    if comparison == "eq":
        return Outcome.of(strict_equals(value, threshold))
    if comparison == "neq":
        return Outcome.of(not strict_equals(value, threshold))
    if not (is_number(value) and is_number(threshold)):
        return Outcome.NO_MATCH
    return Outcome.of(_ORDERING[comparison](value, threshold))
