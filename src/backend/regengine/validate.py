"""Structural checks for plugin definitions.

Evaluation never validates; a malformed plugin simply yields fewer findings.
This module is where malformed content gets reported, with one error entry per
problem and warnings for suspicious but evaluable content.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, List, Literal, Mapping, Optional, Sequence

from pydantic import Field, ValidationError

from .computed import ARITHMETIC_OPERATIONS
from .models import (
    ArithmeticComputation,
    Condition,
    ConditionalComputation,
    Operator,
    OperatorFamily,
    Plugin,
    RecordModel,
    RegulationStatus,
    TierComputation,
    TierStep,
)
from .registry import registry

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$")

_KNOWN_REGULATION_STATUSES = {s.value for s in RegulationStatus}


class ValidationIssue(RecordModel):
    path: str
    message: str
    severity: Literal["error", "warning"] = "error"


class ValidationStats(RecordModel):
    regulation_count: int = 0
    rule_count: int = 0
    lookup_table_count: int = 0
    computed_field_count: int = 0


class ValidationResult(RecordModel):
    plugin_id: str
    valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)
    stats: ValidationStats = Field(default_factory=ValidationStats)


class _Collector:
    def __init__(self):
        self.errors: List[ValidationIssue] = []
        self.warnings: List[ValidationIssue] = []

    def error(self, path: str, message: str) -> None:
        self.errors.append(ValidationIssue(path=path, message=message, severity="error"))

    def warn(self, path: str, message: str) -> None:
        self.warnings.append(ValidationIssue(path=path, message=message, severity="warning"))


def _check_metadata(plugin: Plugin, out: _Collector) -> None:
    if not plugin.id:
        out.error("id", "Plugin 'id' is required and must be a non-empty string")
    if not plugin.name:
        out.error("name", "Plugin 'name' is required and must be a non-empty string")
    if not plugin.version:
        out.error("version", "Plugin 'version' is required and must be a non-empty string")
    elif not SEMVER_PATTERN.match(plugin.version):
        out.error("version", f"Plugin 'version' must be a semantic version MAJOR.MINOR.PATCH (got {plugin.version!r})")
    if not plugin.areas:
        out.error("areas", "Plugin 'areas' is required and must be a non-empty list")
    for i, area in enumerate(plugin.areas):
        if not area:
            out.error(f"areas[{i}]", "Each area must be a non-empty string")


def _check_regulations(plugin: Plugin, out: _Collector) -> None:
    seen = set()
    for i, reg in enumerate(plugin.regulations):
        prefix = f"regulations[{i}]"
        if not reg.id:
            out.error(f"{prefix}.id", "Regulation 'id' is required and must be a non-empty string")
        elif reg.id in seen:
            out.error(f"{prefix}.id", f"Duplicate regulation ID: {reg.id!r}")
        seen.add(reg.id)
        if not reg.short_ref:
            out.error(f"{prefix}.shortRef", "Regulation 'shortRef' is required")
        if reg.status not in _KNOWN_REGULATION_STATUSES:
            out.warn(f"{prefix}.status", f"Unknown regulation status {reg.status!r}; its rules are still evaluated")


def _check_condition(condition: Condition, path: str, out: _Collector) -> None:
    if not condition.field:
        out.error(f"{path}.field", "Condition 'field' is required and must be a non-empty string")

    op = condition.parsed_operator
    if not condition.operator:
        out.error(f"{path}.operator", "Condition 'operator' is required")
        return
    if op is None:
        known = ", ".join(o.value for o in Operator)
        out.error(f"{path}.operator", f"Invalid condition operator: {condition.operator!r}. Must be one of: {known}")
        return

    family = op.family
    if family is OperatorFamily.LOOKUP and not condition.table:
        out.error(f"{path}.table", f"Lookup operator {op.value!r} requires a 'table' field")
    if family is OperatorFamily.ORDINAL and not condition.scale:
        out.error(f"{path}.scale", f"Ordinal operator {op.value!r} requires a non-empty 'scale' list")
    if family is OperatorFamily.RANGE and not (isinstance(condition.value, list) and len(condition.value) == 2):
        out.error(f"{path}.value", f"Range operator {op.value!r} requires a [min, max] value")
    if family is OperatorFamily.MEMBERSHIP and not isinstance(condition.value, list):
        out.error(f"{path}.value", f"Membership operator {op.value!r} requires a list value")


def _check_rules(plugin: Plugin, out: _Collector) -> None:
    regulation_ids = {reg.id for reg in plugin.regulations}
    seen = set()
    for i, rule in enumerate(plugin.rules):
        prefix = f"rules[{i}]"
        if not rule.id:
            out.error(f"{prefix}.id", "Rule 'id' is required and must be a non-empty string")
        elif rule.id in seen:
            out.error(f"{prefix}.id", f"Duplicate rule ID: {rule.id!r}")
        seen.add(rule.id)

        if not rule.regulation_id:
            out.error(f"{prefix}.regulationId", "Rule 'regulationId' is required")
        elif rule.regulation_id not in regulation_ids:
            out.error(f"{prefix}.regulationId", f"Rule references unknown regulation: {rule.regulation_id!r}")

        if not rule.conditions:
            out.error(f"{prefix}.conditions", "Rule 'conditions' is required and must be a non-empty list")
        for j, condition in enumerate(rule.conditions):
            _check_condition(condition, f"{prefix}.conditions[{j}]", out)
        for j, condition in enumerate(rule.exclusions):
            _check_condition(condition, f"{prefix}.exclusions[{j}]", out)


def _check_lookup_tables(plugin: Plugin, out: _Collector) -> None:
    seen = set()
    for i, table in enumerate(plugin.lookup_tables):
        prefix = f"lookupTables[{i}]"
        if not table.id:
            out.error(f"{prefix}.id", "Lookup table 'id' is required and must be a non-empty string")
        elif table.id in seen:
            out.error(f"{prefix}.id", f"Duplicate lookup table ID: {table.id!r}")
        seen.add(table.id)
        if not table.keys:
            out.error(f"{prefix}.keys", "Lookup table 'keys' is required and must be a non-empty list")
        if not table.values:
            out.error(f"{prefix}.values", "Lookup table 'values' is required and must be a non-empty mapping")


def _tier_bounds(tier: TierStep) -> tuple[float, float]:
    low = tier.min if tier.min is not None else float("-inf")
    high = tier.max if tier.max is not None else float("inf")
    return low, high


def _check_tiers(tiers: Sequence[TierStep], path: str, out: _Collector) -> None:
    """First matching tier wins, so flag tiers an earlier tier hides entirely, and
    explicitly bounded tiers whose ranges overlap."""
    for j, tier in enumerate(tiers):
        low, high = _tier_bounds(tier)
        if low > high:
            out.warn(f"{path}[{j}]", f"Tier {j} has min greater than max and never matches")
            continue
        for i in range(j):
            prev_low, prev_high = _tier_bounds(tiers[i])
            if prev_low <= low and high <= prev_high:
                out.warn(f"{path}[{j}]", f"Tier {j} is unreachable: tier {i} already covers its whole range")
                break
            explicit = None not in (tier.min, tier.max, tiers[i].min, tiers[i].max)
            if explicit and low <= prev_high and prev_low <= high:
                out.warn(f"{path}[{j}]", f"Tier {j} overlaps tier {i}; the earlier tier wins in the overlap")
                break


def _check_computed_fields(plugin: Plugin, out: _Collector) -> None:
    seen = set()
    for i, cf in enumerate(plugin.computed_fields):
        prefix = f"computedFields[{i}]"
        if not cf.id:
            out.error(f"{prefix}.id", "Computed field 'id' is required and must be a non-empty string")
        elif cf.id in seen:
            out.error(f"{prefix}.id", f"Duplicate computed field ID: {cf.id!r}")
        seen.add(cf.id)

        comp = cf.computation
        if isinstance(comp, ArithmeticComputation):
            if len(comp.operands) < 2:
                out.error(f"{prefix}.computation.operands", "Arithmetic computation requires at least 2 operands")
            if comp.operation not in ARITHMETIC_OPERATIONS:
                known = ", ".join(ARITHMETIC_OPERATIONS)
                out.error(
                    f"{prefix}.computation.operation",
                    f"Unknown arithmetic operation: {comp.operation!r}. Must be one of: {known}",
                )
        elif isinstance(comp, TierComputation):
            if not comp.field:
                out.error(f"{prefix}.computation.field", "Tier computation requires 'field'")
            if not comp.tiers:
                out.error(f"{prefix}.computation.tiers", "Tier computation requires a non-empty 'tiers' list")
            _check_tiers(comp.tiers, f"{prefix}.computation.tiers", out)
        elif isinstance(comp, ConditionalComputation):
            if not comp.field:
                out.error(f"{prefix}.computation.field", "Conditional computation requires 'field'")


def _check_cross_references(plugin: Plugin, out: _Collector) -> None:
    for reg in plugin.regulations:
        if reg.rules_count is None:
            continue
        actual = sum(1 for rule in plugin.rules if rule.regulation_id == reg.id)
        if reg.rules_count != actual:
            out.warn(
                f"regulations[{reg.id}].rulesCount",
                f"Regulation {reg.id!r} declares rulesCount={reg.rules_count} but has {actual} rules",
            )

    table_ids = {t.id for t in plugin.lookup_tables}
    for rule in plugin.rules:
        for kind, conditions in (("conditions", rule.conditions), ("exclusions", rule.exclusions)):
            for condition in conditions:
                if condition.table and condition.table not in table_ids:
                    out.warn(
                        f"rules[{rule.id}].{kind}",
                        f"Rule {rule.id!r} references lookup table {condition.table!r} which does not exist",
                    )

    disabled = [rule.id for rule in plugin.rules if not rule.enabled]
    if disabled:
        out.warn("rules", f"{len(disabled)} rule(s) are disabled: {', '.join(disabled)}")


def validate_loaded_plugin(plugin: Plugin) -> ValidationResult:
    out = _Collector()
    _check_metadata(plugin, out)
    _check_regulations(plugin, out)
    _check_rules(plugin, out)
    _check_lookup_tables(plugin, out)
    _check_computed_fields(plugin, out)
    _check_cross_references(plugin, out)

    return ValidationResult(
        plugin_id=plugin.id or "<unknown>",
        valid=not out.errors,
        errors=out.errors,
        warnings=out.warnings,
        stats=ValidationStats(
            regulation_count=len(plugin.regulations),
            rule_count=len(plugin.rules),
            lookup_table_count=len(plugin.lookup_tables),
            computed_field_count=len(plugin.computed_fields),
        ),
    )


def validate_plugin_definition(data: Mapping[str, Any]) -> ValidationResult:
    """Validate a raw definition, reporting schema failures as errors instead of raising."""
    try:
        plugin = Plugin.model_validate(data)
    except ValidationError as exc:
        errors = [
            ValidationIssue(path=".".join(str(p) for p in err["loc"]), message=f"Schema error: {err['msg']}")
            for err in exc.errors()
        ]
        plugin_id = data.get("id") if isinstance(data.get("id"), str) and data.get("id") else "<unknown>"
        return ValidationResult(plugin_id=plugin_id, valid=False, errors=errors)
    return validate_loaded_plugin(plugin)


def validate_all_loaded_plugins(plugins: Optional[Iterable[Plugin]] = None) -> List[ValidationResult]:
    if plugins is None:
        plugins = registry.get_available_plugins()
    return [validate_loaded_plugin(p) for p in plugins]
