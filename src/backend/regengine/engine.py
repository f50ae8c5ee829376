"""Declarative rule evaluation.

Order of work for one plugin:
1. evaluate the plugin's own computed fields (they shadow the shared ``computed`` namespace)
2. index its lookup tables
3. evaluate enabled rules of applicable regulations; rules of superseded/revoked
   regulations are not evaluated and their regulations are reported as skipped
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .computed import enrich_project, evaluate_computed_fields
from .conditions import Outcome, UnknownOperatorError, evaluate_condition
from .config import EngineConfig, get_engine_config
from .context import MISSING, EvaluationContext, index_tables
from .lifecycle import active_rules, skipped_regulations
from .lookup import resolve_condition_threshold
from .models import (
    DeclarativeRule,
    EvaluationResult,
    Finding,
    Operator,
    OperatorFamily,
    Plugin,
    PluginRunReport,
    Regulation,
    Severity,
)
from .registry import registry
from .sequence import FindingIdSequence, default_sequence

logger = logging.getLogger(__name__)

# A rule with `field lookup_gt limit` fires on a violation, so the requirement is the complement.
_REQUIREMENT_SYMBOLS: Dict[Operator, str] = {
    Operator.LOOKUP_GT: "≤",
    Operator.LOOKUP_GTE: "<",
    Operator.LOOKUP_LT: "≥",
    Operator.LOOKUP_LTE: ">",
    Operator.LOOKUP_EQ: "≠",
    Operator.LOOKUP_NEQ: "=",
}


class RuleVerdict(str, Enum):
    FIRED = "FIRED"
    NOT_FIRED = "NOT_FIRED"
    EXCLUDED = "EXCLUDED"
    SKIPPED = "SKIPPED"


def evaluate_rule(rule: DeclarativeRule, ctx: EvaluationContext, *, strict: bool = False) -> RuleVerdict:
    for condition in rule.conditions:
        outcome = evaluate_condition(condition, ctx, strict=strict)
        if outcome is Outcome.UNRESOLVED:
            return RuleVerdict.SKIPPED
        if outcome is Outcome.NO_MATCH:
            return RuleVerdict.NOT_FIRED

    for exclusion in rule.exclusions:
        if evaluate_condition(exclusion, ctx, strict=strict) is Outcome.MATCH:
            return RuleVerdict.EXCLUDED
    return RuleVerdict.FIRED


def _required_value(rule: DeclarativeRule, ctx: EvaluationContext) -> Optional[str]:
    for condition in rule.conditions:
        op = condition.parsed_operator
        if op is None or op.family is not OperatorFamily.LOOKUP:
            continue
        threshold = resolve_condition_threshold(condition, ctx)
        if threshold is not MISSING:
            return f"{_REQUIREMENT_SYMBOLS[op]} {ctx.format(threshold)}"
        break
    if rule.required_value:
        return ctx.interpolate(rule.required_value)
    return None


def _build_finding(
    rule: DeclarativeRule,
    plugin: Plugin,
    regulation: Optional[Regulation],
    ctx: EvaluationContext,
    sequence: FindingIdSequence,
) -> Finding:
    area = regulation.area if regulation and regulation.area else (plugin.areas[0] if plugin.areas else "")
    return Finding(
        id=sequence.next_id(),
        source_rule_id=rule.id,
        area=area,
        regulation=regulation.short_ref if regulation and regulation.short_ref else rule.regulation_id,
        article=rule.article,
        description=ctx.interpolate(rule.description),
        severity=rule.severity,
        remediation=ctx.interpolate(rule.remediation),
        current_value=ctx.interpolate(rule.current_value_template) if rule.current_value_template else None,
        required_value=_required_value(rule, ctx),
    )


def evaluate_plugin(
    plugin: Plugin,
    project: Mapping[str, Any],
    *,
    sequence: Optional[FindingIdSequence] = None,
    config: Optional[EngineConfig] = None,
) -> EvaluationResult:
    config = config or get_engine_config()
    sequence = sequence or default_sequence
    skipped_statuses = set(config.skipped_regulation_statuses)

    ctx = EvaluationContext(
        project=project,
        computed=evaluate_computed_fields(project, plugin.computed_fields),
        tables=index_tables(plugin.lookup_tables),
        missing_text=config.missing_value_text,
        decimal_places=config.decimal_places,
    )
    regulations = {reg.id: reg for reg in plugin.regulations}
    rules = active_rules(plugin, skipped_statuses)

    findings: List[Finding] = []
    rules_skipped: List[str] = []
    regulations_used: List[str] = []

    for rule in rules:
        regulation = regulations.get(rule.regulation_id)
        try:
            verdict = evaluate_rule(rule, ctx, strict=config.strict_operators)
            if verdict is RuleVerdict.FIRED:
                finding = _build_finding(rule, plugin, regulation, ctx, sequence)
        except UnknownOperatorError:
            raise
        except (TypeError, ValueError, ArithmeticError) as exc:
            logger.warning("Rule %s in plugin %s could not be evaluated: %s", rule.id, plugin.id, exc)
            rules_skipped.append(rule.id)
            continue

        if verdict is RuleVerdict.SKIPPED:
            rules_skipped.append(rule.id)
        elif verdict is RuleVerdict.FIRED:
            findings.append(finding)
            if finding.regulation not in regulations_used:
                regulations_used.append(finding.regulation)

    logger.debug(
        "Plugin %s v%s: %d active rules, %d findings, %d skipped",
        plugin.id,
        plugin.version,
        len(rules),
        len(findings),
        len(rules_skipped),
    )
    return EvaluationResult(
        plugin_id=plugin.id,
        plugin_version=plugin.version,
        findings=findings,
        total_active_rules=len(rules),
        rules_skipped=rules_skipped,
        regulations_used=regulations_used,
        regulations_skipped=[reg.id for reg in skipped_regulations(plugin, skipped_statuses)],
        evaluated_at=datetime.now(timezone.utc),
    )


def evaluate_plugins(
    plugins: Iterable[Plugin],
    project: Mapping[str, Any],
    *,
    sequence: Optional[FindingIdSequence] = None,
    config: Optional[EngineConfig] = None,
) -> List[EvaluationResult]:
    """Evaluate several plugins against one project.

    The shared computed namespace is fully built from every plugin before any
    rule runs, so rules may reference computed fields defined by other plugins.
    """
    plugins = list(plugins)
    enriched = enrich_project(project, plugins)
    return [evaluate_plugin(p, enriched, sequence=sequence, config=config) for p in plugins]


class PluginRunner:
    def __init__(
        self,
        plugins: Optional[Iterable[Plugin]] = None,
        *,
        sequence: Optional[FindingIdSequence] = None,
        config: Optional[EngineConfig] = None,
    ):
        self._plugins = list(plugins) if plugins is not None else registry.get_available_plugins()
        self._sequence = sequence
        self._config = config

    def run(self, project: Mapping[str, Any], *, plugin_ids: Optional[set[str]] = None) -> PluginRunReport:
        # Computed fields come from every plugin even when only some are evaluated.
        enriched = enrich_project(project, self._plugins)
        results = []
        for plugin in self._plugins:
            if plugin_ids is not None and plugin.id not in plugin_ids:
                continue
            results.append(evaluate_plugin(plugin, enriched, sequence=self._sequence, config=self._config))

        findings = [f for res in results for f in res.findings]
        totals: dict[Severity, int] = {}
        for finding in findings:
            totals[finding.severity] = totals.get(finding.severity, 0) + 1

        return PluginRunReport(
            run_id=str(uuid.uuid4()),
            generated_at=datetime.now(timezone.utc),
            results=results,
            findings=findings,
            totals=totals,
        )
