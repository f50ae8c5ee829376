from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from pydantic import Field

from .models import IngestionStatus, Plugin, RecordModel, Regulation
from .registry import registry

_COMPLETE_INGESTION = {IngestionStatus.COMPLETE.value, IngestionStatus.VERIFIED.value}

# Areas scoring at or above this are shown as adequately covered in the text report.
_GOOD_SCORE = 75


class AreaCoverage(RecordModel):
    area: str
    plugin_id: str
    plugin_name: str
    regulation_count: int = 0
    rule_count: int = 0
    lookup_table_count: int = 0
    computed_field_count: int = 0
    rules_by_severity: Dict[str, int] = Field(default_factory=dict)
    regulations_by_status: Dict[str, int] = Field(default_factory=dict)
    coverage_score: int = 0


class PendingRegulation(RecordModel):
    plugin_id: str
    regulation_id: str
    short_ref: str
    ingestion_status: str


class CoverageReport(RecordModel):
    generated_at: datetime
    total_plugins: int = 0
    total_regulations: int = 0
    total_rules: int = 0
    total_lookup_tables: int = 0
    total_computed_fields: int = 0
    overall_coverage_score: int = 0
    areas: List[AreaCoverage] = Field(default_factory=list)
    uncovered_areas: List[str] = Field(default_factory=list)
    pending_regulations: List[PendingRegulation] = Field(default_factory=list)


def area_coverage_score(
    rule_count: int,
    regulations: List[Regulation],
    lookup_table_count: int,
    computed_field_count: int,
) -> int:
    """
    0 when the area has no rules, otherwise:
      50 base
      +25 when every area regulation is fully ingested (complete/verified)
      +15 when the plugin ships lookup tables
      +10 when the plugin ships computed fields
    """
    if rule_count == 0:
        return 0

    score = 50
    if regulations and all(reg.ingestion_status in _COMPLETE_INGESTION for reg in regulations):
        score += 25
    if lookup_table_count > 0:
        score += 15
    if computed_field_count > 0:
        score += 10
    return score


def build_area_coverage(plugin: Plugin, area: str) -> AreaCoverage:
    area_regulations = [reg for reg in plugin.regulations if reg.area == area]
    regulation_ids = {reg.id for reg in area_regulations}
    area_rules = [rule for rule in plugin.rules if rule.regulation_id in regulation_ids]

    rules_by_severity: Dict[str, int] = {}
    for rule in area_rules:
        rules_by_severity[rule.severity.value] = rules_by_severity.get(rule.severity.value, 0) + 1

    regulations_by_status: Dict[str, int] = {}
    for reg in area_regulations:
        status = reg.ingestion_status or IngestionStatus.PENDING.value
        regulations_by_status[status] = regulations_by_status.get(status, 0) + 1

    return AreaCoverage(
        area=area,
        plugin_id=plugin.id,
        plugin_name=plugin.name,
        regulation_count=len(area_regulations),
        rule_count=len(area_rules),
        lookup_table_count=len(plugin.lookup_tables),
        computed_field_count=len(plugin.computed_fields),
        rules_by_severity=rules_by_severity,
        regulations_by_status=regulations_by_status,
        coverage_score=area_coverage_score(
            len(area_rules), area_regulations, len(plugin.lookup_tables), len(plugin.computed_fields)
        ),
    )


def _is_pending(plugin: Plugin, regulation: Regulation) -> bool:
    if regulation.rules_count is not None:
        return regulation.rules_count == 0
    return not any(rule.regulation_id == regulation.id for rule in plugin.rules)


def generate_coverage_report(plugins: Optional[Iterable[Plugin]] = None) -> CoverageReport:
    """Coverage over the given plugins, or the registry's effective set."""
    plugins = list(plugins) if plugins is not None else registry.get_available_plugins()

    areas: List[AreaCoverage] = []
    pending: List[PendingRegulation] = []
    declared: set[str] = set()
    covered: set[str] = set()

    for plugin in plugins:
        for area in plugin.areas:
            declared.add(area)
            coverage = build_area_coverage(plugin, area)
            areas.append(coverage)
            if coverage.rule_count > 0:
                covered.add(area)

        for reg in plugin.regulations:
            if _is_pending(plugin, reg):
                pending.append(
                    PendingRegulation(
                        plugin_id=plugin.id,
                        regulation_id=reg.id,
                        short_ref=reg.short_ref,
                        ingestion_status=reg.ingestion_status or IngestionStatus.PENDING.value,
                    )
                )

    overall = 0
    if areas:
        # Half rounds up.
        overall = int(math.floor(sum(a.coverage_score for a in areas) / len(areas) + 0.5))

    return CoverageReport(
        generated_at=datetime.now(timezone.utc),
        total_plugins=len(plugins),
        total_regulations=sum(len(p.regulations) for p in plugins),
        total_rules=sum(len(p.rules) for p in plugins),
        total_lookup_tables=sum(len(p.lookup_tables) for p in plugins),
        total_computed_fields=sum(len(p.computed_fields) for p in plugins),
        overall_coverage_score=max(0, min(100, overall)),
        areas=areas,
        uncovered_areas=sorted(declared - covered),
        pending_regulations=pending,
    )


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def format_coverage_report_text(report: CoverageReport) -> str:
    lines: List[str] = [
        "=== Plugin Coverage Report ===",
        f"Generated: {report.generated_at.isoformat()}",
        "",
        "Summary:",
        f"  Plugins:         {report.total_plugins}",
        f"  Regulations:     {report.total_regulations}",
        f"  Rules:           {report.total_rules}",
        f"  Lookup Tables:   {report.total_lookup_tables}",
        f"  Computed Fields: {report.total_computed_fields}",
        "",
        f"  Overall Coverage: {report.overall_coverage_score}%",
        "",
        "Area Coverage:",
    ]

    for area in sorted(report.areas, key=lambda a: a.coverage_score, reverse=True):
        mark = "+" if area.coverage_score >= _GOOD_SCORE else "!"
        lines.append(
            f"  {mark} {area.area:<20} {_plural(area.rule_count, 'rule', 'rules')}, "
            f"{_plural(area.regulation_count, 'reg', 'regs')}, {area.coverage_score}%"
        )
    lines.append("")

    if report.uncovered_areas:
        lines.append("Uncovered Areas (no rules):")
        lines.extend(f"  - {area}" for area in report.uncovered_areas)
        lines.append("")

    lines.append("Pending Regulations (no rules extracted):")
    if not report.pending_regulations:
        lines.append("  (none)")
    for item in report.pending_regulations:
        lines.append(f"  - [{item.plugin_id}] {item.short_ref} ({item.ingestion_status})")
    lines.append("")

    return "\n".join(lines)
