"""Assemble plugins from their JSON definition shapes.

A plugin is authored as separate documents::

    plugin.json           {"id", "name", "version", "areas", ...}
    registry.json         {"regulations": [...]}
    <regulation>/rules    {"rules": [...]}        (one or more rule sets)
    lookup-tables.json    {"tables": [...]}       (optional)
    computed-fields.json  {"fields": [...]}       (optional)

Reading those documents from disk or elsewhere is the host's job.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import DeclarativeRule, Plugin, Regulation


def load_plugin_from_json(
    plugin_def: Mapping[str, Any],
    registry_def: Mapping[str, Any],
    rule_sets: Iterable[Mapping[str, Any]],
    lookup_tables: Optional[Mapping[str, Any]] = None,
    computed_fields: Optional[Mapping[str, Any]] = None,
) -> Plugin:
    rules: List[Any] = []
    for rule_set in rule_sets:
        rules.extend(rule_set.get("rules", []))

    data: Dict[str, Any] = dict(plugin_def)
    data["regulations"] = list(registry_def.get("regulations", []))
    data["rules"] = rules
    if lookup_tables is not None:
        data["lookupTables"] = list(lookup_tables.get("tables", []))
    if computed_fields is not None:
        data["computedFields"] = list(computed_fields.get("fields", []))
    return Plugin.model_validate(data)


def merge_rules_into_plugin(
    plugin: Plugin,
    regulation: Regulation,
    rules: Iterable[DeclarativeRule],
) -> Plugin:
    """A new plugin with one more regulation and its rules appended."""
    return plugin.model_copy(
        update={
            "regulations": [*plugin.regulations, regulation],
            "rules": [*plugin.rules, *rules],
            "last_updated": datetime.now(timezone.utc).isoformat(),
        }
    )
