from regengine.engine import evaluate_plugin
from regengine.loader import load_plugin_from_json, merge_rules_into_plugin
from regengine.models import DeclarativeRule, Regulation

PLUGIN_DEF = {
    "id": "accessibility",
    "name": "Accessibility",
    "version": "0.1.0",
    "areas": ["accessibility"],
}

REGISTRY_DEF = {
    "regulations": [
        {"id": "dl163", "shortRef": "DL 163/2006", "status": "active", "area": "accessibility"},
    ]
}

RULES_A = {
    "rules": [
        {
            "id": "ACC-001",
            "regulationId": "dl163",
            "article": "Sec. 2.3",
            "description": "Door width {doors.width} m below {doors.minWidth}",
            "severity": "critical",
            "conditions": [{"field": "doors.width", "operator": "lookup_lt", "table": "door_widths"}],
            "remediation": "Widen the door.",
        }
    ]
}

RULES_B = {
    "rules": [
        {
            "id": "ACC-002",
            "regulationId": "dl163",
            "description": "Ramp slope too steep",
            "conditions": [{"field": "computed.rampSlope", "operator": ">", "value": 0.06}],
        }
    ]
}

TABLES = {"tables": [{"id": "door_widths", "keys": ["doors.use"], "values": {"main": 0.87, "interior": 0.77}}]}

FIELDS = {
    "fields": [
        {
            "id": "rampSlope",
            "computation": {"type": "arithmetic", "operands": ["ramp.rise", "ramp.run"], "operation": "divide"},
        }
    ]
}


def test_load_plugin_from_json_assembles_all_documents():
    plugin = load_plugin_from_json(PLUGIN_DEF, REGISTRY_DEF, [RULES_A, RULES_B], TABLES, FIELDS)

    assert plugin.id == "accessibility"
    assert [r.id for r in plugin.rules] == ["ACC-001", "ACC-002"]
    assert plugin.lookup_tables[0].id == "door_widths"
    assert plugin.computed_fields[0].computation.type == "arithmetic"

    result = evaluate_plugin(plugin, {"doors": {"width": 0.8, "use": "main"}, "ramp": {"rise": 1, "run": 10}})

    assert [f.source_rule_id for f in result.findings] == ["ACC-001", "ACC-002"]
    assert result.findings[0].required_value == "≥ 0.87"


def test_load_without_optional_documents():
    plugin = load_plugin_from_json(PLUGIN_DEF, REGISTRY_DEF, [])

    assert plugin.rules == []
    assert plugin.lookup_tables == []
    assert plugin.computed_fields == []


def test_merge_rules_appends_without_mutating():
    plugin = load_plugin_from_json(PLUGIN_DEF, REGISTRY_DEF, [RULES_A])
    regulation = Regulation(id="ports", short_ref="Portaria 349-C/2013", area="accessibility")
    rule = DeclarativeRule.model_validate(
        {"id": "ACC-100", "regulationId": "ports", "conditions": [{"field": "x", "operator": "exists"}]}
    )

    merged = merge_rules_into_plugin(plugin, regulation, [rule])

    assert [r.id for r in merged.regulations] == ["dl163", "ports"]
    assert [r.id for r in merged.rules] == ["ACC-001", "ACC-100"]
    assert merged.last_updated is not None
    assert len(plugin.rules) == 1
