import threading

import pytest

from regengine.config import EngineConfig
from regengine.engine import PluginRunner, evaluate_plugin, evaluate_plugins
from regengine.models import ComputedField, Severity
from regengine.sequence import FindingIdSequence, reset_plugin_finding_counter


def _u_value_plugin(make_plugin, make_rule, make_table):
    return make_plugin(
        rules=[
            make_rule(
                id="U-1",
                severity="critical",
                description="Wall U {envelope.u} exceeds the limit for zone {envelope.zone}",
                conditions=[{"field": "envelope.u", "operator": "lookup_gt", "table": "u_max_walls"}],
                current_value_template="{envelope.u} W/(m².K)",
            )
        ],
        lookup_tables=[
            make_table(id="u_max_walls", keys=["envelope.zone"], values={"I1": 0.50, "I2": 0.40, "I3": 0.35})
        ],
    )


def test_u_value_lookup_fires_with_resolved_requirement(make_plugin, make_rule, make_table):
    plugin = _u_value_plugin(make_plugin, make_rule, make_table)

    result = evaluate_plugin(plugin, {"envelope": {"zone": "I2", "u": 0.45}})

    assert len(result.findings) == 1
    finding = result.findings[0]
    assert finding.id == "PF-5001"
    assert finding.source_rule_id == "U-1"
    assert finding.severity == Severity.CRITICAL
    assert finding.description == "Wall U 0.45 exceeds the limit for zone I2"
    assert finding.current_value == "0.45 W/(m².K)"
    assert "0.40" in finding.required_value
    assert finding.required_value == "≤ 0.40"
    assert result.regulations_used == ["DL 1/2020"]


def test_u_value_under_the_zone_limit_does_not_fire(make_plugin, make_rule, make_table):
    plugin = _u_value_plugin(make_plugin, make_rule, make_table)

    result = evaluate_plugin(plugin, {"envelope": {"zone": "I1", "u": 0.45}})

    assert result.findings == []
    assert result.rules_skipped == []
    assert result.total_active_rules == 1


def test_two_dimensional_lookup_with_sub_key(make_plugin, make_rule, make_table):
    plugin = make_plugin(
        rules=[
            make_rule(
                id="FR-1",
                conditions=[{"field": "fireResistance", "operator": "lookup_lt", "table": "fr"}],
            )
        ],
        lookup_tables=[
            make_table(
                id="fr",
                keys=["buildingType", "riskCategory"],
                values={"residential": {"1": {"min": 30, "max": 60}, "2": {"min": 60, "max": 120}}},
                sub_key="min",
            )
        ],
    )

    fired = evaluate_plugin(plugin, {"buildingType": "residential", "riskCategory": "2", "fireResistance": 30})
    quiet = evaluate_plugin(plugin, {"buildingType": "residential", "riskCategory": "1", "fireResistance": 30})

    assert [f.source_rule_id for f in fired.findings] == ["FR-1"]
    assert fired.findings[0].required_value == "≥ 60"
    assert quiet.findings == []


def test_missing_field_skips_rule_but_false_condition_does_not(make_plugin, make_rule):
    plugin = make_plugin(
        rules=[
            make_rule(id="MISSING", conditions=[{"field": "absent.value", "operator": ">", "value": 1}]),
            make_rule(id="FALSE", conditions=[{"field": "floors", "operator": ">", "value": 10}]),
        ]
    )

    result = evaluate_plugin(plugin, {"floors": 3})

    assert result.findings == []
    assert result.rules_skipped == ["MISSING"]
    assert result.total_active_rules == 2


def test_exists_on_missing_field_skips_rule(make_plugin, make_rule):
    plugin = make_plugin(
        rules=[
            make_rule(id="EX", conditions=[{"field": "fire.alarm", "operator": "exists"}]),
            make_rule(id="EX-FALSE", conditions=[{"field": "fire.detector", "operator": "exists"}]),
            make_rule(id="NOT-EX", conditions=[{"field": "fire.alarm", "operator": "not_exists"}]),
        ]
    )

    result = evaluate_plugin(plugin, {"floors": 3, "fire": {"detector": False}})

    assert result.rules_skipped == ["EX"]
    assert [f.source_rule_id for f in result.findings] == ["NOT-EX"]


def test_conditions_short_circuit_in_order(make_plugin, make_rule):
    plugin = make_plugin(
        rules=[
            make_rule(
                id="R",
                conditions=[
                    {"field": "floors", "operator": ">", "value": 10},
                    {"field": "absent", "operator": "==", "value": 1},
                ],
            )
        ]
    )

    result = evaluate_plugin(plugin, {"floors": 3})

    assert result.rules_skipped == []


def test_nonexistent_lookup_table_never_fires(make_plugin, make_rule):
    plugin = make_plugin(
        rules=[make_rule(id="R", conditions=[{"field": "u", "operator": "lookup_gt", "table": "missing"}])]
    )

    result = evaluate_plugin(plugin, {"u": 100})

    assert result.findings == []
    assert result.rules_skipped == []


@pytest.mark.parametrize("severity", ["critical", "warning", "info", "pass"])
def test_exclusion_suppresses_finding(make_plugin, make_rule, severity):
    plugin = make_plugin(
        rules=[
            make_rule(
                id="R",
                severity=severity,
                conditions=[{"field": "hasSolar", "operator": "==", "value": False}],
                exclusions=[
                    {"field": "unknown", "operator": "==", "value": True},
                    {"field": "hasHeatPump", "operator": "==", "value": True},
                ],
            )
        ]
    )

    excluded = evaluate_plugin(plugin, {"hasSolar": False, "hasHeatPump": True})
    fired = evaluate_plugin(plugin, {"hasSolar": False, "hasHeatPump": False})

    assert excluded.findings == []
    assert excluded.rules_skipped == []
    assert len(fired.findings) == 1


def test_disabled_rules_are_invisible(make_plugin, make_rule):
    plugin = make_plugin(
        rules=[
            make_rule(id="OFF-MISSING", enabled=False, conditions=[{"field": "absent", "operator": ">", "value": 1}]),
            make_rule(id="OFF-FIRES", enabled=False, conditions=[{"field": "floors", "operator": ">", "value": 1}]),
            make_rule(id="ON", conditions=[{"field": "floors", "operator": ">", "value": 1}]),
        ]
    )

    result = evaluate_plugin(plugin, {"floors": 3})

    assert result.total_active_rules == 1
    assert result.rules_skipped == []
    assert [f.source_rule_id for f in result.findings] == ["ON"]


def test_superseded_regulation_rules_are_not_evaluated(make_plugin, make_rule, make_regulation):
    plugin = make_plugin(
        regulations=[
            make_regulation(id="new", short_ref="DL 2/2021"),
            make_regulation(id="old", short_ref="DL 1/2006", status="superseded"),
            make_regulation(id="gone", short_ref="DL 9/1990", status="revoked"),
        ],
        rules=[
            make_rule(id="NEW", regulation_id="new", conditions=[{"field": "x", "operator": "==", "value": 1}]),
            make_rule(id="OLD", regulation_id="old", conditions=[{"field": "x", "operator": "==", "value": 1}]),
            make_rule(id="GONE", regulation_id="gone", conditions=[{"field": "absent", "operator": "==", "value": 1}]),
        ],
    )

    result = evaluate_plugin(plugin, {"x": 1})

    assert result.total_active_rules == 1
    assert [f.source_rule_id for f in result.findings] == ["NEW"]
    assert result.regulations_skipped == ["old", "gone"]
    assert result.rules_skipped == []


def test_finding_ids_are_monotonic_across_plugins_and_reset(make_plugin, make_rule):
    rule = make_rule(id="R", conditions=[{"field": "x", "operator": "==", "value": 1}])
    first = make_plugin(id="a", rules=[rule, rule.model_copy(update={"id": "R2"})])
    second = make_plugin(id="b", rules=[rule])

    ids = [f.id for res in evaluate_plugins([first, second], {"x": 1}) for f in res.findings]
    assert ids == ["PF-5001", "PF-5002", "PF-5003"]

    reset_plugin_finding_counter()
    assert evaluate_plugin(second, {"x": 1}).findings[0].id == "PF-5001"


def test_injected_sequence_and_config(make_plugin, make_rule):
    plugin = make_plugin(
        rules=[
            make_rule(
                id="R",
                description="Value {x} vs {absent}",
                conditions=[{"field": "x", "operator": ">", "value": 1}],
            )
        ]
    )
    sequence = FindingIdSequence(prefix="T", base=100)
    config = EngineConfig(missing_value_text="-", decimal_places=1)

    result = evaluate_plugin(plugin, {"x": 2.26}, sequence=sequence, config=config)

    assert result.findings[0].id == "T-101"
    assert result.findings[0].description == "Value 2.3 vs -"


def test_divide_by_zero_computed_field_does_not_fire(make_plugin, make_rule):
    plugin = make_plugin(
        rules=[make_rule(id="LOW", conditions=[{"field": "computed.avg", "operator": "<", "value": 2.7}])],
        computed_fields=[
            ComputedField.model_validate(
                {"id": "avg", "computation": {"type": "arithmetic", "operands": ["height", "floors"]}}
            )
        ],
    )

    zero = evaluate_plugin(plugin, {"height": 10, "floors": 0})
    low = evaluate_plugin(plugin, {"height": 10, "floors": 4})

    assert zero.findings == []
    assert zero.rules_skipped == ["LOW"]
    assert [f.source_rule_id for f in low.findings] == ["LOW"]


def test_cross_plugin_computed_fields_and_local_shadowing(make_plugin, make_rule):
    def avg(operation):
        return ComputedField.model_validate(
            {"id": "avg", "computation": {"type": "arithmetic", "operands": ["h", "n"], "operation": operation}}
        )

    provider = make_plugin(id="provider", computed_fields=[avg("divide")])
    consumer = make_plugin(
        id="consumer",
        rules=[make_rule(id="USES-GLOBAL", conditions=[{"field": "computed.avg", "operator": "==", "value": 5.0}])],
    )
    shadowing = make_plugin(
        id="shadowing",
        rules=[make_rule(id="USES-LOCAL", conditions=[{"field": "computed.avg", "operator": "==", "value": 12}])],
        computed_fields=[avg("add")],
    )

    results = evaluate_plugins([shadowing, provider, consumer], {"h": 10, "n": 2})
    by_id = {r.plugin_id: r for r in results}

    assert [f.source_rule_id for f in by_id["consumer"].findings] == ["USES-GLOBAL"]
    assert [f.source_rule_id for f in by_id["shadowing"].findings] == ["USES-LOCAL"]


def test_malformed_operator_does_not_crash_evaluation(make_plugin, make_rule):
    plugin = make_plugin(
        rules=[
            make_rule(id="BAD", conditions=[{"field": "x", "operator": "computed_gt", "value": 1}]),
            make_rule(id="GOOD", conditions=[{"field": "x", "operator": "==", "value": 1}]),
        ]
    )

    result = evaluate_plugin(plugin, {"x": 1})

    assert [f.source_rule_id for f in result.findings] == ["GOOD"]


def test_runner_builds_report_totals(make_plugin, make_rule):
    plugin = make_plugin(
        rules=[
            make_rule(id="C", severity="critical", conditions=[{"field": "x", "operator": "==", "value": 1}]),
            make_rule(id="W", severity="warning", conditions=[{"field": "x", "operator": "==", "value": 1}]),
        ]
    )
    other = make_plugin(
        id="other",
        rules=[make_rule(id="O", severity="critical", conditions=[{"field": "x", "operator": "==", "value": 1}])],
    )

    report = PluginRunner([plugin, other]).run({"x": 1}, plugin_ids={"test-plugin"})

    assert [r.plugin_id for r in report.results] == ["test-plugin"]
    assert report.totals == {Severity.CRITICAL: 1, Severity.WARNING: 1}
    assert [f.id for f in report.findings] == ["PF-5001", "PF-5002"]
    assert report.to_dict()["results"][0]["pluginId"] == "test-plugin"


def test_concurrent_evaluations_share_unique_finding_ids(make_plugin, make_rule):
    plugin = make_plugin(
        rules=[make_rule(id=f"R{i}", conditions=[{"field": "x", "operator": "==", "value": 1}]) for i in range(5)]
    )
    ids = []
    ids_lock = threading.Lock()
    errors = []

    def _worker():
        try:
            for _ in range(20):
                found = [f.id for f in evaluate_plugin(plugin, {"x": 1}).findings]
                with ids_lock:
                    ids.extend(found)
        except Exception as exc:  # surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(ids) == 8 * 20 * 5
    assert len(set(ids)) == len(ids)
    assert sorted(int(i.split("-")[1]) for i in ids) == list(range(5001, 5001 + len(ids)))
