from __future__ import annotations

from typing import Any, Dict

from ..registry import register_builtin

THERMAL_PLUGIN_ID = "thermal"


@register_builtin(THERMAL_PLUGIN_ID)
def thermal_plugin() -> Dict[str, Any]:
    return {
        "id": THERMAL_PLUGIN_ID,
        "name": "Thermal Performance",
        "version": "1.2.0",
        "areas": ["thermal"],
        "description": "Envelope thermal transmittance and renewable energy requirements.",
        "author": "regengine",
        "lastUpdated": "2025-01-15",
        "regulations": [
            {
                "id": "reh",
                "shortRef": "DL 101-D/2020",
                "title": "Energy performance of residential buildings (REH)",
                "status": "active",
                "area": "thermal",
                "effectiveDate": "2021-07-01",
                "ingestionStatus": "complete",
                "rulesCount": 2,
                "tags": ["energy", "envelope"],
            },
            {
                "id": "rccte",
                "shortRef": "DL 80/2006",
                "title": "Thermal behaviour of buildings (RCCTE)",
                "status": "superseded",
                "area": "thermal",
                "effectiveDate": "2006-07-04",
                "revocationDate": "2013-12-01",
                "supersededBy": "reh",
                "ingestionStatus": "complete",
                "rulesCount": 1,
            },
        ],
        "rules": [
            {
                "id": "THERMAL-REH-001",
                "regulationId": "reh",
                "article": "Portaria 138-I/2021, Table I.01",
                "description": (
                    "External wall U-value {envelope.externalWallUValue} W/(m².K) exceeds the maximum "
                    "allowed for climate zone {envelope.climateZone}"
                ),
                "severity": "critical",
                "conditions": [
                    {"field": "envelope.externalWallUValue", "operator": "lookup_gt", "table": "u_max_walls"},
                ],
                "remediation": "Increase wall insulation thickness or use a lower-conductivity insulation material.",
                "currentValueTemplate": "{envelope.externalWallUValue} W/(m².K)",
                "tags": ["envelope"],
            },
            {
                "id": "THERMAL-REH-002",
                "regulationId": "reh",
                "article": "Art. 27",
                "description": "No solar thermal system declared for domestic hot water",
                "severity": "warning",
                "conditions": [
                    {"field": "systems.hasSolarThermal", "operator": "==", "value": False},
                ],
                "exclusions": [
                    {"field": "systems.hasHeatPump", "operator": "==", "value": True},
                ],
                "remediation": "Install solar thermal collectors or an equivalent renewable system such as a heat pump.",
                "currentValueTemplate": "solar thermal: {systems.hasSolarThermal}",
                "requiredValue": "solar thermal or equivalent renewable source",
            },
            {
                "id": "THERMAL-RCCTE-001",
                "regulationId": "rccte",
                "article": "Annex IX",
                "description": "External wall U-value above the RCCTE reference value",
                "severity": "warning",
                "conditions": [
                    {"field": "envelope.externalWallUValue", "operator": ">", "value": 0.7},
                ],
                "remediation": "Superseded by REH.",
            },
        ],
        "lookupTables": [
            {
                "id": "u_max_walls",
                "description": "Maximum external wall U-value in W/(m².K) by winter climate zone",
                "keys": ["envelope.climateZone"],
                "values": {"I1": 0.50, "I2": 0.40, "I3": 0.35},
            },
        ],
    }
