from __future__ import annotations

from typing import Any, Dict

from ..registry import register_builtin

FIRE_SAFETY_PLUGIN_ID = "fire-safety"

# Minimum/maximum structural fire resistance in minutes by building type and risk category.
_FIRE_RESISTANCE = {
    "residential": {
        "1": {"min": 30, "max": 60},
        "2": {"min": 60, "max": 120},
        "3": {"min": 90, "max": 180},
        "4": {"min": 120, "max": 240},
    },
    "commercial": {
        "1": {"min": 60, "max": 120},
        "2": {"min": 90, "max": 180},
        "3": {"min": 120, "max": 240},
        "4": {"min": 180, "max": 240},
    },
}


@register_builtin(FIRE_SAFETY_PLUGIN_ID)
def fire_safety_plugin() -> Dict[str, Any]:
    return {
        "id": FIRE_SAFETY_PLUGIN_ID,
        "name": "Fire Safety",
        "version": "2.0.1",
        "areas": ["fire_safety"],
        "description": "Structural fire resistance, reaction to fire and detection requirements.",
        "author": "regengine",
        "lastUpdated": "2025-02-03",
        "regulations": [
            {
                "id": "scie",
                "shortRef": "DL 220/2008",
                "title": "Fire safety in buildings (SCIE)",
                "status": "active",
                "area": "fire_safety",
                "effectiveDate": "2009-01-01",
                "ingestionStatus": "partial",
                "rulesCount": 4,
            },
            {
                "id": "rt-scie",
                "shortRef": "Portaria 1532/2008",
                "title": "Technical regulation for fire safety in buildings",
                "status": "active",
                "area": "fire_safety",
                "effectiveDate": "2009-01-01",
                "ingestionStatus": "pending",
                "rulesCount": 0,
            },
        ],
        "rules": [
            {
                "id": "FIRE-SCIE-001",
                "regulationId": "scie",
                "article": "Art. 15",
                "description": (
                    "Structural fire resistance of {fireSafety.structuralFireResistance} min is below the "
                    "minimum for a {buildingType} building in risk category {fireSafety.riskCategory}"
                ),
                "severity": "critical",
                "conditions": [
                    {
                        "field": "fireSafety.structuralFireResistance",
                        "operator": "lookup_lt",
                        "table": "fire_resistance",
                    },
                ],
                "remediation": "Upgrade the fire protection of structural elements to the required rating.",
                "currentValueTemplate": "R{fireSafety.structuralFireResistance}",
            },
            {
                "id": "FIRE-SCIE-002",
                "regulationId": "scie",
                "article": "Art. 41",
                "description": "Escape route lining class {fireSafety.escapeRouteLiningClass} is worse than required",
                "severity": "warning",
                "conditions": [
                    {"field": "fireSafety.escapeRouteLiningClass", "operator": "reaction_class_lt", "value": "B"},
                ],
                "remediation": "Use lining materials with reaction-to-fire class B or better on escape routes.",
                "currentValueTemplate": "{fireSafety.escapeRouteLiningClass}",
                "requiredValue": "B or better",
            },
            {
                "id": "FIRE-SCIE-003",
                "regulationId": "scie",
                "article": "Art. 125",
                "description": "Building with {numberOfFloors} floors has no automatic fire detection",
                "severity": "critical",
                "conditions": [
                    {"field": "numberOfFloors", "operator": ">=", "value": 4},
                    {"field": "fireSafety.hasFireDetection", "operator": "not_exists"},
                ],
                "remediation": "Install an automatic fire detection and alarm system.",
            },
            {
                "id": "FIRE-SCIE-004",
                "regulationId": "scie",
                "article": "Art. 135",
                "description": (
                    "Average floor height of {computed.avgFloorHeight} m is too low for natural smoke control"
                ),
                "severity": "info",
                "conditions": [
                    {"field": "computed.avgFloorHeight", "operator": "<", "value": 2.5},
                ],
                "remediation": "Consider mechanical smoke extraction.",
                "currentValueTemplate": "{computed.avgFloorHeight} m",
            },
        ],
        "lookupTables": [
            {
                "id": "fire_resistance",
                "description": "Structural fire resistance (minutes) by building type and risk category",
                "keys": ["buildingType", "fireSafety.riskCategory"],
                "subKey": "min",
                "values": _FIRE_RESISTANCE,
            },
        ],
    }
