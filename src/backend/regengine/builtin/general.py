from __future__ import annotations

from typing import Any, Dict

from ..registry import register_builtin

GENERAL_PLUGIN_ID = "general"


@register_builtin(GENERAL_PLUGIN_ID)
def general_plugin() -> Dict[str, Any]:
    return {
        "id": GENERAL_PLUGIN_ID,
        "name": "General Building Regulations",
        "version": "1.0.0",
        # Architecture content has not been ingested yet.
        "areas": ["general", "architecture"],
        "description": "General urban building regulation and derived building metrics.",
        "author": "regengine",
        "lastUpdated": "2024-11-20",
        "regulations": [
            {
                "id": "rgeu",
                "shortRef": "DL 38382/1951",
                "title": "General urban building regulation (RGEU)",
                "status": "amended",
                "area": "general",
                "effectiveDate": "1951-08-07",
                "ingestionStatus": "verified",
                "rulesCount": 2,
            },
        ],
        "rules": [
            {
                "id": "GEN-RGEU-001",
                "regulationId": "rgeu",
                "article": "Art. 65",
                "description": "Average floor height of {computed.avgFloorHeight} m is below the minimum ceiling height",
                "severity": "warning",
                "conditions": [
                    {"field": "computed.avgFloorHeight", "operator": "<", "value": 2.7},
                ],
                "remediation": "Increase the floor-to-floor height.",
                "currentValueTemplate": "{computed.avgFloorHeight} m",
                "requiredValue": "≥ 2.70 m",
            },
            {
                "id": "GEN-RGEU-002",
                "regulationId": "rgeu",
                "article": "Art. 50",
                "description": "Building with {numberOfFloors} floors has no elevator",
                "severity": "critical",
                "conditions": [
                    {"field": "numberOfFloors", "operator": ">", "value": 4},
                    {"field": "accessibility.hasElevator", "operator": "==", "value": False},
                ],
                "exclusions": [
                    {"field": "isRehabilitation", "operator": "==", "value": True},
                ],
                "remediation": "Provide at least one elevator serving all floors.",
            },
        ],
        "computedFields": [
            {
                "id": "avgFloorHeight",
                "description": "Building height divided by number of floors",
                "computation": {
                    "type": "arithmetic",
                    "operands": ["buildingHeight", "numberOfFloors"],
                    "operation": "divide",
                },
            },
            {
                "id": "heightClass",
                "description": "Height band used by fire and accessibility rules",
                "computation": {
                    "type": "tier",
                    "field": "buildingHeight",
                    "tiers": [
                        {"max": 9, "result": "low"},
                        {"min": 9, "max": 28, "result": "medium"},
                        {"min": 28, "result": "high"},
                    ],
                },
            },
            {
                "id": "projectScope",
                "description": "Rehabilitation or new construction",
                "computation": {
                    "type": "conditional",
                    "field": "isRehabilitation",
                    "ifTrue": "rehabilitation",
                    "ifFalse": "new_construction",
                },
            },
        ],
    }
