from .thermal import THERMAL_PLUGIN_ID
from .fire_safety import FIRE_SAFETY_PLUGIN_ID
from .general import GENERAL_PLUGIN_ID

__all__ = [
    "THERMAL_PLUGIN_ID",
    "FIRE_SAFETY_PLUGIN_ID",
    "GENERAL_PLUGIN_ID",
]
