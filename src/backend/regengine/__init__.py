"""Declarative rule engine for building-regulation plugins.

This package intentionally contains only domain logic:
- Inputs are plugin definitions + an arbitrary nested project record.
- No file parsing, report exporting, or network calls live here.
"""

from .conditions import Outcome, UnknownOperatorError, evaluate_condition
from .config import EngineConfig, get_engine_config
from .coverage import CoverageReport, format_coverage_report_text, generate_coverage_report
from .engine import PluginRunner, evaluate_plugin, evaluate_plugins
from .models import (
    ComputedField,
    Condition,
    DeclarativeRule,
    EvaluationResult,
    Finding,
    LookupTable,
    Operator,
    Plugin,
    PluginRunReport,
    Regulation,
    RegulationStatus,
    Severity,
)
from .registry import (
    builtin_ids,
    get_available_plugins,
    get_dynamic_plugins,
    get_plugin,
    get_plugin_for_area,
    register_builtin,
    register_plugin,
    registry,
    reload_builtin_plugin,
    reset_plugin_system,
    unregister_plugin,
)
from .sequence import FindingIdSequence, reset_plugin_finding_counter
from .validate import ValidationResult, validate_all_loaded_plugins, validate_loaded_plugin, validate_plugin_definition

# Import built-in plugins so they self-register with the global registry.
from . import builtin as _builtin_plugins  # noqa: F401
