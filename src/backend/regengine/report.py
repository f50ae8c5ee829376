from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from .coverage import format_coverage_report_text, generate_coverage_report
from .registry import registry
from .validate import ValidationResult, validate_all_loaded_plugins

# Ensure built-in plugins are imported/registered before reading the registry.
from . import builtin as _builtin_plugins  # noqa: F401


def _dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _dump_yaml(data: Any) -> str:
    try:
        import yaml  # type: ignore
    except ModuleNotFoundError as exc:
        raise SystemExit("PyYAML is required for YAML output. Install it with `pip install pyyaml`.") from exc

    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def _format_validation_text(results: list[ValidationResult]) -> str:
    lines: list[str] = []
    for res in results:
        state = "valid" if res.valid else "INVALID"
        lines.append(
            f"{res.plugin_id}: {state} "
            f"({res.stats.regulation_count} regulations, {res.stats.rule_count} rules, "
            f"{len(res.errors)} errors, {len(res.warnings)} warnings)"
        )
        for issue in res.errors:
            lines.append(f"  error   {issue.path}: {issue.message}")
        for issue in res.warnings:
            lines.append(f"  warning {issue.path}: {issue.message}")
    return "\n".join(lines)


def _render(data: Any, fmt: str) -> str:
    if fmt == "json":
        return _dump_json(data)
    return _dump_yaml(data)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Report coverage or validation results for the loaded plugins.")
    parser.add_argument(
        "--format",
        choices=("text", "json", "yaml"),
        default="text",
        help="Output format (default: text).",
    )
    parser.add_argument("--validate", action="store_true", help="Validate plugins instead of reporting coverage.")
    parser.add_argument("--plugin", metavar="ID", help="Restrict the output to one plugin.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.plugin:
        plugin = registry.get_plugin(args.plugin)
        if plugin is None:
            parser.error(f"unknown plugin: {args.plugin}")
        plugins = [plugin]
    else:
        plugins = registry.get_available_plugins()

    if args.validate:
        results = validate_all_loaded_plugins(plugins)
        if args.format == "text":
            print(_format_validation_text(results))
        else:
            print(_render([r.to_dict() for r in results], args.format))
        return 0 if all(r.valid for r in results) else 1

    report = generate_coverage_report(plugins)
    if args.format == "text":
        print(format_coverage_report_text(report))
    else:
        print(_render(report.to_dict(), args.format))
    return 0


if __name__ == "__main__":
    sys.exit(main())
