"""
cost-killer CLI — evaluate budget events from the command line.

Usage:
    python -m cost_killer.cli version
    python -m cost_killer.cli classify 120 100
    python -m cost_killer.cli config --config settings.yaml
    python -m cost_killer.cli evaluate --cost 120 --budget 100 --dry-run
"""

import argparse
import json
import logging
from typing import Any, Dict, List, Optional

from cost_killer import __version__
from cost_killer.adapters import DryRunComputeClient, InMemoryOverrideStore
from cost_killer.classifier import classify
from cost_killer.config import ControllerSettings
from cost_killer.controller import BudgetController


def _load_settings(path: Optional[str]) -> ControllerSettings:
    if path:
        return ControllerSettings.from_yaml(path)
    return ControllerSettings.from_env()


def _build_controller(settings: ControllerSettings, dry_run: bool, override: str) -> BudgetController:
    if dry_run:
        flags = {} if override == "missing" else {settings.override_key: override == "on"}
        store: Any = InMemoryOverrideStore(flags, unavailable=override == "unavailable")
        client: Any = DryRunComputeClient()
    else:
        from cost_killer.adapters.gcp import ComputeEngineClient, FirestoreOverrideStore

        store = FirestoreOverrideStore()
        client = ComputeEngineClient()
    return BudgetController.from_settings(settings, store=store, client=client)


def cli(args: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns exit code."""
    parser = argparse.ArgumentParser(
        prog="cost-killer",
        description="Stop a compute instance when spend crosses its budget",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("version", help="Show version")

    classify_parser = subparsers.add_parser("classify", help="Classify a cost/budget pair")
    classify_parser.add_argument("cost", type=float)
    classify_parser.add_argument("budget", type=float)
    classify_parser.add_argument("--config", help="YAML settings file")

    config_parser = subparsers.add_parser("config", help="Show effective settings")
    config_parser.add_argument("--config", help="YAML settings file")

    evaluate_parser = subparsers.add_parser("evaluate", help="Run one budget event")
    evaluate_parser.add_argument("--cost", type=float, required=True)
    evaluate_parser.add_argument("--budget", type=float, required=True)
    evaluate_parser.add_argument("--config", help="YAML settings file")
    evaluate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Do not contact Google Cloud; record the stop instead",
    )
    evaluate_parser.add_argument(
        "--override",
        choices=["on", "off", "missing", "unavailable"],
        default="off",
        help="Override flag to simulate in dry-run mode",
    )

    parsed = parser.parse_args(args)
    logging.basicConfig(level=logging.DEBUG if parsed.verbose else logging.WARNING)

    if parsed.command == "version":
        print(f"cost-killer {__version__}")
        return 0

    if parsed.command == "classify":
        settings = _load_settings(parsed.config)
        result = classify(
            parsed.cost,
            parsed.budget,
            warn_threshold=settings.warn_threshold,
            critical_threshold=settings.shutdown_threshold,
        )
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    if parsed.command == "config":
        settings = _load_settings(parsed.config)
        print(json.dumps(settings.to_dict(), indent=2))
        return 0

    if parsed.command == "evaluate":
        settings = _load_settings(parsed.config)
        controller = _build_controller(settings, parsed.dry_run, parsed.override)
        result = controller.handle({"costAmount": parsed.cost, "budgetAmount": parsed.budget})
        output: Dict[str, Any] = result.to_dict()
        print(json.dumps(output, indent=2, default=str))
        return 0 if result.ok else 1

    parser.print_help()
    return 1


def main() -> None:
    raise SystemExit(cli())


if __name__ == "__main__":
    main()
