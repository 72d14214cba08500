"""Checkout Load Harness CLI - Command line interface."""

import argparse
import asyncio
import sys

from pydantic import ValidationError

from common.utils import format_duration
from harness.config import get_settings, load_run_config
from harness.core.driver import SetupError
from harness.core.thresholds import ThresholdError

EXIT_ERROR = 1
EXIT_THRESHOLDS_FAILED = 99


def _config_overrides(args) -> dict:
    overrides = get_settings().overrides()
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.seed is not None:
        overrides["seed"] = args.seed
    if getattr(args, "summary_path", None):
        overrides["summary_path"] = args.summary_path
    if getattr(args, "vus", None) is not None:
        # A flat profile: start at the target and hold it
        overrides["start_vus"] = args.vus
        overrides["stages"] = [{"duration": args.duration, "target": args.vus}]
    return overrides


def _load_config(args):
    config_file = args.config or get_settings().config_file
    try:
        return load_run_config(config_file, _config_overrides(args))
    except FileNotFoundError:
        print(f"Error: config file not found: {config_file}")
    except (ValidationError, ThresholdError) as e:
        print(f"Error: invalid configuration in {config_file}:\n{e}")
    sys.exit(EXIT_ERROR)


def cmd_run(args):
    """Run a load test."""
    from harness.main import configure_logging, run_load_test

    configure_logging(get_settings())
    config = _load_config(args)

    try:
        result = asyncio.run(run_load_test(config, write_summary=not args.no_summary_file))
    except SetupError as e:
        print(f"Error: {e}")
        sys.exit(EXIT_ERROR)

    if not result.thresholds_passed:
        print("Some thresholds have failed")
        sys.exit(EXIT_THRESHOLDS_FAILED)


def cmd_validate(args):
    """Validate a run configuration."""
    config = _load_config(args)

    print(f"Run: {config.name}")
    print(f"Target: {config.base_url}{config.checkout.path}")
    print(f"Pools: {config.pools.user_pool_size} users, {config.pools.item_pool_size} items")

    print(f"\nStages (start at {config.start_vus} VUs):")
    print(f"{'#':<4} {'Duration':<12} {'Target VUs':<10}")
    print("-" * 30)
    for i, stage in enumerate(config.stages, 1):
        print(f"{i:<4} {format_duration(stage.duration):<12} {stage.target:<10}")

    if config.thresholds:
        print("\nThresholds:")
        for metric, expressions in config.thresholds.items():
            print(f"  {metric}: {', '.join(expressions)}")

    print(f"\nTotal duration: {format_duration(config.total_duration)}, max {config.max_vus} VUs")


def cmd_mock_server(args):
    """Run the mock checkout server."""
    from mock_server.config import init_settings as init_server_settings

    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if args.error_ratio is not None:
        overrides["error_ratio"] = args.error_ratio
    if args.no_reserve:
        overrides["reserve_items"] = False
    init_server_settings(**overrides)

    from mock_server.main import main as serve
    serve()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Checkout Load Harness CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # run / validate share config options
    for name, func, help_text in (
        ("run", cmd_run, "Run a load test"),
        ("validate", cmd_validate, "Validate a run configuration"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("-c", "--config", help="Run config YAML (default: LOADTEST_CONFIG_FILE)")
        sub.add_argument("--base-url", help="Override the target base URL")
        sub.add_argument("--seed", type=int, help="Random seed for ID sampling")
        sub.add_argument("--vus", type=int, help="Replace the stages with a flat profile of N VUs")
        sub.add_argument("--duration", default="10s", help="Duration of the flat profile (default: 10s)")
        sub.set_defaults(func=func)
        if name == "run":
            sub.add_argument("--summary-path", help="Where to write the JSON summary")
            sub.add_argument("--no-summary-file", action="store_true", help="Do not write the JSON summary")

    # mock-server
    mock_parser = subparsers.add_parser("mock-server", help="Run the mock checkout server")
    mock_parser.add_argument("--host", help="Bind host")
    mock_parser.add_argument("--port", type=int, help="Bind port")
    mock_parser.add_argument("--error-ratio", type=float, help="Share of requests answered with 500")
    mock_parser.add_argument("--no-reserve", action="store_true", help="Never answer 409 for repeated items")
    mock_parser.set_defaults(func=cmd_mock_server)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    args.func(args)


if __name__ == "__main__":
    main()
