#!/usr/bin/env python3
"""Make-ready briefing CLI.

Commands:
    report - Fetch service requests and print the briefing for a month range
    months - Show the month timeline with task counts
    cache  - Show or clear the cached snapshot
    serve  - Run the enrichment service
"""

import argparse
import asyncio
import logging
import sys

from makeready.core.config import BriefingConfig, get_proxy_credentials, load_briefing_config
from makeready.fetch.cache import FileCacheStore, clear_snapshot, load_snapshot
from makeready.fetch.orchestrator import FetchOrchestrator, FetchResult, FetchState
from makeready.fetch.strategies import DirectStrategy, FetchStrategy, ProxyStrategy
from makeready.report.model import ReportModel
from makeready.report.models import DateRange
from makeready.report.render import render_text

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Silence noisy libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_strategies(config: BriefingConfig) -> list[FetchStrategy]:
    """Proxy first when one is configured, then direct."""
    strategies: list[FetchStrategy] = []
    proxy = get_proxy_credentials()
    if proxy:
        url, key = proxy
        strategies.append(
            ProxyStrategy(url, key, search_body=config.search_body, timeout=config.fetch_timeout)
        )
    strategies.append(DirectStrategy(config))
    return strategies


def fetch_records(config: BriefingConfig) -> FetchResult:
    """Run one fetch cycle with the configured strategies and cache."""
    orchestrator = FetchOrchestrator(
        build_strategies(config),
        cache=FileCacheStore(config.cache_path),
        timeout=config.fetch_timeout,
        max_attempts=config.max_attempts,
        backoff_initial=config.backoff_initial,
    )
    return asyncio.run(orchestrator.fetch())


def _load_model(args, config: BriefingConfig) -> ReportModel | None:
    if args.offline:
        snapshot = load_snapshot(FileCacheStore(config.cache_path))
        if snapshot is None:
            print("No cached data available.", file=sys.stderr)
            return None
        print(f"Using cached data from {snapshot.display_time()}", file=sys.stderr)
        return ReportModel.from_records(snapshot.data)

    result = fetch_records(config)
    if result.state == FetchState.FAILED:
        print(f"Error: {result.message}", file=sys.stderr)
        return None
    if result.state == FetchState.DEGRADED:
        print(f"Warning: {result.message}", file=sys.stderr)
    return ReportModel.from_records(result.data)


def select_window(model: ReportModel, args) -> DateRange | None:
    """Window from --all/--from/--to, or None if a month is not in the timeline."""
    if args.all:
        return model.reset_window()
    if not args.start and not args.end:
        return model.window

    start = model.window.start
    end = model.last_index
    if args.start:
        index = model.month_index(args.start)
        if index is None:
            print(f"Month not in timeline: {args.start}", file=sys.stderr)
            return None
        start = index
    if args.end:
        index = model.month_index(args.end)
        if index is None:
            print(f"Month not in timeline: {args.end}", file=sys.stderr)
            return None
        end = index
    return model.set_window(DateRange(start, end))


def cmd_report(args) -> int:
    """Print the briefing."""
    config = load_briefing_config(args.config)
    model = _load_model(args, config)
    if model is None:
        return 1

    window = select_window(model, args)
    if window is None:
        return 1

    print(render_text(model, window, base_url=config.service_request_url))
    return 0


def cmd_months(args) -> int:
    """Print the month timeline with task counts."""
    config = load_briefing_config(args.config)
    model = _load_model(args, config)
    if model is None:
        return 1

    counts = model.month_task_counts()
    if not counts:
        print("No months available.")
    else:
        selected = {month.label for month in model.selected_months()}
        print(f"\n{'Month':<10} {'Tasks':>6}  Load")
        print("-" * 40)
        for label, count, intensity in counts:
            marker = "*" if label in selected else " "
            bar = "#" * round(intensity * 20)
            print(f"{label:<10} {count:>6}  {bar} {marker}")

    if model.no_date_tasks:
        print(f"\nNo Date: {len(model.no_date_tasks)} tasks (always shown)")
    return 0


def cmd_cache(args) -> int:
    """Show or clear the cached snapshot."""
    config = load_briefing_config(args.config)
    store = FileCacheStore(config.cache_path)

    if args.action == "clear":
        clear_snapshot(store)
        print(f"Cleared cache in {store.directory}")
        return 0

    snapshot = load_snapshot(store)
    if snapshot is None:
        print(f"No cached data in {store.directory}")
        return 0
    print(f"Cache directory: {store.directory}")
    print(f"Saved at:        {snapshot.timestamp} ({snapshot.display_time()})")
    print(f"Records:         {len(snapshot.data)}")
    return 0


def cmd_serve(args) -> int:
    """Run the enrichment service."""
    from makeready.server import main as serve

    serve()
    return 0


def _add_window_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to briefing.json (default: config/briefing.json)")
    parser.add_argument(
        "--offline", action="store_true", help="Use the cached snapshot instead of fetching"
    )


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Make-ready briefing CLI - daily service request briefing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # report command
    report_parser = subparsers.add_parser("report", help="Print the briefing")
    _add_window_args(report_parser)
    report_parser.add_argument("--from", dest="start", help='First month, e.g. "Feb 2025"')
    report_parser.add_argument("--to", dest="end", help='Last month, e.g. "Apr 2025"')
    report_parser.add_argument("--all", action="store_true", help="Show every month")
    report_parser.set_defaults(func=cmd_report)

    # months command
    months_parser = subparsers.add_parser("months", help="Show the month timeline")
    _add_window_args(months_parser)
    months_parser.set_defaults(func=cmd_months)

    # cache command
    cache_parser = subparsers.add_parser("cache", help="Show or clear the cached snapshot")
    cache_parser.add_argument("action", choices=["show", "clear"])
    cache_parser.add_argument("--config", help="Path to briefing.json")
    cache_parser.set_defaults(func=cmd_cache)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the enrichment service")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
