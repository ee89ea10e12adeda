"""Command line entry point for checking the news backend."""

import argparse
import asyncio
import logging
import sys

from newsdesk.config import settings
from newsdesk.connectivity import ConnectivityProber, ConnectivityStatus
from newsdesk.data_state import DataStateMachine, FetchOptions
from newsdesk.news_client import NewsAPIClient
from newsdesk.utils import format_date_relative, slugify, truncate_text
from newsdesk.widgets import WIDGET_FACTORIES, WidgetArgumentError, build_widget

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def run_status(base_url: str | None) -> int:
    """Probe once and print the status. Exit code 0 only when healthy."""
    health_url = f"{base_url.rstrip('/')}{settings.health_path}" if base_url else None
    prober = ConnectivityProber(health_url=health_url)
    try:
        status = await prober.check_now()
    finally:
        await prober.aclose()
    print(status.model_dump_json(indent=2))
    return 0 if status.is_connected else 1


async def run_fetch(base_url: str | None, path: str, params: dict[str, str]) -> int:
    """Run one state-machine cycle against an API path and print the state."""
    health_url = f"{base_url.rstrip('/')}{settings.health_path}" if base_url else None
    prober = ConnectivityProber(health_url=health_url)
    try:
        await prober.check_now()
        async with NewsAPIClient(base_url=base_url) as client:
            machine: DataStateMachine = DataStateMachine(prober)
            async with machine.bound(
                client.endpoint(path, params), FetchOptions(auto_fetch=False)
            ):
                state = await machine.refetch()
    finally:
        await prober.aclose()
    print(state.model_dump_json(indent=2))
    return 1 if state.is_error else 0


async def run_watch(base_url: str | None, interval: float | None) -> int:
    """Run the prober until interrupted, logging every probe result."""
    health_url = f"{base_url.rstrip('/')}{settings.health_path}" if base_url else None

    def log_status(status: ConnectivityStatus) -> None:
        logger.info(f"[{status.phase.value}] {status.message}")

    async with ConnectivityProber(health_url=health_url, interval=interval) as prober:
        prober.subscribe(log_status)
        await asyncio.Event().wait()
    return 0


SUMMARY_FIELDS = ("title", "name", "content")


def summarize_items(payload, now=None) -> list[str]:
    """Render one line per item of a list payload, for terminal output.

    Items are taken from the payload itself or from its "data" entry. Each
    line is the item's title, name or content, truncated, followed by how
    long ago it was created when the item carries createdAt.
    """
    items = payload.get("data") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        return []

    lines = []
    for item in items:
        if not isinstance(item, dict):
            continue
        label = next((str(item[field]) for field in SUMMARY_FIELDS if item.get(field)), "")
        line = truncate_text(label, max_length=60)
        if item.get("createdAt"):
            line = f"{line} ({format_date_relative(item['createdAt'], now)})"
        lines.append(line)
    return lines


async def run_widget(base_url: str | None, name: str, arguments: dict) -> int:
    """Load one site widget's data source and print a summary of its state."""
    health_url = f"{base_url.rstrip('/')}{settings.health_path}" if base_url else None
    prober = ConnectivityProber(health_url=health_url)
    try:
        await prober.check_now()
        async with NewsAPIClient(base_url=base_url) as client:
            source = build_widget(client, name, **arguments)
            machine: DataStateMachine = DataStateMachine(prober)
            source.bind(machine)
            try:
                state = await machine.wait_until_settled()
            finally:
                machine.unbind()
    finally:
        await prober.aclose()

    print(f"[{source.name}] {state.phase.value}")
    if state.is_error:
        print(state.error_message)
    elif state.is_empty:
        print(state.empty_message)
    else:
        for line in summarize_items(state.data):
            print(f"  - {line}")
    return 1 if state.is_error else 0


def parse_params(values: list[str]) -> dict[str, str]:
    """Parse KEY=VALUE pairs into a dict."""
    params = {}
    for value in values:
        key, sep, item = value.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {value!r}")
        params[key] = item
    return params


def main():
    """Main function for the newsdesk CLI."""
    parser = argparse.ArgumentParser(description="Inspect the news backend from the front-end's view")
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="API base URL (uses NEWSDESK_API_BASE_URL if not specified)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Probe the health endpoint once")

    fetch_parser = subparsers.add_parser("fetch", help="Load an API path through the state machine")
    fetch_parser.add_argument("path", help="API path, e.g. /api/articles/popular")
    fetch_parser.add_argument(
        "--param",
        action="append",
        default=[],
        help="Query parameter as KEY=VALUE (repeatable)",
    )

    widget_parser = subparsers.add_parser("widget", help="Load a site widget's data source")
    widget_parser.add_argument("name", choices=sorted(WIDGET_FACTORIES), help="Widget name")
    widget_parser.add_argument(
        "--slug",
        default=None,
        help="Category slug or name, e.g. \"Tech News\" (category-section)",
    )
    widget_parser.add_argument("--article-id", type=int, default=None, help="Article id")
    widget_parser.add_argument("--category-id", type=int, default=None, help="Category id")
    widget_parser.add_argument("--limit", type=int, default=None, help="Maximum number of items")

    watch_parser = subparsers.add_parser("watch", help="Probe periodically and log results")
    watch_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between probes (uses NEWSDESK_PROBE_INTERVAL_SECONDS if not specified)",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        if args.command == "status":
            code = asyncio.run(run_status(args.base_url))
        elif args.command == "fetch":
            code = asyncio.run(run_fetch(args.base_url, args.path, parse_params(args.param)))
        elif args.command == "widget":
            arguments = {
                "slug": slugify(args.slug) if args.slug else None,
                "article_id": args.article_id,
                "category_id": args.category_id,
                "limit": args.limit,
            }
            code = asyncio.run(run_widget(args.base_url, args.name, arguments))
        else:
            code = asyncio.run(run_watch(args.base_url, args.interval))
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except WidgetArgumentError as e:
        parser.error(str(e))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        code = 0

    sys.exit(code)


if __name__ == "__main__":
    main()
