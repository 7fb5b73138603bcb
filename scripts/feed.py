#!/usr/bin/env python3
"""
CLI tool for the section news feed.

Usage:
    # Show one section's feed
    python -m scripts.feed fetch world

    # Skip the cache and save the feed as JSON
    python -m scripts.feed fetch tech --no-cache --output tech.json

    # List sections and their providers
    python -m scripts.feed sections

    # Refresh every section once
    python -m scripts.feed refresh

    # Run the refresh scheduler (continuous)
    python -m scripts.feed serve --interval 600
"""

import argparse
import asyncio
import sys

import structlog

from newsfeed.config import get_settings
from newsfeed.core.logging import configure_logging
from newsfeed.services.feed import NewsFeedService
from newsfeed.services.scheduler import RefreshScheduler

logger = structlog.get_logger(__name__)


async def cmd_fetch(args):
    """Fetch and print one section's feed."""
    service = NewsFeedService()
    try:
        feed = await service.get_section_feed(args.section, use_cache=not args.no_cache)
    finally:
        await service.close()

    print("\n" + "=" * 60)
    print(f"SECTION: {feed.section}")
    print("=" * 60)
    flags = [
        name
        for name, on in (
            ("cached", feed.from_cache),
            ("fallback", feed.is_fallback),
            ("mock", feed.is_fallback_mock),
        )
        if on
    ]
    print(f"Articles: {len(feed.articles)} of {feed.total}")
    print(f"Sources: {', '.join(feed.sources)}")
    if flags:
        print(f"Flags: {', '.join(flags)}")

    for article in feed.articles:
        print(f"\n[{article.score:.1f}] {article.display_title}")
        print(f"  {article.source} | {article.time_ago} | {', '.join(article.tags)}")
        if args.verbose:
            print(f"  URL: {article.url}")
            if article.display_description:
                print(f"  {article.display_description[:160]}")

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(feed.model_dump_json(indent=2))
        print(f"\nFeed saved to: {args.output}")

    return 0


async def cmd_sections(args):
    """List sections and the providers serving them."""
    service = NewsFeedService()
    section_router = service.router

    print("\n" + "=" * 50)
    print("SECTIONS")
    print("=" * 50)

    for section in section_router:
        default = " (default)" if section.name == section_router.default_section else ""
        print(f"  {section.name}{default} [{section.tag}]")
        print(f"    Sources: {', '.join(service.aggregator.active_sources(section.name))}")
        for feed in section.feeds:
            print(f"    RSS: {feed.name} ({feed.language})")

    await service.close()
    return 0


async def cmd_refresh(args):
    """Run a single refresh cycle."""
    service = NewsFeedService()
    scheduler = RefreshScheduler(service)
    try:
        await scheduler.run_cycle()
    finally:
        await service.close()

    print("\n" + "=" * 40)
    print("REFRESH RESULTS")
    print("=" * 40)

    failed = False
    for section, result in scheduler.last_results.items():
        print(f"  {section}: {result}")
        if isinstance(result, str):
            failed = True

    return 1 if failed else 0


async def cmd_serve(args):
    """Run the refresh scheduler until interrupted."""
    settings = get_settings()
    if args.interval:
        settings = settings.model_copy(update={"refresh_interval_seconds": args.interval})

    service = NewsFeedService(settings=settings)
    scheduler = RefreshScheduler(service, settings=settings)

    print(f"Starting scheduler (refresh every {scheduler.interval_seconds} seconds)")
    print("Press Ctrl+C to stop")

    scheduler.start()
    try:
        while scheduler.is_running:
            await asyncio.sleep(60)
            status = scheduler.get_status()
            if status["last_finished_at"]:
                logger.debug("Scheduler heartbeat", last_finished_at=status["last_finished_at"])
    finally:
        print("\nShutting down...")
        scheduler.stop()
        await service.close()

    return 0


def main():
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.json_logs)

    parser = argparse.ArgumentParser(
        description="Section News Feed CLI"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Fetch command
    fetch_parser = subparsers.add_parser("fetch", help="Show a section's feed")
    fetch_parser.add_argument(
        "section",
        nargs="?",
        default=None,
        help="Section name (default: the default section)"
    )
    fetch_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Skip the cache and fetch fresh data"
    )
    fetch_parser.add_argument(
        "--output", "-o",
        help="Output file for the feed (JSON)"
    )
    fetch_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show URLs and descriptions"
    )

    # Sections command
    subparsers.add_parser("sections", help="List sections")

    # Refresh command
    subparsers.add_parser("refresh", help="Refresh every section once")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the refresh scheduler")
    serve_parser.add_argument(
        "--interval", "-i",
        type=int,
        default=None,
        help="Refresh interval in seconds (default: from settings)"
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        "fetch": cmd_fetch,
        "sections": cmd_sections,
        "refresh": cmd_refresh,
        "serve": cmd_serve,
    }
    try:
        return asyncio.run(commands[args.command](args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
