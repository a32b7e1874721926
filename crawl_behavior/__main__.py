#!/usr/bin/env python3
"""
Behavior CLI
============
Run one behavior visit against a live URL with Playwright and print the
progress stream.  Stands in for the host crawl runtime during development:
it launches the browser, navigates, hands the page to ``RedditBehavior``
and collects whatever the behavior sends to the frontier.

All configuration flows through ``BehaviorConfig`` — CLI flags first,
then ``BEHAVIOR_*`` environment variables (``.env`` is loaded on start).

Run with: python -m crawl_behavior https://www.reddit.com/r/python/
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .behavior import RedditBehavior
from .exceptions import ConfigError
from .host import CollectingSink, PlaywrightHost
from .run_config import BehaviorConfig

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)s | %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)

_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)


async def _run_visit(url: str, cfg: BehaviorConfig, headless: bool = True,
                     nav_timeout_ms: int = 30000):
    """Launch Chromium, open *url*, run one visit, return (state, links)."""
    sink = CollectingSink()
    behavior = RedditBehavior(cfg)

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        try:
            context = await browser.new_context(
                user_agent=_USER_AGENT,
                viewport={"width": 1920, "height": 1080},
            )
            page = await context.new_page()
            await page.goto(url, timeout=nav_timeout_ms, wait_until="domcontentloaded")

            async for message in behavior.run(PlaywrightHost(page), sink):
                print(f"  > {message}")
        finally:
            await browser.close()

    return behavior.state, sink.urls


def print_summary(state, links, elapsed: float):
    """Print visit summary."""
    print("\n" + "=" * 65)
    print("VISIT COMPLETE")
    print("=" * 65)
    print(f"  Mode:                {state.mode.value}")
    if state.namespace:
        print(f"  Namespace:           {state.namespace}")
    print(f"  Links discovered:    {state.discovered_links}")
    if state.links_enqueued_from_threads:
        print(f"  Thread links queued: {state.links_enqueued_from_threads}")
    print(f"  Comments expanded:   {state.comments_expanded}")
    print(f"  Overlays dismissed:  {state.modals_dismissed}")
    print(f"  Frontier total:      {len(links)}")
    print(f"  Total time:          {elapsed:.1f}s")
    print(f"  Stop reason:         {state.stop_reason or 'completed'}")
    print("=" * 65)


def _export_json(path: str, state, links) -> None:
    payload = {"state": state.as_dict(), "links": list(links)}
    Path(path).write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"\n  Exported: {path}")


def run_cli_with_args(argv=None):
    """Parse argv, build BehaviorConfig, run one visit."""
    parser = argparse.ArgumentParser(
        description='Crawl behavior - run one page visit with Playwright',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m crawl_behavior https://www.reddit.com/r/python/
  python -m crawl_behavior https://www.reddit.com/r/python/comments/abc/title/ --headed
  python -m crawl_behavior reddit.com/r/python --max-scrolls 20 --output-json links.json
        """
    )

    parser.add_argument('url', help='Page URL to visit')
    parser.add_argument('--headed', action='store_true', help='Show the browser window')
    parser.add_argument('--idle-threshold', type=int, help='Scrolls without new links before stopping (default: 3)')
    parser.add_argument('--max-scrolls', type=int, help='Hard cap on scroll iterations (default: 250)')
    parser.add_argument('--max-scroll-seconds', type=float, help='Wall-clock budget for scrolling (default: 300)')
    parser.add_argument('--scroll-settle-ms', type=int, help='Wait after each scroll in ms (default: 3000)')
    parser.add_argument('--max-expansions', type=int, help='Hard cap on comment expansion passes (default: 25)')
    parser.add_argument('--ready-timeout-ms', type=int, help='Readiness wait in ms (default: 20000)')
    parser.add_argument(
        '--all-namespaces', action='store_true',
        help='Accept thread links from any namespace, not only the current listing',
    )
    parser.add_argument('--output-json', type=str, help='Write links + visit counters to this JSON file')

    args = parser.parse_args(argv)

    load_dotenv()

    url = args.url
    if not url.startswith(('http://', 'https://')):
        url = 'https://' + url

    try:
        env_cfg = BehaviorConfig.from_env()
        cli_cfg = BehaviorConfig.from_cli_args(args)
    except ConfigError as exc:
        logger.error(f"Invalid configuration: {exc}")
        return 2

    # CLI flags win over environment, environment over defaults
    explicit = {
        "idle_threshold": args.idle_threshold,
        "max_scroll_iterations": args.max_scrolls,
        "max_scroll_duration_s": args.max_scroll_seconds,
        "scroll_settle_ms": args.scroll_settle_ms,
        "max_expansion_iterations": args.max_expansions,
        "ready_timeout_ms": args.ready_timeout_ms,
    }
    overrides = {k: getattr(cli_cfg, k) for k, v in explicit.items() if v is not None}
    if args.all_namespaces:
        overrides["same_namespace_only"] = False
    try:
        cfg = replace(env_cfg, **overrides).validate()
    except ConfigError as exc:
        logger.error(f"Invalid configuration: {exc}")
        return 2

    cfg.log_summary(url)

    if not RedditBehavior.is_match(url):
        logger.warning(f"{url} is not a page this behavior is built for; running anyway")

    start = time.time()
    try:
        state, links = asyncio.run(_run_visit(url, cfg, headless=not args.headed))
    except PlaywrightError as exc:
        # launch or navigation failed; the behavior itself never raises
        logger.error(f"Visit failed: {exc}", exc_info=True)
        return 1
    elapsed = time.time() - start

    if args.output_json:
        _export_json(args.output_json, state, links)
    print_summary(state, links, elapsed)
    return 0


if __name__ == '__main__':
    sys.exit(run_cli_with_args())
