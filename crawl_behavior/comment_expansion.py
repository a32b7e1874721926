"""
Comment Expansion Engine
========================
Drives a thread page: find every visible "reveal more" control
("view more comments", "continue this thread", "N more replies", ...),
click them, let the page render, and repeat until nothing is left.

Each pass re-queries the page — handles from an earlier pass are never
reused because the comment tree re-renders after every click.

Stop signals:
  1. ``failure_threshold`` consecutive passes with zero successful clicks
  2. ``max_expansion_iterations`` hard cap (for controls that re-render
     forever without revealing anything)

Safety:
  - Anchors with a real href are never clicked (that would navigate away);
    when a frontier sink is given they are enqueued instead
  - A failed click is counted and skipped, never retried in the same pass
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

from .host import PageHost
from .run_config import BehaviorConfig
from .scroll_discovery import SCROLL_TO_BOTTOM_JS
from .state import VisitState

logger = logging.getLogger(__name__)


# JS snippet: href of a plain navigating <a>, else null
_NAVIGATING_HREF_JS = """el => {
    if (!el || el.tagName !== 'A') return null;
    const href = el.getAttribute('href') || '';
    if (!href || href.startsWith('#') || href.startsWith('javascript:')) return null;
    if (el.hasAttribute('onclick') || el.getAttribute('role') === 'button') return null;
    return href;
}"""


@dataclass
class ExpansionPass:
    """Counters for one query-and-click pass."""
    clicked: int = 0
    failed: int = 0
    enqueued: int = 0
    matched: int = 0


class CommentExpansionEngine:
    """Query/click loop for one thread page."""

    def __init__(self, config: BehaviorConfig, state: VisitState):
        self.config = config
        self.state = state

    async def expand(self, host: PageHost, sink=None) -> AsyncIterator[str]:
        """Run the expansion loop, yielding one progress message per pass."""
        cfg = self.config
        state = self.state
        state.failure_counter = 0

        yield "Thread page: expanding comment threads."
        await self._load_initial_comments(host)

        iteration = 0
        stop_reason = "iteration_cap"
        while iteration < cfg.max_expansion_iterations:
            iteration += 1
            state.expansion_iterations = iteration

            result = await self.expand_pass(host, sink)

            if result.clicked:
                state.failure_counter = 0
                state.comments_expanded += result.clicked
                yield (
                    f"Expanded {result.clicked} comment thread(s) on pass {iteration} "
                    f"(total {state.comments_expanded})."
                )
                await host.wait(cfg.content_settle_ms)
                continue

            state.failure_counter += 1
            detail = f", {result.failed} click(s) failed" if result.failed else ""
            if state.failure_counter >= cfg.failure_threshold:
                stop_reason = "exhausted"
                yield f"No more comment expansion controls found{detail}."
                break
            yield (
                f"Nothing expanded on pass {iteration}{detail} "
                f"(attempt {state.failure_counter}/{cfg.failure_threshold})."
            )
            await host.wait(cfg.retry_delay_ms)

        state.stop_reason = stop_reason
        logger.info(
            f"[EXPAND] Done: {state.comments_expanded} expanded in {iteration} pass(es), "
            f"stopped on {stop_reason}"
        )
        yield (
            f"Finished expansion: {state.comments_expanded} thread(s) expanded "
            f"in {iteration} pass(es)."
        )

    async def expand_pass(self, host: PageHost, sink=None) -> ExpansionPass:
        """Click every visible control currently on the page once."""
        cfg = self.config
        result = ExpansionPass()

        for selector in cfg.expansion_selectors:
            for element in await host.query_all(selector):
                if not await host.is_visible(element):
                    continue
                result.matched += 1

                href = await self._navigating_href(host, element)
                if href is not None:
                    if sink is not None and self._enqueue(href, host.url, sink):
                        result.enqueued += 1
                    continue

                if await host.click(element, cfg.click_timeout_ms):
                    result.clicked += 1
                else:
                    result.failed += 1
                    logger.debug(f"[EXPAND] Click failed on {selector!r}")
                await host.wait(cfg.click_settle_ms)

        return result

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _load_initial_comments(self, host: PageHost) -> None:
        try:
            await host.evaluate(SCROLL_TO_BOTTOM_JS)
        except Exception as exc:
            logger.warning(f"[EXPAND] Initial scroll failed: {exc}")
        await host.wait(self.config.content_settle_ms)

    async def _navigating_href(self, host: PageHost, element: Any) -> Optional[str]:
        try:
            href = await host.evaluate(_NAVIGATING_HREF_JS, element)
        except Exception:
            return None
        return href if isinstance(href, str) and href else None

    def _enqueue(self, href: str, base_url: str, sink) -> bool:
        store = self.state.store
        canon = store.canonical(href, base_url)
        if canon is None or not store.admit(canon):
            return False
        sink.add_url(canon)
        self.state.links_enqueued_from_threads += 1
        logger.debug(f"[EXPAND] Enqueued thread link instead of clicking: {canon}")
        return True
