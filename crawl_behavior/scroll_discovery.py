"""
Scroll Discovery Engine
=======================
Drives a listing page: extract thread links, admit them through the visit's
``UrlNormalizationStore``, forward new ones to the frontier sink, scroll,
wait, and decide whether to keep going.

Stop signals (any one ends the loop):
  1. ``idle_threshold`` consecutive scrolls that admitted no new link
  2. page height unchanged for ``height_stable_threshold`` unproductive scrolls
  3. ``max_scroll_iterations`` hard cap
  4. ``max_scroll_duration_s`` wall-clock budget

One last extraction pass runs after the loop to pick up links that
rendered during the final settle delay.

This module does NOT own the page; it only calls ``PageHost`` primitives.
"""

from __future__ import annotations

import logging
import time
from typing import AsyncIterator, Optional
from urllib.parse import urlparse

from .host import PageHost
from .page_state import thread_pattern
from .run_config import BehaviorConfig
from .state import VisitState

logger = logging.getLogger(__name__)


# JS evaluated in page context.  Raw attribute values are returned so that
# resolution and cleanup happen in the store, not in the page.
EXTRACT_LINKS_JS = """(selectors) => {
    const out = [];
    for (const sel of selectors) {
        let nodes;
        try { nodes = document.querySelectorAll(sel); } catch (e) { continue; }
        for (const el of nodes) {
            const raw = el.getAttribute('permalink') || el.getAttribute('href') || '';
            if (raw) out.push(raw);
        }
    }
    return out;
}"""

SCROLL_TO_BOTTOM_JS = """() => {
    const el = document.scrollingElement || document.body;
    window.scrollTo(0, el.scrollHeight);
}"""

SCROLL_HEIGHT_JS = """() => (document.scrollingElement || document.body).scrollHeight"""


class ScrollDiscoveryEngine:
    """Scroll/extract loop for one listing page."""

    def __init__(self, config: BehaviorConfig, state: VisitState):
        self.config = config
        self.state = state
        self._thread_re = thread_pattern(config.thread_marker)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def discover(self, host: PageHost, sink) -> AsyncIterator[str]:
        """Run the discovery loop, yielding one progress message per step."""
        cfg = self.config
        state = self.state
        state.idle_counter = 0

        where = f"/{cfg.namespace_prefix}/{state.namespace}" if state.namespace else "this listing"
        yield f"Listing page: scrolling {where} for new thread links."

        started = time.monotonic()
        last_height: Optional[float] = None
        stable_heights = 0
        iteration = 0
        stop_reason = ""

        while not stop_reason:
            iteration += 1
            state.scroll_iterations = iteration

            # --- extract + emit ---
            added = await self._extract_and_emit(host, sink)
            if added:
                state.idle_counter = 0
                yield (
                    f"Discovered {added} new link(s) on scroll {iteration} "
                    f"(total {state.discovered_links})."
                )
            else:
                state.idle_counter += 1
                yield (
                    f"No new links on scroll {iteration} "
                    f"(idle {state.idle_counter}/{cfg.idle_threshold})."
                )

            # --- scroll + settle ---
            # only unproductive scrolls count toward the height signal
            height = await self._scroll(host)
            if _is_number(height):
                if not added and last_height is not None and height == last_height:
                    stable_heights += 1
                else:
                    stable_heights = 0
                last_height = height

            # --- terminal conditions ---
            if state.idle_counter >= cfg.idle_threshold:
                stop_reason = "idle"
            elif cfg.height_stable_threshold and stable_heights >= cfg.height_stable_threshold:
                stop_reason = "height_stable"
            elif iteration >= cfg.max_scroll_iterations:
                stop_reason = "iteration_cap"
            elif (time.monotonic() - started) >= cfg.max_scroll_duration_s:
                stop_reason = "time_budget"

        state.stop_reason = stop_reason
        logger.info(
            f"[DISCOVER] Loop ended after {iteration} scroll(s): {stop_reason} "
            f"({state.discovered_links} links)"
        )

        final = await self._extract_and_emit(host, sink)
        if final:
            yield f"Final pass discovered {final} more link(s)."

        yield (
            f"Finished discovery: {state.discovered_links} link(s) in "
            f"{iteration} scroll(s), stopped on {stop_reason.replace('_', ' ')}."
        )

    async def full_scroll(self, host: PageHost) -> None:
        """Single best-effort scroll to the bottom, no discovery."""
        await self._scroll(host)

    def is_candidate(self, canonical_url: str, page_url: str) -> bool:
        """True if *canonical_url* is a thread link this visit should emit."""
        p = urlparse(canonical_url)
        if not self._thread_re.search(p.path):
            return False

        page_host = _site(urlparse(page_url).hostname)
        if page_host and _site(p.hostname) != page_host:
            return False

        prefixes = self._namespace_prefixes()
        if prefixes and not p.path.lower().startswith(prefixes):
            return False
        return True

    def _namespace_prefixes(self) -> tuple:
        """
        Path prefixes a thread link must start with, or ``()`` for no filter.

        ``/r/a+b`` admits either namespace.  Aggregator listings (``/r/all``,
        ``/r/popular``) span the whole site and are never filtered.
        """
        ns = self.state.namespace
        if not (self.config.same_namespace_only and ns):
            return ()
        names = [n.lower() for n in ns.split("+") if n]
        aggregates = {a.lower() for a in self.config.aggregate_namespaces}
        if not names or any(n in aggregates for n in names):
            return ()
        prefix = self.config.namespace_prefix.lower()
        return tuple(f"/{prefix}/{n}/" for n in names)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _extract_and_emit(self, host: PageHost, sink) -> int:
        """Admit every new candidate link on the page and forward it. Returns count."""
        try:
            raw_links = await host.evaluate(EXTRACT_LINKS_JS, list(self.config.link_selectors))
        except Exception as exc:
            logger.warning(f"[DISCOVER] Link extraction failed: {exc}")
            return 0
        if not isinstance(raw_links, list):
            return 0

        store = self.state.store
        base = host.url
        added = 0
        for raw in raw_links:
            if not isinstance(raw, str):
                continue
            canon = store.canonical(raw, base)
            if canon is None or not self.is_candidate(canon, base):
                continue
            if store.admit(canon):
                sink.add_url(canon)
                added += 1
                self.state.discovered_links += 1
                logger.debug(f"[DISCOVER] + {canon}")
        return added

    async def _scroll(self, host: PageHost):
        """Scroll to the bottom, wait for lazy content, return the new page height."""
        try:
            await host.evaluate(SCROLL_TO_BOTTOM_JS)
        except Exception as exc:
            logger.warning(f"[DISCOVER] Scroll failed: {exc}")
        await host.wait(self.config.scroll_settle_ms)
        try:
            return await host.evaluate(SCROLL_HEIGHT_JS)
        except Exception:
            return None


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _site(hostname: Optional[str]) -> str:
    if not hostname:
        return ""
    return hostname.lower().removeprefix("www.")
