"""
Reddit Behavior (Orchestrator)
==============================
The plugin the host crawl runtime loads for each page visit.

Plugin contract:
    - ``RedditBehavior.id``            — identity token
    - ``RedditBehavior.is_match(url)`` — host-name predicate
    - ``RedditBehavior.init()``        — initial ``{"state", "opts"}`` mapping
    - ``behavior.run(host, sink)``     — async generator of progress strings

Visit flow:
    1. Wait for the readiness marker (abort the visit on timeout)
    2. Dismiss blocking overlays
    3. Classify the URL → ``PageMode``
    4. Dispatch: THREAD → comment expansion, WIKI → one full scroll,
       LISTING / UNKNOWN → scroll discovery

Nothing raised inside a visit reaches the host: failures are logged and
the visit ends early.  Cancellation is left to propagate.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Optional
from urllib.parse import urlparse

from .comment_expansion import CommentExpansionEngine
from .exceptions import ReadinessTimeout
from .host import PageHost
from .modal_dismissal import dismiss
from .page_state import PageMode, classify, listing_namespace
from .run_config import BehaviorConfig
from .scroll_discovery import ScrollDiscoveryEngine
from .state import VisitState

logger = logging.getLogger(__name__)


class RedditBehavior:
    """One instance per visit; all state lives on ``self.state``."""

    id = "reddit"
    matching_hosts = ("reddit.com",)

    def __init__(self, config: Optional[BehaviorConfig] = None):
        self.config = config or BehaviorConfig()
        self.state = VisitState()

    # ------------------------------------------------------------------
    # Plugin contract
    # ------------------------------------------------------------------

    @classmethod
    def is_match(cls, url: str) -> bool:
        """True for ``reddit.com`` and any of its subdomains."""
        try:
            host = (urlparse(url).hostname or "").lower()
        except ValueError:
            return False
        return any(host == h or host.endswith("." + h) for h in cls.matching_hosts)

    @classmethod
    def init(cls) -> dict:
        return {"state": VisitState().as_dict(), "opts": {}}

    async def run(self, host: PageHost, sink) -> AsyncIterator[str]:
        """Run one visit against *host*, forwarding discovered links to *sink*."""
        url = host.url
        self.state = state = VisitState(url=url)
        cfg = self.config
        logger.info(f"[BEHAVIOR] Starting on {url}")

        try:
            await self._wait_until_ready(host)
            await host.wait(cfg.initial_settle_ms)

            state.modals_dismissed = await dismiss(
                host,
                selectors=cfg.modal_selectors,
                settle_ms=cfg.modal_settle_ms,
                click_timeout_ms=cfg.modal_click_timeout_ms,
            )
            if state.modals_dismissed:
                yield f"Dismissed {state.modals_dismissed} overlay(s)."

            state.mode = classify(url, thread_marker=cfg.thread_marker)
            state.namespace = listing_namespace(url, namespace_prefix=cfg.namespace_prefix)
            state.store.seed(url)
            logger.info(f"[BEHAVIOR] Mode: {state.mode.value} (namespace: {state.namespace or '-'})")

            if state.mode is PageMode.THREAD:
                async for msg in CommentExpansionEngine(cfg, state).expand(host, sink):
                    yield msg
                await ScrollDiscoveryEngine(cfg, state).full_scroll(host)
            elif state.mode is PageMode.WIKI:
                yield "Wiki page: performing a full scroll."
                await ScrollDiscoveryEngine(cfg, state).full_scroll(host)
                state.stop_reason = "wiki"
            else:
                async for msg in ScrollDiscoveryEngine(cfg, state).discover(host, sink):
                    yield msg

        except ReadinessTimeout as exc:
            state.stop_reason = "not_ready"
            logger.warning(f"[BEHAVIOR] Page never became ready on {url}: {exc}")
            yield f"Page not ready ({exc}); ending visit."
            return
        except Exception as exc:
            state.stop_reason = "error"
            logger.error(f"[BEHAVIOR] Visit failed on {url}: {exc}", exc_info=True)
            yield f"Behavior stopped early after an error: {exc}"
            return

        logger.info(f"[BEHAVIOR] Finished on {url}: {state.as_dict()}")
        yield "Behavior finished."

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _wait_until_ready(self, host: PageHost) -> None:
        cfg = self.config
        if not await host.wait_for(cfg.ready_selector, cfg.ready_timeout_ms):
            raise ReadinessTimeout(cfg.ready_selector, cfg.ready_timeout_ms)
