"""
Modal Dismissal
===============
Best-effort removal of blocking overlays (close buttons, "Continue"
confirmations, open-in-app interstitials) before any engine runs.

Every candidate gets exactly one click attempt.  A failed click is ignored
and never retried; the pass moves on to the next candidate after a short
settle delay either way.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .host import PageHost
from .run_config import DEFAULT_MODAL_SELECTORS

logger = logging.getLogger(__name__)


async def dismiss(
    host: PageHost,
    *,
    selectors: Optional[List[str]] = None,
    settle_ms: int = 500,
    click_timeout_ms: int = 1000,
) -> int:
    """
    Walk the dismissal selectors in order and click every visible match once.

    Returns:
        Number of elements successfully clicked (diagnostic only).
    """
    if selectors is None:
        selectors = DEFAULT_MODAL_SELECTORS

    dismissed = 0
    for selector in selectors:
        for element in await host.query_all(selector):
            if not await host.is_visible(element):
                continue
            if await host.click(element, click_timeout_ms):
                dismissed += 1
                logger.info(f"[MODAL] Dismissed overlay via {selector!r}")
            else:
                logger.debug(f"[MODAL] Could not click {selector!r}, skipping")
            await host.wait(settle_ms)

    if dismissed == 0:
        logger.debug("[MODAL] No overlays found")
    return dismissed
