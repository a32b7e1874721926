"""
Host Page Primitives (Abstract)
===============================
Defines the page-interaction contract the behavior engines run against,
plus the Playwright adapter and the frontier sinks.

The engines never import Playwright directly.  They call the primitives on
``PageHost``:

    - ``url``                       — current page URL
    - ``wait_for(selector, ms)``    — readiness wait, False on timeout
    - ``wait(ms)``                  — fixed settle delay
    - ``query_all(selector)``       — element handles (empty list on failure)
    - ``is_visible(handle)``        — False on any failure
    - ``click(handle, ms)``         — True/False, never raises
    - ``evaluate(script, *args)``   — in-page evaluation

Design principles:
    - Per-element failures are absorbed HERE so engines only see booleans
    - ``evaluate`` is the one primitive allowed to raise; callers decide
    - The host owns the page lifecycle; nothing here closes or navigates
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeout

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Abstract page host
# ---------------------------------------------------------------------------

class PageHost(ABC):
    """Abstract page-primitive provider for one loaded page."""

    @property
    @abstractmethod
    def url(self) -> str:
        ...

    @abstractmethod
    async def wait_for(self, selector: str, timeout_ms: int) -> bool:
        """Wait until *selector* is attached.  Return False on timeout."""
        ...

    @abstractmethod
    async def wait(self, ms: int) -> None:
        ...

    @abstractmethod
    async def query_all(self, selector: str) -> List[Any]:
        """Return all handles matching *selector*, or ``[]`` if the query fails."""
        ...

    @abstractmethod
    async def is_visible(self, handle: Any) -> bool:
        ...

    @abstractmethod
    async def click(self, handle: Any, timeout_ms: int) -> bool:
        """Click *handle*.  Return False instead of raising on any failure."""
        ...

    @abstractmethod
    async def evaluate(self, script: str, *args: Any) -> Any:
        ...


# ---------------------------------------------------------------------------
# Playwright adapter
# ---------------------------------------------------------------------------

class PlaywrightHost(PageHost):
    """``PageHost`` backed by a Playwright async ``Page``."""

    def __init__(self, page: Page):
        self.page = page

    @property
    def url(self) -> str:
        return self.page.url

    async def wait_for(self, selector: str, timeout_ms: int) -> bool:
        try:
            await self.page.wait_for_selector(selector, timeout=timeout_ms, state="attached")
            return True
        except PlaywrightTimeout:
            return False

    async def wait(self, ms: int) -> None:
        if ms > 0:
            await asyncio.sleep(ms / 1000)

    async def query_all(self, selector: str) -> List[Any]:
        try:
            return await self.page.query_selector_all(selector)
        except PlaywrightError as exc:
            logger.debug(f"[HOST] Query failed for {selector!r}: {exc}")
            return []

    async def is_visible(self, handle: Any) -> bool:
        try:
            return await handle.is_visible()
        except PlaywrightError:
            return False

    async def click(self, handle: Any, timeout_ms: int) -> bool:
        try:
            await handle.click(timeout=timeout_ms)
            return True
        except PlaywrightError as exc:
            # covers TimeoutError too; element detached, obscured or not interactable
            logger.debug(f"[HOST] Click failed: {exc}")
            return False

    async def evaluate(self, script: str, *args: Any) -> Any:
        if not args:
            return await self.page.evaluate(script)
        if len(args) == 1:
            return await self.page.evaluate(script, args[0])
        return await self.page.evaluate(script, list(args))


# ---------------------------------------------------------------------------
# Frontier sinks
# ---------------------------------------------------------------------------

class CollectingSink:
    """Frontier sink that keeps every URL it receives, in order."""

    def __init__(self):
        self.urls: List[str] = []

    def add_url(self, url: str) -> None:
        self.urls.append(url)

    def __len__(self) -> int:
        return len(self.urls)


class CallbackSink:
    """Frontier sink that forwards to a plain callable (e.g. a host's ``addUrl``)."""

    def __init__(self, callback: Callable[[str], Any]):
        self.callback = callback

    def add_url(self, url: str) -> None:
        self.callback(url)
