"""
Shared fixtures: a scripted in-memory ``PageHost``.

``FakeHost`` never sleeps — every ``wait()`` is recorded so tests can assert
on settle delays without slowing the suite down.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from crawl_behavior.host import CollectingSink, PageHost
from crawl_behavior.run_config import BehaviorConfig
from crawl_behavior.scroll_discovery import (
    EXTRACT_LINKS_JS,
    SCROLL_HEIGHT_JS,
    SCROLL_TO_BOTTOM_JS,
)


class FakeElement:
    """Stand-in for an element handle."""

    def __init__(self, name: str = "el", *, visible: bool = True,
                 clickable: bool = True, href: Optional[str] = None):
        self.name = name
        self.visible = visible
        self.clickable = clickable
        self.href = href
        self.clicks = 0

    def __repr__(self) -> str:
        return f"FakeElement({self.name!r})"


Batches = Union[List[List[str]], Callable[[int], List[str]]]
Controls = Union[List[FakeElement], Callable[[int], List[FakeElement]]]


class FakeHost(PageHost):
    """
    Scripted page.

    Args:
        url:          Current page URL.
        ready:        Result of ``wait_for`` (an Exception instance is raised).
        link_batches: Links present at the Nth extraction (1-based).  A list is
                      indexed by extraction number and repeats its last entry;
                      a callable receives the extraction number.
        heights:      Fixed page height, or None for a page that keeps growing.
        controls:     selector → elements (list, or callable of query number).
        fail_on:      Scripts whose evaluation raises RuntimeError.
    """

    def __init__(self, url: str = "https://www.reddit.com/r/python/", *,
                 ready: Any = True,
                 link_batches: Optional[Batches] = None,
                 heights: Optional[int] = None,
                 controls: Optional[Dict[str, Controls]] = None,
                 fail_on: tuple = ()):
        self._url = url
        self.ready = ready
        self.link_batches = link_batches or [[]]
        self.heights = heights
        self.controls = controls or {}
        self.fail_on = fail_on

        self.waits: List[int] = []
        self.clicked: List[FakeElement] = []
        self.extractions = 0
        self.scrolls = 0
        self.queries: Dict[str, int] = {}
        self.wait_for_calls: List[tuple] = []

    @property
    def url(self) -> str:
        return self._url

    async def wait_for(self, selector: str, timeout_ms: int) -> bool:
        self.wait_for_calls.append((selector, timeout_ms))
        if isinstance(self.ready, Exception):
            raise self.ready
        return self.ready

    async def wait(self, ms: int) -> None:
        self.waits.append(ms)

    async def query_all(self, selector: str) -> List[Any]:
        n = self.queries.get(selector, 0) + 1
        self.queries[selector] = n
        found = self.controls.get(selector, [])
        if callable(found):
            found = found(n)
        return list(found)

    async def is_visible(self, handle: Any) -> bool:
        return handle.visible

    async def click(self, handle: Any, timeout_ms: int) -> bool:
        handle.clicks += 1
        self.clicked.append(handle)
        return handle.clickable

    async def evaluate(self, script: str, *args: Any) -> Any:
        if script in self.fail_on:
            raise RuntimeError("evaluation failed")
        if script == EXTRACT_LINKS_JS:
            self.extractions += 1
            return self._links_for(self.extractions)
        if script == SCROLL_TO_BOTTOM_JS:
            self.scrolls += 1
            return None
        if script == SCROLL_HEIGHT_JS:
            if self.heights is not None:
                return self.heights
            return 1000 * (self.scrolls + 1)
        if args and isinstance(args[0], FakeElement):
            return args[0].href
        return None

    def _links_for(self, n: int) -> List[str]:
        if callable(self.link_batches):
            return list(self.link_batches(n))
        idx = min(n, len(self.link_batches)) - 1
        return list(self.link_batches[idx])


async def collect(agen) -> List[str]:
    """Drain an async generator of progress messages."""
    return [msg async for msg in agen]


@pytest.fixture
def sink():
    return CollectingSink()


@pytest.fixture
def fast_config():
    """Defaults with small, distinct delays so waits are easy to tell apart."""
    return BehaviorConfig(
        initial_settle_ms=1,
        modal_settle_ms=2,
        scroll_settle_ms=3,
        click_settle_ms=4,
        content_settle_ms=5,
        retry_delay_ms=6,
    )
