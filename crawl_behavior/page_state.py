"""
Page State Classifier
=====================
Pick the behavior mode for a visit from the URL alone.

The live page is never consulted: the mode is decided before any engine
runs and stays fixed for the rest of the visit.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


class PageMode(Enum):
    LISTING = "listing"
    THREAD = "thread"
    WIKI = "wiki"
    UNKNOWN = "unknown"

    @property
    def discovers_links(self) -> bool:
        """LISTING and UNKNOWN both run link discovery."""
        return self in (PageMode.LISTING, PageMode.UNKNOWN)


_WIKI_RE = re.compile(r"/wiki(?:/|$)")


def thread_pattern(thread_marker: str) -> re.Pattern:
    marker = re.escape(thread_marker.strip("/"))
    return re.compile(rf"/{marker}/[^/]+")


def _parse_http(url: str):
    """urlparse() that returns None for anything that is not an absolute http(s) URL."""
    if not url or not isinstance(url, str):
        return None
    try:
        p = urlparse(url.strip())
    except ValueError:
        return None
    if p.scheme.lower() not in ("http", "https") or not p.netloc:
        return None
    return p


def classify(url: str, *, thread_marker: str = "comments") -> PageMode:
    """
    Classify *url* into a ``PageMode``.

    Rules (first match wins):
      1. ``/.../<thread_marker>/<id>...`` → THREAD
      2. ``/.../wiki`` or ``/.../wiki/...`` → WIKI
      3. anything else on an http(s) URL → LISTING

    Unparsable or non-http(s) input → UNKNOWN.
    """
    p = _parse_http(url)
    if p is None:
        return PageMode.UNKNOWN

    path = p.path or "/"
    if thread_pattern(thread_marker).search(path):
        return PageMode.THREAD
    if _WIKI_RE.search(path):
        return PageMode.WIKI
    return PageMode.LISTING


def listing_namespace(url: str, *, namespace_prefix: str = "r") -> Optional[str]:
    """Return the namespace of a listing URL (``foo`` for ``/r/foo/hot``), else None."""
    p = _parse_http(url)
    if p is None:
        return None
    parts = [s for s in p.path.split("/") if s]
    if len(parts) >= 2 and parts[0].lower() == namespace_prefix.lower():
        return parts[1]
    return None
