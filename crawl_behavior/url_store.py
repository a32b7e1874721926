"""
URL Normalization Store
=======================
Visit-scoped canonicalisation + dedup for every discovered link.

All membership checks go through ``canonicalize()`` which guarantees the
same canonical form for every spelling of a link:

- Resolution against the page URL (relative → absolute)
- Fragment removal
- Tracking query-parameter removal (``utm_*``, ``ref``, click ids)
- Scheme / host case normalisation + default-port stripping
- Path case and the remaining query string are **preserved**

Malformed input never raises; it is simply rejected.

Public API
----------
- ``canonicalize(raw_url, base_url)``  — one-shot canonical form (or None)
- ``UrlNormalizationStore``           — per-visit dedup set with ``admit()``
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterable, Iterator, Optional
from urllib.parse import unquote_plus, urljoin, urlparse, urlunparse

logger = logging.getLogger(__name__)


DEFAULT_TRACKING_PARAMS: FrozenSet[str] = frozenset({
    "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content",
    "ref", "ref_source", "ref_campaign",
    "fbclid", "gclid",
})

_REJECT_PREFIXES = ("javascript:", "mailto:", "tel:", "data:", "#")


def _strip_default_port(netloc: str, scheme: str) -> str:
    """Remove ``:80`` for http and ``:443`` for https from *netloc*."""
    if ":" not in netloc or netloc.endswith("]"):
        return netloc
    host, _, port = netloc.rpartition(":")
    if scheme == "http" and port == "80":
        return host
    if scheme == "https" and port == "443":
        return host
    return netloc


def _strip_tracking(query: str, tracking: FrozenSet[str]) -> str:
    """Drop tracking keys from *query*, keeping every other pair byte-for-byte."""
    if not query:
        return ""
    kept = []
    for pair in query.split("&"):
        if not pair:
            continue
        key = unquote_plus(pair.split("=", 1)[0]).lower()
        if key in tracking:
            continue
        kept.append(pair)
    return "&".join(kept)


def canonicalize(
    raw_url: str,
    base_url: Optional[str] = None,
    *,
    tracking_params: Iterable[str] = DEFAULT_TRACKING_PARAMS,
) -> Optional[str]:
    """
    Produce the canonical string for *raw_url* (resolved against *base_url*).

    Steps (applied in order):

    1. Reject empty, ``javascript:``, ``mailto:``, ``tel:``, ``data:`` and
       bare-fragment hrefs.
    2. Resolve against *base_url*.
    3. Reject non-HTTP(S) and host-less results.
    4. Lower-case scheme and host, strip default ports.
    5. Remove the fragment.
    6. Remove tracking query parameters.

    Returns ``None`` for anything that cannot be parsed.
    """
    if not raw_url or not isinstance(raw_url, str):
        return None
    raw_url = raw_url.strip()
    if not raw_url or raw_url.lower().startswith(_REJECT_PREFIXES):
        return None

    try:
        resolved = urljoin(base_url, raw_url) if base_url else raw_url
        p = urlparse(resolved)
        # .port validates the netloc and raises on garbage like ":abc"
        p.port
    except ValueError:
        return None

    scheme = p.scheme.lower()
    if scheme not in ("http", "https") or not p.hostname:
        return None

    netloc = _strip_default_port(p.netloc.lower(), scheme)
    tracking = tracking_params if isinstance(tracking_params, frozenset) else frozenset(tracking_params)
    query = _strip_tracking(p.query, tracking)

    return urlunparse((scheme, netloc, p.path or "/", p.params, query, ""))


class UrlNormalizationStore:
    """
    Dedup set for a single visit.

    Created when the visit starts, dropped when it ends — never persisted
    and never shared between visits.

    Parameters
    ----------
    tracking_params : iterable[str]
        Query keys removed before comparison (case-insensitive).
    """

    def __init__(self, tracking_params: Iterable[str] = DEFAULT_TRACKING_PARAMS):
        self.tracking_params: FrozenSet[str] = frozenset(k.lower() for k in tracking_params)
        self._seen: Dict[str, None] = {}
        self._admitted: Dict[str, None] = {}
        self.rejected_invalid = 0
        self.rejected_duplicate = 0

    # ------------------------------------------------------------------
    # Primary API
    # ------------------------------------------------------------------

    def canonical(self, raw_url: str, base_url: Optional[str] = None) -> Optional[str]:
        return canonicalize(raw_url, base_url, tracking_params=self.tracking_params)

    def admit(self, raw_url: str, base_url: Optional[str] = None) -> bool:
        """
        Return True if *raw_url* is valid and has not been seen this visit.

        A True result records the canonical form, so the same link (in any
        spelling) is rejected from then on.
        """
        canon = self.canonical(raw_url, base_url)
        if canon is None:
            self.rejected_invalid += 1
            logger.debug(f"[STORE] Rejected malformed link: {raw_url!r}")
            return False
        if canon in self._seen:
            self.rejected_duplicate += 1
            return False
        self._seen[canon] = None
        self._admitted[canon] = None
        return True

    def seed(self, url: str) -> Optional[str]:
        """Mark *url* as already seen without counting it as discovered."""
        canon = self.canonical(url)
        if canon is not None:
            self._seen[canon] = None
        return canon

    @property
    def last_admitted(self) -> Optional[str]:
        if not self._admitted:
            return None
        return next(reversed(self._admitted))

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    def __contains__(self, url: object) -> bool:
        if not isinstance(url, str):
            return False
        canon = self.canonical(url)
        return canon is not None and canon in self._seen

    def __len__(self) -> int:
        return len(self._admitted)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._admitted))

    def __repr__(self) -> str:
        return (
            f"UrlNormalizationStore(admitted={len(self._admitted)}, "
            f"duplicates={self.rejected_duplicate}, invalid={self.rejected_invalid})"
        )
