"""
Behavior Run Configuration
==========================
Single source of truth for ALL behavior defaults and per-visit limits.

Every engine (modal dismissal, scroll discovery, comment expansion) and the
orchestrator read from this object.  CLI flags and environment variables
populate it; nothing else carries magic numbers.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from typing import List

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Behavior defaults; no other module hardcodes these numbers
# ---------------------------------------------------------------------------
_DEFAULTS = {
    # Readiness
    "ready_selector": "shreddit-app, #main-content",
    "ready_timeout_ms": 20000,
    "initial_settle_ms": 3000,

    # Modal dismissal
    "modal_settle_ms": 500,
    "modal_click_timeout_ms": 1000,

    # Scroll discovery
    "idle_threshold": 3,               # consecutive scrolls with no new links
    "max_scroll_iterations": 250,
    "max_scroll_duration_s": 300.0,    # wall-clock budget for one listing page
    "scroll_settle_ms": 3000,
    "height_stable_threshold": 3,      # 0 disables the page-height signal

    # Comment expansion
    "failure_threshold": 3,            # consecutive passes with nothing clicked
    "max_expansion_iterations": 25,
    "click_settle_ms": 500,
    "content_settle_ms": 3000,
    "retry_delay_ms": 1000,
    "click_timeout_ms": 1500,

    # Page shape
    "thread_marker": "comments",
    "namespace_prefix": "r",
    "same_namespace_only": True,
}


DEFAULT_MODAL_SELECTORS: List[str] = [
    'button[aria-label="Close"]',
    'button:has(> i.icon-close)',
    '[role="dialog"] button:text-is("Continue")',
    'xpromo-app-selector button:has-text("Not now")',
]

DEFAULT_LINK_SELECTORS: List[str] = [
    'shreddit-post[permalink]',
    'a[slot="title"]',
    'a[data-testid="post-title"]',
    'a[data-click-id="body"]',
    'a[href*="/comments/"]',
]

DEFAULT_EXPANSION_SELECTORS: List[str] = [
    'button:text-matches("view more comments", "i")',
    'button:text-matches("load more comments", "i")',
    'button:text-matches("view entire discussion", "i")',
    'button:text-matches("[0-9]+ more repl(y|ies)", "i")',
    'div[tabindex="0"]:text-matches("continue this thread", "i")',
    'a:text-matches("continue this thread", "i")',
]

# Listings that aggregate every namespace; the same-namespace filter is off there
DEFAULT_AGGREGATE_NAMESPACES: List[str] = ["all", "popular"]

_INT_FIELDS = {k for k, v in _DEFAULTS.items() if isinstance(v, int) and not isinstance(v, bool)}
_FLOAT_FIELDS = {k for k, v in _DEFAULTS.items() if isinstance(v, float)}
_BOOL_FIELDS = {k for k, v in _DEFAULTS.items() if isinstance(v, bool)}


def _arg(args, flag: str, name: str):
    """argparse value for *flag*, or the default for *name* when the flag was not given."""
    value = getattr(args, flag, None)
    return _DEFAULTS[name] if value is None else value


@dataclass
class BehaviorConfig:
    """
    Unified configuration consumed by every behavior subsystem.

    Populate via:
      - ``BehaviorConfig()``                  → all defaults
      - ``BehaviorConfig(idle_threshold=5)``  → override one value
      - ``BehaviorConfig.from_cli_args(ns)``  → from argparse Namespace
      - ``BehaviorConfig.from_env()``         → from ``BEHAVIOR_*`` env vars
    """

    # ---- Readiness ----
    ready_selector: str = _DEFAULTS["ready_selector"]
    ready_timeout_ms: int = _DEFAULTS["ready_timeout_ms"]
    initial_settle_ms: int = _DEFAULTS["initial_settle_ms"]

    # ---- Modal dismissal ----
    modal_settle_ms: int = _DEFAULTS["modal_settle_ms"]
    modal_click_timeout_ms: int = _DEFAULTS["modal_click_timeout_ms"]

    # ---- Scroll discovery ----
    idle_threshold: int = _DEFAULTS["idle_threshold"]
    max_scroll_iterations: int = _DEFAULTS["max_scroll_iterations"]
    max_scroll_duration_s: float = _DEFAULTS["max_scroll_duration_s"]
    scroll_settle_ms: int = _DEFAULTS["scroll_settle_ms"]
    height_stable_threshold: int = _DEFAULTS["height_stable_threshold"]

    # ---- Comment expansion ----
    failure_threshold: int = _DEFAULTS["failure_threshold"]
    max_expansion_iterations: int = _DEFAULTS["max_expansion_iterations"]
    click_settle_ms: int = _DEFAULTS["click_settle_ms"]
    content_settle_ms: int = _DEFAULTS["content_settle_ms"]
    retry_delay_ms: int = _DEFAULTS["retry_delay_ms"]
    click_timeout_ms: int = _DEFAULTS["click_timeout_ms"]

    # ---- Page shape ----
    thread_marker: str = _DEFAULTS["thread_marker"]
    namespace_prefix: str = _DEFAULTS["namespace_prefix"]
    same_namespace_only: bool = _DEFAULTS["same_namespace_only"]
    aggregate_namespaces: List[str] = field(default_factory=lambda: list(DEFAULT_AGGREGATE_NAMESPACES))

    # ---- Selector catalogues ----
    modal_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_MODAL_SELECTORS))
    link_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_LINK_SELECTORS))
    expansion_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_EXPANSION_SELECTORS))

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_cli_args(cls, args) -> "BehaviorConfig":
        """Build config from an argparse Namespace (``__main__.py``)."""
        cfg = cls(
            idle_threshold=_arg(args, "idle_threshold", "idle_threshold"),
            max_scroll_iterations=_arg(args, "max_scrolls", "max_scroll_iterations"),
            max_scroll_duration_s=_arg(args, "max_scroll_seconds", "max_scroll_duration_s"),
            scroll_settle_ms=_arg(args, "scroll_settle_ms", "scroll_settle_ms"),
            max_expansion_iterations=_arg(args, "max_expansions", "max_expansion_iterations"),
            ready_timeout_ms=_arg(args, "ready_timeout_ms", "ready_timeout_ms"),
            same_namespace_only=not getattr(args, "all_namespaces", False),
        )
        cfg.validate()
        return cfg

    @classmethod
    def from_env(cls, prefix: str = "BEHAVIOR_", environ=None) -> "BehaviorConfig":
        """Build config from environment variables, e.g. ``BEHAVIOR_IDLE_THRESHOLD=5``.

        Only scalar tunables are read; selector catalogues keep their defaults.
        Unparsable values raise ``ConfigError`` naming the variable.
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for name in _DEFAULTS:
            key = f"{prefix}{name.upper()}"
            raw = environ.get(key)
            if raw is None or raw == "":
                continue
            try:
                if name in _BOOL_FIELDS:
                    overrides[name] = raw.strip().lower() in ("1", "true", "yes", "on")
                elif name in _INT_FIELDS:
                    overrides[name] = int(raw)
                elif name in _FLOAT_FIELDS:
                    overrides[name] = float(raw)
                else:
                    overrides[name] = raw
            except ValueError as exc:
                raise ConfigError(f"{key}={raw!r} is not a valid value: {exc}") from exc
        cfg = cls(**overrides)
        cfg.validate()
        return cfg

    # -----------------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------------
    def validate(self) -> "BehaviorConfig":
        """Raise ``ConfigError`` if any tunable is out of range."""
        for name in ("idle_threshold", "max_scroll_iterations",
                     "failure_threshold", "max_expansion_iterations"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be >= 1 (got {getattr(self, name)})")
        for f in fields(self):
            if f.name.endswith("_ms") and getattr(self, f.name) < 0:
                raise ConfigError(f"{f.name} must not be negative (got {getattr(self, f.name)})")
        if self.max_scroll_duration_s <= 0:
            raise ConfigError(
                f"max_scroll_duration_s must be positive (got {self.max_scroll_duration_s})"
            )
        if self.height_stable_threshold < 0:
            raise ConfigError(
                f"height_stable_threshold must not be negative (got {self.height_stable_threshold})"
            )
        if not self.thread_marker.strip("/"):
            raise ConfigError("thread_marker must be a non-empty path segment")
        return self

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self, url: str) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("BEHAVIOR RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  URL:              {url}")
        logger.info(f"  Ready Selector:   {self.ready_selector} ({self.ready_timeout_ms}ms)")
        logger.info(f"  Idle Threshold:   {self.idle_threshold} scrolls")
        logger.info(f"  Max Scrolls:      {self.max_scroll_iterations} / {self.max_scroll_duration_s:.0f}s")
        logger.info(f"  Scroll Settle:    {self.scroll_settle_ms}ms")
        logger.info(f"  Max Expansions:   {self.max_expansion_iterations}")
        logger.info(f"  Failure Limit:    {self.failure_threshold} passes")
        logger.info(f"  Namespace:        {'same only' if self.same_namespace_only else 'site-wide'}")
        logger.info("=" * 60)
