"""
Crawl Behavior Package
Per-page behavior for an automated crawl: classify the page, discover thread
links for the frontier, and expand infinite scroll / collapsed comments so the
capture step records the fully rendered page.

CLI Usage:
    python -m crawl_behavior <url> [options]

    Options:
        --headed          Show the browser window
        --idle-threshold  Scrolls without new links before stopping (default: 3)
        --max-scrolls     Hard cap on scroll iterations (default: 250)
        --max-expansions  Hard cap on comment expansion passes (default: 25)
        --all-namespaces  Accept thread links from any namespace on the site
        --output-json     Write discovered links + counters to JSON
"""

from .behavior import RedditBehavior
from .comment_expansion import CommentExpansionEngine, ExpansionPass
from .exceptions import BehaviorError, ConfigError, ReadinessTimeout
from .host import CallbackSink, CollectingSink, PageHost, PlaywrightHost
from .modal_dismissal import dismiss
from .page_state import PageMode, classify, listing_namespace
from .run_config import BehaviorConfig
from .scroll_discovery import ScrollDiscoveryEngine
from .state import VisitState
from .url_store import UrlNormalizationStore, canonicalize

__all__ = [
    'RedditBehavior',
    'VisitState',
    'BehaviorConfig',
    # Engines
    'ScrollDiscoveryEngine',
    'CommentExpansionEngine',
    'ExpansionPass',
    'dismiss',
    # Classification
    'PageMode',
    'classify',
    'listing_namespace',
    # URL handling
    'UrlNormalizationStore',
    'canonicalize',
    # Host primitives
    'PageHost',
    'PlaywrightHost',
    'CollectingSink',
    'CallbackSink',
    # Errors
    'BehaviorError',
    'ConfigError',
    'ReadinessTimeout',
]

__version__ = '1.0.0'
