"""Visit-scoped state shared by reference between the orchestrator and engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .page_state import PageMode
from .url_store import UrlNormalizationStore


@dataclass
class VisitState:
    """Everything one visit knows.  Created at visit start, dropped at the end."""
    url: str = ""
    mode: PageMode = PageMode.UNKNOWN
    namespace: Optional[str] = None    # listing namespace, e.g. "python" for /r/python
    store: UrlNormalizationStore = field(default_factory=UrlNormalizationStore)

    # Loop counters
    idle_counter: int = 0              # consecutive scrolls with no new link
    failure_counter: int = 0           # consecutive expansion passes with no click
    scroll_iterations: int = 0
    expansion_iterations: int = 0

    # Results
    discovered_links: int = 0
    links_enqueued_from_threads: int = 0
    comments_expanded: int = 0
    modals_dismissed: int = 0
    stop_reason: str = ""              # idle | height_stable | iteration_cap | time_budget |
                                       # exhausted | not_ready | error | wiki | ""

    def as_dict(self) -> dict:
        return {
            "url": self.url,
            "mode": self.mode.value,
            "namespace": self.namespace,
            "discovered_links": self.discovered_links,
            "links_enqueued_from_threads": self.links_enqueued_from_threads,
            "comments_expanded": self.comments_expanded,
            "modals_dismissed": self.modals_dismissed,
            "scroll_iterations": self.scroll_iterations,
            "expansion_iterations": self.expansion_iterations,
            "stop_reason": self.stop_reason,
        }
