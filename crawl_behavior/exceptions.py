"""Exception types raised inside the behavior package.

None of these ever escape ``RedditBehavior.run``; the orchestrator converts
them into a logged, early end of the visit.
"""


class BehaviorError(Exception):
    """Base class for behavior failures."""


class ReadinessTimeout(BehaviorError):
    """The readiness marker never appeared within the configured timeout."""

    def __init__(self, selector: str, timeout_ms: int):
        self.selector = selector
        self.timeout_ms = timeout_ms
        super().__init__(f"'{selector}' not present after {timeout_ms}ms")


class ConfigError(BehaviorError, ValueError):
    """A ``BehaviorConfig`` tunable is out of range or unparsable."""
