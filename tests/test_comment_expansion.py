"""
Tests for comment_expansion.py.

Most tests use a single fake selector ("more") so the scripted controls map
one-to-one onto query results.
"""

import pytest

from conftest import FakeElement, FakeHost, collect

from crawl_behavior.comment_expansion import CommentExpansionEngine, ExpansionPass
from crawl_behavior.run_config import DEFAULT_EXPANSION_SELECTORS
from crawl_behavior.scroll_discovery import SCROLL_TO_BOTTOM_JS
from crawl_behavior.state import VisitState

THREAD = "https://www.reddit.com/r/python/comments/aaa/first/"


@pytest.fixture
def config(fast_config):
    fast_config.expansion_selectors = ["more"]
    return fast_config


def _engine(config):
    state = VisitState(url=THREAD)
    state.store.seed(THREAD)
    return CommentExpansionEngine(config, state), state


def _on_passes(passes, *elements):
    """Controls present only on the given (1-based) query numbers."""
    return lambda n: list(elements) if n in passes else []


# ====================================================================
# Failure counter + exhaustion
# ====================================================================

class TestExhaustion:

    @pytest.mark.asyncio
    async def test_always_failing_click_is_tolerated(self, config):
        stuck = FakeElement("stuck", clickable=False)
        host = FakeHost(THREAD, controls={"more": [stuck]})
        engine, state = _engine(config)

        messages = await collect(engine.expand(host))

        assert stuck.clicks == 3            # once per pass, never retried in a pass
        assert state.comments_expanded == 0
        assert state.expansion_iterations == 3
        assert state.stop_reason == "exhausted"
        assert "Nothing expanded on pass 1, 1 click(s) failed (attempt 1/3)." in messages
        assert "No more comment expansion controls found, 1 click(s) failed." in messages
        assert messages[-1] == "Finished expansion: 0 thread(s) expanded in 3 pass(es)."

    @pytest.mark.asyncio
    async def test_no_controls_at_all(self, config):
        host = FakeHost(THREAD)
        engine, state = _engine(config)

        messages = await collect(engine.expand(host))

        assert state.expansion_iterations == 3
        assert state.stop_reason == "exhausted"
        assert "No more comment expansion controls found." in messages

    @pytest.mark.asyncio
    async def test_productive_passes_then_exhausted(self, config):
        first, second, third = FakeElement("a"), FakeElement("b"), FakeElement("c")
        controls = {"more": lambda n: {1: [first, second], 2: [third]}.get(n, [])}
        host = FakeHost(THREAD, controls=controls)
        engine, state = _engine(config)

        messages = await collect(engine.expand(host))

        assert state.comments_expanded == 3
        assert state.expansion_iterations == 5
        assert "Expanded 2 comment thread(s) on pass 1 (total 2)." in messages
        assert "Expanded 1 comment thread(s) on pass 2 (total 3)." in messages

    @pytest.mark.asyncio
    async def test_successful_click_resets_failure_counter(self, config):
        host = FakeHost(THREAD, controls={"more": _on_passes({1, 3}, FakeElement())})
        engine, state = _engine(config)

        messages = await collect(engine.expand(host))

        assert state.expansion_iterations == 6
        assert "Nothing expanded on pass 2 (attempt 1/3)." in messages
        assert "Nothing expanded on pass 4 (attempt 1/3)." in messages
        assert state.failure_counter == 3

    @pytest.mark.asyncio
    async def test_iteration_cap_for_controls_that_never_go_away(self, config):
        config.max_expansion_iterations = 5
        zombie = FakeElement("zombie")
        host = FakeHost(THREAD, controls={"more": [zombie]})
        engine, state = _engine(config)

        messages = await collect(engine.expand(host))

        assert zombie.clicks == 5
        assert state.stop_reason == "iteration_cap"
        assert state.expansion_iterations == 5
        assert messages[-1] == "Finished expansion: 5 thread(s) expanded in 5 pass(es)."


# ====================================================================
# Per-element handling
# ====================================================================

class TestPass:

    @pytest.mark.asyncio
    async def test_invisible_controls_ignored(self, config):
        hidden = FakeElement("hidden", visible=False)
        host = FakeHost(THREAD, controls={"more": [hidden]})
        engine, _ = _engine(config)

        result = await engine.expand_pass(host)

        assert result == ExpansionPass(clicked=0, failed=0, enqueued=0, matched=0)
        assert hidden.clicks == 0

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_batch(self, config):
        bad, good = FakeElement("bad", clickable=False), FakeElement("good")
        host = FakeHost(THREAD, controls={"more": [bad, good]})
        engine, _ = _engine(config)

        result = await engine.expand_pass(host)

        assert result.clicked == 1
        assert result.failed == 1
        assert host.clicked == [bad, good]

    @pytest.mark.asyncio
    async def test_settle_between_clicks(self, config):
        host = FakeHost(THREAD, controls={"more": [FakeElement(), FakeElement()]})
        engine, _ = _engine(config)

        await engine.expand_pass(host)

        assert host.waits == [config.click_settle_ms] * 2

    @pytest.mark.asyncio
    async def test_all_selectors_queried_in_order(self, config):
        config.expansion_selectors = ["view-more", "continue", "replies"]
        host = FakeHost(THREAD, controls={
            "view-more": [FakeElement("v")],
            "replies": [FakeElement("r")],
        })
        engine, _ = _engine(config)

        result = await engine.expand_pass(host)

        assert [el.name for el in host.clicked] == ["v", "r"]
        assert host.queries == {"view-more": 1, "continue": 1, "replies": 1}
        assert result.clicked == 2


# ====================================================================
# Navigating anchors
# ====================================================================

class TestNavigatingAnchors:

    @pytest.mark.asyncio
    async def test_anchor_enqueued_not_clicked(self, config, sink):
        anchor = FakeElement("continue", href="/r/python/comments/aaa/first/c1/?utm_source=x")
        host = FakeHost(THREAD, controls={"more": [anchor]})
        engine, state = _engine(config)

        await collect(engine.expand(host, sink))

        assert anchor.clicks == 0
        assert sink.urls == ["https://www.reddit.com/r/python/comments/aaa/first/c1/"]
        assert state.links_enqueued_from_threads == 1
        assert state.comments_expanded == 0

    @pytest.mark.asyncio
    async def test_anchor_skipped_without_sink(self, config):
        anchor = FakeElement("continue", href="/r/python/comments/aaa/first/c1/")
        host = FakeHost(THREAD, controls={"more": [anchor]})
        engine, state = _engine(config)

        result = await engine.expand_pass(host)

        assert anchor.clicks == 0
        assert result.enqueued == 0
        assert result.matched == 1
        assert state.links_enqueued_from_threads == 0

    @pytest.mark.asyncio
    async def test_anchor_back_to_same_thread_not_enqueued(self, config, sink):
        anchor = FakeElement("self", href=THREAD + "#comments")
        host = FakeHost(THREAD, controls={"more": [anchor]})
        engine, _ = _engine(config)

        await engine.expand_pass(host, sink)

        assert sink.urls == []


# ====================================================================
# Setup
# ====================================================================

class TestSetup:

    @pytest.mark.asyncio
    async def test_initial_scroll_and_settle(self, config):
        host = FakeHost(THREAD)
        engine, _ = _engine(config)

        messages = await collect(engine.expand(host))

        assert messages[0] == "Thread page: expanding comment threads."
        assert host.scrolls == 1
        assert host.waits[0] == config.content_settle_ms

    @pytest.mark.asyncio
    async def test_failing_initial_scroll_is_not_fatal(self, config):
        host = FakeHost(THREAD, fail_on=(SCROLL_TO_BOTTOM_JS,))
        engine, state = _engine(config)

        await collect(engine.expand(host))

        assert state.stop_reason == "exhausted"

    @pytest.mark.asyncio
    async def test_wait_sequence(self, config):
        host = FakeHost(THREAD, controls={"more": [FakeElement(clickable=False)]})
        engine, _ = _engine(config)

        await collect(engine.expand(host))

        content, click, retry = (
            config.content_settle_ms, config.click_settle_ms, config.retry_delay_ms,
        )
        assert host.waits == [content, click, retry, click, retry, click]


@pytest.mark.asyncio
async def test_control_matched_by_default_patterns_clicked_once_per_pass(fast_config):
    """A "Load more comments" button is reached through a single default selector."""
    button = FakeElement("Load more comments")
    controls = {
        sel: [button] for sel in DEFAULT_EXPANSION_SELECTORS if "load more comments" in sel
    }
    host = FakeHost(THREAD, controls=controls)
    engine, _ = _engine(fast_config)

    result = await engine.expand_pass(host)

    assert button.clicks == 1
    assert result.clicked == 1
