"""
Tests for TargetResolver - budgeted multi-strategy element resolution.
"""

from html import escape

import pytest

from web_relocator.config.settings import ResolverSettings
from web_relocator.dom.document import DocumentFrame, DocumentTreeProvider
from web_relocator.engine.descriptor import LocatorSpec, TargetDescriptor
from web_relocator.engine.fingerprint import node_text, tag_of
from web_relocator.engine.target_resolver import (
    Candidate,
    ResolutionStatus,
    TargetResolver,
    find_ancestor_anchor,
    resolve_target,
)
from web_relocator.engine.trace import DebugTrace
from web_relocator.utils.clock import ManualClock

from tests.unit.engine import (
    ExplodingFrame,
    SleepingWaiter,
    StaticFrameProvider,
    constant_scorer,
)


NO_MATCH = {"preferredLocators": [{"type": "id", "value": "does-not-exist"}]}


def make_resolver(frames, clock=None, **kwargs):
    return TargetResolver(StaticFrameProvider(frames), clock=clock or ManualClock(), **kwargs)


# =============================================================================
# END-TO-END SCENARIOS
# =============================================================================

class TestScenarios:
    """Reference scenarios."""

    @pytest.mark.asyncio
    async def test_single_visible_button(self, save_page, save_descriptor):
        provider = DocumentTreeProvider(save_page, href="https://app.test/board")

        result = await resolve_target(provider, save_descriptor, clock=ManualClock())

        assert result.status == ResolutionStatus.SUCCESS
        assert tag_of(result.node) == "button"
        assert node_text(result.node) == "Save"
        assert result.frame.index == 0
        assert result.attempts == 1
        # Strongest locator first: text (0.7 + 1.5) before css (0.8)
        assert result.why == ["text", "css"]
        # tag 2 + text 2.5 + classes 0.8 + ancestors 3 + visible 1, plus 2 * (0.7 + 0.8)
        assert result.score == pytest.approx(12.3)

    @pytest.mark.asyncio
    async def test_no_match_with_slow_stability(self, save_frame):
        clock = ManualClock()
        waiter = SleepingWaiter(clock)
        resolver = make_resolver([save_frame], clock=clock, waiter=waiter)

        result = await resolver.resolve(NO_MATCH)

        assert result.status == ResolutionStatus.HARD_FAIL
        assert result.attempts == 4
        assert waiter.budgets == [1500, 1500, 1500, 1500]
        assert clock.now_ms() == 8000
        assert result.elapsed_ms == 8000
        assert result.error == "Unable to resolve target"

    @pytest.mark.asyncio
    async def test_button_with_nested_label(self):
        provider = DocumentTreeProvider(
            "<html><body><div><button class='b'><span>Save</span></button></div></body></html>"
        )
        target = {
            "fingerprint": {"tag": "button", "text": "Save"},
            "preferredLocators": [{"type": "text", "value": "Save", "confidence": 0.9}],
        }

        result = await resolve_target(provider, target, clock=ManualClock())

        assert result.status == ResolutionStatus.SUCCESS
        assert tag_of(result.node) == "button"
        assert result.node.get("class") == "b"
        assert result.why == ["text"]

    @pytest.mark.asyncio
    async def test_link_with_icon_found_by_fingerprint_text(self):
        provider = DocumentTreeProvider(
            "<nav><a href='/help'><i class='icon'></i><span>Help</span></a></nav>"
        )

        result = await resolve_target(provider, {"fingerprint": {"tag": "a", "text": "Help"}}, clock=ManualClock())

        assert result.status == ResolutionStatus.SUCCESS
        assert result.node.get("href") == "/help"
        assert result.why == ["fingerprint-text"]


# =============================================================================
# ORCHESTRATION
# =============================================================================

class TestOrchestration:
    """Test the attempt loop."""

    @pytest.mark.asyncio
    async def test_unsearchable_descriptor_fails_immediately(self, save_frame):
        provider = StaticFrameProvider([save_frame])
        resolver = TargetResolver(provider, clock=ManualClock())

        result = await resolver.resolve({"fingerprint": {"tag": "button"}})

        assert result.status == ResolutionStatus.HARD_FAIL
        assert result.attempts == 0
        assert provider.enumerations == 0
        assert result.node is None

    @pytest.mark.asyncio
    async def test_invalid_descriptor_fails_without_raising(self, save_frame):
        resolver = make_resolver([save_frame])

        result = await resolver.resolve({"preferredLocators": [{"type": "bogus"}]})

        assert result.status == ResolutionStatus.HARD_FAIL
        assert result.error == "Invalid target descriptor"
        assert result.debug[0].type == "error"

    @pytest.mark.asyncio
    async def test_backoff_delays(self, save_frame):
        clock = ManualClock()
        result = await make_resolver([save_frame], clock=clock).resolve(NO_MATCH)

        assert result.attempts == 4
        assert clock.sleeps == [200, 400, 600, 800]

    @pytest.mark.asyncio
    async def test_backoff_clamped_to_budget(self, save_frame):
        clock = ManualClock()
        result = await make_resolver([save_frame], clock=clock).resolve(NO_MATCH, timeout_ms=500)

        assert clock.sleeps == [200, 300]
        assert clock.now_ms() == 500
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_no_scan_after_budget_exhausted(self, save_frame):
        clock = ManualClock()
        provider = StaticFrameProvider([save_frame])
        resolver = TargetResolver(provider, waiter=SleepingWaiter(clock), clock=clock)

        result = await resolver.resolve(NO_MATCH, timeout_ms=1000)

        assert result.status == ResolutionStatus.HARD_FAIL
        assert provider.enumerations == 0
        assert result.attempts == 1
        assert any("budget exhausted" in e.message for e in result.debug)

    @pytest.mark.asyncio
    async def test_zero_retries_is_single_attempt(self, save_frame):
        clock = ManualClock()
        result = await make_resolver([save_frame], clock=clock).resolve(NO_MATCH, retries=0)

        assert result.attempts == 1
        assert clock.sleeps == [200]

    @pytest.mark.asyncio
    async def test_attempt_error_recorded_and_retried(self):
        provider = StaticFrameProvider([ExplodingFrame(RuntimeError("boom"))])
        resolver = TargetResolver(provider, clock=ManualClock())

        result = await resolver.resolve(NO_MATCH, retries=1)

        assert result.status == ResolutionStatus.HARD_FAIL
        assert result.attempts == 2
        assert result.error == "RuntimeError: boom"
        assert len([e for e in result.debug if e.type == "error"]) == 2

    @pytest.mark.asyncio
    async def test_tree_change_between_attempts(self, save_page, save_descriptor):
        pages = iter(["<html><body><p>Loading...</p></body></html>", save_page])
        current = {"html": None}

        def source():
            current["html"] = next(pages, current["html"])
            return current["html"]

        clock = ManualClock()
        result = await resolve_target(DocumentTreeProvider(source), save_descriptor, clock=clock)

        assert result.status == ResolutionStatus.SUCCESS
        assert result.attempts == 2
        assert clock.sleeps == [200]

    @pytest.mark.asyncio
    async def test_first_frame_in_scan_order_wins(self, save_page, save_descriptor):
        frames = [
            DocumentFrame.from_html(save_page, href="https://a.test/", index=0),
            DocumentFrame.from_html(save_page, href="https://b.test/", index=1),
        ]
        result = await make_resolver(frames).resolve(save_descriptor)

        assert result.frame.href == "https://a.test/"

    @pytest.mark.asyncio
    async def test_later_frame_used_when_first_has_no_match(self, save_page, save_descriptor):
        frames = [
            DocumentFrame.from_html("<html><body><p>Nothing</p></body></html>", href="https://a.test/"),
            DocumentFrame.from_html(save_page, href="https://b.test/", index=1),
        ]
        result = await make_resolver(frames).resolve(save_descriptor)

        assert result.frame.href == "https://b.test/"

    @pytest.mark.asyncio
    async def test_srcdoc_iframe_resolved(self, save_page, save_descriptor):
        escaped = escape(save_page)
        outer = f'<html><body><p>Shell</p><iframe srcdoc="{escaped}"></iframe></body></html>'

        result = await resolve_target(DocumentTreeProvider(outer), save_descriptor, clock=ManualClock())

        assert result.is_resolved
        assert result.frame.index == 1
        assert result.frame.href == "about:srcdoc"

    @pytest.mark.asyncio
    async def test_to_dict(self, save_page, save_descriptor):
        result = await resolve_target(DocumentTreeProvider(save_page), save_descriptor, clock=ManualClock())

        data = result.to_dict()

        assert data["status"] == "SUCCESS"
        assert data["element"]["tag"] == "button"
        assert data["element"]["path"] == "/html/body/main/section/button[1]"
        assert data["frame"] == {"index": 0, "href": ""}


# =============================================================================
# SELECTION
# =============================================================================

class TestSelection:
    """Test candidate aggregation and acceptance."""

    @pytest.mark.asyncio
    async def test_score_exactly_threshold_accepted(self, save_frame):
        resolver = make_resolver([save_frame], scorer=constant_scorer(1.0))
        descriptor = {"preferredLocators": [{"type": "css", "value": "button.primary", "confidence": 0.5}]}

        result = await resolver.resolve(descriptor, retries=0)

        assert result.status == ResolutionStatus.SUCCESS
        assert result.score == 2.0

    @pytest.mark.asyncio
    async def test_score_below_threshold_rejected(self, save_frame):
        resolver = make_resolver([save_frame], scorer=constant_scorer(0.999))
        descriptor = {"preferredLocators": [{"type": "css", "value": "button.primary", "confidence": 0.5}]}

        result = await resolver.resolve(descriptor, retries=0)

        assert result.status == ResolutionStatus.HARD_FAIL

    def test_node_matched_by_many_locators_is_one_candidate(self, save_frame):
        resolver = make_resolver([save_frame], scorer=constant_scorer(1.0))
        target = TargetDescriptor.parse({
            "preferredLocators": [
                {"type": "css", "value": "button.primary", "confidence": 0.8},
                {"type": "xpath", "value": "//section/button[1]", "confidence": 0.5},
                {"type": "text", "value": "Save", "tag": "button", "confidence": 0.7},
            ],
        })

        candidates = resolver.collect_candidates(save_frame, target)

        assert len(candidates) == 1
        assert candidates[0].score == pytest.approx(1.0 + 2 * (0.8 + 0.5 + 0.7))
        assert candidates[0].why == ["text", "css", "xpath"]

    def test_missing_confidence_uses_default(self, save_frame):
        resolver = make_resolver([save_frame], scorer=constant_scorer(0.0))
        target = TargetDescriptor.parse({"preferredLocators": [{"type": "css", "value": "button.primary"}]})

        candidates = resolver.collect_candidates(save_frame, target)

        assert candidates[0].score == pytest.approx(1.0)

    def test_invalid_locator_warns_and_continues(self, save_frame):
        resolver = make_resolver([save_frame])
        target = TargetDescriptor.parse({
            "preferredLocators": [
                {"type": "css", "value": "button[["},
                {"type": "text", "value": "Save"},
            ],
        })
        trace = DebugTrace()

        candidates = resolver.collect_candidates(save_frame, target, trace)

        # main and section contain the label too
        assert [tag_of(c.node) for c in candidates] == ["main", "section", "button"]
        assert len(trace.of_type("warn")) == 1

    def test_ties_keep_discovery_order(self, save_frame):
        resolver = make_resolver([save_frame], scorer=constant_scorer(5.0))
        target = TargetDescriptor.parse({"preferredLocators": [{"type": "css", "value": "button"}]})

        match = resolver.search_frame(save_frame, target)

        assert node_text(match.candidate.node) == "Save"

    def test_candidate_accumulates(self):
        candidate = Candidate(node=object(), score=1.0)
        candidate.add(1.6, "css")
        candidate.add(0.6, "ancestorTrail")

        assert candidate.score == pytest.approx(3.2)
        assert candidate.why == ["css", "ancestorTrail"]


# =============================================================================
# FALLBACKS
# =============================================================================

class TestFallbacks:
    """Test ancestor-trail and fingerprint-text fallbacks."""

    def test_ancestor_trail_before_text(self, save_frame):
        resolver = make_resolver([save_frame])
        target = TargetDescriptor.parse({
            "fingerprint": {"tag": "button", "text": "Save"},
            "context": {"ancestorTrail": [{"tag": "main", "index": 1}, {"tag": "section", "index": 0}]},
        })

        candidates = resolver.collect_candidates(save_frame, target)

        assert [node_text(c.node) for c in candidates] == ["Save", "Cancel"]
        assert all(c.why == ["ancestorTrail"] for c in candidates)

    def test_text_fallback_when_trail_finds_nothing(self, save_frame):
        resolver = make_resolver([save_frame])
        target = TargetDescriptor.parse({
            "fingerprint": {"tag": "a", "text": "Home"},
            "context": {"ancestorTrail": [{"tag": "main", "index": 1}, {"tag": "section", "index": 0}]},
        })

        candidates = resolver.collect_candidates(save_frame, target)

        assert [tag_of(c.node) for c in candidates] == ["header", "nav", "a"]
        assert all(c.why == ["fingerprint-text"] for c in candidates)

    def test_fallbacks_skipped_when_locators_match(self, save_frame):
        resolver = make_resolver([save_frame])
        target = TargetDescriptor.parse({
            "fingerprint": {"tag": "button", "text": "Save"},
            "preferredLocators": [{"type": "text", "value": "Cancel"}],
            "context": {"ancestorTrail": [{"tag": "main", "index": 1}]},
        })

        candidates = resolver.collect_candidates(save_frame, target)

        assert {tuple(c.why) for c in candidates} == {("text",)}
        assert node_text(candidates[-1].node) == "Cancel"

    def test_trail_indices_clamped(self, save_frame):
        target = TargetDescriptor.parse({
            "context": {"ancestorTrail": [{"tag": "main", "index": 9}, {"tag": "section", "index": 4}]},
        })

        anchor = find_ancestor_anchor(save_frame, target)

        assert tag_of(anchor) == "section"

    @pytest.mark.asyncio
    async def test_ancestor_fallback_resolves_after_redesign(self, save_descriptor):
        # Class names and locators changed; structure and text did not
        page = """
        <html><body>
          <header><nav><a href="/home">Home</a></nav></header>
          <main><section><button class="v2-btn">Save</button><button class="v2-btn">Cancel</button></section></main>
        </body></html>
        """
        descriptor = dict(save_descriptor, preferredLocators=[{"type": "id", "value": "old-save"}])

        result = await resolve_target(DocumentTreeProvider(page), descriptor, clock=ManualClock())

        assert result.is_resolved
        assert node_text(result.node) == "Save"
        assert result.why == ["ancestorTrail"]


# =============================================================================
# LOCATOR ORDERING
# =============================================================================

class TestLocatorOrdering:
    """Test specificity ordering and confidence rules."""

    def test_specificity_bonuses(self):
        resolver = make_resolver([])

        assert resolver.locator_specificity(LocatorSpec(type="id", value="save", confidence=0.5)) == 3.5
        assert resolver.locator_specificity(LocatorSpec(type="text", value="Save", confidence=0.5)) == 2.0
        assert resolver.locator_specificity(
            LocatorSpec(type="css", value="[data-testid='save']", confidence=0.5)
        ) == 2.5
        assert resolver.locator_specificity(
            LocatorSpec(type="css", value="[data-card-id='42']", confidence=0.5)
        ) == 5.5

    def test_order_is_stable(self):
        resolver = make_resolver([])
        specs = [
            LocatorSpec(type="css", value="a.first", confidence=0.4),
            LocatorSpec(type="xpath", value="//a", confidence=0.4),
            LocatorSpec(type="id", value="x", confidence=0.1),
        ]

        ordered = resolver.order_locators(specs)

        assert [s.value for s in ordered] == ["x", "a.first", "//a"]

    def test_identity_attribute_confidence_floor(self):
        resolver = make_resolver([])
        spec = LocatorSpec(type="css", value="[data-card-id='42']", confidence=0.1)
        assert resolver.effective_confidence(spec) == 0.95

    def test_settings_override_weight(self, save_frame):
        settings = ResolverSettings(confidence_weight=3.0)
        resolver = make_resolver([save_frame], settings=settings, scorer=constant_scorer(0.0))
        target = TargetDescriptor.parse({
            "preferredLocators": [{"type": "css", "value": "button.primary", "confidence": 0.5}],
        })

        candidates = resolver.collect_candidates(save_frame, target)

        assert candidates[0].score == pytest.approx(1.5)
