"""
Tests for PlaybackSession.
"""

import pytest

from web_relocator.dom.document import DocumentTreeProvider
from web_relocator.engine.descriptor import LocatorType
from web_relocator.engine.fingerprint import node_text
from web_relocator.engine.playback import (
    Guide,
    GuideStep,
    NextStep,
    NoActivePlayback,
    PlaybackFinished,
    PlaybackSession,
    PlaybackStarted,
    StartPlayback,
    StepNotFound,
    StepReady,
    StopPlayback,
)
from web_relocator.engine.target_resolver import TargetResolver
from web_relocator.exceptions import DescriptorError
from web_relocator.utils.clock import ManualClock


@pytest.fixture
def guide(save_descriptor):
    return Guide.model_validate({
        "title": "Save a draft",
        "steps": [
            {"instruction": "Click Save", "target": save_descriptor},
            {"instruction": "Click Cancel", "selector": "button:not(.primary)"},
        ],
    })


@pytest.fixture
def session(save_page):
    resolver = TargetResolver(DocumentTreeProvider(save_page), clock=ManualClock())
    return PlaybackSession(resolver)


class TestGuideStep:
    """Test GuideStep descriptor synthesis."""

    def test_selector_becomes_css_locator(self):
        step = GuideStep(selector="#save")
        descriptor = step.descriptor()

        assert descriptor.preferred_locators[0].type == LocatorType.CSS
        assert descriptor.preferred_locators[0].value == "#save"

    def test_target_wins_over_selector(self, save_descriptor):
        step = GuideStep.model_validate({"selector": "#save", "target": save_descriptor})
        assert len(step.descriptor().preferred_locators) == 2

    def test_empty_step_is_unsearchable(self):
        assert not GuideStep().descriptor().is_searchable


class TestPlaybackSession:
    """Test the playback message flow."""

    @pytest.mark.asyncio
    async def test_walks_all_steps(self, session, guide):
        started = await session.handle(StartPlayback(guide))
        assert started == PlaybackStarted(title="Save a draft", total_steps=2)

        first = await session.handle(NextStep())
        assert isinstance(first, StepReady)
        assert first.step_index == 0
        assert node_text(first.result.node) == "Save"

        second = await session.handle(NextStep())
        assert isinstance(second, StepReady)
        assert node_text(second.result.node) == "Cancel"

        finished = await session.handle(NextStep())
        assert finished == PlaybackFinished(steps_completed=2)
        assert not session.is_active

    @pytest.mark.asyncio
    async def test_not_found_does_not_advance(self, session):
        guide = Guide(steps=[GuideStep(instruction="Click Delete", selector="#delete")])
        await session.handle(StartPlayback(guide))

        response = await session.handle(NextStep())

        assert isinstance(response, StepNotFound)
        assert response.step_index == 0
        assert response.error == "Unable to resolve target"
        assert session.current_index == 0

    @pytest.mark.asyncio
    async def test_next_without_playback(self, session):
        assert isinstance(await session.handle(NextStep()), NoActivePlayback)

    @pytest.mark.asyncio
    async def test_stop(self, session, guide):
        await session.handle(StartPlayback(guide))
        await session.handle(NextStep())

        response = await session.handle(StopPlayback())

        assert response == PlaybackFinished(steps_completed=1)
        assert isinstance(await session.handle(StopPlayback()), NoActivePlayback)

    @pytest.mark.asyncio
    async def test_restart_resets_index(self, session, guide):
        await session.handle(StartPlayback(guide))
        await session.handle(NextStep())
        await session.handle(StartPlayback(guide))

        assert session.current_index == 0

    def test_start_accepts_mapping(self, session):
        started = session.start({"title": "From JSON", "steps": [{"selector": "button"}]})
        assert started.total_steps == 1

    def test_start_rejects_malformed_guide(self, session, guide):
        session.start(guide)
        bad_step = {"target": {"preferredLocators": [{"type": "label", "value": "Save"}]}}

        with pytest.raises(DescriptorError) as exc_info:
            session.start({"title": "Broken", "steps": [bad_step]})

        assert exc_info.value.errors
        # The running guide is left as it was
        assert session.progress()["total_steps"] == 2

    def test_start_rejects_non_mapping(self, session):
        with pytest.raises(DescriptorError):
            session.start(["Click Save"])
        assert not session.is_active

    def test_skip(self, session, guide):
        session.start(guide)
        session.skip()
        assert session.progress() == {"active": True, "step_index": 1, "total_steps": 2}

    @pytest.mark.asyncio
    async def test_unknown_request(self, session):
        with pytest.raises(TypeError):
            await session.handle("NEXT")
