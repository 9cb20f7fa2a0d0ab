"""
Tests for FrameScanner.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from web_relocator.dom.document import DocumentFrame
from web_relocator.engine.frame_scanner import FrameScanner
from web_relocator.exceptions import FrameAccessError

from tests.unit.engine import StaticFrameProvider


def make_frames(count):
    return [
        DocumentFrame.from_html(f"<html><body><p>Frame {i}</p></body></html>", href=f"https://f{i}.test/", index=i)
        for i in range(count)
    ]


class TestFrameScanner:
    """Test frame enumeration."""

    @pytest.mark.asyncio
    async def test_main_frame_first(self):
        frames = make_frames(3)
        scanned = await FrameScanner(StaticFrameProvider(frames)).scan()
        assert [f.href for f in scanned] == ["https://f0.test/", "https://f1.test/", "https://f2.test/"]

    @pytest.mark.asyncio
    async def test_inaccessible_frame_skipped(self):
        frames = make_frames(3)
        provider = StaticFrameProvider(frames, failing=[1], error=FrameAccessError("cross-origin"))

        scanned = await FrameScanner(provider).scan()

        assert [f.href for f in scanned] == ["https://f0.test/", "https://f2.test/"]

    @pytest.mark.asyncio
    async def test_unexpected_frame_error_skipped(self):
        provider = StaticFrameProvider(make_frames(2), failing=[0], error=RuntimeError("boom"))
        scanned = await FrameScanner(provider).scan()
        assert len(scanned) == 1

    @pytest.mark.asyncio
    async def test_enumeration_failure_yields_empty(self):
        provider = MagicMock()
        provider.frame_handles = AsyncMock(side_effect=RuntimeError("page closed"))

        assert await FrameScanner(provider).scan() == []

    @pytest.mark.asyncio
    async def test_rescans_each_call(self):
        provider = StaticFrameProvider(make_frames(1))
        scanner = FrameScanner(provider)

        await scanner.scan()
        await scanner.scan()

        assert provider.enumerations == 2
