"""Tests for the ServerHandler dispatch layer."""

from __future__ import annotations

import pytest

from socraticreader.documents.registry import DocumentLibrary
from socraticreader.server.handler import ServerHandler
from socraticreader.server.protocol import Notification

from .conftest import FakeGenerator, settle


@pytest.fixture
def handler(settings, sample_documents_dir):
    """ServerHandler with manual ticks, a fake generator and the sample documents."""
    notifications: list[Notification] = []
    h = ServerHandler(
        settings=settings,
        write_notification=lambda n: notifications.append(n),
        generator=FakeGenerator(),
        manual_ticks=True,
    )
    h.library = DocumentLibrary(documents_dir=sample_documents_dir)
    h._notifications = notifications
    return h


async def call(handler, method, **params):
    return await handler.dispatch({"method": method, "params": params})


def methods(handler):
    return [n.method for n in handler._notifications]


class TestDocuments:
    @pytest.mark.asyncio
    async def test_list_documents(self, handler):
        result = await call(handler, "listDocuments")
        assert result["documents"] == [
            {"id": "notes", "title": "Notes", "unitCount": 2},
            {"id": "test_article", "title": "Test Article", "unitCount": 2},
        ]

    @pytest.mark.asyncio
    async def test_load_by_id(self, handler):
        result = await call(handler, "loadDocument", documentId="test_article")
        assert result["documentId"] == "test_article"
        assert [s["id"] for s in result["stats"]] == ["intro", "body"]
        assert result["stats"][0]["expectedDwellSeconds"] == pytest.approx(9.0)
        assert result["quizState"] == "idle"
        assert not handler.session.timer.running

    @pytest.mark.asyncio
    async def test_load_by_path(self, handler, sample_documents_dir):
        result = await call(handler, "loadDocument", path=str(sample_documents_dir / "notes.md"))
        assert result["title"] == "Notes"
        assert len(result["stats"]) == 2

    @pytest.mark.asyncio
    async def test_unknown_document(self, handler):
        with pytest.raises(ValueError, match="Unknown document"):
            await call(handler, "loadDocument", documentId="missing")

    @pytest.mark.asyncio
    async def test_unknown_method(self, handler):
        with pytest.raises(ValueError, match="Unknown method"):
            await call(handler, "nonExistent")


class TestTracking:
    @pytest.mark.asyncio
    async def test_load_units_and_visibility(self, handler):
        await call(handler, "loadUnits", units=[
            {"id": "a", "content": "one two"},
            {"id": "b", "content": "three"},
        ])
        result = await call(handler, "visibility", changes=[{"id": "a", "ratio": 0.4}], ratios={"b": 0.9})
        assert result == {"changed": True, "activeIds": ["a", "b"]}
        assert methods(handler) == ["statsChanged"]

        result = await call(handler, "visibility", changes=[{"id": "zzz", "ratio": 1.0}])
        assert result["changed"] is False

    @pytest.mark.asyncio
    async def test_tick_credits_primary_and_triggers_check(self, handler):
        await call(handler, "loadUnits", units=[{"id": "a", "content": "one two"}])
        await call(handler, "visibility", ratios={"a": 1.0})

        result = await call(handler, "tick", count=2)
        assert result["accrued"] == ["a", None]
        assert result["stats"][0]["dwellSeconds"] == 1
        assert result["stats"][0]["isStuck"] is True
        assert result["quizState"] == "awaiting"

        await settle()
        assert "checkRequested" in methods(handler)
        assert methods(handler)[-1] == "checkReady"
        ready = handler._notifications[-1]
        assert ready.params["unitId"] == "a"
        assert ready.params["check"]["options"] == ["Nothing", "Something"]
        assert ready.params["quizCount"] == 1

    @pytest.mark.asyncio
    async def test_tick_count_validated(self, handler):
        with pytest.raises(ValueError):
            await call(handler, "tick", count=0)


class TestChecks:
    async def show_check(self, handler):
        await call(handler, "loadUnits", units=[{"id": "a", "content": "one"}])
        await call(handler, "visibility", ratios={"a": 1.0})
        await call(handler, "tick")
        await settle()

    @pytest.mark.asyncio
    async def test_answer_and_dismiss(self, handler):
        await self.show_check(handler)
        snapshot = await call(handler, "getSnapshot")
        assert snapshot["quizState"] == "showing-check"
        assert snapshot["currentCheck"]["unitId"] == "a"

        result = await call(handler, "answerCheck", index=0)
        assert result["correct"] is False
        assert result["correctOptionIndex"] == 1

        result = await call(handler, "dismissCheck")
        assert result == {"quizState": "idle"}

    @pytest.mark.asyncio
    async def test_check_answered_once(self, handler):
        await self.show_check(handler)
        await call(handler, "answerCheck", index=1)
        with pytest.raises(ValueError, match="already answered"):
            await call(handler, "answerCheck", index=0)

    @pytest.mark.asyncio
    async def test_answer_without_check(self, handler):
        await call(handler, "loadUnits", units=[{"id": "a", "content": "one"}])
        with pytest.raises(ValueError, match="No check"):
            await call(handler, "answerCheck", index=0)

    @pytest.mark.asyncio
    async def test_silence_controls(self, handler):
        await call(handler, "loadUnits", units=[{"id": "a", "content": "one"}])
        assert await call(handler, "setSilenced", silenced=True) == {"silenced": True}

        await call(handler, "visibility", ratios={"a": 1.0})
        await call(handler, "tick")
        await settle()
        assert "checkRequested" not in methods(handler)

        assert await call(handler, "toggleSilenced") == {"silenced": False}
        await settle()
        assert "checkReady" in methods(handler)

    @pytest.mark.asyncio
    async def test_snapshot_keys(self, handler):
        await call(handler, "loadUnits", units=[{"id": "a", "content": "one"}])
        snapshot = await call(handler, "getSnapshot")
        assert set(snapshot) == {
            "stats", "activeIds", "quizState", "quizCount",
            "maxQuizzes", "silenced", "currentCheck",
        }
        assert set(snapshot["stats"][0]) == {
            "id", "dwellSeconds", "viewCount", "isStuck",
            "expectedDwellSeconds", "wordCount",
        }
