"""Tests for the ReadingSession lifecycle."""

import asyncio

import pytest

from socraticreader.config.settings import Settings, TrackerConfig
from socraticreader.engine.document_loader import ContentUnit
from socraticreader.engine.orchestrator import CHECK_READY, CHECK_REQUESTED, QuizState
from socraticreader.engine.reading_session import STATS_CHANGED, ReadingSession
from socraticreader.engine.stat_store import TrackingError
from socraticreader.engine.visibility import VisibilityChange

from .conftest import FakeGenerator, settle, words


@pytest.fixture
def fast_settings(tmp_path):
    return Settings(data_dir=tmp_path, tracker=TrackerConfig(tick_interval_ms=10))


@pytest.fixture
def session(settings, generator):
    return ReadingSession(settings=settings, generator=generator)


class TestManualTicks:
    @pytest.mark.asyncio
    async def test_full_cycle(self, session, units, generator):
        session.load_units(units, start_timer=False)
        session.apply_visibility([VisibilityChange("empty", 1.0)])
        assert session.tick() == "empty"
        assert session.quiz_state == QuizState.AWAITING
        await settle()

        assert generator.calls == ["empty"]
        assert session.quiz_state == QuizState.SHOWING_CHECK
        assert session.answer_check(1).correct is True
        session.dismiss_check()
        assert session.quiz_state == QuizState.IDLE
        assert session.quiz_count == 1

    @pytest.mark.asyncio
    async def test_silence_roundtrip(self, session, units, generator):
        session.load_units(units, start_timer=False)
        session.set_silenced(True)
        session.apply_visibility([VisibilityChange("short", 1.0)])
        session.tick()
        await settle()
        assert generator.calls == []
        assert session.stats()["short"].is_stuck

        assert session.toggle_silenced() is False
        await settle()
        assert generator.calls == ["short"]

    @pytest.mark.asyncio
    async def test_visibility_before_tick_in_same_instant(self, session, units):
        session.load_units(units, start_timer=False)
        session.apply_visibility([VisibilityChange("long", 1.0)])
        session.apply_visibility([VisibilityChange("long", 0), VisibilityChange("short", 0.2)])
        assert session.tick() == "short"
        assert session.stats()["long"].dwell_seconds == 0

    def test_snapshot_shape(self, session, units):
        session.load_units(units, start_timer=False)
        session.apply_visibility([VisibilityChange("long", 0.5)])
        snap = session.snapshot()
        assert snap["active_ids"] == ["long"]
        assert snap["quiz_state"] == "idle"
        assert snap["quiz_count"] == 0
        assert snap["max_quizzes"] == 3
        assert snap["current_check"] is None
        assert snap["stats"]["long"] == {
            "id": "long",
            "word_count": 200,
            "expected_dwell_seconds": 90.0,
            "dwell_seconds": 0,
            "view_count": 1,
            "is_stuck": False,
        }

    @pytest.mark.asyncio
    async def test_events_forwarded(self, settings, generator, units):
        events = []
        session = ReadingSession(
            settings=settings, generator=generator,
            on_event=lambda event, uid: events.append((event, uid)),
        )
        session.load_units(units, start_timer=False)
        session.apply_visibility([VisibilityChange("empty", 1.0)])
        session.tick()
        await settle()
        session.close()

        assert (CHECK_REQUESTED, "empty") in events
        assert (CHECK_READY, "empty") in events
        assert events.count((STATS_CHANGED, "")) == 2


class TestReplacement:
    @pytest.mark.asyncio
    async def test_replacing_units_resets_everything(self, session, units, generator):
        session.load_units(units, start_timer=False)
        session.set_silenced(True)
        session.apply_visibility([VisibilityChange("empty", 1.0)])
        session.tick()
        session.set_silenced(False)
        await settle()
        assert session.quiz_count == 1

        session.load_units([ContentUnit(id="fresh", text=words(10))], start_timer=False)
        snap = session.snapshot()
        assert list(snap["stats"]) == ["fresh"]
        assert snap["stats"]["fresh"]["dwell_seconds"] == 0
        assert snap["active_ids"] == []
        assert snap["checked_ids"] == []
        assert snap["quiz_count"] == 0
        assert snap["silenced"] is False
        assert snap["quiz_state"] == "idle"

    @pytest.mark.asyncio
    async def test_same_ids_can_be_checked_again_after_replacement(self, session, units, generator):
        session.load_units(units, start_timer=False)
        session.apply_visibility([VisibilityChange("empty", 1.0)])
        session.tick()
        await settle()

        session.load_units(units, start_timer=False)
        session.apply_visibility([VisibilityChange("empty", 1.0)])
        session.tick()
        await settle()
        assert generator.calls == ["empty", "empty"]

    @pytest.mark.asyncio
    async def test_old_timer_stops(self, fast_settings, generator, units):
        session = ReadingSession(settings=fast_settings, generator=generator)
        session.load_units(units)
        session.apply_visibility([VisibilityChange("long", 1.0)])
        await asyncio.sleep(0.05)

        old_store, old_timer = session.store, session.timer
        session.load_units([ContentUnit(id="other", text=words(5))])
        frozen = old_store.get("long").dwell_seconds
        assert frozen >= 1
        assert not old_timer.running

        await asyncio.sleep(0.05)
        assert old_store.get("long").dwell_seconds == frozen
        assert session.timer.running
        session.close()

    @pytest.mark.asyncio
    async def test_in_flight_request_cancelled(self, session, units):
        generator = FakeGenerator()
        generator.gate = asyncio.Event()
        session.generator = generator
        session.load_units(units, start_timer=False)
        session.apply_visibility([VisibilityChange("empty", 1.0)])
        session.tick()
        await settle()
        old = session.orchestrator

        session.load_units(units, start_timer=False)
        generator.gate.set()
        await settle()

        assert old.current_check is None
        assert session.quiz_count == 0
        assert session.quiz_state == QuizState.IDLE

    @pytest.mark.asyncio
    async def test_rejected_units_leave_session_running(self, session, units, generator):
        session.load_units(units, start_timer=False)
        session.apply_visibility([VisibilityChange("empty", 1.0)])

        duplicate = [ContentUnit(id="x", text="a"), ContentUnit(id="x", text="b")]
        with pytest.raises(TrackingError, match="Duplicate"):
            session.load_units(duplicate, start_timer=False)

        assert [u.id for u in session.units] == ["long", "short", "empty"]
        assert session.active_ids() == ["empty"]
        assert session.tick() == "empty"
        await settle()
        assert generator.calls == ["empty"]
        assert session.quiz_state == QuizState.SHOWING_CHECK

    @pytest.mark.asyncio
    async def test_rejected_units_keep_timer_running(self, fast_settings, generator, units):
        session = ReadingSession(settings=fast_settings, generator=generator)
        session.load_units(units)
        with pytest.raises(TrackingError):
            session.load_units([ContentUnit(id="x", text="a"), ContentUnit(id="x", text="b")])
        assert session.timer.running
        session.close()
