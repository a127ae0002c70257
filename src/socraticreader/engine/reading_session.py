"""Reading session: owns the tracking components for one content-unit list."""

from __future__ import annotations

import asyncio
from dataclasses import asdict
from typing import Callable, Iterable, Optional

from loguru import logger

from socraticreader.config.settings import Settings
from socraticreader.engine.document_loader import ContentUnit
from socraticreader.engine.dwell_timer import DwellTimer
from socraticreader.engine.orchestrator import CheckSource, QuizOrchestrator, QuizState
from socraticreader.engine.quiz_generator import CheckAnswer, QuizGenerator
from socraticreader.engine.stat_store import StatStore, UnitStats
from socraticreader.engine.visibility import VisibilityChange, VisibilityTracker

STATS_CHANGED = "statsChanged"


class ReadingSession:
    """Wires Stat Store, tracker, timer and orchestrator together.

    Supplying a new unit list tears the previous components down before new
    ones are built, so no stale timer or request can touch the new state.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        generator: Optional[CheckSource] = None,
        on_event: Optional[Callable[[str, str], None]] = None,
    ):
        self.settings = settings or Settings.load()
        self.generator = generator or QuizGenerator(self.settings.quiz)
        self._on_event = on_event or (lambda event, unit_id: None)

        self.units: list[ContentUnit] = []
        self.store = StatStore([])
        self.tracker = VisibilityTracker(self.store)
        self.timer = DwellTimer(self.store, interval=self.settings.tracker.tick_interval)
        self.orchestrator = self._build_orchestrator()

    def _build_orchestrator(self) -> QuizOrchestrator:
        return QuizOrchestrator(
            store=self.store,
            generator=self.generator,
            max_quizzes=self.settings.tracker.max_quizzes_per_session,
            on_event=self._on_event,
        )

    def load_units(self, units: Iterable[ContentUnit], start_timer: bool = True) -> None:
        """Replace the content-unit list and reset all tracking state.

        The new store is built first; if the units are rejected the current
        session keeps running untouched.
        """
        units = list(units)
        tracker_cfg = self.settings.tracker
        store = StatStore(
            units,
            reading_rate_wpm=tracker_cfg.reading_rate_wpm,
            slack_factor=tracker_cfg.slack_factor,
        )

        self.close()
        self.units = units
        self.store = store
        self.tracker = VisibilityTracker(self.store)
        self.timer = DwellTimer(self.store, interval=tracker_cfg.tick_interval)
        self.orchestrator = self._build_orchestrator()
        self.store.subscribe(lambda: self._on_event(STATS_CHANGED, ""))
        logger.info("Loaded {} content units", len(self.units))

        if start_timer:
            self.timer.start()

    def close(self) -> None:
        self.timer.stop()
        self.orchestrator.close()
        self.store.clear_listeners()

    # --- Event sources ---

    def apply_visibility(self, changes: Iterable[VisibilityChange]) -> bool:
        return self.tracker.apply(changes)

    def tick(self) -> Optional[str]:
        return self.timer.tick()

    # --- Reader controls ---

    @property
    def silenced(self) -> bool:
        return self.orchestrator.silenced

    def set_silenced(self, silenced: bool) -> Optional[asyncio.Task]:
        return self.orchestrator.set_silenced(silenced)

    def toggle_silenced(self) -> bool:
        return self.orchestrator.toggle_silenced()

    def answer_check(self, selected_index: int) -> CheckAnswer:
        return self.orchestrator.answer(selected_index)

    def dismiss_check(self) -> Optional[asyncio.Task]:
        return self.orchestrator.dismiss()

    # --- Read-only views ---

    @property
    def quiz_state(self) -> QuizState:
        return self.orchestrator.state

    @property
    def quiz_count(self) -> int:
        return self.orchestrator.quiz_count

    def stats(self) -> dict[str, UnitStats]:
        return self.store.snapshot()

    def active_ids(self) -> list[str]:
        return self.store.active_ids()

    def snapshot(self) -> dict:
        """Plain-dict view for presentation layers."""
        orchestrator = self.orchestrator
        check = orchestrator.current_check
        return {
            "stats": {uid: asdict(s) for uid, s in self.store.snapshot().items()},
            "active_ids": self.store.active_ids(),
            "quiz_state": orchestrator.state.value,
            "quiz_count": orchestrator.quiz_count,
            "max_quizzes": orchestrator.max_quizzes,
            "silenced": orchestrator.silenced,
            "checked_ids": sorted(orchestrator.checked),
            "current_check": asdict(check) if check else None,
        }
