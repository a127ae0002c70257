"""Quiz orchestration state machine: idle → awaiting → showing-check → idle."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Callable, Optional, Protocol

from loguru import logger

from socraticreader.engine.quiz_generator import Check, CheckAnswer, fallback_check
from socraticreader.engine.stat_store import StatStore

MAX_QUIZZES_PER_SESSION = 3

CHECK_REQUESTED = "checkRequested"
CHECK_READY = "checkReady"


class QuizState(str, Enum):
    IDLE = "idle"
    AWAITING = "awaiting"
    SHOWING_CHECK = "showing-check"


class CheckSource(Protocol):
    async def generate(self, unit_text: str, unit_id: str) -> Check: ...


class QuizOrchestrator:
    """Decides when a stuck unit earns a comprehension check.

    Reads the Stat Store and owns only the checked set and session counters.
    A unit joins the checked set before its request is issued, so repeated
    re-evaluation can never produce a second request for it.
    """

    def __init__(
        self,
        store: StatStore,
        generator: CheckSource,
        max_quizzes: int = MAX_QUIZZES_PER_SESSION,
        on_event: Optional[Callable[[str, str], None]] = None,
    ):
        self.store = store
        self.generator = generator
        self.max_quizzes = max_quizzes
        self._on_event = on_event or (lambda event, unit_id: None)

        self.checked: set[str] = set()
        self.quiz_count = 0
        self.silenced = False
        self.check_in_flight = False
        self.current_check: Optional[Check] = None
        self.current_answer: Optional[CheckAnswer] = None
        self.answers: list[CheckAnswer] = []

        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self._unsubscribe = store.subscribe(self.evaluate)

    @property
    def state(self) -> QuizState:
        if self.check_in_flight:
            return QuizState.AWAITING
        if self.current_check is not None:
            return QuizState.SHOWING_CHECK
        return QuizState.IDLE

    @property
    def capped(self) -> bool:
        return self.quiz_count >= self.max_quizzes

    @property
    def suppressed(self) -> bool:
        return self.silenced or self.capped

    def pending_unit(self) -> Optional[str]:
        """First stuck unit (in store order) that has not been checked yet."""
        for unit_id in self.store.stuck_ids():
            if unit_id not in self.checked:
                return unit_id
        return None

    def evaluate(self) -> Optional[asyncio.Task]:
        """Issue a check request if every trigger condition holds.

        Safe to call at any time; calls while a request is in flight or a
        check is showing are no-ops and the pending unit waits for the next
        qualifying change.
        """
        if self._closed or self.state != QuizState.IDLE or self.suppressed:
            return None

        unit_id = self.pending_unit()
        if unit_id is None:
            return None

        self.checked.add(unit_id)
        self.check_in_flight = True
        logger.info("Requesting check for {} ({}/{})", unit_id, self.quiz_count + 1, self.max_quizzes)
        self._on_event(CHECK_REQUESTED, unit_id)

        self._task = asyncio.get_running_loop().create_task(self._request(unit_id))
        return self._task

    async def _request(self, unit_id: str) -> Check:
        try:
            check = await self.generator.generate(self.store.text(unit_id), unit_id)
        except Exception as e:
            logger.warning("Check generation for {} failed, using fallback: {}", unit_id, e)
            check = fallback_check(unit_id)

        if self._closed:
            return check

        self.check_in_flight = False
        self.quiz_count += 1
        self.current_check = check
        self.current_answer = None
        self._task = None
        self._on_event(CHECK_READY, unit_id)
        return check

    # --- Reader actions ---

    def set_silenced(self, silenced: bool) -> Optional[asyncio.Task]:
        self.silenced = silenced
        logger.debug("Silenced: {}", silenced)
        if not silenced:
            return self.evaluate()
        return None

    def toggle_silenced(self) -> bool:
        self.set_silenced(not self.silenced)
        return self.silenced

    def answer(self, selected_index: int) -> CheckAnswer:
        if self.current_check is None:
            raise ValueError("No check is being shown")
        check = self.current_check
        if not 0 <= selected_index < len(check.options):
            raise ValueError(f"Option index {selected_index} out of range")
        if self.current_answer is not None:
            raise ValueError(f"Check for {check.unit_id} was already answered")
        result = CheckAnswer(
            unit_id=check.unit_id,
            selected_index=selected_index,
            correct=check.is_correct(selected_index),
        )
        self.current_answer = result
        self.answers.append(result)
        return result

    def dismiss(self) -> Optional[asyncio.Task]:
        """Close the shown check and look for the next pending unit."""
        self.current_check = None
        self.current_answer = None
        return self.evaluate()

    def close(self) -> None:
        """Detach from the store and cancel any outstanding request."""
        self._closed = True
        self._unsubscribe()
        if self._task is not None:
            self._task.cancel()
            self._task = None
