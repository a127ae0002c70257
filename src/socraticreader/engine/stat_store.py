"""Authoritative per-unit tracking state for one content-unit list."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional

from loguru import logger

from socraticreader.engine.document_loader import ContentUnit

READING_RATE_WPM = 200
SLACK_FACTOR = 1.5


class TrackingError(Exception):
    """Raised when a mutation would break a tracking invariant."""


def expected_dwell_seconds(
    word_count: int,
    reading_rate_wpm: float = READING_RATE_WPM,
    slack_factor: float = SLACK_FACTOR,
) -> float:
    return (word_count / reading_rate_wpm) * 60 * slack_factor


@dataclass
class UnitStats:
    id: str
    word_count: int
    expected_dwell_seconds: float
    dwell_seconds: int = 0
    view_count: int = 0
    is_stuck: bool = False


class StatStore:
    """Single source of truth for dwell, view and visibility state.

    The Visibility Tracker writes view counts and the active set; the Dwell
    Timer writes dwell time and the stuck latch. Everyone else reads copies.
    Listeners are notified once per applied batch or tick, never mid-batch.
    """

    def __init__(
        self,
        units: Iterable[ContentUnit],
        reading_rate_wpm: float = READING_RATE_WPM,
        slack_factor: float = SLACK_FACTOR,
    ):
        self._stats: dict[str, UnitStats] = {}
        self._texts: dict[str, str] = {}
        for unit in units:
            if unit.id in self._stats:
                raise TrackingError(f"Duplicate unit id: {unit.id}")
            word_count = len(unit.text.split())
            self._stats[unit.id] = UnitStats(
                id=unit.id,
                word_count=word_count,
                expected_dwell_seconds=expected_dwell_seconds(
                    word_count, reading_rate_wpm, slack_factor,
                ),
            )
            self._texts[unit.id] = unit.text

        # Insertion order doubles as the primary-unit tie-break
        self._active: dict[str, float] = {}
        self._listeners: list[Callable[[], None]] = []

    def __contains__(self, unit_id: object) -> bool:
        return unit_id in self._stats

    def __len__(self) -> int:
        return len(self._stats)

    # --- Reads ---

    def ids(self) -> list[str]:
        return list(self._stats)

    def get(self, unit_id: str) -> Optional[UnitStats]:
        stats = self._stats.get(unit_id)
        return replace(stats) if stats else None

    def text(self, unit_id: str) -> str:
        return self._texts[unit_id]

    def snapshot(self) -> dict[str, UnitStats]:
        return {uid: replace(s) for uid, s in self._stats.items()}

    def active_ids(self) -> list[str]:
        return list(self._active)

    def active_ratios(self) -> list[tuple[str, float]]:
        return list(self._active.items())

    def is_active(self, unit_id: str) -> bool:
        return unit_id in self._active

    def ratio(self, unit_id: str) -> float:
        return self._active.get(unit_id, 0.0)

    def stuck_ids(self) -> list[str]:
        return [uid for uid, s in self._stats.items() if s.is_stuck]

    # --- Visibility Tracker writes ---

    def activate(self, unit_id: str, ratio: float) -> bool:
        """Record a unit as visible. Returns True on a not-visible → visible transition."""
        if unit_id not in self._stats:
            return False
        entered = unit_id not in self._active
        self._active[unit_id] = ratio
        if entered:
            self._stats[unit_id].view_count += 1
        return entered

    def deactivate(self, unit_id: str) -> bool:
        return self._active.pop(unit_id, None) is not None

    # --- Dwell Timer writes ---

    def add_dwell(self, unit_id: str, seconds: int = 1) -> UnitStats:
        stats = self._stats[unit_id]
        if stats.is_stuck:
            raise TrackingError(f"Dwell time of stuck unit {unit_id} is frozen")
        stats.dwell_seconds += seconds
        return replace(stats)

    def mark_stuck(self, unit_id: str) -> None:
        """One-way latch: a unit can only ever become stuck."""
        stats = self._stats[unit_id]
        if stats.is_stuck:
            return
        if not stats.dwell_seconds > stats.expected_dwell_seconds:
            raise TrackingError(
                f"Unit {unit_id} has not exceeded its expected dwell time"
            )
        stats.is_stuck = True

    # --- Change notification ---

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        """Call every listener, logging any that raise."""
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Stat Store listener {!r} failed", listener)

    def clear_listeners(self) -> None:
        self._listeners.clear()
