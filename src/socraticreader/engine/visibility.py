"""Visibility tracking: turns viewport ratio changes into the active set."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from loguru import logger

from socraticreader.engine.stat_store import StatStore


@dataclass
class VisibilityChange:
    unit_id: str
    ratio: float  # 0 (or absent) means the unit left the viewport


def _clamp_ratio(ratio) -> float:
    try:
        value = float(ratio)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value) or value <= 0:
        return 0.0
    return min(value, 1.0)


class VisibilityTracker:
    """Applies batches of visibility changes to the Stat Store.

    A batch is applied in full before listeners are notified, so nobody ever
    sees half of a scroll event. Only presence is tracked here; dwell and
    stuck state belong to the Dwell Timer.
    """

    def __init__(self, store: StatStore):
        self.store = store

    def apply(self, changes: Iterable[VisibilityChange]) -> bool:
        """Apply a batch of changes. Returns True if the active set changed."""
        changed = False
        for change in changes:
            if change.unit_id not in self.store:
                logger.debug("Ignoring visibility change for unknown unit {}", change.unit_id)
                continue

            ratio = _clamp_ratio(change.ratio)
            if ratio > 0:
                previous = self.store.ratio(change.unit_id)
                self.store.activate(change.unit_id, ratio)
                changed = changed or previous != ratio
            else:
                changed = self.store.deactivate(change.unit_id) or changed

        if changed:
            self.store.notify()
        return changed

    def update(self, ratios: dict[str, float]) -> bool:
        """Convenience form of :meth:`apply` taking ``{unit_id: ratio}``."""
        return self.apply(VisibilityChange(uid, r) for uid, r in ratios.items())
