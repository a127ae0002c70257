"""Stuck detection predicate."""

from __future__ import annotations

from socraticreader.engine.stat_store import UnitStats


def is_stuck(stats: UnitStats) -> bool:
    """True once dwell time strictly exceeds the expected reading time.

    Equal is not stuck: a 90s unit read for exactly 90s is on pace.
    """
    return stats.dwell_seconds > stats.expected_dwell_seconds
