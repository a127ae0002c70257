"""Side panel with session state and per-unit tracking stats."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Static

from socraticreader.engine.orchestrator import QuizState
from socraticreader.engine.reading_session import ReadingSession

_STATE_LABELS = {
    QuizState.IDLE: "Idle",
    QuizState.AWAITING: "Generating question...",
    QuizState.SHOWING_CHECK: "Showing check",
}


class StatsPane(Vertical):
    """System state: quiz count, orchestrator state, silence mode, unit stats."""

    def __init__(self, **kwargs) -> None:
        super().__init__(id="stats-pane", **kwargs)
        self.border_title = "System State"

    def compose(self) -> ComposeResult:
        yield Static("", id="session-state")
        yield Static("", id="unit-stats")

    def refresh_from(self, session: ReadingSession) -> None:
        mode = "[red]Silent[/]" if session.silenced else "[green]Active[/]"
        self.query_one("#session-state", Static).update(
            f"Quizzes: {session.quiz_count}/{session.orchestrator.max_quizzes}\n"
            f"Status: {_STATE_LABELS[session.quiz_state]}\n"
            f"Mode: {mode}"
        )

        active = set(session.active_ids())
        lines = []
        for stats in session.stats().values():
            marker = "▶" if stats.id in active else " "
            flag = " [orange1]stuck[/]" if stats.is_stuck else ""
            lines.append(
                f"{marker} {stats.id}: {stats.dwell_seconds}/"
                f"{stats.expected_dwell_seconds:.0f}s  views {stats.view_count}{flag}"
            )
        self.query_one("#unit-stats", Static).update("\n".join(lines))
