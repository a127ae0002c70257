"""Quiz popup showing a comprehension check and the reader's answer."""

from __future__ import annotations

from typing import Optional

from textual.app import ComposeResult
from textual.containers import Vertical, VerticalScroll
from textual.widgets import Static

from socraticreader.engine.quiz_generator import Check, CheckAnswer


class QuizPopup(Vertical):
    """Floating knowledge-check panel, one check at a time."""

    def __init__(self, **kwargs) -> None:
        super().__init__(id="quiz-popup", **kwargs)
        self.border_title = "🧠 Knowledge Check"
        self.check: Optional[Check] = None

    def compose(self) -> ComposeResult:
        yield Static("", id="quiz-question")
        yield VerticalScroll(id="quiz-options")
        yield Static("", id="quiz-result")

    def show_check(self, check: Check) -> None:
        self.check = check
        self.query_one("#quiz-question", Static).update(f"[bold]{check.question}[/]")
        self.query_one("#quiz-result", Static).update(
            "[dim]Press 1-9 to answer, Esc to close[/]"
        )

        container = self.query_one("#quiz-options", VerticalScroll)
        container.remove_children()
        for i, option in enumerate(check.options):
            container.mount(Static(f"  [bold]{i + 1}.[/] {option}", classes="quiz-option"))

        self.add_class("visible")

    def show_answer(self, answer: CheckAnswer) -> None:
        if self.check is None:
            return
        options = list(self.query(".quiz-option").results(Static))
        for i, widget in enumerate(options):
            widget.set_class(i == self.check.correct_option_index, "correct")
            widget.set_class(i == answer.selected_index and not answer.correct, "wrong")

        headline = "[green bold]Correct![/]" if answer.correct else "[red bold]Not quite.[/]"
        self.query_one("#quiz-result", Static).update(
            f"{headline}\n{self.check.explanation}\n\n[dim]Esc: continue reading[/]"
        )

    def hide(self) -> None:
        self.check = None
        self.remove_class("visible")
