"""Reading workspace: scrollable document, stats panel and quiz popup."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, VerticalScroll
from textual.screen import Screen
from textual.widgets import Footer, Header

from socraticreader.app.widgets.quiz_popup import QuizPopup
from socraticreader.app.widgets.stats_pane import StatsPane
from socraticreader.app.widgets.unit_view import UnitView
from socraticreader.config.settings import Settings
from socraticreader.engine.document_loader import Document
from socraticreader.engine.orchestrator import CHECK_READY, CheckSource
from socraticreader.engine.reading_session import ReadingSession
from socraticreader.engine.visibility import VisibilityChange

# How often the viewport is sampled for visibility ratios
VISIBILITY_SAMPLE_SECONDS = 0.25


class ReaderScreen(Screen):
    """Reads a document while the engine watches for struggle."""

    BINDINGS = [
        Binding("d", "toggle_silence", "Do not disturb", show=True),
        Binding("s", "toggle_stats", "Stats", show=True),
        Binding("escape", "dismiss_check", "Close check", show=False),
    ] + [
        Binding(str(n), f"answer({n - 1})", show=False) for n in range(1, 10)
    ]

    def __init__(
        self,
        document: Document,
        settings: Settings,
        generator: CheckSource | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.document = document
        self.session = ReadingSession(
            settings=settings,
            generator=generator,
            on_event=self._on_session_event,
        )
        self._last_ratios: dict[str, float] = {}

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="reader-layout"):
            with VerticalScroll(id="document"):
                for i, unit in enumerate(self.document.units):
                    yield UnitView(unit, i)
            yield StatsPane()
        yield QuizPopup()
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = self.document.title
        self.session.load_units(self.document.units)
        self.set_interval(VISIBILITY_SAMPLE_SECONDS, self._sample_visibility)
        self._refresh_views()
        self.query_one("#document").focus()

    def on_unmount(self) -> None:
        self.session.close()

    # ── Engine wiring ──

    def _sample_visibility(self) -> None:
        """Feed the ratio of each unit inside the viewport to the tracker."""
        document = self.query_one("#document", VerticalScroll)
        top = document.scroll_y
        bottom = top + document.scrollable_content_region.height

        changes: list[VisibilityChange] = []
        for view in document.query(UnitView):
            region = view.virtual_region
            overlap = min(bottom, region.bottom) - max(top, region.y)
            ratio = max(0, overlap) / region.height if region.height else 0.0
            if ratio != self._last_ratios.get(view.unit_id, 0.0):
                self._last_ratios[view.unit_id] = ratio
                changes.append(VisibilityChange(view.unit_id, ratio))

        if changes:
            self.session.apply_visibility(changes)

    def _on_session_event(self, event: str, unit_id: str) -> None:
        if not self.is_mounted:
            return
        if event == CHECK_READY and self.session.orchestrator.current_check:
            self.query_one(QuizPopup).show_check(self.session.orchestrator.current_check)
        self._refresh_views()

    def _refresh_views(self) -> None:
        stats = self.session.stats()
        active = set(self.session.active_ids())
        checked = self.session.orchestrator.checked
        for view in self.query(UnitView):
            view.update_stats(
                stats.get(view.unit_id), view.unit_id in active, view.unit_id in checked,
            )
        self.query_one(StatsPane).refresh_from(self.session)

    # ── Actions ──

    def action_toggle_silence(self) -> None:
        silenced = self.session.toggle_silenced()
        self.notify("Do not disturb" if silenced else "Checks enabled")
        self._refresh_views()

    def action_toggle_stats(self) -> None:
        self.query_one(StatsPane).toggle_class("hidden")

    def action_answer(self, index: int) -> None:
        popup = self.query_one(QuizPopup)
        check = self.session.orchestrator.current_check
        if check is None or popup.check is None or index >= len(check.options):
            return
        if self.session.orchestrator.current_answer is not None:
            return
        popup.show_answer(self.session.answer_check(index))

    def action_dismiss_check(self) -> None:
        self.query_one(QuizPopup).hide()
        self.session.dismiss_check()
        self._refresh_views()
