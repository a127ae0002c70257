"""A single content unit rendered inside the document pane."""

from __future__ import annotations

from typing import Optional

from textual.widgets import Static

from socraticreader.engine.document_loader import ContentUnit
from socraticreader.engine.stat_store import UnitStats


class UnitView(Static):
    """Paragraph widget whose border reflects focus, struggle and quiz state."""

    def __init__(self, unit: ContentUnit, index: int, **kwargs) -> None:
        super().__init__(self._render_text(unit), id=f"unit-{index}", classes="unit", **kwargs)
        self.unit = unit

    @property
    def unit_id(self) -> str:
        return self.unit.id

    @staticmethod
    def _render_text(unit: ContentUnit, footer: str = "") -> str:
        parts = []
        if unit.title:
            parts.append(f"[bold]{unit.title}[/]\n\n")
        parts.append(unit.text)
        if footer:
            parts.append(f"\n\n[dim]{footer}[/]")
        return "".join(parts)

    def update_stats(
        self, stats: Optional[UnitStats], active: bool, checked: bool,
    ) -> None:
        self.set_class(active, "active")
        self.set_class(bool(stats and stats.is_stuck), "stuck")
        self.set_class(checked, "checked")

        footer = ""
        if stats is not None:
            footer = f"⏱ {stats.dwell_seconds}s  Limit: {round(stats.expected_dwell_seconds)}s"
            if stats.is_stuck:
                footer += "  [orange1 bold]Detected struggle[/]"
            if checked:
                footer += "  [green bold]✓ Quizzed[/]"
        self.update(self._render_text(self.unit, footer))
