"""Server handler: dispatches JSON-lines requests to the reading session."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from socraticreader.config.settings import Settings
from socraticreader.documents.registry import DocumentLibrary
from socraticreader.engine.document_loader import load_document, units_from_data
from socraticreader.engine.orchestrator import CHECK_READY, CheckSource
from socraticreader.engine.quiz_generator import Check
from socraticreader.engine.reading_session import STATS_CHANGED, ReadingSession
from socraticreader.engine.stat_store import UnitStats
from socraticreader.engine.visibility import VisibilityChange

from .protocol import Notification, UnknownMethodError


def _stats_to_dict(stats: UnitStats) -> dict:
    """Serialize UnitStats to a JSON-friendly dict."""
    return {
        "id": stats.id,
        "dwellSeconds": stats.dwell_seconds,
        "viewCount": stats.view_count,
        "isStuck": stats.is_stuck,
        "expectedDwellSeconds": stats.expected_dwell_seconds,
        "wordCount": stats.word_count,
    }


def _check_to_dict(check: Optional[Check]) -> Optional[dict]:
    if check is None:
        return None
    return {
        "unitId": check.unit_id,
        "question": check.question,
        "options": check.options,
        "correctOptionIndex": check.correct_option_index,
        "explanation": check.explanation,
        "fallback": check.fallback,
    }


class ServerHandler:
    """Routes incoming requests to session methods and returns result dicts."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        write_notification: Optional[Callable[[Notification], None]] = None,
        generator: Optional[CheckSource] = None,
        manual_ticks: bool = False,
    ):
        self.settings = settings or Settings.load()
        self._write_notification = write_notification or (lambda n: None)
        self.manual_ticks = manual_ticks

        self.library = DocumentLibrary()
        self.session = ReadingSession(
            settings=self.settings,
            generator=generator,
            on_event=self._on_session_event,
        )

    def _on_session_event(self, event: str, unit_id: str) -> None:
        if event == STATS_CHANGED:
            params = {
                "stats": [_stats_to_dict(s) for s in self.session.stats().values()],
                "activeIds": self.session.active_ids(),
            }
        elif event == CHECK_READY:
            params = {
                "unitId": unit_id,
                "check": _check_to_dict(self.session.orchestrator.current_check),
                "quizCount": self.session.quiz_count,
            }
        else:  # CHECK_REQUESTED
            params = {"unitId": unit_id}
        self._write_notification(Notification(event, params))

    async def dispatch(self, msg: dict) -> dict:
        """Route a request message to the appropriate handler method."""
        method = msg.get("method", "")
        params = msg.get("params", {})

        handler_map = {
            "listDocuments": self._list_documents,
            "loadDocument": self._load_document,
            "loadUnits": self._load_units,
            "visibility": self._visibility,
            "tick": self._tick,
            "setSilenced": self._set_silenced,
            "toggleSilenced": self._toggle_silenced,
            "getSnapshot": self._get_snapshot,
            "answerCheck": self._answer_check,
            "dismissCheck": self._dismiss_check,
        }

        handler = handler_map.get(method)
        if handler is None:
            raise UnknownMethodError(method)

        return await handler(params)

    def _snapshot(self) -> dict:
        session = self.session
        return {
            "stats": [_stats_to_dict(s) for s in session.stats().values()],
            "activeIds": session.active_ids(),
            "quizState": session.quiz_state.value,
            "quizCount": session.quiz_count,
            "maxQuizzes": session.orchestrator.max_quizzes,
            "silenced": session.silenced,
            "currentCheck": _check_to_dict(session.orchestrator.current_check),
        }

    async def _list_documents(self, params: dict) -> dict:
        return {
            "documents": [
                {"id": d.id, "title": d.title, "unitCount": len(d.units)}
                for d in self.library.list_documents()
            ]
        }

    async def _load_document(self, params: dict) -> dict:
        if "path" in params:
            document = load_document(Path(params["path"]))
        else:
            document_id = params["documentId"]
            document = self.library.get_document(document_id)
            if document is None:
                raise ValueError(f"Unknown document: {document_id}")

        self.session.load_units(document.units, start_timer=not self.manual_ticks)
        return {"documentId": document.id, "title": document.title, **self._snapshot()}

    async def _load_units(self, params: dict) -> dict:
        units = units_from_data(params.get("units", []))
        self.session.load_units(units, start_timer=not self.manual_ticks)
        return self._snapshot()

    async def _visibility(self, params: dict) -> dict:
        changes = [
            VisibilityChange(unit_id=str(c["id"]), ratio=c.get("ratio", 0))
            for c in params.get("changes", [])
        ]
        changes.extend(
            VisibilityChange(unit_id=str(uid), ratio=ratio)
            for uid, ratio in params.get("ratios", {}).items()
        )
        changed = self.session.apply_visibility(changes)
        return {"changed": changed, "activeIds": self.session.active_ids()}

    async def _tick(self, params: dict) -> dict:
        count = int(params.get("count", 1))
        if count < 1:
            raise ValueError("Tick count must be at least 1")
        accrued = [self.session.tick() for _ in range(count)]
        return {"accrued": accrued, **self._snapshot()}

    async def _set_silenced(self, params: dict) -> dict:
        self.session.set_silenced(bool(params["silenced"]))
        return {"silenced": self.session.silenced}

    async def _toggle_silenced(self, params: dict) -> dict:
        return {"silenced": self.session.toggle_silenced()}

    async def _get_snapshot(self, params: dict) -> dict:
        return self._snapshot()

    async def _answer_check(self, params: dict) -> dict:
        check = self.session.orchestrator.current_check
        answer = self.session.answer_check(int(params["index"]))
        return {
            "correct": answer.correct,
            "correctOptionIndex": check.correct_option_index,
            "explanation": check.explanation,
        }

    async def _dismiss_check(self, params: dict) -> dict:
        self.session.dismiss_check()
        return {"quizState": self.session.quiz_state.value}
