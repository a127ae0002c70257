"""SocraticReader main Textual application."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from textual.app import App

from socraticreader.app.screens.reader_screen import ReaderScreen
from socraticreader.config.settings import Settings
from socraticreader.documents.registry import DocumentLibrary
from socraticreader.engine.document_loader import load_document
from socraticreader.engine.quiz_generator import QuizGenerator


class SocraticReaderApp(App):
    """Terminal reader that checks comprehension when you linger."""

    TITLE = "Socratic Reader"

    CSS_PATH = Path(__file__).parent / "css" / "socraticreader.tcss"

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, document_path: Optional[Path] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.settings = Settings.load()
        self.generator = QuizGenerator(self.settings.quiz)
        self.library = DocumentLibrary()
        self.document_path = document_path

    def on_mount(self) -> None:
        if self.document_path is not None:
            document = load_document(self.document_path)
        else:
            document = self.library.demo()
        self.push_screen(
            ReaderScreen(document=document, settings=self.settings, generator=self.generator)
        )
