"""Document discovery and registry."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from socraticreader.engine.document_loader import (
    SUPPORTED_SUFFIXES,
    Document,
    DocumentError,
    load_document,
)

DEMO_DOCUMENT_ID = "socratic_method"


class DocumentLibrary:
    """Discovers and loads documents from the documents directory."""

    def __init__(self, documents_dir: Path | None = None):
        self.documents_dir = documents_dir or (
            Path(__file__).parent
        )

    def list_documents(self) -> list[Document]:
        """Load every readable document in the directory."""
        documents = []
        for path in sorted(self.documents_dir.iterdir()):
            if not path.is_file() or path.suffix.lower() not in SUPPORTED_SUFFIXES:
                continue
            try:
                documents.append(load_document(path))
            except DocumentError as e:
                logger.warning("Skipping {}: {}", path.name, e)
        return documents

    def get_document(self, document_id: str) -> Document | None:
        for document in self.list_documents():
            if document.id == document_id:
                return document
        return None

    def demo(self) -> Document:
        document = self.get_document(DEMO_DOCUMENT_ID)
        if document is None:
            raise DocumentError(f"Demo document {DEMO_DOCUMENT_ID} is missing")
        return document
