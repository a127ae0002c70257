"""Shared fixtures for SocraticReader tests."""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest
import yaml

from socraticreader.config.settings import Settings
from socraticreader.engine.document_loader import ContentUnit
from socraticreader.engine.quiz_generator import Check, CheckGenerationError


def words(n: int) -> str:
    return " ".join(["word"] * n)


async def settle(rounds: int = 5) -> None:
    """Let pending check-generation tasks run to completion."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeGenerator:
    """Stands in for the check-generation service.

    Set ``gate`` to an asyncio.Event to hold requests in flight until it is set.
    """

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[str] = []
        self.texts: list[str] = []
        self.gate: Optional[asyncio.Event] = None

    async def generate(self, unit_text: str, unit_id: str) -> Check:
        self.calls.append(unit_id)
        self.texts.append(unit_text)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise CheckGenerationError("provider unavailable")
        return Check(
            unit_id=unit_id,
            question=f"What does {unit_id} say?",
            options=["Nothing", "Something"],
            correct_option_index=1,
            explanation="It says something.",
        )


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture
def units():
    """Three units: 200 words (90s), 2 words (0.9s), empty (0s)."""
    return [
        ContentUnit(id="long", text=words(200)),
        ContentUnit(id="short", text=words(2)),
        ContentUnit(id="empty", text=""),
    ]


@pytest.fixture
def sample_documents_dir(tmp_path):
    """Create a documents directory with one YAML, one Markdown and one unsupported file."""
    docs_dir = tmp_path / "documents"
    docs_dir.mkdir()

    yaml_doc = {
        "title": "Test Article",
        "units": [
            {"id": "intro", "title": "Intro", "content": words(20)},
            {"id": "body", "content": words(40)},
        ],
    }
    with open(docs_dir / "test_article.yaml", "w") as f:
        yaml.dump(yaml_doc, f)

    (docs_dir / "notes.md").write_text(
        "# Notes\n\n"
        + "This first paragraph is comfortably longer than fifty characters in total."
        + "\n\n"
        + "And so is this second paragraph, which keeps going well past the limit."
        + "\n"
    )
    (docs_dir / "ignored.epub").write_bytes(b"PK\x03\x04")
    return docs_dir
