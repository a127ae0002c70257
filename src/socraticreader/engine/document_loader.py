"""Document parser for SocraticReader.

YAML files carry explicit units. Every other format is reduced to plain text
and split into paragraphs: text and Markdown as-is, HTML without its scripts
and styles, DOCX paragraph by paragraph and PDF page by page.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

MIN_SECTION_LENGTH = 50  # paragraphs this short are headings or noise

TEXT_SUFFIXES = (".txt", ".md", ".markdown")
YAML_SUFFIXES = (".yaml", ".yml")
HTML_SUFFIXES = (".html", ".htm")
DOCX_SUFFIXES = (".docx",)
PDF_SUFFIXES = (".pdf",)
SUPPORTED_SUFFIXES = (
    YAML_SUFFIXES + TEXT_SUFFIXES + HTML_SUFFIXES + DOCX_SUFFIXES + PDF_SUFFIXES
)

# Elements whose text forms one paragraph when they hold no nested block
_HTML_BLOCKS = ["p", "li", "pre", "blockquote", "h1", "h2", "h3", "h4", "h5", "h6", "td"]


class DocumentError(Exception):
    """Raised when a document cannot be turned into content units."""


@dataclass
class ContentUnit:
    id: str
    text: str
    title: Optional[str] = None


@dataclass
class Document:
    id: str
    title: str
    units: list[ContentUnit] = field(default_factory=list)
    path: Optional[Path] = None


def split_paragraphs(text: str) -> list[ContentUnit]:
    """Split raw text on blank lines into ``section_N`` units.

    Short paragraphs are dropped. If nothing survives, the whole text becomes
    a single unit so that a document without blank lines is still readable.
    """
    normalized = text.replace("\r\n", "\n")
    units: list[ContentUnit] = []
    for para in re.split(r"\n\s*\n", normalized):
        clean = para.strip()
        if len(clean) > MIN_SECTION_LENGTH:
            units.append(ContentUnit(id=f"section_{len(units) + 1}", text=clean))

    if not units and text.strip():
        units.append(ContentUnit(id="section_1", text=text.strip()))
    return units


def units_from_data(raw) -> list[ContentUnit]:
    """Build units from a list of ``{id, title, content}`` mappings."""
    if not isinstance(raw, list):
        raise DocumentError("Expected a list of units")

    units: list[ContentUnit] = []
    seen: set[str] = set()
    for i, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            raise DocumentError(f"Unit {i} is not a mapping")
        unit_id = str(item.get("id") or f"section_{i}")
        if unit_id in seen:
            raise DocumentError(f"Duplicate unit id: {unit_id}")
        seen.add(unit_id)
        units.append(ContentUnit(
            id=unit_id,
            text=str(item.get("content", item.get("text", "")) or ""),
            title=item.get("title"),
        ))
    return units


def html_to_text(markup: str) -> tuple[Optional[str], str]:
    """Return the page title and its readable text, one paragraph per block."""
    from bs4 import BeautifulSoup

    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()

    title = None
    if soup.title is not None:
        title = soup.title.get_text(strip=True) or None
        soup.title.decompose()

    blocks = [
        el.get_text(" ", strip=True)
        for el in soup.find_all(_HTML_BLOCKS)
        if el.find(_HTML_BLOCKS) is None
    ]
    if any(blocks):
        return title, "\n\n".join(b for b in blocks if b)

    body = soup.body or soup
    return title, body.get_text("\n")


def _docx_text(path: Path) -> str:
    import docx

    document = docx.Document(str(path))
    return "\n\n".join(p.text for p in document.paragraphs)


def _pdf_text(path: Path) -> str:
    from pypdf import PdfReader

    reader = PdfReader(str(path))
    return "\n\n".join(page.extract_text() or "" for page in reader.pages)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentError(f"Cannot read {path}: {e}") from e


def _default_title(path: Path) -> str:
    return path.stem.replace("_", " ").title()


def load_document(path: Path) -> Document:
    """Load a document file into ordered content units."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise DocumentError(f"Unsupported document type: {suffix or path.name}")
    if not path.is_file():
        raise DocumentError(f"Cannot read {path}: no such file")

    title: Optional[str] = None
    if suffix in YAML_SUFFIXES:
        try:
            data = yaml.safe_load(_read_text(path))
        except yaml.YAMLError as e:
            raise DocumentError(f"Invalid YAML in {path}: {e}") from e

        if isinstance(data, dict):
            title = data.get("title")
            units = units_from_data(data.get("units", []))
        else:
            units = units_from_data(data)
        return Document(id=path.stem, title=title or path.stem, units=units, path=path)

    if suffix in TEXT_SUFFIXES:
        text = _read_text(path)
    elif suffix in HTML_SUFFIXES:
        title, text = html_to_text(_read_text(path))
    else:
        extract = _pdf_text if suffix in PDF_SUFFIXES else _docx_text
        try:
            text = extract(path)
        except Exception as e:
            raise DocumentError(f"Cannot extract text from {path}: {e}") from e

    return Document(
        id=path.stem,
        title=title or _default_title(path),
        units=split_paragraphs(text),
        path=path,
    )
