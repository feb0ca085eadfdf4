# Text extraction helpers for binary file formats (Drive downloads and direct uploads)

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from docx import Document as DocxDocument
from pptx import Presentation
from pypdf import PdfReader

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"


def extract_text(path: str | Path) -> str:
    p = Path(path)
    return extract_text_from_bytes(p.read_bytes(), p.name)


def extract_text_from_bytes(data: bytes, filename: str) -> str:
    suffix = Path(filename).suffix.lower()
    if suffix == ".pdf":
        return extract_text_from_pdf(data)
    if suffix == ".docx":
        return extract_text_from_docx(data)
    if suffix == ".pptx":
        return extract_text_from_pptx(data)
    # Fallback for txt and others
    return decode_text(data)


def decode_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def join_text_runs(runs: Iterable[Mapping[str, Any]]) -> str:
    """Join positioned text runs into lines.

    Each run is ``{"str": text, "transform": [a, b, c, d, x, y]}``. A run on the same
    baseline as the previous one (identical ``y``) is appended as-is; any change of
    ``y`` starts a new line.
    """
    parts: list[str] = []
    last_y = None
    for run in runs:
        y = run["transform"][5]
        if last_y is None or y == last_y:
            parts.append(run["str"])
        else:
            parts.append("\n" + run["str"])
        last_y = y
    return "".join(parts)


def _page_runs(page) -> list[dict]:
    runs: list[dict] = []

    def visitor(text, cm, tm, font_dict, font_size):
        text = text.strip("\n")
        if not text:
            return
        # Text space -> user space, so runs on one visual line share a y
        x = tm[4] * cm[0] + tm[5] * cm[2] + cm[4]
        y = tm[4] * cm[1] + tm[5] * cm[3] + cm[5]
        runs.append({"str": text, "transform": [tm[0], tm[1], tm[2], tm[3], x, y]})

    page.extract_text(visitor_text=visitor)
    return runs


def extract_text_from_pdf(data: bytes, max_pages: int | None = None) -> str:
    reader = PdfReader(io.BytesIO(data))
    pages = reader.pages if max_pages is None else reader.pages[:max_pages]
    texts = [join_text_runs(_page_runs(page)) for page in pages]
    logger.debug(f"Extracted text from {len(texts)} PDF pages")
    return PAGE_SEPARATOR.join(texts)


def extract_text_from_docx(data: bytes) -> str:
    doc = DocxDocument(io.BytesIO(data))
    return "\n".join(par.text for par in doc.paragraphs)


def extract_text_from_pptx(data: bytes) -> str:
    prs = Presentation(io.BytesIO(data))
    parts: list[str] = []
    for slide in prs.slides:
        for shape in slide.shapes:
            if hasattr(shape, "text"):
                parts.append(shape.text)
    return "\n".join(parts)
