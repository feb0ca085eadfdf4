from __future__ import annotations
from enum import Enum
from typing import Optional

GOOGLE_DOC = "application/vnd.google-apps.document"
GOOGLE_SHEET = "application/vnd.google-apps.spreadsheet"
GOOGLE_SLIDES = "application/vnd.google-apps.presentation"
PDF = "application/pdf"
PLAIN_TEXT = "text/plain"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
MS_WORD = "application/msword"
MS_EXCEL = "application/vnd.ms-excel"
MS_POWERPOINT = "application/vnd.ms-powerpoint"


class DocumentKind(str, Enum):
    RICH_DOCUMENT = "rich_document"
    SPREADSHEET = "spreadsheet"
    SLIDES = "slides"
    PDF = "pdf"
    PLAIN_TEXT = "plain_text"
    OFFICE_BINARY = "office_binary"
    UNSUPPORTED = "unsupported"


_KIND_BY_MIME = {
    GOOGLE_DOC: DocumentKind.RICH_DOCUMENT,
    GOOGLE_SHEET: DocumentKind.SPREADSHEET,
    GOOGLE_SLIDES: DocumentKind.SLIDES,
    PDF: DocumentKind.PDF,
    PLAIN_TEXT: DocumentKind.PLAIN_TEXT,
    DOCX: DocumentKind.OFFICE_BINARY,
    XLSX: DocumentKind.OFFICE_BINARY,
    PPTX: DocumentKind.OFFICE_BINARY,
    MS_WORD: DocumentKind.OFFICE_BINARY,
    MS_EXCEL: DocumentKind.OFFICE_BINARY,
    MS_POWERPOINT: DocumentKind.OFFICE_BINARY,
}

# Office formats we can actually turn into text
EXTRACTABLE_OFFICE_TYPES = frozenset({DOCX})

# What the listing query asks Drive for: everything that yields real text
LISTABLE_MIME_TYPES = (GOOGLE_DOC, GOOGLE_SHEET, GOOGLE_SLIDES, PDF, PLAIN_TEXT, DOCX)


def classify(mime_type: Optional[str]) -> DocumentKind:
    if not mime_type:
        return DocumentKind.UNSUPPORTED
    return _KIND_BY_MIME.get(mime_type, DocumentKind.UNSUPPORTED)
