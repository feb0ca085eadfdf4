from __future__ import annotations
from typing import Iterable, Optional

from connectors.google.mime import LISTABLE_MIME_TYPES


def escape_query_value(value: str) -> str:
    """Escape a literal for use inside single quotes in a Drive ``q`` expression."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def build_drive_query(
    text: Optional[str] = None,
    *,
    mime_types: Iterable[str] = LISTABLE_MIME_TYPES,
    full_text: bool = True,
) -> str:
    """Build a Drive files.list ``q`` string.

    ``(name contains 'x' or fullText contains 'x') and (mimeType = 'a' or ...) and trashed = false``
    """
    clauses: list[str] = []
    text = (text or "").strip()
    if text:
        literal = escape_query_value(text)
        match = f"name contains '{literal}'"
        if full_text:
            match = f"({match} or fullText contains '{literal}')"
        clauses.append(match)
    mime_clause = " or ".join(f"mimeType = '{escape_query_value(m)}'" for m in mime_types)
    if mime_clause:
        clauses.append(f"({mime_clause})")
    clauses.append("trashed = false")
    return " and ".join(clauses)
