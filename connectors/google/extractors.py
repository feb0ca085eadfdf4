"""Text extraction for Google-native structured documents (Docs and Sheets API bodies)."""

from __future__ import annotations
from typing import Any, Iterable


def extract_text_from_doc(content: Iterable[dict[str, Any]]) -> str:
    """Concatenate ``textRun.content`` across a Docs API ``body.content`` tree.

    Table cells hold their own structural elements and are walked the same way.
    """
    parts: list[str] = []
    for element in content or []:
        paragraph = element.get("paragraph")
        if paragraph:
            for item in paragraph.get("elements") or []:
                text = (item.get("textRun") or {}).get("content")
                if text:
                    parts.append(text)
        table = element.get("table")
        if table:
            for row in table.get("tableRows") or []:
                for cell in row.get("tableCells") or []:
                    parts.append(extract_text_from_doc(cell.get("content") or []))
    return "".join(parts)


def extract_text_from_sheet(sheets: Iterable[dict[str, Any]]) -> str:
    """Flatten the first grid range of every sheet: cells joined by tab, rows by newline.

    Empty cells are dropped and rows with no values are skipped.
    """
    lines: list[str] = []
    for sheet in sheets or []:
        data = sheet.get("data") or []
        if not data:
            continue
        for row in data[0].get("rowData") or []:
            values = [cell.get("formattedValue") or "" for cell in row.get("values") or []]
            row_text = "\t".join(v for v in values if v)
            if row_text:
                lines.append(row_text + "\n")
    return "".join(lines)
