"""
Export Generators
=================

Render mapped product rows as CSV, JSON or XML documents.

Columns come from the export profile: the field ordering restricted to the
selected fields when both are set, otherwise whichever list is set. All
three formats use the same column list.
"""

import csv
import io
import json
import re
from typing import Any, Mapping, Sequence

MEDIA_TYPES: dict[str, str] = {
    "csv": "text/csv; charset=utf-8",
    "json": "application/json; charset=utf-8",
    "xml": "application/xml; charset=utf-8",
}

_XML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
}
_XML_ESCAPE_RE = re.compile(r"[&<>\"']")
# Characters that XML 1.0 cannot carry at all, even escaped
_XML_ILLEGAL_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")
_XML_NAME_INVALID_RE = re.compile(r"[^A-Za-z0-9_.\-]")


def resolve_export_columns(
    field_selection: Sequence[str] | None, field_ordering: Sequence[str] | None
) -> list[str]:
    """
    Work out the exported columns.

    >>> resolve_export_columns(["sku", "price"], [])
    ['sku', 'price']
    >>> resolve_export_columns(["sku", "price"], ["price", "name", "sku"])
    ['price', 'sku']
    """
    selection = list(dict.fromkeys(field_selection or []))
    ordering = list(dict.fromkeys(field_ordering or []))
    if selection and ordering:
        selected = set(selection)
        return [key for key in ordering if key in selected]
    return ordering or selection


def render_text(value: Any) -> str:
    """Render a field value as text for CSV cells and XML elements."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def generate_csv(rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> str:
    """
    Header line of column keys, then one line per row.

    Cells holding a comma, quote or newline are quoted with embedded quotes
    doubled. Lines end with ``\\n``.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([render_text(row.get(key)) for key in columns])
    return buffer.getvalue()


def generate_json(rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> str:
    """Pretty-printed array of objects with exactly ``columns`` as keys (missing -> null)."""
    payload = [{key: row.get(key) for key in columns} for row in rows]
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def escape_xml(text: str) -> str:
    """Escape the five XML reserved characters and drop characters XML cannot carry."""
    text = _XML_ILLEGAL_RE.sub("", text)
    return _XML_ESCAPE_RE.sub(lambda match: _XML_ESCAPES[match.group(0)], text)


def xml_element_name(key: str) -> str:
    """Turn a field key into a valid XML element name."""
    name = _XML_NAME_INVALID_RE.sub("_", key.strip()) or "field"
    if not (name[0].isalpha() or name[0] == "_") or name.lower().startswith("xml"):
        name = f"_{name}"
    return name


def generate_xml(rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> str:
    """``<products><product>`` document with one child element per column."""
    names = [(key, xml_element_name(key)) for key in columns]
    lines = ['<?xml version="1.0" encoding="UTF-8"?>', "<products>"]
    for row in rows:
        lines.append("  <product>")
        for key, name in names:
            lines.append(f"    <{name}>{escape_xml(render_text(row.get(key)))}</{name}>")
        lines.append("  </product>")
    lines.append("</products>")
    return "\n".join(lines) + "\n"


GENERATORS = {
    "csv": generate_csv,
    "json": generate_json,
    "xml": generate_xml,
}


def render_rows(output_format: str, rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> str:
    """Dispatch to the generator for ``output_format``."""
    try:
        generator = GENERATORS[output_format]
    except KeyError:
        raise ValueError(f"Unsupported export format '{output_format}'") from None
    return generator(rows, columns)
