"""
Export Format Renderers

Each renderer turns a RecordSet into the complete text of an export file.
Null values render as empty cells/elements; no field is ever dropped.
"""

import csv
import html
import io
import json
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Sequence
from xml.dom import minidom

from .records import RecordSet

XML_NAME_INVALID = re.compile(r"[^A-Za-z0-9_.-]")
# Characters outside the XML 1.0 Char production
XML_CHAR_INVALID = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def json_default(value: Any) -> Any:
    """Serialise values the json module does not handle natively."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return str(value)


def format_scalar(value: Any) -> str:
    """Text form of a single value for CSV, TXT and HTML cells."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Mapping, list, tuple, set)):
        return json.dumps(value, default=json_default, sort_keys=False)
    return str(value)


# =============================================================================
# CSV
# =============================================================================

def render_csv(records: RecordSet) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=records.field_names(), lineterminator="\n")
    writer.writeheader()
    for record in records:
        writer.writerow({key: format_scalar(value) for key, value in record.items()})
    return buffer.getvalue()


# =============================================================================
# JSON
# =============================================================================

def render_json(records: RecordSet) -> str:
    # json has no depth limit of its own; nested raw objects come through intact
    return json.dumps(records.to_list(), indent=2, default=json_default, ensure_ascii=False) + "\n"


# =============================================================================
# TXT
# =============================================================================

def render_txt(records: RecordSet) -> str:
    """Fixed-width table with a dashed rule under the header."""
    columns = records.field_names()
    if not columns:
        return ""

    rows: List[List[str]] = [
        [format_scalar(record.get(col)).replace("\r", " ").replace("\n", " ") for col in columns]
        for record in records
    ]
    widths = [len(col) for col in columns]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(cells: Sequence[str]) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(cells)).rstrip()

    output = [line(columns), line(["-" * w for w in widths])]
    output.extend(line(row) for row in rows)
    return "\n".join(output) + "\n"


# =============================================================================
# XML
# =============================================================================

def xml_name(name: Any) -> str:
    """Turn a field name into a valid XML element name."""
    text = XML_NAME_INVALID.sub("_", str(name)) or "_"
    if not (text[0].isalpha() or text[0] == "_") or text.lower().startswith("xml"):
        text = "_" + text
    return text


def xml_text(value: Any) -> str:
    """Text of a value with characters XML cannot carry removed."""
    return XML_CHAR_INVALID.sub("", format_scalar(value))


def _element(doc: minidom.Document, name: Any):
    """Element for a field; keeps the original name when it had to be changed."""
    tag = xml_name(name)
    element = doc.createElement(tag)
    if tag != str(name):
        element.setAttribute("name", XML_CHAR_INVALID.sub("", str(name)))
    return element


def _append_value(doc: minidom.Document, parent, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            child = _element(doc, key)
            _append_value(doc, child, item)
            parent.appendChild(child)
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            child = doc.createElement("Item")
            _append_value(doc, child, item)
            parent.appendChild(child)
    else:
        parent.appendChild(doc.createTextNode(xml_text(value)))


def render_xml(records: RecordSet) -> str:
    impl = minidom.getDOMImplementation()
    doc = impl.createDocument(None, "Objects", None)
    root = doc.documentElement

    for record in records:
        node = doc.createElement("Object")
        for key, value in record.items():
            child = _element(doc, key)
            _append_value(doc, child, value)
            node.appendChild(child)
        root.appendChild(node)

    return doc.toprettyxml(indent="  ", encoding="utf-8").decode("utf-8")


# =============================================================================
# HTML
# =============================================================================

def render_html(records: RecordSet, title: str = "Inventory") -> str:
    columns = records.field_names()
    lines = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{html.escape(title)}</title>",
        "</head>",
        "<body>",
        "<table>",
        "<tr>" + "".join(f"<th>{html.escape(col)}</th>" for col in columns) + "</tr>",
    ]
    for record in records:
        cells = "".join(
            f"<td>{html.escape(format_scalar(record.get(col)))}</td>" for col in columns
        )
        lines.append(f"<tr>{cells}</tr>")
    lines.extend(["</table>", "</body>", "</html>"])
    return "\n".join(lines) + "\n"


RENDERERS: Dict[str, Callable[[RecordSet], str]] = {
    "csv": render_csv,
    "json": render_json,
    "txt": render_txt,
    "xml": render_xml,
    "html": render_html,
}


def render(records: RecordSet, extension: str) -> str:
    return RENDERERS[extension](records)
