from __future__ import annotations

import csv
import io
import json
import re
from typing import Any

from lxml import etree
from lxml.html import builder as E
from lxml.html import tostring as html_tostring

from scraperis_agent.jobs.models import StructuredCollection, StructuredData

_INVALID_TAG_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def to_rows(data: StructuredData) -> tuple[list[str], list[dict[str, Any]]]:
    """Flatten structured data into (columns, rows).

    A single record is wrapped as a one-element collection first, so both
    shapes go through the same path.
    """
    collection: StructuredCollection = data.as_collection()
    rows: list[dict[str, Any]] = []
    columns: dict[str, None] = {}
    for item in collection.items:
        row = item if isinstance(item, dict) else {"value": item}
        rows.append(row)
        for key in row:
            columns.setdefault(str(key), None)
    return list(columns), rows


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    return str(value)


def render_csv(data: StructuredData) -> str:
    columns, rows = to_rows(data)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([cell_text(row.get(column)) for column in columns])
    return buffer.getvalue()


def _tag_name(key: Any) -> str:
    name = _INVALID_TAG_CHARS.sub("_", str(key)) or "field"
    if not (name[0].isalpha() or name[0] == "_") or name.lower().startswith("xml"):
        name = f"_{name}"
    return name


def _append_value(parent: etree._Element, value: Any) -> None:
    if isinstance(value, dict):
        for key, child_value in value.items():
            tag = _tag_name(key)
            child = etree.SubElement(parent, tag)
            if tag != str(key):
                child.set("key", str(key))
            _append_value(child, child_value)
    elif isinstance(value, (list, tuple)):
        for child_value in value:
            _append_value(etree.SubElement(parent, "item"), child_value)
    elif value is None:
        parent.set("null", "true")
    else:
        parent.text = cell_text(value)


def render_xml(data: StructuredData, root_tag: str = "results") -> str:
    _, rows = to_rows(data)
    root = etree.Element(root_tag)
    for row in rows:
        _append_value(etree.SubElement(root, "item"), row)
    return etree.tostring(
        root, pretty_print=True, xml_declaration=True, encoding="UTF-8"
    ).decode("utf-8")


def render_html(data: StructuredData, title: str = "Scrape results") -> str:
    columns, rows = to_rows(data)
    table = E.TABLE(
        E.THEAD(E.TR(*[E.TH(column) for column in columns])),
        E.TBODY(
            *[
                E.TR(*[E.TD(cell_text(row.get(column))) for column in columns])
                for row in rows
            ]
        ),
    )
    document = E.HTML(
        E.HEAD(E.META(charset="utf-8"), E.TITLE(title)),
        E.BODY(table),
    )
    return html_tostring(
        document, pretty_print=True, doctype="<!DOCTYPE html>", encoding="unicode"
    )
