"""
Report renderer: group summary records by assignee and render meeting notes as an
HTMLElement tree (Confluence storage markup), a full HTML page via the Jinja2 template
report/templates/notes.html.j2, Markdown, CSV or JSON.
"""

import csv
import io
import json
import os
import re
from typing import Any, Dict, Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from normalize.models import SummaryRecord
from report.html import HTMLElement
from report.options import ReportOptions

DURATION_FIELD = "spentTime"
STORY_POINT_FIELD = "storyPoint"
DEFAULT_TITLE = "Meeting Notes"
EMPTY_MESSAGE = "No work logs found for the selected period."


def _as_row(record: Any) -> Dict[str, Any]:
    """Return display-keyed values for a SummaryRecord or a plain dict."""
    if isinstance(record, dict):
        return record
    if hasattr(record, "as_dict"):
        return record.as_dict()
    return dict(vars(record))


def group_by(records: Iterable[Any], key: str) -> Dict[Any, List[Any]]:
    """Group records by the value under key, keeping the order in which values first appear.

    key may be a display key ('assignee') or, for record objects, an attribute name.
    """
    grouped: Dict[Any, List[Any]] = {}
    for record in records:
        row = _as_row(record)
        value = row[key] if key in row else getattr(record, key, None)
        grouped.setdefault(value, []).append(record)
    return grouped


def format_duration(seconds: Optional[int]) -> str:
    seconds = int(seconds or 0)
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def format_title(key: str) -> str:
    # storyPoint -> STORY POINT, ai_remarks -> AI REMARKS
    return re.sub(r"([a-z])([A-Z])", r"\1 \2", key).replace("_", " ").upper()


def format_story_points(value: Optional[float], missing: str = "N/A") -> str:
    if value is None:
        return missing
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_cell(key: str, value: Any, missing_story_points: str) -> str:
    if key == DURATION_FIELD:
        return format_duration(value)
    if key == STORY_POINT_FIELD:
        return format_story_points(value, missing_story_points)
    return "" if value is None else str(value)


def _columns(rows: List[Dict[str, Any]], skip_fields: Iterable[str]) -> List[str]:
    skip = set(skip_fields or ())
    return [k for k in rows[0].keys() if k not in skip] if rows else []


def _cell(tag: str, text: str) -> HTMLElement:
    # empty cells get no text child so the serialized form parses back to the same tree
    element = HTMLElement(tag)
    return element.add_child(text) if text else element


def render_table(records: List[Any], skip_fields: Iterable[str] = (), extra_columns: Iterable[str] = (), missing_story_points: str = "N/A") -> HTMLElement:
    """
    Build a table with one header row and one row per record.

    Parameters:
        records: SummaryRecords or dicts with display keys; the first record fixes the column order.
        skip_fields: keys left out of the table.
        extra_columns: headers appended after the data columns, rendered as empty cells.
        missing_story_points: text shown when a record has no story points.
    """
    rows = [_as_row(r) for r in records]
    keys = _columns(rows, skip_fields)
    extras = list(extra_columns or ())
    table = HTMLElement("table")
    table.add_child(HTMLElement("tr").add_children([_cell("th", format_title(k)) for k in keys] + [_cell("th", format_title(c)) for c in extras]))
    for row in rows:
        cells = [_cell("td", _format_cell(k, row.get(k), missing_story_points)) for k in keys]
        cells.extend(HTMLElement("td") for _ in extras)
        table.add_child(HTMLElement("tr").add_children(cells))
    return table


def render_notes_document(grouped: Dict[Any, List[Any]], title: Optional[str] = None, options: Optional[ReportOptions] = None) -> HTMLElement:
    """One h1 title, then an h2 and a table per assignee."""
    options = options or ReportOptions()
    doc = HTMLElement("div").add_attribute("class", "meeting-notes")
    doc.add_child(HTMLElement("h1").add_child(title or options.title or DEFAULT_TITLE))
    if not grouped:
        return doc.add_child(HTMLElement("p").add_child(EMPTY_MESSAGE))
    for assignee, records in grouped.items():
        doc.add_child(HTMLElement("h2").add_child(assignee or "Unassigned"))
        doc.add_child(render_table(records, options.skip_fields, options.extra_columns, options.missing_story_points))
    return doc


def _md_cell(text: str) -> str:
    # a table row must stay on one line
    return re.sub(r"\s*[\r\n]+\s*", " ", text).replace("|", "\\|")


def render_markdown(grouped: Dict[Any, List[Any]], title: str, options: ReportOptions) -> str:
    md = [f"# {title}", ""]
    if not grouped:
        md.append(EMPTY_MESSAGE)
        return "\n".join(md)
    for assignee, records in grouped.items():
        rows = [_as_row(r) for r in records]
        keys = _columns(rows, options.skip_fields)
        headers = [format_title(k) for k in keys] + [format_title(c) for c in options.extra_columns]
        md.append(f"## {assignee or 'Unassigned'}")
        md.append("")
        md.append("| " + " | ".join(headers) + " |")
        md.append("|" + "---|" * len(headers))
        for row in rows:
            cells = [_md_cell(_format_cell(k, row.get(k), options.missing_story_points)) for k in keys]
            cells.extend("" for _ in options.extra_columns)
            md.append("| " + " | ".join(cells) + " |")
        md.append("")
    return "\n".join(md).rstrip() + "\n"


def render_csv(records: List[Any], options: ReportOptions) -> str:
    """Flat CSV with every display key (assignee included) plus extra columns."""
    rows = [_as_row(r) for r in records]
    output = io.StringIO()
    writer = csv.writer(output)
    keys = list(rows[0].keys()) if rows else list(SummaryRecord("", "", "", 0, None, "", "").as_dict().keys())
    writer.writerow(keys + list(options.extra_columns))
    for row in rows:
        writer.writerow([_format_cell(k, row.get(k), options.missing_story_points) for k in keys] + ["" for _ in options.extra_columns])
    return output.getvalue()


def render_json(grouped: Dict[Any, List[Any]]) -> str:
    """Grouped records with raw values (story points stay null when not estimated)."""
    serializable = [{"assignee": assignee, "records": [_as_row(r) for r in records]} for assignee, records in grouped.items()]
    return json.dumps(serializable, indent=2)


def _render_html_page(document: HTMLElement, title: str, generated_at: Optional[str]) -> str:
    tmpl_dir = os.path.join(os.path.dirname(__file__), "templates")
    env = Environment(loader=FileSystemLoader(tmpl_dir), autoescape=select_autoescape(["html", "xml", "j2"]))
    tmpl = env.get_template("notes.html.j2")
    return tmpl.render(title=title, body=document.to_string(), generated_at=generated_at)


def render(records: List[Any], fmt: str = "storage", options: Optional[ReportOptions] = None, title: Optional[str] = None, generated_at: Optional[str] = None) -> str:
    """Main render function.

    fmt is one of 'storage' (markup fragment for a wiki page body), 'html' (standalone page),
    'md', 'csv' or 'json'. Records are grouped by assignee in first-seen order.
    """
    options = options or ReportOptions()
    title = title or options.title or DEFAULT_TITLE
    grouped = group_by(records, "assignee")
    fmt_l = (fmt or "storage").lower()
    if fmt_l in ("md", "markdown"):
        return render_markdown(grouped, title, options)
    if fmt_l == "csv":
        return render_csv(records, options)
    if fmt_l == "json":
        return render_json(grouped)
    document = render_notes_document(grouped, title, options)
    if fmt_l in ("html", "htm"):
        return _render_html_page(document, title, generated_at)
    if fmt_l == "storage":
        return document.to_string()
    raise ValueError(f"Unsupported output format: {fmt}")
