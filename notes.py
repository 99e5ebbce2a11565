"""
Meeting-notes pipeline: fetch work logs, summarize them and build the grouped notes document.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ingest.jira import JiraClient
from ingest.llm import LlamaClient
from ingest.worklogs import fetch_worklogs, filter_issues_by_assignees
from normalize.models import Configuration, SummaryRecord
from report.html import HTMLElement
from report.options import ReportOptions
from report.renderer import group_by, render_notes_document
from summarize.aggregator import summarize

logger = logging.getLogger(__name__)


@dataclass
class MeetingNotes:
    title: str
    records: List[SummaryRecord] = field(default_factory=list)
    grouped: Dict[str, List[SummaryRecord]] = field(default_factory=dict)
    document: Optional[HTMLElement] = None

    def to_storage(self) -> str:
        return self.document.to_string() if self.document is not None else ""


def default_page_title(project_key: str, start_date: str, end_date: str) -> str:
    return f"{project_key} Meeting Notes {start_date} to {end_date}"


def generate_meeting_notes(
    config: Configuration,
    project_key: str,
    start_date: str,
    end_date: str,
    board_id=None,
    sprint_id=None,
    user_ids: Optional[List[str]] = None,
    client: Any = None,
    annotator: Any = None,
    max_workers: Optional[int] = None,
    options: Optional[ReportOptions] = None,
    title: Optional[str] = None,
) -> MeetingNotes:
    """
    Build meeting notes for a project and date range (or a sprint).

    client and annotator default to a JiraClient and a LlamaClient built from config;
    user_ids restricts the notes to issues assigned to those accounts.
    """
    client = client or JiraClient(config)
    annotator = annotator or LlamaClient(config)
    options = options or ReportOptions()

    issues = fetch_worklogs(client, project_key, start_date, end_date, sprint_id=sprint_id)
    issues = filter_issues_by_assignees(issues, user_ids)
    records = summarize(issues, board_id, client, annotator, max_workers=max_workers)
    grouped = group_by(records, "assignee")
    title = title or options.title or default_page_title(project_key, start_date, end_date)
    logger.info("Meeting notes %r: %d records for %d assignees", title, len(records), len(grouped))
    return MeetingNotes(title=title, records=records, grouped=grouped, document=render_notes_document(grouped, title, options))
