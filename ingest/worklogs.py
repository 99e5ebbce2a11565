"""
Work-log fetcher: selects the issues that carry logged time for a project and date range,
or every issue of a sprint.
"""

import logging
from typing import Iterable, List, Optional

from errors import ValidationError
from normalize.models import Issue

logger = logging.getLogger(__name__)

DEFAULT_FIELDS = ["key", "summary", "comment", "timespent", "assignee", "status"]
EXTENDED_FIELDS = DEFAULT_FIELDS + ["reporter", "priority", "issuetype", "labels", "project"]


def build_worklog_jql(project_key: str, start_date: str, end_date: str) -> str:
    return f"project = {project_key} AND worklogDate >= {start_date} AND worklogDate <= {end_date} AND timespent > 0"


def build_membership_jql(issue_keys: Iterable[str]) -> str:
    return f"issueKey in ({','.join(issue_keys)})"


def _require(value, name: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"The {name} is required.")
    return text


def fetch_worklogs(client, project_key: str, start_date: str, end_date: str, sprint_id=None, fields: Optional[List[str]] = None) -> List[Issue]:
    """
    Return the work-logged issues of a project between two dates (inclusive).

    When sprint_id is given the sprint's issue membership replaces the date filter;
    a sprint without issues yields [] without searching.
    """
    project_key = _require(project_key, "project key")
    start_date = _require(start_date, "start date")
    end_date = _require(end_date, "end date")
    fields = list(fields or DEFAULT_FIELDS)

    if sprint_id:
        keys = client.list_sprint_issue_keys(sprint_id)
        if not keys:
            logger.info("Sprint %s has no issues", sprint_id)
            return []
        jql = build_membership_jql(keys)
    else:
        jql = build_worklog_jql(project_key, start_date, end_date)

    logger.info("Fetching work logs: %s", jql)
    issues = client.search_issues(jql, fields)
    logger.info("Fetched %d work-logged issues for %s", len(issues), project_key)
    return issues


def filter_issues_by_assignees(issues: List[Issue], account_ids: Optional[Iterable[str]]) -> List[Issue]:
    """Keep issues assigned to one of account_ids; an empty selection keeps everything."""
    selected = {a for a in (account_ids or []) if a}
    if not selected:
        return list(issues)
    return [issue for issue in issues if issue.assignee_account_id in selected]
