"""
Summary aggregator: enrich each work-logged issue with story points, flattened comments
and an AI status remark. Issues are processed concurrently; an issue whose comment or
AI step fails is logged and dropped without affecting the others. A failed story-point
lookup only leaves the points unset.
"""

import logging
from typing import List, Optional

from errors import UpstreamRequestFailed
from normalize.comments import extract_comments
from normalize.models import Issue, SummaryRecord
from summarize.fanout import run_best_effort

logger = logging.getLogger(__name__)


def _story_points(issue: Issue, board_id, client) -> Optional[float]:
    if not board_id:
        return None
    try:
        return client.get_story_points(issue.key, board_id)
    except UpstreamRequestFailed as exc:
        # issues outside the board have no estimation there
        logger.warning("No story points for issue %s: %s", issue.key, exc)
        return None


def build_record(issue: Issue, board_id, client, annotator) -> SummaryRecord:
    """Run the enrichment steps for one issue."""
    story_points = _story_points(issue, board_id, client)
    comments = extract_comments(issue.comment_bodies)
    ai_remarks = annotator.annotate(issue.summary, issue.status, comments) if comments else ""
    return SummaryRecord(
        key=issue.key,
        summary=issue.summary,
        assignee=issue.assignee_name,
        spent_time=issue.time_spent_seconds,
        story_points=story_points,
        status=issue.status,
        ai_remarks=ai_remarks,
    )


def summarize(issues: List[Issue], board_id, client, annotator, max_workers: Optional[int] = None) -> List[SummaryRecord]:
    """
    Build one SummaryRecord per issue that enriched successfully, in input order.

    Parameters:
        issues: work-logged issues from the fetcher.
        board_id: board used to look up the estimation field; falsy skips story points.
        client: object with get_story_points(issue_key, board_id).
        annotator: object with annotate(summary, status, comments).
        max_workers: bound on concurrent issues (defaults to NOTES_MAX_WORKERS).
    """
    if not issues:
        return []

    def on_error(issue, exc):
        logger.warning("Dropping issue %s from the summary: %s", issue.key, exc)

    records = run_best_effort(lambda issue: build_record(issue, board_id, client, annotator), issues, max_workers, on_error=on_error)
    logger.info("Summarized %d of %d issues", len(records), len(issues))
    return records
