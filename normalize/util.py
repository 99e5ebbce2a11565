"""
Normalization helpers.
Validate raw tracking-API payloads and convert them into normalize.models entities.
Anything that is not the expected shape is rejected with UpstreamRequestFailed here,
so no half-parsed payload travels further into the pipeline.
"""
from typing import Any, Dict, List, Optional

from errors import UpstreamRequestFailed
from normalize.models import Board, Issue, Member, Project, Sprint


def _malformed(operation: str, detail: str) -> UpstreamRequestFailed:
    return UpstreamRequestFailed(operation, f"malformed payload: {detail}")


def expect_list(payload: Any, operation: str, key: Optional[str] = None) -> List[Any]:
    """Return payload (or payload[key]) when it is a list, otherwise raise."""
    value = payload
    if key is not None:
        if not isinstance(payload, dict) or key not in payload:
            raise _malformed(operation, f"missing '{key}' collection")
        value = payload[key]
    if not isinstance(value, list):
        raise _malformed(operation, f"expected a list{f' in {key}' if key else ''}")
    return value


def expect_dict(payload: Any, operation: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise _malformed(operation, "expected an object")
    return payload


def parse_projects(payload: Any) -> List[Project]:
    projects = []
    for raw in expect_list(payload, "list_projects"):
        if not isinstance(raw, dict) or not raw.get("key"):
            raise _malformed("list_projects", "project without key")
        projects.append(Project(key=str(raw["key"]), name=raw.get("name") or ""))
    return projects


def parse_boards(values: List[Any], project_key: Optional[str] = None) -> List[Board]:
    boards = []
    for raw in values:
        if not isinstance(raw, dict) or raw.get("id") is None:
            raise _malformed("list_boards", "board without id")
        location = raw.get("location") or {}
        boards.append(Board(board_id=raw["id"], name=raw.get("name") or "", type=raw.get("type") or "", project_key=project_key or location.get("projectKey")))
    return boards


def parse_sprints(values: List[Any], board_id: Optional[int] = None) -> List[Sprint]:
    sprints = []
    for raw in values:
        if not isinstance(raw, dict) or raw.get("id") is None:
            raise _malformed("list_sprints", "sprint without id")
        sprints.append(
            Sprint(
                sprint_id=raw["id"],
                name=raw.get("name") or "",
                state=raw.get("state") or "",
                start_date=raw.get("startDate"),
                end_date=raw.get("endDate"),
                board_id=raw.get("originBoardId", board_id),
            )
        )
    return sprints


def parse_members(actors: List[Any]) -> List[Member]:
    """Role actors carry the account id under actorUser; users carry it at the top level."""
    members = []
    for raw in actors:
        if not isinstance(raw, dict):
            continue
        actor_user = raw.get("actorUser") or {}
        account_id = actor_user.get("accountId") or raw.get("accountId") or ""
        members.append(Member(account_id=account_id, display_name=raw.get("displayName") or "", email=raw.get("emailAddress")))
    return members


def _extract_comment_bodies(fields: Dict[str, Any]) -> List[Any]:
    comment = fields.get("comment") or {}
    if not isinstance(comment, dict):
        return []
    bodies = []
    for item in comment.get("comments") or []:
        body = (item or {}).get("body") if isinstance(item, dict) else None
        if isinstance(body, dict):
            bodies.append(body.get("content") or [])
        elif isinstance(body, str):
            # server/data-center instances return plain text bodies
            bodies.append([{"type": "text", "text": body}])
    return bodies


def normalize_issue(raw: Dict[str, Any]) -> Issue:
    """Create an Issue from a raw search result. Missing fields fall back to empty values."""
    if not isinstance(raw, dict) or not raw.get("key"):
        raise _malformed("search_issues", "issue without key")
    fields = raw.get("fields") or {}
    assignee = fields.get("assignee") or {}
    status = fields.get("status") or {}
    return Issue(
        key=raw["key"],
        summary=fields.get("summary") or "",
        assignee_name=assignee.get("displayName") or "",
        assignee_account_id=assignee.get("accountId"),
        time_spent_seconds=int(fields.get("timespent") or 0),
        status=(status.get("statusCategory") or {}).get("name") or "",
        comment_bodies=_extract_comment_bodies(fields),
    )


def normalize_issues(raws: List[Any]) -> List[Issue]:
    return [normalize_issue(raw) for raw in raws]
