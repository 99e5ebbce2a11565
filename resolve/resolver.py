"""
Identifier resolver: turn the project and board names users type into Jira identifiers,
and build the project/board/sprint listings behind selection menus.
Name matching is exact and case-sensitive.
"""
import logging
from typing import Any, Dict, List, Optional

from errors import NotFound, ValidationError
from summarize.fanout import run_all, run_best_effort

logger = logging.getLogger(__name__)


def _match_one(candidates: List[Any], name: str, kind: str):
    if name is None or not str(name).strip():
        raise ValidationError(f"The {kind} name is required.")
    matches = [c for c in candidates if c.name == name]
    if not matches:
        logger.warning("No %s named %r", kind, name)
        raise NotFound(kind, name)
    if len(matches) > 1:
        logger.warning("%d %ss named %r, using the first", len(matches), kind, name)
    return matches[0]


def resolve_project_key(client, name: str) -> str:
    """Return the key of the project whose name equals name."""
    return _match_one(client.list_projects(), name, "project").key


def resolve_board_id(client, name: str):
    """Return the id of the board whose name equals name."""
    return _match_one(client.list_boards(), name, "board").id


def list_boards_for_all_projects(client, max_workers: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    List every project with its boards.

    One board listing per project runs on the bounded pool; a single failing
    listing fails the whole call.
    """
    projects = client.list_projects()
    boards = run_all(lambda project: client.list_boards(project.key), projects, max_workers)
    return [{"projectKey": project.key, "boards": project_boards} for project, project_boards in zip(projects, boards)]


def list_sprints_for_all_boards(client, max_workers: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    List the sprints of every board of every project.

    Boards whose sprint listing fails (kanban boards have none) are logged and
    left out, as are boards without sprints.
    """
    board_entries = [(entry["projectKey"], board) for entry in list_boards_for_all_projects(client, max_workers) for board in entry["boards"]]

    def fetch(entry):
        project_key, board = entry
        return {"projectKey": project_key, "boardId": board.id, "boardName": board.name, "sprints": client.list_sprints(board.id)}

    def on_error(entry, exc):
        logger.warning("Skipping sprints of board %s: %s", entry[1].id, exc)

    results = run_best_effort(fetch, board_entries, max_workers, on_error=on_error)
    return [r for r in results if r["sprints"]]


def list_project_options(client) -> List[Dict[str, str]]:
    """Projects as value/label pairs for a selection control."""
    return [{"value": p.key, "label": p.name} for p in client.list_projects()]
