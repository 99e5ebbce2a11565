"""
Resolve package: map human-facing project/board names to Jira identifiers.
"""

from .resolver import (
    list_boards_for_all_projects,
    list_project_options,
    list_sprints_for_all_boards,
    resolve_board_id,
    resolve_project_key,
)

__all__ = [
    "resolve_project_key",
    "resolve_board_id",
    "list_boards_for_all_projects",
    "list_sprints_for_all_boards",
    "list_project_options",
]
