"""
Data models for settings, tracking-API entities and derived summary records.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from errors import ConfigurationMissing, ValidationError


@dataclass
class Configuration:
    """Operator settings consumed by every client. Read-only to the pipeline."""
    org_base_url: str
    auth_email: str
    api_key: str
    ai_endpoint: str = ""
    ai_model: str = ""
    preferred_project_id: str = ""
    preferred_user_ids: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.org_base_url = (self.org_base_url or "").strip().rstrip("/")
        self.ai_endpoint = (self.ai_endpoint or "").strip().rstrip("/")
        self.auth_email = (self.auth_email or "").strip()
        self.api_key = (self.api_key or "").strip()

    def validate(self) -> "Configuration":
        """Check the org URL and API key invariants and return self."""
        if not self.org_base_url:
            raise ConfigurationMissing("org_base_url", "The JIRA Organization URL is required.")
        if not self.org_base_url.startswith(("https://", "http://")):
            raise ValidationError("The JIRA Organization URL must start with http:// or https://.")
        if not self.api_key:
            raise ConfigurationMissing("api_key", "The JIRA API Key is required.")
        return self

    @classmethod
    def from_env(cls) -> Optional["Configuration"]:
        """Build a Configuration from environment variables, or None when the org URL is unset."""
        org_url = os.getenv("JIRA_ORG_URL", "")
        if not org_url:
            return None
        return cls(
            org_base_url=org_url,
            auth_email=os.getenv("JIRA_AUTH_EMAIL") or os.getenv("JIRA_USERNAME", ""),
            api_key=os.getenv("JIRA_API_TOKEN", ""),
            ai_endpoint=os.getenv("LLAMA_API_URL", ""),
            ai_model=os.getenv("LLAMA_MODEL", ""),
            preferred_project_id=os.getenv("PREFERRED_PROJECT", ""),
            preferred_user_ids=split_user_ids(os.getenv("PREFERRED_USERS", "")),
        )

    def as_public_dict(self) -> Dict[str, Any]:
        """Settings without the API key, for display."""
        return {
            "org_base_url": self.org_base_url,
            "auth_email": self.auth_email,
            "api_key": "********" if self.api_key else "",
            "ai_endpoint": self.ai_endpoint,
            "ai_model": self.ai_model,
            "preferred_project_id": self.preferred_project_id,
            "preferred_user_ids": list(self.preferred_user_ids),
        }


def split_user_ids(raw: Optional[str]) -> List[str]:
    """Split a comma-separated id list, trimming blanks."""
    if not raw or not raw.strip():
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


class Project:
    """
    Jira project. Identity is the key; the name is what users type.
    """
    def __init__(self, key: str, name: str):
        self.key = key
        self.name = name

    def __repr__(self):
        return f"Project(key={self.key!r}, name={self.name!r})"


class Board:
    """
    Agile board scoped to a project.
    """
    def __init__(self, board_id: int, name: str, type: str, project_key: Optional[str] = None):
        self.id = board_id
        self.name = name
        self.type = type  # scrum/kanban/simple
        self.project_key = project_key

    def __repr__(self):
        return f"Board(id={self.id!r}, name={self.name!r}, type={self.type!r})"


class Sprint:
    def __init__(self, sprint_id: int, name: str, state: str, start_date: Optional[str] = None, end_date: Optional[str] = None, board_id: Optional[int] = None):
        self.id = sprint_id
        self.name = name
        self.state = state  # active/closed/future
        self.start_date = start_date
        self.end_date = end_date
        self.board_id = board_id

    def __repr__(self):
        return f"Sprint(id={self.id!r}, name={self.name!r}, state={self.state!r})"


class Member:
    """
    A project role actor or an organization user.
    """
    def __init__(self, account_id: str, display_name: str, email: Optional[str] = None):
        self.account_id = account_id
        self.display_name = display_name
        self.email = email


class Issue:
    """
    Work-logged issue as returned by the search endpoint, reduced to the projected fields.
    comment_bodies holds the raw rich-document tree of every comment, oldest first.
    """
    def __init__(self, key: str, summary: str = "", assignee_name: str = "", assignee_account_id: Optional[str] = None, time_spent_seconds: int = 0, status: str = "", comment_bodies: Optional[List[Any]] = None):
        self.key = key
        self.summary = summary
        self.assignee_name = assignee_name
        self.assignee_account_id = assignee_account_id
        self.time_spent_seconds = time_spent_seconds
        self.status = status
        self.comment_bodies = comment_bodies or []

    def __repr__(self):
        return f"Issue(key={self.key!r})"


@dataclass(frozen=True)
class SummaryRecord:
    """Flattened per-issue row used for rendering. story_points is None when not estimated."""
    key: str
    summary: str
    assignee: str
    spent_time: int
    story_points: Optional[float]
    status: str
    ai_remarks: str

    def as_dict(self) -> Dict[str, Any]:
        """Display keys in column order."""
        return {
            "key": self.key,
            "summary": self.summary,
            "assignee": self.assignee,
            "spentTime": self.spent_time,
            "storyPoint": self.story_points,
            "status": self.status,
            "aiRemarks": self.ai_remarks,
        }
