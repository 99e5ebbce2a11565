"""
Jira REST client used by the resolver, the work-log fetcher and the summary aggregator.
Each method performs the authenticated call(s) for one logical operation and returns
normalized entities; failures surface as UpstreamRequestFailed naming the operation.
"""

import base64
import logging
from typing import List, Dict, Any, Optional

from errors import ConfigurationMissing, UpstreamRequestFailed
from normalize.models import Board, Configuration, Issue, Member, Project, Sprint
from normalize.util import expect_dict, expect_list, normalize_issues, parse_boards, parse_members, parse_projects, parse_sprints
from storage.retry import perform_request_with_retries

logger = logging.getLogger(__name__)

API_PATH = "rest/api/3"
AGILE_PATH = "rest/agile/1.0"
MEMBER_ROLES = ("Administrator", "Member")


def basic_auth_header(email: str, api_key: str) -> str:
    """Return the 'Basic base64(email:api_key)' Authorization header value."""
    token = base64.b64encode(f"{email}:{api_key}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class JiraClient:
    """Client for the Jira platform and agile REST APIs, built from a Configuration."""

    def __init__(self, config: Configuration, max_retries: Optional[int] = None, timeout: Optional[float] = None, page_size: int = 50):
        if not config.org_base_url:
            raise ConfigurationMissing("org_base_url", "JIRA org name not found in settings.")
        if not config.api_key:
            raise ConfigurationMissing("api_key", "JIRA API key is not available in settings.")
        self.config = config
        self.base_url = config.org_base_url
        self.max_retries = max_retries
        self.timeout = timeout
        self.page_size = page_size

    def _headers(self) -> Dict[str, str]:
        # rebuilt per call; the credentials are static so there is nothing to refresh
        return {
            "Authorization": basic_auth_header(self.config.auth_email, self.config.api_key),
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _get(self, operation: str, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        if not url.startswith(("http://", "https://")):
            url = f"{self.base_url}/{url}"
        logger.debug("GET %s params=%s (%s)", url, params, operation)
        res = perform_request_with_retries("GET", url, headers=self._headers(), params=params, max_retries=self.max_retries, timeout=self.timeout)
        status = res.get("status", 0)
        if not 200 <= status < 300:
            raise UpstreamRequestFailed(operation, error_detail(res.get("response")), status or None)
        return res.get("response")

    def _get_agile_values(self, operation: str, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """Collect 'values' across the startAt/isLast pages of an agile listing endpoint."""
        values: List[Any] = []
        start_at = 0
        while True:
            page_params = dict(params or {}, startAt=start_at, maxResults=self.page_size)
            data = expect_dict(self._get(operation, path, page_params), operation)
            page = expect_list(data, operation, "values")
            values.extend(page)
            if data.get("isLast", True) or not page:
                break
            start_at += len(page)
        return values

    def list_projects(self) -> List[Project]:
        projects = parse_projects(self._get("list_projects", f"{API_PATH}/project"))
        logger.info("Fetched %d projects", len(projects))
        return projects

    def list_boards(self, project_key: Optional[str] = None) -> List[Board]:
        """List agile boards, optionally only those of one project."""
        params = {"projectKey": project_key} if project_key else None
        operation = f"list_boards({project_key})" if project_key else "list_boards"
        return parse_boards(self._get_agile_values(operation, f"{AGILE_PATH}/board", params), project_key)

    def list_sprints(self, board_id: int) -> List[Sprint]:
        values = self._get_agile_values(f"list_sprints({board_id})", f"{AGILE_PATH}/board/{board_id}/sprint")
        return parse_sprints(values, board_id)

    def list_sprint_issue_keys(self, sprint_id) -> List[str]:
        operation = f"list_sprint_issues({sprint_id})"
        keys: List[str] = []
        start_at = 0
        while True:
            params = {"fields": "key", "startAt": start_at, "maxResults": self.page_size}
            data = expect_dict(self._get(operation, f"{AGILE_PATH}/sprint/{sprint_id}/issue", params), operation)
            issues = expect_list(data, operation, "issues")
            keys.extend(str(issue["key"]) for issue in issues if isinstance(issue, dict) and issue.get("key"))
            start_at += len(issues)
            if not issues or start_at >= int(data.get("total", 0) or 0):
                break
        return keys

    def list_project_roles(self, project_key: str) -> Dict[str, str]:
        """Return {role name: role URL} for a project."""
        operation = f"list_project_roles({project_key})"
        roles = expect_dict(self._get(operation, f"{API_PATH}/project/{project_key}/role"), operation)
        for role_name, role_url in roles.items():
            if not isinstance(role_url, str) or not role_url.strip():
                raise UpstreamRequestFailed(operation, f"malformed payload: role {role_name!r} has no URL")
        return roles

    def list_role_members(self, role_url: str) -> List[Member]:
        data = expect_dict(self._get("list_role_members", role_url), "list_role_members")
        return parse_members(expect_list(data, "list_role_members", "actors"))

    def list_project_members(self, project_key: str) -> List[Member]:
        """Members of the Administrator and Member roles, role by role."""
        roles = self.list_project_roles(project_key)
        members: List[Member] = []
        for role_name, role_url in roles.items():
            if role_name in MEMBER_ROLES:
                members.extend(self.list_role_members(role_url))
        logger.info("Fetched %d members for project %s", len(members), project_key)
        return members

    def list_users(self) -> List[Member]:
        """Organization users, without app accounts."""
        data = expect_list(self._get("list_users", f"{API_PATH}/users/search", {"maxResults": 1000}), "list_users")
        humans = [u for u in data if isinstance(u, dict) and u.get("accountType") != "app"]
        return parse_members(humans)

    def search_issues(self, jql: str, fields: List[str]) -> List[Issue]:
        """Run a JQL search with the given field projection, following startAt pages."""
        raws: List[Any] = []
        start_at = 0
        while True:
            params = {"jql": jql, "fields": ",".join(fields), "startAt": start_at, "maxResults": self.page_size}
            data = expect_dict(self._get("search_issues", f"{API_PATH}/search", params), "search_issues")
            page = expect_list(data, "search_issues", "issues")
            raws.extend(page)
            start_at += len(page)
            if not page or start_at >= int(data.get("total", 0) or 0):
                break
        return normalize_issues(raws)

    def get_estimation_field(self, issue_key: str, board_id) -> Optional[str]:
        """Return the board-specific estimation field id for an issue, or None when the board has none."""
        operation = f"get_estimation_field({issue_key}, board {board_id})"
        data = expect_dict(self._get(operation, f"{AGILE_PATH}/issue/{issue_key}/estimation", {"boardId": board_id}), operation)
        return data.get("fieldId") or None

    def get_issue_field(self, issue_key: str, field_id: str) -> Any:
        operation = f"get_issue_field({issue_key}, {field_id})"
        data = expect_dict(self._get(operation, f"{AGILE_PATH}/issue/{issue_key}", {"fields": field_id}), operation)
        fields = data.get("fields")
        if not isinstance(fields, dict):
            raise UpstreamRequestFailed(operation, "malformed payload: missing 'fields'")
        return fields.get(field_id)

    def get_story_points(self, issue_key: str, board_id) -> Optional[float]:
        """Story points of an issue on a board; None when not estimated."""
        field_id = self.get_estimation_field(issue_key, board_id)
        if not field_id:
            return None
        value = self.get_issue_field(issue_key, field_id)
        if value is None:
            logger.debug("Story points not set for issue %s", issue_key)
            return None
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise UpstreamRequestFailed(f"get_story_points({issue_key})", f"non-numeric estimate {value!r}") from exc


def error_detail(body: Any) -> str:
    """Pick Jira's errorMessages/errors out of a failure body when present."""
    if isinstance(body, dict):
        messages = body.get("errorMessages") or body.get("errors") or body.get("message")
        if isinstance(messages, list) and messages:
            return " ".join(str(m) for m in messages if m)
        if messages:
            return str(messages)
    if body is None or body == "":
        return "no response body"
    return str(body)[:500]
