"""
Confluence publishing: make sure the target space exists, then create the notes page.
"""

import logging
from typing import Any, Dict, Optional

from errors import ConfigurationMissing, UpstreamRequestFailed
from ingest.jira import basic_auth_header, error_detail
from normalize.models import Configuration
from storage.retry import perform_request_with_retries

logger = logging.getLogger(__name__)

SPACE_DESCRIPTION = "Meeting notes generated from Jira work logs."


class ConfluenceClient:
    """
    Client for the Confluence REST API of the same Atlassian organization as Jira.
    """

    def __init__(self, config: Configuration, max_retries: Optional[int] = None, timeout: Optional[float] = None):
        if not config.org_base_url:
            raise ConfigurationMissing("org_base_url", "JIRA org name not found in settings.")
        if not config.api_key:
            raise ConfigurationMissing("api_key", "JIRA API key is not available in settings.")
        self.config = config
        self.base_url = f"{config.org_base_url}/wiki/rest/api"
        self.max_retries = max_retries
        self.timeout = timeout

    def _request(self, method: str, path: str, json_body: Any = None) -> Dict[str, Any]:
        headers = {
            "Authorization": basic_auth_header(self.config.auth_email, self.config.api_key),
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}/{path}"
        logger.debug("%s %s", method, url)
        return perform_request_with_retries(method, url, headers=headers, json_body=json_body, max_retries=self.max_retries, timeout=self.timeout)

    def ensure_space(self, key: str, name: str) -> bool:
        """Return True when the space already existed, False when it was created."""
        res = self._request("GET", f"space/{key}")
        status = res.get("status", 0)
        if status == 200:
            return True
        if status != 404:
            raise UpstreamRequestFailed(f"get_space({key})", error_detail(res.get("response")), status or None)

        body = {"key": key, "name": name, "description": {"plain": {"value": SPACE_DESCRIPTION, "representation": "plain"}}}
        created = self._request("POST", "space", body)
        if not 200 <= created.get("status", 0) < 300:
            raise UpstreamRequestFailed(f"create_space({key})", error_detail(created.get("response")), created.get("status") or None)
        logger.info("Created Confluence space %s", key)
        return False

    def create_page(self, space_key: str, title: str, storage_html: str) -> Dict[str, Any]:
        body = {
            "type": "page",
            "title": title,
            "space": {"key": space_key},
            "body": {"storage": {"value": storage_html, "representation": "storage"}},
        }
        res = self._request("POST", "content", body)
        status = res.get("status", 0)
        if not 200 <= status < 300:
            raise UpstreamRequestFailed(f"create_page({title})", error_detail(res.get("response")), status or None)
        page = res.get("response")
        if not isinstance(page, dict):
            raise UpstreamRequestFailed(f"create_page({title})", "malformed payload: expected an object")
        logger.info("Published page %r (id=%s) to space %s", title, page.get("id"), space_key)
        return page

    def publish(self, space_key: str, space_name: str, title: str, content: str) -> Dict[str, Any]:
        """Ensure the space exists, then create the page in it."""
        self.ensure_space(space_key, space_name or space_key)
        return self.create_page(space_key, title, content)
