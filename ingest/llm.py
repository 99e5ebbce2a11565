"""
Client for the local LLM chat endpoint that writes the one-line status remark per issue.
"""

import logging
from typing import Any, Dict, List, Optional

from errors import ConfigurationMissing, UpstreamRequestFailed
from ingest.jira import error_detail
from normalize.models import Configuration
from storage.retry import perform_request_with_retries

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful AI assistant."


def build_status_prompt(summary: str, status: str) -> str:
    """Instruction asking for a single-line status built from the comments already sent."""
    return (
        f'Analyze the provided comments of the JIRA issue titled "{summary}". '
        "Provide an optimized current task status of the issue in a single line. "
        f'The status of the JIRA issue is "{status}". '
        "Use the title and status for a consistent result, but do not repeat them in the answer. "
        "Do not add any prefix, suffix, suggestions or notes."
    )


class LlamaClient:
    """Ollama-style chat client: POST {endpoint}/api/chat, non-streaming."""

    def __init__(self, config: Configuration, timeout: Optional[float] = None):
        self.endpoint = config.ai_endpoint
        self.model = config.ai_model
        self.timeout = timeout

    def _messages(self, summary: str, status: str, comments: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": comments},
            {"role": "user", "content": build_status_prompt(summary, status)},
        ]

    def annotate(self, summary: str, status: str, comments: str) -> str:
        """Return the AI status remark, or "" without calling the service when there are no comments."""
        if not comments:
            return ""
        if not self.endpoint:
            raise ConfigurationMissing("ai_endpoint", "The AI endpoint is not configured.")
        if not self.model:
            raise ConfigurationMissing("ai_model", "The AI model is not configured.")

        payload = {"model": self.model, "messages": self._messages(summary, status, comments), "stream": False}
        res = perform_request_with_retries(
            "POST",
            f"{self.endpoint}/api/chat",
            headers={"Content-Type": "application/json"},
            json_body=payload,
            timeout=self.timeout,
        )
        status_code = res.get("status", 0)
        body = res.get("response")
        if not 200 <= status_code < 300:
            raise UpstreamRequestFailed("annotate", error_detail(body), status_code or None)
        content = _message_content(body)
        if not content:
            raise UpstreamRequestFailed("annotate", "empty reply from model")
        logger.debug("AI remark for %r: %s", summary, content)
        return content


def _message_content(body: Any) -> str:
    if not isinstance(body, dict):
        raise UpstreamRequestFailed("annotate", "malformed payload: expected an object")
    message = body.get("message")
    if not isinstance(message, dict) or not isinstance(message.get("content"), str):
        raise UpstreamRequestFailed("annotate", "malformed payload: missing message.content")
    return message["content"].strip()
