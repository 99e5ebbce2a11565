"""
HTTP request helper with opt-in retry/backoff for rate-limited responses.
All clients (Jira, Confluence, LLM) send their calls through perform_request_with_retries.
By default a single attempt is made; retrying is a caller decision (CLI flag or env).
"""

import os
import time
import random
import email.utils
from datetime import datetime, timezone
from typing import Optional, Dict, Any
import requests

# defaults from environment
# - NOTES_MAX_RETRIES: int, total attempts (1 = no retry)
# - NOTES_BACKOFF_BASE: float seconds
# - NOTES_MAX_BACKOFF: float seconds
# - NOTES_HTTP_TIMEOUT: float seconds per request
DEFAULT_MAX_RETRIES = int(os.getenv("NOTES_MAX_RETRIES", "1"))
DEFAULT_BACKOFF_BASE = float(os.getenv("NOTES_BACKOFF_BASE", "0.5"))
DEFAULT_MAX_BACKOFF = float(os.getenv("NOTES_MAX_BACKOFF", "60.0"))
DEFAULT_TIMEOUT = float(os.getenv("NOTES_HTTP_TIMEOUT", "30"))

# runtime overrides (set once from the CLI)
_runtime_max_retries: Optional[int] = None
_runtime_backoff_base: Optional[float] = None
_runtime_max_backoff: Optional[float] = None
_runtime_timeout: Optional[float] = None

RETRYABLE_STATUSES = (429, 503)


def configure_retry(
    max_retries: Optional[int] = None,
    backoff_base: Optional[float] = None,
    max_backoff: Optional[float] = None,
    timeout: Optional[float] = None,
):
    """Configure retry/backoff defaults at runtime (e.g. from CLI)."""
    global _runtime_max_retries, _runtime_backoff_base, _runtime_max_backoff, _runtime_timeout
    if max_retries is not None:
        _runtime_max_retries = max(1, int(max_retries))
    if backoff_base is not None:
        _runtime_backoff_base = float(backoff_base)
    if max_backoff is not None:
        _runtime_max_backoff = float(max_backoff)
    if timeout is not None:
        _runtime_timeout = float(timeout)


def effective_max_retries(max_retries: Optional[int] = None) -> int:
    if max_retries is not None:
        return max(1, int(max_retries))
    if _runtime_max_retries is not None:
        return _runtime_max_retries
    return max(1, DEFAULT_MAX_RETRIES)


def effective_timeout(timeout: Optional[float] = None) -> float:
    if timeout is not None:
        return float(timeout)
    if _runtime_timeout is not None:
        return _runtime_timeout
    return DEFAULT_TIMEOUT


def _parse_retry_after(raw_ra: Optional[str]) -> Optional[float]:
    if not raw_ra:
        return None
    try:
        return float(raw_ra)
    except ValueError:
        pass
    try:
        dt = email.utils.parsedate_to_datetime(raw_ra)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return max(0.0, (dt - datetime.now(timezone.utc)).total_seconds())


def _header_number(headers: Dict[str, Any], key: str) -> Optional[float]:
    val = headers.get(key)
    if val is None:
        return None
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


def _should_retry(status: int, headers: Dict[str, Any]) -> bool:
    if status in RETRYABLE_STATUSES:
        return True
    if status >= 400 and headers.get("Retry-After"):
        return True
    remaining = _header_number(headers, "X-RateLimit-Remaining")
    return status >= 400 and remaining is not None and remaining <= 0


def _compute_wait_seconds(headers: Dict[str, Any], backoff: float, max_backoff: float) -> float:
    """Pick the wait before the next attempt: Retry-After, then rate-limit reset, then backoff."""
    jitter = random.uniform(0, backoff)
    retry_after = _parse_retry_after(headers.get("Retry-After"))
    if retry_after is not None:
        return min(retry_after + jitter, max_backoff)
    reset = _header_number(headers, "X-RateLimit-Reset")
    if reset:
        return min(max(0.0, reset - time.time()) + jitter, max_backoff)
    return min(backoff + jitter, max_backoff)


def _parse_body(resp) -> Any:
    if not getattr(resp, "content", b"x"):
        return None
    try:
        return resp.json()
    except ValueError:
        return getattr(resp, "text", None)


def _attempt_request_once(method: str, url: str, headers, params, json_body, timeout: float):
    try:
        resp = requests.request(method, url, headers=headers or {}, params=params or None, json=json_body, timeout=timeout)
    except requests.RequestException as ex:
        return {"response": str(ex), "status": 0, "headers": {}, "timestamp": time.time()}
    headers_in = dict(getattr(resp, "headers", None) or {})
    return {"response": _parse_body(resp), "status": resp.status_code, "headers": headers_in, "timestamp": time.time()}


def perform_request_with_retries(
    method: str,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    json_body: Optional[Any] = None,
    max_retries: Optional[int] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """Perform an HTTP request and return {'response', 'status', 'headers', 'timestamp'}.

    status is 0 when the request never reached the server; 'response' then holds the error text.
    Rate-limited answers (429/503, Retry-After, exhausted X-RateLimit-Remaining) are retried up to
    max_retries total attempts. Other failures are returned as-is for the caller to interpret.
    """
    attempts = effective_max_retries(max_retries)
    timeout_s = effective_timeout(timeout)
    backoff = float(_runtime_backoff_base if _runtime_backoff_base is not None else DEFAULT_BACKOFF_BASE)
    max_backoff = float(_runtime_max_backoff if _runtime_max_backoff is not None else DEFAULT_MAX_BACKOFF)

    result: Dict[str, Any] = {"response": None, "status": 0, "headers": {}, "timestamp": time.time()}
    for attempt in range(attempts):
        result = _attempt_request_once(method, url, headers, params, json_body, timeout_s)
        status = result["status"]
        last_attempt = attempt == attempts - 1
        if 200 <= status < 300 or last_attempt:
            return result
        if status and not _should_retry(status, result["headers"]):
            return result
        time.sleep(_compute_wait_seconds(result["headers"], backoff, max_backoff))
        backoff = min(backoff * 2, max_backoff)
    return result


__all__ = ["configure_retry", "perform_request_with_retries", "effective_max_retries", "effective_timeout"]
