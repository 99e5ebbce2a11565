"""
Settings providers.

SettingsStore keeps the operator settings in a single-row SQLite table with an
in-process cached copy; EnvSettingsProvider reads them from the environment after
loading .env files with python-dotenv. Both expose get() and invalidate().
"""

import logging
import os
import sqlite3
import sys
import threading
from pathlib import Path
from typing import Iterable, Optional

from dotenv import load_dotenv

from errors import ConfigurationMissing
from normalize.models import Configuration, split_user_ids

logger = logging.getLogger(__name__)

SETTINGS_NOT_FOUND = "Settings not found. Please ensure that you have set up all the required settings in the settings page."

# noinspection SqlResolve
SQL_CREATE = """
CREATE TABLE IF NOT EXISTS settings (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    org_base_url TEXT NOT NULL,
    auth_email TEXT,
    api_key TEXT NOT NULL,
    ai_endpoint TEXT,
    ai_model TEXT,
    preferred_project_id TEXT,
    preferred_user_ids TEXT
);
"""

# noinspection SqlResolve
SQL_UPSERT = """
INSERT INTO settings (id, org_base_url, auth_email, api_key, ai_endpoint, ai_model, preferred_project_id, preferred_user_ids)
VALUES (1, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    org_base_url = excluded.org_base_url,
    auth_email = excluded.auth_email,
    api_key = excluded.api_key,
    ai_endpoint = excluded.ai_endpoint,
    ai_model = excluded.ai_model,
    preferred_project_id = excluded.preferred_project_id,
    preferred_user_ids = excluded.preferred_user_ids
"""


class SettingsStore:
    """Single-row settings table. Reads are served from a cached copy until invalidate()."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or ":memory:"
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self._lock = threading.RLock()
        self._cached: Optional[Configuration] = None
        self._loaded = False
        with self._lock:
            self.conn.executescript(SQL_CREATE)
            self.conn.commit()

    def close(self):
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # noinspection SqlResolve
    def get(self) -> Optional[Configuration]:
        """Return the stored Configuration, or None when nothing was saved yet."""
        with self._lock:
            if self._loaded:
                return self._cached
            cur = self.conn.execute(
                "SELECT org_base_url, auth_email, api_key, ai_endpoint, ai_model, preferred_project_id, preferred_user_ids FROM settings WHERE id = 1"
            )
            row = cur.fetchone()
            self._cached = None
            if row:
                org_url, email, api_key, ai_endpoint, ai_model, project, users = row
                self._cached = Configuration(
                    org_base_url=org_url,
                    auth_email=email or "",
                    api_key=api_key,
                    ai_endpoint=ai_endpoint or "",
                    ai_model=ai_model or "",
                    preferred_project_id=project or "",
                    preferred_user_ids=split_user_ids(users),
                )
            self._loaded = True
            return self._cached

    def invalidate(self):
        with self._lock:
            self._cached = None
            self._loaded = False

    def save(self, org_url: str, auth_email: str, api_key: str, ai_endpoint: str = "", ai_model: str = "", preferred_project: str = "", preferred_users: str = "") -> Configuration:
        """Validate and store the settings, replacing the previous row."""
        config = Configuration(
            org_base_url=org_url,
            auth_email=auth_email,
            api_key=api_key,
            ai_endpoint=ai_endpoint,
            ai_model=ai_model,
            preferred_project_id=(preferred_project or "").strip(),
            preferred_user_ids=split_user_ids(preferred_users),
        ).validate()
        with self._lock:
            self.conn.execute(
                SQL_UPSERT,
                (
                    config.org_base_url,
                    config.auth_email,
                    config.api_key,
                    config.ai_endpoint,
                    config.ai_model,
                    config.preferred_project_id,
                    ",".join(config.preferred_user_ids),
                ),
            )
            self.conn.commit()
            self.invalidate()
        logger.info("Settings saved for %s", config.org_base_url)
        return config


def _candidate_paths() -> Iterable[Path]:
    """Candidate .env files in priority order."""
    repo_root = Path(__file__).resolve().parent.parent
    return (Path.cwd() / ".env", repo_root / ".env")


def _running_pytest() -> bool:
    return "PYTEST_CURRENT_TEST" in os.environ or any("pytest" in (arg or "") for arg in sys.argv[:2])


class EnvSettingsProvider:
    """Settings from JIRA_* / LLAMA_* / PREFERRED_* environment variables."""

    def __init__(self, env_files: Optional[Iterable[str]] = None, load_env_files: bool = True):
        self.env_files = [Path(p) for p in env_files] if env_files else None
        self.load_env_files = load_env_files
        self._env_loaded = False
        self._cached: Optional[Configuration] = None
        self._loaded = False

    def _ensure_env_loaded(self):
        if self._env_loaded or not self.load_env_files:
            return
        self._env_loaded = True
        # explicit files are always honoured; discovered ones are skipped under pytest
        if self.env_files is None and _running_pytest():
            return
        for path in self.env_files or _candidate_paths():
            if path.exists():
                load_dotenv(path, override=False)
                logger.debug("Loaded environment from %s", path)

    def get(self) -> Optional[Configuration]:
        if not self._loaded:
            self._ensure_env_loaded()
            self._cached = Configuration.from_env()
            self._loaded = True
        return self._cached

    def invalidate(self):
        self._cached = None
        self._loaded = False


def require_settings(provider) -> Configuration:
    """Return the provider's validated Configuration or fail with an actionable message."""
    config = provider.get()
    if config is None:
        raise ConfigurationMissing("settings", SETTINGS_NOT_FOUND)
    return config.validate()
