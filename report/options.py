"""
Report layout options, optionally loaded from a YAML file.

Recognized keys: title, skip_fields, extra_columns, missing_story_points.
Unknown keys are ignored; a missing file yields the defaults.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

import yaml

from errors import ValidationError

DEFAULT_SKIP_FIELDS = ["assignee"]
DEFAULT_MISSING_STORY_POINTS = "N/A"


@dataclass
class ReportOptions:
    title: Optional[str] = None
    skip_fields: List[str] = field(default_factory=lambda: list(DEFAULT_SKIP_FIELDS))
    extra_columns: List[str] = field(default_factory=list)
    missing_story_points: str = DEFAULT_MISSING_STORY_POINTS


def _str_list(value, key: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ValidationError(f"Report option '{key}' must be a list of column names.")
    return [str(v) for v in value]


def load_report_options(path: Optional[str] = None) -> ReportOptions:
    """Read ReportOptions from a YAML mapping at path, or return defaults when there is no file."""
    options = ReportOptions()
    if not path or not os.path.exists(path):
        return options
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ValidationError(f"Report options file {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ValidationError(f"Report options file {path} must contain a mapping.")

    if data.get("title"):
        options.title = str(data["title"])
    if "skip_fields" in data:
        options.skip_fields = _str_list(data["skip_fields"], "skip_fields")
    if "extra_columns" in data:
        options.extra_columns = _str_list(data["extra_columns"], "extra_columns")
    if data.get("missing_story_points") is not None:
        options.missing_story_points = str(data["missing_story_points"])
    return options
