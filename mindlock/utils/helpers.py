"""
Common utility functions.
"""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


def new_id() -> str:
    """Generate a document id."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    """Timezone-aware current time, used for created/updated stamps."""
    return datetime.now(timezone.utc)


def ensure_dir(path: Path) -> Path:
    """
    Ensure directory exists, create if not.

    Args:
        path: Directory path

    Returns:
        The path object
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def format_json(data: Dict[str, Any], indent: int = 2) -> str:
    """
    Format dictionary as pretty JSON string.

    Args:
        data: Dictionary to format
        indent: Indentation spaces

    Returns:
        Formatted JSON string
    """
    return json.dumps(data, indent=indent, ensure_ascii=False)


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated string, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
