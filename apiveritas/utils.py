"""Utility functions for ApiVeritas."""

from __future__ import annotations

import re
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from .models import EMPTY, JsonType

logger = logging.getLogger(__name__)

ROOT_PATH = "#"
TIMESTAMP_FORMAT = "%Y.%m.%d.%H%M%S"

_EMPTY_LITERALS = ("", '""', "null")


def _reject_constant(name: str):
    raise ValueError(f"{name} is not a valid JSON value")


def get_json_type(value: Any) -> JsonType:
    """Classify a parsed JSON value. int and float are both numbers."""
    if value is None:
        return JsonType.NULL
    elif isinstance(value, bool):
        return JsonType.BOOLEAN
    elif isinstance(value, (int, float)):
        return JsonType.NUMBER
    elif isinstance(value, str):
        return JsonType.STRING
    elif isinstance(value, (list, tuple)):
        return JsonType.ARRAY
    elif isinstance(value, dict):
        return JsonType.OBJECT
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def is_container(value: Any) -> bool:
    return isinstance(value, (dict, list, tuple))


def iter_items(value: Any) -> Iterable[tuple[str, Any]]:
    """Yield (key, child) pairs; arrays are keyed by their index."""
    if isinstance(value, dict):
        return ((str(k), v) for k, v in value.items())
    return ((str(i), v) for i, v in enumerate(value))


def lookup(container: Any, key: str) -> tuple[bool, Any]:
    """Return (present, value) for a key produced by ``iter_items``."""
    if isinstance(container, dict):
        if key in container:
            return True, container[key]
        return False, None
    if isinstance(container, (list, tuple)) and key.isdigit():
        index = int(key)
        if index < len(container):
            return True, container[index]
    return False, None


def build_path(prefix: str, key: str | int) -> str:
    """Build a dot-delimited path from a parent path and a key."""
    if not prefix or prefix == ROOT_PATH:
        return str(key)
    return f"{prefix}.{key}"


def format_path(path: str) -> str:
    return path or ROOT_PATH


def pointer_to_path(parts: Iterable[Any]) -> str:
    """Convert a sequence of instance path parts to a dot-delimited path."""
    path = ".".join(str(p) for p in parts)
    return path or ROOT_PATH


def instance_pointer(parts: Iterable[Any]) -> str:
    """Format instance path parts as a JSON pointer, '#' for the root."""
    parts = [str(p).replace("~", "~0").replace("/", "~1") for p in parts]
    if not parts:
        return ROOT_PATH
    return "/" + "/".join(parts)


def format_value(value: Any, limit: int = 80) -> str:
    """Render a JSON value for a human-readable message."""
    try:
        text = json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        text = repr(value)
    if len(text) > limit:
        text = text[:limit - 3] + "..."
    return text


def parse_payload(raw: str, source: str = "<payload>") -> Any:
    """
    Parse payload text, normalizing blank, null and unparsable content.

    Returns:
        The parsed JSON value, or EMPTY
    """
    text = raw.strip()
    if text.startswith("\ufeff"):
        text = text[1:].strip()
    if text in _EMPTY_LITERALS:
        return EMPTY
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        logger.warning("Failed to parse JSON at %s: %s", source, e)
        return EMPTY


def load_payload(path: Path) -> Any:
    """Read and parse a snapshot file. Unreadable files load as EMPTY."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read payload at %s: %s", path, e)
        return EMPTY
    return parse_payload(raw, str(path))


def timestamp_folder_name(now: Optional[datetime] = None) -> str:
    """Timestamp in the lexically sortable form YYYY.MM.DD.HHmmss."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def safe_name(name: str) -> str:
    """Collapse whitespace runs in a test case name to underscores."""
    return re.sub(r"\s+", "_", name)
