"""Timestamped snapshot storage for ApiVeritas."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .utils import timestamp_folder_name, safe_name

logger = logging.getLogger(__name__)


class ResponseSaver:
    """
    Saves API responses under ``<base>/<suite>/<timestamp>/<name>.json``.

    One saver instance corresponds to one test run, so every response it
    writes shares the same timestamp folder.
    """

    def __init__(self, base_folder: str | Path, now: Optional[datetime] = None):
        self.base_folder = Path(base_folder)
        self.timestamp_folder = timestamp_folder_name(now)

    def suite_folder(self, suite: str) -> Path:
        return self.base_folder / suite / self.timestamp_folder

    def save_response(self, suite: str, name: str, data: Any) -> Path:
        """
        Write one response payload as pretty-printed JSON.

        Returns:
            Path of the written file
        """
        folder = self.suite_folder(suite)
        if not folder.exists():
            folder.mkdir(parents=True, exist_ok=True)
            logger.info("Storage folder: %s", folder)

        file_path = folder / f"{safe_name(name)}.json"
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        return file_path
