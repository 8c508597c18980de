"""Workspace scaffolding for ``apiveritas init``."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
WORKSPACE_FOLDERS = ("payloads", "reports")


class InitService:
    """Copies the bundled templates into a workspace folder."""

    def __init__(self, base_dir: str | Path, force: bool = False, templates_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir)
        self.force = force
        self.templates_dir = Path(templates_dir or TEMPLATES_DIR)

    def initialize(self) -> list[Path]:
        """
        Create the workspace and copy templates into it.

        Returns:
            Files written; existing files are skipped unless ``force``
        """
        logger.info("Initializing workspace in: %s", self.base_dir)
        if not self.templates_dir.is_dir():
            raise ConfigError(f"Templates directory not found at {self.templates_dir}",
                              str(self.templates_dir))

        self.base_dir.mkdir(parents=True, exist_ok=True)
        for folder in WORKSPACE_FOLDERS:
            (self.base_dir / folder).mkdir(exist_ok=True)

        written = []
        for template in sorted(self.templates_dir.rglob("*")):
            if not template.is_file():
                continue
            target = self.base_dir / template.relative_to(self.templates_dir)
            if target.exists() and not self.force:
                logger.info("Keeping existing file: %s", target)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(template, target)
            written.append(target)

        logger.info("Workspace initialized in %s (%d files written)", self.base_dir, len(written))
        return written
