"""Workspace configuration loading for ApiVeritas."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from .exceptions import ConfigError
from .models import AppConfig, DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE = "apiveritas"
CONFIG_FILE_NAMES = ("config.yaml", "config.yml", "config.json")

KNOWN_KEYS = (
    "strictSchema",
    "strictValues",
    "tolerateEmptyResponses",
    "payloadsPath",
    "reportsPath",
    "baseUrl",
    "enableMockServer",
)


class PathValidator:
    """Rejects folder paths that are empty or point into system directories."""

    RISKY_ROOTS = ("/", "/etc", "/bin", "/boot", "/sys", "/proc")

    @classmethod
    def is_suspicious_path(cls, path: str | Path) -> bool:
        normalized = Path(path).resolve().as_posix().lower()
        for root in cls.RISKY_ROOTS:
            if normalized == root:
                return True
            if root != "/" and normalized.startswith(root + "/"):
                return True
        return False

    @classmethod
    def validate_folder_path(
        cls,
        folder_path: Optional[str],
        fallback_path: str | Path,
        label: str
    ) -> str:
        """
        Resolve a configured folder path, falling back to a default.

        Args:
            folder_path: Path from the config file (relative or absolute)
            fallback_path: Path used when folder_path is unusable
            label: Config key, for log messages

        Returns:
            Absolute path as a string
        """
        fallback = str(Path(fallback_path).resolve())

        if folder_path is None or not str(folder_path).strip():
            logger.warning("Config: %s not set or empty. Using default: %s", label, fallback)
            return fallback

        resolved = Path(str(folder_path)).expanduser().resolve()
        if cls.is_suspicious_path(resolved):
            logger.warning("Config: %s path \"%s\" is suspicious or unsafe. Using default: %s",
                           label, resolved, fallback)
            return fallback

        return str(resolved)


class ConfigLoader:
    """
    Loads and updates the workspace configuration file.

    Usage:
        loader = ConfigLoader("apiveritas")
        config = loader.load_config()
        options = config.comparison_options()
    """

    def __init__(self, workspace: Optional[str | Path] = None):
        self.workspace = Path(workspace or Path.cwd() / DEFAULT_WORKSPACE).resolve()

    @property
    def config_path(self) -> Path:
        """Existing config file, or the default YAML location."""
        for name in CONFIG_FILE_NAMES:
            candidate = self.workspace / name
            if candidate.is_file():
                return candidate
        return self.workspace / CONFIG_FILE_NAMES[0]

    def _read_raw(self) -> Optional[dict]:
        path = self.config_path
        if not path.is_file():
            logger.warning("Config file not found at %s, using default settings.", path)
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Failed to parse %s, using defaults: %s", path, e)
            return None

        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning("Config file %s must contain a mapping, using defaults.", path)
            return None
        return data

    def load_config(self) -> AppConfig:
        """Load the config file, applying defaults for anything missing."""
        raw = self._read_raw()
        default_payloads = self.workspace / "payloads"
        default_reports = self.workspace / "reports"

        if raw is None:
            return AppConfig(
                workspace=str(self.workspace),
                payloads_path=str(default_payloads),
                reports_path=str(default_reports),
            )

        return AppConfig(
            workspace=str(self.workspace),
            payloads_path=PathValidator.validate_folder_path(
                self._relative(raw.get("payloadsPath")), default_payloads, "payloadsPath"
            ),
            reports_path=PathValidator.validate_folder_path(
                self._relative(raw.get("reportsPath")), default_reports, "reportsPath"
            ),
            strict_schema=raw.get("strictSchema") is not False,
            strict_values=raw.get("strictValues") is not False,
            tolerate_empty_responses=raw.get("tolerateEmptyResponses") is True,
            base_url=raw.get("baseUrl") or DEFAULT_BASE_URL,
            enable_mock_server=raw.get("enableMockServer") is True,
            config_file=str(self.config_path),
            extra={k: v for k, v in raw.items() if k not in KNOWN_KEYS},
        )

    def _relative(self, value: Any) -> Optional[str]:
        """Resolve relative config paths against the workspace folder."""
        if value is None or not str(value).strip():
            return None
        path = Path(str(value)).expanduser()
        if not path.is_absolute():
            path = self.workspace / path
        return str(path)

    def update_config(self, changes: dict) -> AppConfig:
        """
        Merge changes into the config file and write it back.

        Args:
            changes: camelCase keys and their new values

        Returns:
            The reloaded configuration
        """
        merged = self.load_config().to_dict()
        merged.update(changes)

        path = self.config_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                if path.suffix == ".json":
                    json.dump(merged, f, indent=2)
                    f.write("\n")
                else:
                    yaml.safe_dump(merged, f, sort_keys=False)
        except OSError as e:
            raise ConfigError(f"Failed to write config: {e}", str(path))

        logger.info("Config updated at %s", path)
        return self.load_config()


def parse_bool(value: str) -> bool:
    """Parse a command-line boolean such as 'true' or 'false'."""
    normalized = str(value).strip().lower()
    if normalized in ("true", "1", "yes", "on"):
        return True
    if normalized in ("false", "0", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean value: {value}")
