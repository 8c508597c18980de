"""Test suite loading for ApiVeritas."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml

from .exceptions import SuiteLoadError
from .models import ApiRequest, AppConfig, DEFAULT_BASE_URL, MOCK_BASE_URL

logger = logging.getLogger(__name__)

MOCK_SUITE_FILE = "mock.json"
SUITE_SUFFIXES = (".json", ".yaml", ".yml")


class TestSuiteLoader:
    """Reads request definitions from ``<workspace>/tests/<file>``."""

    __test__ = False

    def __init__(self, config: AppConfig):
        self.config = config
        self.tests_dir = Path(config.workspace) / "tests"

    def resolve_suite_file(self, test_file: str) -> tuple[str, str]:
        """
        Pick the suite file and base URL, honoring mock server mode.

        Returns:
            (suite file name, base URL)
        """
        if self.config.enable_mock_server:
            if test_file and test_file != MOCK_SUITE_FILE:
                logger.warning("Ignoring test file \"%s\", using \"%s\" because enableMockServer=true",
                               test_file, MOCK_SUITE_FILE)
            return MOCK_SUITE_FILE, MOCK_BASE_URL
        return test_file, self.config.base_url or DEFAULT_BASE_URL

    def load_suite(self, test_file: str) -> list[ApiRequest]:
        """
        Load and validate a suite file.

        Args:
            test_file: File name inside the tests folder

        Returns:
            Requests enriched with the suite name and base URL

        Raises:
            SuiteLoadError: If the file is missing, unparsable or malformed
        """
        actual_file, base_url = self.resolve_suite_file(test_file)
        if self.config.enable_mock_server:
            logger.info("Mock server mode enabled: suite=%s base_url=%s", actual_file, base_url)

        suite_path = self.tests_dir / actual_file
        if not suite_path.is_file():
            raise SuiteLoadError(f"Test file not found: {suite_path}", str(suite_path))

        try:
            with open(suite_path, "r", encoding="utf-8") as f:
                entries = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise SuiteLoadError(f"Failed to parse test suite file: {e}", str(suite_path))

        if not isinstance(entries, list):
            raise SuiteLoadError(
                "Test suite must be a list of API definitions", str(suite_path)
            )

        suite_name = suite_path.stem
        requests = []
        for i, entry in enumerate(entries):
            if not isinstance(entry, dict) or not entry.get("name") or not entry.get("url"):
                raise SuiteLoadError(
                    f"Test case at index {i} is missing required fields (name, url)",
                    str(suite_path),
                    index=i,
                )
            requests.append(ApiRequest.from_dict(entry, test_suite=suite_name, base_url=base_url))

        logger.info("Loaded %d requests from %s", len(requests), suite_path)
        return requests

    def list_available_suites(self) -> list[str]:
        if not self.tests_dir.is_dir():
            return []
        return sorted(
            entry.name for entry in self.tests_dir.iterdir()
            if entry.is_file() and entry.suffix in SUITE_SUFFIXES
        )


def load_suite(test_file: str, config: AppConfig) -> list[ApiRequest]:
    """Convenience function to load a suite file."""
    return TestSuiteLoader(config).load_suite(test_file)
