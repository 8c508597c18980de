"""Data models for ApiVeritas."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class DiffKind(Enum):
    MISSING_KEY = "missing-key"
    TYPE_MISMATCH = "type-mismatch"
    VALUE_MISMATCH = "value-mismatch"
    ADDITIONAL_PROPERTY = "additional-property"
    SCHEMA_VIOLATION = "schema-violation"
    FILE_MISSING = "file-missing"
    EMPTY_PAYLOAD = "empty-payload"


class Severity(Enum):
    BLOCKING = "blocking"
    INFORMATIONAL = "informational"


class JsonType(Enum):
    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"


class _Empty:
    """Marker for a payload that is blank, null or unparsable."""

    _instance: Optional[_Empty] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "EMPTY"


EMPTY = _Empty()


def is_empty(payload: Any) -> bool:
    return payload is EMPTY


@dataclass(frozen=True)
class DifferenceRecord:
    """A single discrepancy found while comparing two payloads."""
    path: str
    kind: DiffKind
    message: str
    severity: Severity = Severity.BLOCKING

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.BLOCKING

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "kind": self.kind.value,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class FileComparisonResult:
    """
    Outcome of comparing one snapshot file against its counterpart.

    Build instances with ``from_differences`` so that ``matched`` and the
    ordering of ``differences`` (blocking first) always agree.
    """
    file_name: str
    matched: bool
    differences: tuple[DifferenceRecord, ...] = ()
    old_content: Any = None
    new_content: Any = None

    @classmethod
    def from_differences(
        cls,
        file_name: str,
        differences: list[DifferenceRecord],
        old_content: Any = None,
        new_content: Any = None
    ) -> FileComparisonResult:
        ordered = sorted(differences, key=lambda d: not d.is_blocking)
        return cls(
            file_name=file_name,
            matched=not any(d.is_blocking for d in ordered),
            differences=tuple(ordered),
            old_content=old_content,
            new_content=new_content,
        )

    @property
    def blocking(self) -> list[DifferenceRecord]:
        return [d for d in self.differences if d.is_blocking]

    @property
    def informational(self) -> list[DifferenceRecord]:
        return [d for d in self.differences if not d.is_blocking]

    def to_dict(self) -> dict:
        return {
            "file_name": self.file_name,
            "matched": self.matched,
            "differences": [d.to_dict() for d in self.differences],
            "old_content": None if is_empty(self.old_content) else self.old_content,
            "new_content": None if is_empty(self.new_content) else self.new_content,
        }


@dataclass(frozen=True)
class ComparisonOptions:
    """Strictness settings for one comparison run."""
    strict_schema: bool = True
    strict_values: bool = True
    tolerate_empty_responses: bool = False


@dataclass(frozen=True)
class RunVerdict:
    """Aggregate outcome of one comparison run."""
    old_folder: str
    new_folder: str
    matched_count: int
    diff_count: int
    total_files: int
    results: tuple[FileComparisonResult, ...] = ()
    report_path: Optional[str] = None

    @property
    def any_differences(self) -> bool:
        return self.diff_count > 0

    @classmethod
    def from_results(
        cls,
        old_folder: str,
        new_folder: str,
        results: list[FileComparisonResult],
        report_path: Optional[str] = None
    ) -> RunVerdict:
        matched = sum(1 for r in results if r.matched)
        return cls(
            old_folder=old_folder,
            new_folder=new_folder,
            matched_count=matched,
            diff_count=len(results) - matched,
            total_files=len(results),
            results=tuple(results),
            report_path=report_path,
        )

    def to_dict(self) -> dict:
        return {
            "old_folder": self.old_folder,
            "new_folder": self.new_folder,
            "summary": {
                "matched": self.matched_count,
                "differed": self.diff_count,
                "total_files": self.total_files,
                "any_differences": self.any_differences,
            },
            "report_path": self.report_path,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class ApiRequest:
    """One request definition from a test suite."""
    name: str
    url: str
    method: str = "GET"
    auth: Optional[dict] = None
    body: Any = None
    headers: Optional[dict] = None
    expected_status: Optional[int] = None
    test_suite: Optional[str] = None
    base_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, test_suite: str = None, base_url: str = None) -> ApiRequest:
        return cls(
            name=data["name"],
            url=data["url"],
            method=str(data.get("method") or "GET").upper(),
            auth=data.get("auth"),
            body=data.get("body"),
            headers=data.get("headers"),
            expected_status=data.get("expectedStatus"),
            test_suite=test_suite or data.get("testSuite"),
            base_url=base_url if base_url is not None else data.get("baseUrl"),
        )

    def to_dict(self) -> dict:
        result = {"name": self.name, "url": self.url, "method": self.method}
        if self.auth:
            result["auth"] = {"username": self.auth.get("username"), "password": "***"}
        if self.body is not None:
            result["body"] = self.body
        if self.headers:
            result["headers"] = self.headers
        if self.expected_status is not None:
            result["expectedStatus"] = self.expected_status
        if self.test_suite:
            result["testSuite"] = self.test_suite
        if self.base_url:
            result["baseUrl"] = self.base_url
        return result


DEFAULT_BASE_URL = "http://localhost:8080"
MOCK_BASE_URL = "http://localhost:3000"


@dataclass(frozen=True)
class AppConfig:
    """Workspace configuration loaded once per invocation."""
    workspace: str
    payloads_path: str
    reports_path: str
    strict_schema: bool = True
    strict_values: bool = True
    tolerate_empty_responses: bool = False
    base_url: str = DEFAULT_BASE_URL
    enable_mock_server: bool = False
    config_file: Optional[str] = None
    extra: dict = field(default_factory=dict)

    def comparison_options(self) -> ComparisonOptions:
        return ComparisonOptions(
            strict_schema=self.strict_schema,
            strict_values=self.strict_values,
            tolerate_empty_responses=self.tolerate_empty_responses,
        )

    def to_dict(self) -> dict:
        result = {
            "strictSchema": self.strict_schema,
            "strictValues": self.strict_values,
            "tolerateEmptyResponses": self.tolerate_empty_responses,
            "payloadsPath": self.payloads_path,
            "reportsPath": self.reports_path,
            "baseUrl": self.base_url,
            "enableMockServer": self.enable_mock_server,
        }
        result.update(self.extra)
        return result
