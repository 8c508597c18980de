"""
ApiVeritas - Consumer-Driven API Contract Testing

Executes a suite of HTTP requests, stores the responses as timestamped
snapshots and compares the two most recent snapshots for structural and
value-level contract drift.
"""

__version__ = "1.5.3"

from .models import (
    EMPTY,
    ComparisonOptions,
    DifferenceRecord,
    DiffKind,
    Severity,
    FileComparisonResult,
    RunVerdict,
    ApiRequest,
    AppConfig,
)
from .differ import StructuralDiffer
from .schema import (
    SchemaInferencer,
    SchemaStrictifier,
    SchemaValidator,
    SchemaPipeline,
)
from .comparer import PayloadComparer, compare_latest
from .config import ConfigLoader, PathValidator
from .suite import TestSuiteLoader, load_suite
from .saver import ResponseSaver
from .caller import ApiCaller, CallResult
from .reporter import HtmlReporter

__all__ = [
    # Comparison
    "PayloadComparer",
    "compare_latest",
    "StructuralDiffer",
    "ComparisonOptions",
    # Schema pipeline
    "SchemaInferencer",
    "SchemaStrictifier",
    "SchemaValidator",
    "SchemaPipeline",
    # Results
    "EMPTY",
    "DifferenceRecord",
    "DiffKind",
    "Severity",
    "FileComparisonResult",
    "RunVerdict",
    # Collaborators
    "ApiRequest",
    "AppConfig",
    "ConfigLoader",
    "PathValidator",
    "TestSuiteLoader",
    "load_suite",
    "ResponseSaver",
    "ApiCaller",
    "CallResult",
    "HtmlReporter",
]
