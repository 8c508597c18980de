"""Snapshot folder comparison for ApiVeritas."""

from __future__ import annotations

import time
import logging
from pathlib import Path
from typing import Any, Optional

from .models import (
    ComparisonOptions,
    DifferenceRecord,
    DiffKind,
    Severity,
    FileComparisonResult,
    RunVerdict,
    is_empty,
)
from .differ import StructuralDiffer
from .schema import SchemaPipeline, dump_schema
from .utils import load_payload, ROOT_PATH

logger = logging.getLogger(__name__)


class PayloadComparer:
    """
    Compares the two most recent snapshot folders of a test suite.

    Per file, the pipeline is:

    1. Loading: read both payloads, normalizing blank/null/invalid to EMPTY
    2. Empty handling: tolerated as a note, or a blocking difference
    3. Structural diff: baseline keys against the candidate
    4. Schema check: infer from baseline, optionally strictify, validate candidate

    The file set is taken from the baseline folder only; files that
    exist only in the newer folder are not reported.
    """

    def __init__(
        self,
        options: Optional[ComparisonOptions] = None,
        test_suite: Optional[str] = None,
        payloads_root: str | Path = "payloads",
        reporter: Any = None
    ):
        """
        Initialize the comparer.

        Args:
            options: Strictness settings, fixed for the lifetime of the comparer
            test_suite: Suite whose snapshot folders are compared
            payloads_root: Folder holding ``<suite>/<timestamp>/`` snapshots
            reporter: Object with ``generate_report(old, new, results)``;
                no report is written when omitted
        """
        self.options = options or ComparisonOptions()
        self.test_suite = test_suite
        self.payloads_root = Path(payloads_root)
        self.reporter = reporter
        self.differ = StructuralDiffer(strict_values=self.options.strict_values)
        self.schema_pipeline = SchemaPipeline(strict_schema=self.options.strict_schema)

    def suite_dir(self, test_suite: Optional[str] = None) -> Path:
        suite = test_suite or self.test_suite
        if suite:
            return self.payloads_root / suite
        return self.payloads_root

    def get_latest_two_payload_folders(
        self,
        test_suite: Optional[str] = None
    ) -> Optional[tuple[str, str]]:
        """
        Find the two newest snapshot folders.

        Folder names sort chronologically because the saver names them
        ``YYYY.MM.DD.HHmmss``.

        Returns:
            (previous, latest), or None when fewer than two folders exist
        """
        suite_dir = self.suite_dir(test_suite)
        if not suite_dir.is_dir():
            logger.warning("No payloads directory found at %s", suite_dir)
            return None

        folders = sorted(
            (entry.name for entry in suite_dir.iterdir() if entry.is_dir()),
            reverse=True,
        )

        if len(folders) < 2:
            logger.warning("Not enough payload folders to compare in %s (found %d)",
                           suite_dir, len(folders))
            return None

        return folders[1], folders[0]

    def compare_folders(
        self,
        old_folder: str,
        new_folder: str,
        test_suite: Optional[str] = None
    ) -> Optional[RunVerdict]:
        """
        Compare every baseline file with its counterpart in the newer folder.

        Args:
            old_folder: Baseline snapshot folder name
            new_folder: Candidate snapshot folder name
            test_suite: Overrides the suite given at construction

        Returns:
            RunVerdict for the run, or None if either folder does not exist
        """
        start_time = time.time()
        suite_dir = self.suite_dir(test_suite)
        old_path = suite_dir / old_folder
        new_path = suite_dir / new_folder

        logger.info("Comparing payload folders: previous=%s latest=%s", old_folder, new_folder)

        for folder in (old_path, new_path):
            if not folder.is_dir():
                logger.error("Payload folder not found: %s", folder)
                return None

        files = sorted(entry.name for entry in old_path.iterdir() if entry.is_file())
        results = [self.compare_file(old_path / name, new_path / name) for name in files]

        for result in results:
            self._log_result(result)

        report_path = None
        if self.reporter is not None:
            try:
                report_path = self.reporter.generate_report(old_folder, new_folder, results)
                logger.info("HTML report generated: %s", report_path)
            except Exception as e:
                logger.warning("Failed to generate report: %s", e)

        verdict = RunVerdict.from_results(
            old_folder, new_folder, results, report_path=str(report_path) if report_path else None
        )

        if not verdict.any_differences:
            logger.info("All payload files match")

        elapsed = time.time() - start_time
        summary = [f"{verdict.matched_count} matched"]
        if verdict.diff_count:
            summary.append(f"{verdict.diff_count} differed")
        summary.append(f"{verdict.total_files} total files")
        summary.append(f"in {elapsed:.2f}s")
        logger.info(" | ".join(summary))

        return verdict

    def compare_file(self, old_file: Path, new_file: Path) -> FileComparisonResult:
        """Compare one baseline file against its counterpart."""
        file_name = old_file.name
        old_content = load_payload(old_file)

        if not new_file.is_file():
            return FileComparisonResult.from_differences(
                file_name,
                [DifferenceRecord(
                    path=ROOT_PATH,
                    kind=DiffKind.FILE_MISSING,
                    message="File missing in new version",
                )],
                old_content=old_content,
            )

        new_content = load_payload(new_file)
        return self.compare_payloads(file_name, old_content, new_content)

    def compare_payloads(self, file_name: str, old_content: Any, new_content: Any) -> FileComparisonResult:
        """Compare two already-loaded payloads."""
        if is_empty(old_content) or is_empty(new_content):
            return FileComparisonResult.from_differences(
                file_name,
                self._empty_differences(file_name, old_content, new_content),
                old_content=old_content,
                new_content=new_content,
            )

        structural = self._structural_differences(file_name, old_content, new_content)
        real_diffs = [d for d in structural if d.is_blocking]
        informational = [d for d in structural if not d.is_blocking]

        # A type change is already reported by the differ at the same path.
        blocked_paths = {d.path for d in real_diffs}
        schema_errors = [
            d for d in self._schema_differences(file_name, old_content, new_content)
            if not (d.kind == DiffKind.SCHEMA_VIOLATION and d.path in blocked_paths)
        ]

        return FileComparisonResult.from_differences(
            file_name,
            real_diffs + schema_errors + informational,
            old_content=old_content,
            new_content=new_content,
        )

    def _empty_differences(self, file_name: str, old_content: Any, new_content: Any) -> list[DifferenceRecord]:
        if self.options.tolerate_empty_responses:
            return [DifferenceRecord(
                path=ROOT_PATH,
                kind=DiffKind.EMPTY_PAYLOAD,
                message=(
                    f"One or both payloads in {file_name} are empty or missing. "
                    f"Ignored due to tolerateEmptyResponses=true."
                ),
                severity=Severity.INFORMATIONAL,
            )]

        diffs = []
        for label, content in (("Old", old_content), ("New", new_content)):
            if is_empty(content):
                diffs.append(DifferenceRecord(
                    path=ROOT_PATH,
                    kind=DiffKind.EMPTY_PAYLOAD,
                    message=f"{label} data is not a valid object at {ROOT_PATH}. Got empty or missing.",
                ))
        return diffs

    def _structural_differences(self, file_name: str, old_content: Any, new_content: Any) -> list[DifferenceRecord]:
        try:
            return self.differ.compare(old_content, new_content)
        except Exception as e:
            logger.warning("Structural comparison failed for %s: %s", file_name, e)
            return [DifferenceRecord(
                path=ROOT_PATH,
                kind=DiffKind.TYPE_MISMATCH,
                message=f"Structural comparison failed: {type(e).__name__}: {e}",
            )]

    def _schema_differences(self, file_name: str, old_content: Any, new_content: Any) -> list[DifferenceRecord]:
        try:
            schema = self.schema_pipeline.build_schema(old_content)
            logger.debug("Inferred schema for %s:\n%s", file_name, dump_schema(schema))
            validator = self.schema_pipeline.validator
            if validator.validate(schema, new_content):
                return []
            return validator.get_differences()
        except Exception as e:
            logger.warning("Schema check failed for %s: %s", file_name, e)
            return [DifferenceRecord(
                path=ROOT_PATH,
                kind=DiffKind.SCHEMA_VIOLATION,
                message=f"Schema check failed: {type(e).__name__}: {e}",
            )]

    def _log_result(self, result: FileComparisonResult):
        if result.matched:
            logger.info("%s matches", result.file_name)
            for diff in result.informational:
                logger.warning("  %s", diff.message)
        else:
            logger.error("Differences found in %s", result.file_name)
            for diff in result.differences:
                logger.error("  %s", diff.message)


def compare_latest(
    test_suite: str,
    payloads_root: str | Path,
    options: Optional[ComparisonOptions] = None,
    reporter: Any = None
) -> Optional[RunVerdict]:
    """
    Convenience function to compare a suite's two newest snapshot folders.

    Returns:
        RunVerdict, or None when there is nothing to compare
    """
    comparer = PayloadComparer(options, test_suite, payloads_root, reporter)
    folders = comparer.get_latest_two_payload_folders()
    if folders is None:
        return None
    return comparer.compare_folders(*folders)
