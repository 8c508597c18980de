"""Command-line interface for ApiVeritas."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from enum import IntEnum
from pathlib import Path
from typing import Optional

from . import __version__
from .caller import ApiCaller
from .comparer import PayloadComparer
from .config import ConfigLoader, DEFAULT_WORKSPACE, parse_bool
from .exceptions import ApiVeritasError, ConfigError, SuiteLoadError, MockServerError
from .mock_server import MockServer
from .models import AppConfig
from .reporter import HtmlReporter
from .saver import ResponseSaver
from .scaffold import InitService
from .suite import TestSuiteLoader

logger = logging.getLogger("apiveritas")

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class ExitCode(IntEnum):
    SUCCESS = 0
    GENERAL_ERROR = 1
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    TEST_SUITE_LOADING_ERROR = 4
    API_CALL_FAILURE = 5
    COMPARISON_FAILURE = 6
    MOCK_SERVER_ERROR = 7


SET_CONFIG_OPTIONS = (
    # (flag, config key, is boolean)
    ("strict_schema", "strictSchema", True),
    ("strict_values", "strictValues", True),
    ("tolerate_empty_responses", "tolerateEmptyResponses", True),
    ("payloads_path", "payloadsPath", False),
    ("reports_path", "reportsPath", False),
    ("base_url", "baseUrl", False),
    ("enable_mock_server", "enableMockServer", True),
)


def configure_logging(level: str = "INFO", quiet: bool = False):
    logging.basicConfig(
        level=logging.ERROR if quiet else getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apiveritas",
        description="A lightweight CLI tool for API contract testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  apiveritas init
  apiveritas test --tests bookings.json
  apiveritas compare --test-suite bookings
  apiveritas run --tests bookings.json --test-suite bookings
  apiveritas set-config --strict-values false
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config-dir", default=None,
                        help=f"Workspace folder holding config and tests (default: ./{DEFAULT_WORKSPACE})")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")

    sub = parser.add_subparsers(dest="command", metavar="command")
    sub.required = True

    init = sub.add_parser("init", help="Initialize the workspace with template files")
    init.add_argument("--force", action="store_true", help="Overwrite existing files")
    init.add_argument("--path", dest="target", default=None,
                      help="Target directory (default: the workspace folder)")

    test = sub.add_parser("test", help="Run all API requests and save responses")
    test.add_argument("--tests", required=True, help="Test suite file in the tests folder")

    sub.add_parser("list-tests", help="List test suite files in the tests folder")
    sub.add_parser("payloads-path", help="Show where payloads are stored")
    sub.add_parser("reports-path", help="Show where HTML reports are stored")
    sub.add_parser("config", help="Show the loaded configuration")

    set_config = sub.add_parser("set-config", help="Update one or more config values")
    for flag, key, is_bool in SET_CONFIG_OPTIONS:
        set_config.add_argument(
            "--" + flag.replace("_", "-"),
            dest=flag,
            type=parse_bool if is_bool else str,
            default=None,
            metavar="BOOL" if is_bool else "VALUE",
            help=f"New value for {key}",
        )

    compare = sub.add_parser("compare", help="Compare the two most recent payload folders")
    compare.add_argument("--test-suite", required=True, help="Test suite folder to compare")

    run = sub.add_parser("run", help="Run tests, compare payloads and report results")
    run.add_argument("--tests", required=True, help="Test suite file in the tests folder")
    run.add_argument("--test-suite", required=True, help="Test suite folder to compare")

    return parser


def cmd_init(args, loader: ConfigLoader, config: AppConfig) -> int:
    target = Path(args.target) if args.target else loader.workspace
    InitService(target, force=args.force).initialize()
    return ExitCode.SUCCESS


def execute_suite(test_file: str, config: AppConfig) -> int:
    """Load a suite and fire its requests, starting the mock server if enabled."""
    suite_loader = TestSuiteLoader(config)
    try:
        requests = suite_loader.load_suite(test_file)
    except SuiteLoadError as e:
        logger.error("Failed to load test suite %s: %s", test_file, e)
        return ExitCode.TEST_SUITE_LOADING_ERROR

    mock_server = None
    if config.enable_mock_server:
        try:
            mock_server = MockServer(Path(config.workspace) / "mock-responses")
            mock_server.start()
        except MockServerError as e:
            logger.error("Failed to start mock server: %s", e)
            return ExitCode.MOCK_SERVER_ERROR

    try:
        caller = ApiCaller(requests, ResponseSaver(config.payloads_path), base_url=config.base_url)
        asyncio.run(caller.call_all())
    except ApiVeritasError as e:
        logger.error("Error during API execution: %s", e)
        return ExitCode.API_CALL_FAILURE
    finally:
        if mock_server is not None:
            mock_server.stop()

    return ExitCode.SUCCESS


def compare_suite(test_suite: str, config: AppConfig) -> int:
    comparer = PayloadComparer(
        config.comparison_options(),
        test_suite,
        payloads_root=config.payloads_path,
        reporter=HtmlReporter(config.reports_path),
    )
    folders = comparer.get_latest_two_payload_folders()
    if folders is None:
        logger.error("Could not find two payload folders to compare. "
                     "Make sure at least two runs are saved for suite '%s'.", test_suite)
        return ExitCode.COMPARISON_FAILURE

    verdict = comparer.compare_folders(*folders)
    if verdict is None:
        return ExitCode.COMPARISON_FAILURE
    if verdict.any_differences:
        logger.warning("Differences detected in payload comparison.")
        return ExitCode.COMPARISON_FAILURE

    logger.info("Payload comparison completed with no differences.")
    return ExitCode.SUCCESS


def cmd_test(args, loader: ConfigLoader, config: AppConfig) -> int:
    return execute_suite(args.tests, config)


def cmd_run(args, loader: ConfigLoader, config: AppConfig) -> int:
    code = execute_suite(args.tests, config)
    if code != ExitCode.SUCCESS:
        return code
    return compare_suite(args.test_suite, config)


def cmd_compare(args, loader: ConfigLoader, config: AppConfig) -> int:
    return compare_suite(args.test_suite, config)


def cmd_list_tests(args, loader: ConfigLoader, config: AppConfig) -> int:
    suites = TestSuiteLoader(config).list_available_suites()
    if not suites:
        logger.warning("No test files found in %s", Path(config.workspace) / "tests")
        return ExitCode.TEST_SUITE_LOADING_ERROR
    print("Available test suites:")
    for name in suites:
        print(f"  - {name}")
    return ExitCode.SUCCESS


def cmd_payloads_path(args, loader: ConfigLoader, config: AppConfig) -> int:
    print(config.payloads_path)
    return ExitCode.SUCCESS


def cmd_reports_path(args, loader: ConfigLoader, config: AppConfig) -> int:
    print(config.reports_path)
    return ExitCode.SUCCESS


def cmd_config(args, loader: ConfigLoader, config: AppConfig) -> int:
    print(f"Configuration file: {loader.config_path}")
    values = config.to_dict()
    width = max(len(key) for key in values)
    for key, value in values.items():
        print(f"  {key.ljust(width)} : {value}")
    return ExitCode.SUCCESS


def cmd_set_config(args, loader: ConfigLoader, config: AppConfig) -> int:
    changes = {
        key: getattr(args, flag)
        for flag, key, _ in SET_CONFIG_OPTIONS
        if getattr(args, flag) is not None
    }
    if not changes:
        logger.warning("No configuration changes provided. Use set-config --help for available options.")
        return ExitCode.INVALID_ARGS
    loader.update_config(changes)
    return ExitCode.SUCCESS


COMMANDS = {
    "init": cmd_init,
    "test": cmd_test,
    "run": cmd_run,
    "compare": cmd_compare,
    "list-tests": cmd_list_tests,
    "payloads-path": cmd_payloads_path,
    "reports-path": cmd_reports_path,
    "config": cmd_config,
    "set-config": cmd_set_config,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.quiet)

    loader = ConfigLoader(args.config_dir)
    try:
        config = loader.load_config()
        return int(COMMANDS[args.command](args, loader, config))
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return ExitCode.CONFIG_ERROR
    except ApiVeritasError as e:
        logger.error("%s", e)
        return ExitCode.GENERAL_ERROR


if __name__ == "__main__":
    sys.exit(main())
