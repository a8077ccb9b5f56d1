"""CLI entry point for the test harness."""

import argparse
import asyncio
import logging
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

from testharness.config import ProjectLayout, load_config, resolve_layout
from testharness.discovery import discover
from testharness.engine import DocSuiteExecutor, ProcessSuiteExecutor, SuiteExecutor
from testharness.errors import ConfigError, DiscoveryError
from testharness.models.unit import SuiteKind
from testharness.orchestrator import TestOrchestrator
from testharness.reporter import EXIT_FAILURE, EXIT_SUCCESS, Reporter, exit_status
from testharness.selection import RunFilter, SuiteSelection


def build_executors(layout: ProjectLayout) -> Mapping[SuiteKind, SuiteExecutor]:
    """Executors for each kind of suite of a project."""
    library_path = [str(layout.source_root)]
    return {
        "unit": ProcessSuiteExecutor(
            test_threads=layout.test_threads,
            sys_path=library_path,
            cwd=layout.root,
        ),
        "integration": ProcessSuiteExecutor(
            test_threads=layout.test_threads,
            sys_path=[*library_path, str(layout.tests_dir)],
            cwd=layout.root,
        ),
        "doc": DocSuiteExecutor(
            test_threads=layout.test_threads,
            sys_path=library_path,
            cwd=layout.root,
        ),
    }


async def run(
    project_root: Path,
    run_filter: RunFilter,
    selection: SuiteSelection = SuiteSelection(),
    test_threads: int | None = None,
    list_only: bool = False,
    reporter: Reporter | None = None,
) -> int:
    """Discover and run a project's tests and return the exit code."""
    log = logging.getLogger("testharness")
    reporter = reporter or Reporter()

    layout = resolve_layout(project_root, load_config(project_root), test_threads)
    log.info(
        "Testing %s from %s with %d thread(s)",
        layout.library,
        layout.source_root,
        layout.test_threads,
    )

    suites = selection.select(discover(layout))

    if list_only:
        for suite in suites:
            reporter.list_suite(suite, run_filter.select(suite.units))
        return EXIT_SUCCESS

    orchestrator = TestOrchestrator(executors=build_executors(layout), reporter=reporter)
    summary = await orchestrator.run_tests(suites, run_filter)
    return exit_status(summary)


def build_parser() -> argparse.ArgumentParser:
    """Argument parser with the single ``test`` subcommand."""
    parser = argparse.ArgumentParser(
        prog="testharness",
        description="Run a library's tests, integration suites and doc-tests",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)
    test = subcommands.add_parser("test", help="Run discovered tests")
    test.add_argument(
        "filter",
        nargs="?",
        default="",
        help="Only run tests whose name contains this string",
    )
    test.add_argument(
        "--ignored", action="store_true", help="Run only the ignored tests"
    )
    test.add_argument(
        "--include-ignored",
        action="store_true",
        help="Run ignored tests along with the others",
    )
    test.add_argument(
        "--exact", action="store_true", help="Match the filter against whole names"
    )
    test.add_argument(
        "--skip",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Skip tests whose name contains PATTERN (repeatable)",
    )
    test.add_argument(
        "--test-threads",
        type=int,
        default=None,
        help="Number of tests to run in parallel within a suite",
    )
    test.add_argument("--lib", action="store_true", help="Run the library's own tests")
    test.add_argument("--doc", action="store_true", help="Run the doc-tests")
    test.add_argument(
        "--test",
        dest="tests",
        action="append",
        default=[],
        metavar="NAME",
        help="Run the integration suite NAME (repeatable)",
    )
    test.add_argument(
        "--list", action="store_true", help="List tests instead of running them"
    )
    test.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    test.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for diagnostics on stderr",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.ignored and args.include_ignored:
        parser.error("--ignored and --include-ignored are mutually exclusive")
    if args.test_threads is not None and args.test_threads < 1:
        parser.error("--test-threads must be at least 1")

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    run_filter = RunFilter(
        pattern=args.filter,
        exact=args.exact,
        skip=tuple(args.skip),
        ignored_only=args.ignored,
        include_ignored=args.include_ignored,
    )
    selection = SuiteSelection(lib=args.lib, doc=args.doc, tests=tuple(args.tests))

    try:
        exit_code = asyncio.run(
            run(
                project_root=args.project_root,
                run_filter=run_filter,
                selection=selection,
                test_threads=args.test_threads,
                list_only=args.list,
            )
        )
    except (ConfigError, DiscoveryError) as e:
        logging.getLogger("testharness").error("%s", e)
        exit_code = EXIT_FAILURE
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
