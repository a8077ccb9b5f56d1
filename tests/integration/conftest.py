"""Fixtures for end-to-end runs of the harness CLI."""

import os
import subprocess
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

HarnessRunner = Callable[..., subprocess.CompletedProcess[str]]


@pytest.fixture
def run_harness() -> HarnessRunner:
    """Return a function running ``testharness test`` against a project."""

    def runner(
        project: Path, *args: str, threads: int | None = None
    ) -> subprocess.CompletedProcess[str]:
        command: Sequence[str] = [
            sys.executable,
            "-m",
            "testharness.cli",
            "test",
            "--project-root",
            str(project),
            *args,
        ]
        env = {k: v for k, v in os.environ.items() if k != "TESTHARNESS_TEST_THREADS"}
        if threads is not None:
            env["TESTHARNESS_TEST_THREADS"] = str(threads)
        return subprocess.run(
            command,
            capture_output=True,
            text=True,
            env=env,
            timeout=120,
            check=False,
        )

    return runner
