"""Executor running every doc-test as its own program."""

import asyncio
import logging
import os
import signal
import sys
import tempfile
import time
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from testharness.compiler import BuildFailure, PythonSnippetCompiler, SnippetCompiler
from testharness.engine.base import SuiteExecutor, judge
from testharness.errors import HarnessFault
from testharness.models.result import UnitOutcome
from testharness.models.unit import DocProgram, Suite, TestUnit

log = logging.getLogger(__name__)

COMPILE_FAIL_MESSAGE = "test compiled successfully, but it's marked `compile_fail`"


@dataclass(frozen=True, kw_only=True)
class DocSuiteExecutor(SuiteExecutor):
    """Compiles and runs each doc-test in a separate interpreter.

    A build failure or crash of one program never affects another.
    """

    compiler: SnippetCompiler = field(default_factory=PythonSnippetCompiler)
    sys_path: Sequence[str] = ()
    cwd: Path | None = None
    python: str = sys.executable

    async def run_units(
        self, suite: Suite, units: Sequence[TestUnit]
    ) -> AsyncIterator[UnitOutcome]:
        """Run up to ``test_threads`` programs at once, yielding as they finish."""
        semaphore = asyncio.Semaphore(self.test_threads)

        with tempfile.TemporaryDirectory(prefix="testharness-doc-") as workdir:
            tasks = [
                asyncio.create_task(
                    self._run_bounded(
                        semaphore, unit, Path(workdir) / f"doctest_{index}.py"
                    )
                )
                for index, unit in enumerate(units)
            ]
            try:
                for next_done in asyncio.as_completed(tasks):
                    yield await next_done
            finally:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

    async def _run_bounded(
        self, semaphore: asyncio.Semaphore, unit: TestUnit, script: Path
    ) -> UnitOutcome:
        async with semaphore:
            return await self.run_unit(unit, script)

    async def run_unit(self, unit: TestUnit, script: Path) -> UnitOutcome:
        """Build a doc-test and, unless it only has to build, run it.

        Args:
            unit: Doc-test unit
            script: Where to write the program before running it

        Returns:
            Outcome of the unit

        Raises:
            HarnessFault: If no interpreter can be started

        """
        program = unit.body
        if not isinstance(program, DocProgram):
            raise TypeError(f"Unit {unit.name} has no doc program")

        start = time.perf_counter()
        built = self.compiler.compile(program.source, program.origin)

        if program.mode == "compile_fail":
            diagnostic = built.diagnostic if isinstance(built, BuildFailure) else None
            outcome = judge(unit, isinstance(built, BuildFailure), diagnostic)
            if outcome.status == "failed":
                return UnitOutcome(
                    name=unit.name, status="failed", message=COMPILE_FAIL_MESSAGE
                )
            return outcome

        if isinstance(built, BuildFailure):
            return UnitOutcome(
                name=unit.name,
                status="failed",
                message=built.diagnostic,
                duration=time.perf_counter() - start,
            )

        if program.mode == "no_run":
            return UnitOutcome(
                name=unit.name, status="passed", duration=time.perf_counter() - start
            )

        script.write_text(program.source, encoding="utf-8")
        returncode, output = await self._execute(script)
        return judge(
            unit,
            returncode != 0,
            exit_message(returncode, output),
            output,
            time.perf_counter() - start,
        )

    async def _execute(self, script: Path) -> tuple[int, str]:
        try:
            process = await asyncio.create_subprocess_exec(
                self.python,
                str(script),
                cwd=self.cwd,
                env=program_environment(self.sys_path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise HarnessFault(f"Cannot start doc-test program: {e}") from e

        try:
            stdout, _ = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        assert process.returncode is not None
        return process.returncode, stdout.decode(errors="replace")


def program_environment(
    sys_path: Sequence[str], environ: Mapping[str, str] = os.environ
) -> dict[str, str]:
    """Environment for a doc-test program with the library importable."""
    env = dict(environ)
    paths = [*sys_path]
    if existing := env.get("PYTHONPATH"):
        paths.append(existing)
    if paths:
        env["PYTHONPATH"] = os.pathsep.join(paths)
    return env


def exit_message(returncode: int, output: str) -> str | None:
    """Panic message of a finished program, ``None`` if it succeeded."""
    if returncode == 0:
        return None
    if returncode < 0:
        try:
            return f"process terminated by {signal.Signals(-returncode).name}"
        except ValueError:
            return f"process terminated by signal {-returncode}"
    lines = [line for line in output.splitlines() if line.strip()]
    return lines[-1].strip() if lines else f"process exited with status {returncode}"
