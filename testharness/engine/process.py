"""Executor running a suite's units in a dedicated worker process."""

import asyncio
import logging
import signal
import sys
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from testharness.engine.base import SuiteExecutor, judge
from testharness.errors import HarnessFault
from testharness.models.protocol import (
    WORKER_EVENT_ADAPTER,
    PlannedUnit,
    SuiteFinished,
    SuitePlan,
    UnitFinished,
)
from testharness.models.result import UnitOutcome
from testharness.models.unit import FunctionTarget, Suite, TestUnit

log = logging.getLogger(__name__)

WORKER_MODULE = "testharness.engine.worker"
STREAM_LIMIT = 16 * 1024 * 1024
STDERR_TAIL_LINES = 20


@dataclass(frozen=True, kw_only=True)
class ProcessSuiteExecutor(SuiteExecutor):
    """Runs units on a thread pool inside one worker process per suite.

    A crash of the worker cannot affect the harness or any other suite.
    """

    sys_path: Sequence[str] = ()
    cwd: Path | None = None
    python: str = sys.executable
    stream_limit: int = STREAM_LIMIT

    def build_plan(self, suite: Suite, units: Sequence[TestUnit]) -> SuitePlan:
        """Describe the units for the worker."""
        planned: list[PlannedUnit] = []
        for unit in units:
            if not isinstance(unit.body, FunctionTarget):
                raise TypeError(f"Unit {unit.name} has no test function")
            planned.append(
                PlannedUnit(
                    name=unit.name,
                    module=unit.body.module,
                    function=unit.body.function,
                    path=unit.body.path,
                )
            )
        return SuitePlan(
            suite=suite.name,
            sys_path=list(self.sys_path),
            units=planned,
            test_threads=self.test_threads,
        )

    async def run_units(
        self, suite: Suite, units: Sequence[TestUnit]
    ) -> AsyncIterator[UnitOutcome]:
        """Start a worker, stream its results and check it finished cleanly."""
        plan = self.build_plan(suite, units)
        by_name = {unit.name: unit for unit in units}

        try:
            process = await asyncio.create_subprocess_exec(
                self.python,
                "-m",
                WORKER_MODULE,
                cwd=self.cwd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=self.stream_limit,
            )
        except OSError as e:
            raise HarnessFault(f"Cannot start test process for {suite.name}: {e}") from e

        assert process.stdin is not None
        assert process.stdout is not None
        assert process.stderr is not None
        stderr_task = asyncio.create_task(process.stderr.read())

        finished = False
        drained = False
        overflow: str | None = None
        try:
            process.stdin.write(plan.model_dump_json().encode())
            await process.stdin.drain()
            process.stdin.close()

            while True:
                try:
                    line = await process.stdout.readline()
                except ValueError as e:
                    overflow = (
                        f"test process for {suite.name} sent a result line over "
                        f"{self.stream_limit} bytes: {e}"
                    )
                    break
                if not line:
                    break
                event = parse_event(line)
                match event:
                    case UnitFinished(name=name) if name in by_name:
                        yield judge(
                            by_name.pop(name),
                            event.panicked,
                            event.message,
                            event.output,
                            event.duration,
                        )
                    case UnitFinished(name=name):
                        log.warning("Worker reported unknown unit %r", name)
                    case SuiteFinished():
                        finished = True
            drained = overflow is None
        except (BrokenPipeError, ConnectionResetError):
            log.debug("Worker for %s closed its input early", suite.name)
        finally:
            if not drained and process.returncode is None:
                await _terminate(process)

        returncode = await process.wait()
        stderr = (await stderr_task).decode(errors="replace")
        if stderr.strip():
            log.debug("Worker stderr for %s:\n%s", suite.name, stderr)

        if overflow is not None:
            raise HarnessFault(overflow)

        if not finished or returncode != 0 or by_name:
            raise HarnessFault(
                describe_fault(
                    suite.name, returncode, stderr, finished=finished and not by_name
                )
            )


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Stop a worker abandoned before it finished."""
    try:
        process.kill()
    except ProcessLookupError:
        return
    await process.wait()


def parse_event(line: bytes) -> UnitFinished | SuiteFinished | None:
    """Parse one protocol line, ignoring anything that is not an event."""
    text = line.decode(errors="replace").strip()
    if not text:
        return None
    try:
        return WORKER_EVENT_ADAPTER.validate_json(text)
    except ValidationError:
        log.warning("Ignoring unexpected worker output: %.200s", text)
        return None


def describe_fault(
    suite: str, returncode: int, stderr: str, finished: bool = False
) -> str:
    """Explain why a worker's results cannot be trusted."""
    if returncode < 0:
        try:
            how = f"was terminated by {signal.Signals(-returncode).name}"
        except ValueError:
            how = f"was terminated by signal {-returncode}"
    else:
        how = f"exited with status {returncode}"

    if finished:
        when = "after reporting its results"
    else:
        when = "before reporting every result"
    message = f"test process for {suite} {how} {when}"
    tail = stderr.strip().splitlines()[-STDERR_TAIL_LINES:]
    if tail:
        message += "\n" + "\n".join(tail)
    return message
