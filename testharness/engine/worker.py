"""Worker process running one suite's units.

Started by the harness as ``python -m testharness.engine.worker``. Reads a
``SuitePlan`` from stdin and streams results back on the original stdout,
one JSON event per line. A worker that dies before writing the final
``SuiteFinished`` event has breached the fault boundary.
"""

import importlib
import importlib.util
import logging
import os
import sys
from collections.abc import Callable, Iterator, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from types import ModuleType
from typing import Any, TextIO

from testharness.engine.boundary import Invocation, OutputCapture, invoke
from testharness.models.protocol import PlannedUnit, SuiteFinished, SuitePlan, UnitFinished

log = logging.getLogger(__name__)

OUTPUT_LIMIT = 1024 * 1024


def load_module(unit: PlannedUnit) -> ModuleType:
    """Import a unit's module, by location for integration files."""
    if unit.path is None:
        return importlib.import_module(unit.module)
    if (loaded := sys.modules.get(unit.module)) is not None:
        return loaded

    spec = importlib.util.spec_from_file_location(unit.module, unit.path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load test file {unit.path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[unit.module] = module
    spec.loader.exec_module(module)
    return module


def clip(text: str, limit: int = OUTPUT_LIMIT) -> str:
    """Shorten ``text`` to about ``limit`` characters, keeping both ends."""
    if len(text) <= limit:
        return text
    head = text[: limit // 2]
    tail = text[len(text) - limit // 2 :]
    omitted = len(text) - len(head) - len(tail)
    return f"{head}\n[... {omitted} characters truncated ...]\n{tail}"


def resolve_units(plan: SuitePlan) -> Mapping[str, Callable[[], Any]]:
    """Resolve every planned unit to its test function.

    Raises:
        ImportError: If a module cannot be imported
        LookupError: If a test function is missing or not callable

    """
    bodies: dict[str, Callable[[], Any]] = {}
    for unit in plan.units:
        module = load_module(unit)
        body = getattr(module, unit.function, None)
        if not callable(body):
            raise LookupError(f"Test function {unit.module}.{unit.function} not found")
        bodies[unit.name] = body
    return bodies


def run_plan(
    plan: SuitePlan,
    bodies: Mapping[str, Callable[[], Any]],
    capture: OutputCapture | None = None,
) -> Iterator[UnitFinished]:
    """Invoke every unit on a bounded pool, yielding results as they complete."""
    with ThreadPoolExecutor(
        max_workers=plan.test_threads, thread_name_prefix="testharness"
    ) as pool:
        futures: dict[Future[Invocation], str] = {
            pool.submit(invoke, body, capture): name for name, body in bodies.items()
        }
        for future in as_completed(futures):
            invocation = future.result()
            yield UnitFinished(
                name=futures[future],
                panicked=invocation.panicked,
                message=clip(invocation.message) if invocation.message else None,
                output=clip(invocation.output),
                duration=invocation.duration,
            )


def serve(plan: SuitePlan, protocol: TextIO) -> None:
    """Run a plan, writing protocol events to ``protocol``."""
    sys.path[:0] = list(plan.sys_path)
    bodies = resolve_units(plan)
    log.debug("Running %d unit(s) of %s", len(bodies), plan.suite)

    capture = OutputCapture.install()
    for event in run_plan(plan, bodies, capture):
        protocol.write(event.model_dump_json() + "\n")
        protocol.flush()
    protocol.write(SuiteFinished().model_dump_json() + "\n")
    protocol.flush()


def main() -> None:
    """Worker entry point."""
    logging.basicConfig(
        level=os.environ.get("TESTHARNESS_WORKER_LOG_LEVEL", "WARNING"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    # Stray writes to fd 1 must not corrupt the protocol stream.
    protocol = os.fdopen(os.dup(sys.stdout.fileno()), "w", encoding="utf-8")
    sys.stdout.flush()
    os.dup2(sys.stderr.fileno(), sys.stdout.fileno())

    plan = SuitePlan.model_validate_json(sys.stdin.read())
    serve(plan, protocol)

    sys.stderr.flush()
    # Threads leaked by tests must not keep the worker alive.
    os._exit(0)


if __name__ == "__main__":  # pragma: no cover
    main()
