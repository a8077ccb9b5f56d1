"""Fault boundary around a single test body.

``invoke`` runs a callable and turns anything it raises into a panic with a
message, so neither the caller nor concurrently running units are affected.
Output written by the body is captured into a buffer owned by the thread
running it.
"""

import asyncio
import inspect
import io
import sys
import threading
import time
import traceback
from collections.abc import Callable, Iterator
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from typing import Any, TextIO


@dataclass(frozen=True, kw_only=True)
class Invocation:
    """What happened when a body was invoked."""

    panicked: bool
    message: str | None = None
    output: str = ""
    duration: float = 0.0


class _ThreadRoutedStream(io.TextIOBase):
    """Text stream forwarding writes to the calling thread's capture buffer."""

    def __init__(self, fallback: TextIO, local: threading.local) -> None:
        self._fallback = fallback
        self._local = local

    def writable(self) -> bool:
        return True

    def write(self, s: str) -> int:
        buffer: io.StringIO | None = getattr(self._local, "buffer", None)
        if buffer is None:
            return self._fallback.write(s)
        return buffer.write(s)

    def flush(self) -> None:
        self._fallback.flush()


class OutputCapture:
    """Per-thread capture of ``sys.stdout`` and ``sys.stderr``.

    Threads that are not capturing keep writing to the original streams.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    @classmethod
    def install(cls) -> "OutputCapture":
        """Replace the process-wide streams with thread-routed ones."""
        capture = cls()
        sys.stdout = _ThreadRoutedStream(sys.stdout, capture._local)  # type: ignore[assignment]
        sys.stderr = _ThreadRoutedStream(sys.stderr, capture._local)  # type: ignore[assignment]
        return capture

    @contextmanager
    def capturing(self, buffer: io.StringIO) -> Iterator[None]:
        """Send the current thread's output to ``buffer``."""
        previous = getattr(self._local, "buffer", None)
        self._local.buffer = buffer
        try:
            yield
        finally:
            self._local.buffer = previous


def panic_message(exc: BaseException) -> str:
    """Message of a raised exception, e.g. ``AssertionError: boom``."""
    return "".join(traceback.format_exception_only(exc)).strip()


def invoke(body: Callable[[], Any], capture: OutputCapture | None = None) -> Invocation:
    """Run ``body`` inside the fault boundary.

    Coroutine functions are driven to completion with ``asyncio.run``.
    """
    buffer = io.StringIO()
    panicked = False
    message: str | None = None
    start = time.perf_counter()

    with capture.capturing(buffer) if capture is not None else nullcontext():
        try:
            result = body()
            if inspect.iscoroutine(result):
                asyncio.run(result)
        except BaseException as e:  # noqa: BLE001
            panicked = True
            message = panic_message(e)
            buffer.write(traceback.format_exc())

    return Invocation(
        panicked=panicked,
        message=message,
        output=buffer.getvalue(),
        duration=time.perf_counter() - start,
    )
