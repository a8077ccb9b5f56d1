"""Execution engine: fault boundary, worker process and suite executors."""

from testharness.engine.base import SuiteExecutor
from testharness.engine.doc import DocSuiteExecutor
from testharness.engine.process import ProcessSuiteExecutor

__all__ = ["DocSuiteExecutor", "ProcessSuiteExecutor", "SuiteExecutor"]
