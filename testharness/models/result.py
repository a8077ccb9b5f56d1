"""Models for test execution results."""

from dataclasses import dataclass
from typing import Literal

OutcomeStatus = Literal["passed", "failed", "ignored"]


@dataclass(frozen=True, kw_only=True)
class UnitOutcome:
    """Result of a single test unit within one run.

    Produced exactly once per selected unit; ignored units get one without
    being invoked.
    """

    name: str
    status: OutcomeStatus
    message: str | None = None
    output: str = ""
    duration: float = 0.0

    @classmethod
    def ignored(cls, name: str) -> "UnitOutcome":
        """Outcome for a unit skipped without invocation."""
        return cls(name=name, status="ignored")
