"""Expectations describing the outcome a test unit must produce."""

from dataclasses import dataclass

NO_PANIC_MESSAGE = "test did not panic as expected"


@dataclass(frozen=True)
class MustPass:
    """The unit must complete without raising."""


@dataclass(frozen=True)
class MustPanic:
    """The unit must raise; the message is irrelevant."""


@dataclass(frozen=True)
class MustPanicContaining:
    """The unit must raise with a message containing ``expected``."""

    expected: str


Expectation = MustPass | MustPanic | MustPanicContaining


@dataclass(frozen=True, kw_only=True)
class Verdict:
    """Decision reached by applying an expectation to an invocation."""

    passed: bool
    message: str | None = None


def evaluate(expectation: Expectation, panicked: bool, message: str | None) -> Verdict:
    """Decide whether an invocation satisfied its expectation.

    Args:
        expectation: Expectation attached to the unit
        panicked: Whether a failure signal was raised during the invocation
        message: Text accompanying the failure signal, if any

    Returns:
        Passed verdict, or failed verdict carrying a diagnostic message

    """
    match expectation:
        case MustPass():
            if panicked:
                return Verdict(passed=False, message=message or "test panicked")
            return Verdict(passed=True)
        case MustPanic():
            if panicked:
                return Verdict(passed=True)
            return Verdict(passed=False, message=NO_PANIC_MESSAGE)
        case MustPanicContaining(expected=expected):
            if not panicked:
                return Verdict(passed=False, message=NO_PANIC_MESSAGE)
            actual = message or ""
            if expected in actual:
                return Verdict(passed=True)
            return Verdict(
                passed=False,
                message=(
                    "panic did not contain expected string\n"
                    f'      panic message: "{actual}"\n'
                    f' expected substring: "{expected}"'
                ),
            )
    raise TypeError(f"Unknown expectation: {expectation!r}")
