"""Decorators that declare test functions.

The harness finds tests by reading source, not by importing it, so these
decorators only record what was declared and return the function unchanged::

    from testharness.marks import ignore, should_panic, test

    @test
    def adds() -> None:
        assert add(1, 2) == 3

    @test
    @should_panic(expected="division by zero")
    def divides_by_zero() -> None:
        divide(1, 0)

    @test
    @ignore("talks to the network")
    def fetches() -> None:
        ...
"""

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, TypeVar, overload

MARK_ATTRIBUTE = "__testharness__"

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True, kw_only=True)
class TestMark:
    """Declarations recorded on a test function."""

    __test__ = False

    is_test: bool = False
    ignored: bool = False
    ignore_reason: str | None = None
    should_panic: bool = False
    expected: str | None = None


def _update(fn: F, **changes: Any) -> F:
    mark = getattr(fn, MARK_ATTRIBUTE, TestMark())
    setattr(fn, MARK_ATTRIBUTE, replace(mark, **changes))
    return fn


def test(fn: F) -> F:
    """Declare ``fn`` as a test."""
    return _update(fn, is_test=True)


test.__test__ = False  # type: ignore[attr-defined]


@overload
def ignore(fn_or_reason: F) -> F: ...
@overload
def ignore(
    fn_or_reason: str | None = None,
) -> Callable[[F], F]: ...
def ignore(fn_or_reason: Any = None) -> Any:
    """Exclude a test from default runs, optionally with a reason."""
    if callable(fn_or_reason):
        return _update(fn_or_reason, ignored=True)

    def decorator(fn: Any) -> Any:
        return _update(fn, ignored=True, ignore_reason=fn_or_reason)

    return decorator


@overload
def should_panic(fn: F) -> F: ...
@overload
def should_panic(
    fn: None = None, *, expected: str | None = None
) -> Callable[[F], F]: ...
def should_panic(fn: Any = None, *, expected: str | None = None) -> Any:
    """Require the test to raise, optionally with ``expected`` in the message."""
    if fn is not None:
        return _update(fn, should_panic=True)

    def decorator(inner: Any) -> Any:
        return _update(inner, should_panic=True, expected=expected)

    return decorator
