"""
harness/conformance/cases.py

Test-case table types for the command conformance runner.

A test case describes one server command.  Parts of it may be fixed
(Static) or computed from earlier steps (Derived):

  TestCase.command        Static(dict) | Derived(fn(state, args) -> dict)
  TestCase.run_on_db      Derived(fn(state) -> str) | None
  TestVariant.command_args Static(dict) | Derived(fn(options) -> dict)

``state`` is whatever ``setup(db)`` returned; ``options`` is topology
metadata such as ``shard0name``.  resolve() is the single place where the
two variants are told apart.
"""
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Static(Generic[T]):
    """A value known when the table is written."""

    value: T


@dataclass(frozen=True)
class Derived(Generic[T]):
    """A value computed at run time from the case's context."""

    fn: Callable[..., T]


Resolvable = Union[Static[T], Derived[T]]


def resolve(value: Resolvable[T], *context: Any) -> T:
    """Return the concrete value of *value*, calling Derived functions with *context*."""
    if isinstance(value, Static):
        return value.value
    if isinstance(value, Derived):
        return value.fn(*context)
    raise TypeError(
        f"Expected Static or Derived, got {type(value).__name__}"
    )


@dataclass(frozen=True)
class TestVariant:
    """Where and with which arguments a case's command runs.

    Attributes:
        run_on_db:    Database the setup hook and (by default) the command use.
        command_args: Arguments handed to a Derived command.
        expect_fail:  Accept any failure reply for this variant.
    """

    run_on_db: str = "admin"
    command_args: Resolvable[dict[str, Any]] = field(default_factory=lambda: Static({}))
    expect_fail: bool = False

    __test__ = False


@dataclass(frozen=True)
class TestCase:
    """One entry of the command table.

    Attributes:
        name:               Command / test name; matched against the denylist.
        command:            The command document, or how to build it.
        variants:           Only the first variant is replayed.
        run_on_db:          Optional override of the database the command
                            runs on, derived from the setup state.
        setup:              ``setup(db) -> state``, run before the command.
        teardown:           ``teardown(db, result)``, run after a passing command.
        requires_failpoint: Failpoint enabled for the duration of the case,
                            e.g. ``"searchReturnEofImmediately"`` for commands
                            that would otherwise need a search server.
    """

    name: str
    command: Resolvable[dict[str, Any]]
    variants: Sequence[TestVariant] = field(default_factory=lambda: (TestVariant(),))
    run_on_db: Derived[str] | None = None
    setup: Callable[[Any], Any] | None = None
    teardown: Callable[[Any, dict[str, Any]], None] | None = None
    requires_failpoint: str | None = None

    __test__ = False

    def __post_init__(self) -> None:
        if not self.variants:
            raise ValueError(f"Test case {self.name!r} has no variants")
