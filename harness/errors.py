"""
harness/errors.py

Exception hierarchy for the golden report renderer and the conformance runner.

Nothing in this package recovers from these errors; they propagate to the
caller (usually pytest) with enough context to diagnose the failure.
"""
from __future__ import annotations

from typing import Any


class HarnessError(Exception):
    """Base class for every error raised by the harness itself."""


class ExplainFormatError(HarnessError):
    """An explain document is missing a section the summarizer needs."""


class UnexpectedCommandResult(AssertionError, HarnessError):
    """A replayed command neither succeeded nor failed in an accepted way.

    Attributes:
        test_name: Name of the test case whose command was replayed.
        result:    Raw server reply, kept whole for diagnosis.
    """

    def __init__(self, test_name: str, result: dict[str, Any]) -> None:
        self.test_name = test_name
        self.result = result
        super().__init__(f"{test_name}: unexpected command result {result!r}")
