"""
harness/conformance/runner.py

Replays a command table with a ``comment`` field injected into every command.

Per test case (ConformanceRunner.run_one)
----------------------------------------
  1. Enable the case's failpoint, if any, on the execution node and on the
     router when the topology has one.
  2. Run ``setup(db)`` on the variant's database to obtain ``state``.
  3. Pick the command database (``run_on_db(state)`` when the case derives it).
  4. Build the command, add ``comment: {comment: True}``, run it.
  5. Accept ``ok: 1``, any failure when the variant expects one, or
     CommandNotSupported.  Anything else raises UnexpectedCommandResult
     with the full reply.
  6. Run ``teardown(db, result)``.
  7. Disable the failpoints, whatever happened above.

run_all() skips denylisted names without asserting anything and without
touching failpoints.  The first failing case stops the run.
"""
from __future__ import annotations

import copy
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog
from pymongo.errors import OperationFailure

from harness.conformance.cases import TestCase, resolve
from harness.conformance.failpoint import FailPoint, configure_fail_point
from harness.conformance.topology import Topology
from harness.errors import UnexpectedCommandResult

logger = structlog.get_logger(__name__)

COMMAND_NOT_SUPPORTED = 115

DEFAULT_COMMENT: dict[str, Any] = {"comment": True}


@dataclass
class RunReport:
    """Names of the cases run and skipped against one topology."""

    topology: str
    passed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def is_accepted(result: dict[str, Any], expect_fail: bool) -> bool:
    """Return True when *result* is an acceptable outcome for a replayed command."""
    return (
        result.get("ok") == 1
        or expect_fail
        or result.get("code") == COMMAND_NOT_SUPPORTED
    )


class ConformanceRunner:
    """Run command test cases with an injected ``comment`` field."""

    def __init__(
        self,
        denylist: Iterable[str] = (),
        failpoint_mode: str = "alwaysOn",
        comment: Any = None,
    ) -> None:
        self.denylist = frozenset(denylist)
        self.failpoint_mode = failpoint_mode
        self.comment = copy.deepcopy(DEFAULT_COMMENT if comment is None else comment)

    # ------------------------------------------------------------------
    # Failpoints
    # ------------------------------------------------------------------

    def _enable_failpoints(self, topology: Topology, name: str) -> list[FailPoint]:
        enabled = [configure_fail_point(topology.execution_node, name, self.failpoint_mode)]
        if topology.routing_node is not None:
            try:
                enabled.append(
                    configure_fail_point(topology.routing_node, name, self.failpoint_mode)
                )
            except Exception:
                enabled[0].off()
                raise
        return enabled

    @staticmethod
    def _disable_failpoints(failpoints: list[FailPoint]) -> None:
        """Switch off every failpoint in order, then re-raise the first error."""
        first_error: Exception | None = None
        for failpoint in failpoints:
            try:
                failpoint.off()
            except Exception as exc:
                logger.error("failpoint_disable_failed", failpoint=failpoint.name, error=str(exc))
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def build_command(self, case: TestCase, state: Any, options: dict[str, Any]) -> dict[str, Any]:
        """Resolve the case's command and add the comment field to a copy of it."""
        variant = case.variants[0]
        args = resolve(variant.command_args, options)
        command = copy.deepcopy(resolve(case.command, state, args))
        command["comment"] = copy.deepcopy(self.comment)
        return command

    @staticmethod
    def _run_command(db: Any, command: dict[str, Any]) -> dict[str, Any]:
        try:
            return db.command(command, check=False)
        except OperationFailure as exc:
            return exc.details or {"ok": 0, "code": exc.code, "errmsg": str(exc)}

    def run_one(
        self,
        topology: Topology,
        case: TestCase,
        options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Replay one test case and return the server's reply."""
        options = options or {}
        variant = case.variants[0]
        failpoints: list[FailPoint] = []
        if case.requires_failpoint:
            failpoints = self._enable_failpoints(topology, case.requires_failpoint)

        try:
            run_db = topology.client[variant.run_on_db]
            state = case.setup(run_db) if case.setup else None

            cmd_db = run_db
            if case.run_on_db is not None:
                cmd_db = run_db.client[resolve(case.run_on_db, state)]

            command = self.build_command(case, state, options)
            result = self._run_command(cmd_db, command)
            if not is_accepted(result, variant.expect_fail):
                logger.error(
                    "conformance_case_failed",
                    test=case.name,
                    topology=topology.kind,
                    result=result,
                )
                raise UnexpectedCommandResult(case.name, result)

            if case.teardown:
                case.teardown(cmd_db, result)
        finally:
            self._disable_failpoints(failpoints)

        logger.debug(
            "conformance_case_passed",
            test=case.name,
            topology=topology.kind,
            ok=result.get("ok"),
        )
        return result

    def run_all(
        self,
        topology: Topology,
        cases: Iterable[TestCase],
        options: dict[str, Any] | None = None,
    ) -> RunReport:
        """Replay every non-denylisted case; stop at the first failure."""
        options = dict(topology.options if options is None else options)
        report = RunReport(topology=topology.kind)
        for case in cases:
            if case.name in self.denylist:
                report.skipped.append(case.name)
                logger.debug("conformance_case_skipped", test=case.name)
                continue
            self.run_one(topology, case, options)
            report.passed.append(case.name)

        logger.info(
            "conformance_run_complete",
            topology=topology.kind,
            passed=len(report.passed),
            skipped=len(report.skipped),
        )
        return report
