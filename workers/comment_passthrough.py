"""Comment passthrough conformance run.

Replays the configured command table against a standalone mongod and then
against a sharded cluster, with a ``comment`` field added to every command.

The table is named by ``CONFORMANCE_CASES`` as ``"package.module:attribute"``;
the attribute is a list of TestCase or a callable returning one.

Run with:
    python -m workers.comment_passthrough
"""

import importlib
import sys
from collections.abc import Callable, Sequence

import structlog

from harness.config import settings
from harness.conformance.cases import TestCase
from harness.conformance.runner import ConformanceRunner
from harness.conformance.topology import Topology, connect_sharded, connect_standalone
from harness.errors import UnexpectedCommandResult

logger = structlog.get_logger(__name__)


def load_cases(target: str) -> list[TestCase]:
    """Import the case table named by *target* (``"module:attribute"``)."""
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Expected 'module:attribute', got {target!r}")
    table: Sequence[TestCase] | Callable[[], Sequence[TestCase]] = getattr(
        importlib.import_module(module_name), attribute
    )
    if callable(table):
        table = table()
    return list(table)


def run_topologies(
    runner: ConformanceRunner,
    cases: list[TestCase],
    connectors: Sequence[Callable[[], Topology]],
) -> None:
    """Run *cases* against each topology in turn, closing each one afterwards."""
    for connect in connectors:
        with connect() as topology:
            runner.run_all(topology, cases)


def main() -> int:
    cases = load_cases(settings.conformance_cases)
    runner = ConformanceRunner(
        denylist=settings.conformance_denylist,
        failpoint_mode=settings.conformance_failpoint_mode,
    )
    logger.info(
        "comment_passthrough_started",
        cases=len(cases),
        denylisted=sorted(runner.denylist),
    )
    try:
        run_topologies(
            runner,
            cases,
            [
                lambda: connect_standalone(settings.mongo_standalone_uri),
                lambda: connect_sharded(settings.mongo_router_uris, settings.mongo_shard_uri),
            ],
        )
    except UnexpectedCommandResult as exc:
        logger.error("comment_passthrough_failed", test=exc.test_name, result=exc.result)
        return 1
    logger.info("comment_passthrough_complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
