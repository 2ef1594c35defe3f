"""
harness/conformance/topology.py

Connections to the deployments the conformance runner replays commands on.

Starting and stopping server processes is outside this package; a Topology
only connects to deployments that are already running.

  standalone   client = execution_node = the mongod, routing_node = None
  sharded      client = routing_node = first mongos,
               execution_node = first shard's primary,
               options = {"shard0name": <first shard's _id>}
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from harness.database.mongo import connect

logger = structlog.get_logger(__name__)


@dataclass
class Topology:
    """Clients for one deployment.

    Attributes:
        kind:           ``"standalone"`` or ``"sharded"``.
        client:         Entry point commands are sent through.
        execution_node: Node that executes queries (failpoint target).
        routing_node:   Router that must also see the failpoint, if any.
        options:        Topology metadata handed to test cases.
        clients:        Every client opened for this topology, closed by close().
    """

    kind: str
    client: Any
    execution_node: Any
    routing_node: Any | None = None
    options: dict[str, Any] = field(default_factory=dict)
    clients: list[Any] = field(default_factory=list)

    def close(self) -> None:
        for client in self.clients:
            client.close()
        self.clients.clear()
        logger.info("topology_closed", kind=self.kind)

    def __enter__(self) -> Topology:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def connect_standalone(uri: str) -> Topology:
    """Connect to a single mongod."""
    client = connect(uri)
    logger.info("topology_connected", kind="standalone")
    return Topology(
        kind="standalone",
        client=client,
        execution_node=client,
        clients=[client],
    )


def first_shard_name(router: Any) -> str:
    """Return the ``_id`` of the first shard registered with *router*."""
    shards = router.admin.command("listShards")["shards"]
    if not shards:
        raise RuntimeError("Sharded cluster has no shards")
    return shards[0]["_id"]


def connect_sharded(router_uris: Sequence[str], shard_uri: str) -> Topology:
    """Connect to a sharded cluster through its routers and first shard.

    Commands go through the first router; the remaining routers are opened
    so the caller can reach them but are not otherwise used.
    """
    if not router_uris:
        raise ValueError("A sharded topology needs at least one router URI")
    routers = [connect(uri) for uri in router_uris]
    shard = connect(shard_uri)
    try:
        options = {"shard0name": first_shard_name(routers[0])}
    except Exception:
        for client in [*routers, shard]:
            client.close()
        raise
    logger.info(
        "topology_connected",
        kind="sharded",
        routers=len(routers),
        shard0name=options["shard0name"],
    )
    return Topology(
        kind="sharded",
        client=routers[0],
        execution_node=shard,
        routing_node=routers[0],
        options=options,
        clients=[*routers, shard],
    )
