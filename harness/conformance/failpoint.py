"""
harness/conformance/failpoint.py

Server failpoint control.

configure_fail_point() switches a named failpoint on through the
``configureFailPoint`` admin command and returns a FailPoint handle.
FailPoint.off() switches it back off; a second call does nothing, so a
cleanup path can call it unconditionally.
"""
from __future__ import annotations

from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class FailPoint:
    """Handle to one enabled failpoint on one node."""

    def __init__(self, client: Any, name: str) -> None:
        self.client = client
        self.name = name
        self.active = True

    def off(self) -> None:
        if not self.active:
            return
        self.client.admin.command({"configureFailPoint": self.name, "mode": "off"})
        self.active = False
        logger.debug("failpoint_disabled", failpoint=self.name)

    def __enter__(self) -> FailPoint:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.off()


def configure_fail_point(
    client: Any,
    name: str,
    mode: str | dict[str, Any] = "alwaysOn",
    data: dict[str, Any] | None = None,
) -> FailPoint:
    """Enable failpoint *name* on the node *client* talks to.

    Args:
        client: pymongo MongoClient connected to the target node.
        name:   Failpoint name, e.g. ``"searchReturnEofImmediately"``.
        mode:   ``"alwaysOn"``, ``{"times": n}``, ``{"skip": n}`` …
        data:   Optional failpoint data document.
    """
    command: dict[str, Any] = {"configureFailPoint": name, "mode": mode}
    if data is not None:
        command["data"] = data
    client.admin.command(command)
    logger.debug("failpoint_enabled", failpoint=name, mode=mode)
    return FailPoint(client, name)
