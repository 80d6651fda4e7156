"""Project realtime node-state messages onto the nodes of a flow graph."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from smflow.models.node_state import NodeState, NodeStateMessage, decode_frame

logger = logging.getLogger(__name__)


class StateProjection:
    """Latest runtime status per node id.

    Messages are last-write-wins in arrival order. A message for a node the
    graph does not hold yet is kept, so a node added later picks it up; it
    is pruned at the next node-set change that does not include that node.

    The transport carries no sequence numbers, so reordered or duplicated
    frames are applied as they arrive.
    """

    def __init__(
        self,
        node_ids: Iterable[str] = (),
        reset_on_reconnect: bool = False,
    ) -> None:
        self.reset_on_reconnect = reset_on_reconnect
        self._node_ids: list[str] = []
        self._statuses: dict[str, NodeState] = {}
        self.sync_nodes(node_ids)

    def apply(self, message: NodeStateMessage) -> None:
        self._statuses[message.node_id] = message.state

    def handle_frame(self, frame: str | bytes) -> NodeStateMessage | None:
        """Decode and apply one channel frame; malformed frames are dropped."""
        message = decode_frame(frame)
        if message is None:
            logger.debug("Dropping malformed node-state frame: %r", frame)
            return None
        self.apply(message)
        return message

    def sync_nodes(self, node_ids: Iterable[str]) -> None:
        """Re-derive keys after the graph's node set changed.

        Statuses of current nodes are kept, current nodes without one
        default to ``normal``, and entries for other ids are dropped.
        """
        self._node_ids = list(dict.fromkeys(node_ids))
        self._statuses = {
            node_id: self._statuses.get(node_id, NodeState.normal)
            for node_id in self._node_ids
        }

    def status_of(self, node_id: str) -> NodeState:
        return self._statuses.get(node_id, NodeState.normal)

    def snapshot(self) -> dict[str, NodeState]:
        """Status of every node currently in the graph, in graph order."""
        return {node_id: self.status_of(node_id) for node_id in self._node_ids}

    def pending(self) -> dict[str, NodeState]:
        """Statuses received for ids that are not in the graph."""
        known = set(self._node_ids)
        return {
            node_id: state for node_id, state in self._statuses.items()
            if node_id not in known
        }

    def reset(self) -> None:
        """Forget every received status."""
        self._statuses = {node_id: NodeState.normal for node_id in self._node_ids}

    def on_reconnect(self) -> None:
        if self.reset_on_reconnect:
            logger.info("Channel reconnected, resetting node states")
            self.reset()
