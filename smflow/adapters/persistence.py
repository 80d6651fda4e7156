"""Load and save flows through the backend's flow endpoints."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from smflow.adapters.transport import Transport
from smflow.errors import TransportError
from smflow.graph import FlowGraph
from smflow.models.flow import FlowData, FlowNode, NodeAck, SaveAck

logger = logging.getLogger(__name__)


def parse_flow_data(raw: Any) -> FlowData:
    """Validate a load response; anything without both arrays is an empty flow."""
    if (
        not isinstance(raw, dict)
        or not isinstance(raw.get("nodes"), list)
        or not isinstance(raw.get("edges"), list)
    ):
        logger.warning("Malformed flow response, using an empty flow")
        return FlowData.empty()
    try:
        return FlowData.model_validate({"nodes": raw["nodes"], "edges": raw["edges"]})
    except ValidationError as e:
        logger.warning("Invalid flow data, using an empty flow: %s", e)
        return FlowData.empty()


class FlowPersistenceAdapter:
    """Flow endpoints of one backend.

    Loading never raises: unreachable backends and bad payloads give an
    empty flow. Saves are user-triggered and raise ``TransportError``.
    """

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    def load_flow(self, state_machine_id: str | None) -> FlowData:
        if not state_machine_id:
            return FlowData.empty()
        try:
            raw = self.transport.request("GET", f"{self._flow_path(state_machine_id)}/flow")
        except TransportError as e:
            logger.warning("Could not load flow %s: %s", state_machine_id, e)
            return FlowData.empty()
        return parse_flow_data(raw)

    def save_flow(self, state_machine_id: str, flow: FlowData | FlowGraph) -> SaveAck:
        """Replace the stored flow with this snapshot."""
        if isinstance(flow, FlowGraph):
            flow = flow.to_flow_data()
        raw = self.transport.request(
            "PUT", f"{self._flow_path(state_machine_id)}/flow", json=flow.to_payload()
        )
        return self._ack(SaveAck, raw)

    def upsert_node(self, state_machine_id: str, node: FlowNode) -> NodeAck:
        """Save one node from an edit dialog without resending the graph."""
        node_path = f"{self._flow_path(state_machine_id)}/nodes/{quote(node.id, safe='')}"
        raw = self.transport.request("PUT", node_path, json=node.to_payload())
        return self._ack(NodeAck, raw)

    def create_node(self, state_machine_id: str, node: FlowNode) -> NodeAck:
        raw = self.transport.request(
            "POST", f"{self._flow_path(state_machine_id)}/nodes", json=node.to_payload()
        )
        return self._ack(NodeAck, raw)

    @staticmethod
    def _flow_path(state_machine_id: str) -> str:
        return f"/flow/{quote(str(state_machine_id), safe='')}"

    @staticmethod
    def _ack(model, raw: Any):
        try:
            return model.model_validate(raw)
        except ValidationError as e:
            raise TransportError(f"Unexpected acknowledgement from server: {raw!r}") from e
