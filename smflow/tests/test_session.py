"""Tests for FlowSession: load, layout, edit and live node states together."""

import json

import pytest

from smflow.adapters import FlowPersistenceAdapter
from smflow.errors import FlowError
from smflow.models.flow import FlowEdge, FlowNode, LayoutDirection, NodeKind, PortSide, Position
from smflow.models.node_state import NodeState
from smflow.projection import StateProjection
from smflow.realtime import RealtimeChannel, ReconnectPolicy
from smflow.session import FlowSession

from fakes import FakeConnector, settle


class FakeTransport:

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    def request(self, method, path, json=None):
        self.calls.append((method, path, json))
        return self.responses.get((method, path))


UNPOSITIONED = {
    "nodes": [
        {"id": "S", "type": "start", "data": {"label": "Start"}},
        {"id": "A", "data": {"label": "Scene"}},
        {"id": "E", "type": "end", "data": {"label": "End"}},
    ],
    "edges": [
        {"id": "e1", "source": "S", "target": "A"},
        {"id": "e2", "source": "A", "target": "E"},
    ],
}

POSITIONED = {
    "nodes": [
        {"id": "S", "type": "start", "position": {"x": 500, "y": 10}, "data": {}},
        {"id": "A", "position": {"x": 10, "y": 10}, "data": {}},
    ],
    "edges": [{"id": "e1", "source": "S", "target": "A"}],
}


def _session(flow=None, channel=None, projection=None):
    transport = FakeTransport({
        ("GET", "/flow/1/flow"): flow,
        ("PUT", "/flow/1/flow"): {"ok": True, "updatedAt": "now"},
        ("PUT", "/flow/1/nodes/A"): {"ok": True},
    })
    return FlowSession(FlowPersistenceAdapter(transport), channel, projection), transport


class TestLoad:

    def test_unpositioned_flow_is_laid_out(self):
        """A flow stored without positions should be laid out on load."""
        session, _ = _session(UNPOSITIONED)
        graph = session.load("1")

        nodes = {n.id: n for n in graph.nodes}
        assert nodes["S"].position.x < nodes["A"].position.x < nodes["E"].position.x
        assert nodes["A"].source_position is PortSide.right

    def test_stored_positions_are_kept(self):
        """Stored positions should be used as they are."""
        session, _ = _session(POSITIONED)
        graph = session.load("1")
        assert graph.get_node("S").position == Position(x=500, y=10)

    def test_projection_tracks_loaded_nodes(self):
        """After load the projection should cover exactly the loaded nodes."""
        session, _ = _session(UNPOSITIONED)
        session.projection.handle_frame('{"nodeId": "old", "state": "running"}')

        session.load("1")

        assert session.node_states() == {
            "S": NodeState.normal,
            "A": NodeState.normal,
            "E": NodeState.normal,
        }

    def test_duplicate_ids_load_as_empty(self):
        """An inconsistent stored flow should load as an empty graph."""
        broken = {"nodes": [{"id": "x"}, {"id": "x"}], "edges": []}
        session, _ = _session(broken)
        assert len(session.load("1")) == 0

    def test_unreachable_backend_loads_empty(self):
        """A failed load should give an empty graph and remember the id."""
        session, _ = _session(None)
        graph = session.load("1")
        assert len(graph) == 0
        assert session.state_machine_id == "1"

    def test_loading_another_flow_resets_statuses(self):
        """Statuses from one flow should not show on another flow that reuses node ids."""
        transport = FakeTransport({
            ("GET", "/flow/1/flow"): POSITIONED,
            ("GET", "/flow/2/flow"): UNPOSITIONED,
        })
        session = FlowSession(FlowPersistenceAdapter(transport))
        session.load("1")
        session.projection.handle_frame('{"nodeId": "S", "state": "failed"}')
        session.projection.handle_frame('{"nodeId": "E", "state": "running"}')

        session.load("2")

        assert session.node_states() == {
            "S": NodeState.normal,
            "A": NodeState.normal,
            "E": NodeState.normal,
        }

    def test_reloading_same_flow_resets_statuses(self):
        """A reload of the current flow should start every node at normal."""
        session, _ = _session(POSITIONED)
        session.load("1")
        session.projection.handle_frame('{"nodeId": "A", "state": "paused"}')

        session.load("1")

        assert session.node_states() == {"S": NodeState.normal, "A": NodeState.normal}

    def test_status_before_first_load_applies(self):
        """A status that arrives before any flow is loaded should apply once its node exists."""
        session, _ = _session(POSITIONED)
        session.projection.handle_frame('{"nodeId": "A", "state": "running"}')

        session.load("1")

        assert session.node_states()["A"] is NodeState.running

    def test_load_keeps_chosen_direction(self):
        """A reload should lay out in the last chosen direction."""
        session, _ = _session(UNPOSITIONED)
        session.load("1")
        session.relayout(LayoutDirection.TB)

        graph = session.load("1")

        assert graph.direction is LayoutDirection.TB
        assert graph.get_node("A").target_position is PortSide.top


class TestSave:

    def test_save_requires_a_loaded_flow(self):
        """Saving before any load should raise FlowError."""
        session, _ = _session()
        with pytest.raises(FlowError):
            session.save()

    def test_save_sends_current_graph(self):
        """save() should send the edited graph."""
        session, transport = _session(POSITIONED)
        session.load("1")
        session.update_node("A", {"data": {"label": "Renamed"}})

        ack = session.save()

        assert ack.ok
        payload = transport.calls[-1][2]
        assert payload["nodes"][1]["data"]["label"] == "Renamed"

    def test_save_single_node(self):
        """save_node() should upsert just that node."""
        session, transport = _session(POSITIONED)
        session.load("1")
        assert session.save_node("A").ok
        assert transport.calls[-1][:2] == ("PUT", "/flow/1/nodes/A")


class TestEditing:

    def test_create_node_generates_id(self):
        """create_node should add a node with a kind-prefixed id."""
        session, _ = _session(POSITIONED)
        session.load("1")

        node = session.create_node(NodeKind.choice, "Pick one", Position(x=1, y=2))

        assert node.id.startswith("choice-")
        assert node.data.label == "Pick one"
        assert session.graph.has_node(node.id)
        assert session.node_states()[node.id] is NodeState.normal

    def test_remove_node_prunes_state_and_edges(self):
        """Removing a node should drop its status and edges."""
        session, _ = _session(POSITIONED)
        session.load("1")
        session.projection.handle_frame('{"nodeId": "A", "state": "failed"}')

        session.remove_node("A")

        assert session.node_states() == {"S": NodeState.normal}
        assert session.graph.edges == []

    def test_state_for_node_added_later(self):
        """A status received early should apply to a node added later."""
        session, _ = _session(POSITIONED)
        session.load("1")
        session.projection.handle_frame('{"nodeId": "late", "state": "paused"}')

        session.add_node(FlowNode(id="late"))
        session.add_edge(FlowEdge(source="A", target="late"))

        assert session.node_states()["late"] is NodeState.paused


class TestLiveStates:

    def test_attach_without_channel(self):
        """attach() without a channel should raise FlowError."""
        session, _ = _session()
        with pytest.raises(FlowError):
            session.attach()

    @pytest.mark.asyncio
    async def test_frames_update_node_states(self):
        """Channel frames should update node states once attached."""
        connector = FakeConnector()
        channel = RealtimeChannel("ws://backend/ws", connector=connector)
        session, _ = _session(POSITIONED, channel)
        session.load("1")

        session.attach()
        session.attach()
        await settle()
        socket = connector.sockets[0]
        socket.push(json.dumps({"nodeId": "A", "state": "running"}))
        socket.push("garbage")
        socket.push(json.dumps({"nodeId": "S", "state": "completed"}))
        await settle()

        assert connector.attempts == 1
        assert session.node_states() == {"S": NodeState.completed, "A": NodeState.running}
        session.detach()
        assert not channel.connected

    @pytest.mark.asyncio
    async def test_reconnect_resets_when_configured(self):
        """A reconnect should reset statuses when the projection asks for it."""
        connector = FakeConnector()
        channel = RealtimeChannel("ws://backend/ws", connector=connector)
        session, _ = _session(
            POSITIONED, channel, StateProjection(reset_on_reconnect=True)
        )
        session.load("1")
        session.attach(ReconnectPolicy(initial_delay=0, max_delay=0))
        await settle()

        connector.sockets[0].push(json.dumps({"nodeId": "A", "state": "running"}))
        await settle()
        assert session.node_states()["A"] is NodeState.running

        connector.sockets[0].close_from_server()
        await settle(60)

        assert connector.attempts == 2
        assert session.node_states()["A"] is NodeState.normal
        session.detach()
