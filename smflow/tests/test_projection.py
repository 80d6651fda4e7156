"""Tests for projecting node-state messages onto graph nodes."""

import json

import pytest

from smflow.models.node_state import NodeState, NodeStateMessage, decode_frame
from smflow.projection import StateProjection


def _frame(node_id: str, state: str) -> str:
    return json.dumps({"nodeId": node_id, "state": state})


class TestDecodeFrame:

    def test_valid_frame(self):
        """A well-formed frame should decode to a message."""
        message = decode_frame('{"nodeId": "a", "state": "paused"}')
        assert message == NodeStateMessage(node_id="a", state=NodeState.paused)

    @pytest.mark.parametrize("frame", [
        "not json",
        "",
        '{"nodeId": "a"}',
        '{"state": "running"}',
        '{"nodeId": "a", "state": "exploded"}',
        '{"nodeId": "", "state": "running"}',
        '["a", "running"]',
    ])
    def test_malformed_frames_decode_to_none(self, frame):
        """Frames of the wrong shape should decode to None."""
        assert decode_frame(frame) is None

    def test_frame_round_trip_uses_wire_names(self):
        """Encoded frames should use nodeId and the state value."""
        frame = NodeStateMessage(node_id="a", state=NodeState.failed).to_frame()
        assert json.loads(frame) == {"nodeId": "a", "state": "failed"}


class TestLastWriteWins:
    """Messages apply in arrival order."""

    def test_message_sequence(self):
        """The last message per node should win."""
        projection = StateProjection(["a", "b"])

        for frame in (_frame("a", "running"), _frame("b", "failed"), _frame("a", "completed")):
            projection.handle_frame(frame)

        assert projection.snapshot() == {"a": NodeState.completed, "b": NodeState.failed}

    def test_nodes_without_messages_are_normal(self):
        """Nodes without messages should report normal."""
        projection = StateProjection(["a", "b"])
        projection.handle_frame(_frame("a", "running"))
        assert projection.status_of("b") is NodeState.normal
        assert projection.status_of("never-seen") is NodeState.normal

    def test_malformed_frame_changes_nothing(self):
        """Malformed frames should be dropped without changing statuses."""
        projection = StateProjection(["a"])
        projection.handle_frame(_frame("a", "running"))

        assert projection.handle_frame("{broken") is None
        assert projection.handle_frame(_frame("a", "bogus")) is None
        assert projection.snapshot() == {"a": NodeState.running}


class TestNodeSetChanges:

    def test_status_for_unknown_node_is_kept_until_added(self):
        """A status for a missing node should apply once the node is added."""
        projection = StateProjection(["a"])
        projection.handle_frame(_frame("late", "running"))

        assert "late" not in projection.snapshot()
        assert projection.pending() == {"late": NodeState.running}

        projection.sync_nodes(["a", "late"])

        assert projection.snapshot() == {"a": NodeState.normal, "late": NodeState.running}
        assert projection.pending() == {}

    def test_orphans_pruned_on_sync(self):
        """Statuses for nodes no longer present should be pruned."""
        projection = StateProjection(["a", "b"])
        projection.handle_frame(_frame("b", "failed"))
        projection.handle_frame(_frame("ghost", "paused"))

        projection.sync_nodes(["a"])

        assert projection.snapshot() == {"a": NodeState.normal}
        assert projection.pending() == {}
        assert projection.status_of("b") is NodeState.normal

    def test_existing_statuses_survive_sync(self):
        """A node-set change should keep statuses of remaining nodes."""
        projection = StateProjection(["a"])
        projection.handle_frame(_frame("a", "paused"))
        projection.sync_nodes(["a", "b"])
        assert projection.snapshot() == {"a": NodeState.paused, "b": NodeState.normal}

    def test_snapshot_follows_graph_order(self):
        """snapshot() should list nodes in graph order."""
        projection = StateProjection(["c", "a", "b"])
        assert list(projection.snapshot()) == ["c", "a", "b"]


class TestReconnect:

    def test_statuses_kept_by_default(self):
        """A reconnect should keep statuses by default."""
        projection = StateProjection(["a"])
        projection.handle_frame(_frame("a", "running"))
        projection.on_reconnect()
        assert projection.status_of("a") is NodeState.running

    def test_reset_on_reconnect(self):
        """With reset_on_reconnect every status should return to normal."""
        projection = StateProjection(["a"], reset_on_reconnect=True)
        projection.handle_frame(_frame("a", "running"))
        projection.on_reconnect()
        assert projection.snapshot() == {"a": NodeState.normal}

    def test_reset_drops_pending(self):
        """reset() should also forget statuses for missing nodes."""
        projection = StateProjection(["a"])
        projection.handle_frame(_frame("later", "running"))
        projection.reset()
        assert projection.pending() == {}
