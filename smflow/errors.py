"""Exception types raised by the flow model and its adapters."""


class FlowError(Exception):
    """Base class for smflow errors."""
    pass


class NodeNotFoundError(FlowError, KeyError):
    """Raised when an operation references a node id the graph does not hold."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node not found: {node_id}")
        self.node_id = node_id

    def __str__(self) -> str:
        return self.args[0]


class EdgeNotFoundError(FlowError, KeyError):
    """Raised when removing an edge id the graph does not hold."""

    def __init__(self, edge_id: str) -> None:
        super().__init__(f"Edge not found: {edge_id}")
        self.edge_id = edge_id

    def __str__(self) -> str:
        return self.args[0]


class InvalidGraphError(FlowError, ValueError):
    """Raised when a mutation would break graph integrity."""
    pass


class TransportError(FlowError):
    """Raised when the persistence backend cannot be reached or rejects a call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
