"""Adapters for talking to the flow backend."""

from smflow.adapters.persistence import FlowPersistenceAdapter, parse_flow_data
from smflow.adapters.transport import HttpxTransport, Transport

__all__ = [
    "FlowPersistenceAdapter",
    "HttpxTransport",
    "Transport",
    "parse_flow_data",
]
