"""Realtime node-state channel."""

from smflow.realtime.channel import Connector, RealtimeChannel, channel_url
from smflow.realtime.events import ChannelEvent, ChannelEventKind, Listener
from smflow.realtime.reconnect import ReconnectPolicy, Reconnector

__all__ = [
    "ChannelEvent",
    "ChannelEventKind",
    "Connector",
    "Listener",
    "RealtimeChannel",
    "ReconnectPolicy",
    "Reconnector",
    "channel_url",
]
