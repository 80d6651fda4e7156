"""Tagged lifecycle events emitted by a realtime channel."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable


class ChannelEventKind(str, Enum):
    open = "open"
    message = "message"
    error = "error"
    close = "close"


@dataclass(frozen=True)
class ChannelEvent:
    """One step in a channel's life.

    ``data`` is set for messages, ``error`` for errors. ``requested`` marks
    a close caused by ``disconnect()`` rather than by the transport.
    """

    kind: ChannelEventKind
    data: str | None = None
    error: BaseException | None = None
    requested: bool = False


Listener = Callable[[ChannelEvent], None]
