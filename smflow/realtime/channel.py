"""Push channel carrying node-state frames from the backend.

The channel owns a single websocket connection and surfaces its life as
``ChannelEvent`` values: open, message, error, close. It never parses
frames and never reconnects on its own; see ``smflow.realtime.reconnect``
for an owner-level reconnection policy.

Example:
    channel = RealtimeChannel(channel_url("https://studio.example.com"))
    channel.subscribe(lambda event: print(event.kind, event.data))
    channel.connect()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncContextManager, Callable
from urllib.parse import urlsplit, urlunsplit

from websockets.asyncio.client import connect as websocket_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from smflow.config import WS_PATH
from smflow.realtime.events import ChannelEvent, ChannelEventKind, Listener

logger = logging.getLogger(__name__)

Connector = Callable[[str], AsyncContextManager[Any]]


def channel_url(base_url: str, path: str = WS_PATH) -> str:
    """Websocket URL on the host of ``base_url``.

    The scheme is ``wss`` exactly when ``base_url`` is served over https.
    """
    parts = urlsplit(base_url)
    secure = parts.scheme in ("https", "wss")
    if not path.startswith("/"):
        path = "/" + path
    return urlunsplit(("wss" if secure else "ws", parts.netloc, path, "", ""))


class RealtimeChannel:
    """A single logical websocket connection with an event-stream interface."""

    def __init__(
        self,
        url: str,
        connector: Connector | None = None,
        on_open: Callable[[], None] | None = None,
        on_message: Callable[[str], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        self.url = url
        self._connector = connector or websocket_connect
        self._callbacks = {
            ChannelEventKind.open: on_open,
            ChannelEventKind.message: on_message,
            ChannelEventKind.error: on_error,
            ChannelEventKind.close: on_close,
        }
        self._listeners: list[Listener] = []
        self._task: asyncio.Task | None = None
        self._ws: Any = None
        self._connected = False
        self._closed_by_owner = False
        self.last_message: str | None = None

    @property
    def connected(self) -> bool:
        """True between a successful open and the next close."""
        return self._connected

    @property
    def closed_by_owner(self) -> bool:
        """True from a ``disconnect()`` until the next ``connect()``."""
        return self._closed_by_owner

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for every channel event; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def connect(self) -> None:
        """Start connecting; no-op while a connection exists or is being made.

        Must be called from a running event loop.
        """
        self._closed_by_owner = False
        if self._task is not None:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run())

    def disconnect(self) -> None:
        """Close the connection and mark the channel as closed by its owner.

        Marking happens even when no connection is live, so a reconnect
        scheduled after a transport close does not reopen the channel.
        Only a live connection produces a ``close`` event.
        """
        self._closed_by_owner = True
        task = self._task
        if task is None:
            return
        self._task = None
        self._ws = None
        self._connected = False
        task.cancel()
        logger.info("Disconnected from %s", self.url)
        self._emit(ChannelEvent(ChannelEventKind.close, requested=True))

    async def send(self, payload: str | bytes) -> None:
        """Send a frame if the connection is open; otherwise log and drop it."""
        ws = self._ws
        if ws is None or not self._connected:
            logger.warning("Realtime channel is not connected, dropping send")
            return
        try:
            await ws.send(payload)
        except ConnectionClosed as e:
            logger.warning("Realtime channel closed during send: %s", e)

    async def wait_closed(self) -> None:
        """Wait until the current connection task ends."""
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def _run(self) -> None:
        task = asyncio.current_task()
        try:
            async with self._connector(self.url) as ws:
                self._ws = ws
                self._connected = True
                logger.info("Connected to %s", self.url)
                self._emit(ChannelEvent(ChannelEventKind.open))

                async for frame in ws:
                    text = frame if isinstance(frame, str) else ""
                    self.last_message = text
                    self._emit(ChannelEvent(ChannelEventKind.message, data=text))
        except (OSError, TimeoutError, asyncio.TimeoutError, WebSocketException) as e:
            logger.error("Realtime channel error on %s: %s", self.url, e)
            self._emit(ChannelEvent(ChannelEventKind.error, error=e))
        finally:
            # a disconnect() or a newer connect() already owns the state
            if self._task is task:
                self._task = None
                self._ws = None
                self._connected = False
                logger.info("Connection to %s closed", self.url)
                self._emit(ChannelEvent(ChannelEventKind.close))

    def _emit(self, event: ChannelEvent) -> None:
        callback = self._callbacks[event.kind]
        if callback is not None:
            args = {
                ChannelEventKind.message: (event.data,),
                ChannelEventKind.error: (event.error,),
            }.get(event.kind, ())
            self._call(callback, *args)
        for listener in list(self._listeners):
            self._call(listener, event)

    def _call(self, handler: Callable[..., Any], *args: Any) -> None:
        try:
            handler(*args)
        except Exception:
            logger.exception("Realtime channel handler failed")
