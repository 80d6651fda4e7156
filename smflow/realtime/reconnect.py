"""Reconnection policy layered on top of a RealtimeChannel."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from smflow.realtime.channel import RealtimeChannel
from smflow.realtime.events import ChannelEvent, ChannelEventKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconnectPolicy:
    """Exponential backoff: initial_delay, initial_delay * multiplier, ... capped at max_delay."""

    initial_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    max_attempts: int | None = None  # None retries forever

    def delay_for(self, attempt: int) -> float:
        return min(self.initial_delay * self.multiplier ** (attempt - 1), self.max_delay)


class Reconnector:
    """Calls ``channel.connect()`` again after a transport-initiated close.

    A ``channel.disconnect()`` stops retrying, including one made while a
    retry is waiting out its backoff delay. The attempt
    counter resets on every successful open, and ``on_reconnect`` fires on
    every open after the first.
    """

    def __init__(
        self,
        channel: RealtimeChannel,
        policy: ReconnectPolicy | None = None,
        on_reconnect: Callable[[], None] | None = None,
    ) -> None:
        self.channel = channel
        self.policy = policy or ReconnectPolicy()
        self.on_reconnect = on_reconnect
        self.attempts = 0
        self._has_opened = False
        self._pending: asyncio.Task | None = None
        self._unsubscribe = channel.subscribe(self._on_event)

    def stop(self) -> None:
        """Stop listening and cancel any scheduled retry."""
        self._unsubscribe()
        self._cancel_pending()

    def _on_event(self, event: ChannelEvent) -> None:
        if event.kind is ChannelEventKind.open:
            if self._has_opened and self.on_reconnect is not None:
                self.on_reconnect()
            self._has_opened = True
            self.attempts = 0
        elif event.kind is ChannelEventKind.close:
            if event.requested:
                self._cancel_pending()
            else:
                self._schedule()

    def _schedule(self) -> None:
        max_attempts = self.policy.max_attempts
        if max_attempts is not None and self.attempts >= max_attempts:
            logger.error("Giving up on %s after %d reconnect attempts", self.channel.url, self.attempts)
            return
        self.attempts += 1
        delay = self.policy.delay_for(self.attempts)
        logger.info("Reconnecting to %s in %.1fs (attempt %d)", self.channel.url, delay, self.attempts)
        self._cancel_pending()
        self._pending = asyncio.get_running_loop().create_task(self._retry(delay))

    async def _retry(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._pending = None
        if self.channel.closed_by_owner:
            logger.info("Not reconnecting to %s, it was disconnected by its owner", self.channel.url)
            return
        self.channel.connect()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
