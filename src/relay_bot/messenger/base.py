"""Abstract messenger adapter interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from relay_bot.messenger.models import IncomingMessage, OutgoingMessage


class MessengerAdapter(ABC):
    """Base class for chat transports.

    An adapter delivers inbound messages one at a time to the registered
    callback and awaits it before handing over the next one.
    """

    def __init__(self, config: dict):
        self.config = config
        self._message_callback: Callable[[IncomingMessage], Awaitable[object]] | None = None

    @abstractmethod
    async def start(self) -> None:
        """Connect to the platform and begin receiving messages."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Gracefully disconnect."""
        ...

    @abstractmethod
    async def send_message(self, message: OutgoingMessage) -> None:
        """Send text or media back to a conversation."""
        ...

    def on_message(self, callback: Callable[[IncomingMessage], Awaitable[object]]) -> None:
        """Register the callback invoked for every incoming message."""
        self._message_callback = callback

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """Return platform identifier string."""
        ...
