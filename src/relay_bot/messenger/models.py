"""Unified message models for the chat transport."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from relay_bot.core.types import ChatScope, MessageType, Platform


@dataclass(frozen=True, slots=True)
class MediaPayload:
    """Decoded media bytes attached to a message."""

    data: bytes
    mime_type: str  # e.g. "image/jpeg", "audio/ogg; codecs=opus"
    filename: Optional[str] = None


@dataclass(frozen=True, slots=True)
class IncomingMessage:
    platform: Platform
    chat_id: str
    user_id: str
    scope: ChatScope
    message_type: MessageType
    text: str = ""
    media: Optional[MediaPayload] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_media(self) -> bool:
        return self.media is not None


@dataclass(frozen=True, slots=True)
class OutgoingMessage:
    chat_id: str
    text: str = ""
    media: Optional[MediaPayload] = None
    as_voice: bool = False  # deliver audio media as a voice note
