"""Shared types and enumerations."""

from __future__ import annotations

from enum import StrEnum


class Platform(StrEnum):
    TELEGRAM = "telegram"


class ChatScope(StrEnum):
    DIRECT = "direct"
    GROUP = "group"
    BROADCAST = "broadcast"


class MessageType(StrEnum):
    TEXT = "text"
    MEDIA = "media"
    NOTIFICATION = "notification"  # transport-internal events, never answered
    UNSUPPORTED = "unsupported"


class MediaCategory(StrEnum):
    IMAGE = "image"
    DOCUMENT = "document"
    AUDIO = "audio"
    VIDEO = "video"


class ReplyKind(StrEnum):
    IMAGE = "image"
    FILE = "file"
    TEXT = "text"


class DispatchState(StrEnum):
    RECEIVED = "received"
    CLASSIFIED = "classified"
    BACKEND_REQUESTED = "backend_requested"
    REPLY_PARSED = "reply_parsed"
    MEDIA_RESOLVED = "media_resolved"
    DELIVERED = "delivered"
    IGNORED = "ignored"
    FAILED = "failed"
