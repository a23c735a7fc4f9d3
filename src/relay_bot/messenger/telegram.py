"""Telegram messenger adapter using python-telegram-bot v21+."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from telegram import Message, Update
from telegram.constants import ChatType
from telegram.ext import Application, MessageHandler as TGMessageHandler, filters

from relay_bot.core.types import ChatScope, MessageType, Platform
from relay_bot.log import get_logger
from relay_bot.messenger.base import MessengerAdapter
from relay_bot.messenger.models import IncomingMessage, MediaPayload, OutgoingMessage

logger = get_logger(__name__)

_CHAT_SCOPES = {
    ChatType.PRIVATE: ChatScope.DIRECT,
    ChatType.SENDER: ChatScope.DIRECT,
    ChatType.GROUP: ChatScope.GROUP,
    ChatType.SUPERGROUP: ChatScope.GROUP,
    ChatType.CHANNEL: ChatScope.BROADCAST,
}

# Service updates: membership changes, pins, title/photo edits, ...
_SERVICE_FIELDS = (
    "new_chat_members",
    "left_chat_member",
    "new_chat_title",
    "new_chat_photo",
    "delete_chat_photo",
    "group_chat_created",
    "supergroup_chat_created",
    "pinned_message",
    "migrate_to_chat_id",
    "migrate_from_chat_id",
)


_MEDIA_FIELDS = ("photo", "voice", "audio", "video", "video_note", "document")


def _is_service_message(msg: Message) -> bool:
    return any(getattr(msg, name, None) for name in _SERVICE_FIELDS)


def _has_attachment(msg: Message) -> bool:
    return any(getattr(msg, name, None) for name in _MEDIA_FIELDS)


class TelegramAdapter(MessengerAdapter):
    """Telegram bot adapter using python-telegram-bot."""

    def __init__(self, config: dict):
        super().__init__(config)
        self._app: Application | None = None  # type: ignore[type-arg]

    @property
    def platform_name(self) -> str:
        return Platform.TELEGRAM

    async def start(self) -> None:
        token = self.config.get("token", "")
        if not token:
            raise ValueError("Telegram bot token not configured")

        # Updates are processed one at a time (concurrent_updates defaults to off).
        self._app = Application.builder().token(token).build()
        self._app.add_handler(TGMessageHandler(filters.ALL, self._on_telegram_message))

        await self._app.initialize()
        await self._app.start()
        await self._app.updater.start_polling(drop_pending_updates=True)  # type: ignore[union-attr]
        logger.info("telegram_adapter_started")

    async def stop(self) -> None:
        if self._app:
            await self._app.updater.stop()  # type: ignore[union-attr]
            await self._app.stop()
            await self._app.shutdown()
            logger.info("telegram_adapter_stopped")

    async def send_message(self, message: OutgoingMessage) -> None:
        if not self._app or not self._app.bot:
            return

        bot = self._app.bot
        chat_id = int(message.chat_id)
        media = message.media

        if media is None:
            await bot.send_message(chat_id=chat_id, text=message.text)
            return

        caption = message.text or None
        if message.as_voice:
            await bot.send_voice(chat_id=chat_id, voice=media.data, caption=caption)
        elif media.mime_type.startswith("image/"):
            await bot.send_photo(chat_id=chat_id, photo=media.data, caption=caption)
        elif media.mime_type.startswith("audio/"):
            await bot.send_audio(
                chat_id=chat_id, audio=media.data, caption=caption, filename=media.filename
            )
        else:
            await bot.send_document(
                chat_id=chat_id,
                document=media.data,
                caption=caption,
                filename=media.filename or "attachment",
            )

    async def _download_media(self, msg: Message) -> MediaPayload | None:
        """Download the message's attachment, if it has one we can relay."""
        if msg.photo:
            # Highest resolution = last element
            source: Any = msg.photo[-1]
            mime_type, filename = "image/jpeg", "photo.jpg"
        elif msg.voice:
            source = msg.voice
            mime_type, filename = msg.voice.mime_type or "audio/ogg", "voice.ogg"
        elif msg.audio:
            source = msg.audio
            mime_type, filename = msg.audio.mime_type or "audio/mpeg", msg.audio.file_name
        elif msg.video:
            source = msg.video
            mime_type, filename = msg.video.mime_type or "video/mp4", msg.video.file_name
        elif msg.video_note:
            source = msg.video_note
            mime_type, filename = "video/mp4", "video_note.mp4"
        elif msg.document:
            source = msg.document
            mime_type = msg.document.mime_type or "application/octet-stream"
            filename = msg.document.file_name
        else:
            return None

        tg_file = await source.get_file()
        data = await tg_file.download_as_bytearray()
        return MediaPayload(data=bytes(data), mime_type=mime_type, filename=filename)

    async def _on_telegram_message(self, update: Update, context: Any) -> None:
        msg = update.effective_message
        chat = update.effective_chat
        if msg is None or chat is None or not self._message_callback:
            return

        scope = _CHAT_SCOPES.get(chat.type, ChatScope.GROUP)
        media: MediaPayload | None = None
        if _is_service_message(msg):
            message_type = MessageType.NOTIFICATION
        elif msg.text:
            message_type = MessageType.TEXT
        elif scope != ChatScope.DIRECT:
            # Only direct chats are answered, so attachments elsewhere are not fetched.
            message_type = MessageType.MEDIA if _has_attachment(msg) else MessageType.UNSUPPORTED
        else:
            try:
                media = await self._download_media(msg)
            except Exception as e:
                logger.warning("telegram_media_download_error", error=str(e), chat_id=str(chat.id))
                return
            message_type = MessageType.MEDIA if media else MessageType.UNSUPPORTED

        incoming = IncomingMessage(
            platform=Platform.TELEGRAM,
            chat_id=str(chat.id),
            user_id=str(msg.from_user.id) if msg.from_user else str(chat.id),
            scope=scope,
            message_type=message_type,
            text=msg.text or msg.caption or "",
            media=media,
            timestamp=msg.date or datetime.now(timezone.utc),
        )

        try:
            await self._message_callback(incoming)
        except Exception as e:
            logger.error("telegram_handler_error", error=str(e), chat_id=str(chat.id))
