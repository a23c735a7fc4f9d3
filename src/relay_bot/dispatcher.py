"""Message dispatcher: classifies inbound messages, calls the backend, delivers replies."""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from urllib.parse import urlparse

from relay_bot.backend.client import BackendClient, file_reference
from relay_bot.backend.speech import SpeechClient
from relay_bot.config import RelayConfig
from relay_bot.core.errors import BackendError, BackendFailure, DownloadError, SpeechError, TranscodeError
from relay_bot.core.formats import guess_image_mime, resolve_category
from relay_bot.core.reply_parser import ParsedReply, parse_reply
from relay_bot.core.text_blocks import DEFAULT_MAX_BLOCK_LENGTH, split_text_into_blocks
from relay_bot.core.types import ChatScope, DispatchState, MediaCategory, MessageType, ReplyKind
from relay_bot.log import get_logger
from relay_bot.media.fetcher import ResourceFetcher
from relay_bot.media.transcoder import (
    VOICE_NOTE_MIME,
    AudioSegment,
    AudioTranscoder,
    input_format_for_extension,
    input_format_for_mime,
)
from relay_bot.messenger.base import MessengerAdapter
from relay_bot.messenger.models import IncomingMessage, MediaPayload, OutgoingMessage

logger = get_logger(__name__)

_FILENAME_LIKE = re.compile(r"^\d+\.\w+$")

_UPLOAD_FILENAMES = {
    MediaCategory.IMAGE: "image.jpg",
    MediaCategory.VIDEO: "video.mp4",
    MediaCategory.DOCUMENT: "document.pdf",
}


def is_meaningful_query(text: str | None) -> bool:
    """A caption counts as a query if it is long enough and not a bare filename like '12345.pdf'."""
    return bool(text) and len(text.strip()) > 10 and not _FILENAME_LIKE.match(text)


def _url_extension(url: str) -> str:
    return PurePosixPath(urlparse(url).path).suffix.lower().lstrip(".")


class MessageDispatcher:
    """Runs one inbound message through classify -> backend -> reply parse -> delivery.

    The dispatcher holds no per-message state; every call to ``handle`` owns
    its data end to end. ``handle`` never raises: failures end in
    ``DispatchState.FAILED``, optionally after one apology message.
    """

    def __init__(
        self,
        adapter: MessengerAdapter,
        backend: BackendClient,
        speech: SpeechClient,
        transcoder: AudioTranscoder,
        fetcher: ResourceFetcher,
        config: RelayConfig,
        max_block_length: int = DEFAULT_MAX_BLOCK_LENGTH,
    ):
        self._adapter = adapter
        self._backend = backend
        self._speech = speech
        self._transcoder = transcoder
        self._fetcher = fetcher
        self._config = config
        self._messages = config.messages
        self._max_block_length = max_block_length

    async def handle(self, message: IncomingMessage) -> DispatchState:
        """Process an incoming message end-to-end and return its terminal state."""
        chat_id = message.chat_id
        logger.info(
            "message_received",
            chat_id=chat_id,
            message_type=message.message_type,
            has_media=message.has_media,
        )

        self._advance(chat_id, DispatchState.RECEIVED)
        if self._is_ignored(message):
            logger.info("message_ignored", chat_id=chat_id, scope=message.scope)
            return DispatchState.IGNORED

        subject = self._subject_of(message)
        self._advance(chat_id, DispatchState.CLASSIFIED, subject=subject)
        try:
            if message.message_type == MessageType.TEXT:
                state = await self._handle_text(message)
            elif message.media is not None:
                state = await self._handle_media(message, message.media)
            else:
                logger.info("message_type_unsupported", chat_id=chat_id)
                await self._send_apology(chat_id, self._messages.unsupported_message)
                state = DispatchState.FAILED
        except Exception as e:
            logger.error("dispatch_error", chat_id=chat_id, subject=subject, error=str(e), exc_info=True)
            if subject in self._config.quiet_failure_categories:
                logger.info("dispatch_failure_suppressed", chat_id=chat_id, subject=subject)
            else:
                await self._send_apology(chat_id, self._render(self._messages.generic_failure, subject))
            state = DispatchState.FAILED

        logger.info("message_handled", chat_id=chat_id, state=state)
        return state

    def _is_ignored(self, message: IncomingMessage) -> bool:
        if message.message_type == MessageType.NOTIFICATION:
            return True
        if message.scope != ChatScope.DIRECT:
            return True
        if message.chat_id in self._config.ignored_senders:
            return True
        return any(marker in message.chat_id for marker in self._config.group_markers)

    def _subject_of(self, message: IncomingMessage) -> str:
        """Category label used for failure messages: the media category, else 'text'."""
        if message.message_type != MessageType.TEXT and message.media is not None:
            return resolve_category(message.media.mime_type) or "text"
        return "text"

    def _advance(self, chat_id: str, state: DispatchState, **context: object) -> None:
        logger.debug("dispatch_state", chat_id=chat_id, state=state, **context)

    def wants_audio_reply(self, text: str) -> bool:
        lowered = text.casefold()
        return any(phrase.casefold() in lowered for phrase in self._config.audio_request_phrases)

    # -- inbound paths -------------------------------------------------

    async def _handle_text(self, message: IncomingMessage) -> DispatchState:
        wants_audio = self.wants_audio_reply(message.text)
        try:
            self._advance(message.chat_id, DispatchState.BACKEND_REQUESTED)
            answer = await self._backend.chat(message.text, user=message.user_id)
        except BackendError as e:
            return await self._report_backend_failure(message.chat_id, e, "text")
        return await self._deliver(message.chat_id, answer, speak=wants_audio)

    async def _handle_media(self, message: IncomingMessage, media: MediaPayload) -> DispatchState:
        category = resolve_category(media.mime_type)
        if category is None:
            # No reply: the transport may deliver several events for one upload.
            logger.info("media_format_unsupported", chat_id=message.chat_id, mime_type=media.mime_type)
            return DispatchState.IGNORED

        logger.info("media_classified", chat_id=message.chat_id, category=category, filename=media.filename)
        if category == MediaCategory.AUDIO:
            return await self._handle_audio(message, media)
        return await self._handle_upload(message, media, category)

    async def _handle_upload(
        self,
        message: IncomingMessage,
        media: MediaPayload,
        category: MediaCategory,
    ) -> DispatchState:
        """Image, video and document: upload the file, then chat about it."""
        if is_meaningful_query(message.text):
            query = message.text
        else:
            query = self._config.default_prompts.get(category, "")
        filename = media.filename or _UPLOAD_FILENAMES[category]

        try:
            self._advance(message.chat_id, DispatchState.BACKEND_REQUESTED)
            file_id = await self._backend.upload_file(
                media.data, filename, media.mime_type, user=message.user_id
            )
            answer = await self._backend.chat(
                query,
                user=message.user_id,
                files=[file_reference(file_id, category)],
            )
        except BackendError as e:
            return await self._report_backend_failure(message.chat_id, e, category)
        return await self._deliver(message.chat_id, answer, speak=False)

    async def _handle_audio(self, message: IncomingMessage, media: MediaPayload) -> DispatchState:
        """Voice in, voice out: transcribe, chat on the transcript, answer with speech."""
        source_format = input_format_for_mime(media.mime_type)
        if source_format is None:
            logger.info("audio_format_unmapped", chat_id=message.chat_id, mime_type=media.mime_type)
            return DispatchState.IGNORED

        try:
            wav = await self._transcoder.to_wav(media.data, source_format)
            self._advance(message.chat_id, DispatchState.BACKEND_REQUESTED)
            transcript = await self._backend.audio_to_text(wav, user=message.user_id)
            answer = await self._backend.chat(transcript, user=message.user_id)
        except BackendError as e:
            return await self._report_backend_failure(message.chat_id, e, MediaCategory.AUDIO)
        except TranscodeError as e:
            logger.error("inbound_audio_transcode_failed", chat_id=message.chat_id, error=str(e))
            await self._send_apology(
                message.chat_id, self._render(self._messages.generic_failure, MediaCategory.AUDIO)
            )
            return DispatchState.FAILED
        return await self._deliver(message.chat_id, answer, speak=True)

    async def _report_backend_failure(self, chat_id: str, error: BackendError, subject: str) -> DispatchState:
        failure = error.failure
        logger.error(
            "backend_failure",
            chat_id=chat_id,
            subject=subject,
            failure=failure,
            status=error.status,
            code=error.code,
            detail=error.detail[:500],
        )
        if failure == BackendFailure.CONTENT_POLICY:
            template = self._messages.content_policy
        elif failure == BackendFailure.EMPTY_QUERY:
            template = self._messages.empty_query
        elif subject in self._config.quiet_failure_categories:
            logger.info("backend_failure_suppressed", chat_id=chat_id, subject=subject)
            return DispatchState.FAILED
        else:
            template = self._messages.generic_failure
        await self._send_apology(chat_id, self._render(template, subject))
        return DispatchState.FAILED

    # -- outbound paths ------------------------------------------------

    async def _deliver(self, chat_id: str, answer: str, speak: bool) -> DispatchState:
        if not answer.strip():
            logger.warning("backend_answer_empty", chat_id=chat_id)
            return DispatchState.FAILED

        reply = parse_reply(answer)
        logger.info("reply_parsed", chat_id=chat_id, kind=reply.kind, url=reply.url or None)
        self._advance(chat_id, DispatchState.REPLY_PARSED, kind=reply.kind)

        if reply.kind == ReplyKind.IMAGE:
            return await self._send_image_reply(chat_id, reply)
        if reply.kind == ReplyKind.FILE:
            return await self._send_file_reply(chat_id, reply)
        if speak:
            return await self._send_voice_reply(chat_id, reply.text)

        await self._adapter.send_message(OutgoingMessage(chat_id=chat_id, text=reply.text))
        logger.info("reply_sent", chat_id=chat_id, kind=reply.kind)
        return DispatchState.DELIVERED

    async def _send_image_reply(self, chat_id: str, reply: ParsedReply) -> DispatchState:
        try:
            data = await self._fetcher.fetch(reply.url)
            image = MediaPayload(data=data, mime_type=guess_image_mime(reply.url), filename="image")
            self._advance(chat_id, DispatchState.MEDIA_RESOLVED, kind=reply.kind)
            await self._adapter.send_message(OutgoingMessage(chat_id=chat_id, media=image))
            if reply.caption:
                await self._adapter.send_message(OutgoingMessage(chat_id=chat_id, text=reply.caption))
        except Exception as e:
            logger.error("image_reply_failed", chat_id=chat_id, url=reply.url, error=str(e))
            await self._send_apology(chat_id, self._messages.image_send_failed)
            return DispatchState.FAILED

        logger.info("reply_sent", chat_id=chat_id, kind=reply.kind)
        return DispatchState.DELIVERED

    async def _send_file_reply(self, chat_id: str, reply: ParsedReply) -> DispatchState:
        """Relay a referenced audio file as a voice note. Failures are logged only."""
        source_format = input_format_for_extension(_url_extension(reply.url))
        if source_format is None:
            logger.warning("file_reply_format_unsupported", chat_id=chat_id, url=reply.url)
            return DispatchState.FAILED

        try:
            data = await self._fetcher.fetch(reply.url)
            voice = await self._voice_note(data, source_format)
            self._advance(chat_id, DispatchState.MEDIA_RESOLVED, kind=reply.kind)
            await self._send_voice(chat_id, voice)
        except Exception as e:
            logger.error("file_reply_failed", chat_id=chat_id, url=reply.url, error=str(e))
            return DispatchState.FAILED

        logger.info("reply_sent", chat_id=chat_id, kind=reply.kind)
        return DispatchState.DELIVERED

    async def _send_voice_reply(self, chat_id: str, text: str) -> DispatchState:
        """Synthesize ``text`` block by block and deliver one concatenated voice note.

        Blocks are synthesized strictly in order and any failure aborts the
        reply, so a voice note with missing parts is never sent.
        """
        blocks = split_text_into_blocks(text, self._max_block_length)
        logger.info("voice_reply_started", chat_id=chat_id, blocks=len(blocks))

        segments: list[AudioSegment] = []
        for position, block in enumerate(blocks):
            try:
                audio_url = await self._speech.synthesize(block)
                audio = await self._fetcher.fetch(audio_url)
                source_format = input_format_for_extension(_url_extension(audio_url)) or "wav"
                voice = await self._voice_note(audio, source_format)
            except (SpeechError, DownloadError, TranscodeError) as e:
                logger.error("speech_block_failed", chat_id=chat_id, position=position, error=str(e))
                await self._send_apology(chat_id, self._messages.speech_failed)
                return DispatchState.FAILED
            segments.append(AudioSegment(position=position, data=voice))

        try:
            combined = await self._transcoder.concatenate(segments)
            self._advance(chat_id, DispatchState.MEDIA_RESOLVED, kind="voice")
            await self._send_voice(chat_id, combined)
        except Exception as e:
            logger.error("voice_reply_failed", chat_id=chat_id, error=str(e))
            await self._send_apology(chat_id, self._messages.audio_send_failed)
            return DispatchState.FAILED

        logger.info("reply_sent", chat_id=chat_id, kind="voice", segments=len(segments))
        return DispatchState.DELIVERED

    async def _voice_note(self, data: bytes, source_format: str) -> bytes:
        if source_format == "ogg":
            return data
        return await self._transcoder.to_voice_note(data, source_format)

    async def _send_voice(self, chat_id: str, data: bytes) -> None:
        voice = MediaPayload(data=data, mime_type=VOICE_NOTE_MIME, filename="voice.ogg")
        await self._adapter.send_message(OutgoingMessage(chat_id=chat_id, media=voice, as_voice=True))

    async def _send_apology(self, chat_id: str, text: str) -> None:
        try:
            await self._adapter.send_message(OutgoingMessage(chat_id=chat_id, text=text))
        except Exception as e:
            logger.error("apology_send_failed", chat_id=chat_id, error=str(e))

    def _render(self, template: str, subject: str) -> str:
        return template.format(subject=self._messages.subjects.get(subject, subject))
