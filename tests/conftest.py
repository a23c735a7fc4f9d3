"""Shared fakes for relay pipeline tests."""

from __future__ import annotations

import pytest

from relay_bot.config import RelayConfig
from relay_bot.core.errors import DownloadError, SpeechError, TranscodeError
from relay_bot.core.types import ChatScope, MessageType, Platform
from relay_bot.dispatcher import MessageDispatcher
from relay_bot.messenger.base import MessengerAdapter
from relay_bot.messenger.models import IncomingMessage, MediaPayload, OutgoingMessage


class FakeAdapter(MessengerAdapter):
    def __init__(self, fail_sends: bool = False):
        super().__init__({})
        self.sent: list[OutgoingMessage] = []
        self.fail_sends = fail_sends

    @property
    def platform_name(self) -> str:
        return "fake"

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def send_message(self, message: OutgoingMessage) -> None:
        if self.fail_sends:
            raise RuntimeError("transport down")
        self.sent.append(message)

    @property
    def texts(self) -> list[str]:
        return [m.text for m in self.sent if m.media is None]


class FakeBackend:
    def __init__(self, answer: str = "Hello there!", transcript: str = "what is the weather", error=None):
        self.answer = answer
        self.transcript = transcript
        self.error = error
        self.chats: list[tuple[str, str, list | None]] = []
        self.uploads: list[tuple[bytes, str, str, str]] = []
        self.transcriptions: list[bytes] = []

    async def chat(self, query, user, files=None):
        self.chats.append((query, user, files))
        if self.error:
            raise self.error
        return self.answer

    async def upload_file(self, data, filename, mime_type, user):
        self.uploads.append((data, filename, mime_type, user))
        return "file-123"

    async def audio_to_text(self, data, user, filename="audio.wav", mime_type="audio/wav"):
        self.transcriptions.append(data)
        return self.transcript


class FakeSpeech:
    def __init__(self, fail_at: int | None = None):
        self.fail_at = fail_at
        self.texts: list[str] = []

    async def synthesize(self, text):
        index = len(self.texts)
        self.texts.append(text)
        if index == self.fail_at:
            raise SpeechError("TTS response does not contain an audio URL")
        return f"https://tts.example/block-{index}.wav"


class FakeFetcher:
    def __init__(self, resources: dict[str, bytes] | None = None, missing: set[str] | None = None):
        self.resources = resources or {}
        self.missing = missing or set()
        self.fetched: list[str] = []

    async def fetch(self, url):
        self.fetched.append(url)
        if url.startswith("https://tts.example/") and url not in self.missing:
            return url.rsplit("/", 1)[-1].encode()
        if url not in self.resources:
            raise DownloadError(f"Failed to download {url}. Status code: 404", url=url, status=404)
        return self.resources[url]


class FakeTranscoder:
    def __init__(self, fail: bool = False, fail_voice_at: int | None = None):
        self.fail = fail
        self.fail_voice_at = fail_voice_at
        self.wav_calls: list[str] = []
        self.voice_calls: list[str] = []
        self.concatenated: list[list] = []

    async def to_wav(self, data, from_format):
        self.wav_calls.append(from_format)
        if self.fail:
            raise TranscodeError("ffmpeg exited with status 1", returncode=1)
        return b"WAV:" + data

    async def to_voice_note(self, data, from_format):
        index = len(self.voice_calls)
        self.voice_calls.append(from_format)
        if self.fail or index == self.fail_voice_at:
            raise TranscodeError("ffmpeg exited with status 1", returncode=1)
        return b"OGG:" + data

    async def concatenate(self, segments):
        self.concatenated.append(list(segments))
        return b"|".join(segment.data for segment in segments)


def make_message(
    text: str = "",
    *,
    chat_id: str = "5511999990000@c.us",
    scope: ChatScope = ChatScope.DIRECT,
    message_type: MessageType = MessageType.TEXT,
    media: MediaPayload | None = None,
) -> IncomingMessage:
    return IncomingMessage(
        platform=Platform.TELEGRAM,
        chat_id=chat_id,
        user_id="user-1",
        scope=scope,
        message_type=message_type,
        text=text,
        media=media,
    )


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def speech() -> FakeSpeech:
    return FakeSpeech()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def make_dispatcher(adapter, backend, speech, fetcher, transcoder):
    def _make(**overrides) -> MessageDispatcher:
        parts = {
            "adapter": adapter,
            "backend": backend,
            "speech": speech,
            "transcoder": transcoder,
            "fetcher": fetcher,
            "config": RelayConfig(),
            "max_block_length": 40,
        }
        parts.update(overrides)
        return MessageDispatcher(**parts)

    return _make
