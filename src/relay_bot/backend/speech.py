"""HTTP client for the text-to-speech backend."""

from __future__ import annotations

from typing import Any

import httpx

from relay_bot.config import SpeechConfig
from relay_bot.core.errors import SpeechError
from relay_bot.log import get_logger

logger = get_logger(__name__)


def _first_audio_url(body: Any) -> str | None:
    """Pull ``data[0].urls[0]`` out of a synchronous TTS response."""
    if not isinstance(body, dict):
        return None
    items = body.get("data")
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        return None
    urls = items[0].get("urls")
    if not isinstance(urls, list) or not urls:
        return None
    return urls[0] or None


class SpeechClient:
    """Synthesizes one block of text and returns a downloadable audio URL."""

    def __init__(self, config: SpeechConfig, transport: httpx.AsyncBaseTransport | None = None):
        self._speaker = config.speaker
        self._speed = config.speed
        self._client = httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            headers={"X-API-KEY": config.api_key, "Accept": "application/json"},
            timeout=config.timeout,
            transport=transport,
        )

    async def synthesize(self, text: str) -> str:
        payload = {"text": text, "speaker": self._speaker, "speed": self._speed}
        try:
            response = await self._client.post("/tts/sync", json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "tts_error_response",
                status=e.response.status_code,
                body=e.response.text[:500],
            )
            raise SpeechError(f"TTS request failed with status {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("tts_request_failed", error=str(e))
            raise SpeechError(f"TTS request failed: {e}") from e

        url = _first_audio_url(body)
        if not url:
            logger.error("tts_missing_audio_url", body=str(body)[:500])
            raise SpeechError("TTS response does not contain an audio URL")
        logger.debug("tts_block_synthesized", text_length=len(text), url=url)
        return url

    async def aclose(self) -> None:
        await self._client.aclose()
