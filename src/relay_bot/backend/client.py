"""HTTP client for the completion backend (chat, file upload, speech-to-text)."""

from __future__ import annotations

from typing import Any

import httpx

from relay_bot.config import BackendConfig
from relay_bot.core.errors import BackendError
from relay_bot.log import get_logger

logger = get_logger(__name__)


def file_reference(upload_file_id: str, file_type: str) -> dict[str, str]:
    """Build the typed reference that attaches a prior upload to a chat request."""
    return {
        "type": file_type,
        "transfer_method": "local_file",
        "upload_file_id": upload_file_id,
    }


class BackendClient:
    """Completion backend client using a shared httpx.AsyncClient."""

    def __init__(self, config: BackendConfig, transport: httpx.AsyncBaseTransport | None = None):
        self._response_mode = config.response_mode
        self._client = httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {config.api_key}"},
            timeout=config.timeout,
            transport=transport,
        )

    async def chat(
        self,
        query: str,
        user: str,
        files: list[dict[str, str]] | None = None,
    ) -> str:
        """Send one query (plus optional uploaded files) and return the answer text."""
        payload: dict[str, Any] = {
            "query": query,
            "inputs": {},
            "user": user,
            "response_mode": self._response_mode,
        }
        if files:
            payload["files"] = files

        logger.debug("chat_request", user=user, query_length=len(query), file_count=len(files or []))
        data = await self._request("POST", "/chat-messages", json=payload)
        answer = data.get("answer") or ""
        logger.info("chat_response", user=user, answer_length=len(answer))
        return answer

    async def upload_file(self, data: bytes, filename: str, mime_type: str, user: str) -> str:
        """Upload a file and return its identifier."""
        result = await self._request(
            "POST",
            "/files/upload",
            files={"file": (filename, data, mime_type)},
            data={"user": user},
        )
        file_id = result.get("id")
        if not file_id:
            raise BackendError("File upload response missing id")
        logger.info("file_uploaded", user=user, file_id=file_id, filename=filename)
        return file_id

    async def audio_to_text(
        self,
        data: bytes,
        user: str,
        filename: str = "audio.wav",
        mime_type: str = "audio/wav",
    ) -> str:
        """Submit audio for speech-to-text and return the transcript."""
        result = await self._request(
            "POST",
            "/audio-to-text",
            files={"file": (filename, data, mime_type)},
            data={"user": user},
        )
        text = result.get("text") or ""
        logger.info("audio_transcribed", user=user, transcript_length=len(text))
        return text

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("backend_transport_error", path=path, error=str(e))
            raise BackendError(f"Backend request to {path} failed: {e}") from e

        if response.is_error:
            code, detail = _error_details(response)
            logger.error(
                "backend_error_response",
                path=path,
                status=response.status_code,
                code=code,
                detail=detail[:500],
            )
            raise BackendError(
                f"Backend returned {response.status_code} for {path}",
                status=response.status_code,
                code=code,
                detail=detail,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise BackendError(f"Backend returned invalid JSON for {path}") from e
        if not isinstance(body, dict):
            raise BackendError(f"Backend returned an unexpected body for {path}", detail=response.text)
        return body


def _error_details(response: httpx.Response) -> tuple[str, str]:
    """Extract (code, message) from a JSON error body, falling back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return "", response.text
    if isinstance(body, dict):
        return str(body.get("code", "")), str(body.get("message", ""))
    return "", response.text
