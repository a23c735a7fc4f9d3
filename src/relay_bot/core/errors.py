"""Exception hierarchy for the relay pipeline."""

from __future__ import annotations

from enum import StrEnum


class RelayError(Exception):
    """Base class for all relay errors."""


class ConfigurationError(RelayError):
    """Required configuration is missing or invalid. Fatal at startup."""


class BackendFailure(StrEnum):
    CONTENT_POLICY = "content_policy"
    EMPTY_QUERY = "empty_query"
    GENERIC = "generic"


class BackendError(RelayError):
    """The completion backend rejected a request or could not be reached."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str = "",
        detail: str = "",
    ):
        super().__init__(message)
        self.status = status
        self.code = code
        self.detail = detail

    @property
    def failure(self) -> BackendFailure:
        if self.code == "invalid_param":
            if "content_policy_violation" in self.detail:
                return BackendFailure.CONTENT_POLICY
            if "query is required" in self.detail:
                return BackendFailure.EMPTY_QUERY
        return BackendFailure.GENERIC


class DownloadError(RelayError):
    """A remote resource could not be fetched (non-200 status or transport error)."""

    def __init__(self, message: str, url: str, status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class TranscodeError(RelayError):
    """The transcoding engine failed or produced no output."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class SpeechError(RelayError):
    """The speech synthesis backend did not return a usable audio URL."""
