"""Configuration loader with YAML parsing, env-var interpolation, and Pydantic validation."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from relay_bot.core.errors import ConfigurationError
from relay_bot.core.types import MediaCategory

_ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")


def _require_credential(value: str) -> str:
    value = value.strip()
    if not value or _ENV_VAR_PATTERN.search(value):
        raise ValueError("credential is not set (check your .env file)")
    return value


class TransportConfig(BaseModel):
    platform: str = "telegram"
    token: str

    @field_validator("token")
    @classmethod
    def require_token(cls, value: str) -> str:
        return _require_credential(value)


class BackendConfig(BaseModel):
    api_key: str
    base_url: str = "https://api.dify.ai/v1"
    response_mode: str = "blocking"
    timeout: int = 120

    @field_validator("api_key")
    @classmethod
    def require_api_key(cls, value: str) -> str:
        return _require_credential(value)


class SpeechConfig(BaseModel):
    api_key: str
    base_url: str = "https://api.genny.lovo.ai/api/v1"
    speaker: str = "63b409bb241a82001d51c710"
    speed: float = 1.25
    max_block_length: int = Field(default=500, gt=0)
    timeout: int = 120

    @field_validator("api_key")
    @classmethod
    def require_api_key(cls, value: str) -> str:
        return _require_credential(value)


class AudioConfig(BaseModel):
    ffmpeg_path: str = "ffmpeg"
    temp_dir: Optional[str] = None  # None = system temp directory


class MessagesConfig(BaseModel):
    """User-facing texts. ``{subject}`` is replaced by the category label."""

    generic_failure: str = "Sorry, something went wrong while processing your {subject}."
    content_policy: str = "Sorry, your {subject} could not be processed due to a content policy violation."
    empty_query: str = "Sorry, your {subject} could not be processed because the query is empty."
    unsupported_message: str = "Sorry, this type of message is not supported."
    image_send_failed: str = "Sorry, something went wrong while sending the image."
    speech_failed: str = "Sorry, something went wrong while converting the text to audio."
    audio_send_failed: str = "Sorry, something went wrong while sending the audio."
    subjects: dict[str, str] = Field(
        default_factory=lambda: {
            "text": "message",
            "image": "image",
            "audio": "audio",
            "video": "video",
            "document": "document",
        }
    )


class RelayConfig(BaseModel):
    audio_request_phrases: list[str] = Field(
        default_factory=lambda: [
            "reply with audio",
            "answer with audio",
            "responda em áudio",
            "responda em audio",
        ]
    )
    ignored_senders: list[str] = Field(default_factory=lambda: ["status@broadcast"])
    group_markers: list[str] = Field(default_factory=lambda: ["@g.us"])
    quiet_failure_categories: list[MediaCategory] = Field(
        default_factory=lambda: [MediaCategory.IMAGE]
    )
    default_prompts: dict[MediaCategory, str] = Field(
        default_factory=lambda: {
            MediaCategory.IMAGE: "Describe this image.",
            MediaCategory.VIDEO: "Analyze this video.",
            MediaCategory.DOCUMENT: "Summarize this document.",
        }
    )
    messages: MessagesConfig = Field(default_factory=MessagesConfig)


class AppConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "console" | "json"
    transport: TransportConfig
    backend: BackendConfig
    speech: SpeechConfig
    audio: AudioConfig = Field(default_factory=AudioConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)


def _interpolate_env_vars(text: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""

    def _replace(match: re.Match) -> str:
        value = os.environ.get(match.group(1))
        if value is None:
            return match.group(0)
        return value

    return _ENV_VAR_PATTERN.sub(_replace, text)


def load_config(config_path: str | Path = "config.yaml", env_path: str | Path = ".env") -> AppConfig:
    """Load and validate configuration from YAML file with env-var interpolation.

    Raises FileNotFoundError when the config file is missing and
    ConfigurationError when a setting fails validation.
    """
    env_file = Path(env_path)
    if env_file.exists():
        load_dotenv(env_file)

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    raw_text = config_file.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(_interpolate_env_vars(raw_text)) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e

    try:
        return AppConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e
