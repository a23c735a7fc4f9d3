import pytest
from pydantic import ValidationError

from relay_bot.config import load_config
from relay_bot.core.errors import ConfigurationError
from relay_bot.core.types import MediaCategory

CONFIG_YAML = """
transport:
  token: ${TEST_RELAY_TG_TOKEN}
backend:
  api_key: ${TEST_RELAY_BACKEND_KEY}
speech:
  api_key: ${TEST_RELAY_TTS_KEY}
  max_block_length: 300
relay:
  quiet_failure_categories: [image, video]
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


def test_env_vars_are_interpolated(config_file, tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_RELAY_TG_TOKEN", "123:abc")
    monkeypatch.setenv("TEST_RELAY_BACKEND_KEY", "app-key")
    monkeypatch.setenv("TEST_RELAY_TTS_KEY", "tts-key")

    config = load_config(config_file, tmp_path / "missing.env")

    assert config.transport.token == "123:abc"
    assert config.backend.api_key == "app-key"
    assert config.speech.max_block_length == 300
    assert config.relay.quiet_failure_categories == [MediaCategory.IMAGE, MediaCategory.VIDEO]
    assert config.relay.default_prompts[MediaCategory.IMAGE] == "Describe this image."


def test_env_file_is_loaded(config_file, tmp_path, monkeypatch):
    for name in ("TEST_RELAY_TG_TOKEN", "TEST_RELAY_BACKEND_KEY", "TEST_RELAY_TTS_KEY"):
        # registered first so teardown removes what load_dotenv sets
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_file = tmp_path / ".env"
    env_file.write_text(
        "TEST_RELAY_TG_TOKEN=t\nTEST_RELAY_BACKEND_KEY=b\nTEST_RELAY_TTS_KEY=s\n",
        encoding="utf-8",
    )

    config = load_config(config_file, env_file)

    assert config.speech.api_key == "s"


def test_missing_credential_fails_fast(config_file, tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_RELAY_TG_TOKEN", "123:abc")
    monkeypatch.setenv("TEST_RELAY_TTS_KEY", "tts-key")
    monkeypatch.delenv("TEST_RELAY_BACKEND_KEY", raising=False)

    with pytest.raises(ConfigurationError) as excinfo:
        load_config(config_file, tmp_path / "missing.env")

    assert "backend" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, ValidationError)


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml", tmp_path / "missing.env")
