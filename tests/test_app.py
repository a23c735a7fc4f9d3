import pytest

from conftest import FakeAdapter
from relay_bot.app import RelayApp
from relay_bot.config import AppConfig


def _config() -> AppConfig:
    return AppConfig(
        transport={"token": "123:abc"},
        backend={"api_key": "app-key"},
        speech={"api_key": "tts-key", "max_block_length": 250},
    )


@pytest.mark.asyncio
async def test_app_routes_adapter_messages_to_dispatcher():
    adapter = FakeAdapter()
    app = RelayApp(_config(), adapter=adapter)

    await app.start()
    assert adapter._message_callback == app.dispatcher.handle
    await app.stop()


def test_unknown_platform_is_rejected():
    config = _config()
    config.transport.platform = "carrier-pigeon"
    with pytest.raises(ValueError):
        RelayApp(config)
