"""Application orchestrator - wires all components and manages lifecycle."""

from __future__ import annotations

from relay_bot.backend.client import BackendClient
from relay_bot.backend.speech import SpeechClient
from relay_bot.config import AppConfig, TransportConfig
from relay_bot.dispatcher import MessageDispatcher
from relay_bot.log import get_logger
from relay_bot.media.fetcher import ResourceFetcher
from relay_bot.media.transcoder import AudioTranscoder
from relay_bot.messenger.base import MessengerAdapter

logger = get_logger(__name__)


class RelayApp:
    """Top-level application orchestrator."""

    def __init__(self, config: AppConfig, adapter: MessengerAdapter | None = None):
        self.config = config
        self.adapter = adapter or self._create_adapter(config.transport)
        self.backend = BackendClient(config.backend)
        self.speech = SpeechClient(config.speech)
        self.fetcher = ResourceFetcher()
        self.transcoder = AudioTranscoder(config.audio)
        self.dispatcher = MessageDispatcher(
            adapter=self.adapter,
            backend=self.backend,
            speech=self.speech,
            transcoder=self.transcoder,
            fetcher=self.fetcher,
            config=config.relay,
            max_block_length=config.speech.max_block_length,
        )

    async def start(self) -> None:
        """Register the dispatcher and connect the transport."""
        self.adapter.on_message(self.dispatcher.handle)
        await self.adapter.start()
        logger.info("relay_bot_started", platform=self.adapter.platform_name)

    async def stop(self) -> None:
        """Gracefully shut down all components."""
        try:
            await self.adapter.stop()
        except Exception as e:
            logger.error("adapter_stop_error", error=str(e))

        await self.backend.aclose()
        await self.speech.aclose()
        await self.fetcher.aclose()
        logger.info("relay_bot_stopped")

    def _create_adapter(self, cfg: TransportConfig) -> MessengerAdapter:
        match cfg.platform:
            case "telegram":
                from relay_bot.messenger.telegram import TelegramAdapter

                return TelegramAdapter(cfg.model_dump())
            case _:
                raise ValueError(f"Unknown platform: {cfg.platform}")
