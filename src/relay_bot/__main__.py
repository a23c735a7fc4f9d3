"""CLI entry point for relay-bot."""

from __future__ import annotations

import argparse
import asyncio
import shutil
import signal
import sys

from relay_bot.app import RelayApp
from relay_bot.config import AppConfig, load_config
from relay_bot.core.errors import ConfigurationError
from relay_bot.log import setup_logging


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="relay-bot",
        description="Chat relay between a messenger and a completion backend, with voice replies",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text in (
        ("start", "Start the relay"),
        ("config-check", "Validate configuration"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("-c", "--config", default="config.yaml", help="Path to config file")
        sub.add_argument("-e", "--env", default=".env", help="Path to .env file")

    args = parser.parse_args()

    if args.command is None:
        # Default to start
        args.command = "start"
        args.config = "config.yaml"
        args.env = ".env"

    if args.command == "config-check":
        _check_config(args.config, args.env)
    elif args.command == "start":
        _run(args.config, args.env)


def _load_or_exit(config_path: str, env_path: str) -> AppConfig:
    """Load configuration; missing credentials are fatal before anything starts."""
    try:
        return load_config(config_path, env_path)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Run 'python install.py' first or copy config.example.yaml to config.yaml")
        sys.exit(1)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)


def _check_config(config_path: str, env_path: str) -> None:
    """Validate configuration and print summary."""
    config = _load_or_exit(config_path, env_path)
    ffmpeg = shutil.which(config.audio.ffmpeg_path)
    print(f"Configuration valid: {config_path}")
    print(f"  Transport : {config.transport.platform}")
    print(f"  Backend   : {config.backend.base_url} ({config.backend.response_mode})")
    print(f"  Speech    : {config.speech.base_url} (speaker={config.speech.speaker}, speed={config.speech.speed})")
    print(f"  TTS block : {config.speech.max_block_length} chars")
    print(f"  ffmpeg    : {ffmpeg or 'NOT FOUND (' + config.audio.ffmpeg_path + ')'}")
    quiet = ", ".join(config.relay.quiet_failure_categories) or "(none)"
    print(f"  Quiet failures: {quiet}")


async def _serve(app: RelayApp, stop_event: asyncio.Event) -> None:
    """Run the app until stop_event is set. Clients are closed even if start fails."""
    try:
        await app.start()
        await stop_event.wait()
    finally:
        await app.stop()


def _run(config_path: str, env_path: str) -> None:
    """Load config and start the application."""
    config = _load_or_exit(config_path, env_path)
    setup_logging(config.log_level, config.log_format)

    async def _async_main() -> None:
        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()

        def _signal_handler() -> None:
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, _signal_handler)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                signal.signal(sig, lambda s, f: _signal_handler())

        await _serve(RelayApp(config), stop_event)

    asyncio.run(_async_main())


if __name__ == "__main__":
    main()
