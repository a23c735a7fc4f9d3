"""Audio transcoding and concatenation via the ffmpeg executable."""

from __future__ import annotations

import asyncio
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from relay_bot.config import AudioConfig
from relay_bot.core.errors import TranscodeError
from relay_bot.core.formats import normalize_mime
from relay_bot.log import get_logger

logger = get_logger(__name__)

VOICE_NOTE_MIME = "audio/ogg; codecs=opus"

# Inbound audio MIME -> ffmpeg demuxer name
MIME_INPUT_FORMATS = {
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp4": "mov",
    "audio/x-m4a": "mov",
    "audio/wav": "wav",
    "audio/webm": "matroska",
    "audio/amr": "amr",
}

# Reply file extension -> ffmpeg demuxer name
EXTENSION_INPUT_FORMATS = {
    "wav": "wav",
    "mp3": "mp3",
    "m4a": "mov",
    "webm": "matroska",
    "amr": "amr",
    "ogg": "ogg",
}

# The mov/mp4 demuxer needs to seek, so these inputs cannot come from a pipe.
_SEEKABLE_INPUT_FORMATS = {"mov", "mp4"}


@dataclass(frozen=True, slots=True)
class AudioSegment:
    """One OGG/Opus buffer and its position in the reply."""

    position: int
    data: bytes


def input_format_for_mime(mime: str) -> str | None:
    return MIME_INPUT_FORMATS.get(normalize_mime(mime))


def input_format_for_extension(extension: str) -> str | None:
    return EXTENSION_INPUT_FORMATS.get(extension.lower().lstrip("."))


def _playlist_entry(path: Path) -> str:
    escaped = str(path).replace("'", "'\\''")
    return f"file '{escaped}'"


class AudioTranscoder:
    """Converts audio buffers between containers and joins OGG/Opus segments."""

    def __init__(self, config: AudioConfig):
        self._ffmpeg = config.ffmpeg_path
        self._temp_dir = config.temp_dir

    async def transcode(
        self,
        data: bytes,
        from_format: str,
        to_format: str,
        codec: str | None = None,
    ) -> bytes:
        """Stream ``data`` through ffmpeg and return the fully buffered output."""
        output_args = ["-vn"]
        if codec:
            output_args += ["-c:a", codec]
        output_args += ["-f", to_format, "pipe:1"]

        if from_format in _SEEKABLE_INPUT_FORMATS:
            with tempfile.TemporaryDirectory(prefix="relay-transcode-", dir=self._temp_dir) as workdir:
                source = Path(workdir) / f"input.{from_format}"
                source.write_bytes(data)
                output = await self._run(
                    ["-f", from_format, "-i", str(source), *output_args]
                )
        else:
            output = await self._run(
                ["-f", from_format, "-i", "pipe:0", *output_args], stdin=data
            )

        if not output:
            raise TranscodeError(f"ffmpeg produced no output ({from_format} -> {to_format})")
        logger.debug(
            "audio_transcoded",
            from_format=from_format,
            to_format=to_format,
            input_bytes=len(data),
            output_bytes=len(output),
        )
        return output

    async def to_voice_note(self, data: bytes, from_format: str) -> bytes:
        """Convert to the OGG/Opus stream that messengers play as a voice note."""
        return await self.transcode(data, from_format, "ogg", codec="libopus")

    async def to_wav(self, data: bytes, from_format: str) -> bytes:
        return await self.transcode(data, from_format, "wav")

    async def concatenate(self, segments: Sequence[AudioSegment]) -> bytes:
        """Join OGG/Opus segments, in position order, into a single stream.

        ffmpeg cannot reliably concatenate Ogg streams in memory, so the
        segments go through a per-call temporary directory and the concat
        demuxer in copy mode. The directory is removed whatever the outcome.
        """
        if not segments:
            raise TranscodeError("No audio segments to concatenate")
        positions = [segment.position for segment in segments]
        if positions != list(range(len(segments))):
            raise TranscodeError(f"Audio segments out of order or missing: {positions}")
        if len(segments) == 1:
            return segments[0].data

        with tempfile.TemporaryDirectory(prefix="relay-concat-", dir=self._temp_dir) as workdir:
            root = Path(workdir)
            paths: list[Path] = []
            for segment in segments:
                path = root / f"segment_{segment.position:04d}.ogg"
                path.write_bytes(segment.data)
                paths.append(path)

            playlist = root / "playlist.txt"
            playlist.write_text(
                "\n".join(_playlist_entry(path) for path in paths) + "\n",
                encoding="utf-8",
            )
            combined = root / "combined.ogg"

            await self._run(
                ["-f", "concat", "-safe", "0", "-i", str(playlist), "-c", "copy", "-y", str(combined)]
            )
            if not combined.exists():
                raise TranscodeError("ffmpeg concat finished without an output file")
            result = combined.read_bytes()

        logger.info("audio_concatenated", segments=len(segments), output_bytes=len(result))
        return result

    async def _run(self, args: list[str], stdin: bytes | None = None) -> bytes:
        cmd = [self._ffmpeg, "-hide_banner", "-loglevel", "error", *args]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            logger.error("ffmpeg_not_found", ffmpeg_path=self._ffmpeg)
            raise TranscodeError(f"ffmpeg executable not found at '{self._ffmpeg}'") from e

        stdout, stderr = await process.communicate(input=stdin)

        if process.returncode != 0:
            stderr_text = stderr.decode("utf-8", errors="replace").strip()
            logger.error(
                "ffmpeg_error",
                returncode=process.returncode,
                stderr=stderr_text[:500],
            )
            raise TranscodeError(
                f"ffmpeg exited with status {process.returncode}",
                returncode=process.returncode,
                stderr=stderr_text,
            )
        return stdout
