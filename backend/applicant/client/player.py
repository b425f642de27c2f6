from __future__ import annotations

import asyncio
import io
import logging
import shutil
import wave
from typing import Awaitable, Callable, Protocol

from applicant.client.errors import SynthesisSetupError

logger = logging.getLogger("applicant.client.player")

Callback = Callable[[], Awaitable[None] | None]

PRIME_SAMPLE_RATE = 22050


def silent_wav(sample_rate: int = PRIME_SAMPLE_RATE, frames: int = 1) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as handle:
        handle.setnchannels(1)
        handle.setsampwidth(2)
        handle.setframerate(sample_rate)
        handle.writeframes(b"\x00\x00" * frames)
    return buffer.getvalue()


class AudioOutput(Protocol):
    async def play(self, audio: bytes) -> None:
        ...


class SpeechSource(Protocol):
    async def synthesize(self, text: str, voice_id: str | None = None) -> bytes | None:
        """Audio bytes, or None when the backend answered with mock data."""
        ...


class SubprocessAudioOutput:
    """Plays encoded audio by piping it into ffplay."""

    def __init__(self, command: list[str] | None = None):
        self.command = command or ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet", "-"]

    @property
    def available(self) -> bool:
        return shutil.which(self.command[0]) is not None

    async def play(self, audio: bytes) -> None:
        if not self.available:
            raise RuntimeError(f"{self.command[0]} not found on PATH")

        process = await asyncio.create_subprocess_exec(
            *self.command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            await process.communicate(input=audio)
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            raise
        if process.returncode not in (0, None):
            raise RuntimeError(f"{self.command[0]} exited with code {process.returncode}")


async def _fire(callback: Callback | None) -> None:
    if callback is None:
        return
    result = callback()
    if asyncio.iscoroutine(result):
        await result


class SpeechSynthesisPlayer:
    """
    Turns text into audible speech, one play() at a time.

    Without a speech source, or when the backend returns mock data, play()
    waits for a placeholder duration derived from the text length so callers
    still see on_start and on_end at believable times.
    """

    def __init__(
        self,
        source: SpeechSource | None = None,
        output: AudioOutput | None = None,
        mock_sec_per_char: float = 0.06,
        mock_min_sec: float = 1.0,
        mock_max_sec: float = 15.0,
    ):
        self.source = source
        self.output = output if output is not None else SubprocessAudioOutput()
        self.mock_sec_per_char = mock_sec_per_char
        self.mock_min_sec = mock_min_sec
        self.mock_max_sec = mock_max_sec
        self.primed = False
        self.playing = False
        self.last_error: Exception | None = None
        self._lock = asyncio.Lock()

    def mock_duration(self, text: str) -> float:
        estimate = len(text) * self.mock_sec_per_char
        return max(self.mock_min_sec, min(self.mock_max_sec, estimate))

    async def prime(self) -> bool:
        if self.primed:
            return True
        try:
            await self.output.play(silent_wav())
            self.primed = True
        except Exception as exc:
            logger.warning("audio prime failed | err=%s", exc)
        return self.primed

    async def play(
        self,
        text: str,
        voice_id: str | None = None,
        on_start: Callback | None = None,
        on_end: Callback | None = None,
    ) -> None:
        if not str(text or "").strip():
            raise SynthesisSetupError("Cannot play empty text")

        async with self._lock:
            self.last_error = None
            started = False
            try:
                audio = None
                if self.source is not None:
                    audio = await self.source.synthesize(text, voice_id=voice_id)

                self.playing = True
                started = True
                await _fire(on_start)

                if audio:
                    await self.output.play(audio)
                else:
                    await asyncio.sleep(self.mock_duration(text))
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.last_error = exc
                logger.warning("playback failed | chars=%s err=%s", len(text), exc)
            finally:
                self.playing = False
                if not started:
                    await _fire(on_start)
                await _fire(on_end)
