from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Protocol

import numpy as np

from applicant.client.errors import MicrophoneBusy, NoDevice, PermissionDenied

logger = logging.getLogger("applicant.client.microphone")

SAMPLE_RATE = 16000
CHANNELS = 1
SAMPLE_WIDTH = 2
CHUNK_BYTES = 3200  # 100 ms of 16 kHz mono s16le


class Microphone(Protocol):
    sample_rate: int

    async def permission_state(self) -> str:
        """One of "granted", "denied", "prompt"."""
        ...

    async def has_device(self) -> bool:
        ...

    def stream(self) -> AsyncIterator[bytes]:
        ...

    async def close(self) -> None:
        ...


class MicrophoneArbiter:
    """Single owner at a time for the shared microphone."""

    def __init__(self):
        self.owner: str | None = None

    def acquire(self, owner: str) -> None:
        if self.owner is not None and self.owner != owner:
            raise MicrophoneBusy(f"Microphone held by {self.owner}")
        self.owner = owner

    def release(self, owner: str) -> None:
        if self.owner == owner:
            self.owner = None

    @property
    def busy(self) -> bool:
        return self.owner is not None


async def ensure_available(microphone: Microphone) -> None:
    if await microphone.permission_state() == "denied":
        raise PermissionDenied()
    if not await microphone.has_device():
        raise NoDevice()


def rms_level(chunk: bytes) -> float:
    """Normalized RMS (0.0 - 1.0) of a little-endian s16 PCM chunk."""
    usable = len(chunk) - (len(chunk) % SAMPLE_WIDTH)
    if usable <= 0:
        return 0.0
    samples = np.frombuffer(chunk[:usable], dtype="<i2").astype(np.float64)
    return min(1.0, float(np.sqrt(np.mean(samples * samples))) / 32768.0)


class AudioLevelMeter:
    """Feeds microphone RMS levels to a visualizer callback while it holds the mic."""

    OWNER = "level_meter"

    def __init__(self, microphone: Microphone, arbiter: MicrophoneArbiter):
        self.microphone = microphone
        self.arbiter = arbiter
        self.level = 0.0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, on_level=None) -> None:
        if self.running:
            return
        await ensure_available(self.microphone)
        self.arbiter.acquire(self.OWNER)
        self._task = asyncio.create_task(self._run(on_level))

    async def _run(self, on_level) -> None:
        try:
            async for chunk in self.microphone.stream():
                self.level = rms_level(chunk)
                if on_level is not None:
                    on_level(self.level)
        finally:
            self.level = 0.0

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self.microphone.close()
        self.arbiter.release(self.OWNER)


def _sounddevice():
    # PortAudio is loaded on import, so a host without it fails here rather
    # than when the package is imported.
    import sounddevice

    return sounddevice


class SoundDeviceMicrophone:
    """16 kHz mono s16 PCM from the default PortAudio input device."""

    def __init__(self, sample_rate: int = SAMPLE_RATE, device=None, queue_chunks: int = 50):
        self.sample_rate = sample_rate
        self.device = device
        self.queue_chunks = queue_chunks
        self._stream = None

    async def permission_state(self) -> str:
        return "granted"

    async def has_device(self) -> bool:
        try:
            sd = _sounddevice()
            info = sd.query_devices(self.device, kind="input")
        except (OSError, ValueError) as exc:
            logger.warning("input device query failed | err=%s", exc)
            return False
        return int(info.get("max_input_channels") or 0) > 0

    async def stream(self) -> AsyncIterator[bytes]:
        sd = _sounddevice()
        loop = asyncio.get_running_loop()
        chunks: asyncio.Queue[bytes] = asyncio.Queue(maxsize=self.queue_chunks)

        def _offer(data: bytes) -> None:
            if chunks.full():
                chunks.get_nowait()
            chunks.put_nowait(data)

        def _callback(indata, frames, time_info, status):
            if status:
                logger.debug("input status | %s", status)
            loop.call_soon_threadsafe(_offer, bytes(indata))

        self._stream = sd.RawInputStream(
            samplerate=self.sample_rate,
            channels=CHANNELS,
            dtype="int16",
            blocksize=CHUNK_BYTES // SAMPLE_WIDTH,
            device=self.device,
            callback=_callback,
        )
        self._stream.start()
        try:
            while self._stream is not None:
                yield await chunks.get()
        finally:
            await self.close()

    async def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        stream.stop()
        stream.close()
