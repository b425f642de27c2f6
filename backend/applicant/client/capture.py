from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from applicant.client.encoding import encode_pcm, negotiate_encoding
from applicant.client.errors import RecognizerError
from applicant.client.microphone import Microphone, MicrophoneArbiter, ensure_available
from applicant.client.recognizer import RecognitionResult, Recognizer
from applicant.core.logger import log_event
from applicant.core.state import CaptureEngine, CaptureState

logger = logging.getLogger("applicant.client.capture")

TranscriptCallback = Callable[[str], Awaitable[None] | None]
ErrorCallback = Callable[[Exception], Awaitable[None] | None]
# (audio bytes, filename, mime) -> transcript
TranscribeFn = Callable[[bytes, str, str], Awaitable[str]]


async def _invoke(callback, *args) -> None:
    if callback is None:
        return
    result = callback(*args)
    if asyncio.iscoroutine(result):
        await result


class SpeechCapture:
    """
    Microphone to text.

    The primary engine streams to a live recognizer and restarts it whenever
    it ends on its own. If the recognizer is unsupported, or fails in a way
    that cannot recover, capture records raw audio instead and hands it to
    `transcribe` when listening stops. That switch lasts for the session.
    """

    OWNER = "speech_capture"

    def __init__(
        self,
        microphone: Microphone,
        transcribe: TranscribeFn | None = None,
        recognizer: Recognizer | None = None,
        arbiter: MicrophoneArbiter | None = None,
        auto_stop_after_silence: bool = False,
        silence_sec: float = 2.0,
        restart_delay_sec: float = 0.05,
        encodings: list[str] | None = None,
        session_id: str = "",
    ):
        self.microphone = microphone
        self.transcribe = transcribe
        self.recognizer = recognizer
        self.arbiter = arbiter or MicrophoneArbiter()
        self.auto_stop_after_silence = auto_stop_after_silence
        self.silence_sec = silence_sec
        self.restart_delay_sec = restart_delay_sec
        self.encodings = encodings
        self.session_id = session_id

        self.state = CaptureState.IDLE
        self.engine = (
            CaptureEngine.PRIMARY
            if recognizer is not None and recognizer.supported
            else CaptureEngine.FALLBACK
        )
        self._finals: list[str] = []
        self._interim = ""
        self._pcm = bytearray()
        self._on_transcript: TranscriptCallback | None = None
        self._on_error: ErrorCallback | None = None
        self._task: asyncio.Task | None = None
        self._silence_task: asyncio.Task | None = None
        self._stopping = False

    @property
    def listening(self) -> bool:
        return self.state in (CaptureState.LISTENING, CaptureState.RECORDING)

    @property
    def transcript(self) -> str:
        parts = list(self._finals)
        if self._interim:
            parts.append(self._interim)
        return " ".join(parts).strip()

    async def start_listening(
        self,
        on_transcript: TranscriptCallback,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Raises PermissionDenied, NoDevice or MicrophoneBusy before anything starts."""
        if self.listening:
            return

        await ensure_available(self.microphone)
        self.arbiter.acquire(self.OWNER)

        self._on_transcript = on_transcript
        self._on_error = on_error
        self._finals = []
        self._interim = ""
        self._pcm = bytearray()
        self._stopping = False

        if self.engine == CaptureEngine.PRIMARY:
            self.state = CaptureState.LISTENING
            self._task = asyncio.create_task(self._run_primary())
        else:
            self.state = CaptureState.RECORDING
            self._task = asyncio.create_task(self._record())

        log_event("capture", "listening_started", self.session_id, engine=self.engine.value)

    async def _run_primary(self) -> None:
        while not self._stopping:
            try:
                async for result in self.recognizer.recognize(self.microphone.stream()):
                    self._on_result(result)
            except RecognizerError as exc:
                if exc.code in RecognizerError.SILENT_CODES:
                    logger.debug("recognizer silent error ignored | code=%s", exc.code)
                elif not exc.recoverable:
                    self._switch_to_fallback(exc)
                    await self._record()
                    return
                else:
                    logger.warning("recognizer error, restarting | code=%s err=%s", exc.code, exc)

            if self._stopping:
                break
            logger.debug("recognizer ended, restarting")
            await asyncio.sleep(self.restart_delay_sec)

    def _switch_to_fallback(self, exc: RecognizerError) -> None:
        self.engine = CaptureEngine.FALLBACK
        self.state = CaptureState.RECORDING
        log_event(
            "capture",
            "engine_fallback",
            self.session_id,
            code=exc.code,
            reason=str(exc),
        )

    def _on_result(self, result: RecognitionResult) -> None:
        if result.is_final:
            self._finals.append(result.text)
            self._interim = ""
        else:
            self._interim = result.text

        if self.auto_stop_after_silence and self.transcript:
            if self._silence_task is not None:
                self._silence_task.cancel()
            self._silence_task = asyncio.create_task(self._stop_after_silence())

    async def _stop_after_silence(self) -> None:
        await asyncio.sleep(self.silence_sec)
        logger.info("silence detected, stopping capture | sec=%s", self.silence_sec)
        await self.stop_listening()

    async def _record(self) -> None:
        async for chunk in self.microphone.stream():
            self._pcm.extend(chunk)

    async def stop_listening(self, deliver: bool = True) -> None:
        """Safe to call repeatedly; only the first call delivers a transcript."""
        if self._stopping or not self.listening:
            return
        self._stopping = True
        recording = self.state == CaptureState.RECORDING

        silence_task, self._silence_task = self._silence_task, None
        if silence_task is not None and silence_task is not asyncio.current_task():
            silence_task.cancel()

        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self.microphone.close()
        self.arbiter.release(self.OWNER)

        if not deliver:
            self.state = CaptureState.STOPPED
            self._pcm = bytearray()
            log_event("capture", "listening_discarded", self.session_id, engine=self.engine.value)
        elif recording:
            await self._transcribe_recording()
        else:
            self.state = CaptureState.STOPPED
            text = self.transcript
            log_event("capture", "listening_stopped", self.session_id, engine=self.engine.value, transcript=text)
            if text:
                await _invoke(self._on_transcript, text)

    async def _transcribe_recording(self) -> None:
        self.state = CaptureState.TRANSCRIBING
        pcm = bytes(self._pcm)
        self._pcm = bytearray()
        mime = negotiate_encoding(self.encodings)
        audio, filename = await encode_pcm(pcm, mime, self.microphone.sample_rate)
        log_event("capture", "recording_uploaded", self.session_id, mime=mime, bytes=len(audio))

        try:
            if self.transcribe is None:
                raise RuntimeError("No transcription backend configured")
            text = await self.transcribe(audio, filename, mime)
        except Exception as exc:
            self.state = CaptureState.STOPPED
            logger.warning("transcription failed | err=%s", exc)
            await _invoke(self._on_error, exc)
            return

        self.state = CaptureState.STOPPED
        # Text recognized before a mid-session switch is kept ahead of the recording.
        combined = " ".join(part for part in [*self._finals, str(text or "").strip()] if part)
        await _invoke(self._on_transcript, combined)
