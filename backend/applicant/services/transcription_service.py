import io
import logging

from applicant.core import config
from applicant.services import llm

logger = logging.getLogger("applicant.services.transcription_service")

UNAVAILABLE_MESSAGE = "Transcription service is unavailable (API key missing)"
NO_SPEECH_MESSAGE = "No speech detected"


class TranscriptionFailed(RuntimeError):
    pass


async def transcribe_audio(audio_bytes: bytes, filename: str = "recording.wav") -> tuple[str, str | None]:
    """
    Returns (transcript, message). An empty transcript always comes with a
    message explaining why. Raises TranscriptionFailed on upstream errors.
    """
    if not config.openai_enabled():
        return "", UNAVAILABLE_MESSAGE

    if not audio_bytes:
        return "", NO_SPEECH_MESSAGE

    buffer = io.BytesIO(audio_bytes)
    buffer.name = filename or "recording.wav"

    try:
        transcription = await llm.client.audio.transcriptions.create(
            file=buffer,
            model=config.TRANSCRIBE_MODEL,
        )
    except Exception as exc:
        logger.warning("transcribe_audio failure | bytes=%s err=%s", len(audio_bytes), exc)
        raise TranscriptionFailed(str(exc)) from exc

    text = str(getattr(transcription, "text", "") or "").strip()
    if not text:
        return "", NO_SPEECH_MESSAGE
    return text, None
