import asyncio
import io
import logging

from pydub import AudioSegment
from pydub.exceptions import CouldntEncodeError
from pydub.utils import which

from applicant.client.microphone import CHANNELS, SAMPLE_RATE, SAMPLE_WIDTH

logger = logging.getLogger("applicant.client.encoding")

PREFERRED_ENCODINGS = [
    "audio/webm;codecs=opus",
    "audio/webm",
    "audio/ogg;codecs=opus",
    "audio/mp4",
    "audio/wav",
]

# mime -> (file extension, pydub export format, codec)
_FFMPEG_FORMATS = {
    "audio/webm;codecs=opus": ("webm", "webm", "libopus"),
    "audio/webm": ("webm", "webm", "libopus"),
    "audio/ogg;codecs=opus": ("ogg", "ogg", "libopus"),
    "audio/mp4": ("m4a", "mp4", "aac"),
}


def supported_encodings() -> set[str]:
    supported = {"audio/wav"}
    if which("ffmpeg") or which("avconv"):
        supported.update(_FFMPEG_FORMATS)
    return supported


def negotiate_encoding(preferences: list[str] | None = None, supported: set[str] | None = None) -> str:
    available = supported_encodings() if supported is None else supported
    for mime in preferences or PREFERRED_ENCODINGS:
        if mime in available:
            return mime
    return "audio/wav"


def _segment(pcm: bytes, sample_rate: int) -> AudioSegment:
    usable = len(pcm) - (len(pcm) % (SAMPLE_WIDTH * CHANNELS))
    return AudioSegment(
        data=pcm[:usable],
        sample_width=SAMPLE_WIDTH,
        frame_rate=sample_rate,
        channels=CHANNELS,
    )


def _export(segment: AudioSegment, fmt: str, codec: str | None = None) -> bytes:
    buffer = io.BytesIO()
    segment.export(buffer, format=fmt, codec=codec)
    return buffer.getvalue()


def pcm_to_wav(pcm: bytes, sample_rate: int = SAMPLE_RATE) -> bytes:
    # pydub writes WAV itself; only the compressed formats need ffmpeg.
    return _export(_segment(pcm, sample_rate), "wav")


async def encode_pcm(pcm: bytes, mime: str, sample_rate: int = SAMPLE_RATE) -> tuple[bytes, str]:
    """Returns (encoded bytes, upload filename). Falls back to WAV if ffmpeg fails."""
    if mime not in _FFMPEG_FORMATS:
        return pcm_to_wav(pcm, sample_rate), "recording.wav"

    extension, fmt, codec = _FFMPEG_FORMATS[mime]
    try:
        audio = await asyncio.to_thread(_export, _segment(pcm, sample_rate), fmt, codec)
    except (CouldntEncodeError, OSError) as exc:
        logger.warning("encode failed | mime=%s err=%s", mime, str(exc)[:200])
        return pcm_to_wav(pcm, sample_rate), "recording.wav"

    if not audio:
        logger.warning("encode produced no audio | mime=%s", mime)
        return pcm_to_wav(pcm, sample_rate), "recording.wav"
    return audio, f"recording.{extension}"
