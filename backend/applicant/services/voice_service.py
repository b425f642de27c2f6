import logging

import httpx

from applicant.core import config

logger = logging.getLogger("applicant.services.voice_service")

MOCK_VOICE_MESSAGE = "Mock audio response - voice provider not configured"


async def synthesize_speech(text: str, voice_id: str | None = None, timeout_sec: float = 30.0) -> bytes | None:
    """
    Returns MP3 bytes from ElevenLabs, or None when the provider is
    unconfigured or the request fails (callers degrade to mock audio).
    """
    if not str(text or "").strip():
        return None

    if not config.elevenlabs_enabled():
        logger.info("synthesize_speech skipped | reason=elevenlabs_disabled")
        return None

    selected_voice = str(voice_id or "").strip() or config.ELEVENLABS_VOICE_ID
    url = f"{config.ELEVENLABS_BASE_URL.rstrip('/')}/v1/text-to-speech/{selected_voice}"

    try:
        async with httpx.AsyncClient(timeout=timeout_sec) as http_client:
            response = await http_client.post(
                url,
                headers={
                    "Accept": "audio/mpeg",
                    "Content-Type": "application/json",
                    "xi-api-key": config.ELEVENLABS_API_KEY,
                },
                json={
                    "text": text,
                    "model_id": config.ELEVENLABS_MODEL_ID,
                    "voice_settings": {
                        "stability": 0.5,
                        "similarity_boost": 0.75,
                    },
                },
            )
    except httpx.HTTPError as exc:
        logger.warning("ElevenLabs request failed | voice=%s err=%s", selected_voice, exc)
        return None

    if response.status_code != 200:
        logger.warning("ElevenLabs API error | status=%s", response.status_code)
        return None

    audio = response.content
    if not audio:
        logger.warning("ElevenLabs returned empty audio | voice=%s", selected_voice)
        return None

    logger.info("ElevenLabs audio generated | bytes=%s", len(audio))
    return audio
