import os
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[2]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=False)


def _env_flag(name: str, default: str = "false") -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


# ---------- OpenAI (questions, feedback, transcription) ----------
OPENAI_API_KEY = str(os.getenv("OPENAI_API_KEY") or "").strip()
MODEL_NAME = str(os.getenv("MODEL_NAME") or "gpt-4o-mini").strip()
TRANSCRIBE_MODEL = str(os.getenv("TRANSCRIBE_MODEL") or "whisper-1").strip()
LLM_TIMEOUT_SEC = max(2.0, float(os.getenv("LLM_TIMEOUT_SEC", "20")))

# ---------- ElevenLabs (speech synthesis) ----------
ELEVENLABS_API_KEY = str(os.getenv("ELEVENLABS_API_KEY") or "").strip()
ELEVENLABS_BASE_URL = str(os.getenv("ELEVENLABS_BASE_URL") or "https://api.elevenlabs.io").strip()
ELEVENLABS_VOICE_ID = str(os.getenv("ELEVENLABS_VOICE_ID") or "CYw3kZ02Hs0563khs1Fj").strip()  # Jessica
ELEVENLABS_MODEL_ID = str(os.getenv("ELEVENLABS_MODEL_ID") or "eleven_multilingual_v2").strip()

# ---------- Deepgram (client-side streaming recognition) ----------
DEEPGRAM_API_KEY = str(os.getenv("DEEPGRAM_API_KEY") or "").strip()
DEEPGRAM_LISTEN_URL = str(os.getenv("DEEPGRAM_LISTEN_URL") or "wss://api.deepgram.com/v1/listen").strip()

# Forces every upstream call onto its mock path, even with keys present.
MOCK_MODE = _env_flag("MOCK_MODE")

# ---------- Client ----------
API_BASE_URL = str(os.getenv("API_BASE_URL") or "http://127.0.0.1:8000").strip()
API_TIMEOUT_SEC = max(2.0, float(os.getenv("API_TIMEOUT_SEC", "60")))

# ---------- Server ----------
CORS_ALLOW_ORIGINS = str(os.getenv("CORS_ALLOW_ORIGINS") or "").strip()
SESSION_CLEANUP_TTL_SEC = max(60, int(os.getenv("SESSION_CLEANUP_TTL_SEC", "1800")))
SESSION_CLEANUP_INTERVAL_SEC = max(30, int(os.getenv("SESSION_CLEANUP_INTERVAL_SEC", "120")))


def openai_enabled() -> bool:
    return bool(OPENAI_API_KEY) and not MOCK_MODE


def elevenlabs_enabled() -> bool:
    return bool(ELEVENLABS_API_KEY) and not MOCK_MODE


def deepgram_enabled(api_key: str | None = None) -> bool:
    return bool(DEEPGRAM_API_KEY if api_key is None else api_key) and not MOCK_MODE
