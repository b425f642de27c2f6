from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import logging

from applicant.api.routes import router as interview_router
from applicant.core import config
from applicant.session.registry import session_registry

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

logger = logging.getLogger("applicant.main")

DEFAULT_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def allowed_origins(raw: str | None = None) -> list[str]:
    """Comma-separated CORS_ALLOW_ORIGINS, or the local dev frontend when unset."""
    raw = config.CORS_ALLOW_ORIGINS if raw is None else raw
    origins = [item.strip() for item in str(raw or "").split(",") if item.strip()]
    return origins or list(DEFAULT_ORIGINS)


async def _expire_sessions(interval_sec: float, ttl_sec: float) -> None:
    while True:
        await asyncio.sleep(interval_sec)
        removed = session_registry.cleanup_inactive(ttl_sec)
        if removed:
            logger.info("[SYSTEM] expired interview sessions=%s remaining=%s", removed, len(session_registry))


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.MOCK_MODE:
        logger.info("[SYSTEM] MOCK_MODE ENABLED: upstream providers bypassed")
    logger.info(
        "[SYSTEM] providers openai=%s elevenlabs=%s",
        config.openai_enabled(),
        config.elevenlabs_enabled(),
    )

    cleanup = asyncio.create_task(
        _expire_sessions(config.SESSION_CLEANUP_INTERVAL_SEC, config.SESSION_CLEANUP_TTL_SEC)
    )
    try:
        yield
    finally:
        cleanup.cancel()
        try:
            await cleanup
        except asyncio.CancelledError:
            pass
        logger.info("[SYSTEM] shutdown complete")


app = FastAPI(title="AI-pplicant Interview Coach", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


@app.get("/healthz")
async def healthz():
    return {
        "status": "ok",
        "service": "interview-coach",
        "openai_configured": config.openai_enabled(),
        "elevenlabs_configured": config.elevenlabs_enabled(),
        "active_sessions": len(session_registry),
    }


app.include_router(interview_router)
