from __future__ import annotations

import logging

import httpx

from applicant.client.errors import ApiError
from applicant.core import config

logger = logging.getLogger("applicant.client.api_client")


class InterviewApiClient:
    """Async wrapper over the backend's /api endpoints."""

    def __init__(self, base_url: str | None = None, timeout_sec: float | None = None, transport=None):
        self._client = httpx.AsyncClient(
            base_url=(base_url or config.API_BASE_URL).rstrip("/"),
            timeout=timeout_sec or config.API_TIMEOUT_SEC,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "InterviewApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _post(self, path: str, **kwargs) -> httpx.Response:
        response = await self._client.post(path, **kwargs)
        if response.status_code >= 400:
            try:
                detail = str(response.json().get("detail") or "")
            except ValueError:
                detail = response.text[:200]
            raise ApiError(path, response.status_code, detail)
        return response

    async def create_interview(
        self,
        company: str,
        job_description: str,
        interview_mode: str = "technical",
        initial_questions_only: bool = False,
    ) -> dict:
        response = await self._post(
            "/api/interview",
            json={
                "company": company,
                "jobDescription": job_description,
                "interviewMode": interview_mode,
                "initialQuestionsOnly": initial_questions_only,
            },
        )
        return response.json()

    async def submit_answer(
        self,
        user_answer: str,
        question: str,
        category: str,
        difficulty: str,
        company: str,
        interview_mode: str,
        conversation_history: list[dict],
        generate_follow_up: bool = True,
        session_id: str | None = None,
    ) -> dict:
        response = await self._post(
            "/api/chat",
            json={
                "userAnswer": user_answer,
                "question": question,
                "category": category,
                "difficulty": difficulty,
                "company": company,
                "interviewMode": interview_mode,
                "conversationHistory": conversation_history,
                "generateFollowUp": generate_follow_up,
                "sessionId": session_id,
            },
        )
        return response.json()

    async def synthesize(self, text: str, voice_id: str | None = None) -> bytes | None:
        payload = {"text": text}
        if voice_id:
            payload["voiceId"] = voice_id
        response = await self._post("/api/voice", json=payload)

        if response.headers.get("content-type", "").startswith("application/json"):
            data = response.json()
            if data.get("mockData"):
                logger.info("voice mock response | message=%s", data.get("message"))
            return None
        return response.content

    async def transcribe(self, audio: bytes, filename: str = "recording.wav", mime: str = "audio/wav") -> dict:
        response = await self._post(
            "/api/transcribe",
            files={"audio": (filename, audio, mime.split(";")[0])},
        )
        return response.json()
