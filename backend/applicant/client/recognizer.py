from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Protocol
from urllib.parse import urlencode

from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosedError, InvalidStatus, WebSocketException

from applicant.client.errors import RecognizerError
from applicant.client.microphone import SAMPLE_RATE
from applicant.core import config

logger = logging.getLogger("applicant.client.recognizer")


@dataclass
class RecognitionResult:
    text: str
    is_final: bool


class Recognizer(Protocol):
    @property
    def supported(self) -> bool:
        ...

    def recognize(self, audio: AsyncIterator[bytes]) -> AsyncIterator[RecognitionResult]:
        """
        Yields results until the engine ends the session on its own.
        Raises RecognizerError on failure.
        """
        ...


class DeepgramLiveRecognizer:
    """Streams PCM to Deepgram's live endpoint and yields interim/final transcripts."""

    def __init__(
        self,
        api_key: str | None = None,
        url: str | None = None,
        sample_rate: int = SAMPLE_RATE,
        model: str = "nova-2",
        language: str = "en-US",
    ):
        self.api_key = config.DEEPGRAM_API_KEY if api_key is None else api_key
        self.url = url or config.DEEPGRAM_LISTEN_URL
        self.sample_rate = sample_rate
        self.model = model
        self.language = language

    @property
    def supported(self) -> bool:
        return config.deepgram_enabled(self.api_key)

    def _listen_url(self) -> str:
        params = {
            "model": self.model,
            "language": self.language,
            "punctuate": "true",
            "interim_results": "true",
            "endpointing": "300",
            "encoding": "linear16",
            "sample_rate": str(self.sample_rate),
            "channels": "1",
        }
        return f"{self.url}?{urlencode(params)}"

    async def recognize(self, audio: AsyncIterator[bytes]) -> AsyncIterator[RecognitionResult]:
        if not self.supported:
            raise RecognizerError("service-not-allowed", "Deepgram is not configured", recoverable=False)

        try:
            ws = await connect(
                self._listen_url(),
                additional_headers={"Authorization": f"Token {self.api_key}"},
                ping_interval=5,
                ping_timeout=20,
                max_size=None,
            )
        except InvalidStatus as exc:
            status = exc.response.status_code
            code = "not-allowed" if status in (401, 403) else "network"
            raise RecognizerError(code, f"Deepgram rejected connection ({status})", recoverable=False) from exc
        except (OSError, WebSocketException, asyncio.TimeoutError) as exc:
            raise RecognizerError("network", str(exc), recoverable=False) from exc

        async with ws:
            sender = asyncio.create_task(self._pump(ws, audio))
            try:
                async for message in ws:
                    result = self._parse(message)
                    if result is not None:
                        yield result
            except ConnectionClosedError as exc:
                raise RecognizerError("network", str(exc), recoverable=False) from exc
            finally:
                sender.cancel()
                try:
                    await sender
                except asyncio.CancelledError:
                    pass

    async def _pump(self, ws, audio: AsyncIterator[bytes]) -> None:
        try:
            async for chunk in audio:
                await ws.send(chunk)
            await ws.send(json.dumps({"type": "CloseStream"}))
        except ConnectionClosedError as exc:
            logger.info("audio pump stopped | err=%s", exc)

    @staticmethod
    def _parse(message) -> RecognitionResult | None:
        if isinstance(message, bytes):
            return None
        try:
            data = json.loads(message)
        except ValueError:
            return None
        if data.get("type") != "Results":
            return None

        alternatives = (data.get("channel") or {}).get("alternatives") or []
        text = str((alternatives[0] if alternatives else {}).get("transcript") or "").strip()
        if not text:
            return None
        return RecognitionResult(text=text, is_final=bool(data.get("is_final")))
