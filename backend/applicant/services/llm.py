import asyncio
import json
import logging
import re

from openai import AsyncOpenAI

from applicant.core import config

logger = logging.getLogger("applicant.services.llm")

# Calls are gated by config.openai_enabled(); the placeholder only keeps construction from failing.
client = AsyncOpenAI(api_key=config.OPENAI_API_KEY or "not-configured")


def extract_json(text: str) -> dict | list | None:
    """Best-effort JSON recovery from a model reply (raw, fenced, or embedded)."""
    text = (text or "").strip()
    if not text:
        return None

    try:
        return json.loads(text)
    except ValueError:
        pass

    fenced = re.search(r"```(?:json)?\s*([\[{][\s\S]*?[\]}])\s*```", text, re.IGNORECASE)
    if fenced:
        try:
            return json.loads(fenced.group(1))
        except ValueError:
            pass

    for open_char, close_char in (("{", "}"), ("[", "]")):
        start = text.find(open_char)
        end = text.rfind(close_char)
        if start != -1 and end > start:
            try:
                return json.loads(text[start:end + 1])
            except ValueError:
                continue

    return None


async def call_llm(
    prompt: str,
    system: str = "You are a strict JSON generator. Output JSON only.",
    timeout_sec: float | None = None,
    retries: int = 1,
    temperature: float = 0.7,
) -> str:
    """
    Sends prompt to the chat model and returns the raw text response.
    Returns "{}" when the prompt is blank or every attempt failed; callers parse.
    """
    if not str(prompt or "").strip():
        return "{}"

    timeout = float(timeout_sec or config.LLM_TIMEOUT_SEC)
    last_error: Exception | None = None
    for attempt in range(max(1, retries + 1)):
        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=config.MODEL_NAME,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=temperature,
                    response_format={"type": "json_object"},
                ),
                timeout=timeout,
            )
            message = response.choices[0].message.content
            return str(message or "{}").strip() or "{}"
        except asyncio.TimeoutError as exc:
            last_error = exc
            logger.warning("call_llm timeout | attempt=%s", attempt + 1)
        except Exception as exc:
            last_error = exc
            logger.warning("call_llm failure | attempt=%s err=%s", attempt + 1, exc)

        if attempt < retries:
            await asyncio.sleep(0.35 * (attempt + 1))

    logger.warning("call_llm fallback activated | err=%s", last_error)
    return "{}"


async def call_llm_json(prompt: str, **kwargs) -> dict | list | None:
    raw = await call_llm(prompt, **kwargs)
    parsed = extract_json(raw)
    if parsed in ({}, []):
        return None
    return parsed
