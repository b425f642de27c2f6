import logging

from applicant.core import config
from applicant.interview.mock_data import MOCK_QUESTIONS
from applicant.interview.prompts import build_questions_prompt, normalize_mode
from applicant.services import llm

logger = logging.getLogger("applicant.services.question_service")

INITIAL_QUESTION_COUNT = 2
FULL_QUESTION_COUNT = 5
_DIFFICULTIES = {"easy": "Easy", "medium": "Medium", "hard": "Hard"}


def _normalize_question(item) -> dict | None:
    if isinstance(item, str):
        item = {"question": item}
    if not isinstance(item, dict):
        return None

    text = str(item.get("question") or "").strip()
    if not text:
        return None

    difficulty = _DIFFICULTIES.get(str(item.get("difficulty") or "").strip().lower(), "Medium")
    return {
        "question": text,
        "category": str(item.get("category") or "General").strip() or "General",
        "difficulty": difficulty,
    }


def mock_questions(interview_mode: str, count: int) -> list[dict]:
    return [dict(q) for q in MOCK_QUESTIONS[normalize_mode(interview_mode)][:count]]


async def generate_questions(
    company: str,
    job_description: str,
    interview_mode: str = "technical",
    initial_only: bool = False,
) -> tuple[list[dict], bool]:
    """
    Returns (questions, is_mock). Falls back to the static list when OpenAI is
    unconfigured, fails, or answers with nothing usable.
    """
    count = INITIAL_QUESTION_COUNT if initial_only else FULL_QUESTION_COUNT

    if not config.openai_enabled():
        logger.info("generate_questions using mock list | reason=openai_disabled")
        return mock_questions(interview_mode, count), True

    prompt = build_questions_prompt(company, job_description, interview_mode, count)
    parsed = await llm.call_llm_json(prompt)

    raw_items = parsed.get("questions") if isinstance(parsed, dict) else parsed
    questions = [q for q in (_normalize_question(item) for item in list(raw_items or [])) if q]

    if not questions:
        logger.warning("generate_questions using mock list | reason=unparseable_response")
        return mock_questions(interview_mode, count), True

    return questions[:count], False
