import logging

from applicant.core import config
from applicant.interview.mock_data import (
    IMPACT_KEYWORDS,
    MOCK_FOLLOW_UPS,
    STRUCTURE_KEYWORDS,
    TECHNICAL_KEYWORDS,
)
from applicant.interview.prompts import build_feedback_prompt, normalize_mode
from applicant.services import llm

logger = logging.getLogger("applicant.services.feedback_service")

HISTORY_LIMIT = 6


def _clamp_score(value, default: int = 3) -> int:
    try:
        return max(1, min(5, int(round(float(value)))))
    except (TypeError, ValueError):
        return default


def _string_list(value, limit: int = 3) -> list[str]:
    if isinstance(value, str):
        value = [value]
    items = [str(item).strip() for item in list(value or []) if str(item or "").strip()]
    return items[:limit]


def _format_history(history: list[dict]) -> str:
    lines = []
    for item in list(history or [])[-HISTORY_LIMIT:]:
        role = "Candidate" if str(item.get("role")) == "user" else "Interviewer"
        content = str(item.get("content") or "").strip()
        if content:
            lines.append(f"{role}: {content[:600]}")
    return "\n".join(lines)


def normalize_feedback(data: dict, generate_follow_up: bool = True, asked: set[str] | None = None) -> dict:
    follow_up_question = str(data.get("follow_up_question") or "").strip() or None
    if not generate_follow_up or follow_up_question in (asked or set()):
        follow_up_question = None

    return {
        "feedback": str(data.get("feedback") or "Thank you for your answer.").strip(),
        "strengths": _string_list(data.get("strengths")),
        "improvements": _string_list(data.get("improvements")),
        "score": _clamp_score(data.get("score")),
        "follow_up": str(data.get("follow_up") or "").strip(),
        "follow_up_question": follow_up_question,
        "follow_up_category": (str(data.get("follow_up_category") or "").strip() or None) if follow_up_question else None,
    }


def _excerpt(answer: str, words: int = 6) -> str:
    parts = str(answer or "").split()
    text = " ".join(parts[:words]).rstrip(".,;:!?")
    return f"{text}..." if len(parts) > words else text


def _pick_follow_up(pool: list[tuple[str, str]], offset: int, asked: set[str]) -> tuple[str | None, str | None]:
    for step in range(len(pool)):
        question, category = pool[(offset + step) % len(pool)]
        if question not in asked:
            return question, category
    return None, None


def mock_feedback(
    user_answer: str,
    interview_mode: str = "technical",
    generate_follow_up: bool = True,
    asked: set[str] | None = None,
) -> dict:
    """
    Scores an answer without a model: length sets the base, keyword signals add
    at most one point. Same answer, same result.

    The follow-up is picked from the mode's pool by answer length, skipping
    anything in `asked`; once the pool is exhausted there is no follow-up.
    """
    mode = normalize_mode(interview_mode)
    lowered = str(user_answer or "").lower()
    word_count = len(lowered.split())

    if word_count < 5:
        score = 1
    elif word_count < 15:
        score = 2
    elif word_count < 40:
        score = 3
    else:
        score = 4

    structured = any(keyword in lowered for keyword in STRUCTURE_KEYWORDS)
    impactful = any(keyword in lowered for keyword in IMPACT_KEYWORDS)
    technical = any(keyword in lowered for keyword in TECHNICAL_KEYWORDS)
    substantive = impactful or (mode == "technical" and technical)

    if structured and substantive:
        score += 1
    score = max(1, min(5, score))

    strengths = []
    improvements = []
    if word_count >= 40:
        strengths.append("You gave a thorough, detailed answer.")
    elif word_count >= 15:
        strengths.append("Your answer stayed focused on the question.")
    else:
        improvements.append("Expand your answer with more detail and context.")

    if structured:
        strengths.append("Your answer followed a clear structure.")
    else:
        improvements.append("Structure the answer as situation, action, and result.")

    if substantive:
        strengths.append("You backed your points with concrete specifics.")
    else:
        improvements.append("Add a concrete example or a measurable outcome.")

    if not strengths:
        strengths.append("You engaged directly with the question.")

    follow_up_question = None
    follow_up_category = None
    if generate_follow_up:
        follow_up_question, follow_up_category = _pick_follow_up(MOCK_FOLLOW_UPS[mode], word_count, asked or set())

    tone = "Strong answer." if score >= 4 else "Thanks for your answer."
    return {
        "feedback": f"{tone} You opened with \"{_excerpt(user_answer)}\". {improvements[0] if improvements else strengths[0]}",
        "strengths": strengths[:3],
        "improvements": improvements[:3],
        "score": score,
        "follow_up": "Let's build on that." if follow_up_question else "",
        "follow_up_question": follow_up_question,
        "follow_up_category": follow_up_category,
    }


async def evaluate_answer(
    user_answer: str,
    question: str,
    category: str = "General",
    difficulty: str = "Medium",
    company: str = "",
    interview_mode: str = "technical",
    conversation_history: list[dict] | None = None,
    generate_follow_up: bool = True,
    asked: set[str] | None = None,
) -> tuple[dict, bool]:
    """Returns (feedback, is_mock). Follow-ups already in `asked` are never repeated."""
    if not config.openai_enabled():
        return mock_feedback(user_answer, interview_mode, generate_follow_up, asked), True

    prompt = build_feedback_prompt(
        company=company or "the company",
        interview_mode=interview_mode,
        question=question,
        category=category,
        difficulty=difficulty,
        user_answer=user_answer,
        history_block=_format_history(conversation_history or []),
        generate_follow_up=generate_follow_up,
    )
    parsed = await llm.call_llm_json(prompt)

    if not isinstance(parsed, dict) or not str(parsed.get("feedback") or "").strip():
        logger.warning("evaluate_answer using mock feedback | reason=unparseable_response")
        return mock_feedback(user_answer, interview_mode, generate_follow_up, asked), True

    return normalize_feedback(parsed, generate_follow_up=generate_follow_up, asked=asked), False
