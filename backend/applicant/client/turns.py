from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum


class TurnRole(str, Enum):
    INTERVIEWER = "interviewer"
    CANDIDATE = "candidate"
    FEEDBACK = "feedback"


@dataclass
class Question:
    question: str
    category: str = "General"
    difficulty: str = "Medium"

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        return cls(
            question=str(data.get("question") or "").strip(),
            category=str(data.get("category") or "General"),
            difficulty=str(data.get("difficulty") or "Medium"),
        )


@dataclass
class Feedback:
    feedback: str
    strengths: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)
    score: int = 3
    follow_up: str = ""
    follow_up_question: str | None = None
    follow_up_category: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Feedback":
        return cls(
            feedback=str(data.get("feedback") or ""),
            strengths=[str(item) for item in list(data.get("strengths") or [])],
            improvements=[str(item) for item in list(data.get("improvements") or [])],
            score=int(data.get("score") or 3),
            follow_up=str(data.get("follow_up") or ""),
            follow_up_question=data.get("follow_up_question") or None,
            follow_up_category=data.get("follow_up_category") or None,
        )


@dataclass
class ConversationTurn:
    role: TurnRole
    content: str
    spoken_content: str | None = None
    question: Question | None = None
    feedback: Feedback | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    # Filled by the sequencer when left unset.
    sequence: int | None = None
    needs_audio: bool = False

    @property
    def speech_text(self) -> str:
        return self.spoken_content or self.content

    @property
    def has_speech(self) -> bool:
        return bool(str(self.speech_text or "").strip())

    @property
    def is_question(self) -> bool:
        return self.role == TurnRole.INTERVIEWER and self.question is not None
