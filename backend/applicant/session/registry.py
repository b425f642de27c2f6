from __future__ import annotations

import time
import uuid
from threading import Lock


class SessionRegistry:
    """In-memory interview sessions keyed by the id handed out by /api/interview."""

    def __init__(self):
        self._lock = Lock()
        self._sessions: dict[str, dict] = {}

    def create(self, company: str, interview_mode: str, questions: list[dict]) -> str:
        session_id = str(uuid.uuid4())
        self.register(session_id, company=company, interview_mode=interview_mode, questions=questions)
        return session_id

    def register(self, session_id: str, company: str, interview_mode: str, questions: list[dict]) -> None:
        asked = [str(item.get("question") or "").strip() for item in list(questions or []) if isinstance(item, dict)]
        with self._lock:
            self._sessions[session_id] = {
                "company": company,
                "interview_mode": interview_mode,
                "asked": [item for item in asked if item],
                "answers": 0,
                "created_at": time.time(),
                "updated_at": time.time(),
            }

    def touch(self, session_id: str | None, answered: bool = False, follow_up: str | None = None) -> bool:
        if not session_id:
            return False
        with self._lock:
            item = self._sessions.get(session_id)
            if item is None:
                return False
            item["updated_at"] = time.time()
            if answered:
                item["answers"] += 1
            follow_up = str(follow_up or "").strip()
            if follow_up and follow_up not in item["asked"]:
                item["asked"].append(follow_up)
            return True

    def asked_questions(self, session_id: str | None) -> set[str]:
        """Question texts already handed to this session, listed and follow-up alike."""
        if not session_id:
            return set()
        with self._lock:
            item = self._sessions.get(session_id)
            return set(item["asked"]) if item else set()

    def cleanup_inactive(self, ttl_sec: float) -> int:
        """Drops sessions idle longer than ttl_sec (floored at 30 s)."""
        now_ts = time.time()
        cutoff = now_ts - max(30.0, float(ttl_sec or 900.0))
        removed = 0
        with self._lock:
            for session_id, data in list(self._sessions.items()):
                updated_at = float((data or {}).get("updated_at") or 0.0)
                if updated_at <= cutoff:
                    self._sessions.pop(session_id, None)
                    removed += 1
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


session_registry = SessionRegistry()
