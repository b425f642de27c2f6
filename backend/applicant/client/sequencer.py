from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum

from applicant.client.turns import ConversationTurn, TurnRole
from applicant.core.logger import log_event

logger = logging.getLogger("applicant.client.sequencer")


class RejectReason(str, Enum):
    DUPLICATE = "duplicate"
    UNANSWERED_QUESTION = "unanswered_question"
    NO_ANSWER = "no_answer"
    FEEDBACK_EXISTS = "feedback_exists"


@dataclass(frozen=True)
class AddOutcome:
    accepted: bool
    reason: RejectReason | None = None

    def __bool__(self) -> bool:
        return self.accepted


class PlayedTurns:
    """Ids whose audio already finished in this session. Cleared on reset."""

    def __init__(self):
        self._ids: set[str] = set()

    def add(self, turn_id: str) -> None:
        self._ids.add(turn_id)

    def clear(self) -> None:
        self._ids.clear()

    def __contains__(self, turn_id: object) -> bool:
        return turn_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


class TurnSequencer:
    """
    Ordered conversation log for one interview run.

    Turns are kept sorted by `sequence`. add_turn never raises on a conflict;
    it logs and returns a rejected AddOutcome so callers can carry on.
    """

    def __init__(self, played: PlayedTurns | None = None, session_id: str = ""):
        self.played = played if played is not None else PlayedTurns()
        self.session_id = session_id
        self._turns: list[ConversationTurn] = []
        self._last_sequence = 0

    @property
    def turns(self) -> list[ConversationTurn]:
        return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __getitem__(self, index: int) -> ConversationTurn:
        return self._turns[index]

    def next_sequence(self) -> int:
        now_ms = int(time.time() * 1000)
        return max(now_ms, self._last_sequence + 1)

    def get(self, turn_id: str) -> ConversationTurn | None:
        for turn in self._turns:
            if turn.id == turn_id:
                return turn
        return None

    def add_turn(self, turn: ConversationTurn) -> AddOutcome:
        reason = self._check_guards(turn)
        if reason is not None:
            log_event(
                "sequencer",
                "turn_rejected",
                self.session_id,
                role=turn.role.value,
                reason=reason.value,
                turn_id=turn.id,
                content=turn.content,
            )
            return AddOutcome(False, reason)

        if turn.sequence is None:
            turn.sequence = self.next_sequence()
        self._last_sequence = max(self._last_sequence, turn.sequence)

        turn.needs_audio = (
            turn.role != TurnRole.CANDIDATE
            and turn.has_speech
            and turn.id not in self.played
        )
        self._turns.append(turn)
        self._turns.sort(key=lambda item: item.sequence)

        logger.debug(
            "turn accepted | role=%s id=%s sequence=%s needs_audio=%s",
            turn.role.value,
            turn.id,
            turn.sequence,
            turn.needs_audio,
        )
        return AddOutcome(True)

    def _check_guards(self, turn: ConversationTurn) -> RejectReason | None:
        for existing in self._turns:
            if existing.id == turn.id:
                return RejectReason.DUPLICATE
            if existing.role == turn.role and existing.content == turn.content:
                return RejectReason.DUPLICATE

        if turn.is_question:
            last_question = self._last_sequence_where(lambda item: item.is_question)
            last_answer = self._last_sequence_where(lambda item: item.role == TurnRole.CANDIDATE)
            if last_question is not None and (last_answer is None or last_question > last_answer):
                return RejectReason.UNANSWERED_QUESTION

        if turn.role == TurnRole.FEEDBACK:
            last_answer = self._last_sequence_where(lambda item: item.role == TurnRole.CANDIDATE)
            if last_answer is None:
                return RejectReason.NO_ANSWER
            if any(item.role == TurnRole.FEEDBACK and item.sequence > last_answer for item in self._turns):
                return RejectReason.FEEDBACK_EXISTS

        return None

    def _last_sequence_where(self, predicate) -> int | None:
        for turn in reversed(self._turns):
            if predicate(turn):
                return turn.sequence
        return None

    def next_audio_index(self, after_sequence: int | None = None) -> int | None:
        """
        Index of the earliest pending turn after `after_sequence`, falling back
        to the earliest pending turn overall. None when nothing is pending.
        """
        pending = [
            index
            for index, turn in enumerate(self._turns)
            if turn.needs_audio and turn.id not in self.played
        ]
        if not pending:
            return None

        if after_sequence is not None:
            for index in pending:
                if self._turns[index].sequence > after_sequence:
                    return index
        return pending[0]

    def mark_audio_consumed(self, turn_id: str) -> None:
        self.played.add(turn_id)
        turn = self.get(turn_id)
        if turn is not None:
            turn.needs_audio = False

    def reset(self) -> None:
        self._turns.clear()
        self.played.clear()
        self._last_sequence = 0
