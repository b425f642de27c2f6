from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial

from applicant.client.capture import SpeechCapture
from applicant.client.errors import CaptureError
from applicant.client.player import SpeechSynthesisPlayer
from applicant.client.sequencer import PlayedTurns, TurnSequencer
from applicant.client.turns import ConversationTurn, Feedback, Question, TurnRole
from applicant.core.logger import log_event

logger = logging.getLogger("applicant.client.orchestrator")

HISTORY_LIMIT = 6
DEFAULT_MAX_QUESTIONS = 5

MISSING_FIELDS_MESSAGE = "Please enter both job description and company name"
START_FAILED_MESSAGE = "Failed to start interview. Please check your connection and try again."
NO_QUESTIONS_MESSAGE = "Failed to generate interview questions. Please try again."
EMPTY_ANSWER_MESSAGE = "Please provide an answer before submitting"
SUBMIT_FAILED_MESSAGE = "Failed to submit answer. Please try again."
SUBMIT_BUSY_MESSAGE = "Your previous answer is still being evaluated. Please wait."
SPEAKING_MESSAGE = "Please wait for the interviewer to finish speaking."
NO_SPEECH_MESSAGE = "No speech detected. Please try again."
NO_CAPTURE_MESSAGE = "Voice input is not available. Please type your answer."


def welcome_text(company: str, interview_mode: str) -> tuple[str, str]:
    """(display text, spoken text) for the opening turn."""
    display = (
        f"Welcome to your {interview_mode} interview preparation for {company}. "
        "I'll adapt my questions based on your answers to create a natural conversation, "
        "just like in a real interview. This will help you improve your interviewing skills "
        f"for the {company} position. Let's start with the first question."
    )
    spoken = f"Welcome to your {interview_mode} interview with {company}. This interview will adapt to your responses. Let's begin."
    return display, spoken


def conclusion_text(company: str) -> tuple[str, str]:
    display = (
        "That concludes our interview. Thank you for your thoughtful responses. "
        f"I hope this practice helps you in your actual interview with {company}."
    )
    return display, "That's all for today. Thanks for participating in this interview simulation."


def summarize_feedback(feedback: Feedback) -> str:
    """Short spoken form: tone, first strength, first improvement, score."""
    parts = ["Good answer!" if feedback.score >= 4 else "Thanks."]
    for items in (feedback.strengths, feedback.improvements):
        first = (items[0] if items else "").split(".")[0].strip()
        if first:
            parts.append(f"{first}.")
    parts.append(f"Score: {feedback.score}/5.")
    return " ".join(parts)


@dataclass
class SessionState:
    generation: int = 0
    session_id: str | None = None
    company: str = ""
    job_description: str = ""
    interview_mode: str = "technical"
    questions: list[Question] = field(default_factory=list)
    current_question_index: int = 0
    currently_playing_turn_id: str | None = None
    last_played_sequence: int | None = None
    started: bool = False
    finished: bool = False
    speaking: bool = False
    listening: bool = False
    submitting: bool = False
    error: str | None = None

    @property
    def current_question(self) -> Question | None:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None


class InterviewOrchestrator:
    """
    Drives one interview at a time: asks the backend for questions and
    feedback, feeds turns to the sequencer, and plays them back one by one.

    Every outbound request remembers the generation it was sent under; a
    response arriving after start_interview() or restart() bumped the
    generation is dropped.
    """

    def __init__(
        self,
        api,
        player: SpeechSynthesisPlayer,
        capture: SpeechCapture | None = None,
        voice_id: str | None = None,
        max_questions: int = DEFAULT_MAX_QUESTIONS,
        transcribe_attempts: int = 2,
    ):
        self.api = api
        self.player = player
        self.capture = capture
        self.voice_id = voice_id
        self.max_questions = max(1, int(max_questions))
        self.transcribe_attempts = max(1, int(transcribe_attempts))
        self.played = PlayedTurns()
        self.sequencer = TurnSequencer(played=self.played)
        self.state = SessionState()
        self._playback_task: asyncio.Task | None = None

        if self.capture is not None and self.capture.transcribe is None:
            self.capture.transcribe = self.transcribe_recording

    # ---------- lifecycle ----------

    async def restart(self) -> None:
        self.state.generation += 1
        generation = self.state.generation

        if self.capture is not None:
            await self.capture.stop_listening(deliver=False)

        task, self._playback_task = self._playback_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self.sequencer.reset()
        self.state = SessionState(generation=generation)
        log_event("orchestrator", "session_reset", "", generation=generation)

    async def start_interview(self, company: str, job_description: str, interview_mode: str = "technical") -> bool:
        company = str(company or "").strip()
        job_description = str(job_description or "").strip()
        if not company or not job_description:
            self.state.error = MISSING_FIELDS_MESSAGE
            return False

        await self.player.prime()
        await self.restart()
        generation = self.state.generation
        self.state.company = company
        self.state.job_description = job_description
        self.state.interview_mode = interview_mode

        try:
            data = await self.api.create_interview(
                company=company,
                job_description=job_description,
                interview_mode=interview_mode,
                initial_questions_only=True,
            )
        except Exception as exc:
            if self._is_stale(generation, "create_interview"):
                return False
            logger.warning("start_interview failed | err=%s", exc)
            self.state.error = START_FAILED_MESSAGE
            return False

        if self._is_stale(generation, "create_interview"):
            return False

        questions = [Question.from_dict(item) for item in list(data.get("questions") or []) if isinstance(item, dict)]
        questions = [item for item in questions if item.question]
        if not questions:
            self.state.error = NO_QUESTIONS_MESSAGE
            return False

        self.state.questions = questions
        self.state.current_question_index = 0
        self.state.session_id = data.get("sessionId")
        self.sequencer.session_id = self.state.session_id or ""
        self.state.started = True
        self.state.error = None

        display, spoken = welcome_text(company, interview_mode)
        welcome = ConversationTurn(TurnRole.INTERVIEWER, display, spoken_content=spoken)
        self.sequencer.add_turn(welcome)
        self._add_question_turn(questions[0], sequence=welcome.sequence + 1)

        log_event(
            "orchestrator",
            "interview_started",
            self.state.session_id,
            interview_mode=interview_mode,
            question_count=len(questions),
        )
        self._kick_playback()
        return True

    # ---------- answers ----------

    def _history(self) -> list[dict]:
        return [
            {
                "role": "user" if turn.role == TurnRole.CANDIDATE else "assistant",
                "content": turn.content,
            }
            for turn in self.sequencer.turns[-HISTORY_LIMIT:]
        ]

    async def submit_answer(self, text: str) -> bool:
        answer = str(text or "").strip()
        if not answer:
            self.state.error = EMPTY_ANSWER_MESSAGE
            return False
        if self.state.finished:
            return False
        if self.state.submitting:
            self.state.error = SUBMIT_BUSY_MESSAGE
            return False

        generation = self.state.generation
        self.state.error = None
        self.state.submitting = True
        try:
            return await self._submit(answer, generation)
        finally:
            if generation == self.state.generation:
                self.state.submitting = False

    async def _submit(self, answer: str, generation: int) -> bool:
        if not self.sequencer.add_turn(ConversationTurn(TurnRole.CANDIDATE, answer)):
            return False

        question = self.state.current_question or Question("Tell me about yourself")
        at_cap = self.state.current_question_index + 1 >= self.max_questions

        try:
            data = await self.api.submit_answer(
                user_answer=answer,
                question=question.question,
                category=question.category,
                difficulty=question.difficulty,
                company=self.state.company,
                interview_mode=self.state.interview_mode,
                conversation_history=self._history(),
                generate_follow_up=not at_cap,
                session_id=self.state.session_id,
            )
        except Exception as exc:
            if self._is_stale(generation, "submit_answer"):
                return False
            logger.warning("submit_answer failed | err=%s", exc)
            self.state.error = SUBMIT_FAILED_MESSAGE
            return False

        if self._is_stale(generation, "submit_answer"):
            return False

        feedback = Feedback.from_dict(data)
        feedback_turn = ConversationTurn(
            TurnRole.FEEDBACK,
            feedback.feedback or "Thank you for your answer.",
            spoken_content=summarize_feedback(feedback),
            feedback=feedback,
        )
        outcome = self.sequencer.add_turn(feedback_turn)
        if not outcome:
            log_event("orchestrator", "feedback_rejected", self.state.session_id, reason=outcome.reason.value)
        next_sequence = self.sequencer.next_sequence()

        # Follow-up first, then the next listed question; the first one the
        # sequencer accepts becomes the current question.
        index = self.state.current_question_index
        candidates: list[tuple[Question, bool]] = []
        if not at_cap and feedback.follow_up_question:
            follow_up = Question(
                question=feedback.follow_up_question,
                category=feedback.follow_up_category or question.category or "Follow-up",
                difficulty=question.difficulty,
            )
            candidates.append((follow_up, True))
        if not at_cap and index + 1 < len(self.state.questions):
            candidates.append((self.state.questions[index + 1], False))

        for candidate, inserted in candidates:
            if self._add_question_turn(candidate, sequence=next_sequence):
                if inserted:
                    self.state.questions.insert(index + 1, candidate)
                self.state.current_question_index = index + 1
                break
        else:
            self._conclude(sequence=next_sequence)

        self._kick_playback()
        return True

    def _add_question_turn(self, question: Question, sequence: int | None = None) -> bool:
        turn = ConversationTurn(TurnRole.INTERVIEWER, question.question, question=question, sequence=sequence)
        return bool(self.sequencer.add_turn(turn))

    def _conclude(self, sequence: int | None = None) -> None:
        display, spoken = conclusion_text(self.state.company)
        self.sequencer.add_turn(ConversationTurn(TurnRole.INTERVIEWER, display, spoken_content=spoken, sequence=sequence))
        self.state.finished = True
        log_event(
            "orchestrator",
            "interview_finished",
            self.state.session_id,
            questions_asked=self.state.current_question_index + 1,
        )

    def _is_stale(self, generation: int, operation: str) -> bool:
        if generation == self.state.generation:
            return False
        log_event(
            "orchestrator",
            "stale_response_dropped",
            self.state.session_id,
            operation=operation,
            response_generation=generation,
            current_generation=self.state.generation,
        )
        return True

    # ---------- voice input ----------

    async def start_listening(self) -> bool:
        if self.state.speaking or self.state.currently_playing_turn_id is not None:
            self.state.error = SPEAKING_MESSAGE
            return False
        if self.capture is None:
            self.state.error = NO_CAPTURE_MESSAGE
            return False

        generation = self.state.generation
        try:
            await self.capture.start_listening(
                on_transcript=partial(self._handle_transcript, generation),
                on_error=partial(self._handle_capture_error, generation),
            )
        except CaptureError as exc:
            self.state.error = exc.user_message
            self.state.listening = False
            return False

        self.state.error = None
        self.state.listening = True
        return True

    async def stop_listening(self) -> None:
        if self.capture is not None:
            await self.capture.stop_listening()
        self.state.listening = False

    async def _handle_transcript(self, generation: int, text: str) -> None:
        if self._is_stale(generation, "transcript"):
            return
        self.state.listening = False
        if self.capture is not None:
            await self.capture.stop_listening()

        if not str(text or "").strip():
            self.state.error = NO_SPEECH_MESSAGE
            return
        await self.submit_answer(text)

    async def _handle_capture_error(self, generation: int, exc: Exception) -> None:
        if self._is_stale(generation, "capture_error"):
            return
        self.state.listening = False
        self.state.error = getattr(exc, "user_message", None) or NO_SPEECH_MESSAGE

    async def transcribe_recording(self, audio: bytes, filename: str, mime: str) -> str:
        """Uploads a fallback recording; one retry, then an empty transcript."""
        for attempt in range(self.transcribe_attempts):
            try:
                data = await self.api.transcribe(audio, filename=filename, mime=mime)
                return str(data.get("transcript") or "").strip()
            except Exception as exc:
                logger.warning("transcribe attempt failed | attempt=%s err=%s", attempt + 1, exc)
        return ""

    # ---------- playback ----------

    def _kick_playback(self) -> None:
        if self._playback_task is None or self._playback_task.done():
            self._playback_task = asyncio.create_task(self._advance_audio(self.state.generation))

    async def _advance_audio(self, generation: int) -> None:
        while generation == self.state.generation:
            if self.state.currently_playing_turn_id is not None:
                return
            index = self.sequencer.next_audio_index(after_sequence=self.state.last_played_sequence)
            if index is None:
                return

            turn = self.sequencer[index]
            self.state.currently_playing_turn_id = turn.id
            await self.player.play(
                turn.speech_text,
                voice_id=self.voice_id,
                on_start=partial(self._on_playback_start, generation),
                on_end=partial(self._on_playback_end, generation, turn),
            )

    def _on_playback_start(self, generation: int) -> None:
        if generation == self.state.generation:
            self.state.speaking = True

    def _on_playback_end(self, generation: int, turn: ConversationTurn) -> None:
        if generation != self.state.generation:
            return
        self.sequencer.mark_audio_consumed(turn.id)
        self.state.currently_playing_turn_id = None
        self.state.last_played_sequence = turn.sequence
        self.state.speaking = False
        if self.player.last_error is not None:
            log_event(
                "orchestrator",
                "playback_error",
                self.state.session_id,
                turn_id=turn.id,
                error=str(self.player.last_error),
            )

    async def wait_for_playback(self) -> None:
        task = self._playback_task
        if task is not None:
            await task
