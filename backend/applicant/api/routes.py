import logging

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import Response

from applicant.core.logger import log_event
from applicant.interview.prompts import normalize_mode
from applicant.schemas import ChatRequest, FeedbackResponse, InterviewRequest, VoiceRequest
from applicant.services import feedback_service, question_service, transcription_service, voice_service
from applicant.session.registry import session_registry

logger = logging.getLogger("applicant.api.routes")

router = APIRouter(prefix="/api")


@router.post("/interview")
async def create_interview(req: InterviewRequest):
    company = req.company.strip()
    job_description = req.job_description.strip()
    if not company or not job_description:
        raise HTTPException(status_code=400, detail="Job description and company are required")

    mode = normalize_mode(req.interview_mode)
    questions, is_mock = await question_service.generate_questions(
        company=company,
        job_description=job_description,
        interview_mode=mode,
        initial_only=req.initial_questions_only,
    )
    session_id = session_registry.create(company=company, interview_mode=mode, questions=questions)
    log_event(
        "api",
        "interview_created",
        session_id,
        interview_mode=mode,
        question_count=len(questions),
        initial_only=req.initial_questions_only,
        mock=is_mock,
    )
    return {"questions": questions, "sessionId": session_id, "mockData": is_mock}


@router.post("/chat", response_model=FeedbackResponse)
async def chat(req: ChatRequest):
    user_answer = req.user_answer.strip()
    if not user_answer:
        raise HTTPException(status_code=400, detail="User answer is required")

    history = [{"role": item.role, "content": item.content} for item in req.conversation_history]
    asked = session_registry.asked_questions(req.session_id)
    asked.update(item["content"].strip() for item in history if item["role"] != "user")
    feedback, is_mock = await feedback_service.evaluate_answer(
        user_answer=user_answer,
        question=req.question,
        category=req.category,
        difficulty=req.difficulty,
        company=req.company,
        interview_mode=req.interview_mode,
        conversation_history=history,
        generate_follow_up=req.generate_follow_up,
        asked=asked,
    )
    session_registry.touch(req.session_id, answered=True, follow_up=feedback.get("follow_up_question"))
    log_event(
        "api",
        "answer_evaluated",
        req.session_id or "",
        score=feedback.get("score"),
        follow_up=bool(feedback.get("follow_up_question")),
        mock=is_mock,
        answer=user_answer,
    )
    return feedback


@router.post("/voice")
async def voice(req: VoiceRequest):
    if not req.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")

    audio = await voice_service.synthesize_speech(req.text, voice_id=req.voice_id)
    if audio is None:
        return {"mockData": True, "message": voice_service.MOCK_VOICE_MESSAGE}

    return Response(content=audio, media_type="audio/mpeg")


@router.post("/transcribe")
async def transcribe(audio: UploadFile | None = File(default=None)):
    if audio is None:
        raise HTTPException(status_code=400, detail="No audio file provided")

    content = await audio.read()
    try:
        transcript, message = await transcription_service.transcribe_audio(
            content,
            filename=audio.filename or "recording.wav",
        )
    except transcription_service.TranscriptionFailed as exc:
        logger.warning("transcribe failed | bytes=%s err=%s", len(content), exc)
        raise HTTPException(status_code=502, detail="Failed to transcribe audio")

    payload = {"transcript": transcript}
    if message:
        payload["message"] = message
    return payload
