import httpx
import pytest
from fastapi.testclient import TestClient

from applicant.main import app
from applicant.services import llm, transcription_service, voice_service
from applicant.session.registry import session_registry


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def test_healthz_reports_providers(client: TestClient):
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["openai_configured"] is False
    assert body["elevenlabs_configured"] is False


def test_interview_requires_company_and_description(client: TestClient):
    response = client.post("/api/interview", json={"company": "Acme"})
    assert response.status_code == 400


def test_interview_mock_questions_without_credentials(client: TestClient):
    response = client.post(
        "/api/interview",
        json={
            "company": "Acme",
            "jobDescription": "Senior backend engineer",
            "interviewMode": "behavioral",
            "initialQuestionsOnly": True,
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert len(body["questions"]) == 2
    assert all(item["question"] and item["category"] for item in body["questions"])
    assert body["mockData"] is True
    assert session_registry.asked_questions(body["sessionId"]) == {item["question"] for item in body["questions"]}


def test_interview_uses_model_questions(client: TestClient, openai_on, monkeypatch: pytest.MonkeyPatch):
    async def _fake_call_llm(prompt, **kwargs):
        return '{"questions": [{"question": "Why Acme?", "category": "Motivation", "difficulty": "easy"}]}'

    monkeypatch.setattr(llm, "call_llm", _fake_call_llm)

    response = client.post(
        "/api/interview",
        json={"company": "Acme", "jobDescription": "Engineer", "interviewMode": "technical"},
    )
    body = response.json()
    assert body["questions"] == [{"question": "Why Acme?", "category": "Motivation", "difficulty": "Easy"}]
    assert body["mockData"] is False


def test_chat_requires_answer(client: TestClient):
    response = client.post("/api/chat", json={"question": "Q"})
    assert response.status_code == 400


def test_chat_mock_feedback_is_deterministic(client: TestClient):
    payload = {
        "userAnswer": "First I profiled the service, then I reduced latency by 40% for our users.",
        "question": "Tell me about a performance fix.",
        "category": "Performance",
        "difficulty": "Medium",
        "company": "Acme",
        "interviewMode": "technical",
        "conversationHistory": [{"role": "assistant", "content": "Tell me about a performance fix."}],
        "generateFollowUp": True,
    }
    first = client.post("/api/chat", json=payload).json()
    second = client.post("/api/chat", json=payload).json()

    assert first == second
    assert 1 <= first["score"] <= 5
    assert first["follow_up_question"]
    assert first["strengths"]


def test_chat_without_follow_up(client: TestClient):
    response = client.post(
        "/api/chat",
        json={"userAnswer": "Short answer.", "question": "Q", "generateFollowUp": False},
    )
    body = response.json()
    assert body["follow_up_question"] is None
    assert body["follow_up_category"] is None


def test_voice_returns_mock_payload_without_credentials(client: TestClient):
    response = client.post("/api/voice", json={"text": "Hello there"})
    assert response.status_code == 200
    assert response.json() == {"mockData": True, "message": voice_service.MOCK_VOICE_MESSAGE}


def test_voice_requires_text(client: TestClient):
    assert client.post("/api/voice", json={"text": ""}).status_code == 400


def test_voice_streams_audio_when_synthesized(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    async def _fake_synthesize(text, voice_id=None, timeout_sec=30.0):
        return b"ID3audio"

    monkeypatch.setattr(voice_service, "synthesize_speech", _fake_synthesize)

    response = client.post("/api/voice", json={"text": "Hello", "voiceId": "abc"})
    assert response.status_code == 200
    assert response.headers["content-type"] == "audio/mpeg"
    assert response.content == b"ID3audio"


def test_transcribe_requires_file(client: TestClient):
    assert client.post("/api/transcribe").status_code == 400


def test_transcribe_without_credentials_returns_empty_with_message(client: TestClient):
    response = client.post("/api/transcribe", files={"audio": ("recording.wav", b"RIFF", "audio/wav")})
    assert response.status_code == 200
    body = response.json()
    assert body["transcript"] == ""
    assert body["message"] == transcription_service.UNAVAILABLE_MESSAGE


def test_transcribe_upstream_failure_is_502(client: TestClient, openai_on, monkeypatch: pytest.MonkeyPatch):
    async def _boom(**kwargs):
        raise RuntimeError("upstream down")

    monkeypatch.setattr(llm.client.audio.transcriptions, "create", _boom)

    response = client.post("/api/transcribe", files={"audio": ("recording.webm", b"data", "audio/webm")})
    assert response.status_code == 502


def test_transcribe_success(client: TestClient, openai_on, monkeypatch: pytest.MonkeyPatch):
    seen = {}

    class _Result:
        text = "  I would shard the table.  "

    async def _fake_create(file, model):
        seen["name"] = file.name
        seen["model"] = model
        return _Result()

    monkeypatch.setattr(llm.client.audio.transcriptions, "create", _fake_create)

    response = client.post("/api/transcribe", files={"audio": ("recording.webm", b"data", "audio/webm")})
    assert response.json() == {"transcript": "I would shard the table."}
    assert seen == {"name": "recording.webm", "model": "whisper-1"}


@pytest.mark.asyncio
async def test_api_client_against_app():
    from applicant.client.api_client import InterviewApiClient

    transport = httpx.ASGITransport(app=app)
    async with InterviewApiClient(base_url="http://testserver", transport=transport) as api:
        created = await api.create_interview("Acme", "Engineer", "technical", initial_questions_only=True)
        assert created["sessionId"]

        feedback = await api.submit_answer(
            user_answer="I would add caching in front of the database.",
            question=created["questions"][0]["question"],
            category="General",
            difficulty="Medium",
            company="Acme",
            interview_mode="technical",
            conversation_history=[],
            session_id=created["sessionId"],
        )
        assert "score" in feedback

        assert await api.synthesize("Hello") is None
        transcript = await api.transcribe(b"RIFF", "recording.wav", "audio/wav")
        assert transcript["transcript"] == ""


@pytest.mark.asyncio
async def test_api_client_raises_on_error_status():
    from applicant.client.api_client import InterviewApiClient
    from applicant.client.errors import ApiError

    transport = httpx.ASGITransport(app=app)
    async with InterviewApiClient(base_url="http://testserver", transport=transport) as api:
        with pytest.raises(ApiError) as exc:
            await api.create_interview("", "")
    assert exc.value.status_code == 400



def test_chat_mock_follow_ups_do_not_repeat_within_session(client: TestClient):
    created = client.post(
        "/api/interview",
        json={"company": "Acme", "jobDescription": "Engineer", "initialQuestionsOnly": True},
    ).json()

    follow_ups = []
    for answer in ["I used a queue.", "I wrote unit tests.", "We added a cache.", "I paged the team."]:
        body = client.post(
            "/api/chat",
            json={"userAnswer": answer, "question": "Q", "sessionId": created["sessionId"]},
        ).json()
        assert answer.rstrip(".") in body["feedback"]
        follow_ups.append(body["follow_up_question"])

    asked = [item for item in follow_ups if item]
    assert len(asked) == 3
    assert len(set(asked)) == 3
    assert follow_ups[-1] is None
    assert set(asked) <= session_registry.asked_questions(created["sessionId"])


def test_chat_skips_follow_ups_already_in_history(client: TestClient):
    first = client.post("/api/chat", json={"userAnswer": "I used a queue.", "question": "Q"}).json()
    second = client.post(
        "/api/chat",
        json={
            "userAnswer": "I wrote unit tests.",
            "question": "Q",
            "conversationHistory": [{"role": "assistant", "content": first["follow_up_question"]}],
        },
    ).json()

    assert second["follow_up_question"]
    assert second["follow_up_question"] != first["follow_up_question"]


def test_allowed_origins_parsing():
    from applicant.main import DEFAULT_ORIGINS, allowed_origins

    assert allowed_origins("") == DEFAULT_ORIGINS
    assert allowed_origins(" https://a.test , ,https://b.test") == ["https://a.test", "https://b.test"]


@pytest.mark.asyncio
async def test_mock_interview_gives_feedback_for_every_answer():
    from applicant.client.api_client import InterviewApiClient
    from applicant.client.orchestrator import InterviewOrchestrator
    from applicant.client.player import SpeechSynthesisPlayer
    from applicant.client.turns import TurnRole

    class _NullOutput:
        async def play(self, audio: bytes) -> None:
            return None

    transport = httpx.ASGITransport(app=app)
    async with InterviewApiClient(base_url="http://testserver", transport=transport) as api:
        player = SpeechSynthesisPlayer(source=api, output=_NullOutput(), mock_sec_per_char=0.0, mock_min_sec=0.01, mock_max_sec=0.01)
        orchestrator = InterviewOrchestrator(api, player)
        assert await orchestrator.start_interview("Acme", "Backend engineer") is True

        # Same word count on purpose: follow-up choice depends on answer length.
        assert await orchestrator.submit_answer("I used a queue.") is True
        assert await orchestrator.submit_answer("I wrote unit tests.") is True
        await orchestrator.wait_for_playback()

    turns = orchestrator.sequencer.turns
    roles = [turn.role for turn in turns]
    assert roles.count(TurnRole.FEEDBACK) == 2
    assert roles[-1] == TurnRole.INTERVIEWER
    assert turns[-1].content == orchestrator.state.current_question.question
    assert orchestrator.state.current_question_index == 2
