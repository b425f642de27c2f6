import io

import httpx
import pytest

from applicant.client.__main__ import build_orchestrator, parse_args, run
from applicant.client.capture import SpeechCapture
from applicant.client.player import SpeechSynthesisPlayer
from applicant.main import app


class _NullOutput:
    async def play(self, audio: bytes) -> None:
        return None


def _fast_player() -> SpeechSynthesisPlayer:
    return SpeechSynthesisPlayer(output=_NullOutput(), mock_sec_per_char=0.0, mock_min_sec=0.01, mock_max_sec=0.01)


def _scripted(lines):
    pending = list(lines)

    def _read_line(prompt: str = "") -> str:
        return pending.pop(0)

    return _read_line


def test_parse_args_requires_a_job_source():
    with pytest.raises(SystemExit):
        parse_args(["--company", "Acme"])

    args = parse_args(["--company", "Acme", "--job-description", "Engineer", "--voice"])
    assert args.mode == "technical"
    assert args.voice is True
    assert args.max_questions == 5


def test_build_orchestrator_wires_capture_only_for_voice():
    typed = build_orchestrator(parse_args(["--company", "A", "--job-description", "B"]), api=object())
    assert typed.capture is None

    voiced = build_orchestrator(parse_args(["--company", "A", "--job-description", "B", "--voice"]), api=object())
    assert isinstance(voiced.capture, SpeechCapture)
    assert voiced.capture.transcribe == voiced.transcribe_recording
    assert voiced.player.source is voiced.api


@pytest.mark.asyncio
async def test_typed_interview_runs_to_conclusion_in_mock_mode():
    args = parse_args(["--company", "Acme", "--job-description", "Backend engineer", "--base-url", "http://testserver"])
    out = io.StringIO()
    answers = [
        "I split the monolith.",
        "We measured queue lag.",
        "I would shard by tenant.",
        "Load tests before launch.",
        "Logs first, then traces and dashboards.",
    ]

    code = await run(
        args,
        transport=httpx.ASGITransport(app=app),
        player=_fast_player(),
        read_line=_scripted(answers),
        out=out,
    )

    printed = out.getvalue()
    assert code == 0
    assert printed.count("[Feedback]") == 5
    assert printed.count("[You]") == 5
    assert "That concludes our interview." in printed


@pytest.mark.asyncio
async def test_quit_command_stops_early():
    args = parse_args(["--company", "Acme", "--job-description", "Backend engineer", "--base-url", "http://testserver"])
    out = io.StringIO()

    code = await run(
        args,
        transport=httpx.ASGITransport(app=app),
        player=_fast_player(),
        read_line=_scripted(["/quit"]),
        out=out,
    )

    assert code == 0
    assert "[Interviewer] Welcome to your technical interview preparation for Acme." in out.getvalue()
    assert "[Feedback]" not in out.getvalue()
