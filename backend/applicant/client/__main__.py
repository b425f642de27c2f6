"""
Console interview against a running backend.

    python -m applicant.client --company Acme --job-description "Backend engineer"
    python -m applicant.client --company Acme --job-file jd.txt --mode behavioral --voice

Typed answers are read from stdin. With --voice, ENTER starts and stops the
microphone; the live recognizer is used when DEEPGRAM_API_KEY is set,
otherwise the recording is uploaded to /api/transcribe.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from applicant.client.api_client import InterviewApiClient
from applicant.client.capture import SpeechCapture
from applicant.client.microphone import SoundDeviceMicrophone
from applicant.client.orchestrator import InterviewOrchestrator
from applicant.client.player import SpeechSynthesisPlayer
from applicant.client.recognizer import DeepgramLiveRecognizer
from applicant.client.turns import TurnRole
from applicant.core import config

QUIT_COMMANDS = {"/quit", "/exit"}

_LABELS = {
    TurnRole.INTERVIEWER: "Interviewer",
    TurnRole.CANDIDATE: "You",
    TurnRole.FEEDBACK: "Feedback",
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="applicant.client", description="Practice interview in the terminal")
    parser.add_argument("--company", required=True)
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--job-description")
    source.add_argument("--job-file", type=Path)
    parser.add_argument("--mode", choices=["technical", "behavioral"], default="technical")
    parser.add_argument("--voice", action="store_true", help="answer through the microphone")
    parser.add_argument("--auto-stop", action="store_true", help="stop listening after 2 s of silence")
    parser.add_argument("--voice-id", default=None)
    parser.add_argument("--base-url", default=config.API_BASE_URL)
    parser.add_argument("--max-questions", type=int, default=5)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def build_orchestrator(
    args: argparse.Namespace,
    api: InterviewApiClient,
    player: SpeechSynthesisPlayer | None = None,
) -> InterviewOrchestrator:
    capture = None
    if args.voice:
        capture = SpeechCapture(
            SoundDeviceMicrophone(),
            recognizer=DeepgramLiveRecognizer(),
            auto_stop_after_silence=args.auto_stop,
        )
    return InterviewOrchestrator(
        api,
        player or SpeechSynthesisPlayer(source=api),
        capture=capture,
        voice_id=args.voice_id,
        max_questions=args.max_questions,
    )


class _TurnPrinter:
    def __init__(self, out=None):
        self.out = out or sys.stdout
        self._seen: set[str] = set()

    def flush(self, orchestrator: InterviewOrchestrator) -> None:
        for turn in orchestrator.sequencer.turns:
            if turn.id in self._seen:
                continue
            self._seen.add(turn.id)
            print(f"\n[{_LABELS[turn.role]}] {turn.content}", file=self.out)
            if turn.feedback is not None:
                print(f"  score: {turn.feedback.score}/5", file=self.out)
        error = orchestrator.state.error
        if error:
            print(f"\n! {error}", file=self.out)
            orchestrator.state.error = None


async def _answer_by_voice(orchestrator: InterviewOrchestrator, read_line) -> bool:
    await asyncio.to_thread(read_line, "\nPress ENTER to start speaking...")
    if not await orchestrator.start_listening():
        return False
    await asyncio.to_thread(read_line, "Listening. Press ENTER when you are done.")
    await orchestrator.stop_listening()
    return True


async def run(
    args: argparse.Namespace,
    transport=None,
    player: SpeechSynthesisPlayer | None = None,
    read_line=input,
    out=None,
) -> int:
    job_description = args.job_description
    if args.job_file is not None:
        job_description = args.job_file.read_text(encoding="utf-8")

    printer = _TurnPrinter(out)
    async with InterviewApiClient(base_url=args.base_url, transport=transport) as api:
        orchestrator = build_orchestrator(args, api, player=player)
        if not await orchestrator.start_interview(args.company, job_description, args.mode):
            printer.flush(orchestrator)
            return 1

        try:
            while not orchestrator.state.finished:
                printer.flush(orchestrator)
                await orchestrator.wait_for_playback()

                if orchestrator.capture is not None:
                    if not await _answer_by_voice(orchestrator, read_line):
                        printer.flush(orchestrator)
                    continue

                answer = (await asyncio.to_thread(read_line, "\nYour answer> ")).strip()
                if answer in QUIT_COMMANDS:
                    return 0
                await orchestrator.submit_answer(answer)

            printer.flush(orchestrator)
            await orchestrator.wait_for_playback()
        finally:
            await orchestrator.restart()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return asyncio.run(run(args))
    except (KeyboardInterrupt, EOFError):
        return 130


if __name__ == "__main__":
    sys.exit(main())
