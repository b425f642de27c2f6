# backend/applicant/core/state.py

from enum import Enum


class CaptureState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    STOPPED = "stopped"


class CaptureEngine(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
