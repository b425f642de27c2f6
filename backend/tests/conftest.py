import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    from applicant.core import config

    monkeypatch.setattr(config, "MOCK_MODE", False)
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")
    monkeypatch.setattr(config, "ELEVENLABS_API_KEY", "")
    monkeypatch.setattr(config, "DEEPGRAM_API_KEY", "")


@pytest.fixture
def openai_on(monkeypatch: pytest.MonkeyPatch):
    from applicant.core import config

    monkeypatch.setattr(config, "OPENAI_API_KEY", "test-key")


@pytest.fixture
def elevenlabs_on(monkeypatch: pytest.MonkeyPatch):
    from applicant.core import config

    monkeypatch.setattr(config, "ELEVENLABS_API_KEY", "test-key")
