import io
import json
import wave

import pytest

from applicant.client.encoding import PREFERRED_ENCODINGS, encode_pcm, negotiate_encoding, pcm_to_wav
from applicant.client.errors import RecognizerError
from applicant.client.recognizer import DeepgramLiveRecognizer


def test_negotiate_encoding_first_supported_wins():
    assert negotiate_encoding(supported={"audio/wav"}) == "audio/wav"
    assert negotiate_encoding(supported={"audio/wav", "audio/ogg;codecs=opus", "audio/mp4"}) == "audio/ogg;codecs=opus"
    assert negotiate_encoding(supported=set(PREFERRED_ENCODINGS)) == "audio/webm;codecs=opus"
    assert negotiate_encoding(["audio/flac"], supported={"audio/wav"}) == "audio/wav"


@pytest.mark.asyncio
async def test_encode_pcm_as_wav():
    pcm = b"\x01\x00" * 1600
    audio, filename = await encode_pcm(pcm, "audio/wav", 16000)

    assert filename == "recording.wav"
    assert audio == pcm_to_wav(pcm, 16000)
    with wave.open(io.BytesIO(audio), "rb") as handle:
        assert handle.getnchannels() == 1
        assert handle.getframerate() == 16000
        assert handle.getnframes() == 1600


def test_deepgram_parse_results():
    message = json.dumps(
        {
            "type": "Results",
            "is_final": True,
            "channel": {"alternatives": [{"transcript": " I would use a queue. "}]},
        }
    )
    result = DeepgramLiveRecognizer._parse(message)
    assert result.text == "I would use a queue."
    assert result.is_final is True

    assert DeepgramLiveRecognizer._parse(json.dumps({"type": "Metadata"})) is None
    assert DeepgramLiveRecognizer._parse(json.dumps({"type": "Results", "channel": {"alternatives": [{"transcript": ""}]}})) is None
    assert DeepgramLiveRecognizer._parse(b"\x00") is None
    assert DeepgramLiveRecognizer._parse("not json") is None


def test_deepgram_supported_requires_key():
    assert DeepgramLiveRecognizer(api_key="").supported is False
    assert DeepgramLiveRecognizer(api_key="dg-key").supported is True

    url = DeepgramLiveRecognizer(api_key="dg-key", url="wss://example.test/v1/listen")._listen_url()
    assert url.startswith("wss://example.test/v1/listen?")
    assert "encoding=linear16" in url
    assert "sample_rate=16000" in url


@pytest.mark.asyncio
async def test_deepgram_unsupported_raises_unrecoverable():
    recognizer = DeepgramLiveRecognizer(api_key="")

    async def _audio():
        yield b""

    with pytest.raises(RecognizerError) as exc:
        async for _ in recognizer.recognize(_audio()):
            pass
    assert exc.value.recoverable is False


@pytest.mark.asyncio
async def test_encode_pcm_falls_back_to_wav_when_export_fails(monkeypatch: pytest.MonkeyPatch):
    from pydub.exceptions import CouldntEncodeError

    from applicant.client import encoding

    real_export = encoding._export

    def _export(segment, fmt, codec=None):
        if fmt != "wav":
            raise CouldntEncodeError("ffmpeg missing libopus")
        return real_export(segment, fmt, codec)

    monkeypatch.setattr(encoding, "_export", _export)

    pcm = b"\x01\x00" * 800
    audio, filename = await encode_pcm(pcm, "audio/webm;codecs=opus", 16000)
    assert filename == "recording.wav"
    assert audio == pcm_to_wav(pcm, 16000)


@pytest.mark.asyncio
async def test_encode_pcm_uses_negotiated_container(monkeypatch: pytest.MonkeyPatch):
    from applicant.client import encoding

    seen = []

    def _export(segment, fmt, codec=None):
        seen.append((fmt, codec, segment.frame_rate, segment.channels, segment.sample_width))
        return b"OggS"

    monkeypatch.setattr(encoding, "_export", _export)

    audio, filename = await encode_pcm(b"\x01\x00" * 800 + b"\x01", "audio/ogg;codecs=opus", 16000)
    assert (audio, filename) == (b"OggS", "recording.ogg")
    assert seen == [("ogg", "libopus", 16000, 1, 2)]


def test_deepgram_supported_respects_mock_mode(monkeypatch: pytest.MonkeyPatch):
    from applicant.core import config

    monkeypatch.setattr(config, "DEEPGRAM_API_KEY", "dg-key")
    assert DeepgramLiveRecognizer().supported is True

    monkeypatch.setattr(config, "MOCK_MODE", True)
    assert DeepgramLiveRecognizer().supported is False
    assert DeepgramLiveRecognizer(api_key="dg-key").supported is False
