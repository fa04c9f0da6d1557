import pytest
from requests.exceptions import ConnectionError as RequestsConnectionError

from services import config
from tts import synth


class FakeResponse:
    def __init__(self, status_code=200, content=b"RIFF....WAVE", text=""):
        self.status_code = status_code
        self.content = content
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(config, "ELEVEN_API_KEY", "key")
    monkeypatch.setattr(config, "ELEVEN_VOICE_ID", "voice id")
    monkeypatch.setattr(synth.time, "sleep", lambda _: None)


def test_missing_config_raises(monkeypatch):
    monkeypatch.setattr(config, "ELEVEN_API_KEY", "")
    assert not synth.is_configured()
    with pytest.raises(RuntimeError):
        synth.tts_to_wav_bytes("Five")


def test_posts_text_with_rate(configured, monkeypatch):
    calls = []

    def fake_post(url, headers, json, timeout):
        calls.append((url, json))
        return FakeResponse()

    monkeypatch.setattr(synth.requests, "post", fake_post)
    audio = synth.tts_to_wav_bytes("Forty-Two", rate=0.9)
    assert audio == b"RIFF....WAVE"
    url, payload = calls[0]
    assert url.endswith("/voice+id")
    assert payload["text"] == "Forty-Two"
    assert payload["voice_settings"]["speed"] == 0.9


def test_retries_network_errors_then_fails(configured, monkeypatch):
    attempts = []

    def fake_post(*args, **kwargs):
        attempts.append(1)
        raise RequestsConnectionError("down")

    monkeypatch.setattr(synth.requests, "post", fake_post)
    with pytest.raises(RuntimeError, match="Network error"):
        synth.tts_to_wav_bytes("Five", retries=2)
    assert len(attempts) == 3


def test_http_error_raises(configured, monkeypatch):
    monkeypatch.setattr(synth.requests, "post", lambda *a, **k: FakeResponse(401, text="bad key"))
    with pytest.raises(RuntimeError, match="401"):
        synth.tts_to_wav_bytes("Five")


def _fake_synth(text, rate):
    return f"{text}@{rate}".encode()


def test_speaker_new_utterance_cancels_previous():
    speaker = synth.Speaker(synthesize=_fake_synth, rate=0.9)
    first = speaker.speak("One")
    second = speaker.speak("Two")
    assert first.cancelled
    assert not second.cancelled
    assert speaker.current is second
    assert second.audio == b"Two@0.9"


def test_speaker_toggle_and_finish():
    speaker = synth.Speaker(synthesize=_fake_synth, rate=1.0)
    utterance = speaker.toggle("Seven")
    assert speaker.speaking
    assert speaker.toggle("Seven") is None
    assert utterance.cancelled
    assert not speaker.speaking

    again = speaker.speak("Eight")
    speaker.finish(again)
    assert speaker.current is None
    assert speaker.speak("   ") is None


def test_speaker_failure_leaves_nothing_in_flight():
    def broken(text, rate):
        raise RuntimeError("offline")

    speaker = synth.Speaker(synthesize=broken)
    with pytest.raises(RuntimeError):
        speaker.speak("Nine")
    assert not speaker.speaking
