import itertools
import logging
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote_plus

import requests
from requests.exceptions import RequestException

from services import config

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    """
    Return True when required ElevenLabs env vars are present.
    """
    return bool(config.ELEVEN_API_KEY and config.ELEVEN_VOICE_ID)


def _ensure_env() -> None:
    """
    Raise RuntimeError if ElevenLabs config is missing.
    """
    if not is_configured():
        raise RuntimeError("ElevenLabs not configured. Set ELEVEN_API_KEY and ELEVEN_VOICE_ID.")


def _build_url(voice_id: str) -> str:
    """
    Built at call-time so environment changes during runtime (tests or
    reloading) are respected.
    """
    return f"https://api.elevenlabs.io/v1/text-to-speech/{quote_plus(voice_id)}"


def tts_to_wav_bytes(text: str, rate: float = 1.0, timeout: int = 60, retries: int = 1) -> bytes:
    """
    Synthesize `text` to WAV bytes using ElevenLabs.
    Raises RuntimeError for missing config, network errors, or HTTP errors.
    """
    _ensure_env()
    if not text:
        text = "There is no text for me to speak."

    url = _build_url(config.ELEVEN_VOICE_ID)
    headers = {
        "xi-api-key": config.ELEVEN_API_KEY,
        "Content-Type": "application/json",
        "Accept": "audio/wav",
    }
    payload = {
        "text": text,
        "model_id": config.ELEVEN_MODEL_ID,
        "voice_settings": {"stability": 0.5, "similarity_boost": 0.5, "speed": rate},
        "output_format": "wav",
    }

    last_exc: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            r = requests.post(url, headers=headers, json=payload, timeout=timeout)
        except RequestException as exc:
            last_exc = exc
            if attempt < retries:
                logger.warning("TTS request failed (attempt %d): %s", attempt + 1, exc)
                time.sleep(0.5 * (attempt + 1))
                continue
            raise RuntimeError(f"Network error contacting ElevenLabs TTS: {exc}") from exc

        if not r.ok:
            body_snippet = (r.text or "")[:200]
            raise RuntimeError(f"ElevenLabs TTS error: {r.status_code} {body_snippet}")
        return r.content

    if last_exc:
        raise RuntimeError(f"ElevenLabs TTS failed after retries: {last_exc}")
    raise RuntimeError("ElevenLabs TTS failed for unknown reasons.")


_utterance_ids = itertools.count(1)


@dataclass
class Utterance:
    id: int
    text: str
    rate: float
    cancelled: bool = False
    audio: bytes = b""


class Speaker:
    """
    Keeps at most one utterance in flight. Starting a new one cancels the
    previous immediately; nothing about the calculator waits on playback.
    """

    def __init__(self, synthesize=None, rate: Optional[float] = None):
        self.synthesize = synthesize or tts_to_wav_bytes
        self.rate = config.SPEECH_RATE if rate is None else rate
        self.current: Optional[Utterance] = None

    @property
    def speaking(self) -> bool:
        return self.current is not None and not self.current.cancelled

    def cancel(self) -> Optional[Utterance]:
        stopped = self.current
        if stopped is not None:
            stopped.cancelled = True
            logger.debug("Cancelled utterance %d", stopped.id)
        self.current = None
        return stopped

    def speak(self, text: str) -> Optional[Utterance]:
        text = (text or "").strip()
        if not text:
            return None
        self.cancel()
        utterance = Utterance(id=next(_utterance_ids), text=text, rate=self.rate)
        self.current = utterance
        try:
            utterance.audio = self.synthesize(text, rate=self.rate)
        except Exception:
            if self.current is utterance:
                self.current = None
            raise
        return utterance

    def toggle(self, text: str) -> Optional[Utterance]:
        """Speak button behaviour: pressing while speaking only stops playback."""
        if self.speaking:
            self.cancel()
            return None
        return self.speak(text)

    def finish(self, utterance: Utterance) -> None:
        if self.current is utterance:
            self.current = None
