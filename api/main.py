import logging
from pathlib import Path
from typing import Optional, Union

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from calculator.evaluator import calc
from calculator.history import HistoryStore, JsonFileStorage, format_timestamp
from calculator.numbers import format_number
from calculator.words import expression_to_words, to_words
from pipeline import state as calc_state
from services import config
from tts.synth import Speaker

logging.basicConfig(
    level=config.LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent
STATIC_DIR = BASE_DIR / "ui" / "static"


class KeyPayload(BaseModel):
    """A single keypad press."""
    key: str = Field(min_length=1, max_length=16)


class ExpressionPayload(BaseModel):
    """Schema for `/evaluate` so expressions stay bounded."""
    expression: str = Field(default="", max_length=4000)


class WordsPayload(BaseModel):
    number: Union[float, str, None] = None


class TTSPayload(BaseModel):
    """Schema for `/tts` requests to control text length."""
    text: str = Field(default="", max_length=4000)


# HELPERS TO CATCH + HANDLE FAILURES:
def _session(request: Request):
    return request.app.state


def _history_entry(index: int, record, now=None) -> dict:
    return {
        "index": index,
        "expression": record.expression,
        "result": record.result,
        "summary": record.summary(),
        "words": record.words,
        "timestamp": record.timestamp.isoformat(),
        "time": format_timestamp(record.timestamp, now),
    }


def _press_or_error(session, key: str):
    """Apply a key press and turn unknown keys into a 422."""
    try:
        return calc_state.press(session.calculator, key, session.history)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _speak_or_error(speaker: Speaker, text: str, toggle: bool = False):
    """Call the speaker and surface clean HTTP errors."""
    try:
        return speaker.toggle(text) if toggle else speaker.speak(text)
    except RuntimeError as exc:
        raise HTTPException(status_code=503, detail=f"TTS service unavailable: {exc}") from exc
    except Exception as exc:
        logger.exception("Unexpected TTS failure")
        raise HTTPException(status_code=500, detail="Unexpected TTS failure") from exc


def _stream_utterance(speaker: Speaker, utterance) -> StreamingResponse:
    """The audio goes out whole, so the utterance is done on the server once it is handed over."""
    speaker.finish(utterance)
    return StreamingResponse(iter([utterance.audio]), media_type="audio/wav")


def _state_view(session, outcome: Optional[dict] = None) -> dict:
    body = calc_state.view(session.calculator)
    if outcome is not None:
        body["outcome"] = {
            "ok": outcome.get("error") is None,
            "result": outcome.get("result"),
            "words": outcome.get("words", ""),
            "expression_words": outcome.get("expression_words", ""),
            "answer": outcome.get("answer", ""),
        }
    return body


def create_app(history: Optional[HistoryStore] = None, speaker: Optional[Speaker] = None) -> FastAPI:
    """Build the app around one calculator state, one history and one speaker."""
    app = FastAPI(title="Spoken Calculator")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=False,
    )
    if STATIC_DIR.exists():
        app.mount("/ui", StaticFiles(directory=STATIC_DIR, html=True), name="ui")

    if history is None:
        history = HistoryStore(JsonFileStorage(config.CALC_HISTORY_PATH), limit=config.CALC_HISTORY_LIMIT)
        history.load()
        logger.info("Loaded %d history entries from %s", len(history), config.CALC_HISTORY_PATH)
    app.state.calculator = calc_state.CalculatorState()
    app.state.history = history
    app.state.speaker = speaker or Speaker()

    @app.get("/")
    async def root():
        """Serve UI, otherwise expose a health payload."""
        if STATIC_DIR.exists():
            return RedirectResponse(url="/ui/")
        return {"status": "ok"}

    @app.get("/state")
    async def get_state(request: Request):
        return _state_view(_session(request))

    @app.post("/press")
    async def press_key(payload: KeyPayload, request: Request):
        """Feed one keypad press into the calculator."""
        session = _session(request)
        session.calculator, outcome = _press_or_error(session, payload.key)
        return _state_view(session, outcome)

    @app.post("/calculate")
    async def calculate(request: Request):
        session = _session(request)
        session.calculator, outcome = calc_state.calculate(session.calculator, session.history)
        return _state_view(session, outcome)

    @app.post("/evaluate")
    async def evaluate_expression(payload: ExpressionPayload):
        """Stateless evaluation; nothing is recorded in history."""
        body, status = calc(payload.expression)
        if status != 200:
            raise HTTPException(status_code=status, detail=body)
        result = body["result"]
        return {
            "expression": payload.expression,
            "result": result,
            "display": format_number(result),
            "words": to_words(result),
            "expression_words": expression_to_words(payload.expression, result),
        }

    @app.post("/words")
    async def words(payload: WordsPayload):
        return {"number": payload.number, "words": to_words(payload.number)}

    @app.get("/history")
    async def list_history(request: Request):
        records = _session(request).history.records
        return {"count": len(records), "items": [_history_entry(i, r) for i, r in enumerate(records)]}

    @app.delete("/history")
    async def clear_history(request: Request):
        _session(request).history.clear()
        return {"count": 0, "items": []}

    @app.post("/history/{index}/load")
    async def load_history(index: int, request: Request):
        session = _session(request)
        record = session.history.get(index)
        if record is None:
            raise HTTPException(status_code=404, detail=f"No history entry at index {index}.")
        session.calculator = calc_state.load_result(session.calculator, record)
        return _state_view(session)

    @app.post("/speak")
    async def speak_result(request: Request):
        """Speak button: read the word result aloud, or stop if already speaking."""
        session = _session(request)
        words = calc_state.word_result(session.calculator)
        if not words:
            raise HTTPException(status_code=409, detail="Nothing to speak.")
        utterance = _speak_or_error(session.speaker, words, toggle=True)
        if utterance is None:
            return {"speaking": False}
        return _stream_utterance(session.speaker, utterance)

    @app.post("/tts")
    async def tts_endpoint(payload: TTSPayload, request: Request):
        """Synthesize arbitrary text and stream the returned WAV payload."""
        text = (payload.text or "").strip()
        if not text:
            raise HTTPException(status_code=409, detail="Nothing to speak.")
        speaker = _session(request).speaker
        return _stream_utterance(speaker, _speak_or_error(speaker, text))

    return app


app = create_app()
