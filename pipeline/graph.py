from __future__ import annotations

from typing import Any, Dict, Optional, TypedDict

from langgraph.graph import END, StateGraph

from calculator.evaluator import EvaluationError, evaluate
from calculator.words import expression_to_words, to_words


class State(TypedDict, total=False):
    expression: str
    result: Optional[float]
    error: Optional[EvaluationError]
    words: str
    expression_words: str
    answer: str


# Short enough that spoken replies stay snappy
SPOKEN_MAX_LEN = 300


def evaluator(state: State) -> Dict[str, Any]:
    """Run the expression through the parser; the outcome is tagged, never raised."""
    outcome = evaluate(state.get("expression", "") or "")
    return {"result": outcome.value, "error": outcome.error}


def route_outcome(state: State) -> str:
    return "fail" if state.get("error") is not None else "transcribe"


def transcriber(state: State) -> Dict[str, Any]:
    """Spell out the result and the whole calculation."""
    result = state["result"]
    return {
        "words": to_words(result),
        "expression_words": expression_to_words(state.get("expression", ""), result),
    }


def failure(state: State) -> Dict[str, Any]:
    return {"result": None, "words": to_words(state.get("error")), "expression_words": ""}


def answerer(state: State) -> Dict[str, Any]:
    """
    Produce a voice-friendly sentence. Long transcriptions fall back to the
    result words alone so the speech stays short.
    """
    error = state.get("error")
    if error is not None:
        reason = str(error) or "the expression is invalid"
        return {"answer": f"I couldn’t work that out because {reason}."}

    spoken = state.get("expression_words") or ""
    if not spoken or len(spoken) > SPOKEN_MAX_LEN:
        spoken = f"The answer is {state.get('words', '')}"
    return {"answer": spoken.rstrip(".") + "."}


def build_graph():
    """Tie the evaluate trigger together: evaluate, then transcribe or fail, then answer."""
    g = StateGraph(State)
    g.add_node("evaluate", evaluator)
    g.add_node("transcribe", transcriber)
    g.add_node("fail", failure)
    g.add_node("compose_answer", answerer)
    g.set_entry_point("evaluate")
    g.add_conditional_edges("evaluate", route_outcome, {"transcribe": "transcribe", "fail": "fail"})
    g.add_edge("transcribe", "compose_answer")
    g.add_edge("fail", "compose_answer")
    g.add_edge("compose_answer", END)
    return g.compile()
