"""
Scripted LLM
============

Deterministic LLM for tests and demonstrations.
"""

import itertools

from sql_analyst.llm.base import LLMInterface, TextCallback
from sql_analyst.models import ModelTurn, ToolCall


class ScriptedLLM(LLMInterface):
    """
    Replays a fixed sequence of turns.

    Each scripted turn is either a ModelTurn or a shorthand dict
    ``{"text": ..., "calls": [(tool_name, arguments), ...]}``. Once the
    script is exhausted the last turn is repeated.
    """

    def __init__(self, turns: list[ModelTurn | dict]) -> None:
        """
        Initialize with scripted turns.

        Args:
            turns: Turns returned in order, one per ``run_turn`` call
        """
        if not turns:
            raise ValueError("ScriptedLLM needs at least one turn")
        self._ids = itertools.count(1)
        self.turns = [self._coerce(turn) for turn in turns]
        self.calls: list[dict] = []

    def _coerce(self, turn: ModelTurn | dict) -> ModelTurn:
        if isinstance(turn, ModelTurn):
            return turn
        calls = tuple(
            ToolCall(id=f"call_{next(self._ids)}", name=name, arguments=arguments)
            for name, arguments in turn.get("calls", [])
        )
        return ModelTurn(text=turn.get("text", ""), tool_calls=calls, model="scripted")

    def run_turn(
        self,
        system: str,
        messages: list[dict],
        tools: list[dict],
        on_text: TextCallback | None = None,
    ) -> ModelTurn:
        index = min(len(self.calls), len(self.turns) - 1)
        self.calls.append({
            "system": system,
            "messages": list(messages),
            "tools": [t["function"]["name"] for t in tools],
        })
        turn = self.turns[index]
        if on_text and turn.text:
            on_text(turn.text)
        return turn

    def reset(self) -> None:
        """Reset recorded calls for fresh test runs."""
        self.calls = []
