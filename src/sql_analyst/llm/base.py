"""
Base LLM Interface
==================

Abstract interface for the model that drives a run.
"""

from abc import ABC, abstractmethod
from typing import Callable

from sql_analyst.models import ModelTurn

TextCallback = Callable[[str], None]


class LLMInterface(ABC):
    """Runs one model turn with a set of callable tools."""

    @abstractmethod
    def run_turn(
        self,
        system: str,
        messages: list[dict],
        tools: list[dict],
        on_text: TextCallback | None = None,
    ) -> ModelTurn:
        """
        Generate the next assistant turn.

        Args:
            system: System instructions for this turn
            messages: Conversation so far: ``{"role": "user"|"assistant"|"tool", ...}``
            tools: OpenAI-style function declarations the model may call
            on_text: Called with each fragment of text as it is produced

        Returns:
            ModelTurn with the text and the tool calls the model requested

        Raises:
            TransportError: The model provider could not be reached
        """
        pass
