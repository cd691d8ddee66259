"""
Chat Model LLM
==============

LangChain chat-model backend with tool calling and streamed text.
"""

import openai
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_openai import ChatOpenAI

from sql_analyst.errors import TransportError
from sql_analyst.llm.base import LLMInterface, TextCallback
from sql_analyst.llm.mock import ScriptedLLM
from sql_analyst.models import ModelTurn, ToolCall
from sql_analyst.observability.logging_config import get_logger

logger = get_logger(__name__)

# Offline stand-in: declines every question without calling a provider
MOCK_TURNS = [
    {
        "text": "No language model is configured.",
        "calls": [("finalize-no-data", {"reason": "Running with the mock model selector"})],
    },
]


def to_langchain_messages(system: str, messages: list[dict]) -> list[BaseMessage]:
    """Convert the run's message dicts to LangChain messages."""
    converted: list[BaseMessage] = [SystemMessage(content=system)]
    for message in messages:
        role = message.get("role")
        if role == "user":
            converted.append(HumanMessage(content=message.get("content", "")))
        elif role == "assistant":
            converted.append(
                AIMessage(
                    content=message.get("content", ""),
                    tool_calls=[
                        {"name": c["name"], "args": c["arguments"], "id": c["id"]}
                        for c in message.get("tool_calls", [])
                    ],
                )
            )
        elif role == "tool":
            converted.append(
                ToolMessage(
                    content=message.get("content", ""),
                    tool_call_id=message["tool_call_id"],
                )
            )
        elif role == "system":
            converted.append(SystemMessage(content=message.get("content", "")))
    return converted


class ChatModelLLM(LLMInterface):
    """
    Runs turns on any LangChain chat model that supports ``bind_tools``.

    Text is streamed chunk by chunk to ``on_text``; tool calls are read from
    the aggregated message once the stream ends.
    """

    def __init__(self, chat_model: BaseChatModel, model_name: str = "") -> None:
        self.chat_model = chat_model
        self.model_name = model_name or getattr(chat_model, "model_name", "")

    def run_turn(
        self,
        system: str,
        messages: list[dict],
        tools: list[dict],
        on_text: TextCallback | None = None,
    ) -> ModelTurn:
        model = self.chat_model.bind_tools(tools) if tools else self.chat_model
        prompt = to_langchain_messages(system, messages)

        aggregate = None
        try:
            for chunk in model.stream(prompt):
                if on_text and isinstance(chunk.content, str) and chunk.content:
                    on_text(chunk.content)
                aggregate = chunk if aggregate is None else aggregate + chunk
        except openai.APIError as e:
            logger.error("model_unreachable", model=self.model_name, error=str(e))
            raise TransportError(f"Model provider error: {e!s}") from e

        if aggregate is None:
            return ModelTurn(model=self.model_name)

        text = aggregate.content if isinstance(aggregate.content, str) else ""
        calls = tuple(
            ToolCall(id=call["id"] or f"call_{i}", name=call["name"], arguments=call.get("args") or {})
            for i, call in enumerate(aggregate.tool_calls)
        )
        for invalid in getattr(aggregate, "invalid_tool_calls", None) or []:
            logger.warning("invalid_tool_call", name=invalid.get("name"), error=invalid.get("error"))
        return ModelTurn(text=text, tool_calls=calls, model=self.model_name)


def create_llm(selector: str | None = None) -> LLMInterface:
    """
    Resolve a model selector such as ``openai/gpt-4o`` to an LLM.

    Args:
        selector: ``openai/<model>``, a bare OpenAI model name, or ``mock``
            (default: settings)

    Returns:
        ChatModelLLM backed by ChatOpenAI, or a ScriptedLLM for ``mock``
    """
    from sql_analyst.config import get_settings

    settings = get_settings()
    selector = selector or settings.model
    if selector == "mock":
        return ScriptedLLM(MOCK_TURNS)

    provider, _, name = selector.partition("/")
    if not name:
        provider, name = "openai", provider
    if provider != "openai":
        raise ValueError(f"Unsupported model provider: {provider!r}")

    # Unset credentials fall back to the OPENAI_* environment variables
    options = {}
    if settings.openai_api_key:
        options["api_key"] = settings.openai_api_key
    if settings.openai_base_url:
        options["base_url"] = settings.openai_base_url

    chat_model = ChatOpenAI(model=name, streaming=True, **options)
    return ChatModelLLM(chat_model, model_name=name)
