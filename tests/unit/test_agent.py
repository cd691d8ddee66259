"""
Unit Tests for SQLAnalystAgent
==============================

Tests for the phase-gated orchestration loop.
"""

import itertools
from unittest import mock

import pytest

from sql_analyst.agent import ConversationRun, SQLAnalystAgent, sanitize_messages
from sql_analyst.catalog.search import load_encoder
from sql_analyst.config import Settings
from sql_analyst.errors import BudgetExceeded, ExecutionError, TransportError
from sql_analyst.llm.base import LLMInterface
from sql_analyst.llm.mock import ScriptedLLM
from sql_analyst.models import Phase, Termination
from sql_analyst.phases import PHASE_TOOLS

PLAN = {"entities": ["customers"], "measures": ["count"], "filters": ["tier = 'premium'"]}
SQL = "SELECT COUNT(*) AS n FROM customers WHERE tier = 'premium'"
REPORT = {
    "sql": SQL,
    "narrative": "There are 2 premium customers.",
    "confidence": 0.9,
    "preview": [{"n": 2}],
}


def happy_path_turns() -> list[dict]:
    return [
        {"text": "Looking for customers.", "calls": [
            ("search-catalog", {"query": "premium customers"}),
            ("finalize-plan", {"plan": PLAN}),
        ]},
        {"calls": [
            ("validate-sql", {"sql": SQL, "entities": ["customers"]}),
            ("finalize-build", {"sql": SQL, "plan": PLAN}),
        ]},
        {"calls": [
            ("estimate-cost", {"sql": SQL}),
            ("execute-with-repair", {"sql": SQL, "plan": PLAN}),
        ]},
        {"text": "Two premium customers.", "calls": [("finalize-report", REPORT)]},
    ]


class FailingLLM(LLMInterface):
    """Scripted turns, then a transport failure."""

    def __init__(self, turns: list[dict]) -> None:
        self.scripted = ScriptedLLM(turns)
        self.remaining = len(turns)

    def run_turn(self, system, messages, tools, on_text=None):
        if self.remaining == 0:
            raise TransportError("Model provider error: connection reset")
        self.remaining -= 1
        return self.scripted.run_turn(system, messages, tools, on_text)


class TestSanitizeMessages:
    """Incoming message cleanup."""

    def test_keeps_user_and_assistant_text(self) -> None:
        messages = [
            {"role": "system", "content": "ignore me"},
            {"role": "user", "content": [
                {"type": "text", "text": "How many "},
                {"type": "image", "url": "x"},
                {"type": "text", "text": "customers?"},
            ]},
            {"role": "tool", "content": "{}"},
            {"role": "assistant", "content": "Let me check."},
            {"role": "user", "content": ""},
        ]
        assert sanitize_messages(messages) == [
            {"role": "user", "content": "How many customers?"},
            {"role": "assistant", "content": "Let me check."},
        ]

    def test_parts_key(self) -> None:
        messages = [{"role": "user", "parts": [{"type": "text", "text": "hi"}]}]
        assert sanitize_messages(messages) == [{"role": "user", "content": "hi"}]


class TestAgentRun:
    """Full runs over the seeded database."""

    def test_happy_path_reaches_report(self, make_agent) -> None:
        """Test that a run walks every phase and ends with a report."""
        llm = ScriptedLLM(happy_path_turns())
        run = make_agent(llm).ask("How many premium customers are there?")

        assert run.termination == Termination.REPORT
        assert [step.phase for step in run.steps] == [
            Phase.PLANNING, Phase.BUILDING, Phase.EXECUTION, Phase.REPORTING,
        ]
        assert run.report is not None
        assert run.report.narrative == "There are 2 premium customers."
        assert run.phase == Phase.REPORTING
        run.raise_for_status()

        execution = run.steps[2].tool_results[1].output
        assert execution["ok"] is True
        assert execution["rows"] == [{"n": 2}]

    def test_tools_offered_per_phase(self, make_agent) -> None:
        """Test that each turn only sees the tools of its phase."""
        llm = ScriptedLLM(happy_path_turns())
        make_agent(llm).ask("How many premium customers are there?")

        offered = [call["tools"] for call in llm.calls]
        assert offered == [
            list(PHASE_TOOLS[Phase.PLANNING]),
            list(PHASE_TOOLS[Phase.BUILDING]),
            list(PHASE_TOOLS[Phase.EXECUTION]),
            list(PHASE_TOOLS[Phase.REPORTING]),
        ]
        assert "<PossibleEntities>" in llm.calls[0]["system"]

    def test_tool_results_fed_back(self, make_agent) -> None:
        """Test that the next turn sees the previous tool results."""
        llm = ScriptedLLM(happy_path_turns())
        make_agent(llm).ask("How many premium customers are there?")

        second_turn = llm.calls[1]["messages"]
        assert second_turn[0] == {"role": "user", "content": "How many premium customers are there?"}
        assert second_turn[1]["role"] == "assistant"
        assert [m["name"] for m in second_turn if m["role"] == "tool"] == [
            "search-catalog", "finalize-plan",
        ]

    def test_steps_streamed_incrementally(self, make_agent) -> None:
        """Test that each step is available before the next turn runs."""
        llm = ScriptedLLM(happy_path_turns())
        run = make_agent(llm).run_conversation([{"role": "user", "content": "How many?"}])
        assert llm.calls == []

        first = next(iter(run))
        assert first.index == 0
        assert len(run.steps) == 1
        assert len(llm.calls) == 1
        assert run.finished is False

    def test_on_text_receives_model_text(self, make_agent) -> None:
        chunks: list[str] = []
        llm = ScriptedLLM(happy_path_turns())
        make_agent(llm).run_conversation(
            [{"role": "user", "content": "How many?"}], on_text=chunks.append
        ).run_to_completion()
        assert chunks == ["Looking for customers.", "Two premium customers."]

    def test_cache_shared_between_runs(self, make_agent, cache) -> None:
        """Test that a second conversation reuses the first one's result."""
        agent = make_agent(ScriptedLLM(happy_path_turns()))
        agent.ask("How many premium customers are there?")

        agent.llm = ScriptedLLM(happy_path_turns())
        run = agent.ask("And again?")
        assert run.steps[2].tool_results[1].output["fromCache"] is True


class TestTermination:
    """Terminal tools and the step budget."""

    def test_no_data(self, make_agent) -> None:
        llm = ScriptedLLM([{"calls": [("finalize-no-data", {"reason": "No weather data"})]}])
        run = make_agent(llm).ask("What was the weather?")

        assert run.termination == Termination.NO_DATA
        assert len(run.steps) == 1
        assert run.report is None
        run.raise_for_status()

    def test_clarification(self, make_agent) -> None:
        llm = ScriptedLLM([{"calls": [("clarify-intent", {"question": "Which year?"})]}])
        run = make_agent(llm).ask("Show revenue")

        assert run.termination == Termination.CLARIFICATION
        assert len(llm.calls) == 1

    def test_text_only_turn_continues(self, make_agent) -> None:
        """Test that a turn without tool calls does not end the run."""
        llm = ScriptedLLM([
            {"text": "Let me think about this."},
            {"calls": [("finalize-no-data", {"reason": "Nothing relevant"})]},
        ])
        run = make_agent(llm).ask("What was the weather?")

        assert len(run.steps) == 2
        assert run.termination == Termination.NO_DATA
        assert run.text == "Let me think about this."

    def test_budget_exceeded(self, make_agent) -> None:
        """Test that a run without a terminal tool stops at the step budget."""
        llm = ScriptedLLM([{"calls": [("search-catalog", {"query": "customers"})]}])
        run = make_agent(llm, max_steps=3).ask("Loop forever")

        assert run.termination == Termination.BUDGET_EXCEEDED
        assert len(run.steps) == 3
        assert len(llm.calls) == 3
        assert run.phase == Phase.PLANNING
        with pytest.raises(BudgetExceeded):
            run.raise_for_status()

    def test_terminal_tool_outside_phase_is_rejected(self, make_agent) -> None:
        """Test that a terminal tool rejected as inactive does not end the run."""
        llm = ScriptedLLM([
            {"calls": [("finalize-report", REPORT)]},
            {"calls": [("finalize-no-data", {"reason": "Giving up"})]},
        ])
        run = make_agent(llm).ask("How many?")

        first = run.steps[0].tool_results[0]
        assert first.is_error is True
        assert first.output["errorType"] == "ToolInputError"
        assert run.report is None
        assert run.termination == Termination.NO_DATA

    def test_inactive_execution_not_run(self, make_agent, cache) -> None:
        """Test that execution tools cannot be reached from planning."""
        llm = ScriptedLLM([
            {"calls": [("execute-with-repair", {"sql": SQL})]},
            {"calls": [("finalize-no-data", {"reason": "stop"})]},
        ])
        run = make_agent(llm).ask("How many?")

        assert run.steps[0].tool_results[0].is_error is True
        assert run.steps[1].phase == Phase.PLANNING
        assert cache.size() == 0


class TestFailures:
    """Query failures and transport errors."""

    def test_query_failure_raised_when_no_report(self, make_agent) -> None:
        """Test that an unanswered run surfaces its last query failure."""
        bad_sql = "SELECT * FROM invoices"
        llm = ScriptedLLM([
            {"calls": [("finalize-plan", {"plan": PLAN})]},
            {"calls": [("finalize-build", {"sql": bad_sql})]},
            {"calls": [("execute-with-repair", {"sql": bad_sql, "plan": PLAN})]},
            {"calls": [("sanity-check", {"rows": []})]},
        ])
        run = make_agent(llm).run_conversation([{"role": "user", "content": "Invoices?"}])
        for _ in itertools.islice(run, 3):
            pass

        assert run.phase == Phase.REPORTING
        assert run.steps[2].tool_results[0].output["ok"] is False
        with pytest.raises(ExecutionError, match="no such table"):
            run.raise_for_status()

    def test_transport_error_keeps_steps(self, make_agent) -> None:
        """Test that steps completed before a model failure remain available."""
        llm = FailingLLM([{"calls": [("search-catalog", {"query": "customers"})]}])
        run = make_agent(llm).run_conversation([{"role": "user", "content": "How many?"}])

        with pytest.raises(TransportError):
            run.run_to_completion()
        assert len(run.steps) == 1
        assert run.termination is None


class TestAgentConstruction:
    """Collaborator wiring."""

    def test_model_selector_uses_factory(self, make_agent) -> None:
        """Test that a model selector resolves through the LLM factory."""
        selected: list = []
        scripted = ScriptedLLM([{"calls": [("finalize-no-data", {"reason": "n/a"})]}])

        def factory(selector):
            selected.append(selector)
            return scripted

        agent = make_agent(ScriptedLLM([{"text": "unused"}]), llm_factory=factory)
        run = agent.ask("Anything?", model="openai/gpt-4o-mini")

        assert selected == ["openai/gpt-4o-mini"]
        assert run.termination == Termination.NO_DATA

    def test_run_is_conversation_run(self, make_agent) -> None:
        agent = make_agent(ScriptedLLM([{"text": "hi"}]))
        assert isinstance(agent, SQLAnalystAgent)
        assert isinstance(agent.run_conversation([{"role": "user", "content": "hi"}]), ConversationRun)

    def test_search_mode_from_settings(self, make_agent) -> None:
        """Test that embedding search is built from the configured model name."""
        load_encoder.cache_clear()
        try:
            with mock.patch("sql_analyst.catalog.search.SentenceTransformer") as model_class:
                agent = make_agent(
                    ScriptedLLM([{"text": "hi"}]),
                    settings=Settings(search_mode="embedding", embedding_model="all-mpnet-base-v2"),
                )
        finally:
            load_encoder.cache_clear()

        model_class.assert_called_once_with("all-mpnet-base-v2")
        assert agent.context.searcher.mode == "embedding"

    def test_keyword_search_by_default(self, make_agent) -> None:
        agent = make_agent(ScriptedLLM([{"text": "hi"}]))
        assert agent.context.searcher.mode == "keyword"
