"""
SQL Analyst Agent
=================

Orchestration loop that drives model turns through the planning, building,
execution and reporting phases until a terminal tool result is observed or
the step budget runs out.
"""

import json
import uuid
from typing import Callable, Iterator

from sql_analyst.cache import ResultCache, get_result_cache
from sql_analyst.catalog.base import EntityCatalog
from sql_analyst.catalog.search import CatalogSearcher, create_catalog_searcher
from sql_analyst.catalog.yaml_catalog import YamlEntityCatalog
from sql_analyst.config import Settings, get_settings
from sql_analyst.cost import CostEstimator, create_cost_estimator
from sql_analyst.database import DatabaseExecutor, create_executor
from sql_analyst.errors import BudgetExceeded, ExecutionError, RepairExhausted, SQLAnalystError
from sql_analyst.execution import ExecutionWithRepair
from sql_analyst.llm.base import LLMInterface, TextCallback
from sql_analyst.llm.chat_model import create_llm
from sql_analyst.models import FinalizeReport, Phase, Step, Termination
from sql_analyst.observability.logging_config import get_logger, log_context
from sql_analyst.observability.metrics import ACTIVE_RUNS, track_run_metrics
from sql_analyst.phases import PhaseStateMachine
from sql_analyst.repair import ColumnRepairEngine, RepairEngine
from sql_analyst.tools import ToolContext, ToolRegistry, build_default_registry
from sql_analyst.verifiers.base import VerificationChain

logger = get_logger(__name__)

DEFAULT_MAX_STEPS = 100

# Checked in this order when one step holds several terminal results
TERMINAL_TOOLS: list[tuple[str, Termination]] = [
    ("finalize-report", Termination.REPORT),
    ("finalize-no-data", Termination.NO_DATA),
    ("clarify-intent", Termination.CLARIFICATION),
]

ALLOWED_ROLES = {"user", "assistant"}


def sanitize_messages(messages: list[dict]) -> list[dict]:
    """
    Reduce incoming chat messages to plain ``{role, content}`` text.

    Content may be a string or a list of parts; only ``text`` parts are kept.
    """
    cleaned = []
    for message in messages or []:
        role = message.get("role")
        if role not in ALLOWED_ROLES:
            continue
        content = message.get("content")
        if content is None:
            content = message.get("parts")
        if isinstance(content, list):
            content = "".join(
                str(part.get("text", ""))
                for part in content
                if isinstance(part, dict) and part.get("type") == "text"
            )
        if content:
            cleaned.append({"role": role, "content": str(content)})
    return cleaned


class ConversationRun:
    """
    One conversation driven to termination.

    Iterating the run executes it, yielding each Step as soon as its tools
    have finished. Steps produced so far stay available on ``steps`` even if
    iteration stops early or an exception escapes.
    """

    def __init__(
        self,
        messages: list[dict],
        llm: LLMInterface,
        state_machine: PhaseStateMachine,
        registry: ToolRegistry,
        context: ToolContext,
        max_steps: int = DEFAULT_MAX_STEPS,
        on_text: TextCallback | None = None,
    ) -> None:
        self.run_id = uuid.uuid4().hex
        self.llm = llm
        self.state_machine = state_machine
        self.registry = registry
        self.context = context
        self.max_steps = max_steps
        self.on_text = on_text

        self._messages = list(messages)
        self._steps: list[Step] = []
        self.termination: Termination | None = None
        self.report: FinalizeReport | None = None
        self.query_failures: list[SQLAnalystError] = []
        self._iterator = self._drive()

    def __iter__(self) -> Iterator[Step]:
        return self._iterator

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps)

    @property
    def phase(self) -> Phase:
        return self.state_machine.compute_phase(self._steps)

    @property
    def text(self) -> str:
        return "\n".join(step.text for step in self._steps if step.text)

    @property
    def finished(self) -> bool:
        return self.termination is not None

    def run_to_completion(self) -> "ConversationRun":
        """Drive the run until it terminates."""
        for _ in self:
            pass
        return self

    def raise_for_status(self) -> None:
        """
        Raise if the run ended without an answer.

        Raises:
            BudgetExceeded: The step budget was used up
            RepairExhausted: No report, and the last query could not be repaired
            ExecutionError: No report, and the last query failed without repair
        """
        if self.termination == Termination.BUDGET_EXCEEDED:
            raise BudgetExceeded(self.max_steps)
        if self.report is None and self.query_failures:
            raise self.query_failures[-1]

    def _drive(self) -> Iterator[Step]:
        with log_context(run_id=self.run_id):
            yield from self._turns()

    def _turns(self) -> Iterator[Step]:
        ACTIVE_RUNS.inc()
        logger.info("run_started", max_steps=self.max_steps, messages=len(self._messages))
        previous_phase = None
        try:
            for index in range(self.max_steps):
                config = self.state_machine.configure(self._steps)
                if config.phase != previous_phase:
                    logger.info("phase_changed", phase=config.phase.value, step=index)
                    previous_phase = config.phase

                turn = self.llm.run_turn(
                    config.system,
                    self._messages,
                    self.registry.specs(config.active_tools),
                    on_text=self.on_text,
                )
                results = tuple(
                    self.registry.dispatch(call, config.active_tools, self.context)
                    for call in turn.tool_calls
                )
                step = Step(
                    index=index,
                    phase=config.phase,
                    text=turn.text,
                    tool_calls=turn.tool_calls,
                    tool_results=results,
                )
                self._append(step)
                logger.info(
                    "step_completed",
                    step=index,
                    phase=config.phase.value,
                    tools=[call.name for call in turn.tool_calls],
                )
                yield step

                termination = self._terminal(step)
                if termination is not None:
                    self.termination = termination
                    logger.info("run_finished", termination=termination.value, steps=len(self._steps))
                    break
            else:
                self.termination = Termination.BUDGET_EXCEEDED
                logger.warning("budget_exceeded", max_steps=self.max_steps)
        finally:
            ACTIVE_RUNS.dec()
            if self.termination is not None:
                track_run_metrics(self.termination.value, len(self._steps))

    def _append(self, step: Step) -> None:
        """Record a step and extend the model-facing message history."""
        self._steps.append(step)
        self._messages.append({
            "role": "assistant",
            "content": step.text,
            "tool_calls": [
                {"id": c.id, "name": c.name, "arguments": c.arguments}
                for c in step.tool_calls
            ],
        })
        for result in step.tool_results:
            self._messages.append({
                "role": "tool",
                "tool_call_id": result.tool_call_id,
                "name": result.tool_name,
                "content": json.dumps(result.output, default=str),
            })

        for result in step.successful_results():
            if result.tool_name == "finalize-report":
                self.report = FinalizeReport.model_validate(result.output)
            elif result.tool_name == "execute-with-repair" and not result.output.get("ok", True):
                self.query_failures.append(_failure_error(result.output))

    @staticmethod
    def _terminal(step: Step) -> Termination | None:
        names = {result.tool_name for result in step.successful_results()}
        for tool_name, termination in TERMINAL_TOOLS:
            if tool_name in names:
                return termination
        return None


def _failure_error(output: dict) -> SQLAnalystError:
    if output.get("errorType") == RepairExhausted.__name__:
        return RepairExhausted(
            output.get("error", ""),
            attempted_sql=output.get("attemptedSql", ""),
            repair_reason=output.get("repairReason"),
        )
    return ExecutionError(output.get("error", ""), sql=output.get("attemptedSql", ""))


class SQLAnalystAgent:
    """
    Entry point for natural-language questions.

    Collaborators not passed in are built from settings. The result cache
    and the database executor are shared by every run of the agent; nothing
    else is.
    """

    def __init__(
        self,
        llm: LLMInterface | None = None,
        catalog: EntityCatalog | None = None,
        executor: DatabaseExecutor | None = None,
        repair_engine: RepairEngine | None = None,
        cache: ResultCache | None = None,
        cost_estimator: CostEstimator | None = None,
        verification_chain: VerificationChain | None = None,
        searcher: CatalogSearcher | None = None,
        registry: ToolRegistry | None = None,
        max_steps: int | None = None,
        llm_factory: Callable[[str | None], LLMInterface] | None = None,
        settings: Settings | None = None,
    ) -> None:
        """
        Initialize the agent.

        Args:
            llm: Model used when no selector is passed to run_conversation
            catalog: Semantic-entity catalog
            executor: Database executor
            repair_engine: Repair strategy for failing queries
            cache: Result cache (defaults to the process-wide instance)
            cost_estimator: Cost estimation strategy
            verification_chain: Verifiers used by validate-sql
            searcher: Catalog search used by search-catalog
            registry: Tool registry (defaults to every built-in tool)
            max_steps: Step budget per run
            llm_factory: Resolves a model selector to an LLM
            settings: Settings used for anything not passed explicitly
        """
        settings = settings or get_settings()
        self.llm = llm
        self.llm_factory = llm_factory or create_llm
        self.catalog = catalog or YamlEntityCatalog(settings.entities_dir)
        self.executor = executor or create_executor(
            settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        self.cache = cache or get_result_cache()
        self.registry = registry or build_default_registry()
        self.max_steps = max_steps or settings.max_steps
        self.execution = ExecutionWithRepair(
            executor=self.executor,
            repair_engine=repair_engine or ColumnRepairEngine(),
            catalog=self.catalog,
            cache=self.cache,
        )
        self.context = ToolContext(
            catalog=self.catalog,
            executor=self.executor,
            execution=self.execution,
            cost_estimator=cost_estimator or create_cost_estimator(settings.cost_strategy, self.executor),
            verification_chain=verification_chain or VerificationChain(),
            searcher=searcher
            or create_catalog_searcher(self.catalog, settings.search_mode, settings.embedding_model),
        )

    def run_conversation(
        self,
        messages: list[dict],
        model: str | None = None,
        on_text: TextCallback | None = None,
    ) -> ConversationRun:
        """
        Start a run for a conversation.

        Nothing executes until the returned run is iterated.

        Args:
            messages: Chat history ending with the user's question
            model: Model selector such as ``openai/gpt-4o``
            on_text: Receives model text incrementally

        Returns:
            ConversationRun yielding Steps
        """
        llm = self.llm if (self.llm is not None and model is None) else self.llm_factory(model)
        state_machine = PhaseStateMachine(
            entities=self.catalog.list_entities(),
            verified_queries=self.catalog.verified_queries(),
            dialect=self.executor.dialect,
        )
        return ConversationRun(
            messages=sanitize_messages(messages),
            llm=llm,
            state_machine=state_machine,
            registry=self.registry,
            context=self.context,
            max_steps=self.max_steps,
            on_text=on_text,
        )

    def ask(self, question: str, model: str | None = None) -> ConversationRun:
        """Run a single question to completion."""
        return self.run_conversation([{"role": "user", "content": question}], model=model).run_to_completion()
