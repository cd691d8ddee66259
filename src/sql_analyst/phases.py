"""
Phase State Machine
===================

Decides, before each model turn, which phase the run is in, which system
instructions apply and which tools are enabled.

The phase is recomputed from the full step history every time instead of
being tracked incrementally: the same history always yields the same phase.
"""

import json
from typing import Sequence

from sql_analyst.models import Phase, Step, TurnConfig
from sql_analyst.prompts import (
    BUILDING_PROMPT,
    EXECUTION_PROMPT,
    PLANNING_PROMPT,
    REPORTING_PROMPT,
)

# A successful result from the key tool moves the run into the mapped phase
TRANSITIONS: list[tuple[str, Phase]] = [
    ("finalize-plan", Phase.BUILDING),
    ("finalize-build", Phase.EXECUTION),
    ("execute-with-repair", Phase.REPORTING),
]

PHASE_TOOLS: dict[Phase, tuple[str, ...]] = {
    Phase.PLANNING: (
        "search-catalog",
        "read-entity",
        "load-entities-bulk",
        "scan-entity-properties",
        "assess-entity-coverage",
        "clarify-intent",
        "finalize-plan",
        "finalize-no-data",
    ),
    Phase.BUILDING: (
        "join-path-finder",
        "build-sql",
        "validate-sql",
        "finalize-build",
    ),
    Phase.EXECUTION: (
        "estimate-cost",
        "execute-with-repair",
    ),
    Phase.REPORTING: (
        "sanity-check",
        "format-results",
        "explain-results",
        "finalize-report",
    ),
}


def completed_tools(steps: Sequence[Step]) -> set[str]:
    """Names of every tool with at least one successful result in ``steps``."""
    return {
        result.tool_name
        for step in steps
        for result in step.successful_results()
    }


class PhaseStateMachine:
    """Maps a step history to the configuration of the next turn."""

    def __init__(
        self,
        entities: list[dict] | None = None,
        verified_queries: list[dict] | None = None,
        dialect: str = "SQL",
    ) -> None:
        """
        Initialize the state machine.

        Args:
            entities: Entity summaries embedded in the planning instructions
            verified_queries: Question/SQL examples embedded in the planning instructions
            dialect: SQL dialect named in the building and execution instructions
        """
        self.entities = entities or []
        self.verified_queries = verified_queries or []
        self.dialect = dialect

    @staticmethod
    def compute_phase(steps: Sequence[Step]) -> Phase:
        """
        Phase implied by ``steps``.

        Args:
            steps: Full step history of the run

        Returns:
            The furthest phase whose entry tool has a successful result
        """
        done = completed_tools(steps)
        phase = Phase.PLANNING
        for tool_name, target in TRANSITIONS:
            if tool_name in done and target.rank > phase.rank:
                phase = target
        return phase

    def instructions(self, phase: Phase) -> str:
        if phase == Phase.PLANNING:
            return "\n".join([
                PLANNING_PROMPT,
                f"<PossibleEntities>{json.dumps(self.entities, default=str)}</PossibleEntities>",
                f"<VerifiedQueries>{json.dumps(self.verified_queries, default=str)}</VerifiedQueries>",
            ])
        if phase == Phase.BUILDING:
            return BUILDING_PROMPT.format(dialect=self.dialect)
        if phase == Phase.EXECUTION:
            return EXECUTION_PROMPT.format(dialect=self.dialect)
        return REPORTING_PROMPT

    def configure(self, steps: Sequence[Step]) -> TurnConfig:
        """Phase, instructions and enabled tools for the next turn."""
        phase = self.compute_phase(steps)
        return TurnConfig(
            phase=phase,
            system=self.instructions(phase),
            active_tools=PHASE_TOOLS[phase],
        )
