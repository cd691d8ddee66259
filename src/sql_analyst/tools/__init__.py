"""
Tools Module
============

Tool catalog exposed to the model, grouped by phase.
"""

from sql_analyst.tools.base import Tool, ToolContext, ToolRegistry
from sql_analyst.tools.building import BUILDING_TOOLS
from sql_analyst.tools.execution import EXECUTION_TOOLS
from sql_analyst.tools.planning import PLANNING_TOOLS
from sql_analyst.tools.reporting import REPORTING_TOOLS


def build_default_registry() -> ToolRegistry:
    """Registry holding every built-in tool."""
    return ToolRegistry(PLANNING_TOOLS + BUILDING_TOOLS + EXECUTION_TOOLS + REPORTING_TOOLS)


__all__ = [
    "Tool",
    "ToolContext",
    "ToolRegistry",
    "build_default_registry",
]
