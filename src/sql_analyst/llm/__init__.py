"""
LLM Module
==========

Pluggable model backends that run one tool-calling turn at a time.
"""

from sql_analyst.llm.base import LLMInterface
from sql_analyst.llm.mock import ScriptedLLM

__all__ = [
    "LLMInterface",
    "ScriptedLLM",
]
