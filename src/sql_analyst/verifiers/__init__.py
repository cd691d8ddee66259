"""
Verifiers Module
================

Pre-execution verification chain used by the validate-sql tool.
"""

from sql_analyst.verifiers.base import Verifier, VerificationChain
from sql_analyst.verifiers.safety import SafetyVerifier
from sql_analyst.verifiers.schema import SchemaVerifier
from sql_analyst.verifiers.syntax import SyntaxVerifier

__all__ = [
    "Verifier",
    "VerificationChain",
    "SafetyVerifier",
    "SchemaVerifier",
    "SyntaxVerifier",
]
