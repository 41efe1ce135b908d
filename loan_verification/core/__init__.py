"""
Core Package - Loan Verification Scoring
loan_verification/core/__init__.py

Core infrastructure: exceptions, structured logging.
"""

from loan_verification.core.exceptions import (
    ReasoningServiceError,
    ResponseParseError,
    RubricDefinitionError,
    ScoreInvariantError,
    ScoringEngineError,
)
from loan_verification.core.logging import configure_logging, get_logger

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Exceptions
    "ReasoningServiceError",
    "ResponseParseError",
    "RubricDefinitionError",
    "ScoreInvariantError",
    "ScoringEngineError",
]
