"""
Custom Exceptions - Loan Verification Scoring
loan_verification/core/exceptions.py

Exception classes for the verification scoring engine.

Only RubricDefinitionError and ScoreInvariantError are meant to escape to a
caller; both indicate a programming error. Service and parse errors are
raised internally and converted into tagged Score Results by the holistic
adapter.
"""

from typing import Optional


class ScoringEngineError(Exception):
    """Base exception for the scoring engine."""

    pass


class RubricDefinitionError(ScoringEngineError):
    """Rubric table is malformed (caps, weights or item keys)."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ScoreInvariantError(ScoringEngineError):
    """A produced score falls outside its structural bounds."""

    def __init__(self, field: str, value, bound):
        self.field = field
        self.value = value
        self.bound = bound
        super().__init__(f"{field}={value} violates bound {bound}")


class ReasoningServiceError(ScoringEngineError):
    """Transport or HTTP failure calling the external reasoning service."""

    def __init__(
        self,
        message: str,
        transient: bool = False,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.transient = transient
        self.status_code = status_code
        super().__init__(message)


class ResponseParseError(ScoringEngineError):
    """Reasoning service reply has no usable JSON object."""

    def __init__(self, message: str = "No valid JSON object in response"):
        self.message = message
        super().__init__(message)
