# -*- coding: utf-8 -*-
"""ComplyScore Exception Hierarchy.

Exceptions raised by the risk-assessment engine, each carrying rich error
context for logging and for the surrounding application to surface.

Exception Hierarchy:
    ComplyScoreException (base)
    ├── CatalogException
    │   └── CatalogIntegrityError
    ├── AssessmentException
    │   ├── UnknownQuestionError
    │   ├── AnswerTypeError
    │   ├── AssessmentStateError
    │   └── AssessmentNotFoundError
    ├── InvariantViolationError
    └── ConfigurationError

All exceptions include:
- error_code: Unique error identifier
- context: Dictionary with error-specific details
- timestamp: When the error occurred

Example:
    >>> from complyscore.exceptions import CatalogIntegrityError
    >>> raise CatalogIntegrityError(
    ...     message="Bucket ranges leave a gap",
    ...     question_id="admin_003",
    ...     context={"missing_counts": [4]},
    ... )

Author: ComplyScore Platform Team
Status: Production Ready
"""

import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class ComplyScoreException(Exception):
    """Base exception for all ComplyScore errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "CS_CATALOG_INTEGRITY_ERROR")
        context: Dictionary with error-specific details
        timestamp: When the error occurred
    """

    ERROR_PREFIX = "CS"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception with rich context.

        Args:
            message: Human-readable error message
            error_code: Unique error identifier (auto-generated if not provided)
            context: Dictionary with error-specific details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.context = context or {}
        self.timestamp = datetime.now()

    def _generate_error_code(self) -> str:
        """Generate an error code from the exception class name.

        Returns:
            Error code like "CS_ASSESSMENT_ANSWER_TYPE_ERROR"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        return f"[{self.error_code}] - {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}')"
        )


# ==============================================================================
# Catalog Exceptions
# ==============================================================================

class CatalogException(ComplyScoreException):
    """Base exception for question catalog errors."""
    ERROR_PREFIX = "CS_CATALOG"


class CatalogIntegrityError(CatalogException):
    """A catalog definition is corrupt.

    Raised at catalog load time when a question's risk mapping does not cover
    its legal answers, when multi-choice buckets leave gaps or overlap, or when
    question ids collide. The engine refuses to start on such a catalog.

    Example:
        >>> raise CatalogIntegrityError(
        ...     message="Risk mapping misses options",
        ...     question_id="tech_003",
        ...     problems=["missing answer 'Weekly'"],
        ... )
    """

    def __init__(
        self,
        message: str,
        question_id: Optional[str] = None,
        problems: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize catalog integrity error.

        Args:
            message: Error message
            question_id: Offending question, if a single one is at fault
            problems: Individual integrity findings
            context: Error context
        """
        context = context or {}
        if question_id:
            context["question_id"] = question_id
        if problems:
            context["problems"] = problems
        self.question_id = question_id
        self.problems = problems or []
        super().__init__(message, context=context)


# ==============================================================================
# Assessment Exceptions
# ==============================================================================

class AssessmentException(ComplyScoreException):
    """Base exception for assessment lifecycle errors."""
    ERROR_PREFIX = "CS_ASSESSMENT"


class UnknownQuestionError(AssessmentException):
    """A response referenced a question id absent from the catalog."""

    def __init__(
        self,
        question_id: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        context["question_id"] = question_id
        self.question_id = question_id
        super().__init__(f"Unknown question: {question_id}", context=context)


class AnswerTypeError(AssessmentException):
    """An answer value does not match its question's declared answer type."""

    def __init__(
        self,
        question_id: str,
        expected_type: str,
        answer: Any,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        context.update({
            "question_id": question_id,
            "expected_type": expected_type,
            "answer_type": type(answer).__name__,
        })
        self.question_id = question_id
        self.expected_type = expected_type
        super().__init__(
            f"Answer for {question_id} must be of type {expected_type}, "
            f"got {type(answer).__name__}",
            context=context,
        )


class AssessmentStateError(AssessmentException):
    """The requested operation is not allowed in the assessment's status.

    Example:
        >>> raise AssessmentStateError(
        ...     message="Completed assessments are read-only",
        ...     assessment_id="asm_1",
        ...     status="completed",
        ... )
    """

    def __init__(
        self,
        message: str,
        assessment_id: Optional[str] = None,
        status: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        if assessment_id:
            context["assessment_id"] = assessment_id
        if status:
            context["status"] = status
        self.assessment_id = assessment_id
        self.status = status
        super().__init__(message, context=context)


class AssessmentNotFoundError(AssessmentException):
    """The persistence collaborator holds no assessment with this id."""

    def __init__(self, assessment_id: str):
        self.assessment_id = assessment_id
        super().__init__(
            f"Assessment not found: {assessment_id}",
            context={"assessment_id": assessment_id},
        )


# ==============================================================================
# Invariant and Configuration Exceptions
# ==============================================================================

class InvariantViolationError(ComplyScoreException):
    """A constant table or derived result breaks a documented invariant.

    Raised at construction time, e.g. when category weights do not sum to
    exactly 1.
    """
    ERROR_PREFIX = "CS_INVARIANT"


class ConfigurationError(ComplyScoreException):
    """Engine configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        super().__init__(message, context=context)


# ==============================================================================
# Exception Utilities
# ==============================================================================

def format_exception_chain(exc: Exception) -> str:
    """Format exception chain for logging/display.

    Args:
        exc: Exception to format

    Returns:
        Formatted string with full exception chain
    """
    lines = []
    current = exc

    while current is not None:
        if isinstance(current, ComplyScoreException):
            lines.append(str(current))
            lines.append(f"  Context: {current.context}")
        else:
            lines.append(f"{type(current).__name__}: {current}")
        current = getattr(current, "__cause__", None)

    return "\n".join(lines)


__all__ = [
    "ComplyScoreException",
    "CatalogException",
    "CatalogIntegrityError",
    "AssessmentException",
    "UnknownQuestionError",
    "AnswerTypeError",
    "AssessmentStateError",
    "AssessmentNotFoundError",
    "InvariantViolationError",
    "ConfigurationError",
    "format_exception_chain",
]
