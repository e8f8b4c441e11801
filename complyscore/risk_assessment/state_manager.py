# -*- coding: utf-8 -*-
"""
Assessment State Manager

Lifecycle operations on assessments: creation, recording and replacing
responses, applying auto-population suggestions, activity tracking,
pause/resume, completion, retake and tier promotion.

Persistence is delegated to an injected ``AssessmentRepository``; the
in-memory implementation below is used by default and in tests. The
manager never keeps assessments of its own between calls: every operation
loads, validates, mutates a copy and saves it back.

Status rules:
    - paused and completed assessments reject writes
    - ``resume`` is the only way out of paused
    - ``retake`` is the only way out of completed; it clears all responses
      and resets the tier to BASIC
    - ``advance_tier`` never demotes and never skips a tier

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union

from complyscore.exceptions import (
    AnswerTypeError,
    AssessmentNotFoundError,
    AssessmentStateError,
    UnknownQuestionError,
)
from complyscore.risk_assessment.config import RiskAssessmentConfig, get_config
from complyscore.risk_assessment.metrics import record_response, record_tier_promotion
from complyscore.risk_assessment.models import (
    Assessment,
    AssessmentStatus,
    ComplexityTier,
    OperationType,
    PopulationResult,
    Response,
    Suggestion,
)
from complyscore.risk_assessment.progression import ProgressionManager
from complyscore.risk_assessment.provenance import ProvenanceTracker
from complyscore.risk_assessment.scorer import answer_matches_type

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


# =============================================================================
# Persistence collaborator
# =============================================================================


class AssessmentRepository(Protocol):
    """Storage of assessment records."""

    def get(self, assessment_id: str) -> Optional[Assessment]:
        """Return the stored assessment, or None."""
        ...

    def save(self, assessment: Assessment) -> None:
        """Insert or replace an assessment."""
        ...

    def list_for_subject(self, subject_id: str) -> List[Assessment]:
        """Return every assessment of one subject."""
        ...


class InMemoryAssessmentRepository:
    """Dictionary-backed repository holding deep copies."""

    def __init__(self) -> None:
        self._assessments: Dict[str, Assessment] = {}

    def get(self, assessment_id: str) -> Optional[Assessment]:
        stored = self._assessments.get(assessment_id)
        return stored.model_copy(deep=True) if stored is not None else None

    def save(self, assessment: Assessment) -> None:
        self._assessments[assessment.assessment_id] = assessment.model_copy(deep=True)

    def list_for_subject(self, subject_id: str) -> List[Assessment]:
        return [
            a.model_copy(deep=True)
            for a in self._assessments.values()
            if a.subject_id == subject_id
        ]

    def __len__(self) -> int:
        return len(self._assessments)


# =============================================================================
# AssessmentStateManager
# =============================================================================


_READ_ONLY_STATUSES = (AssessmentStatus.PAUSED, AssessmentStatus.COMPLETED)


class AssessmentStateManager:
    """Applies lifecycle operations through the persistence collaborator.

    Attributes:
        repository: Persistence collaborator.
        progression: Progression manager used for tier promotion.
        catalog: Question catalog responses are validated against.
        provenance: Optional audit trail.
        config: Engine configuration (default module id).
    """

    def __init__(
        self,
        repository: Optional[AssessmentRepository] = None,
        progression: Optional[ProgressionManager] = None,
        provenance: Optional[ProvenanceTracker] = None,
        config: Optional[RiskAssessmentConfig] = None,
    ) -> None:
        self.repository = repository if repository is not None else InMemoryAssessmentRepository()
        self.progression = progression or ProgressionManager()
        self.catalog = self.progression.catalog
        self.provenance = provenance
        self.config = config or get_config()
        logger.info(
            "AssessmentStateManager initialized (repository=%s)",
            type(self.repository).__name__,
        )

    # ------------------------------------------------------------------
    # Creation and lookup
    # ------------------------------------------------------------------

    def create(
        self,
        subject_id: str,
        module_id: Optional[str] = None,
        actor: str = "system",
    ) -> Assessment:
        """Create an empty assessment at the BASIC tier.

        Args:
            subject_id: Organisation being assessed.
            module_id: Assessment module (defaults to the configured module).
            actor: User or component creating the assessment.

        Returns:
            The stored assessment.
        """
        assessment = Assessment(
            subject_id=subject_id,
            module_id=module_id or self.config.default_module,
        )
        self.repository.save(assessment)
        self._record(OperationType.CREATE, assessment, actor, {
            "subject_id": subject_id,
            "module_id": assessment.module_id,
        })
        logger.info("Created assessment %s for %s", assessment.assessment_id, subject_id)
        return assessment

    def get(self, assessment_id: str) -> Assessment:
        """Load an assessment.

        Raises:
            AssessmentNotFoundError: If the repository has no such assessment.
        """
        assessment = self.repository.get(assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(assessment_id)
        return assessment

    def history(self, subject_id: str) -> List[Assessment]:
        """Completed assessments of a subject, newest first."""
        completed = [
            a for a in self.repository.list_for_subject(subject_id)
            if a.status == AssessmentStatus.COMPLETED
        ]
        completed.sort(key=lambda a: a.completed_at or a.updated_at, reverse=True)
        return completed

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def record_response(
        self,
        assessment_id: str,
        question_id: str,
        answer: Any,
        comments: Optional[str] = None,
        actor: str = "system",
    ) -> Assessment:
        """Record a human-entered answer, replacing any earlier one.

        The new response is appended at the end of the response list.

        Raises:
            UnknownQuestionError: If the question is not in the catalog.
            AnswerTypeError: If the answer does not match the question type.
            AssessmentStateError: If the assessment is paused or completed.
        """
        assessment = self._load_writable(assessment_id)
        question = self.catalog.get(question_id)
        if question is None:
            raise UnknownQuestionError(question_id, context={"assessment_id": assessment_id})
        if not answer_matches_type(question, answer):
            raise AnswerTypeError(question_id, question.answer_type.value, answer)

        self._replace_response(assessment, Response(
            question_id=question_id,
            answer=answer,
            comments=comments,
        ))
        self._touch(assessment)
        self.repository.save(assessment)

        record_response(inferred=False)
        self._record(OperationType.RESPONSE_RECORDED, assessment, actor, {
            "question_id": question_id,
            "answer": answer,
        })
        return assessment

    def apply_suggestions(
        self,
        assessment_id: str,
        suggestions: Union[PopulationResult, Iterable[Suggestion]],
        actor: str = "system",
    ) -> Assessment:
        """Materialise suggestions as inferred responses.

        Suggestions for questions already answered by a person, or for
        questions missing from the catalog, are skipped. Each call that
        applies at least one suggestion counts as one AI interaction.

        Raises:
            AssessmentStateError: If the assessment is paused or completed.
        """
        assessment = self._load_writable(assessment_id)
        if isinstance(suggestions, PopulationResult):
            suggestions = suggestions.suggestions

        applied: List[str] = []
        for suggestion in suggestions:
            existing = assessment.response_for(suggestion.question_id)
            if existing is not None and not existing.inferred:
                logger.debug(
                    "Keeping human answer for %s over suggestion", suggestion.question_id,
                )
                continue
            question = self.catalog.get(suggestion.question_id)
            if question is None or not answer_matches_type(question, suggestion.answer):
                logger.warning(
                    "Skipping unusable suggestion for %s", suggestion.question_id,
                )
                continue
            self._replace_response(assessment, Response(
                question_id=suggestion.question_id,
                answer=suggestion.answer,
                inferred=True,
                confidence=suggestion.confidence,
                source=suggestion.strategy,
            ))
            applied.append(suggestion.question_id)
            record_response(inferred=True)

        if applied:
            assessment.ai_interactions += 1
            self._touch(assessment)
            self.repository.save(assessment)
            self._record(OperationType.SUGGESTIONS_APPLIED, assessment, actor, {
                "question_ids": applied,
            })
        logger.info("Applied %d suggestions to %s", len(applied), assessment_id)
        return assessment

    def record_activity(
        self,
        assessment_id: str,
        minutes: float = 0.0,
        ai_interactions: int = 0,
        actor: str = "system",
    ) -> Assessment:
        """Add time spent and AI interactions to the engagement counters."""
        if minutes < 0 or ai_interactions < 0:
            raise ValueError("activity counters cannot decrease")
        assessment = self._load_writable(assessment_id)
        assessment.time_spent_minutes += minutes
        assessment.ai_interactions += ai_interactions
        assessment.updated_at = _utcnow()
        self.repository.save(assessment)
        self._record(OperationType.ACTIVITY_RECORDED, assessment, actor, {
            "minutes": minutes,
            "ai_interactions": ai_interactions,
        })
        return assessment

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def pause(self, assessment_id: str, reason: str, actor: str = "system") -> Assessment:
        assessment = self._load_writable(assessment_id)
        return self._transition(
            assessment, AssessmentStatus.PAUSED, actor, pause_reason=reason,
        )

    def resume(self, assessment_id: str, actor: str = "system") -> Assessment:
        assessment = self.get(assessment_id)
        if assessment.status != AssessmentStatus.PAUSED:
            raise AssessmentStateError(
                "Only paused assessments can be resumed",
                assessment_id=assessment_id,
                status=assessment.status.value,
            )
        return self._transition(
            assessment, AssessmentStatus.IN_PROGRESS, actor, pause_reason=None,
        )

    def complete(self, assessment_id: str, actor: str = "system") -> Assessment:
        """Mark an assessment completed; it becomes read-only until retaken."""
        assessment = self._load_writable(assessment_id)
        assessment.completed_at = _utcnow()
        return self._transition(assessment, AssessmentStatus.COMPLETED, actor)

    def retake(self, assessment_id: str, actor: str = "system") -> Assessment:
        """Clear all responses and counters and restart at the BASIC tier."""
        assessment = self.get(assessment_id)
        previous_status = assessment.status
        assessment.responses = []
        assessment.tier = ComplexityTier.BASIC
        assessment.status = AssessmentStatus.NOT_STARTED
        assessment.time_spent_minutes = 0.0
        assessment.ai_interactions = 0
        assessment.completed_at = None
        assessment.pause_reason = None
        assessment.updated_at = _utcnow()
        self.repository.save(assessment)
        self._record(OperationType.RETAKE, assessment, actor, {
            "previous_status": previous_status.value,
        })
        logger.info("Assessment %s reset for retake", assessment_id)
        return assessment

    def advance_tier(self, assessment_id: str, actor: str = "system") -> Assessment:
        """Promote the assessment by one tier when it qualifies."""
        assessment = self._load_writable(assessment_id)
        current = ComplexityTier(assessment.tier)
        target = self.progression.next_tier(assessment)
        if target <= current:
            return assessment

        assessment.tier = target
        assessment.updated_at = _utcnow()
        self.repository.save(assessment)
        record_tier_promotion(current.label, target.label)
        self._record(OperationType.TIER_PROMOTED, assessment, actor, {
            "from_tier": current.value,
            "to_tier": target.value,
        })
        logger.info(
            "Assessment %s promoted %s -> %s", assessment_id, current.label, target.label,
        )
        return assessment

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load_writable(self, assessment_id: str) -> Assessment:
        assessment = self.get(assessment_id)
        if assessment.status in _READ_ONLY_STATUSES:
            raise AssessmentStateError(
                f"Assessment is {assessment.status.value} and cannot be modified",
                assessment_id=assessment_id,
                status=assessment.status.value,
            )
        return assessment

    @staticmethod
    def _replace_response(assessment: Assessment, response: Response) -> None:
        assessment.responses = [
            r for r in assessment.responses if r.question_id != response.question_id
        ]
        assessment.responses.append(response)

    @staticmethod
    def _touch(assessment: Assessment) -> None:
        if assessment.status == AssessmentStatus.NOT_STARTED:
            assessment.status = AssessmentStatus.IN_PROGRESS
        assessment.updated_at = _utcnow()

    def _transition(
        self,
        assessment: Assessment,
        status: AssessmentStatus,
        actor: str,
        **changes: Any,
    ) -> Assessment:
        previous = assessment.status
        assessment.status = status
        for name, value in changes.items():
            setattr(assessment, name, value)
        assessment.updated_at = _utcnow()
        self.repository.save(assessment)
        self._record(OperationType.STATUS_CHANGED, assessment, actor, {
            "from": previous.value,
            "to": status.value,
            **{k: v for k, v in changes.items() if v is not None},
        })
        logger.info(
            "Assessment %s: %s -> %s", assessment.assessment_id, previous.value, status.value,
        )
        return assessment

    def _record(
        self,
        operation: OperationType,
        assessment: Assessment,
        actor: str,
        details: Dict[str, Any],
    ) -> None:
        if self.provenance is not None:
            self.provenance.record(operation, assessment.assessment_id, details, actor=actor)


__all__ = [
    "AssessmentRepository",
    "InMemoryAssessmentRepository",
    "AssessmentStateManager",
]
