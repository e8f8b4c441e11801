# -*- coding: utf-8 -*-
"""
Auto-Population Engine

Proposes answers for the unanswered questions of an assessment from external
company facts, prior completed assessments and an optional generative
collaborator. The engine only proposes: suggestions are applied to an
assessment by an explicit, separate call on the state manager.

For each catalog question without a human-entered response the strategies of
``population_strategies`` are tried in order; the first result whose
confidence is at least ``SUGGESTION_MIN_CONFIDENCE`` becomes the suggestion.
Questions already answered by a person are neither suggested nor counted.

Confidence buckets of the summary:
    high    confidence >= 0.8
    medium  confidence >= 0.6
    low     otherwise

Example:
    >>> from complyscore.risk_assessment.auto_population import AutoPopulationEngine
    >>> from complyscore.risk_assessment.models import Assessment
    >>> engine = AutoPopulationEngine()
    >>> result = engine.populate(
    ...     Assessment(subject_id="clinic-1"),
    ...     {"current_security": {"has_security_officer": True}},
    ... )
    >>> result.suggestions[0].question_id, result.suggestions[0].answer
    ('admin_001', 'yes')

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

from complyscore.risk_assessment.catalog import QuestionCatalog, default_catalog
from complyscore.risk_assessment.config import RiskAssessmentConfig, get_config
from complyscore.risk_assessment.metrics import record_population, record_suggestion
from complyscore.risk_assessment.models import (
    Assessment,
    OperationType,
    PopulationResult,
    PopulationSummary,
    Question,
    Suggestion,
)
from complyscore.risk_assessment.population_strategies import (
    DEFAULT_STRATEGIES,
    SUGGESTION_MIN_CONFIDENCE,
    AnswerGenerator,
    PopulationContext,
    Strategy,
)
from complyscore.risk_assessment.provenance import ProvenanceTracker, hash_payload

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE_THRESHOLD = 0.8
MEDIUM_CONFIDENCE_THRESHOLD = 0.6


def confidence_bucket(confidence: float) -> str:
    """Return "high", "medium" or "low" for a suggestion confidence."""
    if confidence >= HIGH_CONFIDENCE_THRESHOLD:
        return "high"
    if confidence >= MEDIUM_CONFIDENCE_THRESHOLD:
        return "medium"
    return "low"


class AutoPopulationEngine:
    """Runs the strategy cascade over an assessment's open questions.

    Attributes:
        catalog: Question catalog whose questions are populated.
        config: Engine configuration (generative timeout and worker count).
        generator: Optional generative collaborator; ignored when generative
            inference is disabled in the configuration.
        strategies: Ordered strategy functions.
        provenance: Optional tracker receiving a POPULATE entry per run.
    """

    def __init__(
        self,
        catalog: Optional[QuestionCatalog] = None,
        config: Optional[RiskAssessmentConfig] = None,
        generator: Optional[AnswerGenerator] = None,
        strategies: Optional[Sequence[Strategy]] = None,
        provenance: Optional[ProvenanceTracker] = None,
    ) -> None:
        self.catalog = catalog or default_catalog()
        self.config = config or get_config()
        self.generator = generator if self.config.enable_generative_inference else None
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES
        self.provenance = provenance
        self._executor: Optional[ThreadPoolExecutor] = None
        logger.info(
            "AutoPopulationEngine initialized (strategies=%d, generative=%s)",
            len(self.strategies), self.generator is not None,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def populate(
        self,
        assessment: Assessment,
        facts: Union[Mapping[str, Any], BaseModel, None],
        previous_assessments: Sequence[Assessment] = (),
    ) -> PopulationResult:
        """Propose answers for every question not answered by a person.

        Args:
            assessment: Assessment to populate. It is not modified.
            facts: External company facts (mapping or CompanyProfile).
            previous_assessments: Prior assessments available to the
                historical strategy.

        Returns:
            PopulationResult with suggestions, reconciled summary and
            per-question confidence scores.
        """
        start = time.monotonic()
        context = PopulationContext(
            facts=self._facts_of(facts),
            assessment_id=assessment.assessment_id,
            subject_id=assessment.subject_id,
            previous_assessments=tuple(previous_assessments),
            generator=self.generator,
            executor=self._get_executor(),
            generative_timeout_seconds=self.config.generative_timeout_seconds,
        )

        suggestions: List[Suggestion] = []
        counts = {"high": 0, "medium": 0, "low": 0}
        total = 0
        for question in self.catalog:
            existing = assessment.response_for(question.question_id)
            if existing is not None and not existing.inferred:
                continue
            total += 1
            suggestion = self.suggest(question, context)
            if suggestion is None:
                continue
            suggestions.append(suggestion)
            counts[confidence_bucket(suggestion.confidence)] += 1
            record_suggestion(suggestion.strategy)

        summary = PopulationSummary(
            total_questions=total,
            suggested_questions=len(suggestions),
            high_confidence=counts["high"],
            medium_confidence=counts["medium"],
            low_confidence=counts["low"],
        )
        provenance_hash = hash_payload({
            "assessment_id": assessment.assessment_id,
            "catalog_version": self.catalog.version,
            "suggestions": [s.model_dump(mode="json") for s in suggestions],
        })
        result = PopulationResult(
            assessment_id=assessment.assessment_id,
            suggestions=suggestions,
            summary=summary,
            confidence_scores={s.question_id: s.confidence for s in suggestions},
            provenance_hash=provenance_hash,
        )

        if self.provenance is not None:
            self.provenance.record(
                OperationType.POPULATE,
                assessment.assessment_id,
                details={
                    "suggested": summary.suggested_questions,
                    "total": summary.total_questions,
                    "strategies": {s.question_id: s.strategy for s in suggestions},
                    "sources": {s.question_id: s.sources for s in suggestions},
                    "result_hash": provenance_hash,
                },
            )

        elapsed = time.monotonic() - start
        record_population(elapsed)
        logger.info(
            "Populated assessment %s: %d/%d suggested in %.3fs",
            assessment.assessment_id, summary.suggested_questions,
            summary.total_questions, elapsed,
        )
        return result

    def suggest(self, question: Question, context: PopulationContext) -> Optional[Suggestion]:
        """Run the cascade for one question; None when no strategy succeeds."""
        for strategy in self.strategies:
            outcome = strategy(question, context)
            if outcome is None:
                continue
            if outcome.confidence < SUGGESTION_MIN_CONFIDENCE:
                logger.debug(
                    "%s proposed %r for %s below minimum confidence (%.2f)",
                    outcome.strategy, outcome.answer, question.question_id,
                    outcome.confidence,
                )
                continue
            logger.debug(
                "%s answered %s with %r (%.2f)",
                outcome.strategy, question.question_id, outcome.answer,
                outcome.confidence,
            )
            return Suggestion(
                question_id=question.question_id,
                answer=outcome.answer,
                confidence=outcome.confidence,
                rationale=outcome.rationale,
                sources=list(outcome.sources),
                strategy=outcome.strategy,
            )
        logger.debug("No strategy answered %s", question.question_id)
        return None

    def shutdown(self) -> None:
        """Stop the generative worker pool, if one was started."""
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def __enter__(self) -> AutoPopulationEngine:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_executor(self) -> Optional[ThreadPoolExecutor]:
        if self.generator is None:
            return None
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.generative_max_workers,
                thread_name_prefix="complyscore-generative",
            )
        return self._executor

    @staticmethod
    def _facts_of(facts: Union[Mapping[str, Any], BaseModel, None]) -> Dict[str, Any]:
        if facts is None:
            return {}
        if isinstance(facts, BaseModel):
            return facts.model_dump(mode="python")
        return dict(facts)


__all__ = [
    "HIGH_CONFIDENCE_THRESHOLD",
    "MEDIUM_CONFIDENCE_THRESHOLD",
    "AutoPopulationEngine",
    "confidence_bucket",
]
