# -*- coding: utf-8 -*-
"""
Risk Scorer

Converts answered responses into per-category scores, a weighted overall
score, a risk-level classification and the list of critical remediation
issues. All arithmetic is deterministic and uses ``Decimal`` with half-up
rounding, so identical responses always produce identical scores.

Category Score Formula (0-100, higher = lower risk):
    category_score = round(100 - sum(risk_i * weight_i) / sum(weight_i))

    Only questions of the category that have a response take part. A
    category with no answered question scores 0: "no data" is reported as
    the most conservative score rather than excluded, which keeps unscored
    categories visible. Product owners have been asked whether unanswered
    categories should instead drop out of the overall average; until then
    the behaviour is kept as is.

Overall Score Formula:
    overall = round(sum(category_score_c * CATEGORY_WEIGHTS[c]))

    CATEGORY_WEIGHTS (version 2024.1):
        administrative  0.40
        technical       0.35
        physical        0.25

Risk Levels (inclusive lower bounds, shared by every caller):
    Low Risk       score >= 80
    Medium Risk    score >= 60
    High Risk      score >= 40
    Critical Risk  otherwise

Answer resolution:
    - boolean: ``True``/``False`` or ``"yes"``/``"no"``
    - single-choice / free-text: direct lookup of the answer value
    - multi-choice: bucket containing the count of distinct selected options
    - a value of the right type without a mapping resolves to risk 50
    - a value of the wrong type is unresolved and contributes nothing

Example:
    >>> from complyscore.risk_assessment.scorer import RiskScorer
    >>> from complyscore.risk_assessment.models import Response
    >>> scorer = RiskScorer()
    >>> result = scorer.score_overall([Response(question_id="admin_001", answer="no")])
    >>> result.category_scores["administrative"], result.overall_score
    (5, 2)

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from complyscore.exceptions import InvariantViolationError
from complyscore.risk_assessment.catalog import QuestionCatalog, default_catalog
from complyscore.risk_assessment.metrics import record_score, record_unknown_question
from complyscore.risk_assessment.models import (
    AnswerType,
    Assessment,
    OperationType,
    Question,
    Response,
    RiskDescriptor,
    RiskLevel,
    SafeguardCategory,
    ScoreResult,
)
from complyscore.risk_assessment.provenance import ProvenanceTracker, hash_payload

logger = logging.getLogger(__name__)


# =============================================================================
# Versioned constants
# =============================================================================

CATEGORY_WEIGHTS_VERSION = "2024.1"

CATEGORY_WEIGHTS: Mapping[SafeguardCategory, Decimal] = MappingProxyType({
    SafeguardCategory.ADMINISTRATIVE: Decimal("0.40"),
    SafeguardCategory.TECHNICAL: Decimal("0.35"),
    SafeguardCategory.PHYSICAL: Decimal("0.25"),
})

RISK_LEVEL_THRESHOLDS: Tuple[Tuple[int, RiskLevel], ...] = (
    (80, RiskLevel.LOW),
    (60, RiskLevel.MEDIUM),
    (40, RiskLevel.HIGH),
)

UNRESOLVED_RISK_SCORE = 50
CRITICAL_ISSUE_THRESHOLD = 85

_UNKNOWN_ANSWER = RiskDescriptor(
    risk_score=UNRESOLVED_RISK_SCORE, rationale="Unknown response",
)


# =============================================================================
# Shared helpers
# =============================================================================


def round_half_up(value: Union[Decimal, float, int]) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def classify_risk_level(score: Union[int, float]) -> RiskLevel:
    """Map a 0-100 score to its risk level using RISK_LEVEL_THRESHOLDS."""
    for lower_bound, level in RISK_LEVEL_THRESHOLDS:
        if score >= lower_bound:
            return level
    return RiskLevel.CRITICAL


def verify_category_weights(
    weights: Mapping[SafeguardCategory, Decimal],
    categories: Optional[Iterable[SafeguardCategory]] = None,
) -> None:
    """Check that weights are positive, sum to exactly 1 and cover categories.

    Raises:
        InvariantViolationError: If any check fails.
    """
    total = sum(weights.values(), Decimal("0"))
    if total != Decimal("1"):
        raise InvariantViolationError(
            f"Category weights sum to {total}, expected exactly 1",
            context={"weights": {c.value: str(w) for c, w in weights.items()}},
        )
    non_positive = [c.value for c, w in weights.items() if w <= 0]
    if non_positive:
        raise InvariantViolationError(
            "Category weights must be positive",
            context={"categories": non_positive},
        )
    if categories is not None:
        missing = [c.value for c in categories if c not in weights]
        if missing:
            raise InvariantViolationError(
                "Catalog categories have no weight",
                context={"categories": missing},
            )


def normalise_answer(question: Question, answer: Any) -> Optional[Union[str, int]]:
    """Reduce an answer to its lookup key, or None when the type is wrong.

    Returns the mapping key for boolean / single-choice / free-text questions
    and the distinct legal selection count for multi-choice questions.
    """
    if question.answer_type == AnswerType.BOOLEAN:
        if isinstance(answer, bool):
            return "yes" if answer else "no"
        if isinstance(answer, str):
            return answer.strip().lower()
        return None

    if question.answer_type == AnswerType.MULTI_CHOICE:
        if not isinstance(answer, (list, tuple, set, frozenset)):
            return None
        if not all(isinstance(item, str) for item in answer):
            return None
        legal = set(question.options)
        return len({item for item in answer if item in legal})

    # single-choice and free-text answers are strings
    if not isinstance(answer, str):
        return None
    if answer in question.risk_mapping:
        return answer
    folded = answer.strip().lower()
    for key in question.risk_mapping:
        if key.lower() == folded or key.lower() == folded.replace(" ", "_"):
            return key
    return answer


def answer_matches_type(question: Question, answer: Any) -> bool:
    return normalise_answer(question, answer) is not None


def resolve_risk(question: Question, answer: Any) -> Optional[RiskDescriptor]:
    """Resolve an answer to its risk descriptor.

    Returns:
        The mapped descriptor, the risk-50 default for an unmapped value of the
        right type, or None for a value of the wrong type.
    """
    key = normalise_answer(question, answer)
    if key is None:
        return None
    if question.answer_type == AnswerType.MULTI_CHOICE:
        for bucket in question.buckets:
            if bucket.contains(key):
                return bucket.descriptor
        return _UNKNOWN_ANSWER
    return question.risk_mapping.get(key, _UNKNOWN_ANSWER)


# =============================================================================
# RiskScorer
# =============================================================================


ResolvedResponse = Tuple[Response, Question, RiskDescriptor]


class RiskScorer:
    """Deterministic weighted risk scorer.

    Attributes:
        catalog: Question catalog used to resolve responses.
        weights: Category weights (sum exactly 1).
        weights_version: Version label reported on every ScoreResult.
        provenance: Optional tracker receiving a SCORE entry per assessment.
    """

    def __init__(
        self,
        catalog: Optional[QuestionCatalog] = None,
        weights: Optional[Mapping[SafeguardCategory, Decimal]] = None,
        weights_version: str = CATEGORY_WEIGHTS_VERSION,
        provenance: Optional[ProvenanceTracker] = None,
    ) -> None:
        self.catalog = catalog or default_catalog()
        self.weights = MappingProxyType(dict(weights or CATEGORY_WEIGHTS))
        self.weights_version = weights_version
        self.provenance = provenance
        verify_category_weights(self.weights, self.catalog.categories)
        logger.info(
            "RiskScorer initialized (catalog=%s, weights=%s)",
            self.catalog.version, self.weights_version,
        )

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, response: Response) -> Optional[Tuple[Question, RiskDescriptor]]:
        """Resolve one response against the catalog.

        Unknown question ids and type-mismatched answers are logged and
        return None.
        """
        question = self.catalog.get(response.question_id)
        if question is None:
            logger.warning(
                "Ignoring response for unknown question %s", response.question_id,
            )
            record_unknown_question()
            return None
        descriptor = resolve_risk(question, response.answer)
        if descriptor is None:
            logger.warning(
                "Ignoring %s answer of type %s for question %s",
                question.answer_type.value,
                type(response.answer).__name__,
                question.question_id,
            )
            return None
        return question, descriptor

    def resolve_all(self, responses: Iterable[Response]) -> List[ResolvedResponse]:
        """Resolve responses in order, keeping the last one per question."""
        latest: Dict[str, Response] = {}
        for response in responses:
            # a replacement moves to the end, as it does in an assessment
            latest.pop(response.question_id, None)
            latest[response.question_id] = response

        resolved: List[ResolvedResponse] = []
        for response in latest.values():
            outcome = self.resolve(response)
            if outcome is not None:
                question, descriptor = outcome
                resolved.append((response, question, descriptor))
        return resolved

    def risk_score_for(self, response: Response) -> Optional[int]:
        outcome = self.resolve(response)
        return outcome[1].risk_score if outcome else None

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def score_category(
        self,
        responses: Union[Assessment, Iterable[Response]],
        category: Union[SafeguardCategory, str],
    ) -> int:
        """Score one safeguard category (0 when nothing in it is answered).

        Args:
            responses: Assessment or responses to score.
            category: Category enum or its value.

        Returns:
            Category score 0-100.
        """
        cat = SafeguardCategory(category)
        return self._category_score(self.resolve_all(self._responses_of(responses)), cat)

    def score_overall(
        self,
        responses: Union[Assessment, Iterable[Response]],
    ) -> ScoreResult:
        """Score every category and combine them with the fixed weights.

        Args:
            responses: Assessment or responses to score. Passing an
                Assessment also records a provenance entry.

        Returns:
            ScoreResult with overall score, category scores, risk level and
            critical issues.
        """
        start = time.monotonic()
        resolved = self.resolve_all(self._responses_of(responses))

        category_scores: Dict[str, int] = {}
        weighted_total = Decimal("0")
        for category, weight in self.weights.items():
            score = self._category_score(resolved, category)
            category_scores[category.value] = score
            weighted_total += Decimal(score) * weight

        overall = round_half_up(weighted_total)
        risk_level = classify_risk_level(overall)
        critical_issues = self.critical_issues(r for r, _, _ in resolved)

        provenance_hash = hash_payload({
            "weights_version": self.weights_version,
            "catalog_version": self.catalog.version,
            "responses": [[r.question_id, r.answer] for r, _, _ in resolved],
            "category_scores": category_scores,
            "overall": overall,
        })
        result = ScoreResult(
            overall_score=overall,
            category_scores=category_scores,
            risk_level=risk_level,
            critical_issues=critical_issues,
            answered_questions=len(resolved),
            weights_version=self.weights_version,
            provenance_hash=provenance_hash,
        )

        if isinstance(responses, Assessment) and self.provenance is not None:
            self.provenance.record(
                OperationType.SCORE,
                responses.assessment_id,
                details={
                    "overall_score": overall,
                    "risk_level": risk_level.value,
                    "result_hash": provenance_hash,
                },
            )

        elapsed = time.monotonic() - start
        record_score(risk_level.value, elapsed)
        logger.debug(
            "Scored %d responses: overall=%d (%s) in %.4fs",
            len(resolved), overall, risk_level.value, elapsed,
        )
        return result

    def critical_issues(self, responses: Union[Assessment, Iterable[Response]]) -> List[str]:
        """Remediations of answered responses with risk >= 85, in response order."""
        return [
            descriptor.remediation
            for _, _, descriptor in self.resolve_all(self._responses_of(responses))
            if descriptor.risk_score >= CRITICAL_ISSUE_THRESHOLD and descriptor.remediation
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _responses_of(responses: Union[Assessment, Iterable[Response]]) -> Iterable[Response]:
        if isinstance(responses, Assessment):
            return responses.responses
        return responses

    @staticmethod
    def _category_score(resolved: List[ResolvedResponse], category: SafeguardCategory) -> int:
        weighted_risk = 0
        total_weight = 0
        for _, question, descriptor in resolved:
            if question.category == category:
                weighted_risk += descriptor.risk_score * question.weight
                total_weight += question.weight
        if total_weight == 0:
            return 0
        return round_half_up(Decimal(100) - Decimal(weighted_risk) / Decimal(total_weight))


__all__ = [
    "CATEGORY_WEIGHTS",
    "CATEGORY_WEIGHTS_VERSION",
    "RISK_LEVEL_THRESHOLDS",
    "UNRESOLVED_RISK_SCORE",
    "CRITICAL_ISSUE_THRESHOLD",
    "RiskScorer",
    "answer_matches_type",
    "classify_risk_level",
    "normalise_answer",
    "resolve_risk",
    "round_half_up",
    "verify_category_weights",
]
