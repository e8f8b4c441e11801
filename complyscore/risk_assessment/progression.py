# -*- coding: utf-8 -*-
"""
Assessment Progression Manager

Decides when an assessment moves to the next complexity tier and turns
high-risk responses into prioritised remediation action items.

Tier promotion (never skips a tier, never demotes):
    BASIC -> INTERMEDIATE         completion >= 80 and engagement > 0.7
    INTERMEDIATE -> ADVANCED      completion >= 70 and time spent >= 15 min
    ADVANCED -> COMPREHENSIVE     completion >= 60 and any answer with risk >= 80

Engagement score (capped at 1.0):
    +0.3  any AI interaction
    +0.2  more than 5 minutes spent
    +0.2  any response with comments
    +0.3  any human-entered response

Action items (risk >= 70), due dates counted from ``now``:
    critical  risk >= 90   7 days
    high      risk >= 80  14 days
    medium    risk >= 70  30 days
Estimated effort is 30 minutes for administrative items and 60 otherwise.

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, List, Mapping, Optional, Tuple

from complyscore.risk_assessment.catalog import QuestionCatalog
from complyscore.risk_assessment.metrics import record_action_item
from complyscore.risk_assessment.models import (
    ActionItem,
    ActionPriority,
    Assessment,
    ComplexityTier,
    NextStep,
    SafeguardCategory,
)
from complyscore.risk_assessment.scorer import RiskScorer, round_half_up

logger = logging.getLogger(__name__)

ACTION_ITEM_THRESHOLD = 70
HIGH_RISK_AREA_THRESHOLD = 80

# (lower bound, priority, days until due), highest first
ACTION_PRIORITY_BANDS: Tuple[Tuple[int, ActionPriority, int], ...] = (
    (90, ActionPriority.CRITICAL, 7),
    (80, ActionPriority.HIGH, 14),
    (70, ActionPriority.MEDIUM, 30),
)

# minutes of work per action item
EFFORT_MINUTES_BY_CATEGORY: Mapping[SafeguardCategory, int] = {
    SafeguardCategory.ADMINISTRATIVE: 30,
    SafeguardCategory.PHYSICAL: 60,
    SafeguardCategory.TECHNICAL: 60,
}


@dataclass(frozen=True)
class PromotionRule:
    """Conditions for leaving ``from_tier``."""
    from_tier: ComplexityTier
    min_completion: float
    condition: Callable[[ProgressionManager, Assessment], bool]
    description: str


PROMOTION_RULES: Mapping[ComplexityTier, PromotionRule] = {
    ComplexityTier.BASIC: PromotionRule(
        from_tier=ComplexityTier.BASIC,
        min_completion=80,
        condition=lambda mgr, a: mgr.engagement_score(a) > 0.7,
        description="completion >= 80% and engagement > 0.7",
    ),
    ComplexityTier.INTERMEDIATE: PromotionRule(
        from_tier=ComplexityTier.INTERMEDIATE,
        min_completion=70,
        condition=lambda mgr, a: a.time_spent_minutes >= 15,
        description="completion >= 70% and at least 15 minutes spent",
    ),
    ComplexityTier.ADVANCED: PromotionRule(
        from_tier=ComplexityTier.ADVANCED,
        min_completion=60,
        condition=lambda mgr, a: mgr.has_high_risk_areas(a),
        description="completion >= 60% and a high-risk area identified",
    ),
}


def priority_for_risk(risk_score: int) -> Optional[Tuple[ActionPriority, int]]:
    """Return (priority, days until due) for a risk score, or None below 70."""
    if risk_score < ACTION_ITEM_THRESHOLD:
        return None
    for lower_bound, priority, days in ACTION_PRIORITY_BANDS:
        if risk_score >= lower_bound:
            return priority, days
    return None


class ProgressionManager:
    """Tier promotion, completion tracking and action item generation.

    Attributes:
        scorer: Scorer used to resolve responses to risk.
        catalog: Catalog shared with the scorer.
    """

    def __init__(self, scorer: Optional[RiskScorer] = None) -> None:
        self.scorer = scorer or RiskScorer()
        self.catalog: QuestionCatalog = self.scorer.catalog
        logger.info("ProgressionManager initialized (catalog=%s)", self.catalog.version)

    # ------------------------------------------------------------------
    # Progress signals
    # ------------------------------------------------------------------

    def engagement_score(self, assessment: Assessment) -> float:
        score = Decimal("0")
        if assessment.ai_interactions > 0:
            score += Decimal("0.3")
        if assessment.time_spent_minutes > 5:
            score += Decimal("0.2")
        if any(r.has_comments for r in assessment.responses):
            score += Decimal("0.2")
        if any(not r.inferred for r in assessment.responses):
            score += Decimal("0.3")
        return float(min(Decimal("1.0"), score))

    def completion_percentage(
        self,
        assessment: Assessment,
        tier: Optional[ComplexityTier] = None,
    ) -> int:
        """Share of the tier's question set that has a response, 0-100.

        Args:
            assessment: Assessment to measure.
            tier: Tier whose question set is used (defaults to the
                assessment's own tier).
        """
        tier = tier or assessment.tier
        tier_questions = {q.question_id for q in self.catalog.questions_for_tier(tier)}
        if not tier_questions:
            return 0
        answered = tier_questions.intersection(assessment.answered_question_ids)
        return round_half_up(Decimal(len(answered) * 100) / Decimal(len(tier_questions)))

    def has_high_risk_areas(self, assessment: Assessment) -> bool:
        return any(
            descriptor.risk_score >= HIGH_RISK_AREA_THRESHOLD
            for _, _, descriptor in self.scorer.resolve_all(assessment.responses)
        )

    # ------------------------------------------------------------------
    # Tier promotion
    # ------------------------------------------------------------------

    def next_tier(self, assessment: Assessment) -> ComplexityTier:
        """Return the tier the assessment qualifies for: current or current + 1.

        Args:
            assessment: Assessment to evaluate.

        Returns:
            The next tier if the promotion rule of the current tier holds,
            otherwise the current tier.
        """
        current = ComplexityTier(assessment.tier)
        rule = PROMOTION_RULES.get(current)
        if rule is None:
            return current

        completion = self.completion_percentage(assessment)
        if completion >= rule.min_completion and rule.condition(self, assessment):
            promoted = ComplexityTier(current.value + 1)
            logger.debug(
                "Assessment %s qualifies for %s (%s)",
                assessment.assessment_id, promoted.label, rule.description,
            )
            return promoted
        return current

    # ------------------------------------------------------------------
    # Action items and next steps
    # ------------------------------------------------------------------

    def recommended_actions(
        self,
        assessment: Assessment,
        now: Optional[datetime] = None,
    ) -> List[ActionItem]:
        """Generate action items from the current responses.

        Args:
            assessment: Assessment whose responses are examined.
            now: Reference time for due dates (defaults to current UTC).

        Returns:
            Action items sorted by priority descending, then due date
            ascending.
        """
        now = now or datetime.now(timezone.utc)
        items: List[ActionItem] = []
        for response, question, descriptor in self.scorer.resolve_all(assessment.responses):
            band = priority_for_risk(descriptor.risk_score)
            if band is None:
                continue
            priority, days = band
            items.append(ActionItem(
                action_id=f"action_{assessment.assessment_id}_{question.question_id}",
                question_id=question.question_id,
                category=question.category,
                title=f"Address: {question.text}",
                description=descriptor.remediation or descriptor.rationale,
                priority=priority,
                risk_score=descriptor.risk_score,
                due_date=now + timedelta(days=days),
                estimated_effort=EFFORT_MINUTES_BY_CATEGORY[question.category],
            ))
            record_action_item(priority.value)

        items.sort(key=lambda item: (-item.priority.rank, item.due_date))
        return items

    def recommended_next_steps(self, assessment: Assessment) -> List[NextStep]:
        completion = self.completion_percentage(assessment)
        if completion < 25:
            return [NextStep(
                action="continue_basic_questions",
                description="Complete the essential questions first",
                estimated_minutes=10,
                priority=ActionPriority.HIGH,
            )]
        if completion < 75:
            return [NextStep(
                action="complete_current_section",
                description="Finish the current section to maintain momentum",
                estimated_minutes=5,
                priority=ActionPriority.MEDIUM,
            )]
        return [NextStep(
            action="review_and_finalize",
            description="Review your responses and finalize the assessment",
            estimated_minutes=5,
            priority=ActionPriority.LOW,
        )]


__all__ = [
    "ACTION_ITEM_THRESHOLD",
    "ACTION_PRIORITY_BANDS",
    "EFFORT_MINUTES_BY_CATEGORY",
    "HIGH_RISK_AREA_THRESHOLD",
    "PROMOTION_RULES",
    "PromotionRule",
    "ProgressionManager",
    "priority_for_risk",
]
