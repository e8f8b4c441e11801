# -*- coding: utf-8 -*-
"""
Prometheus Metrics - Risk Assessment Engine

Metrics:
    1. complyscore_scores_total (Counter)
    2. complyscore_score_duration_seconds (Histogram)
    3. complyscore_suggestions_total (Counter)
    4. complyscore_strategy_failures_total (Counter)
    5. complyscore_population_duration_seconds (Histogram)
    6. complyscore_responses_recorded_total (Counter)
    7. complyscore_tier_promotions_total (Counter)
    8. complyscore_action_items_total (Counter)
    9. complyscore_unknown_questions_total (Counter)
    10. complyscore_dashboard_summaries_total (Counter)

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

# 1. Scores computed
scores_total = Counter(
    "complyscore_scores_total",
    "Total overall scores computed",
    labelnames=["risk_level"],
)

# 2. Scoring duration
score_duration_seconds = Histogram(
    "complyscore_score_duration_seconds",
    "Overall score computation duration in seconds",
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1),
)

# 3. Suggestions produced by strategy
suggestions_total = Counter(
    "complyscore_suggestions_total",
    "Total auto-population suggestions produced",
    labelnames=["strategy"],
)

# 4. Strategy failures
strategy_failures_total = Counter(
    "complyscore_strategy_failures_total",
    "Total cascade strategy failures by reason",
    labelnames=["strategy", "reason"],
)

# 5. Population run duration
population_duration_seconds = Histogram(
    "complyscore_population_duration_seconds",
    "Auto-population run duration in seconds",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0),
)

# 6. Responses recorded
responses_recorded_total = Counter(
    "complyscore_responses_recorded_total",
    "Total responses recorded on assessments",
    labelnames=["inferred"],
)

# 7. Tier promotions
tier_promotions_total = Counter(
    "complyscore_tier_promotions_total",
    "Total assessment tier promotions",
    labelnames=["from_tier", "to_tier"],
)

# 8. Action items
action_items_total = Counter(
    "complyscore_action_items_total",
    "Total action items generated by priority",
    labelnames=["priority"],
)

# 9. Unknown question ids seen while scoring
unknown_questions_total = Counter(
    "complyscore_unknown_questions_total",
    "Responses ignored because their question id is not in the catalog",
)

# 10. Dashboard summaries
dashboard_summaries_total = Counter(
    "complyscore_dashboard_summaries_total",
    "Total dashboard summaries built by overall health",
    labelnames=["overall_health"],
)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def record_score(risk_level: str, duration_seconds: float) -> None:
    """Record an overall score computation.

    Args:
        risk_level: Resulting risk level label.
        duration_seconds: Computation duration in seconds.
    """
    scores_total.labels(risk_level=risk_level).inc()
    score_duration_seconds.observe(duration_seconds)


def record_suggestion(strategy: str) -> None:
    """Record a suggestion produced by a cascade strategy."""
    suggestions_total.labels(strategy=strategy).inc()


def record_strategy_failure(strategy: str, reason: str) -> None:
    """Record a strategy that raised, timed out or returned an illegal answer.

    Args:
        strategy: Strategy name.
        reason: Short failure reason ("timeout", "error", "invalid_answer").
    """
    strategy_failures_total.labels(strategy=strategy, reason=reason).inc()


def record_population(duration_seconds: float) -> None:
    """Record an auto-population run duration."""
    population_duration_seconds.observe(duration_seconds)


def record_response(inferred: bool) -> None:
    """Record a response written to an assessment."""
    responses_recorded_total.labels(inferred=str(inferred).lower()).inc()


def record_tier_promotion(from_tier: str, to_tier: str) -> None:
    """Record an assessment tier promotion."""
    tier_promotions_total.labels(from_tier=from_tier, to_tier=to_tier).inc()


def record_action_item(priority: str) -> None:
    """Record a generated action item."""
    action_items_total.labels(priority=priority).inc()


def record_unknown_question() -> None:
    """Record a response ignored for referencing an unknown question."""
    unknown_questions_total.inc()


def record_dashboard_summary(overall_health: str) -> None:
    """Record a dashboard summary build."""
    dashboard_summaries_total.labels(overall_health=overall_health).inc()


__all__ = [
    # Metric objects
    "scores_total",
    "score_duration_seconds",
    "suggestions_total",
    "strategy_failures_total",
    "population_duration_seconds",
    "responses_recorded_total",
    "tier_promotions_total",
    "action_items_total",
    "unknown_questions_total",
    "dashboard_summaries_total",
    # Helper functions
    "record_score",
    "record_suggestion",
    "record_strategy_failure",
    "record_population",
    "record_response",
    "record_tier_promotion",
    "record_action_item",
    "record_unknown_question",
    "record_dashboard_summary",
]
