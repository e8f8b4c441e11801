# -*- coding: utf-8 -*-
"""
Compliance Dashboard

Derives the dashboard of one subject from its assessments: progress across
modules, the dated task timeline, status labels, quick wins and the
priority focus. The most recently updated assessment supplies the risk
score and the action items.

Status labels:
    compliance   score >= 80 Compliant, >= 60 Mostly Compliant,
                 >= 40 Needs Improvement, otherwise Non-Compliant
    progress     completion >= 80 On Track, >= 50 In Progress,
                 otherwise Getting Started

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Sequence, Union

from complyscore.risk_assessment.benchmarking import BenchmarkEngine, overall_health
from complyscore.risk_assessment.config import RiskAssessmentConfig, get_config
from complyscore.risk_assessment.metrics import record_dashboard_summary
from complyscore.risk_assessment.models import (
    ActionItem,
    ActionPriority,
    Assessment,
    AssessmentStatus,
    BenchmarkResult,
    DashboardSummary,
    Industry,
    KeyMetrics,
    PeerComparison,
    ProgressMetrics,
    ReviewSchedule,
    ScoreResult,
    StatusIndicators,
    TaskType,
    UpcomingTask,
)
from complyscore.risk_assessment.progression import ProgressionManager
from complyscore.risk_assessment.schedule import add_months
from complyscore.risk_assessment.scorer import round_half_up

logger = logging.getLogger(__name__)

MODULE_COMPLETE_PERCENTAGE = 80
QUICK_WIN_MAX_MINUTES = 30
MAX_QUICK_WINS = 3
FOCUS_SCORE_THRESHOLD = 80

QUARTERLY_REVIEW_MONTHS = 3
QUARTERLY_REVIEW_MINUTES = 15
OVERDUE_ASSESSMENT_MINUTES = 30

COMPLIANCE_STATUSES = (
    (80, "Compliant"),
    (60, "Mostly Compliant"),
    (40, "Needs Improvement"),
)
PROGRESS_STATUSES = (
    (80, "On Track"),
    (50, "In Progress"),
)
COMPLETION_MILESTONES = (25, 50, 75)

BENCHMARK_STATUSES = {
    PeerComparison.ABOVE: "Above Average",
    PeerComparison.AVERAGE: "Average",
    PeerComparison.BELOW: "Below Average",
}


def compliance_status(score: int) -> str:
    for lower_bound, label in COMPLIANCE_STATUSES:
        if score >= lower_bound:
            return label
    return "Non-Compliant"


def progress_status(completion: int) -> str:
    for lower_bound, label in PROGRESS_STATUSES:
        if completion >= lower_bound:
            return label
    return "Getting Started"


def next_milestone(completion: int) -> str:
    for threshold in COMPLETION_MILESTONES:
        if completion < threshold:
            return f"{threshold}% completion"
    return "100% completion"


def action_items_status(items: Sequence[ActionItem]) -> str:
    critical = sum(1 for item in items if item.priority == ActionPriority.CRITICAL)
    if critical:
        return f"{critical} Critical Items"
    return "All Good"


def quick_wins(items: Sequence[ActionItem]) -> List[ActionItem]:
    """First three action items estimated at 30 minutes or less."""
    return [i for i in items if i.estimated_effort <= QUICK_WIN_MAX_MINUTES][:MAX_QUICK_WINS]


def priority_focus(score: ScoreResult, items: Sequence[ActionItem]) -> List[str]:
    """Focus areas: critical items first, then the weakest category below 80."""
    focus: List[str] = []
    if any(item.priority == ActionPriority.CRITICAL for item in items):
        focus.append("Complete critical action items")
    if score.category_scores:
        # ties go to the first category in weight order
        weakest = min(score.category_scores, key=lambda c: score.category_scores[c])
        if score.category_scores[weakest] < FOCUS_SCORE_THRESHOLD:
            focus.append(f"Improve {weakest} safeguards")
    return focus or ["Maintain current safeguards"]


class DashboardBuilder:
    """Builds dashboard summaries, progress metrics and task timelines.

    Attributes:
        progression: Progression manager (and through it the scorer).
        benchmarking: Benchmark engine for peer comparison.
        config: RiskAssessmentConfig instance.
    """

    def __init__(
        self,
        progression: Optional[ProgressionManager] = None,
        benchmarking: Optional[BenchmarkEngine] = None,
        config: Optional[RiskAssessmentConfig] = None,
    ) -> None:
        self.config = config or get_config()
        self.progression = progression or ProgressionManager()
        self.benchmarking = benchmarking or BenchmarkEngine(config=self.config)
        logger.info("DashboardBuilder initialized")

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def progress_metrics(self, assessments: Sequence[Assessment]) -> ProgressMetrics:
        """Aggregate completion over each assessment's current tier.

        Only answers to questions of that tier count, so completion never
        exceeds 100%.
        """
        total = 0
        answered = 0
        completed_modules = 0
        for assessment in assessments:
            tier_ids = {
                q.question_id
                for q in self.progression.catalog.questions_for_tier(assessment.tier)
            }
            total += len(tier_ids)
            answered += len(tier_ids.intersection(assessment.answered_question_ids))
            if self.progression.completion_percentage(assessment) >= MODULE_COMPLETE_PERCENTAGE:
                completed_modules += 1

        completion = (
            round_half_up(Decimal(answered * 100) / Decimal(total)) if total else 0
        )
        return ProgressMetrics(
            completion_percentage=completion,
            modules_completed=completed_modules,
            total_modules=len(assessments),
            questions_answered=answered,
            total_questions=total,
            last_activity=max((a.updated_at for a in assessments), default=None),
            next_milestone=next_milestone(completion),
        )

    # ------------------------------------------------------------------
    # Timeline
    # ------------------------------------------------------------------

    def upcoming_tasks(
        self,
        subject_id: str,
        assessments: Sequence[Assessment],
        action_items: Sequence[ActionItem],
        now: Optional[datetime] = None,
    ) -> List[UpcomingTask]:
        """Quarterly review, overdue assessments and top action items by due date.

        Args:
            subject_id: Assessed organisation.
            assessments: The subject's assessments.
            action_items: Pending action items, highest priority first.
            now: Reference time (defaults to current UTC).

        Returns:
            Tasks sorted by due date; ties keep the order above.
        """
        now = now or datetime.now(timezone.utc)
        tasks = [UpcomingTask(
            task_id=f"quarterly_{subject_id}",
            title="Quarterly Compliance Review",
            description="Update your assessments and review progress",
            due_date=add_months(now, QUARTERLY_REVIEW_MONTHS),
            task_type=TaskType.QUARTERLY_REVIEW,
            estimated_minutes=QUARTERLY_REVIEW_MINUTES,
            priority=ActionPriority.MEDIUM,
        )]

        due_after = timedelta(days=self.config.assessment_due_days)
        for assessment in assessments:
            due_date = assessment.created_at + due_after
            if assessment.status == AssessmentStatus.COMPLETED or due_date >= now:
                continue
            tasks.append(UpcomingTask(
                task_id=f"overdue_{assessment.assessment_id}",
                title=f"Complete {assessment.module_id.upper()} Assessment",
                description="This assessment is overdue for completion",
                due_date=due_date,
                task_type=TaskType.ASSESSMENT_COMPLETION,
                estimated_minutes=OVERDUE_ASSESSMENT_MINUTES,
                priority=ActionPriority.HIGH,
            ))

        for item in list(action_items)[: self.config.max_upcoming_actions]:
            tasks.append(UpcomingTask(
                task_id=f"action_reminder_{item.action_id}",
                title=item.title,
                description=item.description,
                due_date=item.due_date,
                task_type=TaskType.ACTION_ITEM,
                estimated_minutes=item.estimated_effort,
                priority=item.priority,
            ))

        tasks.sort(key=lambda t: t.due_date)
        return tasks

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def summarize(
        self,
        subject_id: str,
        assessments: Sequence[Assessment],
        industry: Union[Industry, str, None] = None,
        employee_count: Optional[int] = None,
        schedule: Optional[ReviewSchedule] = None,
        now: Optional[datetime] = None,
    ) -> DashboardSummary:
        """Build the dashboard of a subject.

        Args:
            subject_id: Assessed organisation.
            assessments: The subject's assessments, in any order.
            industry: Industry used for peer comparison.
            employee_count: Headcount used for the peer size category.
            schedule: Review schedule; its next review sets
                ``days_until_review`` instead of the quarterly default.
            now: Reference time (defaults to current UTC).

        Returns:
            DashboardSummary for the subject.
        """
        now = now or datetime.now(timezone.utc)
        current = max(assessments, key=lambda a: a.updated_at, default=None)

        if current is not None:
            score = self.progression.scorer.score_overall(current)
            items = self.progression.recommended_actions(current, now=now)
        else:
            score = self.progression.scorer.score_overall([])
            items = []

        progress = self.progress_metrics(assessments)
        benchmark = self.benchmarking.compare(score.overall_score, industry, employee_count)
        tasks = self.upcoming_tasks(subject_id, assessments, items, now=now)
        health = overall_health(score.overall_score, progress.completion_percentage)

        summary = DashboardSummary(
            subject_id=subject_id,
            overall_health=health,
            key_metrics=KeyMetrics(
                risk_score=score.overall_score,
                completion_rate=progress.completion_percentage,
                critical_issues=sum(
                    1 for item in items if item.priority == ActionPriority.CRITICAL
                ),
                days_until_review=self._days_until_review(schedule, now),
            ),
            status_indicators=StatusIndicators(
                compliance_status=compliance_status(score.overall_score),
                assessment_progress=progress_status(progress.completion_percentage),
                action_items_status=action_items_status(items),
                benchmark_performance=self._benchmark_status(benchmark),
            ),
            progress=progress,
            benchmark=benchmark,
            action_items=items,
            upcoming_tasks=tasks,
            quick_wins=quick_wins(items),
            priority_focus=priority_focus(score, items),
        )
        record_dashboard_summary(health.value)
        logger.debug(
            "Dashboard for %s: health=%s score=%d completion=%d%%",
            subject_id, health.value, score.overall_score, progress.completion_percentage,
        )
        return summary

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _days_until_review(schedule: Optional[ReviewSchedule], now: datetime) -> int:
        next_review = schedule.next_review(now) if schedule is not None else None
        if next_review is None:
            next_review = add_months(now, QUARTERLY_REVIEW_MONTHS)
        return max(0, (next_review - now).days)

    @staticmethod
    def _benchmark_status(benchmark: BenchmarkResult) -> str:
        return BENCHMARK_STATUSES[benchmark.peer_comparison]


__all__ = [
    "DashboardBuilder",
    "action_items_status",
    "compliance_status",
    "next_milestone",
    "priority_focus",
    "progress_status",
    "quick_wins",
]
