# -*- coding: utf-8 -*-
"""Tests for dashboard summaries, progress metrics and task timelines."""

from datetime import timedelta

import pytest

from complyscore.risk_assessment.benchmarking import BenchmarkEngine
from complyscore.risk_assessment.config import RiskAssessmentConfig
from complyscore.risk_assessment.dashboard import (
    DashboardBuilder,
    action_items_status,
    compliance_status,
    next_milestone,
    priority_focus,
    progress_status,
    quick_wins,
)
from complyscore.risk_assessment.models import (
    ActionItem,
    ActionPriority,
    AssessmentStatus,
    OverallHealth,
    RiskLevel,
    SafeguardCategory,
    ScoreResult,
    SchedulePreferences,
    TaskType,
)
from complyscore.risk_assessment.schedule import build_review_schedule

BASIC_SAFE = {
    "admin_001": "yes",
    "admin_002": "Quarterly",
    "phys_001": "Biometric access controls",
    "phys_002": "yes",
    "tech_001": "yes",
    "tech_002": "AES-256 encryption",
}


@pytest.fixture
def builder(progression, config):
    return DashboardBuilder(
        progression=progression,
        benchmarking=BenchmarkEngine(config=config),
        config=config,
    )


def _item(question_id, priority, effort, due):
    return ActionItem(
        action_id=f"action_a_{question_id}",
        question_id=question_id,
        category=SafeguardCategory.ADMINISTRATIVE,
        title=f"Address {question_id}",
        description="fix it",
        priority=priority,
        risk_score=90,
        due_date=due,
        estimated_effort=effort,
    )


def _score(category_scores):
    return ScoreResult(
        overall_score=50,
        category_scores=category_scores,
        risk_level=RiskLevel.HIGH,
        weights_version="test",
    )


# ==============================================================================
# Status Labels
# ==============================================================================

class TestStatusLabels:
    """Threshold labels shown on the dashboard."""

    @pytest.mark.parametrize("score,label", [
        (100, "Compliant"),
        (80, "Compliant"),
        (79, "Mostly Compliant"),
        (60, "Mostly Compliant"),
        (40, "Needs Improvement"),
        (39, "Non-Compliant"),
    ])
    def test_compliance_status(self, score, label):
        assert compliance_status(score) == label

    @pytest.mark.parametrize("completion,label", [
        (80, "On Track"),
        (50, "In Progress"),
        (49, "Getting Started"),
    ])
    def test_progress_status(self, completion, label):
        assert progress_status(completion) == label

    @pytest.mark.parametrize("completion,milestone", [
        (0, "25% completion"),
        (25, "50% completion"),
        (74, "75% completion"),
        (75, "100% completion"),
        (100, "100% completion"),
    ])
    def test_next_milestone(self, completion, milestone):
        assert next_milestone(completion) == milestone

    def test_action_items_status(self, fixed_now):
        items = [
            _item("a", ActionPriority.CRITICAL, 30, fixed_now),
            _item("b", ActionPriority.CRITICAL, 60, fixed_now),
            _item("c", ActionPriority.HIGH, 60, fixed_now),
        ]
        assert action_items_status(items) == "2 Critical Items"
        assert action_items_status(items[2:]) == "All Good"


# ==============================================================================
# Quick Wins and Focus
# ==============================================================================

class TestQuickWinsAndFocus:
    """Quick wins and the priority focus list."""

    def test_quick_wins_take_first_three_short_items(self, fixed_now):
        items = [
            _item(f"q{n}", ActionPriority.HIGH, effort, fixed_now)
            for n, effort in enumerate([60, 30, 15, 45, 30, 10])
        ]
        assert [i.question_id for i in quick_wins(items)] == ["q1", "q2", "q4"]

    def test_focus_on_critical_items_and_weakest_category(self, fixed_now):
        items = [_item("a", ActionPriority.CRITICAL, 30, fixed_now)]
        score = _score({"administrative": 85, "technical": 70, "physical": 60})

        assert priority_focus(score, items) == [
            "Complete critical action items",
            "Improve physical safeguards",
        ]

    def test_weakest_category_tie_uses_weight_order(self):
        score = _score({"administrative": 90, "technical": 0, "physical": 0})
        assert priority_focus(score, []) == ["Improve technical safeguards"]

    def test_strong_posture_is_maintained(self):
        score = _score({"administrative": 85, "technical": 90, "physical": 88})
        assert priority_focus(score, []) == ["Maintain current safeguards"]


# ==============================================================================
# Progress Metrics
# ==============================================================================

class TestProgressMetrics:
    """Completion aggregated over a subject's assessments."""

    def test_no_assessments(self, builder):
        progress = builder.progress_metrics([])

        assert progress.completion_percentage == 0
        assert progress.total_modules == 0
        assert progress.last_activity is None
        assert progress.next_milestone == "25% completion"

    def test_aggregates_over_tier_questions(self, builder, make_assessment):
        done = make_assessment(BASIC_SAFE)
        partial = make_assessment({
            "admin_001": "yes", "phys_002": "yes", "tech_001": "yes", "tech_004": [],
        })
        progress = builder.progress_metrics([done, partial])

        assert progress.questions_answered == 9
        assert progress.total_questions == 12
        assert progress.completion_percentage == 75
        assert progress.modules_completed == 1
        assert progress.total_modules == 2
        assert progress.next_milestone == "100% completion"
        assert progress.last_activity == max(done.updated_at, partial.updated_at)


# ==============================================================================
# Upcoming Tasks
# ==============================================================================

class TestUpcomingTasks:
    """Quarterly review, overdue assessments and action reminders."""

    def test_timeline_is_ordered_by_due_date(self, builder, progression, make_assessment, fixed_now):
        overdue = make_assessment(
            status=AssessmentStatus.IN_PROGRESS, created_at=fixed_now - timedelta(days=40),
        )
        finished = make_assessment(
            status=AssessmentStatus.COMPLETED, created_at=fixed_now - timedelta(days=90),
        )
        current = make_assessment(
            {"admin_001": "no", "tech_001": "no"}, created_at=fixed_now - timedelta(days=2),
        )
        items = progression.recommended_actions(current, now=fixed_now)
        tasks = builder.upcoming_tasks("clinic-1", [overdue, finished, current], items, now=fixed_now)

        assert [t.task_type for t in tasks] == [
            TaskType.ASSESSMENT_COMPLETION,
            TaskType.ACTION_ITEM,
            TaskType.ACTION_ITEM,
            TaskType.QUARTERLY_REVIEW,
        ]
        assert tasks[0].task_id == f"overdue_{overdue.assessment_id}"
        assert tasks[0].title == "Complete HIPAA Assessment"
        assert tasks[0].due_date == fixed_now - timedelta(days=10)
        assert tasks[0].priority == ActionPriority.HIGH
        assert tasks[1].task_id == f"action_reminder_action_{current.assessment_id}_admin_001"
        assert [t.estimated_minutes for t in tasks[1:3]] == [30, 60]
        assert tasks[3].task_id == "quarterly_clinic-1"
        assert tasks[3].due_date == fixed_now + timedelta(days=90)

    def test_action_reminders_are_capped(self, progression, make_assessment, fixed_now):
        config = RiskAssessmentConfig(max_upcoming_actions=1)
        builder = DashboardBuilder(progression=progression, config=config)
        current = make_assessment({"admin_001": "no", "tech_001": "no"}, created_at=fixed_now)
        items = progression.recommended_actions(current, now=fixed_now)

        tasks = builder.upcoming_tasks("clinic-1", [current], items, now=fixed_now)
        assert [t.task_type for t in tasks].count(TaskType.ACTION_ITEM) == 1


# ==============================================================================
# Summary
# ==============================================================================

class TestDashboardSummary:
    """The assembled dashboard."""

    def test_critical_subject(self, builder, make_assessment, fixed_now):
        assessment = make_assessment({"admin_001": "no"}, created_at=fixed_now)
        summary = builder.summarize(
            "clinic-1", [assessment], industry="healthcare", employee_count=18, now=fixed_now,
        )

        assert summary.overall_health == OverallHealth.CRITICAL
        assert summary.key_metrics.risk_score == 2
        assert summary.key_metrics.completion_rate == 17
        assert summary.key_metrics.critical_issues == 1
        assert summary.key_metrics.days_until_review == 90
        assert summary.status_indicators.compliance_status == "Non-Compliant"
        assert summary.status_indicators.assessment_progress == "Getting Started"
        assert summary.status_indicators.action_items_status == "1 Critical Items"
        assert summary.status_indicators.benchmark_performance == "Below Average"
        assert [i.question_id for i in summary.quick_wins] == ["admin_001"]
        assert summary.priority_focus == [
            "Complete critical action items",
            "Improve technical safeguards",
        ]

    def test_latest_assessment_supplies_score(self, builder, make_assessment, fixed_now):
        older = make_assessment({"admin_001": "no"}, updated_at=fixed_now - timedelta(days=5))
        newer = make_assessment({"admin_001": "yes"}, updated_at=fixed_now)
        summary = builder.summarize("clinic-1", [newer, older], now=fixed_now)

        assert summary.key_metrics.critical_issues == 0
        assert summary.action_items == []
        assert summary.status_indicators.action_items_status == "All Good"

    def test_no_assessments(self, builder, fixed_now):
        summary = builder.summarize("clinic-1", [], now=fixed_now)

        assert summary.key_metrics.risk_score == 0
        assert summary.overall_health == OverallHealth.CRITICAL
        assert summary.priority_focus == ["Improve administrative safeguards"]
        assert [t.task_type for t in summary.upcoming_tasks] == [TaskType.QUARTERLY_REVIEW]

    def test_schedule_sets_days_until_review(self, builder, fixed_now):
        schedule = build_review_schedule("clinic-1", SchedulePreferences(
            start_date=fixed_now,
            custom_dates=[fixed_now + timedelta(days=10)],
        ))
        summary = builder.summarize("clinic-1", [], schedule=schedule, now=fixed_now)
        assert summary.key_metrics.days_until_review == 10
