# -*- coding: utf-8 -*-
"""Tests for compliance review schedules and milestone reminders."""

from datetime import datetime, timedelta, timezone

import pytest

from complyscore.risk_assessment.models import (
    MilestoneTrigger,
    NotificationPreferences,
    ReviewFrequency,
    SchedulePreferences,
)
from complyscore.risk_assessment.schedule import (
    add_months,
    build_review_schedule,
    milestone_reminders,
    standard_intervals,
)


def _utc(year, month, day):
    return datetime(year, month, day, 9, 0, tzinfo=timezone.utc)


WEEK_BEFORE = MilestoneTrigger(
    trigger_type="week_notice",
    title="Review next week",
    days_before=7,
    notification_methods=["email"],
)
DAY_BEFORE = MilestoneTrigger(
    trigger_type="day_notice",
    title="Review tomorrow",
    days_before=1,
    notification_methods=["platform"],
)


# ==============================================================================
# Month Arithmetic
# ==============================================================================

class TestAddMonths:
    """Calendar month shifts clamp to the end of shorter months."""

    @pytest.mark.parametrize("start,months,expected", [
        (_utc(2026, 1, 15), 3, _utc(2026, 4, 15)),
        (_utc(2026, 11, 15), 3, _utc(2027, 2, 15)),
        (_utc(2026, 1, 31), 1, _utc(2026, 2, 28)),
        (_utc(2024, 1, 31), 1, _utc(2024, 2, 29)),
        (_utc(2026, 5, 31), 0, _utc(2026, 5, 31)),
    ])
    def test_add_months(self, start, months, expected):
        assert add_months(start, months) == expected


# ==============================================================================
# Standard Intervals
# ==============================================================================

class TestStandardIntervals:
    """Reviews over the next 24 months."""

    @pytest.mark.parametrize("frequency,count,minutes", [
        (ReviewFrequency.MONTHLY, 24, 10),
        (ReviewFrequency.QUARTERLY, 8, 20),
        (ReviewFrequency.SEMI_ANNUAL, 4, 30),
        (ReviewFrequency.ANNUAL, 2, 45),
    ])
    def test_counts_and_durations(self, frequency, count, minutes):
        intervals = standard_intervals(frequency, _utc(2026, 1, 15))

        assert len(intervals) == count
        assert {i.estimated_minutes for i in intervals} == {minutes}
        assert {i.interval_type for i in intervals} == {f"{frequency.value}_review"}

    def test_quarterly_dates(self):
        intervals = standard_intervals("quarterly", _utc(2026, 1, 15))

        assert intervals[0].date == _utc(2026, 1, 15)
        assert intervals[1].date == _utc(2026, 4, 15)
        assert intervals[-1].date == _utc(2027, 10, 15)
        assert intervals[0].description == "Quarterly compliance review"
        assert intervals[0].modules_to_review == ["all"]

    def test_semi_annual_description(self):
        interval = standard_intervals(ReviewFrequency.SEMI_ANNUAL, _utc(2026, 1, 15))[0]
        assert interval.description == "Semi-annual compliance review"


# ==============================================================================
# Milestones
# ==============================================================================

class TestMilestoneReminders:
    """One reminder per trigger and interval, ordered by date."""

    def test_reminders_are_ordered_by_date(self):
        intervals = standard_intervals(ReviewFrequency.ANNUAL, _utc(2026, 1, 15))
        reminders = milestone_reminders(intervals, [WEEK_BEFORE, DAY_BEFORE])

        assert [r.date for r in reminders] == [
            _utc(2026, 1, 8), _utc(2026, 1, 14), _utc(2027, 1, 8), _utc(2027, 1, 14),
        ]
        assert [r.trigger_type for r in reminders] == [
            "week_notice", "day_notice", "week_notice", "day_notice",
        ]

    def test_reminder_fields(self):
        intervals = standard_intervals(ReviewFrequency.ANNUAL, _utc(2026, 1, 15))
        reminder = milestone_reminders(intervals, [WEEK_BEFORE])[0]

        assert reminder.reminder_id == "milestone_2026-01-15T09:00:00+00:00_week_notice"
        assert reminder.title == "Review next week"
        assert reminder.related_interval == _utc(2026, 1, 15)
        assert reminder.notification_methods == ["email"]

    def test_no_triggers_no_reminders(self):
        intervals = standard_intervals(ReviewFrequency.ANNUAL, _utc(2026, 1, 15))
        assert milestone_reminders(intervals, []) == []


# ==============================================================================
# Schedule
# ==============================================================================

class TestBuildReviewSchedule:
    """Standard or custom intervals plus reminders."""

    def test_standard_schedule(self):
        preferences = SchedulePreferences(
            frequency=ReviewFrequency.SEMI_ANNUAL,
            start_date=_utc(2026, 1, 15),
            milestone_triggers=[WEEK_BEFORE],
            notifications=NotificationPreferences(sms=True, frequency="weekly"),
        )
        schedule = build_review_schedule("clinic-1", preferences)

        assert schedule.subject_id == "clinic-1"
        assert schedule.frequency == ReviewFrequency.SEMI_ANNUAL
        assert len(schedule.intervals) == 4
        assert len(schedule.milestone_reminders) == 4
        assert schedule.notification_preferences.sms is True

    def test_custom_dates_replace_standard_intervals(self):
        preferences = SchedulePreferences(
            start_date=_utc(2026, 1, 15),
            custom_dates=[_utc(2026, 6, 1), _utc(2026, 3, 1)],
            priority_modules=["hipaa"],
        )
        schedule = build_review_schedule("clinic-1", preferences)

        assert [i.date for i in schedule.intervals] == [_utc(2026, 3, 1), _utc(2026, 6, 1)]
        assert {i.interval_type for i in schedule.intervals} == {"custom_review"}
        assert schedule.intervals[0].modules_to_review == ["hipaa"]
        assert schedule.intervals[0].estimated_minutes is None

    def test_next_review(self):
        schedule = build_review_schedule("clinic-1", SchedulePreferences(
            frequency=ReviewFrequency.ANNUAL, start_date=_utc(2026, 1, 15),
        ))

        assert schedule.next_review(_utc(2026, 1, 15)) == _utc(2026, 1, 15)
        assert schedule.next_review(_utc(2026, 2, 1)) == _utc(2027, 1, 15)
        assert schedule.next_review(_utc(2027, 1, 15) + timedelta(seconds=1)) is None

    def test_invalid_notification_frequency(self):
        with pytest.raises(ValueError):
            NotificationPreferences(frequency="hourly")
