# -*- coding: utf-8 -*-
"""
Risk Assessment Data Models

Pydantic v2 data models for the risk-assessment engine.

Models:
    - Enums: SafeguardCategory, AnswerType, ComplexityTier, AssessmentStatus,
             RiskLevel, ActionPriority, ActionStatus, Industry,
             PeerComparison, OverallHealth, OperationType
    - Catalog: RiskDescriptor, CountBucket, Question
    - Assessment: Response, Assessment
    - Derived: ScoreResult, ActionItem, NextStep
    - Auto-population: TechnologySystem, CompanyProfile, Suggestion,
                       PopulationSummary, PopulationResult
    - Benchmarking: IndustryBenchmark, BenchmarkResult
    - Dashboard: TaskType, ProgressMetrics, UpcomingTask, KeyMetrics,
                 StatusIndicators, DashboardSummary
    - Schedule: ReviewFrequency, NotificationPreferences, MilestoneTrigger,
                SchedulePreferences, ScheduleInterval, MilestoneReminder,
                ReviewSchedule
    - Audit: ProvenanceEntry

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# Enumerations
# =============================================================================


class SafeguardCategory(str, Enum):
    """HIPAA Security Rule safeguard categories."""
    ADMINISTRATIVE = "administrative"
    PHYSICAL = "physical"
    TECHNICAL = "technical"


class AnswerType(str, Enum):
    """Declared answer type of a question."""
    BOOLEAN = "boolean"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    FREE_TEXT = "free_text"


class ComplexityTier(int, Enum):
    """Ordered assessment complexity tiers."""
    BASIC = 1
    INTERMEDIATE = 2
    ADVANCED = 3
    COMPREHENSIVE = 4

    @property
    def label(self) -> str:
        return self.name.title()


class AssessmentStatus(str, Enum):
    """Lifecycle status of an assessment."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"


class RiskLevel(str, Enum):
    """Four-tier risk classification of a 0-100 score (higher = safer)."""
    LOW = "Low Risk"
    MEDIUM = "Medium Risk"
    HIGH = "High Risk"
    CRITICAL = "Critical Risk"


class ActionPriority(str, Enum):
    """Priority of a remediation action item."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    ActionPriority.CRITICAL: 4,
    ActionPriority.HIGH: 3,
    ActionPriority.MEDIUM: 2,
    ActionPriority.LOW: 1,
}


class ActionStatus(str, Enum):
    """Workflow status of an action item."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Industry(str, Enum):
    """Industries with dedicated defaults and benchmarks."""
    HEALTHCARE = "healthcare"
    LEGAL = "legal"
    FINANCIAL_SERVICES = "financial_services"
    OTHER = "other"

    @classmethod
    def from_label(cls, label: Optional[str]) -> Industry:
        """Normalise a free-form industry label ("Financial Services")."""
        if not label:
            return cls.OTHER
        key = str(label).strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            return cls.OTHER


class PeerComparison(str, Enum):
    """Position of a score relative to the industry average."""
    ABOVE = "above"
    BELOW = "below"
    AVERAGE = "average"


class OverallHealth(str, Enum):
    """Combined score/progress health grade."""
    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_ATTENTION = "needs_attention"
    CRITICAL = "critical"


class OperationType(str, Enum):
    """Operations recorded in the provenance trail."""
    CREATE = "create"
    RESPONSE_RECORDED = "response_recorded"
    SUGGESTIONS_APPLIED = "suggestions_applied"
    ACTIVITY_RECORDED = "activity_recorded"
    STATUS_CHANGED = "status_changed"
    TIER_PROMOTED = "tier_promoted"
    RETAKE = "retake"
    SCORE = "score"
    POPULATE = "populate"


# =============================================================================
# Catalog Models
# =============================================================================


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


BOOLEAN_ANSWERS: Tuple[str, str] = ("yes", "no")


class RiskDescriptor(BaseModel):
    """Risk resolved from a single answer."""
    risk_score: int = Field(..., ge=0, le=100, description="Risk 0-100 (higher = riskier)")
    rationale: str = Field(..., description="Why this answer carries this risk")
    remediation: Optional[str] = Field(None, description="Action required, if any")

    model_config = {"extra": "forbid", "frozen": True}


class CountBucket(BaseModel):
    """Inclusive selected-option count range of a multi-choice question."""
    low: int = Field(..., ge=0, description="Lowest count in the bucket")
    high: int = Field(..., ge=0, description="Highest count in the bucket")
    descriptor: RiskDescriptor

    model_config = {"extra": "forbid", "frozen": True}

    @model_validator(mode="after")
    def _check_order(self) -> CountBucket:
        if self.low > self.high:
            raise ValueError(f"bucket low {self.low} exceeds high {self.high}")
        return self

    def contains(self, count: int) -> bool:
        return self.low <= count <= self.high

    @property
    def label(self) -> str:
        if self.low == self.high:
            return str(self.low)
        return f"{self.low}-{self.high}"


class Question(BaseModel):
    """Static definition of one assessment question."""
    question_id: str = Field(..., description="Unique question identifier")
    category: SafeguardCategory = Field(..., description="Safeguard category")
    complexity_level: int = Field(
        ..., ge=1, le=4, description="Lowest tier level that includes this question",
    )
    text: str = Field(..., description="Question text shown to the user")
    answer_type: AnswerType = Field(..., description="Declared answer type")
    options: List[str] = Field(default_factory=list, description="Choice options")
    weight: int = Field(..., description="Relative importance within its category")
    risk_mapping: Dict[str, RiskDescriptor] = Field(
        default_factory=dict, description="Answer value -> risk descriptor",
    )
    buckets: List[CountBucket] = Field(
        default_factory=list, description="Multi-choice selected-count buckets",
    )
    help_text: Optional[str] = Field(None, description="Guidance for the user")
    regulatory_reference: Optional[str] = Field(None, description="CFR citation")

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("question_id")
    @classmethod
    def validate_question_id(cls, v: str) -> str:
        """Validate question ID format."""
        if not v or not v.replace("_", "").replace("-", "").isalnum():
            raise ValueError(
                "question_id must be alphanumeric with underscores or hyphens"
            )
        return v

    def legal_answers(self) -> List[str]:
        """Answer values the risk mapping must cover."""
        if self.answer_type == AnswerType.BOOLEAN:
            return list(BOOLEAN_ANSWERS)
        if self.answer_type == AnswerType.FREE_TEXT:
            return list(self.risk_mapping)
        return list(self.options)


# =============================================================================
# Assessment Models
# =============================================================================


class Response(BaseModel):
    """One answer recorded against an assessment."""
    question_id: str = Field(..., description="Answered question")
    answer: Any = Field(..., description="Answer value")
    timestamp: datetime = Field(default_factory=_utcnow, description="When answered")
    inferred: bool = Field(default=False, description="Machine-suggested answer")
    confidence: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="Suggestion confidence (inferred only)",
    )
    comments: Optional[str] = Field(None, description="Free-text user comments")
    source: Optional[str] = Field(None, description="Strategy that produced it")

    model_config = {"extra": "forbid"}

    @field_validator("answer")
    @classmethod
    def validate_answer(cls, v: Any) -> Any:
        """Store set selections as sorted lists."""
        if isinstance(v, (set, frozenset)):
            return sorted(v, key=str)
        return v

    @model_validator(mode="after")
    def _confidence_only_when_inferred(self) -> Response:
        if self.confidence is not None and not self.inferred:
            raise ValueError("confidence is only allowed on inferred responses")
        return self

    @property
    def has_comments(self) -> bool:
        return bool(self.comments and self.comments.strip())


class Assessment(BaseModel):
    """Assessment state: responses, tier, status and engagement counters."""
    assessment_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique assessment ID",
    )
    subject_id: str = Field(..., description="Assessed organisation")
    module_id: str = Field(default="hipaa", description="Assessment module")
    tier: ComplexityTier = Field(default=ComplexityTier.BASIC)
    status: AssessmentStatus = Field(default=AssessmentStatus.NOT_STARTED)
    responses: List[Response] = Field(
        default_factory=list, description="Responses in arrival order",
    )
    time_spent_minutes: float = Field(default=0.0, ge=0.0)
    ai_interactions: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = Field(None)
    pause_reason: Optional[str] = Field(None)

    model_config = {"extra": "forbid"}

    @field_validator("responses")
    @classmethod
    def _one_response_per_question(cls, v: List[Response]) -> List[Response]:
        seen = set()
        for response in v:
            if response.question_id in seen:
                raise ValueError(
                    f"duplicate response for question {response.question_id}"
                )
            seen.add(response.question_id)
        return v

    def response_for(self, question_id: str) -> Optional[Response]:
        for response in self.responses:
            if response.question_id == question_id:
                return response
        return None

    @property
    def answered_question_ids(self) -> List[str]:
        return [r.question_id for r in self.responses]


# =============================================================================
# Derived Results
# =============================================================================


class ScoreResult(BaseModel):
    """Scores recomputed from an assessment's responses."""
    overall_score: int = Field(..., ge=0, le=100)
    category_scores: Dict[str, int] = Field(default_factory=dict)
    risk_level: RiskLevel
    critical_issues: List[str] = Field(default_factory=list)
    answered_questions: int = Field(default=0, ge=0)
    weights_version: str = Field(..., description="Category weight table version")
    provenance_hash: str = Field(default="", description="SHA-256 of inputs and result")
    calculated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"extra": "forbid"}


class ActionItem(BaseModel):
    """Remediation task derived from a high-risk response."""
    action_id: str
    question_id: str
    category: SafeguardCategory
    title: str
    description: str
    priority: ActionPriority
    risk_score: int = Field(..., ge=0, le=100)
    due_date: datetime
    estimated_effort: int = Field(default=60, ge=0, description="Estimated minutes of work")
    status: ActionStatus = Field(default=ActionStatus.PENDING)

    model_config = {"extra": "forbid"}


class NextStep(BaseModel):
    """Guidance for the user's next move in an assessment."""
    action: str
    description: str
    estimated_minutes: int
    priority: ActionPriority

    model_config = {"extra": "forbid"}


# =============================================================================
# Auto-population
# =============================================================================


class TechnologySystem(BaseModel):
    """A technology system reported by the fact provider."""
    name: str = ""
    type: Optional[str] = None
    deployment_type: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    security_features: List[str] = Field(default_factory=list)
    data_types: List[str] = Field(default_factory=list)

    model_config = {"extra": "allow"}


class CompanyProfile(BaseModel):
    """Typed view of the external company-intelligence facts.

    The engine itself reads facts as a plain mapping; this model exists so
    callers can validate what the fact provider hands over.
    """
    business_type: Optional[str] = None
    industry: Optional[str] = None
    employee_count: Optional[int] = Field(None, ge=0)
    technology_systems: List[TechnologySystem] = Field(default_factory=list)
    current_security: Dict[str, Any] = Field(default_factory=dict)
    compliance_obligations: List[str] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    def to_facts(self) -> Dict[str, Any]:
        return self.model_dump(mode="python")


class Suggestion(BaseModel):
    """A proposed answer for an unanswered question."""
    question_id: str
    answer: Any
    confidence: float = Field(..., ge=0.0, le=1.0)
    rationale: str
    sources: List[str] = Field(default_factory=list)
    strategy: str = Field(..., description="Cascade strategy that produced it")
    inferred: bool = Field(default=True)

    model_config = {"extra": "forbid"}


class PopulationSummary(BaseModel):
    """Counts of a population run; bucket counts must reconcile."""
    total_questions: int = Field(default=0, ge=0)
    suggested_questions: int = Field(default=0, ge=0)
    high_confidence: int = Field(default=0, ge=0)
    medium_confidence: int = Field(default=0, ge=0)
    low_confidence: int = Field(default=0, ge=0)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def _reconcile(self) -> PopulationSummary:
        buckets = self.high_confidence + self.medium_confidence + self.low_confidence
        if buckets != self.suggested_questions:
            raise ValueError(
                f"confidence buckets ({buckets}) do not match "
                f"suggested questions ({self.suggested_questions})"
            )
        if self.suggested_questions > self.total_questions:
            raise ValueError(
                f"suggested questions ({self.suggested_questions}) exceed "
                f"total questions ({self.total_questions})"
            )
        return self


class PopulationResult(BaseModel):
    """Suggestions proposed for one assessment. Never applied automatically."""
    assessment_id: str
    suggestions: List[Suggestion] = Field(default_factory=list)
    summary: PopulationSummary = Field(default_factory=PopulationSummary)
    confidence_scores: Dict[str, float] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=_utcnow)
    provenance_hash: str = Field(default="")

    model_config = {"extra": "forbid"}


# =============================================================================
# Benchmarking
# =============================================================================


class IndustryBenchmark(BaseModel):
    """Score distribution of an industry/size peer group."""
    industry_average: int
    percentile_25: int
    percentile_50: int
    percentile_75: int
    percentile_90: int
    sample_size: int

    model_config = {"extra": "forbid", "frozen": True}


class BenchmarkResult(BaseModel):
    """Comparison of a company score against its peer group."""
    company_score: int
    industry: Industry
    size_category: str
    industry_average: int
    percentile_ranking: int
    peer_comparison: PeerComparison
    sample_size: int
    improvement_potential: int
    top_performers: Dict[str, int] = Field(default_factory=dict)
    insights: List[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


# =============================================================================
# Dashboard
# =============================================================================


class TaskType(str, Enum):
    """Kind of an upcoming dashboard task."""
    QUARTERLY_REVIEW = "quarterly_review"
    ASSESSMENT_COMPLETION = "assessment_completion"
    ACTION_ITEM = "action_item"


class ProgressMetrics(BaseModel):
    """Completion across all assessments of one subject."""
    completion_percentage: int = Field(default=0, ge=0, le=100)
    modules_completed: int = Field(default=0, ge=0)
    total_modules: int = Field(default=0, ge=0)
    questions_answered: int = Field(default=0, ge=0)
    total_questions: int = Field(default=0, ge=0)
    last_activity: Optional[datetime] = None
    next_milestone: str = Field(..., description="Next completion threshold")

    model_config = {"extra": "forbid"}


class UpcomingTask(BaseModel):
    """A dated task shown on the dashboard timeline."""
    task_id: str
    title: str
    description: str
    due_date: datetime
    task_type: TaskType
    estimated_minutes: int = Field(..., ge=0)
    priority: ActionPriority

    model_config = {"extra": "forbid"}


class KeyMetrics(BaseModel):
    """Headline numbers of the dashboard."""
    risk_score: int = Field(..., ge=0, le=100)
    completion_rate: int = Field(..., ge=0, le=100)
    critical_issues: int = Field(..., ge=0)
    days_until_review: int = Field(..., ge=0)

    model_config = {"extra": "forbid"}


class StatusIndicators(BaseModel):
    """Short status labels of the dashboard."""
    compliance_status: str
    assessment_progress: str
    action_items_status: str
    benchmark_performance: str

    model_config = {"extra": "forbid"}


class DashboardSummary(BaseModel):
    """Everything the subject's dashboard shows."""
    subject_id: str
    overall_health: OverallHealth
    key_metrics: KeyMetrics
    status_indicators: StatusIndicators
    progress: ProgressMetrics
    benchmark: BenchmarkResult
    action_items: List[ActionItem] = Field(default_factory=list)
    upcoming_tasks: List[UpcomingTask] = Field(default_factory=list)
    quick_wins: List[ActionItem] = Field(default_factory=list)
    priority_focus: List[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=_utcnow)

    model_config = {"extra": "forbid"}


# =============================================================================
# Review Schedule
# =============================================================================


class ReviewFrequency(str, Enum):
    """How often compliance reviews recur."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUAL = "semi_annual"
    ANNUAL = "annual"

    @property
    def months(self) -> int:
        return _FREQUENCY_MONTHS[self]

    @property
    def label(self) -> str:
        return self.value.replace("_", "-").capitalize()


_FREQUENCY_MONTHS = {
    ReviewFrequency.MONTHLY: 1,
    ReviewFrequency.QUARTERLY: 3,
    ReviewFrequency.SEMI_ANNUAL: 6,
    ReviewFrequency.ANNUAL: 12,
}


class NotificationPreferences(BaseModel):
    """Channels and cadence for review notifications."""
    email: bool = True
    sms: bool = False
    platform: bool = True
    frequency: str = Field(default="immediate", pattern="^(immediate|daily|weekly)$")

    model_config = {"extra": "forbid"}


class MilestoneTrigger(BaseModel):
    """Reminder sent ``days_before`` every review interval."""
    trigger_type: str
    title: str
    description: str = ""
    days_before: int = Field(..., ge=0)
    notification_methods: List[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class SchedulePreferences(BaseModel):
    """Inputs of a custom review schedule."""
    frequency: ReviewFrequency = ReviewFrequency.QUARTERLY
    start_date: datetime
    custom_dates: List[datetime] = Field(default_factory=list)
    priority_modules: List[str] = Field(default_factory=list)
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    milestone_triggers: List[MilestoneTrigger] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class ScheduleInterval(BaseModel):
    """One scheduled compliance review."""
    date: datetime
    interval_type: str
    description: str
    modules_to_review: List[str] = Field(default_factory=list)
    estimated_minutes: Optional[int] = Field(None, ge=0)

    model_config = {"extra": "forbid"}


class MilestoneReminder(BaseModel):
    """A reminder tied to one review interval."""
    reminder_id: str
    title: str
    description: str
    date: datetime
    trigger_type: str
    related_interval: datetime
    notification_methods: List[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class ReviewSchedule(BaseModel):
    """Review intervals and reminders of one subject."""
    subject_id: str
    frequency: ReviewFrequency
    intervals: List[ScheduleInterval] = Field(default_factory=list)
    milestone_reminders: List[MilestoneReminder] = Field(default_factory=list)
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences,
    )

    model_config = {"extra": "forbid"}

    def next_review(self, now: datetime) -> Optional[datetime]:
        """Earliest interval date at or after ``now``."""
        upcoming = [i.date for i in self.intervals if i.date >= now]
        return min(upcoming) if upcoming else None


# =============================================================================
# Audit
# =============================================================================


class ProvenanceEntry(BaseModel):
    """Chained audit record of one engine operation."""
    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=_utcnow)
    operation: OperationType
    assessment_id: str
    actor: str = Field(default="system")
    details: Dict[str, Any] = Field(default_factory=dict)
    provenance_hash: str = Field(default="")

    model_config = {"extra": "forbid"}


__all__ = [
    # Enumerations
    "SafeguardCategory",
    "AnswerType",
    "ComplexityTier",
    "AssessmentStatus",
    "RiskLevel",
    "ActionPriority",
    "ActionStatus",
    "Industry",
    "PeerComparison",
    "OverallHealth",
    "OperationType",
    "BOOLEAN_ANSWERS",
    # Catalog
    "RiskDescriptor",
    "CountBucket",
    "Question",
    # Assessment
    "Response",
    "Assessment",
    # Derived
    "ScoreResult",
    "ActionItem",
    "NextStep",
    # Auto-population
    "TechnologySystem",
    "CompanyProfile",
    "Suggestion",
    "PopulationSummary",
    "PopulationResult",
    # Benchmarking
    "IndustryBenchmark",
    "BenchmarkResult",
    # Dashboard
    "TaskType",
    "ProgressMetrics",
    "UpcomingTask",
    "KeyMetrics",
    "StatusIndicators",
    "DashboardSummary",
    # Schedule
    "ReviewFrequency",
    "NotificationPreferences",
    "MilestoneTrigger",
    "SchedulePreferences",
    "ScheduleInterval",
    "MilestoneReminder",
    "ReviewSchedule",
    # Audit
    "ProvenanceEntry",
]
