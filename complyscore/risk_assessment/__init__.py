# -*- coding: utf-8 -*-
"""
ComplyScore Risk Assessment SDK
===============================

This package provides the HIPAA risk-scoring and progressive-assessment
engine. It supports:

- Validated question catalog with load-time integrity checks
- Deterministic weighted category and overall scoring
- Five-strategy answer auto-population cascade
- Tier promotion, completion tracking and prioritised action items
- Assessment lifecycle through an injected persistence collaborator
- Industry benchmarking and overall health grading
- Dashboard summaries, progress metrics and task timelines
- Compliance review schedules with milestone reminders
- SHA-256 provenance tracking for audit trails
- Prometheus metrics for observability
- Thread-safe configuration with COMPLYSCORE_ env prefix

Key Components:
    - catalog: QuestionCatalog and the built-in HIPAA questions
    - scorer: RiskScorer with versioned category weights
    - auto_population: AutoPopulationEngine over population_strategies
    - progression: ProgressionManager for tiers and action items
    - state_manager: AssessmentStateManager and repositories
    - benchmarking: BenchmarkEngine
    - dashboard: DashboardBuilder
    - schedule: review intervals and milestone reminders
    - provenance: ProvenanceTracker for SHA-256 audit trails
    - config: RiskAssessmentConfig with COMPLYSCORE_ env prefix
    - setup: RiskAssessmentService facade

Example:
    >>> from complyscore.risk_assessment import RiskScorer, Response
    >>> scorer = RiskScorer()
    >>> scorer.score_overall([Response(question_id="admin_001", answer="no")]).risk_level
    <RiskLevel.CRITICAL: 'Critical Risk'>
"""

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from complyscore.risk_assessment.config import (
    RiskAssessmentConfig,
    get_config,
    set_config,
    reset_config,
)

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------
from complyscore.risk_assessment.models import (
    # Enumerations
    SafeguardCategory,
    AnswerType,
    ComplexityTier,
    AssessmentStatus,
    RiskLevel,
    ActionPriority,
    ActionStatus,
    Industry,
    PeerComparison,
    OverallHealth,
    OperationType,
    # Catalog models
    RiskDescriptor,
    CountBucket,
    Question,
    # Assessment models
    Response,
    Assessment,
    # Derived models
    ScoreResult,
    ActionItem,
    NextStep,
    # Auto-population models
    TechnologySystem,
    CompanyProfile,
    Suggestion,
    PopulationSummary,
    PopulationResult,
    # Benchmarking models
    IndustryBenchmark,
    BenchmarkResult,
    # Dashboard models
    ProgressMetrics,
    UpcomingTask,
    DashboardSummary,
    # Schedule models
    ReviewFrequency,
    MilestoneTrigger,
    SchedulePreferences,
    ReviewSchedule,
    # Audit models
    ProvenanceEntry,
)

# ---------------------------------------------------------------------------
# Core engines
# ---------------------------------------------------------------------------
from complyscore.risk_assessment.catalog import (
    CATALOG_VERSION,
    QuestionCatalog,
    default_catalog,
)
from complyscore.risk_assessment.scorer import (
    CATEGORY_WEIGHTS,
    CATEGORY_WEIGHTS_VERSION,
    RISK_LEVEL_THRESHOLDS,
    RiskScorer,
    classify_risk_level,
)
from complyscore.risk_assessment.population_strategies import (
    DEFAULT_STRATEGIES,
    PopulationContext,
    StrategyResult,
)
from complyscore.risk_assessment.auto_population import AutoPopulationEngine
from complyscore.risk_assessment.progression import ProgressionManager
from complyscore.risk_assessment.state_manager import (
    AssessmentRepository,
    AssessmentStateManager,
    InMemoryAssessmentRepository,
)
from complyscore.risk_assessment.benchmarking import (
    BenchmarkEngine,
    employee_size_category,
    overall_health,
)
from complyscore.risk_assessment.dashboard import DashboardBuilder
from complyscore.risk_assessment.schedule import build_review_schedule
from complyscore.risk_assessment.provenance import ProvenanceTracker

# ---------------------------------------------------------------------------
# Service setup facade
# ---------------------------------------------------------------------------
from complyscore.risk_assessment.setup import RiskAssessmentService

__all__ = [
    # Configuration
    "RiskAssessmentConfig",
    "get_config",
    "set_config",
    "reset_config",
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
    # Catalog models
    "RiskDescriptor",
    "CountBucket",
    "Question",
    # Assessment models
    "Response",
    "Assessment",
    # Derived models
    "ScoreResult",
    "ActionItem",
    "NextStep",
    # Auto-population models
    "TechnologySystem",
    "CompanyProfile",
    "Suggestion",
    "PopulationSummary",
    "PopulationResult",
    # Benchmarking models
    "IndustryBenchmark",
    "BenchmarkResult",
    # Dashboard models
    "ProgressMetrics",
    "UpcomingTask",
    "DashboardSummary",
    # Schedule models
    "ReviewFrequency",
    "MilestoneTrigger",
    "SchedulePreferences",
    "ReviewSchedule",
    # Audit models
    "ProvenanceEntry",
    # Core engines
    "CATALOG_VERSION",
    "QuestionCatalog",
    "default_catalog",
    "CATEGORY_WEIGHTS",
    "CATEGORY_WEIGHTS_VERSION",
    "RISK_LEVEL_THRESHOLDS",
    "RiskScorer",
    "classify_risk_level",
    "DEFAULT_STRATEGIES",
    "PopulationContext",
    "StrategyResult",
    "AutoPopulationEngine",
    "ProgressionManager",
    "AssessmentRepository",
    "AssessmentStateManager",
    "InMemoryAssessmentRepository",
    "BenchmarkEngine",
    "employee_size_category",
    "overall_health",
    "DashboardBuilder",
    "build_review_schedule",
    "ProvenanceTracker",
    # Service facade
    "RiskAssessmentService",
]
