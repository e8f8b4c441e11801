# -*- coding: utf-8 -*-
"""
Risk Assessment Service Setup

Provides the ``RiskAssessmentService`` facade, which wires the catalog,
scorer, auto-population engine, progression manager, state manager,
benchmarking, dashboard builder and provenance tracker together behind one
entry point.

Collaborators (persistence, generative inference) are passed in by the
caller; the facade holds no process-wide state.

Usage:
    >>> from complyscore.risk_assessment.setup import RiskAssessmentService
    >>> service = RiskAssessmentService()
    >>> assessment = service.state.create("clinic-1")
    >>> _ = service.state.record_response(assessment.assessment_id, "admin_001", "no")
    >>> service.score(assessment.assessment_id).overall_score
    2

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from complyscore.risk_assessment.auto_population import AutoPopulationEngine
from complyscore.risk_assessment.benchmarking import BenchmarkEngine, overall_health
from complyscore.risk_assessment.catalog import QuestionCatalog, default_catalog
from complyscore.risk_assessment.config import RiskAssessmentConfig, get_config
from complyscore.risk_assessment.dashboard import DashboardBuilder
from complyscore.risk_assessment.models import (
    ActionItem,
    BenchmarkResult,
    DashboardSummary,
    Industry,
    NextStep,
    OverallHealth,
    PopulationResult,
    ReviewSchedule,
    SchedulePreferences,
    ScoreResult,
)
from complyscore.risk_assessment.population_strategies import AnswerGenerator
from complyscore.risk_assessment.progression import ProgressionManager
from complyscore.risk_assessment.provenance import ProvenanceTracker
from complyscore.risk_assessment.schedule import build_review_schedule
from complyscore.risk_assessment.scorer import RiskScorer
from complyscore.risk_assessment.state_manager import (
    AssessmentRepository,
    AssessmentStateManager,
)

logger = logging.getLogger(__name__)


class RiskAssessmentService:
    """Unified facade over the risk-assessment engine.

    Attributes:
        config: RiskAssessmentConfig instance.
        catalog: QuestionCatalog instance.
        provenance: ProvenanceTracker, or None when provenance is disabled.
        scorer: RiskScorer instance.
        progression: ProgressionManager instance.
        state: AssessmentStateManager instance.
        population: AutoPopulationEngine instance.
        benchmarking: BenchmarkEngine instance.
        dashboards: DashboardBuilder instance.
    """

    def __init__(
        self,
        config: Optional[RiskAssessmentConfig] = None,
        catalog: Optional[QuestionCatalog] = None,
        repository: Optional[AssessmentRepository] = None,
        generator: Optional[AnswerGenerator] = None,
        benchmarking: Optional[BenchmarkEngine] = None,
    ) -> None:
        """Initialize the service facade.

        Args:
            config: Optional config. Uses global config if None.
            catalog: Optional catalog. Uses the built-in HIPAA catalog if None.
            repository: Optional persistence collaborator. In-memory if None.
            generator: Optional generative inference collaborator.
            benchmarking: Optional benchmark engine with peer-group tables.
        """
        self.config = config or get_config()
        self.catalog = catalog or default_catalog()
        self.provenance = (
            ProvenanceTracker(max_entries=self.config.max_provenance_entries)
            if self.config.enable_provenance else None
        )
        self.scorer = RiskScorer(catalog=self.catalog, provenance=self.provenance)
        self.progression = ProgressionManager(scorer=self.scorer)
        self.state = AssessmentStateManager(
            repository=repository,
            progression=self.progression,
            provenance=self.provenance,
            config=self.config,
        )
        self.population = AutoPopulationEngine(
            catalog=self.catalog,
            config=self.config,
            generator=generator,
            provenance=self.provenance,
        )
        self.benchmarking = benchmarking or BenchmarkEngine(config=self.config)
        self.dashboards = DashboardBuilder(
            progression=self.progression,
            benchmarking=self.benchmarking,
            config=self.config,
        )
        logger.info("RiskAssessmentService facade created")

    # ------------------------------------------------------------------
    # Convenience methods
    # ------------------------------------------------------------------

    def score(self, assessment_id: str) -> ScoreResult:
        return self.scorer.score_overall(self.state.get(assessment_id))

    def populate(
        self,
        assessment_id: str,
        facts: Union[Mapping[str, Any], BaseModel, None],
    ) -> PopulationResult:
        """Propose answers using the facts and the subject's completed history."""
        assessment = self.state.get(assessment_id)
        history = self.state.history(assessment.subject_id)
        return self.population.populate(assessment, facts, previous_assessments=history)

    def action_items(
        self,
        assessment_id: str,
        now: Optional[datetime] = None,
    ) -> List[ActionItem]:
        return self.progression.recommended_actions(self.state.get(assessment_id), now=now)

    def next_steps(self, assessment_id: str) -> List[NextStep]:
        return self.progression.recommended_next_steps(self.state.get(assessment_id))

    def benchmark(
        self,
        assessment_id: str,
        industry: Union[Industry, str, None],
        employee_count: Optional[int] = None,
    ) -> BenchmarkResult:
        result = self.score(assessment_id)
        return self.benchmarking.compare(result.overall_score, industry, employee_count)

    def health(self, assessment_id: str) -> OverallHealth:
        assessment = self.state.get(assessment_id)
        result = self.scorer.score_overall(assessment)
        completion = self.progression.completion_percentage(assessment)
        return overall_health(result.overall_score, completion)

    def dashboard(
        self,
        subject_id: str,
        industry: Union[Industry, str, None] = None,
        employee_count: Optional[int] = None,
        schedule: Optional[ReviewSchedule] = None,
        now: Optional[datetime] = None,
    ) -> DashboardSummary:
        """Build the dashboard over every stored assessment of a subject."""
        assessments = self.state.repository.list_for_subject(subject_id)
        return self.dashboards.summarize(
            subject_id, assessments,
            industry=industry,
            employee_count=employee_count,
            schedule=schedule,
            now=now,
        )

    def review_schedule(
        self,
        subject_id: str,
        preferences: SchedulePreferences,
    ) -> ReviewSchedule:
        return build_review_schedule(subject_id, preferences)

    # ------------------------------------------------------------------
    # Metrics and lifecycle
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """Get a summary of the service state."""
        return {
            "catalog_version": self.catalog.version,
            "questions": len(self.catalog),
            "weights_version": self.scorer.weights_version,
            "generative_enabled": self.population.generator is not None,
            "provenance_entries": (
                self.provenance.entry_count if self.provenance is not None else 0
            ),
        }

    def shutdown(self) -> None:
        """Release the generative worker pool."""
        self.population.shutdown()
        logger.info("RiskAssessmentService shut down")


__all__ = [
    "RiskAssessmentService",
]
