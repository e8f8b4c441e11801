# -*- coding: utf-8 -*-
"""
Industry Benchmarking

Places an overall score within the score distribution of its industry and
size peer group, and grades the combined score/progress health shown on
dashboards.

Peer-group lookup order: (industry, size category), then industry, then the
default benchmark. Benchmark tables are injected; the built-in table only
holds the default distribution.

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Mapping, Optional, Tuple, Union

from complyscore.risk_assessment.config import RiskAssessmentConfig, get_config
from complyscore.risk_assessment.models import (
    BenchmarkResult,
    Industry,
    IndustryBenchmark,
    OverallHealth,
    PeerComparison,
)

logger = logging.getLogger(__name__)

BenchmarkKey = Union[Industry, Tuple[Industry, str]]

DEFAULT_BENCHMARK = IndustryBenchmark(
    industry_average=65,
    percentile_25=45,
    percentile_50=65,
    percentile_75=80,
    percentile_90=90,
    sample_size=150,
)

# (upper bound inclusive, label)
EMPLOYEE_SIZE_CATEGORIES: Tuple[Tuple[int, str], ...] = (
    (10, "1-10"),
    (25, "11-25"),
    (50, "26-50"),
    (100, "51-100"),
    (250, "101-250"),
)
LARGEST_SIZE_CATEGORY = "250+"

HEALTH_SCORE_WEIGHT = Decimal("0.6")
HEALTH_PROGRESS_WEIGHT = Decimal("0.4")
HEALTH_GRADES: Tuple[Tuple[int, OverallHealth], ...] = (
    (80, OverallHealth.EXCELLENT),
    (60, OverallHealth.GOOD),
    (40, OverallHealth.NEEDS_ATTENTION),
)


def employee_size_category(employee_count: Optional[int]) -> str:
    """Return the size bucket label ("1-10" ... "250+") for a headcount."""
    count = employee_count or 0
    for upper_bound, label in EMPLOYEE_SIZE_CATEGORIES:
        if count <= upper_bound:
            return label
    return LARGEST_SIZE_CATEGORY


def overall_health(overall_score: float, completion_percentage: float) -> OverallHealth:
    """Grade 0.6 * score + 0.4 * completion at 80 / 60 / 40."""
    combined = (
        Decimal(str(overall_score)) * HEALTH_SCORE_WEIGHT
        + Decimal(str(completion_percentage)) * HEALTH_PROGRESS_WEIGHT
    )
    for lower_bound, grade in HEALTH_GRADES:
        if combined >= lower_bound:
            return grade
    return OverallHealth.CRITICAL


class BenchmarkEngine:
    """Compares overall scores against peer-group distributions.

    Attributes:
        benchmarks: Peer-group distributions keyed by industry or by
            (industry, size category).
        default: Distribution used when no peer group matches.
        peer_tolerance: Distance from the average still reported as average.
    """

    def __init__(
        self,
        benchmarks: Optional[Mapping[BenchmarkKey, IndustryBenchmark]] = None,
        default: IndustryBenchmark = DEFAULT_BENCHMARK,
        config: Optional[RiskAssessmentConfig] = None,
    ) -> None:
        self.benchmarks = dict(benchmarks or {})
        self.default = default
        self.peer_tolerance = (config or get_config()).benchmark_peer_tolerance
        logger.info(
            "BenchmarkEngine initialized (%d peer groups)", len(self.benchmarks),
        )

    def benchmark_for(self, industry: Industry, size_category: str) -> IndustryBenchmark:
        return (
            self.benchmarks.get((industry, size_category))
            or self.benchmarks.get(industry)
            or self.default
        )

    def compare(
        self,
        overall_score: int,
        industry: Union[Industry, str, None],
        employee_count: Optional[int] = None,
    ) -> BenchmarkResult:
        """Compare a score with its peer group.

        Args:
            overall_score: Company overall score 0-100.
            industry: Industry enum or free-form label.
            employee_count: Headcount used to pick the size category.

        Returns:
            BenchmarkResult with percentile bucket, peer comparison and
            insights.
        """
        industry_enum = industry if isinstance(industry, Industry) else Industry.from_label(industry)
        size_category = employee_size_category(employee_count)
        data = self.benchmark_for(industry_enum, size_category)

        result = BenchmarkResult(
            company_score=overall_score,
            industry=industry_enum,
            size_category=size_category,
            industry_average=data.industry_average,
            percentile_ranking=self.percentile_ranking(overall_score, data),
            peer_comparison=self.peer_comparison(overall_score, data.industry_average),
            sample_size=data.sample_size,
            improvement_potential=max(0, 100 - overall_score),
            top_performers={
                "percentile_90": data.percentile_90,
                "percentile_75": data.percentile_75,
            },
            insights=self.insights(overall_score, data),
        )
        logger.debug(
            "Benchmarked score %d against %s/%s: p%d (%s)",
            overall_score, industry_enum.value, size_category,
            result.percentile_ranking, result.peer_comparison.value,
        )
        return result

    @staticmethod
    def percentile_ranking(score: int, data: IndustryBenchmark) -> int:
        if score >= data.percentile_90:
            return 90
        if score >= data.percentile_75:
            return 75
        if score >= data.percentile_50:
            return 50
        if score >= data.percentile_25:
            return 25
        return 10

    def peer_comparison(self, score: int, industry_average: int) -> PeerComparison:
        if abs(score - industry_average) <= self.peer_tolerance:
            return PeerComparison.AVERAGE
        return PeerComparison.ABOVE if score > industry_average else PeerComparison.BELOW

    @staticmethod
    def insights(score: int, data: IndustryBenchmark) -> List[str]:
        insights: List[str] = []
        if score >= data.percentile_90:
            insights.append("Your security posture is in the top 10% of your industry")
        elif score >= data.percentile_75:
            insights.append("You're performing better than 75% of similar companies")
        elif score < data.percentile_25:
            insights.append("Significant opportunity to improve compared to industry peers")

        gap = data.percentile_75 - score
        if gap > 0:
            insights.append(f"{gap} points improvement would put you in top quartile")
        return insights


__all__ = [
    "DEFAULT_BENCHMARK",
    "EMPLOYEE_SIZE_CATEGORIES",
    "BenchmarkEngine",
    "employee_size_category",
    "overall_health",
]
