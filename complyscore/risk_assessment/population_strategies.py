# -*- coding: utf-8 -*-
"""
Auto-Population Strategies

The five inference strategies tried, in order, by the auto-population
engine, together with the static tables they read. Every strategy is a plain
function with the signature::

    strategy(question, context) -> Optional[StrategyResult]

returning None when it has nothing to say. The engine accepts the first
result whose confidence reaches ``SUGGESTION_MIN_CONFIDENCE``.

Strategies (in cascade order):
    1. direct_mapping    - fact path -> answer table, or an evaluation over
                           a structured fact
    2. system_analysis   - heuristics over ``technology_systems``
    3. industry_default  - (industry, question) default answers
    4. historical        - same question in the subject's last completed
                           assessment
    5. generative        - external text-generation collaborator, bounded
                           by a timeout; any failure means "no answer"

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import Executor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from complyscore.risk_assessment.metrics import record_strategy_failure
from complyscore.risk_assessment.models import (
    AnswerType,
    Assessment,
    AssessmentStatus,
    Industry,
    Question,
)
from complyscore.risk_assessment.scorer import normalise_answer

logger = logging.getLogger(__name__)

SUGGESTION_MIN_CONFIDENCE = 0.5

HISTORICAL_HUMAN_CONFIDENCE = 0.85
HISTORICAL_INFERRED_CONFIDENCE = 0.55

# (question_text, options, summarized_facts) -> {"answer": ..., "confidence": ...}
AnswerGenerator = Callable[[str, List[str], Dict[str, Any]], Mapping[str, Any]]


# =============================================================================
# Strategy plumbing
# =============================================================================


@dataclass(frozen=True)
class StrategyResult:
    """Answer proposed by one strategy."""
    answer: Any
    confidence: float
    rationale: str
    sources: Tuple[str, ...]
    strategy: str


@dataclass
class PopulationContext:
    """Everything a strategy may read while answering one question."""
    facts: Mapping[str, Any]
    assessment_id: Optional[str] = None
    subject_id: Optional[str] = None
    previous_assessments: Sequence[Assessment] = field(default_factory=tuple)
    generator: Optional[AnswerGenerator] = None
    executor: Optional[Executor] = None
    generative_timeout_seconds: float = 5.0

    @property
    def industry(self) -> Industry:
        return Industry.from_label(self.facts.get("industry"))

    @property
    def employee_count(self) -> Optional[int]:
        value = self.facts.get("employee_count")
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)) and math.isfinite(value):
            return int(value)
        return None

    @property
    def technology_systems(self) -> List[Mapping[str, Any]]:
        systems = self.facts.get("technology_systems")
        if not isinstance(systems, (list, tuple)):
            return []
        return [s for s in systems if isinstance(s, Mapping)]


Strategy = Callable[[Question, PopulationContext], Optional[StrategyResult]]


def get_nested_value(data: Any, path: str) -> Any:
    """Follow a dotted path through nested mappings; None when absent."""
    current = data
    for key in path.split("."):
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]
    return current


def _fact_key(value: Any) -> Any:
    if isinstance(value, str):
        folded = value.strip().lower()
        if folded in ("true", "yes"):
            return True
        if folded in ("false", "no"):
            return False
        return folded.replace(" ", "_").replace("-", "_")
    return value


def _system_text(system: Mapping[str, Any], key: str) -> str:
    value = system.get(key)
    return value if isinstance(value, str) else ""


def _system_list(system: Mapping[str, Any], key: str) -> List[str]:
    value = system.get(key)
    if not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if isinstance(v, str)]


# =============================================================================
# 1. Direct mapping
# =============================================================================


@dataclass(frozen=True)
class ValueMapping:
    """Fact value at ``data_path`` translated through ``mapping``."""
    data_path: str
    mapping: Mapping[Any, str]
    confidence: float
    source: str = "company_profile"


@dataclass(frozen=True)
class FactEvaluation:
    """Answer computed by ``evaluate`` over the fact at ``data_path``."""
    data_path: str
    evaluate: Callable[[Any], Optional[str]]
    confidence: float
    source: str = "company_systems"


_USER_MANAGED_SYSTEM_TYPES = frozenset({"EHR", "CRM", "ELECTRONIC HEALTH RECORDS"})


def _has_user_management(systems: Any) -> Optional[str]:
    if not isinstance(systems, (list, tuple)):
        return None
    for system in systems:
        if not isinstance(system, Mapping):
            continue
        if "user_management" in _system_list(system, "features"):
            return "yes"
        if _system_text(system, "type").upper() in _USER_MANAGED_SYSTEM_TYPES:
            return "yes"
    return "no"


DIRECT_MAPPINGS: Mapping[str, Union[ValueMapping, FactEvaluation]] = MappingProxyType({
    "admin_001": ValueMapping(
        data_path="current_security.has_security_officer",
        mapping={True: "yes", False: "no"},
        confidence=0.95,
    ),
    "admin_002": ValueMapping(
        data_path="current_security.employee_training",
        mapping={
            "never": "Never",
            "onboarding": "Once upon hiring",
            "annual": "Annually",
            "annually": "Annually",
            "semi_annual": "Semi-annually",
            "semi_annually": "Semi-annually",
            "quarterly": "Quarterly",
        },
        confidence=0.9,
    ),
    "tech_001": FactEvaluation(
        data_path="technology_systems",
        evaluate=_has_user_management,
        confidence=0.8,
    ),
    "tech_002": ValueMapping(
        data_path="current_security.encryption_status",
        mapping={
            "none": "No encryption used",
            "password": "Basic password protection",
            "aes_128": "AES-128 encryption",
            "aes_256": "AES-256 encryption",
            "end_to_end": "End-to-end encryption with key management",
        },
        confidence=0.85,
    ),
})


def from_direct_mapping(question: Question, context: PopulationContext) -> Optional[StrategyResult]:
    rule = DIRECT_MAPPINGS.get(question.question_id)
    if rule is None:
        return None

    value = get_nested_value(context.facts, rule.data_path)
    if value is None:
        logger.debug("No fact at %s for %s", rule.data_path, question.question_id)
        return None

    if isinstance(rule, FactEvaluation):
        answer = rule.evaluate(value)
        rationale = "Determined from company systems analysis"
    elif not isinstance(value, (str, bool, int, float)):
        logger.debug(
            "Fact at %s is not a scalar for %s: %r", rule.data_path, question.question_id, value,
        )
        return None
    else:
        answer = rule.mapping.get(_fact_key(value))
        rationale = "Directly mapped from company profile"
    if answer is None:
        return None

    return StrategyResult(
        answer=answer,
        confidence=rule.confidence,
        rationale=rationale,
        sources=(rule.source,),
        strategy="direct_mapping",
    )


# =============================================================================
# 2. System analysis
# =============================================================================


@dataclass(frozen=True)
class SystemRule:
    """Heuristic answer derived from the list of technology systems."""
    analyse: Callable[[List[Mapping[str, Any]]], Optional[str]]
    confidence: float


def _physical_access_from_deployment(systems: List[Mapping[str, Any]]) -> Optional[str]:
    deployments = [_system_text(s, "deployment_type").lower() for s in systems]
    if all(d == "cloud" for d in deployments):
        return "Key card access with logging"
    if any(d == "on_premise" for d in deployments):
        return "Locked doors only"
    return "No specific controls"


def _encryption_from_systems(systems: List[Mapping[str, Any]]) -> Optional[str]:
    for system in systems:
        name = _system_text(system, "name")
        if (
            "encryption" in _system_list(system, "security_features")
            or _system_text(system, "type").upper() in ("EHR", "ELECTRONIC HEALTH RECORDS")
            or "365" in name
            or "Google" in name
        ):
            return "AES-256 encryption"
    return "Basic password protection"


SYSTEM_RULES: Mapping[str, SystemRule] = MappingProxyType({
    "phys_001": SystemRule(analyse=_physical_access_from_deployment, confidence=0.7),
    "tech_002": SystemRule(analyse=_encryption_from_systems, confidence=0.75),
})


def from_system_analysis(question: Question, context: PopulationContext) -> Optional[StrategyResult]:
    rule = SYSTEM_RULES.get(question.question_id)
    systems = context.technology_systems
    if rule is None or not systems:
        return None
    answer = rule.analyse(systems)
    if answer is None:
        return None
    return StrategyResult(
        answer=answer,
        confidence=rule.confidence,
        rationale="Inferred from technology systems configuration",
        sources=("technology_systems",),
        strategy="system_analysis",
    )


# =============================================================================
# 3. Industry defaults
# =============================================================================


@dataclass(frozen=True)
class IndustryDefault:
    """Default answer for a question within one industry.

    ``small_org_answer`` replaces ``answer`` for organisations with at most
    ``small_org_max_employees`` employees.
    """
    answer: str
    confidence: float
    rationale: str
    small_org_answer: Optional[str] = None
    small_org_max_employees: Optional[int] = None

    def answer_for(self, employee_count: Optional[int]) -> str:
        if (
            self.small_org_answer is not None
            and self.small_org_max_employees is not None
            and employee_count is not None
            and employee_count <= self.small_org_max_employees
        ):
            return self.small_org_answer
        return self.answer


INDUSTRY_DEFAULTS: Mapping[Tuple[Industry, str], IndustryDefault] = MappingProxyType({
    (Industry.HEALTHCARE, "admin_002"): IndustryDefault(
        answer="Semi-annually",
        small_org_answer="Annually",
        small_org_max_employees=25,
        confidence=0.6,
        rationale="Healthcare industry standard based on organization size",
    ),
    (Industry.HEALTHCARE, "tech_002"): IndustryDefault(
        answer="AES-256 encryption",
        confidence=0.7,
        rationale="HIPAA requires strong encryption for PHI",
    ),
    (Industry.LEGAL, "admin_002"): IndustryDefault(
        answer="Annually",
        confidence=0.6,
        rationale="Legal industry standard for confidentiality training",
    ),
    (Industry.FINANCIAL_SERVICES, "tech_002"): IndustryDefault(
        answer="AES-256 encryption",
        confidence=0.8,
        rationale="Financial services require strong encryption standards",
    ),
})


def from_industry_default(question: Question, context: PopulationContext) -> Optional[StrategyResult]:
    default = INDUSTRY_DEFAULTS.get((context.industry, question.question_id))
    if default is None:
        return None
    return StrategyResult(
        answer=default.answer_for(context.employee_count),
        confidence=default.confidence,
        rationale=default.rationale,
        sources=("industry_standards",),
        strategy="industry_default",
    )


# =============================================================================
# 4. Historical answers
# =============================================================================


def from_previous_assessment(question: Question, context: PopulationContext) -> Optional[StrategyResult]:
    candidates = [
        a for a in context.previous_assessments
        if a.status == AssessmentStatus.COMPLETED
        and a.assessment_id != context.assessment_id
        and (context.subject_id is None or a.subject_id == context.subject_id)
    ]
    candidates.sort(key=lambda a: a.completed_at or a.updated_at, reverse=True)

    for previous in candidates:
        response = previous.response_for(question.question_id)
        if response is None or normalise_answer(question, response.answer) is None:
            continue
        confidence = (
            HISTORICAL_INFERRED_CONFIDENCE if response.inferred
            else HISTORICAL_HUMAN_CONFIDENCE
        )
        return StrategyResult(
            answer=response.answer,
            confidence=confidence,
            rationale="Carried over from the most recent completed assessment",
            sources=(f"assessment:{previous.assessment_id}",),
            strategy="historical",
        )
    return None


# =============================================================================
# 5. Generative inference
# =============================================================================


def summarize_facts(facts: Mapping[str, Any]) -> Dict[str, Any]:
    """Compact view of the facts handed to the generative collaborator."""
    systems = facts.get("technology_systems")
    names = []
    if isinstance(systems, (list, tuple)):
        names = [s.get("name") for s in systems if isinstance(s, Mapping) and s.get("name")]
    obligations = facts.get("compliance_obligations")
    if not isinstance(obligations, (list, tuple)):
        obligations = []
    return {
        "business_type": facts.get("business_type"),
        "industry": facts.get("industry"),
        "employee_count": facts.get("employee_count"),
        "systems": names,
        "compliance_obligations": list(obligations),
    }


def _legal_answer(question: Question, answer: Any) -> Optional[Any]:
    """Canonical form of a generated answer, or None if it is not legal."""
    if question.answer_type == AnswerType.MULTI_CHOICE:
        if not isinstance(answer, (list, tuple)):
            return None
        if not all(isinstance(a, str) and a in question.options for a in answer):
            return None
        return list(dict.fromkeys(answer))
    key = normalise_answer(question, answer)
    if key is None or key not in question.risk_mapping:
        return None
    return key


def from_generative_inference(question: Question, context: PopulationContext) -> Optional[StrategyResult]:
    if context.generator is None:
        return None

    options = list(question.options) or question.legal_answers()
    try:
        summary = summarize_facts(context.facts)
        if context.executor is not None:
            future = context.executor.submit(context.generator, question.text, options, summary)
            try:
                raw = future.result(timeout=context.generative_timeout_seconds)
            except FuturesTimeoutError:
                future.cancel()
                logger.warning(
                    "Generative inference timed out after %.1fs for %s",
                    context.generative_timeout_seconds, question.question_id,
                )
                record_strategy_failure("generative", "timeout")
                return None
        else:
            raw = context.generator(question.text, options, summary)
    except Exception as exc:
        logger.warning(
            "Generative inference failed for %s: %s", question.question_id, exc,
        )
        record_strategy_failure("generative", "error")
        return None

    if not isinstance(raw, Mapping):
        record_strategy_failure("generative", "invalid_answer")
        return None
    try:
        confidence = float(raw.get("confidence"))
    except (TypeError, ValueError):
        confidence = -1.0
    answer = _legal_answer(question, raw.get("answer"))
    if answer is None or not 0.0 <= confidence <= 1.0:
        logger.warning(
            "Generative inference returned an unusable answer for %s: %r",
            question.question_id, raw,
        )
        record_strategy_failure("generative", "invalid_answer")
        return None

    return StrategyResult(
        answer=answer,
        confidence=confidence,
        rationale="AI inference based on company profile and industry patterns",
        sources=("ai_inference",),
        strategy="generative",
    )


# =============================================================================
# Cascade order
# =============================================================================

DEFAULT_STRATEGIES: Tuple[Strategy, ...] = (
    from_direct_mapping,
    from_system_analysis,
    from_industry_default,
    from_previous_assessment,
    from_generative_inference,
)


__all__ = [
    "SUGGESTION_MIN_CONFIDENCE",
    "HISTORICAL_HUMAN_CONFIDENCE",
    "HISTORICAL_INFERRED_CONFIDENCE",
    "AnswerGenerator",
    "StrategyResult",
    "PopulationContext",
    "Strategy",
    "ValueMapping",
    "FactEvaluation",
    "SystemRule",
    "IndustryDefault",
    "DIRECT_MAPPINGS",
    "SYSTEM_RULES",
    "INDUSTRY_DEFAULTS",
    "DEFAULT_STRATEGIES",
    "get_nested_value",
    "summarize_facts",
    "from_direct_mapping",
    "from_system_analysis",
    "from_industry_default",
    "from_previous_assessment",
    "from_generative_inference",
]
