# -*- coding: utf-8 -*-
"""
Question Catalog

Static, versioned HIPAA Security Rule question table and the
``QuestionCatalog`` container that validates it at load time.

Integrity rules (violations raise ``CatalogIntegrityError`` and the engine
refuses to start):
    - question ids are unique
    - weights are positive integers
    - boolean questions map both ``yes`` and ``no``
    - single-choice questions map every declared option
    - free-text questions map at least one classification label
    - multi-choice buckets partition ``[0, len(options)]`` into contiguous
      ranges with no gap and no overlap

Example:
    >>> from complyscore.risk_assessment.catalog import default_catalog
    >>> catalog = default_catalog()
    >>> catalog.get("admin_001").weight
    5
    >>> len(catalog.questions_for_tier(1))
    6

Author: ComplyScore Platform Team
Status: Production Ready
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import yaml
from pydantic import ValidationError

from complyscore.exceptions import CatalogIntegrityError
from complyscore.risk_assessment.models import (
    AnswerType,
    ComplexityTier,
    CountBucket,
    Question,
    RiskDescriptor,
    SafeguardCategory,
)

logger = logging.getLogger(__name__)

CATALOG_VERSION = "hipaa-2024.1"


def _risk(score: int, rationale: str, remediation: Optional[str] = None) -> RiskDescriptor:
    return RiskDescriptor(risk_score=score, rationale=rationale, remediation=remediation)


def _bucket(low: int, high: int, descriptor: RiskDescriptor) -> CountBucket:
    return CountBucket(low=low, high=high, descriptor=descriptor)


# =============================================================================
# HIPAA Security Rule question table
# =============================================================================

HIPAA_QUESTIONS: tuple = (
    # -- Administrative safeguards ------------------------------------------
    Question(
        question_id="admin_001",
        category=SafeguardCategory.ADMINISTRATIVE,
        complexity_level=1,
        text="Does your organization have a designated HIPAA Security Officer?",
        answer_type=AnswerType.BOOLEAN,
        weight=5,
        risk_mapping={
            "yes": _risk(
                20,
                "Having a designated Security Officer is required and "
                "significantly reduces risk",
            ),
            "no": _risk(
                95,
                "No Security Officer creates major compliance gap and high audit risk",
                "Immediately designate a HIPAA Security Officer",
            ),
        },
        help_text=(
            "The Security Officer is responsible for developing and "
            "implementing security policies and procedures"
        ),
        regulatory_reference="45 CFR 164.308(a)(2)",
    ),
    Question(
        question_id="admin_002",
        category=SafeguardCategory.ADMINISTRATIVE,
        complexity_level=1,
        text="How often does your organization conduct HIPAA security training?",
        answer_type=AnswerType.SINGLE_CHOICE,
        options=["Never", "Once upon hiring", "Annually", "Semi-annually", "Quarterly"],
        weight=4,
        risk_mapping={
            "Never": _risk(
                100,
                "No security training creates maximum risk and compliance violation",
                "Implement immediate security training program",
            ),
            "Once upon hiring": _risk(
                70,
                "Initial training only is insufficient for ongoing compliance",
                "Establish annual refresher training",
            ),
            "Annually": _risk(
                30, "Annual training meets minimum requirements but could be improved",
            ),
            "Semi-annually": _risk(
                15, "Semi-annual training demonstrates strong commitment to compliance",
            ),
            "Quarterly": _risk(
                5, "Quarterly training exceeds requirements and minimizes risk",
            ),
        },
        regulatory_reference="45 CFR 164.308(a)(5)",
    ),
    Question(
        question_id="admin_003",
        category=SafeguardCategory.ADMINISTRATIVE,
        complexity_level=2,
        text="Which access control procedures does your organization have in place?",
        answer_type=AnswerType.MULTI_CHOICE,
        options=[
            "Written access authorization procedures",
            "Role-based access controls",
            "Automatic logoff procedures",
            "Regular access reviews and updates",
            "Emergency access procedures",
            "User access monitoring and logging",
        ],
        weight=4,
        buckets=[
            _bucket(0, 1, _risk(
                90,
                "Minimal access controls create high security risk",
                "Implement comprehensive access control procedures",
            )),
            _bucket(2, 3, _risk(
                60,
                "Basic access controls present but significant gaps remain",
                "Expand access control procedures",
            )),
            _bucket(4, 5, _risk(
                25, "Good access controls with minor areas for improvement",
            )),
            _bucket(6, 6, _risk(
                10, "Comprehensive access controls demonstrate strong security posture",
            )),
        ],
        regulatory_reference="45 CFR 164.308(a)(4)",
    ),
    Question(
        question_id="admin_004",
        category=SafeguardCategory.ADMINISTRATIVE,
        complexity_level=3,
        text="Describe your incident response procedure for potential PHI breaches",
        answer_type=AnswerType.FREE_TEXT,
        weight=5,
        risk_mapping={
            "detailed_procedure": _risk(
                15, "Comprehensive incident response plan reduces breach impact",
            ),
            "basic_procedure": _risk(
                40,
                "Basic procedures present but may lack detail for effective response",
            ),
            "no_procedure": _risk(
                85,
                "No incident response plan creates high risk and compliance violation",
                "Develop comprehensive incident response procedures",
            ),
        },
        help_text=(
            "Include detection, containment, assessment, notification, and "
            "remediation steps"
        ),
        regulatory_reference="45 CFR 164.308(a)(6)",
    ),
    # -- Physical safeguards ------------------------------------------------
    Question(
        question_id="phys_001",
        category=SafeguardCategory.PHYSICAL,
        complexity_level=1,
        text="How do you control physical access to facilities containing PHI?",
        answer_type=AnswerType.SINGLE_CHOICE,
        options=[
            "No specific controls",
            "Locked doors only",
            "Key card access with logging",
            "Biometric access controls",
            "Multi-factor physical authentication",
        ],
        weight=4,
        risk_mapping={
            "No specific controls": _risk(
                95,
                "No physical access controls create severe security vulnerability",
                "Implement immediate physical access controls",
            ),
            "Locked doors only": _risk(
                70,
                "Basic physical security insufficient for PHI protection",
                "Upgrade to access control system with logging",
            ),
            "Key card access with logging": _risk(
                30, "Good physical access controls with audit trail",
            ),
            "Biometric access controls": _risk(15, "Strong physical security measures"),
            "Multi-factor physical authentication": _risk(
                5, "Excellent physical security exceeding requirements",
            ),
        },
        regulatory_reference="45 CFR 164.310(a)(1)",
    ),
    Question(
        question_id="phys_002",
        category=SafeguardCategory.PHYSICAL,
        complexity_level=1,
        text="Are workstations positioned to prevent unauthorized viewing of PHI?",
        answer_type=AnswerType.BOOLEAN,
        weight=3,
        risk_mapping={
            "yes": _risk(
                20, "Proper workstation positioning reduces unauthorized PHI viewing risk",
            ),
            "no": _risk(
                75,
                "Poor workstation positioning creates privacy risk",
                "Reposition workstations or install privacy screens",
            ),
        },
        regulatory_reference="45 CFR 164.310(b)",
    ),
    Question(
        question_id="phys_003",
        category=SafeguardCategory.PHYSICAL,
        complexity_level=2,
        text="What controls are in place for media containing PHI?",
        answer_type=AnswerType.MULTI_CHOICE,
        options=[
            "Media disposal/reuse procedures",
            "Secure media transport procedures",
            "Media access controls and logging",
            "Backup media encryption",
            "Media sanitization procedures",
            "Chain of custody documentation",
        ],
        weight=4,
        buckets=[
            _bucket(0, 1, _risk(
                85,
                "Insufficient media controls create high data breach risk",
                "Implement comprehensive media control procedures",
            )),
            _bucket(2, 3, _risk(55, "Basic media controls present but gaps remain")),
            _bucket(4, 5, _risk(25, "Good media controls with minor improvements needed")),
            _bucket(6, 6, _risk(
                10, "Comprehensive media controls demonstrate strong security",
            )),
        ],
        regulatory_reference="45 CFR 164.310(d)",
    ),
    # -- Technical safeguards -----------------------------------------------
    Question(
        question_id="tech_001",
        category=SafeguardCategory.TECHNICAL,
        complexity_level=1,
        text="Do you use unique user identification for each person accessing PHI?",
        answer_type=AnswerType.BOOLEAN,
        weight=5,
        risk_mapping={
            "yes": _risk(
                15, "Unique user identification enables proper access control and auditing",
            ),
            "no": _risk(
                90,
                "Shared accounts prevent accountability and audit compliance",
                "Implement unique user accounts for all PHI access",
            ),
        },
        regulatory_reference="45 CFR 164.312(a)(2)(i)",
    ),
    Question(
        question_id="tech_002",
        category=SafeguardCategory.TECHNICAL,
        complexity_level=1,
        text="What type of encryption do you use for PHI?",
        answer_type=AnswerType.SINGLE_CHOICE,
        options=[
            "No encryption used",
            "Basic password protection",
            "AES-128 encryption",
            "AES-256 encryption",
            "End-to-end encryption with key management",
        ],
        weight=5,
        risk_mapping={
            "No encryption used": _risk(
                100,
                "No encryption creates maximum data breach risk",
                "Implement immediate PHI encryption",
            ),
            "Basic password protection": _risk(
                80,
                "Password protection insufficient for PHI security",
                "Upgrade to proper encryption standards",
            ),
            "AES-128 encryption": _risk(
                30, "Good encryption standard with room for improvement",
            ),
            "AES-256 encryption": _risk(
                15, "Strong encryption standard meeting best practices",
            ),
            "End-to-end encryption with key management": _risk(
                5, "Excellent encryption implementation exceeding requirements",
            ),
        },
        regulatory_reference="45 CFR 164.312(a)(2)(iv)",
    ),
    Question(
        question_id="tech_003",
        category=SafeguardCategory.TECHNICAL,
        complexity_level=2,
        text="How often do you review access logs for PHI systems?",
        answer_type=AnswerType.SINGLE_CHOICE,
        options=[
            "Never",
            "When incidents occur",
            "Monthly",
            "Weekly",
            "Daily",
            "Real-time monitoring",
        ],
        weight=4,
        risk_mapping={
            "Never": _risk(
                95,
                "No log review prevents detection of unauthorized access",
                "Implement regular access log monitoring",
            ),
            "When incidents occur": _risk(
                75, "Reactive monitoring insufficient for proactive security",
            ),
            "Monthly": _risk(45, "Monthly reviews provide basic monitoring but gaps exist"),
            "Weekly": _risk(25, "Weekly reviews demonstrate good security practices"),
            "Daily": _risk(15, "Daily monitoring shows strong commitment to security"),
            "Real-time monitoring": _risk(
                5, "Real-time monitoring provides optimal security oversight",
            ),
        },
        regulatory_reference="45 CFR 164.312(b)",
    ),
    Question(
        question_id="tech_004",
        category=SafeguardCategory.TECHNICAL,
        complexity_level=3,
        text="What data integrity measures protect PHI from alteration or destruction?",
        answer_type=AnswerType.MULTI_CHOICE,
        options=[
            "Digital signatures for PHI records",
            "Version control systems",
            "Backup and recovery procedures tested regularly",
            "Checksums or hash verification",
            "Change audit trails",
            "Data loss prevention systems",
        ],
        weight=4,
        buckets=[
            _bucket(0, 1, _risk(
                80,
                "Insufficient data integrity controls risk PHI corruption",
                "Implement comprehensive data integrity measures",
            )),
            _bucket(2, 3, _risk(
                50, "Basic integrity controls present but enhancement needed",
            )),
            _bucket(4, 5, _risk(20, "Good data integrity controls with minor gaps")),
            _bucket(6, 6, _risk(
                10, "Comprehensive data integrity measures demonstrate excellence",
            )),
        ],
        regulatory_reference="45 CFR 164.312(c)(1)",
    ),
)


# =============================================================================
# Integrity checks
# =============================================================================


def find_integrity_problems(question: Question) -> List[str]:
    """Return every integrity finding for one question (empty when sound).

    Args:
        question: Question definition to check.

    Returns:
        Human-readable problem descriptions.
    """
    problems: List[str] = []

    if question.weight <= 0:
        problems.append(f"weight must be positive, got {question.weight}")

    if question.answer_type == AnswerType.MULTI_CHOICE:
        problems.extend(_bucket_problems(question))
        return problems

    if question.answer_type == AnswerType.SINGLE_CHOICE:
        if not question.options:
            problems.append("single-choice question declares no options")
        if len(set(question.options)) != len(question.options):
            problems.append("options contain duplicates")

    if question.answer_type == AnswerType.FREE_TEXT and not question.risk_mapping:
        problems.append("free-text question maps no classification labels")

    missing = [a for a in question.legal_answers() if a not in question.risk_mapping]
    if missing:
        problems.append(f"risk mapping misses answers {missing}")
    return problems


def _bucket_problems(question: Question) -> List[str]:
    problems: List[str] = []
    option_count = len(question.options)
    if option_count == 0:
        problems.append("multi-choice question declares no options")
    if not question.buckets:
        problems.append("multi-choice question defines no count buckets")
        return problems

    expected_low = 0
    for bucket in sorted(question.buckets, key=lambda b: (b.low, b.high)):
        if bucket.low > expected_low:
            problems.append(f"counts {expected_low}-{bucket.low - 1} are not covered")
        elif bucket.low < expected_low:
            problems.append(f"bucket {bucket.label} overlaps a previous bucket")
        expected_low = max(expected_low, bucket.high + 1)

    if expected_low <= option_count:
        problems.append(f"counts {expected_low}-{option_count} are not covered")
    elif expected_low > option_count + 1:
        problems.append(
            f"buckets extend to {expected_low - 1} beyond {option_count} options"
        )
    return problems


# =============================================================================
# QuestionCatalog
# =============================================================================


class QuestionCatalog:
    """Immutable, validated collection of questions.

    Construction runs the integrity checks over every question and raises
    ``CatalogIntegrityError`` listing all findings when any fail.

    Attributes:
        version: Catalog version string.
    """

    def __init__(
        self,
        questions: Iterable[Question],
        version: str = CATALOG_VERSION,
    ) -> None:
        self.version = version
        self._questions: Dict[str, Question] = {}
        problems: List[str] = []

        for question in questions:
            if question.question_id in self._questions:
                problems.append(f"{question.question_id}: duplicate question id")
                continue
            for problem in find_integrity_problems(question):
                problems.append(f"{question.question_id}: {problem}")
            self._questions[question.question_id] = question

        if problems:
            logger.error(
                "Catalog %s failed integrity checks: %s", version, "; ".join(problems),
            )
            raise CatalogIntegrityError(
                message=f"Catalog {version} failed {len(problems)} integrity check(s)",
                problems=problems,
                context={"version": version},
            )

        logger.info(
            "QuestionCatalog %s loaded with %d questions", version, len(self._questions),
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, question_id: str) -> Optional[Question]:
        return self._questions.get(question_id)

    def questions_for_category(self, category: SafeguardCategory) -> List[Question]:
        return [q for q in self._questions.values() if q.category == category]

    def questions_for_tier(self, tier: Union[ComplexityTier, int]) -> List[Question]:
        """Questions whose complexity level is at or below the tier's level."""
        level = int(tier)
        return [q for q in self._questions.values() if q.complexity_level <= level]

    @property
    def question_ids(self) -> List[str]:
        return list(self._questions)

    @property
    def categories(self) -> List[SafeguardCategory]:
        seen: List[SafeguardCategory] = []
        for question in self._questions.values():
            if question.category not in seen:
                seen.append(question.category)
        return seen

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._questions

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions.values())

    def __len__(self) -> int:
        return len(self._questions)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_records(
        cls,
        records: Iterable[Dict[str, Any]],
        version: str = CATALOG_VERSION,
    ) -> QuestionCatalog:
        """Build a catalog from plain dictionaries.

        Raises:
            CatalogIntegrityError: If a record is malformed or the resulting
                catalog breaks an integrity rule.
        """
        questions = []
        for index, record in enumerate(records):
            try:
                questions.append(Question.model_validate(record))
            except ValidationError as exc:
                raise CatalogIntegrityError(
                    message=f"Catalog record {index} is malformed",
                    question_id=record.get("question_id") if isinstance(record, dict) else None,
                    problems=[e["msg"] for e in exc.errors()],
                ) from exc
        return cls(questions, version=version)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> QuestionCatalog:
        """Load a catalog document with ``version`` and ``questions`` keys.

        Args:
            path: YAML (or JSON) file path.

        Returns:
            Validated QuestionCatalog.
        """
        with open(path, encoding="utf-8") as handle:
            document = yaml.safe_load(handle) or {}
        if not isinstance(document, dict) or not isinstance(document.get("questions"), list):
            raise CatalogIntegrityError(
                message=f"Catalog file {path} has no 'questions' list",
                context={"path": str(path)},
            )
        return cls.from_records(
            document["questions"], version=str(document.get("version", CATALOG_VERSION)),
        )


@functools.lru_cache(maxsize=1)
def default_catalog() -> QuestionCatalog:
    """Return the built-in HIPAA catalog, validated once per process."""
    return QuestionCatalog(HIPAA_QUESTIONS, version=CATALOG_VERSION)


__all__ = [
    "CATALOG_VERSION",
    "HIPAA_QUESTIONS",
    "QuestionCatalog",
    "default_catalog",
    "find_integrity_problems",
]
