# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

import pytest

from complyscore.risk_assessment.auto_population import AutoPopulationEngine
from complyscore.risk_assessment.catalog import QuestionCatalog, default_catalog
from complyscore.risk_assessment.config import RiskAssessmentConfig, reset_config
from complyscore.risk_assessment.models import Assessment, Response
from complyscore.risk_assessment.progression import ProgressionManager
from complyscore.risk_assessment.provenance import ProvenanceTracker
from complyscore.risk_assessment.scorer import RiskScorer
from complyscore.risk_assessment.state_manager import (
    AssessmentStateManager,
    InMemoryAssessmentRepository,
)


@pytest.fixture(autouse=True)
def _clean_config(monkeypatch):
    """Isolate every test from COMPLYSCORE_ environment overrides."""
    for name in list(os.environ):
        if name.startswith("COMPLYSCORE_"):
            monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config():
    return RiskAssessmentConfig(generative_timeout_seconds=0.2)


@pytest.fixture(scope="session")
def catalog():
    return default_catalog()


@pytest.fixture
def scorer(catalog):
    return RiskScorer(catalog=catalog)


@pytest.fixture
def provenance():
    return ProvenanceTracker()


@pytest.fixture
def progression(scorer):
    return ProgressionManager(scorer=scorer)


@pytest.fixture
def engine(catalog, config):
    with AutoPopulationEngine(catalog=catalog, config=config) as eng:
        yield eng


@pytest.fixture
def repository():
    return InMemoryAssessmentRepository()


@pytest.fixture
def state(repository, progression, provenance, config):
    return AssessmentStateManager(
        repository=repository,
        progression=progression,
        provenance=provenance,
        config=config,
    )


@pytest.fixture
def fixed_now():
    return datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_assessment():
    """Build an assessment from ``{question_id: answer}``.

    Question ids listed in ``inferred`` are recorded as suggestions.
    """

    def _make(
        answers: Optional[Dict[str, Any]] = None,
        inferred: Iterable[str] = (),
        subject_id: str = "clinic-1",
        **fields: Any,
    ) -> Assessment:
        inferred = set(inferred)
        responses = [
            Response(
                question_id=question_id,
                answer=answer,
                inferred=question_id in inferred,
                confidence=0.9 if question_id in inferred else None,
            )
            for question_id, answer in (answers or {}).items()
        ]
        return Assessment(subject_id=subject_id, responses=responses, **fields)

    return _make


@pytest.fixture
def uniform_catalog():
    """One boolean question per category: yes -> risk 10, no -> risk 90."""
    records = [
        {
            "question_id": f"{prefix}_q",
            "category": category,
            "complexity_level": 1,
            "text": f"{category} control in place?",
            "answer_type": "boolean",
            "weight": 3,
            "risk_mapping": {
                "yes": {"risk_score": 10, "rationale": "in place"},
                "no": {
                    "risk_score": 90,
                    "rationale": "missing",
                    "remediation": f"Put a {category} control in place",
                },
            },
        }
        for prefix, category in (
            ("adm", "administrative"),
            ("phy", "physical"),
            ("tec", "technical"),
        )
    ]
    return QuestionCatalog.from_records(records, version="uniform-test")


@pytest.fixture
def healthcare_facts():
    return {
        "business_type": "Dental practice",
        "industry": "healthcare",
        "employee_count": 18,
        "technology_systems": [
            {
                "name": "Dentrix",
                "type": "EHR",
                "deployment_type": "cloud",
                "features": ["scheduling", "user_management"],
                "security_features": ["encryption"],
            },
            {
                "name": "Microsoft 365",
                "type": "Email",
                "deployment_type": "cloud",
            },
        ],
        "current_security": {"has_security_officer": True},
        "compliance_obligations": ["HIPAA"],
    }
