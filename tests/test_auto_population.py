# -*- coding: utf-8 -*-
"""Tests for the Auto-Population Engine and its strategies."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from complyscore.risk_assessment.auto_population import (
    AutoPopulationEngine,
    confidence_bucket,
)
from complyscore.risk_assessment.config import RiskAssessmentConfig
from complyscore.risk_assessment.models import (
    AssessmentStatus,
    CompanyProfile,
    OperationType,
    PopulationSummary,
)
from complyscore.risk_assessment.population_strategies import (
    PopulationContext,
    StrategyResult,
    from_direct_mapping,
    from_industry_default,
    from_previous_assessment,
    from_system_analysis,
    get_nested_value,
    summarize_facts,
)


def _by_question(result):
    return {s.question_id: s for s in result.suggestions}


def _first_option(question_text, options, facts):
    return {"answer": options[0], "confidence": 0.65}


# ==============================================================================
# Direct Mapping
# ==============================================================================

class TestDirectMapping:
    """Tests for the direct-mapping strategy."""

    def test_security_officer_maps_to_yes(self, engine, make_assessment):
        result = engine.populate(
            make_assessment(),
            {"current_security": {"has_security_officer": True}},
        )
        suggestion = _by_question(result)["admin_001"]

        assert suggestion.answer == "yes"
        assert suggestion.confidence >= 0.9
        assert suggestion.strategy == "direct_mapping"
        assert suggestion.inferred is True
        assert suggestion.sources == ["company_profile"]

    def test_direct_mapping_wins_over_industry_default(self, engine, make_assessment):
        facts = {
            "industry": "healthcare",
            "employee_count": 10,
            "current_security": {"employee_training": "quarterly"},
        }
        suggestion = _by_question(engine.populate(make_assessment(), facts))["admin_002"]

        assert suggestion.answer == "Quarterly"
        assert suggestion.confidence == 0.9
        assert suggestion.strategy == "direct_mapping"

    def test_string_booleans_are_understood(self, catalog):
        context = PopulationContext(facts={"current_security": {"has_security_officer": "false"}})
        outcome = from_direct_mapping(catalog.get("admin_001"), context)
        assert outcome.answer == "no"

    def test_unmapped_fact_value_fails(self, catalog):
        context = PopulationContext(facts={"current_security": {"employee_training": "sometimes"}})
        assert from_direct_mapping(catalog.get("admin_002"), context) is None

    def test_missing_fact_path_fails(self, catalog):
        assert from_direct_mapping(catalog.get("admin_001"), PopulationContext(facts={})) is None

    def test_user_management_evaluation(self, catalog, healthcare_facts):
        outcome = from_direct_mapping(
            catalog.get("tech_001"), PopulationContext(facts=healthcare_facts),
        )
        assert outcome.answer == "yes"
        assert outcome.confidence == 0.8

    def test_systems_without_user_management(self, catalog):
        facts = {"technology_systems": [{"name": "Fax", "type": "Printer"}]}
        outcome = from_direct_mapping(catalog.get("tech_001"), PopulationContext(facts=facts))
        assert outcome.answer == "no"

    def test_empty_system_list_means_no_user_management(self, catalog):
        context = PopulationContext(facts={"technology_systems": []})
        outcome = from_direct_mapping(catalog.get("tech_001"), context)
        assert outcome.answer == "no"
        assert outcome.confidence == 0.8

    @pytest.mark.parametrize("value", [
        ["annual", "onboarding"],
        {"frequency": "annual"},
    ])
    def test_non_scalar_fact_fails(self, catalog, value):
        context = PopulationContext(facts={"current_security": {"employee_training": value}})
        assert from_direct_mapping(catalog.get("admin_002"), context) is None

    def test_non_scalar_fact_does_not_stop_population(self, engine, make_assessment):
        facts = {"current_security": {
            "employee_training": ["annual", "onboarding"],
            "has_security_officer": True,
        }}
        suggestions = _by_question(engine.populate(make_assessment(), facts))

        assert "admin_002" not in suggestions
        assert suggestions["admin_001"].answer == "yes"

    def test_encryption_status(self, catalog):
        facts = {"current_security": {"encryption_status": "AES-256"}}
        outcome = from_direct_mapping(catalog.get("tech_002"), PopulationContext(facts=facts))
        assert outcome.answer == "AES-256 encryption"
        assert outcome.confidence == 0.85

    def test_get_nested_value(self):
        data = {"a": {"b": {"c": 3}}, "x": 1}
        assert get_nested_value(data, "a.b.c") == 3
        assert get_nested_value(data, "a.b.missing") is None
        assert get_nested_value(data, "x.y") is None


# ==============================================================================
# System Analysis
# ==============================================================================

class TestSystemAnalysis:
    """Tests for heuristics over technology systems."""

    @pytest.mark.parametrize("deployments,answer", [
        (["cloud", "cloud"], "Key card access with logging"),
        (["cloud", "on_premise"], "Locked doors only"),
        (["hybrid"], "No specific controls"),
    ])
    def test_physical_access_from_deployment(self, catalog, deployments, answer):
        facts = {"technology_systems": [
            {"name": f"sys{i}", "deployment_type": d} for i, d in enumerate(deployments)
        ]}
        outcome = from_system_analysis(catalog.get("phys_001"), PopulationContext(facts=facts))

        assert outcome.answer == answer
        assert outcome.confidence == 0.7
        assert outcome.strategy == "system_analysis"

    def test_modern_systems_imply_strong_encryption(self, catalog):
        facts = {"technology_systems": [{"name": "Google Workspace", "type": "Email"}]}
        outcome = from_system_analysis(catalog.get("tech_002"), PopulationContext(facts=facts))
        assert outcome.answer == "AES-256 encryption"
        assert outcome.confidence == 0.75

    def test_legacy_systems_imply_password_protection(self, catalog):
        facts = {"technology_systems": [{"name": "Old server", "type": "File share"}]}
        outcome = from_system_analysis(catalog.get("tech_002"), PopulationContext(facts=facts))
        assert outcome.answer == "Basic password protection"

    def test_no_systems_fails(self, catalog):
        context = PopulationContext(facts={"technology_systems": []})
        assert from_system_analysis(catalog.get("phys_001"), context) is None


# ==============================================================================
# Industry Defaults
# ==============================================================================

class TestIndustryDefaults:
    """Tests for (industry, question) default answers."""

    @pytest.mark.parametrize("employees,answer", [(25, "Annually"), (26, "Semi-annually")])
    def test_healthcare_training_depends_on_size(self, catalog, employees, answer):
        context = PopulationContext(facts={"industry": "healthcare", "employee_count": employees})
        outcome = from_industry_default(catalog.get("admin_002"), context)

        assert outcome.answer == answer
        assert outcome.confidence == 0.6
        assert outcome.sources == ("industry_standards",)

    def test_industry_label_is_normalised(self, catalog):
        context = PopulationContext(facts={"industry": "Financial Services"})
        outcome = from_industry_default(catalog.get("tech_002"), context)
        assert outcome.answer == "AES-256 encryption"
        assert outcome.confidence == 0.8

    def test_unknown_industry_has_no_defaults(self, catalog):
        context = PopulationContext(facts={"industry": "retail"})
        assert from_industry_default(catalog.get("tech_002"), context) is None


# ==============================================================================
# Historical Answers
# ==============================================================================

class TestHistorical:
    """Tests for answers carried over from completed assessments."""

    def _completed(self, make_assessment, answers, inferred=(), subject_id="clinic-1", days_ago=30):
        return make_assessment(
            answers,
            inferred=inferred,
            subject_id=subject_id,
            status=AssessmentStatus.COMPLETED,
            completed_at=datetime.now(timezone.utc) - timedelta(days=days_ago),
        )

    def test_human_prior_answer(self, catalog, make_assessment):
        previous = self._completed(make_assessment, {"phys_002": "yes"})
        context = PopulationContext(
            facts={}, subject_id="clinic-1", previous_assessments=[previous],
        )
        outcome = from_previous_assessment(catalog.get("phys_002"), context)

        assert outcome.answer == "yes"
        assert outcome.confidence == 0.85
        assert outcome.sources == (f"assessment:{previous.assessment_id}",)

    def test_inferred_prior_answer_has_lower_confidence(self, catalog, make_assessment):
        previous = self._completed(make_assessment, {"phys_002": "no"}, inferred=["phys_002"])
        context = PopulationContext(
            facts={}, subject_id="clinic-1", previous_assessments=[previous],
        )
        assert from_previous_assessment(catalog.get("phys_002"), context).confidence == 0.55

    def test_newest_completed_assessment_wins(self, catalog, make_assessment):
        older = self._completed(make_assessment, {"phys_002": "no"}, days_ago=400)
        newer = self._completed(make_assessment, {"phys_002": "yes"}, days_ago=10)
        context = PopulationContext(
            facts={}, subject_id="clinic-1", previous_assessments=[older, newer],
        )
        assert from_previous_assessment(catalog.get("phys_002"), context).answer == "yes"

    def test_other_subjects_and_open_assessments_are_ignored(self, catalog, make_assessment):
        other_subject = self._completed(make_assessment, {"phys_002": "yes"}, subject_id="clinic-2")
        in_progress = make_assessment({"phys_002": "yes"}, status=AssessmentStatus.IN_PROGRESS)
        context = PopulationContext(
            facts={}, subject_id="clinic-1",
            previous_assessments=[other_subject, in_progress],
        )
        assert from_previous_assessment(catalog.get("phys_002"), context) is None

    def test_engine_uses_history(self, engine, make_assessment):
        previous = self._completed(make_assessment, {"tech_003": "Weekly"})
        result = engine.populate(make_assessment(), {}, previous_assessments=[previous])
        suggestion = _by_question(result)["tech_003"]

        assert suggestion.answer == "Weekly"
        assert suggestion.strategy == "historical"


# ==============================================================================
# Generative Inference
# ==============================================================================

class TestGenerative:
    """The generative collaborator is optional, bounded and never fatal."""

    def test_generator_fills_remaining_questions(self, catalog, config, make_assessment):
        with AutoPopulationEngine(catalog=catalog, config=config, generator=_first_option) as engine:
            result = engine.populate(make_assessment(), {})

        # multi-choice questions cannot take a single option string
        assert result.summary.suggested_questions == 8
        assert result.summary.medium_confidence == 8
        assert all(s.strategy == "generative" for s in result.suggestions)
        assert _by_question(result)["admin_001"].answer == "yes"
        assert _by_question(result)["admin_002"].answer == "Never"

    def test_generator_receives_summarized_facts(self, catalog, config, make_assessment, healthcare_facts):
        seen = []

        def generator(question_text, options, facts):
            seen.append(facts)
            return {"answer": options[0], "confidence": 0.9}

        with AutoPopulationEngine(catalog=catalog, config=config, generator=generator) as engine:
            engine.populate(make_assessment(), healthcare_facts)

        assert seen
        assert seen[0] == summarize_facts(healthcare_facts)
        assert seen[0]["systems"] == ["Dentrix", "Microsoft 365"]

    def test_malformed_facts_do_not_stop_generation(self, catalog, config, make_assessment):
        seen = []

        def generator(question_text, options, facts):
            seen.append(facts)
            return {"answer": options[0], "confidence": 0.65}

        facts = {"compliance_obligations": 3, "technology_systems": "Dentrix"}
        with AutoPopulationEngine(catalog=catalog, config=config, generator=generator) as engine:
            result = engine.populate(make_assessment(), facts)

        assert result.summary.suggested_questions == 8
        assert seen[0]["compliance_obligations"] == []
        assert seen[0]["systems"] == []

    def test_summarize_facts_ignores_non_list_obligations(self):
        summary = summarize_facts({"compliance_obligations": "HIPAA", "employee_count": 4})
        assert summary["compliance_obligations"] == []
        assert summary["employee_count"] == 4

    def test_generator_errors_are_not_fatal(self, catalog, config, make_assessment):
        def failing(question_text, options, facts):
            raise RuntimeError("model unavailable")

        facts = {"current_security": {"has_security_officer": False}}
        with AutoPopulationEngine(catalog=catalog, config=config, generator=failing) as engine:
            result = engine.populate(make_assessment(), facts)

        assert [s.question_id for s in result.suggestions] == ["admin_001"]
        assert result.summary.total_questions == 11

    def test_generator_timeout_is_not_fatal(self, catalog, make_assessment):
        release = threading.Event()

        def slow(question_text, options, facts):
            release.wait(5)
            return {"answer": options[0], "confidence": 0.9}

        config = RiskAssessmentConfig(generative_timeout_seconds=0.05, generative_max_workers=12)
        try:
            with AutoPopulationEngine(catalog=catalog, config=config, generator=slow) as engine:
                result = engine.populate(make_assessment(), {})
        finally:
            release.set()

        assert result.suggestions == []

    @pytest.mark.parametrize("reply", [
        {"answer": "perhaps", "confidence": 0.9},
        {"answer": "yes", "confidence": 1.5},
        {"answer": "yes", "confidence": "high"},
        {"answer": "yes"},
        "yes",
    ])
    def test_unusable_replies_are_rejected(self, catalog, config, make_assessment, reply):
        with AutoPopulationEngine(
            catalog=catalog, config=config, generator=lambda *args: reply,
        ) as engine:
            result = engine.populate(make_assessment(), {})
        assert "admin_001" not in _by_question(result)

    def test_low_confidence_reply_is_not_suggested(self, catalog, config, make_assessment):
        with AutoPopulationEngine(
            catalog=catalog, config=config,
            generator=lambda *args: {"answer": "yes", "confidence": 0.3},
        ) as engine:
            result = engine.populate(make_assessment(), {})
        assert result.suggestions == []

    def test_multi_choice_list_reply(self, catalog, config, make_assessment):
        def lists(question_text, options, facts):
            return {"answer": options[:2], "confidence": 0.7}

        with AutoPopulationEngine(catalog=catalog, config=config, generator=lists) as engine:
            result = engine.populate(make_assessment(), {})
        suggestion = _by_question(result)["admin_003"]
        assert suggestion.answer == catalog.get("admin_003").options[:2]

    def test_generator_ignored_when_disabled(self, catalog, make_assessment):
        config = RiskAssessmentConfig(enable_generative_inference=False)
        with AutoPopulationEngine(catalog=catalog, config=config, generator=_first_option) as engine:
            assert engine.generator is None
            assert engine.populate(make_assessment(), {}).suggestions == []


# ==============================================================================
# Engine
# ==============================================================================

class TestEngine:
    """Tests for the cascade runner and the population summary."""

    def test_human_answers_are_skipped_and_not_counted(self, engine, make_assessment, healthcare_facts):
        assessment = make_assessment({"admin_001": "no", "phys_002": "yes"})
        result = engine.populate(assessment, healthcare_facts)

        assert "admin_001" not in _by_question(result)
        assert result.summary.total_questions == 9

    def test_inferred_answers_are_reconsidered(self, engine, make_assessment, healthcare_facts):
        assessment = make_assessment({"admin_001": "no"}, inferred=["admin_001"])
        result = engine.populate(assessment, healthcare_facts)

        assert _by_question(result)["admin_001"].answer == "yes"
        assert result.summary.total_questions == 11

    def test_healthcare_profile(self, engine, make_assessment, healthcare_facts):
        result = engine.populate(make_assessment(), healthcare_facts)
        suggestions = _by_question(result)

        assert suggestions["admin_001"].answer == "yes"
        assert suggestions["admin_002"].answer == "Annually"
        assert suggestions["admin_002"].strategy == "industry_default"
        assert suggestions["phys_001"].answer == "Key card access with logging"
        assert suggestions["tech_001"].answer == "yes"
        assert suggestions["tech_002"].answer == "AES-256 encryption"
        assert suggestions["tech_002"].strategy == "system_analysis"
        assert result.summary == PopulationSummary(
            total_questions=11,
            suggested_questions=5,
            high_confidence=2,
            medium_confidence=3,
            low_confidence=0,
        )
        assert result.confidence_scores["admin_001"] == 0.95

    def test_summary_always_reconciles(self, engine, make_assessment, healthcare_facts):
        for facts in ({}, healthcare_facts, {"industry": "legal"}):
            summary = engine.populate(make_assessment(), facts).summary
            assert (
                summary.high_confidence + summary.medium_confidence + summary.low_confidence
                == summary.suggested_questions
                <= summary.total_questions
            )

    def test_summary_rejects_mismatched_counts(self):
        with pytest.raises(ValueError):
            PopulationSummary(total_questions=3, suggested_questions=2, high_confidence=1)
        with pytest.raises(ValueError):
            PopulationSummary(total_questions=1, suggested_questions=2, high_confidence=2)

    def test_assessment_is_not_modified(self, engine, make_assessment, healthcare_facts):
        assessment = make_assessment()
        engine.populate(assessment, healthcare_facts)
        assert assessment.responses == []

    def test_accepts_company_profile(self, engine, make_assessment, healthcare_facts):
        profile = CompanyProfile.model_validate(healthcare_facts)
        result = engine.populate(make_assessment(), profile)
        assert _by_question(result)["phys_001"].answer == "Key card access with logging"

    def test_low_confidence_result_falls_through(self, catalog, config, make_assessment):
        def weak(question, context):
            return StrategyResult("no", 0.4, "weak guess", ("guess",), "weak")

        def strong(question, context):
            return StrategyResult("yes", 0.7, "strong guess", ("guess",), "strong")

        engine = AutoPopulationEngine(catalog=catalog, config=config, strategies=[weak, strong])
        result = engine.populate(make_assessment(), {})

        assert _by_question(result)["admin_001"].strategy == "strong"

    def test_population_is_recorded_in_provenance(self, catalog, config, provenance, make_assessment, healthcare_facts):
        engine = AutoPopulationEngine(catalog=catalog, config=config, provenance=provenance)
        assessment = make_assessment()
        result = engine.populate(assessment, healthcare_facts)

        entry = provenance.get_audit_trail(assessment.assessment_id)[0]
        assert entry.operation == OperationType.POPULATE
        assert entry.details["strategies"]["admin_001"] == "direct_mapping"
        assert entry.details["result_hash"] == result.provenance_hash

    @pytest.mark.parametrize("confidence,bucket", [
        (0.95, "high"), (0.8, "high"), (0.79, "medium"), (0.6, "medium"), (0.55, "low"),
    ])
    def test_confidence_buckets(self, confidence, bucket):
        assert confidence_bucket(confidence) == bucket
