# -*- coding: utf-8 -*-
"""Tests for the complyscore command line interface."""

import importlib
import json

import pytest
import yaml
from rich.console import Console
from typer.testing import CliRunner

from complyscore import __version__
from complyscore.cli.main import app

cli_main = importlib.import_module("complyscore.cli.main")
runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Render tables wide enough that cells are never wrapped."""
    monkeypatch.setattr(cli_main, "console", Console(width=240))


@pytest.fixture
def write_yaml(tmp_path):
    def _write(name, document):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(document))
        return path

    return _write


# ==============================================================================
# Catalog and Version
# ==============================================================================

class TestInfoCommands:
    """Tests for ``version`` and ``catalog``."""

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert f"ComplyScore v{__version__}" in result.output

    def test_catalog_by_tier(self):
        result = runner.invoke(app, ["catalog", "--tier", "1"])

        assert result.exit_code == 0
        assert "admin_001" in result.output
        assert "admin_003" not in result.output

    def test_malformed_catalog_record_shows_cause(self, write_yaml):
        path = write_yaml("catalog.yaml", {"questions": [{"question_id": "admin_001"}]})
        result = runner.invoke(app, ["catalog", "--catalog", str(path)])

        assert result.exit_code == 1
        assert "Catalog record 0 is malformed" in result.output
        assert "Context:" in result.output
        assert "ValidationError" in result.output

    def test_custom_catalog_must_be_valid(self, write_yaml):
        path = write_yaml("catalog.yaml", {"version": "broken"})
        result = runner.invoke(app, ["catalog", "--catalog", str(path)])

        assert result.exit_code == 1
        assert "Error" in result.output


# ==============================================================================
# Scoring and Actions
# ==============================================================================

class TestScoreCommand:
    """Tests for ``score`` and ``actions``."""

    def test_score_json(self, write_yaml):
        path = write_yaml("clinic.yaml", {
            "responses": [{"question_id": "admin_001", "answer": "no"}],
        })
        result = runner.invoke(app, ["score", str(path), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["overall_score"] == 2
        assert data["risk_level"] == "Critical Risk"
        assert data["critical_issues"] == ["Immediately designate a HIPAA Security Officer"]

    def test_bare_response_list_last_answer_wins(self, write_yaml):
        path = write_yaml("clinic.yaml", [
            {"question_id": "admin_001", "answer": "yes"},
            {"question_id": "admin_001", "answer": "no"},
        ])
        result = runner.invoke(app, ["score", str(path), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["category_scores"]["administrative"] == 5

    def test_score_table(self, write_yaml):
        path = write_yaml("clinic.yaml", {
            "subject_id": "clinic-7",
            "responses": [{"question_id": "tech_001", "answer": "yes"}],
        })
        result = runner.invoke(app, ["score", str(path)])

        assert result.exit_code == 0
        assert "Category Scores" in result.output
        assert "Overall:" in result.output

    def test_malformed_assessment(self, write_yaml):
        path = write_yaml("clinic.yaml", {"responses": [{"answer": "yes"}]})
        result = runner.invoke(app, ["score", str(path)])
        assert result.exit_code == 1

    def test_actions_json(self, write_yaml):
        path = write_yaml("clinic.yaml", {
            "responses": [
                {"question_id": "phys_002", "answer": "no"},
                {"question_id": "admin_001", "answer": "no"},
            ],
        })
        result = runner.invoke(app, ["actions", str(path), "--json"])

        assert result.exit_code == 0
        items = json.loads(result.output)
        assert [i["question_id"] for i in items] == ["admin_001", "phys_002"]
        assert [i["priority"] for i in items] == ["critical", "medium"]

    def test_no_actions(self, write_yaml):
        path = write_yaml("clinic.yaml", {"responses": [{"question_id": "admin_001", "answer": "yes"}]})
        result = runner.invoke(app, ["actions", str(path)])

        assert result.exit_code == 0
        assert "No action items" in result.output


# ==============================================================================
# Auto-population
# ==============================================================================

class TestPopulateCommand:
    """Tests for ``populate``."""

    def test_populate_json(self, write_yaml, healthcare_facts):
        path = write_yaml("facts.yaml", healthcare_facts)
        result = runner.invoke(app, ["populate", str(path), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        suggested = {s["question_id"]: s["answer"] for s in data["suggestions"]}
        assert suggested["admin_001"] == "yes"
        assert data["summary"]["suggested_questions"] == 5

    def test_populate_skips_answered_questions(self, write_yaml, healthcare_facts):
        facts = write_yaml("facts.yaml", healthcare_facts)
        assessment = write_yaml("clinic.yaml", {
            "responses": [{"question_id": "admin_001", "answer": "no"}],
        })
        result = runner.invoke(app, ["populate", str(facts), "-a", str(assessment), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert "admin_001" not in [s["question_id"] for s in data["suggestions"]]
        assert data["summary"]["total_questions"] == 10

    def test_populate_table(self, write_yaml, healthcare_facts):
        path = write_yaml("facts.yaml", healthcare_facts)
        result = runner.invoke(app, ["populate", str(path)])

        assert result.exit_code == 0
        assert "Suggested 5/11" in result.output

    def test_facts_must_be_a_mapping(self, write_yaml):
        path = write_yaml("facts.yaml", ["not", "a", "mapping"])
        result = runner.invoke(app, ["populate", str(path)])
        assert result.exit_code == 1
