# -*- coding: utf-8 -*-
"""
ComplyScore CLI
===============

Command line front end for the risk-assessment engine. Assessment and fact
documents are read from YAML or JSON files.

Usage:
    complyscore catalog --tier 2
    complyscore score assessment.yaml
    complyscore actions assessment.yaml
    complyscore populate facts.yaml --assessment assessment.yaml
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from complyscore.exceptions import ComplyScoreException, format_exception_chain
from complyscore.risk_assessment.auto_population import AutoPopulationEngine
from complyscore.risk_assessment.catalog import QuestionCatalog, default_catalog
from complyscore.risk_assessment.models import Assessment, ComplexityTier, Response
from complyscore.risk_assessment.progression import ProgressionManager
from complyscore.risk_assessment.scorer import RiskScorer

app = typer.Typer(
    name="complyscore",
    help="ComplyScore: HIPAA risk scoring and progressive assessments",
    no_args_is_help=True,
    add_completion=False,
)
console = Console()

_RISK_STYLES = {
    "Low Risk": "green",
    "Medium Risk": "yellow",
    "High Risk": "red",
    "Critical Risk": "bold red",
}


def _load_document(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as handle:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(handle)
        return json.load(handle)


def _load_catalog(catalog_path: Optional[Path]) -> QuestionCatalog:
    if catalog_path is None:
        return default_catalog()
    return QuestionCatalog.from_yaml(catalog_path)


def _load_assessment(path: Path) -> Assessment:
    """Build an assessment from a document or a bare list of responses.

    Later responses for a question replace earlier ones.
    """
    document = _load_document(path) or {}
    if isinstance(document, list):
        document = {"responses": document}

    responses: List[Response] = []
    for record in document.get("responses") or []:
        response = Response.model_validate(record)
        responses = [r for r in responses if r.question_id != response.question_id]
        responses.append(response)

    fields: Dict[str, Any] = {
        k: v for k, v in document.items()
        if k in Assessment.model_fields and k != "responses"
    }
    fields.setdefault("subject_id", path.stem)
    return Assessment(responses=responses, **fields)


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(format_exception_chain(exc))}")
    raise typer.Exit(1)


@app.callback(invoke_without_command=True)
def _root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    ComplyScore - HIPAA risk scoring and progressive assessments
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@app.command()
def version():
    """Show ComplyScore version"""
    from .. import __version__

    console.print(f"[bold green]ComplyScore v{__version__}[/bold green]")


@app.command()
def catalog(
    tier: int = typer.Option(4, "--tier", "-t", min=1, max=4, help="Show questions up to this tier"),
    catalog_path: Optional[Path] = typer.Option(None, "--catalog", exists=True, help="YAML catalog file"),
):
    """List catalog questions"""
    try:
        questions = _load_catalog(catalog_path)
    except ComplyScoreException as exc:
        _fail(exc)

    table = Table(title=f"Catalog {questions.version} ({ComplexityTier(tier).label})")
    table.add_column("ID", style="cyan")
    table.add_column("Category", style="green")
    table.add_column("Level", justify="right")
    table.add_column("Type", style="yellow")
    table.add_column("Weight", justify="right")
    table.add_column("Question")
    for question in questions.questions_for_tier(tier):
        table.add_row(
            question.question_id,
            question.category.value,
            str(question.complexity_level),
            question.answer_type.value,
            str(question.weight),
            question.text,
        )
    console.print(table)


@app.command()
def score(
    assessment_file: Path = typer.Argument(..., exists=True, help="Assessment YAML/JSON file"),
    catalog_path: Optional[Path] = typer.Option(None, "--catalog", exists=True, help="YAML catalog file"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """Score an assessment"""
    try:
        scorer = RiskScorer(catalog=_load_catalog(catalog_path))
        result = scorer.score_overall(_load_assessment(assessment_file))
    except (ComplyScoreException, ValueError) as exc:
        _fail(exc)

    if as_json:
        console.print_json(result.model_dump_json())
        return

    table = Table(title="Category Scores")
    table.add_column("Category", style="cyan")
    table.add_column("Score", justify="right")
    for category, value in result.category_scores.items():
        table.add_row(category, str(value))
    console.print(table)

    style = _RISK_STYLES.get(result.risk_level.value, "white")
    console.print(
        f"Overall: [bold]{result.overall_score}[/bold] "
        f"[{style}]{result.risk_level.value}[/{style}]"
    )
    for issue in result.critical_issues:
        console.print(f"[red]![/red] {issue}")


@app.command()
def actions(
    assessment_file: Path = typer.Argument(..., exists=True, help="Assessment YAML/JSON file"),
    catalog_path: Optional[Path] = typer.Option(None, "--catalog", exists=True, help="YAML catalog file"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """List remediation action items"""
    try:
        manager = ProgressionManager(RiskScorer(catalog=_load_catalog(catalog_path)))
        assessment = _load_assessment(assessment_file)
        items = manager.recommended_actions(assessment)
    except (ComplyScoreException, ValueError) as exc:
        _fail(exc)

    if as_json:
        console.print_json(json.dumps([i.model_dump(mode="json") for i in items]))
        return

    if not items:
        console.print("[green]No action items[/green]")
        return

    table = Table(title=f"Action Items ({len(items)})")
    table.add_column("Priority", style="bold")
    table.add_column("Question", style="cyan")
    table.add_column("Risk", justify="right")
    table.add_column("Due", style="dim")
    table.add_column("Action")
    for item in items:
        table.add_row(
            item.priority.value,
            item.question_id,
            str(item.risk_score),
            item.due_date.date().isoformat(),
            item.description,
        )
    console.print(table)


@app.command()
def populate(
    facts_file: Path = typer.Argument(..., exists=True, help="Company facts YAML/JSON file"),
    assessment_file: Optional[Path] = typer.Option(
        None, "--assessment", "-a", exists=True, help="Existing assessment to populate",
    ),
    catalog_path: Optional[Path] = typer.Option(None, "--catalog", exists=True, help="YAML catalog file"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """Suggest answers from company facts"""
    try:
        facts = _load_document(facts_file) or {}
        if not isinstance(facts, dict):
            raise ValueError(f"{facts_file} must contain a mapping of facts")
        assessment = (
            _load_assessment(assessment_file) if assessment_file
            else Assessment(subject_id=facts_file.stem)
        )
        with AutoPopulationEngine(catalog=_load_catalog(catalog_path)) as engine:
            result = engine.populate(assessment, facts)
    except (ComplyScoreException, ValueError) as exc:
        _fail(exc)

    if as_json:
        console.print_json(result.model_dump_json())
        return

    table = Table(title="Suggested Answers")
    table.add_column("Question", style="cyan")
    table.add_column("Answer", style="green")
    table.add_column("Confidence", justify="right")
    table.add_column("Strategy", style="yellow")
    table.add_column("Rationale", style="dim")
    for suggestion in result.suggestions:
        table.add_row(
            suggestion.question_id,
            str(suggestion.answer),
            f"{suggestion.confidence:.2f}",
            suggestion.strategy,
            suggestion.rationale,
        )
    console.print(table)

    summary = result.summary
    console.print(
        f"Suggested {summary.suggested_questions}/{summary.total_questions} "
        f"(high {summary.high_confidence}, medium {summary.medium_confidence}, "
        f"low {summary.low_confidence})"
    )


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(1)


if __name__ == "__main__":
    main()
