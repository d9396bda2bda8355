"""STB Validator CLI.

Usage:
    python -m stb_validator <command> <file> [options]

Commands print JSON to stdout unless --text is given. A file that cannot
be loaded exits with status 1.
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer

from stb_validator import __version__
from stb_validator.io.stb_xml import StbLoadError, load_document
from stb_validator.repair.engine import RepairOptions, RepairReport
from stb_validator.validators.engine import ValidationOptions, validate_stb_document
from stb_validator.validators.issues import Category, ValidationReport
from stb_validator.validators.report import format_validation_report
from stb_validator.workflow import ValidationWorkflow

app = typer.Typer(
    name="stb_validator",
    help="STB Validator: validate and repair ST-Bridge structural models.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _output(data: dict) -> None:
    """Print JSON output to stdout."""
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(message: str) -> None:
    _output({"ok": False, "error": message})
    raise typer.Exit(1)


def _report_json(report: ValidationReport) -> dict:
    """Validation report as plain JSON data."""
    return {
        "valid": report.valid,
        "statistics": report.statistics.model_dump(),
        "issues": [issue.model_dump(mode="json", exclude_none=True) for issue in report.issues],
    }


def _repair_json(report: RepairReport) -> dict:
    return {
        "success_count": report.success_count,
        "skipped_count": report.skipped_count,
        "removed_elements": report.removed_elements,
        "actions": [action.model_dump(mode="json", exclude_none=True) for action in report.actions],
    }


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr")):
    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def validate(
    file: Path = typer.Argument(..., help="ST-Bridge file (.stb) or JSON snapshot"),
    include_info: bool = typer.Option(False, "--include-info", help="Report INFO issues too"),
    no_references: bool = typer.Option(False, "--no-references", help="Skip reference integrity checks"),
    no_geometry: bool = typer.Option(False, "--no-geometry", help="Skip member length checks"),
    text: bool = typer.Option(False, "--text", help="Print the text report instead of JSON"),
):
    """Validate a model and report its issues."""
    try:
        document = load_document(file)
    except StbLoadError as e:
        _fail(str(e))

    options = ValidationOptions(
        validate_references=not no_references,
        validate_geometry=not no_geometry,
        include_info=include_info,
    )
    report = validate_stb_document(document, options)

    if text:
        typer.echo(format_validation_report(report))
        return
    _output({"ok": True, "file": str(file), **_report_json(report)})


@app.command()
def repair(
    file: Path = typer.Argument(..., help="ST-Bridge file (.stb) or JSON snapshot"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Repaired file (default: <name>_repaired.stb)"),
    keep_invalid: bool = typer.Option(False, "--keep-invalid", help="Never remove elements"),
    no_defaults: bool = typer.Option(False, "--no-defaults", help="Never write default values"),
    skip_category: Optional[List[Category]] = typer.Option(None, "--skip-category", help="Leave issues of this category alone"),
    text: bool = typer.Option(False, "--text", help="Print the integrated text report instead of JSON"),
):
    """Validate, repair, re-validate and write the repaired model."""
    workflow = ValidationWorkflow()
    try:
        before = workflow.load_and_validate(file)
    except StbLoadError as e:
        _fail(str(e))

    options = RepairOptions(
        remove_invalid=not keep_invalid,
        use_defaults=not no_defaults,
        skip_categories=skip_category or [],
    )
    repair_report = workflow.execute_auto_repair(options)
    after = workflow.revalidate_repaired()
    target = output or file.with_name(f"{file.stem}_repaired.stb")
    written = workflow.export(target)

    if text:
        typer.echo(workflow.generate_integrated_report())
        return
    _output({
        "ok": True,
        "file": str(file),
        "output": str(written),
        "before": _report_json(before),
        "repair": _repair_json(repair_report),
        "after": _report_json(after),
    })


@app.command()
def snapshot(
    file: Path = typer.Argument(..., help="ST-Bridge file (.stb)"),
    output: Path = typer.Argument(..., help="JSON file to write"),
):
    """Save the parsed model as a JSON snapshot."""
    try:
        document = load_document(file)
    except StbLoadError as e:
        _fail(str(e))

    path = document.save(output)
    _output({"ok": True, "output": str(path), "summary": document.summary()})


@app.command()
def version():
    """Print the package version."""
    _output({"ok": True, "version": __version__})


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
