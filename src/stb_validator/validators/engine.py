"""Validation engine: runs the passes in order and builds the report.

Pass order is fixed and issue order follows it, then discovery order within
each pass. Passes never depend on each other's output and never raise for
data problems; they only append issues.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from stb_validator.accessors import ModelSnapshot
from stb_validator.models.document import StbDocument
from stb_validator.models.elements import ELEMENT_KINDS
from stb_validator.validators.elements import validate_elements
from stb_validator.validators.geometry import validate_geometry
from stb_validator.validators.issues import (
    Category,
    Severity,
    ValidationIssue,
    ValidationReport,
    ValidationStatistics,
)
from stb_validator.validators.levels import validate_axes, validate_stories
from stb_validator.validators.nodes import validate_nodes
from stb_validator.validators.references import validate_references
from stb_validator.validators.sections import SectionValidator, validate_section_data, validate_sections
from stb_validator.validators.structure import validate_structure

logger = logging.getLogger(__name__)


class ValidationOptions(BaseModel):
    """Which optional passes to run and whether INFO issues are reported."""

    validate_references: bool = True
    validate_geometry: bool = True
    include_info: bool = False


def validate_stb_document(
    document: StbDocument | None,
    options: ValidationOptions | None = None,
    section_validator: SectionValidator = validate_section_data,
) -> ValidationReport:
    """Validate a document and return a fresh report.

    Args:
        document: The model to check. None yields a single structure error.
        options: Pass toggles, defaults to ``ValidationOptions()``.
        section_validator: Rule set for cross-section dimensions.
    """
    options = options or ValidationOptions()

    if document is None:
        issue = ValidationIssue.error(Category.STRUCTURE, "Document is missing", element_type="Document")
        return ValidationReport(
            valid=False,
            issues=[issue],
            statistics=ValidationStatistics(error_count=1),
        )

    snapshot = ModelSnapshot.build(document)
    issues: list[ValidationIssue] = []

    passes = [
        ("structure", lambda: validate_structure(document)),
        ("nodes", lambda: validate_nodes(snapshot)),
        ("stories", lambda: validate_stories(snapshot)),
        ("axes", lambda: validate_axes(snapshot)),
        ("elements", lambda: validate_elements(snapshot)),
    ]
    if options.validate_references:
        passes.append(("references", lambda: validate_references(snapshot)))
    passes.append(("sections", lambda: validate_sections(snapshot, section_validator)))
    if options.validate_geometry:
        passes.append(("geometry", lambda: validate_geometry(snapshot)))

    for name, run in passes:
        found = run()
        logger.debug("Pass %s: %d issue(s)", name, len(found))
        issues.extend(found)

    statistics = _collect_statistics(snapshot, issues)

    if not options.include_info:
        issues = [i for i in issues if i.severity != Severity.INFO]

    valid = not any(i.severity == Severity.ERROR for i in issues)
    logger.info(
        "Validated %s: %s (%d errors, %d warnings, %d repairable)",
        document.summary(),
        "valid" if valid else "invalid",
        statistics.error_count,
        statistics.warning_count,
        statistics.repairable_count,
    )
    return ValidationReport(valid=valid, issues=issues, statistics=statistics)


def _collect_statistics(snapshot: ModelSnapshot, issues: list[ValidationIssue]) -> ValidationStatistics:
    element_counts = {"StbNode": len(snapshot.document.nodes)}
    total = 0
    for kind, spec in ELEMENT_KINDS.items():
        count = len(snapshot.elements.get(kind, ()))
        element_counts[spec.tag] = count
        total += count

    return ValidationStatistics(
        total_elements=total,
        error_count=sum(1 for i in issues if i.severity == Severity.ERROR),
        warning_count=sum(1 for i in issues if i.severity == Severity.WARNING),
        info_count=sum(1 for i in issues if i.severity == Severity.INFO),
        element_counts=element_counts,
        repairable_count=sum(1 for i in issues if i.repairable),
    )
