"""ST-Bridge structural model validation and automated repair."""

from stb_validator.io.stb_xml import StbLoadError, load_stb_document, parse_stb_xml, write_stb_xml
from stb_validator.models import StbDocument
from stb_validator.repair.engine import RepairOptions, RepairReport, auto_repair_document
from stb_validator.repair.report import format_repair_report
from stb_validator.validators.engine import ValidationOptions, validate_stb_document
from stb_validator.validators.issues import (
    Category,
    Severity,
    ValidationIssue,
    ValidationReport,
    get_issues_by_category,
    get_issues_by_element_type,
    get_repairable_issues,
)
from stb_validator.validators.report import format_validation_report
from stb_validator.workflow import ValidationWorkflow, WorkflowStateError, WorkflowStep, run_complete_workflow

__version__ = "0.1.0"

__all__ = [
    "Category",
    "RepairOptions",
    "RepairReport",
    "Severity",
    "StbDocument",
    "StbLoadError",
    "ValidationIssue",
    "ValidationOptions",
    "ValidationReport",
    "ValidationWorkflow",
    "WorkflowStateError",
    "WorkflowStep",
    "auto_repair_document",
    "format_repair_report",
    "format_validation_report",
    "get_issues_by_category",
    "get_issues_by_element_type",
    "get_repairable_issues",
    "load_stb_document",
    "parse_stb_xml",
    "run_complete_workflow",
    "validate_stb_document",
    "write_stb_xml",
]
