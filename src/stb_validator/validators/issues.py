"""Issue vocabulary shared by every validation pass and the repair engine.

Passes emit ``ValidationIssue`` records using only ``Severity`` and
``Category``; the repair engine dispatches on ``category`` and
``attribute`` and never on message text.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Issue severity.

    ERROR: data unusable for downstream consumers
    WARNING: usable but suspect
    INFO: informational, excluded from reports by default
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Category(str, Enum):
    """What kind of problem an issue describes."""

    STRUCTURE = "structure"
    REFERENCE = "reference"
    DATA = "data"
    GEOMETRY = "geometry"
    DUPLICATE = "duplicate"


class ValidationIssue(BaseModel):
    """A single validation finding. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    category: Category
    message: str
    element_type: str
    element_id: str = ""
    attribute: str | None = None
    value: str | float | None = None
    expected: str | None = None
    repairable: bool = False
    repair_suggestion: str | None = None

    @classmethod
    def error(cls, category: Category, message: str, element_type: str, **kwargs: Any) -> ValidationIssue:
        return cls(severity=Severity.ERROR, category=category, message=message, element_type=element_type, **kwargs)

    @classmethod
    def warning(cls, category: Category, message: str, element_type: str, **kwargs: Any) -> ValidationIssue:
        return cls(severity=Severity.WARNING, category=category, message=message, element_type=element_type, **kwargs)

    @classmethod
    def info(cls, category: Category, message: str, element_type: str, **kwargs: Any) -> ValidationIssue:
        return cls(severity=Severity.INFO, category=category, message=message, element_type=element_type, **kwargs)


class ValidationStatistics(BaseModel):
    """Counts gathered during a validation run.

    Severity counts cover every issue found, including INFO issues that
    were filtered out of the report.
    """

    model_config = ConfigDict(frozen=True)

    total_elements: int = 0
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    element_counts: dict[str, int] = Field(default_factory=dict)
    repairable_count: int = 0


class ValidationReport(BaseModel):
    """Result of one validation run. Never mutated; re-validate for a new one."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    statistics: ValidationStatistics = Field(default_factory=ValidationStatistics)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def get_repairable_issues(report: ValidationReport) -> list[ValidationIssue]:
    """Issues an automated repair exists for."""
    return [i for i in report.issues if i.repairable]


def get_issues_by_category(report: ValidationReport, category: Category) -> list[ValidationIssue]:
    return [i for i in report.issues if i.category == category]


def get_issues_by_element_type(report: ValidationReport, element_type: str) -> list[ValidationIssue]:
    return [i for i in report.issues if i.element_type == element_type]
