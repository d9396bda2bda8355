"""Load → validate → repair → re-validate → export, as a small state machine.

    IDLE ──load_and_validate──▶ LOADED ──▶ VALIDATED ──execute_auto_repair──▶ REPAIRED
                                              ▲                                 │
                                              │                       revalidate_repaired
                                              │                                 ▼
                          execute_auto_repair └──────────────────────────── REVALIDATED ──export──▶ EXPORTED

A failure in the loader, the repair engine or the writer moves the workflow
to ERROR and re-raises. Calling a transition from the wrong step raises
``WorkflowStateError`` and leaves the workflow untouched. Listeners are
called synchronously, in registration order, after every step change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from stb_validator.io.stb_xml import load_document, write_stb_xml
from stb_validator.models.document import StbDocument
from stb_validator.repair.engine import RepairOptions, RepairReport, auto_repair_document
from stb_validator.repair.report import format_repair_report
from stb_validator.validators.engine import ValidationOptions, validate_stb_document
from stb_validator.validators.issues import ValidationReport
from stb_validator.validators.report import format_validation_report
from stb_validator.validators.sections import SectionValidator, validate_section_data

logger = logging.getLogger(__name__)

STB_SUFFIX = ".stb"


class WorkflowStep(str, Enum):
    IDLE = "idle"
    LOADED = "loaded"
    VALIDATED = "validated"
    REPAIRED = "repaired"
    REVALIDATED = "revalidated"
    EXPORTED = "exported"
    ERROR = "error"


class WorkflowStateError(RuntimeError):
    """A workflow transition was called from a step that does not allow it."""


@dataclass(frozen=True)
class WorkflowEvent:
    """Sent to listeners on every step change. ``payload`` depends on the step."""

    step: WorkflowStep
    payload: Any = None


Listener = Callable[[WorkflowEvent], None]
Loader = Callable[[Path], StbDocument]
Writer = Callable[[StbDocument, Path], Path]


class ValidationWorkflow:
    """Sequences validation and repair of one document.

    Usage:
        workflow = ValidationWorkflow()
        workflow.load_and_validate("model.stb")
        workflow.execute_auto_repair()
        workflow.revalidate_repaired()
        workflow.export("model_repaired.stb")
    """

    def __init__(
        self,
        loader: Loader = load_document,
        writer: Writer = write_stb_xml,
        section_validator: SectionValidator = validate_section_data,
    ):
        self._loader = loader
        self._writer = writer
        self._section_validator = section_validator
        self._listeners: list[Listener] = []
        self._clear()

    def _clear(self) -> None:
        self.step = WorkflowStep.IDLE
        self.source: Path | None = None
        self.original_document: StbDocument | None = None
        self.repaired_document: StbDocument | None = None
        self.validation_report: ValidationReport | None = None
        self.repair_report: RepairReport | None = None
        self.revalidation_report: ValidationReport | None = None
        self.exported_path: Path | None = None
        self.error: str | None = None
        self.options = ValidationOptions()

    # ── Listeners ─────────────────────────────────────────────────────

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners = [registered for registered in self._listeners if registered is not listener]

    def _transition(self, step: WorkflowStep, payload: Any = None) -> None:
        logger.debug("Workflow %s -> %s", self.step.value, step.value)
        self.step = step
        event = WorkflowEvent(step=step, payload=payload)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Workflow listener failed on %s", step.value)

    def _fail(self, error: Exception) -> None:
        self.error = str(error)
        self._transition(WorkflowStep.ERROR, error)

    def _require(self, action: str, *allowed: WorkflowStep) -> None:
        if self.step not in allowed:
            expected = ", ".join(s.value for s in allowed)
            raise WorkflowStateError(f"Cannot {action} in step '{self.step.value}' (expected: {expected})")

    # ── Transitions ───────────────────────────────────────────────────

    def reset(self) -> None:
        """Forget everything and return to IDLE."""
        self._clear()
        self._transition(WorkflowStep.IDLE)

    def load_and_validate(self, path: str | Path, options: ValidationOptions | None = None) -> ValidationReport:
        """Load a document with the configured loader and validate it."""
        self._require_not_failed("load a document")
        path = Path(path)
        try:
            document = self._loader(path)
        except Exception as e:
            logger.error("Loading %s failed: %s", path, e)
            self._fail(e)
            raise
        self._clear()
        self.source = path
        return self._start(document, options)

    def validate_document(self, document: StbDocument, options: ValidationOptions | None = None) -> ValidationReport:
        """Validate an already-built document."""
        self._require_not_failed("validate a document")
        self._clear()
        return self._start(document, options)

    def _require_not_failed(self, action: str) -> None:
        if self.step == WorkflowStep.ERROR:
            raise WorkflowStateError(f"Cannot {action} after an error; call reset() first")

    def _start(self, document: StbDocument, options: ValidationOptions | None) -> ValidationReport:
        self.options = options or ValidationOptions()
        self.original_document = document
        self._transition(WorkflowStep.LOADED, document)

        report = validate_stb_document(document, self.options, self._section_validator)
        self.validation_report = report
        self._transition(WorkflowStep.VALIDATED, report)
        return report

    def execute_auto_repair(self, options: RepairOptions | None = None) -> RepairReport:
        """Repair the current document using the latest validation report.

        After a re-validation this repairs the already repaired document
        again, using the re-validation report.
        """
        self._require("repair", WorkflowStep.VALIDATED, WorkflowStep.REVALIDATED)
        if self.step == WorkflowStep.REVALIDATED:
            document, report = self.repaired_document, self.revalidation_report
        else:
            document, report = self.original_document, self.validation_report

        try:
            result = auto_repair_document(document, report, options)
        except Exception as e:
            logger.error("Repair failed: %s", e)
            self._fail(e)
            raise

        self.repaired_document = result.document
        self.repair_report = result.report
        self.revalidation_report = None
        self._transition(WorkflowStep.REPAIRED, result.report)
        return result.report

    def revalidate_repaired(self) -> ValidationReport:
        """Validate the repaired document with the options used for loading."""
        self._require("re-validate", WorkflowStep.REPAIRED)
        report = validate_stb_document(self.repaired_document, self.options, self._section_validator)
        self.revalidation_report = report
        self._transition(WorkflowStep.REVALIDATED, report)
        return report

    def export(self, path: str | Path) -> Path:
        """Write the repaired document with the configured writer."""
        self._require("export", WorkflowStep.REVALIDATED)
        try:
            written = self._writer(self.repaired_document, Path(path))
        except Exception as e:
            logger.error("Export to %s failed: %s", path, e)
            self._fail(e)
            raise
        self.exported_path = written
        self._transition(WorkflowStep.EXPORTED, written)
        return written

    def download_repaired_file(self, filename: str, directory: str | Path = ".") -> Path:
        """Export under ``directory``, adding the .stb suffix when missing."""
        if not filename.endswith(STB_SUFFIX):
            filename += STB_SUFFIX
        return self.export(Path(directory) / filename)

    # ── Summaries ─────────────────────────────────────────────────────

    def get_validation_summary(self) -> dict | None:
        if self.validation_report is None:
            return None
        stats = self.validation_report.statistics
        return {
            "valid": self.validation_report.valid,
            "error_count": stats.error_count,
            "warning_count": stats.warning_count,
            "repairable_count": stats.repairable_count,
            "total_elements": stats.total_elements,
        }

    def get_repair_summary(self) -> dict | None:
        if self.repair_report is None:
            return None
        return {
            "total_actions": len(self.repair_report.actions),
            "success_count": self.repair_report.success_count,
            "skipped_count": self.repair_report.skipped_count,
            "removed_count": len(self.repair_report.removed_elements),
        }

    def get_repair_suggestions(self) -> list[dict]:
        """Repairable issues of the latest validation, for display before repairing."""
        if self.validation_report is None:
            return []
        return [
            {
                "element_type": issue.element_type,
                "element_id": issue.element_id,
                "attribute": issue.attribute,
                "current_value": issue.value,
                "suggestion": issue.repair_suggestion,
                "severity": issue.severity.value,
                "message": issue.message,
            }
            for issue in self.validation_report.issues
            if issue.repairable
        ]

    def generate_integrated_report(self) -> str:
        """Validation report, repair report and final status as one text."""
        banner = "=" * 70
        lines = [banner, "ST-Bridge Validation & Repair Report", banner, ""]

        if self.validation_report is not None:
            lines.append(format_validation_report(self.validation_report))
            lines.append("")
        if self.repair_report is not None:
            lines.append(format_repair_report(self.repair_report))
            lines.append("")
        if self.revalidation_report is not None:
            lines.append("--- After repair ---")
            lines.append(format_validation_report(self.revalidation_report))
            lines.append("")

        lines.append("--- Final status ---")
        lines.append(f"Workflow step: {self.step.value}")
        if self.error:
            lines.append(f"Error: {self.error}")
        final = self.revalidation_report or self.validation_report
        if final is not None:
            lines.append(f"Data validity: {'valid' if final.valid else 'needs fixing'}")
        if self.exported_path is not None:
            lines.append(f"Exported to: {self.exported_path}")
        lines.append(banner)
        return "\n".join(lines)


@dataclass
class WorkflowResult:
    workflow: ValidationWorkflow
    validation_report: ValidationReport
    repair_report: RepairReport | None = None
    revalidation_report: ValidationReport | None = None
    exported_path: Path | None = None


def run_complete_workflow(
    path: str | Path,
    output: str | Path | None = None,
    validation_options: ValidationOptions | None = None,
    repair_options: RepairOptions | None = None,
    auto_repair: bool = True,
    workflow: ValidationWorkflow | None = None,
) -> WorkflowResult:
    """Validate a file and, when it is invalid, repair, re-validate and export it.

    Nothing is written when the document is already valid, when
    ``auto_repair`` is False, or when ``output`` is None.
    """
    workflow = workflow or ValidationWorkflow()
    report = workflow.load_and_validate(path, validation_options)
    result = WorkflowResult(workflow=workflow, validation_report=report)

    if report.valid or not auto_repair:
        return result

    result.repair_report = workflow.execute_auto_repair(repair_options)
    result.revalidation_report = workflow.revalidate_repaired()
    if output is not None:
        result.exported_path = workflow.export(output)
    return result
