"""Tests for the validation/repair workflow state machine."""

import pytest

from stb_validator.io.stb_xml import StbLoadError, load_stb_document, write_stb_xml
from stb_validator.repair.engine import RepairOptions
from stb_validator.validators.engine import ValidationOptions
from stb_validator.workflow import (
    ValidationWorkflow,
    WorkflowStateError,
    WorkflowStep,
    run_complete_workflow,
)


@pytest.fixture
def broken_file(frame, tmp_path):
    frame.members[2].id_section = "SX"
    return write_stb_xml(frame, tmp_path / "broken.stb")


@pytest.fixture
def recorder():
    events = []
    return events, events.append


class TestTransitions:
    def test_starts_idle(self):
        assert ValidationWorkflow().step == WorkflowStep.IDLE

    def test_full_run(self, broken_file, tmp_path, recorder):
        events, listener = recorder
        workflow = ValidationWorkflow()
        workflow.add_listener(listener)

        report = workflow.load_and_validate(broken_file)
        assert not report.valid
        workflow.execute_auto_repair()
        after = workflow.revalidate_repaired()
        assert after.valid
        path = workflow.export(tmp_path / "fixed.stb")

        assert [e.step for e in events] == [
            WorkflowStep.LOADED,
            WorkflowStep.VALIDATED,
            WorkflowStep.REPAIRED,
            WorkflowStep.REVALIDATED,
            WorkflowStep.EXPORTED,
        ]
        assert events[-1].payload == path
        assert workflow.step == WorkflowStep.EXPORTED
        assert load_stb_document(path).find_member("StbGirder", "G1") is None

    def test_original_document_kept(self, broken_file):
        workflow = ValidationWorkflow()
        workflow.load_and_validate(broken_file)
        workflow.execute_auto_repair()
        assert workflow.original_document.find_member("StbGirder", "G1") is not None
        assert workflow.repaired_document.find_member("StbGirder", "G1") is None

    def test_repair_before_validation(self):
        with pytest.raises(WorkflowStateError):
            ValidationWorkflow().execute_auto_repair()

    def test_export_before_revalidation(self, broken_file, tmp_path):
        workflow = ValidationWorkflow()
        workflow.load_and_validate(broken_file)
        workflow.execute_auto_repair()
        with pytest.raises(WorkflowStateError):
            workflow.export(tmp_path / "early.stb")
        assert workflow.step == WorkflowStep.REPAIRED

    def test_repair_again_after_revalidation(self, frame):
        frame.members[2].id_section = "SX"
        workflow = ValidationWorkflow()
        workflow.validate_document(frame)
        workflow.execute_auto_repair()
        workflow.revalidate_repaired()
        second = workflow.execute_auto_repair()
        assert workflow.step == WorkflowStep.REPAIRED
        assert second.actions == []

    def test_validation_options_reused(self, frame):
        frame.members[2].id_section = "SX"
        workflow = ValidationWorkflow()
        report = workflow.validate_document(frame, ValidationOptions(validate_references=False))
        assert report.valid
        workflow.execute_auto_repair()
        assert workflow.revalidate_repaired().valid

    def test_repair_options_passed(self, broken_file):
        workflow = ValidationWorkflow()
        workflow.load_and_validate(broken_file)
        report = workflow.execute_auto_repair(RepairOptions(remove_invalid=False))
        assert report.success_count == 0
        assert not workflow.revalidate_repaired().valid

    def test_download_adds_suffix(self, broken_file, tmp_path):
        workflow = ValidationWorkflow()
        workflow.load_and_validate(broken_file)
        workflow.execute_auto_repair()
        workflow.revalidate_repaired()
        path = workflow.download_repaired_file("fixed", tmp_path)
        assert path == tmp_path / "fixed.stb"
        assert path.exists()


class TestErrors:
    def test_load_failure(self, tmp_path, recorder):
        events, listener = recorder
        workflow = ValidationWorkflow()
        workflow.add_listener(listener)
        with pytest.raises(StbLoadError):
            workflow.load_and_validate(tmp_path / "missing.stb")
        assert workflow.step == WorkflowStep.ERROR
        assert "Cannot read" in workflow.error
        assert [e.step for e in events] == [WorkflowStep.ERROR]

    def test_error_requires_reset(self, tmp_path, stb_file):
        workflow = ValidationWorkflow()
        with pytest.raises(StbLoadError):
            workflow.load_and_validate(tmp_path / "missing.stb")
        with pytest.raises(WorkflowStateError):
            workflow.load_and_validate(stb_file)
        workflow.reset()
        assert workflow.step == WorkflowStep.IDLE
        assert workflow.error is None
        assert workflow.load_and_validate(stb_file).valid

    def test_writer_failure(self, broken_file, tmp_path):
        def failing_writer(document, path):
            raise OSError("read-only filesystem")

        workflow = ValidationWorkflow(writer=failing_writer)
        workflow.load_and_validate(broken_file)
        workflow.execute_auto_repair()
        workflow.revalidate_repaired()
        with pytest.raises(OSError):
            workflow.export(tmp_path / "fixed.stb")
        assert workflow.step == WorkflowStep.ERROR

    def test_custom_loader(self, frame):
        workflow = ValidationWorkflow(loader=lambda path: frame)
        assert workflow.load_and_validate("anything.stb").valid
        assert workflow.original_document is frame


class TestListeners:
    def test_failing_listener_does_not_stop_others(self, frame, recorder):
        events, listener = recorder

        def broken(event):
            raise RuntimeError("listener bug")

        workflow = ValidationWorkflow()
        workflow.add_listener(broken)
        workflow.add_listener(listener)
        workflow.validate_document(frame)
        assert [e.step for e in events] == [WorkflowStep.LOADED, WorkflowStep.VALIDATED]

    def test_remove_listener(self, frame, recorder):
        events, listener = recorder
        workflow = ValidationWorkflow()
        workflow.add_listener(listener)
        workflow.remove_listener(listener)
        workflow.validate_document(frame)
        assert events == []

    def test_payloads(self, frame, recorder):
        events, listener = recorder
        workflow = ValidationWorkflow()
        workflow.add_listener(listener)
        report = workflow.validate_document(frame)
        assert events[0].payload is frame
        assert events[1].payload is report


class TestSummaries:
    def test_empty(self):
        workflow = ValidationWorkflow()
        assert workflow.get_validation_summary() is None
        assert workflow.get_repair_summary() is None
        assert workflow.get_repair_suggestions() == []

    def test_after_repair(self, broken_file):
        workflow = ValidationWorkflow()
        workflow.load_and_validate(broken_file)
        suggestions = workflow.get_repair_suggestions()
        assert [(s["element_type"], s["current_value"]) for s in suggestions] == [("StbGirder", "SX")]

        workflow.execute_auto_repair()
        assert workflow.get_validation_summary() == {
            "valid": False,
            "error_count": 1,
            "warning_count": 0,
            "repairable_count": 1,
            "total_elements": 3,
        }
        assert workflow.get_repair_summary() == {
            "total_actions": 1,
            "success_count": 1,
            "skipped_count": 0,
            "removed_count": 1,
        }

    def test_integrated_report(self, broken_file, tmp_path):
        workflow = ValidationWorkflow()
        workflow.load_and_validate(broken_file)
        workflow.execute_auto_repair()
        workflow.revalidate_repaired()
        workflow.export(tmp_path / "fixed.stb")
        text = workflow.generate_integrated_report()
        assert "ST-Bridge Validation Report" in text
        assert "ST-Bridge Repair Report" in text
        assert "--- After repair ---" in text
        assert "Workflow step: exported" in text
        assert "Data validity: valid" in text
        assert f"Exported to: {tmp_path / 'fixed.stb'}" in text


class TestRunCompleteWorkflow:
    def test_valid_file_not_repaired(self, stb_file, tmp_path):
        result = run_complete_workflow(stb_file, tmp_path / "out.stb")
        assert result.validation_report.valid
        assert result.repair_report is None
        assert not (tmp_path / "out.stb").exists()

    def test_invalid_file_repaired_and_exported(self, broken_file, tmp_path):
        result = run_complete_workflow(broken_file, tmp_path / "out.stb")
        assert result.revalidation_report.valid
        assert result.exported_path == tmp_path / "out.stb"
        assert result.workflow.step == WorkflowStep.EXPORTED

    def test_without_output(self, broken_file):
        result = run_complete_workflow(broken_file)
        assert result.exported_path is None
        assert result.workflow.step == WorkflowStep.REVALIDATED

    def test_auto_repair_off(self, broken_file):
        result = run_complete_workflow(broken_file, auto_repair=False)
        assert result.repair_report is None
        assert result.workflow.step == WorkflowStep.VALIDATED
