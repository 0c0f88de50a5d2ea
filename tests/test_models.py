import pytest
from pydantic import ValidationError
from prp_manager.models import (
    CommandError,
    CommandMetadata,
    CommandResult,
    LevelResult,
    LintFinding,
    LintReport,
    PRPDocument,
    PRPTask,
    ProgressStep,
    ProgressTracker,
    ValidationReport,
)


def command_result(command="pytest", status="success"):
    return CommandResult(
        status=status,
        data="output",
        error=CommandError(message="boom", code=1) if status == "error" else None,
        metadata=CommandMetadata(
            command=command,
            workspace="/tmp",
            return_code=1 if status == "error" else 0,
            timestamp="2026-01-01T00:00:00+00:00",
        ),
    )


class TestProgressTracker:

    def test_step_percentage_bounds(self):
        with pytest.raises(ValidationError):
            ProgressStep(name="Task", percentage=-1)
        with pytest.raises(ValidationError):
            ProgressStep(name="Task", percentage=100.5)

    def test_step_percentage_rejects_non_finite(self):
        with pytest.raises(ValidationError):
            ProgressStep(name="Task", percentage=float("nan"))
        with pytest.raises(ValidationError):
            ProgressStep(name="Task", percentage=float("inf"))

    def test_set_step_invalid_percentage_adds_nothing(self):
        tracker = ProgressTracker(prp="demo")

        with pytest.raises(ValueError):
            tracker.set_step("Task A", 150)
        with pytest.raises(ValueError):
            tracker.set_step("Task A", float("nan"))

        assert tracker.steps == []

    def test_set_step_invalid_percentage_keeps_existing_value(self):
        tracker = ProgressTracker(prp="demo")
        tracker.set_step("Task A", 40)

        with pytest.raises(ValueError):
            tracker.set_step("Task A", float("nan"))

        step = tracker.get_step("Task A")
        assert step.percentage == 40.0
        assert step.status == "in_progress"
        assert ProgressTracker.model_validate_json(tracker.model_dump_json()) == tracker

    def test_set_step_creates_and_derives_status(self):
        tracker = ProgressTracker(prp="demo")

        step = tracker.set_step("Task A", 0)
        assert step.status == "pending"
        assert step.started_at is None

        step = tracker.set_step("Task A", 25)
        assert step.status == "in_progress"
        assert step.started_at is not None
        assert len(tracker.steps) == 1

    def test_set_step_keeps_first_start_time(self):
        tracker = ProgressTracker(prp="demo")
        started = tracker.set_step("Task A", 10).started_at

        assert tracker.set_step("Task A", 60).started_at == started

    def test_set_step_keeps_notes_when_not_given(self):
        tracker = ProgressTracker(prp="demo")
        tracker.set_step("Task A", 10, notes="started")

        assert tracker.set_step("Task A", 20).notes == "started"

    def test_overall_percentage(self):
        tracker = ProgressTracker(prp="demo")
        assert tracker.overall_percentage() == 0.0

        tracker.set_step("A", 100)
        tracker.set_step("B", 50)
        tracker.set_step("C", 0)
        assert tracker.overall_percentage() == 50.0

    def test_is_complete(self):
        tracker = ProgressTracker(prp="demo")
        assert not tracker.is_complete()

        tracker.set_step("A", 100)
        tracker.set_step("B", 99)
        assert not tracker.is_complete()

        tracker.set_step("B", 100)
        assert tracker.is_complete()

    def test_round_trip_json(self):
        tracker = ProgressTracker(prp="demo")
        tracker.set_step("A", 40, notes="wip")

        restored = ProgressTracker.model_validate_json(tracker.model_dump_json())

        assert restored == tracker

    def test_to_markdown(self):
        tracker = ProgressTracker(prp="demo")
        tracker.set_step("A", 100)
        tracker.set_step("B", 0)

        markdown = tracker.to_markdown()

        assert markdown.startswith("# Progress Report - demo")
        assert "**Overall:** 50.0%" in markdown
        assert "| ⏳ pending | B | 0.0% | - | - |" in markdown
        assert "## Notes" not in markdown


class TestPRPDocument:

    def test_completion_percentage(self):
        document = PRPDocument(
            name="demo",
            path="PRPs/demo.md",
            tasks=[
                PRPTask(id=1, description="a", status="done"),
                PRPTask(id=2, description="b"),
                PRPTask(id=3, description="c"),
            ],
        )

        assert document.completion_percentage() == 33.3

    def test_completion_percentage_without_tasks(self):
        assert PRPDocument(name="demo", path="x").completion_percentage() == 0.0


class TestValidationReport:

    def test_passed_ignores_optional_levels(self):
        report = ValidationReport(
            levels=[
                LevelResult(name="Lint", status="passed"),
                LevelResult(name="Smoke", status="failed", required=False),
            ]
        )

        assert report.passed
        assert report.passed_percentage() == 50.0

    def test_skipped_required_level_fails(self):
        report = ValidationReport(
            levels=[
                LevelResult(name="Lint", status="failed"),
                LevelResult(name="Tests", status="skipped"),
            ]
        )

        assert not report.passed
        assert report.summary() == "Validation FAILED (Lint: failed; Tests: skipped)"

    def test_to_markdown_includes_errors(self):
        report = ValidationReport(
            prp="demo",
            levels=[
                LevelResult(
                    name="Tests",
                    status="failed",
                    results=[command_result(status="error")],
                )
            ],
        )

        markdown = report.to_markdown()

        assert "# Validation Report - demo" in markdown
        assert "## ❌ Tests (failed)" in markdown
        assert "output\nboom" in markdown


class TestLintReport:

    def test_errors_and_warnings(self):
        report = LintReport(
            path="PRPs/demo.md",
            findings=[
                LintFinding(path="PRPs/demo.md", rule="empty-section", message="m", severity="warning"),
            ],
        )
        assert report.passed
        assert len(report.warnings) == 1

        report.findings.append(
            LintFinding(path="PRPs/demo.md", rule="missing-section", message="m")
        )
        assert not report.passed
        assert len(report.errors) == 1

    def test_finding_str(self):
        finding = LintFinding(
            path="docs/a.md", rule="unbalanced-fence", message="Code fence is never closed", line=3
        )

        assert str(finding) == "docs/a.md:3: error: [unbalanced-fence] Code fence is never closed"
        assert str(LintFinding(path="a.md", rule="r", message="m")) == "a.md: error: [r] m"


class TestCommandResult:

    def test_build_success(self):
        result = CommandResult.build("pytest", "/tmp", data="3 passed")

        assert result.ok
        assert result.error is None
        assert result.metadata.return_code == 0

    def test_build_error_never_carries_zero_code(self):
        result = CommandResult.build("create_prp demo", "/tmp", error="PRP already exists")

        assert not result.ok
        assert result.status == "error"
        assert result.error.code == 1
        assert result.metadata.return_code == 1

    def test_build_error_keeps_exit_code(self):
        result = CommandResult.build("sleep 5", "/tmp", error="timed out", code=124)

        assert result.error.code == 124
        assert result.metadata.return_code == 124
