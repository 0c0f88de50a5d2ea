import math

from typing import List, Literal, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator

from prp_manager.utils import now_iso, progress_bar

STATUS_ICONS = {
    "pending": "⏳",
    "in_progress": "🚧",
    "completed": "✅",
    "passed": "✅",
    "failed": "❌",
    "skipped": "⏭️",
}


class CommandError(BaseModel):
    """Failure details of a shell command or workspace action."""

    message: str = Field(
        ..., description="stderr of the command, or why the action was refused"
    )
    code: int = Field(default=1, description="Non-zero exit code")


class CommandMetadata(BaseModel):
    command: str = Field(
        ..., description="Shell command, or the action name followed by its target"
    )
    workspace: str = Field(..., description="Workspace root the command ran against")
    return_code: int = Field(default=0, description="Exit code, 0 on success")
    timestamp: str = Field(default_factory=now_iso, description="ISO time of completion")


class CommandResult(BaseModel):
    """Outcome envelope shared by validation commands and workspace actions."""

    status: Literal["success", "error"]
    data: str = Field(default="", description="stdout, or the action's report lines")
    error: Optional[CommandError] = None
    metadata: CommandMetadata

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def build(
        cls,
        command: str,
        workspace: str,
        data: str = "",
        error: Optional[str] = None,
        code: int = 0,
    ) -> "CommandResult":
        """An error result always carries a non-zero code; success always carries 0."""
        if error is None:
            return cls(
                status="success",
                data=data,
                metadata=CommandMetadata(command=command, workspace=workspace),
            )
        code = code or 1
        return cls(
            status="error",
            data=data,
            error=CommandError(message=error, code=code),
            metadata=CommandMetadata(
                command=command, workspace=workspace, return_code=code
            ),
        )


class DocumentResult(BaseModel):
    name: str = Field(default="", description="PRP slug")
    path: str = Field(..., description="Absolute path of the document")
    content: str = Field(..., description="Raw Markdown, frontmatter included")


class PRPTask(BaseModel):
    id: int = Field(..., description="Position of the task in the blueprint, e.g. 1, 2, 3")
    description: str = Field(
        ..., description="Clear, concise statement of what needs to be done"
    )
    status: str = Field(default="pending", description="Status: pending, done")


class ValidationLevel(BaseModel):
    name: str = Field(..., description="Level title, e.g. 'Level 1: Syntax & Style'")
    commands: List[str] = Field(
        default_factory=list, description="Shell commands run in order"
    )
    required: bool = Field(
        default=True, description="Whether a failure of this level fails the run"
    )


class PRPDocument(BaseModel):
    name: str
    path: str
    title: str = ""
    frontmatter: Dict[str, Any] = Field(default_factory=dict)
    sections: Dict[str, str] = Field(default_factory=dict)
    tasks: List[PRPTask] = Field(default_factory=list)
    validation_levels: List[ValidationLevel] = Field(default_factory=list)

    def completion_percentage(self) -> float:
        if not self.tasks:
            return 0.0
        done = len([task for task in self.tasks if task.status == "done"])
        return round(100.0 * done / len(self.tasks), 1)


class ProgressStep(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    name: str = Field(..., description="Step name, usually a blueprint task")
    percentage: float = Field(default=0.0, description="Completion from 0 to 100")
    status: str = Field(
        default="pending", description="Status: pending, in_progress, completed"
    )
    started_at: Optional[str] = None
    updated_at: Optional[str] = None
    completed_at: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("percentage")
    def check_percentage(cls, v):
        if not math.isfinite(v) or v < 0 or v > 100:
            raise ValueError(f"Percentage must be between 0 and 100, got {v}")
        return float(v)

    def refresh_status(self) -> None:
        if self.percentage >= 100:
            self.status = "completed"
        elif self.percentage > 0:
            self.status = "in_progress"
        else:
            self.status = "pending"


class ProgressTracker(BaseModel):
    prp: str = Field(..., description="Name of the PRP being tracked")
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)
    steps: List[ProgressStep] = Field(default_factory=list)

    def get_step(self, name: str) -> Optional[ProgressStep]:
        for step in self.steps:
            if step.name == name:
                return step
        return None

    def set_step(
        self, name: str, percentage: float, notes: Optional[str] = None
    ) -> ProgressStep:
        """Create or update a step, keeping its timestamps consistent."""
        timestamp = now_iso()
        step = self.get_step(name)
        if step is None:
            step = ProgressStep(name=name, percentage=float(percentage))
            self.steps.append(step)
        else:
            step.percentage = float(percentage)
        if step.percentage > 0 and not step.started_at:
            step.started_at = timestamp
        if step.percentage >= 100:
            step.completed_at = step.completed_at or timestamp
        else:
            step.completed_at = None
        if notes is not None:
            step.notes = notes
        step.updated_at = timestamp
        step.refresh_status()
        self.updated_at = timestamp
        return step

    def overall_percentage(self) -> float:
        if not self.steps:
            return 0.0
        return round(sum(step.percentage for step in self.steps) / len(self.steps), 1)

    def is_complete(self) -> bool:
        return bool(self.steps) and all(
            step.status == "completed" for step in self.steps
        )

    def to_markdown(self) -> str:
        """Generate a markdown progress report."""
        md = []
        md.append(f"# Progress Report - {self.prp}\n")
        md.append(
            f"**Overall:** {self.overall_percentage():.1f}% "
            f"`{progress_bar(self.overall_percentage())}`\n"
        )
        md.append(f"**Created:** {self.created_at}  ")
        md.append(f"**Last updated:** {self.updated_at}\n")

        md.append("## Steps")
        md.append("| Status | Step | Progress | Started | Completed |")
        md.append("|---|---|---|---|---|")
        for step in self.steps:
            icon = STATUS_ICONS.get(step.status, "❓")
            md.append(
                f"| {icon} {step.status} | {step.name} | {step.percentage:.1f}% "
                f"| {step.started_at or '-'} | {step.completed_at or '-'} |"
            )

        notes = [step for step in self.steps if step.notes]
        if notes:
            md.append("\n## Notes")
            for step in notes:
                md.append(f"- **{step.name}:** {step.notes}")

        return "\n".join(md) + "\n"


class LevelResult(BaseModel):
    name: str
    status: str = Field(..., description="Status: passed, failed, skipped")
    required: bool = True
    results: List[CommandResult] = Field(default_factory=list)


class ValidationReport(BaseModel):
    prp: Optional[str] = None
    levels: List[LevelResult] = Field(default_factory=list)
    started_at: str = Field(default_factory=now_iso)
    finished_at: Optional[str] = None

    @property
    def passed(self) -> bool:
        return all(
            level.status == "passed" for level in self.levels if level.required
        )

    def passed_percentage(self) -> float:
        # agrees with ``passed``: nothing to run counts as passed
        if not self.levels:
            return 100.0
        passed = len([level for level in self.levels if level.status == "passed"])
        return round(100.0 * passed / len(self.levels), 1)

    def summary(self) -> str:
        parts = [
            f"{level.name}: {level.status}" for level in self.levels
        ]
        verdict = "PASSED" if self.passed else "FAILED"
        return f"Validation {verdict} ({'; '.join(parts) or 'no levels'})"

    def to_markdown(self) -> str:
        md = [f"# Validation Report - {self.prp or 'workspace'}\n"]
        md.append(f"**Result:** {'passed' if self.passed else 'failed'}  ")
        md.append(f"**Started:** {self.started_at}  ")
        md.append(f"**Finished:** {self.finished_at or '-'}\n")
        for level in self.levels:
            md.append(
                f"## {STATUS_ICONS.get(level.status, '❓')} {level.name} ({level.status})"
            )
            for result in level.results:
                md.append(f"### `{result.metadata.command}`")
                md.append(f"Exit code: {result.metadata.return_code}\n")
                output = result.data
                if result.error:
                    output = f"{output}\n{result.error.message}".strip()
                if output:
                    md.append("```")
                    md.append(output)
                    md.append("```")
            md.append("")
        return "\n".join(md)


class LintFinding(BaseModel):
    path: str
    rule: str = Field(..., description="Rule identifier, e.g. 'missing-section'")
    message: str
    severity: str = Field(default="error", description="Severity: error, warning")
    line: Optional[int] = None

    def __str__(self) -> str:
        location = f"{self.path}:{self.line}" if self.line else self.path
        return f"{location}: {self.severity}: [{self.rule}] {self.message}"


class LintReport(BaseModel):
    path: str
    findings: List[LintFinding] = Field(default_factory=list)

    @property
    def errors(self) -> List[LintFinding]:
        return [f for f in self.findings if f.severity == "error"]

    @property
    def warnings(self) -> List[LintFinding]:
        return [f for f in self.findings if f.severity == "warning"]

    @property
    def passed(self) -> bool:
        return not self.errors
