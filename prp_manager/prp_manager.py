#!/usr/bin/env python
# coding: utf-8

"""
A command-line tool for the PRP (Product Requirements Prompt) workflow: scaffolding
PRPs from templates, linting them, running their validation loops and tracking
implementation progress in a flat JSON file.
"""

import subprocess
import os
import re
import sys
import json
import time
import getopt
import logging
from pathlib import Path
from multiprocessing.pool import ThreadPool
from typing import Callable, Dict, List, Optional

from prp_manager.models import (
    CommandResult,
    DocumentResult,
    LevelResult,
    LintFinding,
    LintReport,
    PRPDocument,
    PRPTask,
    ProgressTracker,
    ValidationLevel,
    ValidationReport,
    STATUS_ICONS,
)
from prp_manager.prompts import (
    PRP_BASE_TEMPLATE,
    INITIAL_TEMPLATE,
    PROJECT_RULES_TEMPLATE,
    GENERATE_PRP_COMMAND,
    EXECUTE_PRP_COMMAND,
    DEFAULT_VALIDATION_LEVELS,
    PRP_REQUIRED_SECTIONS,
    INITIAL_REQUIRED_SECTIONS,
)
from prp_manager.utils import (
    FENCE_PATTERN,
    PLACEHOLDER_PATTERN,
    extract_checklist,
    extract_fenced_blocks,
    extract_sections,
    find_section,
    iter_lines_outside_fences,
    now_iso,
    progress_bar,
    render_template,
    slugify,
    split_frontmatter,
    to_boolean,
    to_float,
    to_integer,
)

PRPS_DIRECTORY = "PRPs"
TEMPLATES_DIRECTORY = "templates"
PROGRESS_DIRECTORY = ".progress"
SHELL_LANGUAGES = {"bash", "sh", "shell", "console", ""}
URL_PATTERN = re.compile(r"https?://[^\s)>\]]+")
HINT_PATTERN = re.compile(r"^\s*\[[^\]]+\]\s*$")
TIMEOUT_EXIT_CODE = 124
LOGGER_NAME = "PRPManager"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(is_mcp_server=False, log_file="prp_manager_mcp.log"):
    """
    Route the PRPManager logger to stdout for the CLI, or to a file for the MCP server.

    Previous handlers are closed and replaced, so calling this again switches
    destinations without leaking open log files.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if is_mcp_server:
        # stdout belongs to the MCP transport
        handler = logging.FileHandler(log_file, mode="a")
        handler.setLevel(logging.ERROR)
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger


class PRPManager:
    """Manage PRPs, their validation loops and their progress trackers in a workspace."""

    def __init__(
        self,
        workspace: str = None,
        progress_directory: str = None,
        threads: int = None,
        fail_fast: bool = True,
        timeout: float = None,
        is_mcp_server: bool = False,
    ):
        """Initialize the manager with default settings."""
        self.logger = logging.getLogger(LOGGER_NAME)
        if not self.logger.handlers:
            setup_logging(is_mcp_server=is_mcp_server)
        self.is_mcp_server = is_mcp_server
        if workspace:
            self.workspace = os.path.abspath(workspace)
        else:
            self.workspace = os.getcwd()
        if progress_directory:
            self.progress_directory = os.path.join(self.workspace, progress_directory)
        else:
            self.progress_directory = os.path.join(
                self.workspace, PRPS_DIRECTORY, PROGRESS_DIRECTORY
            )
        self.fail_fast = fail_fast
        self.timeout = timeout or None
        self.threads = 1
        if threads:
            self.set_threads(threads=threads)

    @property
    def prps_directory(self) -> str:
        return os.path.join(self.workspace, PRPS_DIRECTORY)

    def set_threads(self, threads: int) -> None:
        """Use ``threads`` lint workers, or every CPU when the count is out of range."""
        cpus = os.cpu_count() or 1
        if isinstance(threads, int) and not isinstance(threads, bool) and 0 < threads <= cpus:
            self.threads = threads
            return
        self.logger.warning(f"Thread count {threads!r} is not within 1..{cpus}, using {cpus}")
        self.threads = cpus

    def _result(
        self, command: str, data: str = "", error: str = None, code: int = 0
    ) -> CommandResult:
        return CommandResult.build(
            command, self.workspace, data=data, error=error, code=code
        )

    def _within_workspace(self, path: str) -> str:
        path = os.path.normpath(os.path.join(self.workspace, path))
        if os.path.commonpath([self.workspace, path]) != self.workspace:
            raise ValueError(f"Path {path} is outside of workspace {self.workspace}")
        return path

    # --- Shell commands ---

    def run_command(
        self, command: str, directory: str = None, timeout: float = None
    ) -> CommandResult:
        """
        Execute a shell command in the specified directory.

        Args:
            command (str): The command to execute.
            directory (str, optional): The directory to execute the command in.
                Defaults to the workspace.
            timeout (float, optional): Seconds before the command is killed.

        Returns:
            CommandResult: stdout in ``data``, stderr and exit code in ``error`` on failure.
        """
        if directory is None:
            directory = self.workspace
        timeout = timeout or self.timeout
        try:
            pipe = subprocess.Popen(
                command,
                shell=True,
                cwd=directory,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
            )
        except OSError as e:
            self.logger.error(f"Command failed to start: {command}\nError: {e}")
            return self._result(command, error=str(e), code=1)
        try:
            (out, error) = pipe.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            pipe.kill()
            (out, error) = pipe.communicate()
            self.logger.error(f"Command timed out after {timeout}s: {command}")
            return self._result(
                command,
                data=(out or "").strip(),
                error=f"Command timed out after {timeout}s\n{error or ''}".strip(),
                code=TIMEOUT_EXIT_CODE,
            )
        return_code = pipe.wait()
        out = (out or "").strip()
        error = (error or "").strip()
        if return_code != 0:
            self.logger.error(f"Command failed: {command}\nError: {error or out}")
            return self._result(
                command,
                data=out,
                error=error or f"Command exited with code {return_code}",
                code=return_code,
            )
        if not self.is_mcp_server:
            self.logger.info(f"Command: {command}\nOutput: {out}")
        return self._result(command, data=f"{out}\n{error}".strip())

    # --- Project layout ---

    def init_project(self, overwrite: bool = False) -> CommandResult:
        """Create the PRPs/examples/docs/scripts layout with starter files."""
        directories = [
            PRPS_DIRECTORY,
            os.path.join(PRPS_DIRECTORY, TEMPLATES_DIRECTORY),
            "examples",
            "docs",
            "scripts",
            os.path.join(".claude", "commands"),
        ]
        files = {
            os.path.join(PRPS_DIRECTORY, TEMPLATES_DIRECTORY, "prp_base.md"): PRP_BASE_TEMPLATE,
            "INITIAL.md": INITIAL_TEMPLATE,
            "CLAUDE.md": PROJECT_RULES_TEMPLATE,
            os.path.join(".claude", "commands", "generate-prp.md"): GENERATE_PRP_COMMAND,
            os.path.join(".claude", "commands", "execute-prp.md"): EXECUTE_PRP_COMMAND,
        }
        created = []
        skipped = []
        try:
            for directory in directories:
                os.makedirs(os.path.join(self.workspace, directory), exist_ok=True)
            for relative_path, content in files.items():
                path = os.path.join(self.workspace, relative_path)
                if os.path.exists(path) and not overwrite:
                    skipped.append(relative_path)
                    continue
                with open(path, "w") as file:
                    file.write(content)
                created.append(relative_path)
        except OSError as e:
            self.logger.error(f"Failed to initialize project in {self.workspace}: {e}")
            return self._result("init_project", error=str(e))
        self.logger.info(
            f"Initialized project in {self.workspace}: "
            f"{len(created)} created, {len(skipped)} kept"
        )
        lines = [f"Created: {path}" for path in created]
        lines.extend(f"Skipped (exists): {path}" for path in skipped)
        return self._result("init_project", data="\n".join(lines))

    def _load_prp_template(self) -> str:
        path = os.path.join(self.prps_directory, TEMPLATES_DIRECTORY, "prp_base.md")
        if os.path.isfile(path):
            with open(path, "r") as file:
                return file.read()
        return PRP_BASE_TEMPLATE

    def _example_files(self) -> List[str]:
        examples = Path(self.workspace) / "examples"
        if not examples.is_dir():
            return []
        return sorted(
            path.relative_to(self.workspace).as_posix()
            for path in examples.rglob("*")
            if path.is_file() and not path.name.startswith(".")
        )

    def _references(self, documentation: str = "") -> str:
        references = []
        for url in URL_PATTERN.findall(documentation or ""):
            references.append(f"- url: {url.rstrip('.,;')}\n  why: Listed in the feature request")
        for example in self._example_files():
            references.append(f"- file: {example}\n  why: Pattern to follow")
        if not references:
            return "# Add documentation URLs and example files here"
        return "\n".join(references)

    def _write_prp(
        self, name: str, title: str, values: Dict[str, str], overwrite: bool
    ) -> CommandResult:
        slug = slugify(name)
        relative_path = os.path.join(PRPS_DIRECTORY, f"{slug}.md")
        path = os.path.join(self.workspace, relative_path)
        if os.path.exists(path) and not overwrite:
            self.logger.error(f"PRP already exists: {path}")
            return self._result(f"create_prp {slug}", error=f"PRP already exists: {relative_path}")
        content = render_template(
            self._load_prp_template(), name=slug, title=title, **values
        )
        try:
            os.makedirs(self.prps_directory, exist_ok=True)
            with open(path, "w") as file:
                file.write(content)
        except OSError as e:
            self.logger.error(f"Failed to write PRP {path}: {e}")
            return self._result(f"create_prp {slug}", error=str(e))
        self.logger.info(f"Created PRP: {relative_path}")
        return self._result(f"create_prp {slug}", data=relative_path)

    def create_prp(
        self, name: str, feature: str = "", overwrite: bool = False
    ) -> CommandResult:
        """
        Create a new PRP from the base template.

        Args:
            name (str): Title of the PRP; its slug becomes the file name.
            feature (str, optional): Feature description used for the Goal and What sections.
            overwrite (bool): Replace an existing PRP with the same slug.
        """
        if not name or not name.strip():
            return self._result("create_prp", error="PRP name must not be empty")
        feature = (feature or "").strip()
        description = feature.splitlines()[0] if feature else name
        values = {
            "description": json.dumps(description),
            "goal": feature or f"Implement {name.strip()}.",
            "what": feature or "Describe the user-visible behavior and technical requirements.",
            "references": self._references(feature),
            "gotchas": "- Document library quirks and version constraints here",
        }
        return self._write_prp(name, name.strip(), values, overwrite)

    def generate_prp(
        self, initial: str = "INITIAL.md", name: str = None, overwrite: bool = False
    ) -> CommandResult:
        """Build a PRP from the FEATURE, EXAMPLES, DOCUMENTATION and OTHER CONSIDERATIONS of an INITIAL file."""
        command = f"generate_prp {initial}"
        try:
            path = self._within_workspace(initial)
        except ValueError as e:
            return self._result(command, error=str(e))
        if not os.path.isfile(path):
            self.logger.error(f"INITIAL file not found: {path}")
            return self._result(command, error=f"INITIAL file not found: {initial}")
        with open(path, "r") as file:
            sections = extract_sections(file.read(), level=2)
        feature = (find_section(sections, "FEATURE") or "").strip()
        if not feature or HINT_PATTERN.match(feature):
            return self._result(command, error=f"{initial} has no FEATURE description")
        examples = (find_section(sections, "EXAMPLES") or "").strip()
        documentation = (find_section(sections, "DOCUMENTATION") or "").strip()
        other = (find_section(sections, "OTHER CONSIDERATIONS") or "").strip()

        first_line = feature.splitlines()[0].strip().lstrip("-*# ").strip()
        title = first_line[:80].rstrip(" .:")
        what = feature
        if examples and not HINT_PATTERN.match(examples):
            what = f"{feature}\n\n### Examples\n{examples}"
        values = {
            "description": json.dumps(first_line),
            "goal": feature,
            "what": what,
            "references": self._references(documentation),
            "gotchas": other
            if other and not HINT_PATTERN.match(other)
            else "- Document library quirks and version constraints here",
        }
        slug_source = name or "-".join(slugify(title).split("-")[:8])
        return self._write_prp(slug_source, title, values, overwrite)

    def list_prps(self) -> List[str]:
        """Return the names of all PRPs, excluding templates."""
        root = Path(self.prps_directory)
        if not root.is_dir():
            return []
        names = []
        for path in root.rglob("*.md"):
            parts = path.relative_to(root).parts
            if parts[0] == TEMPLATES_DIRECTORY or any(p.startswith(".") for p in parts):
                continue
            names.append(path.relative_to(root).with_suffix("").as_posix())
        return sorted(names)

    def resolve_prp_path(self, name: str) -> str:
        """Resolve a PRP name (``user-auth``) or path (``PRPs/user-auth.md``) to a file."""
        if name.endswith(".md") or "/" in name or os.sep in name:
            candidates = [name]
        else:
            candidates = [
                os.path.join(PRPS_DIRECTORY, f"{name}.md"),
                os.path.join(PRPS_DIRECTORY, f"{slugify(name)}.md"),
            ]
        for candidate in candidates:
            path = self._within_workspace(candidate)
            if os.path.isfile(path):
                return path
        self.logger.error(f"PRP not found: {name}")
        raise FileNotFoundError(f"PRP not found: {name}")

    def prp_name(self, prp: str) -> str:
        if prp.endswith(".md"):
            prp = Path(prp).stem
        return slugify(prp)

    def get_prp(self, name: str) -> DocumentResult:
        path = self.resolve_prp_path(name)
        with open(path, "r") as file:
            return DocumentResult(
                name=self.prp_name(path), path=path, content=file.read()
            )

    def parse_prp(self, name: str) -> PRPDocument:
        """Parse a PRP into its sections, blueprint tasks and validation levels."""
        path = self.resolve_prp_path(name)
        with open(path, "r") as file:
            text = file.read()
        return self._parse_text(self.prp_name(path), path, text)

    def _parse_text(self, name: str, path: str, text: str) -> PRPDocument:
        frontmatter, body = split_frontmatter(text)
        title = ""
        for _, line, in_fence in iter_lines_outside_fences(body):
            if not in_fence and line.startswith("# "):
                title = line[2:].strip()
                break
        sections = extract_sections(body, level=2)
        blueprint = find_section(sections, "Implementation Blueprint") or ""
        tasks = [
            PRPTask(id=index, description=item, status="done" if checked else "pending")
            for index, (checked, item) in enumerate(extract_checklist(blueprint), start=1)
        ]
        return PRPDocument(
            name=name,
            path=path,
            title=title,
            frontmatter=frontmatter,
            sections=sections,
            tasks=tasks,
            validation_levels=self._parse_validation_levels(sections),
        )

    def _parse_validation_levels(self, sections: Dict[str, str]) -> List[ValidationLevel]:
        loop = find_section(sections, "Validation Loop") or ""
        levels = []
        for title, body in extract_sections(loop, level=3).items():
            if not title.lower().startswith("level"):
                continue
            commands = []
            for language, block in extract_fenced_blocks(body):
                if language not in SHELL_LANGUAGES:
                    continue
                pending = ""
                for line in block.splitlines():
                    line = line.strip()
                    if not pending and (not line or line.startswith("#")):
                        continue
                    # Join backslash continuations into one command
                    if line.endswith("\\"):
                        pending += line[:-1].strip() + " "
                        continue
                    commands.append(f"{pending}{line}".strip())
                    pending = ""
                if pending.strip():
                    commands.append(pending.strip())
            if commands:
                levels.append(
                    ValidationLevel(
                        name=title,
                        commands=commands,
                        required="optional" not in title.lower(),
                    )
                )
        return levels

    # --- Documentation linting ---

    def _document_kind(self, path: str) -> str:
        if os.path.basename(path).upper() == "INITIAL.MD":
            return "initial"
        relative = os.path.relpath(path, self.prps_directory)
        if not relative.startswith("..") and not relative.startswith(TEMPLATES_DIRECTORY):
            return "prp"
        return "doc"

    def lint_document(
        self,
        path: str,
        required_sections: Optional[List[str]] = None,
        required_phrases: Optional[List[str]] = None,
    ) -> LintReport:
        """
        Lint a Markdown document.

        Args:
            path (str): Document path, absolute or relative to the workspace.
            required_sections (list, optional): Level-2 headings that must be present.
                Defaults depend on the document: PRP, INITIAL.md or plain doc.
            required_phrases (list, optional): Substrings the document must contain.

        Returns:
            LintReport: Findings with severity ``error`` or ``warning``.
        """
        path = self._within_workspace(path)
        if not os.path.isfile(path):
            self.logger.error(f"File not found: {path}")
            raise FileNotFoundError(f"File not found: {path}")
        with open(path, "r") as file:
            text = file.read()
        relative_path = os.path.relpath(path, self.workspace)
        report = LintReport(path=relative_path)
        kind = self._document_kind(path)
        if required_sections is None:
            required_sections = {
                "prp": PRP_REQUIRED_SECTIONS,
                "initial": INITIAL_REQUIRED_SECTIONS,
            }.get(kind, [])

        def add(rule, message, severity="error", line=None):
            report.findings.append(
                LintFinding(
                    path=relative_path,
                    rule=rule,
                    message=message,
                    severity=severity,
                    line=line,
                )
            )

        _, body = split_frontmatter(text)
        sections = extract_sections(body, level=2)
        for section in required_sections:
            content = find_section(sections, section)
            if content is None:
                add("missing-section", f"Missing required section '{section}'")
            elif not content.strip():
                add("empty-section", f"Section '{section}' is empty", "warning")

        for phrase in required_phrases or []:
            if phrase not in text:
                add("missing-phrase", f"Document does not mention '{phrase}'")

        opened_at = None
        fence = None
        for number, line in enumerate(text.splitlines(), start=1):
            match = FENCE_PATTERN.match(line)
            if fence is None and match:
                fence, opened_at = match.group("fence"), number
            elif fence is not None and match and match.group("fence") == fence:
                fence, opened_at = None, None
        if fence is not None:
            add("unbalanced-fence", "Code fence is never closed", line=opened_at)

        for number, line, in_fence in iter_lines_outside_fences(text):
            if in_fence:
                continue
            for match in PLACEHOLDER_PATTERN.finditer(line):
                add(
                    "unfilled-placeholder",
                    f"Template placeholder '{match.group(0)}' was not filled in",
                    line=number,
                )
            if HINT_PATTERN.match(line):
                add(
                    "unfilled-hint",
                    f"Template hint left in place: {line.strip()}",
                    "warning",
                    line=number,
                )

        if kind == "prp" and not self._parse_validation_levels(sections):
            add(
                "no-validation-commands",
                "Validation Loop has no runnable commands",
                "warning",
            )

        if report.passed:
            self.logger.info(
                f"Lint passed: {relative_path} ({len(report.warnings)} warnings)"
            )
        else:
            self.logger.error(
                f"Lint failed: {relative_path} ({len(report.errors)} errors)"
            )
        return report

    def lint_prps(self, names: Optional[List[str]] = None) -> List[LintReport]:
        """
        Lint several PRPs in parallel.

        Returns:
            list: One LintReport per PRP, in the order of ``names`` (or of ``list_prps``).
        """
        names = names if names is not None else self.list_prps()
        paths = [self.resolve_prp_path(name) for name in names]
        if not paths:
            return []
        pool = ThreadPool(processes=self.threads)
        try:
            reports = pool.map(self.lint_document, paths)
            pool.close()
            pool.join()
            return reports
        finally:
            pool.terminate()

    # --- Validation loop ---

    def run_validation(
        self,
        prp: str = None,
        levels: Optional[List[ValidationLevel]] = None,
        fail_fast: bool = None,
        record: bool = True,
    ) -> ValidationReport:
        """
        Run validation levels in order and report the outcome of every command.

        Levels come from ``levels`` (an empty list runs nothing), else from the PRP's
        Validation Loop, else the defaults (ruff, mypy, pytest). With fail-fast, levels after a failing required
        level are skipped. When a PRP is given and ``record`` is set, the share of
        passed levels is written to its ``validation`` progress step.
        """
        if fail_fast is None:
            fail_fast = self.fail_fast
        prp_name = self.prp_name(prp) if prp else None
        if levels is None and prp:
            levels = self.parse_prp(prp).validation_levels or None
        if levels is None:
            levels = [
                ValidationLevel(name=name, commands=commands)
                for name, commands in DEFAULT_VALIDATION_LEVELS
            ]

        report = ValidationReport(prp=prp_name)
        stop = False
        for level in levels:
            if stop:
                report.levels.append(
                    LevelResult(name=level.name, status="skipped", required=level.required)
                )
                continue
            self.logger.info(f"Running {level.name}")
            results = [self.run_command(command) for command in level.commands]
            passed = all(result.ok for result in results)
            report.levels.append(
                LevelResult(
                    name=level.name,
                    status="passed" if passed else "failed",
                    required=level.required,
                    results=results,
                )
            )
            if not passed and level.required and fail_fast:
                stop = True
        report.finished_at = now_iso()

        if report.passed:
            self.logger.info(report.summary())
        else:
            self.logger.error(report.summary())
        if prp_name and record:
            self.update_progress(
                prp_name, "validation", report.passed_percentage(), notes=report.summary()
            )
        return report

    # --- Progress tracking ---

    def progress_path(self, prp: str) -> str:
        return os.path.join(self.progress_directory, f"{self.prp_name(prp)}.json")

    def load_progress(self, prp: str) -> ProgressTracker:
        """Load the tracker for a PRP; a missing file yields an empty tracker."""
        path = self.progress_path(prp)
        if not os.path.exists(path):
            return ProgressTracker(prp=self.prp_name(prp))
        with open(path, "r") as file:
            content = file.read()
        try:
            return ProgressTracker.model_validate_json(content)
        except ValueError as e:
            self.logger.error(f"Malformed progress file {path}: {e}")
            raise ValueError(f"Malformed progress file {path}: {e}")

    def save_progress(self, tracker: ProgressTracker) -> str:
        path = self.progress_path(tracker.prp)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as file:
            file.write(tracker.model_dump_json(indent=2))
        return path

    def init_progress(
        self, prp: str, steps: Optional[List[str]] = None, overwrite: bool = False
    ) -> ProgressTracker:
        """Seed a tracker from the PRP's blueprint tasks, plus a trailing validation step."""
        path = self.progress_path(prp)
        if os.path.exists(path) and not overwrite:
            self.logger.warning(f"Progress already tracked for {prp}: {path}")
            return self.load_progress(prp)
        tracker = ProgressTracker(prp=self.prp_name(prp))
        if steps is None:
            document = self.parse_prp(prp)
            for task in document.tasks:
                tracker.set_step(task.description, 100 if task.status == "done" else 0)
            tracker.set_step("validation", 0)
        else:
            for step in steps:
                tracker.set_step(step, 0)
        self.save_progress(tracker)
        self.logger.info(f"Tracking {len(tracker.steps)} steps for {tracker.prp}")
        return tracker

    def update_progress(
        self, prp: str, step: str, percentage: float, notes: Optional[str] = None
    ) -> ProgressTracker:
        tracker = self.load_progress(prp)
        updated = tracker.set_step(step, percentage, notes=notes)
        self.save_progress(tracker)
        self.logger.info(
            f"{tracker.prp}: {step} -> {updated.percentage:.1f}% ({updated.status})"
        )
        return tracker

    def render_dashboard(self, prp: str, width: int = 20) -> str:
        """Render the text dashboard for a PRP's progress."""
        tracker = self.load_progress(prp)
        rule = "=" * 64
        lines = [f"PRP Progress: {tracker.prp}", rule]
        if not tracker.steps:
            lines.append("No progress recorded yet.")
            return "\n".join(lines)
        overall = tracker.overall_percentage()
        lines.append(f"   {'Overall':<30} {progress_bar(overall, width)} {overall:5.1f}%")
        lines.append("-" * 64)
        for step in tracker.steps:
            name = step.name if len(step.name) <= 30 else step.name[:27] + "..."
            icon = STATUS_ICONS.get(step.status, "?")
            lines.append(
                f"{icon} {name:<30} {progress_bar(step.percentage, width)} {step.percentage:5.1f}%"
            )
        completed = len([step for step in tracker.steps if step.status == "completed"])
        lines.append("-" * 64)
        lines.append(f"Steps completed: {completed}/{len(tracker.steps)}")
        lines.append(f"Last updated: {tracker.updated_at}")
        return "\n".join(lines)

    def export_report(self, prp: str, output: str = None) -> str:
        """Render the Markdown progress report and write it to ``output`` when given."""
        report = self.load_progress(prp).to_markdown()
        if output:
            path = self._within_workspace(output)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w") as file:
                file.write(report)
            self.logger.info(f"Exported progress report to {path}")
        return report

    def watch_progress(
        self,
        prp: str,
        interval: float = 2.0,
        iterations: int = None,
        emit: Callable[[str], None] = print,
    ) -> int:
        """
        Re-render the dashboard whenever the progress file changes.

        Args:
            interval (float): Seconds between polls.
            iterations (int, optional): Number of polls; runs until interrupted when None.
            emit (callable): Receives each rendered dashboard.

        Returns:
            int: The number of dashboards emitted.
        """
        path = self.progress_path(prp)
        last_seen = None
        polls = 0
        renders = 0
        while iterations is None or polls < iterations:
            modified = os.path.getmtime(path) if os.path.exists(path) else None
            if polls == 0 or modified != last_seen:
                emit(self.render_dashboard(prp))
                renders += 1
                last_seen = modified
            polls += 1
            if iterations is None or polls < iterations:
                time.sleep(interval)
        return renders


def usage() -> None:
    """Log the usage instructions for the command-line tool."""
    logger = setup_logging()
    logger.info(
        "Usage: \n"
        "-h | --help         [ See usage for script ]\n"
        "-d | --directory    [ Workspace directory - Default current directory ]\n"
        "-i | --init         [ Create the PRPs/examples/docs layout ]\n"
        "-c | --create       [ Create a PRP from the base template ]\n"
        "-g | --generate     [ Generate a PRP from an INITIAL.md file ]\n"
        "-l | --list         [ List PRPs ]\n"
        "-p | --prp          [ PRP name or path to operate on ]\n"
        "-s | --show         [ Show the progress dashboard ]\n"
        "-u | --update       [ Update progress, e.g. 'Task 1=50' ]\n"
        "-e | --export       [ Export the progress report to a Markdown file ]\n"
        "-w | --watch        [ Watch the progress dashboard ]\n"
        "-n | --interval     [ Seconds between watch refreshes - Default 2 ]\n"
        "-L | --lint         [ Lint the PRP, or every PRP ]\n"
        "-v | --validate     [ Run the validation loop ]\n"
        "-t | --threads      [ Number of parallel lint threads ]\n"
        "-f | --force        [ Overwrite existing files ]\n"
        "-T | --track        [ Seed the progress tracker from the PRP tasks ]\n"
        "\n"
        "prp-manager \n\t"
        "--prp 'user-auth' \n\t"
        "--update 'Task 1: Create the data models=100' \n\t"
        "--show"
    )


def parse_update(value: str):
    """Split ``'step=percentage'`` into its parts."""
    if "=" not in value:
        raise ValueError(f"Expected STEP=PERCENTAGE, got '{value}'")
    step, percentage = value.rsplit("=", 1)
    step = step.strip()
    if not step:
        raise ValueError(f"Missing step name in '{value}'")
    return step, to_float(percentage.rstrip("% "))


def prp_manager(argv: list) -> None:
    """
    Process command-line arguments and run the requested PRP operations.

    Args:
        argv (list): List of command-line arguments.

    Exits:
        2 on invalid arguments, 1 when linting or validation fails.
    """
    logger = setup_logging()
    workspace = os.environ.get("PRP_MANAGER_WORKSPACE", None)
    try:
        threads = to_integer(os.environ.get("PRP_MANAGER_THREADS", None)) or None
        fail_fast = to_boolean(os.environ.get("PRP_MANAGER_FAIL_FAST", "True"))
        timeout = to_float(os.environ.get("PRP_MANAGER_TIMEOUT", None)) or None
    except ValueError as e:
        logger.error(f"Invalid PRP_MANAGER_* environment value: {e}")
        usage()
        sys.exit(2)
    progress_directory = os.environ.get("PRP_MANAGER_PROGRESS_DIR", None)
    prp = None
    create_name = None
    generate_file = None
    export_file = None
    updates = []
    interval = 2.0
    init_flag = list_flag = show_flag = watch_flag = False
    lint_flag = validate_flag = force_flag = track_flag = False
    try:
        opts, args = getopt.getopt(
            argv,
            "hd:ic:g:lp:su:e:wn:Lvt:fT",
            [
                "help",
                "directory=",
                "init",
                "create=",
                "generate=",
                "list",
                "prp=",
                "show",
                "update=",
                "export=",
                "watch",
                "interval=",
                "lint",
                "validate",
                "threads=",
                "force",
                "track",
            ],
        )
    except getopt.GetoptError as e:
        logger.error(str(e))
        usage()
        sys.exit(2)
    for opt, arg in opts:
        if opt in ("-h", "--help"):
            usage()
            sys.exit()
        elif opt in ("-d", "--directory"):
            if os.path.isdir(arg):
                workspace = arg
            else:
                logger.error(f"Directory not found: {arg}")
                usage()
                sys.exit(2)
        elif opt in ("-i", "--init"):
            init_flag = True
        elif opt in ("-c", "--create"):
            create_name = arg
        elif opt in ("-g", "--generate"):
            generate_file = arg
        elif opt in ("-l", "--list"):
            list_flag = True
        elif opt in ("-p", "--prp"):
            prp = arg
        elif opt in ("-s", "--show"):
            show_flag = True
        elif opt in ("-u", "--update"):
            try:
                updates.append(parse_update(arg))
            except ValueError as e:
                logger.error(str(e))
                usage()
                sys.exit(2)
        elif opt in ("-e", "--export"):
            export_file = arg
        elif opt in ("-w", "--watch"):
            watch_flag = True
        elif opt in ("-n", "--interval"):
            try:
                interval = to_float(arg)
            except ValueError as e:
                logger.error(str(e))
                usage()
                sys.exit(2)
        elif opt in ("-L", "--lint"):
            lint_flag = True
        elif opt in ("-v", "--validate"):
            validate_flag = True
        elif opt in ("-t", "--threads"):
            try:
                threads = to_integer(arg)
            except ValueError as e:
                logger.error(str(e))
                usage()
                sys.exit(2)
        elif opt in ("-T", "--track"):
            track_flag = True
        elif opt in ("-f", "--force"):
            force_flag = True

    if (updates or show_flag or export_file or watch_flag or track_flag) and not prp:
        logger.error("--track, --update, --show, --export and --watch require --prp")
        usage()
        sys.exit(2)

    manager = PRPManager(
        workspace=workspace,
        progress_directory=progress_directory,
        threads=threads,
        fail_fast=fail_fast,
        timeout=timeout,
    )
    failed = False
    try:
        for result in (
            manager.init_project(overwrite=force_flag) if init_flag else None,
            manager.create_prp(create_name, overwrite=force_flag) if create_name else None,
            manager.generate_prp(generate_file, overwrite=force_flag)
            if generate_file
            else None,
        ):
            if result is None:
                continue
            if result.status == "error":
                logger.error(result.error.message)
                failed = True
            else:
                print(result.data)
        if list_flag:
            for name in manager.list_prps():
                print(name)
        if lint_flag:
            reports = manager.lint_prps([prp] if prp else None)
            for report in reports:
                for finding in report.findings:
                    print(finding)
            failed = failed or not all(report.passed for report in reports)
        if track_flag:
            tracker = manager.init_progress(prp, overwrite=force_flag)
            print(f"Tracking {len(tracker.steps)} steps: {manager.progress_path(prp)}")
        for step, percentage in updates:
            manager.update_progress(prp, step, percentage)
        if validate_flag:
            report = manager.run_validation(prp=prp)
            print(report.summary())
            failed = failed or not report.passed
        if show_flag:
            print(manager.render_dashboard(prp))
        if export_file:
            manager.export_report(prp, output=export_file)
        if watch_flag:
            manager.watch_progress(prp, interval=interval)
    except KeyboardInterrupt:
        logger.info("Stopped watching")
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        sys.exit(2)
    if failed:
        sys.exit(1)


def main():
    """
    Entry point for the command-line tool.

    Exits:
        If insufficient arguments are provided, displays usage and exits.
    """
    logger = setup_logging()
    if len(sys.argv) < 2:
        logger.error("Insufficient arguments provided")
        usage()
        sys.exit(2)
    prp_manager(sys.argv[1:])


if __name__ == "__main__":
    main()
