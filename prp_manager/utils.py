#!/usr/bin/python
# coding: utf-8

import re
import yaml
import logging

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")
HEADING_PATTERN = re.compile(r"^(?P<hashes>#{1,6})\s+(?P<title>.+?)\s*#*\s*$")
FENCE_PATTERN = re.compile(r"^\s*(?P<fence>```|~~~)(?P<language>[\w+-]*)")
CHECKLIST_PATTERN = re.compile(r"^\s*[-*]\s*\[(?P<mark>[ xX])\]\s*(?P<text>.+)$")
FRONTMATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(?P<frontmatter>.*?)^---[ \t]*(?:\r?\n|\Z)", re.S | re.M
)


def to_integer(string: Union[str, int] = None) -> int:
    if isinstance(string, int):
        return string
    if not string:
        return 0
    try:
        return int(string.strip())
    except ValueError:
        raise ValueError(f"Cannot convert '{string}' to integer")


def to_float(string: Union[str, float] = None) -> float:
    if isinstance(string, (int, float)):
        return float(string)
    if not string:
        return 0.0
    try:
        return float(string.strip())
    except ValueError:
        raise ValueError(f"Cannot convert '{string}' to float")


def to_boolean(string: Union[str, bool] = None) -> bool:
    if isinstance(string, bool):
        return string
    if not string:
        return False
    normalized = str(string).strip().lower()
    true_values = {"t", "true", "y", "yes", "1"}
    false_values = {"f", "false", "n", "no", "0"}
    if normalized in true_values:
        return True
    elif normalized in false_values:
        return False
    else:
        raise ValueError(f"Cannot convert '{string}' to boolean")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def slugify(value: str) -> str:
    """Convert a free-form title into a file-system friendly slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", str(value).lower()).strip("-")
    return slug or "feature"


def render_template(template: str, **values: Any) -> str:
    """
    Replace ``{{name}}`` placeholders with the given values.

    Unknown placeholders are left in place so they can be reported by the linter.
    """

    def replace(match):
        key = match.group(1)
        if key in values and values[key] is not None:
            return str(values[key])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, template)


def split_frontmatter(text: str) -> Tuple[Dict[str, Any], str]:
    """
    Split YAML frontmatter from a Markdown document.

    The frontmatter is delimited by lines holding only ``---``; the same sequence
    inside a value does not end it.

    Returns:
        tuple: The parsed frontmatter (empty when absent or invalid) and the body.
    """
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group("frontmatter"))
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring invalid frontmatter: {e}")
        return {}, text
    if not isinstance(data, dict):
        return {}, text
    return data, text[match.end():].lstrip("\n")


def iter_lines_outside_fences(text: str):
    """Yield (line_number, line, in_fence) for every line of a Markdown text."""
    fence = None
    for number, line in enumerate(text.splitlines(), start=1):
        match = FENCE_PATTERN.match(line)
        if match:
            if fence is None:
                fence = match.group("fence")
                yield number, line, True
                continue
            if match.group("fence") == fence:
                fence = None
                yield number, line, True
                continue
        yield number, line, fence is not None


def extract_sections(text: str, level: int = 2) -> Dict[str, str]:
    """
    Map every heading of the given level to the text below it.

    A section runs until the next heading of the same or a higher level.
    Headings inside fenced code blocks are ignored.
    """
    sections: Dict[str, List[str]] = {}
    current = None
    for _, line, in_fence in iter_lines_outside_fences(text):
        match = None if in_fence else HEADING_PATTERN.match(line)
        if match:
            depth = len(match.group("hashes"))
            if depth == level:
                current = match.group("title").rstrip(":").strip()
                sections[current] = []
                continue
            if depth < level:
                current = None
                continue
        if current is not None:
            sections[current].append(line)
    return {title: "\n".join(lines).strip() for title, lines in sections.items()}


def find_section(sections: Dict[str, str], title: str) -> Optional[str]:
    """Case-insensitive lookup of a section whose heading starts with ``title``."""
    wanted = title.lower().rstrip(":").strip()
    for heading, body in sections.items():
        if heading.lower().startswith(wanted):
            return body
    return None


def extract_fenced_blocks(text: str) -> List[Tuple[str, str]]:
    """Return ``(language, content)`` for every fenced code block."""
    blocks = []
    fence = None
    block_language = ""
    current: List[str] = []
    for line in text.splitlines():
        match = FENCE_PATTERN.match(line)
        if fence is None and match:
            fence = match.group("fence")
            block_language = match.group("language").lower()
            current = []
        elif fence is not None and match and match.group("fence") == fence:
            blocks.append((block_language, "\n".join(current)))
            fence = None
        elif fence is not None:
            current.append(line)
    return blocks


def extract_code_blocks(text: str, language: Optional[str] = None) -> List[str]:
    """Return the contents of fenced code blocks, optionally filtered by language."""
    return [
        content
        for block_language, content in extract_fenced_blocks(text)
        if language is None or block_language == language.lower()
    ]


def extract_checklist(text: str) -> List[Tuple[bool, str]]:
    """Return ``(checked, text)`` pairs for Markdown task-list items."""
    items = []
    for _, line, in_fence in iter_lines_outside_fences(text):
        if in_fence:
            continue
        match = CHECKLIST_PATTERN.match(line)
        if match:
            items.append((match.group("mark") != " ", match.group("text").strip()))
    return items


def progress_bar(percentage: float, width: int = 20, fill: str = "#", empty: str = "-") -> str:
    percentage = max(0.0, min(100.0, float(percentage)))
    filled = int(round(width * percentage / 100.0))
    return f"[{fill * filled}{empty * (width - filled)}]"
