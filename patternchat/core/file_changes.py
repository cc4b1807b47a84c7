# patternchat/core/file_changes.py
"""
Structured file changes embedded in model output.

The coding-feature pattern asks the model to finish its answer with a
marker line followed by a JSON array:

    <summary text>
    __CREATE_CODING_FEATURE_FILE_CHANGES__
    [
      {"operation": "create", "path": "src/app.py", "content": "..."},
      {"operation": "update", "path": "README.md", "content": "..."}
    ]

Parsing never raises past `extract_file_changes`; applying writes each
file independently inside a sandboxed project root.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from patternchat.core.errors import FileChangesParseError

logger = logging.getLogger(__name__)

FILE_CHANGES_MARKER = "__CREATE_CODING_FEATURE_FILE_CHANGES__"
SUPPORTED_OPERATIONS = {"create", "update"}


@dataclass
class FileChange:
    operation: str
    path: str
    content: str = ""


@dataclass
class FileChangesResult:
    """Tagged parse result: either `changes` or an `error`, plus the summary text."""
    summary: str
    changes: List[FileChange] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AppliedChange:
    path: str
    success: bool
    error: Optional[str] = None


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------

def _validate_change(index: int, item: object) -> FileChange:
    if not isinstance(item, dict):
        raise FileChangesParseError(f"change #{index} is not an object")

    operation = str(item.get("operation") or "").strip().lower()
    if operation not in SUPPORTED_OPERATIONS:
        raise FileChangesParseError(f"change #{index}: unsupported operation '{operation}'")

    path = str(item.get("path") or "").strip()
    if not path:
        raise FileChangesParseError(f"change #{index}: missing path")
    if Path(path).is_absolute() or ".." in Path(path).parts:
        raise FileChangesParseError(f"change #{index}: unsafe path '{path}'")

    content = item.get("content")
    if content is None:
        content = ""
    if not isinstance(content, str):
        raise FileChangesParseError(f"change #{index}: content must be a string")

    return FileChange(operation=operation, path=path, content=content)


def parse_file_changes(text: str) -> tuple[str, List[FileChange]]:
    """
    Split `text` into (summary, changes).

    Text without the marker is all summary. Raises FileChangesParseError
    when the marker is present but the JSON after it is unusable.
    """
    marker_at = text.find(FILE_CHANGES_MARKER)
    if marker_at == -1:
        return text, []

    summary = text[:marker_at].strip()
    tail = text[marker_at + len(FILE_CHANGES_MARKER):]

    array_at = tail.find("[")
    if array_at == -1:
        raise FileChangesParseError("no JSON array after file changes marker")

    try:
        data, _ = json.JSONDecoder().raw_decode(tail, array_at)
    except json.JSONDecodeError as e:
        raise FileChangesParseError(f"invalid file changes JSON: {e}") from e

    if not isinstance(data, list):
        raise FileChangesParseError("file changes must be a JSON array")

    return summary, [_validate_change(i, item) for i, item in enumerate(data)]


def extract_file_changes(text: str) -> FileChangesResult:
    """Non-raising wrapper: on failure the raw text becomes the summary."""
    try:
        summary, changes = parse_file_changes(text)
    except FileChangesParseError as e:
        return FileChangesResult(summary=text, error=str(e))
    return FileChangesResult(summary=summary, changes=changes)


# ----------------------------------------------------------------------
# Applying
# ----------------------------------------------------------------------

def _resolve_inside(root: Path, relative: str) -> Path:
    """
    Ensures the target is always inside the project root.
    """
    target = (root / relative).resolve()
    if root not in target.parents and target != root:
        raise ValueError(f"Sandbox Violation: {target} outside project root")
    return target


def apply_file_changes(
    project_root: Union[str, Path], changes: List[FileChange]
) -> List[AppliedChange]:
    """
    Write every change under `project_root`, creating directories as needed.

    Each file is attempted on its own; a failure is logged and recorded
    and does not undo files already written.
    """
    root = Path(project_root).resolve()
    results: List[AppliedChange] = []

    for change in changes:
        try:
            target = _resolve_inside(root, change.path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(change.content, encoding="utf-8")
            logger.info(f"Applied {change.operation} to {change.path}")
            results.append(AppliedChange(path=change.path, success=True))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to apply {change.operation} to {change.path}: {e}")
            results.append(AppliedChange(path=change.path, success=False, error=str(e)))

    return results
