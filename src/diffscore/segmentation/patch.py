"""Unified diff helpers: content extraction and multi-file diff parsing."""

from __future__ import annotations

import re
from typing import Optional

from ..logging_config import get_logger
from ..models import DiffHunk, FileStatus

logger = get_logger(__name__)

_HEADER_PREFIXES = ("@@", "+++", "---")

_DIFF_GIT = re.compile(r"^diff --git a/(.+?) b/(.+)$")


def extract_content(patch: Optional[str]) -> str:
    """Post-change text of the lines a patch shows.

    Added lines and context lines are kept with their one-character prefix
    removed. Headers, deleted lines and markers such as
    ``\\ No newline at end of file`` are dropped.
    """
    if not patch or not patch.strip():
        return ""

    kept = []
    for line in patch.split("\n"):
        if line.startswith(_HEADER_PREFIXES):
            continue
        if line.startswith("+") or line.startswith(" "):
            kept.append(line[1:])

    return "\n".join(kept)


def split_lines(content: str) -> list[str]:
    """Split on newlines, dropping trailing empty lines."""
    lines = content.split("\n")
    while lines and lines[-1] == "":
        lines.pop()
    return lines


def parse_unified_diff(text: str) -> list[DiffHunk]:
    """Parse ``git diff`` output into one DiffHunk per file.

    Each hunk's patch holds the file's ``@@`` sections. Files are identified
    from ``diff --git`` lines or, for plain diffs, from ``---``/``+++``
    headers; ``/dev/null`` marks added and deleted files.
    """
    hunks: list[DiffHunk] = []
    current: Optional[_FileDiff] = None

    for line in text.split("\n"):
        if line.startswith("diff --git "):
            if current is not None:
                hunks.append(current.to_hunk())
            current = _FileDiff()
            match = _DIFF_GIT.match(line)
            if match:
                current.old_path, current.new_path = match.group(1), match.group(2)
            continue

        if current is None or (current.in_body and line.startswith("--- ") and not current.in_git_block):
            # Plain unified diff without "diff --git" lines
            if line.startswith("--- "):
                if current is not None:
                    hunks.append(current.to_hunk())
                current = _FileDiff(in_git_block=False)
            else:
                continue

        if not current.in_body:
            current.read_header(line)
            continue

        current.body.append(line)
        if line.startswith("+") and not line.startswith("+++"):
            current.added += 1
        elif line.startswith("-") and not line.startswith("---"):
            current.deleted += 1

    if current is not None:
        hunks.append(current.to_hunk())

    logger.debug(f"Parsed {len(hunks)} file diffs")
    return [hunk for hunk in hunks if hunk.file]


class _FileDiff:
    """Accumulates one file's section of a multi-file diff."""

    def __init__(self, in_git_block: bool = True):
        self.in_git_block = in_git_block
        self.in_body = False
        self.old_path: Optional[str] = None
        self.new_path: Optional[str] = None
        self.status = FileStatus.MODIFIED
        self.renamed = False
        self.body: list[str] = []
        self.added = 0
        self.deleted = 0

    def read_header(self, line: str) -> None:
        if line.startswith("new file mode"):
            self.status = FileStatus.ADDED
        elif line.startswith("deleted file mode"):
            self.status = FileStatus.DELETED
        elif line.startswith("rename from "):
            self.old_path = line[len("rename from "):]
            self.renamed = True
        elif line.startswith("rename to "):
            self.new_path = line[len("rename to "):]
            self.renamed = True
        elif line.startswith("--- "):
            path = _header_path(line[4:])
            if path is None:
                self.status = FileStatus.ADDED
            else:
                self.old_path = path
        elif line.startswith("+++ "):
            path = _header_path(line[4:])
            if path is None:
                self.status = FileStatus.DELETED
            else:
                self.new_path = path
        elif line.startswith("@@"):
            self.in_body = True
            self.body.append(line)

    def to_hunk(self) -> DiffHunk:
        status = self.status
        if self.renamed and status is FileStatus.MODIFIED:
            status = FileStatus.RENAMED

        path = self.old_path if status is FileStatus.DELETED else self.new_path
        path = path or self.old_path or ""
        old_path = self.old_path if status is FileStatus.RENAMED else None

        return DiffHunk(
            file=path,
            status=status,
            patch="\n".join(self.body) if self.body else None,
            old_path=old_path,
            lines_added=self.added,
            lines_deleted=self.deleted,
        )


def _header_path(raw: str) -> Optional[str]:
    """Path from a ``---``/``+++`` header, or None for /dev/null."""
    path = raw.split("\t", 1)[0].strip()
    if path == "/dev/null":
        return None
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path
