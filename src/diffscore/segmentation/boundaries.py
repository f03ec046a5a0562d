"""Block end detection for declarations found by the language regexes.

A detector receives the file's lines and the 0-based index of a declaration
line and returns the 0-based index of the block's last line.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence


class BoundaryDetector(Protocol):
    """Finds the logical end of the block opened at ``start``."""

    def find_end(self, lines: Sequence[str], start: int) -> int: ...


class BraceBoundaryDetector:
    """Balance ``{``/``}`` from the declaration line.

    String and character literals, line comments and block comments are
    ignored. Counting starts at the first ``{``; a block that never closes
    runs to the end of the content.

    ``quotes`` lists the characters that open a string literal. When the
    single quote is not among them it only opens a char literal such as
    ``'{'`` or ``'\\n'``, so Rust lifetimes (``&'a str``) are left as code.
    """

    def __init__(self, line_comment: Optional[str] = "//", quotes: str = "\"'`"):
        self.line_comment = line_comment
        self.quotes = quotes

    def find_end(self, lines: Sequence[str], start: int) -> int:
        depth = 0
        opened = False
        in_block_comment = False

        for index in range(start, len(lines)):
            code, in_block_comment = self._strip_noise(lines[index], in_block_comment)
            for char in code:
                if char == "{":
                    depth += 1
                    opened = True
                elif char == "}" and opened:
                    depth -= 1
                    if depth == 0:
                        return index

        return len(lines) - 1

    def _strip_noise(self, line: str, in_block_comment: bool) -> tuple[str, bool]:
        """Return the line's code with literals and comments removed."""
        out = []
        quote: Optional[str] = None
        i = 0
        n = len(line)

        while i < n:
            char = line[i]

            if in_block_comment:
                if line.startswith("*/", i):
                    in_block_comment = False
                    i += 2
                else:
                    i += 1
                continue

            if quote is not None:
                if char == "\\":
                    i += 2
                    continue
                if char == quote:
                    quote = None
                i += 1
                continue

            if self.line_comment and line.startswith(self.line_comment, i):
                break
            if line.startswith("/*", i):
                in_block_comment = True
                i += 2
                continue
            if char in self.quotes:
                quote = char
                i += 1
                continue
            if char == "'":
                end = _char_literal_end(line, i)
                if end is not None:
                    i = end
                    continue

            out.append(char)
            i += 1

        return "".join(out), in_block_comment


class IndentBoundaryDetector:
    """Indentation blocks (Python).

    The block ends at the last non-blank line before the next code line
    indented at or left of the declaration. Blank and comment-only lines
    never end a block.
    """

    def __init__(self, line_comment: str = "#"):
        self.line_comment = line_comment

    def find_end(self, lines: Sequence[str], start: int) -> int:
        base = _indent_width(lines[start])
        end = start

        for index in range(start + 1, len(lines)):
            stripped = lines[index].strip()
            if not stripped or stripped.startswith(self.line_comment):
                continue
            if _indent_width(lines[index]) <= base:
                break
            end = index

        return end


def _char_literal_end(line: str, start: int) -> Optional[int]:
    """Index just past a char literal opened at ``start``, or None."""
    if line.startswith("\\", start + 1):
        close = line.find("'", start + 3)
        if close != -1 and close - start <= 11:
            return close + 1
        return None
    if start + 2 < len(line) and line[start + 2] == "'" and line[start + 1] != "'":
        return start + 3
    return None


def _indent_width(line: str) -> int:
    return len(line.expandtabs(4)) - len(line.expandtabs(4).lstrip())


def detector_for(
    boundary_mode: str, line_comment: Optional[str], quotes: str = "\"'`"
) -> BoundaryDetector:
    """Detector instance for a LanguageConfig's boundary mode."""
    if boundary_mode == "indent":
        return IndentBoundaryDetector(line_comment or "#")
    return BraceBoundaryDetector(line_comment, quotes)
