"""Language configurations for declaration detection.

Adding a new language:
  1. Map its extensions in EXTENSION_LANGUAGES.
  2. Add a LanguageConfig entry to LANGUAGES with declaration patterns.
Languages with an extension mapping but no LanguageConfig (ruby, dart) are
still detected; they just take the LINES fallback tier.
"""

import re as _re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Optional

TEXT_LANGUAGE = "text"

EXTENSION_LANGUAGES = {
    "java": "java",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "pyw": "python",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "hpp": "cpp",
    "h": "cpp",
    "c": "c",
    "cs": "csharp",
    "go": "go",
    "rs": "rust",
    "kt": "kotlin",
    "kts": "kotlin",
    "scala": "scala",
    "sc": "scala",
    "rb": "ruby",
    "php": "php",
    "swift": "swift",
    "dart": "dart",
}

# Words that look like `name(` but are control flow or calls, never declarations.
_NOT_A_NAME = frozenset(
    {
        "if",
        "for",
        "while",
        "switch",
        "catch",
        "return",
        "new",
        "throw",
        "else",
        "do",
        "sizeof",
        "typeof",
        "super",
        "this",
        "function",
        "await",
        "yield",
        "delete",
        "using",
        "lock",
        "foreach",
        "synchronized",
        "when",
    }
)

# Leading words of statements whose continuation lines can look like a signature.
_STATEMENT_KEYWORDS = frozenset(
    {"return", "new", "throw", "else", "await", "yield", "delete", "case", "goto", "print"}
)


@dataclass(frozen=True)
class LanguageConfig:
    """Everything the segmenter needs to know about a language."""

    name: str

    # Declaration detection regexes, matched against each stripped line.
    # The first non-empty group is the declared name.
    function_patterns: list[str] = field(default_factory=list)
    class_patterns: list[str] = field(default_factory=list)

    # Block end detection: "brace" (balance {}) or "indent" (dedent).
    boundary_mode: str = "brace"

    # Line comment marker stripped before counting braces.
    line_comment: Optional[str] = "//"

    # Characters that open a string literal. Without ' in the set a single
    # quote only starts a short char literal (Rust lifetimes stay code).
    quotes: str = "\"'`"

    def compiled_function_patterns(self) -> list["_re.Pattern[str]"]:
        return _compile(self.function_patterns)

    def compiled_class_patterns(self) -> list["_re.Pattern[str]"]:
        return _compile(self.class_patterns)


_PATTERN_CACHE: dict[str, "_re.Pattern[str]"] = {}


def _compile(patterns: list[str]) -> list["_re.Pattern[str]"]:
    compiled = []
    for pattern in patterns:
        if pattern not in _PATTERN_CACHE:
            _PATTERN_CACHE[pattern] = _re.compile(pattern)
        compiled.append(_PATTERN_CACHE[pattern])
    return compiled


# ── Re-usable building blocks ──────────────────────────────────────

_C_FAMILY_FUNCTION = (
    r"^(?:[\w:<>,\[\]*&~]+\s+)+[*&]*(~?[A-Za-z_]\w*(?:::~?[A-Za-z_]\w*)*)\s*\([^;]*$"
)
_JAVA_LIKE_FUNCTION = (
    r"^(?:@\w+\s+)*(?:(?:public|private|protected|internal|static|final|abstract|"
    r"synchronized|native|default|override|virtual|async|sealed|extern|unsafe)\s+)*"
    r"(?:<[^>]+>\s+)?[\w<>\[\],.?]+(?:\s*<[^>]*>)?\s+([A-Za-z_]\w*)\s*\([^;]*$"
)
_JAVA_LIKE_CONSTRUCTOR = (
    r"^(?:@\w+\s+)*(?:public|private|protected|internal)\s+([A-Z]\w*)\s*\([^;]*$"
)
_JS_FUNCTIONS = [
    r"^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*([A-Za-z_$][\w$]*)\s*[<(]",
    r"^(?:export\s+)?(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*(?::[^=]+)?=\s*(?:async\s+)?"
    r"(?:function\b|\([^)]*\)\s*(?::[^=]+)?=>|[A-Za-z_$][\w$]*\s*=>)",
    r"^(?:(?:public|private|protected|static|async|get|set|readonly|override)\s+)*"
    r"([A-Za-z_$][\w$]*)\s*\([^)]*\)\s*(?::\s*[^{]+)?\{",
]


# ── Language definitions ───────────────────────────────────────────

LANGUAGES = {
    "python": LanguageConfig(
        name="python",
        function_patterns=[r"^(?:async\s+)?def\s+([A-Za-z_]\w*)\s*\("],
        class_patterns=[r"^class\s+([A-Za-z_]\w*)"],
        boundary_mode="indent",
        line_comment="#",
    ),
    "java": LanguageConfig(
        name="java",
        function_patterns=[_JAVA_LIKE_FUNCTION, _JAVA_LIKE_CONSTRUCTOR],
        class_patterns=[
            r"^(?:@\w+\s+)*(?:(?:public|private|protected|static|final|abstract|sealed)\s+)*"
            r"(?:class|interface|enum|record|@interface)\s+([A-Za-z_]\w*)"
        ],
    ),
    "csharp": LanguageConfig(
        name="csharp",
        function_patterns=[_JAVA_LIKE_FUNCTION, _JAVA_LIKE_CONSTRUCTOR],
        class_patterns=[
            r"^(?:\[[^\]]*\]\s*)*(?:(?:public|private|protected|internal|static|sealed|abstract|partial)\s+)*"
            r"(?:class|interface|struct|enum|record)\s+([A-Za-z_]\w*)"
        ],
    ),
    "javascript": LanguageConfig(
        name="javascript",
        function_patterns=_JS_FUNCTIONS,
        class_patterns=[r"^(?:export\s+)?(?:default\s+)?class\s+([A-Za-z_$][\w$]*)"],
    ),
    "typescript": LanguageConfig(
        name="typescript",
        function_patterns=_JS_FUNCTIONS,
        class_patterns=[
            r"^(?:export\s+)?(?:default\s+)?(?:abstract\s+)?(?:class|interface|enum)\s+([A-Za-z_$][\w$]*)"
        ],
    ),
    "cpp": LanguageConfig(
        name="cpp",
        function_patterns=[_C_FAMILY_FUNCTION],
        class_patterns=[r"^(?:template\s*<[^>]*>\s*)?(?:class|struct)\s+([A-Za-z_]\w*)(?!\s*;)"],
    ),
    "c": LanguageConfig(
        name="c",
        function_patterns=[_C_FAMILY_FUNCTION],
        class_patterns=[r"^(?:typedef\s+)?struct\s+([A-Za-z_]\w*)(?!\s*;)"],
    ),
    "go": LanguageConfig(
        name="go",
        function_patterns=[r"^func\s+(?:\([^)]*\)\s*)?([A-Za-z_]\w*)\s*[\[(]"],
        class_patterns=[r"^type\s+([A-Za-z_]\w*)\s+(?:struct|interface)\b"],
    ),
    "rust": LanguageConfig(
        name="rust",
        quotes='"',
        function_patterns=[
            r"^(?:pub(?:\([^)]*\))?\s+)?(?:const\s+)?(?:async\s+)?(?:unsafe\s+)?(?:extern\s+\"[^\"]*\"\s+)?"
            r"fn\s+([A-Za-z_]\w*)"
        ],
        class_patterns=[
            r"^(?:pub(?:\([^)]*\))?\s+)?(?:struct|enum|trait|union)\s+([A-Za-z_]\w*)",
            r"^impl(?:\s*<[^>]*>)?\s+(?:[\w:<>]+\s+for\s+)?([A-Za-z_]\w*)",
        ],
    ),
    "kotlin": LanguageConfig(
        name="kotlin",
        function_patterns=[
            r"^(?:(?:public|private|protected|internal|override|open|abstract|suspend|inline|operator|infix)\s+)*"
            r"fun\s+(?:<[^>]+>\s*)?(?:[\w.]+\.)?([A-Za-z_]\w*)\s*\("
        ],
        class_patterns=[
            r"^(?:(?:public|private|protected|internal|open|abstract|sealed|data|enum|inner|value)\s+)*"
            r"(?:class|interface|object)\s+([A-Za-z_]\w*)"
        ],
    ),
    "scala": LanguageConfig(
        name="scala",
        function_patterns=[r"^(?:(?:private|protected|override|final|implicit)\s+)*def\s+([A-Za-z_]\w*)"],
        class_patterns=[
            r"^(?:(?:private|protected|final|sealed|abstract|case|implicit)\s+)*(?:class|object|trait)\s+([A-Za-z_]\w*)"
        ],
    ),
    "swift": LanguageConfig(
        name="swift",
        function_patterns=[
            r"^(?:(?:public|private|fileprivate|internal|open|static|class|override|final|mutating)\s+)*"
            r"func\s+([A-Za-z_]\w*)"
        ],
        class_patterns=[
            r"^(?:(?:public|private|fileprivate|internal|open|final)\s+)*"
            r"(?:class|struct|enum|protocol|extension|actor)\s+([A-Za-z_]\w*)"
        ],
    ),
    "php": LanguageConfig(
        name="php",
        function_patterns=[
            r"^(?:(?:public|private|protected|static|final|abstract)\s+)*function\s+&?([A-Za-z_]\w*)\s*\("
        ],
        class_patterns=[r"^(?:(?:final|abstract|readonly)\s+)*(?:class|interface|trait|enum)\s+([A-Za-z_]\w*)"],
    ),
}


def detect_language(file_path: str) -> str:
    """Language for a path, from its extension; ``"text"`` when unknown."""
    suffix = PurePosixPath(file_path).suffix
    if not suffix:
        return TEXT_LANGUAGE
    return EXTENSION_LANGUAGES.get(suffix[1:].lower(), TEXT_LANGUAGE)


def get_language_config(language: str) -> Optional[LanguageConfig]:
    """LanguageConfig for a language, or None when declarations are unsupported."""
    return LANGUAGES.get(language)


def declared_name(match: "_re.Match[str]") -> str:
    """First non-empty capture group, or ``"unknown"``."""
    for group in match.groups():
        if group and group.strip():
            return group.strip()
    return "unknown"


def is_declaration(stripped_line: str, name: str) -> bool:
    """Reject control-flow words and statements that only resemble declarations."""
    if name in _NOT_A_NAME:
        return False
    first_word = stripped_line.split(None, 1)[0] if stripped_line else ""
    return first_word not in _STATEMENT_KEYWORDS
