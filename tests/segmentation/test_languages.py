"""Tests for language detection and declaration patterns."""

import pytest

from diffscore.segmentation.languages import (
    LANGUAGES,
    declared_name,
    detect_language,
    get_language_config,
    is_declaration,
)


class TestDetectLanguage:
    """Test the extension table."""

    @pytest.mark.parametrize(
        "path,language",
        [
            ("src/App.java", "java"),
            ("web/app.jsx", "javascript"),
            ("web/app.mjs", "javascript"),
            ("web/app.tsx", "typescript"),
            ("tool.pyw", "python"),
            ("core/engine.hpp", "cpp"),
            ("core/engine.h", "cpp"),
            ("main.c", "c"),
            ("Program.cs", "csharp"),
            ("main.go", "go"),
            ("lib.rs", "rust"),
            ("build.gradle.kts", "kotlin"),
            ("Main.scala", "scala"),
            ("app.rb", "ruby"),
            ("index.php", "php"),
            ("View.swift", "swift"),
            ("main.dart", "dart"),
        ],
    )
    def test_known_extensions(self, path, language):
        assert detect_language(path) == language

    def test_case_insensitive_extension(self):
        assert detect_language("Legacy.JAVA") == "java"

    def test_unknown_is_text(self):
        assert detect_language("README.md") == "text"
        assert detect_language("Makefile") == "text"


class TestLanguageConfig:
    """Test which languages have declaration support."""

    def test_ruby_and_dart_unsupported(self):
        """Detected but without patterns: they take the LINES fallback."""
        assert get_language_config("ruby") is None
        assert get_language_config("dart") is None
        assert get_language_config("text") is None

    def test_python_uses_indentation(self):
        assert LANGUAGES["python"].boundary_mode == "indent"

    def test_brace_languages(self):
        for name in ("java", "go", "rust", "typescript", "cpp"):
            assert LANGUAGES[name].boundary_mode == "brace"


def _first_function_name(language, line):
    for pattern in LANGUAGES[language].compiled_function_patterns():
        match = pattern.match(line)
        if match and is_declaration(line, declared_name(match)):
            return declared_name(match)
    return None


class TestFunctionPatterns:
    """Test declaration regexes on representative lines."""

    @pytest.mark.parametrize(
        "language,line,name",
        [
            ("python", "def load(path):", "load"),
            ("python", "async def fetch(url):", "fetch"),
            ("java", "public static void main(String[] args) {", "main"),
            ("java", "private List<String> names() {", "names"),
            ("java", "public Calculator(int seed) {", "Calculator"),
            ("go", "func (s *Server) Start(ctx context.Context) error {", "Start"),
            ("go", "func main() {", "main"),
            ("rust", "pub async fn handle(req: Request) -> Response {", "handle"),
            ("javascript", "export async function loadUser(id) {", "loadUser"),
            ("javascript", "const add = (a, b) => {", "add"),
            ("typescript", "private render(): void {", "render"),
            ("kotlin", "override fun onCreate(state: Bundle?) {", "onCreate"),
            ("swift", "public func reload() {", "reload"),
            ("php", "public static function create($x) {", "create"),
            ("c", "static int parse_args(int argc, char **argv) {", "parse_args"),
        ],
    )
    def test_declarations(self, language, line, name):
        assert _first_function_name(language, line) == name

    @pytest.mark.parametrize(
        "language,line",
        [
            ("java", "if (value > 0) {"),
            ("java", "return compute(a,"),
            ("java", "int x = foo(a);"),
            ("javascript", "if (ready) {"),
            ("javascript", "while (queue.length) {"),
            ("c", "else if (x) {"),
        ],
    )
    def test_statements_are_not_declarations(self, language, line):
        assert _first_function_name(language, line) is None
