"""Language detection and the analyzer registry."""

import posixpath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from review_context.semantic.base import LanguageAnalyzer

# Extension -> language mapping
SUPPORTED_EXTENSIONS: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".php": "php",
    ".java": "java",
    ".go": "go",
}

# Analyzer registry, lazy-loaded so unused grammars are never imported
_analyzer_registry: dict[str, "LanguageAnalyzer"] = {}


def detect_language(path: str) -> str | None:
    """Language of a file from its extension, or None if unsupported."""
    _, ext = posixpath.splitext(path)
    return SUPPORTED_EXTENSIONS.get(ext.lower())


def get_analyzer(language: str) -> "LanguageAnalyzer":
    """Get the analyzer instance for a language.

    Raises:
        ValueError: If the language is not supported
    """
    if language not in _analyzer_registry:
        if language == "python":
            from review_context.semantic.python_analyzer import PythonAnalyzer

            _analyzer_registry["python"] = PythonAnalyzer()
        elif language == "javascript":
            from review_context.semantic.javascript_analyzer import JavaScriptAnalyzer

            _analyzer_registry["javascript"] = JavaScriptAnalyzer()
        elif language in ("typescript", "tsx"):
            from review_context.semantic.javascript_analyzer import TypeScriptAnalyzer

            _analyzer_registry[language] = TypeScriptAnalyzer(tsx=language == "tsx")
        elif language == "php":
            from review_context.semantic.php_analyzer import PhpAnalyzer

            _analyzer_registry["php"] = PhpAnalyzer()
        elif language == "java":
            from review_context.semantic.java_analyzer import JavaAnalyzer

            _analyzer_registry["java"] = JavaAnalyzer()
        elif language == "go":
            from review_context.semantic.go_analyzer import GoAnalyzer

            _analyzer_registry["go"] = GoAnalyzer()
        else:
            raise ValueError(
                f"Unsupported language: {language}. "
                f"Supported: {sorted(set(SUPPORTED_EXTENSIONS.values()))}"
            )

    return _analyzer_registry[language]
