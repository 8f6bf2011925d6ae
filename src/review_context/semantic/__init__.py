"""Tree-sitter based structural analysis of source files.

Public API:
    TreeSitterSemanticAnalyzer: the default analyzer of the semantic collector
    detect_language(path) -> str | None
"""

from typing import Any

from review_context.semantic.base import LanguageAnalyzer, SemanticResult
from review_context.semantic.utils import SUPPORTED_EXTENSIONS, detect_language, get_analyzer

__all__ = [
    "LanguageAnalyzer",
    "SUPPORTED_EXTENSIONS",
    "SemanticResult",
    "TreeSitterSemanticAnalyzer",
    "detect_language",
    "get_analyzer",
]


class TreeSitterSemanticAnalyzer:
    """Picks the tree-sitter analyzer for a file by its extension.

    Supports Python, JavaScript, TypeScript (and TSX), PHP, Java and Go.
    """

    def supports(self, path: str) -> bool:
        return detect_language(path) is not None

    def analyze(self, path: str, content: str) -> dict[str, Any] | None:
        language = detect_language(path)
        if language is None:
            return None
        return get_analyzer(language).analyze_source(content, path)
