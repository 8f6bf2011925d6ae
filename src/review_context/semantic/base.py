"""Base interface for language-specific tree-sitter analyzers.

Parsing, error handling and the shape of the result live here; walking the
syntax tree of one language is left to the subclasses.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import tree_sitter

logger = logging.getLogger(__name__)


@dataclass
class SemanticResult:
    """Definitions found in one file.

    Serialised shape::

        {
            "language": "python",
            "functions": [{"name", "line_start", "line_end", "args"}],
            "classes": [{"name", "line_start", "line_end", "bases", "methods"}],
            "methods": [{"name", "class", "line_start", "line_end", "args"}],
            "imports": ["os.path", ...],
        }
    """

    language: str
    functions: list[dict[str, Any]] = field(default_factory=list)
    classes: list[dict[str, Any]] = field(default_factory=list)
    methods: list[dict[str, Any]] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)

    def add_function(self, name: str, node: tree_sitter.Node, args: list[str]) -> None:
        self.functions.append({"name": name, **line_range(node), "args": args})

    def add_class(self, name: str, node: tree_sitter.Node, bases: list[str]) -> dict[str, Any]:
        entry = {"name": name, **line_range(node), "bases": bases, "methods": []}
        self.classes.append(entry)
        return entry

    def add_method(self, name: str, class_name: str, node: tree_sitter.Node, args: list[str]) -> None:
        self.methods.append({"name": name, "class": class_name, **line_range(node), "args": args})
        for entry in self.classes:
            if entry["name"] == class_name:
                entry["methods"].append(name)
                break

    def add_import(self, name: str) -> None:
        name = name.strip()
        if name:
            self.imports.append(name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "functions": self.functions,
            "classes": self.classes,
            "methods": self.methods,
            "imports": list(dict.fromkeys(self.imports)),
        }


def node_text(node: tree_sitter.Node | None, source: bytes) -> str:
    if node is None:
        return ""
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def field_text(node: tree_sitter.Node, field_name: str, source: bytes) -> str:
    return node_text(node.child_by_field_name(field_name), source)


def line_range(node: tree_sitter.Node) -> dict[str, int]:
    """1-based first and last line of a node."""
    return {"line_start": node.start_point[0] + 1, "line_end": node.end_point[0] + 1}


def walk(node: tree_sitter.Node, types: tuple[str, ...]):
    """Yield every descendant of ``node`` whose type is in ``types``."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        if current.type in types:
            yield current
        stack.extend(reversed(current.children))


class LanguageAnalyzer(ABC):
    """Abstract base for language-specific tree-sitter analyzers.

    Subclasses implement:
    - get_language(): language identifier reported in the result
    - get_tree_sitter_language(): tree-sitter Language object
    - extract(): walk the tree and record definitions and imports
    """

    @abstractmethod
    def get_language(self) -> str:
        """Return the language identifier (e.g., 'python', 'php')."""
        ...

    @abstractmethod
    def get_tree_sitter_language(self) -> tree_sitter.Language:
        """Return the tree-sitter Language object for this language."""
        ...

    @abstractmethod
    def extract(self, root: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        """Record the definitions and imports found under ``root``."""
        ...

    def analyze_source(self, content: str, path: str) -> dict[str, Any] | None:
        """Analyze one file.

        Args:
            content: Source code as string
            path: File path inside the repository (for diagnostics)

        Returns:
            Serialised SemanticResult, or None if the file does not parse
        """
        source = content.encode("utf-8")
        parser = tree_sitter.Parser(self.get_tree_sitter_language())
        tree = parser.parse(source)

        # Line numbers from a partial tree would point at the wrong symbols
        if tree.root_node.has_error:
            logger.debug(f"Tree-sitter reported parse errors in {path}")
            return None

        result = SemanticResult(language=self.get_language())
        try:
            self.extract(tree.root_node, source, result)
        except Exception as e:
            logger.warning(f"Failed to extract definitions from {path}: {e}")
            return None

        return result.to_dict()
