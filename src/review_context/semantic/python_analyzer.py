"""Python analyzer using tree-sitter."""

import tree_sitter
import tree_sitter_python

from review_context.semantic.base import LanguageAnalyzer, SemanticResult, field_text, node_text, walk

_PYTHON_LANGUAGE = tree_sitter.Language(tree_sitter_python.language())

PARAMETER_TYPES = ("identifier", "typed_parameter", "default_parameter", "typed_default_parameter")


class PythonAnalyzer(LanguageAnalyzer):
    """Module-level functions, classes with their methods, and imports.

    Decorated definitions report the line of ``def``/``class``, not of the
    first decorator. Imports anywhere in the file are included.
    """

    def get_language(self) -> str:
        return "python"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _PYTHON_LANGUAGE

    def extract(self, root: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        for child in root.children:
            definition = self._unwrap(child)
            if definition is None:
                continue
            if definition.type == "function_definition":
                result.add_function(
                    field_text(definition, "name", source), definition, self._args(definition, source)
                )
            elif definition.type == "class_definition":
                self._extract_class(definition, source, result)

        for node in walk(root, ("import_statement", "import_from_statement")):
            if node.type == "import_statement":
                for name in node.children_by_field_name("name"):
                    if name.type == "aliased_import":
                        name = name.child_by_field_name("name")
                    result.add_import(node_text(name, source))
            else:
                # "from . import x" has no module of its own
                result.add_import(field_text(node, "module_name", source).lstrip("."))

    def _extract_class(self, node: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        class_name = field_text(node, "name", source)
        superclasses = node.child_by_field_name("superclasses")
        bases = [
            node_text(base, source)
            for base in (superclasses.named_children if superclasses else [])
            if base.type not in ("keyword_argument", "comment")
        ]
        result.add_class(class_name, node, bases)

        body = node.child_by_field_name("body")
        for child in body.children if body else []:
            method = self._unwrap(child)
            if method is not None and method.type == "function_definition":
                result.add_method(
                    field_text(method, "name", source), class_name, method, self._args(method, source)
                )

    @staticmethod
    def _unwrap(node: tree_sitter.Node) -> tree_sitter.Node | None:
        if node.type == "decorated_definition":
            return node.child_by_field_name("definition")
        if node.type in ("function_definition", "class_definition"):
            return node
        return None

    @staticmethod
    def _args(node: tree_sitter.Node, source: bytes) -> list[str]:
        parameters = node.child_by_field_name("parameters")
        args: list[str] = []
        for param in parameters.named_children if parameters else []:
            if param.type not in PARAMETER_TYPES:
                continue
            if param.type == "identifier":
                args.append(node_text(param, source))
            elif param.type == "typed_parameter":
                name = param.named_children[0]
                if name.type == "identifier":
                    args.append(node_text(name, source))
            else:
                args.append(field_text(param, "name", source))
        return args
