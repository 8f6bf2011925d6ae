"""PHP analyzer using tree-sitter."""

import tree_sitter
import tree_sitter_php

from review_context.semantic.base import LanguageAnalyzer, SemanticResult, field_text, node_text

_PHP_LANGUAGE = tree_sitter.Language(tree_sitter_php.language_php())

TYPE_DECLARATIONS = ("class_declaration", "interface_declaration", "trait_declaration", "enum_declaration")
PARAMETER_TYPES = ("simple_parameter", "variadic_parameter", "property_promotion_parameter")


class PhpAnalyzer(LanguageAnalyzer):
    """Functions, classes, interfaces, traits and enums, plus ``use`` imports.

    Declarations inside bracketed namespaces are included. Parameter names are
    reported without the leading ``$``.
    """

    def get_language(self) -> str:
        return "php"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _PHP_LANGUAGE

    def extract(self, root: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        self._extract_statements(root, source, result)

    def _extract_statements(self, parent: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        for child in parent.named_children:
            if child.type == "function_definition":
                result.add_function(field_text(child, "name", source), child, self._args(child, source))
            elif child.type in TYPE_DECLARATIONS:
                self._extract_type(child, source, result)
            elif child.type == "namespace_use_declaration":
                self._extract_use(child, source, result)
            elif child.type == "namespace_definition":
                body = child.child_by_field_name("body")
                if body is not None:
                    self._extract_statements(body, source, result)

    def _extract_type(self, node: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        class_name = field_text(node, "name", source)
        bases = [
            node_text(name, source)
            for clause in node.named_children
            if clause.type in ("base_clause", "class_interface_clause")
            for name in clause.named_children
            if name.type in ("name", "qualified_name")
        ]
        result.add_class(class_name, node, bases)

        body = node.child_by_field_name("body")
        for member in body.named_children if body else []:
            if member.type == "method_declaration":
                result.add_method(field_text(member, "name", source), class_name, member, self._args(member, source))

    def _extract_use(self, node: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        # use App\{Foo, Bar}; names the group members relative to the prefix
        prefix = ""
        for child in node.named_children:
            if child.type == "namespace_name":
                prefix = node_text(child, source) + "\\"
            elif child.type == "namespace_use_clause":
                result.add_import(self._clause_name(child, source))
            elif child.type == "namespace_use_group":
                for clause in child.named_children:
                    name = self._clause_name(clause, source)
                    if clause.type == "namespace_use_clause" and name:
                        result.add_import(prefix + name)

    @staticmethod
    def _clause_name(clause: tree_sitter.Node, source: bytes) -> str:
        for child in clause.named_children:
            if child.type in ("qualified_name", "name"):
                return node_text(child, source).lstrip("\\")
        return ""

    @staticmethod
    def _args(node: tree_sitter.Node, source: bytes) -> list[str]:
        parameters = node.child_by_field_name("parameters")
        return [
            field_text(param, "name", source).lstrip("&$")
            for param in (parameters.named_children if parameters else [])
            if param.type in PARAMETER_TYPES
        ]
