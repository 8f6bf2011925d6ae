"""Java analyzer using tree-sitter."""

import tree_sitter
import tree_sitter_java

from review_context.semantic.base import LanguageAnalyzer, SemanticResult, field_text, node_text

_JAVA_LANGUAGE = tree_sitter.Language(tree_sitter_java.language())

TYPE_DECLARATIONS = ("class_declaration", "interface_declaration", "enum_declaration", "record_declaration")
MEMBER_TYPES = ("method_declaration", "constructor_declaration")


class JavaAnalyzer(LanguageAnalyzer):
    """Types (classes, interfaces, enums, records) with their methods, and imports.

    Java has no free functions, so ``functions`` is always empty. Nested types
    are reported as classes of their own.
    """

    def get_language(self) -> str:
        return "java"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _JAVA_LANGUAGE

    def extract(self, root: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        for child in root.named_children:
            if child.type == "import_declaration":
                result.add_import(self._import_name(child, source))
            elif child.type in TYPE_DECLARATIONS:
                self._extract_type(child, source, result)

    def _extract_type(self, node: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        class_name = field_text(node, "name", source)
        bases: list[str] = []
        for child in node.named_children:
            if child.type == "superclass":
                bases.extend(node_text(t, source) for t in child.named_children)
            elif child.type in ("super_interfaces", "extends_interfaces"):
                for type_list in child.named_children:
                    bases.extend(node_text(t, source) for t in type_list.named_children)
        result.add_class(class_name, node, bases)

        for member in self._members(node):
            if member.type in MEMBER_TYPES:
                result.add_method(field_text(member, "name", source), class_name, member, self._args(member, source))
            elif member.type in TYPE_DECLARATIONS:
                self._extract_type(member, source, result)

    @staticmethod
    def _members(node: tree_sitter.Node) -> list[tree_sitter.Node]:
        body = node.child_by_field_name("body")
        if body is None:
            return []
        members: list[tree_sitter.Node] = []
        for child in body.named_children:
            # Enum methods follow the constants in their own block
            if child.type == "enum_body_declarations":
                members.extend(child.named_children)
            else:
                members.append(child)
        return members

    @staticmethod
    def _args(node: tree_sitter.Node, source: bytes) -> list[str]:
        parameters = node.child_by_field_name("parameters")
        args: list[str] = []
        for param in parameters.named_children if parameters else []:
            if param.type == "formal_parameter":
                args.append(field_text(param, "name", source))
            elif param.type == "spread_parameter":
                for child in param.named_children:
                    if child.type == "variable_declarator":
                        args.append(field_text(child, "name", source))
        return args

    @staticmethod
    def _import_name(node: tree_sitter.Node, source: bytes) -> str:
        name = ""
        for child in node.named_children:
            if child.type in ("scoped_identifier", "identifier"):
                name = node_text(child, source)
            elif child.type == "asterisk":
                name += ".*"
        return name
