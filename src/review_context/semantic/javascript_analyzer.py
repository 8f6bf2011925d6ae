"""JavaScript and TypeScript analyzers using tree-sitter.

The TypeScript grammar extends the JavaScript one, so both share the walk;
only parameter and heritage nodes differ.
"""

import tree_sitter
import tree_sitter_javascript
import tree_sitter_typescript

from review_context.semantic.base import LanguageAnalyzer, SemanticResult, field_text, node_text, walk

_JS_LANGUAGE = tree_sitter.Language(tree_sitter_javascript.language())
_TS_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_typescript())
_TSX_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_tsx())

FUNCTION_DECLARATIONS = ("function_declaration", "generator_function_declaration")
CLASS_DECLARATIONS = ("class_declaration", "abstract_class_declaration")
VARIABLE_DECLARATIONS = ("lexical_declaration", "variable_declaration")
FUNCTION_VALUES = ("arrow_function", "function_expression", "function", "generator_function")


class JavaScriptAnalyzer(LanguageAnalyzer):
    """Function declarations, functions assigned to variables, classes and imports.

    ``export`` wrappers are looked through; ``require()`` calls are not imports.
    """

    def get_language(self) -> str:
        return "javascript"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _JS_LANGUAGE

    def extract(self, root: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        for child in root.children:
            self._extract_statement(child, source, result)

        for node in walk(root, ("import_statement",)):
            result.add_import(field_text(node, "source", source).strip("'\"`"))

    def _extract_statement(self, node: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        if node.type == "export_statement":
            for child in node.named_children:
                self._extract_statement(child, source, result)
        elif node.type in FUNCTION_DECLARATIONS:
            name = field_text(node, "name", source)
            if name:
                result.add_function(name, node, self._args(node, source))
        elif node.type in CLASS_DECLARATIONS:
            self._extract_class(node, source, result)
        elif node.type in VARIABLE_DECLARATIONS:
            for declarator in node.named_children:
                if declarator.type != "variable_declarator":
                    continue
                value = declarator.child_by_field_name("value")
                if value is not None and value.type in FUNCTION_VALUES:
                    result.add_function(field_text(declarator, "name", source), node, self._args(value, source))

    def _extract_class(self, node: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        class_name = field_text(node, "name", source)
        if not class_name:
            return

        bases: list[str] = []
        for child in node.named_children:
            if child.type == "class_heritage":
                bases.extend(self._heritage(child, source))
        result.add_class(class_name, node, bases)

        body = node.child_by_field_name("body")
        for member in body.named_children if body else []:
            if member.type == "method_definition":
                result.add_method(field_text(member, "name", source), class_name, member, self._args(member, source))

    def _heritage(self, node: tree_sitter.Node, source: bytes) -> list[str]:
        return [node_text(child, source) for child in node.named_children]

    def _args(self, node: tree_sitter.Node, source: bytes) -> list[str]:
        single = node.child_by_field_name("parameter")
        if single is not None:
            return [node_text(single, source)]

        parameters = node.child_by_field_name("parameters")
        args: list[str] = []
        for param in parameters.named_children if parameters else []:
            if param.type == "comment":
                continue
            args.append(self._param_name(param, source))
        return args

    def _param_name(self, param: tree_sitter.Node, source: bytes) -> str:
        if param.type == "assignment_pattern":
            return field_text(param, "left", source)
        return node_text(param, source)


class TypeScriptAnalyzer(JavaScriptAnalyzer):
    """TypeScript variant: typed parameters and ``extends``/``implements`` clauses."""

    def __init__(self, tsx: bool = False) -> None:
        self.tsx = tsx

    def get_language(self) -> str:
        return "typescript"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _TSX_LANGUAGE if self.tsx else _TS_LANGUAGE

    def _heritage(self, node: tree_sitter.Node, source: bytes) -> list[str]:
        bases: list[str] = []
        for clause in node.named_children:
            if clause.type in ("extends_clause", "implements_clause"):
                bases.extend(
                    node_text(child, source)
                    for child in clause.named_children
                    if child.type != "type_arguments"
                )
            else:
                bases.append(node_text(clause, source))
        return bases

    def _param_name(self, param: tree_sitter.Node, source: bytes) -> str:
        if param.type in ("required_parameter", "optional_parameter"):
            pattern = param.child_by_field_name("pattern")
            if pattern is not None and pattern.type == "assignment_pattern":
                return field_text(pattern, "left", source)
            return node_text(pattern, source)
        return super()._param_name(param, source)
