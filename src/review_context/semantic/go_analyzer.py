"""Go analyzer using tree-sitter."""

import tree_sitter
import tree_sitter_go

from review_context.semantic.base import LanguageAnalyzer, SemanticResult, field_text, node_text

_GO_LANGUAGE = tree_sitter.Language(tree_sitter_go.language())


class GoAnalyzer(LanguageAnalyzer):
    """Functions, struct and interface types, methods by receiver, and imports.

    Named struct and interface types are reported as classes; methods are
    attached to the type of their receiver.
    """

    def get_language(self) -> str:
        return "go"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _GO_LANGUAGE

    def extract(self, root: tree_sitter.Node, source: bytes, result: SemanticResult) -> None:
        # Types first so methods declared above their type still attach to it
        for child in root.named_children:
            if child.type == "type_declaration":
                for spec in child.named_children:
                    kind = spec.child_by_field_name("type")
                    if spec.type == "type_spec" and kind is not None and kind.type in ("struct_type", "interface_type"):
                        result.add_class(field_text(spec, "name", source), spec, [])

        for child in root.named_children:
            if child.type == "function_declaration":
                result.add_function(field_text(child, "name", source), child, self._args(child, source))
            elif child.type == "method_declaration":
                result.add_method(
                    field_text(child, "name", source),
                    self._receiver_type(child, source),
                    child,
                    self._args(child, source),
                )
            elif child.type == "import_declaration":
                for spec in self._import_specs(child):
                    result.add_import(field_text(spec, "path", source).strip('"`'))

    @staticmethod
    def _import_specs(node: tree_sitter.Node) -> list[tree_sitter.Node]:
        specs: list[tree_sitter.Node] = []
        for child in node.named_children:
            if child.type == "import_spec":
                specs.append(child)
            elif child.type == "import_spec_list":
                specs.extend(c for c in child.named_children if c.type == "import_spec")
        return specs

    @staticmethod
    def _receiver_type(node: tree_sitter.Node, source: bytes) -> str:
        receiver = node.child_by_field_name("receiver")
        for param in receiver.named_children if receiver else []:
            if param.type == "parameter_declaration":
                # *Server or Server[T] both belong to Server
                return field_text(param, "type", source).lstrip("*").split("[")[0]
        return ""

    @staticmethod
    def _args(node: tree_sitter.Node, source: bytes) -> list[str]:
        parameters = node.child_by_field_name("parameters")
        args: list[str] = []
        for param in parameters.named_children if parameters else []:
            if param.type in ("parameter_declaration", "variadic_parameter_declaration"):
                args.extend(node_text(name, source) for name in param.children_by_field_name("name"))
        return args
