"""Classification of the top-level exports and declarations of a script.

Only the statements directly under the program node are inspected; nested
scopes never contribute exports or declared names.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

from tree_sitter import Node

from svelte_tsx.core.ast import ScriptTree

ExportKind = Literal["function", "variable"]

FUNCTION_NODE_TYPES = frozenset({"arrow_function", "function", "function_expression", "generator_function"})
_FUNCTION_DECLARATION_TYPES = frozenset({"function_declaration", "generator_function_declaration"})
_VARIABLE_DECLARATION_TYPES = frozenset({"lexical_declaration", "variable_declaration"})
_CLASS_DECLARATION_TYPES = frozenset({"abstract_class_declaration", "class_declaration"})
_TYPED_INITIALIZER_TYPES = frozenset({"as_expression", "satisfies_expression"})
_JSDOC_TYPE_TAG = re.compile(r"@(?:type|param|returns?|satisfies)\b")


class UnsupportedExportError(ValueError):
    """Raised when an exported binding is not a plain identifier."""


@dataclass(frozen=True)
class ExportEntry:
    kind: ExportKind
    name: str
    local_name: str
    node: Node
    statement: Node
    has_explicit_type: bool
    parameter_count: int = 0

    @property
    def renamed(self) -> bool:
        return self.name != self.local_name


@dataclass(frozen=True)
class ExportScan:
    exports: Mapping[str, ExportEntry]
    declared_names: tuple[str, ...]

    def get(self, name: str) -> ExportEntry | None:
        return self.exports.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.exports


def function_parameters(function: Node) -> list[Node]:
    bare = function.child_by_field_name("parameter")
    if bare is not None:
        return [bare]
    parameters = function.child_by_field_name("parameters")
    if parameters is None:
        return []
    return [child for child in parameters.named_children if child.type != "comment"]


def _function_has_type(function: Node) -> bool:
    if function.child_by_field_name("return_type") is not None:
        return True
    parameters = function_parameters(function)
    return bool(parameters) and parameters[0].child_by_field_name("type") is not None


def _unwrap_parentheses(node: Node) -> Node:
    while node.type == "parenthesized_expression" and node.named_child_count == 1:
        node = node.named_children[0]
    return node


def _has_jsdoc_type(tree: ScriptTree, statement: Node) -> bool:
    comment = statement.prev_named_sibling
    if comment is None or comment.type != "comment":
        return False
    text = tree.text(comment)
    if not text.startswith("/**"):
        return False
    if tree.source[tree.end(comment) : tree.start(statement)].strip():
        return False
    return _JSDOC_TYPE_TAG.search(text) is not None


def _pattern_names(tree: ScriptTree, pattern: Node) -> list[str]:
    if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
        return [tree.text(pattern)]
    if pattern.type in ("assignment_pattern", "object_assignment_pattern"):
        left = pattern.child_by_field_name("left")
        return _pattern_names(tree, left) if left is not None else []
    if pattern.type == "pair_pattern":
        value = pattern.child_by_field_name("value")
        return _pattern_names(tree, value) if value is not None else []
    names: list[str] = []
    for child in pattern.named_children:
        names.extend(_pattern_names(tree, child))
    return names


def _import_bindings(tree: ScriptTree, statement: Node) -> list[str]:
    clause = next((c for c in statement.named_children if c.type == "import_clause"), None)
    if clause is None:
        return []
    names: list[str] = []
    for child in clause.named_children:
        if child.type == "identifier":
            names.append(tree.text(child))
        elif child.type == "namespace_import":
            names.extend(tree.text(c) for c in child.named_children if c.type == "identifier")
        elif child.type == "named_imports":
            for specifier in child.named_children:
                if specifier.type != "import_specifier":
                    continue
                binding = specifier.child_by_field_name("alias")
                if binding is None:
                    binding = specifier.child_by_field_name("name")
                if binding is not None:
                    names.append(tree.text(binding))
    return names


def _is_default_export(statement: Node) -> bool:
    return any(child.type == "default" for child in statement.children)


def _variable_entry(
    tree: ScriptTree,
    name: str,
    local_name: str,
    declarator: Node,
    statement: Node,
    jsdoc_typed: bool,
) -> ExportEntry:
    typed = jsdoc_typed or declarator.child_by_field_name("type") is not None
    value = declarator.child_by_field_name("value")
    if value is not None:
        if value.type in _TYPED_INITIALIZER_TYPES:
            typed = True
        inner = _unwrap_parentheses(value)
        if inner.type in FUNCTION_NODE_TYPES:
            return ExportEntry(
                kind="function",
                name=name,
                local_name=local_name,
                node=inner,
                statement=statement,
                has_explicit_type=typed or _function_has_type(inner),
                parameter_count=len(function_parameters(inner)),
            )
    return ExportEntry(
        kind="variable",
        name=name,
        local_name=local_name,
        node=declarator,
        statement=statement,
        has_explicit_type=typed,
    )


def _function_entry(name: str, local_name: str, function: Node, statement: Node, jsdoc_typed: bool) -> ExportEntry:
    return ExportEntry(
        kind="function",
        name=name,
        local_name=local_name,
        node=function,
        statement=statement,
        has_explicit_type=jsdoc_typed or _function_has_type(function),
        parameter_count=len(function_parameters(function)),
    )


def find_exports(tree: ScriptTree, is_ts_file: bool, strict: bool = False) -> ExportScan:
    """Collect the named exports and declared names of ``tree``.

    In ``strict`` mode an exported binding that is not a plain identifier
    raises ``UnsupportedExportError``; otherwise such bindings are skipped.
    JSDoc type tags only count as explicit types when ``is_ts_file`` is false.
    """
    exports: dict[str, ExportEntry] = {}
    declared: list[str] = []
    local_declarations: dict[str, tuple[Node, Node]] = {}
    clauses: list[tuple[Node, Node]] = []

    def unsupported(node: Node) -> None:
        if strict:
            raise UnsupportedExportError(f"Export binding kind not supported: {tree.text(node)!r}")

    for statement in tree.statements:
        if statement.type == "import_statement":
            declared.extend(_import_bindings(tree, statement))
            continue

        exported = statement.type == "export_statement"
        if exported and _is_default_export(statement):
            continue
        declaration = statement.child_by_field_name("declaration") if exported else statement
        if declaration is None:
            clause = next((c for c in statement.named_children if c.type == "export_clause"), None)
            if clause is not None and statement.child_by_field_name("source") is None:
                clauses.append((statement, clause))
            continue

        jsdoc_typed = not is_ts_file and _has_jsdoc_type(tree, statement)

        if declaration.type in _VARIABLE_DECLARATION_TYPES:
            for declarator in declaration.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is None:
                    continue
                if name_node.type != "identifier":
                    declared.extend(_pattern_names(tree, name_node))
                    if exported:
                        unsupported(name_node)
                    continue
                name = tree.text(name_node)
                declared.append(name)
                local_declarations[name] = (declarator, statement)
                if exported:
                    exports[name] = _variable_entry(tree, name, name, declarator, statement, jsdoc_typed)

        elif declaration.type in _FUNCTION_DECLARATION_TYPES or declaration.type == "function_signature":
            name_node = declaration.child_by_field_name("name")
            if name_node is None:
                continue
            name = tree.text(name_node)
            declared.append(name)
            if declaration.type == "function_signature":
                continue
            local_declarations[name] = (declaration, statement)
            if exported:
                exports[name] = _function_entry(name, name, declaration, statement, jsdoc_typed)

        elif declaration.type in _CLASS_DECLARATION_TYPES:
            name_node = declaration.child_by_field_name("name")
            if name_node is None:
                continue
            name = tree.text(name_node)
            declared.append(name)
            local_declarations[name] = (declaration, statement)
            if exported:
                exports[name] = ExportEntry(
                    kind="variable",
                    name=name,
                    local_name=name,
                    node=declaration,
                    statement=statement,
                    has_explicit_type=False,
                )

    for statement, clause in clauses:
        for specifier in clause.named_children:
            if specifier.type != "export_specifier":
                continue
            name_node = specifier.child_by_field_name("name")
            alias_node = specifier.child_by_field_name("alias")
            if name_node is None or name_node.type != "identifier":
                unsupported(specifier)
                continue
            if alias_node is not None and alias_node.type != "identifier":
                unsupported(specifier)
                continue
            local_name = tree.text(name_node)
            name = tree.text(alias_node) if alias_node is not None else local_name

            target = local_declarations.get(local_name)
            if target is None:
                exports[name] = ExportEntry(
                    kind="variable",
                    name=name,
                    local_name=local_name,
                    node=specifier,
                    statement=statement,
                    has_explicit_type=False,
                )
                continue

            node, declaring_statement = target
            jsdoc_typed = not is_ts_file and _has_jsdoc_type(tree, declaring_statement)
            if node.type == "variable_declarator":
                exports[name] = _variable_entry(tree, name, local_name, node, statement, jsdoc_typed)
            elif node.type in _FUNCTION_DECLARATION_TYPES:
                exports[name] = _function_entry(name, local_name, node, statement, jsdoc_typed)
            else:
                exports[name] = ExportEntry(
                    kind="variable",
                    name=name,
                    local_name=local_name,
                    node=node,
                    statement=statement,
                    has_explicit_type=False,
                )

    return ExportScan(exports=MappingProxyType(exports), declared_names=tuple(declared))
