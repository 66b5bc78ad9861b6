"""Svelte component to TSX transpiler.

The output is a render function holding the instance script and the template
as JSX, followed by a default-exported class whose ``$$prop_def`` and
``$$slot_def`` describe the component's props and slots. The component
``<script>export let name = 'world';</script><h1>Hello {name}</h1>`` becomes::

    <></>;function render() {
     let name = 'world';;
    <><h1>Hello {name}</h1></>
    return { props: {name}, slots: {} }}

    export default class { ... }
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from tree_sitter import Node

from svelte_tsx.core.ast import ScriptTree, parse_script
from svelte_tsx.core.exports import ExportScan, find_exports
from svelte_tsx.core.languages import script_language_from_tag
from svelte_tsx.core.markup import convert_markup
from svelte_tsx.core.splice import SegmentMap, Splicer
from svelte_tsx.core.template import parse_template
from svelte_tsx.models import MappedPosition, TemplateNode

logger = logging.getLogger(__name__)

SlotInfo = dict[str, dict[str, str]]

_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")


@dataclass(frozen=True)
class TranspileResult:
    code: str
    mapper: SegmentMap
    slots: Mapping[str, Mapping[str, str]]
    exports: Mapping[str, str]
    uses_props: bool

    def to_generated_pos(self, original_pos: int) -> int:
        return self.mapper.to_generated_pos(original_pos)

    def to_original_pos(self, generated_pos: int) -> MappedPosition:
        return self.mapper.to_original_pos(generated_pos)


def _object_key(name: str) -> str:
    return name if _IDENTIFIER.match(name) else json.dumps(name)


def attribute_value_as_js_expression(source: str, attribute: TemplateNode) -> str:
    """Render an attribute value as a JavaScript expression."""
    if not attribute.value:
        return '""'

    if len(attribute.value) == 1:
        part = attribute.value[0]
        if part.type == "AttributeShorthand":
            assert part.name is not None
            return part.name
        if part.type == "Text":
            return json.dumps(part.raw)
        if part.type == "MustacheTag":
            assert part.expression is not None
            return source[part.expression.start : part.expression.end]
        raise ValueError(f"Unknown attribute value type: {part.type}")

    # several parts make a template string: `${"text"}${value}`
    pieces: list[str] = []
    for part in attribute.value:
        if part.type == "Text":
            pieces.append("${" + json.dumps(part.raw) + "}")
        elif part.type == "MustacheTag":
            pieces.append("$" + source[part.start : part.end])
        else:
            raise ValueError(f"Unknown attribute value type: {part.type}")
    return "`" + "".join(pieces) + "`"


def slots_as_string(slots: SlotInfo) -> str:
    entries = []
    for name, attributes in slots.items():
        rendered = ", ".join(f"{_object_key(key)}:{value}" for key, value in attributes.items())
        entries.append(f"{_object_key(name)}: {{{rendered}}}")
    return "{" + ", ".join(entries) + "}"


def _is_module_script(node: TemplateNode) -> bool:
    for attribute in node.attributes:
        if attribute.name == "module" and not attribute.value:
            return True
        if (
            attribute.name == "context"
            and len(attribute.value) == 1
            and attribute.value[0].type == "Text"
            and attribute.value[0].raw == "module"
        ):
            return True
    return False


def find_module_script(fragment: TemplateNode) -> TemplateNode | None:
    return next((n for n in fragment.children if n.type == "Script" and _is_module_script(n)), None)


def find_instance_script(fragment: TemplateNode) -> TemplateNode | None:
    scripts = [n for n in fragment.children if n.type == "Script" and not _is_module_script(n)]
    return scripts[-1] if scripts else None


def _end_tag_start(source: str, script: TemplateNode) -> int:
    return source.rindex("<", 0, script.end)


class _ComponentTranspiler:
    def __init__(self, source: str) -> None:
        self.source = source
        self.splicer = Splicer(source)
        self.fragment = parse_template(source)
        self.slots: SlotInfo = {}
        self.uses_props = False
        self.exports: dict[str, str] = {}

    def on_walk(self, node: TemplateNode, parent: TemplateNode | None) -> None:
        if node.type == "Identifier" and node.name == "$$props":
            self.uses_props = True
        elif node.type == "Slot":
            self.handle_slot(node)

    def handle_slot(self, node: TemplateNode) -> None:
        name_attribute = next((a for a in node.attributes if a.name == "name"), None)
        slot_name = "default"
        if name_attribute is not None and name_attribute.value and name_attribute.value[0].raw is not None:
            slot_name = name_attribute.value[0].raw

        attributes: dict[str, str] = {}
        for attribute in node.attributes:
            if attribute.type != "Attribute" or attribute.name == "name" or not attribute.value:
                continue
            assert attribute.name is not None
            attributes[attribute.name] = attribute_value_as_js_expression(self.source, attribute)
        self.slots[slot_name] = attributes

    def remove_styles(self) -> None:
        for node in self.fragment.children:
            if node.type == "Style":
                self.splicer.remove(node.start, node.end)

    def process_module_script(self, script: TemplateNode) -> None:
        assert script.tag_end is not None
        self.splicer.overwrite(script.start, script.tag_end, "</>;")
        self.splicer.overwrite(_end_tag_start(self.source, script), script.end, ";<>")

    def process_instance_script(self, target: int) -> None:
        script = find_instance_script(self.fragment)
        slots = slots_as_string(self.slots)

        if script is None:
            self.splicer.prepend_right(target, "</>;function render() {\n<>")
            self.splicer.append(";\nreturn { props: {}, slots: " + slots + " }}")
            return

        assert script.tag_end is not None and script.content_start is not None and script.content_end is not None
        # the variables need to be declared before the template uses them
        if script.start != target:
            self.splicer.move(script.start, script.end, target)

        self.splicer.overwrite(script.start, script.start + 1, "</>;")
        self.splicer.overwrite(script.start + 1, script.tag_end, "function render() {\n")
        self.splicer.overwrite(_end_tag_start(self.source, script), script.end, ";\n<>")

        language = script_language_from_tag(self.source[script.start : script.tag_end])
        tree = parse_script(self.source[script.content_start : script.content_end], language)
        offset = script.content_start
        scan = find_exports(tree, is_ts_file=language == "typescript", strict=True)

        self.remove_exports(tree, offset)
        self.declare_reactive_variables(tree, scan, offset)

        elements = []
        for entry in scan.exports.values():
            self.exports[entry.name] = entry.local_name
            elements.append(f"{_object_key(entry.name)}: {entry.local_name}" if entry.renamed else entry.name)
        self.splicer.append("\nreturn { props: {" + " , ".join(elements) + "}, slots: " + slots + " }}")

        self.hoist_imports(tree, offset, script.start + 1)

    def remove_exports(self, tree: ScriptTree, offset: int) -> None:
        for statement in tree.statements:
            if statement.type != "export_statement":
                continue
            if statement.child_by_field_name("declaration") is None:
                # export { a, b as c } only names bindings already declared
                self.splicer.remove(offset + tree.start(statement), offset + tree.end(statement))
                continue
            keyword = next(child for child in statement.children if child.type == "export")
            self.splicer.remove(offset + tree.start(keyword), offset + tree.end(keyword))

    def declare_reactive_variables(self, tree: ScriptTree, scan: ExportScan, offset: int) -> None:
        declared = set(scan.declared_names)
        for statement in tree.statements:
            name_node = _reactive_assignment_target(statement)
            if name_node is None:
                continue
            name = tree.text(name_node)
            if name in declared:
                continue
            declared.add(name)
            self.splicer.prepend_right(offset + tree.start(statement), f";let {name}; ")

    def hoist_imports(self, tree: ScriptTree, offset: int, target: int) -> None:
        for statement in tree.statements:
            if statement.type != "import_statement":
                continue
            start = offset + tree.start(statement)
            end = offset + tree.end(statement)
            self.splicer.move(start, end, target)
            self.splicer.overwrite(end - 1, end, self.source[end - 1] + "\n")

    def add_component_export(self) -> None:
        partial = "__sveltets_partial_with_any" if self.uses_props else "__sveltets_partial"
        self.splicer.append(
            f"\n\nexport default class {{\n    $$prop_def = {partial}(render().props)\n"
            "    $$slot_def = render().slots\n}"
        )

    def run(self) -> TranspileResult:
        convert_markup(self.splicer, self.fragment, self.on_walk)
        self.remove_styles()

        module_script = find_module_script(self.fragment)
        if module_script is not None and module_script.start != 0:
            self.splicer.move(module_script.start, module_script.end, 0)
        target = module_script.end if module_script is not None and module_script.start == 0 else 0
        self.process_instance_script(target)

        if module_script is not None:
            self.process_module_script(module_script)
        self.add_component_export()

        return TranspileResult(
            code=self.splicer.to_string(),
            mapper=self.splicer.generate_segments(),
            slots=MappingProxyType({name: MappingProxyType(attrs) for name, attrs in self.slots.items()}),
            exports=MappingProxyType(self.exports),
            uses_props=self.uses_props,
        )


def _reactive_assignment_target(statement: Node) -> Node | None:
    """Return the identifier assigned by ``$: name = ...``, if ``statement`` is one."""
    if statement.type != "labeled_statement":
        return None
    label = statement.child_by_field_name("label")
    body = statement.child_by_field_name("body")
    if label is None or body is None or label.text != b"$" or body.type != "expression_statement":
        return None
    expression = body.named_children[0] if body.named_children else None
    if expression is None or expression.type != "assignment_expression":
        return None
    left = expression.child_by_field_name("left")
    if left is None or left.type != "identifier":
        return None
    return left


def svelte2tsx(source: str, filename: str | None = None) -> TranspileResult:
    """Transpile a Svelte component into TSX.

    Raises ``TemplateSyntaxError`` for markup that cannot be parsed and
    ``UnsupportedExportError`` for exported bindings that are not plain
    identifiers.
    """
    result = _ComponentTranspiler(source).run()
    logger.debug(
        "Transpiled %s: %d export(s), %d slot(s)",
        filename or "<component>",
        len(result.exports),
        len(result.slots),
    )
    return result


def transpile_file(path: Path) -> TranspileResult:
    return svelte2tsx(path.read_text(encoding="utf-8"), str(path))
