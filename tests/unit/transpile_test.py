"""Tests for the Svelte component to TSX transpiler."""

from __future__ import annotations

import pytest

from svelte_tsx.core.exports import UnsupportedExportError
from svelte_tsx.core.template import TemplateSyntaxError, parse_template
from svelte_tsx.core.transpile import attribute_value_as_js_expression, slots_as_string, svelte2tsx

COMPONENT_CLASS = (
    "\n\nexport default class {\n    $$prop_def = __sveltets_partial(render().props)\n"
    "    $$slot_def = render().slots\n}"
)


class TestRenderFunction:
    def test_template_only(self) -> None:
        result = svelte2tsx("<h1>hi</h1>")
        assert result.code == (
            "<></>;function render() {\n<><h1>hi</h1></>;\nreturn { props: {}, slots: {} }}" + COMPONENT_CLASS
        )

    def test_instance_script(self) -> None:
        result = svelte2tsx("<script>export let name = 'world';</script><h1>Hello {name}</h1>")
        assert result.code == (
            "<></>;function render() {\n let name = 'world';;\n<><h1>Hello {name}</h1></>"
            "\nreturn { props: {name}, slots: {} }}" + COMPONENT_CLASS
        )
        assert dict(result.exports) == {"name": "name"}

    def test_script_after_markup_moves_to_front(self) -> None:
        result = svelte2tsx("<p>{a}</p>\n<script>let a = 1;</script>")
        assert result.code.startswith("<></>;function render() {\nlet a = 1;;\n<><p>{a}</p>\n</>")

    def test_style_is_removed(self) -> None:
        result = svelte2tsx("<p>a</p><style>p { color: red; }</style>")
        assert "color" not in result.code
        assert "<style" not in result.code


class TestModuleScript:
    def test_module_then_instance(self) -> None:
        result = svelte2tsx('<script context="module">export const x = 1;</script><script>let y = 2;</script><p/>')
        assert result.code.startswith(
            "<></>;export const x = 1;;<></>;function render() {\nlet y = 2;;\n<><p/></>"
        )

    def test_module_is_moved_ahead_of_instance(self) -> None:
        result = svelte2tsx("<script>let y = 2;</script><script context=\"module\">const x = 1;</script>")
        assert result.code.startswith("<></>;const x = 1;;<></>;function render() {\nlet y = 2;;\n<></>")

    def test_bare_module_attribute(self) -> None:
        result = svelte2tsx("<script module>const x = 1;</script><p>{x}</p>")
        assert result.code.startswith("<></>;const x = 1;;<></>;function render() {\n<><p>{x}</p></>")


class TestExports:
    def test_renamed_export(self) -> None:
        result = svelte2tsx("<script>let a = 1;\nexport { a as b };</script>")
        assert "props: {b: a}" in result.code
        assert "export {" not in result.code
        assert dict(result.exports) == {"b": "a"}

    def test_exported_function(self) -> None:
        result = svelte2tsx("<script>export function greet() {}\nexport let count = 0;</script>")
        assert "props: {greet , count}" in result.code
        assert "export function" not in result.code

    def test_typescript_script(self) -> None:
        result = svelte2tsx('<script lang="ts">export let a: number = 1;</script>')
        assert "props: {a}" in result.code
        assert " let a: number = 1;" in result.code

    def test_destructured_export_is_rejected(self) -> None:
        with pytest.raises(UnsupportedExportError):
            svelte2tsx("<script>export const { a } = obj;</script>")


class TestReactiveDeclarations:
    def test_undeclared_target_gets_declaration(self) -> None:
        result = svelte2tsx("<script>export let count = 1;\n$: doubled = count * 2;</script>")
        assert ";let doubled; $: doubled = count * 2;" in result.code

    def test_declared_target_is_left_alone(self) -> None:
        result = svelte2tsx("<script>let x = 0;\n$: x = 1;</script>")
        assert ";let x;" not in result.code

    def test_each_name_is_declared_once(self) -> None:
        result = svelte2tsx("<script>$: y = 1;\n$: y = 2;</script>")
        assert result.code.count(";let y; ") == 1

    def test_other_reactive_statements_are_ignored(self) -> None:
        result = svelte2tsx("<script>$: console.log(1);\n$: { a = 1; }</script>")
        assert ";let" not in result.code


class TestImports:
    def test_imports_are_hoisted(self) -> None:
        result = svelte2tsx("<script>import Foo from './Foo.svelte';\nlet a = 1;</script><Foo />")
        assert result.code.startswith(
            "<></>;import Foo from './Foo.svelte';\nfunction render() {\n\nlet a = 1;;\n<><Foo /></>"
        )


class TestSlots:
    def test_default_slot_with_literal_prop(self) -> None:
        result = svelte2tsx('<script>export let foo;</script><slot bar="baz"></slot>')
        assert "props: {foo}" in result.code
        assert 'slots: {default: {bar:"baz"}}' in result.code
        assert {name: dict(attrs) for name, attrs in result.slots.items()} == {"default": {"bar": '"baz"'}}

    def test_named_slot_with_mixed_and_shorthand_props(self) -> None:
        result = svelte2tsx('<slot name="item" label="a {b}" {c} />')
        assert dict(result.slots["item"]) == {"label": '`${"a "}${b}`', "c": "c"}

    def test_slot_names_that_are_not_identifiers_are_quoted(self) -> None:
        result = svelte2tsx('<slot name="item-header" />')
        assert 'slots: {"item-header": {}}' in result.code

    def test_uses_props(self) -> None:
        result = svelte2tsx("<p>{$$props.title}</p>")
        assert result.uses_props
        assert "__sveltets_partial_with_any(render().props)" in result.code

    def test_slots_as_string(self) -> None:
        assert slots_as_string({"default": {"a": "1", "b": "x"}, "footer": {}}) == "{default: {a:1, b:x}, footer: {}}"


class TestAttributeValues:
    @pytest.mark.parametrize(
        ("markup", "expected"),
        [
            ('<slot a="text" />', '"text"'),
            ("<slot a={value} />", "value"),
            ("<slot {a} />", "a"),
            ('<slot a="x{y}" />', '`${"x"}${y}`'),
        ],
    )
    def test_expression(self, markup: str, expected: str) -> None:
        attribute = parse_template(markup).children[0].attributes[0]
        assert attribute_value_as_js_expression(markup, attribute) == expected


class TestPositionMapping:
    SOURCE = "<script>export let name = 'world';</script><h1>Hello {name}</h1>"

    def test_template_and_script_positions(self) -> None:
        result = svelte2tsx(self.SOURCE)
        for word in ("world", "{name}", "<h1>"):
            original = self.SOURCE.index(word)
            generated = result.to_generated_pos(original)
            assert result.code[generated : generated + len(word)] == word
            assert result.to_original_pos(generated).pos == original

    def test_moved_script(self) -> None:
        source = "<p>{a}</p>\n<script>let a = 1;</script>"
        result = svelte2tsx(source)
        original = source.index("let a")
        generated = result.to_generated_pos(original)
        assert result.code[generated : generated + 5] == "let a"

    def test_synthetic_text(self) -> None:
        result = svelte2tsx(self.SOURCE)
        inside = result.to_original_pos(result.code.index("render") + 2)
        assert inside.in_generated


def test_invalid_markup_raises() -> None:
    with pytest.raises(TemplateSyntaxError):
        svelte2tsx("<div>")
