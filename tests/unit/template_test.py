"""Tests for the Svelte markup parser."""

from __future__ import annotations

import pytest

from svelte_tsx.core.template import TemplateSyntaxError, parse_template, walk_template
from svelte_tsx.models import TemplateNode


def _only_child(source: str) -> TemplateNode:
    fragment = parse_template(source)
    assert len(fragment.children) == 1
    return fragment.children[0]


class TestElements:
    def test_element_with_mixed_attribute(self) -> None:
        node = _only_child('<div class="a {b}">{c}</div>')
        assert node.type == "Element"
        assert node.name == "div"
        attribute = node.attributes[0]
        assert attribute.name == "class"
        assert [part.type for part in attribute.value] == ["Text", "MustacheTag"]
        assert attribute.value[0].raw == "a "
        assert node.children[0].type == "MustacheTag"
        assert node.end == len('<div class="a {b}">{c}</div>')

    def test_component_and_slot_types(self) -> None:
        fragment = parse_template('<Foo bar={1} /><ui.Button /><slot name="x" />')
        assert [child.type for child in fragment.children] == ["InlineComponent", "InlineComponent", "Slot"]
        assert fragment.children[0].self_closing

    def test_void_element_has_no_children(self) -> None:
        fragment = parse_template("<input {value}><p>x</p>")
        assert [child.name for child in fragment.children] == ["input", "p"]
        shorthand = fragment.children[0].attributes[0]
        assert shorthand.name == "value"
        assert shorthand.value[0].type == "AttributeShorthand"

    def test_spread_and_boolean_attributes(self) -> None:
        node = _only_child("<Foo {...props} disabled />")
        assert node.attributes[0].type == "Spread"
        assert node.attributes[1].name == "disabled"
        assert node.attributes[1].value == []

    def test_directive_attribute_names(self) -> None:
        node = _only_child("<button on:click|preventDefault={go} bind:this={el}>x</button>")
        assert [a.name for a in node.attributes] == ["on:click|preventDefault", "bind:this"]

    def test_unquoted_attribute(self) -> None:
        attribute = _only_child("<div id=main></div>").attributes[0]
        assert attribute.value[0].raw == "main"

    def test_script_content_is_raw(self) -> None:
        source = '<script lang="ts">let a = "</div>";</script>\n<p>x</p>'
        script = parse_template(source).children[0]
        assert script.type == "Script"
        assert script.content_start is not None and script.content_end is not None
        assert source[script.content_start : script.content_end] == 'let a = "</div>";'
        assert script.tag_end == len('<script lang="ts">')

    def test_comment(self) -> None:
        node = _only_child("<!-- hi -->")
        assert node.type == "Comment"
        assert node.raw == " hi "

    def test_text_with_less_than(self) -> None:
        fragment = parse_template("<p>a < b</p>")
        assert fragment.children[0].children[0].raw == "a < b"


class TestMustaches:
    def test_identifiers(self) -> None:
        node = _only_child("{$$props.x + y}")
        assert node.expression is not None
        assert [child.name for child in node.expression.children] == ["$$props", "y"]
        assert node.expression.children[0].start == 1

    def test_braces_inside_strings(self) -> None:
        node = _only_child('{"}" + `${a}`}')
        assert node.expression is not None
        assert node.expression.raw == '"}" + `${a}`'

    def test_raw_html(self) -> None:
        node = _only_child("{@html content}")
        assert node.type == "RawMustacheTag"
        assert node.expression is not None and node.expression.raw == "content"

    def test_tags(self) -> None:
        node = _only_child("{@debug a}")
        assert node.type == "Tag"
        assert node.name == "@debug"
        assert node.expression is None

    def test_const_declaration(self) -> None:
        node = _only_child("{@const  area = w * h}")
        assert node.name == "@const"
        assert node.expression is not None
        assert node.expression.raw == "area = w * h"
        assert [identifier.name for identifier in node.expression.children] == ["area", "w", "h"]


class TestBlocks:
    def test_if_chain(self) -> None:
        fragment = parse_template("{#if a}x{:else if b}y{:else}z{/if}")
        blocks = [child.name for child in fragment.children if child.type == "BlockTag"]
        assert blocks == ["#if", ":else if", ":else", "/if"]

    def test_each_with_index_and_key(self) -> None:
        node = parse_template("{#each items as item, i (item.id)}{/each}").children[0]
        assert node.expression is not None and node.expression.raw == "items"
        assert node.raw == "item, i"

    def test_inline_await(self) -> None:
        node = parse_template("{#await promise then value}{/await}").children[0]
        assert node.name == "#await then"
        assert node.raw == "value"
        assert node.expression is not None and node.expression.raw == "promise"


class TestErrors:
    @pytest.mark.parametrize(
        "source",
        ["<div>", "</div>", "{a", "<!-- open", "<script>let a;", "{#unknown x}"],
        ids=["unclosed-element", "stray-close", "unclosed-mustache", "unclosed-comment", "unclosed-script", "block"],
    )
    def test_invalid_markup(self, source: str) -> None:
        with pytest.raises(TemplateSyntaxError):
            parse_template(source)


def test_walk_visits_every_node_with_parent() -> None:
    visited: list[tuple[str, str | None]] = []
    walk_template(
        parse_template('<slot name="a">{b}</slot>'),
        lambda node, parent: visited.append((node.type, parent.type if parent else None)),
    )
    assert visited == [
        ("Fragment", None),
        ("Slot", "Fragment"),
        ("Attribute", "Slot"),
        ("Text", "Attribute"),
        ("MustacheTag", "Slot"),
        ("Expression", "MustacheTag"),
        ("Identifier", "Expression"),
    ]
