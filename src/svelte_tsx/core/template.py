"""Parser for Svelte component markup.

Produces a tree of ``TemplateNode`` with character offsets into the source.
Script and style contents are kept as raw ranges; mustache expressions are
run through the TypeScript grammar only to expose the identifiers they use.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator

from tree_sitter import Node

from svelte_tsx.core.ast import parse_script
from svelte_tsx.models import TemplateNode

VOID_ELEMENTS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "param", "source", "track", "wbr"}
)

_TAG_NAME = re.compile(r"[A-Za-z][\w:.\-]*")
_ATTRIBUTE_NAME = re.compile(r"[^\s\"'>/={}]+")
_MARKUP_START = re.compile(r"\{|<[A-Za-z/!]")
_IDENTIFIER_TYPES = frozenset({"identifier", "shorthand_property_identifier"})

_BLOCK_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("#if", re.compile(r"#if\s+(?P<expression>.+)$", re.S)),
    ("#each", re.compile(r"#each\s+(?P<expression>.+?)\s+as\s+(?P<context>.+?)(?:\s*\((?P<key>.+)\))?\s*$", re.S)),
    ("#await", re.compile(r"#await\s+(?P<expression>.+?)(?:\s+(?P<branch>then|catch)\b(?P<context>.*))?$", re.S)),
    ("#key", re.compile(r"#key\s+(?P<expression>.+)$", re.S)),
    (":else if", re.compile(r":else\s+if\s+(?P<expression>.+)$", re.S)),
    (":else", re.compile(r":else\s*$")),
    (":then", re.compile(r":then\b(?P<context>.*)$", re.S)),
    (":catch", re.compile(r":catch\b(?P<context>.*)$", re.S)),
    ("/", re.compile(r"/(?P<kind>\w+)\s*$")),
)


class TemplateSyntaxError(ValueError):
    """Raised when the markup cannot be parsed."""

    def __init__(self, message: str, pos: int) -> None:
        super().__init__(f"{message} (at offset {pos})")
        self.pos = pos


def _element_type(name: str) -> str:
    if name == "slot":
        return "Slot"
    if name[0].isupper() or "." in name or name in ("svelte:self", "svelte:component"):
        return "InlineComponent"
    return "Element"


class _TemplateParser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0

    # ------------------------------------------------------------------
    # Document structure
    # ------------------------------------------------------------------

    def parse(self) -> TemplateNode:
        fragment = TemplateNode(type="Fragment", start=0, end=len(self.source))
        stack: list[TemplateNode] = [fragment]
        source = self.source

        while self.pos < len(source):
            parent = stack[-1]
            if source.startswith("<!--", self.pos):
                parent.children.append(self._comment())
            elif source.startswith("</", self.pos):
                self._close_element(stack)
            elif source[self.pos] == "<" and self.pos + 1 < len(source) and source[self.pos + 1].isalpha():
                node = self._element()
                parent.children.append(node)
                if node.type not in ("Script", "Style") and not node.self_closing:
                    assert node.name is not None
                    if node.name.lower() not in VOID_ELEMENTS:
                        stack.append(node)
            elif source[self.pos] == "{":
                parent.children.append(self._mustache())
            else:
                parent.children.append(self._text())

        if len(stack) > 1:
            raise TemplateSyntaxError(f"<{stack[-1].name}> was left open", stack[-1].start)
        return fragment

    def _comment(self) -> TemplateNode:
        start = self.pos
        close = self.source.find("-->", start + 4)
        if close < 0:
            raise TemplateSyntaxError("Comment was left open", start)
        self.pos = close + 3
        return TemplateNode(type="Comment", start=start, end=self.pos, raw=self.source[start + 4 : close])

    def _text(self) -> TemplateNode:
        start = self.pos
        match = _MARKUP_START.search(self.source, start + 1)
        self.pos = match.start() if match else len(self.source)
        return TemplateNode(type="Text", start=start, end=self.pos, raw=self.source[start : self.pos])

    def _element(self) -> TemplateNode:
        start = self.pos
        match = _TAG_NAME.match(self.source, start + 1)
        if match is None:
            raise TemplateSyntaxError("Expected a tag name", start + 1)
        name = match.group(0)
        self.pos = match.end()
        attributes = self._attributes()

        self_closing = self.source.startswith("/>", self.pos)
        self.pos += 2 if self_closing else 1
        node = TemplateNode(
            type=_element_type(name),
            start=start,
            end=self.pos,
            name=name,
            attributes=attributes,
            tag_end=self.pos,
            self_closing=self_closing,
        )

        lowered = name.lower()
        if lowered in ("script", "style") and not self_closing:
            close = re.compile(rf"</{lowered}\s*>", re.IGNORECASE).search(self.source, self.pos)
            if close is None:
                raise TemplateSyntaxError(f"<{name}> was left open", start)
            node.type = "Script" if lowered == "script" else "Style"
            node.content_start = self.pos
            node.content_end = close.start()
            node.end = close.end()
            self.pos = close.end()
        return node

    def _close_element(self, stack: list[TemplateNode]) -> None:
        start = self.pos
        match = _TAG_NAME.match(self.source, start + 2)
        if match is None:
            raise TemplateSyntaxError("Expected a tag name", start + 2)
        name = match.group(0)
        close = self.source.find(">", match.end())
        if close < 0:
            raise TemplateSyntaxError(f"</{name}> was left open", start)
        end = close + 1

        for index in range(len(stack) - 1, 0, -1):
            if stack[index].name == name:
                break
        else:
            raise TemplateSyntaxError(f"</{name}> attempted to close an element that was not open", start)

        while len(stack) > index + 1:
            # implicitly closed, e.g. <li> or <p>
            stack.pop().end = start
        stack.pop().end = end
        self.pos = end

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos].isspace():
            self.pos += 1

    def _attributes(self) -> list[TemplateNode]:
        attributes: list[TemplateNode] = []
        while True:
            self._skip_whitespace()
            if self.pos >= len(self.source):
                raise TemplateSyntaxError("Unexpected end of input in start tag", self.pos)
            if self.source[self.pos] == ">" or self.source.startswith("/>", self.pos):
                return attributes
            if self.source[self.pos] == "{":
                attributes.append(self._attribute_mustache())
                continue

            match = _ATTRIBUTE_NAME.match(self.source, self.pos)
            if match is None:
                raise TemplateSyntaxError("Expected an attribute name", self.pos)
            start = self.pos
            self.pos = match.end()

            after_name = self.pos
            self._skip_whitespace()
            value: list[TemplateNode] = []
            value_start: int | None = None
            if self.pos < len(self.source) and self.source[self.pos] == "=":
                self.pos += 1
                self._skip_whitespace()
                value_start = self.pos
                value = self._attribute_value()
            else:
                self.pos = after_name

            attributes.append(
                TemplateNode(
                    type="Attribute",
                    start=start,
                    end=self.pos,
                    name=match.group(0),
                    value=value,
                    content_start=value_start,
                    content_end=self.pos if value_start is not None else None,
                )
            )

    def _attribute_mustache(self) -> TemplateNode:
        start = self.pos
        end = self._mustache_end(start)
        self.pos = end
        inner = self.source[start + 1 : end - 1]
        stripped = inner.strip()
        inner_start = start + 1 + len(inner) - len(inner.lstrip())

        if stripped.startswith("..."):
            expression = self._expression(inner_start + 3, inner_start + len(stripped))
            return TemplateNode(type="Spread", start=start, end=end, expression=expression)

        expression = self._expression(inner_start, inner_start + len(stripped))
        shorthand = TemplateNode(type="AttributeShorthand", start=start, end=end, name=stripped, expression=expression)
        return TemplateNode(type="Attribute", start=start, end=end, name=stripped, value=[shorthand])

    def _attribute_value(self) -> list[TemplateNode]:
        source = self.source
        quote = source[self.pos] if self.pos < len(source) and source[self.pos] in "\"'" else None
        if quote is not None:
            self.pos += 1

        parts: list[TemplateNode] = []
        text_start = self.pos

        def flush_text() -> None:
            if self.pos > text_start:
                parts.append(
                    TemplateNode(type="Text", start=text_start, end=self.pos, raw=source[text_start : self.pos])
                )

        while True:
            if self.pos >= len(source):
                raise TemplateSyntaxError("Unexpected end of input in attribute value", self.pos)
            char = source[self.pos]
            if quote is not None and char == quote:
                flush_text()
                self.pos += 1
                return parts
            if quote is None and (char.isspace() or char == ">" or source.startswith("/>", self.pos)):
                flush_text()
                return parts
            if char == "{":
                flush_text()
                parts.append(self._mustache_tag())
                text_start = self.pos
                continue
            self.pos += 1

    # ------------------------------------------------------------------
    # Mustache tags and blocks
    # ------------------------------------------------------------------

    def _skip_string(self, index: int, quote: str) -> int:
        source = self.source
        index += 1
        while index < len(source):
            if source[index] == "\\":
                index += 2
                continue
            if source[index] == quote:
                return index + 1
            index += 1
        raise TemplateSyntaxError("Unterminated string", index)

    def _skip_template_literal(self, index: int) -> int:
        source = self.source
        index += 1
        while index < len(source):
            if source[index] == "\\":
                index += 2
                continue
            if source[index] == "`":
                return index + 1
            if source.startswith("${", index):
                index = self._mustache_end(index + 1)
                continue
            index += 1
        raise TemplateSyntaxError("Unterminated template literal", index)

    def _mustache_end(self, start: int) -> int:
        """Return the offset just past the ``}`` matching the ``{`` at ``start``."""
        source = self.source
        depth = 0
        index = start
        while index < len(source):
            char = source[index]
            if char in "\"'":
                index = self._skip_string(index, char)
                continue
            if char == "`":
                index = self._skip_template_literal(index)
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return index + 1
            index += 1
        raise TemplateSyntaxError("Unterminated mustache tag", start)

    def _mustache_tag(self) -> TemplateNode:
        start = self.pos
        end = self._mustache_end(start)
        self.pos = end
        inner = self.source[start + 1 : end - 1]
        inner_start = start + 1 + len(inner) - len(inner.lstrip())
        inner_end = start + 1 + len(inner.rstrip())
        return TemplateNode(
            type="MustacheTag", start=start, end=end, expression=self._expression(inner_start, inner_end)
        )

    def _mustache(self) -> TemplateNode:
        start = self.pos
        end = self._mustache_end(start)
        inner = self.source[start + 1 : end - 1]
        inner_start = start + 1 + len(inner) - len(inner.lstrip())
        inner_end = start + 1 + len(inner.rstrip())
        stripped = self.source[inner_start:inner_end]

        if stripped[:1] in ("#", ":", "/"):
            self.pos = end
            return self._block_tag(start, end, inner_start, inner_end)
        if stripped.startswith("@html"):
            self.pos = end
            expression_start = inner_start + len("@html")
            while expression_start < inner_end and self.source[expression_start].isspace():
                expression_start += 1
            expression = self._expression(expression_start, inner_end)
            return TemplateNode(type="RawMustacheTag", start=start, end=end, expression=expression)
        if stripped.startswith("@"):
            self.pos = end
            name = stripped.split(None, 1)[0]
            expression = None
            if name == "@const":
                declaration_start = inner_start + len(name)
                while declaration_start < inner_end and self.source[declaration_start].isspace():
                    declaration_start += 1
                expression = self._expression(declaration_start, inner_end)
            return TemplateNode(type="Tag", start=start, end=end, name=name, raw=stripped, expression=expression)
        return self._mustache_tag()

    def _block_tag(self, start: int, end: int, inner_start: int, inner_end: int) -> TemplateNode:
        for name, pattern in _BLOCK_PATTERNS:
            match = pattern.match(self.source, inner_start, inner_end)
            if match is None:
                continue
            groups = match.groupdict()
            node = TemplateNode(type="BlockTag", start=start, end=end, name=name)
            if name == "/":
                node.name = "/" + groups["kind"]
            if groups.get("branch"):
                node.name = f"#await {groups['branch']}"
            if groups.get("expression") is not None:
                node.expression = self._expression(*self._stripped_span(match, "expression"))
            if groups.get("context") is not None:
                context_start, context_end = self._stripped_span(match, "context")
                node.raw = self.source[context_start:context_end]
            return node
        raise TemplateSyntaxError(f"Unsupported block tag {self.source[start:end]!r}", start)

    def _stripped_span(self, match: re.Match[str], group: str) -> tuple[int, int]:
        start, end = match.span(group)
        text = self.source[start:end]
        return start + len(text) - len(text.lstrip()), start + len(text.rstrip())

    def _expression(self, start: int, end: int) -> TemplateNode:
        text = self.source[start:end]
        tree = parse_script(f"({text}\n)")
        identifiers: list[TemplateNode] = []

        def visit(node: Node) -> None:
            if node.type in _IDENTIFIER_TYPES:
                node_start = start + tree.start(node) - 1
                node_end = start + tree.end(node) - 1
                identifiers.append(
                    TemplateNode(type="Identifier", start=node_start, end=node_end, name=tree.text(node))
                )
            for child in node.children:
                visit(child)

        visit(tree.root)
        return TemplateNode(type="Expression", start=start, end=end, raw=text, children=identifiers)


def parse_template(source: str) -> TemplateNode:
    """Parse Svelte markup into a ``Fragment`` node."""
    return _TemplateParser(source).parse()


def child_nodes(node: TemplateNode) -> Iterator[TemplateNode]:
    yield from node.attributes
    yield from node.value
    if node.expression is not None:
        yield node.expression
    yield from node.children


def walk_template(
    node: TemplateNode,
    enter: Callable[[TemplateNode, TemplateNode | None], None],
    parent: TemplateNode | None = None,
) -> None:
    """Call ``enter(node, parent)`` for ``node`` and every node below it, depth first."""
    enter(node, parent)
    for child in child_nodes(node):
        walk_template(child, enter, node)
