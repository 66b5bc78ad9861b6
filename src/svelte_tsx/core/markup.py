"""Rewriting of Svelte markup into JSX.

All edits go through a ``Splicer`` and are addressed in original offsets, so
the template expressions keep their mapping back to the component source.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from svelte_tsx.core.splice import Splicer
from svelte_tsx.core.template import VOID_ELEMENTS, TemplateSyntaxError, walk_template
from svelte_tsx.models import TemplateNode

logger = logging.getLogger(__name__)

WalkCallback = Callable[[TemplateNode, TemplateNode | None], None]

_RAW_CONTENT_TYPES = frozenset({"Script", "Style"})
_ELEMENT_TYPES = frozenset({"Element", "InlineComponent", "Slot"})
_PROMISE = "_$$p"


@dataclass
class _OpenBlock:
    kind: str
    branch: str | None = None
    consts: int = 0
    container: TemplateNode | None = None

    def end_branch(self) -> str:
        """Close the scopes opened by `{@const}` tags in the current branch."""
        closing = "</>})()}" * self.consts
        self.consts = 0
        return closing


def _expression(node: TemplateNode) -> TemplateNode:
    if node.expression is None:
        raise TemplateSyntaxError(f"{node.name} block needs an expression", node.start)
    return node.expression


class _MarkupConverter:
    def __init__(self, splicer: Splicer) -> None:
        self.splicer = splicer
        self.source = splicer.original
        self.blocks: list[_OpenBlock] = []

    # ------------------------------------------------------------------
    # Elements and attributes
    # ------------------------------------------------------------------

    def element(self, node: TemplateNode) -> None:
        assert node.name is not None and node.tag_end is not None
        if node.name.lower() in VOID_ELEMENTS and not node.self_closing:
            self.splicer.prepend_right(node.tag_end - 1, "/")

    def attribute(self, node: TemplateNode) -> None:
        assert node.name is not None
        if node.value and node.value[0].type == "AttributeShorthand":
            self.splicer.prepend_right(node.start, f"{node.name}=")
            return

        modifiers = node.name.find("|")
        if modifiers > 0:
            # on:click|preventDefault -> on:click
            self.splicer.remove(node.start + modifiers, node.start + len(node.name))
        if not node.value:
            return

        assert node.content_start is not None and node.content_end is not None
        quoted = self.source[node.content_start] in "\"'"
        if len(node.value) == 1:
            part = node.value[0]
            if part.type == "MustacheTag" and quoted:
                self.splicer.remove(node.content_start, node.content_start + 1)
                self.splicer.remove(node.content_end - 1, node.content_end)
            elif part.type == "Text" and not quoted:
                self.splicer.prepend_right(part.start, '"')
                self.splicer.append_left(part.end, '"')
            return

        if quoted:
            self.splicer.overwrite(node.content_start, node.content_start + 1, "{`")
            self.splicer.overwrite(node.content_end - 1, node.content_end, "`}")
        else:
            self.splicer.prepend_right(node.value[0].start, "{`")
            self.splicer.append_left(node.value[-1].end, "`}")
        for part in node.value:
            if part.type == "MustacheTag":
                self.splicer.prepend_right(part.start, "$")
            elif part.raw and ("`" in part.raw or "${" in part.raw or "\\" in part.raw):
                escaped = part.raw.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")
                self.splicer.overwrite(part.start, part.end, escaped)

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def _wrap(self, node: TemplateNode, before: str, after: str) -> None:
        expression = _expression(node)
        self.splicer.overwrite(node.start, expression.start, before)
        self.splicer.overwrite(expression.end, node.end, after)

    def _current(self, node: TemplateNode, *kinds: str) -> _OpenBlock:
        if not self.blocks or self.blocks[-1].kind not in kinds:
            raise TemplateSyntaxError(f"Unexpected {{{node.name}}}", node.start)
        return self.blocks[-1]

    def block(self, node: TemplateNode) -> None:
        name = node.name or ""
        context = node.raw or ""

        if name == "#if":
            self._wrap(node, "{() => {if (", "){<>")
            self.blocks.append(_OpenBlock("if"))
        elif name == ":else if":
            block = self._current(node, "if")
            self._wrap(node, block.end_branch() + "</>}else if (", "){<>")
        elif name == ":else":
            block = self._current(node, "if", "each")
            closing = block.end_branch()
            if block.kind == "each":
                block.branch = "else"
                self.splicer.overwrite(node.start, node.end, closing + "</>)}{<>")
            else:
                self.splicer.overwrite(node.start, node.end, closing + "</>}else{<>")
        elif name == "#each":
            self._wrap(node, "{(", f").map(({context}) => <>")
            self.blocks.append(_OpenBlock("each"))
        elif name == "#await":
            self._wrap(node, f"{{() => {{let {_PROMISE} = (", "); <>")
            self.blocks.append(_OpenBlock("await"))
        elif name in ("#await then", "#await catch"):
            branch = name.split()[1]
            self._wrap(node, f"{{() => {{let {_PROMISE} = (", f"); {_PROMISE}.{branch}(({context}) => {{<>")
            self.blocks.append(_OpenBlock("await", branch))
        elif name in (":then", ":catch"):
            block = self._current(node, "await")
            branch = name[1:]
            close = block.end_branch() + ("</>});" if block.branch else "</>;")
            self.splicer.overwrite(node.start, node.end, f"{close} {_PROMISE}.{branch}(({context}) => {{<>")
            block.branch = branch
        elif name == "#key":
            self._wrap(node, "{(", ") && <>")
            self.blocks.append(_OpenBlock("key"))
        elif name.startswith("/"):
            self.close_block(node, name[1:])
        else:
            raise TemplateSyntaxError(f"Unsupported block {{{name}}}", node.start)

    def close_block(self, node: TemplateNode, kind: str) -> None:
        block = self._current(node, kind)
        self.blocks.pop()
        if kind == "if":
            replacement = "</>}}}"
        elif kind == "each":
            replacement = "</>}" if block.branch == "else" else "</>)}"
        elif kind == "await":
            replacement = "</>})}}" if block.branch else "</>}}"
        else:
            replacement = "</>}"
        self.splicer.overwrite(node.start, node.end, block.end_branch() + replacement)

    def const_tag(self, node: TemplateNode, parent: TemplateNode | None) -> None:
        if not self.blocks or self.blocks[-1].container is not parent:
            logger.debug("Dropping {@const} that is not directly inside a block at %d", node.start)
            self.splicer.remove(node.start, node.end)
            return
        # {@const y = x * 2} scopes y over the rest of the branch
        self._wrap(node, "{(() => {const ", "; return <>")
        self.blocks[-1].consts += 1

    # ------------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------------

    def enter(self, node: TemplateNode, parent: TemplateNode | None) -> None:
        if node.type in _ELEMENT_TYPES:
            self.element(node)
        elif node.type == "Attribute":
            if parent is None or parent.type not in _RAW_CONTENT_TYPES:
                self.attribute(node)
        elif node.type == "BlockTag":
            depth = len(self.blocks)
            self.block(node)
            if len(self.blocks) > depth:
                self.blocks[-1].container = parent
        elif node.type == "RawMustacheTag":
            # {@html x} -> {x}
            self.splicer.remove(node.start + 1, _expression(node).start)
        elif node.type == "Tag" and node.name == "@const":
            self.const_tag(node, parent)
        elif node.type in ("Comment", "Tag"):
            self.splicer.remove(node.start, node.end)


def convert_markup(splicer: Splicer, fragment: TemplateNode, on_walk: WalkCallback | None = None) -> None:
    """Turn the markup in ``splicer`` into a JSX fragment.

    ``on_walk`` is called with every template node and its parent before the
    node is rewritten.
    """
    converter = _MarkupConverter(splicer)
    splicer.prepend("<>")
    splicer.append("</>")

    def enter(node: TemplateNode, parent: TemplateNode | None) -> None:
        if on_walk is not None:
            on_walk(node, parent)
        converter.enter(node, parent)

    walk_template(fragment, enter)
    if converter.blocks:
        raise TemplateSyntaxError(f"{{#{converter.blocks[-1].kind}}} block was left open", len(splicer.original))
    logger.debug("Converted markup of %d characters", len(splicer.original))
