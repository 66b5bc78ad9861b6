from pathlib import Path
from typing import cast

from tree_sitter import Node, Tree
from tree_sitter_language_pack import SupportedLanguage, get_parser

from svelte_tsx.core.languages import SCRIPT_LANGUAGES, detect_language_from_path, normalize_language


class ScriptTree:
    """A parsed script together with its source text.

    tree-sitter reports byte offsets; every accessor here returns character
    offsets into ``source`` so callers can slice the Python string directly.
    """

    def __init__(self, source: str, tree: Tree, language: str = "typescript") -> None:
        self.source = source
        self.tree = tree
        self.language = language
        encoded = source.encode("utf-8")
        self._byte_to_char: list[int] | None = None
        if len(encoded) != len(source):
            table = [0] * (len(encoded) + 1)
            byte_pos = 0
            for char_pos, ch in enumerate(source):
                width = len(ch.encode("utf-8"))
                for i in range(width):
                    table[byte_pos + i] = char_pos
                byte_pos += width
            table[byte_pos] = len(source)
            self._byte_to_char = table

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def statements(self) -> list[Node]:
        return [child for child in self.root.named_children if child.type != "comment"]

    def char_offset(self, byte_offset: int) -> int:
        if self._byte_to_char is None:
            return byte_offset
        return self._byte_to_char[byte_offset]

    def start(self, node: Node) -> int:
        return self.char_offset(node.start_byte)

    def end(self, node: Node) -> int:
        return self.char_offset(node.end_byte)

    def text(self, node: Node) -> str:
        return self.source[self.start(node) : self.end(node)]


def parse_script(source: str, language: str = "typescript") -> ScriptTree:
    resolved = normalize_language(language)
    if resolved not in SCRIPT_LANGUAGES:
        raise ValueError(f"Cannot parse {resolved} source as a script")
    # JavaScript goes through the TypeScript grammar so inserted annotations still parse.
    parser = get_parser(cast(SupportedLanguage, "typescript"))
    tree = parser.parse(source.encode("utf-8"))
    return ScriptTree(source, tree, resolved)


def parse_script_file(path: str) -> ScriptTree | None:
    file_path = Path(path)
    language = detect_language_from_path(file_path)
    try:
        source = file_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    return parse_script(source, language)
