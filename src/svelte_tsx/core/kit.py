"""SvelteKit special files: classification and type augmentation.

Route files (``+page.ts``, ``+layout.server.js``, ``+server.ts`` ...), the
server and client hooks files and the param matchers get explicit types on
their well-known exports unless the author already typed them.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from tree_sitter import Node

from svelte_tsx.core.ast import ScriptTree, parse_script
from svelte_tsx.core.exports import ExportScan, find_exports, function_parameters
from svelte_tsx.core.languages import SCRIPT_LANGUAGES, detect_language_from_path, is_supported_path
from svelte_tsx.core.ledger import InsertionLedger
from svelte_tsx.models import FileKind, Insertion, KitFilesSettings, MappedPosition

logger = logging.getLogger(__name__)

Surround = Callable[[str], str]

_KIT_PAGE_FILES = frozenset({"+page", "+layout", "+page.server", "+layout.server", "+server"})
_HOOKS_INDEX_FILES = frozenset({"index.ts", "index.js"})
_TYPES_MODULE = "import('./$types.js')"
_API_METHODS = ("GET", "PUT", "POST", "PATCH", "DELETE", "OPTIONS", "HEAD", "fallback")

# (export name, type, fixed return type)
_FUNCTION_EXPORTS: dict[FileKind, tuple[tuple[str, str, str | None], ...]] = {
    FileKind.SERVER_HOOKS: (
        ("handleError", "import('@sveltejs/kit').HandleServerError", None),
        ("handle", "import('@sveltejs/kit').Handle", None),
        ("handleFetch", "import('@sveltejs/kit').HandleFetch", None),
    ),
    FileKind.CLIENT_HOOKS: (("handleError", "import('@sveltejs/kit').HandleClientError", None),),
    FileKind.PARAMS: (("match", "string", "boolean"),),
}

_ROUTE_VARIABLES = (
    ("prerender", "boolean | 'auto'"),
    ("trailingSlash", "'never' | 'always' | 'ignore'"),
    ("ssr", "boolean"),
    ("csr", "boolean"),
)


def _identity(text: str) -> str:
    return text


def _basename(file_name: str) -> str:
    return posixpath.basename(file_name)


def _strip_extension(name: str, basename: str) -> str:
    extension = posixpath.splitext(basename)[1]
    return name[: -len(extension)] if extension else name


def _directory(file_name: str, basename: str) -> str:
    return file_name[: -len(basename) - 1]


def is_kit_route_file(basename: str) -> bool:
    if "@" in basename:
        # +page@foo.svelte -> +page
        basename = basename.split("@")[0]
    else:
        basename = _strip_extension(basename, basename)
    return basename in _KIT_PAGE_FILES


def _is_hooks_file(file_name: str, basename: str, hooks_path: str) -> bool:
    return (
        basename in _HOOKS_INDEX_FILES and _directory(file_name, basename).endswith(hooks_path)
    ) or _strip_extension(file_name, basename).endswith(hooks_path)


def is_server_hooks_file(file_name: str, basename: str, server_hooks_path: str) -> bool:
    return _is_hooks_file(file_name, basename, server_hooks_path)


def is_client_hooks_file(file_name: str, basename: str, client_hooks_path: str) -> bool:
    return _is_hooks_file(file_name, basename, client_hooks_path)


def is_params_file(file_name: str, basename: str, params_path: str) -> bool:
    return (
        _directory(file_name, basename).endswith(params_path)
        and ".test" not in basename
        and ".spec" not in basename
    )


_CLASSIFIERS: tuple[tuple[FileKind, Callable[[str, str, KitFilesSettings], bool]], ...] = (
    (FileKind.ROUTE, lambda file_name, basename, settings: is_kit_route_file(basename)),
    (
        FileKind.SERVER_HOOKS,
        lambda file_name, basename, settings: is_server_hooks_file(file_name, basename, settings.server_hooks_path),
    ),
    (
        FileKind.CLIENT_HOOKS,
        lambda file_name, basename, settings: is_client_hooks_file(file_name, basename, settings.client_hooks_path),
    ),
    (
        FileKind.PARAMS,
        lambda file_name, basename, settings: is_params_file(file_name, basename, settings.params_path),
    ),
)


def classify_kit_file(file_name: str, settings: KitFilesSettings) -> FileKind | None:
    """Return the kind of SvelteKit file ``file_name`` is; the first matching kind wins."""
    basename = _basename(file_name)
    for kind, matches in _CLASSIFIERS:
        if matches(file_name, basename, settings):
            return kind
    return None


def is_kit_file(file_name: str, settings: KitFilesSettings) -> bool:
    return classify_kit_file(file_name, settings) is not None


@dataclass(frozen=True)
class KitFileResult:
    kind: FileKind
    text: str
    ledger: InsertionLedger

    @property
    def added_code(self) -> tuple[Insertion, ...]:
        return self.ledger.records

    def to_generated_pos(self, original_pos: int) -> int:
        return self.ledger.to_generated_pos(original_pos)

    def to_original_pos(self, generated_pos: int) -> MappedPosition:
        return self.ledger.to_original_pos(generated_pos)


class _Annotator:
    def __init__(self, tree: ScriptTree, exports: ExportScan, surround: Surround) -> None:
        self.tree = tree
        self.exports = exports
        self.surround = surround
        self.ledger = InsertionLedger()
        # one declaration can be exported under several names
        self._annotated: set[tuple[int, int]] = set()

    def insert(self, pos: int, text: str) -> None:
        self.ledger.insert(pos, self.surround(text))

    def _claim(self, node: Node) -> bool:
        span = (node.start_byte, node.end_byte)
        if span in self._annotated:
            return False
        self._annotated.add(span)
        return True

    def _untyped_initialized_variable(self, name: str) -> Node | None:
        entry = self.exports.get(name)
        if entry is None or entry.kind != "variable" or entry.has_explicit_type:
            return None
        if entry.node.type != "variable_declarator" or entry.node.child_by_field_name("value") is None:
            return None
        return entry.node if self._claim(entry.node) else None

    def add_type_to_variable(self, name: str, type_: str) -> None:
        declarator = self._untyped_initialized_variable(name)
        if declarator is None:
            return
        name_node = declarator.child_by_field_name("name")
        assert name_node is not None
        self.insert(self.tree.end(name_node), f" : {type_}")

    def add_satisfies(self, name: str, type_: str) -> None:
        declarator = self._untyped_initialized_variable(name)
        if declarator is None:
            return
        value = declarator.child_by_field_name("value")
        assert value is not None
        self.insert(self.tree.end(value), f" satisfies {type_}")

    def add_type_to_function(self, name: str, type_: str, return_type: str | None = None) -> None:
        entry = self.exports.get(name)
        if entry is None or entry.kind != "function" or entry.parameter_count != 1 or entry.has_explicit_type:
            return

        function = entry.node
        if not self._claim(function):
            return
        parameter = function_parameters(function)[0]
        parameter_end = self.tree.end(parameter)
        parameter_text = f": {type_}" if return_type else f": Parameters<{type_}>[0]"

        return_insertion: tuple[int, str] | None = None
        body = function.child_by_field_name("body")
        if function.child_by_field_name("return_type") is None and body is not None:
            if function.type == "arrow_function":
                arrow = next(child for child in function.children if child.type == "=>")
                anchor = self.tree.start(arrow)
            else:
                anchor = self.tree.start(body)
            return_insertion = (anchor, f": {return_type} " if return_type else f": ReturnType<{type_}> ")

        if function.child_by_field_name("parameter") is not None:
            # `event => ...` needs parentheses once the parameter is annotated
            self.insert(self.tree.start(parameter), "(")
            parameter_text += ")"

        if return_insertion is not None and return_insertion[0] == parameter_end:
            self.insert(parameter_end, parameter_text + return_insertion[1])
            return
        self.insert(parameter_end, parameter_text)
        if return_insertion is not None:
            self.insert(*return_insertion)


def _annotate_route(annotator: _Annotator, basename: str) -> None:
    load_type = "Layout" if "layout" in basename else "Page"
    if "server" in basename:
        load_type += "Server"
    annotator.add_type_to_function("load", f"{_TYPES_MODULE}.{load_type}Load")
    annotator.add_satisfies("actions", f"{_TYPES_MODULE}.Actions")
    for name, type_ in _ROUTE_VARIABLES:
        annotator.add_type_to_variable(name, type_)
    for method in _API_METHODS:
        annotator.add_type_to_function(method, f"{_TYPES_MODULE}.RequestEvent", "Response | Promise<Response>")


def upsert_kit_file(
    file_name: str,
    settings: KitFilesSettings,
    get_source: Callable[[], ScriptTree | None],
    surround: Surround = _identity,
) -> KitFileResult | None:
    """Add type annotations to the well-known exports of a SvelteKit file.

    Returns ``None`` when the file is not a SvelteKit file, when no source is
    available, or when every relevant export is already typed or missing.
    """
    kind = classify_kit_file(file_name, settings)
    if kind is None:
        return None

    tree = get_source()
    if tree is None:
        logger.debug("No source available for %s", file_name)
        return None

    basename = _basename(file_name)
    exports = find_exports(tree, basename.endswith(".ts"))
    annotator = _Annotator(tree, exports, surround)
    if kind is FileKind.ROUTE:
        _annotate_route(annotator, basename)
    else:
        for name, type_, return_type in _FUNCTION_EXPORTS[kind]:
            annotator.add_type_to_function(name, type_, return_type)

    ledger = annotator.ledger
    if ledger.is_empty:
        return None

    text = ledger.assemble(tree.source)
    logger.debug("Added %d type annotation(s) to %s file %s", len(ledger), kind.value, file_name)
    return KitFileResult(kind=kind, text=text, ledger=ledger)


def upsert_kit_source(
    file_name: str,
    source: str,
    settings: KitFilesSettings,
    surround: Surround = _identity,
) -> KitFileResult | None:
    """Parse ``source`` and augment it; files that are not scripts are not applicable."""
    path = Path(file_name)
    language = detect_language_from_path(path) if is_supported_path(path) else None

    def get_source() -> ScriptTree | None:
        if language not in SCRIPT_LANGUAGES:
            return None
        return parse_script(source, language)

    return upsert_kit_file(file_name, settings, get_source, surround)
