from svelte_tsx.core.exports import ExportEntry, ExportScan, UnsupportedExportError, find_exports
from svelte_tsx.core.kit import (
    KitFileResult,
    classify_kit_file,
    is_client_hooks_file,
    is_kit_file,
    is_kit_route_file,
    is_params_file,
    is_server_hooks_file,
    upsert_kit_file,
    upsert_kit_source,
)
from svelte_tsx.core.ledger import InsertionLedger, LedgerError
from svelte_tsx.core.template import TemplateSyntaxError, parse_template
from svelte_tsx.core.transpile import TranspileResult, svelte2tsx

__all__ = [
    "ExportEntry",
    "ExportScan",
    "InsertionLedger",
    "KitFileResult",
    "LedgerError",
    "TemplateSyntaxError",
    "TranspileResult",
    "UnsupportedExportError",
    "classify_kit_file",
    "find_exports",
    "is_client_hooks_file",
    "is_kit_file",
    "is_kit_route_file",
    "is_params_file",
    "is_server_hooks_file",
    "parse_template",
    "svelte2tsx",
    "upsert_kit_file",
    "upsert_kit_source",
]
