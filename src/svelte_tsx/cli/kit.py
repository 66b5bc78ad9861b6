from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from svelte_tsx.core.config import get_kit_settings
from svelte_tsx.core.kit import KitFileResult, classify_kit_file, upsert_kit_source

console = Console()

ServerHooksOption = Annotated[
    str | None, typer.Option("--server-hooks", help="Server hooks path (default: src/hooks.server).")
]
ClientHooksOption = Annotated[
    str | None, typer.Option("--client-hooks", help="Client hooks path (default: src/hooks.client).")
]
ParamsOption = Annotated[str | None, typer.Option("--params", help="Param matchers directory (default: src/params).")]


def _render_insertions(result: KitFileResult) -> None:
    table = Table(show_lines=False)
    for header in ("original_pos", "generated_pos", "inserted"):
        table.add_column(header)
    for record in result.added_code:
        table.add_row(str(record.original_pos), str(record.generated_pos), repr(record.inserted))
    console.print(table)
    console.print(f"({len(result.added_code)} insertions)")


def kit(
    path: Annotated[Path, typer.Argument(help="SvelteKit route, hooks or params file.")],
    server_hooks: ServerHooksOption = None,
    client_hooks: ClientHooksOption = None,
    params: ParamsOption = None,
    insertions: Annotated[bool, typer.Option("--insertions", help="List the inserted annotations.")] = False,
) -> None:
    """Add SvelteKit type annotations to a route, hooks or params file."""
    settings = get_kit_settings(server_hooks, client_hooks, params)
    try:
        source = path.read_text(encoding="utf-8")
        result = upsert_kit_source(path.as_posix(), source, settings)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    if result is None:
        console.print(f"[yellow]No annotations added[/yellow] to {path}")
        return
    if insertions:
        _render_insertions(result)
        return
    console.print(result.text, markup=False, highlight=False, soft_wrap=True)


def classify(
    path: Annotated[str, typer.Argument(help="File name to classify; the file does not have to exist.")],
    server_hooks: ServerHooksOption = None,
    client_hooks: ClientHooksOption = None,
    params: ParamsOption = None,
) -> None:
    """Print which kind of SvelteKit file PATH is."""
    kind = classify_kit_file(Path(path).as_posix(), get_kit_settings(server_hooks, client_hooks, params))
    console.print(kind.value if kind is not None else "none")
