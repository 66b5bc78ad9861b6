from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from svelte_tsx.core.config import get_kit_settings
from svelte_tsx.core.generate import GeneratedFile, generate_file

console = Console()


def _generate(path: Path) -> GeneratedFile | None:
    if not path.is_file():
        console.print(f"[red]Error:[/red] {path} does not exist")
        raise typer.Exit(1)
    try:
        return generate_file(path, get_kit_settings())
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc


def transpile(
    path: Annotated[Path, typer.Argument(help="Svelte component or SvelteKit script to convert.")],
    out: Annotated[Path | None, typer.Option(help="Write the generated code to this file instead of stdout.")] = None,
) -> None:
    """Generate TSX for a component, or the typed version of a SvelteKit file."""
    generated = _generate(path)
    if generated is None:
        console.print(f"[yellow]Nothing to generate[/yellow] for {path}")
        return
    if out is None:
        console.print(generated.code, markup=False, highlight=False, soft_wrap=True)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(generated.code, encoding="utf-8")
    console.print(f"[green]Wrote[/green] {out}")


def map_position(
    path: Annotated[Path, typer.Argument(help="Svelte component or SvelteKit script.")],
    offset: Annotated[int, typer.Argument(help="Character offset to translate.")],
    to_original: Annotated[
        bool, typer.Option("--to-original", help="Treat OFFSET as a position in the generated code.")
    ] = False,
) -> None:
    """Translate a character offset between a file and its generated code."""
    generated = _generate(path)
    if generated is None:
        # nothing was inserted, both coordinate spaces are the same
        console.print(str(offset))
        return
    if to_original:
        mapped = generated.mapper.to_original_pos(offset)
        suffix = " (inside generated code)" if mapped.in_generated else ""
        console.print(f"{mapped.pos}{suffix}")
    else:
        console.print(str(generated.mapper.to_generated_pos(offset)))
