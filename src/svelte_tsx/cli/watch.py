import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from svelte_tsx.core.config import get_kit_settings
from svelte_tsx.core.generate import find_source_files, regenerate, remove_outputs
from svelte_tsx.core.ports.watcher import FileWatcherPort
from svelte_tsx.watcher.watchfiles_adapter import WatchfilesWatcher

console = Console()


def watch(
    directory: Annotated[Path, typer.Argument(help="Project directory to watch.")],
    out: Annotated[Path, typer.Argument(help="Directory the generated files are written to.")],
    once: Annotated[bool, typer.Option("--once", help="Generate all files and exit without watching.")] = False,
) -> None:
    """Regenerate .svelte.tsx and typed SvelteKit files whenever sources change."""
    if not directory.is_dir():
        console.print(f"[red]Error:[/red] {directory} is not a directory")
        raise typer.Exit(1)

    settings = get_kit_settings()
    source_root = directory.resolve()
    out_dir = out.resolve()

    written = regenerate(find_source_files(source_root, exclude=out_dir), source_root, out_dir, settings)
    console.print(f"[green]Generated[/green] {len(written)} file(s) in {out_dir}")
    if once:
        return

    async def on_change(changed: set[Path], deleted: set[Path]) -> None:
        for target in regenerate(changed, source_root, out_dir, settings):
            console.print(f"[green]Updated[/green] {target}")
        for target in remove_outputs(deleted, source_root, out_dir):
            console.print(f"[yellow]Removed[/yellow] {target}")

    async def _run() -> None:
        watcher: FileWatcherPort = WatchfilesWatcher(source_root, on_change, ignore=out_dir)
        await watcher.start()
        try:
            await asyncio.Event().wait()
        finally:
            await watcher.stop()

    console.print(f"[green]Watching[/green] {source_root} (Ctrl+C to stop)")
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("Stopped")
