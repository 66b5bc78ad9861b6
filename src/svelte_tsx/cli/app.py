import logging
from typing import Annotated

import typer

from svelte_tsx.cli.kit import classify, kit
from svelte_tsx.cli.transpile import map_position, transpile
from svelte_tsx.cli.watch import watch
from svelte_tsx.core.config import get_log_level

app = typer.Typer(
    name="svelte-tsx",
    help="svelte-tsx CLI: turn Svelte components and SvelteKit files into type-checkable TypeScript.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure_logging(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log per-file decisions.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else get_log_level(),
        format="%(levelname)s %(name)s: %(message)s",
    )


app.command("transpile")(transpile)
app.command("map")(map_position)
app.command("kit")(kit)
app.command("classify")(classify)
app.command("watch")(watch)


def main() -> None:
    app()
