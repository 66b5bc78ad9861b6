from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any, Protocol

# awaited with (changed, deleted) source paths
OnSourcesChanged = Callable[[set[Path], set[Path]], Coroutine[Any, Any, None]]


class FileWatcherPort(Protocol):
    """Reports changed and deleted Svelte/SvelteKit sources until stopped."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...
