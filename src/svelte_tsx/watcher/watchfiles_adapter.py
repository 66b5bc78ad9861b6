from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence
from pathlib import Path

from watchfiles import Change, DefaultFilter, awatch

from svelte_tsx.core.languages import is_supported_path
from svelte_tsx.core.ports.watcher import OnSourcesChanged

logger = logging.getLogger(__name__)


class SourceFilter(DefaultFilter):
    """Only let Svelte components and JS/TS modules through.

    Anything below ``ignore_paths`` (usually the output directory) is dropped
    so generated files never trigger another round of generation.
    """

    def __init__(self, ignore_paths: Sequence[str | Path] | None = None) -> None:
        super().__init__(ignore_paths=ignore_paths)

    def __call__(self, change: Change, path: str) -> bool:
        return is_supported_path(Path(path)) and super().__call__(change, path)


class WatchfilesWatcher:
    """Watch a Svelte project and report changed and deleted sources.

    ``on_change`` is awaited with ``(changed, deleted)`` once per batch that
    watchfiles yields. Implements the ``FileWatcherPort`` protocol.
    """

    def __init__(
        self,
        directory: str | Path,
        on_change: OnSourcesChanged,
        ignore: Path | None = None,
    ) -> None:
        self._directory = Path(directory)
        self._on_change = on_change
        self._filter = SourceFilter(ignore_paths=[ignore] if ignore is not None else None)
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._watch())
        logger.info("Watching %s", self._directory)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Stopped watching %s", self._directory)

    async def _watch(self) -> None:
        async for changes in awatch(self._directory, watch_filter=self._filter):
            changed = {Path(p) for change, p in changes if change != Change.deleted}
            # deleted and re-created within one batch counts as changed
            deleted = {Path(p) for change, p in changes if change == Change.deleted} - changed
            logger.info("%d source(s) changed, %d deleted", len(changed), len(deleted))
            try:
                await self._on_change(changed, deleted)
            except Exception:
                logger.exception("Error in watcher callback")
