"""Shared fixtures and helpers for tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from svelte_tsx.core.ast import ScriptTree, parse_script
from svelte_tsx.models import KitFilesSettings


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        item.add_marker(pytest.mark.unit)


@pytest.fixture
def kit_settings() -> KitFilesSettings:
    return KitFilesSettings()


@pytest.fixture
def script_source() -> Callable[[str, str], Callable[[], ScriptTree]]:
    """Return a factory for ``get_source`` callbacks over an in-memory script."""

    def factory(source: str, language: str = "typescript") -> Callable[[], ScriptTree]:
        return lambda: parse_script(source, language)

    return factory


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
