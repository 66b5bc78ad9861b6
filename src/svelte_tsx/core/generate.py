import logging
from dataclasses import dataclass
from pathlib import Path

from svelte_tsx.core.ast import parse_script_file
from svelte_tsx.core.kit import upsert_kit_file
from svelte_tsx.core.languages import is_supported_path, output_path_for, resolve_language
from svelte_tsx.core.ports.mapper import PositionMapper
from svelte_tsx.core.transpile import transpile_file
from svelte_tsx.models import KitFilesSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedFile:
    source_path: Path
    output_path: Path
    code: str
    mapper: PositionMapper


def generate_file(path: Path, settings: KitFilesSettings, language: str | None = None) -> GeneratedFile | None:
    """Produce the generated code for a component or SvelteKit script.

    Returns ``None`` for scripts that are not SvelteKit files or need no
    annotations.
    """
    resolved_language = resolve_language(language, path)
    if resolved_language == "svelte":
        transpiled = transpile_file(path)
        return GeneratedFile(path, output_path_for(path), transpiled.code, transpiled)

    result = upsert_kit_file(path.as_posix(), settings, lambda: parse_script_file(str(path)))
    if result is None:
        return None
    return GeneratedFile(path, path, result.text, result)


def find_source_files(root: Path, exclude: Path | None = None) -> set[Path]:
    return {
        path
        for path in root.rglob("*")
        if path.is_file() and is_supported_path(path) and (exclude is None or not path.is_relative_to(exclude))
    }


def regenerate(paths: set[Path], source_root: Path, out_dir: Path, settings: KitFilesSettings) -> list[Path]:
    """Write the generated counterpart of every path below ``out_dir``.

    Files that fail to convert are logged and skipped so one broken component
    does not stop the others.
    """
    written: list[Path] = []
    for path in sorted(paths):
        if not path.exists():
            logger.debug("Skipping removed file %s", path)
            continue
        try:
            generated = generate_file(path, settings)
        except ValueError:
            logger.exception("Could not generate code for %s", path)
            _remove_output(path, source_root, out_dir)
            continue
        if generated is None:
            # an earlier run may have written an annotated copy
            _remove_output(path, source_root, out_dir)
            continue

        target = out_dir / generated.output_path.relative_to(source_root)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(generated.code, encoding="utf-8")
        logger.debug("Wrote %s", target)
        written.append(target)
    return written


def _remove_output(path: Path, source_root: Path, out_dir: Path) -> Path | None:
    if not is_supported_path(path):
        return None
    target = out_dir / output_path_for(path).relative_to(source_root)
    if not target.is_file():
        return None
    target.unlink()
    logger.debug("Removed %s", target)
    return target


def remove_outputs(paths: set[Path], source_root: Path, out_dir: Path) -> list[Path]:
    """Delete the generated counterparts of removed sources."""
    removed = (_remove_output(path, source_root, out_dir) for path in sorted(paths))
    return [target for target in removed if target is not None]
