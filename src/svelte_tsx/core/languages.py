import re
from pathlib import Path

_LANGUAGE_ALIASES = {
    "javascript": "javascript",
    "js": "javascript",
    "svelte": "svelte",
    "ts": "typescript",
    "typescript": "typescript",
}

_EXTENSION_LANGUAGE_MAP = {
    ".cjs": "javascript",
    ".cts": "typescript",
    ".js": "javascript",
    ".mjs": "javascript",
    ".mts": "typescript",
    ".svelte": "svelte",
    ".ts": "typescript",
}

_SUPPORTED_LANGUAGES = set(_LANGUAGE_ALIASES.values())

SCRIPT_LANGUAGES = frozenset({"javascript", "typescript"})

_LANG_ATTRIBUTE = re.compile(r"""\blang\s*=\s*["']?(ts|typescript)\b""", re.IGNORECASE)


def normalize_language(language: str) -> str:
    normalized = language.strip().lower()
    resolved = _LANGUAGE_ALIASES.get(normalized, normalized)
    if resolved not in _SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language '{language}'. Supported: {sorted(_SUPPORTED_LANGUAGES)}")
    return resolved


def detect_language_from_path(file_path: Path) -> str:
    suffix = file_path.suffix.lower()
    if suffix in _EXTENSION_LANGUAGE_MAP:
        return _EXTENSION_LANGUAGE_MAP[suffix]
    raise ValueError(f"Unsupported file extension: {suffix}")


def resolve_language(language: str | None, file_path: Path | None) -> str:
    if language:
        return normalize_language(language)
    if file_path:
        return detect_language_from_path(file_path)
    raise ValueError("Language must be provided when no file path is available.")


def is_supported_path(file_path: Path) -> bool:
    return file_path.suffix.lower() in _EXTENSION_LANGUAGE_MAP


def output_path_for(file_path: Path) -> Path:
    """Return the shadow file name the generated code is written to."""
    if detect_language_from_path(file_path) == "svelte":
        return file_path.with_name(file_path.name + ".tsx")
    return file_path


def script_language_from_tag(start_tag: str) -> str:
    """Return the language declared by a ``<script>`` start tag."""
    return "typescript" if _LANG_ATTRIBUTE.search(start_tag) else "javascript"
