import os

from svelte_tsx.models import KitFilesSettings

_DEFAULTS = KitFilesSettings()


def get_kit_settings(
    server_hooks_path: str | None = None,
    client_hooks_path: str | None = None,
    params_path: str | None = None,
) -> KitFilesSettings:
    """Build the SvelteKit file settings; explicit arguments win over the environment."""
    return KitFilesSettings(
        server_hooks_path=server_hooks_path
        or os.getenv("SVELTE_TSX_SERVER_HOOKS_PATH", _DEFAULTS.server_hooks_path),
        client_hooks_path=client_hooks_path
        or os.getenv("SVELTE_TSX_CLIENT_HOOKS_PATH", _DEFAULTS.client_hooks_path),
        params_path=params_path or os.getenv("SVELTE_TSX_PARAMS_PATH", _DEFAULTS.params_path),
    )


def get_log_level() -> str:
    return os.getenv("SVELTE_TSX_LOG_LEVEL", "WARNING").upper()
