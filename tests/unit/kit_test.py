"""Tests for SvelteKit file classification and type augmentation."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from svelte_tsx.core.ast import ScriptTree
from svelte_tsx.core.kit import (
    KitFileResult,
    classify_kit_file,
    is_kit_file,
    is_kit_route_file,
    upsert_kit_file,
    upsert_kit_source,
)
from svelte_tsx.models import FileKind, KitFilesSettings

SourceFactory = Callable[..., Callable[[], ScriptTree]]


class TestClassification:
    @pytest.mark.parametrize(
        ("file_name", "kind"),
        [
            ("src/routes/+page.ts", FileKind.ROUTE),
            ("src/routes/+layout.server.js", FileKind.ROUTE),
            ("src/routes/api/+server.ts", FileKind.ROUTE),
            ("src/routes/+page@group.svelte", FileKind.ROUTE),
            ("src/hooks.server.ts", FileKind.SERVER_HOOKS),
            ("src/hooks.server/index.js", FileKind.SERVER_HOOKS),
            ("src/hooks.client.js", FileKind.CLIENT_HOOKS),
            ("src/params/id.ts", FileKind.PARAMS),
            ("src/routes/page.ts", None),
            ("src/params/id.test.ts", None),
            ("src/params/nested/id.ts", None),
            ("src/lib/util.ts", None),
        ],
    )
    def test_classify(self, file_name: str, kind: FileKind | None, kit_settings: KitFilesSettings) -> None:
        assert classify_kit_file(file_name, kit_settings) is kind
        assert is_kit_file(file_name, kit_settings) is (kind is not None)

    def test_route_wins_over_params(self) -> None:
        settings = KitFilesSettings(params_path="src/routes")
        assert classify_kit_file("src/routes/+page.ts", settings) is FileKind.ROUTE

    def test_custom_hooks_path(self) -> None:
        settings = KitFilesSettings(server_hooks_path="app/server-hooks")
        assert classify_kit_file("app/server-hooks.ts", settings) is FileKind.SERVER_HOOKS
        assert classify_kit_file("src/hooks.server.ts", settings) is None

    def test_classification_is_stable(self, kit_settings: KitFilesSettings) -> None:
        first = classify_kit_file("src/hooks.client.ts", kit_settings)
        assert all(classify_kit_file("src/hooks.client.ts", kit_settings) is first for _ in range(3))

    def test_route_basenames(self) -> None:
        assert is_kit_route_file("+layout.ts")
        assert not is_kit_route_file("+pages.ts")


def _augment(
    file_name: str,
    source: str,
    script_source: SourceFactory,
    settings: KitFilesSettings,
    language: str = "typescript",
) -> KitFileResult | None:
    return upsert_kit_file(file_name, settings, script_source(source, language))


class TestRouteFunctions:
    def test_load_gets_parameter_and_return_types(
        self, script_source: SourceFactory, kit_settings: KitFilesSettings
    ) -> None:
        source = "export function load(event) {\n  return {};\n}\n"
        result = _augment("src/routes/+page.ts", source, script_source, kit_settings)
        assert result is not None
        assert result.kind is FileKind.ROUTE
        assert len(result.added_code) == 2
        assert result.text == (
            "export function load(event: Parameters<import('./$types.js').PageLoad>[0])"
            " : ReturnType<import('./$types.js').PageLoad> {\n  return {};\n}\n"
        )

    def test_load_with_return_type_is_left_alone(
        self, script_source: SourceFactory, kit_settings: KitFilesSettings
    ) -> None:
        source = "export function load(event): Promise<{}> {\n  return {};\n}\n"
        assert _augment("src/routes/+page.ts", source, script_source, kit_settings) is None

    def test_server_load_arrow(self, script_source: SourceFactory, kit_settings: KitFilesSettings) -> None:
        source = "export const load = async (event) => {\n  return {};\n};\n"
        result = _augment("src/routes/+layout.server.ts", source, script_source, kit_settings)
        assert result is not None
        assert result.text.startswith(
            "export const load = async (event: Parameters<import('./$types.js').LayoutServerLoad>[0])"
            " : ReturnType<import('./$types.js').LayoutServerLoad> => {"
        )

    def test_request_handler_with_bare_parameter(
        self, script_source: SourceFactory, kit_settings: KitFilesSettings
    ) -> None:
        source = "export const GET = event => new Response();\n"
        result = _augment("src/routes/api/+server.ts", source, script_source, kit_settings)
        assert result is not None
        assert result.text == (
            "export const GET = (event: import('./$types.js').RequestEvent)"
            " : Response | Promise<Response> => new Response();\n"
        )

    def test_bare_parameter_touching_arrow_merges_insertions(
        self, script_source: SourceFactory, kit_settings: KitFilesSettings
    ) -> None:
        source = "export const POST = event=>new Response();\n"
        result = _augment("src/routes/api/+server.ts", source, script_source, kit_settings)
        assert result is not None
        assert len(result.added_code) == 2
        assert "(event: import('./$types.js').RequestEvent): Response | Promise<Response> =>" in result.text

    def test_handler_exported_under_two_methods(
        self, script_source: SourceFactory, kit_settings: KitFilesSettings
    ) -> None:
        source = "function handler(event) { return new Response(); }\nexport { handler as GET, handler as POST };\n"
        result = _augment("src/routes/api/+server.ts", source, script_source, kit_settings)
        assert result is not None
        assert len(result.added_code) == 2
        assert result.text.count("import('./$types.js').RequestEvent") == 1
        assert result.text.startswith(
            "function handler(event: import('./$types.js').RequestEvent) : Response | Promise<Response> {"
        )

    def test_variable_exported_under_two_names(
        self, script_source: SourceFactory, kit_settings: KitFilesSettings
    ) -> None:
        source = "const enabled = true;\nexport { enabled as ssr, enabled as csr };\n"
        result = _augment("src/routes/+page.ts", source, script_source, kit_settings)
        assert result is not None
        assert result.text.startswith("const enabled : boolean = true;\n")

    def test_multiple_parameters_are_skipped(
        self, script_source: SourceFactory, kit_settings: KitFilesSettings
    ) -> None:
        source = "export function GET(a, b) {\n  return new Response();\n}\n"
        assert _augment("src/routes/+server.ts", source, script_source, kit_settings) is None

    def test_jsdoc_typed_javascript_is_left_alone(
        self, script_source: SourceFactory, kit_settings: KitFilesSettings
    ) -> None:
        source = "/** @type {import('./$types').PageLoad} */\nexport function load(event) {\n  return {};\n}\n"
        assert _augment("src/routes/+page.js", source, script_source, kit_settings, "javascript") is None


class TestRouteVariables:
    def test_prerender_gets_type(self, script_source: SourceFactory, kit_settings: KitFilesSettings) -> None:
        result = _augment("src/routes/+page.ts", "export const prerender = true;\n", script_source, kit_settings)
        assert result is not None
        assert result.text == "export const prerender : boolean | 'auto' = true;\n"

    def test_typed_variable_is_left_alone(self, script_source: SourceFactory, kit_settings: KitFilesSettings) -> None:
        source = "export const ssr: boolean = false;\n"
        assert _augment("src/routes/+page.ts", source, script_source, kit_settings) is None

    def test_uninitialized_variable_is_left_alone(
        self, script_source: SourceFactory, kit_settings: KitFilesSettings
    ) -> None:
        assert _augment("src/routes/+page.ts", "export let csr;\n", script_source, kit_settings) is None

    def test_actions_get_satisfies(self, script_source: SourceFactory, kit_settings: KitFilesSettings) -> None:
        source = "export const actions = {\n  default: async () => {}\n};\n"
        result = _augment("src/routes/+page.server.ts", source, script_source, kit_settings)
        assert result is not None
        assert result.text == (
            "export const actions = {\n  default: async () => {}\n} satisfies import('./$types.js').Actions;\n"
        )


class TestHooksAndParams:
    def test_server_handle(self, script_source: SourceFactory, kit_settings: KitFilesSettings) -> None:
        source = "export async function handle({ event, resolve }) {\n  return resolve(event);\n}\n"
        result = _augment("src/hooks.server.ts", source, script_source, kit_settings)
        assert result is not None
        assert result.kind is FileKind.SERVER_HOOKS
        assert result.text.startswith(
            "export async function handle({ event, resolve }: Parameters<import('@sveltejs/kit').Handle>[0])"
            " : ReturnType<import('@sveltejs/kit').Handle> {"
        )

    def test_client_handle_error(self, script_source: SourceFactory, kit_settings: KitFilesSettings) -> None:
        source = "export const handleError = ({ error }) => {\n  console.error(error);\n};\n"
        result = _augment("src/hooks.client.ts", source, script_source, kit_settings)
        assert result is not None
        assert "Parameters<import('@sveltejs/kit').HandleClientError>[0]" in result.text

    def test_client_hooks_ignore_server_exports(
        self, script_source: SourceFactory, kit_settings: KitFilesSettings
    ) -> None:
        source = "export function handle(input) {\n  return input;\n}\n"
        assert _augment("src/hooks.client.ts", source, script_source, kit_settings) is None

    def test_param_matcher(self, script_source: SourceFactory, kit_settings: KitFilesSettings) -> None:
        source = "export function match(param) {\n  return /^\\d+$/.test(param);\n}\n"
        result = _augment("src/params/id.ts", source, script_source, kit_settings)
        assert result is not None
        assert result.text.startswith("export function match(param: string) : boolean {")


class TestUpsert:
    def test_unrelated_file_never_loads_source(self, kit_settings: KitFilesSettings) -> None:
        def get_source() -> ScriptTree:
            pytest.fail("source should not be requested")

        assert upsert_kit_file("src/lib/util.ts", kit_settings, get_source) is None

    def test_missing_source(self, kit_settings: KitFilesSettings) -> None:
        assert upsert_kit_file("src/routes/+page.ts", kit_settings, lambda: None) is None

    def test_surround_wraps_every_insertion(
        self, script_source: SourceFactory, kit_settings: KitFilesSettings
    ) -> None:
        result = upsert_kit_file(
            "src/routes/+page.ts",
            kit_settings,
            script_source("export const ssr = false;\n"),
            surround=lambda text: f"/*<*/{text}/*>*/",
        )
        assert result is not None
        assert result.text == "export const ssr/*<*/ : boolean/*>*/ = false;\n"

    def test_svelte_route_is_not_applicable(self, kit_settings: KitFilesSettings) -> None:
        assert upsert_kit_source("src/routes/+page.svelte", "<h1>hi</h1>", kit_settings) is None

    def test_upsert_source(self, kit_settings: KitFilesSettings) -> None:
        result = upsert_kit_source("src/routes/+page.js", "export const csr = true;\n", kit_settings)
        assert result is not None
        assert result.text == "export const csr : boolean = true;\n"


class TestPositionMapping:
    SOURCE = "export function load(event) {\n  return { ok: true };\n}\n"

    @pytest.fixture
    def result(self, script_source: SourceFactory, kit_settings: KitFilesSettings) -> KitFileResult:
        result = _augment("src/routes/+page.ts", self.SOURCE, script_source, kit_settings)
        assert result is not None
        return result

    def test_every_original_character_maps_to_itself(self, result: KitFileResult) -> None:
        for pos, char in enumerate(self.SOURCE):
            assert result.text[result.to_generated_pos(pos)] == char

    def test_round_trip(self, result: KitFileResult) -> None:
        for pos in range(len(self.SOURCE) + 1):
            mapped = result.to_original_pos(result.to_generated_pos(pos))
            assert mapped.pos == pos
            assert not mapped.in_generated

    def test_inside_annotation(self, result: KitFileResult) -> None:
        parameter_end = self.SOURCE.index(")")
        inside = result.to_original_pos(parameter_end + 3)
        assert inside.pos == parameter_end
        assert inside.in_generated
