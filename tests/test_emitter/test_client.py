"""Tests for zodspec.emitter.client -- the rendered Zodios client module."""

from __future__ import annotations

import pytest

from zodspec.compiler import compile_document
from zodspec.emitter import render_client, to_client_path
from zodspec.exceptions import RenderError
from zodspec.models import (
    CompilationResult,
    EndpointDescriptor,
    EndpointParameter,
    GeneratorConfig,
    HTTPMethod,
    ParameterLocation,
    PrimitiveType,
    ValidationExpression,
)


@pytest.fixture
def petstore_client(petstore_document) -> str:
    return render_client(compile_document(petstore_document))


class TestClientPath:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/pets", "/pets"),
            ("/pets/{petId}", "/pets/:petId"),
            ("/a/{x}/b/{y}", "/a/:x/b/:y"),
        ],
    )
    def test_rewrite(self, path: str, expected: str) -> None:
        assert to_client_path(path) == expected


class TestPetstoreClient:
    def test_imports(self, petstore_client: str) -> None:
        assert petstore_client.startswith(
            'import { makeApi, Zodios, type ZodiosOptions } from "@zodios/core";\n'
            'import { z } from "zod";\n'
        )

    def test_declarations_in_dependency_order(self, petstore_client: str) -> None:
        positions = [
            petstore_client.index(f"const {name} = ")
            for name in ("Pet", "Owner", "NewPet", "Error")
        ]
        assert positions == sorted(positions)

    def test_owner_references_pet(self, petstore_client: str) -> None:
        assert (
            "const Owner = z.object({ name: z.string(), pets: z.array(Pet).optional() })"
            ".passthrough();" in petstore_client
        )

    def test_new_pet_modifiers(self, petstore_client: str) -> None:
        assert (
            'status: z.enum(["available", "pending", "sold"]).optional().default("available")'
            in petstore_client
        )
        assert "tag: z.string().optional().nullable()" in petstore_client

    def test_schemas_export(self, petstore_client: str) -> None:
        assert "export const schemas = {\n  Pet,\n  Owner,\n  NewPet,\n  Error,\n};" in petstore_client

    def test_endpoint_fields(self, petstore_client: str) -> None:
        assert 'method: "get",\n    path: "/pets/:petId",' in petstore_client
        assert 'alias: "getPetById",' in petstore_client
        assert 'description: "Fetch a single pet",' in petstore_client
        assert 'requestFormat: "json",' in petstore_client

    def test_parameters(self, petstore_client: str) -> None:
        assert (
            '        name: "limit",\n'
            '        description: "How many items to return",\n'
            '        type: "Query",\n'
            "        schema: z.number().int().gte(1).lte(100).optional(),\n"
        ) in petstore_client
        assert '        name: "body",\n        type: "Body",\n        schema: NewPet,\n' in petstore_client

    def test_errors(self, petstore_client: str) -> None:
        assert (
            '        status: 404,\n'
            '        description: "Unexpected error",\n'
            "        schema: Error,\n"
        ) in petstore_client
        assert 'status: "default",' in petstore_client

    def test_void_response(self, petstore_client: str) -> None:
        assert "response: z.void()," in petstore_client

    def test_client_exports(self, petstore_client: str) -> None:
        assert "export const api = new Zodios(endpoints);" in petstore_client
        assert "export function createApiClient(baseUrl: string, options?: ZodiosOptions) {" in petstore_client
        assert petstore_client.endswith("}\n")

    def test_rendering_is_deterministic(self, petstore_document) -> None:
        first = render_client(compile_document(petstore_document))
        second = render_client(compile_document(petstore_document))
        assert first == second


class TestCircularClient:
    def test_lazy_references(self, circular_document) -> None:
        source = render_client(compile_document(circular_document))
        assert "const Parent = z.object({ node: z.lazy(() => Node) }).partial().passthrough();" in source
        assert "children: z.array(z.lazy(() => Node)).optional()" in source
        assert "parent: Parent.optional()" in source
        assert source.index("const Parent") < source.index("const Node")


class TestConfigOptions:
    def test_no_schema_export(self, petstore_document) -> None:
        config = GeneratorConfig(export_schemas=False)
        source = render_client(compile_document(petstore_document, config), config)
        assert "export const schemas" not in source
        assert "const Pet = " in source

    def test_api_client_name(self, petstore_document) -> None:
        config = GeneratorConfig(api_client_name="petstore")
        source = render_client(compile_document(petstore_document, config), config)
        assert "export const petstore = new Zodios(endpoints);" in source

    def test_empty_result(self) -> None:
        source = render_client(CompilationResult())
        assert "export const schemas" not in source
        assert "const endpoints = makeApi([\n]);" in source


class TestSkippedParameters:
    def test_cookie_parameter_not_emitted(self) -> None:
        endpoint = EndpointDescriptor(
            method=HTTPMethod.GET,
            path="/session",
            parameters=(
                EndpointParameter(
                    location=ParameterLocation.COOKIE,
                    name="sid",
                    expression=ValidationExpression.of_primitive(PrimitiveType.STRING),
                ),
            ),
            response=ValidationExpression.of_primitive(PrimitiveType.VOID),
        )
        source = render_client(CompilationResult(endpoints=[endpoint]))
        assert '"sid"' not in source
        assert "parameters:" not in source


class TestRenderErrors:
    def test_undeclared_reference(self) -> None:
        endpoint = EndpointDescriptor(
            method=HTTPMethod.GET,
            path="/x",
            response=ValidationExpression.named_ref("Missing"),
        )
        with pytest.raises(RenderError, match="Missing"):
            render_client(CompilationResult(endpoints=[endpoint]))

    def test_client_name_clashing_with_schema(self, petstore_document) -> None:
        config = GeneratorConfig(api_client_name="Pet")
        with pytest.raises(RenderError, match="'Pet'"):
            render_client(compile_document(petstore_document, config), config)
