"""Tests for specroute.compiler.params -- grouping parameters by placement."""

from __future__ import annotations

import logging

import pytest

from specroute.compiler.params import group_parameters, request_content_type
from specroute.models import Placement
from specroute.schema import coerce


class TestSwaggerParameters:
    """Swagger 2.0 style declarations (type information on the parameter)."""

    def test_groups_by_location(self) -> None:
        groups = group_parameters(
            [
                {"name": "id", "in": "path", "type": "integer"},
                {"name": "limit", "in": "query", "type": "integer"},
                {"name": "X-Trace", "in": "header", "type": "string"},
                {"name": "caption", "in": "formData", "type": "string"},
            ],
            "UpdatePet",
        )
        assert groups.path is not None
        assert groups.query is not None
        assert groups.header is not None
        assert groups.form is not None
        assert groups.body is None
        assert groups.body_name is None

    def test_model_names_carry_placement_suffix(self) -> None:
        groups = group_parameters(
            [{"name": "id", "in": "path", "type": "integer"}, {"name": "q", "in": "query", "type": "string"}],
            "GetPet",
        )
        assert groups.path.__name__ == "GetPetPath"
        assert groups.query.__name__ == "GetPetQuery"

    def test_empty_placements_are_none(self) -> None:
        groups = group_parameters([], "Ping")
        assert all(schema is None for schema in groups.schemas.values())

    def test_path_params_always_required(self) -> None:
        groups = group_parameters([{"name": "id", "in": "path", "type": "integer", "required": False}], "GetPet")
        assert "id" in groups.path.model_json_schema(by_alias=True)["required"]

    def test_formdata_maps_to_form(self) -> None:
        groups = group_parameters([{"name": "file", "in": "formData", "type": "file", "required": True}], "Upload")
        assert set(groups.schemas) == set(Placement)
        assert groups.schemas[Placement.FORM] is groups.form
        assert coerce(groups.form, {"file": b"data"}) == {"file": b"data"}

    def test_body_parameter(self) -> None:
        groups = group_parameters(
            [{
                "name": "Pet",
                "in": "body",
                "required": True,
                "schema": {"type": "object", "properties": {"name": {"type": "string"}}},
            }],
            "CreatePet",
        )
        assert groups.body_name == "Pet"
        assert groups.body_required is True
        assert coerce(groups.body, {"pet": {"name": "Rex"}}) == {"Pet": {"name": "Rex"}}

    def test_only_first_body_is_used(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="specroute.compiler.params"):
            groups = group_parameters(
                [
                    {"name": "first", "in": "body", "schema": {"type": "object"}},
                    {"name": "second", "in": "body", "schema": {"type": "object"}},
                ],
                "Twice",
            )
        assert groups.body_name == "first"
        assert list(groups.body.model_fields) == ["first"]
        assert "more than one body parameter" in caplog.text

    def test_unknown_location_skipped(self) -> None:
        groups = group_parameters([{"name": "session", "in": "cookie", "type": "string"}], "Login")
        assert all(schema is None for schema in groups.schemas.values())


class TestOpenAPIParameters:
    """OpenAPI 3.x declarations (``schema`` objects and ``requestBody``)."""

    def test_schema_object_types(self) -> None:
        groups = group_parameters(
            [{"name": "limit", "in": "query", "schema": {"type": "integer"}}],
            "ListPets",
        )
        assert coerce(groups.query, {"limit": "25"}) == {"limit": 25}

    def test_json_request_body(self) -> None:
        groups = group_parameters(
            [],
            "CreatePet",
            request_body={
                "required": True,
                "content": {"application/json": {"schema": {
                    "type": "object",
                    "required": ["name"],
                    "properties": {"name": {"type": "string"}},
                }}},
            },
        )
        assert groups.body_name == "body"
        assert groups.body_required is True
        assert coerce(groups.body, {"body": {"name": "Rex"}}) == {"body": {"name": "Rex"}}

    def test_form_request_body_is_flattened(self) -> None:
        groups = group_parameters(
            [],
            "Login",
            request_body={"content": {"application/x-www-form-urlencoded": {"schema": {
                "type": "object",
                "required": ["username"],
                "properties": {"username": {"type": "string"}, "password": {"type": "string"}},
            }}}},
        )
        assert groups.body is None
        assert groups.body_name is None
        assert coerce(groups.form, {"username": "ann"}) == {"username": "ann"}

    def test_refs_resolved_against_root(self) -> None:
        root = {"components": {"parameters": {"Limit": {"name": "limit", "in": "query", "schema": {"type": "integer"}}}}}
        groups = group_parameters([{"$ref": "#/components/parameters/Limit"}], "ListPets", root=root)
        assert coerce(groups.query, {"limit": 5}) == {"limit": 5}


class TestRequestContentType:

    def test_prefers_json(self) -> None:
        assert request_content_type({"application/xml": {}, "application/json": {}}) == "application/json"

    def test_vendor_json(self) -> None:
        assert request_content_type({"text/plain": {}, "application/vnd.api+json": {}}) == "application/vnd.api+json"

    def test_form_before_other(self) -> None:
        assert request_content_type({"text/plain": {}, "multipart/form-data": {}}) == "multipart/form-data"

    def test_falls_back_to_first(self) -> None:
        assert request_content_type({"text/plain": {}, "application/xml": {}}) == "text/plain"

    def test_empty(self) -> None:
        assert request_content_type({}) is None
