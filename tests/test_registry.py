"""Tests for specroute.registry -- url_for, request_for, explore and bootstrap."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any
from unittest.mock import patch

import httpx
import pytest

from specroute.exceptions import CoercionError, CompileError
from specroute.interceptors import BODY_KEY, DEFAULT_INTERCEPTORS, inject
from specroute.pipeline import Context, Interceptor
from specroute.registry import Registry, bootstrap, bootstrap_from, bootstrap_spec

BASE_URL = "http://localhost:8888"


# ---------------------------------------------------------------------------
# Swagger petstore
# ---------------------------------------------------------------------------


class TestUrlFor:

    def test_renders_path(self, swagger_registry: Registry) -> None:
        assert swagger_registry.url_for("get-pet", {"id": 123}) == f"{BASE_URL}/pets/123"

    def test_string_value_is_coerced(self, swagger_registry: Registry) -> None:
        assert swagger_registry.url_for("get-pet", {"id": "123"}) == f"{BASE_URL}/pets/123"

    def test_route_without_params(self, swagger_registry: Registry) -> None:
        assert swagger_registry.url_for("list-pets") == f"{BASE_URL}/pets"

    def test_ignores_non_path_params(self, swagger_registry: Registry) -> None:
        assert swagger_registry.url_for("list-pets", {"limit": 5}) == f"{BASE_URL}/pets"

    def test_unknown_route(self, swagger_registry: Registry) -> None:
        assert swagger_registry.url_for("no-such-route", {}) is None

    def test_invalid_path_value(self, swagger_registry: Registry) -> None:
        with pytest.raises(CoercionError) as excinfo:
            swagger_registry.url_for("get-pet", {"id": "not-a-number"})
        assert excinfo.value.placement == "path"


class TestRequestFor:

    def test_get_pet(self, swagger_registry: Registry) -> None:
        assert swagger_registry.request_for("get-pet", {"id": 123}) == {
            "method": "get",
            "url": f"{BASE_URL}/pets/123",
        }

    def test_create_pet(self, swagger_registry: Registry) -> None:
        result = swagger_registry.request_for("create-pet", {"name": "Rex", "type": "Dog", "age": 3})
        assert result == {
            "method": "post",
            "url": f"{BASE_URL}/pets",
            "body": {"name": "Rex", "type": "Dog", "age": 3},
        }

    def test_create_pet_missing_fields(self, swagger_registry: Registry) -> None:
        with pytest.raises(CoercionError) as excinfo:
            swagger_registry.request_for("create-pet", {"name": "Rex"})
        missing = sorted(field.split(".")[-1] for field in excinfo.value.fields)
        assert missing == ["age", "type"]
        assert excinfo.value.placement == "body"

    def test_create_pet_with_reserved_body_key(self, swagger_registry: Registry) -> None:
        pet = {"name": "Rex", "type": "Dog", "age": 3}
        assert swagger_registry.request_for("create-pet", {BODY_KEY: pet})["body"] == pet

    def test_query_params(self, swagger_registry: Registry) -> None:
        result = swagger_registry.request_for("list-pets", {"limit": "10", "sortOrder": "asc"})
        assert result["query_params"] == {"limit": 10, "sortOrder": "asc"}

    def test_no_query_params_when_none_declared(self, swagger_registry: Registry) -> None:
        result = swagger_registry.request_for("get-pet", {"id": 1, "limit": 10, "foo": "bar"})
        assert "query_params" not in result

    def test_headers(self, swagger_registry: Registry) -> None:
        result = swagger_registry.request_for("get-pet", {"id": 1, "x-request-id": "abc"})
        assert result["headers"] == {"X-Request-Id": "abc"}

    def test_form_params(self, swagger_registry: Registry) -> None:
        result = swagger_registry.request_for("upload-pet-photo", {"id": 1, "file": "bytes", "caption": "hi"})
        assert result == {
            "method": "post",
            "url": f"{BASE_URL}/pets/1/photos",
            "form_params": {"file": "bytes", "caption": "hi"},
        }

    def test_unknown_route(self, swagger_registry: Registry) -> None:
        assert swagger_registry.request_for("no-such-route", {}) is None

    def test_caller_params_not_mutated(self, swagger_registry: Registry) -> None:
        params = {"petId": 1, "id": 2}
        swagger_registry.request_for("get-pet", params)
        assert params == {"petId": 1, "id": 2}


class TestOpenAPIRegistry:

    def test_show_pet_by_id(self, openapi_registry: Registry) -> None:
        assert openapi_registry.request_for("show-pet-by-id", {"petId": 7}) == {
            "method": "get",
            "url": f"{BASE_URL}/pets/7",
        }

    def test_request_body_flat(self, openapi_registry: Registry) -> None:
        result = openapi_registry.request_for("create-pet", {"name": "Rex", "type": "Dog", "age": 3})
        assert result["body"] == {"name": "Rex", "type": "Dog", "age": 3}

    def test_request_body_nested(self, openapi_registry: Registry) -> None:
        pet = {"name": "Rex", "type": "Dog", "age": 3, "tag": "good"}
        assert openapi_registry.request_for("create-pet", {"body": pet})["body"] == pet

    def test_form_request_body(self, openapi_registry: Registry) -> None:
        result = openapi_registry.request_for("login", {"username": "ann", "password": "pw"})
        assert result["form_params"] == {"username": "ann", "password": "pw"}


# ---------------------------------------------------------------------------
# Interceptor chains
# ---------------------------------------------------------------------------


class TestInterceptorChains:

    def test_short_circuit_before_defaults(self, swagger_raw: dict[str, Any]) -> None:
        entered: list[str] = []

        def _watch(name: str) -> Interceptor:
            def _enter(ctx: Context) -> Context:
                entered.append(name)
                return ctx

            return Interceptor(name=f"watch-{name}", enter=_enter)

        def _canned(ctx: Context) -> Context:
            ctx.response = {"status": 200, "body": "canned"}
            return ctx

        chain = (Interceptor(name="canned", enter=_canned), *DEFAULT_INTERCEPTORS, _watch("after"))
        registry = bootstrap_spec(BASE_URL, swagger_raw, chain)

        assert registry.request_for("get-pet", {"id": 1}) == {"status": 200, "body": "canned"}
        assert entered == []

    def test_transport_style_interceptor(self, swagger_raw: dict[str, Any]) -> None:
        def _send(ctx: Context) -> Context:
            ctx.response = {"sent": ctx.request["url"], "method": ctx.request["method"]}
            return ctx

        chain = (*DEFAULT_INTERCEPTORS, Interceptor(name="send", enter=_send))
        registry = bootstrap_spec(BASE_URL, swagger_raw, chain)
        assert registry.request_for("get-pet", {"id": 5}) == {"sent": f"{BASE_URL}/pets/5", "method": "get"}

    def test_route_interceptors_apply_to_that_route_only(self) -> None:
        def _tag(ctx: Context) -> Context:
            ctx.request.setdefault("headers", {})["X-Tag"] = "yes"
            return ctx

        tagged = Interceptor(name="tag", enter=_tag)
        registry = bootstrap(BASE_URL, [
            {"route_name": "tagged", "method": "get", "path": "/a", "interceptors": [tagged]},
            {"route_name": "plain", "method": "get", "path": "/b"},
        ])

        assert registry.request_for("tagged")["headers"] == {"X-Tag": "yes"}
        assert "headers" not in registry.request_for("plain")
        assert registry.interceptors == DEFAULT_INTERCEPTORS

    def test_with_interceptors_returns_new_registry(self, swagger_registry: Registry) -> None:
        def _drop_method(ctx: Context) -> Context:
            return ctx

        chain = inject(DEFAULT_INTERCEPTORS, Interceptor(name="no-method", enter=_drop_method), "replace", "method")
        other = swagger_registry.with_interceptors(chain)

        assert "method" not in other.request_for("get-pet", {"id": 1})
        assert swagger_registry.request_for("get-pet", {"id": 1})["method"] == "get"
        assert other.route_names == swagger_registry.route_names

    def test_leave_hook_observes_coercion_error(self, swagger_raw: dict[str, Any]) -> None:
        observed: list[BaseException] = []

        def _log_errors(ctx: Context) -> Context:
            if ctx.error is not None:
                observed.append(ctx.error)
            return ctx

        chain = (Interceptor(name="error-log", leave=_log_errors), *DEFAULT_INTERCEPTORS)
        registry = bootstrap_spec(BASE_URL, swagger_raw, chain)

        with pytest.raises(CoercionError):
            registry.request_for("create-pet", {"name": "Rex"})
        assert len(observed) == 1
        assert isinstance(observed[0], CoercionError)

    def test_concurrent_calls_are_independent(self, swagger_registry: Registry) -> None:
        results: dict[int, Any] = {}

        def _call(pet_id: int) -> None:
            results[pet_id] = swagger_registry.request_for("get-pet", {"id": pet_id})

        threads = [threading.Thread(target=_call, args=(n,)) for n in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(results[n]["url"] == f"{BASE_URL}/pets/{n}" for n in range(20))


# ---------------------------------------------------------------------------
# Introspection
# ---------------------------------------------------------------------------


class TestExplore:

    def test_lists_routes(self, swagger_registry: Registry) -> None:
        assert swagger_registry.explore()[:2] == [
            ("list-pets", "List all pets"),
            ("create-pet", "Create a pet"),
        ]

    def test_describes_route(self, swagger_registry: Registry) -> None:
        details = swagger_registry.explore("get-pet")
        assert details["method"] == "get"
        assert details["path"] == "/pets/{id}"
        assert set(details["parameters"]) == {"path", "header"}
        assert details["parameters"]["path"]["required"] == ["id"]
        assert details["responses"] == [
            {"status": 200, "description": "The pet"},
            {"status": "default", "description": "Unexpected error"},
        ]

    def test_unknown_route(self, swagger_registry: Registry) -> None:
        assert swagger_registry.explore("no-such-route") is None

    def test_lookup_helpers(self, swagger_registry: Registry) -> None:
        assert "get-pet" in swagger_registry
        assert "nope" not in swagger_registry
        assert swagger_registry.find("get-pet").path == "/pets/{id}"
        assert swagger_registry.find("nope") is None
        assert len(swagger_registry) == 5


# ---------------------------------------------------------------------------
# Bootstrap helpers
# ---------------------------------------------------------------------------


class TestBootstrap:

    def test_route_table(self) -> None:
        registry = bootstrap("http://svc", [
            {"route_name": "get-user", "method": "get", "path_parts": ["/users/", ":id"], "path_schema": {"id": int}},
        ])
        assert registry.url_for("get-user", {"id": "4"}) == "http://svc/users/4"

    def test_compile_error_surfaces_at_bootstrap(self) -> None:
        with pytest.raises(CompileError):
            bootstrap("http://svc", [{"route_name": "bad", "method": "get", "path": "/users/{id"}])

    def test_from_file_derives_base_url(self, swagger_file: Path) -> None:
        registry = bootstrap_from(str(swagger_file))
        assert registry.base_url == "http://localhost:8888"
        assert registry.url_for("get-pet", {"id": 1}) == "http://localhost:8888/pets/1"

    def test_from_file_with_explicit_base_url(self, openapi_file: Path) -> None:
        registry = bootstrap_from(str(openapi_file), base_url="https://staging.example.com")
        assert registry.url_for("show-pet-by-id", {"pet-id": 2}) == "https://staging.example.com/pets/2"

    def test_from_url_resolves_relative_server(self, openapi_raw: dict[str, Any]) -> None:
        openapi_raw["servers"] = [{"url": "/api/v1"}]
        url = "https://pets.example.com/docs/openapi.json"
        response = httpx.Response(200, json=openapi_raw, request=httpx.Request("GET", url))
        with patch("specroute.parser.loader.httpx.get", return_value=response):
            registry = bootstrap_from(url)
        assert registry.base_url == "https://pets.example.com/api/v1"
