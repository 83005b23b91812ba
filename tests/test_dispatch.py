import json

import httpx
import pytest
import respx

from apiforms.models import (
    ApiKeyAuth,
    ApiKeyParams,
    BearerAuth,
    Endpoint,
    NoAuth,
    empty_object_schema,
)
from apiforms.services.dispatch_service import build_request, send_request

BASE = "https://api.example.com"
QUERY_KEY = ApiKeyAuth(api_key=ApiKeyParams(key="X-Key", value="v", location="query"))


def _endpoint(method, path):
    return Endpoint(
        id=f"{method}-{path}",
        path=path,
        method=method,
        schema=empty_object_schema(),
    )


@pytest.fixture
async def http_client():
    async with httpx.AsyncClient() as c:
        yield c


class TestBuildRequest:
    def test_get_puts_auth_before_form_values(self):
        prepared = build_request(
            _endpoint("GET", "/items"), {"search": "x", "limit": None}, QUERY_KEY, BASE
        )
        assert prepared.url == "https://api.example.com/items?X-Key=v&search=x"
        assert prepared.body is None

    def test_get_skips_empty_and_structured_values(self):
        value = {"a": "", "b": None, "c": [1, 2], "d": {"x": 1}, "e": True, "f": 3}
        prepared = build_request(_endpoint("GET", "/items"), value, NoAuth(), BASE)
        assert prepared.url == "https://api.example.com/items?e=true&f=3"

    def test_get_renders_integral_floats_without_fraction(self):
        prepared = build_request(_endpoint("GET", "/items"), {"n": 2.0, "x": 1.5}, NoAuth(), BASE)
        assert prepared.url.endswith("?n=2&x=1.5")

    def test_post_sends_form_value_as_body(self):
        prepared = build_request(
            _endpoint("POST", "/items"), {"name": "Rex"}, BearerAuth(token="abc"), BASE
        )
        assert prepared.url == "https://api.example.com/items"
        assert prepared.body == {"name": "Rex"}
        assert prepared.headers == {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": "Bearer abc",
        }

    def test_post_does_not_add_form_values_to_query(self):
        prepared = build_request(_endpoint("POST", "/items"), {"q": "x"}, QUERY_KEY, BASE)
        assert prepared.url == "https://api.example.com/items?X-Key=v"

    def test_delete_fills_path_template_and_appends_auth(self):
        prepared = build_request(
            _endpoint("DELETE", "/items/{id}"), {"id": "a b"}, QUERY_KEY, BASE
        )
        assert prepared.url == "https://api.example.com/items/a%20b?X-Key=v"
        assert prepared.body is None

    def test_path_value_not_repeated_in_query(self):
        prepared = build_request(
            _endpoint("GET", "/items/{id}"), {"id": 7, "expand": "owner"}, NoAuth(), BASE
        )
        assert prepared.url == "https://api.example.com/items/7?expand=owner"

    def test_missing_path_value_leaves_template(self):
        prepared = build_request(_endpoint("DELETE", "/items/{id}"), {}, NoAuth(), BASE)
        assert prepared.url == "https://api.example.com/items/{id}"

    def test_existing_query_string_joined_with_ampersand(self):
        prepared = build_request(
            _endpoint("GET", "/items?fixed=1"), {"q": "x"}, NoAuth(), BASE
        )
        assert prepared.url == "https://api.example.com/items?fixed=1&q=x"

    def test_trailing_slash_on_base_url(self):
        prepared = build_request(_endpoint("GET", "/items"), {}, NoAuth(), BASE + "/v1/")
        assert prepared.url == "https://api.example.com/v1/items"


@pytest.mark.anyio
class TestSendRequest:
    @respx.mock
    async def test_json_response(self, http_client):
        route = respx.post(f"{BASE}/items").mock(
            return_value=httpx.Response(201, json={"id": 1}, headers={"X-Request-Id": "r1"})
        )
        result = await send_request(
            _endpoint("POST", "/items"), {"name": "Rex"}, NoAuth(), http_client, BASE
        )
        assert result.status == 201
        assert result.status_text == "Created"
        assert result.data == {"id": 1}
        assert result.headers["x-request-id"] == "r1"
        sent = route.calls.last.request
        assert json.loads(sent.content) == {"name": "Rex"}
        assert sent.headers["content-type"] == "application/json"

    @respx.mock
    async def test_get_sends_no_body(self, http_client):
        route = respx.get(f"{BASE}/items").mock(return_value=httpx.Response(200, json=[]))
        await send_request(_endpoint("GET", "/items"), {}, NoAuth(), http_client, BASE)
        assert route.calls.last.request.content == b""

    @respx.mock
    async def test_text_response_kept_raw(self, http_client):
        respx.get(f"{BASE}/items").mock(return_value=httpx.Response(500, text="boom"))
        result = await send_request(_endpoint("GET", "/items"), {}, NoAuth(), http_client, BASE)
        assert result.status == 500
        assert result.status_text == "Internal Server Error"
        assert result.data == "boom"

    @respx.mock
    async def test_empty_response_has_no_data(self, http_client):
        respx.delete(f"{BASE}/items/1").mock(return_value=httpx.Response(204))
        result = await send_request(
            _endpoint("DELETE", "/items/{id}"), {"id": "1"}, NoAuth(), http_client, BASE
        )
        assert result.status == 204
        assert result.data is None

    @respx.mock
    async def test_network_failure_becomes_status_zero(self, http_client):
        respx.get(f"{BASE}/items").mock(side_effect=httpx.ConnectError("connection refused"))
        result = await send_request(_endpoint("GET", "/items"), {}, NoAuth(), http_client, BASE)
        assert result.model_dump(by_alias=True) == {
            "status": 0,
            "statusText": "Network Error",
            "data": {"error": "connection refused"},
            "headers": {},
        }

    async def test_unencodable_header_becomes_status_zero(self, http_client):
        result = await send_request(
            _endpoint("GET", "/items"), {}, BearerAuth(token="tök€n"), http_client, BASE
        )
        assert result.status == 0
        assert result.status_text == "Network Error"
        assert result.data["error"]
        assert result.headers == {}

    async def test_relative_url_without_base_is_network_error(self, http_client):
        result = await send_request(_endpoint("GET", "/items"), {}, NoAuth(), http_client)
        assert result.status == 0
        assert result.status_text == "Network Error"


class TestDispatchApi:
    def test_send_uses_session_value_and_auth(self, loaded_client, mock_router):
        route = mock_router.post("https://api.example.com/v1/pets").mock(
            return_value=httpx.Response(201, json={"id": 9})
        )
        loaded_client.put("/api/auth", json={"type": "bearer", "bearerToken": "tok"})
        loaded_client.post(
            "/api/forms/field",
            json={"endpoint_id": "POST-/pets", "key": "name", "value": "Rex"},
        )

        resp = loaded_client.post("/api/requests/send", json={"endpoint_id": "POST-/pets"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == 201
        assert data["statusText"] == "Created"
        assert data["data"] == {"id": 9}

        sent = route.calls.last.request
        assert json.loads(sent.content) == {"name": "Rex"}
        assert sent.headers["authorization"] == "Bearer tok"

    def test_explicit_value_overrides_session(self, loaded_client, mock_router):
        route = mock_router.get("https://api.example.com/v1/pets/42").mock(
            return_value=httpx.Response(200, json={"id": 42})
        )
        resp = loaded_client.post(
            "/api/requests/send",
            json={"endpoint_id": "GET-/pets/{petId}", "value": {"petId": "42"}},
        )
        assert resp.json()["status"] == 200
        assert route.called

    def test_last_response_is_kept(self, loaded_client, mock_router):
        mock_router.get("https://api.example.com/v1/status").mock(
            return_value=httpx.Response(200, text="up")
        )
        params = {"endpoint_id": "GET-/status"}
        assert loaded_client.get("/api/requests/last", params=params).status_code == 404

        loaded_client.post("/api/requests/send", json=params)
        resp = loaded_client.get("/api/requests/last", params=params)
        assert resp.status_code == 200
        assert resp.json()["data"] == "up"

    def test_unreachable_api_reports_network_error(self, loaded_client, mock_router):
        mock_router.get("https://api.example.com/v1/status").mock(
            side_effect=httpx.ConnectError("connection refused")
        )
        resp = loaded_client.post("/api/requests/send", json={"endpoint_id": "GET-/status"})
        assert resp.status_code == 200
        assert resp.json()["status"] == 0
        assert resp.json()["data"] == {"error": "connection refused"}

    def test_unknown_endpoint(self, loaded_client):
        resp = loaded_client.post("/api/requests/send", json={"endpoint_id": "GET-/nope"})
        assert resp.status_code == 404

    def test_unencodable_auth_header_reports_network_error(self, loaded_client):
        loaded_client.put("/api/auth", json={"type": "bearer", "bearerToken": "tök€n"})
        resp = loaded_client.post("/api/requests/send", json={"endpoint_id": "GET-/status"})
        assert resp.status_code == 200
        assert resp.json()["status"] == 0
        assert resp.json()["statusText"] == "Network Error"
