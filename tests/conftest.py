import copy

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

SPEC_URL = "https://spec.example.com/openapi.json"

PETSTORE_SPEC = {
    "openapi": "3.0.3",
    "info": {"title": "Petstore", "version": "1.0.0"},
    "servers": [{"url": "https://api.example.com/v1"}],
    "paths": {
        "/pets": {
            "get": {
                "summary": "List pets",
                "parameters": [
                    {"name": "limit", "in": "query", "schema": {"type": "integer"}},
                    {"name": "search", "in": "query", "schema": {"type": "string"}},
                    {"name": "X-Trace", "in": "header", "schema": {"type": "string"}},
                ],
            },
            "post": {
                "summary": "Create a pet",
                "requestBody": {
                    "content": {
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/NewPet"}
                        }
                    }
                },
            },
        },
        "/pets/{petId}": {
            "parameters": [
                {
                    "name": "petId",
                    "in": "path",
                    "required": True,
                    "schema": {"type": "string"},
                }
            ],
            "get": {"summary": "Get a pet"},
            "delete": {"summary": "Delete a pet"},
        },
        "/status": {"get": {}},
    },
    "components": {
        "schemas": {
            "NewPet": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string"},
                    "age": {"type": "integer", "minimum": 0},
                    "species": {"type": "string", "enum": ["dog", "cat"]},
                    "tags": {"type": "array", "items": {"type": "string"}},
                    "vaccinated": {"type": "boolean"},
                    "owner": {
                        "type": "object",
                        "required": ["email"],
                        "properties": {
                            "email": {"type": "string", "format": "email"},
                            "phone": {"type": "string"},
                        },
                    },
                },
            }
        }
    },
}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def petstore_spec():
    return copy.deepcopy(PETSTORE_SPEC)


@pytest.fixture
def tmp_data_dir(tmp_path, monkeypatch):
    """Point DATA_DIR at a temp directory so tests never touch ./data."""
    import apiforms.config as cfg
    monkeypatch.setattr(cfg, "DATA_DIR", tmp_path)
    return tmp_path


@pytest.fixture
def client(tmp_data_dir):
    """TestClient with a fresh workspace and storage backed by tmp_path."""
    from apiforms.main import app

    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def mock_router():
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture
def loaded_client(client, mock_router, petstore_spec):
    """Client whose workspace already holds the petstore document."""
    mock_router.get(SPEC_URL).mock(
        return_value=httpx.Response(200, json=petstore_spec)
    )
    resp = client.post("/api/spec/load", json={"url": SPEC_URL})
    assert resp.status_code == 200
    return client
