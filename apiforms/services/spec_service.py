import json
import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urljoin, urlsplit

import httpx
import yaml

from apiforms.models import Endpoint, Schema, SpecDocument, empty_object_schema

logger = logging.getLogger("apiforms.spec")

# Enumeration order matters: the first endpoint found is the one shown first.
METHOD_ORDER = ("GET", "POST", "PUT", "PATCH", "DELETE")
BODY_METHODS = frozenset(["POST", "PUT", "PATCH"])


# ─── Internal $ref resolution (single-document) ──────────────────────────────

def _resolve_internal_ref(ref: str, spec: dict) -> dict:
    if not ref.startswith("#/"):
        return {}
    parts = ref[2:].split("/")
    node: Any = spec
    for part in parts:
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(node, dict):
            return {}
        node = node.get(part, {})
    return node if isinstance(node, dict) else {}


def _inline_refs(node: Any, spec: dict, seen: frozenset[str] = frozenset()) -> Any:
    """Replace every ``$ref`` below ``node`` with its target.

    A reference that points back into its own chain becomes an empty schema.
    """
    if isinstance(node, list):
        return [_inline_refs(item, spec, seen) for item in node]
    if not isinstance(node, dict):
        return node
    ref = node.get("$ref")
    if isinstance(ref, str):
        if ref in seen:
            return {}
        target = _resolve_internal_ref(ref, spec)
        siblings = {k: v for k, v in node.items() if k != "$ref"}
        return _inline_refs({**target, **siblings}, spec, seen | {ref})
    return {key: _inline_refs(value, spec, seen) for key, value in node.items()}


# ─── Schema extraction ───────────────────────────────────────────────────────

def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _declared_parameters(operation: dict, path_item: dict, spec: dict) -> list[dict]:
    raw: list[Any] = []
    for source in (path_item, operation):
        declared = source.get("parameters")
        if isinstance(declared, list):
            raw.extend(declared)
    params = []
    for p in raw:
        if not isinstance(p, dict):
            continue
        p = _inline_refs(p, spec)
        if p:
            params.append(p)
    return params


def _request_body_schema(
    operation: dict, path_item: dict, spec: dict
) -> tuple[dict | None, str | None]:
    rb = operation.get("requestBody")
    if isinstance(rb, dict):
        rb = _inline_refs(rb, spec)
        content = rb.get("content")
        media = content.get("application/json") if isinstance(content, dict) else None
        schema = media.get("schema") if isinstance(media, dict) else None
        if isinstance(schema, dict):
            return schema, rb.get("description")
    # Swagger 2.0 carries the body as an `in: body` parameter
    for p in _declared_parameters(operation, path_item, spec):
        if p.get("in") == "body" and isinstance(p.get("schema"), dict):
            return p["schema"], p.get("description")
    return None, None


def _parameter_schema(param: dict) -> dict:
    schema = param.get("schema")
    if isinstance(schema, dict):
        return schema
    # Swagger 2.0 puts type information on the parameter itself
    return {
        key: param[key]
        for key in ("type", "format", "enum", "minimum", "maximum", "items", "default")
        if key in param
    }


def _common_query_schema(method: str) -> Schema:
    return Schema.model_validate(
        {
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "title": "Limit",
                    "description": "Number of items to return",
                    "minimum": 1,
                    "maximum": 1000,
                },
                "offset": {
                    "type": "integer",
                    "title": "Offset",
                    "description": "Number of items to skip",
                    "minimum": 0,
                },
                "search": {
                    "type": "string",
                    "title": "Search",
                    "description": "Search query",
                },
            },
            "title": f"{method} Query Parameters",
            "description": f"Query parameters for {method} requests",
        }
    )


def extract_schema(
    operation: dict,
    method: str,
    path_item: dict | None = None,
    document: dict | None = None,
) -> Schema:
    """Derive the request schema for one operation. Never returns None."""
    path_item = path_item or {}
    spec = document or {}
    label = _text(operation.get("summary")) or "operation"

    if method in BODY_METHODS:
        body_schema, body_description = _request_body_schema(operation, path_item, spec)
        if body_schema is not None:
            return Schema.model_validate(
                {
                    "type": "object",
                    "properties": {},
                    **body_schema,
                    "title": f"{method} Request Body",
                    "description": _text(body_description)
                    or f"Request body for {method} {label}",
                }
            )
        return empty_object_schema(
            title=f"{method} Request Body",
            description=f"Request body for {method} operation",
        )

    properties: dict[str, dict] = {}
    required: list[str] = []
    for param in _declared_parameters(operation, path_item, spec):
        if param.get("in") not in ("query", "path"):
            continue
        name = param.get("name")
        if name is None or name == "":
            continue
        name = str(name)
        schema = _parameter_schema(param)
        properties[name] = {
            "type": schema.get("type") or "string",
            "description": _text(param.get("description")),
            "title": name,
            **schema,
        }
        if param.get("required") and name not in required:
            required.append(name)

    if properties:
        return Schema.model_validate(
            {
                "type": "object",
                "properties": properties,
                "required": required,
                "title": f"{method} Parameters",
                "description": f"Parameters for {method} {label}",
            }
        )
    if method == "GET":
        return _common_query_schema(method)
    return empty_object_schema(
        title=f"{method} Request",
        description=f"Request configuration for {method} operation",
    )


def endpoint_id(method: str, path: str) -> str:
    return f"{method}-{path}"


def enumerate_endpoints(document: dict) -> list[Endpoint]:
    paths = document.get("paths") or {}
    if not isinstance(paths, dict):
        return []
    endpoints = []
    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        path = str(path)
        if isinstance(path_item.get("$ref"), str):
            path_item = _inline_refs(path_item, document)
        for method in METHOD_ORDER:
            operation = path_item.get(method.lower())
            if not isinstance(operation, dict):
                continue
            endpoints.append(
                Endpoint(
                    id=endpoint_id(method, path),
                    path=path,
                    method=method,
                    summary=_text(operation.get("summary")),
                    description=_text(operation.get("description")),
                    schema=extract_schema(operation, method, path_item, document),
                )
            )
    return endpoints


# ─── Loading ─────────────────────────────────────────────────────────────────

def _derive_base_url(spec: dict, url: str) -> str:
    servers = spec.get("servers")
    if isinstance(servers, list) and servers and isinstance(servers[0], dict):
        server_url = servers[0].get("url")
        if server_url and isinstance(server_url, str):
            return urljoin(url, server_url)
    if "host" in spec:
        schemes = spec.get("schemes")
        scheme = schemes[0] if isinstance(schemes, list) and schemes else "https"
        return f"{scheme}://{spec['host']}{spec.get('basePath') or ''}"
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


async def load_spec(url: str, http_client: httpx.AsyncClient) -> SpecDocument:
    try:
        resp = await http_client.get(url, follow_redirects=True)
        resp.raise_for_status()
    except httpx.TimeoutException as exc:
        raise SpecFetchError(f"Timeout fetching spec from {url}") from exc
    except httpx.HTTPStatusError as exc:
        raise SpecFetchError(
            f"HTTP {exc.response.status_code}: {exc.response.reason_phrase}"
        ) from exc
    except httpx.HTTPError as exc:
        raise SpecFetchError(f"Failed to fetch spec from {url}: {exc}") from exc

    content_type = resp.headers.get("content-type", "")
    is_yaml = (
        "yaml" in content_type
        or url.endswith(".yaml")
        or url.endswith(".yml")
    )
    try:
        spec = yaml.safe_load(resp.text) if is_yaml else json.loads(resp.text)
    except (ValueError, RecursionError, yaml.YAMLError) as exc:
        raise SpecParseError(f"Failed to parse spec: {exc}") from exc

    if not isinstance(spec, dict):
        raise SpecParseError("Parsed spec is not an object")
    if "openapi" not in spec and "swagger" not in spec:
        logger.warning("spec_version_missing url=%s", url)

    info = spec.get("info")
    if not isinstance(info, dict):
        info = {}
    document = SpecDocument(
        title=_text(info.get("title")) or "Untitled",
        version=str(info.get("version", "unknown")),
        description=_text(info.get("description")),
        base_url=_derive_base_url(spec, url),
        raw=spec,
        source_url=url,
        loaded_at=datetime.now(timezone.utc).isoformat(),
    )
    logger.info("spec_fetched url=%s title=%s", url, document.title)
    return document


class SpecFetchError(Exception):
    pass


class SpecParseError(Exception):
    pass
