import logging
import re
import urllib.parse
from typing import Any

import httpx
from pydantic import BaseModel

from apiforms.models import ApiResponse, Endpoint
from apiforms.services.auth_service import auth_headers, auth_query
from apiforms.services.json_service import compact_dumps, parse_json
from apiforms.services.spec_service import BODY_METHODS

logger = logging.getLogger("apiforms.dispatch")

BASE_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

_PATH_TEMPLATE = re.compile(r"\{([^{}]+)\}")


class PreparedRequest(BaseModel):
    method: str
    url: str
    headers: dict[str, str]
    body: Any = None


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def _param_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _substitute_path_params(path: str, values: dict[str, Any]) -> tuple[str, set[str]]:
    used: set[str] = set()

    def _fill(match: re.Match) -> str:
        name = match.group(1)
        value = values.get(name)
        if value is None or value == "" or not _is_scalar(value):
            return match.group(0)
        used.add(name)
        return urllib.parse.quote(_param_text(value), safe="")

    return _PATH_TEMPLATE.sub(_fill, path), used


def _append_query(url: str, params: list[tuple[str, str]]) -> str:
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urllib.parse.urlencode(params)}"


def build_request(
    endpoint: Endpoint,
    form_value: dict[str, Any],
    auth: BaseModel,
    base_url: str = "",
) -> PreparedRequest:
    headers = {**BASE_HEADERS, **auth_headers(auth)}
    query = list(auth_query(auth).items())
    path, used = _substitute_path_params(endpoint.path, form_value)
    url = (base_url or "").rstrip("/") + path

    body = None
    if endpoint.method in BODY_METHODS:
        body = form_value

    if endpoint.method == "GET":
        for key, value in form_value.items():
            if key in used or value is None or value == "" or not _is_scalar(value):
                continue
            query.append((key, _param_text(value)))
    url = _append_query(url, query)

    return PreparedRequest(method=endpoint.method, url=url, headers=headers, body=body)


def _normalize_response_body(resp: httpx.Response) -> Any:
    text = resp.text
    if not text:
        return None
    try:
        return parse_json(text)
    except ValueError:
        return text


def network_error_response(message: str) -> ApiResponse:
    return ApiResponse(
        status=0,
        status_text="Network Error",
        data={"error": message},
        headers={},
    )


async def send_request(
    endpoint: Endpoint,
    form_value: dict[str, Any],
    auth: BaseModel,
    http_client: httpx.AsyncClient,
    base_url: str = "",
) -> ApiResponse:
    """Issue one request for ``endpoint``. Any failure to build or send it
    comes back as a status 0 response rather than an exception."""
    try:
        prepared = build_request(endpoint, form_value, auth, base_url)
        content = compact_dumps(prepared.body) if prepared.body is not None else None
        resp = await http_client.request(
            prepared.method,
            prepared.url,
            headers=prepared.headers,
            content=content,
            follow_redirects=True,
        )
    except Exception as exc:
        # Header encoding and body serialization fail outside httpx, too
        message = str(exc) or exc.__class__.__name__
        logger.warning(
            "request_failed method=%s path=%s error=%s",
            endpoint.method,
            endpoint.path,
            message,
        )
        return network_error_response(message)

    logger.info(
        "request_completed method=%s url=%s status=%s",
        prepared.method,
        prepared.url,
        resp.status_code,
    )
    return ApiResponse(
        status=resp.status_code,
        status_text=resp.reason_phrase,
        data=_normalize_response_body(resp),
        headers={k: v for k, v in resp.headers.items()},
    )
