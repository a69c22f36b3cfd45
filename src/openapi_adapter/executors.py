"""Execution layer for REST tool calls."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from .logging import truncate_for_log
from .models import ApiRequest

logger = logging.getLogger(__name__)


class ExecutionError(Exception):
    pass


def stringify_value(value: Any) -> str:
    if isinstance(value, (list, tuple, set)):
        return ",".join(stringify_value(item) for item in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def render_path(path: str, path_params: Dict[str, Any]) -> str:
    rendered = path
    for key, value in path_params.items():
        rendered = rendered.replace(f"{{{key}}}", stringify_value(value))
    return rendered


def build_query_string(query_params: Dict[str, Any]) -> str:
    return "&".join(f"{key}={stringify_value(value)}" for key, value in query_params.items())


def build_url(base_url: str, path: str, path_params: Dict[str, Any], query_params: Dict[str, Any]) -> str:
    url = base_url.rstrip("/") + render_path(path, path_params)
    query = build_query_string(query_params)
    if query:
        url += ("&" if "?" in url else "?") + query
    return url


class RestExecutor:
    """Sends one HTTP request per call and returns the raw response text.

    No retries: a failed attempt raises ``ExecutionError`` to the caller.
    """

    def __init__(
        self,
        timeout_seconds: float = 30,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.client = client

    async def execute(self, request: ApiRequest) -> str:
        url = build_url(request.base_url, request.path, request.path_params, request.query_params)
        method = request.method.upper()

        headers: Dict[str, str] = {"Content-Type": "application/json"}
        for key, value in request.header_params.items():
            headers[key] = stringify_value(value)

        content: Optional[str] = None
        if request.body is not None and method != "GET":
            try:
                content = json.dumps(request.body)
            except (TypeError, ValueError) as exc:
                raise ExecutionError(f"Failed to serialize request body: {exc}") from exc
            logger.info("start to call api with body: %s %s -> %s", method, url, truncate_for_log(content))
        else:
            logger.info("start to call api: %s %s", method, url)

        try:
            response = await self._send(method, url, headers, content)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            detail = truncate_for_log(exc.response.text, 1024)
            raise ExecutionError(f"HTTP {status} from {method} {url}: {detail}") from exc
        except httpx.TimeoutException as exc:
            raise ExecutionError(f"Request timed out after {self.timeout_seconds}s") from exc
        except httpx.HTTPError as exc:
            raise ExecutionError(str(exc) or exc.__class__.__name__) from exc

        result = response.text
        logger.info("end api call: %s", truncate_for_log(result))
        return result

    async def _send(
        self, method: str, url: str, headers: Dict[str, str], content: Optional[str]
    ) -> httpx.Response:
        if self.client is not None:
            return await self.client.request(
                method, url, headers=headers, content=content, timeout=self.timeout_seconds
            )
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            return await client.request(method, url, headers=headers, content=content)
