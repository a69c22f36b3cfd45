"""Core adapter service logic."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Union

from .executors import RestExecutor
from .logging import redact_payload
from .models import ApiRequest, RegistryEntry
from .routing import classify

logger = logging.getLogger(__name__)


class AdapterService:
    """
    Call boundary for registered tools.

    Every invocation returns text: the upstream response body on success,
    or ``"Error executing API call <tool>: <message>"`` on any failure.
    """

    def __init__(self, rest_executor: RestExecutor) -> None:
        self.rest_executor = rest_executor

    async def invoke(self, entry: RegistryEntry, flat_input: Union[str, Dict[str, Any]]) -> str:
        try:
            payload = self._parse_input(flat_input)
            logger.info("Executing tool=%s payload=%s", entry.tool_name, redact_payload(payload))
            request = self.build_request(entry, payload)
            return await self.rest_executor.execute(request)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.error("Error executing API call %s : %s", entry.tool_name, message, exc_info=True)
            return self._format_error(entry.tool_name, message)

    def build_request(self, entry: RegistryEntry, payload: Dict[str, Any]) -> ApiRequest:
        routed = classify(entry.operation, payload)

        header_params = dict(routed.header)
        if entry.security_header and entry.api_key and entry.security_header not in header_params:
            header_params[entry.security_header] = entry.api_key

        return ApiRequest(
            tool_name=entry.tool_name,
            base_url=entry.base_url,
            path=entry.path,
            method=entry.method,
            path_params=routed.path,
            query_params=routed.query,
            header_params=header_params,
            body=routed.body if routed.send_body else None,
        )

    def _parse_input(self, flat_input: Union[str, Dict[str, Any], None]) -> Dict[str, Any]:
        if flat_input is None:
            return {}
        if isinstance(flat_input, (str, bytes)):
            payload = json.loads(flat_input) if flat_input.strip() else {}
        else:
            payload = flat_input
        if not isinstance(payload, dict):
            raise ValueError(f"Tool input must be a JSON object, got {type(payload).__name__}")
        return payload

    def _format_error(self, tool_name: str, message: str) -> str:
        return f"Error executing API call {tool_name}: {message}"
