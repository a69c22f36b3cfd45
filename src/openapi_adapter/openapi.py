"""OpenAPI spec loader and operation parser."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
import yaml

from .config import ConfigurationError
from .models import (
    Descriptor,
    OperationDescriptor,
    ParameterDescriptor,
    ParameterLocation,
    RequestBodyDescriptor,
)


logger = logging.getLogger(__name__)


HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

_PARAMETER_REF_PREFIXES = ("#/components/parameters/", "#/parameters/")
_REQUEST_BODY_REF_PREFIX = "#/components/requestBodies/"
_INLINE_SCHEMA_KEYS = (
    "type",
    "format",
    "items",
    "enum",
    "default",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "multipleOf",
    "minLength",
    "maxLength",
    "pattern",
    "minItems",
    "maxItems",
    "uniqueItems",
)


class DescriptorError(ConfigurationError):
    pass


class OpenAPILoader:
    def __init__(self, timeout_seconds: float = 30) -> None:
        self.timeout_seconds = timeout_seconds

    async def load_descriptor(self, location: str) -> Descriptor:
        text = await self.read_source(location)
        document = parse_document(text, location)
        return parse_descriptor(document, location)

    async def read_source(self, location: str) -> str:
        if location.startswith(("http://", "https://")):
            try:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await client.get(location)
                    response.raise_for_status()
            except httpx.HTTPError as exc:
                raise DescriptorError(f"Failed to fetch OpenAPI spec {location}: {exc}") from exc
            return response.text

        path = Path(location.removeprefix("file://"))
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DescriptorError(f"Failed to read OpenAPI spec {location}: {exc}") from exc


def parse_document(text: str, source: str = "<string>") -> Dict[str, Any]:
    """Parse JSON or YAML text into a mapping."""
    try:
        if text.lstrip().startswith(("{", "[")):
            document = json.loads(text)
        else:
            document = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise DescriptorError(f"Failed to parse OpenAPI spec {source}: {exc}") from exc

    if not isinstance(document, dict):
        raise DescriptorError(f"OpenAPI spec {source} is not a mapping")
    return document


def parse_descriptor(document: Dict[str, Any], source: str = "<string>") -> Descriptor:
    if not ("openapi" in document or "swagger" in document):
        raise DescriptorError(f"{source} is not an OpenAPI or Swagger document")

    paths = document.get("paths")
    if paths is not None and not isinstance(paths, dict):
        raise DescriptorError(f"OpenAPI spec {source} has malformed paths")

    operations = extract_operations(document)
    info = document.get("info") or {}
    return Descriptor(
        source=source,
        title=info.get("title") if isinstance(info, dict) else None,
        operations=operations,
        type_table=_type_table(document),
        server_url=extract_server_url(document),
        security_header=extract_security_header(document),
    )


def extract_operations(document: Dict[str, Any]) -> List[OperationDescriptor]:
    operations: List[OperationDescriptor] = []
    paths = document.get("paths") or {}

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            continue
        shared_parameters = path_item.get("parameters") or []
        for method, operation in path_item.items():
            if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            operation_id = operation.get("operationId") or _fallback_operation_id(method, path)
            parameters, body = _collect_parameters(
                document, [*shared_parameters, *(operation.get("parameters") or [])]
            )
            request_body = _parse_request_body(document, operation.get("requestBody")) or body

            operations.append(
                OperationDescriptor(
                    operation_id=operation_id,
                    method=method.upper(),
                    path=path,
                    summary=operation.get("summary"),
                    description=operation.get("description"),
                    parameters=parameters,
                    request_body=request_body,
                )
            )

    return operations


def extract_server_url(document: Dict[str, Any]) -> Optional[str]:
    servers = document.get("servers") or []
    if servers and isinstance(servers[0], dict):
        return _expand_server_variables(servers[0])

    host = document.get("host")
    if host:
        schemes = document.get("schemes") or ["https"]
        return f"{schemes[0]}://{host}{document.get('basePath', '')}"
    return None


def _expand_server_variables(server: Dict[str, Any]) -> Optional[str]:
    url = server.get("url")
    variables = server.get("variables") or {}
    if not isinstance(url, str) or not isinstance(variables, dict):
        return url
    for name, variable in variables.items():
        if isinstance(variable, dict) and variable.get("default") is not None:
            url = url.replace(f"{{{name}}}", str(variable["default"]))
    return url


def extract_security_header(document: Dict[str, Any]) -> Optional[str]:
    components = document.get("components") or {}
    schemes = components.get("securitySchemes") or document.get("securityDefinitions") or {}
    for scheme in schemes.values():
        if not isinstance(scheme, dict):
            continue
        if scheme.get("type") == "apiKey" and str(scheme.get("in", "")).lower() == "header":
            return scheme.get("name")
    return None


def _type_table(document: Dict[str, Any]) -> Dict[str, Any]:
    components = document.get("components") or {}
    return components.get("schemas") or document.get("definitions") or {}


def _collect_parameters(
    document: Dict[str, Any], raw_parameters: List[Any]
) -> Tuple[List[ParameterDescriptor], Optional[RequestBodyDescriptor]]:
    merged: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for raw in raw_parameters:
        parameter = _resolve_component(document, raw, _PARAMETER_REF_PREFIXES)
        if not isinstance(parameter, dict) or not parameter.get("name"):
            continue
        merged[(parameter["name"], str(parameter.get("in", "query")))] = parameter

    parameters: List[ParameterDescriptor] = []
    body: Optional[RequestBodyDescriptor] = None
    for (name, location), parameter in merged.items():
        if location == "body":
            body = RequestBodyDescriptor(
                content={"application/json": parameter.get("schema")},
                required=bool(parameter.get("required", False)),
            )
            continue
        if location == "formData":
            logger.debug("Skipping formData parameter %s", name)
            continue
        try:
            parsed_location = ParameterLocation(location)
        except ValueError:
            logger.warning("Skipping parameter %s with unknown location %s", name, location)
            continue
        parameters.append(
            ParameterDescriptor(
                name=name,
                location=parsed_location,
                required=bool(parameter.get("required", False)),
                schema=_parameter_schema(parameter),
                description=parameter.get("description"),
            )
        )
    return parameters, body


def _parameter_schema(parameter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    if isinstance(parameter.get("schema"), dict):
        return parameter["schema"]

    content = parameter.get("content")
    if isinstance(content, dict):
        for media in content.values():
            if isinstance(media, dict) and isinstance(media.get("schema"), dict):
                return media["schema"]

    inline = {key: parameter[key] for key in _INLINE_SCHEMA_KEYS if key in parameter}
    return inline or None


def _parse_request_body(document: Dict[str, Any], raw: Any) -> Optional[RequestBodyDescriptor]:
    body = _resolve_component(document, raw, (_REQUEST_BODY_REF_PREFIX,))
    if not isinstance(body, dict):
        return None
    content = body.get("content") or {}
    if not isinstance(content, dict):
        return None
    return RequestBodyDescriptor(
        content={
            media_type: media.get("schema") if isinstance(media, dict) else None
            for media_type, media in content.items()
        },
        required=bool(body.get("required", False)),
    )


def _resolve_component(document: Dict[str, Any], raw: Any, prefixes: Tuple[str, ...]) -> Any:
    if not isinstance(raw, dict) or "$ref" not in raw:
        return raw
    ref = raw["$ref"]
    for prefix in prefixes:
        if isinstance(ref, str) and ref.startswith(prefix):
            node: Any = document
            for part in prefix.strip("#/").split("/"):
                node = node.get(part) if isinstance(node, dict) else None
            name = ref[len(prefix):]
            if isinstance(node, dict) and name in node:
                return node[name]
    logger.warning("Could not resolve component reference: %s", ref)
    return None


def _fallback_operation_id(method: str, path: str) -> str:
    sanitized = path.strip("/").replace("/", "_").replace("{", "").replace("}", "")
    return f"{method.lower()}_{sanitized or 'root'}"
