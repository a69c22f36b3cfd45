"""Internal models for API descriptors and registered tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ParameterLocation(str, Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


class SchemaKind(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    COMPOSED = "composed"
    REFERENCE = "reference"
    GENERIC = "generic"


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    location: ParameterLocation
    required: bool = False
    schema: Optional[Dict[str, Any]] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class RequestBodyDescriptor:
    content: Dict[str, Optional[Dict[str, Any]]] = field(default_factory=dict)
    required: bool = False

    @property
    def has_json(self) -> bool:
        return self._json_media_type() is not None

    @property
    def json_schema(self) -> Optional[Dict[str, Any]]:
        media_type = self._json_media_type()
        if media_type is None:
            return None
        return self.content[media_type]

    def _json_media_type(self) -> Optional[str]:
        for media_type in self.content:
            base = media_type.split(";", 1)[0].strip().lower()
            if base == "application/json" or base.endswith("+json"):
                return media_type
        return None


@dataclass(frozen=True)
class OperationDescriptor:
    operation_id: str
    method: str
    path: str
    summary: Optional[str] = None
    description: Optional[str] = None
    parameters: List[ParameterDescriptor] = field(default_factory=list)
    request_body: Optional[RequestBodyDescriptor] = None

    @property
    def has_json_body(self) -> bool:
        return self.request_body is not None and self.request_body.has_json


@dataclass(frozen=True)
class Descriptor:
    source: str
    title: Optional[str]
    operations: List[OperationDescriptor]
    type_table: Dict[str, Any]
    server_url: Optional[str] = None
    security_header: Optional[str] = None


@dataclass(frozen=True)
class RegistryEntry:
    tool_name: str
    description: str
    input_schema: str
    method: str
    path: str
    base_url: str
    operation: OperationDescriptor
    spec_key: str
    security_header: Optional[str] = None
    api_key: Optional[str] = field(default=None, repr=False)


@dataclass
class RoutedParameters:
    path: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    header: Dict[str, Any] = field(default_factory=dict)
    body: Dict[str, Any] = field(default_factory=dict)
    send_body: bool = False


@dataclass(frozen=True)
class ApiRequest:
    tool_name: str
    base_url: str
    path: str
    method: str
    path_params: Dict[str, Any]
    query_params: Dict[str, Any]
    header_params: Dict[str, Any]
    body: Optional[Dict[str, Any]] = None
