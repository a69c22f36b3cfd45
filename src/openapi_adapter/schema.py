"""Translation of OpenAPI type definitions into self-contained JSON schemas."""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from .models import OperationDescriptor, SchemaKind


logger = logging.getLogger(__name__)


DEFAULT_MAX_REF_HOPS = 5

_REF_PREFIXES = ("#/components/schemas/", "#/definitions/")

_DECLARED_KINDS = {
    "string": SchemaKind.STRING,
    "integer": SchemaKind.INTEGER,
    "number": SchemaKind.NUMBER,
    "boolean": SchemaKind.BOOLEAN,
    "array": SchemaKind.ARRAY,
    "object": SchemaKind.OBJECT,
}

_STRING_CONSTRAINTS = ("minLength", "maxLength", "pattern", "enum", "format")
_NUMERIC_CONSTRAINTS = (
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "multipleOf",
    "enum",
    "format",
)
_NUMERIC_BOUNDS = _NUMERIC_CONSTRAINTS[:5]
_ARRAY_CONSTRAINTS = ("minItems", "maxItems", "uniqueItems")
_COMMON_ATTRIBUTES = (
    "description",
    "title",
    "default",
    "example",
    "nullable",
    "readOnly",
    "writeOnly",
)


def generic_object() -> Dict[str, Any]:
    return {"type": "object"}


def declared_types(schema: Dict[str, Any]) -> List[str]:
    value = schema.get("type")
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(item) for item in value]
    return []


def classify_schema(schema: Dict[str, Any]) -> SchemaKind:
    """Pick the shape a raw schema mapping is translated as.

    An object with properties wins over composition keywords, matching how
    most OpenAPI parsers model ``type: object`` schemas that also carry
    ``allOf``. A ``type`` list (OpenAPI 3.1 style) is always generic.
    """
    if "$ref" in schema:
        return SchemaKind.REFERENCE

    declared = schema.get("type")
    properties = schema.get("properties")
    has_properties = isinstance(properties, dict) and bool(properties)

    if "object" in declared_types(schema) and has_properties:
        return SchemaKind.OBJECT
    if any(key in schema for key in ("allOf", "anyOf", "oneOf")):
        return SchemaKind.COMPOSED
    if "not" in schema and declared is None:
        return SchemaKind.COMPOSED
    if isinstance(declared, str) and declared in _DECLARED_KINDS:
        return _DECLARED_KINDS[declared]
    if declared is None and has_properties:
        return SchemaKind.OBJECT
    return SchemaKind.GENERIC


class SchemaTranslator:
    """Converts schemas of one descriptor, caching resolved references.

    One translator is one translation session: the reference cache is keyed
    by reference string only, so a translator must never be shared between
    descriptors.
    """

    def __init__(
        self,
        type_table: Optional[Dict[str, Any]] = None,
        max_ref_hops: int = DEFAULT_MAX_REF_HOPS,
    ) -> None:
        self.type_table = type_table or {}
        self.max_ref_hops = max_ref_hops
        self._resolved: Dict[str, Any] = {}
        self._expanding: Set[str] = set()

    def reset(self) -> None:
        self._resolved.clear()

    @property
    def cached_references(self) -> List[str]:
        return list(self._resolved)

    def convert(self, schema: Any) -> Dict[str, Any]:
        if schema is None:
            return generic_object()
        if not isinstance(schema, dict):
            logger.warning(
                "Malformed schema of type %s, returning generic object", type(schema).__name__
            )
            return generic_object()

        kind = classify_schema(schema)
        if kind is SchemaKind.REFERENCE:
            return self._convert_reference(schema["$ref"])

        converted: Dict[str, Any] = {}
        if kind is SchemaKind.STRING:
            converted["type"] = "string"
            _copy_keys(schema, converted, _STRING_CONSTRAINTS)
        elif kind in (SchemaKind.INTEGER, SchemaKind.NUMBER):
            converted["type"] = kind.value
            _copy_keys(schema, converted, _NUMERIC_CONSTRAINTS)
        elif kind is SchemaKind.BOOLEAN:
            converted["type"] = "boolean"
            _copy_keys(schema, converted, ("enum",))
        elif kind is SchemaKind.ARRAY:
            converted["type"] = "array"
            self._convert_array(schema, converted)
        elif kind is SchemaKind.OBJECT:
            self._convert_object(schema, converted)
        elif kind is SchemaKind.COMPOSED:
            self._convert_composed(schema, converted)
        else:
            self._convert_generic(schema, converted)

        for key in _COMMON_ATTRIBUTES:
            if key not in converted and schema.get(key) is not None:
                converted[key] = copy.deepcopy(schema[key])
        return converted

    def _convert_reference(self, ref: Any) -> Dict[str, Any]:
        if not isinstance(ref, str):
            logger.warning("Malformed reference %r, returning generic object", ref)
            return generic_object()

        target = self._resolve(ref)
        if target is None:
            return generic_object()

        if ref in self._expanding:
            logger.warning("Recursive reference %s, returning generic object", ref)
            return generic_object()

        self._expanding.add(ref)
        try:
            return self.convert(target)
        finally:
            self._expanding.discard(ref)

    def _resolve(self, ref: str) -> Any:
        if ref in self._resolved:
            logger.debug("Found cached reference: %s", ref)
            return self._resolved[ref]

        current = ref
        hops = 0
        while True:
            hops += 1
            if hops > self.max_ref_hops:
                logger.warning(
                    "Reference chain from %s exceeds %s hops, returning generic object",
                    ref,
                    self.max_ref_hops,
                )
                return None
            target = self._lookup(current)
            if target is None:
                logger.warning("Could not resolve reference: %s, returning generic object", current)
                return None
            if isinstance(target, dict) and isinstance(target.get("$ref"), str):
                current = target["$ref"]
                logger.debug("Following nested reference: %s", current)
                continue
            break

        self._resolved[ref] = target
        return target

    def _lookup(self, ref: str) -> Any:
        for prefix in _REF_PREFIXES:
            if ref.startswith(prefix):
                name = ref[len(prefix):].replace("~1", "/").replace("~0", "~")
                return self.type_table.get(name)
        return None

    def _convert_array(self, schema: Dict[str, Any], converted: Dict[str, Any]) -> None:
        if schema.get("items") is not None:
            converted["items"] = self.convert(schema["items"])
        _copy_keys(schema, converted, _ARRAY_CONSTRAINTS)

    def _convert_object(self, schema: Dict[str, Any], converted: Dict[str, Any]) -> None:
        converted["type"] = "object"

        properties = schema.get("properties")
        if isinstance(properties, dict) and properties:
            converted["properties"] = {
                str(name): self.convert(value)
                for name, value in properties.items()
                if isinstance(value, dict)
            }

        required = schema.get("required")
        if isinstance(required, list) and required:
            converted["required"] = list(required)

        _copy_keys(schema, converted, ("minProperties", "maxProperties"))

        additional = schema.get("additionalProperties")
        if isinstance(additional, bool):
            converted["additionalProperties"] = additional
        elif isinstance(additional, dict):
            converted["additionalProperties"] = self.convert(additional)

    def _convert_composed(self, schema: Dict[str, Any], converted: Dict[str, Any]) -> None:
        all_of = schema.get("allOf")
        if isinstance(all_of, list) and all_of:
            properties: Dict[str, Any] = {}
            required: List[str] = []
            for branch in all_of:
                for part in _object_parts(self.convert(branch)):
                    branch_properties = part.get("properties")
                    if isinstance(branch_properties, dict):
                        properties.update(branch_properties)
                    _extend_unique(required, part.get("required"))

            merged: Dict[str, Any] = {"type": "object", "properties": properties}
            if required:
                merged["required"] = required
            converted["allOf"] = [merged]

        for key in ("anyOf", "oneOf"):
            alternatives = schema.get(key)
            if isinstance(alternatives, list) and alternatives:
                converted[key] = [self.convert(alternative) for alternative in alternatives]

        if schema.get("not") is not None:
            converted["not"] = self.convert(schema["not"])

    def _convert_generic(self, schema: Dict[str, Any], converted: Dict[str, Any]) -> None:
        types = declared_types(schema)
        if types:
            converted["type"] = types[0]

        if "string" in types:
            _copy_keys(schema, converted, ("minLength", "maxLength", "pattern", "format"))
        if "number" in types or "integer" in types:
            _copy_keys(schema, converted, _NUMERIC_BOUNDS + ("format",))
        if "array" in types:
            self._convert_array(schema, converted)

        _copy_keys(schema, converted, ("description", "title", "default", "example", "enum"))


def convert_schema(
    type_table: Optional[Dict[str, Any]],
    schema: Any,
    max_ref_hops: int = DEFAULT_MAX_REF_HOPS,
) -> Dict[str, Any]:
    """Convert one schema in a fresh translation session."""
    return SchemaTranslator(type_table, max_ref_hops=max_ref_hops).convert(schema)


def build_input_schema_dict(
    translator: SchemaTranslator, operation: Optional[OperationDescriptor]
) -> Dict[str, Any]:
    """Flatten an operation's parameters and JSON body into one object schema.

    Parameters come first in declaration order, then the body properties,
    which are hoisted to the top level. A body property sharing a parameter's
    name replaces the parameter's schema in place.
    """
    schema: Dict[str, Any] = {"type": "object"}
    if operation is None:
        return schema

    properties: Dict[str, Any] = {}
    required: List[str] = []

    for parameter in operation.parameters:
        converted = translator.convert(parameter.schema)
        if parameter.description and "description" not in converted:
            converted["description"] = parameter.description
        properties[parameter.name] = converted
        if parameter.required:
            _extend_unique(required, [parameter.name])

    body_schema = operation.request_body.json_schema if operation.request_body else None
    if body_schema is not None:
        body = translator.convert(body_schema)
        branches = body.get("allOf") if isinstance(body.get("allOf"), list) else []

        if isinstance(body.get("properties"), dict):
            properties.update(body["properties"])
        else:
            for branch in branches:
                if isinstance(branch, dict) and isinstance(branch.get("properties"), dict):
                    properties.update(branch["properties"])

        if isinstance(body.get("required"), list):
            _extend_unique(required, body["required"])
        else:
            for branch in branches:
                if isinstance(branch, dict):
                    _extend_unique(required, branch.get("required"))

    if properties:
        schema["properties"] = properties
    if required:
        schema["required"] = required
    return schema


def build_input_schema(
    translator: SchemaTranslator, operation: Optional[OperationDescriptor]
) -> str:
    return json.dumps(build_input_schema_dict(translator, operation), separators=(",", ":"))


def _copy_keys(source: Dict[str, Any], target: Dict[str, Any], keys: Iterable[str]) -> None:
    for key in keys:
        value = source.get(key)
        if value is None:
            continue
        if key == "enum" and not value:
            continue
        target[key] = copy.deepcopy(value)


def _object_parts(converted: Dict[str, Any]) -> List[Dict[str, Any]]:
    parts = [converted]
    nested = converted.get("allOf")
    if isinstance(nested, list):
        parts.extend(part for part in nested if isinstance(part, dict))
    return parts


def _extend_unique(target: List[str], names: Any) -> None:
    if not isinstance(names, list):
        return
    for name in names:
        if isinstance(name, str) and name not in target:
            target.append(name)
