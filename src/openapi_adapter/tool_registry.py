"""Tool registry for the OpenAPI Adapter."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import httpx

from .config import ConfigurationError, Settings, SpecConfig
from .models import Descriptor, OperationDescriptor, RegistryEntry
from .openapi import OpenAPILoader
from .schema import SchemaTranslator, build_input_schema


logger = logging.getLogger(__name__)


class ToolRegistry:
    def __init__(self, settings: Settings, openapi_loader: OpenAPILoader) -> None:
        self.settings = settings
        self.openapi_loader = openapi_loader
        self.security_headers: Dict[str, str] = {}
        self._entries: Dict[str, RegistryEntry] = {}

    @property
    def entries(self) -> List[RegistryEntry]:
        return list(self._entries.values())

    def get(self, tool_name: str) -> Optional[RegistryEntry]:
        return self._entries.get(tool_name)

    async def load_tools(self) -> List[RegistryEntry]:
        """Load every configured spec, failing on the first unusable one."""
        specs = self.settings.spec_configs()

        entries: Dict[str, RegistryEntry] = {}
        security_headers: Dict[str, str] = {}
        for spec_key, spec_config in specs.items():
            descriptor = await self.openapi_loader.load_descriptor(spec_config.url)
            if descriptor.security_header:
                security_headers[spec_key] = descriptor.security_header

            for entry in self.build_entries(spec_key, spec_config, descriptor):
                if entry.tool_name in entries:
                    logger.warning("Skipping duplicate tool name: %s", entry.tool_name)
                    continue
                entries[entry.tool_name] = entry
            logger.info("Loaded spec %s from %s", spec_key, spec_config.url)

        self._entries = entries
        self.security_headers = security_headers
        return self.entries

    def build_entries(
        self, spec_key: str, spec_config: SpecConfig, descriptor: Descriptor
    ) -> List[RegistryEntry]:
        base_url = self._resolve_base_url(spec_key, spec_config, descriptor)

        translator = SchemaTranslator(
            descriptor.type_table, max_ref_hops=self.settings.adapter_max_ref_hops
        )
        return [
            RegistryEntry(
                tool_name=f"{spec_key}_{operation.operation_id}",
                description=self._format_description(spec_key, operation),
                input_schema=build_input_schema(translator, operation),
                method=operation.method,
                path=operation.path,
                base_url=base_url,
                operation=operation,
                spec_key=spec_key,
                security_header=descriptor.security_header,
                api_key=spec_config.api_key,
            )
            for operation in descriptor.operations
        ]

    def _format_description(self, spec_key: str, operation: OperationDescriptor) -> str:
        description = operation.summary or operation.description or operation.operation_id
        return f"[{spec_key}] {description}"

    def _resolve_base_url(
        self, spec_key: str, spec_config: SpecConfig, descriptor: Descriptor
    ) -> str:
        base_url = spec_config.server_url or descriptor.server_url
        if not base_url:
            raise ConfigurationError(
                f"No server URL configured or declared for spec {spec_key} ({spec_config.url})"
            )
        if "{" in base_url:
            raise ConfigurationError(
                f"Server URL {base_url!r} for spec {spec_key} has unresolved variables"
            )

        # Relative server URLs are relative to where the descriptor was fetched from.
        if not spec_config.server_url and spec_config.url.startswith(("http://", "https://")):
            base_url = str(httpx.URL(spec_config.url).join(base_url))

        try:
            url = httpx.URL(base_url)
        except httpx.InvalidURL:
            url = None
        if url is None or url.scheme not in ("http", "https") or not url.host:
            raise ConfigurationError(
                f"Server URL {base_url!r} for spec {spec_key} is not an absolute http(s) URL; "
                "set server_url for this spec"
            )
        return base_url
