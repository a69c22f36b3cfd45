"""Configuration for the OpenAPI Adapter."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    pass


class SpecConfig(BaseModel):
    url: str
    server_url: Optional[str] = None
    # Static secret for the descriptor's apiKey header. Supplying it is the
    # host's job; callers may still send the header themselves.
    api_key: Optional[str] = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    service_name: str = Field(default="openapi-adapter")

    adapter_transport: str = Field(default="stdio")
    adapter_host: str = Field(default="0.0.0.0")
    adapter_port: int = Field(default=8000)
    adapter_auth_token: Optional[str] = Field(default=None)

    adapter_request_timeout_seconds: float = Field(default=30)
    adapter_max_connections: int = Field(default=100)
    adapter_max_ref_hops: int = Field(default=5)

    adapter_specs: Dict[str, SpecConfig] = Field(default_factory=dict)
    adapter_specs_file: Optional[str] = Field(default=None)

    adapter_log_level: str = Field(default="INFO")

    def spec_configs(self) -> Dict[str, SpecConfig]:
        specs: Dict[str, SpecConfig] = dict(self.adapter_specs)
        if self.adapter_specs_file:
            specs.update(_read_specs_file(self.adapter_specs_file))
        if not specs:
            raise ConfigurationError("No OpenAPI specifications configured")
        return specs


def _read_specs_file(path: str) -> Dict[str, SpecConfig]:
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Failed to read specs file {path}: {exc}") from exc

    specs = data.get("specs") if isinstance(data, dict) else None
    if not isinstance(specs, dict):
        raise ConfigurationError(f"Specs file {path} has no 'specs' mapping")
    try:
        return {str(key): SpecConfig.model_validate(value) for key, value in specs.items()}
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid spec entry in {path}: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
