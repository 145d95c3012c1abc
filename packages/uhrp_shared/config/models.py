"""Typed configuration models for the UHRP storage host."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "uhrp" / "uhrp.yaml"

_COMPONENT_KINDS = frozenset({"service", "adapter", "substrate"})


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "uhrp-storage-host"
    environment: str = "dev"


class HttpSettings(BaseModel):
    """Bind address and metadata for the public HTTP runtime."""

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    title: str = "UHRP Storage Host"


class ComponentNamespaceSettings(BaseModel):
    """Free-form map of ``components.<kind>.<name>`` settings objects."""

    model_config = ConfigDict(extra="allow")


class ComponentsSettings(BaseModel):
    """Grouped component settings: ``service``, ``adapter`` and ``substrate``."""

    model_config = ConfigDict(extra="forbid")

    service: ComponentNamespaceSettings = Field(
        default_factory=ComponentNamespaceSettings
    )
    adapter: ComponentNamespaceSettings = Field(
        default_factory=ComponentNamespaceSettings
    )
    substrate: ComponentNamespaceSettings = Field(
        default_factory=ComponentNamespaceSettings
    )

    @model_validator(mode="before")
    @classmethod
    def _reject_flat_component_keys(cls, value: object) -> object:
        """Point ``components.service_x`` style keys at their grouped form."""
        if not isinstance(value, dict):
            return value
        for key in value:
            kind, separator, name = str(key).partition("_")
            if separator and kind in _COMPONENT_KINDS:
                raise ValueError(
                    f"components.{key} is invalid; use components.{kind}.{name} instead"
                )
        return value


class UhrpSettings(BaseSettings):
    """Root runtime settings; precedence is init > env > YAML > defaults."""

    model_config = SettingsConfigDict(
        env_prefix="UHRP_",
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
        yaml_file=None,
        yaml_file_encoding="utf-8",
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    components: ComponentsSettings = Field(default_factory=ComponentsSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        del dotenv_settings, file_secret_settings
        return (init_settings, env_settings, YamlConfigSettingsSource(settings_cls))


TComponentSettings = TypeVar("TComponentSettings", bound=BaseModel)


def resolve_component_settings(
    *,
    settings: UhrpSettings,
    component_id: str,
    model: type[TComponentSettings],
) -> TComponentSettings:
    """Validate ``components.<kind>.<name>`` into one component settings model.

    ``component_id`` is the registered id, for example
    ``service_advertisement_authority`` resolves
    ``components.service.advertisement_authority``.
    """
    kind, separator, name = component_id.partition("_")
    if not separator or kind not in _COMPONENT_KINDS:
        raise ValueError(f"component id '{component_id}' has no settings namespace")

    namespace = getattr(settings.components, kind).model_dump(mode="python")
    resolved = namespace.get(name, {})
    if not isinstance(resolved, dict):
        raise TypeError(f"components.{kind}.{name} must resolve to an object mapping")
    return model.model_validate(resolved)
