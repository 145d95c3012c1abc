"""Settings loading with an explicit or environment-selected YAML file.

Resolution order for the YAML path:
1) ``config_path`` argument
2) ``UHRP_CONFIG_FILE`` environment variable
3) ``~/.config/uhrp/uhrp.yaml``

A missing file is not an error; defaults and ``UHRP_*`` variables still apply,
for example ``UHRP_LOGGING__LEVEL=DEBUG``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic_settings import SettingsConfigDict

from .models import DEFAULT_CONFIG_PATH, UhrpSettings

CONFIG_FILE_ENV = "UHRP_CONFIG_FILE"


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    """Return the YAML path settings should be read from."""
    if config_path is not None:
        return Path(config_path)
    from_env = os.getenv(CONFIG_FILE_ENV, "").strip()
    if from_env:
        return Path(from_env)
    return DEFAULT_CONFIG_PATH


def load_settings(
    *, config_path: str | Path | None = None, **overrides: Any
) -> UhrpSettings:
    """Load settings from init overrides, environment and the YAML file."""
    path = resolve_config_path(config_path)
    file_bound = type(
        "FileBoundUhrpSettings",
        (UhrpSettings,),
        {
            "model_config": SettingsConfigDict(
                **{**UhrpSettings.model_config, "yaml_file": path}
            )
        },
    )
    return file_bound(**overrides)
