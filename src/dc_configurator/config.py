# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Application configuration model and YAML loader."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

from dc_configurator.store import DocumentStore, get_store


# ---------------------------------------------------------------------------
# Credential handling
# ---------------------------------------------------------------------------

class CredentialRef(BaseModel):
    """Where to find a secret: an environment variable, a file, or inline."""

    env_var: str | None = Field(default=None, description="Environment variable name")
    file_path: str | None = Field(default=None, description="Path to credentials file")
    value: str | None = Field(default=None, description="Inline value (dev only)")

    def resolve(self) -> str:
        """Resolve the credential to a plain string.

        Sources are tried in order: environment variable, file, inline value.
        """
        if self.env_var:
            env_value = os.environ.get(self.env_var)
            if env_value:
                return env_value
        if self.file_path:
            path = Path(self.file_path).expanduser()
            if path.exists():
                return path.read_text().strip()
        if self.value:
            return self.value
        raise ValueError(
            "Could not resolve credential: none of env_var, file_path, or value produced a result"
        )


# ---------------------------------------------------------------------------
# Store configuration
# ---------------------------------------------------------------------------

class StoreConfig(BaseModel):
    """Which document store to use and how to reach it."""

    backend: Literal["memory", "json", "firestore"] = Field(default="json")
    path: str | None = Field(
        default=None, description="Base directory for the json backend"
    )
    credentials: CredentialRef | None = Field(
        default=None, description="Firestore service-account JSON (path or content)"
    )


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

class AppConfig(BaseModel):
    """Top-level configuration loaded from YAML."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    cache_ttl_seconds: float = Field(default=300, ge=0)
    autosave_delay_seconds: float = Field(default=2.0, ge=0)
    admin_users: list[str] = Field(
        default_factory=list,
        description="User ids allowed to read any project's calculations",
    )
    output_dir: str | None = Field(default=None)


def load_config(path: str | Path) -> AppConfig:
    """Load an AppConfig from a YAML file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    return AppConfig.model_validate(raw)


def build_store(config: AppConfig) -> DocumentStore:
    """Instantiate the document store described by *config*."""
    store_cfg = config.store
    if store_cfg.backend == "firestore":
        service_account = None
        if store_cfg.credentials is not None:
            service_account = store_cfg.credentials.resolve()
        return get_store("firestore", service_account=service_account)
    if store_cfg.backend == "json":
        return get_store("json", path=store_cfg.path)
    return get_store("memory")
