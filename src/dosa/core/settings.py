"""Environment-driven settings for dosa applications.

``DosaSettings`` names the addressing (scope, name prefix), the connector to
build and its options, and the logging setup. Values come from ``DOSA_*``
environment variables or a ``.env`` file; ``connector_options`` accepts JSON
(``DOSA_CONNECTOR_OPTIONS='{"path": "data.db"}'``).

Examples:
    >>> settings = DosaSettings(scope="acct", name_prefix="billing", connector="sqlite")
    >>> settings.connector
    'sqlite'

Tags:
    settings, configuration, pydantic, environment, dosa-core

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dosa.core.errors import InvalidArgumentError
from dosa.core.fqn import to_fqn


class DosaSettings(BaseSettings):
    """Settings shared by every dosa application.

    Fields
    ──────
    scope              : Tenant namespace for every entity
    name_prefix        : Application namespace nested under the scope
    connector          : Backend identifier looked up in the connector registry
    connector_options  : Backend-specific configuration mapping
    log_level          : Structlog log level
    log_json           : JSON logs (True), console (False), auto-detect (None)
    """

    model_config = SettingsConfigDict(
        env_prefix="DOSA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Addressing ───────────────────────────────────────────────
    scope: str = Field(default="default", min_length=1)
    name_prefix: str = Field(default="dosa", min_length=1)

    # ── Backend ──────────────────────────────────────────────────
    connector: str = Field(default="memory", description="Connector registry identifier")
    connector_options: dict[str, Any] = Field(default_factory=dict)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None

    @field_validator("name_prefix")
    @classmethod
    def check_name_prefix(cls, value: str) -> str:
        try:
            to_fqn(value)
        except InvalidArgumentError as e:
            raise ValueError(str(e)) from e
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return level


__all__ = [
    "DosaSettings",
]
