"""Settings for the hotels-api service.

Centralized configuration for the service and its HTML sanitization pipeline.
All settings are loaded from environment variables with the HOTELS_API_ prefix.
"""

from __future__ import annotations

import re

from pydantic import field_validator
from pydantic_settings import BaseSettings

DEFAULT_SCOPE_PATTERN = r"hotels_api\.(?:.+\.)?api(?:\..+)?"

DEFAULT_WARNING_MESSAGE = (
    "HTML sanitized in field '{fieldName}' of {modelClassName} "
    "({controllerClassName}.{controllerMethodName}): "
    "rejected tags {rejectedTags} rejected attributes {rejectedAttributes}"
)


class Settings(BaseSettings):
    """hotels-api configuration.

    All fields can be overridden by environment variables prefixed with
    ``HOTELS_API_``.  For example, ``HOTELS_API_PORT=9999`` overrides
    the default port.
    """

    # ── Service identity ────────────────────────────────────────────
    SERVICE_NAME: str = "hotels-api"
    SERVICE_VERSION: str = "0.1.0"
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # ── Logging ─────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    # ── HTML sanitization ───────────────────────────────────────────
    SANITIZE_ENABLED: bool = True
    # Matched (fullmatch) against the handler's module path
    SANITIZE_SCOPE_PATTERN: str = DEFAULT_SCOPE_PATTERN
    SANITIZE_POLICY_PATH: str = "config/sanitize_policy.yaml"
    SANITIZE_WARNING_MESSAGE: str = DEFAULT_WARNING_MESSAGE
    SANITIZE_CACHE_MAX_ENTRIES: int = 0  # 0 = unbounded
    SANITIZE_SECOND_PASS: bool = True

    # ── Audit ───────────────────────────────────────────────────────
    AUDIT_LOG_PATH: str = ""  # JSONL discard trail, disabled when empty
    AUDIT_QUEUE_SIZE: int = 1000

    model_config = {
        "env_prefix": "HOTELS_API_",
    }

    @field_validator("SANITIZE_SCOPE_PATTERN")
    @classmethod
    def _check_scope_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"SANITIZE_SCOPE_PATTERN is not a valid regex: {exc}") from exc
        return v

    @field_validator("SANITIZE_CACHE_MAX_ENTRIES", "AUDIT_QUEUE_SIZE")
    @classmethod
    def _check_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v
