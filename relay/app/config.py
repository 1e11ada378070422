"""
Configuration module for the Retell relay.

This module uses Pydantic Settings to load and validate environment variables
for the upstream credential, CORS policy, error exposure policy and the
fixed values the relay stamps onto outbound requests.

Environment variables are loaded from .env file or system environment.
The credential is never required at import time: a missing RETELL_API_KEY
is reported per request as a server configuration error.
"""

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ALLOWED_ORIGINS = ",".join([
    "https://jrsherlock.github.io",
    "https://wellabe-demo.vercel.app",
    "http://localhost:3000",
    "http://localhost:8000",
])


class OriginMode(str, Enum):
    """How the relay announces CORS origin permission."""

    ALLOW_LIST = "allow_list"
    OPEN = "open"


class ErrorDetailMode(str, Enum):
    """How much upstream and internal detail reaches the caller."""

    REDACTED = "redacted"
    VERBOSE = "verbose"


class SecurityPolicy(BaseModel):
    """Bundle of the two policy switches consulted by the proxy handler."""

    origin_mode: OriginMode = OriginMode.ALLOW_LIST
    error_detail: ErrorDetailMode = ErrorDetailMode.REDACTED

    @property
    def exposes_details(self) -> bool:
        return self.error_detail is ErrorDetailMode.VERBOSE


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Holds the upstream credential, the security policy and the constants
    attached to forwarded requests.
    """

    # =========================================================================
    # Upstream API
    # =========================================================================

    RETELL_API_KEY: Optional[str] = Field(
        None,
        description="Bearer credential for the Retell API (kept server-side)",
    )

    RETELL_API_BASE_URL: str = Field(
        default="https://api.retellai.com",
        description="Base URL of the Retell API",
    )

    UPSTREAM_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        description="Timeout applied to the single upstream call",
        gt=0,
    )

    USER_AGENT: str = Field(
        default="Wellabe-Demo-Proxy/1.0",
        description="User-Agent sent on every upstream request",
    )

    SOURCE_TAG: str = Field(
        default="wellabe-demo",
        description="Value stamped into forwarded metadata as 'source'",
    )

    # =========================================================================
    # Security Policy
    # =========================================================================

    ALLOWED_ORIGINS: Optional[str] = Field(
        DEFAULT_ALLOWED_ORIGINS,
        description="Comma-separated list of origins echoed back in allow-list mode",
    )

    ORIGIN_POLICY: OriginMode = Field(
        default=OriginMode.ALLOW_LIST,
        description="'allow_list' (production) or 'open' (announces '*')",
    )

    ERROR_DETAIL: ErrorDetailMode = Field(
        default=ErrorDetailMode.REDACTED,
        description="'redacted' (production) or 'verbose' (legacy pass-through)",
    )

    CORS_MAX_AGE_SECONDS: int = Field(
        default=86400,
        description="Preflight cache lifetime announced to browsers",
        ge=0,
    )

    # =========================================================================
    # Request Validation
    # =========================================================================

    AGENT_ID_PREFIX: str = Field(
        default="agent_",
        description="Required prefix of agent identifiers",
    )

    AGENT_ID_MIN_LENGTH: int = Field(
        default=20,
        description="Minimum length of agent identifiers",
        ge=1,
    )

    RETRY_AFTER_SECONDS: int = Field(
        default=30,
        description="Retry hint returned when the upstream service fails",
        ge=1,
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    PROXY_PATH: str = Field(
        default="/api/retell-proxy",
        description="Path the proxy handler is mounted on",
    )

    RELAY_HOST: str = Field(default="0.0.0.0", description="Host to bind the relay server")

    RELAY_PORT: int = Field(default=8080, description="Port to bind the relay server", ge=1, le=65535)

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS as a list.

        Returns:
            List of allowed origin URLs, or empty list if not configured.
        """
        if not self.ALLOWED_ORIGINS:
            return []

        return [
            origin.strip().rstrip("/")
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def security_policy(self) -> SecurityPolicy:
        return SecurityPolicy(
            origin_mode=self.ORIGIN_POLICY,
            error_detail=self.ERROR_DETAIL,
        )

    @property
    def base_url_str(self) -> str:
        return self.RETELL_API_BASE_URL.rstrip("/")

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}, got: {v}")
        return v

    @field_validator("PROXY_PATH")
    @classmethod
    def validate_proxy_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"PROXY_PATH must start with '/', got: {v}")
        return v

    @field_validator("RETELL_API_KEY")
    @classmethod
    def blank_key_is_missing(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Cached so the environment is read once per process. Used as a FastAPI
    dependency; tests replace it through ``app.dependency_overrides``.
    """
    return Settings()


def validate_configuration(settings: Optional[Settings] = None) -> dict:
    """
    Validate critical configuration settings and return a status report.

    The report never contains the credential itself.

    Example:
        >>> status = validate_configuration()
        >>> if not status["valid"]:
        ...     print(status["errors"])
    """
    settings = settings or get_settings()
    errors = []
    warnings = []

    if not settings.RETELL_API_KEY:
        errors.append("RETELL_API_KEY is not set (every proxied request will fail)")

    if settings.ORIGIN_POLICY is OriginMode.OPEN:
        warnings.append("ORIGIN_POLICY is 'open': any site may call the relay from a browser")
    elif not settings.allowed_origins_list:
        warnings.append("ALLOWED_ORIGINS is empty: browsers will block every cross-origin call")

    if settings.ERROR_DETAIL is ErrorDetailMode.VERBOSE:
        warnings.append("ERROR_DETAIL is 'verbose': upstream errors and bodies reach callers")

    for origin in settings.allowed_origins_list:
        if origin.startswith("http://") and "localhost" not in origin and "127.0.0.1" not in origin:
            warnings.append(f"Allowed origin uses plain HTTP: {origin}")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "origin_policy": settings.ORIGIN_POLICY.value,
        "error_detail": settings.ERROR_DETAIL.value,
        "allowed_origins": settings.allowed_origins_list,
    }


if __name__ == "__main__":
    """
    Run this module directly to validate your .env configuration:
        python -m relay.app.config
    """
    print("=" * 80)
    print("RELAY CONFIGURATION")
    print("=" * 80)

    config = get_settings()

    print("\nUpstream:")
    print(f"  Base URL:       {config.base_url_str}")
    print(f"  Credential:     {'set' if config.RETELL_API_KEY else 'MISSING'}")
    print(f"  User-Agent:     {config.USER_AGENT}")

    print("\nSecurity Policy:")
    print(f"  Origin policy:  {config.ORIGIN_POLICY.value}")
    print(f"  Error detail:   {config.ERROR_DETAIL.value}")
    if config.allowed_origins_list:
        print(f"  Allowed:        {', '.join(config.allowed_origins_list)}")

    status = validate_configuration(config)

    print("\n" + "=" * 80)
    if status["valid"]:
        print("✓ All critical checks passed!")
    else:
        print("✗ Configuration errors found:")
        for error in status["errors"]:
            print(f"  - {error}")

    if status["warnings"]:
        print("\n⚠ Warnings:")
        for warning in status["warnings"]:
            print(f"  - {warning}")
