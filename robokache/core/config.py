"""Application configuration with validation."""

from enum import Enum
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List

DEFAULT_HASHID_SALT = "This salt is unguessable. Don't even try"
DEFAULT_GOOGLE_CLIENT_ID = "297705140796-41v2ra13t7mm8uvu2dp554ov1btt80dg.apps.googleusercontent.com"


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


class Settings(BaseSettings):
    """
    Application settings with validation.

    Built once at import time and frozen afterwards. Components that need a
    value (codec salt, trusted issuers, audience) receive it through their
    constructor instead of reading this object later.
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:8080",
        description="Allowed CORS origins (comma-separated)"
    )

    # Storage
    database_url: str = Field(
        default="sqlite:///./data/robokache.db",
        description="Database connection URL"
    )
    data_dir: str = Field(
        default="./data",
        description="Directory holding document payloads (under files/)"
    )

    # Opaque document IDs
    # Changing the salt invalidates every document ID ever handed out.
    hashid_salt: str = Field(
        default=DEFAULT_HASHID_SALT,
        description="Salt for the external document ID encoding"
    )
    hashid_min_length: int = Field(
        default=8,
        description="Minimum length of an external document ID"
    )

    # Identity provider
    google_client_id: str = Field(
        default=DEFAULT_GOOGLE_CLIENT_ID,
        description="OAuth client ID that tokens must be issued for (aud claim)"
    )
    trusted_issuers: str = Field(
        default="accounts.google.com,https://accounts.google.com",
        description="Accepted iss claim values (comma-separated)"
    )
    certs_url: str = Field(
        default="https://www.googleapis.com/oauth2/v1/certs",
        description="URL of the identity provider's signing key set"
    )
    key_fetch_timeout: float = Field(
        default=5.0,
        description="Seconds to wait for the signing key set before failing the request"
    )
    key_cache_seconds: int = Field(
        default=0,
        description="Seconds to reuse a fetched key set (0 = fetch on every verification)"
    )
    token_leeway_seconds: int = Field(
        default=0,
        description="Clock skew tolerated when checking exp/nbf"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """
        Get CORS origins as a list.

        Parses comma-separated string and validates no wildcards.
        """
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        # SECURITY: Prevent wildcard CORS
        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    def get_trusted_issuers(self) -> List[str]:
        """Get the accepted issuer spellings as a list."""
        return [iss.strip() for iss in self.trusted_issuers.split(',') if iss.strip()]

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('hashid_min_length')
    @classmethod
    def validate_hashid_min_length(cls, v: int) -> int:
        if v < 0:
            raise ValueError("HASHID_MIN_LENGTH cannot be negative")
        return v

    @field_validator('key_fetch_timeout')
    @classmethod
    def validate_key_fetch_timeout(cls, v: float) -> float:
        # An unbounded fetch would let a slow provider hang every request.
        if v <= 0:
            raise ValueError("KEY_FETCH_TIMEOUT must be a positive number of seconds")
        return v

    def validate_production_config(self) -> None:
        """Validate configuration for production environment.

        In production, fails startup if security-critical settings use insecure defaults.
        In development, logs warnings but allows startup.

        Raises:
            ConfigurationError: If production config is insecure.
        """
        errors: list[str] = []

        if self.hashid_salt == DEFAULT_HASHID_SALT:
            errors.append(
                "HASHID_SALT is using the published default value. "
                "Choose a private salt before issuing any document IDs."
            )

        if not self.google_client_id:
            errors.append("GOOGLE_CLIENT_ID is empty. Tokens cannot be checked for audience.")

        if not self.get_trusted_issuers():
            errors.append("TRUSTED_ISSUERS is empty. Every token would be rejected.")

        # Check for localhost CORS origins
        origins = self.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )

        if errors:
            if self.environment == Environment.PRODUCTION:
                raise ConfigurationError(
                    "Production configuration is insecure:\n  - " + "\n  - ".join(errors)
                )
            # In development, just return; main.py logs warnings
            return

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        # Allow reading from environment variables with different case
        case_sensitive = False
        frozen = True


# Global settings instance
settings = Settings()
