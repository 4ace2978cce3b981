"""Runtime configuration for the BlogEngine comments API.

Every field can be overridden through an environment variable of the same
name (case-insensitive) or a ``.env`` file in the working directory.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


Environment = Literal["development", "staging", "production", "testing"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """BlogEngine settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="blogengine", description="Service name in logs and docs")
    app_version: str = Field(default="0.1.0", description="Reported service version")
    environment: Environment = Field(default="development")

    # Served by uvicorn through `blogengine-api`
    api_host: str = Field(default="0.0.0.0", description="Bind address")
    api_port: int = Field(default=8000, ge=1, le=65535, description="Bind port")
    api_reload: bool = Field(default=False, description="Reload on code changes")
    api_workers: int = Field(default=1, ge=1, description="Worker processes")

    # Bearer tokens are minted upstream; the API only verifies them
    auth_secret_key: str = Field(
        default="blogengine-development-signing-key-not-for-prod",
        min_length=32,
        description="HMAC key shared with the token issuer",
    )
    auth_algorithm: str = Field(default="HS256")
    auth_access_token_expire_minutes: int = Field(
        default=60, ge=1, description="Lifetime of tokens minted by create_access_token"
    )

    storage_backend: Literal["memory", "cassandra"] = Field(
        default="memory", description="Where posts, comments and accounts live"
    )
    comments_default_page_size: int = Field(
        default=10, ge=0, description="`take` used when a listing does not send one"
    )

    cassandra_hosts: list[str] = Field(default=["localhost"])
    cassandra_port: int = Field(default=9042)
    cassandra_keyspace: str = Field(default="blogengine", pattern=r"^[A-Za-z]\w*$")
    cassandra_username: str | None = Field(default=None)
    cassandra_password: str | None = Field(default=None)
    cassandra_protocol_version: int = Field(default=4)
    cassandra_connect_timeout: float = Field(default=10.0, gt=0, description="Seconds")
    cassandra_datacenter: str = Field(
        default="datacenter1", description="Replicated datacenter in production"
    )
    cassandra_replication_factor: int = Field(
        default=3, ge=1, description="Replicas per row in production"
    )

    log_level: LogLevel = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(
        default="console", description="Renderer for stdout; files are always JSON"
    )
    log_include_caller_info: bool = Field(
        default=False, description="Add module, function and line to each event"
    )
    log_to_file: bool = Field(default=True)
    log_dir: str = Field(default="logs")
    log_file_max_bytes: int = Field(default=10 * 1024 * 1024, description="Rotate after")
    log_file_backup_count: int = Field(default=5, description="Rotated files kept")
    log_requests: bool = Field(default=True, description="Emit an access log event")
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Probe paths kept out of the access log",
    )

    cors_origins: list[str] = Field(default=["*"])
    cors_allow_credentials: bool = Field(default=True)
    cors_allow_methods: list[str] = Field(default=["GET", "POST", "PUT", "DELETE"])
    cors_allow_headers: list[str] = Field(default=["*"])
    cors_max_age: int = Field(default=600, description="Preflight cache, seconds")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def uses_cassandra(self) -> bool:
        """True when posts and accounts are persisted in Cassandra."""
        return self.storage_backend == "cassandra"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, read once."""
    return Settings()
