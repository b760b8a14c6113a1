"""
Service configuration.

Immutable configuration values constructed once at startup and passed
into the store, the sweeper and the fetcher. Only the process bootstrap
reads the environment, through ServiceConfig.from_env().
"""

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from media_decrypt.core.exceptions import ConfigurationError


class StoreConfig(BaseModel):
    """Configuration for the artifact store."""

    model_config = ConfigDict(frozen=True)

    storage_dir: Path = Field(
        default=Path("downloads"), description="Directory holding decrypted artifacts"
    )
    one_time_download: bool = Field(
        default=True, description="Default access mode for new artifacts"
    )


class RetentionConfig(BaseModel):
    """Configuration for the retention sweeper."""

    model_config = ConfigDict(frozen=True)

    retention_hours: float = Field(
        default=24, description="Delete artifacts older than this (<= 0 disables)"
    )
    sweep_interval_seconds: float = Field(
        default=30 * 60, gt=0, description="Seconds between sweeps"
    )

    @property
    def enabled(self) -> bool:
        """Return True if sweeping is enabled."""
        return self.retention_hours > 0


class FetchConfig(BaseModel):
    """Configuration for fetching encrypted media."""

    model_config = ConfigDict(frozen=True)

    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-attempt timeout")
    max_attempts: int = Field(default=3, ge=1, description="Attempts before giving up")


class ServiceConfig(BaseModel):
    """Top-level configuration for the decrypt service."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8889, ge=1, le=65535, description="Listen port")
    base_url: str | None = Field(
        default=None, description="Public base URL used to build download links"
    )
    max_body_bytes: int = Field(
        default=5 * 1024 * 1024, description="Maximum accepted request body size"
    )
    storage: StoreConfig = Field(default_factory=StoreConfig)
    retention: RetentionConfig = Field(default_factory=RetentionConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)

    @property
    def public_base_url(self) -> str:
        """Return the base URL without a trailing slash."""
        base = self.base_url or f"http://localhost:{self.port}"
        return base.rstrip("/")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ServiceConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - PORT: Listen port (default: 8889)
        - BASE_URL: Public base URL (default: http://localhost:<PORT>)
        - DOWNLOAD_DIR: Artifact directory (default: ./downloads)
        - ONE_TIME_DOWNLOAD: "true"/"false" (default: true)
        - RETENTION_HOURS: Retention threshold, 0 disables (default: 24)
        - SWEEP_INTERVAL_SECONDS: Sweep period (default: 1800)
        - FETCH_TIMEOUT_SECONDS: Fetch timeout (default: 30)

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            ServiceConfig built from the environment

        Raises:
            ConfigurationError: If a numeric value cannot be parsed
        """
        env = os.environ if environ is None else environ

        port = _parse_number(env, "PORT", 8889, int)
        download_dir = env.get("DOWNLOAD_DIR")

        try:
            return cls._build(env, port, download_dir)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def _build(cls, env, port: int, download_dir: str | None) -> "ServiceConfig":
        return cls(
            port=port,
            base_url=env.get("BASE_URL") or None,
            storage=StoreConfig(
                storage_dir=Path(download_dir) if download_dir else Path.cwd() / "downloads",
                one_time_download=env.get("ONE_TIME_DOWNLOAD", "true").lower() == "true",
            ),
            retention=RetentionConfig(
                retention_hours=_parse_number(env, "RETENTION_HOURS", 24, float),
                sweep_interval_seconds=_parse_number(env, "SWEEP_INTERVAL_SECONDS", 1800, float),
            ),
            fetch=FetchConfig(
                timeout_seconds=_parse_number(env, "FETCH_TIMEOUT_SECONDS", 30, float),
            ),
        )


def _parse_number(env, name: str, default, cast):
    """Read a numeric environment variable, raising ConfigurationError if malformed."""
    raw = env.get(name)
    if raw is None or raw == "":
        return cast(default)
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}",
            env_var=name,
        ) from None
