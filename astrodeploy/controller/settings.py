"""Controller configuration loaded from ASTRO_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from astrodeploy.controller.client.http import DEFAULT_BASE_URL
from astrodeploy.controller.poller import PollPolicy


class AstroSettings(BaseSettings):
    """Deployment controller settings.

    All fields are read from environment variables with the ``ASTRO_`` prefix.
    For example, ``ASTRO_POLL_INTERVAL=5`` maps to ``poll_interval``.
    """

    model_config = SettingsConfigDict(
        env_prefix="ASTRO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False

    # -- Control plane ---------------------------------------------------------
    api_url: str = DEFAULT_BASE_URL
    api_token: SecretStr | None = None
    organization_id: str | None = None
    """Used when a declared deployment does not name its organization (e.g. after import)."""

    request_timeout: float = Field(default=30.0, gt=0)

    # -- Convergence -----------------------------------------------------------
    poll_interval: float = Field(default=1.0, ge=0)
    poll_backoff: float = Field(default=1.0, ge=1.0)
    """Multiplier applied to the interval after each status check; 1.0 keeps it fixed."""

    poll_max_interval: float = Field(default=30.0, ge=0)
    convergence_timeout: float = Field(default=1800.0, ge=0)
    """Upper bound in seconds on any single convergence wait."""

    poll_max_attempts: int | None = Field(default=None, ge=1)

    await_update: bool = False
    """Also wait for the deployment to become healthy after an update."""

    # -- Validation ------------------------------------------------------------
    enforce_single_default_queue: bool = True

    # -- Local state -----------------------------------------------------------
    state_dir: str = "./.astrodeploy"

    # -- Helpers ---------------------------------------------------------------

    def poll_policy(self) -> PollPolicy:
        return PollPolicy(
            interval=self.poll_interval,
            backoff=self.poll_backoff,
            max_interval=self.poll_max_interval,
            timeout=self.convergence_timeout,
            max_attempts=self.poll_max_attempts,
        )


@lru_cache(maxsize=1)
def get_settings() -> AstroSettings:
    """Return a cached settings instance.

    Call ``get_settings.cache_clear()`` in tests to force a re-read after
    overriding env vars.
    """
    return AstroSettings()
