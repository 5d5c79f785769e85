"""Client configuration loaded from TFRUNNER_* environment variables."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ADDRESS = "app.terraform.io"
DEFAULT_RUN_MESSAGE = "Queued by tfrunner ({identifier})"


class TfRunnerSettings(BaseSettings):
    """tfrunner settings.

    All fields are read from environment variables with the ``TFRUNNER_``
    prefix.  For example, ``TFRUNNER_RETRY_LIMIT=10`` maps to ``retry_limit``.

    Durations are expressed in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="TFRUNNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    debug: bool = False
    """Log a trace line on every unfinished run-status poll."""

    # -- API -------------------------------------------------------------------
    token: SecretStr
    organization: str
    address: str = DEFAULT_ADDRESS
    """API host; the client talks to ``https://{address}/api/v2``."""

    request_timeout: float = Field(default=30.0, gt=0)
    """Per-request timeout applied to every HTTP round-trip."""

    # -- Retry policy ----------------------------------------------------------
    retry_duration: float = Field(default=1.0, ge=0)
    """Delay between configuration-version status checks after upload."""

    retry_limit: int = Field(default=5, ge=1)
    """Attempt cap shared by the upload-status loop and the run-status loop."""

    poll_interval: float = Field(default=60.0, ge=0)
    """Delay between run-status polls.  Runs take minutes, so this is long."""

    # -- Runs ------------------------------------------------------------------
    run_message: str = DEFAULT_RUN_MESSAGE
    """Run message template; ``{identifier}`` is replaced by the caller's identifier."""
