"""Runtime settings — env-driven via pydantic-settings.

Reads from a .env file and DESTINED_* environment variables.  Settings are
loaded once at process start and passed into ``build_default_config``; the
core components never read them from module state.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DestinedSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export DESTINED_LOG_LEVEL=DEBUG
        export DESTINED_DISPATCH_MODE=sequential
        export DESTINED_RULES_PATH=/etc/destined/rules.json
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DESTINED_",
        env_file_encoding="utf-8",
    )

    # Logging
    log_level: str = "INFO"

    # Message bus
    topic_name: str = "TheDestinedLambdaEventBusTopic"
    delivery_batch_size: int = Field(default=10, ge=1)
    max_queue_depth: int = Field(default=1024, ge=1)

    # Worker
    function_name: str = "TheDestinedLambda"
    failure_trigger: str = "please fail"
    worker_timeout_seconds: float = Field(default=300, gt=0)

    # Routing
    dispatch_mode: Literal["parallel", "sequential"] = "parallel"
    max_dispatch_workers: int = Field(default=8, ge=1)
    rules_path: Path | None = None
    event_output_path: Path | None = None

    # Ingress
    cors_origin: str = "*"

    @property
    def topic_arn(self) -> str:
        return f"arn:aws:sns:local:000000000000:{self.topic_name}"

    @property
    def function_arn(self) -> str:
        return f"arn:aws:lambda:local:000000000000:function:{self.function_name}"
