from __future__ import annotations

import structlog
from pydantic import ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from breakerbox.circuit_breaker.config import (
    DEFAULT_ERROR_THRESHOLD,
    DEFAULT_SLEEP_WINDOW,
    DEFAULT_TIME_WINDOW,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_VOLUME_THRESHOLD,
    CircuitBreakerConfig,
    FailureMatcher,
)
from breakerbox.logging import configure_structlog, get_log_level_value


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class CircuitSettings(BaseSettings):
    """Environment-driven breaker defaults, read from ``CIRCUIT_*`` variables."""

    model_config = prefixed_settings_config("CIRCUIT_")

    sleep_window: float = DEFAULT_SLEEP_WINDOW
    volume_threshold: int = DEFAULT_VOLUME_THRESHOLD
    error_threshold: float = DEFAULT_ERROR_THRESHOLD
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    time_window: float = DEFAULT_TIME_WINDOW
    log_level: str = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        normalized = value.strip().upper()
        get_log_level_value(normalized)
        return normalized

    @field_validator("sleep_window", "volume_threshold", mode="after")
    @classmethod
    def _validate_non_negative(cls, value: float, info: ValidationInfo) -> float:
        if value < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return value

    @field_validator("timeout_seconds", "time_window", mode="after")
    @classmethod
    def _validate_positive(cls, value: float, info: ValidationInfo) -> float:
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @model_validator(mode="after")
    def _validate_error_threshold(self) -> CircuitSettings:
        if not 0 <= self.error_threshold <= 100:
            raise ValueError("error_threshold must be between 0 and 100")
        return self

    def to_config(
        self,
        *,
        exceptions: tuple[FailureMatcher, ...] = (),
    ) -> CircuitBreakerConfig:
        """Build a breaker configuration from these settings.

        ``sleep_window`` is passed through unchanged; breakers clamp it to
        ``time_window`` on construction.
        """
        return CircuitBreakerConfig(
            sleep_window=self.sleep_window,
            volume_threshold=self.volume_threshold,
            error_threshold=self.error_threshold,
            timeout_seconds=self.timeout_seconds,
            time_window=self.time_window,
            exceptions=exceptions,
        )

    def configure_logging(self) -> structlog.stdlib.BoundLogger:
        """Configure structlog at ``log_level`` and return the root logger."""
        return configure_structlog(log_level=self.log_level)
