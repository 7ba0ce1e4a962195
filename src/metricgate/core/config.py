"""Configuration objects for the service.

Components receive these explicitly at construction. Only
``AppConfig.from_env`` reads the process environment.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from metricgate.core.errors import ConfigError

DEFAULT_EXTERNAL_API_URL = "https://cca-lite.coinbase.com/metrics"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
)
VALID_LOG_FORMATS = {"json", "text"}


@dataclass(frozen=True)
class MetricsConfig:
    """Settings for the dedup and forwarding pipeline.

    Attributes:
        dedup_window_hours: How far back a duplicate fingerprint is looked up.
        external_api_enabled: Whether stored metrics are forwarded.
        external_api_url: Collector endpoint.
        forward_timeout_seconds: Timeout for the single forward call.
        user_agent: User-Agent header sent to the collector.
    """

    dedup_window_hours: float = 1.0
    external_api_enabled: bool = True
    external_api_url: str = DEFAULT_EXTERNAL_API_URL
    forward_timeout_seconds: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.dedup_window_hours <= 0:
            raise ConfigError("dedup_window_hours must be positive")
        if self.forward_timeout_seconds <= 0:
            raise ConfigError("forward_timeout_seconds must be positive")

    @property
    def dedup_window_seconds(self) -> float:
        return self.dedup_window_hours * 3600


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@dataclass(frozen=True)
class LoggingConfig:
    """Logging settings.

    Attributes:
        level: Root level for the metricgate logger.
        format: "json" for one object per line, "text" for plain lines.
        request_logging: Whether HTTP requests are logged by the middleware.
    """

    level: str = "DEBUG"
    format: str = "json"
    request_logging: bool = True

    def __post_init__(self) -> None:
        if self.format not in VALID_LOG_FORMATS:
            raise ConfigError(f"Unsupported log format: {self.format!r}")


@dataclass(frozen=True)
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    database_path: str = "metricgate.db"
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Raises:
            ConfigError: A variable holds a value that cannot be used.
        """
        env = os.environ if environ is None else environ
        environment = env.get("APP_ENV") or env.get("NODE_ENV") or "development"
        default_level = "ERROR" if environment == "production" else "DEBUG"

        return cls(
            server=ServerConfig(
                host=env.get("HOST", "0.0.0.0"),
                port=_parse_int(env, "PORT", 3000),
                environment=environment,
            ),
            database_path=env.get("DATABASE_PATH", "metricgate.db"),
            metrics=MetricsConfig(
                dedup_window_hours=_parse_float(env, "METRICS_DEDUP_WINDOW_HOURS", 1.0),
                external_api_enabled=env.get("METRICS_EXTERNAL_API_ENABLED") != "false",
                external_api_url=env.get(
                    "METRICS_EXTERNAL_API_URL", DEFAULT_EXTERNAL_API_URL
                ),
                forward_timeout_seconds=_parse_float(
                    env, "METRICS_FORWARD_TIMEOUT_SECONDS", 10.0
                ),
            ),
            logging=LoggingConfig(
                level=env.get("LOG_LEVEL", default_level).upper(),
                format=env.get("LOG_FORMAT", "json").lower(),
                request_logging=env.get("ENABLE_REQUEST_LOGGING") != "false",
            ),
        )


def _parse_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None


def _parse_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None
    # Reject NaN and infinite values
    if value != value or value in (float("inf"), float("-inf")):
        raise ConfigError(f"{key} must be finite, got {raw!r}")
    return value
