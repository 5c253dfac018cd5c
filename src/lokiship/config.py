"""Process configuration, resolved once at startup from the environment."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lokiship.core.encoding.loki import parse_labels
from lokiship.core.models import DEFAULT_PUSH_URL, Level, ShipperConfig


class Settings(BaseSettings):
    """Environment settings, read from ``LOKISHIP_*`` variables and ``.env``."""

    # Sink
    sink_url: str = DEFAULT_PUSH_URL
    labels: str = '{app="crud-server"}'
    tenant_id: str | None = None

    # Batching
    batch_wait: float = 5.0
    batch_max_entries: int = 10000
    max_buffered_entries: int | None = None
    send_level: str = "INFO"
    print_level: str = "ERROR"
    shutdown_timeout: float = 10.0

    # Server
    host: str = "0.0.0.0"
    port: int = 5000
    static_file: str = "./test.html"
    log_level: str = "INFO"
    forward_logger: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="LOKISHIP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("send_level", "print_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        return Level.parse(value).name

    def shipper_config(self) -> ShipperConfig:
        """Build the validated shipper configuration.

        Raises:
            ConfigError: If the sink URL, labels or batching values are invalid.
        """
        # @tra: Config.FatalSinkURL
        return ShipperConfig(
            push_url=self.sink_url,
            labels=parse_labels(self.labels),
            batch_wait=self.batch_wait,
            batch_max_entries=self.batch_max_entries,
            max_buffered_entries=self.max_buffered_entries,
            send_level=Level.parse(self.send_level),
            print_level=Level.parse(self.print_level),
            shutdown_timeout=self.shutdown_timeout,
            tenant_id=self.tenant_id,
        )
