from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from solgate.core.errors import ConfigError
from solgate.core.forwarder import DEFAULT_REQUEST_TIMEOUT, MAX_UPSTREAM_BODY
from solgate.datastructures.type_aliases import HostAddress, PortNumber


class GatewaySettings(BaseSettings):
    """Gateway process configuration, read from the environment or ``.env``."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    bind_address: str = Field(
        "0.0.0.0:80",
        description="host:port the gateway listens on ([addr]:port for IPv6).",
    )
    validators_csv: Path = Field(
        Path("config/validators.csv"),
        description="CSV file describing the validator fleet.",
    )
    request_timeout: float = Field(
        DEFAULT_REQUEST_TIMEOUT,
        gt=0,
        description="Total seconds allowed for one forwarded request.",
    )
    max_upstream_body: int = Field(
        MAX_UPSTREAM_BODY,
        gt=0,
        description="Largest response body accepted from a validator, in bytes.",
    )
    log_level: str = Field("INFO", description="Global loguru level.")
    debug_scopes: tuple[str, ...] = Field(
        (),
        description="Module prefixes that log at DEBUG regardless of log_level.",
    )

    def bind_parts(self) -> tuple[HostAddress, PortNumber]:
        """Split ``bind_address`` into host and port."""
        address = self.bind_address.strip()
        host, sep, port_text = address.rpartition(":")
        if not sep or not host or not port_text.isdigit():
            raise ConfigError(f"invalid bind address '{self.bind_address}'")
        port = int(port_text)
        if port > 65535:
            raise ConfigError(f"invalid bind address '{self.bind_address}'")
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        return host, port

    @property
    def bind_host(self) -> HostAddress:
        return self.bind_parts()[0]

    @property
    def bind_port(self) -> PortNumber:
        return self.bind_parts()[1]

    def ensure_validators_csv(self) -> Path:
        if not self.validators_csv.exists():
            raise ConfigError(
                f"validators csv file not found at {self.validators_csv}"
            )
        return self.validators_csv
