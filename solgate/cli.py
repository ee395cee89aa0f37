import sys
from dataclasses import dataclass
from pathlib import Path

from jsonargparse import CLI
from loguru import logger
from rich.console import Console
from rich.table import Table

from solgate.config import GatewaySettings
from solgate.core.errors import ConfigError, RegistryError
from solgate.core.logging import configure_logging
from solgate.core.registry import ValidatorRegistry
from solgate.server import bootstrap

console = Console()


@dataclass(slots=True)
class GatewayCLI:
    """solgate: one stable JSON-RPC endpoint in front of a validator fleet."""

    def serve(
        self,
        bind_address: str | None = None,
        validators_csv: Path | None = None,
        request_timeout: float | None = None,
        log_level: str | None = None,
    ) -> None:
        """Load the validator CSV and serve until interrupted.

        Settings come from the environment (``BIND_ADDRESS``,
        ``VALIDATORS_CSV``, ...) or ``.env``; arguments given here win.

        Args:
            bind_address: host:port to listen on.
            validators_csv: Path to the validators CSV file.
            request_timeout: Seconds allowed per forwarded request.
            log_level: loguru level name.
        """
        overrides = {
            key: value
            for key, value in {
                "bind_address": bind_address,
                "validators_csv": validators_csv,
                "request_timeout": request_timeout,
                "log_level": log_level,
            }.items()
            if value is not None
        }
        settings = GatewaySettings(**overrides)  # type: ignore[arg-type]
        configure_logging(settings.log_level, debug_scopes=settings.debug_scopes)

        try:
            server = bootstrap(settings)
        except (ConfigError, RegistryError) as e:
            logger.error(f"Startup failed: {e}")
            sys.exit(1)

        server.run()

    def check(self, validators_csv: Path | None = None) -> None:
        """Validate a validators CSV file and print what it describes.

        Args:
            validators_csv: Path to check; defaults to the configured one.
        """
        settings = (
            GatewaySettings(validators_csv=validators_csv)  # type: ignore[call-arg]
            if validators_csv is not None
            else GatewaySettings()  # type: ignore[call-arg]
        )
        try:
            registry = ValidatorRegistry.from_csv(settings.ensure_validators_csv())
        except (ConfigError, RegistryError) as e:
            console.print(f"[red]✗[/red] {e}")
            sys.exit(1)

        table = Table(title=f"{len(registry)} validators")
        table.add_column("Name", style="cyan")
        table.add_column("Location", style="magenta")
        table.add_column("Endpoint")
        for validator in registry:
            table.add_row(validator.name, validator.location, str(validator.rpc_url))
        console.print(table)


def main() -> None:
    CLI(GatewayCLI, as_dict=False)  # type: ignore[no-untyped-call]


if __name__ == "__main__":
    main()
