"""
solgate - a single JSON-RPC entry point for a fleet of validators.

Requests arrive at one address and are relayed to a backend validator chosen
by explicit name (``?server=``), by location (``?location=``), or uniformly at
random. The validator fleet is described once in a CSV file and is read-only
for the lifetime of the process.

## Layout

- **datastructures**: validator records and semantic type aliases
- **core**: endpoint builder, registry, selector, forwarder, errors, logging
- **server**: aiohttp application and lifecycle
- **cli**: ``solgate serve`` / ``solgate check``

## Quick Start

```python
from solgate import GatewaySettings, bootstrap

server = bootstrap(GatewaySettings(validators_csv="config/validators.csv"))
server.run()
```
"""

from .config import GatewaySettings
from .core import (
    Forwarder,
    GatewayError,
    RegistryError,
    SelectionError,
    ValidatorRegistry,
    select,
)
from .datastructures import Validator, ValidatorSummary, normalize_key
from .server import GatewayServer, bootstrap

__version__ = "0.1.0"

__all__ = [
    "Forwarder",
    "GatewayError",
    "GatewayServer",
    "GatewaySettings",
    "RegistryError",
    "SelectionError",
    "Validator",
    "ValidatorRegistry",
    "ValidatorSummary",
    "bootstrap",
    "normalize_key",
    "select",
]
