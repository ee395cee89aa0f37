"""Validator records and the key normalization shared by every lookup path."""

from __future__ import annotations

from dataclasses import dataclass

from yarl import URL

from .type_aliases import (
    HostHeader,
    JsonDict,
    LocationName,
    NormalizedKey,
    PortNumber,
    ValidatorName,
)

DEFAULT_RPC_PORT: PortNumber = 8899
DEFAULT_LOCATION: LocationName = "unspecified"
SUPPORTED_SCHEMES = frozenset({"http", "https"})

# Ports a Host header may leave implicit.
SCHEME_DEFAULT_PORTS: dict[str, PortNumber] = {"http": 80, "https": 443}


def normalize_key(value: str) -> NormalizedKey:
    """Trim and lower-case a name or location for index comparisons."""
    return value.strip().lower()


@dataclass(frozen=True, slots=True)
class ValidatorSummary:
    """Public projection of a validator: no endpoint."""

    name: ValidatorName
    location: LocationName

    def to_dict(self) -> JsonDict:
        return {"name": self.name, "location": self.location}


@dataclass(frozen=True, slots=True)
class Validator:
    """One backend RPC node the gateway can forward to."""

    name: ValidatorName
    location: LocationName
    rpc_url: URL

    @property
    def name_key(self) -> NormalizedKey:
        return normalize_key(self.name)

    @property
    def location_key(self) -> NormalizedKey:
        return normalize_key(self.location)

    def host_header(self) -> HostHeader | None:
        """Value for the outbound ``Host`` header.

        IPv6 literals are bracketed and the port is only appended when it
        differs from the scheme default.
        """
        host = self.rpc_url.host
        if not host:
            return None
        if ":" in host:
            host = f"[{host}]"
        port = self.rpc_url.port
        if port is not None and port != SCHEME_DEFAULT_PORTS.get(self.rpc_url.scheme):
            host = f"{host}:{port}"
        return host

    def summary(self) -> ValidatorSummary:
        return ValidatorSummary(name=self.name, location=self.location)
