"""
Endpoint builder: one configuration row in, one validated ``Validator`` out.

The CSV columns are optional and aliased, so parsing happens in two steps.
``RawValidatorRow`` captures what was read (trimmed, blanks dropped, aliases
folded onto one field each) and ``build_validator`` turns that into a
``Validator`` with a fully-qualified endpoint, or raises an
``InvalidRecordError`` naming the source row.

Endpoint resolution order:

1. an explicit ``rpc_url``;
2. otherwise a ``host``/``ip``/``address`` combined with ``protocol`` and
   ``rpc_port``;
3. otherwise the row is rejected.

Whatever the branch, the result must use http/https, name a host, and carry a
port (``8899`` when none was given).
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from yarl import URL

from ..datastructures.type_aliases import (
    CsvRecord,
    LocationName,
    Ordinal,
    RowNumber,
    ValidatorName,
)
from ..datastructures.validator import (
    DEFAULT_LOCATION,
    DEFAULT_RPC_PORT,
    SUPPORTED_SCHEMES,
    Validator,
)
from .errors import InvalidRecordError

DEFAULT_PROTOCOL = "http"


class RawValidatorRow(BaseModel):
    """A configuration row as read, before any endpoint validation."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str | None = None
    rpc_endpoint: str | None = Field(
        default=None,
        validation_alias=AliasChoices("rpc_endpoint", "rpc_url"),
        description="Fully-qualified endpoint URL; wins over host/port columns.",
    )
    endpoint_host: str | None = Field(
        default=None,
        validation_alias=AliasChoices("endpoint_host", "host", "ip", "address"),
        description="Bare host name or IP literal.",
    )
    endpoint_port: int | None = Field(
        default=None,
        ge=0,
        le=65535,
        validation_alias=AliasChoices("endpoint_port", "rpc_port", "port"),
    )
    protocol: str | None = None
    location: str | None = None

    @classmethod
    def from_record(cls, record: CsvRecord, row_number: RowNumber) -> RawValidatorRow:
        """Validate one CSV record, dropping blank cells first."""
        cleaned: dict[str, str] = {}
        for key, value in record.items():
            if key is None or value is None:
                continue
            value = value.strip()
            if value:
                cleaned[key.strip()] = value
        try:
            return cls.model_validate(cleaned)
        except ValidationError as e:
            raise InvalidRecordError(row_number, _describe_validation_error(e)) from e


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{field}: {detail['msg']}")
    return "; ".join(parts)


def prepare_host_for_url(host: str) -> str:
    """Bracket what looks like a bare IPv6 literal so it can sit in a URL."""
    host = host.strip()
    if (
        ":" in host
        and "." not in host
        and not host.startswith("[")
        and not host.endswith("]")
    ):
        return f"[{host}]"
    return host


def generate_default_name(location: LocationName, ordinal: Ordinal) -> ValidatorName:
    """Derive ``<sanitized-location>-<ordinal>``, or ``validator-<ordinal>``."""
    sanitized = "".join(
        char.lower() if char.isascii() and char.isalnum() else "-"
        for char in location.strip()
    ).strip("-")
    if not sanitized:
        return f"validator-{ordinal}"
    return f"{sanitized}-{ordinal}"


def _parse_url(text: str, row_number: RowNumber, label: str, shown: str) -> URL:
    try:
        url = URL(text)
        # yarl may defer port parsing; force it so bad ports fail here.
        _ = url.explicit_port
    except (TypeError, ValueError) as e:
        raise InvalidRecordError(row_number, f"invalid {label} '{shown}': {e}") from e
    if not url.scheme:
        raise InvalidRecordError(
            row_number, f"invalid {label} '{shown}': relative URL without a base"
        )
    return url


def build_validator(
    row: RawValidatorRow, row_number: RowNumber, ordinal: Ordinal
) -> Validator:
    """Turn a raw row into a ``Validator``.

    Args:
        row: The parsed configuration row.
        row_number: 1-based line in the source (header is row 1), for errors.
        ordinal: 1-based position among accepted rows, including this one.
    """
    given_location = (row.location or "").strip()
    location = given_location or DEFAULT_LOCATION

    protocol = (row.protocol or DEFAULT_PROTOCOL).strip().lower()
    if protocol not in SUPPORTED_SCHEMES:
        raise InvalidRecordError(row_number, f"unsupported protocol '{protocol}'")

    if row.rpc_endpoint and row.rpc_endpoint.strip():
        endpoint = row.rpc_endpoint.strip()
        url = _parse_url(endpoint, row_number, "url", endpoint)
    elif row.endpoint_host and row.endpoint_host.strip():
        host = row.endpoint_host.strip()
        url = _parse_url(
            f"{protocol}://{prepare_host_for_url(host)}", row_number, "host", host
        )
        if url.host and url.explicit_port is None:
            port = (
                row.endpoint_port if row.endpoint_port is not None else DEFAULT_RPC_PORT
            )
            url = url.with_port(port)
    else:
        raise InvalidRecordError(row_number, "missing rpc_url or host/ip column")

    if url.scheme not in SUPPORTED_SCHEMES:
        raise InvalidRecordError(row_number, f"unsupported url scheme `{url.scheme}`")

    if not url.host:
        raise InvalidRecordError(row_number, "url is missing host")

    if url.explicit_port is None:
        url = url.with_port(DEFAULT_RPC_PORT)

    name = row.name.strip() if row.name and row.name.strip() else None
    if name is None:
        # Generated from the location as written, before the default applies.
        name = generate_default_name(given_location, ordinal)

    return Validator(name=name, location=location, rpc_url=url)
