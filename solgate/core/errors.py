"""
Error taxonomy for the gateway.

Three families:

- load-time errors (``ConfigError``, ``RegistryError`` and subclasses) abort
  startup and never reach a caller;
- selection errors (``SelectionError`` and subclasses) are raised by the
  selector and wrapped into ``SelectionFailedError`` at the HTTP boundary;
- request errors (``GatewayError`` and subclasses) carry the HTTP status the
  error middleware answers with.
"""

from __future__ import annotations

from http import HTTPStatus

from ..datastructures.type_aliases import (
    JsonDict,
    LocationName,
    RowNumber,
    ValidatorName,
)


class ConfigError(Exception):
    """Raised when process settings are unusable."""

    pass


class RegistryError(Exception):
    """Base exception for failures while building the validator registry."""

    pass


class RegistrySourceError(RegistryError):
    """Raised when the configuration source cannot be read as CSV."""

    pass


class InvalidRecordError(RegistryError):
    """A single configuration row failed validation."""

    def __init__(self, row_number: RowNumber, reason: str) -> None:
        self.row_number = row_number
        self.reason = reason
        super().__init__(f"invalid record at row {row_number}: {reason}")


class DuplicateValidatorNameError(RegistryError):
    def __init__(self, name: ValidatorName) -> None:
        self.name = name
        super().__init__(f"duplicate validator name '{name}'")


class EmptyRegistryError(RegistryError):
    def __init__(self) -> None:
        super().__init__("no validators configured")


class SelectionError(Exception):
    """Base exception for a request that matched no validator."""

    pass


class UnknownValidatorError(SelectionError):
    def __init__(self, name: ValidatorName) -> None:
        self.name = name
        super().__init__(f"validator '{name}' not found")


class UnknownLocationError(SelectionError):
    def __init__(self, location: LocationName) -> None:
        self.location = location
        super().__init__(f"no validator available for location '{location}'")


class NoValidatorsError(SelectionError):
    def __init__(self) -> None:
        super().__init__("no validators available")


class GatewayError(Exception):
    """Per-request failure rendered as ``{"error": message}``."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> JsonDict:
        return {"error": self.message}


class BadRequestError(GatewayError):
    """Malformed caller input."""

    status = HTTPStatus.BAD_REQUEST


class SelectionFailedError(GatewayError):
    status = HTTPStatus.BAD_REQUEST

    def __init__(self, cause: SelectionError) -> None:
        self.cause = cause
        super().__init__(f"validator selection failed: {cause}")


class UpstreamError(GatewayError):
    """Transport failure, timeout or oversized body from a validator."""

    status = HTTPStatus.BAD_GATEWAY

    def __init__(self, validator_name: ValidatorName, detail: str) -> None:
        self.validator_name = validator_name
        self.detail = detail
        super().__init__(
            f"upstream request failed: node '{validator_name}' is unavailable: {detail}"
        )


class InternalError(GatewayError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"internal error: {detail}")
