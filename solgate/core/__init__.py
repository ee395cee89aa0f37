"""Registry, selection and forwarding for the validator gateway."""

from .errors import (
    BadRequestError,
    ConfigError,
    DuplicateValidatorNameError,
    EmptyRegistryError,
    GatewayError,
    InternalError,
    InvalidRecordError,
    NoValidatorsError,
    RegistryError,
    RegistrySourceError,
    SelectionError,
    SelectionFailedError,
    UnknownLocationError,
    UnknownValidatorError,
    UpstreamError,
)
from .forwarder import Forwarder
from .registry import ValidatorRegistry
from .selection import RandomSource, select

__all__ = [
    "BadRequestError",
    "ConfigError",
    "DuplicateValidatorNameError",
    "EmptyRegistryError",
    "Forwarder",
    "GatewayError",
    "InternalError",
    "InvalidRecordError",
    "NoValidatorsError",
    "RandomSource",
    "RegistryError",
    "RegistrySourceError",
    "SelectionError",
    "SelectionFailedError",
    "UnknownLocationError",
    "UnknownValidatorError",
    "UpstreamError",
    "ValidatorRegistry",
    "select",
]
