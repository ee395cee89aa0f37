"""Plain value types shared across solgate."""

from .type_aliases import (
    JsonDict,
    LocationName,
    NormalizedKey,
    ValidatorName,
)
from .validator import (
    DEFAULT_RPC_PORT,
    Validator,
    ValidatorSummary,
    normalize_key,
)

__all__ = [
    "DEFAULT_RPC_PORT",
    "JsonDict",
    "LocationName",
    "NormalizedKey",
    "Validator",
    "ValidatorName",
    "ValidatorSummary",
    "normalize_key",
]
