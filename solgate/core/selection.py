"""Per-request validator selection: by name, then by location, then at random."""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Protocol, TypeVar

from ..datastructures.type_aliases import LocationName, ValidatorName
from ..datastructures.validator import Validator
from .errors import NoValidatorsError, UnknownLocationError, UnknownValidatorError
from .registry import ValidatorRegistry

T = TypeVar("T")


class RandomSource(Protocol):
    """Anything with ``random.Random.choice`` semantics."""

    def choice(self, seq: Sequence[T]) -> T: ...


def default_random_source() -> RandomSource:
    """OS entropy; nothing is shared between calls."""
    return random.SystemRandom()


def _present(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def select(
    registry: ValidatorRegistry,
    name: ValidatorName | None = None,
    location: LocationName | None = None,
    rng: RandomSource | None = None,
) -> Validator:
    """Pick exactly one validator for a request.

    A non-blank ``name`` is an exact, case-insensitive lookup and the
    location hint is then ignored. Otherwise a non-blank ``location`` picks
    uniformly within that group. With neither hint any validator may be
    chosen.

    Raises:
        UnknownValidatorError: the name matched nothing.
        UnknownLocationError: the location group is unknown or empty.
        NoValidatorsError: the registry holds no validators.
    """
    wanted_name = _present(name)
    if wanted_name is not None:
        validator = registry.get_by_name(wanted_name)
        if validator is None:
            raise UnknownValidatorError(wanted_name)
        return validator

    rng = rng if rng is not None else default_random_source()

    wanted_location = _present(location)
    if wanted_location is not None:
        validator = registry.random_in_location(wanted_location, rng)
        if validator is None:
            raise UnknownLocationError(wanted_location)
        return validator

    validator = registry.random(rng)
    if validator is None:
        raise NoValidatorsError()
    return validator
