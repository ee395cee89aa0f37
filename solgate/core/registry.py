"""
Validator registry.

Built once at startup from the configuration source and read-only afterwards:
every request handler shares the same instance without locking.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, TextIO

from loguru import logger

from ..datastructures.type_aliases import (
    LocationName,
    NormalizedKey,
    ValidatorIndex,
    ValidatorName,
)
from ..datastructures.validator import Validator, ValidatorSummary, normalize_key
from .endpoint_builder import RawValidatorRow, build_validator
from .errors import (
    DuplicateValidatorNameError,
    EmptyRegistryError,
    RegistrySourceError,
)

if TYPE_CHECKING:
    from .selection import RandomSource

# The header occupies row 1, so the first data row is row 2.
FIRST_DATA_ROW = 2


@dataclass(frozen=True, slots=True, eq=False)
class ValidatorRegistry:
    """Ordered validators plus name and location indices.

    Construction fails on an empty input or on two names that normalize to
    the same key; there is no partially built registry.
    """

    validators: tuple[Validator, ...]
    _index_by_name: Mapping[NormalizedKey, ValidatorIndex] = field(
        init=False, repr=False
    )
    _index_by_location: Mapping[NormalizedKey, tuple[ValidatorIndex, ...]] = field(
        init=False, repr=False
    )

    def __init__(self, validators: Iterable[Validator]) -> None:
        validators = tuple(validators)
        if not validators:
            raise EmptyRegistryError()

        by_name: dict[NormalizedKey, ValidatorIndex] = {}
        by_location: dict[NormalizedKey, list[ValidatorIndex]] = {}
        for idx, validator in enumerate(validators):
            name_key = validator.name_key
            if name_key in by_name:
                raise DuplicateValidatorNameError(validator.name)
            by_name[name_key] = idx
            by_location.setdefault(validator.location_key, []).append(idx)

        object.__setattr__(self, "validators", validators)
        object.__setattr__(self, "_index_by_name", MappingProxyType(by_name))
        object.__setattr__(
            self,
            "_index_by_location",
            MappingProxyType({k: tuple(v) for k, v in by_location.items()}),
        )

    @classmethod
    def from_csv(cls, path: Path | str) -> ValidatorRegistry:
        path = Path(path)
        try:
            with path.open(newline="", encoding="utf-8-sig") as handle:
                registry = cls.from_reader(handle)
        except OSError as e:
            raise RegistrySourceError(f"io error: {e}") from e
        logger.debug(f"Loaded {len(registry)} validators from {path}")
        return registry

    @classmethod
    def from_reader(cls, reader: TextIO) -> ValidatorRegistry:
        """Parse CSV text with a header row; any bad row aborts the load."""
        try:
            rows = csv.DictReader(reader, skipinitialspace=True)
            if rows.fieldnames is not None:
                rows.fieldnames = [name.strip() for name in rows.fieldnames]

            validators: list[Validator] = []
            for row_number, record in enumerate(rows, start=FIRST_DATA_ROW):
                raw = RawValidatorRow.from_record(record, row_number)
                validators.append(
                    build_validator(raw, row_number, ordinal=len(validators) + 1)
                )
        except (csv.Error, UnicodeDecodeError) as e:
            raise RegistrySourceError(f"csv error: {e}") from e

        return cls(validators)

    def __len__(self) -> int:
        return len(self.validators)

    def __iter__(self) -> Iterator[Validator]:
        return iter(self.validators)

    def summaries(self) -> list[ValidatorSummary]:
        return [validator.summary() for validator in self.validators]

    def get_by_name(self, name: ValidatorName) -> Validator | None:
        idx = self._index_by_name.get(normalize_key(name))
        return None if idx is None else self.validators[idx]

    def indexes_for_location(
        self, location: LocationName
    ) -> Sequence[ValidatorIndex]:
        return self._index_by_location.get(normalize_key(location), ())

    def random_in_location(
        self, location: LocationName, rng: RandomSource
    ) -> Validator | None:
        indexes = self.indexes_for_location(location)
        if not indexes:
            return None
        return self.validators[rng.choice(indexes)]

    def random(self, rng: RandomSource) -> Validator | None:
        if not self.validators:
            return None
        return rng.choice(self.validators)
