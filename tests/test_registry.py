import io
import random
from pathlib import Path

import pytest

from solgate.core.errors import (
    DuplicateValidatorNameError,
    EmptyRegistryError,
    InvalidRecordError,
    RegistrySourceError,
)
from solgate.core.registry import ValidatorRegistry
from tests.conftest import make_validator

CSV_TEXT = """name,rpc_url,host,rpc_port,protocol,location
frankfurt-1,,203.0.113.10,8899,http,Frankfurt
frankfurt-2,https://fra2.example.net:443,,,,frankfurt
,,2001:db8::1,,http,Amsterdam
tokyo-1,http://198.51.100.7,,,,Tokyo
"""


def registry_from(text: str) -> ValidatorRegistry:
    return ValidatorRegistry.from_reader(io.StringIO(text))


def test_registry_preserves_order_and_summaries() -> None:
    registry = registry_from(CSV_TEXT)
    assert len(registry) == 4
    assert [v.name for v in registry] == [
        "frankfurt-1",
        "frankfurt-2",
        "amsterdam-3",
        "tokyo-1",
    ]
    summaries = registry.summaries()
    assert [s.to_dict() for s in summaries][0] == {
        "name": "frankfurt-1",
        "location": "Frankfurt",
    }
    assert all(set(s.to_dict()) == {"name", "location"} for s in summaries)


def test_lookup_by_name_is_case_and_whitespace_insensitive() -> None:
    registry = registry_from(CSV_TEXT)
    validator = registry.get_by_name("  FRANKFURT-2 ")
    assert validator is not None
    assert validator.name == "frankfurt-2"
    assert registry.get_by_name("berlin-1") is None


def test_location_index_groups_normalized_locations() -> None:
    registry = registry_from(CSV_TEXT)
    assert list(registry.indexes_for_location(" FRANKFURT ")) == [0, 1]
    assert list(registry.indexes_for_location("tokyo")) == [3]
    assert list(registry.indexes_for_location("mars")) == []


def test_empty_registry_is_rejected() -> None:
    with pytest.raises(EmptyRegistryError, match="no validators configured"):
        ValidatorRegistry([])


def test_header_only_csv_is_rejected() -> None:
    with pytest.raises(EmptyRegistryError):
        registry_from("name,host,location\n")


def test_duplicate_normalized_names_are_rejected() -> None:
    with pytest.raises(DuplicateValidatorNameError) as excinfo:
        ValidatorRegistry(
            [
                make_validator("Alpha", "x", "http://10.0.0.1:8899"),
                make_validator("beta", "x", "http://10.0.0.2:8899"),
                make_validator(" alpha ", "y", "http://10.0.0.3:8899"),
            ]
        )
    assert excinfo.value.name == " alpha "
    assert str(excinfo.value) == "duplicate validator name ' alpha '"


def test_generated_names_can_collide_with_explicit_ones() -> None:
    text = "name,host,location\nlab-2,10.0.0.1,x\n,10.0.0.2,Lab\n"
    with pytest.raises(DuplicateValidatorNameError, match="lab-2"):
        registry_from(text)


def test_bad_row_aborts_with_row_number() -> None:
    text = "name,host,location\nok,10.0.0.1,x\nbroken,,y\nfine,10.0.0.3,z\n"
    with pytest.raises(InvalidRecordError) as excinfo:
        registry_from(text)
    assert excinfo.value.row_number == 3


def test_ordinal_counts_accepted_rows() -> None:
    text = (
        "name,host,location\n"
        "named,10.0.0.1,Berlin\n"
        "named-2,10.0.0.2,Berlin\n"
        ",10.0.0.3,Frankfurt 1\n"
    )
    registry = registry_from(text)
    assert registry.validators[2].name == "frankfurt-1-3"


def test_aliased_columns_and_header_whitespace() -> None:
    text = " ip , port ,location\n10.0.0.9,9100,lab\n"
    registry = registry_from(text)
    validator = registry.validators[0]
    assert validator.rpc_url.host == "10.0.0.9"
    assert validator.rpc_url.port == 9100
    assert validator.name == "lab-1"


def test_from_csv_reads_file(tmp_path: Path) -> None:
    path = tmp_path / "validators.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")
    registry = ValidatorRegistry.from_csv(path)
    assert len(registry) == 4


def test_from_csv_missing_file_is_source_error(tmp_path: Path) -> None:
    with pytest.raises(RegistrySourceError, match="io error"):
        ValidatorRegistry.from_csv(tmp_path / "absent.csv")


def test_from_csv_strips_byte_order_mark(tmp_path: Path) -> None:
    path = tmp_path / "validators.csv"
    path.write_bytes(b"\xef\xbb\xbfname,host\nalpha,10.0.0.1\n")
    registry = ValidatorRegistry.from_csv(path)
    assert registry.validators[0].name == "alpha"
    assert registry.get_by_name("alpha") is not None


def test_from_csv_undecodable_bytes_is_source_error(tmp_path: Path) -> None:
    path = tmp_path / "validators.csv"
    path.write_bytes(b"name,host\nbad\xff\xfe,10.0.0.1\n")
    with pytest.raises(RegistrySourceError, match="csv error"):
        ValidatorRegistry.from_csv(path)


def test_registry_is_read_only() -> None:
    registry = registry_from(CSV_TEXT)
    with pytest.raises(AttributeError):
        registry.validators = ()  # type: ignore[misc]
    with pytest.raises(TypeError):
        registry._index_by_name["new"] = 0  # type: ignore[index]


def test_random_choices_stay_inside_registry() -> None:
    registry = registry_from(CSV_TEXT)
    rng = random.Random(7)
    names = {registry.random(rng).name for _ in range(50)}  # type: ignore[union-attr]
    assert names <= {v.name for v in registry}

    for _ in range(20):
        chosen = registry.random_in_location("frankfurt", rng)
        assert chosen is not None
        assert chosen.location_key == "frankfurt"
    assert registry.random_in_location("mars", rng) is None
