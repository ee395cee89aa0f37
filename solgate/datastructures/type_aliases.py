"""
Semantic type aliases for solgate.

Raw ``str``/``int``/``float`` values that flow between the registry, the
selector and the forwarder get a name here so signatures say what they carry.
"""

from collections.abc import Mapping
from typing import Any, TypeAlias

# Validator identity
ValidatorName: TypeAlias = str
LocationName: TypeAlias = str
NormalizedKey: TypeAlias = str
ValidatorIndex: TypeAlias = int

# Configuration source
RowNumber: TypeAlias = int
Ordinal: TypeAlias = int
CsvRecord: TypeAlias = Mapping[str, str | None]

# Network types
HostAddress: TypeAlias = str
PortNumber: TypeAlias = int
HostHeader: TypeAlias = str

# Time and size
DurationSeconds: TypeAlias = float
ByteCount: TypeAlias = int

# Serialization
JsonDict: TypeAlias = dict[str, Any]
