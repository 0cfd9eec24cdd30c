"""Core data model: wire types, byte order, VariableSpec, DecodedValue, and Record."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MAX_REGISTER_ADDRESS = 0xFFFF
MAX_DEVICE_ADDRESS = 247


class WireType(str, Enum):
    """Value encodings the codec can decode from holding registers."""

    UINT16 = "uint16"
    FLOAT32 = "float32"

    @property
    def size(self) -> int:
        """Number of bytes the decoded representation occupies."""
        return _WIRE_TYPE_SIZE[self]

    @classmethod
    def parse(cls, raw: "str | WireType") -> "WireType":
        """Parse a wire type tag; accepts 'uint16'/'float32' and the 'UInt16'/'Single' aliases."""
        if isinstance(raw, WireType):
            return raw
        key = str(raw).strip().lower()
        key = _WIRE_TYPE_ALIASES.get(key, key)
        return cls(key)


_WIRE_TYPE_SIZE = {
    WireType.UINT16: 2,
    WireType.FLOAT32: 4,
}

_WIRE_TYPE_ALIASES = {
    "single": "float32",
    "float": "float32",
    "u16": "uint16",
}


class ByteOrder(str, Enum):
    """Byte order of the two bytes inside each 16-bit register word."""

    LITTLE = "little"
    BIG = "big"


@dataclass(frozen=True)
class VariableSpec:
    """Register location and encoding of one named device variable."""

    name: str
    address: int
    wire_type: WireType
    span: int

    def __post_init__(self) -> None:
        if not 0 <= self.address <= MAX_REGISTER_ADDRESS:
            raise ValueError(f"address must be in 0..0xFFFF, got {self.address}")
        if self.span < 1:
            raise ValueError(f"span must be >= 1, got {self.span}")
        if self.span * 2 != self.wire_type.size:
            raise ValueError(
                f"{self.name}: span {self.span} registers does not fit "
                f"{self.wire_type.value} ({self.wire_type.size} bytes)"
            )


@dataclass(frozen=True)
class DecodedValue:
    """A value decoded from registers, tagged with the wire type it was decoded as."""

    wire_type: WireType
    value: int | float

    def __int__(self) -> int:
        return int(self.value)

    def __float__(self) -> float:
        return float(self.value)

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Record:
    """One sampled reading: logical timestamp (iteration), device, variable, and value."""

    iteration: int
    device_label: str
    variable_name: str
    value: DecodedValue
    timestamp: str = field(default="", compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "device": self.device_label,
            "variable": self.variable_name,
            "type": self.value.wire_type.value,
            "value": self.value.value,
            "timestamp": self.timestamp,
        }
