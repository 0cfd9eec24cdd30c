"""Register codec: word-order normalization, byte packing, and typed decode of holding registers."""

import struct
from typing import Sequence

from .errors import UnsupportedWireTypeError
from .types import ByteOrder, DecodedValue, WireType

# Decoded buffers are always read little-endian; byte order on the wire is handled by pack_bytes.
_STRUCT_FORMAT: dict[WireType, str] = {
    WireType.UINT16: "<H",
    WireType.FLOAT32: "<f",
}


def _struct_format(wire_type: WireType | str) -> tuple[WireType, str]:
    try:
        parsed = WireType.parse(wire_type)
    except ValueError:
        raise UnsupportedWireTypeError(wire_type) from None
    fmt = _STRUCT_FORMAT.get(parsed)
    if fmt is None:
        raise UnsupportedWireTypeError(wire_type)
    return parsed, fmt


def _check_words(words: Sequence[int]) -> None:
    for w in words:
        if not 0 <= w <= 0xFFFF:
            raise ValueError(f"Register word out of range 0..0xFFFF: {w}")


def normalize_word_order(words: Sequence[int], lsb_first: bool) -> list[int]:
    """
    Put register words least-significant first.

    Devices that already send the low word first pass through unchanged; devices
    that send the high word first are reversed.
    """
    if lsb_first:
        return list(words)
    return list(reversed(words))


def pack_bytes(words: Sequence[int], byte_order: ByteOrder = ByteOrder.LITTLE) -> bytes:
    """Concatenate each 16-bit word as two bytes in byte_order, keeping word order."""
    _check_words(words)
    order = ByteOrder(byte_order).value
    return b"".join(int(w).to_bytes(2, order) for w in words)


def decode(buffer: bytes, wire_type: WireType) -> DecodedValue:
    """
    Interpret a packed buffer as wire_type (little-endian uint16 or IEEE-754 single).

    Raises UnsupportedWireTypeError for a tag with no decode rule and ValueError
    when the buffer length does not match the type.
    """
    wire_type, fmt = _struct_format(wire_type)
    expected = struct.calcsize(fmt)
    if len(buffer) != expected:
        raise ValueError(f"{wire_type.value} needs {expected} bytes, got {len(buffer)}")
    (value,) = struct.unpack(fmt, buffer)
    return DecodedValue(wire_type=wire_type, value=value)


def _unpack_words(buffer: bytes, byte_order: ByteOrder) -> list[int]:
    order = ByteOrder(byte_order).value
    return [int.from_bytes(buffer[i:i + 2], order) for i in range(0, len(buffer), 2)]


class RegisterCodec:
    """
    Decode pipeline for one device family.

    lsb_first and byte_order are independent: a device may send the high word
    first while keeping each register's bytes little-endian, or the reverse.
    """

    def __init__(self, lsb_first: bool = True, byte_order: ByteOrder = ByteOrder.LITTLE) -> None:
        self._lsb_first = lsb_first
        self._byte_order = ByteOrder(byte_order)

    @property
    def lsb_first(self) -> bool:
        return self._lsb_first

    @property
    def byte_order(self) -> ByteOrder:
        return self._byte_order

    def decode_registers(self, words: Sequence[int], wire_type: WireType) -> DecodedValue:
        """normalize -> pack -> decode."""
        ordered = normalize_word_order(words, self._lsb_first)
        return decode(pack_bytes(ordered, self._byte_order), wire_type)

    def encode_value(self, value: int | float, wire_type: WireType) -> list[int]:
        """Inverse of decode_registers: the register words a device would send for value."""
        _, fmt = _struct_format(wire_type)
        buffer = struct.pack(fmt, value)
        # reversing is its own inverse
        return normalize_word_order(_unpack_words(buffer, self._byte_order), self._lsb_first)

    def __repr__(self) -> str:
        return f"RegisterCodec(lsb_first={self._lsb_first}, byte_order={self._byte_order.value!r})"
