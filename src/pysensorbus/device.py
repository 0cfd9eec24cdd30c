"""DeviceHandle: read named variables from one device address on one bus."""

import logging
from typing import Any

from .codec import RegisterCodec
from .errors import InconsistentIdentityError, ModbusIOError
from .registry import SLAVE_ADDRESS, VariableRegistry
from .transport import RegisterTransport
from .types import MAX_DEVICE_ADDRESS, DecodedValue, VariableSpec, WireType

logger = logging.getLogger(__name__)


class DeviceHandle:
    """
    One field device on a bus. Binds the bus transport and device address to a
    registry and codec so callers read variables by name (e.g. TemperatureDet).
    Does not retry; timeouts from the transport propagate unchanged.
    """

    __slots__ = ("_transport", "_address", "_registry", "_codec")

    def __init__(
        self,
        transport: RegisterTransport,
        address: int,
        registry: VariableRegistry,
        codec: RegisterCodec | None = None,
    ) -> None:
        if not 1 <= address <= MAX_DEVICE_ADDRESS:
            raise ValueError(f"device address must be in 1..{MAX_DEVICE_ADDRESS}, got {address}")
        self._transport = transport
        self._address = address
        self._registry = registry
        self._codec = codec if codec is not None else RegisterCodec()

    @property
    def address(self) -> int:
        return self._address

    @property
    def bus_name(self) -> str:
        return self._transport.name

    @property
    def label(self) -> str:
        return f"{self.bus_name}:{self._address}"

    @property
    def registry(self) -> VariableRegistry:
        return self._registry

    def read_variable_at(self, address: int, wire_type: WireType, span: int) -> DecodedValue:
        """Read span registers at address and decode them as wire_type."""
        registers = self._transport.read_holding_registers(self._address, address, span)
        if len(registers) != span:
            raise ModbusIOError(
                f"Expected {span} registers, got {len(registers)}",
                device_address=self._address,
                start_address=address,
            )
        return self._codec.decode_registers(registers, wire_type)

    def read_variable(self, name: str) -> DecodedValue:
        """Look up name in the registry, read its registers, and decode them."""
        spec = self._registry.lookup(name)
        return self.read_variable_at(spec.address, spec.wire_type, spec.span)

    def verify_identity(self) -> int:
        """Read SlaveAddress; raise InconsistentIdentityError unless it equals this handle's address."""
        reported = int(self.read_variable(SLAVE_ADDRESS))
        if reported != self._address:
            raise InconsistentIdentityError(self._address, reported)
        return reported

    def explain(self, name: str) -> dict[str, Any]:
        """Return the register span and encoding a read of name would use (no bus access)."""
        spec: VariableSpec = self._registry.lookup(name)
        return {
            "device": self.label,
            "variable": spec.name,
            "address": f"0x{spec.address:04X}",
            "type": spec.wire_type.value,
            "span": spec.span,
            "lsb_first": self._codec.lsb_first,
            "byte_order": self._codec.byte_order.value,
        }

    def __str__(self) -> str:
        return self.label

    def __repr__(self) -> str:
        return f"DeviceHandle({self.label!r})"
