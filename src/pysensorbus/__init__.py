"""pysensorbus: discover Modbus RTU temperature sensors on serial buses and sample named variables."""

__version__ = "0.1.0"

from .bus import BusReport, flatten_records, poll_bus, poll_ports
from .codec import RegisterCodec, decode, normalize_word_order, pack_bytes
from .device import DeviceHandle
from .errors import (
    InconsistentIdentityError,
    ModbusIOError,
    ModbusTimeoutError,
    SensorBusError,
    UnknownVariableError,
    UnsupportedWireTypeError,
)
from .registry import VariableRegistry, get_default_registry
from .sampler import DeviceRun, iter_samples, sample_device, sample_devices
from .scanner import BusScanner
from .transport import RegisterTransport, SerialSettings, SerialTransport, list_serial_ports
from .types import ByteOrder, DecodedValue, Record, VariableSpec, WireType

__all__ = [
    "__version__",
    "BusReport",
    "flatten_records",
    "poll_bus",
    "poll_ports",
    "RegisterCodec",
    "decode",
    "normalize_word_order",
    "pack_bytes",
    "DeviceHandle",
    "InconsistentIdentityError",
    "ModbusIOError",
    "ModbusTimeoutError",
    "SensorBusError",
    "UnknownVariableError",
    "UnsupportedWireTypeError",
    "VariableRegistry",
    "get_default_registry",
    "DeviceRun",
    "iter_samples",
    "sample_device",
    "sample_devices",
    "BusScanner",
    "RegisterTransport",
    "SerialSettings",
    "SerialTransport",
    "list_serial_ports",
    "ByteOrder",
    "DecodedValue",
    "Record",
    "VariableSpec",
    "WireType",
]
