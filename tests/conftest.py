"""Shared fixtures: an in-memory register bus standing in for a serial Modbus RTU line."""

from typing import Any

import pytest

from pysensorbus.codec import RegisterCodec
from pysensorbus.errors import ModbusTimeoutError
from pysensorbus.registry import VariableRegistry, get_default_registry


class SimulatedTransport:
    """
    Register bus with devices held in memory. Addresses with no device time out,
    as does a device once it has answered timeout_after[address] reads.
    """

    def __init__(self, name: str = "SIM1", codec: RegisterCodec | None = None) -> None:
        self.name = name
        self.codec = codec or RegisterCodec()
        self.devices: dict[int, dict[int, int]] = {}
        self.timeout_after: dict[int, int] = {}
        self.reads_by_device: dict[int, int] = {}
        self.calls: list[tuple[int, int, int]] = []
        self.entered = 0
        self.exited = 0

    def set_value(self, device: int, registry: VariableRegistry, name: str, value: int | float) -> None:
        spec = registry.lookup(name)
        words = self.codec.encode_value(value, spec.wire_type)
        regs = self.devices.setdefault(device, {})
        for i, w in enumerate(words):
            regs[spec.address + i] = w

    def add_sensor(self, device: int, registry: VariableRegistry, det: float = 21.5, target: float = 25.0,
                   reported_address: int | None = None) -> None:
        self.set_value(device, registry, "SlaveAddress", device if reported_address is None else reported_address)
        self.set_value(device, registry, "TemperatureDet", det)
        self.set_value(device, registry, "TemperatureTarget", target)

    def read_holding_registers(self, device_address: int, start_address: int, count: int) -> list[int]:
        self.calls.append((device_address, start_address, count))
        regs = self.devices.get(device_address)
        served = self.reads_by_device.get(device_address, 0)
        limit = self.timeout_after.get(device_address)
        if regs is None or (limit is not None and served >= limit):
            raise ModbusTimeoutError(f"No response from device {device_address}", device_address=device_address)
        self.reads_by_device[device_address] = served + 1
        return [regs.get(start_address + i, 0) for i in range(count)]

    @property
    def is_open(self) -> bool:
        return self.entered > self.exited

    def __enter__(self) -> "SimulatedTransport":
        self.entered += 1
        return self

    def __exit__(self, *args: Any) -> None:
        self.exited += 1


@pytest.fixture
def registry() -> VariableRegistry:
    return get_default_registry()


@pytest.fixture
def bus(registry: VariableRegistry) -> SimulatedTransport:
    """Bus with no devices; tests add sensors as needed."""
    return SimulatedTransport()
