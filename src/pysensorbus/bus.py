"""Per-bus pass: own the transport, discover devices, sample them; then repeat for the next port."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

from .codec import RegisterCodec
from .errors import ModbusIOError
from .registry import VariableRegistry
from .sampler import DEFAULT_ITERATIONS, DEFAULT_VARIABLES, DeviceRun, sample_devices
from .scanner import DEFAULT_MAX_ADDRESS, BusScanner
from .transport import RegisterTransport
from .types import Record

logger = logging.getLogger(__name__)


@dataclass
class BusReport:
    """Outcome of one bus pass: discovered addresses and one DeviceRun per device."""

    port: str
    addresses: list[int] = field(default_factory=list)
    runs: list[DeviceRun] = field(default_factory=list)
    error: ModbusIOError | None = None

    @property
    def records(self) -> list[Record]:
        return [r for run in self.runs for r in run.records]


def poll_bus(
    transport: RegisterTransport,
    registry: VariableRegistry,
    codec: RegisterCodec | None = None,
    max_address: int = DEFAULT_MAX_ADDRESS,
    variables: Sequence[str] = DEFAULT_VARIABLES,
    iterations: int = DEFAULT_ITERATIONS,
) -> BusReport:
    """
    Scan then sample one bus. The transport is entered as a context manager, so it
    is closed whether the pass completes or a configuration error escapes.
    """
    for name in variables:
        registry.lookup(name)
    with transport:
        devices = BusScanner(transport, registry, codec, max_address).scan()
        report = BusReport(port=transport.name, addresses=[d.address for d in devices])
        logger.info("Found devices on %s: %s", transport.name, [d.label for d in devices])
        report.runs = sample_devices(devices, variables, iterations)
    return report


def poll_ports(
    ports: Iterable[str],
    transport_factory: Callable[[str], RegisterTransport],
    registry: VariableRegistry,
    codec: RegisterCodec | None = None,
    max_address: int = DEFAULT_MAX_ADDRESS,
    variables: Sequence[str] = DEFAULT_VARIABLES,
    iterations: int = DEFAULT_ITERATIONS,
) -> list[BusReport]:
    """
    Run poll_bus for each port in sorted order, one at a time.

    A port that fails at the transport level is reported and skipped; registry and
    codec errors abort the whole run.
    """
    for name in variables:
        registry.lookup(name)
    reports: list[BusReport] = []
    for port in sorted(ports):
        logger.info("Searching %s", port)
        transport = transport_factory(port)
        try:
            report = poll_bus(transport, registry, codec, max_address, variables, iterations)
        except ModbusIOError as e:
            logger.error("Bus %s failed: %s", port, e)
            report = BusReport(port=port, error=e)
        reports.append(report)
    return reports


def flatten_records(reports: Iterable[BusReport]) -> list[Record]:
    """All records from all ports and devices, in collection order."""
    return [r for report in reports for r in report.records]
