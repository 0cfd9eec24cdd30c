"""Sampling loop: read a fixed list of variables from each device over repeated iterations."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, Sequence

from .device import DeviceHandle
from .errors import ModbusTimeoutError
from .types import Record

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 100
DEFAULT_VARIABLES: tuple[str, ...] = ("TemperatureDet", "TemperatureTarget")


@dataclass
class DeviceRun:
    """Records collected from one device, how long it took, and the timeout that ended it early (if any)."""

    device_label: str
    address: int
    records: list[Record] = field(default_factory=list)
    elapsed_s: float = 0.0
    error: ModbusTimeoutError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _check_variables(device: DeviceHandle, variables: Sequence[str]) -> None:
    # lookup raises UnknownVariableError before any bus traffic
    for name in variables:
        device.registry.lookup(name)


def iter_samples(
    device: DeviceHandle,
    variables: Sequence[str] = DEFAULT_VARIABLES,
    iterations: int = DEFAULT_ITERATIONS,
) -> Iterator[Record]:
    """
    Yield one Record per (iteration, variable), iterations ascending and variables
    in the given order. A ModbusTimeoutError propagates and ends the stream.
    """
    if iterations < 0:
        raise ValueError(f"iterations must be >= 0, got {iterations}")
    _check_variables(device, variables)
    label = device.label
    for i in range(iterations):
        for name in variables:
            value = device.read_variable(name)
            yield Record(
                iteration=i,
                device_label=label,
                variable_name=name,
                value=value,
                timestamp=datetime.now(timezone.utc).isoformat(),
            )


def sample_device(
    device: DeviceHandle,
    variables: Sequence[str] = DEFAULT_VARIABLES,
    iterations: int = DEFAULT_ITERATIONS,
) -> DeviceRun:
    """
    Run iter_samples to completion for one device and time it.

    A timeout stops this device's sampling and is kept in DeviceRun.error
    together with the records read before it.
    """
    run = DeviceRun(device_label=device.label, address=device.address)
    start = time.perf_counter()
    try:
        for record in iter_samples(device, variables, iterations):
            run.records.append(record)
            logger.debug("%d: %s %s = %s", record.iteration, run.device_label, record.variable_name, record.value)
    except ModbusTimeoutError as e:
        run.error = e
        logger.error("Sampling %s stopped after %d records: %s", run.device_label, len(run.records), e)
    finally:
        run.elapsed_s = time.perf_counter() - start
    logger.info("Sampled %s: %d records in %.3f s", run.device_label, len(run.records), run.elapsed_s)
    return run


def sample_devices(
    devices: Sequence[DeviceHandle],
    variables: Sequence[str] = DEFAULT_VARIABLES,
    iterations: int = DEFAULT_ITERATIONS,
) -> list[DeviceRun]:
    """Sample each device in turn; a timeout on one device does not stop the others."""
    return [sample_device(d, variables, iterations) for d in devices]
