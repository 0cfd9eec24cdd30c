"""BusScanner: find the device addresses on a bus that answer with their own address."""

import logging

from .codec import RegisterCodec
from .device import DeviceHandle
from .errors import InconsistentIdentityError, ModbusTimeoutError
from .registry import VariableRegistry
from .transport import RegisterTransport
from .types import MAX_DEVICE_ADDRESS

logger = logging.getLogger(__name__)

DEFAULT_MAX_ADDRESS = 16


def check_max_address(max_address: int) -> int:
    if not 1 <= max_address <= MAX_DEVICE_ADDRESS:
        raise ValueError(f"max address must be in 1..{MAX_DEVICE_ADDRESS}, got {max_address}")
    return max_address


class BusScanner:
    """
    Probes addresses 1..max_address in ascending order by reading SlaveAddress.

    A timeout means nothing lives at the address. A device reporting some other
    address is discarded. Registry and codec errors are not caught.
    """

    def __init__(
        self,
        transport: RegisterTransport,
        registry: VariableRegistry,
        codec: RegisterCodec | None = None,
        max_address: int = DEFAULT_MAX_ADDRESS,
    ) -> None:
        self._transport = transport
        self._registry = registry
        self._codec = codec if codec is not None else RegisterCodec()
        self._max_address = check_max_address(max_address)

    @property
    def max_address(self) -> int:
        return self._max_address

    def probe(self, address: int) -> DeviceHandle | None:
        """Return a handle for address if a self-consistent device answers there, else None."""
        device = DeviceHandle(self._transport, address, self._registry, self._codec)
        try:
            device.verify_identity()
        except ModbusTimeoutError:
            logger.debug("No response at %s", device.label)
            return None
        except InconsistentIdentityError as e:
            logger.info("Discarding %s: device reports address %d", device.label, e.reported)
            return None
        logger.info("Found device at %s", device.label)
        return device

    def scan(self) -> list[DeviceHandle]:
        """Probe every candidate address; return confirmed devices in ascending address order."""
        logger.debug("Scanning %s addresses 1..%d", self._transport.name, self._max_address)
        found: list[DeviceHandle] = []
        for address in range(1, self._max_address + 1):
            device = self.probe(address)
            if device is not None:
                found.append(device)
        return found
