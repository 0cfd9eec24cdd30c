"""Register transport: the holding-register read primitive over pymodbus RTU, plus port discovery."""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from pymodbus.client import ModbusSerialClient
from pymodbus.exceptions import ModbusException as PymodbusException
from pymodbus.exceptions import ModbusIOException
from serial.tools import list_ports

from .errors import ModbusIOError, ModbusTimeoutError

logger = logging.getLogger(__name__)


class RegisterTransport(Protocol):
    """What the core needs from a bus: a name and the holding-register read."""

    name: str

    def read_holding_registers(self, device_address: int, start_address: int, count: int) -> list[int]:
        """Return count registers from device_address, or raise ModbusTimeoutError."""
        ...

    def __enter__(self) -> "RegisterTransport": ...

    def __exit__(self, *args: Any) -> None: ...


@dataclass(frozen=True)
class SerialSettings:
    """Serial line parameters for one bus. timeout bounds how long an empty address stalls a scan."""

    port: str
    baudrate: int = 9600
    bytesize: int = 8
    parity: str = "E"
    stopbits: int = 1
    timeout: float = 0.05
    retries: int = 0

    def __post_init__(self) -> None:
        if self.parity not in ("N", "E", "O"):
            raise ValueError(f"parity must be N, E or O, got {self.parity!r}")
        if not self.timeout > 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")


class SerialTransport:
    """
    Modbus RTU master on one serial port, wrapping pymodbus ModbusSerialClient.
    Use as a context manager so the port is closed on every exit path.
    """

    def __init__(self, settings: SerialSettings) -> None:
        self._settings = settings
        self._client: ModbusSerialClient | None = None

    @property
    def name(self) -> str:
        return self._settings.port

    @property
    def settings(self) -> SerialSettings:
        return self._settings

    def _get_client(self) -> ModbusSerialClient:
        if self._client is None:
            s = self._settings
            self._client = ModbusSerialClient(
                port=s.port,
                baudrate=s.baudrate,
                bytesize=s.bytesize,
                parity=s.parity,
                stopbits=s.stopbits,
                timeout=s.timeout,
                retries=s.retries,
            )
            if not self._client.connect():
                self._client = None
                raise ModbusIOError(f"Failed to open serial port {s.port}")
            logger.debug("Opened %s @ %d %d%s%d", s.port, s.baudrate, s.bytesize, s.parity, s.stopbits)
        return self._client

    def open(self) -> None:
        """Open the serial port."""
        self._get_client()

    def close(self) -> None:
        """Close the serial port."""
        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.warning("Error closing serial port %s: %s", self.name, e)
            self._client = None

    def __enter__(self) -> "SerialTransport":
        self.open()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def read_holding_registers(self, device_address: int, start_address: int, count: int) -> list[int]:
        client = self._get_client()
        try:
            rr = client.read_holding_registers(start_address, count=count, device_id=device_address)
        except ModbusIOException as e:
            raise ModbusTimeoutError(
                f"No response from device {device_address} on {self.name}",
                device_address=device_address,
                start_address=start_address,
                cause=e,
            ) from e
        except PymodbusException as e:
            raise ModbusIOError(
                str(e),
                device_address=device_address,
                start_address=start_address,
                cause=e,
            ) from e

        if rr.isError():
            raise ModbusIOError(
                str(rr),
                device_address=device_address,
                start_address=start_address,
                cause=getattr(rr, "exception", None),
            )
        registers = getattr(rr, "registers", None)
        if not registers:
            raise ModbusIOError(
                "Empty register response",
                device_address=device_address,
                start_address=start_address,
            )
        return [int(r) for r in registers]

    def __str__(self) -> str:
        return self.name


def list_serial_ports() -> list[str]:
    """Device names of the serial ports present on this machine, sorted."""
    return sorted(p.device for p in list_ports.comports())
