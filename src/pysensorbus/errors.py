"""Exceptions for pysensorbus: registry/codec configuration errors and Modbus I/O errors."""


class SensorBusError(Exception):
    """Base exception for pysensorbus."""

    pass


class UnknownVariableError(SensorBusError):
    """Raised when a variable name is not defined in the registry."""

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        self._msg = message or f"Unknown variable: {name!r}"
        super().__init__(self._msg)


class UnsupportedWireTypeError(SensorBusError):
    """Raised when the codec is asked to decode a wire type it has no rule for."""

    def __init__(self, wire_type: object, message: str | None = None) -> None:
        self.wire_type = wire_type
        self._msg = message or f"Unsupported wire type: {wire_type!r}"
        super().__init__(self._msg)


class ModbusIOError(SensorBusError):
    """Raised when a register read fails (wraps pymodbus or serial port errors)."""

    def __init__(
        self,
        message: str,
        *,
        device_address: int | None = None,
        start_address: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.device_address = device_address
        self.start_address = start_address
        self.cause = cause
        super().__init__(message)


class ModbusTimeoutError(ModbusIOError):
    """Raised when no valid response arrives from the addressed device."""

    pass


class InconsistentIdentityError(SensorBusError):
    """Raised when a device reports a SlaveAddress other than the one it was probed at."""

    def __init__(self, probed: int, reported: int) -> None:
        self.probed = probed
        self.reported = reported
        super().__init__(f"Device probed at address {probed} reports address {reported}")
