#!/usr/bin/env python3
"""Example: open one serial port, find the sensors on it, and read each one's temperatures."""

import sys

from pysensorbus import BusScanner, SerialSettings, SerialTransport, get_default_registry
from pysensorbus.errors import ModbusIOError, ModbusTimeoutError, UnknownVariableError


def main() -> None:
    port = "/dev/ttyUSB0"  # change to your RS-485 adapter (e.g. COM3)
    max_address = 16

    registry = get_default_registry()
    try:
        with SerialTransport(SerialSettings(port=port)) as bus:
            devices = BusScanner(bus, registry, max_address=max_address).scan()
            print(f"Found devices on {port}: {[d.address for d in devices]}")

            for device in devices:
                det = device.read_variable("TemperatureDet")
                target = device.read_variable("TemperatureTarget")
                print(f"{device}: TemperatureDet={det} TemperatureTarget={target}")

                # Describe a variable without touching the bus
                print(f"explain(TemperatureDet): {device.explain('TemperatureDet')}")
    except UnknownVariableError as e:
        print(f"Unknown variable: {e}", file=sys.stderr)
        sys.exit(1)
    except ModbusTimeoutError as e:
        print(f"Device stopped responding: {e}", file=sys.stderr)
        sys.exit(1)
    except ModbusIOError as e:
        print(f"Modbus/serial error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
