#!/usr/bin/env python3
"""Example: scan every serial port, sample each sensor 100 times, and print the records."""

import logging
import sys

from pysensorbus import (
    SerialSettings,
    SerialTransport,
    flatten_records,
    get_default_registry,
    list_serial_ports,
    poll_ports,
)
from pysensorbus.errors import UnknownVariableError


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    ports = list_serial_ports()
    print(f"Found com ports: {ports}")

    try:
        reports = poll_ports(
            ports,
            lambda port: SerialTransport(SerialSettings(port=port)),
            get_default_registry(),
            max_address=16,
            variables=["TemperatureDet"],
            iterations=100,
        )
    except KeyboardInterrupt:
        print("\nStopped.")
        return
    except UnknownVariableError as e:
        print(f"Unknown variable: {e}", file=sys.stderr)
        sys.exit(1)

    for report in reports:
        for run in report.runs:
            print(f"{run.device_label}: {len(run.records)} readings, time used {run.elapsed_s:.3f} s")
    for record in flatten_records(reports):
        print(f"{record.iteration}: {record.device_label} {record.value}")
    print("Done Successfully.")


if __name__ == "__main__":
    main()
