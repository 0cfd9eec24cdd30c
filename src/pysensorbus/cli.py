#!/usr/bin/env python3
"""Command-line interface for pysensorbus using Typer."""

import json
import logging
import time
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .bus import BusReport, flatten_records, poll_ports
from .codec import RegisterCodec
from .device import DeviceHandle
from .errors import ModbusIOError, UnknownVariableError, UnsupportedWireTypeError
from .registry import VariableRegistry, get_default_registry
from .sampler import DEFAULT_ITERATIONS, DEFAULT_VARIABLES
from .scanner import DEFAULT_MAX_ADDRESS, BusScanner
from .transport import SerialSettings, SerialTransport, list_serial_ports
from .types import MAX_DEVICE_ADDRESS, ByteOrder, DecodedValue, Record

app = typer.Typer(
    name="sensorbus",
    help="Discover Modbus RTU temperature sensors on serial ports and sample their readings.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Shared options and helpers
# ============================================================================

PortsOption = Annotated[
    Optional[list[str]],
    typer.Option("--port", "-p", help="Serial port to use (repeatable; default: all detected ports)", envvar="SENSORBUS_PORT"),
]
PortOption = Annotated[
    Optional[str],
    typer.Option("--port", "-p", help="Serial port (e.g. /dev/ttyUSB0, COM3)", envvar="SENSORBUS_PORT"),
]
BaudrateOption = Annotated[
    int,
    typer.Option("--baudrate", "-b", help="Serial baud rate", envvar="SENSORBUS_BAUDRATE"),
]
ParityOption = Annotated[
    str,
    typer.Option("--parity", help="Serial parity: N, E or O", envvar="SENSORBUS_PARITY"),
]
StopbitsOption = Annotated[
    int,
    typer.Option("--stopbits", help="Serial stop bits", envvar="SENSORBUS_STOPBITS"),
]
BytesizeOption = Annotated[
    int,
    typer.Option("--bytesize", help="Serial data bits", envvar="SENSORBUS_BYTESIZE"),
]
TimeoutOption = Annotated[
    float,
    typer.Option("--timeout", "-t", help="Response timeout in seconds (bounds the wait at an empty address)", envvar="SENSORBUS_TIMEOUT"),
]
MswFirstOption = Annotated[
    bool,
    typer.Option("--msw-first", help="Device sends the most significant register word first"),
]
ByteOrderOption = Annotated[
    ByteOrder,
    typer.Option("--byte-order", help="Byte order inside each register word", case_sensitive=False),
]
RegistryOption = Annotated[
    Optional[Path],
    typer.Option("--registry", help="JSON variable map to use instead of the packaged one", envvar="SENSORBUS_REGISTRY"),
]
MaxAddressArgument = Annotated[
    int,
    typer.Argument(help=f"Highest device address to probe (1..{MAX_DEVICE_ADDRESS})", min=1, max=MAX_DEVICE_ADDRESS),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def load_registry(path: Optional[Path]) -> VariableRegistry:
    """Packaged registry, or the one in path when given."""
    if path is None:
        return get_default_registry()
    if not path.is_file():
        typer.echo(f"Error: Registry file not found: {path}", err=True)
        raise typer.Exit(2)
    return VariableRegistry.from_file(path)


def make_settings(
    port: Optional[str],
    baudrate: int,
    parity: str,
    stopbits: int,
    bytesize: int,
    timeout: float,
) -> SerialSettings:
    """Build SerialSettings; invalid values exit with code 2."""
    if not port:
        typer.echo("Error: --port is required for this command", err=True)
        raise typer.Exit(2)
    try:
        return SerialSettings(
            port=port,
            baudrate=baudrate,
            parity=parity.upper(),
            stopbits=stopbits,
            bytesize=bytesize,
            timeout=timeout,
        )
    except ValueError as e:
        typer.echo(f"Error: Invalid serial settings: {e}", err=True)
        raise typer.Exit(2)


def format_value(value: DecodedValue) -> str:
    """Format value for display: integers as-is, floats with 2 decimal places."""
    if isinstance(value.value, float):
        return f"{value.value:.2f}"
    return str(value.value)


def format_record(record: Record, fmt: str) -> str:
    """Render one record as a text line, an NDJSON object, or a CSV row."""
    if fmt == "json":
        return json.dumps(record.to_dict())
    if fmt == "csv":
        return ",".join(
            [str(record.iteration), record.device_label, record.variable_name, format_value(record.value), record.timestamp]
        )
    return f"{record.iteration}: {record.device_label} {record.variable_name}={format_value(record.value)}"


def summarize(reports: list[BusReport]) -> None:
    """Write per-port and per-device outcome to stderr."""
    for report in reports:
        if report.error is not None:
            typer.echo(f"{report.port}: FAILED ({report.error})", err=True)
            continue
        typer.echo(f"Found devices on {report.port}: {report.addresses}", err=True)
        for device_run in report.runs:
            status = "ok" if device_run.ok else f"stopped: {device_run.error}"
            typer.echo(
                f"  {device_run.device_label}: {len(device_run.records)} records in {device_run.elapsed_s:.3f} s ({status})",
                err=True,
            )


def _fail(e: Exception, verbose: bool) -> None:
    """Map an exception to the CLI exit code convention (2 config, 3 Modbus, 4 unexpected)."""
    if isinstance(e, UnknownVariableError):
        typer.echo(f"Error: Unknown variable: {e}", err=True)
        raise typer.Exit(2)
    if isinstance(e, UnsupportedWireTypeError):
        typer.echo(f"Error: Unsupported wire type: {e}", err=True)
        raise typer.Exit(2)
    if isinstance(e, ModbusIOError):
        typer.echo(f"Error: Connection/Modbus error: {e}", err=True)
        raise typer.Exit(3)
    typer.echo(f"Error: Unexpected error: {e}", err=True)
    if verbose:
        import traceback
        traceback.print_exc()
    raise typer.Exit(4)


# ============================================================================
# Commands
# ============================================================================

@app.command()
def run(
    max_address: MaxAddressArgument = DEFAULT_MAX_ADDRESS,
    ports: PortsOption = None,
    baudrate: BaudrateOption = 9600,
    parity: ParityOption = "E",
    stopbits: StopbitsOption = 1,
    bytesize: BytesizeOption = 8,
    timeout: TimeoutOption = 0.05,
    msw_first: MswFirstOption = False,
    byte_order: ByteOrderOption = ByteOrder.LITTLE,
    registry_path: RegistryOption = None,
    iterations: Annotated[int, typer.Option("--iterations", "-n", help="Samples per device", min=0)] = DEFAULT_ITERATIONS,
    variables: Annotated[
        Optional[list[str]],
        typer.Option("--var", help="Variable to sample (repeatable; default: TemperatureDet, TemperatureTarget)"),
    ] = None,
    format: Annotated[str, typer.Option("--format", "-f", help="Output format: text, json, csv")] = "text",
    verbose: VerboseOption = False,
) -> None:
    """
    Scan every port for devices at addresses 1..MAX_ADDRESS and sample each one.

    Ports are handled one after another; each port is closed before the next is opened.
    A device that stops answering mid-run is reported and the others are still sampled.

    Outputs format:
    - text: "<iteration>: <port>:<address> <variable>=<value>" (default)
    - json: NDJSON, one record per line
    - csv: iteration,device,variable,value,timestamp
    """
    setup_logging(verbose)

    if format not in ("text", "json", "csv"):
        typer.echo(f"Error: Invalid format '{format}'. Must be text, json, or csv.", err=True)
        raise typer.Exit(2)

    port_names = list(ports) if ports else list_serial_ports()
    typer.echo(f"Found com ports: {port_names}", err=True)
    var_names = list(variables) if variables else list(DEFAULT_VARIABLES)

    try:
        registry = load_registry(registry_path)
        codec = RegisterCodec(lsb_first=not msw_first, byte_order=byte_order)
        # validate every port's settings before opening any of them
        settings = {p: make_settings(p, baudrate, parity, stopbits, bytesize, timeout) for p in port_names}

        start = time.perf_counter()
        reports = poll_ports(
            port_names,
            lambda p: SerialTransport(settings[p]),
            registry,
            codec,
            max_address=max_address,
            variables=var_names,
            iterations=iterations,
        )
        elapsed = time.perf_counter() - start
    except typer.Exit:
        raise
    except Exception as e:
        _fail(e, verbose)
        return

    if format == "csv":
        typer.echo("iteration,device,variable,value,timestamp")
    for record in flatten_records(reports):
        typer.echo(format_record(record, format))

    summarize(reports)
    typer.echo(f"Time used: {elapsed:.3f} s", err=True)
    typer.echo("Done Successfully.", err=True)


@app.command()
def scan(
    max_address: MaxAddressArgument = DEFAULT_MAX_ADDRESS,
    port: PortOption = None,
    baudrate: BaudrateOption = 9600,
    parity: ParityOption = "E",
    stopbits: StopbitsOption = 1,
    bytesize: BytesizeOption = 8,
    timeout: TimeoutOption = 0.05,
    msw_first: MswFirstOption = False,
    byte_order: ByteOrderOption = ByteOrder.LITTLE,
    registry_path: RegistryOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Find devices on one port without sampling them.

    A device counts as found when its SlaveAddress register equals the address it was probed at.
    """
    setup_logging(verbose)

    try:
        registry = load_registry(registry_path)
        codec = RegisterCodec(lsb_first=not msw_first, byte_order=byte_order)
        settings = make_settings(port, baudrate, parity, stopbits, bytesize, timeout)
        with SerialTransport(settings) as transport:
            devices = BusScanner(transport, registry, codec, max_address).scan()
    except typer.Exit:
        raise
    except Exception as e:
        _fail(e, verbose)
        return

    addresses = [d.address for d in devices]
    if json_output:
        typer.echo(json.dumps({"port": port, "addresses": addresses}))
    else:
        typer.echo(f"Found devices on {port}: {addresses}")


@app.command()
def read(
    name: Annotated[str, typer.Argument(help="Variable to read (e.g. TemperatureDet, SlaveAddress)")],
    port: PortOption = None,
    address: Annotated[
        int,
        typer.Option("--address", "-a", help="Device address", min=1, max=MAX_DEVICE_ADDRESS),
    ] = 1,
    baudrate: BaudrateOption = 9600,
    parity: ParityOption = "E",
    stopbits: StopbitsOption = 1,
    bytesize: BytesizeOption = 8,
    timeout: TimeoutOption = 0.05,
    msw_first: MswFirstOption = False,
    byte_order: ByteOrderOption = ByteOrder.LITTLE,
    registry_path: RegistryOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Read a single variable from one device.

    Returns the value as text by default, or JSON with --json.
    """
    setup_logging(verbose)

    try:
        registry = load_registry(registry_path)
        codec = RegisterCodec(lsb_first=not msw_first, byte_order=byte_order)
        settings = make_settings(port, baudrate, parity, stopbits, bytesize, timeout)
        with SerialTransport(settings) as transport:
            device = DeviceHandle(transport, address, registry, codec)
            value = device.read_variable(name)
    except typer.Exit:
        raise
    except Exception as e:
        _fail(e, verbose)
        return

    if json_output:
        typer.echo(json.dumps({"device": f"{port}:{address}", "variable": name, "value": value.value}))
    else:
        typer.echo(format_value(value))


@app.command()
def explain(
    name: Annotated[str, typer.Argument(help="Variable to explain (e.g. TemperatureDet)")],
    registry_path: RegistryOption = None,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Show register address, wire type, and span of a variable.

    Does not require a connection; uses the variable map only.
    """
    setup_logging(verbose)

    try:
        registry = load_registry(registry_path)
        spec = registry.lookup(name)
    except typer.Exit:
        raise
    except Exception as e:
        _fail(e, verbose)
        return

    info = {
        "variable": spec.name,
        "address": f"0x{spec.address:04X}",
        "type": spec.wire_type.value,
        "span": spec.span,
        "function_used": "read_holding_registers",
    }
    if json_output:
        typer.echo(json.dumps(info, indent=2))
    else:
        typer.echo(f"Variable:        {info['variable']}")
        typer.echo(f"Address:         {info['address']}")
        typer.echo(f"Type:            {info['type']}")
        typer.echo(f"Span:            {info['span']}")
        typer.echo(f"Function:        {info['function_used']}")


@app.command()
def ports(json_output: JsonOption = False) -> None:
    """List the serial ports present on this machine."""
    names = list_serial_ports()
    if json_output:
        typer.echo(json.dumps(names))
    elif not names:
        typer.echo("No serial ports found")
    else:
        for n in names:
            typer.echo(n)


@app.command()
def info(
    registry_path: RegistryOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show package version and the variables in the active map."""
    registry = load_registry(registry_path)
    info_data = {
        "version": __version__,
        "profile": registry.profile,
        "variables": registry.names(),
    }
    if json_output:
        typer.echo(json.dumps(info_data, indent=2))
    else:
        typer.echo(f"pysensorbus version: {info_data['version']}")
        typer.echo(f"Profile: {info_data['profile']}")
        typer.echo(f"Variables: {', '.join(info_data['variables'])}")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pysensorbus {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """sensorbus - discover and sample Modbus RTU temperature sensors."""
    pass


if __name__ == "__main__":
    app()
