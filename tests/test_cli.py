"""Tests for CLI module - formatting helpers and command structure."""

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from conftest import SimulatedTransport
from pysensorbus.cli import app, format_record, format_value
from pysensorbus.errors import ModbusIOError
from pysensorbus.registry import get_default_registry
from pysensorbus.types import DecodedValue, Record, WireType

runner = CliRunner()


def json_lines(text: str) -> list[dict]:
    return [json.loads(line) for line in text.splitlines() if line.startswith("{")]


@pytest.fixture
def sim_buses() -> dict[str, SimulatedTransport]:
    registry = get_default_registry()
    buses = {"COM3": SimulatedTransport("COM3"), "COM4": SimulatedTransport("COM4")}
    buses["COM3"].add_sensor(2, registry, det=21.5, target=25.0)
    buses["COM4"].add_sensor(5, registry, det=19.0, target=20.0)
    return buses


@pytest.fixture
def patched_serial(sim_buses: dict[str, SimulatedTransport]):  # type: ignore[no-untyped-def]
    with patch("pysensorbus.cli.SerialTransport", side_effect=lambda s: sim_buses[s.port]) as cls, \
            patch("pysensorbus.cli.list_serial_ports", return_value=["COM4", "COM3"]):
        yield cls


# ============================================================================
# Formatting Tests
# ============================================================================


class TestFormatValue:
    """Test value formatting for display."""

    def test_uint16(self) -> None:
        assert format_value(DecodedValue(WireType.UINT16, 5)) == "5"

    def test_float32_two_decimals(self) -> None:
        assert format_value(DecodedValue(WireType.FLOAT32, 21.5)) == "21.50"


class TestFormatRecord:
    """Test record rendering in each output format."""

    record = Record(2, "COM3:2", "TemperatureDet", DecodedValue(WireType.FLOAT32, 21.5), "2026-01-01T00:00:00+00:00")

    def test_text(self) -> None:
        assert format_record(self.record, "text") == "2: COM3:2 TemperatureDet=21.50"

    def test_json(self) -> None:
        data = json.loads(format_record(self.record, "json"))
        assert data["iteration"] == 2
        assert data["device"] == "COM3:2"
        assert data["variable"] == "TemperatureDet"
        assert data["type"] == "float32"
        assert data["value"] == 21.5

    def test_csv(self) -> None:
        assert format_record(self.record, "csv") == "2,COM3:2,TemperatureDet,21.50,2026-01-01T00:00:00+00:00"


# ============================================================================
# Command Structure Tests (with simulated buses)
# ============================================================================


def test_run_all_ports_text(patched_serial: MagicMock) -> None:
    result = runner.invoke(app, ["run", "8", "--iterations", "2"])

    assert result.exit_code == 0, result.output
    lines = [line for line in result.stdout.splitlines() if line[:1].isdigit()]
    assert lines == [
        "0: COM3:2 TemperatureDet=21.50",
        "0: COM3:2 TemperatureTarget=25.00",
        "1: COM3:2 TemperatureDet=21.50",
        "1: COM3:2 TemperatureTarget=25.00",
        "0: COM4:5 TemperatureDet=19.00",
        "0: COM4:5 TemperatureTarget=20.00",
        "1: COM4:5 TemperatureDet=19.00",
        "1: COM4:5 TemperatureTarget=20.00",
    ]
    assert "Done Successfully." in result.output


def test_run_json_single_port(patched_serial: MagicMock, sim_buses: dict[str, SimulatedTransport]) -> None:
    result = runner.invoke(
        app, ["run", "--port", "COM4", "--iterations", "1", "--var", "TemperatureDet", "--format", "json"]
    )

    assert result.exit_code == 0, result.output
    records = json_lines(result.stdout)
    assert len(records) == 1
    assert records[0]["device"] == "COM4:5"
    assert records[0]["value"] == 19.0
    # default max address is 16
    assert max(c[0] for c in sim_buses["COM4"].calls) == 16
    assert sim_buses["COM3"].calls == []


def test_run_csv(patched_serial: MagicMock) -> None:
    result = runner.invoke(app, ["run", "4", "--port", "COM3", "--iterations", "1", "--format", "csv"])

    assert result.exit_code == 0, result.output
    lines = [line for line in result.stdout.splitlines() if "," in line]
    assert lines[0] == "iteration,device,variable,value,timestamp"
    assert lines[1].startswith("0,COM3:2,TemperatureDet,21.50,")
    assert lines[2].startswith("0,COM3:2,TemperatureTarget,25.00,")


def test_run_closes_every_port(patched_serial: MagicMock, sim_buses: dict[str, SimulatedTransport]) -> None:
    result = runner.invoke(app, ["run", "4", "--iterations", "1"])
    assert result.exit_code == 0, result.output
    assert all(b.entered == 1 and not b.is_open for b in sim_buses.values())


def test_run_device_timeout_does_not_fail_run(patched_serial: MagicMock, sim_buses: dict[str, SimulatedTransport]) -> None:
    sim_buses["COM3"].timeout_after[2] = 1  # answers the probe only
    result = runner.invoke(app, ["run", "4", "--iterations", "2", "--format", "json"])

    assert result.exit_code == 0, result.output
    assert {r["device"] for r in json_lines(result.stdout)} == {"COM4:5"}
    assert "stopped" in result.output


def test_run_unknown_variable_exits_2(patched_serial: MagicMock) -> None:
    result = runner.invoke(app, ["run", "4", "--port", "COM3", "--var", "Pressure"])
    assert result.exit_code == 2
    assert "Unknown variable" in result.output


@pytest.mark.parametrize("max_address", ["0", "248"])
def test_run_max_address_bounds(patched_serial: MagicMock, max_address: str) -> None:
    result = runner.invoke(app, ["run", max_address])
    assert result.exit_code == 2


def test_run_invalid_format() -> None:
    result = runner.invoke(app, ["run", "--port", "COM3", "--format", "xml"])
    assert result.exit_code == 2
    assert "Invalid format" in result.output


def test_run_invalid_parity(patched_serial: MagicMock) -> None:
    result = runner.invoke(app, ["run", "--port", "COM3", "--parity", "X"])
    assert result.exit_code == 2
    assert "Invalid serial settings" in result.output


def test_scan_command(patched_serial: MagicMock) -> None:
    result = runner.invoke(app, ["scan", "8", "--port", "COM4"])

    assert result.exit_code == 0, result.output
    assert "Found devices on COM4: [5]" in result.stdout


def test_scan_command_json(patched_serial: MagicMock) -> None:
    result = runner.invoke(app, ["scan", "--port", "COM3", "--json"])

    assert result.exit_code == 0, result.output
    assert json_lines(result.stdout) == [{"port": "COM3", "addresses": [2]}]


def test_scan_requires_port() -> None:
    result = runner.invoke(app, ["scan"])
    assert result.exit_code == 2
    assert "--port is required" in result.output


def test_scan_open_failure_exits_3() -> None:
    transport = MagicMock()
    transport.__enter__.side_effect = ModbusIOError("Failed to open serial port COM9")
    with patch("pysensorbus.cli.SerialTransport", return_value=transport):
        result = runner.invoke(app, ["scan", "--port", "COM9"])
    assert result.exit_code == 3
    assert "Connection/Modbus error" in result.output


def test_read_command(patched_serial: MagicMock) -> None:
    result = runner.invoke(app, ["read", "TemperatureDet", "--port", "COM3", "--address", "2"])

    assert result.exit_code == 0, result.output
    assert "21.50" in result.stdout


def test_read_command_json(patched_serial: MagicMock) -> None:
    result = runner.invoke(app, ["read", "SlaveAddress", "--port", "COM4", "--address", "5", "--json"])

    assert result.exit_code == 0, result.output
    assert json_lines(result.stdout) == [{"device": "COM4:5", "variable": "SlaveAddress", "value": 5}]


def test_read_timeout_exits_3(patched_serial: MagicMock) -> None:
    result = runner.invoke(app, ["read", "TemperatureDet", "--port", "COM3", "--address", "9"])
    assert result.exit_code == 3


def test_read_unknown_variable_exits_2(patched_serial: MagicMock) -> None:
    result = runner.invoke(app, ["read", "Pressure", "--port", "COM3", "--address", "2"])
    assert result.exit_code == 2
    assert "Unknown variable" in result.output


def test_explain_command() -> None:
    result = runner.invoke(app, ["explain", "TemperatureDet"])

    assert result.exit_code == 0
    assert "0x0404" in result.stdout
    assert "float32" in result.stdout
    assert "Span:" in result.stdout


def test_explain_command_json() -> None:
    result = runner.invoke(app, ["explain", "SlaveAddress", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["address"] == "0x0800"
    assert data["type"] == "uint16"
    assert data["span"] == 1


def test_explain_with_registry_file(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = tmp_path / "map.json"
    path.write_text(json.dumps([{"name": "Humidity", "address": 1040, "type": "float32", "span": 2}]))
    result = runner.invoke(app, ["explain", "Humidity", "--registry", str(path), "--json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["address"] == "0x0410"


def test_explain_missing_registry_file(tmp_path) -> None:  # type: ignore[no-untyped-def]
    result = runner.invoke(app, ["explain", "Humidity", "--registry", str(tmp_path / "nope.json")])
    assert result.exit_code == 2


def test_ports_command() -> None:
    with patch("pysensorbus.cli.list_serial_ports", return_value=["COM3", "COM4"]):
        result = runner.invoke(app, ["ports"])
    assert result.exit_code == 0
    assert result.stdout.split() == ["COM3", "COM4"]


def test_info_command_json() -> None:
    result = runner.invoke(app, ["info", "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["profile"] == "default"
    assert "TemperatureDet" in data["variables"]


def test_command_help() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("run", "scan", "read", "explain", "ports", "info"):
        assert command in result.stdout


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "pysensorbus" in result.stdout
