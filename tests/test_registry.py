"""Tests for VariableRegistry loading and lookup; default profile."""

import json
from pathlib import Path

import pytest

from pysensorbus import VariableRegistry, get_default_registry
from pysensorbus.errors import UnknownVariableError, UnsupportedWireTypeError
from pysensorbus.types import VariableSpec, WireType


def test_registry_from_entries() -> None:
    fixture = [
        {"name": "SlaveAddress", "address": 0x0800, "type": "uint16", "span": 1},
        {"name": "Humidity", "address": "0x0410", "type": "float32", "span": 2},
    ]
    m = VariableRegistry(entries=fixture)
    assert m.lookup("SlaveAddress") == VariableSpec("SlaveAddress", 0x0800, WireType.UINT16, 1)
    assert m.lookup("Humidity") == VariableSpec("Humidity", 0x0410, WireType.FLOAT32, 2)
    assert len(m) == 2
    assert "Humidity" in m
    assert list(m) == ["SlaveAddress", "Humidity"]


def test_registry_unknown_raises() -> None:
    m = VariableRegistry(entries=[{"name": "SlaveAddress", "address": 2048, "type": "uint16", "span": 1}])
    with pytest.raises(UnknownVariableError) as exc_info:
        m.lookup("Pressure")
    assert exc_info.value.name == "Pressure"


def test_registry_default_profile() -> None:
    m = get_default_registry()
    assert m.profile == "default"
    assert m.lookup("SlaveAddress") == VariableSpec("SlaveAddress", 0x0800, WireType.UINT16, 1)
    assert m.lookup("TemperatureTarget") == VariableSpec("TemperatureTarget", 0x0400, WireType.FLOAT32, 2)
    assert m.lookup("TemperatureDet") == VariableSpec("TemperatureDet", 0x0404, WireType.FLOAT32, 2)


def test_registry_unknown_profile_raises() -> None:
    with pytest.raises(ValueError, match="Unknown profile"):
        VariableRegistry(profile="fc6a")


def test_registry_duplicate_entries_raise() -> None:
    fixture = [
        {"name": "TemperatureDet", "address": 0x0404, "type": "float32", "span": 2},
        {"name": "TemperatureDet", "address": 0x0400, "type": "float32", "span": 2},
    ]
    with pytest.raises(ValueError, match="Duplicate variable"):
        VariableRegistry(entries=fixture)


def test_registry_span_must_match_wire_type() -> None:
    with pytest.raises(ValueError, match="does not fit"):
        VariableRegistry(entries=[{"name": "TemperatureDet", "address": 0x0404, "type": "float32", "span": 1}])


def test_registry_span_defaults_from_wire_type() -> None:
    m = VariableRegistry(entries=[{"name": "TemperatureDet", "address": 0x0404, "type": "Single"}])
    assert m.lookup("TemperatureDet").span == 2


def test_registry_unsupported_type_raises() -> None:
    with pytest.raises(UnsupportedWireTypeError):
        VariableRegistry(entries=[{"name": "Serial", "address": 0x0900, "type": "string", "span": 4}])


def test_registry_from_file(tmp_path: Path) -> None:
    path = tmp_path / "lab.json"
    path.write_text(
        json.dumps(
            {
                "profile": "lab",
                "entries": [{"name": "SlaveAddress", "address": "0x0800", "type": "UInt16", "span": 1}],
            }
        ),
        encoding="utf-8",
    )
    m = VariableRegistry.from_file(path)
    assert m.profile == "lab"
    assert m.lookup("SlaveAddress").address == 0x0800


def test_variable_spec_rejects_bad_address() -> None:
    with pytest.raises(ValueError, match="address"):
        VariableSpec("X", 0x10000, WireType.UINT16, 1)
