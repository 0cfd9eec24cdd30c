"""VariableRegistry: load embedded JSON via importlib.resources, profile selection, O(1) lookup."""

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Iterator

from .errors import UnknownVariableError, UnsupportedWireTypeError
from .types import VariableSpec, WireType

logger = logging.getLogger(__name__)

_PROFILE_RESOURCE: dict[str, str] = {
    "default": "pysensorbus.data.default_variables",
}

SLAVE_ADDRESS = "SlaveAddress"


def _parse_address(raw: Any) -> int:
    """Accept an int or a string in any base Python understands ('0x0800', '2048')."""
    if isinstance(raw, int):
        return raw
    return int(str(raw).strip(), 0)


def _parse_entry(raw: dict[str, Any]) -> VariableSpec:
    """Build VariableSpec from a JSON entry (name, address, type, span)."""
    name = raw["name"]
    type_str = raw["type"]
    try:
        wire_type = WireType.parse(type_str)
    except ValueError:
        raise UnsupportedWireTypeError(type_str, f"Unsupported wire type {type_str!r} for variable {name!r}") from None
    address = _parse_address(raw["address"])
    span = int(raw.get("span", wire_type.size // 2))
    return VariableSpec(name=name, address=address, wire_type=wire_type, span=span)


def _entries_from_data(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and "entries" in data:
        return data["entries"]
    if isinstance(data, dict):
        # {"SlaveAddress": {"address": ..., ...}, ...}
        return [{"name": k, **v} for k, v in data.items() if isinstance(v, dict)]
    return []


class VariableRegistry:
    """
    Fixed map of variable names to VariableSpec. Loaded from packaged JSON or an
    explicit entry list; there is no API to change it after construction.
    """

    def __init__(self, profile: str = "default", entries: list[dict[str, Any]] | None = None) -> None:
        """
        Load the registry for the given profile, or use entries (list of entry dicts).
        Default profile is 'default'.
        """
        self._profile = profile.lower()
        self._by_name: dict[str, VariableSpec] = {}

        if entries is not None:
            self._load(entries)
            logger.debug("VariableRegistry loaded from entries: %d variables", len(self._by_name))
            return

        resource_name = _PROFILE_RESOURCE.get(self._profile)
        if not resource_name:
            raise ValueError(f"Unknown profile: {profile!r}")

        pkg, name = resource_name.rsplit(".", 1)
        json_name = f"{name}.json"
        try:
            with resources.files(pkg).joinpath(json_name).open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"Variable map resource not found: {pkg}/{json_name}") from None

        self._load(_entries_from_data(data))
        logger.debug("VariableRegistry loaded for profile %s: %d variables", self._profile, len(self._by_name))

    @classmethod
    def from_file(cls, path: str | Path) -> "VariableRegistry":
        """Load a registry from a user JSON file (same layout as the packaged maps)."""
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        profile = data.get("profile", path.stem) if isinstance(data, dict) else path.stem
        return cls(profile=profile, entries=_entries_from_data(data))

    def _load(self, entries: list[dict[str, Any]]) -> None:
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            spec = _parse_entry(entry)
            if spec.name in self._by_name:
                raise ValueError(f"Duplicate variable in map: {spec.name}")
            self._by_name[spec.name] = spec

    def lookup(self, name: str) -> VariableSpec:
        """Return VariableSpec for name; raise UnknownVariableError if not in map."""
        if name not in self._by_name:
            raise UnknownVariableError(name)
        return self._by_name[name]

    def names(self) -> list[str]:
        return list(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)

    @property
    def profile(self) -> str:
        return self._profile


def get_default_registry(profile: str = "default") -> VariableRegistry:
    """Load and return the packaged VariableRegistry for the given profile."""
    return VariableRegistry(profile=profile)
