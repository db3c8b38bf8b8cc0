from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from dissect.regexport.backend import RegistryBackend
from dissect.regexport.c_regexport import REG_BINARY, REG_DWORD, REG_SZ
from dissect.regexport.exceptions import BackendError, RegistryKeyNotFoundError, RegistryValueNotFoundError
from dissect.regexport.path import KeyPath, parse_key_path

if TYPE_CHECKING:
    from dissect.regexport.c_regexport import ValueData


class MemoryBackend(RegistryBackend):
    def __init__(self):
        self.keys: dict[str, tuple[dict[str, tuple[ValueData, int]], list[str]]] = {}
        self.broken: set[str] = set()

    def add_key(self, path: str, values: dict[str, tuple[ValueData, int]] | None = None) -> KeyPath:
        key = parse_key_path(path)

        if key.subkey:
            parent_path, _, name = str(key).rpartition("\\")
            parent = self.keys.get(parent_path.lower()) or self._entry(self.add_key(parent_path))
            if name not in parent[1]:
                parent[1].append(name)

        entry = self.keys.setdefault(str(key).lower(), ({}, []))
        entry[0].update(values or {})
        return key

    def break_key(self, path: str) -> None:
        self.broken.add(str(parse_key_path(path)).lower())

    def _entry(self, key: KeyPath) -> tuple[dict[str, tuple[ValueData, int]], list[str]]:
        try:
            return self.keys[str(key).lower()]
        except KeyError:
            raise RegistryKeyNotFoundError(str(key))

    def key_exists(self, key: KeyPath) -> bool:
        return str(key).lower() in self.keys

    def value_names(self, key: KeyPath) -> list[str]:
        return list(self._entry(key)[0])

    def subkey_names(self, key: KeyPath) -> list[str]:
        return list(self._entry(key)[1])

    def query_value(self, key: KeyPath, name: str) -> tuple[ValueData, int]:
        if str(key).lower() in self.broken:
            raise BackendError(f"Access denied reading {key}")

        try:
            return self._entry(key)[0][name]
        except KeyError:
            raise RegistryValueNotFoundError(name)


@pytest.fixture
def registry() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def software_registry(registry: MemoryBackend) -> MemoryBackend:
    registry.add_key(
        "HKLM:\\SOFTWARE\\Vendor",
        {
            "": ("vendor default", REG_SZ),
            "Version": (3, REG_DWORD),
        },
    )
    registry.add_key("HKLM:\\SOFTWARE\\Vendor\\Empty")
    registry.add_key(
        "HKLM:\\SOFTWARE\\Vendor\\App",
        {
            "InstallDir": ("C:\\Program Files\\App", REG_SZ),
            "Blob": (b"\x01\x02\xff", REG_BINARY),
        },
    )
    registry.add_key("HKLM:\\SOFTWARE\\Vendor\\App\\Plugins\\spell", {"Enabled": (1, REG_DWORD)})
    return registry
