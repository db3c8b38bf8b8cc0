from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from dissect import regf

from dissect.regexport.exceptions import (
    BackendError,
    Error,
    RegistryKeyNotFoundError,
    RegistryValueNotFoundError,
)
from dissect.regexport.path import KeyPath, is_valid_key, parse_key_path

if TYPE_CHECKING:
    from collections.abc import Iterator

    from dissect.regf.regf import KeyNode

    from dissect.regexport.c_regexport import ValueData

log = logging.getLogger(__name__)


class RegistryBackend:
    """Read-only access to a registry, addressed by :class:`KeyPath`.

    The default value of a key is listed by :meth:`value_names` and queried by :meth:`query_value` under the empty
    name ``""``.
    """

    def key_exists(self, key: KeyPath) -> bool:
        raise NotImplementedError

    def value_names(self, key: KeyPath) -> list[str]:
        raise NotImplementedError

    def subkey_names(self, key: KeyPath) -> list[str]:
        raise NotImplementedError

    def subkey_count(self, key: KeyPath) -> int:
        return len(self.subkey_names(key))

    def query_value(self, key: KeyPath, name: str) -> tuple[ValueData, int]:
        raise NotImplementedError

    def walk(self, key: KeyPath) -> Iterator[KeyPath]:
        """Yield all descendants of ``key`` depth-first, siblings ordered by their lowercased name."""
        for name in sorted(self.subkey_names(key), key=str.lower):
            subkey = key.join(name)
            log.debug("Walking %s", subkey)

            yield subkey
            yield from self.walk(subkey)

    def is_valid_key(self, path: str) -> bool:
        return is_valid_key(path, self)


class WinregBackend(RegistryBackend):
    """The registry of the local machine, read through :mod:`winreg`."""

    def __init__(self):
        try:
            import winreg
        except ImportError:
            raise BackendError("The live registry is only available on Windows")

        self._winreg = winreg
        # The native 64-bit view, also from a 32-bit interpreter
        self._access = winreg.KEY_READ | winreg.KEY_WOW64_64KEY
        self._hives = {
            "HKEY_LOCAL_MACHINE": winreg.HKEY_LOCAL_MACHINE,
            "HKEY_CURRENT_USER": winreg.HKEY_CURRENT_USER,
            "HKEY_CLASSES_ROOT": winreg.HKEY_CLASSES_ROOT,
            "HKEY_USERS": winreg.HKEY_USERS,
            "HKEY_CURRENT_CONFIG": winreg.HKEY_CURRENT_CONFIG,
        }

    @contextmanager
    def _open(self, key: KeyPath) -> Iterator[object]:
        try:
            handle = self._winreg.OpenKey(self._hives[key.hive], key.subkey, 0, self._access)
        except FileNotFoundError:
            raise RegistryKeyNotFoundError(str(key))
        except OSError as e:
            raise BackendError(f"Unable to open {key}: {e}") from e

        with handle:
            try:
                yield handle
            except OSError as e:
                raise BackendError(f"Unable to read {key}: {e}") from e

    def key_exists(self, key: KeyPath) -> bool:
        try:
            with self._open(key):
                return True
        except Error as e:
            log.debug("Key %s is not accessible: %s", key, e)
            return False

    def value_names(self, key: KeyPath) -> list[str]:
        with self._open(key) as handle:
            _, num_values, _ = self._winreg.QueryInfoKey(handle)
            return [self._winreg.EnumValue(handle, idx)[0] for idx in range(num_values)]

    def subkey_names(self, key: KeyPath) -> list[str]:
        with self._open(key) as handle:
            num_subkeys, _, _ = self._winreg.QueryInfoKey(handle)
            return [self._winreg.EnumKey(handle, idx) for idx in range(num_subkeys)]

    def subkey_count(self, key: KeyPath) -> int:
        with self._open(key) as handle:
            return self._winreg.QueryInfoKey(handle)[0]

    def query_value(self, key: KeyPath, name: str) -> tuple[ValueData, int]:
        with self._open(key) as handle:
            try:
                return self._winreg.QueryValueEx(handle, name)
            except FileNotFoundError:
                raise RegistryValueNotFoundError(f"{key}\\{name or '(Default)'}")


class HiveBackend(RegistryBackend):
    """Offline hive files, each mounted under a registry key.

    A SOFTWARE hive is typically mounted at ``HKEY_LOCAL_MACHINE\\SOFTWARE`` and an NTUSER.DAT at
    ``HKEY_CURRENT_USER``. Keys above a mount point do not exist.
    """

    def __init__(self):
        self._mounts: list[tuple[KeyPath, regf.RegistryHive]] = []

    def mount(self, root: KeyPath | str, hive: regf.RegistryHive) -> None:
        if isinstance(root, str):
            root = parse_key_path(root)

        log.debug("Mounting hive %r at %s", getattr(hive, "filename", hive), root)
        self._mounts.append((root, hive))
        # The most specific mount point wins
        self._mounts.sort(key=lambda mount: len(mount[0].subkey), reverse=True)

    def _node(self, key: KeyPath) -> KeyNode:
        for root, hive in self._mounts:
            if not key.is_relative_to(root):
                continue

            try:
                return hive.open(key.relative_to(root))
            except regf.RegistryKeyNotFoundError:
                raise RegistryKeyNotFoundError(str(key))
            except regf.Error as e:
                raise BackendError(f"Unable to open {key}: {e}") from e

        raise RegistryKeyNotFoundError(str(key))

    def key_exists(self, key: KeyPath) -> bool:
        try:
            self._node(key)
        except Error as e:
            log.debug("Key %s is not accessible: %s", key, e)
            return False
        return True

    def value_names(self, key: KeyPath) -> list[str]:
        return ["" if value.name == "(Default)" else value.name for value in self._node(key).values()]

    def subkey_names(self, key: KeyPath) -> list[str]:
        return [subkey.name for subkey in self._node(key).subkeys()]

    def query_value(self, key: KeyPath, name: str) -> tuple[ValueData, int]:
        try:
            value = self._node(key).value(name or "(Default)")
        except regf.RegistryValueNotFoundError:
            raise RegistryValueNotFoundError(f"{key}\\{name or '(Default)'}")
        except regf.Error as e:
            raise BackendError(f"Unable to read {key}\\{name}: {e}") from e

        return value.value, value.type
