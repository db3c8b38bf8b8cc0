from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from dissect.regexport.exceptions import InvalidKeyPathError

if TYPE_CHECKING:
    from dissect.regexport.backend import RegistryBackend

PROVIDER_PREFIX = "Registry::"

HIVES = {
    "HKEY_LOCAL_MACHINE": "HKEY_LOCAL_MACHINE",
    "HKEY_CURRENT_USER": "HKEY_CURRENT_USER",
    "HKEY_CLASSES_ROOT": "HKEY_CLASSES_ROOT",
    "HKEY_USERS": "HKEY_USERS",
    "HKEY_CURRENT_CONFIG": "HKEY_CURRENT_CONFIG",
    "HKLM": "HKEY_LOCAL_MACHINE",
    "HKCU": "HKEY_CURRENT_USER",
    "HKCR": "HKEY_CLASSES_ROOT",
    "HKU": "HKEY_USERS",
    "HKCC": "HKEY_CURRENT_CONFIG",
}

REGISTRY_PROVIDERS = ("registry", "microsoft.powershell.core\\registry")

# Drives are only looked up by their short name, ``HKLM:\SOFTWARE``
REGISTRY_DRIVES = {name: hive for name, hive in HIVES.items() if not name.startswith("HKEY_")}

_QUALIFIER_RE = re.compile(r"^(?:(?P<provider>(?:[\w.]+\\)?[\w.]+)::|(?P<drive>\w+):)")


@dataclass(frozen=True)
class KeyPath:
    hive: str
    subkey: str = ""

    def __str__(self) -> str:
        if self.subkey:
            return f"{self.hive}\\{self.subkey}"
        return self.hive

    @property
    def name(self) -> str:
        return str(self).rsplit("\\", 1)[-1]

    @property
    def qualified(self) -> str:
        return f"{PROVIDER_PREFIX}{self}"

    def join(self, name: str) -> KeyPath:
        return KeyPath(self.hive, f"{self.subkey}\\{name}" if self.subkey else name)

    def is_relative_to(self, other: KeyPath) -> bool:
        if self.hive != other.hive:
            return False

        if not other.subkey:
            return True

        subkey = self.subkey.lower()
        other_subkey = other.subkey.lower()
        return subkey == other_subkey or subkey.startswith(other_subkey + "\\")

    def relative_to(self, other: KeyPath) -> str:
        if not self.is_relative_to(other):
            raise ValueError(f"{self} is not relative to {other}")

        return self.subkey[len(other.subkey) :].strip("\\")


def qualify(path: str) -> str:
    """Prepend the registry provider prefix to paths that do not name a provider or drive."""
    if _QUALIFIER_RE.match(path):
        return path
    return f"{PROVIDER_PREFIX}{path}"


def parse_key_path(path: str) -> KeyPath:
    qualified = qualify(path.strip())
    match = _QUALIFIER_RE.match(qualified)
    rest = qualified[match.end() :]

    if (provider := match.group("provider")) is not None:
        if provider.lower() not in REGISTRY_PROVIDERS:
            raise InvalidKeyPathError(f"{path!r} is not a registry path (provider {provider!r})")
    else:
        drive = match.group("drive")
        if (hive := REGISTRY_DRIVES.get(drive.upper())) is None:
            raise InvalidKeyPathError(f"{path!r} is not a registry path (drive {drive!r})")
        rest = f"{hive}\\{rest}"

    parts = [part for part in rest.split("\\") if part]
    if not parts:
        raise InvalidKeyPathError(f"{path!r} does not name a registry hive")

    if (hive := HIVES.get(parts[0].upper())) is None:
        raise InvalidKeyPathError(f"{path!r} does not name a registry hive ({parts[0]!r})")

    return KeyPath(hive, "\\".join(parts[1:]))


def is_valid_key(path: str, backend: RegistryBackend) -> bool:
    """Return whether ``path`` names an existing key of the registry behind ``backend``.

    Paths of other providers, such as ``C:\\Windows`` or ``FileSystem::C:\\``, are never valid keys.
    """
    try:
        key = parse_key_path(path)
    except InvalidKeyPathError:
        return False

    return backend.key_exists(key)
