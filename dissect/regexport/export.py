from __future__ import annotations

import logging
import os
import socket
from dataclasses import dataclass
from typing import TYPE_CHECKING

from dissect.regexport.backend import RegistryBackend, WinregBackend
from dissect.regexport.c_regexport import RegistryValueKind, ValueData, normalize_value
from dissect.regexport.exceptions import Error
from dissect.regexport.path import KeyPath, parse_key_path
from dissect.regexport.serializers import get_writer, write_records

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

log = logging.getLogger(__name__)

DEFAULT_VALUE_NAME = "(Default)"


@dataclass(frozen=True)
class RegistryValueRecord:
    path: str
    name: str
    value: ValueData
    type: RegistryValueKind
    type_string: str
    computername: str

    def as_dict(self) -> dict[str, ValueData | RegistryValueKind]:
        return {
            "Path": self.path,
            "Name": self.name,
            "Value": self.value,
            "Type": self.type,
            "TypeString": self.type_string,
            "Computername": self.computername,
        }


def get_computername() -> str:
    return os.getenv("DISSECT_REGEXPORT_COMPUTERNAME") or os.getenv("COMPUTERNAME") or socket.gethostname()


class RegistryExporter:
    """Flatten registry keys into :class:`RegistryValueRecord` rows.

    A key without values and without subkeys is reported with a single placeholder record, so its existence shows up
    in the output. This only applies to the keys that are asked for, empty keys found while recursing are left out.
    """

    def __init__(self, backend: RegistryBackend | None = None, computername: str | None = None):
        self.backend = backend if backend is not None else WinregBackend()
        self.computername = computername

    def export(self, paths: Iterable[str], recurse: bool = False) -> list[RegistryValueRecord]:
        computername = self.computername or get_computername()

        records = []
        for path in paths:
            if not self.backend.is_valid_key(path):
                log.warning("Registry key %r does not exist, skipping", path)
                continue

            key = parse_key_path(path)
            log.info("Exporting %s", key)

            try:
                records.extend(self._export_key(key, recurse, computername))
            except Error as e:
                # Records of a key are only kept when all of its values could be read
                log.error("Failed to export %s, skipping: %s", key, e)

        return records

    def _export_key(self, key: KeyPath, recurse: bool, computername: str) -> list[RegistryValueRecord]:
        value_names = self.backend.value_names(key)
        num_subkeys = self.backend.subkey_count(key)

        if not value_names and not num_subkeys:
            return [
                RegistryValueRecord(
                    path=str(key),
                    name=DEFAULT_VALUE_NAME,
                    value=None,
                    type=RegistryValueKind.STRING,
                    type_string=RegistryValueKind.STRING.display_name,
                    computername=computername,
                )
            ]

        records = list(self._values(key, value_names, computername))

        if recurse and num_subkeys:
            for subkey in self.backend.walk(key):
                records.extend(self._values(subkey, self.backend.value_names(subkey), computername))

        return records

    def _values(self, key: KeyPath, value_names: list[str], computername: str) -> Iterator[RegistryValueRecord]:
        for name in value_names:
            data, raw_type = self.backend.query_value(key, name)
            kind, value = normalize_value(raw_type, data)

            yield RegistryValueRecord(
                path=str(key),
                name=name or DEFAULT_VALUE_NAME,
                value=value,
                type=kind,
                type_string=kind.display_name,
                computername=computername,
            )


def export(
    paths: Iterable[str],
    recurse: bool = False,
    backend: RegistryBackend | None = None,
    computername: str | None = None,
) -> list[RegistryValueRecord]:
    return RegistryExporter(backend, computername).export(paths, recurse)


def without_binary(records: Iterable[RegistryValueRecord]) -> list[RegistryValueRecord]:
    return [record for record in records if record.type != RegistryValueKind.BINARY]


def export_to_file(
    records: list[RegistryValueRecord],
    fmt: str,
    output: str | Path,
    exclude_binary: bool = False,
) -> bool:
    """Write ``records`` to ``output`` in the given format, overwriting it.

    Returns ``False`` without touching ``output`` when there is nothing to write.
    """
    get_writer(fmt)

    if exclude_binary:
        records = without_binary(records)

    if not records:
        log.warning("Nothing to export, no registry values were found")
        return False

    write_records(records, fmt, output)
    log.info("Exported %d registry values to %s", len(records), output)
    return True
