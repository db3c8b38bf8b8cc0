from __future__ import annotations

import logging
from enum import IntEnum
from typing import Union

from dissect.cstruct import cstruct

log = logging.getLogger(__name__)

c_regexport = cstruct()
c_regexport_be = cstruct(endian=">")

REG_NONE = 0x0
REG_SZ = 0x1
REG_EXPAND_SZ = 0x2
REG_BINARY = 0x3
REG_DWORD = 0x4
REG_DWORD_BIG_ENDIAN = 0x5
REG_LINK = 0x6
REG_MULTI_SZ = 0x7
REG_RESOURCE_LIST = 0x8
REG_FULL_RESOURCE_DESCRIPTOR = 0x9
REG_RESOURCE_REQUIREMENTS_LIST = 0xA
REG_QWORD = 0xB

ValueData = Union[str, list[str], int, bytes, None]


class RegistryValueKind(IntEnum):
    NONE = -1
    STRING = 1
    EXPAND_STRING = 2
    BINARY = 3
    DWORD = 4
    MULTI_STRING = 7
    QWORD = 11

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    RegistryValueKind.NONE: "None",
    RegistryValueKind.STRING: "String",
    RegistryValueKind.EXPAND_STRING: "ExpandString",
    RegistryValueKind.BINARY: "Binary",
    RegistryValueKind.DWORD: "DWord",
    RegistryValueKind.MULTI_STRING: "MultiString",
    RegistryValueKind.QWORD: "QWord",
}

_KINDS = {
    REG_NONE: RegistryValueKind.NONE,
    REG_SZ: RegistryValueKind.STRING,
    REG_EXPAND_SZ: RegistryValueKind.EXPAND_STRING,
    REG_BINARY: RegistryValueKind.BINARY,
    REG_DWORD: RegistryValueKind.DWORD,
    REG_DWORD_BIG_ENDIAN: RegistryValueKind.DWORD,
    REG_MULTI_SZ: RegistryValueKind.MULTI_STRING,
    REG_QWORD: RegistryValueKind.QWORD,
}


def value_kind(raw_type: int) -> RegistryValueKind:
    """Map a raw ``REG_*`` type to its value kind, anything unknown is treated as raw bytes."""
    return _KINDS.get(raw_type, RegistryValueKind.BINARY)


def normalize_value(raw_type: int, data: ValueData) -> tuple[RegistryValueKind, ValueData]:
    """Normalize backend data into a ``(kind, value)`` pair.

    Backends either hand out already decoded data (``winreg``, ``dissect.regf``) or the raw bytes of the value, which
    is the case for the types ``winreg`` does not decode itself, such as ``REG_DWORD_BIG_ENDIAN``.
    """
    kind = value_kind(raw_type)

    if raw_type not in _KINDS:
        log.debug("Data type 0x%x has no value kind, exporting it as binary", raw_type)

    if not isinstance(data, bytes) or kind in (RegistryValueKind.BINARY, RegistryValueKind.NONE):
        return kind, data

    if raw_type == REG_DWORD:
        return kind, c_regexport.uint32(data[:4].ljust(4, b"\x00"))

    if raw_type == REG_DWORD_BIG_ENDIAN:
        return kind, c_regexport_be.uint32(data[:4].rjust(4, b"\x00"))

    if raw_type == REG_QWORD:
        return kind, c_regexport.uint64(data[:8].ljust(8, b"\x00"))

    if raw_type in (REG_SZ, REG_EXPAND_SZ):
        return kind, decode_sz(data)

    return kind, decode_multi_sz(data)


def _decode_utf16(data: bytes) -> str:
    if len(data) % 2 != 0:
        data = data.ljust(len(data) + 1, b"\x00")

    return data.decode("utf-16-le", "replace")


def decode_sz(data: bytes) -> str:
    return _decode_utf16(data).split("\x00")[0]


def decode_multi_sz(data: bytes) -> list[str]:
    multi_string = []
    for string in _decode_utf16(data).split("\x00"):
        if string == "":
            break

        multi_string.append(string)

    return multi_string
