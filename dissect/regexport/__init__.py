import logging
import os

from dissect.regexport.backend import HiveBackend, RegistryBackend, WinregBackend
from dissect.regexport.c_regexport import RegistryValueKind
from dissect.regexport.exceptions import (
    BackendError,
    Error,
    InvalidKeyPathError,
    RegistryKeyNotFoundError,
    RegistryValueNotFoundError,
    UnsupportedFormatError,
)
from dissect.regexport.export import (
    RegistryExporter,
    RegistryValueRecord,
    export,
    export_to_file,
    without_binary,
)
from dissect.regexport.path import KeyPath, is_valid_key, parse_key_path

logging.getLogger(__name__).setLevel(os.getenv("DISSECT_LOG_REGEXPORT", "WARNING"))

__all__ = [
    "BackendError",
    "Error",
    "HiveBackend",
    "InvalidKeyPathError",
    "KeyPath",
    "RegistryBackend",
    "RegistryExporter",
    "RegistryKeyNotFoundError",
    "RegistryValueKind",
    "RegistryValueNotFoundError",
    "RegistryValueRecord",
    "UnsupportedFormatError",
    "WinregBackend",
    "export",
    "export_to_file",
    "is_valid_key",
    "parse_key_path",
    "without_binary",
]
