from __future__ import annotations

import base64
import csv
import json
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import TYPE_CHECKING, Callable, TextIO

from dissect.regexport.c_regexport import RegistryValueKind, ValueData
from dissect.regexport.exceptions import UnsupportedFormatError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dissect.regexport.export import RegistryValueRecord

FORMATS = ("csv", "xml", "json", "reg")

FIELDS = ("Path", "Name", "Value", "Type", "Computername")

CLIXML_NAMESPACE = "http://schemas.microsoft.com/powershell/2004/04"

# Characters XML cannot carry, and underscores that would read as an escape themselves
_CLIXML_ESCAPE_RE = re.compile(r"[\x00-\x1f\ud800-\udfff\ufffe\uffff]|_(?=x[0-9A-Fa-f]{4}_)")


def format_value(value: ValueData, separator: str = "\n") -> str:
    if value is None:
        return ""

    if isinstance(value, bytes):
        return " ".join(f"{byte:02x}" for byte in value)

    if isinstance(value, list):
        return separator.join(value)

    return str(value)


def _row(record: RegistryValueRecord) -> dict[str, ValueData]:
    return {
        "Path": record.path,
        "Name": record.name,
        "Value": record.value,
        "Type": record.type_string,
        "Computername": record.computername,
    }


def write_csv(records: Iterable[RegistryValueRecord], fh: TextIO) -> None:
    writer = csv.DictWriter(fh, fieldnames=FIELDS)
    writer.writeheader()

    for record in records:
        row = _row(record)
        row["Value"] = format_value(record.value)
        writer.writerow(row)


def write_json(records: Iterable[RegistryValueRecord], fh: TextIO) -> None:
    rows = []
    for record in records:
        row = _row(record)
        if isinstance(record.value, bytes):
            row["Value"] = list(record.value)
        rows.append(row)

    json.dump(rows, fh, indent=2)
    fh.write("\n")


def encode_clixml_string(value: str) -> str:
    """Encode a string the way CLIXML does, writing unsafe characters as ``_xHHHH_``."""
    return _CLIXML_ESCAPE_RE.sub(lambda match: f"_x{ord(match.group()):04X}_", value)


def _xml_value(props: ET.Element, value: ValueData, kind: RegistryValueKind) -> None:
    if value is None:
        ET.SubElement(props, "Nil", N="Value")
    elif isinstance(value, bytes):
        ET.SubElement(props, "BA", N="Value").text = base64.b64encode(value).decode()
    elif isinstance(value, list):
        lst = ET.SubElement(ET.SubElement(props, "Obj", N="Value"), "LST")
        for string in value:
            ET.SubElement(lst, "S").text = encode_clixml_string(string)
    elif isinstance(value, int):
        tag = "U64" if kind == RegistryValueKind.QWORD else "U32"
        ET.SubElement(props, tag, N="Value").text = str(value)
    else:
        ET.SubElement(props, "S", N="Value").text = encode_clixml_string(value)


def write_xml(records: Iterable[RegistryValueRecord], fh: TextIO) -> None:
    """Write the records as a PowerShell CLIXML object graph, keeping the type of every value."""
    root = ET.Element("Objs", Version="1.1.0.1", xmlns=CLIXML_NAMESPACE)

    for ref_id, record in enumerate(records):
        obj = ET.SubElement(root, "Obj", RefId=str(ref_id))
        props = ET.SubElement(obj, "Props")

        ET.SubElement(props, "S", N="Path").text = encode_clixml_string(record.path)
        ET.SubElement(props, "S", N="Name").text = encode_clixml_string(record.name)
        _xml_value(props, record.value, record.type)

        kind = ET.SubElement(props, "Obj", N="Type")
        ET.SubElement(kind, "ToString").text = encode_clixml_string(record.type_string)
        ET.SubElement(kind, "I32").text = str(int(record.type))

        ET.SubElement(props, "S", N="TypeString").text = encode_clixml_string(record.type_string)
        ET.SubElement(props, "S", N="Computername").text = encode_clixml_string(record.computername)

    ET.indent(root)
    ET.ElementTree(root).write(fh, encoding="unicode", xml_declaration=True)
    fh.write("\n")


_WRITERS: dict[str, Callable[[Iterable[RegistryValueRecord], TextIO], None]] = {
    "csv": write_csv,
    "json": write_json,
    "xml": write_xml,
}


def get_writer(fmt: str) -> Callable[[Iterable[RegistryValueRecord], TextIO], None]:
    fmt = fmt.lower()

    if fmt == "reg":
        raise UnsupportedFormatError("Exporting to the registry file format is not supported")

    if (writer := _WRITERS.get(fmt)) is None:
        raise UnsupportedFormatError(f"Unknown export format {fmt!r}, expected one of {', '.join(FORMATS)}")

    return writer


def write_records(records: Iterable[RegistryValueRecord], fmt: str, output: str | Path) -> None:
    writer = get_writer(fmt)

    with Path(output).open("w", encoding="utf-8", newline="") as fh:
        writer(records, fh)
