from __future__ import annotations

import base64
import csv
import json
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

import pytest

from dissect.regexport.c_regexport import RegistryValueKind
from dissect.regexport.exceptions import UnsupportedFormatError
from dissect.regexport.export import RegistryValueRecord
from dissect.regexport.serializers import encode_clixml_string, format_value, get_writer, write_records

if TYPE_CHECKING:
    from pathlib import Path


def record(name: str, value: object, kind: RegistryValueKind) -> RegistryValueRecord:
    return RegistryValueRecord(
        path="HKEY_CURRENT_USER\\SOFTWARE\\Test",
        name=name,
        value=value,
        type=kind,
        type_string=kind.display_name,
        computername="WORKSTATION",
    )


@pytest.fixture
def records() -> list[RegistryValueRecord]:
    return [
        record("(Default)", None, RegistryValueKind.STRING),
        record("Path, with \"quotes\"", "%TEMP%", RegistryValueKind.EXPAND_STRING),
        record("Blob", b"\x00\x10\xff", RegistryValueKind.BINARY),
        record("Count", 4294967295, RegistryValueKind.DWORD),
        record("Large", 1 << 40, RegistryValueKind.QWORD),
        record("List", ["one", "two"], RegistryValueKind.MULTI_STRING),
    ]


def test_format_value() -> None:
    assert format_value(None) == ""
    assert format_value(b"\x00\x10\xff") == "00 10 ff"
    assert format_value(["a", "b"]) == "a\nb"
    assert format_value(["a", "b"], ", ") == "a, b"
    assert format_value(12) == "12"
    assert format_value("text") == "text"


def test_write_csv(records: list[RegistryValueRecord], tmp_path: Path) -> None:
    output = tmp_path / "export.csv"
    write_records(records, "csv", output)

    with output.open(newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        rows = list(reader)

    assert reader.fieldnames == ["Path", "Name", "Value", "Type", "Computername"]
    assert [(row["Name"], row["Value"], row["Type"]) for row in rows] == [
        ("(Default)", "", "String"),
        ("Path, with \"quotes\"", "%TEMP%", "ExpandString"),
        ("Blob", "00 10 ff", "Binary"),
        ("Count", "4294967295", "DWord"),
        ("Large", "1099511627776", "QWord"),
        ("List", "one\ntwo", "MultiString"),
    ]
    assert {row["Path"] for row in rows} == {"HKEY_CURRENT_USER\\SOFTWARE\\Test"}
    assert {row["Computername"] for row in rows} == {"WORKSTATION"}


def test_write_json(records: list[RegistryValueRecord], tmp_path: Path) -> None:
    output = tmp_path / "export.json"
    write_records(records, "JSON", output)

    rows = json.loads(output.read_text(encoding="utf-8"))

    assert rows[0] == {
        "Path": "HKEY_CURRENT_USER\\SOFTWARE\\Test",
        "Name": "(Default)",
        "Value": None,
        "Type": "String",
        "Computername": "WORKSTATION",
    }
    assert [row["Value"] for row in rows[1:]] == ["%TEMP%", [0, 16, 255], 4294967295, 1 << 40, ["one", "two"]]


def test_write_xml(records: list[RegistryValueRecord], tmp_path: Path) -> None:
    output = tmp_path / "export.xml"
    write_records(records, "xml", output)

    ns = {"ps": "http://schemas.microsoft.com/powershell/2004/04"}
    root = ET.parse(output).getroot()
    objs = root.findall("ps:Obj", ns)
    assert len(objs) == 6

    def props(obj: ET.Element) -> dict[str, ET.Element]:
        return {prop.get("N"): prop for prop in obj.find("ps:Props", ns)}

    default = props(objs[0])
    assert default["Path"].text == "HKEY_CURRENT_USER\\SOFTWARE\\Test"
    assert default["Name"].text == "(Default)"
    assert default["Value"].tag == f"{{{ns['ps']}}}Nil"
    assert default["Type"].find("ps:ToString", ns).text == "String"
    assert default["Type"].find("ps:I32", ns).text == "1"
    assert default["TypeString"].text == "String"
    assert default["Computername"].text == "WORKSTATION"

    blob = props(objs[2])["Value"]
    assert blob.tag == f"{{{ns['ps']}}}BA"
    assert base64.b64decode(blob.text) == b"\x00\x10\xff"

    assert props(objs[3])["Value"].tag == f"{{{ns['ps']}}}U32"
    assert props(objs[4])["Value"].tag == f"{{{ns['ps']}}}U64"
    assert props(objs[4])["Value"].text == str(1 << 40)
    assert [s.text for s in props(objs[5])["Value"].findall("ps:LST/ps:S", ns)] == ["one", "two"]


def test_write_overwrites(records: list[RegistryValueRecord], tmp_path: Path) -> None:
    output = tmp_path / "export.json"
    output.write_text("x" * 100000)

    write_records(records[:1], "json", output)

    assert len(json.loads(output.read_text())) == 1


@pytest.mark.parametrize("fmt", ["reg", "REG", "yaml"])
def test_unsupported_format(fmt: str, tmp_path: Path) -> None:
    with pytest.raises(UnsupportedFormatError):
        get_writer(fmt)

    with pytest.raises(UnsupportedFormatError):
        write_records([], fmt, tmp_path / "export")

    assert not (tmp_path / "export").exists()


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("plain", "plain"),
        ("a\x01b", "a_x0001_b"),
        ("line\r\nbreak\ttab", "line_x000D__x000A_break_x0009_tab"),
        ("_x0041_", "_x005F_x0041_"),
        ("snake_case_x", "snake_case_x"),
        ("\ufffe", "_xFFFE_"),
    ],
)
def test_encode_clixml_string(value: str, expected: str) -> None:
    assert encode_clixml_string(value) == expected


def test_write_xml_control_characters(tmp_path: Path) -> None:
    records = [
        RegistryValueRecord(
            path="HKEY_CURRENT_USER\\SOFTWARE\\Te\x02st",
            name="Na\x03me",
            value="a\x01b",
            type=RegistryValueKind.STRING,
            type_string="String",
            computername="WORKSTATION",
        ),
        record("List", ["x\x1fy", "ok"], RegistryValueKind.MULTI_STRING),
    ]
    output = tmp_path / "export.xml"
    write_records(records, "xml", output)

    ns = {"ps": "http://schemas.microsoft.com/powershell/2004/04"}
    objs = ET.parse(output).getroot().findall("ps:Obj", ns)

    props = {prop.get("N"): prop for prop in objs[0].find("ps:Props", ns)}
    assert props["Path"].text == "HKEY_CURRENT_USER\\SOFTWARE\\Te_x0002_st"
    assert props["Name"].text == "Na_x0003_me"
    assert props["Value"].text == "a_x0001_b"
    assert [s.text for s in objs[1].findall("ps:Props/ps:Obj/ps:LST/ps:S", ns)] == ["x_x001F_y", "ok"]
