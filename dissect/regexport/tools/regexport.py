from __future__ import annotations

import argparse
import logging
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from dissect import regf

from dissect.regexport.backend import HiveBackend, RegistryBackend, WinregBackend
from dissect.regexport.exceptions import Error
from dissect.regexport.export import RegistryExporter, export_to_file
from dissect.regexport.serializers import FORMATS, format_value, get_writer

if TYPE_CHECKING:
    from dissect.regexport.export import RegistryValueRecord

log = logging.getLogger(__name__)

COLUMNS = ("Path", "Name", "Value", "TypeString", "Computername")


def hive_mount(spec: str) -> tuple[str, Path]:
    root, sep, filename = spec.partition("=")
    if not sep or not root or not filename:
        raise argparse.ArgumentTypeError(f"expected ROOT=FILE, got {spec!r}")
    return root, Path(filename)


def open_backend(hives: list[tuple[str, Path]], stack: ExitStack) -> RegistryBackend:
    if not hives:
        return WinregBackend()

    backend = HiveBackend()
    for root, filename in hives:
        fh = stack.enter_context(filename.open("rb"))
        backend.mount(root, regf.RegistryHive(fh))

    return backend


def print_records(records: list[RegistryValueRecord], fh: TextIO | None = None) -> None:
    rows = [
        (record.path, record.name, format_value(record.value, ", "), record.type_string, record.computername)
        for record in records
    ]
    widths = [max(len(row[idx]) for row in [COLUMNS, *rows]) for idx in range(len(COLUMNS))]

    for row in [COLUMNS, tuple("-" * width for width in widths), *rows]:
        print("  ".join(column.ljust(width) for column, width in zip(row, widths)).rstrip(), file=fh)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Export the values of Windows registry keys to the console or to a CSV, XML or JSON file.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("paths", nargs="*", help="registry keys to export, read from stdin when omitted")
    parser.add_argument("-r", "--recurse", action="store_true", help="also export all subkeys")
    parser.add_argument("-f", "--format", choices=FORMATS, help="export file format")
    parser.add_argument("-o", "--output", type=Path, help="export file, overwritten when it exists")
    parser.add_argument("--exclude-binary", action="store_true", help="leave binary values out of the export file")
    parser.add_argument(
        "--hive",
        type=hive_mount,
        action="append",
        default=[],
        metavar="ROOT=FILE",
        help="read an offline hive file mounted at ROOT instead of the live registry",
    )
    parser.add_argument("--computername", help="host name to report instead of the local one")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="increase output verbosity")
    args = parser.parse_args(argv)

    if bool(args.format) != bool(args.output):
        parser.error("--format and --output must be used together")

    if args.exclude_binary and not args.output:
        parser.error("--exclude-binary only applies when exporting to a file")

    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if args.verbose:
        logging.getLogger("dissect.regexport").setLevel(logging.INFO if args.verbose == 1 else logging.DEBUG)

    paths = args.paths or [line.strip() for line in sys.stdin if line.strip()]

    with ExitStack() as stack:
        try:
            if args.format:
                get_writer(args.format)
            backend = open_backend(args.hive, stack)
        except (Error, regf.Error, OSError) as e:
            log.error("%s", e)
            return 1

        records = RegistryExporter(backend, args.computername).export(paths, args.recurse)

    if args.format:
        export_to_file(records, args.format, args.output, args.exclude_binary)
    elif records:
        print_records(records)
    else:
        log.warning("No registry values were found")

    return 0


if __name__ == "__main__":
    sys.exit(main())
