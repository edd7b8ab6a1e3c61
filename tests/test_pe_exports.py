from __future__ import annotations

import struct

from peview.pe import DataDirectory, Section
from peview.pe_exports import parse_exports

RDATA = [Section(name=".rdata", raw_offset=0, raw_size=0x400, virtual_size=0x400, virtual_address=0x1000)]
EXPORT_DIR = DataDirectory(0x1000, 0x100)


def _export_dir(
    buf: bytearray,
    *,
    base: int = 1,
    n_funcs: int,
    n_names: int,
    funcs: int = 0x1100,
    names: int = 0x1140,
    ords: int = 0x1180,
) -> None:
    # IMAGE_EXPORT_DIRECTORY at offset 0, module name at RVA 0x1060
    struct.pack_into("<IIHHIIIIIII", buf, 0, 0, 0x5F000000, 0, 0, 0x1060, base, n_funcs, n_names, funcs, names, ords)
    buf[0x60:0x6C] = b"TESTDLL.dll\x00"


def test_two_named_exports_in_name_order():
    buf = bytearray(0x400)
    _export_dir(buf, n_funcs=2, n_names=2)
    struct.pack_into("<II", buf, 0x100, 0x1000, 0x2000)        # AddressOfFunctions
    struct.pack_into("<II", buf, 0x140, 0x11C0, 0x11D0)        # AddressOfNames
    struct.pack_into("<HH", buf, 0x180, 0, 1)                  # AddressOfNameOrdinals
    buf[0x1C0:0x1C6] = b"Alpha\x00"
    buf[0x1D0:0x1D5] = b"Beta\x00"

    res = parse_exports(bytes(buf), RDATA, EXPORT_DIR)
    assert res.note == ""
    assert res.dll_name == "TESTDLL.dll"
    assert res.ordinal_base == 1
    assert res.function_count == 2
    assert res.name_count == 2
    assert [(s.name, s.ordinal, s.rva) for s in res.symbols] == [("Alpha", 1, 0x1000), ("Beta", 2, 0x2000)]


def test_out_of_range_ordinal_index_is_skipped():
    buf = bytearray(0x400)
    _export_dir(buf, base=10, n_funcs=1, n_names=2)
    struct.pack_into("<I", buf, 0x100, 0x3000)
    struct.pack_into("<II", buf, 0x140, 0x11C0, 0x11D0)
    struct.pack_into("<HH", buf, 0x180, 5, 0)
    buf[0x1C0:0x1C4] = b"Bad\x00"
    buf[0x1D0:0x1D5] = b"Good\x00"

    res = parse_exports(bytes(buf), RDATA, EXPORT_DIR)
    assert [(s.name, s.ordinal, s.rva) for s in res.symbols] == [("Good", 10, 0x3000)]


def test_ordinal_only_exports_are_not_listed():
    buf = bytearray(0x400)
    _export_dir(buf, n_funcs=3, n_names=1)
    struct.pack_into("<III", buf, 0x100, 0x1000, 0x2000, 0x3000)
    struct.pack_into("<I", buf, 0x140, 0x11C0)
    struct.pack_into("<H", buf, 0x180, 2)
    buf[0x1C0:0x1C6] = b"Third\x00"

    res = parse_exports(bytes(buf), RDATA, EXPORT_DIR)
    assert [(s.name, s.ordinal) for s in res.symbols] == [("Third", 3)]


def test_unresolvable_name_is_empty_string():
    buf = bytearray(0x400)
    _export_dir(buf, n_funcs=1, n_names=1)
    struct.pack_into("<I", buf, 0x100, 0x1234)
    struct.pack_into("<I", buf, 0x140, 0x9000)
    res = parse_exports(bytes(buf), RDATA, EXPORT_DIR)
    assert [(s.name, s.rva) for s in res.symbols] == [("", 0x1234)]


def test_truncated_name_array_stops_early():
    buf = bytearray(0x400)
    # names array starts 4 bytes before the end of the buffer
    _export_dir(buf, n_funcs=2, n_names=2, names=0x13FC)
    struct.pack_into("<II", buf, 0x100, 0x1000, 0x2000)
    struct.pack_into("<I", buf, 0x3FC, 0x11C0)
    struct.pack_into("<HH", buf, 0x180, 0, 1)
    buf[0x1C0:0x1C5] = b"Only\x00"

    res = parse_exports(bytes(buf), RDATA, EXPORT_DIR)
    assert res.note == ""
    assert [s.name for s in res.symbols] == ["Only"]


def test_unmappable_arrays_abort_with_note():
    buf = bytearray(0x400)
    _export_dir(buf, n_funcs=1, n_names=1, ords=0x9000)
    res = parse_exports(bytes(buf), RDATA, EXPORT_DIR)
    assert res.symbols == []
    assert res.note == "malformed export arrays"
    assert res.dll_name == "TESTDLL.dll"


def test_implausible_counts_rejected():
    buf = bytearray(0x400)
    _export_dir(buf, n_funcs=1, n_names=(1 << 20) + 1)
    res = parse_exports(bytes(buf), RDATA, EXPORT_DIR)
    assert res.symbols == []
    assert res.note == "suspicious export counts"


def test_directory_header_past_end_of_buffer():
    res = parse_exports(bytes(0x20), RDATA, EXPORT_DIR)
    assert res.note == "bad export directory RVA"


def test_absent_or_undersized_directory_is_silent():
    buf = bytes(0x400)
    assert parse_exports(buf, RDATA, DataDirectory(0, 0x100)).note == ""
    res = parse_exports(buf, RDATA, DataDirectory(0x1000, 39))
    assert res.symbols == []
    assert res.note == ""
