from __future__ import annotations

import struct

import pytest


def _section_header(name: bytes, vsize: int, rva: int, raw_size: int, raw_ptr: int) -> bytes:
    sh = bytearray(40)
    sh[0 : len(name)] = name
    struct.pack_into("<I", sh, 8, vsize)
    struct.pack_into("<I", sh, 12, rva)
    struct.pack_into("<I", sh, 16, raw_size)
    struct.pack_into("<I", sh, 20, raw_ptr)
    return bytes(sh)


def build_sample_pe() -> bytes:
    # Layout plan (PE32, image base 0x400000):
    # - .text  RVA 0x1000, raw 0x200: code bytes and two strings
    # - .rdata RVA 0x2000, raw 0x400: imports @0x2000, exports @0x2100
    # - .rsrc  RVA 0x3000, raw 0x600: RT_ICON (2 children), RT_VERSION (1 child)
    e_lfanew = 0x80
    dos = bytearray(b"MZ" + b"\x00" * 58)
    dos += struct.pack("<I", e_lfanew)
    dos += b"\x00" * (e_lfanew - len(dos))

    nt = b"PE\x00\x00"
    coff = struct.pack("<HHIIIHH", 0x14C, 3, 0x11111111, 0, 0, 0xE0, 0x2102)

    opt = bytearray(0xE0)
    struct.pack_into("<H", opt, 0x00, 0x10B)
    struct.pack_into("<I", opt, 0x10, 0x1000)
    struct.pack_into("<I", opt, 0x1C, 0x400000)
    struct.pack_into("<I", opt, 0x38, 0x4000)
    struct.pack_into("<I", opt, 0x5C, 16)
    struct.pack_into("<II", opt, 0x60 + 0 * 8, 0x2100, 0x60)   # Export
    struct.pack_into("<II", opt, 0x60 + 1 * 8, 0x2000, 0x28)   # Import
    struct.pack_into("<II", opt, 0x60 + 2 * 8, 0x3000, 0x100)  # Resource

    blob = bytearray(bytes(dos) + nt + coff + bytes(opt))
    blob += _section_header(b".text", 0x200, 0x1000, 0x200, 0x200)
    blob += _section_header(b".rdata", 0x200, 0x2000, 0x200, 0x400)
    blob += _section_header(b".rsrc", 0x200, 0x3000, 0x200, 0x600)
    blob += b"\x00" * (0x200 - len(blob))

    text = bytearray(0x200)
    text[0:3] = b"\x55\x8b\xec"
    text[0x10:0x22] = b"Hello from peview\x00"
    text[0x40:0x53] = b"http://example.com\x00"

    rdata = bytearray(0x200)
    # import descriptor: OFT=0, Name=0x2060, FT=0x2040; zero terminator follows
    struct.pack_into("<IIIII", rdata, 0x00, 0, 0, 0, 0x2060, 0x2040)
    struct.pack_into("<III", rdata, 0x40, 0x2080, 0x80000010, 0)
    rdata[0x60:0x6D] = b"KERNEL32.dll\x00"
    rdata[0x82:0x8E] = b"ExitProcess\x00"
    # export directory @0x2100
    struct.pack_into("<IIHHIIIIIII", rdata, 0x100, 0, 0, 0, 0, 0x2160, 1, 2, 1, 0x2140, 0x2150, 0x2158)
    struct.pack_into("<II", rdata, 0x140, 0x1000, 0x1010)
    struct.pack_into("<I", rdata, 0x150, 0x2170)
    struct.pack_into("<H", rdata, 0x158, 1)
    rdata[0x160:0x16B] = b"sample.dll\x00"
    rdata[0x170:0x178] = b"DoThing\x00"

    rsrc = bytearray(0x200)
    struct.pack_into("<HH", rsrc, 12, 0, 2)
    struct.pack_into("<II", rsrc, 0x10, 3, 0x80000040)
    struct.pack_into("<II", rsrc, 0x18, 16, 0x80000060)
    struct.pack_into("<HH", rsrc, 0x40 + 12, 0, 2)
    struct.pack_into("<HH", rsrc, 0x60 + 12, 0, 1)

    return bytes(blob + text + rdata + rsrc)


@pytest.fixture
def sample_pe() -> bytes:
    return build_sample_pe()


@pytest.fixture
def sample_pe_path(tmp_path, sample_pe):
    p = tmp_path / "sample.dll"
    p.write_bytes(sample_pe)
    return p
