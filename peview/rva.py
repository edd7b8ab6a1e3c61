from __future__ import annotations

import struct
from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from peview.pe import Section


def resolve(sections: Sequence[Section], rva: int) -> Optional[int]:
    """
    Map an RVA to a file offset.
    First section (table order) whose [virtual_address, virtual_address + virtual_size)
    contains the RVA wins. Returns None when no section matches.
    """
    for s in sections:
        va = s.virtual_address
        if va <= rva < va + s.virtual_size:
            return s.raw_offset + (rva - va)
    return None


def read_u16(data: bytes, off: int) -> Optional[int]:
    if off < 0 or off + 2 > len(data):
        return None
    return struct.unpack_from("<H", data, off)[0]


def read_u32(data: bytes, off: int) -> Optional[int]:
    if off < 0 or off + 4 > len(data):
        return None
    return struct.unpack_from("<I", data, off)[0]


def read_u64(data: bytes, off: int) -> Optional[int]:
    if off < 0 or off + 8 > len(data):
        return None
    return struct.unpack_from("<Q", data, off)[0]


def read_c_string(data: bytes, rva: int, sections: Sequence[Section]) -> Optional[str]:
    """
    Resolve rva and read bytes up to the next NUL (or end of buffer).
    Returns None if the RVA does not map inside the buffer.
    """
    off = resolve(sections, rva)
    if off is None or off >= len(data):
        return None
    end = data.find(b"\x00", off)
    if end == -1:
        end = len(data)
    return data[off:end].decode("utf-8", errors="replace")
