from __future__ import annotations

from typing import List

ROW_SIZE = 16


def _ascii_column(chunk: bytes) -> str:
    return "".join(chr(b) if 0x20 <= b <= 0x7E else "." for b in chunk)


def hex_dump(base_offset: int, data: bytes) -> str:
    """
    Classic 16-bytes-per-row dump. Each row is labelled with its file offset:

        00000400  4D 5A 90 00 ...  MZ..
    """
    rows: List[str] = []
    for i in range(0, len(data), ROW_SIZE):
        chunk = data[i : i + ROW_SIZE]
        hex_cols = "".join(f"{b:02X} " for b in chunk) + "   " * (ROW_SIZE - len(chunk))
        rows.append(f"{base_offset + i:08X}  {hex_cols} {_ascii_column(chunk)}\n")
    return "".join(rows)
