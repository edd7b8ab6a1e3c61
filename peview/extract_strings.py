from __future__ import annotations

from typing import List

_EXCLUDED = {"\t", "\r", "\n"}


def _printable(ch: str) -> bool:
    return ch.isprintable() and ch not in _EXCLUDED


def extract_strings(data: bytes, min_len: int = 4) -> List[str]:
    """
    Runs of printable characters, each byte read as a Latin-1 code point.
    Runs shorter than min_len (at least 1) are dropped.
    """
    min_len = max(1, min_len)
    out: List[str] = []
    buf: List[str] = []

    def flush():
        if len(buf) >= min_len:
            out.append("".join(buf))
        buf.clear()

    for b in data:
        ch = chr(b)
        if _printable(ch):
            buf.append(ch)
        else:
            flush()

    flush()
    return out
