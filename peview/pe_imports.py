from __future__ import annotations

import logging
from typing import List, Sequence

from peview.model import ImportDll, ImportReport
from peview.pe import DataDirectory, Section
from peview.rva import read_c_string, read_u32, read_u64, resolve

log = logging.getLogger(__name__)

IMPORT_DESCRIPTOR_SIZE = 20

UNKNOWN_DLL = "<unknown>"
UNKNOWN_NAME = "<name>"

ORDINAL_FLAG32 = 0x80000000
ORDINAL_FLAG64 = 0x8000000000000000


def _thunk_names(data: bytes, sections: Sequence[Section], thunk_rva: int, *, is_64: bool) -> List[str]:
    off = resolve(sections, thunk_rva)
    if off is None:
        return []

    width = 8 if is_64 else 4
    ordinal_flag = ORDINAL_FLAG64 if is_64 else ORDINAL_FLAG32
    names: List[str] = []

    while True:
        val = read_u64(data, off) if is_64 else read_u32(data, off)
        if not val:
            break
        off += width

        if val & ordinal_flag:
            names.append(f"#{val & 0xFFFF}")
            continue

        # IMAGE_IMPORT_BY_NAME: u16 hint, then the name
        name = read_c_string(data, (val & 0xFFFFFFFF) + 2, sections)
        names.append(UNKNOWN_NAME if name is None else name)

    return names


def parse_imports(
    data: bytes,
    sections: Sequence[Section],
    directory: DataDirectory,
    *,
    is_64: bool,
) -> ImportReport:
    """
    Walk IMAGE_IMPORT_DESCRIPTOR entries until an all-zero descriptor or the end of data.
    DLL names are lower-cased; ordinal-only imports become "#<ordinal>".
    """
    if not directory.present(IMPORT_DESCRIPTOR_SIZE):
        return ImportReport()

    off = resolve(sections, directory.virtual_address)
    if off is None:
        log.debug("import directory RVA 0x%08X does not map to any section", directory.virtual_address)
        return ImportReport(note="bad import directory RVA")

    dlls: List[ImportDll] = []
    while off + IMPORT_DESCRIPTOR_SIZE <= len(data):
        desc = data[off : off + IMPORT_DESCRIPTOR_SIZE]
        if not any(desc):
            break

        original_first_thunk = read_u32(data, off + 0) or 0
        name_rva = read_u32(data, off + 12) or 0
        first_thunk = read_u32(data, off + 16) or 0
        off += IMPORT_DESCRIPTOR_SIZE

        dll = read_c_string(data, name_rva, sections)
        if not dll:
            dll = UNKNOWN_DLL

        functions = _thunk_names(data, sections, original_first_thunk or first_thunk, is_64=is_64)
        dlls.append(ImportDll(name=dll.lower(), functions=functions))

    return ImportReport(dlls=dlls)
