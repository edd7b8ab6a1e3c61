from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from peview.model import ResourceReport, ResourceTypeSummary
from peview.pe import DataDirectory, Section
from peview.rva import read_u16, read_u32, resolve

log = logging.getLogger(__name__)

RESOURCE_DIRECTORY_SIZE = 16
RESOURCE_ENTRY_SIZE = 8

HIGH_BIT = 0x80000000

# Named (string-keyed) types are not resolved; they all count under id 0.
NAMED_TYPE_ID = 0

RESOURCE_TYPE_NAMES: Dict[int, str] = {
    1: "RT_CURSOR",
    2: "RT_BITMAP",
    3: "RT_ICON",
    4: "RT_MENU",
    5: "RT_DIALOG",
    6: "RT_STRING",
    7: "RT_FONTDIR",
    8: "RT_FONT",
    9: "RT_ACCELERATOR",
    10: "RT_RCDATA",
    11: "RT_MESSAGETABLE",
    12: "RT_GROUP_CURSOR",
    14: "RT_GROUP_ICON",
    16: "RT_VERSION",
    24: "RT_MANIFEST",
}


def resource_type_name(type_id: int) -> str:
    if type_id == NAMED_TYPE_ID:
        return "RT_(named) (?)"
    name = RESOURCE_TYPE_NAMES.get(type_id)
    if name is None:
        return f"RT_{type_id}"
    return f"{name} ({type_id})"


def _entry_count(data: bytes, off: int) -> int:
    # NumberOfNamedEntries + NumberOfIdEntries of an IMAGE_RESOURCE_DIRECTORY
    return (read_u16(data, off + 12) or 0) + (read_u16(data, off + 14) or 0)


def parse_resources(data: bytes, sections: Sequence[Section], directory: DataDirectory) -> ResourceReport:
    """
    Count second-level entries per resource type.

    Only the root directory and the type sub-directories it points to are read.
    Sub-directory offsets are relative to the resource directory's RVA.
    Rows come out in first-seen type order.
    """
    if not directory.present(RESOURCE_DIRECTORY_SIZE):
        return ResourceReport()

    base_off = resolve(sections, directory.virtual_address)
    if base_off is None or base_off + RESOURCE_DIRECTORY_SIZE > len(data):
        return ResourceReport(note="bad resource directory RVA")

    total = _entry_count(data, base_off)
    entry_off = base_off + RESOURCE_DIRECTORY_SIZE
    counts: Dict[int, int] = {}
    unreadable = 0

    for _ in range(total):
        name_or_id = read_u32(data, entry_off)
        offset_to_data = read_u32(data, entry_off + 4)
        if name_or_id is None or offset_to_data is None:
            break
        entry_off += RESOURCE_ENTRY_SIZE

        type_id = NAMED_TYPE_ID if name_or_id & HIGH_BIT else name_or_id

        if not offset_to_data & HIGH_BIT:
            continue

        sub_rva = directory.virtual_address + (offset_to_data & 0x7FFFFFFF)
        sub_off = resolve(sections, sub_rva)
        if sub_off is None or sub_off + RESOURCE_DIRECTORY_SIZE > len(data):
            unreadable += 1
            continue
        counts[type_id] = counts.get(type_id, 0) + _entry_count(data, sub_off)

    types: List[ResourceTypeSummary] = [
        ResourceTypeSummary(type_id=tid, type_name=resource_type_name(tid), count=cnt) for tid, cnt in counts.items()
    ]
    note = ""
    if unreadable:
        note = f"{unreadable} resource sub-directories could not be read"
        log.debug(note)
    return ResourceReport(types=types, note=note)
