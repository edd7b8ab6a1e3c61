from __future__ import annotations

import logging
from typing import List, Sequence

from peview.model import ExportReport, ExportSymbol
from peview.pe import DataDirectory, Section
from peview.rva import read_c_string, read_u16, read_u32, resolve

log = logging.getLogger(__name__)

EXPORT_DIRECTORY_SIZE = 40
MAX_EXPORT_COUNT = 1 << 20


def parse_exports(data: bytes, sections: Sequence[Section], directory: DataDirectory) -> ExportReport:
    """
    Enumerate exports by name.

    Ordinal = Base + index into AddressOfFunctions. Entries reachable only by
    ordinal are not listed, and a name whose ordinal index falls outside
    NumberOfFunctions is skipped.
    """
    if not directory.present(EXPORT_DIRECTORY_SIZE):
        return ExportReport()

    base_off = resolve(sections, directory.virtual_address)
    if base_off is None or base_off + EXPORT_DIRECTORY_SIZE > len(data):
        return ExportReport(note="bad export directory RVA")

    name_rva = read_u32(data, base_off + 12) or 0
    ordinal_base = read_u32(data, base_off + 16) or 0
    num_funcs = read_u32(data, base_off + 20) or 0
    num_names = read_u32(data, base_off + 24) or 0
    addr_funcs_rva = read_u32(data, base_off + 28) or 0
    addr_names_rva = read_u32(data, base_off + 32) or 0
    addr_ords_rva = read_u32(data, base_off + 36) or 0

    dll_name = read_c_string(data, name_rva, sections) or ""
    header = dict(dll_name=dll_name, ordinal_base=ordinal_base, function_count=num_funcs, name_count=num_names)

    funcs_off = resolve(sections, addr_funcs_rva)
    names_off = resolve(sections, addr_names_rva)
    ords_off = resolve(sections, addr_ords_rva)
    if funcs_off is None or names_off is None or ords_off is None:
        log.debug("export arrays unmappable: funcs=0x%X names=0x%X ords=0x%X", addr_funcs_rva, addr_names_rva, addr_ords_rva)
        return ExportReport(note="malformed export arrays", **header)

    if num_names > MAX_EXPORT_COUNT or num_funcs > MAX_EXPORT_COUNT:
        return ExportReport(note="suspicious export counts", **header)

    symbols: List[ExportSymbol] = []
    for i in range(num_names):
        sym_name_rva = read_u32(data, names_off + i * 4)
        ord_idx = read_u16(data, ords_off + i * 2)
        if sym_name_rva is None or ord_idx is None:
            break

        if ord_idx >= num_funcs:
            continue

        func_rva = read_u32(data, funcs_off + ord_idx * 4)
        if func_rva is None:
            break

        symbols.append(
            ExportSymbol(
                name=read_c_string(data, sym_name_rva, sections) or "",
                ordinal=ordinal_base + ord_idx,
                rva=func_rva,
            )
        )

    return ExportReport(symbols=symbols, **header)
