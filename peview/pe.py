from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from peview.rva import read_u16, read_u32, read_u64

IMAGE_DOS_SIGNATURE = b"MZ"
IMAGE_NT_SIGNATURE = b"PE\x00\x00"

PE32_MAGIC = 0x10B
PE32P_MAGIC = 0x20B

# Data directory indices
DIR_EXPORT = 0
DIR_IMPORT = 1
DIR_RESOURCE = 2


@dataclass(frozen=True)
class Section:
    name: str
    raw_offset: int
    raw_size: int
    virtual_size: int
    virtual_address: int


@dataclass(frozen=True)
class DataDirectory:
    virtual_address: int = 0
    size: int = 0

    def present(self, min_size: int) -> bool:
        return self.virtual_address != 0 and self.size >= min_size


@dataclass(frozen=True)
class PeImage:
    is_64: bool
    optional_flavor: str
    image_base: int
    size_of_image: int
    entry_point_rva: int
    sections: Tuple[Section, ...]
    export_dir: DataDirectory = field(default_factory=DataDirectory)
    import_dir: DataDirectory = field(default_factory=DataDirectory)
    resource_dir: DataDirectory = field(default_factory=DataDirectory)

    @property
    def entry_point_va(self) -> int:
        return self.image_base + self.entry_point_rva


@dataclass(frozen=True)
class PeParseResult:
    present: bool
    pe: Optional[PeImage]
    errors: List[Dict[str, Any]]


def _err(code: str, message: str, **extra: Any) -> Dict[str, Any]:
    d = {"code": code, "message": message}
    d.update(extra)
    return d


def _section_name(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def section_bytes(data: bytes, section: Section) -> bytes:
    """Raw bytes of a section, clipped to the buffer."""
    start = section.raw_offset
    if start >= len(data):
        return b""
    return data[start : start + section.raw_size]


def parse_pe_bytes(data: bytes, *, max_sections: int = 96) -> PeParseResult:
    errors: List[Dict[str, Any]] = []

    if len(data) < 64 or data[:2] != IMAGE_DOS_SIGNATURE:
        return PeParseResult(present=False, pe=None, errors=[])

    e_lfanew = read_u32(data, 0x3C)
    if e_lfanew is None or e_lfanew >= len(data):
        return PeParseResult(present=True, pe=None, errors=[_err("E_PE_E_LFANEW_OOB", "e_lfanew points outside file.", e_lfanew=e_lfanew)])

    if data[e_lfanew : e_lfanew + 4] != IMAGE_NT_SIGNATURE:
        return PeParseResult(present=True, pe=None, errors=[_err("E_PE_BAD_NT_SIGNATURE", "Missing PE\\0\\0 signature.", e_lfanew=e_lfanew)])

    coff_off = e_lfanew + 4
    number_of_sections = read_u16(data, coff_off + 2)
    size_of_optional_header = read_u16(data, coff_off + 16)
    if coff_off + 20 > len(data) or number_of_sections is None or size_of_optional_header is None:
        return PeParseResult(present=True, pe=None, errors=[_err("E_PE_COFF_TRUNCATED", "COFF header truncated.", coff_off=coff_off)])

    opt_off = coff_off + 20
    if opt_off + size_of_optional_header > len(data):
        errors.append(
            _err(
                "E_PE_OPT_TRUNCATED",
                "Optional header truncated or size exceeds file.",
                opt_off=opt_off,
                size_of_optional_header=size_of_optional_header,
            )
        )
        size_of_optional_header = max(0, len(data) - opt_off)

    opt_magic = read_u16(data, opt_off)
    if opt_magic == PE32_MAGIC:
        flavor = "PE32"
    elif opt_magic == PE32P_MAGIC:
        flavor = "PE32+"
    else:
        flavor = "Unknown"
        errors.append(_err("E_PE_OPT_BAD_MAGIC", "Optional header magic not PE32/PE32+.", opt_magic=opt_magic))
    is_64 = opt_magic == PE32P_MAGIC

    entry_point_rva = read_u32(data, opt_off + 0x10) or 0
    image_base = (read_u64(data, opt_off + 0x18) if is_64 else read_u32(data, opt_off + 0x1C)) or 0
    size_of_image = read_u32(data, opt_off + 0x38) or 0

    num_rva_off = opt_off + (0x6C if is_64 else 0x5C)
    dd_off = opt_off + (0x70 if is_64 else 0x60)
    dd_end = opt_off + size_of_optional_header
    num_rva_and_sizes = read_u32(data, num_rva_off) or 0

    def _dd(idx: int) -> DataDirectory:
        if num_rva_and_sizes >= idx + 1 and dd_off + (idx + 1) * 8 <= dd_end:
            return DataDirectory(
                virtual_address=read_u32(data, dd_off + idx * 8) or 0,
                size=read_u32(data, dd_off + idx * 8 + 4) or 0,
            )
        return DataDirectory()

    sect_off = opt_off + size_of_optional_header
    num_sections = number_of_sections
    if num_sections > max_sections:
        errors.append(
            _err(
                "E_PE_SECTION_COUNT_CLAMPED",
                f"Section count too large; clamped to max_sections={max_sections}.",
                number_of_sections=number_of_sections,
                max_sections=max_sections,
            )
        )
        num_sections = max_sections

    sections: List[Section] = []
    for i in range(num_sections):
        sh_off = sect_off + i * 40
        if sh_off + 40 > len(data):
            errors.append(_err("E_PE_SECTION_HEADER_TRUNCATED", "Section header truncated.", section_index=i, sh_off=sh_off))
            break
        sections.append(
            Section(
                name=_section_name(data[sh_off : sh_off + 8]),
                virtual_size=read_u32(data, sh_off + 8) or 0,
                virtual_address=read_u32(data, sh_off + 12) or 0,
                raw_size=read_u32(data, sh_off + 16) or 0,
                raw_offset=read_u32(data, sh_off + 20) or 0,
            )
        )

    pe = PeImage(
        is_64=is_64,
        optional_flavor=flavor,
        image_base=image_base,
        size_of_image=size_of_image,
        entry_point_rva=entry_point_rva,
        sections=tuple(sections),
        export_dir=_dd(DIR_EXPORT),
        import_dir=_dd(DIR_IMPORT),
        resource_dir=_dd(DIR_RESOURCE),
    )
    return PeParseResult(present=True, pe=pe, errors=errors)
