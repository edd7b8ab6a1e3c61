from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    """
    UTC timestamp in ISO-8601 with 'Z' suffix, seconds precision.
    Example: 2026-01-08T17:12:34Z
    """
    return (
        datetime.now(timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class RankedString(Snapshot):
    text: str
    score: Optional[float] = None  # None means unscored, not zero


class HeaderReport(Snapshot):
    is_64: bool = False
    image_base: int = 0
    size_of_image: int = 0
    entry_point_rva: int = 0
    entry_point_va: int = 0
    optional_flavor: str = "Unknown"


class SectionReport(Snapshot):
    index: int
    name: str
    raw_offset: int
    raw_size: int
    virtual_size: int
    virtual_address: int
    hex_dump: str = ""
    truncated: bool = False
    strings: List[str] = Field(default_factory=list)
    ranked: List[RankedString] = Field(default_factory=list)
    rank_note: str = ""


class ImportDll(Snapshot):
    name: str
    functions: List[str] = Field(default_factory=list)


class ImportReport(Snapshot):
    dlls: List[ImportDll] = Field(default_factory=list)
    note: str = ""


class ExportSymbol(Snapshot):
    name: str
    ordinal: int
    rva: int


class ExportReport(Snapshot):
    dll_name: str = ""
    ordinal_base: int = 0
    function_count: int = 0
    name_count: int = 0
    symbols: List[ExportSymbol] = Field(default_factory=list)
    note: str = ""


class ResourceTypeSummary(Snapshot):
    type_id: int
    type_name: str
    count: int


class ResourceReport(Snapshot):
    types: List[ResourceTypeSummary] = Field(default_factory=list)
    note: str = ""


class Report(Snapshot):
    schema_version: str = "1.0"
    input_name: str = ""
    generated_at: str = Field(default_factory=utc_now_iso)

    header: HeaderReport = Field(default_factory=HeaderReport)
    sections: List[SectionReport] = Field(default_factory=list)
    imports: ImportReport = Field(default_factory=ImportReport)
    exports: ExportReport = Field(default_factory=ExportReport)
    resources: ResourceReport = Field(default_factory=ResourceReport)
    errors: List[Dict[str, Any]] = Field(default_factory=list)
