from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from peview.extract_strings import extract_strings
from peview.hexdump import hex_dump
from peview.model import HeaderReport, Report, SectionReport
from peview.pe import PeImage, Section, parse_pe_bytes, section_bytes
from peview.pe_exports import parse_exports
from peview.pe_imports import parse_imports
from peview.pe_resources import parse_resources
from peview.ranking import Scorer, ensure_available, make_scorer, sort_filter_ranked

log = logging.getLogger(__name__)


class PeFormatError(ValueError):
    """Input is not a PE image, or its headers cannot be read."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


@dataclass(frozen=True)
class AnalysisOptions:
    dump_hex: bool = True
    max_dump: int = 1024
    show_strings: bool = True
    min_str_len: int = 4

    use_ranker: bool = False
    rank_limit: int = 25
    rank_min: float = 0.0
    rank_timeout: float = 60.0

    workers: int = 4
    max_sections: int = 96
    max_input_bytes: int = 200_000_000


def read_file_bytes(path: Path, *, max_bytes: int) -> tuple[bytes, bool]:
    with path.open("rb") as f:
        data = f.read(max_bytes + 1)
    if len(data) > max_bytes:
        return data[:max_bytes], True
    return data, False


def _header_report(pe: PeImage) -> HeaderReport:
    return HeaderReport(
        is_64=pe.is_64,
        image_base=pe.image_base,
        size_of_image=pe.size_of_image,
        entry_point_rva=pe.entry_point_rva,
        entry_point_va=pe.entry_point_va,
        optional_flavor=pe.optional_flavor,
    )


def analyze_section(
    index: int,
    section: Section,
    data: bytes,
    options: AnalysisOptions,
    scorer: Optional[Scorer] = None,
    ranker_note: str = "",
) -> SectionReport:
    raw = section_bytes(data, section)

    dump = ""
    truncated = False
    if options.dump_hex:
        limit = len(raw)
        if 0 < options.max_dump < limit:
            limit = options.max_dump
            truncated = True
        if limit > 0:
            dump = hex_dump(section.raw_offset, raw[:limit])

    strings: List[str] = []
    if options.show_strings:
        strings = extract_strings(raw, options.min_str_len)

    ranked = []
    rank_note = ""
    if scorer is not None and strings:
        scored, rank_note = scorer(strings)
        ranked = sort_filter_ranked(scored, options.rank_limit, options.rank_min)
        rank_note = rank_note or ranker_note

    return SectionReport(
        index=index,
        name=section.name,
        raw_offset=section.raw_offset,
        raw_size=section.raw_size,
        virtual_size=section.virtual_size,
        virtual_address=section.virtual_address,
        hex_dump=dump,
        truncated=truncated,
        strings=strings,
        ranked=ranked,
        rank_note=rank_note,
    )


def analyze_bytes(
    data: bytes,
    *,
    options: AnalysisOptions = AnalysisOptions(),
    input_name: str = "",
    scorer: Optional[Scorer] = None,
    ranker_note: Optional[str] = None,
) -> Report:
    """
    Build a Report for one PE image held in memory.

    Raises PeFormatError when data is not a PE or its headers are unreadable.
    Everything past the headers degrades to notes and never raises.
    """
    res = parse_pe_bytes(data, max_sections=options.max_sections)
    if not res.present:
        raise PeFormatError("not a PE image (missing MZ header)")
    if res.pe is None:
        msg = res.errors[0]["message"] if res.errors else "unreadable PE headers"
        raise PeFormatError(msg, res.errors)
    pe = res.pe

    if options.use_ranker:
        if scorer is None:
            scorer = make_scorer(limit=options.rank_limit, min_score=options.rank_min, timeout=options.rank_timeout)
        if ranker_note is None:
            ranker_note = ensure_available()
    else:
        scorer = None

    def _one(item) -> SectionReport:
        i, s = item
        return analyze_section(i, s, data, options, scorer, ranker_note or "")

    items = list(enumerate(pe.sections))
    if options.workers > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=options.workers) as pool:
            sections = list(pool.map(_one, items))
    else:
        sections = [_one(item) for item in items]
    sections.sort(key=lambda s: s.index)

    imports = parse_imports(data, pe.sections, pe.import_dir, is_64=pe.is_64)
    exports = parse_exports(data, pe.sections, pe.export_dir)
    resources = parse_resources(data, pe.sections, pe.resource_dir)
    for label, note in (("imports", imports.note), ("exports", exports.note), ("resources", resources.note)):
        if note:
            log.info("%s: %s", label, note)

    return Report(
        input_name=input_name,
        header=_header_report(pe),
        sections=sections,
        imports=imports,
        exports=exports,
        resources=resources,
        errors=res.errors,
    )


def analyze_path(path: Path, *, options: AnalysisOptions = AnalysisOptions(), **kwargs: Any) -> Report:
    data, truncated = read_file_bytes(path, max_bytes=options.max_input_bytes)
    if truncated:
        log.warning("%s: input truncated to %d bytes", path.name, options.max_input_bytes)
    report = analyze_bytes(data, options=options, input_name=path.name, **kwargs)
    if truncated:
        err = {
            "code": "E_INPUT_TRUNCATED",
            "message": f"Input larger than max_input_bytes={options.max_input_bytes}; analyzed a prefix.",
        }
        report = report.model_copy(update={"errors": report.errors + [err]})
    return report
