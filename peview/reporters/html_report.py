from __future__ import annotations

import html
from pathlib import Path
from typing import List

from peview.model import ExportReport, HeaderReport, ImportReport, Report, ResourceReport, SectionReport

_STYLES = """<style>
:root{--bg:#0b1020;--panel:#111832;--fg:#e8eef9;--muted:#a9b4cf;--acc:#7aa2f7;}
*{box-sizing:border-box}
body{margin:0;background:var(--bg);color:var(--fg);font:14px/1.5 ui-monospace,SFMono-Regular,Menlo,Consolas,"Liberation Mono",monospace}
header{padding:24px 20px;border-bottom:1px solid #1c2752;background:linear-gradient(180deg,#0c1530,#0b1020)}
h1{margin:0 0 6px;font-size:20px}
small{color:var(--muted)}
main{padding:20px}
.card{background:var(--panel);border:1px solid #1c2752;border-radius:12px;margin:0 0 16px;overflow:hidden}
.card h2,.card h3{margin:0;padding:12px 14px;border-bottom:1px solid #1c2752;background:#0c1530}
.card .content{padding:14px}
.kv{display:grid;grid-template-columns:220px 1fr;gap:8px 14px}
table{width:100%;border-collapse:collapse}
th,td{padding:8px 10px;border-bottom:1px solid #1e2b5f;text-align:left;vertical-align:top}
th{color:var(--muted);font-weight:600}
pre{margin:0;white-space:pre;overflow:auto;padding:12px;background:#0c1530;border-radius:8px}
code{background:#0c1530;padding:2px 6px;border-radius:6px}
details{border:1px solid #1e2b5f;border-radius:8px;margin:8px 0;background:#0c1530}
details > summary{cursor:pointer;padding:10px 12px;user-select:none}
.badge{display:inline-block;padding:2px 8px;border:1px solid #2b3b7a;border-radius:999px;color:var(--muted);font-size:12px}
.toc a{color:var(--acc);text-decoration:none}
.subcard{border:1px dashed #2a3a7a;border-radius:8px;margin:10px 0;padding:10px}
.note{color:#f5d67c}
</style>"""

e = html.escape


def _addr(value: int, is_64: bool) -> str:
    return f"0x{value:016X}" if is_64 else f"0x{value & 0xFFFFFFFF:08X}"


def _note(text: str) -> str:
    return f'<p class="note">{e(text)}</p>' if text else ""


def _pre_lines(lines: List[str]) -> str:
    return "<pre>" + "".join(e(line) + "\n" for line in lines) + "</pre>"


def _header_card(h: HeaderReport, *, ranked: bool, rank_limit: int, rank_min: float) -> str:
    out = [
        '<section class="card"><h2>PE Optional Header</h2><div class="content"><div class="kv">',
        f"<div>Format</div><div>{e(h.optional_flavor)}</div>",
        f"<div>ImageBase</div><div>{_addr(h.image_base, h.is_64)}</div>",
        f"<div>EntryPoint RVA</div><div>0x{h.entry_point_rva:08X}</div>",
        f"<div>EntryPoint VA</div><div>{_addr(h.entry_point_va, h.is_64)}</div>",
        f"<div>SizeOfImage</div><div>0x{h.size_of_image:X} bytes</div>",
        "</div></div>",
    ]
    if ranked:
        out.append(
            f'<p class="content"><span class="badge">StringSifter enabled</span> &nbsp; Ranked with '
            f"<code>rank_strings</code> (top {max(rank_limit, 0)}, min-score {rank_min:.3f}). See per-section details.</p>"
        )
    out.append("</section>")
    return "".join(out)


def _section_card(s: SectionReport, *, ranked: bool) -> str:
    out = [
        f'<section class="card"><h3 id="sec-{s.index:02X}"><code>#{s.index:02X}</code> {e(s.name)}</h3>',
        '<div class="content"><div class="kv">',
        f"<div>PtrRaw</div><div><code>0x{s.raw_offset:08X}</code></div>",
        f"<div>SizeRaw</div><div><code>0x{s.raw_size:08X}</code></div>",
        f"<div>VirtualSize</div><div><code>0x{s.virtual_size:08X}</code></div>",
        f"<div>VirtualAddress (RVA)</div><div><code>0x{s.virtual_address:08X}</code></div>",
        "</div>",
        '<details><summary>Hex dump</summary><div class="content">',
    ]
    if not s.hex_dump:
        out.append('<p class="badge">No hex dump available</p>')
    else:
        if s.truncated:
            out.append('<p class="badge">Truncated to maxdump</p>')
        out.append(f"<pre>{e(s.hex_dump)}</pre>")
    out.append("</div></details>")

    out.append('<details><summary>Strings (plain)</summary><div class="content">')
    out.append(_pre_lines(s.strings) if s.strings else '<p class="badge">No printable strings found</p>')
    out.append("</div></details>")

    if ranked:
        out.append('<details open><summary>Ranked Strings (StringSifter)</summary><div class="content">')
        out.append(_note(s.rank_note))
        if not s.ranked:
            out.append('<p class="badge">No ranked strings</p>')
        else:
            out.append("<table><thead><tr><th>#</th><th>Score</th><th>String</th></tr></thead><tbody>")
            for i, r in enumerate(s.ranked, 1):
                score = "—" if r.score is None else f"{r.score:.6f}"
                out.append(f"<tr><td>{i}</td><td><code>{e(score)}</code></td><td><code>{e(r.text)}</code></td></tr>")
            out.append("</tbody></table>")
        out.append("</div></details>")

    out.append("</div></section>")
    return "".join(out)


def _imports_card(imp: ImportReport) -> str:
    out = ['<section id="imports" class="card"><h2>Imports</h2><div class="content">', _note(imp.note)]
    if not imp.dlls:
        out.append('<p class="badge">No imports</p>')
    for d in imp.dlls:
        out.append(f'<div class="subcard"><h3>{e(d.name)}</h3>')
        out.append(_pre_lines(d.functions) if d.functions else '<p class="badge">No named imports</p>')
        out.append("</div>")
    out.append("</div></section>")
    return "".join(out)


def _exports_card(exp: ExportReport) -> str:
    out = ['<section id="exports" class="card"><h2>Exports</h2><div class="content">', _note(exp.note)]
    if not exp.symbols:
        out.append('<p class="badge">No exports</p>')
    else:
        if exp.dll_name:
            out.append(f'<p><span class="badge">Module</span> <code>{e(exp.dll_name)}</code></p>')
        out.append("<table><thead><tr><th>#</th><th>Ordinal</th><th>Name</th><th>RVA</th></tr></thead><tbody>")
        for i, sym in enumerate(exp.symbols, 1):
            out.append(
                f"<tr><td>{i}</td><td><code>{sym.ordinal}</code></td><td><code>{e(sym.name)}</code></td>"
                f"<td><code>0x{sym.rva:08X}</code></td></tr>"
            )
        out.append("</tbody></table>")
    out.append("</div></section>")
    return "".join(out)


def _resources_card(res: ResourceReport) -> str:
    out = ['<section id="resources" class="card"><h2>Resources</h2><div class="content">', _note(res.note)]
    if not res.types:
        out.append('<p class="badge">No resources</p>')
    else:
        out.append("<table><thead><tr><th>Type</th><th>ID</th><th>Child entries</th></tr></thead><tbody>")
        for t in res.types:
            out.append(f"<tr><td>{e(t.type_name)}</td><td><code>{t.type_id}</code></td><td>{t.count}</td></tr>")
        out.append("</tbody></table>")
    out.append("</div></section>")
    return "".join(out)


def render_html(
    report: Report,
    *,
    input_path: str = "",
    ranked: bool = False,
    rank_limit: int = 0,
    rank_min: float = 0.0,
) -> str:
    title = f"PE Report — {report.input_name}"
    parts = [
        '<!DOCTYPE html><html lang="en"><head><meta charset="utf-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1">',
        f"<title>{e(title)}</title>",
        _STYLES,
        "</head><body>",
        f"<header><h1>{e(title)}</h1><small>Generated {e(report.generated_at)} — {e(input_path or report.input_name)}</small></header>",
        "<main>",
        _header_card(report.header, ranked=ranked, rank_limit=rank_limit, rank_min=rank_min),
        '<section class="card"><h2>Contents</h2><div class="content toc"><ul>'
        '<li><a href="#sec-summary">Sections Summary</a></li><li><a href="#imports">Imports</a></li>'
        '<li><a href="#exports">Exports</a></li><li><a href="#resources">Resources</a></li></ul></div></section>',
        '<section id="sec-summary" class="card"><h2>Sections Summary</h2><div class="content"><table><thead><tr>'
        "<th>#</th><th>Name</th><th>PtrRaw</th><th>SizeRaw</th><th>VirtualSize</th><th>VirtualAddress (RVA)</th>"
        "</tr></thead><tbody>",
    ]
    for s in report.sections:
        parts.append(
            f'<tr><td><a href="#sec-{s.index:02X}"><code>#{s.index:02X}</code></a></td><td><code>{e(s.name)}</code></td>'
            f"<td><code>0x{s.raw_offset:08X}</code></td><td><code>0x{s.raw_size:08X}</code></td>"
            f"<td><code>0x{s.virtual_size:08X}</code></td><td><code>0x{s.virtual_address:08X}</code></td></tr>"
        )
    parts.append("</tbody></table></div></section>")
    parts.extend(_section_card(s, ranked=ranked) for s in report.sections)
    parts.append(_imports_card(report.imports))
    parts.append(_exports_card(report.exports))
    parts.append(_resources_card(report.resources))
    parts.append("</main></body></html>")
    return "".join(parts)


def write_html(path: Path, report: Report, **kwargs) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_html(report, **kwargs), encoding="utf-8")
