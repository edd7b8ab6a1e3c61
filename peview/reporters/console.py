from __future__ import annotations
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from peview.model import Report

console = Console()

def _hex(value: int, is_64: bool) -> str:
    return f"0x{value:016X}" if is_64 else f"0x{value & 0xFFFFFFFF:08X}"

def render_console(report: Report) -> None:
    h = report.header
    t = Table(title=f"PE: {escape(report.input_name)}")
    t.add_column("Field")
    t.add_column("Value", overflow="fold")
    t.add_row("format", h.optional_flavor)
    t.add_row("image_base", _hex(h.image_base, h.is_64))
    t.add_row("size_of_image", f"0x{h.size_of_image:X}")
    t.add_row("entry_point_rva", f"0x{h.entry_point_rva:08X}")
    t.add_row("entry_point_va", _hex(h.entry_point_va, h.is_64))
    console.print(t)

    st = Table(title=f"Found {len(report.sections)} sections")
    for col in ("#", "Name", "PtrRaw", "SizeRaw", "VSize", "RVA"):
        st.add_column(col)
    for s in report.sections:
        st.add_row(
            f"#{s.index:02X}",
            escape(s.name),
            f"0x{s.raw_offset:08X}",
            f"0x{s.raw_size:08X}",
            f"0x{s.virtual_size:08X}",
            f"0x{s.virtual_address:08X}",
        )
    console.print(st)

    imp = report.imports
    if imp.dlls:
        console.print(f"\n[bold]Imports ({len(imp.dlls)} DLLs):[/bold]")
        for d in imp.dlls:
            console.print(f"  {d.name}  ({len(d.functions)} funcs)", markup=False)
    if imp.note:
        console.print(f"  [yellow]Note:[/yellow] {escape(imp.note)}")

    exp = report.exports
    if exp.symbols or exp.note:
        console.print(f"\n[bold]Exports from {escape(exp.dll_name)}: {len(exp.symbols)} symbols[/bold]")
        if exp.note:
            console.print(f"  [yellow]Note:[/yellow] {escape(exp.note)}")

    res = report.resources
    if res.types or res.note:
        console.print(f"\n[bold]Resources: {len(res.types)} types[/bold]")
        for rt in res.types:
            console.print(f"  {rt.type_name} ({rt.count})", markup=False)
        if res.note:
            console.print(f"  [yellow]Note:[/yellow] {escape(res.note)}")

    for e in report.errors:
        console.print(f"[red]{escape(str(e.get('code', '')))}[/red] {escape(str(e.get('message', '')))}")
