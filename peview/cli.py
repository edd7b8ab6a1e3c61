from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import Optional

import typer

from peview.analyzer import AnalysisOptions, analyze_path
from peview.bundler import html_out_path, write_json
from peview.config import AppConfig, load_config
from peview.logging_config import setup_logging
from peview.ranking import ensure_available
from peview.reporters.console import render_console
from peview.reporters.html_report import write_html

app = typer.Typer(add_completion=False)


def version_callback(value: bool):
    if value:
        try:
            v = metadata.version("peview")
        except metadata.PackageNotFoundError:
            v = "0.1.0-dev"
        typer.echo(f"peview version: {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True, help="Show version and exit."
    ),
):
    """
    Static PE inspector: sections, imports, exports and resources. Never executes the input.
    """
    pass


def _options_from_cfg(cfg: AppConfig) -> AnalysisOptions:
    a = cfg.analysis
    return AnalysisOptions(
        dump_hex=a.dump_hex,
        max_dump=a.max_dump,
        show_strings=a.show_strings,
        min_str_len=a.min_str_len,
        use_ranker=a.use_ranker,
        rank_limit=a.rank_limit,
        rank_min=a.rank_min,
        rank_timeout=a.rank_timeout,
        workers=max(1, a.workers),
        max_sections=cfg.container.max_sections,
        max_input_bytes=cfg.container.max_input_bytes,
    )


def _apply_overrides(cfg: AppConfig, **overrides) -> AppConfig:
    analysis = {k: v for k, v in overrides.items() if v is not None}
    if analysis:
        cfg = cfg.model_copy(update={"analysis": cfg.analysis.model_copy(update=analysis)})
    return cfg


@app.command()
def analyze(
    path: str = typer.Argument(..., help="PE file to inspect."),
    config: str = typer.Option(None, "--config", help="Path to YAML config."),
    dump: Optional[bool] = typer.Option(None, "--dump/--no-dump", help="Hex-dump section data."),
    maxdump: Optional[int] = typer.Option(None, "--maxdump", help="Max bytes to hex-dump per section (0 = no limit)."),
    strings: Optional[bool] = typer.Option(None, "--strings/--no-strings", help="Extract printable strings per section."),
    minstrlen: Optional[int] = typer.Option(None, "--minstrlen", help="Minimum printable string length."),
    rank: Optional[bool] = typer.Option(None, "--rank/--no-rank", help="Rank strings with StringSifter (rank_strings)."),
    ranklimit: Optional[int] = typer.Option(None, "--ranklimit", help="Top-N ranked strings per section (0 = all)."),
    rankmin: Optional[float] = typer.Option(None, "--rankmin", help="Minimum StringSifter score to include."),
    install: bool = typer.Option(False, "--install", help="If rank_strings is missing, offer to install StringSifter."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Assume yes to the install prompt."),
    html: Optional[bool] = typer.Option(None, "--html/--no-html", help="Write an HTML report and suppress console output."),
    html_out: Optional[str] = typer.Option(None, "--html-out", help="HTML report path (default: <input>.peview.html)."),
    json_out: Optional[str] = typer.Option(None, "--json", help="Also write the report as JSON."),
    workers: Optional[int] = typer.Option(None, "--workers", help="Sections analyzed in parallel."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
):
    cfg = load_config(config)
    cfg = _apply_overrides(
        cfg,
        dump_hex=dump,
        max_dump=maxdump,
        show_strings=strings,
        min_str_len=minstrlen,
        use_ranker=rank,
        rank_limit=ranklimit,
        rank_min=rankmin,
        workers=workers,
    )
    setup_logging(log_level or cfg.logging.level)

    p_in = Path(path).expanduser().resolve()
    if not p_in.is_file():
        raise typer.BadParameter(f"Path does not exist or is not a file: {p_in}")

    write_report = cfg.report.html if html is None else html
    options = _options_from_cfg(cfg)

    ranker_note = None
    if options.use_ranker:
        confirm = None if yes else typer.confirm
        ranker_note = ensure_available(offer_install=install, confirm=confirm)
        if ranker_note and not write_report:
            typer.secho(f"Warning: {ranker_note}", fg=typer.colors.YELLOW, err=True)

    try:
        report = analyze_path(p_in, options=options, ranker_note=ranker_note)
    except Exception as e:
        typer.secho(f"Error analyzing {p_in.name}: {type(e).__name__}: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    json_path = json_out or cfg.report.json_path
    if json_path:
        write_json(Path(json_path).expanduser(), report.model_dump())

    if write_report:
        out = Path(html_out).expanduser() if html_out else html_out_path(p_in)
        write_html(
            out,
            report,
            input_path=str(p_in),
            ranked=options.use_ranker,
            rank_limit=options.rank_limit,
            rank_min=options.rank_min,
        )
        typer.echo(f"Report written: {out}")
        return

    render_console(report)


if __name__ == "__main__":
    app()
