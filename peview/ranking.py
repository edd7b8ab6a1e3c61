from __future__ import annotations

import importlib.util
import logging
import shutil
import subprocess
import sys
from typing import Callable, Iterable, List, Optional, Tuple

from peview.model import RankedString

log = logging.getLogger(__name__)

RANK_EXECUTABLE = "rank_strings"
RANK_MODULE = "stringsifter.rank_strings"

INSTALL_HINT = f"Install: {sys.executable} -m pip install --user stringsifter"

# (strings) -> (ranked, note); a non-empty note explains missing results
Scorer = Callable[[List[str]], Tuple[List[RankedString], str]]


def sort_filter_ranked(items: Iterable[RankedString], limit: int, min_score: float) -> List[RankedString]:
    """
    Filter, then stable-sort by descending score, then truncate.

    Unscored entries survive only when min_score <= 0 and always sort after
    scored ones, keeping their input order.
    """
    kept = [r for r in items if (r.score >= min_score if r.score is not None else min_score <= 0)]
    kept.sort(key=lambda r: (r.score is None, -(r.score or 0.0)))
    if limit > 0:
        kept = kept[:limit]
    return kept


def parse_scored_lines(output: str) -> List[RankedString]:
    """Parse `<score> <text>` lines; lines without a leading number stay unscored."""
    ranked: List[RankedString] = []
    for line in output.splitlines():
        t = line.strip()
        if not t:
            continue
        head, sep, tail = t.partition(" ")
        # float() also takes "1_000"; a ranker score never has digit separators
        if sep and "_" not in head:
            try:
                score = float(head)
            except ValueError:
                pass
            else:
                ranked.append(RankedString(text=tail.strip(), score=score))
                continue
        ranked.append(RankedString(text=t, score=None))
    return ranked


def _module_available() -> bool:
    try:
        return importlib.util.find_spec("stringsifter") is not None
    except (ImportError, ValueError):
        return False


def ranker_command() -> Optional[List[str]]:
    exe = shutil.which(RANK_EXECUTABLE)
    if exe:
        return [exe]
    if _module_available():
        return [sys.executable, "-m", RANK_MODULE]
    return None


def rank_strings(
    strings: List[str],
    *,
    limit: int = 0,
    min_score: float = 0.0,
    timeout: Optional[float] = 60.0,
) -> Tuple[List[RankedString], str]:
    cmd = ranker_command()
    if cmd is None:
        return [], f"StringSifter ({RANK_EXECUTABLE}) not found. {INSTALL_HINT}"

    name = RANK_EXECUTABLE if len(cmd) == 1 else f"python -m {RANK_MODULE}"
    cmd = cmd + ["--scores"]
    if limit > 0:
        cmd += ["--limit", str(limit)]
    if min_score > 0:
        cmd += ["--min-score", f"{min_score:.6f}"]

    stdin = "".join(s + "\n" for s in strings)
    try:
        proc = subprocess.run(cmd, input=stdin, capture_output=True, text=True, errors="replace", timeout=timeout)
    except subprocess.TimeoutExpired:
        note = f"Failed running {name}: timed out after {timeout}s"
        log.warning(note)
        return [], note
    except OSError as e:
        note = f"Failed running {name}: {type(e).__name__}: {e}"
        log.warning(note)
        return [], note

    if proc.returncode != 0:
        note = f"Failed running {name}: exit status {proc.returncode}"
        stderr = (proc.stderr or "").strip()
        if stderr:
            note += f": {stderr.splitlines()[-1]}"
        log.warning(note)
        return [], note

    return parse_scored_lines(proc.stdout or ""), ""


def make_scorer(*, limit: int, min_score: float, timeout: Optional[float]) -> Scorer:
    def scorer(strings: List[str]) -> Tuple[List[RankedString], str]:
        return rank_strings(strings, limit=limit, min_score=min_score, timeout=timeout)

    return scorer


def _install(timeout: Optional[float]) -> str:
    cmd = [sys.executable, "-m", "pip", "install", "--user", "stringsifter"]
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as e:
        return f"StringSifter install failed: {type(e).__name__}: {e}"
    if proc.returncode != 0:
        return f"StringSifter install failed: exit status {proc.returncode}"
    return ""


def ensure_available(
    *,
    offer_install: bool = False,
    confirm: Optional[Callable[[str], bool]] = None,
    timeout: Optional[float] = 600.0,
) -> str:
    """
    Returns "" when the ranker can be run, otherwise a note explaining why not.
    With offer_install, asks confirm (when given) and pip-installs StringSifter.
    """
    if ranker_command() is not None:
        return ""
    if not offer_install:
        return f"StringSifter ({RANK_EXECUTABLE}) not found. {INSTALL_HINT}"
    if confirm is not None and not confirm("StringSifter (rank_strings) not found. Install it now?"):
        return "Skipped StringSifter installation."

    log.info("installing StringSifter")
    note = _install(timeout)
    if note:
        log.warning(note)
        return note
    if ranker_command() is None:
        return "StringSifter still not available after install."
    return ""
