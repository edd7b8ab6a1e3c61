from __future__ import annotations

import subprocess

import pytest

from peview import ranking
from peview.model import RankedString
from peview.ranking import ensure_available, parse_scored_lines, rank_strings, sort_filter_ranked


def _pairs(items):
    return [(r.text, r.score) for r in items]


SAMPLE = [RankedString(text="a", score=0.9), RankedString(text="b"), RankedString(text="c", score=0.5)]


def test_threshold_drops_unscored_and_low_scores():
    assert _pairs(sort_filter_ranked(SAMPLE, 10, 0.6)) == [("a", 0.9)]


def test_zero_threshold_keeps_unscored_last():
    assert _pairs(sort_filter_ranked(SAMPLE, 10, 0)) == [("a", 0.9), ("c", 0.5), ("b", None)]


def test_stable_for_ties_and_unscored():
    items = [
        RankedString(text="u1"),
        RankedString(text="x", score=1.0),
        RankedString(text="u2"),
        RankedString(text="y", score=1.0),
        RankedString(text="z", score=0.0),
    ]
    assert [r.text for r in sort_filter_ranked(items, 0, 0.0)] == ["x", "y", "z", "u1", "u2"]


def test_filter_happens_before_truncation():
    items = [RankedString(text="lo", score=0.1), RankedString(text="hi", score=0.8), RankedString(text="mid", score=0.7)]
    assert _pairs(sort_filter_ranked(items, 1, 0.75)) == [("hi", 0.8)]
    assert _pairs(sort_filter_ranked(items, 2, 0.0)) == [("hi", 0.8), ("mid", 0.7)]


def test_negative_threshold_keeps_everything():
    items = [RankedString(text="neg", score=-2.0), RankedString(text="none")]
    assert _pairs(sort_filter_ranked(items, 0, -5.0)) == [("neg", -2.0), ("none", None)]


def test_parse_scored_lines():
    out = "3.5 kernel32.dll\n\n  -1.25  http://example.com  \nno-score line\n4.0\n"
    assert _pairs(parse_scored_lines(out)) == [
        ("kernel32.dll", 3.5),
        ("http://example.com", -1.25),
        ("no-score line", None),
        ("4.0", None),
    ]


@pytest.fixture
def fake_ranker(monkeypatch):
    monkeypatch.setattr(ranking.shutil, "which", lambda name: "/usr/bin/rank_strings")
    calls = []

    def install(result=None, exc=None):
        def fake_run(cmd, **kwargs):
            calls.append((cmd, kwargs))
            if exc is not None:
                raise exc
            return result

        monkeypatch.setattr(ranking.subprocess, "run", fake_run)
        return calls

    return install


def test_rank_strings_success(fake_ranker):
    calls = fake_ranker(subprocess.CompletedProcess(args=[], returncode=0, stdout="2.0 two\n1.0 one\n", stderr=""))
    ranked, note = rank_strings(["one", "two"], limit=5, min_score=0.5, timeout=3)
    assert note == ""
    assert _pairs(ranked) == [("two", 2.0), ("one", 1.0)]
    cmd, kwargs = calls[0]
    assert cmd == ["/usr/bin/rank_strings", "--scores", "--limit", "5", "--min-score", "0.500000"]
    assert kwargs["input"] == "one\ntwo\n"
    assert kwargs["timeout"] == 3


def test_rank_strings_omits_zero_limit_and_threshold(fake_ranker):
    calls = fake_ranker(subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr=""))
    ranked, note = rank_strings(["x"], limit=0, min_score=0.0)
    assert (ranked, note) == ([], "")
    assert calls[0][0] == ["/usr/bin/rank_strings", "--scores"]


def test_rank_strings_nonzero_exit(fake_ranker):
    fake_ranker(subprocess.CompletedProcess(args=[], returncode=2, stdout="1.0 x\n", stderr="boom\nbad model\n"))
    ranked, note = rank_strings(["x"])
    assert ranked == []
    assert "exit status 2" in note
    assert "bad model" in note


def test_rank_strings_timeout(fake_ranker):
    fake_ranker(exc=subprocess.TimeoutExpired(cmd="rank_strings", timeout=1))
    ranked, note = rank_strings(["x"], timeout=1)
    assert ranked == []
    assert "timed out" in note


def test_rank_strings_exec_failure(fake_ranker):
    fake_ranker(exc=FileNotFoundError("rank_strings"))
    ranked, note = rank_strings(["x"])
    assert ranked == []
    assert "FileNotFoundError" in note


def test_missing_ranker_is_graceful(monkeypatch):
    monkeypatch.setattr(ranking.shutil, "which", lambda _: None)
    monkeypatch.setattr(ranking, "_module_available", lambda: False)
    ranked, note = rank_strings(["x"])
    assert ranked == []
    assert "not found" in note
    assert "not found" in ensure_available()


def test_install_declined(monkeypatch):
    monkeypatch.setattr(ranking, "ranker_command", lambda: None)
    assert ensure_available(offer_install=True, confirm=lambda _: False) == "Skipped StringSifter installation."


def test_install_runs_pip(monkeypatch):
    state = {"installed": False}
    monkeypatch.setattr(ranking, "ranker_command", lambda: ["rank_strings"] if state["installed"] else None)

    def fake_run(cmd, **kwargs):
        assert cmd[1:] == ["-m", "pip", "install", "--user", "stringsifter"]
        state["installed"] = True
        return subprocess.CompletedProcess(args=cmd, returncode=0, stdout="", stderr="")

    monkeypatch.setattr(ranking.subprocess, "run", fake_run)
    assert ensure_available(offer_install=True, confirm=lambda _: True) == ""


def test_digit_separators_are_not_scores():
    assert _pairs(parse_scored_lines("1_000 text\n2.5 ok\n")) == [("1_000 text", None), ("ok", 2.5)]
