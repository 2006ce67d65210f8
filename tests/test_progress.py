from __future__ import annotations

import io

from pushcp.progress import ProgressState, TqdmProgress, TransferStats


def test_progress_state_starts_at_offset():
    s = ProgressState("f", total=100, offset=40)
    assert s.completed == 40
    s.advance(25)
    assert s.remaining == 35
    assert s.transferred == 25


def test_tqdm_progress_renders(caplog):
    out = io.StringIO()
    reporter = TqdmProgress(file=out)
    state = ProgressState("movie.mkv", total=4096, offset=1024)
    with caplog.at_level("INFO"):
        reporter.start(state)
        state.advance(3072)
        reporter.update(state, 3072)
        reporter.finish(state)
    assert "movie.mkv" in out.getvalue()
    assert "completed 3.00kB" in caplog.text


def test_stats_summary():
    stats = TransferStats(files_transferred=2, bytes_transferred=10, start_ts=1.0, end_ts=3.0)
    d = stats.as_dict()
    assert d["files"] == 2
    assert d["seconds"] == 2.0
    assert d["mbps"] == 10 * 8 / 1_000_000 / 2.0
    assert TransferStats().duration_s == 0.0
