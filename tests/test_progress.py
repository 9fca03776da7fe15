import logging

from sqlexport.cli.common.progress import RichProgressSink, _truncate, format_elapsed
from sqlexport.core.objects import ObjectKind


def test_truncate_uses_ascii_ellipsis():
    assert _truncate("dbo.a_very_long_procedure_name", 12) == "dbo.a_ver..."
    assert _truncate("short", 12) == "short"


def test_format_elapsed_minutes_seconds_millis():
    assert format_elapsed(0) == "00:00.000"
    assert format_elapsed(75.5) == "01:15.500"
    assert format_elapsed(-1) == "00:00.000"


def test_sink_without_progress_bars_only_logs(caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("sqlexport"), "propagate", True)
    sink = RichProgressSink(show_progress=False, show_summary=False)

    with caplog.at_level("INFO", logger="sqlexport.progress"):
        sink.on_start("Writing scripts", 2)
        sink.on_progress("dbo.v1")
        sink.on_progress("dbo.v2")
        sink.on_complete()
        sink.on_summary({ObjectKind.VIEW: 2}, 2)

    messages = [r.getMessage() for r in caplog.records]
    assert "Starting Writing scripts (2 items)..." in messages
    assert any(m.startswith("Completed Writing scripts in ") for m in messages)
    assert "Summary: 2 file(s) created" in messages


def test_sink_stops_live_progress_on_exit():
    sink = RichProgressSink(show_progress=True, show_summary=False)

    with sink:
        sink.on_start("Reading catalog", 4)
        sink.on_progress("Views")
        assert sink._progress is not None

    assert sink._progress is None
