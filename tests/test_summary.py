"""Tests for trace summaries and formatting helpers."""
import pytest

from decision_trace.summary import summarize_trace
from decision_trace.trace_model import load_trace
from decision_trace.utils import (
    format_bytes,
    get_reports_dir,
    sanitize_report_name,
    short_event_op_name,
    short_op_name,
    shorten_layout,
    truncate,
)


def test_example_summary(example_trace):
    s = summarize_trace(example_trace)
    assert s.function_name == "forward"
    assert s.regular_ops == 2
    assert s.inplace_ops == 1
    assert s.sharded_ops == 1
    assert s.sharded_pct == 50
    assert s.dram_fallback_ops == 1
    assert s.total_spills is None


def test_full_summary(full_trace):
    s = summarize_trace(full_trace)
    assert s.total_ops == 4
    assert s.sharded_pct == 33
    assert s.total_spills == 1
    assert s.layout_counts == {
        "inplace": 1,
        "dram-fallback": 1,
        "l1-sharded": 1,
        "l1-interleaved": 1,
    }


def test_empty_summary():
    s = summarize_trace(load_trace({"forwardPass": [], "edges": []}))
    assert s.function_name == "N/A"
    assert s.sharded_pct == 0
    assert s.layout_counts == {}


@pytest.mark.parametrize(
    "value, expected",
    [(None, "?"), (0, "0B"), (512, "512B"), (1536, "1.5KB"), (3 * 1024 * 1024, "3.00MB")],
)
def test_format_bytes(value, expected):
    assert format_bytes(value) == expected


def test_shorten_layout():
    assert shorten_layout("l1/#ttnn.tensor_memory_layout<block_sharded>/4x4") == "l1/blk-shard/4x4"
    assert shorten_layout("dram/interleaved") == "dram/intrlvd"
    assert shorten_layout(None) == ""


def test_op_name_helpers():
    assert short_op_name("ttnn.matmul") == "matmul"
    assert short_event_op_name("%5 = ttnn.add %1, %2") == "ttnn.add"
    assert short_event_op_name("ttnn.to_layout(%3)") == "ttnn.to_layout(%3)"
    assert short_event_op_name("") == ""


def test_truncate():
    assert truncate("") == "N/A"
    assert truncate("short") == "short"
    assert truncate("x" * 60, 10) == "xxxxxxx..."


def test_report_name_and_dir(monkeypatch, tmp_path):
    assert sanitize_report_name("my trace (v2)") == "my_trace_v2"
    assert sanitize_report_name("...") == "trace"
    monkeypatch.setenv("DTV_REPORTS_DIR", str(tmp_path))
    assert get_reports_dir() == tmp_path
    monkeypatch.delenv("DTV_REPORTS_DIR")
    assert get_reports_dir().parts[-2:] == (".dtv", "reports")
