"""Tests for the dtv command line (non-interactive modes)."""
from decision_trace.cli import main, select_trace


def test_list_directory(trace_dir, capsys):
    assert main([str(trace_dir), "--list"]) == 0
    assert capsys.readouterr().out.splitlines() == ["a_trace.json", "b_trace.json"]


def test_list_missing_path(tmp_path, capsys):
    assert main([str(tmp_path / "nope"), "--list"]) == 1
    assert capsys.readouterr().err.startswith("Error:")


def test_llm_report_to_stdout(trace_file, capsys):
    assert main([str(trace_file), "--llm"]) == 0
    out = capsys.readouterr().out
    assert out.startswith(f"# Decision Trace: {trace_file.name}")
    assert "## DRAM Fallbacks (1)" in out


def test_llm_report_to_file(trace_file, tmp_path, capsys):
    output = tmp_path / "report.md"
    assert main([str(trace_file), "--llm", "-o", str(output)]) == 0
    assert output.read_text().startswith("# Decision Trace:")
    assert "LLM report written to:" in capsys.readouterr().err


def test_named_trace_from_directory(trace_dir, capsys):
    assert main([str(trace_dir), "--trace", "b_trace.json", "--llm"]) == 0
    assert capsys.readouterr().out.startswith("# Decision Trace: b_trace.json")


def test_directory_defaults_to_first_trace(trace_dir, capsys):
    assert main([str(trace_dir), "--llm"]) == 0
    assert capsys.readouterr().out.startswith("# Decision Trace: a_trace.json")


def test_html_report_to_file(trace_file, tmp_path, capsys):
    output = tmp_path / "out" / "report.html"
    assert main([str(trace_file), "--html", "-o", str(output)]) == 0
    assert output.exists()
    assert "HTML report written to:" in capsys.readouterr().err


def test_html_report_default_location(trace_file, reports_dir):
    assert main([str(trace_file), "--html"]) == 0
    expected = reports_dir / "forward_decision_trace" / "forward_decision_trace_decision_trace.html"
    assert expected.exists()


def test_missing_trace_file(tmp_path, capsys):
    assert main([str(tmp_path / "missing.json"), "--llm"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_malformed_trace(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text('{"forwardPass": {}}')
    assert main([str(path), "--llm"]) == 1
    assert "Error: Malformed trace" in capsys.readouterr().err


def test_access_denied(trace_dir, capsys):
    assert main([str(trace_dir), "--trace", "../escape.json", "--llm"]) == 1
    assert "Access denied" in capsys.readouterr().err


def test_select_trace_without_prompt(trace_dir, trace_file):
    assert select_trace(str(trace_dir), None, interactive=False).name == "a_trace.json"
    assert select_trace(str(trace_dir), "b_trace.json", interactive=False).name == "b_trace.json"
    assert select_trace(str(trace_file), None, interactive=True) == trace_file.resolve()


def test_trace_not_utf8(tmp_path, capsys):
    path = tmp_path / "latin1.json"
    path.write_bytes(b'{"forwardPass": [], "edges": [], "functionName": "\xff"}')
    assert main([str(path), "--llm"]) == 1
    assert "Error: Malformed trace" in capsys.readouterr().err
