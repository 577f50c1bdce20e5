"""Tests for trace file discovery and the HTTP trace API."""
import json
import urllib.error
import urllib.request

import pytest

from decision_trace.server import find_available_port, start_http_server
from decision_trace.trace_store import (
    TraceAccessError,
    list_traces,
    read_trace_bytes,
    resolve_trace_path,
)


def test_list_directory(trace_dir):
    assert [t["name"] for t in list_traces(trace_dir)] == ["a_trace.json", "b_trace.json"]


def test_list_single_file(trace_file):
    traces = list_traces(trace_file)
    assert traces == [{"name": trace_file.name, "path": str(trace_file.resolve())}]


def test_list_missing_path(tmp_path):
    with pytest.raises(FileNotFoundError):
        list_traces(tmp_path / "nowhere")


def test_default_trace_is_first(trace_dir):
    assert resolve_trace_path(trace_dir).name == "a_trace.json"


def test_named_trace(trace_dir):
    data = json.loads(read_trace_bytes(trace_dir, "b_trace.json"))
    assert data["totalOps"] == 4


def test_single_file_ignores_name(trace_file):
    assert resolve_trace_path(trace_file, "other.json") == trace_file.resolve()


def test_access_outside_directory_denied(trace_dir):
    (trace_dir.parent / "secret.json").write_text("{}")
    with pytest.raises(TraceAccessError):
        read_trace_bytes(trace_dir, "../secret.json")


def test_missing_named_trace(trace_dir):
    with pytest.raises(FileNotFoundError):
        read_trace_bytes(trace_dir, "missing.json")


def test_empty_directory(tmp_path):
    with pytest.raises(FileNotFoundError, match="No JSON files"):
        resolve_trace_path(tmp_path)


@pytest.fixture
def served(trace_dir, tmp_path):
    report_dir = tmp_path / "site"
    report_dir.mkdir()
    (report_dir / "index.html").write_text("<html>report</html>")
    port = find_available_port(18000)
    server, _ = start_http_server(report_dir, port, trace_path=trace_dir)
    yield f"http://127.0.0.1:{port}"
    server.shutdown()
    server.server_close()


def _get(url):
    with urllib.request.urlopen(url, timeout=5) as response:
        return response.status, response.read()


def test_api_lists_traces(served):
    status, body = _get(f"{served}/api/traces")
    assert status == 200
    assert [t["name"] for t in json.loads(body)] == ["a_trace.json", "b_trace.json"]


def test_api_serves_trace(served):
    status, body = _get(f"{served}/api/trace?file=b_trace.json")
    assert status == 200
    assert json.loads(body)["totalOps"] == 4
    _, default = _get(f"{served}/api/trace")
    assert json.loads(default)["totalOps"] == 3


@pytest.mark.parametrize("name, code", [("../secret.json", 403), ("missing.json", 404)])
def test_api_errors(served, trace_dir, name, code):
    (trace_dir.parent / "secret.json").write_text("{}")
    with pytest.raises(urllib.error.HTTPError) as excinfo:
        _get(f"{served}/api/trace?file={name}")
    assert excinfo.value.code == code


def test_serves_report_files(served):
    status, body = _get(f"{served}/index.html")
    assert status == 200
    assert b"report" in body
