"""Tests for the HTML report."""
import json

from decision_trace.session import derive
from decision_trace.trace_model import load_trace
from decision_trace.visualizer import DecisionTraceVisualizer


def test_generate_report(full_trace, tmp_path):
    output = tmp_path / "nested" / "report.html"
    path = DecisionTraceVisualizer(derive(full_trace), trace_name="forward.json").generate_report(output)

    assert path == output
    html = output.read_text()
    assert html.startswith("<!DOCTYPE html>")
    assert "<title>Decision Trace: forward.json</title>" in html
    assert "cytoscape" in html
    assert "plotly" in html
    assert '"reshard-1"' in html
    assert 'id="op-card-3"' in html
    assert 'id="spill-row-1"' in html
    assert "Fork Resolutions (1)" in html
    assert "DRAM FALLBACK" in html


def test_graph_payload(full_trace):
    data = DecisionTraceVisualizer(derive(full_trace)).prepare_graph_data()
    assert len(data["elements"]) == 4 + 1 + 5
    flags = data["filterData"]["op-1"]
    assert flags["dram"] is True
    assert flags["failed"] is True
    assert flags["arrayIndex"] == 1
    json.dumps(data)


def test_timeline_payload(full_trace):
    data = DecisionTraceVisualizer(derive(full_trace)).prepare_timeline_data()
    names = [t["name"] for t in data["traces"]]
    assert names == ["L1 occupied", "Budget (80B)", "live_added", "eviction"]
    eviction = data["traces"][3]
    assert eviction["marker"]["symbol"] == "x-thin-open"
    assert eviction["x"] == [1]
    assert data["layout"]["xaxis"]["range"] == [0, 2]
    json.dumps(data)


def test_timeline_payload_without_spills(example_trace):
    data = DecisionTraceVisualizer(derive(example_trace)).prepare_timeline_data()
    assert data == {"traces": [], "layout": {}}


def test_html_escapes_trace_content(tmp_path):
    trace = load_trace({
        "functionName": "<script>",
        "forwardPass": [{"opIndex": 0, "opName": "ttnn.<b>", "opLocation": "x"}],
        "edges": [],
    })
    html = DecisionTraceVisualizer(derive(trace)).build_html()
    assert "Decision Trace: &lt;script&gt;" in html
    assert "ttnn.&lt;b&gt;" in html


def test_graph_payload_includes_node_label(full_trace):
    data = DecisionTraceVisualizer(derive(full_trace)).prepare_graph_data()
    assert data["filterData"]["op-3"]["label"] == "#3 softmax"
    assert "f.label.includes(search)" in DecisionTraceVisualizer(derive(full_trace)).build_html()


def test_unpositioned_spill_event_not_plotted(full_document):
    full_document["spillManagement"]["events"][1]["position"] = 1.5
    visualizer = DecisionTraceVisualizer(derive(load_trace(full_document)))
    names = [t["name"] for t in visualizer.prepare_timeline_data()["traces"]]
    assert "eviction" not in names
    assert '<tr id="spill-row-1"><td>?</td>' in visualizer.build_html()
