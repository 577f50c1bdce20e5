"""Tests for op detail cards, fork rows and spill event rows."""
from conftest import make_example_document
from decision_trace.details import (
    INVALID,
    VALID_IN_BEAM,
    VALID_NOT_CHOSEN,
    build_op_detail,
    classify_evaluations,
    fork_rows,
    spill_event_rows,
    spill_footer,
)
from decision_trace.edge_index import build_edge_index
from decision_trace.trace_model import load_trace


def _detail(trace, array_index):
    return build_op_detail(trace, build_edge_index(trace.edges), array_index)


def test_evaluation_status(example_trace):
    matmul, relu = example_trace.forward_pass[1], example_trace.forward_pass[2]
    assert [r.status for r in classify_evaluations(matmul)] == [INVALID, VALID_IN_BEAM]
    assert [r.status for r in classify_evaluations(relu)] == [VALID_IN_BEAM, VALID_NOT_CHOSEN]
    assert classify_evaluations(matmul)[0].failure_text == "L1 OOM"


def test_failure_text_default():
    doc = make_example_document()
    del doc["forwardPass"][1]["evaluations"][0]["failureReason"]
    trace = load_trace(doc)
    assert classify_evaluations(trace.forward_pass[1])[0].failure_text == "validation failed"


def test_detail_links(example_trace):
    detail = _detail(example_trace, 2)
    assert len(detail.producers) == 1
    link = detail.producers[0]
    assert (link.op_index, link.array_index, link.name, link.has_reshard) == (1, 1, "matmul", True)
    assert detail.consumers == ()


def test_detail_of_consumer_with_two_operands(full_trace):
    detail = _detail(full_trace, 3)
    assert [(link.name, link.operand_index) for link in detail.producers] == [("relu", 0), ("relu", 1)]


def test_detail_contents(example_trace):
    detail = _detail(example_trace, 2)
    assert detail.layout.category == "l1-sharded"
    assert detail.output_hints.primary_count == 2
    assert detail.cross_product_size == 7
    assert len(detail.beam) == 1
    candidates = detail.input_sets[0]
    assert candidates.shown == ("cand0", "cand1", "cand2", "cand3", "cand4")
    assert candidates.remaining == 2


def test_inplace_detail_skips_decision_sections(example_trace):
    detail = _detail(example_trace, 0)
    assert detail.layout.category == "inplace"
    assert detail.evaluations == ()
    assert detail.beam == ()
    assert detail.output_hints is None
    assert [link.op_index for link in detail.consumers] == [1]


def test_unknown_producer_placeholder():
    doc = make_example_document()
    doc["edges"].append({"producerOpIndex": 9, "consumerOpIndex": 2})
    trace = load_trace(doc)
    link = _detail(trace, 2).producers[-1]
    assert link.name == "op#9"
    assert link.array_index == -1


def test_fork_rows(full_trace):
    rows = fork_rows(full_trace)
    assert len(rows) == 1
    assert rows[0].array_index == 2
    assert rows[0].fork.chosen_candidate_index == 0


def test_spill_event_rows(full_trace):
    rows = spill_event_rows(full_trace.spill_management, selected=1)
    assert [r.index for r in rows] == [0, 1]
    added, evicted = rows
    assert added.short_name == "ttnn.add"
    assert added.before == "0B"
    assert added.after == "100B"
    assert added.usage == "100B"
    assert not added.selected
    assert evicted.details == "victim: %0"
    assert evicted.usage == ""
    assert evicted.marker.glyph == "x"
    assert evicted.selected


def test_spill_rows_without_section(example_trace):
    assert spill_event_rows(example_trace.spill_management) == []


def test_spill_footer(full_trace):
    assert spill_footer(full_trace.spill_management) == (
        "Budget: 80B | Schedule: 0 ops | Total Spills: 1 | Final L1: 60B (2 tensors)"
    )
