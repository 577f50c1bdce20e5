# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""Per-operation detail views, fork listings and spill event rows."""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .edge_index import EdgeIndex
from .layout_classifier import LayoutClass, classify_op_layout
from .spill_timeline import SpillMarker, marker_for
from .trace_model import (
    BeamCandidate,
    Evaluation,
    ForkResolution,
    InputCandidateSet,
    Operation,
    OutputHints,
    SpillManagement,
    Trace,
)
from .utils import format_bytes, short_event_op_name, short_op_name

VALID_IN_BEAM = "valid-in-beam"
VALID_NOT_CHOSEN = "valid-not-chosen"
INVALID = "invalid"

MAX_LISTED_CANDIDATES = 5
DEFAULT_FAILURE_REASON = "validation failed"


@dataclass(frozen=True)
class OpLink:
    """A producer or consumer reference resolved against the forward pass."""
    op_index: Optional[int]
    array_index: int
    name: str
    has_reshard: bool
    operand_index: Optional[int] = None


@dataclass(frozen=True)
class EvaluationRow:
    evaluation: Evaluation
    status: str

    @property
    def failure_text(self) -> str:
        return self.evaluation.failure_reason or DEFAULT_FAILURE_REASON


@dataclass(frozen=True)
class CandidateSetRow:
    operand_index: Optional[int]
    from_producer_beam: object
    from_reshard: object
    shown: Tuple[str, ...]
    remaining: int


@dataclass(frozen=True)
class OpDetail:
    op: Operation
    array_index: int
    layout: LayoutClass
    producers: Tuple[OpLink, ...]
    consumers: Tuple[OpLink, ...]
    input_sets: Tuple[CandidateSetRow, ...]
    output_hints: Optional[OutputHints]
    cross_product_size: Optional[int]
    evaluations: Tuple[EvaluationRow, ...]
    beam: Tuple[BeamCandidate, ...]


def _link(trace: Trace, op_index: Optional[int], has_reshard: bool, operand_index=None) -> OpLink:
    op = trace.op_by_index(op_index) if op_index is not None else None
    name = short_op_name(op.op_name) if op else f"op#{op_index}"
    return OpLink(
        op_index=op_index,
        array_index=trace.position_of(op_index),
        name=name,
        has_reshard=has_reshard,
        operand_index=operand_index,
    )


def classify_evaluations(op: Operation) -> List[EvaluationRow]:
    """Mark each evaluation as invalid, valid and kept in the beam, or valid but dropped."""
    beam_outputs = {b.output_layout for b in op.beam}
    rows = []
    for ev in op.evaluations:
        if not ev.valid:
            status = INVALID
        elif ev.output in beam_outputs:
            status = VALID_IN_BEAM
        else:
            status = VALID_NOT_CHOSEN
        rows.append(EvaluationRow(ev, status))
    return rows


def _candidate_row(ics: InputCandidateSet) -> CandidateSetRow:
    shown = ics.candidates[:MAX_LISTED_CANDIDATES]
    return CandidateSetRow(
        operand_index=ics.operand_index,
        from_producer_beam=ics.from_producer_beam,
        from_reshard=ics.from_reshard,
        shown=shown,
        remaining=len(ics.candidates) - len(shown),
    )


def build_op_detail(
    trace: Trace, edge_index: EdgeIndex, array_index: int
) -> OpDetail:
    """
    Assemble the detail card for the op at a forward-pass position.

    In-place ops make no layout decision, so their hints, evaluations and
    beam are left out.
    """
    op = trace.forward_pass[array_index]
    producers = tuple(
        _link(trace, e.producer_op_index, e.has_reshard, e.operand_index)
        for e in edge_index.producers_of(op.op_index)
    )
    consumers = tuple(
        _link(trace, e.consumer_op_index, e.has_reshard, e.operand_index)
        for e in edge_index.consumers_of(op.op_index)
    )
    input_sets = tuple(_candidate_row(ics) for ics in op.input_candidate_sets)

    if op.is_inplace:
        return OpDetail(
            op=op,
            array_index=array_index,
            layout=classify_op_layout(op),
            producers=producers,
            consumers=consumers,
            input_sets=input_sets,
            output_hints=None,
            cross_product_size=None,
            evaluations=(),
            beam=(),
        )

    return OpDetail(
        op=op,
        array_index=array_index,
        layout=classify_op_layout(op),
        producers=producers,
        consumers=consumers,
        input_sets=input_sets,
        output_hints=op.output_hints,
        cross_product_size=op.cross_product_size,
        evaluations=tuple(classify_evaluations(op)),
        beam=op.beam,
    )


@dataclass(frozen=True)
class ForkRow:
    fork: ForkResolution
    array_index: int


def fork_rows(trace: Trace) -> List[ForkRow]:
    """Fork resolutions with the forward-pass position of each fork op (-1 if unknown)."""
    return [ForkRow(f, trace.position_of(f.op_index)) for f in trace.fork_resolutions]


@dataclass(frozen=True)
class SpillEventRow:
    index: int
    position: Optional[int]
    action: str
    marker: SpillMarker
    op_name: str
    short_name: str
    before: str
    after: str
    usage: str
    details: str
    selected: bool


def spill_event_rows(spill: Optional[SpillManagement], selected: int = -1) -> List[SpillEventRow]:
    """Table rows for the spill event list."""
    if spill is None:
        return []
    rows = []
    for idx, ev in enumerate(spill.events):
        details = ev.details
        if ev.victim_name:
            details = f"{details} victim: {ev.victim_name[:30]}".strip()
        rows.append(
            SpillEventRow(
                index=idx,
                position=ev.position,
                action=ev.action,
                marker=marker_for(ev),
                op_name=ev.op_name,
                short_name=short_event_op_name(ev.op_name),
                before=format_bytes(ev.occupied_l1_before),
                after=format_bytes(ev.occupied_l1_after),
                usage=format_bytes(ev.op_l1_usage) if ev.op_l1_usage else "",
                details=details,
                selected=idx == selected,
            )
        )
    return rows


def spill_footer(spill: SpillManagement) -> str:
    """One-line spill summary shown under the event table."""
    return (
        f"Budget: {format_bytes(spill.budget)} | Schedule: {spill.schedule_size} ops | "
        f"Total Spills: {spill.total_spills} | "
        f"Final L1: {format_bytes(spill.final_occupied)} ({spill.final_live_tensors} tensors)"
    )
