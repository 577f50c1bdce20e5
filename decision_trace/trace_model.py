# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""
Trace model for compiler decision traces.

A decision trace records, for every operation of a compiled function, the
candidate output layouts that survived beam search, the evaluations that
produced them, the dataflow edges between operations and the L1 spill log of
the allocator. This module turns the parsed JSON document into immutable
records and validates its structural well-formedness.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

Number = Union[int, float]


class MalformedTraceError(ValueError):
    """Raised when a trace document is structurally unusable."""


@dataclass(frozen=True)
class TraceDiagnostic:
    """Non-fatal anomaly found while deriving views over a trace."""
    kind: str
    message: str
    op_index: Optional[int] = None
    edge_ordinal: Optional[int] = None
    event_index: Optional[int] = None


@dataclass(frozen=True)
class CandidateScore:
    is_l1: bool = False
    is_sharded: bool = False
    input_dram_bytes: Number = 0
    requires_reshard: bool = False
    core_count: int = 0
    output_l1_usage: Number = 0


@dataclass(frozen=True)
class BeamCandidate:
    rank: int
    output_layout: str
    score: Optional[CandidateScore] = None


@dataclass(frozen=True)
class Evaluation:
    """One (hint, inputs) combination tried for an operation."""
    hint: str
    inputs: Tuple[str, ...]
    valid: bool
    output: Optional[str] = None
    failure_reason: Optional[str] = None
    score: Optional[CandidateScore] = None


@dataclass(frozen=True)
class InputCandidateSet:
    operand_index: Optional[int]
    from_producer_beam: Any = None
    from_reshard: Any = None
    candidates: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OutputHints:
    primary_count: int = 0
    fallback_count: int = 0
    attempt_l1_sharding: bool = False


@dataclass(frozen=True)
class Operation:
    op_index: int
    op_name: str
    op_location: str = ""
    is_inplace: bool = False
    used_dram_fallback: bool = False
    beam: Tuple[BeamCandidate, ...] = ()
    evaluations: Tuple[Evaluation, ...] = ()
    input_candidate_sets: Tuple[InputCandidateSet, ...] = ()
    output_hints: Optional[OutputHints] = None
    cross_product_size: Optional[int] = None

    @property
    def has_reshard_candidate(self) -> bool:
        return any(b.score is not None and b.score.requires_reshard for b in self.beam)

    @property
    def has_failed_evaluation(self) -> bool:
        return any(not ev.valid for ev in self.evaluations)


@dataclass(frozen=True)
class Edge:
    producer_op_index: Optional[int]
    consumer_op_index: Optional[int]
    operand_index: Optional[int] = None
    has_reshard: bool = False
    reshard_layout: str = ""


@dataclass(frozen=True)
class ForkResolution:
    op_index: Optional[int]
    op_name: str = ""
    op_location: str = ""
    chosen_candidate_index: Optional[int] = None
    num_consumers: int = 0
    consumer_op_indices: Tuple[int, ...] = ()


@dataclass(frozen=True)
class SpillEvent:
    # None when the log entry has no integer position
    position: Optional[int]
    action: str
    op_name: str = ""
    occupied_l1_before: Optional[Number] = None
    occupied_l1_after: Optional[Number] = None
    op_l1_usage: Optional[Number] = None
    details: str = ""
    victim_name: Optional[str] = None


@dataclass(frozen=True)
class SpillManagement:
    budget: Number = 0
    schedule_size: int = 0
    total_spills: int = 0
    final_occupied: Optional[Number] = None
    final_live_tensors: Optional[int] = None
    events: Tuple[SpillEvent, ...] = ()


@dataclass(frozen=True)
class Trace:
    """One loaded decision trace. Never mutated after load."""
    function_name: str
    beam_width: int
    total_ops: int
    version: Any
    forward_pass: Tuple[Operation, ...]
    edges: Tuple[Edge, ...]
    final_choices: Dict[int, str] = field(default_factory=dict)
    fork_resolutions: Tuple[ForkResolution, ...] = ()
    spill_management: Optional[SpillManagement] = None

    def op_by_index(self, op_index: int) -> Optional[Operation]:
        """Find an operation by its opIndex (not its forward-pass position)."""
        position = self.position_of(op_index)
        return self.forward_pass[position] if position >= 0 else None

    def position_of(self, op_index: Optional[int]) -> int:
        """Forward-pass position of an opIndex, -1 if absent."""
        for position, op in enumerate(self.forward_pass):
            if op.op_index == op_index:
                return position
        return -1

    @property
    def op_indices(self) -> Tuple[int, ...]:
        return tuple(op.op_index for op in self.forward_pass)


# === Parsing helpers ===


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_number(value: Any) -> Optional[Number]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _as_str(value: Any) -> str:
    return "" if value is None else str(value)


def _as_list(value: Any) -> List:
    return value if isinstance(value, list) else []


SCORE_KEYS = (
    "isL1",
    "isSharded",
    "inputDramBytes",
    "requiresReshard",
    "coreCount",
    "outputL1Usage",
)


def parse_score(raw: Any) -> Optional[CandidateScore]:
    """Parse a score object, None if absent."""
    if not isinstance(raw, dict):
        return None
    return CandidateScore(
        is_l1=bool(raw.get("isL1", False)),
        is_sharded=bool(raw.get("isSharded", False)),
        input_dram_bytes=_as_number(raw.get("inputDramBytes")) or 0,
        requires_reshard=bool(raw.get("requiresReshard", False)),
        core_count=_as_int(raw.get("coreCount")) or 0,
        output_l1_usage=_as_number(raw.get("outputL1Usage")) or 0,
    )


def parse_evaluation(raw: Dict) -> Evaluation:
    """
    Parse one evaluation.

    Older traces put the score fields directly on the evaluation instead of
    in a nested 'score' object; both are accepted.
    """
    valid = bool(raw.get("valid", False))
    if not valid:
        return Evaluation(
            hint=_as_str(raw.get("hint")),
            inputs=tuple(_as_str(i) for i in _as_list(raw.get("inputs"))),
            valid=False,
            failure_reason=_as_str(raw.get("failureReason")) or None,
        )

    score = parse_score(raw.get("score"))
    if score is None and any(key in raw for key in SCORE_KEYS):
        score = parse_score(raw)
    return Evaluation(
        hint=_as_str(raw.get("hint")),
        inputs=tuple(_as_str(i) for i in _as_list(raw.get("inputs"))),
        valid=True,
        output=_as_str(raw.get("output")) or None,
        score=score,
    )


def parse_beam(raw_beam: List, op_index: int) -> Tuple[BeamCandidate, ...]:
    """Parse beam candidates, sorted by ascending rank."""
    candidates = []
    seen_ranks = set()
    for position, raw in enumerate(raw_beam):
        if not isinstance(raw, dict):
            continue
        rank = _as_int(raw.get("rank"))
        if rank is None:
            rank = position
        if rank in seen_ranks:
            raise MalformedTraceError(
                f"Duplicate beam rank {rank} in operation {op_index}"
            )
        seen_ranks.add(rank)
        candidates.append(
            BeamCandidate(
                rank=rank,
                output_layout=_as_str(raw.get("outputLayout")),
                score=parse_score(raw.get("score")),
            )
        )
    candidates.sort(key=lambda c: c.rank)
    return tuple(candidates)


def parse_operation(raw: Any, position: int) -> Operation:
    """Parse one forwardPass entry."""
    if not isinstance(raw, dict):
        raise MalformedTraceError(f"forwardPass[{position}] is not an object")
    op_index = _as_int(raw.get("opIndex"))
    if op_index is None:
        raise MalformedTraceError(f"forwardPass[{position}] has no integer opIndex")

    hints = raw.get("outputHints")
    output_hints = None
    if isinstance(hints, dict):
        output_hints = OutputHints(
            primary_count=_as_int(hints.get("primaryCount")) or 0,
            fallback_count=_as_int(hints.get("fallbackCount")) or 0,
            attempt_l1_sharding=bool(hints.get("attemptL1Sharding", False)),
        )

    input_sets = tuple(
        InputCandidateSet(
            operand_index=_as_int(ics.get("operandIndex")),
            from_producer_beam=ics.get("fromProducerBeam"),
            from_reshard=ics.get("fromReshard"),
            candidates=tuple(_as_str(c) for c in _as_list(ics.get("candidates"))),
        )
        for ics in _as_list(raw.get("inputCandidateSets"))
        if isinstance(ics, dict)
    )

    return Operation(
        op_index=op_index,
        op_name=_as_str(raw.get("opName")),
        op_location=_as_str(raw.get("opLocation")),
        is_inplace=bool(raw.get("isInplace", False)),
        used_dram_fallback=bool(raw.get("usedDramFallback", False)),
        beam=parse_beam(_as_list(raw.get("beam")), op_index),
        evaluations=tuple(
            parse_evaluation(ev)
            for ev in _as_list(raw.get("evaluations"))
            if isinstance(ev, dict)
        ),
        input_candidate_sets=input_sets,
        output_hints=output_hints,
        cross_product_size=_as_int(raw.get("crossProductSize")),
    )


def parse_edge(raw: Any) -> Edge:
    """Parse one edge. A non-object entry keeps its slot as an edge with no endpoints."""
    if not isinstance(raw, dict):
        return Edge(producer_op_index=None, consumer_op_index=None)
    return Edge(
        producer_op_index=_as_int(raw.get("producerOpIndex")),
        consumer_op_index=_as_int(raw.get("consumerOpIndex")),
        operand_index=_as_int(raw.get("operandIndex")),
        has_reshard=bool(raw.get("hasReshard", False)),
        reshard_layout=_as_str(raw.get("reshardLayout")),
    )


def parse_spill_management(raw: Any) -> Optional[SpillManagement]:
    """Parse the spill management section, None if the trace has none."""
    if not isinstance(raw, dict):
        return None

    events = []
    for ev in _as_list(raw.get("events")):
        if not isinstance(ev, dict):
            # Keep the slot so event indices match the log
            events.append(SpillEvent(position=None, action=""))
            continue
        victim = ev.get("victimName")
        events.append(
            SpillEvent(
                position=_as_int(ev.get("position")),
                action=_as_str(ev.get("action")),
                op_name=_as_str(ev.get("opName")),
                occupied_l1_before=_as_number(ev.get("occupiedL1Before")),
                occupied_l1_after=_as_number(ev.get("occupiedL1After")),
                op_l1_usage=_as_number(ev.get("opL1Usage")),
                details=_as_str(ev.get("details")),
                victim_name=_as_str(victim) if victim else None,
            )
        )

    return SpillManagement(
        budget=_as_number(raw.get("budget")) or 0,
        schedule_size=_as_int(raw.get("scheduleSize")) or 0,
        total_spills=_as_int(raw.get("totalSpills")) or 0,
        final_occupied=_as_number(raw.get("finalOccupied")),
        final_live_tensors=_as_int(raw.get("finalLiveTensors")),
        events=tuple(events),
    )


def load_trace(document: Any) -> Trace:
    """
    Build a Trace from a parsed trace document.

    Args:
        document: Parsed JSON value of a decision trace file

    Returns:
        Immutable Trace

    Raises:
        MalformedTraceError: if the required 'forwardPass' / 'edges' arrays are
            missing or not lists, or if opIndex values are missing or repeated.
    """
    if not isinstance(document, dict):
        raise MalformedTraceError("Trace document must be a JSON object")

    for key in ("forwardPass", "edges"):
        if key not in document:
            raise MalformedTraceError(f"Trace document has no '{key}' array")
        if not isinstance(document[key], list):
            raise MalformedTraceError(f"Trace field '{key}' must be an array")

    operations = []
    seen: Dict[int, int] = {}
    for position, raw in enumerate(document["forwardPass"]):
        op = parse_operation(raw, position)
        if op.op_index in seen:
            raise MalformedTraceError(
                f"Duplicate opIndex {op.op_index} at forwardPass[{position}] "
                f"(first seen at forwardPass[{seen[op.op_index]}])"
            )
        seen[op.op_index] = position
        operations.append(op)

    edges = tuple(parse_edge(e) for e in document["edges"])

    final_choices: Dict[int, str] = {}
    for choice in _as_list(document.get("finalChoices")):
        if not isinstance(choice, dict):
            continue
        op_index = _as_int(choice.get("opIndex"))
        layout = choice.get("chosenLayout")
        if op_index is not None and layout:
            final_choices[op_index] = str(layout)

    backward = document.get("backwardPass")
    raw_forks = _as_list(backward.get("forkResolutions")) if isinstance(backward, dict) else []
    forks = tuple(
        ForkResolution(
            op_index=_as_int(f.get("opIndex")),
            op_name=_as_str(f.get("opName")),
            op_location=_as_str(f.get("opLocation")),
            chosen_candidate_index=_as_int(f.get("chosenCandidateIndex")),
            num_consumers=_as_int(f.get("numConsumers")) or 0,
            consumer_op_indices=tuple(
                i for i in (_as_int(c) for c in _as_list(f.get("consumerOpIndices")))
                if i is not None
            ),
        )
        for f in raw_forks
        if isinstance(f, dict)
    )

    return Trace(
        function_name=_as_str(document.get("functionName")),
        beam_width=_as_int(document.get("beamWidth")) or 0,
        total_ops=_as_int(document.get("totalOps")) or 0,
        version=document.get("version", 1),
        forward_pass=tuple(operations),
        edges=edges,
        final_choices=final_choices,
        fork_resolutions=forks,
        spill_management=parse_spill_management(document.get("spillManagement")),
    )


def load_trace_file(path: Union[str, Path]) -> Trace:
    """Read and parse a trace JSON file."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedTraceError(f"Trace file {path} is not valid JSON: {e}") from e
    return load_trace(document)
