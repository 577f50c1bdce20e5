# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""
Synthesize the renderable dataflow graph of a decision trace.

Every operation becomes one node. Edges that need a layout conversion are
split around a synthetic reshard node, so the graph shows where the compiler
inserted resharding between a producer and its consumer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .edge_index import EdgeIndex
from .layout_classifier import LayoutClass, classify_op_layout
from .trace_model import Operation, Trace, TraceDiagnostic
from .utils import short_op_name, shorten_layout

INPLACE_LAYOUT = "in-place (no output)"
UNDETERMINED_LAYOUT = "?"

# Segment parts: a plain edge renders as one 'direct' segment, a reshard edge
# as 'in' (producer -> reshard) followed by 'out' (reshard -> consumer).
DIRECT = "direct"
INTO_RESHARD = "in"
OUT_OF_RESHARD = "out"
_PART_SUFFIX = {DIRECT: "", INTO_RESHARD: "a", OUT_OF_RESHARD: "b"}

DATAFLOW_STYLE = "dataflow"
RESHARD_STYLE = "reshard"


@dataclass(frozen=True)
class NodeId:
    """Node identity: ('op', opIndex) or ('reshard', edge ordinal)."""
    kind: str
    index: int

    def __str__(self) -> str:
        return f"{self.kind}-{self.index}"


@dataclass(frozen=True)
class SegmentId:
    ordinal: int
    part: str = DIRECT

    def __str__(self) -> str:
        return f"e-{self.ordinal}{_PART_SUFFIX[self.part]}"


def op_node_id(op_index: int) -> NodeId:
    return NodeId("op", op_index)


def reshard_node_id(ordinal: int) -> NodeId:
    return NodeId("reshard", ordinal)


@dataclass(frozen=True)
class OpNode:
    id: NodeId
    op_index: int
    array_index: int
    label: str
    sublabel: str
    full_layout: str
    layout: LayoutClass
    is_fork: bool
    used_dram_fallback: bool
    has_reshard_candidate: bool
    is_reshard: bool = False


@dataclass(frozen=True)
class ReshardNode:
    id: NodeId
    edge_ordinal: int
    producer_op_index: int
    consumer_op_index: int
    reshard_layout: str
    label: str = "R"
    is_reshard: bool = True

    @property
    def sublabel(self) -> str:
        return shorten_layout(self.reshard_layout)


@dataclass(frozen=True)
class GraphSegment:
    id: SegmentId
    source: NodeId
    target: NodeId
    style: str
    operand_index: Optional[int] = None
    reshard_layout: Optional[str] = None


@dataclass(frozen=True)
class TraceGraph:
    op_nodes: Tuple[OpNode, ...]
    reshard_nodes: Tuple[ReshardNode, ...]
    segments: Tuple[GraphSegment, ...]
    diagnostics: Tuple[TraceDiagnostic, ...] = field(default_factory=tuple)

    @property
    def nodes(self) -> Tuple[Any, ...]:
        """Op nodes in forward-pass order, then reshard nodes."""
        return self.op_nodes + self.reshard_nodes

    @property
    def edges(self) -> Tuple[GraphSegment, ...]:
        return self.segments

    def node(self, node_id: NodeId) -> Optional[Any]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def to_elements(self) -> List[Dict[str, Any]]:
        """Cytoscape-style element list (the drawing library's input format)."""
        elements = []
        for n in self.op_nodes:
            elements.append({
                "group": "nodes",
                "data": {
                    "id": str(n.id),
                    "opIndex": n.op_index,
                    "arrayIndex": n.array_index,
                    "label": n.label,
                    "sublabel": n.sublabel,
                    "fullLayout": n.full_layout,
                    "layoutClass": n.layout.category,
                    "color": n.layout.color,
                    "isFork": n.is_fork,
                    "usedDramFallback": n.used_dram_fallback,
                    "hasReshard": n.has_reshard_candidate,
                },
                "classes": " ".join(c for c in (n.layout.category, "fork" if n.is_fork else "") if c),
            })
        for r in self.reshard_nodes:
            elements.append({
                "group": "nodes",
                "data": {
                    "id": str(r.id),
                    "label": r.label,
                    "sublabel": r.sublabel,
                    "isReshard": True,
                    "reshardLayout": r.reshard_layout,
                    "producerOpIndex": r.producer_op_index,
                    "consumerOpIndex": r.consumer_op_index,
                },
                "classes": "reshard-node",
            })
        for s in self.segments:
            data = {"id": str(s.id), "source": str(s.source), "target": str(s.target)}
            if s.operand_index is not None:
                data["operandIndex"] = s.operand_index
            if s.reshard_layout is not None:
                data["reshardLayout"] = s.reshard_layout
            elements.append({"group": "edges", "data": data, "classes": s.style})
        return elements


def chosen_layout(op: Operation, final_choices: Dict[int, str]) -> str:
    """Layout shown for an op: final choice, else top beam candidate, else '?'."""
    if op.is_inplace:
        return INPLACE_LAYOUT
    if op.op_index in final_choices:
        return final_choices[op.op_index]
    if op.beam:
        return op.beam[0].output_layout
    return UNDETERMINED_LAYOUT


def build_graph(trace: Trace, edge_index: EdgeIndex) -> TraceGraph:
    """
    Build op nodes, reshard nodes and edge segments for a trace.

    Edges referencing an opIndex missing from the forward pass are skipped and
    reported as diagnostics. Their ordinal is still consumed, so the ids of
    the remaining edges only depend on their position in trace.edges.
    """
    known = set(trace.op_indices)
    diagnostics: List[TraceDiagnostic] = []

    op_nodes = []
    for array_index, op in enumerate(trace.forward_pass):
        layout = chosen_layout(op, trace.final_choices)
        op_nodes.append(
            OpNode(
                id=op_node_id(op.op_index),
                op_index=op.op_index,
                array_index=array_index,
                label=f"#{op.op_index} {short_op_name(op.op_name)}",
                sublabel=shorten_layout(layout),
                full_layout=layout,
                layout=classify_op_layout(op),
                # Raw edge count: two operands fed to one consumer still make a fork
                is_fork=edge_index.out_degree(op.op_index) > 1,
                used_dram_fallback=op.used_dram_fallback,
                has_reshard_candidate=op.has_reshard_candidate,
            )
        )

    reshard_nodes = []
    segments = []
    for ordinal, edge in enumerate(trace.edges):
        missing = [
            idx for idx in (edge.producer_op_index, edge.consumer_op_index)
            if idx not in known
        ]
        if missing:
            if edge.producer_op_index is None and edge.consumer_op_index is None:
                message = f"Edge {ordinal} has no producer or consumer opIndex; skipped"
            else:
                message = (
                    f"Edge {ordinal} ({edge.producer_op_index} -> {edge.consumer_op_index}) "
                    f"references unknown op {', '.join(str(m) for m in missing)}; skipped"
                )
            diagnostics.append(
                TraceDiagnostic(kind="DanglingEdgeReference", message=message, edge_ordinal=ordinal)
            )
            continue

        source = op_node_id(edge.producer_op_index)
        target = op_node_id(edge.consumer_op_index)
        if edge.has_reshard:
            reshard_id = reshard_node_id(ordinal)
            reshard_nodes.append(
                ReshardNode(
                    id=reshard_id,
                    edge_ordinal=ordinal,
                    producer_op_index=edge.producer_op_index,
                    consumer_op_index=edge.consumer_op_index,
                    reshard_layout=edge.reshard_layout,
                )
            )
            segments.append(
                GraphSegment(SegmentId(ordinal, INTO_RESHARD), source, reshard_id, DATAFLOW_STYLE)
            )
            segments.append(
                GraphSegment(
                    SegmentId(ordinal, OUT_OF_RESHARD),
                    reshard_id,
                    target,
                    RESHARD_STYLE,
                    reshard_layout=edge.reshard_layout,
                )
            )
        else:
            segments.append(
                GraphSegment(
                    SegmentId(ordinal, DIRECT),
                    source,
                    target,
                    DATAFLOW_STYLE,
                    operand_index=edge.operand_index,
                )
            )

    return TraceGraph(
        op_nodes=tuple(op_nodes),
        reshard_nodes=tuple(reshard_nodes),
        segments=tuple(segments),
        diagnostics=tuple(diagnostics),
    )
