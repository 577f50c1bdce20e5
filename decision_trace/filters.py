# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""
Visibility filtering for the graph and detail views.

Predicates compose conjunctively: an operation stays visible only if it
passes every active predicate. Edges stay visible only if both endpoints do.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

from .graph_builder import NodeId, TraceGraph, op_node_id
from .trace_model import Operation, Trace

GRAPH = "graph"
DETAIL = "detail"


@dataclass(frozen=True)
class FilterPredicates:
    search_text: str = ""
    dram_only: bool = False
    reshard_only: bool = False
    failed_only: bool = False

    @property
    def is_active(self) -> bool:
        return bool(self.search_text) or self.dram_only or self.reshard_only or self.failed_only


@dataclass(frozen=True)
class Visibility:
    """Visible op indices (forward-pass order) and edge ids (edge order)."""
    visible_ops: List[int]
    visible_edges: List
    visible_nodes: Optional[List[NodeId]] = None

    @property
    def op_set(self) -> Set[int]:
        return set(self.visible_ops)

    @property
    def edge_set(self) -> Set:
        return set(self.visible_edges)


def matches(
    op: Operation,
    predicates: FilterPredicates,
    context: str = DETAIL,
    chosen_layout: str = "",
    label: str = "",
) -> bool:
    """
    Check a single operation against every active predicate.

    The detail context searches name and location. The graph context searches
    name, chosen layout and the node label (e.g. "#3 softmax").
    """
    search = predicates.search_text.lower()
    if search:
        haystacks = [op.op_name]
        if context == DETAIL:
            haystacks.append(op.op_location)
        else:
            haystacks.extend((chosen_layout, label))
        if not any(search in (h or "").lower() for h in haystacks):
            return False
    if predicates.dram_only and not op.used_dram_fallback:
        return False
    if predicates.reshard_only and not op.has_reshard_candidate:
        return False
    # Evaluations are only listed in the detail view
    if predicates.failed_only and context == DETAIL and not op.has_failed_evaluation:
        return False
    return True


def filter_operations(
    operations: Sequence[Operation],
    predicates: FilterPredicates,
    context: str = DETAIL,
    chosen_layouts: Optional[Dict[int, str]] = None,
    labels: Optional[Dict[int, str]] = None,
) -> List[int]:
    """Return opIndex values of the operations that pass, in input order."""
    chosen_layouts = chosen_layouts or {}
    labels = labels or {}
    return [
        op.op_index
        for op in operations
        if matches(
            op,
            predicates,
            context,
            chosen_layouts.get(op.op_index, ""),
            labels.get(op.op_index, ""),
        )
    ]


def compute_visibility(
    trace: Trace,
    predicates: FilterPredicates,
    context: str = DETAIL,
    graph: Optional[TraceGraph] = None,
) -> Visibility:
    """
    Compute visible operations and edges.

    In the detail context edge ids are ordinals into trace.edges. In the graph
    context (graph required) they are the graph's SegmentIds, and reshard nodes
    are visible only when both ops of their source edge are.
    """
    if context == GRAPH:
        if graph is None:
            raise ValueError("Graph context filtering requires the built graph")
        return _graph_visibility(trace, graph, predicates)

    visible_ops = filter_operations(trace.forward_pass, predicates, DETAIL)
    op_set = set(visible_ops)
    visible_edges = [
        ordinal
        for ordinal, edge in enumerate(trace.edges)
        if edge.producer_op_index in op_set and edge.consumer_op_index in op_set
    ]
    return Visibility(visible_ops=visible_ops, visible_edges=visible_edges)


def _graph_visibility(
    trace: Trace, graph: TraceGraph, predicates: FilterPredicates
) -> Visibility:
    layouts = {n.op_index: n.full_layout for n in graph.op_nodes}
    labels = {n.op_index: n.label for n in graph.op_nodes}
    visible_ops = filter_operations(trace.forward_pass, predicates, GRAPH, layouts, labels)
    op_set = set(visible_ops)

    visible_nodes = [op_node_id(i) for i in visible_ops]
    for r in graph.reshard_nodes:
        if r.producer_op_index in op_set and r.consumer_op_index in op_set:
            visible_nodes.append(r.id)

    node_set = set(visible_nodes)
    visible_edges = [
        s.id for s in graph.segments if s.source in node_set and s.target in node_set
    ]
    return Visibility(
        visible_ops=visible_ops, visible_edges=visible_edges, visible_nodes=visible_nodes
    )
