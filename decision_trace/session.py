# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""
Viewing session: one loaded trace plus everything derived from it.

Loading builds a complete DerivedState before publishing it, so a failed load
leaves the previous trace in place and no caller ever sees a mix of old and
new structures. Selection state is a separate immutable ViewState value that
callers pass around explicitly.
"""

import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, FrozenSet, Optional, Tuple, Union

from .edge_index import EdgeIndex, build_edge_index
from .filters import DETAIL, FilterPredicates, Visibility, compute_visibility
from .graph_builder import TraceGraph, build_graph
from .spill_timeline import PlotArea, SpillTimeline, build_spill_timeline
from .trace_model import Trace, TraceDiagnostic, load_trace, load_trace_file

NO_SELECTION = -1


@dataclass(frozen=True)
class ViewState:
    """
    What the user is looking at. Op selections are forward-pass positions
    (array indices), matching how the detail view addresses its cards.
    """
    selected_op: int = NO_SELECTION
    expanded: FrozenSet[int] = field(default_factory=frozenset)
    selected_spill_event: int = NO_SELECTION
    predicates: FilterPredicates = field(default_factory=FilterPredicates)


def select_op(state: ViewState, array_index: int) -> ViewState:
    """Select an op and expand its card."""
    if array_index < 0:
        return clear_selection(state)
    return replace(state, selected_op=array_index, expanded=state.expanded | {array_index})


def toggle_expand(state: ViewState, array_index: int) -> ViewState:
    """Expanding a card selects it; collapsing the selected card clears the selection."""
    if array_index in state.expanded:
        selected = NO_SELECTION if state.selected_op == array_index else state.selected_op
        return replace(state, selected_op=selected, expanded=state.expanded - {array_index})
    return replace(state, selected_op=array_index, expanded=state.expanded | {array_index})


def clear_selection(state: ViewState) -> ViewState:
    return replace(state, selected_op=NO_SELECTION)


def select_spill_event(state: ViewState, event_index: Optional[int]) -> ViewState:
    return replace(
        state, selected_spill_event=NO_SELECTION if event_index is None else event_index
    )


def with_predicates(state: ViewState, predicates: FilterPredicates) -> ViewState:
    return replace(state, predicates=predicates)


@dataclass(frozen=True)
class DerivedState:
    """Everything computed from one trace. Replaced wholesale on every load."""
    trace: Trace
    edge_index: EdgeIndex
    graph: TraceGraph
    timeline: SpillTimeline
    diagnostics: Tuple[TraceDiagnostic, ...] = ()


def derive(trace: Trace, plot_area: Optional[PlotArea] = None) -> DerivedState:
    """Build the edge index, graph and spill timeline for a trace."""
    edge_index = build_edge_index(trace.edges)
    graph = build_graph(trace, edge_index)
    timeline = build_spill_timeline(trace.spill_management, plot_area)
    return DerivedState(
        trace=trace,
        edge_index=edge_index,
        graph=graph,
        timeline=timeline,
        diagnostics=graph.diagnostics + timeline.diagnostics,
    )


class TraceSession:
    """Holds the current trace and its derived state."""

    def __init__(self, plot_area: Optional[PlotArea] = None, report_diagnostics: bool = True):
        self.plot_area = plot_area
        self.report_diagnostics = report_diagnostics
        self.name: Optional[str] = None
        self._state: Optional[DerivedState] = None

    @property
    def state(self) -> DerivedState:
        if self._state is None:
            raise RuntimeError("No trace loaded")
        return self._state

    @property
    def loaded(self) -> bool:
        return self._state is not None

    @property
    def trace(self) -> Trace:
        return self.state.trace

    @property
    def edge_index(self) -> EdgeIndex:
        return self.state.edge_index

    @property
    def graph(self) -> TraceGraph:
        return self.state.graph

    @property
    def timeline(self) -> SpillTimeline:
        return self.state.timeline

    @property
    def diagnostics(self) -> Tuple[TraceDiagnostic, ...]:
        return self.state.diagnostics

    def load(self, document: Any, name: Optional[str] = None) -> DerivedState:
        """
        Load a parsed trace document and rebuild all derived state.

        Raises MalformedTraceError without touching the current state.
        """
        new_state = derive(load_trace(document), self.plot_area)
        self._publish(new_state, name)
        return new_state

    def load_file(self, path: Union[str, Path]) -> DerivedState:
        path = Path(path)
        new_state = derive(load_trace_file(path), self.plot_area)
        self._publish(new_state, path.name)
        return new_state

    def _publish(self, new_state: DerivedState, name: Optional[str]) -> None:
        self._state = new_state
        self.name = name
        if self.report_diagnostics:
            for diag in new_state.diagnostics:
                print(f"Warning: {diag.message}", file=sys.stderr)

    def fresh_view(self) -> ViewState:
        """View state for a newly loaded trace: nothing selected or expanded."""
        return ViewState()

    def visible(self, view: ViewState, context: str = DETAIL) -> Visibility:
        return compute_visibility(self.trace, view.predicates, context, self.graph)

    def focus_op(self, view: ViewState, op_index: int) -> ViewState:
        """Select an op by its opIndex (e.g. from a producer/consumer link)."""
        return select_op(view, self.trace.position_of(op_index))

    def click_timeline(self, view: ViewState, query_x: float, tolerance: float = 20) -> ViewState:
        return select_spill_event(view, self.timeline.nearest_event(query_x, tolerance))
