# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""
Decision Trace Viewer for the layout optimizer's beam-search decision traces.

This package provides tools to:
- Load and validate decision trace JSON documents
- Classify each operation's chosen memory layout
- Build the dataflow graph with synthetic reshard nodes
- Filter operations for the graph and detail views
- Reconstruct the L1 memory pressure timeline from spill events
- Generate interactive HTML reports and LLM-friendly text reports
"""

from .graph_builder import build_graph
from .layout_classifier import classify_op_layout
from .session import TraceSession
from .text_formatter import LLMTextFormatter
from .trace_model import MalformedTraceError, load_trace, load_trace_file
from .visualizer import DecisionTraceVisualizer

__all__ = [
    "build_graph",
    "classify_op_layout",
    "TraceSession",
    "LLMTextFormatter",
    "MalformedTraceError",
    "load_trace",
    "load_trace_file",
    "DecisionTraceVisualizer",
]
