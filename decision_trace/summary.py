# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""Headline numbers for a decision trace."""

from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .layout_classifier import classify_op_layout
from .trace_model import Trace


@dataclass(frozen=True)
class TraceSummary:
    function_name: str
    beam_width: int
    total_ops: int
    version: Any
    regular_ops: int
    inplace_ops: int
    sharded_ops: int
    sharded_pct: int
    dram_fallback_ops: int
    total_spills: Optional[int]
    layout_counts: Dict[str, int]


def summarize_trace(trace: Trace) -> TraceSummary:
    """
    Count layout outcomes. Percentages are over ops that make a layout
    decision, i.e. in-place ops are left out.
    """
    regular = [op for op in trace.forward_pass if not op.is_inplace]
    inplace_count = len(trace.forward_pass) - len(regular)
    sharded = sum(
        1
        for op in regular
        if op.beam and op.beam[0].score and op.beam[0].score.is_sharded and op.beam[0].score.is_l1
    )
    fallback = sum(1 for op in regular if op.used_dram_fallback)
    sharded_pct = int(100 * sharded / len(regular) + 0.5) if regular else 0

    spill = trace.spill_management
    return TraceSummary(
        function_name=trace.function_name or "N/A",
        beam_width=trace.beam_width,
        total_ops=trace.total_ops,
        version=trace.version or 1,
        regular_ops=len(regular),
        inplace_ops=inplace_count,
        sharded_ops=sharded,
        sharded_pct=sharded_pct,
        dram_fallback_ops=fallback,
        total_spills=spill.total_spills if spill is not None else None,
        layout_counts=dict(Counter(classify_op_layout(op).category for op in trace.forward_pass)),
    )
