# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""
LLM-friendly text report generator for decision traces.

Generates compact, markdown-formatted reports designed for LLM consumption,
following the llms.txt standard (https://llmstxt.org/).
"""

from pathlib import Path
from typing import List, Optional

from .details import fork_rows, spill_footer
from .graph_builder import chosen_layout
from .layout_classifier import CATEGORY_LABELS, CATEGORY_ORDER
from .session import DerivedState
from .spill_timeline import SpillAction
from .summary import summarize_trace
from .utils import format_bytes, truncate


class LLMTextFormatter:
    """Generate LLM-friendly text reports from a loaded decision trace"""

    def __init__(self, state: DerivedState, trace_name: Optional[str] = None):
        """
        Args:
            state: Derived state of the loaded trace
            trace_name: Name used in the title. Defaults to the traced function name.
        """
        self.state = state
        self.trace = state.trace
        self.summary = summarize_trace(self.trace)
        self.trace_name = trace_name or self.summary.function_name

    def generate_report(self, output_file: Path = None) -> str:
        """
        Generate LLM-friendly text report.

        Args:
            output_file: Optional output file path. If provided, writes report to file.

        Returns:
            The generated report as a string
        """
        if self.trace.forward_pass:
            sections = [
                self._format_header(),
                self._format_configuration(),
                self._format_layout_distribution(),
                self._format_dram_fallbacks(n=20),
                self._format_reshards(n=20),
                self._format_forks(),
                self._format_failed_evaluations(n=10),
            ]
        else:
            sections = [f"# Decision Trace: {self.trace_name}\n\n> No operations recorded.\n"]

        sections += [
            self._format_spill_summary(),
            self._format_spill_events(n=30),
            self._format_diagnostics(),
        ]

        report = "\n".join(s for s in sections if s)

        if output_file:
            Path(output_file).write_text(report)

        return report

    def _format_header(self) -> str:
        """Format H1 title and blockquote summary"""
        s = self.summary
        parts = [
            f"Ops: {len(self.trace.forward_pass):,}",
            f"Sharded: {s.sharded_pct}% ({s.sharded_ops}/{s.regular_ops})",
            f"DRAM Fallback: {s.dram_fallback_ops}",
        ]
        if s.inplace_ops:
            parts.append(f"In-place: {s.inplace_ops}")
        if s.total_spills is not None:
            parts.append(f"Spills: {s.total_spills}")
        return f"# Decision Trace: {self.trace_name}\n\n> {' | '.join(parts)}\n"

    def _format_configuration(self) -> str:
        s = self.summary
        lines = ["## Configuration"]
        lines.append(f"- Function: {s.function_name}")
        lines.append(f"- Beam width: {s.beam_width}")
        lines.append(f"- Operations: {s.total_ops:,} declared, {len(self.trace.forward_pass):,} traced")
        lines.append(f"- Edges: {len(self.trace.edges):,} ({len(self.state.graph.reshard_nodes)} with reshard)")
        lines.append(f"- Trace format version: {s.version}")
        return "\n".join(lines) + "\n"

    def _format_layout_distribution(self) -> str:
        counts = self.summary.layout_counts
        total = sum(counts.values())
        lines = ["## Layout Distribution"]
        lines.append("| Layout | Ops | Share |")
        lines.append("|--------|-----|-------|")
        for category in CATEGORY_ORDER:
            count = counts.get(category, 0)
            if not count:
                continue
            pct = count / total * 100 if total else 0
            lines.append(f"| {CATEGORY_LABELS[category]} | {count:,} | {pct:.1f}% |")
        return "\n".join(lines) + "\n"

    def _format_dram_fallbacks(self, n: int = 20) -> str:
        fallbacks = [op for op in self.trace.forward_pass if op.used_dram_fallback]
        if not fallbacks:
            return ""

        lines = [f"## DRAM Fallbacks ({len(fallbacks)})"]
        lines.append("| Op# | Operation | Location | Failed Evals | Chosen Layout |")
        lines.append("|-----|-----------|----------|--------------|---------------|")
        for op in fallbacks[:n]:
            failed = sum(1 for ev in op.evaluations if not ev.valid)
            layout = chosen_layout(op, self.trace.final_choices)
            lines.append(
                f"| {op.op_index} | {op.op_name} | {truncate(op.op_location)} | "
                f"{failed}/{len(op.evaluations)} | {layout} |"
            )
        if len(fallbacks) > n:
            lines.append(f"\n*... and {len(fallbacks) - n} more*")
        return "\n".join(lines) + "\n"

    def _format_reshards(self, n: int = 20) -> str:
        reshards = self.state.graph.reshard_nodes
        if not reshards:
            return ""

        lines = [f"## Reshard Edges ({len(reshards)})"]
        lines.append("| Edge | Producer | Consumer | Reshard Layout |")
        lines.append("|------|----------|----------|----------------|")
        for r in reshards[:n]:
            producer = self.trace.op_by_index(r.producer_op_index)
            consumer = self.trace.op_by_index(r.consumer_op_index)
            lines.append(
                f"| {r.edge_ordinal} | #{r.producer_op_index} {producer.op_name if producer else '?'} | "
                f"#{r.consumer_op_index} {consumer.op_name if consumer else '?'} | {r.reshard_layout} |"
            )
        if len(reshards) > n:
            lines.append(f"\n*... and {len(reshards) - n} more*")
        return "\n".join(lines) + "\n"

    def _format_forks(self) -> str:
        rows = fork_rows(self.trace)
        fork_nodes = [n for n in self.state.graph.op_nodes if n.is_fork]
        if not rows and not fork_nodes:
            return ""

        lines = [f"## Forks ({len(fork_nodes)} in graph, {len(rows)} resolved)"]
        for row in rows:
            f = row.fork
            consumers = ", ".join(str(c) for c in f.consumer_op_indices)
            lines.append(
                f"- #{f.op_index} {f.op_name} @ {truncate(f.op_location)}: "
                f"candidate #{f.chosen_candidate_index}, {f.num_consumers} consumers"
                + (f" [{consumers}]" if consumers else "")
            )
        return "\n".join(lines) + "\n"

    def _format_failed_evaluations(self, n: int = 10) -> str:
        reasons = {}
        for op in self.trace.forward_pass:
            for ev in op.evaluations:
                if not ev.valid:
                    key = ev.failure_reason or "validation failed"
                    reasons[key] = reasons.get(key, 0) + 1
        if not reasons:
            return ""

        lines = ["## Top Failure Reasons"]
        for reason, count in sorted(reasons.items(), key=lambda x: x[1], reverse=True)[:n]:
            lines.append(f"- {truncate(reason, 100)}: {count:,}")
        return "\n".join(lines) + "\n"

    def _format_spill_summary(self) -> str:
        spill = self.trace.spill_management
        if spill is None:
            return ""

        timeline = self.state.timeline
        lines = ["## L1 Spill Management"]
        lines.append(f"- {spill_footer(spill)}")
        if timeline.series:
            peak_pos, peak_val = max(timeline.series, key=lambda p: p[1])
            over = " (over budget)" if peak_val > timeline.budget else ""
            lines.append(f"- Peak L1 pressure: {format_bytes(peak_val)} at position {peak_pos}{over}")
        return "\n".join(lines) + "\n"

    def _format_spill_events(self, n: int = 30) -> str:
        """List the events that free or fail to free memory; additions are omitted."""
        spill = self.trace.spill_management
        if spill is None or not spill.events:
            return ""

        notable = [
            ev for ev in spill.events
            if SpillAction.from_code(ev.action) not in (SpillAction.LIVE_ADDED, SpillAction.DEAD_REMOVAL)
        ]
        if not notable:
            return ""

        lines = [f"## Spill Events ({len(notable)} notable of {len(spill.events)})"]
        lines.append("| Pos | Action | Op | L1 Before | L1 After | Details |")
        lines.append("|-----|--------|----|-----------|----------|---------|")
        for ev in notable[:n]:
            details = ev.details
            if ev.victim_name:
                details = f"{details} victim: {ev.victim_name}".strip()
            lines.append(
                f"| {'?' if ev.position is None else ev.position} | {ev.action} | {truncate(ev.op_name, 40)} | "
                f"{format_bytes(ev.occupied_l1_before)} | {format_bytes(ev.occupied_l1_after)} | "
                f"{truncate(details, 60) if details else ''} |"
            )
        if len(notable) > n:
            lines.append(f"\n*... and {len(notable) - n} more*")
        return "\n".join(lines) + "\n"

    def _format_diagnostics(self) -> str:
        diagnostics = self.state.diagnostics
        if not diagnostics:
            return ""
        lines: List[str] = [f"## Trace Anomalies ({len(diagnostics)})"]
        for diag in diagnostics[:20]:
            lines.append(f"- {diag.kind}: {diag.message}")
        if len(diagnostics) > 20:
            lines.append(f"- *... and {len(diagnostics) - 20} more*")
        return "\n".join(lines) + "\n"
