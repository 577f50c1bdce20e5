# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""
Interactive HTML decision trace report.

Generates a self-contained report with:
- Trace summary cards
- Dataflow DAG (Cytoscape.js + dagre) with reshard diamonds and fork borders
- Search / DRAM / reshard / failed-evaluation filters
- Per-operation detail cards (evaluations, beam survivors, producer/consumer links)
- L1 pressure timeline (Plotly) with budget line and spill event markers
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .details import (
    INVALID,
    OpDetail,
    build_op_detail,
    fork_rows,
    spill_event_rows,
    spill_footer,
)
from .session import DerivedState
from .spill_timeline import SpillAction, SPILL_MARKERS
from .summary import summarize_trace
from .utils import escape_html, format_bytes

PLOTLY_SYMBOLS = {
    "circle": ("circle", 8),
    "circle-large": ("circle", 11),
    "x": ("x-thin-open", 10),
    "triangle": ("triangle-up", 10),
}


class DecisionTraceVisualizer:
    """Generate an interactive HTML report for one loaded decision trace"""

    def __init__(self, state: DerivedState, trace_name: Optional[str] = None):
        """
        Args:
            state: Derived state of the loaded trace
            trace_name: Name used for the title and default file name
        """
        self.state = state
        self.trace = state.trace
        self.trace_name = trace_name or self.trace.function_name or "trace"

    def generate_report(self, output_path: Path) -> Path:
        """
        Write the HTML report.

        Args:
            output_path: Destination file (parent directories are created)

        Returns:
            Path to generated HTML file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.build_html(), encoding="utf-8")
        return output_path

    # === Data preparation ===

    def prepare_graph_data(self) -> Dict:
        """Cytoscape elements plus the per-op fields the client-side filters need."""
        filter_data = {}
        for node in self.state.graph.op_nodes:
            op = self.trace.forward_pass[node.array_index]
            filter_data[str(node.id)] = {
                "name": op.op_name.lower(),
                "location": op.op_location.lower(),
                "layout": node.full_layout.lower(),
                "label": node.label.lower(),
                "dram": op.used_dram_fallback,
                "reshard": op.has_reshard_candidate,
                "failed": op.has_failed_evaluation,
                "arrayIndex": node.array_index,
            }
        return {"elements": self.state.graph.to_elements(), "filterData": filter_data}

    def prepare_timeline_data(self) -> Dict:
        """Plotly traces and layout for the L1 pressure chart"""
        timeline = self.state.timeline
        if not timeline.events:
            return {"traces": [], "layout": {}}

        traces = []
        if timeline.series:
            traces.append({
                "x": [p for p, _ in timeline.series],
                "y": [v for _, v in timeline.series],
                "type": "scatter",
                "mode": "lines",
                "name": "L1 occupied",
                "fill": "tozeroy",
                "fillcolor": "rgba(80, 160, 224, 0.15)",
                "line": {"width": 1.5, "color": "#50a0e0"},
                "hovertemplate": "Position %{x}<br>L1: %{y:,} B<extra></extra>",
            })

        traces.append({
            "x": [0, timeline.max_position],
            "y": [timeline.budget, timeline.budget],
            "type": "scatter",
            "mode": "lines",
            "name": f"Budget ({format_bytes(timeline.budget)})",
            "line": {"dash": "dash", "color": "#e05050", "width": 1.5},
            "hovertemplate": "Budget: %{y:,} B<extra></extra>",
        })

        # One marker trace per action, in enum order
        by_action: Dict[SpillAction, List[int]] = {}
        for idx, ev in enumerate(timeline.events):
            if ev.position is None:
                continue
            by_action.setdefault(SpillAction.from_code(ev.action), []).append(idx)

        for action in SpillAction:
            indices = by_action.get(action)
            marker = SPILL_MARKERS[action]
            if not indices or marker.glyph not in PLOTLY_SYMBOLS:
                continue
            symbol, size = PLOTLY_SYMBOLS[marker.glyph]
            if not marker.filled and not symbol.endswith("-open"):
                symbol += "-open"
            events = [timeline.events[i] for i in indices]
            traces.append({
                "x": [ev.position for ev in events],
                "y": [ev.occupied_l1_after or 0 for ev in events],
                "type": "scatter",
                "mode": "markers",
                "name": action.value,
                "marker": {
                    "symbol": symbol,
                    "size": size,
                    "color": marker.color,
                    "line": {"width": 2, "color": marker.color},
                },
                "customdata": [[i, ev.op_name[:60], ev.details[:80]] for i, ev in zip(indices, events)],
                "hovertemplate": (
                    f"{action.value}<br>Position %{{x}}<br>L1 after: %{{y:,}} B"
                    "<br>%{customdata[1]}<br>%{customdata[2]}<extra></extra>"
                ),
            })

        layout = {
            "height": 420,
            "paper_bgcolor": "transparent",
            "plot_bgcolor": "transparent",
            "title": {
                "text": "L1 Memory Pressure Timeline",
                "font": {"size": 16, "color": "rgb(204, 204, 220)"},
            },
            "xaxis": {
                "title": {"text": "Schedule Position", "font": {"color": "rgb(204, 204, 220)"}},
                "range": [0, timeline.max_position],
                "tickvals": timeline.x_ticks(),
                "tickfont": {"color": "rgb(204, 204, 220)"},
                "gridcolor": "rgba(204, 204, 220, 0.08)",
            },
            "yaxis": {
                "title": {"text": "L1 occupied (bytes)", "font": {"color": "rgb(204, 204, 220)"}},
                "range": [0, timeline.y_domain_max],
                "tickvals": timeline.y_ticks(),
                "ticktext": [format_bytes(v) for v in timeline.y_ticks()],
                "tickfont": {"color": "rgb(204, 204, 220)"},
                "gridcolor": "rgba(204, 204, 220, 0.08)",
            },
            "legend": {
                "orientation": "h",
                "yanchor": "bottom",
                "y": 1.02,
                "xanchor": "right",
                "x": 1,
                "font": {"color": "rgb(204, 204, 220)"},
            },
            "hoverlabel": {
                "bgcolor": "#22252b",
                "bordercolor": "rgba(204, 204, 220, 0.20)",
                "font": {"color": "rgb(204, 204, 220)"},
            },
        }
        return {"traces": traces, "layout": layout}

    # === HTML fragments ===

    def _generate_summary_cards_html(self) -> str:
        s = summarize_trace(self.trace)
        cards = [
            ("Function", escape_html(s.function_name), ""),
            ("Beam Width", s.beam_width, ""),
            ("Operations", f"{s.total_ops:,}", ""),
            ("Sharded", f"{s.sharded_pct}% ({s.sharded_ops}/{s.regular_ops})", "green"),
            ("DRAM Fallback", s.dram_fallback_ops, "red" if s.dram_fallback_ops else "green"),
        ]
        if s.inplace_ops:
            cards.append(("In-place", s.inplace_ops, "teal"))
        if s.total_spills is not None:
            cards.append(("Spills", s.total_spills, "red" if s.total_spills else "green"))
        cards.append(("Version", f"v{escape_html(str(s.version))}", ""))

        return "\n".join(
            f'<div class="summary-card {cls}"><div class="label">{label}</div>'
            f'<div class="value">{value}</div></div>'
            for label, value, cls in cards
        )

    def _generate_links_html(self, detail: OpDetail) -> str:
        if not detail.producers and not detail.consumers:
            return ""
        parts = ['<div class="op-links">']
        for title, links in (("From", detail.producers), ("To", detail.consumers)):
            if not links:
                continue
            parts.append(f'<span class="dim">{title}: </span>')
            for link in links:
                badge = '<span class="reshard-badge">R</span>' if link.has_reshard else ""
                parts.append(
                    f'<span class="op-link" onclick="focusOp({link.array_index})">'
                    f"#{link.op_index} {escape_html(link.name)}{badge}</span> "
                )
        parts.append("</div>")
        return "".join(parts)

    def _score_cells(self, score) -> str:
        if score is None:
            return "<td>N</td><td>N</td><td>0</td><td>N</td><td>0</td><td>0</td>"
        yn = lambda flag: "Y" if flag else "N"
        return (
            f"<td>{yn(score.is_l1)}</td><td>{yn(score.is_sharded)}</td>"
            f"<td>{score.input_dram_bytes}</td><td>{yn(score.requires_reshard)}</td>"
            f"<td>{score.core_count}</td><td>{score.output_l1_usage}</td>"
        )

    def _generate_op_body_html(self, detail: OpDetail) -> str:
        op = detail.op
        html = []
        if op.is_inplace:
            html.append('<div class="inplace-note">In-place operation: modifies its input tensor, no layout decision</div>')
        if op.used_dram_fallback:
            html.append('<div class="dram-fallback-indicator">DRAM FALLBACK: No valid L1 candidate found</div>')
        html.append(self._generate_links_html(detail))

        if detail.input_sets:
            rows = []
            for row in detail.input_sets:
                more = f" (+{row.remaining} more)" if row.remaining else ""
                rows.append(
                    f"<tr><td>{row.operand_index}</td><td>{escape_html(str(row.from_producer_beam))}</td>"
                    f"<td>{escape_html(str(row.from_reshard))}</td>"
                    f"<td>{', '.join(escape_html(c) for c in row.shown)}{more}</td></tr>"
                )
            html.append(
                '<div class="section-title">Input Candidates</div><table class="data-table"><thead><tr>'
                "<th>Operand</th><th>Producer Beam</th><th>Reshard</th><th>Candidates</th>"
                f"</tr></thead><tbody>{''.join(rows)}</tbody></table>"
            )

        if detail.output_hints:
            h = detail.output_hints
            html.append(
                '<div class="section-title">Output Hints</div>'
                f'<div class="dim">Primary: {h.primary_count}, Fallback: {h.fallback_count}, '
                f"L1 Sharding: {'yes' if h.attempt_l1_sharding else 'no'}</div>"
            )
        if detail.cross_product_size:
            html.append(f'<div class="dim">Cross-product: {detail.cross_product_size} combinations</div>')

        if detail.evaluations:
            rows = []
            for row in detail.evaluations:
                ev = row.evaluation
                cells = (
                    f'<td colspan="7" class="failure">{escape_html(row.failure_text)}</td>'
                    if row.status == INVALID
                    else self._score_cells(ev.score) + f"<td>{escape_html(ev.output)}</td>"
                )
                rows.append(
                    f'<tr class="{row.status}"><td>{escape_html(ev.hint)}</td>'
                    f"<td>{', '.join(escape_html(i) for i in ev.inputs)}</td>"
                    f"<td>{'Y' if ev.valid else 'N'}</td>{cells}</tr>"
                )
            html.append(
                f'<div class="section-title">Evaluations ({len(detail.evaluations)})</div>'
                '<table class="data-table"><thead><tr><th>Hint</th><th>Inputs</th><th>Valid</th>'
                "<th>L1</th><th>Shrd</th><th>DramIn</th><th>Reshd</th><th>Cores</th><th>L1Use</th>"
                f"<th>Output/Failure</th></tr></thead><tbody>{''.join(rows)}</tbody></table>"
            )

        if detail.beam:
            rows = [
                f"<tr><td>{b.rank}</td><td>{escape_html(b.output_layout)}</td>{self._score_cells(b.score)}</tr>"
                for b in detail.beam
            ]
            html.append(
                f'<div class="section-title">Beam Survivors ({len(detail.beam)})</div>'
                '<table class="data-table"><thead><tr><th>Rank</th><th>Output</th><th>L1</th><th>Shrd</th>'
                "<th>DramIn</th><th>Reshd</th><th>Cores</th><th>L1Use</th>"
                f"</tr></thead><tbody>{''.join(rows)}</tbody></table>"
            )
        return "\n".join(h for h in html if h)

    def _generate_op_cards_html(self) -> str:
        cards = []
        for array_index, op in enumerate(self.trace.forward_pass):
            detail = build_op_detail(self.trace, self.state.edge_index, array_index)
            cards.append(
                f'<details class="op-card" id="op-card-{array_index}" data-node="op-{op.op_index}">'
                f'<summary><span class="op-idx">#{op.op_index}</span> '
                f'<span class="op-name">{escape_html(op.op_name)}</span> '
                f'<span class="badge badge-{detail.layout.badge}">{detail.layout.label}</span> '
                f'<span class="op-loc" title="{escape_html(op.op_location)}">{escape_html(op.op_location)}</span>'
                f"</summary><div class=\"op-card-body\">{self._generate_op_body_html(detail)}</div></details>"
            )
        return "\n".join(cards)

    def _generate_forks_html(self) -> str:
        rows = fork_rows(self.trace)
        if not rows:
            return ""
        parts = [f'<h2>Fork Resolutions ({len(rows)})</h2>']
        for row in rows:
            f = row.fork
            consumers = (
                f"<br>Consumer indices: [{', '.join(str(c) for c in f.consumer_op_indices)}]"
                if f.consumer_op_indices else ""
            )
            parts.append(
                f'<div class="fork-card" onclick="focusOp({row.array_index})">'
                f"<strong>{escape_html(f.op_name)}</strong> @ {escape_html(f.op_location)}<br>"
                f"Chosen candidate: #{f.chosen_candidate_index}, Consumers: {f.num_consumers}{consumers}</div>"
            )
        return "\n".join(parts)

    def _generate_spill_table_html(self) -> str:
        spill = self.trace.spill_management
        if spill is None or not spill.events:
            return '<div class="dim">No spill management data in this trace.</div>'
        rows = []
        for row in spill_event_rows(spill):
            rows.append(
                f'<tr id="spill-row-{row.index}"><td>{"?" if row.position is None else row.position}</td>'
                f'<td><span class="badge {row.marker.badge}">{escape_html(row.action)}</span></td>'
                f'<td title="{escape_html(row.op_name)}">{escape_html(row.short_name)}</td>'
                f"<td>{row.before}</td><td>{row.after}</td><td>{row.usage}</td>"
                f"<td>{escape_html(row.details)}</td></tr>"
            )
        return (
            '<table class="data-table"><thead><tr><th>Pos</th><th>Action</th><th>Op</th>'
            "<th>L1 Before</th><th>L1 After</th><th>Usage</th><th>Details</th></tr></thead>"
            f"<tbody>{''.join(rows)}</tbody></table>"
            f'<div class="dim footer">{escape_html(spill_footer(spill))}</div>'
        )

    def build_html(self) -> str:
        """Build complete HTML document with embedded graph and Plotly data"""
        graph_data = self.prepare_graph_data()
        timeline_data = self.prepare_timeline_data()
        generated = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        title = escape_html(self.trace_name)

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Decision Trace: {title}</title>
    <script src="https://cdn.plot.ly/plotly-2.27.0.min.js"></script>
    <script src="https://unpkg.com/cytoscape@3.28.1/dist/cytoscape.min.js"></script>
    <script src="https://unpkg.com/dagre@0.8.5/dist/dagre.min.js"></script>
    <script src="https://unpkg.com/cytoscape-dagre@2.5.0/cytoscape-dagre.js"></script>
    <style>
        :root {{
            --bg-canvas: #111217;
            --bg-primary: #181b1f;
            --bg-secondary: #22252b;
            --text-primary: rgb(204, 204, 220);
            --text-secondary: rgba(204, 204, 220, 0.65);
            --border-medium: rgba(204, 204, 220, 0.12);
            --accent-primary: #3d71d9;
            --green: #50c878;
            --yellow: #f0c040;
            --red: #e05050;
            --teal: #40b0b0;
        }}
        * {{ margin: 0; padding: 0; box-sizing: border-box; }}
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
               background: var(--bg-canvas); color: var(--text-primary); padding: 20px; }}
        h1 {{ margin-bottom: 10px; border-bottom: 3px solid var(--accent-primary); padding-bottom: 10px; }}
        h2 {{ margin: 30px 0 15px; border-bottom: 2px solid var(--border-medium); padding-bottom: 8px; }}
        .metadata, .dim {{ color: var(--text-secondary); font-size: 13px; margin: 4px 0; }}
        .summary-grid {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(160px, 1fr)); gap: 12px; }}
        .summary-card {{ background: var(--bg-secondary); padding: 14px; border-radius: 8px;
                         border-left: 4px solid var(--accent-primary); }}
        .summary-card.green {{ border-left-color: var(--green); }}
        .summary-card.red {{ border-left-color: var(--red); }}
        .summary-card.teal {{ border-left-color: var(--teal); }}
        .summary-card .label {{ font-size: 12px; color: var(--text-secondary); }}
        .summary-card .value {{ font-size: 20px; font-weight: 600; }}
        .toolbar {{ display: flex; gap: 16px; align-items: center; margin: 12px 0; }}
        .toolbar input[type=text] {{ background: var(--bg-secondary); color: var(--text-primary);
                                     border: 1px solid var(--border-medium); padding: 6px 10px; width: 280px; }}
        #cy {{ height: 600px; background: #1e1e2e; border: 1px solid var(--border-medium); border-radius: 8px; }}
        .op-card {{ background: var(--bg-primary); border: 1px solid var(--border-medium); border-radius: 6px;
                    margin-bottom: 8px; padding: 8px 12px; }}
        .op-card.selected {{ border-color: #ffffff; }}
        .op-card.hidden {{ display: none; }}
        .op-card summary {{ cursor: pointer; font-family: monospace; }}
        .op-loc {{ color: var(--text-secondary); margin-left: 8px; }}
        .badge {{ padding: 2px 8px; border-radius: 4px; font-size: 11px; background: var(--bg-secondary); }}
        .badge-green {{ background: rgba(80, 200, 120, 0.25); color: var(--green); }}
        .badge-yellow {{ background: rgba(240, 192, 64, 0.25); color: var(--yellow); }}
        .badge-red {{ background: rgba(224, 80, 80, 0.25); color: var(--red); }}
        .badge-teal {{ background: rgba(64, 176, 176, 0.25); color: var(--teal); }}
        .section-title {{ font-weight: 600; margin: 10px 0 4px; }}
        .data-table {{ border-collapse: collapse; width: 100%; font-size: 12px; font-family: monospace; }}
        .data-table th, .data-table td {{ border: 1px solid var(--border-medium); padding: 4px 6px; text-align: left; }}
        tr.invalid td, td.failure {{ color: var(--red); }}
        tr.valid-in-beam td {{ color: var(--green); }}
        tr.valid-not-chosen td {{ color: var(--text-secondary); }}
        .op-link {{ color: #6e9fff; cursor: pointer; margin-right: 6px; }}
        .reshard-badge {{ color: #e08040; font-weight: 700; margin-left: 2px; }}
        .dram-fallback-indicator {{ color: var(--red); font-weight: 600; margin: 4px 0; }}
        .inplace-note {{ color: var(--teal); margin: 4px 0; }}
        .fork-card {{ background: var(--bg-secondary); padding: 10px; border-radius: 6px; margin: 6px 0; cursor: pointer; }}
        .footer {{ margin-top: 8px; }}
    </style>
</head>
<body>
    <h1>Decision Trace: {title}</h1>
    <div class="metadata">Generated {generated} | {len(self.trace.forward_pass)} operations | {len(self.trace.edges)} edges</div>
    <div class="summary-grid">
{self._generate_summary_cards_html()}
    </div>

    <h2>Dataflow Graph</h2>
    <div class="toolbar">
        <input type="text" id="search" placeholder="Search op name, #index, location or layout...">
        <label><input type="checkbox" id="filter-dram"> DRAM fallback only</label>
        <label><input type="checkbox" id="filter-reshard"> Reshard only</label>
        <label><input type="checkbox" id="filter-failed"> Failed evaluations only</label>
    </div>
    <div id="cy"></div>

    <h2>Operations</h2>
    <div id="detail-container">
{self._generate_op_cards_html()}
    </div>
{self._generate_forks_html()}

    <h2>L1 Spill Timeline</h2>
    <div id="l1-timeline"></div>
    {self._generate_spill_table_html()}

    <script>
        const graphData = {json.dumps(graph_data)};
        const timelineData = {json.dumps(timeline_data)};
        let cy = null;

        function focusOp(arrayIndex) {{
            if (arrayIndex < 0) return;
            document.querySelectorAll('.op-card.selected').forEach(c => c.classList.remove('selected'));
            const card = document.getElementById('op-card-' + arrayIndex);
            if (!card) return;
            card.open = true;
            card.classList.add('selected');
            card.scrollIntoView({{behavior: 'smooth', block: 'nearest'}});
            if (cy) {{
                const node = cy.getElementById(card.dataset.node);
                if (node.length) cy.animate({{center: {{eles: node}}, zoom: 1.5, duration: 300}});
            }}
        }}

        // Same conjunctive rules as decision_trace.filters: the graph matches
        // search against name + layout + label, the op list against name + location.
        function applyFilters() {{
            const search = document.getElementById('search').value.toLowerCase();
            const dram = document.getElementById('filter-dram').checked;
            const reshard = document.getElementById('filter-reshard').checked;
            const failed = document.getElementById('filter-failed').checked;
            const visibleInGraph = new Set();

            Object.entries(graphData.filterData).forEach(([nodeId, f]) => {{
                const passesFlags = (!dram || f.dram) && (!reshard || f.reshard);
                if (passesFlags && (!search || f.name.includes(search) || f.layout.includes(search) || f.label.includes(search))) {{
                    visibleInGraph.add(nodeId);
                }}
                const inDetail = passesFlags && (!failed || f.failed) &&
                    (!search || f.name.includes(search) || f.location.includes(search));
                const card = document.getElementById('op-card-' + f.arrayIndex);
                if (card) card.classList.toggle('hidden', !inDetail);
            }});

            if (!cy) return;
            cy.batch(() => {{
                cy.nodes().forEach(node => {{
                    let visible;
                    if (node.data('isReshard')) {{
                        visible = visibleInGraph.has('op-' + node.data('producerOpIndex')) &&
                                  visibleInGraph.has('op-' + node.data('consumerOpIndex'));
                    }} else {{
                        visible = visibleInGraph.has(node.id());
                    }}
                    node.style('opacity', visible ? 1 : 0.15);
                    node.data('visible', visible);
                }});
                cy.edges().forEach(edge => {{
                    const visible = edge.source().data('visible') && edge.target().data('visible');
                    edge.style('opacity', visible ? 1 : 0.1);
                }});
            }});
        }}

        document.addEventListener('DOMContentLoaded', function() {{
            if (window.cytoscape && window.cytoscapeDagre) cytoscape.use(cytoscapeDagre);
            if (window.cytoscape) {{
                cy = cytoscape({{
                    container: document.getElementById('cy'),
                    elements: graphData.elements,
                    style: [
                        {{selector: 'node', style: {{
                            'label': 'data(label)', 'font-size': '10px', 'color': '#e0e0e0',
                            'text-valign': 'center', 'text-halign': 'center',
                            'background-color': 'data(color)', 'background-opacity': 0.25,
                            'border-width': 1.5, 'border-color': 'data(color)',
                            'shape': 'roundrectangle', 'width': 150, 'height': 40}}}},
                        {{selector: 'node.inplace', style: {{'border-style': 'dashed'}}}},
                        {{selector: 'node.fork', style: {{'border-style': 'dashed', 'border-color': '#a070d0', 'border-width': 2.5}}}},
                        {{selector: 'node.reshard-node', style: {{
                            'shape': 'diamond', 'width': 20, 'height': 20, 'label': '',
                            'background-color': '#e08040', 'background-opacity': 0.8, 'border-width': 0}}}},
                        {{selector: 'edge.dataflow', style: {{
                            'curve-style': 'bezier', 'target-arrow-shape': 'triangle',
                            'line-color': '#5080b0', 'target-arrow-color': '#5080b0', 'width': 1.5}}}},
                        {{selector: 'edge.reshard', style: {{
                            'curve-style': 'bezier', 'target-arrow-shape': 'triangle', 'line-style': 'dashed',
                            'line-color': '#e08040', 'target-arrow-color': '#e08040', 'width': 1.5}}}},
                    ],
                    layout: {{name: window.cytoscapeDagre ? 'dagre' : 'breadthfirst', rankDir: 'LR',
                              nodeSep: 20, rankSep: 80, animate: false}},
                    minZoom: 0.05, maxZoom: 5, wheelSensitivity: 0.3,
                }});
                cy.on('tap', 'node', evt => {{
                    const idx = evt.target.data('arrayIndex');
                    if (idx !== undefined) focusOp(idx);
                }});
            }}

            ['search', 'filter-dram', 'filter-reshard', 'filter-failed'].forEach(id => {{
                const el = document.getElementById(id);
                el.addEventListener(id === 'search' ? 'input' : 'change', applyFilters);
            }});

            if (timelineData.traces.length > 0) {{
                Plotly.newPlot('l1-timeline', timelineData.traces, timelineData.layout, {{responsive: true}});
                document.getElementById('l1-timeline').on('plotly_click', function(data) {{
                    if (!data.points || !data.points.length || !data.points[0].customdata) return;
                    const row = document.getElementById('spill-row-' + data.points[0].customdata[0]);
                    if (row) row.scrollIntoView({{behavior: 'smooth', block: 'nearest'}});
                }});
            }}
        }});
    </script>
</body>
</html>"""
