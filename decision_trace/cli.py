# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""
Command-line entry point for the Decision Trace Viewer.

Usage:
  dtv trace.json                    # summary, HTML report, serve it
  dtv decision_trace/               # pick a trace from a directory
  dtv decision_trace/ --list        # list traces in a directory
  dtv trace.json --llm              # Markdown report to stdout
  dtv trace.json --llm -o report.md # Markdown report to file
  dtv trace.json --html -o out.html # HTML report without serving
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .server import find_available_port, start_http_server
from .session import TraceSession
from .summary import summarize_trace
from .text_formatter import LLMTextFormatter
from .trace_model import MalformedTraceError
from .trace_store import TraceAccessError, list_traces, resolve_trace_path
from .utils import format_bytes, get_reports_dir, sanitize_report_name
from .visualizer import DecisionTraceVisualizer


def _import_interactive_deps():
    """Import dependencies needed for interactive mode. Returns True if successful."""
    global Console, Panel, Table, inquirer, Choice, InquirerPyStyle
    global CUSTOM_STYLE, console

    try:
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from InquirerPy import inquirer
        from InquirerPy.base.control import Choice
        from InquirerPy.utils import InquirerPyStyle
    except ImportError:
        return False

    CUSTOM_STYLE = InquirerPyStyle({
        "questionmark": "fg:cyan bold",
        "question": "bold",
        "answer": "fg:cyan bold",
        "pointer": "fg:cyan bold",
        "highlighted": "fg:cyan bold",
        "selected": "fg:cyan",
        "instruction": "fg:gray",
    })

    console = Console()
    return True


# console is initialized by _import_interactive_deps() for interactive mode
console = None


def ask_trace_choice(traces: List[dict]) -> Optional[str]:
    """Let the user pick one of several traces. Returns the name, or None if cancelled."""
    return inquirer.select(
        message="Select a decision trace:",
        choices=[Choice(value=t["name"], name=t["name"]) for t in traces],
        instruction="(Arrow keys to navigate, Enter to select, Q to quit)",
        style=CUSTOM_STYLE,
        mandatory=False,
        keybindings={"skip": [{"key": "q"}, {"key": "Q"}]},
    ).execute()


def select_trace(path: str, name: Optional[str], interactive: bool) -> Optional[Path]:
    """
    Resolve which trace file to open.

    A directory holding several traces with no --trace given prompts the
    user when running interactively, and falls back to the first trace otherwise.

    Returns:
        Path to the trace file, or None if the user cancelled the picker
    """
    if name or not Path(path).is_dir():
        return resolve_trace_path(path, name)

    traces = list_traces(path)
    if len(traces) > 1 and interactive:
        chosen = ask_trace_choice(traces)
        if chosen is None:
            return None
        return resolve_trace_path(path, chosen)
    return resolve_trace_path(path)


def load_session(trace_file: Path) -> TraceSession:
    session = TraceSession()
    session.load_file(trace_file)
    return session


def display_summary(session: TraceSession) -> None:
    """Print the trace headline numbers as a rich panel."""
    s = summarize_trace(session.trace)
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Function", s.function_name)
    table.add_row("Beam width", str(s.beam_width))
    table.add_row("Operations", f"{s.total_ops:,}")
    table.add_row("Sharded", f"{s.sharded_pct}% ({s.sharded_ops}/{s.regular_ops})")
    table.add_row("DRAM fallback", f"[red]{s.dram_fallback_ops}[/red]" if s.dram_fallback_ops else "0")
    if s.inplace_ops:
        table.add_row("In-place", str(s.inplace_ops))
    spill = session.trace.spill_management
    if spill is not None:
        table.add_row("Spills", str(spill.total_spills))
        table.add_row("L1 budget", format_bytes(spill.budget))
    if session.diagnostics:
        table.add_row("Anomalies", f"[yellow]{len(session.diagnostics)}[/yellow]")

    console.print(
        Panel(
            table,
            title=f"[bold]{session.name}[/bold]",
            border_style="cyan",
            padding=(1, 2),
        )
    )


def generate_html_report(session: TraceSession, output_file: Optional[Path] = None) -> Path:
    """
    Write the HTML report.

    Reports without an explicit output file go to <reports dir>/<report_name>/.
    """
    report_name = sanitize_report_name(Path(session.name).stem)
    if output_file is None:
        output_file = get_reports_dir() / report_name / f"{report_name}_decision_trace.html"
    visualizer = DecisionTraceVisualizer(session.state, trace_name=session.name)
    return visualizer.generate_report(output_file)


def generate_llm_report(session: TraceSession, output_file: Optional[Path] = None) -> int:
    """
    Generate the Markdown report for the loaded trace.

    Args:
        session: Session with the trace loaded
        output_file: Optional output file path. If None, prints to stdout.

    Returns:
        0 on success, 1 on failure
    """
    try:
        formatter = LLMTextFormatter(session.state, trace_name=session.name)
        report = formatter.generate_report(output_file=output_file)
    except OSError as e:
        print(f"Error writing LLM report: {e}", file=sys.stderr)
        return 1

    if output_file:
        print(f"LLM report written to: {output_file}", file=sys.stderr)
    else:
        print(report)
    return 0


def serve_report(report_path: Path, trace_path: Path, port: int) -> int:
    """Serve the report directory until Ctrl+C."""
    try:
        port = find_available_port(port)
        server, thread = start_http_server(report_path.parent, port, trace_path=trace_path)
    except (OSError, RuntimeError) as e:
        console.print(f"[yellow]Could not start HTTP server: {e}[/yellow]")
        console.print(f"[dim]Report written to: {report_path}[/dim]")
        return 1

    http_url = f"http://localhost:{port}/{report_path.name}"
    console.print(
        Panel(
            f"[bold green]Report generated successfully![/bold green]\n\n"
            f"[bold]Open in browser:[/bold]\n[link={http_url}]{http_url}[/link]\n\n"
            f"[dim]Trace API: http://localhost:{port}/api/traces[/dim]\n"
            f"[dim]Server running on port {port}. Press Ctrl+C to stop.[/dim]",
            title="[bold green]Decision Trace Viewer[/bold green]",
            border_style="green",
            padding=(1, 2),
        )
    )
    try:
        thread.join()
    except KeyboardInterrupt:
        server.shutdown()
        console.print("\n[yellow]Server stopped.[/yellow]")
    return 0


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="dtv",
        description="Decision Trace Viewer - inspect layout optimizer decision traces",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dtv decision_trace/forward_decision_trace.json
  dtv decision_trace/                 # loads traces from a directory
  dtv decision_trace/ --list
  dtv trace.json --llm -o report.md
        """,
    )
    parser.add_argument("path", metavar="TRACE", help="Trace JSON file or directory of traces")
    parser.add_argument("--trace", metavar="NAME", help="Trace file name inside the directory")
    parser.add_argument("--list", action="store_true", help="List available traces and exit")
    parser.add_argument(
        "--llm",
        action="store_true",
        help="Output LLM-friendly Markdown report instead of HTML",
    )
    parser.add_argument("--html", action="store_true", help="Write the HTML report without serving it")
    parser.add_argument(
        "-o", "--output-file",
        metavar="FILE",
        help="Write the report to FILE (use with --llm or --html)",
    )
    parser.add_argument("--no-serve", action="store_true", help="Do not start the HTTP server")
    parser.add_argument("--port", type=int, default=8000, help="First port to try (default: 8000)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the dtv CLI."""
    args = parse_args(argv)
    output_file = Path(args.output_file) if args.output_file else None

    if args.list:
        try:
            traces = list_traces(args.path)
        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        for trace in traces:
            print(trace["name"])
        return 0

    # --llm and --html need neither rich nor InquirerPy
    batch = args.llm or args.html
    interactive = False
    if not batch:
        if not _import_interactive_deps():
            print("Error: Required packages not found for interactive mode. Please install with:")
            print("  pip install rich InquirerPy")
            print("\nAlternatively, use --llm or --html which don't require these packages:")
            print(f"  dtv {args.path} --llm")
            return 1
        interactive = sys.stdin.isatty()

    try:
        trace_file = select_trace(args.path, args.trace, interactive)
        if trace_file is None:
            console.print("\n[yellow]Goodbye![/yellow]")
            return 0
        session = load_session(trace_file)
    except TraceAccessError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except MalformedTraceError as e:
        print(f"Error: Malformed trace {args.trace or args.path}: {e}", file=sys.stderr)
        return 1

    if args.llm:
        return generate_llm_report(session, output_file)

    try:
        report_path = generate_html_report(session, output_file)
    except OSError as e:
        print(f"Error generating HTML report: {e}", file=sys.stderr)
        return 1

    if args.html:
        print(f"HTML report written to: {report_path}", file=sys.stderr)
        return 0

    display_summary(session)
    if args.no_serve:
        console.print(f"[dim]Report written to: {report_path}[/dim]")
        return 0
    return serve_report(report_path, Path(args.path), args.port)


if __name__ == "__main__":
    sys.exit(main())
