# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""
Local HTTP server for generated reports and raw trace files.

Besides serving the report directory it exposes two JSON endpoints:
  GET /api/traces             list of {name, path} for the served trace path
  GET /api/trace?file=NAME    raw bytes of one trace (default: the first one)
"""

import functools
import http.server
import json
import socket
import socketserver
import threading
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import parse_qs, urlparse

from .trace_store import TraceAccessError, list_traces, read_trace_bytes


def find_available_port(start_port: int = 8000, max_attempts: int = 100) -> int:
    """Find an available port starting from start_port."""
    for port in range(start_port, start_port + max_attempts):
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind(("0.0.0.0", port))
                return port
        except OSError:
            continue
    raise RuntimeError(f"Could not find available port in range {start_port}-{start_port + max_attempts}")


class TraceRequestHandler(http.server.SimpleHTTPRequestHandler):
    """Static file handler with the trace API routes. Suppresses log messages."""

    trace_path: Optional[Path] = None

    def do_GET(self):
        route = urlparse(self.path)
        if route.path == "/api/traces":
            self._handle_list()
        elif route.path == "/api/trace":
            name = parse_qs(route.query).get("file", [None])[0]
            self._handle_trace(name)
        else:
            super().do_GET()

    def _handle_list(self):
        if self.trace_path is None:
            self._send_json(404, {"error": "No trace path configured"})
            return
        try:
            self._send_json(200, list_traces(self.trace_path))
        except FileNotFoundError as e:
            self._send_json(404, {"error": str(e)})

    def _handle_trace(self, name: Optional[str]):
        if self.trace_path is None:
            self._send_json(404, {"error": "No trace path configured"})
            return
        try:
            data = read_trace_bytes(self.trace_path, name)
        except TraceAccessError:
            self._send_json(403, {"error": "Access denied"})
            return
        except FileNotFoundError as e:
            self._send_json(404, {"error": str(e)})
            return
        except OSError as e:
            self._send_json(500, {"error": str(e)})
            return
        self._send_body(200, data)

    def _send_json(self, status: int, payload) -> None:
        self._send_body(status, json.dumps(payload).encode("utf-8"))

    def _send_body(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


def start_http_server(
    directory: Path, port: int, trace_path: Optional[Path] = None
) -> Tuple[socketserver.TCPServer, threading.Thread]:
    """Start an HTTP server in the background serving the given directory.

    Binds to 0.0.0.0 so VS Code Remote SSH can auto-forward the port.

    Args:
        directory: Directory with the generated reports
        port: Port to bind
        trace_path: Trace file or directory exposed through /api/traces and /api/trace
    """
    handler_class = type(
        "BoundTraceRequestHandler",
        (TraceRequestHandler,),
        {"trace_path": Path(trace_path).resolve() if trace_path else None},
    )
    handler = functools.partial(handler_class, directory=str(directory))

    server = socketserver.TCPServer(("0.0.0.0", port), handler)

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    return server, thread
