# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""
Access to trace files on disk.

The viewer is pointed at either a single trace JSON file or a directory of
them. A directory lists its *.json files; fetching a trace by name is
restricted to files inside that directory.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union


class TraceAccessError(PermissionError):
    """Requested trace lies outside the served directory."""


def list_traces(path: Union[str, Path]) -> List[Dict[str, str]]:
    """
    List available traces.

    Args:
        path: A trace file or a directory of trace files

    Returns:
        List of {"name", "path"} dicts, sorted by name for directories
    """
    root = Path(path).resolve()
    if not root.exists():
        raise FileNotFoundError(f"Trace path not found: {root}")
    if not root.is_dir():
        return [{"name": root.name, "path": str(root)}]
    return [
        {"name": f.name, "path": str(f)}
        for f in sorted(root.iterdir())
        if f.is_file() and f.suffix == ".json"
    ]


def resolve_trace_path(path: Union[str, Path], name: Optional[str] = None) -> Path:
    """
    Resolve which file a trace request refers to.

    For a single file the name is ignored. For a directory, no name means the
    first trace in the listing.
    """
    root = Path(path).resolve()
    if not root.is_dir():
        if not root.exists():
            raise FileNotFoundError(f"Trace file not found: {root}")
        return root

    if name:
        requested = (root / name).resolve()
        if requested != root and root not in requested.parents:
            raise TraceAccessError(f"Access denied: {name}")
        if not requested.is_file():
            raise FileNotFoundError(f"Trace not found: {name}")
        return requested

    traces = list_traces(root)
    if not traces:
        raise FileNotFoundError(f"No JSON files found in directory: {root}")
    return Path(traces[0]["path"])


def read_trace_bytes(path: Union[str, Path], name: Optional[str] = None) -> bytes:
    """Return the raw bytes of the named trace (or the default one)."""
    return resolve_trace_path(path, name).read_bytes()
