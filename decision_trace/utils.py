# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""Shared formatting and configuration helpers for the decision trace viewer."""

import os
import re
from pathlib import Path
from typing import Optional, Union

Number = Union[int, float]

# Substring replacements applied in order, e.g.
# "l1/#ttnn.tensor_memory_layout<interleaved>/8x8" -> "l1/intrlvd/8x8"
LAYOUT_ABBREVIATIONS = [
    ("#ttnn.tensor_memory_layout<", ""),
    (">", ""),
    ("interleaved", "intrlvd"),
    ("height_sharded", "h-shard"),
    ("width_sharded", "w-shard"),
    ("block_sharded", "blk-shard"),
]

_SSA_PREFIX_RE = re.compile(r"^%\w+\s*=\s*")


def format_bytes(value: Optional[Number]) -> str:
    """Format a byte count as B / KB / MB, '?' when unknown."""
    if value is None:
        return "?"
    if value < 1024:
        return f"{value:g}B" if isinstance(value, float) else f"{value}B"
    if value < 1024 * 1024:
        return f"{value / 1024:.1f}KB"
    return f"{value / (1024 * 1024):.2f}MB"


def escape_html(text: Optional[str]) -> str:
    """Escape HTML special characters."""
    if not text:
        return ""
    return (
        str(text)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def shorten_layout(layout: Optional[str]) -> str:
    """Abbreviate a layout descriptor for compact display.

    Only the first occurrence of each pattern is replaced.
    """
    if not layout:
        return ""
    for old, new in LAYOUT_ABBREVIATIONS:
        layout = layout.replace(old, new, 1)
    return layout


def short_op_name(op_name: Optional[str]) -> str:
    """Strip the 'ttnn.' dialect prefix: 'ttnn.matmul' -> 'matmul'."""
    if not op_name:
        return ""
    return op_name.replace("ttnn.", "", 1)


def short_event_op_name(op_name: Optional[str], max_len: int = 30) -> str:
    """Shorten a spill event op name: '%4 = ttnn.add(%1, %2) ...' -> 'ttnn.add(%1,'."""
    if not op_name:
        return ""
    stripped = _SSA_PREFIX_RE.sub("", op_name)
    head = stripped.split(" ")[0] if stripped else ""
    return head[:max_len]


def truncate(text: Optional[str], max_len: int = 50) -> str:
    """Truncate text with an ellipsis if too long"""
    if not text:
        return "N/A"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def sanitize_report_name(name: str) -> str:
    """Turn a trace file stem into a safe report directory name."""
    sanitized = re.sub(r"[^A-Za-z0-9_.-]+", "_", name).strip("._")
    return sanitized or "trace"


def get_reports_dir() -> Path:
    """
    Directory where generated reports are stored.

    Uses DTV_REPORTS_DIR if set, otherwise ~/.dtv/reports.
    """
    if root := os.environ.get("DTV_REPORTS_DIR"):
        return Path(root).expanduser()
    return Path.home() / ".dtv" / "reports"
