# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""Classify an operation's chosen memory layout from its beam and fallback state."""

from dataclasses import dataclass

from .trace_model import Operation

INPLACE = "inplace"
DRAM_FALLBACK = "dram-fallback"
L1_SHARDED = "l1-sharded"
L1_INTERLEAVED = "l1-interleaved"
DRAM = "dram"
UNKNOWN = "unknown"

CATEGORY_ORDER = [L1_SHARDED, L1_INTERLEAVED, DRAM, DRAM_FALLBACK, INPLACE, UNKNOWN]
CATEGORY_LABELS = {
    INPLACE: "In-place",
    DRAM_FALLBACK: "DRAM Fallback",
    L1_SHARDED: "L1 Sharded",
    L1_INTERLEAVED: "L1 Interleaved",
    DRAM: "DRAM",
    UNKNOWN: "Unknown",
}
CATEGORY_COLORS = {
    INPLACE: "#40b0b0",
    DRAM_FALLBACK: "#e05050",
    L1_SHARDED: "#50c878",
    L1_INTERLEAVED: "#f0c040",
    DRAM: "#e05050",
    UNKNOWN: "#606080",
}
BADGE_COLORS = {
    INPLACE: "teal",
    DRAM_FALLBACK: "red",
    L1_SHARDED: "green",
    L1_INTERLEAVED: "yellow",
    DRAM: "red",
    UNKNOWN: "red",
}


@dataclass(frozen=True)
class LayoutClass:
    category: str
    label: str
    color: str

    @property
    def badge(self) -> str:
        return BADGE_COLORS.get(self.category, "red")


def _layout_class(category: str) -> LayoutClass:
    return LayoutClass(category, CATEGORY_LABELS[category], CATEGORY_COLORS[category])


def classify_op_layout(op: Operation) -> LayoutClass:
    """
    Classify an operation by priority: in-place, DRAM fallback, then the
    top beam candidate's score. Missing data yields 'unknown'.
    """
    if op.is_inplace:
        return _layout_class(INPLACE)
    if op.used_dram_fallback:
        return _layout_class(DRAM_FALLBACK)

    top = op.beam[0] if op.beam else None
    if top is not None and top.score is not None:
        if top.score.is_sharded and top.score.is_l1:
            return _layout_class(L1_SHARDED)
        if top.score.is_l1:
            return _layout_class(L1_INTERLEAVED)
        return _layout_class(DRAM)
    return _layout_class(UNKNOWN)
