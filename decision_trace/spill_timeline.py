# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""
L1 memory pressure timeline reconstructed from the spill management log.

The allocator's event log is replayed (never re-simulated) into a pressure
series, axis geometry and per-event markers for any 2D drawing facility.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .trace_model import Number, SpillEvent, SpillManagement, TraceDiagnostic

Y_HEADROOM = 1.1
Y_TICK_COUNT = 4
MAX_X_TICKS = 10
DEFAULT_CLICK_TOLERANCE = 20


class SpillAction(Enum):
    LIVE_ADDED = "live_added"
    DEAD_REMOVAL = "dead_removal"
    EVICTION = "eviction"
    DEMOTION_SUCCESS = "demotion_success"
    DEMOTION_FAILED = "demotion_failed"
    SELF_SPILL = "self_spill"
    OOM = "oom"
    REVALIDATION = "revalidation"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN

    @classmethod
    def from_code(cls, code: Optional[str]) -> "SpillAction":
        return cls(code)


@dataclass(frozen=True)
class SpillMarker:
    glyph: str
    color: str
    severity: str
    filled: bool = True

    @property
    def badge(self) -> str:
        return SEVERITY_BADGES.get(self.severity, "")


SEVERITY_BADGES = {"ok": "badge-green", "warning": "badge-yellow", "error": "badge-red", "neutral": ""}

# Glyph "none": the event is listed but gets no marker on the chart
SPILL_MARKERS = {
    SpillAction.LIVE_ADDED: SpillMarker("circle", "#50c878", "ok"),
    SpillAction.DEAD_REMOVAL: SpillMarker("none", "#9090a0", "neutral"),
    SpillAction.EVICTION: SpillMarker("x", "#e05050", "error", filled=False),
    SpillAction.DEMOTION_SUCCESS: SpillMarker("triangle", "#e08040", "warning"),
    SpillAction.DEMOTION_FAILED: SpillMarker("triangle", "#e08040", "error", filled=False),
    SpillAction.SELF_SPILL: SpillMarker("circle-large", "#a020a0", "error"),
    SpillAction.OOM: SpillMarker("none", "#e05050", "error"),
    SpillAction.REVALIDATION: SpillMarker("none", "#a070d0", "neutral"),
    SpillAction.UNKNOWN: SpillMarker("none", "#606080", "neutral"),
}

EVICTION_LIKE = (SpillAction.EVICTION, SpillAction.DEMOTION_SUCCESS, SpillAction.DEMOTION_FAILED)


def marker_for(event: SpillEvent) -> SpillMarker:
    """Marker for an event's action; unrecognized codes get the neutral marker."""
    return SPILL_MARKERS[SpillAction.from_code(event.action)]


@dataclass(frozen=True)
class PlotArea:
    """Pixel canvas with the chart margins used by the pressure plot."""
    width: float
    height: float
    margin_top: float = 30
    margin_right: float = 20
    margin_bottom: float = 40
    margin_left: float = 80

    @property
    def plot_width(self) -> float:
        return self.width - self.margin_left - self.margin_right

    @property
    def plot_height(self) -> float:
        return self.height - self.margin_top - self.margin_bottom


@dataclass(frozen=True)
class SpillTimeline:
    budget: Number
    events: Tuple[SpillEvent, ...]
    series: Tuple[Tuple[int, Number], ...]
    y_domain_max: float
    max_position: int
    plot_area: Optional[PlotArea] = None
    diagnostics: Tuple[TraceDiagnostic, ...] = field(default_factory=tuple)

    def marker_for(self, event: SpillEvent) -> SpillMarker:
        return marker_for(event)

    def x_for(self, position: float) -> float:
        """Horizontal coordinate of a schedule position (identity without a plot area)."""
        if self.plot_area is None:
            return float(position)
        area = self.plot_area
        return area.margin_left + (position / self.max_position) * area.plot_width

    def y_for(self, value: float) -> float:
        """Vertical coordinate of an L1 reading (identity without a plot area)."""
        if self.plot_area is None:
            return float(value)
        area = self.plot_area
        if self.y_domain_max <= 0:
            return area.margin_top + area.plot_height
        return area.margin_top + area.plot_height - (value / self.y_domain_max) * area.plot_height

    def nearest_event(
        self, query_x: float, tolerance: float = DEFAULT_CLICK_TOLERANCE
    ) -> Optional[int]:
        """
        Index of the event horizontally closest to query_x.

        Returns None when there are no placed events or the closest one is
        farther than tolerance. Ties go to the earliest event. Events without a
        position are never selected.
        """
        closest_idx = None
        closest_dist = math.inf
        for idx, event in enumerate(self.events):
            if event.position is None:
                continue
            dist = abs(self.x_for(event.position) - query_x)
            if dist < closest_dist:
                closest_dist = dist
                closest_idx = idx
        if closest_idx is None or closest_dist > tolerance:
            return None
        return closest_idx

    def y_ticks(self) -> List[float]:
        return [self.y_domain_max / Y_TICK_COUNT * i for i in range(Y_TICK_COUNT + 1)]

    def x_ticks(self) -> List[int]:
        count = min(MAX_X_TICKS, self.max_position)
        if count <= 0:
            return [0]
        return [int(math.floor(self.max_position / count * i + 0.5)) for i in range(count + 1)]


def check_ordering(events: Sequence[SpillEvent]) -> List[TraceDiagnostic]:
    """
    Report events whose position decreases relative to the previous placed
    event. Events without a position are skipped.
    """
    problems = []
    previous = None
    for idx, event in enumerate(events):
        if event.position is None:
            continue
        if previous is not None and event.position < previous:
            problems.append(
                TraceDiagnostic(
                    kind="SpillEventOrder",
                    message=(
                        f"Spill event {idx} at position {event.position} comes after "
                        f"position {previous}"
                    ),
                    event_index=idx,
                )
            )
        previous = event.position
    return problems


def check_positions(events: Sequence[SpillEvent]) -> List[TraceDiagnostic]:
    """Report events with a missing or non-integer schedule position."""
    return [
        TraceDiagnostic(
            kind="SpillEventPosition",
            message=f"Spill event {idx} has no integer position; not plotted",
            event_index=idx,
        )
        for idx, event in enumerate(events)
        if event.position is None
    ]


def check_continuity(events: Sequence[SpillEvent]) -> List[TraceDiagnostic]:
    """Report consecutive events where 'before' does not match the previous 'after'."""
    problems = []
    for idx in range(1, len(events)):
        prev_after = events[idx - 1].occupied_l1_after
        before = events[idx].occupied_l1_before
        if prev_after is None or before is None:
            continue
        if before != prev_after:
            problems.append(
                TraceDiagnostic(
                    kind="SpillContinuity",
                    message=(
                        f"Spill event {idx} starts at {before} bytes but the previous "
                        f"event ended at {prev_after} bytes"
                    ),
                    event_index=idx,
                )
            )
    return problems


def _unknown_actions(events: Sequence[SpillEvent]) -> List[TraceDiagnostic]:
    return [
        TraceDiagnostic(
            kind="UnknownActionCode",
            message=f"Spill event {idx} has unknown action '{event.action}'",
            event_index=idx,
        )
        for idx, event in enumerate(events)
        if SpillAction.from_code(event.action) is SpillAction.UNKNOWN
    ]


def build_spill_timeline(
    spill: Optional[SpillManagement], plot_area: Optional[PlotArea] = None
) -> SpillTimeline:
    """
    Build the pressure series and plot geometry for a spill log.

    Args:
        spill: The trace's spill management section (None if absent)
        plot_area: Optional pixel canvas; without it coordinates stay in data space

    Returns:
        SpillTimeline whose y_domain_max always covers the budget line
    """
    if spill is None:
        spill = SpillManagement()

    events = spill.events
    series = tuple(
        (e.position, e.occupied_l1_after)
        for e in events
        if e.position is not None and e.occupied_l1_after is not None
    )
    placed = [e.position for e in events if e.position is not None]
    budget = spill.budget or 0
    peak = max([budget] + [value for _, value in series])
    y_domain_max = peak * Y_HEADROOM

    if spill.schedule_size:
        max_position = spill.schedule_size
    elif placed:
        max_position = max(placed) + 1
    else:
        max_position = 1
    max_position = max(max_position, 1)

    diagnostics = (
        check_positions(events)
        + check_ordering(events)
        + check_continuity(events)
        + _unknown_actions(events)
    )

    return SpillTimeline(
        budget=budget,
        events=events,
        series=series,
        y_domain_max=y_domain_max,
        max_position=max_position,
        plot_area=plot_area,
        diagnostics=tuple(diagnostics),
    )
