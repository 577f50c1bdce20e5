"""Tests for the L1 pressure timeline."""
import pytest

from decision_trace.spill_timeline import (
    PlotArea,
    SpillAction,
    build_spill_timeline,
    marker_for,
)
from decision_trace.trace_model import parse_spill_management


def _timeline(section, plot_area=None):
    return build_spill_timeline(parse_spill_management(section), plot_area)


def test_example_timeline(spill_section):
    timeline = _timeline(spill_section)
    assert timeline.budget == 80
    assert timeline.y_domain_max == pytest.approx(110)
    assert timeline.series == ((0, 100), (1, 60))
    assert timeline.max_position == 2
    assert timeline.nearest_event(1, tolerance=5) == 1
    assert timeline.diagnostics == ()


def test_y_domain_covers_budget(spill_section):
    spill_section["budget"] = 200
    timeline = _timeline(spill_section)
    assert timeline.y_domain_max == pytest.approx(220)
    assert timeline.y_domain_max >= timeline.budget


def test_schedule_size_sets_x_domain(spill_section):
    spill_section["scheduleSize"] = 50
    assert _timeline(spill_section).max_position == 50


def test_missing_spill_section():
    timeline = build_spill_timeline(None)
    assert timeline.events == ()
    assert timeline.series == ()
    assert timeline.budget == 0
    assert timeline.max_position == 1
    assert timeline.nearest_event(0) is None


def test_nearest_event_tolerance_and_ties(spill_section):
    timeline = _timeline(spill_section)
    assert timeline.nearest_event(0.4) == 0
    # Equidistant: earliest event wins
    assert timeline.nearest_event(0.5) == 0
    assert timeline.nearest_event(10, tolerance=5) is None
    assert timeline.nearest_event(6, tolerance=5) == 1


def test_plot_area_geometry(spill_section):
    timeline = _timeline(spill_section, PlotArea(width=300, height=200))
    # plot width 200 from x=80; plot height 130 from y=30
    assert timeline.x_for(0) == 80
    assert timeline.x_for(1) == 180
    assert timeline.y_for(0) == 160
    assert timeline.y_for(timeline.y_domain_max) == pytest.approx(30)
    assert timeline.nearest_event(175) == 1
    assert timeline.nearest_event(130) is None


def test_ticks(spill_section):
    timeline = _timeline(spill_section)
    assert timeline.x_ticks() == [0, 1, 2]
    ticks = timeline.y_ticks()
    assert len(ticks) == 5
    assert ticks[0] == 0
    assert ticks[-1] == pytest.approx(110)


def test_events_without_after_value_are_not_plotted(spill_section):
    spill_section["events"].append({"position": 2, "action": "oom", "occupiedL1Before": 60})
    timeline = _timeline(spill_section)
    assert len(timeline.events) == 3
    assert len(timeline.series) == 2


def test_ordering_diagnostic(spill_section):
    spill_section["events"][0]["position"] = 3
    timeline = _timeline(spill_section)
    assert [d.kind for d in timeline.diagnostics] == ["SpillEventOrder"]
    assert timeline.diagnostics[0].event_index == 1


def test_continuity_diagnostic(spill_section):
    spill_section["events"][1]["occupiedL1Before"] = 90
    timeline = _timeline(spill_section)
    assert [d.kind for d in timeline.diagnostics] == ["SpillContinuity"]


def test_unknown_action(spill_section):
    spill_section["events"][1]["action"] = "teleport"
    timeline = _timeline(spill_section)
    assert [d.kind for d in timeline.diagnostics] == ["UnknownActionCode"]
    marker = marker_for(timeline.events[1])
    assert marker.glyph == "none"
    assert marker.color == "#606080"


def test_action_dispatch():
    assert SpillAction.from_code("eviction") is SpillAction.EVICTION
    assert SpillAction.from_code("something-new") is SpillAction.UNKNOWN
    assert SpillAction.from_code(None) is SpillAction.UNKNOWN


def test_markers(spill_section):
    timeline = _timeline(spill_section)
    added, evicted = (marker_for(e) for e in timeline.events)
    assert added.glyph == "circle"
    assert added.badge == "badge-green"
    assert evicted.glyph == "x"
    assert not evicted.filled
    assert evicted.badge == "badge-red"


@pytest.mark.parametrize("position", [2.5, None])
def test_event_without_integer_position(spill_section, position):
    event = {"action": "live_added", "occupiedL1Before": 100, "occupiedL1After": 100}
    if position is not None:
        event["position"] = position
    spill_section["events"].insert(1, event)
    timeline = _timeline(spill_section)

    assert [d.kind for d in timeline.diagnostics] == ["SpillEventPosition"]
    assert timeline.diagnostics[0].event_index == 1
    assert timeline.series == ((0, 100), (1, 60))
    assert timeline.max_position == 2
    assert timeline.nearest_event(1) == 2
    assert timeline.nearest_event(0.2) == 0
