import pytest

from components.chart.markers import (
    LONG_COLOR,
    SHORT_COLOR,
    MarkerProjector,
    markers_near,
    project,
    tooltip_text,
)

from helpers import FakeSurface, trade


def test_long_entry_gives_one_open_long_marker() -> None:
    markers = project([trade(1000, side="LONG", reason="ENTRY")])
    assert len(markers) == 1
    m = markers[0]
    assert m.time == 1
    assert m.position == "belowBar"
    assert (m.color, m.shape, m.text) == (LONG_COLOR, "arrowUp", "B")


def test_reason_outside_allow_list_gives_no_marker() -> None:
    assert project([trade(1000, reason="TP"), trade(2000, reason="SL"), trade(3000, reason="FUNDING")]) == []


@pytest.mark.parametrize(
    "side, reason, position, color, shape, text",
    [
        ("LONG", "DCA", "belowBar", LONG_COLOR, "arrowUp", "B"),
        ("LONG", "EXIT", "belowBar", LONG_COLOR, "arrowDown", "S"),
        ("LONG", "MAX LOSS", "belowBar", LONG_COLOR, "arrowDown", "S"),
        ("SHORT", "ENTRY", "aboveBar", SHORT_COLOR, "arrowDown", "S"),
        ("SHORT", "CUTLOSS", "aboveBar", SHORT_COLOR, "arrowUp", "B"),
        ("SHORT", "ENTRY HEDGE 2", "aboveBar", SHORT_COLOR, "arrowDown", "S"),
        ("LONG", "DCA HEDGE", "belowBar", LONG_COLOR, "arrowUp", "B"),
        ("SHORT", "EXIT HEDGE", "aboveBar", SHORT_COLOR, "arrowUp", "B"),
        ("LONG", "CUT LOSS HEDGE 1", "belowBar", LONG_COLOR, "arrowDown", "S"),
    ],
)
def test_marker_style_table(side, reason, position, color, shape, text) -> None:
    (m,) = project([trade(60_000, side=side, reason=reason)])
    assert (m.position, m.color, m.shape, m.text) == (position, color, shape, text)
    assert m.time == 60


def test_projection_is_pure() -> None:
    trades = [
        trade(1_000, reason="ENTRY"),
        trade(2_000, side="SHORT", reason="EXIT"),
        trade(3_000, reason="TP"),
    ]
    first = project(trades)
    second = project(trades)
    assert first == second
    assert [m.model_dump() for m in first] == [m.model_dump() for m in second]


def test_markers_near_uses_tolerance() -> None:
    markers = project([trade(1_000_000), trade(1_120_000, reason="EXIT")])
    assert [m.time for m in markers_near(markers, 1_030, tolerance_s=60)] == [1_000]
    assert [m.time for m in markers_near(markers, 1_060, tolerance_s=61)] == [1_000, 1_120]
    assert markers_near(markers, 2_000, tolerance_s=60) == []


def test_tooltip_text_lists_every_hovered_trade() -> None:
    markers = project([trade(1_000, pnl=None), trade(1_000, reason="EXIT", pnl=12.5)])
    text = tooltip_text(markers)
    assert text == (
        "ENTRY - LONG\nPrice: 100.000\nQuantity: 0.500"
        "\n---\n"
        "EXIT - LONG\nPrice: 100.000\nQuantity: 0.500\nPnL: 12.500"
    )


def test_projector_replaces_full_marker_set_on_surface() -> None:
    surface = FakeSurface()
    projector = MarkerProjector([trade(1_000), trade(2_000, reason="EXIT")])
    projector.apply(surface)
    projector.set_trades([trade(5_000, side="SHORT")])
    projector.apply(surface)

    assert [len(s) for s in surface.marker_sets] == [2, 1]
    assert surface.marker_sets[-1][0].time == 5
    assert projector.tooltip_at(5) is not None
    assert projector.tooltip_at(500) is None
