import random

from components.chart.window import DataWindow, merge_bars
from schemas.chart import Side

from helpers import bar, bars


def times(window) -> list[int]:
    return [b.time for b in window]


def test_initialize_sets_bars_as_is() -> None:
    window = DataWindow(cap=3)
    result = window.initialize(bars([300, 100, 200, 400]))
    assert times(result) == [300, 100, 200, 400]
    assert len(window) == 4


def test_extend_left_small_merge_keeps_everything() -> None:
    window = DataWindow(cap=3)
    window.initialize([bar(100)])
    result = window.extend([bar(95), bar(90)], Side.LEFT)
    assert times(result) == [90, 95, 100]


def test_extend_right_on_full_window_drops_oldest() -> None:
    window = DataWindow(cap=400)
    window.initialize(bars(range(0, 400 * 60, 60)))
    result = window.extend([bar(400 * 60)], Side.RIGHT)
    assert len(result) == 400
    assert result[0].time == 60
    assert result[-1].time == 400 * 60


def test_extend_left_on_full_window_drops_newest() -> None:
    window = DataWindow(cap=5)
    window.initialize(bars([10, 20, 30, 40, 50]))
    result = window.extend(bars([1, 2]), Side.LEFT)
    assert times(result) == [1, 2, 10, 20, 30]


def test_extend_with_no_bars_is_noop() -> None:
    window = DataWindow(cap=5)
    before = window.initialize(bars([10, 20]))
    assert window.extend([], Side.LEFT) is before
    assert window.extend([], Side.RIGHT) is before


def test_extend_replaces_window_value() -> None:
    window = DataWindow(cap=5)
    before = window.initialize(bars([10, 20]))
    after = window.extend(bars([30]), Side.RIGHT)
    assert before is not after
    assert times(before) == [10, 20]


def test_duplicate_times_are_collapsed_and_fresh_bar_wins() -> None:
    current = [bar(10, 1.0), bar(20, 1.0), bar(30, 1.0)]
    fresh = [bar(30, 2.0), bar(40, 2.0)]
    result = merge_bars(current, fresh, Side.RIGHT, cap=10)
    assert times(result) == [10, 20, 30, 40]
    assert result[2].close == 2.0

    result = merge_bars(current, [bar(5, 3.0), bar(10, 3.0)], Side.LEFT, cap=10)
    assert times(result) == [5, 10, 20, 30]
    assert result[1].close == 3.0


def test_cap_sort_and_edge_preservation_hold_for_random_sequences() -> None:
    rng = random.Random(7)
    cap = 25
    window = DataWindow(cap=cap)
    window.initialize(bars(range(1000, 1010)))

    for _ in range(200):
        n = rng.randint(1, cap)
        if rng.random() < 0.5:
            first = window.first.time
            new = bars(range(first - n, first))
            side = Side.LEFT
        else:
            last = window.last.time
            new = bars(range(last + 1, last + 1 + n))
            side = Side.RIGHT

        result = window.extend(new, side)

        assert len(result) <= cap
        assert all(a.time < b.time for a, b in zip(result, result[1:]))
        assert {b.time for b in new} <= set(times(result))
