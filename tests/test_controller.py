import asyncio

import pytest

from components.chart.controller import ChartController
from components.chart.surface import VISIBLE_RANGE
from exceptions import CandleSourceError

from helpers import FakeSurface, StubFetcher, candle, trade

BASE = 1_699_999_980
TRADE_MS = BASE * 1000
NOW_MS = 1_800_000_000_000


def first_page() -> list:
    return [candle(TRADE_MS + i * 60_000) for i in range(5)]


def make_controller(fetcher):
    surfaces: list[FakeSurface] = []
    errors: list[Exception] = []

    def factory(container, interval):
        surface = FakeSurface(container)
        surface.interval = interval
        surfaces.append(surface)
        return surface

    controller = ChartController(
        [trade(TRADE_MS)],
        "btc",
        "1m",
        fetcher,
        factory,
        on_error=errors.append,
        delay_ms=5,
        clock=lambda: NOW_MS,
    )
    return controller, surfaces, errors


def test_load_mounts_and_renders_first_page() -> None:
    fetcher = StubFetcher([first_page()])
    controller, surfaces, _ = make_controller(fetcher)

    bars = asyncio.run(controller.load("container"))

    assert [b.time for b in bars] == [BASE + i * 60 for i in range(5)]
    assert fetcher.calls == [("BTCUSDT", "1m", TRADE_MS - 50 * 60_000, TRADE_MS + 50 * 60_000)]
    (surface,) = surfaces
    assert surface.container == "container"
    assert surface.interval == "1m"
    assert len(surface.data[-1]) == 5
    assert len(surface.marker_sets[-1]) == 1
    assert surface.fits == 2


def test_scrolling_past_left_edge_loads_and_renders_older_bars() -> None:
    fetcher = StubFetcher([first_page(), [candle(TRADE_MS - 60_000)]])
    controller, surfaces, _ = make_controller(fetcher)

    async def scenario():
        await controller.load(None)
        surfaces[0].emit(VISIBLE_RANGE, -1.0, 3.0)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert fetcher.calls[1] == ("BTCUSDT", "1m", TRADE_MS - 5 * 60_000, TRADE_MS)
    assert controller.bars[0].time == BASE - 60
    assert len(surfaces[0].data[-1]) == 6


def test_later_fetch_failure_is_reported_and_window_kept() -> None:
    class FailingAfterFirst(StubFetcher):
        async def __call__(self, *args):
            if self.calls:
                self.error = CandleSourceError("rate limited", status_code=429)
            return await super().__call__(*args)

    controller, surfaces, errors = make_controller(FailingAfterFirst([first_page()]))

    async def scenario():
        await controller.load(None)
        surfaces[0].emit(VISIBLE_RANGE, 0.0, 7.0)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert len(errors) == 1
    assert errors[0].status_code == 429
    assert len(controller.bars) == 5


def test_initial_load_failure_propagates_while_mounted() -> None:
    controller, _, _ = make_controller(StubFetcher(error=CandleSourceError("down")))
    with pytest.raises(CandleSourceError):
        asyncio.run(controller.load(None))


def test_teardown_during_initial_load_discards_result() -> None:
    holder = {}

    class UnmountingFetcher(StubFetcher):
        async def __call__(self, *args):
            holder["controller"].unmount()
            return await super().__call__(*args)

    controller, surfaces, _ = make_controller(UnmountingFetcher([first_page()]))
    holder["controller"] = controller

    assert asyncio.run(controller.load(None)) is None
    assert surfaces[0].remove_calls == 1
    assert len(surfaces[0].data) == 1
    assert len(controller.bars) == 0


def test_configure_remounts_with_new_interval() -> None:
    fetcher = StubFetcher([first_page(), first_page()])
    controller, surfaces, _ = make_controller(fetcher)

    async def scenario():
        await controller.load(None)
        old_lifecycle, old_scheduler = controller.lifecycle, controller.scheduler
        controller.configure(interval="1h")
        assert controller.scheduler is None
        await controller.load(None)
        return old_lifecycle, old_scheduler

    old_lifecycle, old_scheduler = asyncio.run(scenario())

    assert len(surfaces) == 2
    assert surfaces[0].remove_calls == 1
    assert surfaces[1].interval == "1h"
    assert old_lifecycle.live_surface() is None
    assert controller.lifecycle.live_surface() is surfaces[1]
    assert controller.scheduler is not old_scheduler
    assert controller.scheduler.interval == "1h"
    assert fetcher.calls[-1][1] == "1h"
