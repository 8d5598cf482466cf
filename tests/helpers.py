import asyncio
from typing import List, Optional, Sequence

from components.chart.surface import ChartSurface
from schemas.chart import Bar, Candle, Marker, Trade


def bar(t: int, price: float = 100.0) -> Bar:
    return Bar(time=t, open=price, high=price + 1, low=price - 1, close=price)


def bars(times: Sequence[int]) -> List[Bar]:
    return [bar(t) for t in times]


def candle(t_ms: int, price: float = 100.0) -> Candle:
    return Candle(time=t_ms, open=price, high=price + 1, low=price - 1, close=price, volume=1.0)


def trade(time_ms: int, side: str = "LONG", reason: str = "ENTRY", pnl: Optional[float] = None) -> Trade:
    return Trade(time=time_ms, price=100.0, reason=reason, quantity=0.5, side=side, pnl=pnl)


class StubFetcher:
    """Candle source stub recording every call."""

    def __init__(self, pages: Optional[List[List[Candle]]] = None, error: Optional[Exception] = None) -> None:
        self.pages = list(pages or [])
        self.error = error
        self.calls: List[tuple[str, str, int, int]] = []

    async def __call__(self, symbol: str, interval: str, start_ms: int, end_ms: int) -> List[Candle]:
        self.calls.append((symbol, interval, start_ms, end_ms))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.pages.pop(0) if self.pages else []


class FakeSurface(ChartSurface):
    """Records what the chart core does with the rendering surface."""

    def __init__(self, container=None, fail_on_remove: bool = False) -> None:
        super().__init__()
        self.container = container
        self.fail_on_remove = fail_on_remove
        self.data: List[tuple[Bar, ...]] = []
        self.marker_sets: List[List[Marker]] = []
        self.fits = 0
        self.resizes = 0
        self.remove_calls = 0
        self.subscriptions_at_remove: Optional[int] = None
        self.on_remove = None

    def set_data(self, bars) -> None:
        self.data.append(tuple(bars))

    def set_markers(self, markers) -> None:
        self.marker_sets.append(list(markers))

    def fit_content(self) -> None:
        self.fits += 1

    def resize(self) -> None:
        self.resizes += 1

    def remove(self) -> None:
        self.remove_calls += 1
        self.subscriptions_at_remove = sum(len(h) for h in self._handlers.values())
        if self.on_remove is not None:
            self.on_remove()
        if self.fail_on_remove:
            raise RuntimeError("chart already disposed")
        super().remove()
