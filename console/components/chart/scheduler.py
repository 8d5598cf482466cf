from typing import Awaitable, Callable, Optional, Sequence
import asyncio
import logging

from config import settings
from exceptions import CandleSourceError
from schemas.chart import Bar, Candle, LoadRequest, Side, Trade
from utils.dates import now_ms
from utils.intervals import format_symbol, interval_to_ms
from .window import DataWindow

logger = logging.getLogger(__name__)

CandleFetcher = Callable[[str, str, int, int], Awaitable[Sequence[Candle]]]


def initial_range(
    trades: Sequence[Trade],
    interval: str,
    now: int,
    loaded_bars: int,
) -> Optional[tuple[int, int]]:
    """
    Compute the first fetch range of a chart.

    With trades the range is centered on the first trade, otherwise it ends
    at `now`. The end is clamped to `now`.

    Args:
        trades: Trades of the result, ascending by time.
        interval: Interval code.
        now: Current time in epoch milliseconds.
        loaded_bars: Number of bars to load.

    Returns:
        (start_ms, end_ms) or None when the range starts in the future.
    """
    interval_ms = interval_to_ms(interval)
    if trades:
        start = int(trades[0].time) - interval_ms * loaded_bars // 2
    else:
        start = now - interval_ms * loaded_bars
    end = start + interval_ms * loaded_bars

    if start >= now:
        return None
    return start, min(end, now)


class FetchScheduler:
    """
    Trailing-edge debounce between the viewport tracker and the candle source.

    Only the latest submitted LoadRequest survives the quiet period; once it
    settles exactly one fetch is dispatched for it. Every dispatched fetch
    gets a sequence number and its result is merged into the window only if
    no later fetch was dispatched in the meantime.

    An edge whose fetch came back empty is marked exhausted for that exact
    range and is not requested again until the range moves.
    """
    def __init__(
        self,
        window: DataWindow,
        fetcher: CandleFetcher,
        symbol: str,
        interval: str,
        *,
        on_window_changed: Callable[[tuple[Bar, ...]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        is_disposed: Callable[[], bool] = lambda: False,
        delay_ms: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.window = window
        self.fetcher = fetcher
        self.symbol = format_symbol(symbol)
        self.interval = interval
        self.interval_ms = interval_to_ms(interval)
        self.on_window_changed = on_window_changed
        self.on_error = on_error
        self.is_disposed = is_disposed
        self.delay: float = (delay_ms if delay_ms is not None else settings.CHART_DEBOUNCE_MS) / 1000
        self.clock = clock

        self._pending: Optional[LoadRequest] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()
        self._seq = 0
        self._exhausted: dict[Side, tuple[int, int]] = {}

    @property
    def pending(self) -> Optional[LoadRequest]:
        return self._pending

    @property
    def dispatched(self) -> int:
        return self._seq

    def submit(self, request: LoadRequest) -> None:
        """Replace the pending request and restart the quiet period."""
        self._pending = request
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().call_later(self.delay, self._settle)

    def cancel(self) -> None:
        """Drop the pending request. Fetches already dispatched keep running."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = None

    def _settle(self) -> None:
        self._timer = None
        request, self._pending = self._pending, None
        if request is None:
            return
        task = asyncio.create_task(self.dispatch(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def compute_range(self, request: LoadRequest) -> Optional[tuple[int, int]]:
        """
        Translate an edge request into a (start_ms, end_ms) fetch range.

        Returns None when the window is empty or the range starts at or
        after the current time (no future data to load).
        """
        span = self.interval_ms * request.bars_to_load
        if request.side == Side.LEFT:
            edge = self.window.first
            if edge is None:
                return None
            start = edge.time * 1000 - span
        else:
            edge = self.window.last
            if edge is None:
                return None
            start = edge.time * 1000 + 1
        end = start + span

        now = self.clock()
        if start >= now:
            logger.info(f"FetchScheduler: no more data to load for side={request.side} (start={start} >= now={now})")
            return None
        return start, min(end, now)

    def _range_key(self, start: int, end: int) -> tuple[int, int]:
        return start, end // self.interval_ms

    def is_exhausted(self, request: LoadRequest) -> bool:
        rng = self.compute_range(request)
        return rng is not None and self._exhausted.get(request.side) == self._range_key(*rng)

    async def dispatch(self, request: LoadRequest) -> bool:
        """
        Fetch the bars for `request` and merge them into the window.

        Returns:
            True if the window was changed.
        """
        rng = self.compute_range(request)
        if rng is None:
            return False
        start, end = rng
        key = self._range_key(start, end)
        if self._exhausted.get(request.side) == key:
            logger.debug(f"FetchScheduler: side={request.side} exhausted for range {rng}, skipping")
            return False

        self._seq += 1
        seq = self._seq
        logger.info(
            f"FetchScheduler: dispatch #{seq} {self.symbol} {self.interval} side={request.side} "
            f"bars={request.bars_to_load} range=({start}, {end})"
        )

        try:
            candles = await self.fetcher(self.symbol, self.interval, start, end)
        except Exception as ex:
            if self.is_disposed():
                logger.debug(f"FetchScheduler: fetch #{seq} failed after disposal: {ex!r}")
                return False
            if seq != self._seq:
                logger.debug(f"FetchScheduler: ignoring failure of stale fetch #{seq} (latest #{self._seq}): {ex!r}")
                return False
            if isinstance(ex, CandleSourceError):
                logger.warning(f"FetchScheduler: fetch #{seq} failed: {ex}")
            else:
                logger.exception(f"FetchScheduler: fetch #{seq} failed unexpectedly")
            if self.on_error is not None:
                self.on_error(ex)
            return False

        if self.is_disposed():
            logger.debug(f"FetchScheduler: discarding fetch #{seq}, chart disposed")
            return False
        if seq != self._seq:
            logger.debug(f"FetchScheduler: discarding stale fetch #{seq} (latest #{self._seq})")
            return False
        if not candles:
            logger.info(f"FetchScheduler: empty page for side={request.side}, marking edge exhausted")
            self._exhausted[request.side] = key
            return False

        bars = [Bar.from_candle(c) for c in candles]
        window = self.window.extend(bars, request.side)
        self.on_window_changed(window)
        return True

    async def load_initial(self, trades: Sequence[Trade], visible_bars: Optional[float] = None) -> tuple[Bar, ...]:
        """
        Populate the window with the first page of bars.

        Errors from the candle source propagate to the caller.

        Args:
            trades: Trades of the result, ascending by time.
            visible_bars: Visible bar count if already known.

        Returns:
            The initialized window (unchanged if the range lies in the future
            or the chart was disposed meanwhile).
        """
        loaded = settings.CHART_INITIAL_BARS
        if visible_bars:
            loaded = max(1, int(min(loaded, visible_bars)))
        rng = initial_range(trades, self.interval, self.clock(), loaded)
        if rng is None:
            logger.info("FetchScheduler.load_initial: start is in the future, nothing to load")
            return self.window.bars

        self._seq += 1
        seq = self._seq
        candles = await self.fetcher(self.symbol, self.interval, *rng)
        if self.is_disposed() or seq != self._seq:
            logger.debug("FetchScheduler.load_initial: discarding result")
            return self.window.bars

        window = self.window.initialize(Bar.from_candle(c) for c in candles)
        logger.info(f"FetchScheduler.load_initial: {len(window)} bars for {self.symbol} {self.interval}")
        return window
