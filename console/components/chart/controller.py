from typing import Any, Callable, Optional, Sequence
import logging

from schemas.chart import Bar, LoadRequest, Trade
from utils.dates import now_ms
from .lifecycle import ChartLifecycle
from .markers import MarkerProjector
from .scheduler import CandleFetcher, FetchScheduler
from .surface import ChartSurface
from .viewport import ViewportTracker
from .window import DataWindow

logger = logging.getLogger(__name__)


class ChartController:
    """
    Wire window, tracker, scheduler, projector and lifecycle of one chart.

    Every `load()` builds a fresh set of parts for the current symbol and
    interval; `configure()` tears the running chart down first. Asynchronous
    work is bound to the lifecycle and generation it was started for.
    """
    def __init__(
        self,
        trades: Sequence[Trade],
        symbol: str,
        interval: str,
        fetcher: CandleFetcher,
        surface_factory: Callable[[Any, str], ChartSurface],
        *,
        on_error: Optional[Callable[[Exception], None]] = None,
        on_pointer_move: Optional[Callable[[Optional[int]], None]] = None,
        on_teardown: Optional[Callable[[], None]] = None,
        delay_ms: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.symbol = symbol
        self.interval = interval
        self.fetcher = fetcher
        self.surface_factory = surface_factory
        self.on_error = on_error
        self.on_pointer_move = on_pointer_move
        self.on_teardown = on_teardown
        self.delay_ms = delay_ms
        self.clock = clock
        self.projector = MarkerProjector(sorted(trades, key=lambda t: t.time))

        self.window: Optional[DataWindow] = None
        self.tracker: Optional[ViewportTracker] = None
        self.scheduler: Optional[FetchScheduler] = None
        self.lifecycle: Optional[ChartLifecycle] = None

    @property
    def bars(self) -> tuple[Bar, ...]:
        return self.window.bars if self.window is not None else ()

    def _build(self) -> None:
        interval = self.interval
        self.window = DataWindow()
        self.tracker = ViewportTracker(on_request=self.submit)
        self.lifecycle = ChartLifecycle(
            lambda container: self.surface_factory(container, interval),
            self.window,
            self.projector,
            on_visible_range=self.tracker.on_visible_range_changed,
            on_pointer_move=self.on_pointer_move,
            on_teardown=self.on_teardown,
        )

    async def load(self, container: Any) -> Optional[tuple[Bar, ...]]:
        """
        Mount a new chart in `container` and load its first page of bars.

        Returns:
            The loaded window, or None when the chart was torn down meanwhile.

        Raises:
            Whatever the candle source raised for the first page, while the
            chart is still mounted.
        """
        self._build()
        lifecycle = self.lifecycle
        token = lifecycle.mount(container)
        self.scheduler = FetchScheduler(
            self.window,
            self.fetcher,
            self.symbol,
            self.interval,
            on_window_changed=lambda _bars: lifecycle.render(token),
            on_error=self.on_error,
            is_disposed=lambda: lifecycle.live_surface(token) is None,
            delay_ms=self.delay_ms,
            clock=self.clock,
        )

        try:
            bars = await self.scheduler.load_initial(self.projector.trades, self.tracker.visible_bars)
        except Exception:
            if lifecycle.live_surface(token) is None:
                logger.debug("ChartController: initial load failed after teardown")
                return None
            raise

        if lifecycle.live_surface(token) is None:
            logger.debug("ChartController: chart disposed during initial load")
            return None
        lifecycle.render(token, fit=True)
        return bars

    def submit(self, request: LoadRequest) -> None:
        if self.scheduler is not None:
            self.scheduler.submit(request)

    def unmount(self) -> None:
        if self.scheduler is not None:
            self.scheduler.cancel()
        if self.lifecycle is not None:
            self.lifecycle.unmount()

    def configure(self, symbol: Optional[str] = None, interval: Optional[str] = None) -> None:
        """Tear the chart down and switch to another symbol/interval."""
        self.unmount()
        self.symbol = symbol or self.symbol
        self.interval = interval or self.interval
        self.scheduler = None
        logger.info(f"ChartController: configured symbol={self.symbol!r} interval={self.interval!r}")
