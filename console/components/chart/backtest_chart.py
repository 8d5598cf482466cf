from nicegui import ui
from typing import Optional, Sequence
import logging

from clients.candle_client import CandleClient
from config import settings
from schemas.chart import Bar, Trade
from .controller import ChartController
from .markers import LEGEND
from .surface import EChartSurface

logger = logging.getLogger(__name__)


class BacktestChart:
    """
    Candlestick chart of a backtest result with trade markers.

    The chart starts with a page of bars around the first trade and loads
    more bars lazily when the user scrolls or zooms past either edge.

    Changing the symbol or interval tears the chart down and mounts a new
    one; nothing is swapped on a live chart.
    """
    def __init__(
        self,
        trades: Sequence[Trade],
        symbol: str,
        interval: str,
        candle_client: Optional[CandleClient] = None,
        height_px: Optional[int] = None,
    ) -> None:
        logger.info(f"BacktestChart: init symbol={symbol!r} interval={interval!r} trades={len(trades)}")

        self.height_px = height_px or settings.CHART_HEIGHT_PX
        self.candle_client = candle_client or CandleClient()

        with ui.element("div").classes("relative w-full").style(f"min-height: {self.height_px}px;") as self.root:
            self.render_legend()
            self.tooltip = ui.label("").classes("absolute text-white text-xs q-pa-sm rounded-borders").style(
                "top: 8px; right: 80px; z-index: 1001; white-space: pre-line; "
                "background: rgba(0,0,0,.8); pointer-events: none;"
            )
            self.tooltip.set_visibility(False)
            with ui.row().classes("absolute-center items-center gap-2").style("z-index: 1002;") as self.status_row:
                self.spinner = ui.spinner(size="lg")
                self.status_label = ui.label("").classes("text-grey-7")
            self.container = ui.element("div").classes("w-full")

        self.controller = ChartController(
            trades,
            symbol,
            interval,
            self.candle_client.fetch_candles,
            lambda container, iv: EChartSurface(container, iv, self.height_px),
            on_error=self._on_error,
            on_pointer_move=self._on_pointer_move,
            on_teardown=self._hide_tooltip,
        )

        ui.context.client.on_disconnect(self.unmount)
        ui.timer(0.01, self._init_async, once=True)

    def render_legend(self) -> None:
        with ui.column().classes("absolute gap-0 q-pa-sm rounded-borders shadow-1").style(
            "top: 8px; left: 70px; z-index: 1000; background: rgba(255,255,255,.9); max-width: 200px;"
        ):
            ui.label("Trade Markers:").classes("text-caption text-bold")
            for text, color in LEGEND:
                ui.label(text).classes("text-caption").style(f"color: {color};")

    def _set_status(self, text: str = "", loading: bool = False) -> None:
        self.spinner.set_visibility(loading)
        self.status_label.text = text
        self.status_row.set_visibility(loading or bool(text))

    async def _init_async(self) -> None:
        """
        Mount a fresh chart and load its first page of bars.
        """
        c = self.controller
        self._set_status("", loading=True)
        try:
            bars = await c.load(self.container)
        except Exception as ex:
            logger.exception(f"BacktestChart: initial load failed for {c.symbol} {c.interval}")
            self._set_status(f"Failed to load chart data: {ex}")
            return

        if bars is None:
            return
        self._set_status("" if bars else "No chart data")

    def _on_error(self, ex: Exception) -> None:
        with self.root:
            ui.notify(f"Failed to load more candles: {ex}", type="warning")

    def _on_pointer_move(self, time_s: Optional[int]) -> None:
        text = self.controller.projector.tooltip_at(time_s) if time_s is not None else None
        if text:
            self.tooltip.text = text
            self.tooltip.set_visibility(True)
        else:
            self._hide_tooltip()

    def _hide_tooltip(self) -> None:
        self.tooltip.set_visibility(False)

    @property
    def bars(self) -> tuple[Bar, ...]:
        return self.controller.bars

    def unmount(self) -> None:
        self.controller.unmount()

    def remount(self, symbol: Optional[str] = None, interval: Optional[str] = None) -> None:
        """
        Tear the chart down and mount a new one for another symbol/interval.
        """
        logger.info(f"BacktestChart: remount symbol={symbol!r} interval={interval!r}")
        self.controller.configure(symbol, interval)
        with self.root:
            ui.timer(0.01, self._init_async, once=True)
