from __future__ import annotations

import logging
from typing import Optional

from nicegui import ui
from starlette.requests import Request

from clients.backtest_client import BacktestClient
from clients.candle_client import CandleClient
from components.chart.backtest_chart import BacktestChart
from schemas.backtest import BacktestResultDetail
from static.style import add_style, add_user_style, change_colors
from utils.intervals import INTERVAL_CHOICES, format_symbol

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = "1h"


class BacktestResultPage:
    """
    Backtest result page: metrics summary and the candlestick chart of the
    traded symbol with entry/exit markers.

    Notes:
    - The result (with its full trade list) is loaded once from the backtest service.
    - Changing the interval remounts the chart from scratch.
    - UI is built lazily via `ui.timer(..., self._init_async, once=True)`
    """
    def __init__(self, request: Request, result_id: str, symbol: str, interval: str) -> None:
        logger.info(f"BacktestResultPage: init result_id={result_id!r} symbol={symbol!r} interval={interval!r}")

        self.request = request
        self.result_id = result_id
        self.state = {
            "symbol": symbol,
            "interval": interval if interval in INTERVAL_CHOICES else DEFAULT_INTERVAL,
        }

        self.backtest_client = BacktestClient()
        self.candle_client = CandleClient()

        self.detail: Optional[BacktestResultDetail] = None
        self.chart: Optional[BacktestChart] = None

        self.header_card = None
        self.summary_card = None
        self.chart_card = None

        ui.timer(0.01, self._init_async, once=True)

    async def _init_async(self) -> None:
        self.build_ui()

        self.detail = await self.backtest_client.get_result_detail(self.result_id)
        if self.detail is None:
            self.render_error("Backtest result not found or backtest service unavailable.")
            return

        self.state["symbol"] = self.state["symbol"] or self.detail.symbol or ""
        if not self.state["symbol"]:
            self.render_error("Backtest result has no symbol.")
            return

        await self.render_header()
        self.render_summary()
        self.render_chart()

    def build_ui(self) -> None:
        with ui.column().classes("w-[100vw] gap-1"):
            self.header_card = ui.card().classes("elevated-card q-pa-sm q-mb-md") \
                .style("width:min(1600px,98vw); margin:0 auto 1px;")
            self.summary_card = ui.card().classes("elevated-card q-pa-sm q-mb-md") \
                .style("width:min(1600px,98vw); margin:0 auto 1px;")
            self.chart_card = ui.card().classes("elevated-card q-pa-sm q-mb-md") \
                .style("width:min(1600px,98vw); margin:0 auto 1px;")

        with self.header_card:
            ui.label("Backtest result").classes("header-title").style("padding: 6px 18px;")

    def render_error(self, message: str) -> None:
        logger.warning(f"BacktestResultPage: {message} (result_id={self.result_id!r})")
        self.summary_card.clear()
        self.chart_card.set_visibility(False)
        with self.summary_card:
            ui.label(message).classes("text-negative text-body1 q-pa-md")

    async def render_header(self) -> None:
        symbol = format_symbol(self.state["symbol"])
        price = await self.candle_client.get_latest_price(symbol)

        self.header_card.clear()
        with self.header_card:
            with ui.row().classes("items-center justify-between w-full").style("padding: 6px 18px;"):
                ui.label(f"Backtest result: {symbol}").classes("header-title")
                ui.label(f"Last price: {price:,.4f}" if price is not None else "Last price: n/a") \
                    .classes("text-grey-6 text-sm")

    def render_summary(self) -> None:
        m = self.detail.metrics
        kpis = [
            ("Trades", f"{m.total_trades}", None),
            ("Win rate", f"{m.win_rate:.2f}%", None),
            ("Total PnL", f"{m.total_pnl:,.2f}", m.total_pnl),
            ("ROI", f"{m.total_roi:.2f}%", m.total_roi),
            ("Max drawdown", f"{m.mdd:.2f}%", None),
        ]
        self.summary_card.clear()
        with self.summary_card:
            with ui.row().classes("w-full justify-around items-center"):
                for label, value, sign in kpis:
                    with ui.column().classes("items-center gap-0"):
                        ui.label(label).classes("muted")
                        cls = "kpi-value"
                        if sign is not None:
                            cls += " kpi-positive" if sign >= 0 else " kpi-negative"
                        ui.label(value).classes(cls)

    def render_chart(self) -> None:
        self.chart_card.clear()
        with self.chart_card:
            with ui.row().classes("items-center justify-between w-full").style("padding: 0 18px;"):
                ui.label("Trades chart").classes("text-subtitle1")
                interval = ui.select(
                    INTERVAL_CHOICES,
                    value=self.state["interval"],
                    label="Interval",
                ).props("dense outlined options-dense").classes("w-[160px]")

            self.chart = BacktestChart(
                trades=self.detail.sorted_trades,
                symbol=self.state["symbol"],
                interval=self.state["interval"],
                candle_client=self.candle_client,
            )

        def _set_interval(e):
            val = e.sender.value or DEFAULT_INTERVAL
            if val == self.state["interval"]:
                return
            logger.info(f"BacktestResultPage: interval changed -> {val!r}")
            self.state["interval"] = val
            self.chart.remount(interval=val)

        interval.on("update:model-value", _set_interval)


@ui.page("/backtest/results/{result_id}")
async def backtest_result_route(request: Request, result_id: str, symbol: str = "", interval: str = DEFAULT_INTERVAL):
    change_colors()
    add_style()
    add_user_style()
    BacktestResultPage(request, result_id, symbol, interval)
