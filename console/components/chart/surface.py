from nicegui import ui
from typing import Any, Callable, Optional, Sequence
from bisect import bisect_right
import json
import logging

from config import settings
from schemas.chart import Bar, Marker
from utils.dates import fmt_bar_time
from utils.intervals import interval_to_ms

logger = logging.getLogger(__name__)

VISIBLE_RANGE = "visible_range"
RESIZE = "resize"
POINTER_MOVE = "pointer_move"

UP_COLOR = "#26a69a"
DOWN_COLOR = "#ef5350"
GRID_COLOR = "#f0f0f0"


class ChartSurface:
    """
    Rendering surface the chart core talks to.

    Subclasses render bars and markers; this base class keeps the event
    subscriptions so that the lifecycle can wire and unwire them uniformly:

    - VISIBLE_RANGE handlers receive `(from_, to)` logical indices,
    - RESIZE handlers receive no arguments,
    - POINTER_MOVE handlers receive the hovered bar time in seconds or None.
    """
    def __init__(self) -> None:
        self._handlers: dict[str, list[Callable]] = {}
        self.removed = False

    def subscribe(self, event: str, handler: Callable) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def subscriptions(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers.get(event, [])):
            handler(*args)

    def on_visible_range_change(self, handler: Callable[[float, float], None]) -> None:
        self.subscribe(VISIBLE_RANGE, handler)

    def off_visible_range_change(self, handler: Callable[[float, float], None]) -> None:
        self.unsubscribe(VISIBLE_RANGE, handler)

    def on_resize(self, handler: Callable[[], None]) -> None:
        self.subscribe(RESIZE, handler)

    def off_resize(self, handler: Callable[[], None]) -> None:
        self.unsubscribe(RESIZE, handler)

    def on_pointer_move(self, handler: Callable[[Optional[int]], None]) -> None:
        self.subscribe(POINTER_MOVE, handler)

    def off_pointer_move(self, handler: Callable[[Optional[int]], None]) -> None:
        self.unsubscribe(POINTER_MOVE, handler)

    def set_data(self, bars: Sequence[Bar]) -> None:
        raise NotImplementedError

    def set_markers(self, markers: Sequence[Marker]) -> None:
        raise NotImplementedError

    def fit_content(self) -> None:
        raise NotImplementedError

    def resize(self) -> None:
        raise NotImplementedError

    def remove(self) -> None:
        self._handlers.clear()
        self.removed = True


def bar_index_for(times: Sequence[int], time_s: int, interval_s: int) -> Optional[int]:
    """
    Index of the bar containing `time_s`, or None if it lies outside the bars.

    Args:
        times: Ascending bar open times (seconds).
        time_s: Point in time (seconds).
        interval_s: Bar length (seconds).
    """
    idx = bisect_right(times, time_s) - 1
    if idx < 0 or time_s >= times[idx] + interval_s:
        return None
    return idx


def logical_range(args: dict, length: int) -> Optional[tuple[float, float]]:
    """
    Convert an ECharts `datazoom` event into logical bar indices.

    The slider cannot scroll past the data, so touching its left or right end
    is reported as a range reaching beyond the first or last bar.
    """
    if length <= 0:
        return None
    payload = (args.get("batch") or [args])[0]
    start = payload.get("start")
    end = payload.get("end")
    if start is None or end is None:
        return None

    last = length - 1
    from_ = float(start) / 100 * last
    to = float(end) / 100 * last
    if float(start) <= 0:
        from_ -= 1
    if float(end) >= 100:
        to = length + 1
    return from_, to


def visible_times(times: Sequence[int], zoom: tuple[float, float]) -> Optional[tuple[int, int]]:
    """First and last visible bar time for a dataZoom `(start, end)` in percent."""
    if not times:
        return None
    last = len(times) - 1
    lo = int(round(zoom[0] / 100 * last))
    hi = int(round(zoom[1] / 100 * last))
    return times[max(0, lo)], times[min(last, hi)]


def zoom_for_times(times: Sequence[int], visible: tuple[int, int]) -> tuple[int, int, tuple[float, float]]:
    """
    Bar indices and dataZoom percentages that keep `visible` on screen after
    the bars changed.

    Returns:
        (start index, end index, (start %, end %)).
    """
    last = len(times) - 1
    lo = min(bisect_right(times, visible[0] - 1), max(last, 0))
    hi = max(lo, bisect_right(times, visible[1]) - 1)
    if last <= 0:
        return lo, hi, (0, 100)
    return lo, hi, (lo / last * 100, hi / last * 100)


class EChartSurface(ChartSurface):
    """
    ChartSurface rendered with NiceGUI's ECharts element.

    Bars go into a candlestick series on a category axis; markers become
    `markPoint` entries snapped to the bar that contains them. Markers outside
    the loaded bars are kept but not drawn.
    """
    def __init__(self, container: ui.element, interval: str, height_px: Optional[int] = None) -> None:
        super().__init__()
        self.interval = interval
        self.interval_s = interval_to_ms(interval) // 1000
        self._bars: list[Bar] = []
        self._times: list[int] = []
        self._markers: list[Marker] = []
        self._zoom: tuple[float, float] = (0, 100)

        height = height_px or settings.CHART_HEIGHT_PX
        with container:
            self.chart = ui.echart(self._build_options()).classes("w-full").style(f"height: {height}px;")

        self.chart.on("chart:datazoom", self._on_datazoom)
        self.chart.on("chart:updateAxisPointer", self._on_axis_pointer)
        ui.on(f"chart_resize_{self.chart.id}", lambda _: self.emit(RESIZE))
        ui.run_javascript(
            f"""
            window.__chartResize = window.__chartResize || {{}};
            window.__chartResize[{self.chart.id}] = () => emitEvent("chart_resize_{self.chart.id}");
            window.addEventListener("resize", window.__chartResize[{self.chart.id}]);
            """
        )
        logger.info(f"EChartSurface: created chart c{self.chart.id} interval={interval!r}")

    def _build_options(self) -> dict:
        return {
            "animation": False,
            "tooltip": {"trigger": "axis", "axisPointer": {"type": "cross"}},
            "axisPointer": {"link": [{"xAxisIndex": "all"}]},
            "grid": {"left": 60, "right": 25, "top": 30, "bottom": 70},
            "xAxis": {
                "type": "category",
                "data": [],
                "boundaryGap": True,
                "axisLine": {"lineStyle": {"color": GRID_COLOR}},
                "axisLabel": {"hideOverlap": True, "color": "#333"},
            },
            "yAxis": {
                "scale": True,
                "position": "right",
                "splitLine": {"show": True, "lineStyle": {"color": GRID_COLOR}},
            },
            "dataZoom": [
                {"type": "inside", "start": 0, "end": 100},
                {"type": "slider", "start": 0, "end": 100},
            ],
            "series": [
                {
                    "name": "candles",
                    "type": "candlestick",
                    "data": [],
                    "itemStyle": {
                        "color": UP_COLOR,
                        "color0": DOWN_COLOR,
                        "borderColor": UP_COLOR,
                        "borderColor0": DOWN_COLOR,
                    },
                    "markPoint": {"data": []},
                }
            ],
        }

    def _mark_points(self) -> list[dict]:
        points = []
        for m in self._markers:
            idx = bar_index_for(self._times, m.time, self.interval_s)
            if idx is None:
                continue
            bar = self._bars[idx]
            below = m.position == "belowBar"
            points.append({
                "name": m.text,
                "coord": [idx, bar.low if below else bar.high],
                "symbol": "triangle" if m.shape.startswith("arrow") else m.shape,
                "symbolSize": 10 * m.size,
                "symbolRotate": 0 if m.shape == "arrowUp" else 180,
                "symbolOffset": [0, 14 if below else -14],
                "itemStyle": {"color": m.color},
                "label": {
                    "show": True,
                    "formatter": m.text,
                    "color": m.color,
                    "fontWeight": "bold",
                    "position": "bottom" if below else "top",
                },
            })
        return points

    def set_data(self, bars: Sequence[Bar]) -> None:
        visible = visible_times(self._times, self._zoom)
        self._bars = list(bars)
        self._times = [b.time for b in self._bars]

        opts = self.chart.options
        opts["xAxis"]["data"] = [fmt_bar_time(b.time, self.interval) for b in self._bars]
        opts["series"][0]["data"] = [[b.open, b.close, b.low, b.high] for b in self._bars]
        opts["series"][0]["markPoint"]["data"] = self._mark_points()

        if visible and self._times:
            lo, hi, self._zoom = zoom_for_times(self._times, visible)
            for dz in opts["dataZoom"]:
                dz.pop("start", None)
                dz.pop("end", None)
                dz["startValue"] = lo
                dz["endValue"] = hi
        self.chart.update()

    def set_markers(self, markers: Sequence[Marker]) -> None:
        self._markers = list(markers)
        self.chart.options["series"][0]["markPoint"]["data"] = self._mark_points()
        self.chart.update()

    def fit_content(self) -> None:
        self._zoom = (0, 100)
        for dz in self.chart.options["dataZoom"]:
            dz.pop("startValue", None)
            dz.pop("endValue", None)
            dz["start"], dz["end"] = 0, 100
        self.chart.update()

    def resize(self) -> None:
        self.chart.run_chart_method("resize")

    def remove(self) -> None:
        super().remove()
        self.chart.client.run_javascript(
            f"""
            if (window.__chartResize && window.__chartResize[{self.chart.id}]) {{
                window.removeEventListener("resize", window.__chartResize[{self.chart.id}]);
                delete window.__chartResize[{self.chart.id}];
            }}
            """
        )
        self.chart.delete()
        logger.info(f"EChartSurface: removed chart c{self.chart.id}")

    def _on_datazoom(self, e) -> None:
        args = e.args if isinstance(e.args, dict) else {}
        payload = (args.get("batch") or [args])[0]
        if payload.get("start") is not None and payload.get("end") is not None:
            self._zoom = (float(payload["start"]), float(payload["end"]))
        rng = logical_range(args, len(self._bars))
        if rng is None:
            logger.debug(f"EChartSurface: ignoring datazoom payload {json.dumps(args)[:200]}")
            return
        self.emit(VISIBLE_RANGE, *rng)

    def _on_axis_pointer(self, e) -> None:
        args = e.args if isinstance(e.args, dict) else {}
        infos = [i for i in (args.get("axesInfo") or []) if i.get("axisDim") == "x"]
        if not infos or not self._times:
            self.emit(POINTER_MOVE, None)
            return
        try:
            idx = int(infos[0].get("value"))
        except (TypeError, ValueError):
            self.emit(POINTER_MOVE, None)
            return
        if 0 <= idx < len(self._times):
            self.emit(POINTER_MOVE, self._times[idx])
        else:
            self.emit(POINTER_MOVE, None)
