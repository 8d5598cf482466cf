from typing import Iterable, Optional, Sequence
import logging

from config import settings
from schemas.chart import Marker, Trade
from utils.dates import ms_to_seconds

logger = logging.getLogger(__name__)

LONG_COLOR = "#9c27b0"
SHORT_COLOR = "#f57f17"

OPEN_REASONS = ("ENTRY", "DCA")
CLOSE_REASONS = ("EXIT", "CUTLOSS", "MAX LOSS")
OPEN_HEDGE_REASONS = ("ENTRY HEDGE", "DCA HEDGE")
CLOSE_HEDGE_REASONS = ("EXIT HEDGE", "CUT LOSS HEDGE")

# (is_long, is_open) -> (color, shape, text)
MARKER_STYLES: dict[tuple[bool, bool], tuple[str, str, str]] = {
    (True, True): (LONG_COLOR, "arrowUp", "B"),
    (True, False): (LONG_COLOR, "arrowDown", "S"),
    (False, True): (SHORT_COLOR, "arrowDown", "S"),
    (False, False): (SHORT_COLOR, "arrowUp", "B"),
}

LEGEND: list[tuple[str, str]] = [
    ("B Long Open", LONG_COLOR),
    ("S Long Close", LONG_COLOR),
    ("S Short Open", SHORT_COLOR),
    ("B Short Close", SHORT_COLOR),
]


def is_open_reason(reason: str) -> bool:
    return reason in OPEN_REASONS or any(r in reason for r in OPEN_HEDGE_REASONS)


def is_close_reason(reason: str) -> bool:
    return reason in CLOSE_REASONS or any(r in reason for r in CLOSE_HEDGE_REASONS)


def is_marked(trade: Trade) -> bool:
    return is_open_reason(trade.reason) or is_close_reason(trade.reason)


def marker_for(trade: Trade) -> Marker:
    is_long = trade.is_long
    color, shape, text = MARKER_STYLES[(is_long, is_open_reason(trade.reason))]
    return Marker(
        time=ms_to_seconds(trade.time),
        position="belowBar" if is_long else "aboveBar",
        color=color,
        shape=shape,
        text=text,
        trade=trade,
    )


def project(trades: Iterable[Trade]) -> list[Marker]:
    """
    Derive chart markers from a trade list.

    Trades whose reason is not an open/close/DCA/stop code (or one of their
    hedge variants) produce no marker. The result only depends on `trades`.

    Args:
        trades: Trades of the result (times in epoch milliseconds).

    Returns:
        Markers ordered like the input trades, times in epoch seconds.
    """
    return [marker_for(t) for t in trades if is_marked(t)]


def markers_near(markers: Sequence[Marker], time_s: int, tolerance_s: Optional[int] = None) -> list[Marker]:
    """Markers whose time is within `tolerance_s` seconds of `time_s`."""
    tol = settings.MARKER_TOOLTIP_TOLERANCE_S if tolerance_s is None else tolerance_s
    return [m for m in markers if abs(int(time_s) - m.time) < tol]


def tooltip_text(markers: Sequence[Marker]) -> str:
    parts = []
    for m in markers:
        t = m.trade
        line = f"{t.reason} - {t.side}\nPrice: {t.price:.3f}\nQuantity: {t.quantity:.3f}"
        if t.pnl:
            line += f"\nPnL: {t.pnl:.3f}"
        parts.append(line)
    return "\n---\n".join(parts)


class MarkerProjector:
    """
    Keep the marker overlay of a chart in sync with its trade list.

    Markers are recomputed from scratch and the whole set is handed to the
    surface on every application (trade lists are small and immutable).
    """
    def __init__(self, trades: Sequence[Trade] = ()) -> None:
        self._trades: tuple[Trade, ...] = tuple(trades)
        self._markers: list[Marker] = project(self._trades)

    @property
    def trades(self) -> tuple[Trade, ...]:
        return self._trades

    @property
    def markers(self) -> list[Marker]:
        return self._markers

    def set_trades(self, trades: Sequence[Trade]) -> list[Marker]:
        self._trades = tuple(trades)
        self._markers = project(self._trades)
        logger.debug(f"MarkerProjector.set_trades: {len(self._trades)} trades -> {len(self._markers)} markers")
        return self._markers

    def apply(self, surface) -> None:
        """Replace the full marker set on `surface`."""
        surface.set_markers(self._markers)

    def tooltip_at(self, time_s: int) -> Optional[str]:
        hovered = markers_near(self._markers, time_s)
        return tooltip_text(hovered) if hovered else None
