from typing import Iterable, Optional, Sequence
import logging

from config import settings
from schemas.chart import Bar, Side

logger = logging.getLogger(__name__)


def merge_bars(current: Sequence[Bar], new_bars: Sequence[Bar], side: Side, cap: int) -> tuple[Bar, ...]:
    """
    Merge freshly loaded bars into the current window and cap the result.

    The concatenation order depends on the extended edge: `(new, current)` for
    the left edge, `(current, new)` for the right one. The result is stably
    sorted by time and sliced to `cap`, keeping the edge that was just loaded:

    - Side.LEFT keeps `[0, cap)` (the newest excess is dropped),
    - Side.RIGHT keeps `[len - cap, len)` (the oldest excess is dropped).

    Bars sharing a time key are collapsed into one; the freshly loaded bar wins.

    Args:
        current: Current window (ascending by time).
        new_bars: Bars loaded for the edge (ascending by time).
        side: Edge that was extended.
        cap: Maximum window length.

    Returns:
        New window tuple.
    """
    if side == Side.LEFT:
        merged = [*new_bars, *current]
    else:
        merged = [*current, *new_bars]
    merged.sort(key=lambda b: b.time)

    fresh = {id(b) for b in new_bars}
    deduped: list[Bar] = []
    for bar in merged:
        if deduped and deduped[-1].time == bar.time:
            if id(bar) in fresh:
                deduped[-1] = bar
            continue
        deduped.append(bar)

    if side == Side.LEFT:
        return tuple(deduped[:cap])
    return tuple(deduped[max(0, len(deduped) - cap):])


class DataWindow:
    """
    In-memory sorted bar window backing the candlestick chart.

    The window value is an immutable tuple that is replaced on every change,
    so a reader always sees a consistent snapshot.
    """
    def __init__(self, cap: Optional[int] = None) -> None:
        self.cap: int = cap or settings.CHART_WINDOW_CAP
        self._bars: tuple[Bar, ...] = ()

    @property
    def bars(self) -> tuple[Bar, ...]:
        return self._bars

    def __len__(self) -> int:
        return len(self._bars)

    @property
    def first(self) -> Optional[Bar]:
        return self._bars[0] if self._bars else None

    @property
    def last(self) -> Optional[Bar]:
        return self._bars[-1] if self._bars else None

    def initialize(self, bars: Iterable[Bar]) -> tuple[Bar, ...]:
        """Replace the window with `bars` as-is (no merge)."""
        self._bars = tuple(bars)
        logger.debug(f"DataWindow.initialize: {len(self._bars)} bars")
        return self._bars

    def extend(self, new_bars: Sequence[Bar], side: Side) -> tuple[Bar, ...]:
        """
        Extend one edge of the window with `new_bars`.

        An empty `new_bars` leaves the window unchanged.

        Args:
            new_bars: Loaded bars, ascending by time.
            side: Edge that was loaded.

        Returns:
            The current window after the merge.
        """
        if not new_bars:
            logger.debug(f"DataWindow.extend: nothing to merge on side={side}")
            return self._bars

        before = len(self._bars)
        self._bars = merge_bars(self._bars, new_bars, side, self.cap)
        logger.debug(
            f"DataWindow.extend: side={side} new={len(new_bars)} "
            f"before={before} after={len(self._bars)}"
        )
        return self._bars

    def clear(self) -> None:
        self._bars = ()
