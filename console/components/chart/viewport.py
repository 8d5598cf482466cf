from typing import Callable, Optional
import logging
import math

from config import settings
from schemas.chart import LoadRequest, Side

logger = logging.getLogger(__name__)


class ViewportTracker:
    """
    Classify visible logical ranges reported by the chart into edge loads.

    A range starting before index 0 asks for older bars, a range ending past
    the window length asks for newer ones. Every classified range is
    forwarded to `on_request` (usually `FetchScheduler.submit`).
    """
    def __init__(
        self,
        on_request: Callable[[LoadRequest], None],
        max_bars: Optional[int] = None,
    ) -> None:
        self.on_request = on_request
        self.max_bars: int = max_bars or settings.CHART_MAX_BARS_PER_LOAD
        self.visible_bars: Optional[float] = None

    def classify(self, from_: float, to: float, window_length: int) -> Optional[LoadRequest]:
        visible = to - from_ + 1
        bars_to_load = max(1, math.ceil(min(self.max_bars, visible)))

        if from_ < 0:
            side = Side.LEFT
        elif to > window_length:
            side = Side.RIGHT
        else:
            return None
        return LoadRequest(bars_to_load=bars_to_load, side=side)

    def on_visible_range_changed(self, from_: float, to: float, window_length: int) -> Optional[LoadRequest]:
        """
        Handle one visible-range event from the rendering surface.

        Args:
            from_: First visible logical index (may be negative).
            to: Last visible logical index (may exceed the window length).
            window_length: Number of bars currently in the window.

        Returns:
            The emitted LoadRequest, or None when the range touches no edge.
        """
        self.visible_bars = to - from_ + 1
        request = self.classify(from_, to, window_length)
        if request is None:
            return None
        logger.debug(
            f"ViewportTracker: range=({from_}, {to}) len={window_length} -> "
            f"side={request.side} bars={request.bars_to_load}"
        )
        self.on_request(request)
        return request
