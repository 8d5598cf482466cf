from enum import StrEnum
from typing import Any, Callable, Optional
import logging

from .markers import MarkerProjector
from .surface import ChartSurface
from .window import DataWindow

logger = logging.getLogger(__name__)


class ChartState(StrEnum):
    UNMOUNTED = "unmounted"
    MOUNTING = "mounting"
    MOUNTED = "mounted"
    UNMOUNTING = "unmounting"


class ChartLifecycle:
    """
    Own the rendering surface of one chart and its event wiring.

    Every mount gets a new generation number. Asynchronous work captures the
    generation (`token`) when it starts and asks `live_surface(token)` when it
    completes: the surface is returned only while that same mount is still
    alive, so results that resolve after `unmount()` (or after a remount) are
    dropped instead of touching a removed surface.
    """
    def __init__(
        self,
        surface_factory: Callable[[Any], ChartSurface],
        window: DataWindow,
        projector: MarkerProjector,
        *,
        on_visible_range: Callable[[float, float, int], Any],
        on_pointer_move: Optional[Callable[[Optional[int]], None]] = None,
        on_teardown: Optional[Callable[[], None]] = None,
    ) -> None:
        self.surface_factory = surface_factory
        self.window = window
        self.projector = projector
        self.on_visible_range = on_visible_range
        self.on_pointer_move = on_pointer_move
        self.on_teardown = on_teardown

        self.state = ChartState.UNMOUNTED
        self._surface: Optional[ChartSurface] = None
        self._generation = 0
        self._disposed = True

    @property
    def token(self) -> int:
        return self._generation

    @property
    def disposed(self) -> bool:
        return self._disposed

    def live_surface(self, token: Optional[int] = None) -> Optional[ChartSurface]:
        """
        Surface of the current mount, or None once it has been disposed.

        Args:
            token: Generation captured by the caller; a stale token yields None.
        """
        if self._disposed or self.state != ChartState.MOUNTED:
            return None
        if token is not None and token != self._generation:
            return None
        return self._surface

    def _handle_range(self, from_: float, to: float) -> None:
        if self._disposed:
            return
        self.on_visible_range(from_, to, len(self.window))

    def _handle_resize(self) -> None:
        surface = self.live_surface()
        if surface is not None:
            surface.resize()

    def _handle_pointer(self, time_s: Optional[int]) -> None:
        if not self._disposed and self.on_pointer_move is not None:
            self.on_pointer_move(time_s)

    def mount(self, container: Any) -> int:
        """
        Create a fresh surface in `container` and wire it up.

        A previously mounted surface is torn down first.

        Returns:
            The generation token of the new mount.
        """
        if self.state != ChartState.UNMOUNTED:
            self.unmount()

        self.state = ChartState.MOUNTING
        self._generation += 1
        try:
            surface = self.surface_factory(container)
        except Exception:
            logger.exception("ChartLifecycle: failed to create chart")
            self.state = ChartState.UNMOUNTED
            raise

        try:
            surface.set_data(self.window.bars)
            self.projector.apply(surface)
            surface.fit_content()
        except Exception:
            logger.exception("ChartLifecycle: failed to render new chart, removing it")
            try:
                surface.remove()
            except Exception:
                logger.exception("ChartLifecycle: error removing chart")
            self.state = ChartState.UNMOUNTED
            raise

        surface.on_visible_range_change(self._handle_range)
        surface.on_resize(self._handle_resize)
        if self.on_pointer_move is not None:
            surface.on_pointer_move(self._handle_pointer)

        self._surface = surface
        self._disposed = False
        self.state = ChartState.MOUNTED
        logger.info(f"ChartLifecycle: mounted generation {self._generation} with {len(self.window)} bars")
        return self._generation

    def render(self, token: Optional[int] = None, fit: bool = False) -> bool:
        """
        Push the current window and the full marker set to the live surface.

        Returns:
            False if the surface is gone (nothing rendered).
        """
        surface = self.live_surface(token)
        if surface is None:
            logger.debug("ChartLifecycle.render: surface disposed, skipping")
            return False
        surface.set_data(self.window.bars)
        self.projector.apply(surface)
        if fit:
            surface.fit_content()
        return True

    def unmount(self) -> None:
        """
        Tear down the surface. Calling it again is a no-op.

        Order: mark disposed, unsubscribe handlers, remove the surface, clear
        transient UI state.
        """
        if self.state == ChartState.UNMOUNTED:
            return

        self.state = ChartState.UNMOUNTING
        self._disposed = True
        surface, self._surface = self._surface, None

        if surface is not None:
            try:
                surface.off_visible_range_change(self._handle_range)
                surface.off_resize(self._handle_resize)
                if self.on_pointer_move is not None:
                    surface.off_pointer_move(self._handle_pointer)
            except Exception:
                logger.exception("ChartLifecycle: error unsubscribing from chart events")
            try:
                surface.remove()
            except Exception:
                logger.exception("ChartLifecycle: error removing chart")

        if self.on_teardown is not None:
            self.on_teardown()
        self.state = ChartState.UNMOUNTED
        logger.info(f"ChartLifecycle: unmounted generation {self._generation}")
