"""Application context: the one owned container for session state."""

import logging
import random

from worldlines.admin import AdminPanel
from worldlines.cache import DataCache
from worldlines.client import DataAccess
from worldlines.config import Config
from worldlines.interaction.clock import Clock
from worldlines.interaction.navigation import NavigationStateMachine
from worldlines.interaction.transition import TransitionSequencer
from worldlines.interaction.viewport import ZoomSynchronizer

logger = logging.getLogger(__name__)


class AppContext:
    """Wires the data cache, clock and the three interactive components.

    Create with ``AppContext.create`` at startup and ``close`` on exit.
    """

    def __init__(
        self,
        config: Config,
        access: DataAccess,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self.access = access
        self.clock = clock or Clock(frame_ms=config.transition.frame_ms)
        self.cache = DataCache(access, config.timeline)
        self.sequencer = TransitionSequencer(self.clock, config.transition, rng=rng)
        self.viewport = ZoomSynchronizer(self.clock, config.viewport)
        self.navigation = NavigationStateMachine(
            self.cache, self.sequencer, self.viewport, config.admin_sequence,
        )
        self.admin = AdminPanel(access, self.cache)
        self.navigation.on_admin_toggle(self.admin.set_visible)
        self.closed = False

    @classmethod
    def create(
        cls,
        config: Config,
        access: DataAccess,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ) -> "AppContext":
        """Build the context and run the startup load."""
        context = cls(config, access, clock=clock, rng=rng)
        context.cache.load()
        if context.cache.worldlines:
            context.sequencer.set_value(context.cache.worldlines[0].percentage)
        return context

    def close(self) -> None:
        if self.closed:
            return
        self.sequencer.cancel()
        self.viewport.close()
        self.access.close()
        self.closed = True
        logger.debug("Application context closed")

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
