from collections.abc import Callable

from driftsync.bootstrap.config.settings import DriftSyncConfig
from driftsync.core.service.clock import HybridLogicalClock


class CommandContext:
    """
    Collaborators available to command handlers.

    The clock is built on first use only, so commands that never touch it
    (parsing, conflict detection) never open the persistent store.
    """

    def __init__(
        self,
        config: DriftSyncConfig,
        clock_factory: Callable[[], HybridLogicalClock],
    ) -> None:
        self.config = config
        self._clock_factory = clock_factory
        self._clock: HybridLogicalClock | None = None

    @property
    def clock(self) -> HybridLogicalClock:
        if self._clock is None:
            self._clock = self._clock_factory()
        return self._clock
