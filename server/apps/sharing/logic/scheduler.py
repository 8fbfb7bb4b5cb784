"""Fixed-interval trigger for the reaper."""

import logging
import threading
from typing import TYPE_CHECKING, final

from django.db import close_old_connections

if TYPE_CHECKING:
    from server.apps.sharing.logic.reaper import Reaper, ReapReport

logger = logging.getLogger(__name__)


@final
class ReaperScheduler:
    """Calls ``Reaper.run_once`` every ``interval`` seconds on a thread.

    Ticks run on one daemon thread, so they never overlap; the reaper's
    own guard additionally skips a tick if someone else is running it.
    """

    def __init__(self, reaper: 'Reaper', interval: float) -> None:
        """Initialize the scheduler.

        Args:
            reaper: Reaper to trigger.
            interval: Seconds between two ticks.

        Raises:
            ValueError: If interval is not positive.
        """
        if interval <= 0:
            raise ValueError(f'Reaper interval must be positive, got {interval}')
        self._reaper = reaper
        self._interval = interval
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_alive(self) -> bool:
        """Whether the scheduler thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start ticking in a background thread.

        Raises:
            RuntimeError: If the scheduler is already running.
        """
        if self.is_alive:
            raise RuntimeError('Reaper scheduler is already running')

        self._stopped.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name='reaper-scheduler',
            daemon=True,
        )
        self._thread.start()
        logger.info('Reaper scheduler started, interval %ss', self._interval)

    def stop(self, timeout: float | None = None) -> None:
        """Stop ticking and wait for the current tick to finish.

        Args:
            timeout: Seconds to wait for the thread, None waits forever.
        """
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info('Reaper scheduler stopped')

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the scheduler is stopped.

        Args:
            timeout: Seconds to wait, None waits forever.

        Returns:
            True if the scheduler was stopped.
        """
        return self._stopped.wait(timeout)

    def tick(self) -> 'ReapReport | None':
        """Run the reaper once, logging instead of raising.

        Returns:
            Report of the run, None if it crashed.
        """
        close_old_connections()
        try:
            return self._reaper.run_once()
        except Exception:
            logger.exception('Reaper run crashed')
            return None
        finally:
            close_old_connections()

    def _loop(self) -> None:
        while not self._stopped.wait(self._interval):
            self.tick()
