"""Background erasure of deactivated groups.

Deactivation only flips the group state. The reaper finishes the job:
remove the group directory first, then delete the row. If the process
dies in between, the next run finds the same inactive row, treats the
missing directory as already removed and deletes the row, so repeated
runs converge on the erased state.
"""

import enum
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, final

from server.apps.sharing.exceptions import SharingError

if TYPE_CHECKING:
    from server.apps.sharing.infrastructure.blob_area import BlobArea
    from server.apps.sharing.infrastructure.membership_store import (
        MembershipStore,
    )

logger = logging.getLogger(__name__)

_DEFAULT_MAX_WORKERS: Final = 8


class ReapOutcome(enum.StrEnum):
    """How a single reaper run ended."""

    # Another run was still in progress, nothing was done
    SKIPPED = 'skipped'
    # Inactive groups could not be listed, nothing was modified
    ABORTED = 'aborted'
    # Every inactive group was erased
    COMPLETE = 'complete'
    # Some groups are left for the next run
    PARTIAL = 'partial'


@final
@dataclass(frozen=True)
class ReapReport:
    """Result of one reaper run."""

    outcome: ReapOutcome
    inactive: tuple[str, ...] = ()
    erased: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()

    @property
    def is_partial(self) -> bool:
        """Whether some groups must be retried on the next run."""
        return self.outcome == ReapOutcome.PARTIAL


@final
class Reaper:
    """Erases inactive groups from the blob area and the store.

    Only ``run_once`` is public. Runs never overlap: a call made while
    another run is in progress returns a SKIPPED report immediately.
    """

    def __init__(
        self,
        store: 'MembershipStore',
        blob_area: 'BlobArea',
        max_workers: int = _DEFAULT_MAX_WORKERS,
    ) -> None:
        """Initialize with explicit collaborators.

        Args:
            store: Membership store handle.
            blob_area: Blob area storage backend.
            max_workers: Upper bound of concurrent directory removals.
        """
        self._store = store
        self._blob_area = blob_area
        self._max_workers = max(1, max_workers)
        self._guard = threading.Lock()

    @property
    def is_running(self) -> bool:
        """Whether a run is currently in progress."""
        return self._guard.locked()

    def run_once(self) -> ReapReport:
        """Erase all inactive groups that can be erased right now.

        Never raises: every failure is logged and reflected in the
        report, the next run retries whatever is left.

        Returns:
            Report describing what happened.
        """
        if not self._guard.acquire(blocking=False):
            logger.warning('Previous reaper run still in progress, skipping')
            return ReapReport(outcome=ReapOutcome.SKIPPED)

        try:
            return self._reap()
        finally:
            self._guard.release()

    def _reap(self) -> ReapReport:
        # Step 1: Find inactive groups
        try:
            inactive = tuple(self._store.deactivated_group_names())
        except SharingError:
            logger.exception('Could not list deactivated groups, skipping run')
            return ReapReport(outcome=ReapOutcome.ABORTED)

        if not inactive:
            logger.debug('No deactivated groups to erase')
            return ReapReport(outcome=ReapOutcome.COMPLETE)

        logger.info('Erasing %d deactivated groups', len(inactive))

        # Step 2: Remove directories concurrently
        removed, failed = self._remove_directories(inactive)

        # Step 3: Delete rows of groups without a directory
        if removed:
            try:
                self._store.erase_groups(removed)
            except SharingError:
                logger.exception(
                    'Could not erase deactivated groups: %s',
                    ', '.join(removed),
                )
                failed = failed + removed
                removed = ()

        if failed:
            logger.warning(
                'Partial reap: %d of %d groups left for the next run: %s',
                len(failed),
                len(inactive),
                ', '.join(failed),
            )
            outcome = ReapOutcome.PARTIAL
        else:
            outcome = ReapOutcome.COMPLETE

        logger.info('Erased %d deactivated groups', len(removed))
        return ReapReport(
            outcome=outcome,
            inactive=inactive,
            erased=removed,
            failed=failed,
        )

    def _remove_directories(
        self,
        group_names: tuple[str, ...],
    ) -> tuple[tuple[str, ...], tuple[str, ...]]:
        """Remove group directories in parallel and wait for all of them.

        Args:
            group_names: Groups whose directories should go.

        Returns:
            Names whose directory is gone, names that failed.
        """
        workers = min(len(group_names), self._max_workers)
        with ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix='reaper',
        ) as executor:
            futures = {
                group_name: executor.submit(
                    self._blob_area.remove_group_dir,
                    group_name,
                )
                for group_name in group_names
            }

        removed: list[str] = []
        failed: list[str] = []
        for group_name, future in futures.items():
            error = future.exception()
            if error is None:
                removed.append(group_name)
            else:
                logger.error(
                    'Failed to remove directory of group [%s]: %s',
                    group_name,
                    error,
                )
                failed.append(group_name)
        return tuple(removed), tuple(failed)
