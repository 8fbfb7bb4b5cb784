"""Management command to erase deactivated groups once."""

import logging
from typing import Any, final, override

from django.core.management.base import BaseCommand, CommandError

from server.apps.sharing.dependencies import get_reaper, get_store
from server.apps.sharing.exceptions import SharingError
from server.apps.sharing.logic.reaper import ReapOutcome

logger = logging.getLogger(__name__)


@final
class Command(BaseCommand):
    """Run a single reaper pass over deactivated groups."""

    help = 'Erase deactivated groups: remove their directories and rows'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show which groups would be erased without erasing them',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the reap command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If the run could not list or erase anything.
        """
        if options['dry_run']:
            self._dry_run()
            return

        report = get_reaper().run_once()

        if report.outcome == ReapOutcome.SKIPPED:
            self.stdout.write(
                self.style.WARNING('Another reaper run is in progress'),
            )
            return
        if report.outcome == ReapOutcome.ABORTED:
            raise CommandError('Could not list deactivated groups')

        for group_name in report.failed:
            self.stderr.write(f'Failed to erase group: {group_name}')

        message = (
            f'Erased {len(report.erased)} groups, {len(report.failed)} failed'
        )
        if report.is_partial:
            self.stdout.write(self.style.WARNING(message))
        else:
            self.stdout.write(self.style.SUCCESS(message))

    def _dry_run(self) -> None:
        try:
            group_names = get_store().deactivated_group_names()
        except SharingError as exc:
            raise CommandError('Could not list deactivated groups') from exc

        for group_name in group_names:
            self.stdout.write(f'Would erase: {group_name}')
        self.stdout.write(
            self.style.SUCCESS(f'Would erase {len(group_names)} groups'),
        )
