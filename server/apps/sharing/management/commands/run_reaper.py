"""Django management command to run the reaper on a fixed interval."""

import logging
from typing import Any, final, override

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from server.apps.sharing.dependencies import get_blob_area, get_reaper
from server.apps.sharing.logic.scheduler import ReaperScheduler

logger = logging.getLogger(__name__)


@final
class Command(BaseCommand):
    """Run the reaper in the foreground until interrupted."""

    help = 'Periodically erase deactivated groups'

    @override
    def add_arguments(self, parser: Any) -> None:
        """Add command arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--interval',
            type=float,
            default=None,
            help='Seconds between runs (default: from settings)',
        )
        parser.add_argument(
            '--max-runtime',
            type=float,
            default=None,
            help='Stop after this many seconds (default: run until Ctrl+C)',
        )

    @override
    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the command.

        Args:
            args: Positional arguments.
            options: Keyword arguments from command line.

        Raises:
            CommandError: If the interval is not positive.
        """
        interval = options['interval']
        if interval is None:
            interval = getattr(settings, 'SHARING_REAPER_INTERVAL', 60)
        try:
            scheduler = ReaperScheduler(get_reaper(), interval)
        except ValueError as exc:
            raise CommandError(str(exc)) from exc

        get_blob_area().ensure_root()

        self.stdout.write(
            self.style.SUCCESS(f'Starting reaper, interval {interval}s'),
        )

        try:
            logger.info('Reaper starting, interval %ss', interval)
            scheduler.start()
            scheduler.wait(options['max_runtime'])
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING('\nShutting down...'))
        finally:
            scheduler.stop()
            self.stdout.write(self.style.SUCCESS('Reaper stopped'))
