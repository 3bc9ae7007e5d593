"""
Refresh the cached USD to INR exchange rate.

Runs once by default; with --every it keeps refreshing on an interval until
interrupted.
"""
import threading

from django.core.management.base import BaseCommand, CommandError

from backend.catalog.rates import refresh_usd_to_inr_rate


class Command(BaseCommand):
    help = 'Refresh the cached USD to INR exchange rate (once, or on an interval with --every)'

    def __init__(self, *args, stop_event=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.stop_event = stop_event or threading.Event()

    def add_arguments(self, parser):
        parser.add_argument(
            '--every',
            type=int,
            default=0,
            help='Keep refreshing every N minutes until interrupted',
        )
        parser.add_argument(
            '--max-runs',
            type=int,
            default=0,
            help='Stop after N refreshes when looping (0 = unlimited)',
        )

    def handle(self, *args, **options):
        every = options['every']
        max_runs = options['max_runs']
        if every < 0:
            raise CommandError('--every must be zero or a positive number of minutes')

        runs = 0
        try:
            while True:
                result = refresh_usd_to_inr_rate()
                runs += 1
                self.stdout.write(self.style.SUCCESS(
                    f'USD to INR rate: {result.rate} (source: {result.source})'
                ))
                if not every or (max_runs and runs >= max_runs):
                    break
                # wait() returns True once stop_event is set
                if self.stop_event.wait(every * 60):
                    break
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING('Exchange rate refresh cancelled'))
        return None
