from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from elections.services import list_elections


class Command(BaseCommand):
    help = 'Show each election with the status it has at a given instant (default: now)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--at',
            help='ISO-8601 instant to evaluate statuses at, e.g. 2025-06-05T12:00:00Z',
        )

    def handle(self, *args, **options):
        now = timezone.now()
        if options['at']:
            now = parse_datetime(options['at'])
            if now is None:
                raise CommandError(f'Invalid ISO-8601 instant: {options["at"]}')
            if timezone.is_naive(now):
                now = timezone.make_aware(now)

        elections = list_elections(now=now)
        for election in elections:
            self.stdout.write(
                f'{election.election_id}  {election.status_at(now).value:<10} "{election.title}" '
                f'({election.start_date.isoformat()} - {election.end_date.isoformat()})'
            )

        self.stdout.write(
            f'Checked {elections.count()} elections at {now.isoformat()}'
        )
