from datetime import datetime, timedelta, timezone as dt_timezone

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from authentication.models import User, Role, AccessStatus
from elections.models import Election
from participation.models import ParticipationRequest, RequestStatus

DEMO_PASSWORD = 'console-demo-pass'

USERS = [
    ('Admin User', 'admin@example.com', Role.ADMIN, AccessStatus.ACTIVE),
    ('John Voter', 'voter@example.com', Role.VOTER, AccessStatus.ACTIVE),
    ('Jane Smith', 'jane@example.com', Role.VOTER, AccessStatus.ACTIVE),
    ('Michael Brown', 'michael@example.com', Role.VOTER, AccessStatus.BLOCKED),
]


def utc(year, month, day):
    return datetime(year, month, day, tzinfo=dt_timezone.utc)


class Command(BaseCommand):
    help = 'Load demonstration users, elections and participation requests (safe to run repeatedly)'

    @transaction.atomic
    def handle(self, *args, **options):
        now = timezone.now()

        users = {}
        for name, email, role, access_status in USERS:
            user = User.objects.filter(email=email).first()
            if user is None:
                user = User.objects.create_user(
                    email=email,
                    name=name,
                    password=DEMO_PASSWORD,
                    role=role,
                    access_status=access_status,
                    is_staff=role == Role.ADMIN,
                )
                self.stdout.write(f'Created user {user}')
            users[email] = user

        elections_data = [
            ('Student Council Election 2025', 'Annual election for student council positions',
             utc(2025, 6, 15), utc(2025, 6, 20)),
            ('Faculty Board Election', 'Election for faculty board members',
             utc(2025, 4, 10), utc(2025, 4, 15)),
            ('Department Chair Election', 'Election for department chair position',
             now, now + timedelta(days=7)),
        ]

        elections = {}
        for title, description, start_date, end_date in elections_data:
            election, created = Election.objects.get_or_create(
                title=title,
                defaults={
                    'description': description,
                    'start_date': start_date,
                    'end_date': end_date,
                    'created_by': users['admin@example.com'],
                }
            )
            if created:
                self.stdout.write(f'Created election "{election.title}"')
            elections[title] = election

        requests_data = [
            ('voter@example.com', 'Student Council Election 2025', RequestStatus.PENDING, utc(2025, 5, 10)),
            ('jane@example.com', 'Student Council Election 2025', RequestStatus.APPROVED, utc(2025, 5, 8)),
            ('michael@example.com', 'Department Chair Election', RequestStatus.REJECTED, utc(2025, 3, 15)),
        ]

        created_requests = 0
        for email, title, request_status, requested_at in requests_data:
            _, created = ParticipationRequest.objects.get_or_create(
                user=users[email],
                election=elections[title],
                defaults={
                    'status': request_status,
                    'requested_at': requested_at,
                    'decided_at': None if request_status == RequestStatus.PENDING else requested_at,
                }
            )
            created_requests += int(created)

        self.stdout.write(
            f'Seeded {len(users)} users, {len(elections)} elections and {created_requests} new participation requests'
        )
