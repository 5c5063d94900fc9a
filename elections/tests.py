from datetime import datetime, timedelta, timezone as dt_timezone
from io import StringIO

from django.core.management import call_command
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APITestCase, APIClient
from rest_framework import status
from rest_framework.authtoken.models import Token

from authentication.models import User
from participation.models import ParticipationRequest
from electionconsole.exceptions import InvalidRange, NotFound
from .models import Election, ElectionStatus, election_status
from . import services


def utc(*args):
    return datetime(*args, tzinfo=dt_timezone.utc)


class ElectionStatusPolicyTest(TestCase):
    """Test the status derived from an election's time window"""

    def setUp(self):
        self.start = utc(2025, 6, 1)
        self.end = utc(2025, 6, 10)

    def test_council_scenario(self):
        """Status moves with the clock without any write"""
        election = services.create_election('Council', '', self.start, self.end)

        self.assertEqual(election.status_at(utc(2025, 5, 1)), ElectionStatus.UPCOMING)
        self.assertEqual(election.status_at(utc(2025, 6, 5)), ElectionStatus.ACTIVE)
        self.assertEqual(election.status_at(utc(2025, 6, 11)), ElectionStatus.COMPLETED)

    def test_window_bounds_are_inclusive(self):
        self.assertEqual(election_status(self.start, self.end, self.start), ElectionStatus.ACTIVE)
        self.assertEqual(election_status(self.start, self.end, self.end), ElectionStatus.ACTIVE)
        self.assertEqual(
            election_status(self.start, self.end, self.start - timedelta(microseconds=1)),
            ElectionStatus.UPCOMING
        )
        self.assertEqual(
            election_status(self.start, self.end, self.end + timedelta(microseconds=1)),
            ElectionStatus.COMPLETED
        )

    def test_instant_election(self):
        """An election whose start equals its end is active at exactly that instant"""
        self.assertEqual(election_status(self.start, self.start, self.start), ElectionStatus.ACTIVE)
        self.assertEqual(
            election_status(self.start, self.start, self.start + timedelta(seconds=1)),
            ElectionStatus.COMPLETED
        )

    def test_queryset_filter_matches_policy(self):
        upcoming = services.create_election('Upcoming', '', utc(2025, 7, 1), utc(2025, 7, 5))
        active = services.create_election('Active', '', self.start, self.end)
        completed = services.create_election('Completed', '', utc(2025, 4, 1), utc(2025, 4, 5))
        now = utc(2025, 6, 5)

        self.assertEqual(list(Election.objects.with_status(ElectionStatus.UPCOMING, now)), [upcoming])
        self.assertEqual(list(Election.objects.with_status(ElectionStatus.ACTIVE, now)), [active])
        self.assertEqual(list(Election.objects.with_status(ElectionStatus.COMPLETED, now)), [completed])

        with self.assertRaises(ValueError):
            Election.objects.with_status('cancelled', now)


class ElectionServiceTest(TestCase):
    """Test creating and reading elections"""

    def setUp(self):
        self.admin_user = User.objects.create_user(
            email='admin@example.com',
            name='Admin User',
            password='testpass123',
            role='admin'
        )

    def test_create_election(self):
        election = services.create_election(
            'Council', 'Annual council election', utc(2025, 6, 1), utc(2025, 6, 10),
            created_by=self.admin_user
        )

        self.assertEqual(election.title, 'Council')
        self.assertEqual(election.created_by, self.admin_user)
        self.assertIsNotNone(election.election_id)

    def test_create_election_invalid_range(self):
        """Start after end is rejected and nothing is stored"""
        with self.assertRaises(InvalidRange):
            services.create_election('Backwards', '', utc(2025, 6, 10), utc(2025, 6, 1))

        self.assertEqual(Election.objects.count(), 0)

    def test_database_rejects_invalid_range(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Election.objects.create(title='Backwards', start_date=utc(2025, 6, 10), end_date=utc(2025, 6, 1))

    def test_list_elections_in_creation_order(self):
        later = services.create_election('Later start', '', utc(2025, 9, 1), utc(2025, 9, 2))
        earlier = services.create_election('Earlier start', '', utc(2025, 1, 1), utc(2025, 1, 2))

        self.assertEqual(list(services.list_elections()), [later, earlier])

    def test_list_elections_filters(self):
        services.create_election('Student Council', '', utc(2025, 6, 1), utc(2025, 6, 10))
        services.create_election('Faculty Board', '', utc(2025, 4, 10), utc(2025, 4, 15))
        now = utc(2025, 6, 5)

        active = services.list_elections(now=now, status=ElectionStatus.ACTIVE)
        self.assertEqual([e.title for e in active], ['Student Council'])

        searched = services.list_elections(search='faculty')
        self.assertEqual([e.title for e in searched], ['Faculty Board'])

    def test_get_election_not_found(self):
        with self.assertRaises(NotFound):
            services.get_election('00000000-0000-0000-0000-000000000000')

        # Malformed identifiers are simply unknown
        with self.assertRaises(NotFound):
            services.get_election('not-a-uuid')

    def test_election_summary(self):
        services.create_election('Upcoming', '', utc(2025, 7, 1), utc(2025, 7, 5))
        services.create_election('Active', '', utc(2025, 6, 1), utc(2025, 6, 10))
        services.create_election('Completed A', '', utc(2025, 4, 1), utc(2025, 4, 5))
        services.create_election('Completed B', '', utc(2025, 3, 1), utc(2025, 3, 5))

        summary = services.election_summary(now=utc(2025, 6, 5))

        self.assertEqual(summary, {'total': 4, 'upcoming': 1, 'active': 1, 'completed': 2})

    def test_election_status_command(self):
        services.create_election('Council', '', utc(2025, 6, 1), utc(2025, 6, 10))
        out = StringIO()

        call_command('election_status', at='2025-06-05T12:00:00Z', stdout=out)

        output = out.getvalue()
        self.assertIn('active', output)
        self.assertIn('"Council"', output)
        self.assertIn('Checked 1 elections', output)

    def test_seed_console_is_repeatable(self):
        call_command('seed_console', stdout=StringIO())
        call_command('seed_console', stdout=StringIO())

        self.assertEqual(User.objects.count(), 4)
        self.assertEqual(Election.objects.count(), 3)
        self.assertEqual(ParticipationRequest.objects.count(), 3)
        self.assertTrue(User.objects.get(email='michael@example.com').is_blocked)


class ElectionAPITest(APITestCase):
    """Test election API endpoints"""

    def setUp(self):
        self.client = APIClient()

        self.admin_user = User.objects.create_user(
            email='admin@example.com',
            name='Admin User',
            password='testpass123',
            role='admin'
        )
        self.admin_token = Token.objects.create(user=self.admin_user)

        self.voter_user = User.objects.create_user(
            email='voter@example.com',
            name='Voter User',
            password='testpass123'
        )
        self.voter_token = Token.objects.create(user=self.voter_user)

        now = timezone.now()
        self.election_data = {
            'title': 'Department Chair Election',
            'description': 'Election for department chair position',
            'start_date': (now - timedelta(days=1)).isoformat(),
            'end_date': (now + timedelta(days=7)).isoformat(),
        }

    def test_admin_creates_election(self):
        """Test election creation by an admin"""
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)

        response = self.client.post('/api/elections/', self.election_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['title'], 'Department Chair Election')
        self.assertEqual(response.data['status'], 'active')
        self.assertEqual(response.data['created_by'], str(self.admin_user.user_id))
        self.assertTrue(Election.objects.filter(title='Department Chair Election').exists())

    def test_voter_cannot_create_election(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.post('/api/elections/', self.election_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Election.objects.count(), 0)

    def test_create_election_invalid_range(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)
        data = dict(self.election_data)
        data['start_date'], data['end_date'] = data['end_date'], data['start_date']

        response = self.client.post('/api/elections/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_range')

    def test_list_and_retrieve_elections(self):
        now = timezone.now()
        upcoming = services.create_election('Upcoming', '', now + timedelta(days=5), now + timedelta(days=6))
        services.create_election('Completed', '', now - timedelta(days=6), now - timedelta(days=5))
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.get('/api/elections/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([e['title'] for e in response.data], ['Upcoming', 'Completed'])
        self.assertEqual([e['status'] for e in response.data], ['upcoming', 'completed'])

        response = self.client.get('/api/elections/', {'status': 'completed'})
        self.assertEqual([e['title'] for e in response.data], ['Completed'])

        response = self.client.get(f'/api/elections/{upcoming.election_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], str(upcoming.election_id))

    def test_list_elections_unknown_status_filter(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.get('/api/elections/', {'status': 'cancelled'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_retrieve_unknown_election(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.get('/api/elections/00000000-0000-0000-0000-000000000000/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_summary(self):
        now = timezone.now()
        services.create_election('Active', '', now - timedelta(days=1), now + timedelta(days=1))
        services.create_election('Upcoming', '', now + timedelta(days=5), now + timedelta(days=6))
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.get('/api/elections/summary/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'total': 2, 'upcoming': 1, 'active': 1, 'completed': 0})

    def test_unauthenticated_access(self):
        response = self.client.get('/api/elections/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
