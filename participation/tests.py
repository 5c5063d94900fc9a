from datetime import datetime, timedelta, timezone as dt_timezone
from unittest import mock
import threading

from django.db import IntegrityError, connection, transaction
from django.test import TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework.test import APITestCase, APIClient
from rest_framework import status
from rest_framework.authtoken.models import Token

from authentication.models import User
from authentication.services import update_user_profile
from electionconsole.exceptions import DuplicateRequest, ElectionNotOpen, InvalidTransition, NotFound
from elections.services import create_election
from .models import ParticipationRequest, RequestStatus
from . import services


def utc(*args):
    return datetime(*args, tzinfo=dt_timezone.utc)


class ParticipationWorkflowTest(TestCase):
    """Test the candidacy request state machine"""

    def setUp(self):
        self.user = User.objects.create_user(
            email='voter@example.com',
            name='John Voter',
            password='testpass123'
        )
        self.admin_user = User.objects.create_user(
            email='admin@example.com',
            name='Admin User',
            password='testpass123',
            role='admin'
        )
        self.election = create_election('Council', '', utc(2025, 6, 1), utc(2025, 6, 10))
        self.now = utc(2025, 6, 5)

    def test_submit_request(self):
        """Test requesting candidacy in an active election"""
        request = services.submit_request(self.user.user_id, self.election.election_id, now=self.now)

        self.assertEqual(request.status, RequestStatus.PENDING)
        self.assertEqual(request.requested_at, self.now)
        self.assertEqual(request.user_name, 'John Voter')
        self.assertEqual(request.user_email, 'voter@example.com')
        self.assertEqual(request.election_title, 'Council')

    def test_submit_request_outside_election_window(self):
        with self.assertRaises(ElectionNotOpen):
            services.submit_request(self.user.user_id, self.election.election_id, now=utc(2025, 5, 1))

        with self.assertRaises(ElectionNotOpen):
            services.submit_request(self.user.user_id, self.election.election_id, now=utc(2025, 6, 11))

        self.assertEqual(ParticipationRequest.objects.count(), 0)

    def test_submit_request_unknown_references(self):
        with self.assertRaises(NotFound):
            services.submit_request('00000000-0000-0000-0000-000000000000', self.election.election_id, now=self.now)

        with self.assertRaises(NotFound):
            services.submit_request(self.user.user_id, '00000000-0000-0000-0000-000000000000', now=self.now)

    def test_duplicate_pending_request(self):
        services.submit_request(self.user.user_id, self.election.election_id, now=self.now)

        with self.assertRaises(DuplicateRequest):
            services.submit_request(self.user.user_id, self.election.election_id, now=self.now)

        self.assertEqual(ParticipationRequest.objects.count(), 1)

    def test_duplicate_after_approval(self):
        request = services.submit_request(self.user.user_id, self.election.election_id, now=self.now)
        services.decide(request.request_id, RequestStatus.APPROVED, decided_by=self.admin_user)

        with self.assertRaises(DuplicateRequest):
            services.submit_request(self.user.user_id, self.election.election_id, now=self.now)

    def test_resubmit_after_rejection(self):
        """A rejected user may ask again"""
        request = services.submit_request(self.user.user_id, self.election.election_id, now=self.now)
        services.decide(request.request_id, RequestStatus.REJECTED)

        again = services.submit_request(self.user.user_id, self.election.election_id, now=self.now)

        self.assertEqual(again.status, RequestStatus.PENDING)
        self.assertNotEqual(again.request_id, request.request_id)

    def test_database_rejects_second_open_request(self):
        """The database keeps one open request per pair even when the service check is bypassed"""
        ParticipationRequest.objects.create(user=self.user, election=self.election)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                ParticipationRequest.objects.create(user=self.user, election=self.election)

    def test_request_racing_past_check_is_duplicate(self):
        """A second request that slips past the open-request check is rejected at insert"""
        services.submit_request(self.user.user_id, self.election.election_id, now=self.now)

        with mock.patch('participation.services.has_open_request', return_value=False):
            with self.assertRaises(DuplicateRequest):
                services.submit_request(self.user.user_id, self.election.election_id, now=self.now)

        self.assertEqual(ParticipationRequest.objects.count(), 1)

    def test_decision_landing_first_wins(self):
        """When another decision lands between the read and the update, this one fails"""
        request = services.submit_request(self.user.user_id, self.election.election_id, now=self.now)
        stale = ParticipationRequest.objects.get(pk=request.pk)

        def read_then_reject_elsewhere(*args, **kwargs):
            ParticipationRequest.objects.filter(pk=request.pk).update(
                status=RequestStatus.REJECTED, decided_at=self.now
            )
            return stale

        with mock.patch('participation.services.get_or_not_found', side_effect=read_then_reject_elsewhere):
            with self.assertRaises(InvalidTransition):
                services.decide(request.request_id, RequestStatus.APPROVED, decided_by=self.admin_user)

        request.refresh_from_db()
        self.assertEqual(request.status, RequestStatus.REJECTED)
        self.assertIsNone(request.decided_by)

    def test_approve_then_reject_fails(self):
        request = services.submit_request(self.user.user_id, self.election.election_id, now=self.now)

        approved = services.decide(request.request_id, RequestStatus.APPROVED, decided_by=self.admin_user)
        self.assertEqual(approved.status, RequestStatus.APPROVED)
        self.assertEqual(approved.decided_by, self.admin_user)
        self.assertIsNotNone(approved.decided_at)

        with self.assertRaises(InvalidTransition):
            services.decide(request.request_id, RequestStatus.REJECTED)

        request.refresh_from_db()
        self.assertEqual(request.status, RequestStatus.APPROVED)

    def test_rejected_request_is_final(self):
        request = services.submit_request(self.user.user_id, self.election.election_id, now=self.now)
        services.decide(request.request_id, RequestStatus.REJECTED)

        for decision in (RequestStatus.APPROVED, RequestStatus.REJECTED):
            with self.assertRaises(InvalidTransition):
                services.decide(request.request_id, decision)

    def test_decide_back_to_pending_fails(self):
        request = services.submit_request(self.user.user_id, self.election.election_id, now=self.now)

        with self.assertRaises(InvalidTransition):
            services.decide(request.request_id, RequestStatus.PENDING)

        request.refresh_from_db()
        self.assertEqual(request.status, RequestStatus.PENDING)

    def test_decide_unknown_request(self):
        with self.assertRaises(NotFound):
            services.decide('00000000-0000-0000-0000-000000000000', RequestStatus.APPROVED)

    def test_list_requests_ordered_by_request_time(self):
        other = User.objects.create_user(email='jane@example.com', name='Jane Smith', password='testpass123')
        later = services.submit_request(self.user.user_id, self.election.election_id, now=utc(2025, 6, 8))
        earlier = services.submit_request(other.user_id, self.election.election_id, now=utc(2025, 6, 2))

        self.assertEqual(list(services.list_requests()), [earlier, later])

    def test_list_requests_filters(self):
        other = User.objects.create_user(email='jane@example.com', name='Jane Smith', password='testpass123')
        other_election = create_election('Faculty Board', '', utc(2025, 6, 1), utc(2025, 6, 30))
        first = services.submit_request(self.user.user_id, self.election.election_id, now=self.now)
        second = services.submit_request(other.user_id, other_election.election_id, now=self.now)
        services.decide(second.request_id, RequestStatus.APPROVED)

        self.assertEqual(list(services.list_requests(election_id=self.election.election_id)), [first])
        self.assertEqual(list(services.list_requests(status=RequestStatus.APPROVED)), [second])
        self.assertEqual(list(services.list_requests(user_id=self.user.user_id)), [first])
        self.assertEqual(list(services.list_requests(search='faculty')), [second])
        self.assertEqual(list(services.list_requests(search='john')), [first])

    def test_display_fields_follow_user_edits(self):
        request = services.submit_request(self.user.user_id, self.election.election_id, now=self.now)

        update_user_profile(self.user.user_id, name='John Q. Voter')

        request = services.list_requests().get()
        self.assertEqual(request.user_name, 'John Q. Voter')


class ConcurrentDecisionTest(TransactionTestCase):
    """Two admins deciding the same request at the same moment"""

    def setUp(self):
        self.user = User.objects.create_user(
            email='voter@example.com',
            name='John Voter',
            password='testpass123'
        )
        election = create_election('Council', '', utc(2025, 6, 1), utc(2025, 6, 10))
        self.request = services.submit_request(self.user.user_id, election.election_id, now=utc(2025, 6, 5))

    def test_one_decision_wins(self):
        decisions = [RequestStatus.APPROVED, RequestStatus.REJECTED]
        barrier = threading.Barrier(len(decisions))
        outcomes = {}
        lock = threading.Lock()

        def decide_as(decision):
            try:
                barrier.wait()
                services.decide(self.request.request_id, decision)
                outcome = 'decided'
            except InvalidTransition:
                outcome = 'refused'
            except Exception as e:
                outcome = repr(e)
            finally:
                connection.close()
            with lock:
                outcomes[decision] = outcome

        threads = [threading.Thread(target=decide_as, args=(decision,)) for decision in decisions]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes.values()), ['decided', 'refused'])

        self.request.refresh_from_db()
        winner = [decision for decision, outcome in outcomes.items() if outcome == 'decided'][0]
        self.assertEqual(self.request.status, winner)


class ParticipationAPITest(APITestCase):
    """Test participation request API endpoints"""

    def setUp(self):
        self.client = APIClient()

        self.voter_user = User.objects.create_user(
            email='voter@example.com',
            name='John Voter',
            password='testpass123'
        )
        self.voter_token = Token.objects.create(user=self.voter_user)

        self.other_voter = User.objects.create_user(
            email='jane@example.com',
            name='Jane Smith',
            password='testpass123'
        )

        self.admin_user = User.objects.create_user(
            email='admin@example.com',
            name='Admin User',
            password='testpass123',
            role='admin'
        )
        self.admin_token = Token.objects.create(user=self.admin_user)

        now = timezone.now()
        self.election = create_election(
            'Department Chair Election', '', now - timedelta(days=1), now + timedelta(days=7)
        )

    def test_voter_submits_request(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.post(
            '/api/participation-requests/',
            {'election_id': str(self.election.election_id)},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['user_id'], str(self.voter_user.user_id))
        self.assertEqual(response.data['election_title'], 'Department Chair Election')

    def test_duplicate_request(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)
        data = {'election_id': str(self.election.election_id)}

        self.client.post('/api/participation-requests/', data, format='json')
        response = self.client.post('/api/participation-requests/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'duplicate_request')

    def test_voter_cannot_request_for_someone_else(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.post('/api/participation-requests/', {
            'election_id': str(self.election.election_id),
            'user_id': str(self.other_voter.user_id),
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_voter_sees_only_own_requests(self):
        services.submit_request(self.voter_user.user_id, self.election.election_id)
        services.submit_request(self.other_voter.user_id, self.election.election_id)

        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)
        response = self.client.get('/api/participation-requests/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)
        response = self.client.get('/api/participation-requests/', {'status': 'pending'})
        self.assertEqual(len(response.data), 2)

    def test_invalid_filter(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)

        response = self.client.get('/api/participation-requests/', {'election_id': 'nope'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_admin_decides_request(self):
        request = services.submit_request(self.voter_user.user_id, self.election.election_id)
        url = f'/api/participation-requests/{request.request_id}/decision/'
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)

        response = self.client.post(url, {'decision': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['request']['status'], 'approved')
        self.assertEqual(response.data['request']['decided_by'], str(self.admin_user.user_id))

        response = self.client.post(url, {'decision': 'rejected'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_transition')

    def test_decision_requires_admin(self):
        request = services.submit_request(self.voter_user.user_id, self.election.election_id)
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.post(
            f'/api/participation-requests/{request.request_id}/decision/',
            {'decision': 'approved'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        request.refresh_from_db()
        self.assertEqual(request.status, RequestStatus.PENDING)

    def test_invalid_decision_value(self):
        request = services.submit_request(self.voter_user.user_id, self.election.election_id)
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)

        response = self.client.post(
            f'/api/participation-requests/{request.request_id}/decision/',
            {'decision': 'pending'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('decision', response.data)
