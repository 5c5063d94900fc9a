from datetime import datetime, timedelta, timezone as dt_timezone
from unittest import mock
import threading

from django.db import IntegrityError, connection, transaction
from django.test import TestCase, TransactionTestCase, override_settings
from django.utils import timezone
from rest_framework.test import APITestCase, APIClient
from rest_framework import status
from rest_framework.authtoken.models import Token

from authentication.models import User
from electionconsole.exceptions import DuplicateVote, ElectionNotActive, InvalidCandidate, NotFound
from elections.services import create_election
from participation.models import RequestStatus
from participation.services import submit_request, decide
from .models import Vote
from . import services


def utc(*args):
    return datetime(*args, tzinfo=dt_timezone.utc)


class VotingLedgerTest(TestCase):
    """Test casting and tallying votes"""

    def setUp(self):
        self.voter = User.objects.create_user(
            email='voter@example.com',
            name='Voter User',
            password='testpass123'
        )
        self.candidate1 = User.objects.create_user(
            email='c1@example.com',
            name='Candidate 1',
            password='testpass123'
        )
        self.candidate2 = User.objects.create_user(
            email='c2@example.com',
            name='Candidate 2',
            password='testpass123'
        )

        self.election = create_election('Council', '', utc(2025, 6, 1), utc(2025, 6, 10))
        self.now = utc(2025, 6, 5)

        for candidate, requested_at in ((self.candidate1, utc(2025, 6, 2)), (self.candidate2, utc(2025, 6, 3))):
            request = submit_request(candidate.user_id, self.election.election_id, now=requested_at)
            decide(request.request_id, RequestStatus.APPROVED)

        self.c1 = str(self.candidate1.user_id)
        self.c2 = str(self.candidate2.user_id)

    def test_eligible_candidates_come_from_approved_requests(self):
        pending_user = User.objects.create_user(email='p@example.com', name='Pending', password='testpass123')
        submit_request(pending_user.user_id, self.election.election_id, now=self.now)

        self.assertEqual(services.eligible_candidates(self.election), [self.c1, self.c2])

    def test_cast_vote(self):
        """Test successful vote casting"""
        receipt = services.cast_vote(self.voter.user_id, self.election.election_id, self.c1, now=self.now)

        self.assertEqual(receipt.election_id, str(self.election.election_id))
        self.assertEqual(receipt.cast_at, self.now)
        self.assertFalse(hasattr(receipt, 'candidate_id'))

        vote = Vote.objects.get(vote_id=receipt.vote_id)
        self.assertEqual(vote.voter, self.voter)
        self.assertEqual(vote.candidate_id, self.c1)
        self.assertNotIn(self.c1, vote.encrypted_vote_data)
        self.assertTrue(services.has_voted(self.voter, self.election))

    def test_second_vote_rejected(self):
        """A voter votes once per election; the tally keeps only the first ballot"""
        services.cast_vote(self.voter.user_id, self.election.election_id, self.c1, now=self.now)

        with self.assertRaises(DuplicateVote):
            services.cast_vote(self.voter.user_id, self.election.election_id, self.c2, now=self.now)

        self.assertEqual(services.tally(self.election.election_id), {self.c1: 1, self.c2: 0})

    def test_database_rejects_second_vote(self):
        """The database keeps one vote per voter even when the service check is bypassed"""
        Vote.objects.create(voter=self.voter, election=self.election, candidate_id=self.c1)

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Vote.objects.create(voter=self.voter, election=self.election, candidate_id=self.c2)

    def test_vote_racing_past_check_is_duplicate(self):
        """A second ballot that slips past the has-voted check is rejected at insert"""
        services.cast_vote(self.voter.user_id, self.election.election_id, self.c1, now=self.now)

        with mock.patch('voting.services.has_voted', return_value=False):
            with self.assertRaises(DuplicateVote):
                services.cast_vote(self.voter.user_id, self.election.election_id, self.c2, now=self.now)

        self.assertEqual(Vote.objects.count(), 1)
        self.assertEqual(services.tally(self.election.election_id), {self.c1: 1, self.c2: 0})

    def test_invalid_candidate(self):
        with self.assertRaises(InvalidCandidate):
            services.cast_vote(self.voter.user_id, self.election.election_id, 'nobody', now=self.now)

        self.assertEqual(Vote.objects.count(), 0)

    def test_pending_candidate_is_not_eligible(self):
        pending_user = User.objects.create_user(email='p@example.com', name='Pending', password='testpass123')
        submit_request(pending_user.user_id, self.election.election_id, now=self.now)

        with self.assertRaises(InvalidCandidate):
            services.cast_vote(self.voter.user_id, self.election.election_id, str(pending_user.user_id), now=self.now)

    def test_external_candidate_list(self):
        receipt = services.cast_vote(
            self.voter.user_id, self.election.election_id, 'mayor-1',
            now=self.now, candidates=['mayor-1', 'mayor-2']
        )

        self.assertIsNotNone(receipt.vote_id)
        self.assertEqual(
            services.tally(self.election.election_id, candidates=['mayor-1', 'mayor-2']),
            {'mayor-1': 1, 'mayor-2': 0}
        )

        other = User.objects.create_user(email='o@example.com', name='Other', password='testpass123')
        with self.assertRaises(InvalidCandidate):
            services.cast_vote(other.user_id, self.election.election_id, self.c1,
                               now=self.now, candidates=['mayor-1', 'mayor-2'])

    def test_election_not_active(self):
        with self.assertRaises(ElectionNotActive):
            services.cast_vote(self.voter.user_id, self.election.election_id, self.c1, now=utc(2025, 5, 31))

        with self.assertRaises(ElectionNotActive):
            services.cast_vote(self.voter.user_id, self.election.election_id, self.c1, now=utc(2025, 6, 11))

        self.assertEqual(Vote.objects.count(), 0)

    def test_unknown_references(self):
        with self.assertRaises(NotFound):
            services.cast_vote(self.voter.user_id, '00000000-0000-0000-0000-000000000000', self.c1, now=self.now)

        with self.assertRaises(NotFound):
            services.cast_vote('00000000-0000-0000-0000-000000000000', self.election.election_id, self.c1, now=self.now)

        with self.assertRaises(NotFound):
            services.tally('00000000-0000-0000-0000-000000000000')

    def test_tally_counts(self):
        voters = [
            User.objects.create_user(email=f'v{i}@example.com', name=f'Voter {i}', password='testpass123')
            for i in range(3)
        ]
        services.cast_vote(voters[0].user_id, self.election.election_id, self.c2, now=self.now)
        services.cast_vote(voters[1].user_id, self.election.election_id, self.c2, now=self.now)
        services.cast_vote(voters[2].user_id, self.election.election_id, self.c1, now=self.now)

        self.assertEqual(services.tally(self.election.election_id), {self.c1: 1, self.c2: 2})

    def test_tally_without_votes(self):
        self.assertEqual(services.tally(self.election.election_id), {self.c1: 0, self.c2: 0})

    def test_vote_verification(self):
        receipt = services.cast_vote(self.voter.user_id, self.election.election_id, self.c1, now=self.now)
        vote = Vote.objects.get(vote_id=receipt.vote_id)

        self.assertTrue(vote.verify())

        # Tampering with the row breaks the seal
        Vote.objects.filter(pk=vote.pk).update(candidate_id=self.c2)
        vote.refresh_from_db()
        self.assertFalse(vote.verify())

    def test_vote_verification_with_wrong_key(self):
        receipt = services.cast_vote(self.voter.user_id, self.election.election_id, self.c1, now=self.now)
        vote = Vote.objects.get(vote_id=receipt.vote_id)

        with override_settings(VOTE_ENCRYPTION_KEY='another-key'):
            self.assertFalse(vote.verify())

    def test_votes_are_immutable(self):
        receipt = services.cast_vote(self.voter.user_id, self.election.election_id, self.c1, now=self.now)
        vote = Vote.objects.get(vote_id=receipt.vote_id)

        vote.candidate_id = self.c2
        with self.assertRaises(ValueError):
            vote.save()


class ConcurrentVotingTest(TransactionTestCase):
    """Ballots cast at the same moment by the same voter"""

    THREADS = 4

    def setUp(self):
        self.voter = User.objects.create_user(
            email='voter@example.com',
            name='Voter User',
            password='testpass123'
        )
        candidate = User.objects.create_user(
            email='c1@example.com',
            name='Candidate 1',
            password='testpass123'
        )
        self.election = create_election('Council', '', utc(2025, 6, 1), utc(2025, 6, 10))
        self.now = utc(2025, 6, 5)

        request = submit_request(candidate.user_id, self.election.election_id, now=utc(2025, 6, 2))
        decide(request.request_id, RequestStatus.APPROVED)
        self.candidate_id = str(candidate.user_id)

    def test_one_ballot_wins(self):
        barrier = threading.Barrier(self.THREADS)
        outcomes = []
        lock = threading.Lock()

        def vote():
            try:
                barrier.wait()
                services.cast_vote(self.voter.user_id, self.election.election_id, self.candidate_id, now=self.now)
                outcome = 'recorded'
            except DuplicateVote:
                outcome = 'duplicate'
            except Exception as e:
                outcome = repr(e)
            finally:
                connection.close()
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=vote) for _ in range(self.THREADS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(outcomes), ['duplicate'] * (self.THREADS - 1) + ['recorded'])
        self.assertEqual(Vote.objects.filter(voter=self.voter, election=self.election).count(), 1)


class VotingAPITest(APITestCase):
    """Test voting API endpoints"""

    def setUp(self):
        self.client = APIClient()

        self.voter_user = User.objects.create_user(
            email='voter@example.com',
            name='Voter User',
            password='testpass123'
        )
        self.voter_token = Token.objects.create(user=self.voter_user)

        self.admin_user = User.objects.create_user(
            email='admin@example.com',
            name='Admin User',
            password='testpass123',
            role='admin'
        )
        self.admin_token = Token.objects.create(user=self.admin_user)

        self.candidate1 = User.objects.create_user(
            email='c1@example.com',
            name='Candidate 1',
            password='testpass123'
        )
        self.candidate2 = User.objects.create_user(
            email='c2@example.com',
            name='Candidate 2',
            password='testpass123'
        )

        now = timezone.now()
        self.election = create_election('Test Election', '', now - timedelta(days=1), now + timedelta(days=1))
        for candidate in (self.candidate1, self.candidate2):
            request = submit_request(candidate.user_id, self.election.election_id)
            decide(request.request_id, RequestStatus.APPROVED)

        self.votes_url = f'/api/elections/{self.election.election_id}/votes/'
        self.tally_url = f'/api/elections/{self.election.election_id}/tally/'

    def test_cast_vote_success(self):
        """Test successful vote casting"""
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.post(self.votes_url, {'candidate_id': str(self.candidate1.user_id)}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('message', response.data)
        self.assertIn('vote_id', response.data['vote'])
        self.assertNotIn('candidate_id', response.data['vote'])
        self.assertTrue(Vote.objects.filter(voter=self.voter_user, election=self.election).exists())

    def test_cast_vote_duplicate(self):
        """Test casting vote twice in same election"""
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        self.client.post(self.votes_url, {'candidate_id': str(self.candidate1.user_id)}, format='json')
        response = self.client.post(self.votes_url, {'candidate_id': str(self.candidate2.user_id)}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'duplicate_vote')
        self.assertEqual(Vote.objects.count(), 1)

    def test_cast_vote_invalid_candidate(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.post(self.votes_url, {'candidate_id': 'nobody'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_candidate')

    def test_cast_vote_unauthorized(self):
        """Test vote casting without authentication"""
        response = self.client.post(self.votes_url, {'candidate_id': str(self.candidate1.user_id)}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_get_ballot(self):
        """Test getting ballot for election"""
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.get(f'/api/elections/{self.election.election_id}/ballot/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'active')
        self.assertFalse(response.data['has_voted'])
        self.assertEqual(
            [c['name'] for c in response.data['candidates']],
            ['Candidate 1', 'Candidate 2']
        )

    def test_tally_disclosure(self):
        """Admins see running counts; voters wait for the election to complete"""
        services.cast_vote(self.voter_user.user_id, self.election.election_id, str(self.candidate1.user_id))

        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)
        response = self.client.get(self.tally_url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)
        response = self.client.get(self.tally_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_votes'], 1)
        self.assertEqual(response.data['results'], {
            str(self.candidate1.user_id): 1,
            str(self.candidate2.user_id): 0,
        })

    def test_tally_unknown_election(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)

        response = self.client.get('/api/elections/00000000-0000-0000-0000-000000000000/tally/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
