from django.db import IntegrityError, transaction
from django.test import TestCase
from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase, APIClient
from rest_framework import status
from rest_framework.authtoken.models import Token

from electionconsole.exceptions import EmailInUse, NotFound
from .models import AccessStatus, Role
from . import services

User = get_user_model()


class UserModelTest(TestCase):
    """Test User model functionality"""

    def test_create_user(self):
        """Test creating a regular user"""
        user = User.objects.create_user(
            email='test@example.com',
            name='Test User',
            password='testpass123'
        )
        self.assertEqual(user.email, 'test@example.com')
        self.assertEqual(user.name, 'Test User')
        self.assertTrue(user.check_password('testpass123'))
        self.assertEqual(user.role, Role.VOTER)  # Default role
        self.assertEqual(user.access_status, AccessStatus.ACTIVE)
        self.assertTrue(user.is_active)
        self.assertFalse(user.is_staff)
        self.assertFalse(user.is_admin)

    def test_create_superuser(self):
        """Test creating a superuser"""
        admin_user = User.objects.create_superuser(
            email='admin@example.com',
            name='Admin User',
            password='adminpass123'
        )
        self.assertTrue(admin_user.is_staff)
        self.assertTrue(admin_user.is_superuser)
        self.assertEqual(admin_user.role, Role.ADMIN)
        self.assertTrue(admin_user.is_admin)

    def test_create_user_requires_email_and_name(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', name='No Email', password='testpass123')

        with self.assertRaises(ValueError):
            User.objects.create_user(email='noname@example.com', name='', password='testpass123')

    def test_email_is_unique(self):
        User.objects.create_user(email='test@example.com', name='Test User', password='testpass123')

        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                User.objects.create_user(email='test@example.com', name='Other User', password='testpass123')

    def test_blocked_user_is_inactive(self):
        user = User.objects.create_user(
            email='test@example.com',
            name='Test User',
            password='testpass123',
            access_status=AccessStatus.BLOCKED
        )
        self.assertTrue(user.is_blocked)
        self.assertFalse(user.is_active)

    def test_user_string_representation(self):
        user = User.objects.create_user(email='test@example.com', name='Test User', password='testpass123')
        self.assertEqual(str(user), 'Test User (test@example.com)')


class UserServiceTest(TestCase):
    """Test user access and profile operations"""

    def setUp(self):
        self.user = User.objects.create_user(
            email='voter@example.com',
            name='John Voter',
            password='testpass123'
        )
        self.other = User.objects.create_user(
            email='jane@example.com',
            name='Jane Smith',
            password='testpass123'
        )

    def test_block_and_unblock(self):
        blocked = services.set_user_access(self.user.user_id, AccessStatus.BLOCKED)
        self.assertEqual(blocked.access_status, AccessStatus.BLOCKED)

        self.user.refresh_from_db()
        self.assertFalse(self.user.is_active)

        services.set_user_access(self.user.user_id, AccessStatus.ACTIVE)
        self.user.refresh_from_db()
        self.assertEqual(self.user.access_status, AccessStatus.ACTIVE)
        self.assertTrue(self.user.is_active)

    def test_set_same_access_is_noop(self):
        before = self.user.updated_at

        user = services.set_user_access(self.user.user_id, AccessStatus.ACTIVE)

        self.assertEqual(user.access_status, AccessStatus.ACTIVE)
        user.refresh_from_db()
        self.assertEqual(user.updated_at, before)

    def test_toggle_access(self):
        self.assertEqual(services.toggle_user_access(self.user.user_id).access_status, AccessStatus.BLOCKED)
        self.assertEqual(services.toggle_user_access(self.user.user_id).access_status, AccessStatus.ACTIVE)

    def test_set_unknown_access_status(self):
        with self.assertRaises(ValueError):
            services.set_user_access(self.user.user_id, 'suspended')

    def test_unknown_user(self):
        with self.assertRaises(NotFound):
            services.set_user_access('00000000-0000-0000-0000-000000000000', AccessStatus.BLOCKED)

        with self.assertRaises(NotFound):
            services.get_user('not-a-uuid')

    def test_update_profile(self):
        user = services.update_user_profile(self.user.user_id, name='John Q. Voter', email='john@example.com')

        self.assertEqual(user.name, 'John Q. Voter')
        self.assertEqual(user.email, 'john@example.com')

    def test_update_profile_email_in_use(self):
        with self.assertRaises(EmailInUse):
            services.update_user_profile(self.user.user_id, email='jane@example.com')

        self.user.refresh_from_db()
        self.assertEqual(self.user.email, 'voter@example.com')

    def test_list_users_filters(self):
        admin_user = User.objects.create_user(
            email='admin@example.com', name='Admin User', password='testpass123', role=Role.ADMIN
        )
        services.set_user_access(self.other.user_id, AccessStatus.BLOCKED)

        self.assertEqual(list(services.list_users()), [self.user, self.other, admin_user])
        self.assertEqual(list(services.list_users(role=Role.ADMIN)), [admin_user])
        self.assertEqual(list(services.list_users(access_status=AccessStatus.BLOCKED)), [self.other])
        self.assertEqual(list(services.list_users(search='JANE')), [self.other])


class UserAPITest(APITestCase):
    """Test user management API endpoints"""

    def setUp(self):
        self.client = APIClient()

        self.admin_user = User.objects.create_user(
            email='admin@example.com',
            name='Admin User',
            password='testpass123',
            role=Role.ADMIN
        )
        self.admin_token = Token.objects.create(user=self.admin_user)

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

    def test_admin_lists_users(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)

        response = self.client.get('/api/users/', {'role': 'voter'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u['email'] for u in response.data], ['voter@example.com', 'jane@example.com'])

    def test_voter_cannot_list_users(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.get('/api/users/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_voter_reads_own_profile(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.get(f'/api/users/{self.voter_user.user_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], str(self.voter_user.user_id))

        response = self.client.get(f'/api/users/{self.other_voter.user_id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_profile(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.patch(
            f'/api/users/{self.voter_user.user_id}/', {'name': 'John Q. Voter'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'John Q. Voter')

    def test_update_profile_email_conflict(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)

        response = self.client.patch(
            f'/api/users/{self.voter_user.user_id}/', {'email': 'jane@example.com'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'email_in_use')

    def test_admin_blocks_user(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)

        response = self.client.post(
            f'/api/users/{self.voter_user.user_id}/access/', {'access_status': 'blocked'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['access_status'], 'blocked')

        # The blocked user's token no longer authenticates
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.voter_token.key)
        response = self.client.get(f'/api/users/{self.voter_user.user_id}/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_access_toggle_without_status(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)
        url = f'/api/users/{self.other_voter.user_id}/access/'

        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.data['user']['access_status'], 'blocked')

        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.data['user']['access_status'], 'active')

    def test_access_unknown_user(self):
        self.client.credentials(HTTP_AUTHORIZATION='Token ' + self.admin_token.key)

        response = self.client.post(
            '/api/users/00000000-0000-0000-0000-000000000000/access/', {'access_status': 'blocked'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')
