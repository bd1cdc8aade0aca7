"""
Test suite for the core module
Tests: Authentication, Users, Audit Logs, Error envelope, Pagination, Date ranges
"""
from datetime import date, timedelta

from django.conf import settings
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from backend.core.exceptions import ValidationException
from backend.core.models import AuditLog, User
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import parse_date_range


class AuthTests(TestCase):
    """Test login, registration, logout and token handling"""

    def setUp(self):
        self.client = APIClient()
        self.user = TestDataFactory.create_user(email='staff@test.com', name='Staff', password='secret123')

    def test_login_success(self):
        """Test login returns the user and a token pair, and sets the auth cookie"""
        response = self.client.post('/api/v1/auth/login/', {'email': 'staff@test.com', 'password': 'secret123'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['email'], 'staff@test.com')
        self.assertEqual(response.data['user']['role'], User.ROLE_STAFF)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertIn(settings.AUTH_COOKIE_NAME, response.cookies)
        self.assertTrue(response.cookies[settings.AUTH_COOKIE_NAME]['httponly'])
        self.assertTrue(AuditLog.objects.filter(action='login', object_id=str(self.user.id)).exists())

    def test_login_email_is_case_insensitive(self):
        """Test login with an upper case email"""
        response = self.client.post('/api/v1/auth/login/', {'email': 'STAFF@test.com', 'password': 'secret123'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_login_wrong_password(self):
        """Test login with a wrong password"""
        response = self.client.post('/api/v1/auth/login/', {'email': 'staff@test.com', 'password': 'nope'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error']['code'], 'INVALID_CREDENTIALS')

    def test_login_unknown_email(self):
        """Test login with an email nobody has"""
        response = self.client.post('/api/v1/auth/login/', {'email': 'ghost@test.com', 'password': 'secret123'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error']['code'], 'INVALID_CREDENTIALS')

    def test_login_inactive_user(self):
        """Test an inactive account cannot log in"""
        self.user.is_active = False
        self.user.save()
        response = self.client.post('/api/v1/auth/login/', {'email': 'staff@test.com', 'password': 'secret123'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error']['code'], 'FORBIDDEN')

    def test_login_missing_fields(self):
        """Test login without a password"""
        response = self.client.post('/api/v1/auth/login/', {'email': 'staff@test.com'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')
        self.assertIn('password', response.data['error']['details'])

    def test_register_creates_staff(self):
        """Test registration always creates a STAFF account"""
        data = {
            'name': 'New Person',
            'email': 'New@Test.com',
            'password': 'secret123',
            'confirm_password': 'secret123',
            'role': User.ROLE_ADMIN,
        }
        response = self.client.post('/api/v1/auth/register/', data)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], User.ROLE_STAFF)
        self.assertEqual(response.data['user']['email'], 'new@test.com')
        self.assertIn('access', response.data)

    def test_register_password_mismatch(self):
        """Test registration with mismatching passwords"""
        data = {'name': 'X', 'email': 'x@test.com', 'password': 'secret123', 'confirm_password': 'other123'}
        response = self.client.post('/api/v1/auth/register/', data)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('confirm_password', response.data['error']['details'])

    def test_register_duplicate_email(self):
        """Test registration with an existing email"""
        data = {'name': 'X', 'email': 'staff@test.com', 'password': 'secret123', 'confirm_password': 'secret123'}
        response = self.client.post('/api/v1/auth/register/', data)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Email already exists')

    def test_register_short_password(self):
        """Test registration with a password under six characters"""
        data = {'name': 'X', 'email': 'x@test.com', 'password': '123', 'confirm_password': '123'}
        response = self.client.post('/api/v1/auth/register/', data)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_logout_clears_cookie(self):
        """Test logout expires the auth cookie"""
        response = self.client.post('/api/v1/auth/logout/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.cookies[settings.AUTH_COOKIE_NAME].value, '')

    def test_me_requires_authentication(self):
        """Test the current user endpoint without a token"""
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error']['code'], 'UNAUTHORIZED')

    def test_me_with_bearer_token(self):
        """Test the current user endpoint with a bearer token"""
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], self.user.id)

    def test_me_with_cookie(self):
        """Test the auth cookie set by login authenticates later requests"""
        self.client.post('/api/v1/auth/login/', {'email': 'staff@test.com', 'password': 'secret123'})
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'staff@test.com')

    def test_invalid_token(self):
        """Test a garbage bearer token is rejected"""
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error']['code'], 'UNAUTHORIZED')

    def test_refresh_token(self):
        """Test exchanging a refresh token for a new access token"""
        login = self.client.post('/api/v1/auth/login/', {'email': 'staff@test.com', 'password': 'secret123'})
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_with_garbage_token(self):
        """Test an invalid refresh token is rejected"""
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'garbage'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error']['code'], 'UNAUTHORIZED')

    def test_change_password(self):
        """Test changing the current user's password"""
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.post('/api/v1/auth/change-password/',
                               {'current_password': 'secret123', 'new_password': 'newsecret1'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('newsecret1'))

    def test_change_password_wrong_current(self):
        """Test changing the password with a wrong current password"""
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.post('/api/v1/auth/change-password/',
                               {'current_password': 'wrong', 'new_password': 'newsecret1'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error']['message'], 'Current password is incorrect')


class UserAPITests(TestCase):
    """Test user management endpoints (ADMIN only)"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin(email='admin@test.com')
        self.staff = TestDataFactory.create_user(email='staff@test.com', name='Staff Member')
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_staff_cannot_list_users(self):
        """Test STAFF users get 403"""
        client = AuthenticatedAPIClient().authenticate_user(self.staff)
        response = client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error']['code'], 'FORBIDDEN')

    def test_list_users_paginated(self):
        """Test listing users returns the page envelope"""
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['page'], 1)
        self.assertEqual(response.data['limit'], 10)
        self.assertEqual(response.data['total_pages'], 1)
        self.assertEqual(len(response.data['results']), 2)

    def test_list_users_filter_role_and_search(self):
        """Test filtering users by role and search"""
        response = self.client.get('/api/v1/users/', {'role': User.ROLE_STAFF})
        self.assertEqual([u['email'] for u in response.data['results']], ['staff@test.com'])

        response = self.client.get('/api/v1/users/', {'search': 'member'})
        self.assertEqual(response.data['count'], 1)

    def test_list_users_invalid_role(self):
        """Test an unknown role filter is a validation error"""
        response = self.client.get('/api/v1/users/', {'role': 'OWNER'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')

    def test_pagination_past_last_page(self):
        """Test a page past the end is empty"""
        response = self.client.get('/api/v1/users/', {'page': 5, 'limit': 1})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['results'], [])
        self.assertEqual(response.data['total_pages'], 2)

    def test_pagination_invalid_limit(self):
        """Test limits outside 1..100 are rejected"""
        for limit in (0, 101):
            response = self.client.get('/api/v1/users/', {'limit': limit})
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_user(self):
        """Test creating a user"""
        data = {'name': 'Cook', 'email': 'cook@test.com', 'password': 'secret123', 'role': User.ROLE_STAFF}
        response = self.client.post('/api/v1/users/', data)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('password', response.data)
        user = User.objects.get(email='cook@test.com')
        self.assertTrue(user.check_password('secret123'))
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='User', object_id=str(user.id)).exists())

    def test_create_admin_sets_django_staff_flag(self):
        """Test ADMIN users can reach the Django admin"""
        data = {'name': 'Boss', 'email': 'boss@test.com', 'password': 'secret123', 'role': User.ROLE_ADMIN}
        self.client.post('/api/v1/users/', data)
        self.assertTrue(User.objects.get(email='boss@test.com').is_staff)

    def test_create_user_duplicate_email(self):
        """Test creating a user with an existing email"""
        data = {'name': 'Dup', 'email': 'STAFF@test.com', 'password': 'secret123'}
        response = self.client.post('/api/v1/users/', data)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_user(self):
        """Test updating a user's role and password"""
        response = self.client.patch(f'/api/v1/users/{self.staff.id}/',
                                     {'role': User.ROLE_ADMIN, 'password': 'changed123'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], User.ROLE_ADMIN)
        self.staff.refresh_from_db()
        self.assertTrue(self.staff.check_password('changed123'))
        log = AuditLog.objects.get(action='update', model_name='User')
        self.assertEqual(log.changes['password'], 'changed')

    def test_get_missing_user(self):
        """Test retrieving a user that does not exist"""
        response = self.client.get('/api/v1/users/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], {'code': 'NOT_FOUND', 'message': 'User not found'})

    def test_delete_user(self):
        """Test deleting a user"""
        response = self.client.delete(f'/api/v1/users/{self.staff.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(id=self.staff.id).exists())


class AuditLogAPITests(TestCase):
    """Test audit log endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)
        AuditLog.objects.create(user=self.admin, action='create', model_name='Category', object_id='1')
        AuditLog.objects.create(user=self.admin, action='delete', model_name='Product', object_id='2')

    def test_list_audit_logs(self):
        """Test listing audit logs"""
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

    def test_filter_audit_logs(self):
        """Test filtering audit logs by action and model"""
        response = self.client.get('/api/v1/audit-logs/', {'action': 'delete'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/audit-logs/', {'model': 'category'})
        self.assertEqual(response.data['count'], 1)

    def test_audit_log_detail(self):
        """Test retrieving one audit log"""
        log = AuditLog.objects.first()
        response = self.client.get(f'/api/v1/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['id'], self.admin.id)

    def test_staff_cannot_read_audit_logs(self):
        """Test STAFF users get 403 on audit logs"""
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class DateRangeTests(TestCase):
    """Test the from/to query parameter parsing"""

    def test_date_only_to_covers_whole_day(self):
        """Test a plain 'to' date includes the whole day"""
        date_range = parse_date_range({'from': '2024-03-01', 'to': '2024-03-03'})
        self.assertEqual(date_range.start_date, date(2024, 3, 1))
        self.assertEqual(date_range.end_date, date(2024, 3, 3))
        self.assertEqual(date_range.end - date_range.start, timedelta(days=3))
        self.assertEqual(list(date_range.days()), [date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 3)])
        self.assertEqual(date_range.label(), '2024-03-01_2024-03-03')

    def test_same_day_range(self):
        """Test from and to on the same day"""
        date_range = parse_date_range({'from': '2024-03-01', 'to': '2024-03-01'})
        self.assertEqual(list(date_range.days()), [date(2024, 3, 1)])

    def test_required_range(self):
        """Test a missing bound when the range is required"""
        with self.assertRaises(ValidationException):
            parse_date_range({'from': '2024-03-01'}, required=True)

    def test_optional_range(self):
        """Test no bounds gives an open range"""
        date_range = parse_date_range({})
        self.assertFalse(date_range.is_bounded)
        self.assertEqual(date_range.filter_kwargs('created_at'), {})

    def test_invalid_date(self):
        """Test an unparseable date"""
        with self.assertRaises(ValidationException):
            parse_date_range({'from': 'yesterday', 'to': '2024-03-01'})

    def test_from_after_to(self):
        """Test a reversed range"""
        with self.assertRaises(ValidationException):
            parse_date_range({'from': '2024-03-05', 'to': '2024-03-01'})

    def test_datetime_bounds(self):
        """Test full datetimes are accepted and made timezone aware"""
        date_range = parse_date_range({'from': '2024-03-01T08:00:00', 'to': '2024-03-01T10:00:00'})
        self.assertTrue(timezone.is_aware(date_range.start))
        self.assertTrue(date_range.start < date_range.end)


class SeedUsersCommandTests(TestCase):
    """Test the seed_users management command"""

    def test_seed_users_is_idempotent(self):
        """Test seeding twice keeps one account per email"""
        call_command('seed_users', verbosity=0)
        call_command('seed_users', verbosity=0)
        self.assertEqual(User.objects.count(), 3)
        admin = User.objects.get(email='admin@hongvan.com')
        self.assertEqual(admin.role, User.ROLE_ADMIN)
        self.assertTrue(admin.check_password('admin123'))


class SchemaTests(TestCase):
    """Test the OpenAPI document"""

    def test_schema_is_public(self):
        """Test the schema is served without a token"""
        response = APIClient().get('/api/v1/schema/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('/api/v1/orders/', response.json()['paths'])

    def test_schema_lists_authenticated_endpoints(self):
        """Test endpoints behind login and admin gates are documented"""
        paths = APIClient().get('/api/v1/schema/').json()['paths']
        for path in ['/api/v1/users/', '/api/v1/products/', '/api/v1/inventory-imports/',
                     '/api/v1/customers/', '/api/v1/reports/revenue/', '/api/v1/export/orders/']:
            self.assertIn(path, paths)
