"""
Test suite for the core module
Tests: JWT auth, users and settings, audit log, global search, code numbering
"""
from django.test import TestCase, override_settings
from rest_framework import status
from textile_erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from textile_erp.core.models import AuditLog, Setting
from textile_erp.core.numbering import document_prefix, next_counted_code, next_sequential_code
from textile_erp.catalog.models import Category


class AuthTests(TestCase):
    """Test login, refresh and current user endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='counter_clerk', password='testpass123')
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens_and_user(self):
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'counter_clerk', 'password': 'testpass123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['username'], 'counter_clerk')

    def test_login_wrong_password(self):
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'counter_clerk', 'password': 'wrong'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token(self):
        login = self.client.post(
            '/api/v1/auth/login/', {'username': 'counter_clerk', 'password': 'testpass123'}, format='json'
        )
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'counter_clerk')
        self.assertFalse(response.data['is_admin'])

    def test_register(self):
        data = {
            'username': 'godown_manager',
            'email': 'godown@test.com',
            'password': 'Yarn#Bales2024',
            'password_confirm': 'Yarn#Bales2024',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['username'], 'godown_manager')

    def test_register_password_mismatch(self):
        data = {
            'username': 'godown_manager',
            'password': 'Yarn#Bales2024',
            'password_confirm': 'Yarn#Bales2025',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AdminEndpointTests(TestCase):
    """Users and settings are restricted to staff"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()

    def test_settings_forbidden_for_regular_user(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_creates_setting(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post(
            '/api/v1/settings/', {'key': 'challan_footer', 'value': 'Goods once sold will not be taken back'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Setting.get_value('challan_footer'), 'Goods once sold will not be taken back')
        self.assertEqual(Setting.get_value('missing', 'fallback'), 'fallback')

    def test_admin_lists_users(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)


class AuditLogTests(TestCase):
    """Audit entries are written by business endpoints and scoped to the user"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_writes_audit_log(self):
        response = self.client.post('/api/v1/categories/', {'category_name': 'Cotton Yarn 40s'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        log = AuditLog.objects.get(model_name='Category')
        self.assertEqual(log.action, 'create')
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.object_name, 'Cotton Yarn 40s')

    def test_user_only_sees_own_logs(self):
        AuditLog.objects.create(user=self.other, action='create', model_name='Product', object_id='1')
        AuditLog.objects.create(user=self.user, action='update', model_name='Product', object_id='1')

        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'update')

    def test_filter_by_action(self):
        AuditLog.objects.create(user=self.user, action='create', model_name='Product', object_id='1')
        AuditLog.objects.create(user=self.user, action='delete', model_name='Product', object_id='1')

        response = self.client.get('/api/v1/audit-logs/?action=delete')
        self.assertEqual(response.data['count'], 1)

    def test_detail_of_other_users_log_forbidden(self):
        log = AuditLog.objects.create(user=self.other, action='create', model_name='Product', object_id='1')
        response = self.client.get(f'/api/v1/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class GlobalSearchTests(TestCase):
    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_empty_query(self):
        response = self.client.get('/api/v1/search/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['customers'], [])
        self.assertEqual(response.data['sales_orders'], [])

    def test_search_master_data_and_documents(self):
        customer = TestDataFactory.create_customer(name='Alpha Weaving Mills')
        TestDataFactory.create_customer(name='Beta Knits')
        sales_order = TestDataFactory.create_sales_order(user=self.user, customer=customer)

        response = self.client.get('/api/v1/search/', {'q': 'Alpha'})
        self.assertEqual(len(response.data['customers']), 1)
        self.assertEqual(response.data['customers'][0]['company_name'], 'Alpha Weaving Mills')

        response = self.client.get('/api/v1/search/', {'q': sales_order.so_number})
        self.assertEqual(len(response.data['sales_orders']), 1)


class NumberingTests(TestCase):
    def test_sequential_code_follows_highest(self):
        Category.objects.create(category_name='A', category_code='CAT0007')
        Category.objects.create(category_name='B', category_code='CAT0002')
        self.assertEqual(next_sequential_code(Category.objects.all(), 'category_code', 'CAT'), 'CAT0008')

    def test_sequential_code_starts_at_one(self):
        self.assertEqual(next_sequential_code(Category.objects.all(), 'category_code', 'CAT'), 'CAT0001')

    def test_counted_code_skips_used_numbers(self):
        Category.objects.create(category_name='A', category_code='X03')
        self.assertEqual(next_counted_code(Category.objects.all(), 'category_code', 'X', start=3), 'X04')
        self.assertEqual(next_counted_code(Category.objects.all(), 'category_code', 'X', start=1), 'X01')

    @override_settings(DOCUMENT_PREFIX='ACME')
    def test_document_prefix_from_settings(self):
        self.assertEqual(document_prefix(), 'ACME')
