"""
Test suite for Core module
Tests: Auth, users, store config, neighborhoods, audit logs, list cache, data gateway
"""
from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.models import StoreConfig, DeliveryNeighborhood, AuditLog
from backoffice.core.cache_utils import get_cached_list, cache_list, invalidate_list_cache
from backoffice.core.gateway import DataGateway, GatewayError
from backoffice.core.utils import create_audit_log, parse_date_param, parse_int_param
from backoffice.pricing.models import Offer


class AuthTests(TestCase):
    """Test JWT login and the current user endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='operator1', password='testpass123', role='manager')
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens(self):
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'operator1',
            'password': 'testpass123'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'operator1',
            'password': 'wrong'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'operator1')
        self.assertEqual(response.data['role'], 'manager')

    def test_requires_authentication(self):
        response = self.client.get('/api/v1/store-config/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_user_management_is_admin_only(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_creates_user(self):
        admin = TestDataFactory.create_user(is_staff=True, role='admin')
        self.client.authenticate_user(admin)
        response = self.client.post('/api/v1/users/', {
            'username': 'novo',
            'password': 'S3nha-forte-2024',
            'password_confirm': 'S3nha-forte-2024',
            'role': 'operator',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], 'operator')

        response = self.client.delete(f'/api/v1/users/{admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class StoreConfigTests(TestCase):
    """Test the store configuration singleton"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_load_creates_single_row(self):
        first = StoreConfig.load()
        second = StoreConfig.load()
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(StoreConfig.objects.count(), 1)

    def test_get_config(self):
        response = self.client.get('/api/v1/store-config/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['store_name'], 'Minha Loja')

    def test_update_config_writes_audit_log(self):
        response = self.client.patch('/api/v1/store-config/', {'store_name': 'Mercadinho'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(StoreConfig.load().store_name, 'Mercadinho')
        self.assertTrue(AuditLog.objects.filter(action='config_update').exists())

    def test_invalid_club_percentage(self):
        response = self.client.patch('/api/v1/store-config/', {'club_discount_percentage': '120'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_disabling_club_deactivates_club_offers(self):
        config = StoreConfig.load()
        config.enable_club_discount = True
        config.save()
        club_offer = TestDataFactory.create_offer(offer_type='clube_desconto')
        seasonal_offer = TestDataFactory.create_offer(offer_type='sazonal')

        response = self.client.patch('/api/v1/store-config/', {'enable_club_discount': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['club_offers_deactivated'], 1)
        self.assertFalse(Offer.objects.get(pk=club_offer.pk).is_active)
        self.assertTrue(Offer.objects.get(pk=seasonal_offer.pk).is_active)


class NeighborhoodTests(TestCase):
    """Test delivery neighborhood endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_and_list(self):
        response = self.client.post('/api/v1/neighborhoods/', {'name': 'Centro', 'fee': '5.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get('/api/v1/neighborhoods/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([n['name'] for n in response.data], ['Centro'])

    def test_negative_fee_rejected(self):
        response = self.client.post('/api/v1/neighborhoods/', {'name': 'Centro', 'fee': '-1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_toggle(self):
        neighborhood = DeliveryNeighborhood.objects.create(name='Jardim', fee=Decimal('7.00'))
        response = self.client.post(f'/api/v1/neighborhoods/{neighborhood.id}/toggle/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])

    def test_active_filter(self):
        DeliveryNeighborhood.objects.create(name='A', is_active=True)
        DeliveryNeighborhood.objects.create(name='B', is_active=False)
        response = self.client.get('/api/v1/neighborhoods/?active=false')
        self.assertEqual([n['name'] for n in response.data], ['B'])


class QueryParamTests(SimpleTestCase):
    """Test query parameter parsing shared by the list views"""

    def test_date_param(self):
        self.assertEqual(parse_date_param({'date_from': '2024-05-01'}, 'date_from'), date(2024, 5, 1))
        self.assertIsNone(parse_date_param({}, 'date_from'))
        self.assertIsNone(parse_date_param({'date_from': ''}, 'date_from'))
        with self.assertRaisesMessage(ValueError, 'date_to must be formatted as YYYY-MM-DD'):
            parse_date_param({'date_to': '2024-02-30'}, 'date_to')

    def test_int_param(self):
        self.assertEqual(parse_int_param({'limit': '7'}, 'limit', 50), 7)
        self.assertEqual(parse_int_param({}, 'limit', 50), 50)
        with self.assertRaisesMessage(ValueError, 'limit must be an integer'):
            parse_int_param({'limit': 'x'}, 'limit', 50)
        with self.assertRaisesMessage(ValueError, 'page must be at least 1'):
            parse_int_param({'page': '0'}, 'page', 1)


class AuditLogTests(TestCase):
    """Test audit log helpers and visibility"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(user=self.user, action='update', model_name='Product'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_non_staff_only_sees_own_logs(self):
        create_audit_log(user=self.user, action='update', model_name='Product', object_id=1)
        create_audit_log(user=self.other, action='update', model_name='Product', object_id=2)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['object_id'], '1')

    def test_detail_of_other_user_is_forbidden(self):
        log = create_audit_log(user=self.other, action='delete', model_name='Product', object_id=9)
        response = self.client.get(f'/api/v1/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ListCacheTests(TestCase):
    """Test versioned list caching"""

    def test_cache_hit_then_invalidate(self):
        data, key = get_cached_list('test_list', page=1)
        self.assertIsNone(data)
        cache_list(key, ['a', 'b'], 60)

        data, same_key = get_cached_list('test_list', page=1)
        self.assertEqual(data, ['a', 'b'])
        self.assertEqual(key, same_key)

        invalidate_list_cache('test_list')
        data, new_key = get_cached_list('test_list', page=1)
        self.assertIsNone(data)
        self.assertNotEqual(key, new_key)


class DataGatewayTests(TestCase):
    """Test the table-scoped async gateway"""

    def setUp(self):
        self.gateway = DataGateway()
        self.customer = TestDataFactory.create_customer(name='Ana')
        self.product = TestDataFactory.create_product()
        self.order = TestDataFactory.create_order(customer=self.customer, items=[(self.product, 2)])

    async def test_select_with_relations(self):
        rows = await self.gateway.select('orders', ordering=['-created_at'], related=['customer', 'items'])
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['customer']['name'], 'Ana')
        self.assertEqual(rows[0]['items'][0]['quantity'], 2)

    async def test_select_one_missing(self):
        self.assertIsNone(await self.gateway.select_one('orders', 999999))

    async def test_unknown_table(self):
        with self.assertRaises(GatewayError):
            await self.gateway.select('nope')

    async def test_bad_filter(self):
        with self.assertRaises(GatewayError):
            await self.gateway.select('orders', {'no_such_field': 1})

    async def test_update_returns_rows(self):
        rows = await self.gateway.update('orders', {'id__in': [self.order.id]}, {'status': 'preparing'})
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['status'], 'preparing')

    async def test_update_requires_filter(self):
        with self.assertRaises(GatewayError):
            await self.gateway.update('orders', {}, {'status': 'sent'})

    async def test_insert_validates(self):
        with self.assertRaises(GatewayError):
            await self.gateway.insert('delivery_neighborhoods', {'name': ''})
        row = await self.gateway.insert('delivery_neighborhoods', {'name': 'Vila Nova', 'fee': Decimal('3.00')})
        self.assertEqual(row['name'], 'Vila Nova')

    async def test_delete(self):
        row = await self.gateway.insert('delivery_neighborhoods', {'name': 'Temp'})
        await self.gateway.delete('delivery_neighborhoods', {'pk': row['id']})
        self.assertIsNone(await self.gateway.select_one('delivery_neighborhoods', row['id']))
