"""
Test suite for Catalog module
Tests: Categories, products, filters, margins, list caching
"""
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.models import AuditLog
from backoffice.catalog.models import Category, Product


class ProductModelTests(TestCase):
    """Test Product model properties"""

    def test_profit_margin(self):
        product = TestDataFactory.create_product(cost_price='8.00', sale_price='10.00')
        self.assertEqual(product.profit_margin_value, Decimal('2.00'))
        self.assertEqual(product.profit_margin_percent, Decimal('25.00'))

    def test_profit_margin_without_cost(self):
        product = TestDataFactory.create_product(cost_price='0.00', sale_price='10.00')
        self.assertEqual(product.profit_margin_percent, Decimal('0.00'))

    def test_low_stock(self):
        product = TestDataFactory.create_product(stock_quantity=2, min_stock_alert=2)
        self.assertTrue(product.is_low_stock)

    def test_slug_follows_name(self):
        category = TestDataFactory.create_category(name='Bebidas Geladas')
        self.assertEqual(category.slug, 'bebidas-geladas')


class CategoryAPITests(TestCase):
    """Test Category API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_category(self):
        response = self.client.post('/api/v1/categories/', {'name': 'Mercearia'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'mercearia')

    def test_list_includes_product_count(self):
        category = TestDataFactory.create_category()
        TestDataFactory.create_product(category=category)
        TestDataFactory.create_product(category=category)
        response = self.client.get('/api/v1/categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['product_count'], 2)

    def test_toggle_category(self):
        category = TestDataFactory.create_category()
        response = self.client.post(f'/api/v1/categories/{category.id}/toggle/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Category.objects.get(pk=category.id).is_active)


class ProductAPITests(TestCase):
    """Test Product API endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.category = TestDataFactory.create_category()

    def test_create_product(self):
        data = {
            'name': 'Arroz 5kg',
            'sku': 'ARZ-5',
            'category_id': self.category.id,
            'cost_price': '18.00',
            'sale_price': '24.90',
            'min_stock_alert': 3,
        }
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category']['id'], self.category.id)
        self.assertEqual(response.data['stock_quantity'], 0)
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Product').exists())

    def test_create_product_negative_price(self):
        response = self.client.post('/api/v1/products/', {'name': 'X', 'sale_price': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stock_is_read_only(self):
        product = TestDataFactory.create_product(stock_quantity=5)
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'stock_quantity': 99}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Product.objects.get(pk=product.id).stock_quantity, 5)

    def test_list_is_paginated(self):
        for _ in range(3):
            TestDataFactory.create_product()
        response = self.client.get('/api/v1/products/?limit=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['next'], 2)
        self.assertEqual(response.data['total_pages'], 2)

    def test_bad_pagination_params(self):
        for query in ('page=abc', 'limit=ten', 'limit=0', 'page=-1'):
            response = self.client.get(f'/api/v1/products/?{query}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, query)
            self.assertIn('error', response.data)

    def test_search_filter(self):
        TestDataFactory.create_product(name='Feijão Preto')
        TestDataFactory.create_product(name='Macarrão')
        response = self.client.get('/api/v1/products/?search=feij')
        self.assertEqual([p['name'] for p in response.data['results']], ['Feijão Preto'])

    def test_low_stock_filter(self):
        TestDataFactory.create_product(name='Low', stock_quantity=1, min_stock_alert=5)
        TestDataFactory.create_product(name='Plenty', stock_quantity=50, min_stock_alert=5)
        response = self.client.get('/api/v1/products/?low_stock=true')
        self.assertEqual([p['name'] for p in response.data['results']], ['Low'])

        response = self.client.get('/api/v1/products/low-stock/')
        self.assertEqual([p['name'] for p in response.data], ['Low'])

    def test_toggle_product(self):
        product = TestDataFactory.create_product()
        response = self.client.post(f'/api/v1/products/{product.id}/toggle/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])

    def test_delete_writes_audit_log(self):
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertTrue(AuditLog.objects.filter(action='delete', object_id=str(product.id)).exists())

    def test_list_cache_invalidated_on_commit(self):
        TestDataFactory.create_product(name='First')
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.data['count'], 1)

        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_product(name='Second')
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.data['count'], 2)
