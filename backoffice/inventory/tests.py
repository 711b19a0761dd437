"""
Test suite for Inventory module
Tests: Stock movements (in, out, adjustment), insufficient stock, filtering
"""
from django.test import TestCase
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.models import AuditLog
from backoffice.catalog.models import Product
from backoffice.inventory.models import StockMovement
from backoffice.inventory.services import apply_movement, compute_new_stock, InsufficientStock


class StockServiceTests(TestCase):
    """Test stock movement computation"""

    def setUp(self):
        self.product = TestDataFactory.create_product(stock_quantity=10)

    def test_compute_new_stock(self):
        self.assertEqual(compute_new_stock('entrada', 10, 5), (15, 5))
        self.assertEqual(compute_new_stock('saida', 10, 4), (6, 4))
        self.assertEqual(compute_new_stock('ajuste', 10, 3), (3, 7))
        self.assertEqual(compute_new_stock('ajuste', 10, 10), (10, 0))

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            compute_new_stock('transfer', 1, 1)

    def test_apply_entrada(self):
        movement = apply_movement(self.product.id, 'entrada', 5)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 15)
        self.assertEqual(movement.previous_stock, 10)
        self.assertEqual(movement.new_stock, 15)

    def test_apply_saida_insufficient(self):
        with self.assertRaises(InsufficientStock) as ctx:
            apply_movement(self.product.id, 'saida', 11)
        self.assertEqual(ctx.exception.available, 10)
        self.assertEqual(ctx.exception.requested, 11)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)
        self.assertEqual(StockMovement.objects.count(), 0)

    def test_apply_ajuste_to_zero(self):
        movement = apply_movement(self.product.id, 'ajuste', 0)
        self.assertEqual(movement.quantity, 10)
        self.assertEqual(Product.objects.get(pk=self.product.id).stock_quantity, 0)


class StockMovementAPITests(TestCase):
    """Test StockMovement API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(stock_quantity=4)

    def test_create_movement(self):
        data = {'product': self.product.id, 'movement_type': 'entrada', 'quantity': 6, 'reference': 'NF 123'}
        response = self.client.post('/api/v1/stock-movements/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['new_stock'], 10)
        self.assertEqual(response.data['user'], self.user.id)
        self.assertTrue(AuditLog.objects.filter(action='stock_movement').exists())

    def test_insufficient_stock(self):
        data = {'product': self.product.id, 'movement_type': 'saida', 'quantity': 5}
        response = self.client.post('/api/v1/stock-movements/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['available'], 4)
        self.assertEqual(response.data['requested'], 5)

    def test_zero_quantity_rejected_unless_adjustment(self):
        data = {'product': self.product.id, 'movement_type': 'entrada', 'quantity': 0}
        response = self.client.post('/api/v1/stock-movements/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        data['movement_type'] = 'ajuste'
        response = self.client.post('/api/v1/stock-movements/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['new_stock'], 0)

    def test_list_filters(self):
        other = TestDataFactory.create_product()
        apply_movement(self.product.id, 'entrada', 1)
        apply_movement(other.id, 'saida', 1)
        response = self.client.get(f'/api/v1/stock-movements/?product={self.product.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/v1/stock-movements/?type=saida')
        self.assertEqual([m['product'] for m in response.data], [other.id])

    def test_list_bad_params(self):
        for query in ('date_from=2024-13-01', 'date_to=amanha', 'limit=all', 'limit=0'):
            response = self.client.get(f'/api/v1/stock-movements/?{query}')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, query)

    def test_detail(self):
        movement = apply_movement(self.product.id, 'entrada', 2)
        response = self.client.get(f'/api/v1/stock-movements/{movement.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['product_name'], self.product.name)
