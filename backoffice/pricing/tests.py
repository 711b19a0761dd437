"""
Test suite for Pricing module
Tests: Combos, offer price calculation, offer history, club discount gate
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.models import StoreConfig, AuditLog
from backoffice.pricing.models import Combo, Offer, OfferHistory, calculate_final_price


class PriceCalculationTests(TestCase):
    """Test offer and combo price math"""

    def test_percentage(self):
        self.assertEqual(calculate_final_price(Decimal('10.00'), 'percentage', Decimal('15')), Decimal('8.50'))

    def test_fixed(self):
        self.assertEqual(calculate_final_price(Decimal('10.00'), 'fixed', Decimal('2.50')), Decimal('7.50'))

    def test_never_negative(self):
        self.assertEqual(calculate_final_price(Decimal('10.00'), 'fixed', Decimal('25.00')), Decimal('0.00'))

    def test_combo_savings(self):
        a = TestDataFactory.create_product(sale_price='10.00')
        b = TestDataFactory.create_product(sale_price='6.00')
        combo = TestDataFactory.create_combo(products=[a, b], combo_price='12.00')
        self.assertEqual(combo.regular_price, Decimal('16.00'))
        self.assertEqual(combo.savings, Decimal('4.00'))
        self.assertEqual(combo.savings_percent, Decimal('25.0'))


class ComboAPITests(TestCase):
    """Test Combo API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product_a = TestDataFactory.create_product(sale_price='8.00')
        self.product_b = TestDataFactory.create_product(sale_price='4.00')

    def test_create_combo(self):
        data = {
            'name': 'Café da manhã',
            'combo_price': '10.00',
            'items': [
                {'product': self.product_a.id, 'quantity': 1},
                {'product': self.product_b.id, 'quantity': 2},
            ]
        }
        response = self.client.post('/api/v1/combos/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['items']), 2)
        self.assertEqual(response.data['regular_price'], '16.00')

    def test_combo_needs_items(self):
        response = self.client.post('/api/v1/combos/', {'name': 'Vazio', 'combo_price': '5.00', 'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_products_rejected(self):
        data = {
            'name': 'Dup',
            'combo_price': '5.00',
            'items': [{'product': self.product_a.id}, {'product': self.product_a.id}]
        }
        response = self.client.post('/api/v1/combos/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_replaces_items(self):
        combo = TestDataFactory.create_combo(products=[self.product_a, self.product_b])
        data = {'items': [{'product': self.product_b.id, 'quantity': 3}]}
        response = self.client.patch(f'/api/v1/combos/{combo.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([(i['product'], i['quantity']) for i in response.data['items']], [(self.product_b.id, 3)])

    def test_toggle(self):
        combo = TestDataFactory.create_combo()
        response = self.client.post(f'/api/v1/combos/{combo.id}/toggle/')
        self.assertFalse(response.data['is_active'])
        self.assertFalse(Combo.objects.get(pk=combo.id).is_active)


class OfferAPITests(TestCase):
    """Test Offer API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(sale_price='20.00')

    def test_create_offer_records_history(self):
        data = {
            'name': 'Semana do arroz',
            'offer_type': 'sazonal',
            'product': self.product.id,
            'discount_type': 'percentage',
            'discount_value': '10',
        }
        response = self.client.post('/api/v1/offers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['original_price'], '20.00')
        self.assertEqual(response.data['final_price'], '18.00')

        history = OfferHistory.objects.get()
        self.assertEqual(history.offer_name, 'Semana do arroz')
        self.assertEqual(history.applied_by, self.user)
        self.assertTrue(AuditLog.objects.filter(action='offer_create').exists())

        response = self.client.get(f'/api/v1/offers/history/?product={self.product.id}')
        self.assertEqual(len(response.data), 1)

    def test_offer_needs_exactly_one_target(self):
        combo = TestDataFactory.create_combo()
        data = {'name': 'Both', 'product': self.product.id, 'combo': combo.id, 'discount_value': '5'}
        response = self.client.post('/api/v1/offers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        data = {'name': 'None', 'discount_value': '5'}
        response = self.client.post('/api/v1/offers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_percentage_above_100(self):
        data = {'name': 'Too much', 'product': self.product.id, 'discount_type': 'percentage', 'discount_value': '150'}
        response = self.client.post('/api/v1/offers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_end_before_start(self):
        data = {
            'name': 'Backwards', 'product': self.product.id, 'discount_value': '5',
            'start_date': '2024-05-10', 'end_date': '2024-05-01',
        }
        response = self.client.post('/api/v1/offers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_club_offer_requires_club_enabled(self):
        data = {'name': 'Clube', 'offer_type': 'clube_desconto', 'product': self.product.id, 'discount_value': '5'}
        response = self.client.post('/api/v1/offers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        config = StoreConfig.load()
        config.enable_club_discount = True
        config.save()
        response = self.client.post('/api/v1/offers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_combo_offer_uses_combo_price(self):
        combo = TestDataFactory.create_combo(combo_price='30.00')
        data = {'name': 'Combo off', 'combo': combo.id, 'discount_type': 'fixed', 'discount_value': '5'}
        response = self.client.post('/api/v1/offers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['final_price'], '25.00')

    def test_toggle_and_delete(self):
        offer = TestDataFactory.create_offer(product=self.product)
        response = self.client.post(f'/api/v1/offers/{offer.id}/toggle/')
        self.assertFalse(response.data['is_active'])
        response = self.client.delete(f'/api/v1/offers/{offer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Offer.objects.exists())
