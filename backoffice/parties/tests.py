"""
Test suite for Parties module
Tests: Customer validation, club membership, search, delete protection
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.parties.models import Customer


class CustomerModelTests(TestCase):
    """Test Customer model behavior"""

    def test_club_joined_at_stamped_once(self):
        customer = TestDataFactory.create_customer()
        self.assertIsNone(customer.club_joined_at)

        customer.is_club_member = True
        customer.save()
        joined = customer.club_joined_at
        self.assertIsNotNone(joined)

        customer.is_club_member = False
        customer.save()
        customer.is_club_member = True
        customer.save()
        self.assertEqual(customer.club_joined_at, joined)

    def test_address_display(self):
        customer = Customer(
            name='Ana', phone='11999999999',
            address_street='Rua A', address_number='10',
            address_neighborhood='Centro', address_city='Santos', address_state='SP',
        )
        self.assertEqual(customer.address_display, 'Rua A, 10 - Centro - Santos/SP')


class CustomerAPITests(TestCase):
    """Test Customer API endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer(self):
        data = {'name': 'Maria Silva', 'phone': '(11) 98888-7777', 'email': '', 'address_state': 'sp'}
        response = self.client.post('/api/v1/customers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['email'])
        self.assertEqual(response.data['address_state'], 'SP')

    def test_validation(self):
        response = self.client.post('/api/v1/customers/', {'name': 'M', 'phone': '123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)
        self.assertIn('phone', response.data)

    def test_invalid_cpf(self):
        data = {'name': 'Maria', 'phone': '11988887777', 'cpf': '123'}
        response = self.client.post('/api/v1/customers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('cpf', response.data)

    def test_search_and_club_filter(self):
        TestDataFactory.create_customer(name='Joana', is_club_member=True)
        TestDataFactory.create_customer(name='Pedro')
        response = self.client.get('/api/v1/customers/?search=joa')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in response.data], ['Joana'])

        response = self.client.get('/api/v1/customers/?club=false')
        self.assertEqual([c['name'] for c in response.data], ['Pedro'])

    def test_delete_blocked_with_orders(self):
        order = TestDataFactory.create_order()
        response = self.client.delete(f'/api/v1/customers/{order.customer_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Customer.objects.filter(pk=order.customer_id).exists())

    def test_delete_without_orders(self):
        customer = TestDataFactory.create_customer()
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_customer_orders(self):
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_order(customer=customer)
        TestDataFactory.create_order(customer=customer)
        response = self.client.get(f'/api/v1/customers/{customer.id}/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
