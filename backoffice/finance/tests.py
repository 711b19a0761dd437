"""
Test suite for Finance module
Tests: Expense categories, expenses by month, mark paid, monthly summary
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.finance.models import ExpenseCategory, Expense
from backoffice.finance.views import month_bounds


class MonthBoundsTests(TestCase):

    def test_regular_month(self):
        self.assertEqual(month_bounds('2024-02'), (date(2024, 2, 1), date(2024, 2, 29)))

    def test_december(self):
        self.assertEqual(month_bounds('2023-12'), (date(2023, 12, 1), date(2023, 12, 31)))

    def test_invalid(self):
        with self.assertRaises(ValueError):
            month_bounds('2024-13')


class ExpenseAPITests(TestCase):
    """Test Expense API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.category = ExpenseCategory.objects.create(name='Aluguel', color='#ff0000')

    def test_create_category_validates_color(self):
        response = self.client.post('/api/v1/finance/expense-categories/', {'name': 'Luz', 'color': 'red'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/finance/expense-categories/', {'name': 'Luz', 'color': '#ffcc00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_create_expense(self):
        data = {'category': self.category.id, 'description': 'Aluguel maio', 'amount': '1500.00', 'expense_date': '2024-05-05'}
        response = self.client.post('/api/v1/finance/expenses/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category_name'], 'Aluguel')
        self.assertEqual(response.data['user'], self.user.id)

    def test_amount_must_be_positive(self):
        data = {'description': 'Nada', 'amount': '0'}
        response = self.client.post('/api/v1/finance/expenses/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_recurring_needs_type(self):
        data = {'description': 'Internet', 'amount': '99.90', 'is_recurring': True}
        response = self.client.post('/api/v1/finance/expenses/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        data['recurrence_type'] = 'monthly'
        response = self.client.post('/api/v1/finance/expenses/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_list_by_month(self):
        TestDataFactory.create_expense(description='Maio', category=self.category, expense_date=date(2024, 5, 10))
        TestDataFactory.create_expense(description='Junho', category=self.category, expense_date=date(2024, 6, 1))
        response = self.client.get('/api/v1/finance/expenses/?month=2024-05')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([e['description'] for e in response.data], ['Maio'])

    def test_list_invalid_month(self):
        response = self.client.get('/api/v1/finance/expenses/?month=maio')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mark_paid(self):
        expense = TestDataFactory.create_expense(category=self.category)
        response = self.client.post(f'/api/v1/finance/expenses/{expense.id}/mark-paid/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_paid'])
        self.assertEqual(Expense.objects.get(pk=expense.id).payment_date, timezone.localdate())

    def test_overdue(self):
        expense = TestDataFactory.create_expense(category=self.category)
        expense.due_date = date(2000, 1, 1)
        expense.save()
        response = self.client.get(f'/api/v1/finance/expenses/{expense.id}/')
        self.assertTrue(response.data['is_overdue'])

    def test_summary(self):
        product = TestDataFactory.create_product(cost_price='6.00', sale_price='10.00')
        TestDataFactory.create_order(items=[(product, 3)], status='delivered')
        TestDataFactory.create_order(items=[(product, 5)], status='pending')
        TestDataFactory.create_expense(amount='12.00', category=self.category, is_paid=True)
        TestDataFactory.create_expense(amount='3.00', category=None)

        response = self.client.get('/api/v1/finance/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['revenue'], 30.0)
        self.assertEqual(response.data['cost'], 18.0)
        self.assertEqual(response.data['gross_profit'], 12.0)
        self.assertEqual(response.data['expenses'], 15.0)
        self.assertEqual(response.data['expenses_paid'], 12.0)
        self.assertEqual(response.data['balance'], 15.0)
        self.assertEqual(response.data['net_profit'], -3.0)
        self.assertEqual(len(response.data['by_category']), 2)
        self.assertEqual(response.data['by_category'][0]['name'], 'Aluguel')
