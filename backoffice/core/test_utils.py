"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backoffice.catalog.models import Category, Product
from backoffice.parties.models import Customer
from backoffice.pricing.models import Combo, ComboItem, Offer, calculate_final_price
from backoffice.orders.models import Order, OrderItem
from backoffice.finance.models import ExpenseCategory, Expense
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False, role='operator'):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser,
            role=role,
        )
        return user

    @staticmethod
    def create_category(name=None, description=None, parent=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(
            name=name,
            description=description or f'Description for {name}',
            parent=parent,
        )

    @staticmethod
    def create_product(name=None, category=None, sku=None, cost_price='5.00', sale_price='10.00',
                       stock_quantity=10, min_stock_alert=2, is_active=True):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU-{TestDataFactory.random_string(8).upper()}'
        return Product.objects.create(
            name=name,
            category=category,
            sku=sku,
            cost_price=Decimal(cost_price),
            sale_price=Decimal(sale_price),
            stock_quantity=stock_quantity,
            min_stock_alert=min_stock_alert,
            is_active=is_active,
        )

    @staticmethod
    def create_customer(name=None, phone=None, email=None, is_club_member=False):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'119{random.randint(10000000, 99999999)}'
        if not email:
            email = f'{name.lower()}@test.com'
        return Customer.objects.create(
            name=name,
            phone=phone,
            email=email,
            is_club_member=is_club_member,
        )

    @staticmethod
    def create_order(customer=None, items=None, status='pending', delivery_type='delivery', delivery_fee='0.00'):
        """
        Create a test order.

        ``items`` is a list of ``(product, quantity)`` pairs; one item of a
        fresh product is added when omitted.
        """
        if customer is None:
            customer = TestDataFactory.create_customer()
        if items is None:
            items = [(TestDataFactory.create_product(), 1)]

        order = Order.objects.create(
            customer=customer,
            status=status,
            delivery_type=delivery_type,
            delivery_fee=Decimal(delivery_fee),
        )
        for product, quantity in items:
            OrderItem.objects.create(
                order=order,
                product=product,
                product_name=product.name,
                quantity=quantity,
                unit_price=product.sale_price,
            )
        order.calculate_totals()
        order.save(update_fields=['subtotal', 'total', 'updated_at'])
        return order

    @staticmethod
    def create_combo(name=None, products=None, combo_price='15.00'):
        """Create a test combo with one unit of each product"""
        if not name:
            name = f'Combo_{TestDataFactory.random_string(6)}'
        if products is None:
            products = [TestDataFactory.create_product(), TestDataFactory.create_product()]
        combo = Combo.objects.create(name=name, combo_price=Decimal(combo_price))
        for product in products:
            ComboItem.objects.create(combo=combo, product=product, quantity=1)
        return combo

    @staticmethod
    def create_offer(product=None, offer_type='sazonal', discount_type='percentage', discount_value='10.00', user=None):
        """Create a test offer on a product"""
        if product is None:
            product = TestDataFactory.create_product()
        return Offer.objects.create(
            name=f'Offer_{TestDataFactory.random_string(6)}',
            offer_type=offer_type,
            product=product,
            original_price=product.sale_price,
            discount_type=discount_type,
            discount_value=Decimal(discount_value),
            final_price=calculate_final_price(product.sale_price, discount_type, discount_value),
            created_by=user,
        )

    @staticmethod
    def create_expense(description=None, amount='100.00', category=None, expense_date=None, is_paid=False):
        """Create a test expense"""
        if category is None:
            category = ExpenseCategory.objects.create(name=f'Expenses_{TestDataFactory.random_string(6)}')
        kwargs = {}
        if expense_date is not None:
            kwargs['expense_date'] = expense_date
        return Expense.objects.create(
            description=description or f'Expense {TestDataFactory.random_string(6)}',
            amount=Decimal(amount),
            category=category,
            is_paid=is_paid,
            **kwargs
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
