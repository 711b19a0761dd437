from django.db import IntegrityError, models, transaction
from django.db.models import Max
from decimal import Decimal
from backoffice.catalog.models import Product
from backoffice.parties.models import Customer

ORDER_STATUS_CHOICES = [
    ('pending', 'Pendente'),
    ('preparing', 'Em preparação'),
    ('sent', 'Enviado'),
    ('ready_pickup', 'Pronto para retirada'),
    ('delivered', 'Entregue'),
    ('cancelled', 'Cancelado'),
]

ORDER_STATUSES = [value for value, _ in ORDER_STATUS_CHOICES]

DELIVERY_TYPE_CHOICES = [
    ('delivery', 'Entrega'),
    ('pickup', 'Retirada'),
]

PAYMENT_METHOD_CHOICES = [
    ('pix', 'PIX'),
    ('credit_card', 'Cartão de crédito'),
    ('debit_card', 'Cartão de débito'),
    ('cash', 'Dinheiro'),
    ('other', 'Outro'),
]

PAYMENT_STATUS_CHOICES = [
    ('pending', 'Pendente'),
    ('paid', 'Pago'),
    ('refunded', 'Estornado'),
]

ORDER_NUMBER_ATTEMPTS = 3


def next_order_number():
    last = Order.objects.aggregate(last=Max('order_number'))['last']
    return (last or 0) + 1


class Order(models.Model):
    """Customer orders"""
    order_number = models.PositiveIntegerField(unique=True, editable=False)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name='orders')
    delivery_type = models.CharField(max_length=10, choices=DELIVERY_TYPE_CHOICES, default='delivery', db_index=True)
    status = models.CharField(max_length=20, choices=ORDER_STATUS_CHOICES, default='pending', db_index=True)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, null=True, blank=True)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='pending')
    notes = models.TextField(blank=True)
    # {street, number, complement, neighborhood, city, state, zipcode}
    delivery_address = models.JSONField(null=True, blank=True)
    estimated_delivery = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"#{self.order_number}"

    def save(self, *args, **kwargs):
        if self.order_number is not None:
            return super().save(*args, **kwargs)
        # Two concurrent inserts can read the same max; the loser retries
        # with the next number inside its own savepoint.
        for attempt in range(ORDER_NUMBER_ATTEMPTS):
            self.order_number = next_order_number()
            try:
                with transaction.atomic():
                    return super().save(*args, **kwargs)
            except IntegrityError:
                taken = Order.objects.filter(order_number=self.order_number).exists()
                self.order_number = None
                if not taken or attempt == ORDER_NUMBER_ATTEMPTS - 1:
                    raise

    def calculate_totals(self):
        """Recompute subtotal and total from the items"""
        self.subtotal = sum((item.total for item in self.items.all()), Decimal('0.00'))
        self.total = max(Decimal('0.00'), self.subtotal - self.discount_amount + self.delivery_fee)
        return self.total

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    combo = models.ForeignKey('pricing.Combo', on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    # Snapshot of the name at purchase time
    product_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=10, decimal_places=2)
    notes = models.TextField(blank=True)

    def __str__(self):
        return f"{self.quantity}x {self.product_name}"

    def save(self, *args, **kwargs):
        if self.total is None:
            self.total = self.unit_price * self.quantity - self.discount_amount
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'order_items'


class OrderStatusHistory(models.Model):
    """One row per status an order has been moved to"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='status_history')
    status = models.CharField(max_length=20, choices=ORDER_STATUS_CHOICES)
    notes = models.TextField(blank=True)
    user = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='order_status_changes')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'order_status_history'
        ordering = ['created_at']
        verbose_name_plural = 'order status history'
