from django.db import models
from django.db.models import Q
from django.utils.text import slugify
from decimal import Decimal, ROUND_HALF_UP
from backoffice.catalog.models import Product


class Combo(models.Model):
    """Product bundles sold for a single price"""
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, blank=True)
    description = models.TextField(blank=True)
    image = models.URLField(blank=True)
    combo_price = models.DecimalField(max_digits=10, decimal_places=2)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    @property
    def regular_price(self):
        """Sum of the items' current sale prices"""
        total = Decimal('0.00')
        for item in self.items.all():
            total += item.product.sale_price * item.quantity
        return total

    @property
    def savings(self):
        return self.regular_price - self.combo_price

    @property
    def savings_percent(self):
        regular = self.regular_price
        if regular <= 0:
            return Decimal('0.0')
        return (self.savings / regular * 100).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)

    class Meta:
        db_table = 'combos'
        ordering = ['name']


class ComboItem(models.Model):
    combo = models.ForeignKey(Combo, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='combo_items')
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = 'combo_items'
        unique_together = [['combo', 'product']]


OFFER_TYPE_CHOICES = [
    ('sazonal', 'Sazonal'),
    ('clube_desconto', 'Clube de Desconto'),
]

DISCOUNT_TYPE_CHOICES = [
    ('percentage', 'Percentual'),
    ('fixed', 'Valor fixo'),
]


def calculate_final_price(original_price, discount_type, discount_value):
    """Discounted price, never below zero"""
    original_price = Decimal(original_price)
    discount_value = Decimal(discount_value)
    if discount_type == 'percentage':
        final = original_price * (1 - discount_value / 100)
    else:
        final = original_price - discount_value
    return max(Decimal('0.00'), final.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


class Offer(models.Model):
    """Time-boxed discount on a product or a combo"""
    name = models.CharField(max_length=200)
    offer_type = models.CharField(max_length=20, choices=OFFER_TYPE_CHOICES, default='sazonal', db_index=True)
    product = models.ForeignKey(Product, on_delete=models.CASCADE, null=True, blank=True, related_name='offers')
    combo = models.ForeignKey(Combo, on_delete=models.CASCADE, null=True, blank=True, related_name='offers')
    original_price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_type = models.CharField(max_length=10, choices=DISCOUNT_TYPE_CHOICES, default='percentage')
    discount_value = models.DecimalField(max_digits=10, decimal_places=2)
    final_price = models.DecimalField(max_digits=10, decimal_places=2)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='offers')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def target_name(self):
        target = self.product or self.combo
        return target.name if target else None

    class Meta:
        db_table = 'offers'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=(Q(product__isnull=False, combo__isnull=True) | Q(product__isnull=True, combo__isnull=False)),
                name='offer_single_target',
            ),
        ]


class OfferHistory(models.Model):
    """Snapshot of every offer applied, reusable as a template"""
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='offer_history')
    combo = models.ForeignKey(Combo, on_delete=models.SET_NULL, null=True, blank=True, related_name='offer_history')
    offer_name = models.CharField(max_length=200)
    offer_type = models.CharField(max_length=20, choices=OFFER_TYPE_CHOICES)
    original_price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_type = models.CharField(max_length=10, choices=DISCOUNT_TYPE_CHOICES)
    discount_value = models.DecimalField(max_digits=10, decimal_places=2)
    final_price = models.DecimalField(max_digits=10, decimal_places=2)
    applied_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='applied_offers')
    applied_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'offer_history'
        ordering = ['-applied_at']
        verbose_name_plural = 'offer history'
