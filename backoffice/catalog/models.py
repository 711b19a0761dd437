from django.db import models
from django.utils.text import slugify
from decimal import Decimal


class Category(models.Model):
    """Product categories"""
    name = models.CharField(max_length=200, db_index=True)
    slug = models.SlugField(max_length=220, blank=True)
    description = models.TextField(blank=True)
    icon = models.CharField(max_length=16, default='📦')
    parent = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='children')
    is_active = models.BooleanField(default=True)
    display_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['display_order', 'name']


class Product(models.Model):
    """Product master"""
    UNIT_CHOICES = [
        ('un', 'Unidade'),
        ('kg', 'Quilograma'),
        ('g', 'Grama'),
        ('lt', 'Litro'),
        ('ml', 'Mililitro'),
        ('cx', 'Caixa'),
        ('pc', 'Pacote'),
    ]

    name = models.CharField(max_length=200, db_index=True)
    slug = models.SlugField(max_length=220, blank=True)
    description = models.TextField(blank=True)
    barcode = models.CharField(max_length=100, unique=True, blank=True, null=True, db_index=True)
    ean_code = models.CharField(max_length=20, blank=True, null=True)
    sku = models.CharField(max_length=100, unique=True, blank=True, null=True, db_index=True)
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    sale_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    stock_quantity = models.IntegerField(default=0)
    min_stock_alert = models.IntegerField(default=0)
    weight = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    unit = models.CharField(max_length=2, choices=UNIT_CHOICES, default='un')
    image = models.URLField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    is_featured = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.sku or 'NO-SKU'})"

    def save(self, *args, **kwargs):
        self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    @property
    def profit_margin_value(self):
        return self.sale_price - self.cost_price

    @property
    def profit_margin_percent(self):
        """Margin over cost, 0 when the cost is unknown"""
        if not self.cost_price:
            return Decimal('0.00')
        return (self.profit_margin_value / self.cost_price * 100).quantize(Decimal('0.01'))

    @property
    def is_low_stock(self):
        return self.stock_quantity <= self.min_stock_alert

    class Meta:
        db_table = 'products'
        ordering = ['name']
