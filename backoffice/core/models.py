from django.contrib.auth.models import AbstractUser
from django.db import models
from decimal import Decimal


class User(AbstractUser):
    """Back-office operator"""
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('manager', 'Manager'),
        ('operator', 'Operator'),
    ]

    phone = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='operator')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class StoreConfig(models.Model):
    """Store-wide settings. A single row is used; see StoreConfig.load()"""
    store_name = models.CharField(max_length=200, default='Minha Loja')
    store_phone = models.CharField(max_length=20, blank=True)
    store_email = models.EmailField(blank=True)
    store_address = models.TextField(blank=True)
    primary_color = models.CharField(max_length=20, default='#16a34a')
    secondary_color = models.CharField(max_length=20, default='#0f172a')
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    min_order_value = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    free_shipping_min_value = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, default='BRL')
    low_stock_threshold = models.IntegerField(default=5)
    enable_club_discount = models.BooleanField(default=False)
    club_discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.store_name

    @classmethod
    def load(cls):
        """Return the configuration row, creating it with defaults on first use"""
        config = cls.objects.order_by('id').first()
        if config is None:
            config = cls.objects.create()
        return config

    class Meta:
        db_table = 'store_config'


class DeliveryNeighborhood(models.Model):
    """Delivery fee per neighborhood"""
    name = models.CharField(max_length=200, unique=True)
    fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    is_active = models.BooleanField(default=True)
    display_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'delivery_neighborhoods'
        ordering = ['display_order', 'name']


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('stock_movement', 'Stock Movement'),
        ('order_status', 'Order Status Change'),
        ('order_bulk_status', 'Order Bulk Status Change'),
        ('offer_create', 'Offer Created'),
        ('config_update', 'Store Config Updated'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, order number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model'),
        ]
