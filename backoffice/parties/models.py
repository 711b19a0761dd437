from django.db import models
from django.utils import timezone
from decimal import Decimal


class Customer(models.Model):
    """Customers"""
    name = models.CharField(max_length=200, db_index=True)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=20, db_index=True)
    cpf = models.CharField(max_length=14, unique=True, blank=True, null=True)
    birth_date = models.DateField(null=True, blank=True)
    address_street = models.CharField(max_length=200, blank=True)
    address_number = models.CharField(max_length=20, blank=True)
    address_complement = models.CharField(max_length=100, blank=True)
    address_neighborhood = models.CharField(max_length=100, blank=True)
    address_city = models.CharField(max_length=100, blank=True)
    address_state = models.CharField(max_length=2, blank=True)
    address_zipcode = models.CharField(max_length=9, blank=True)
    is_club_member = models.BooleanField(default=False, db_index=True)
    club_joined_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    total_orders = models.IntegerField(default=0)
    total_spent = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        # Joining date is stamped once, the first time membership is switched on
        if self.is_club_member and self.club_joined_at is None:
            self.club_joined_at = timezone.now()
        super().save(*args, **kwargs)

    @property
    def address_display(self):
        parts = [
            ', '.join(p for p in [self.address_street, self.address_number] if p),
            self.address_complement,
            self.address_neighborhood,
            '/'.join(p for p in [self.address_city, self.address_state] if p),
        ]
        return ' - '.join(p for p in parts if p)

    class Meta:
        db_table = 'customers'
        ordering = ['name']
