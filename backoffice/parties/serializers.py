import re

from rest_framework import serializers
from .models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    address_display = serializers.CharField(read_only=True)

    class Meta:
        model = Customer
        fields = [
            'id', 'name', 'email', 'phone', 'cpf', 'birth_date',
            'address_street', 'address_number', 'address_complement', 'address_neighborhood',
            'address_city', 'address_state', 'address_zipcode', 'address_display',
            'is_club_member', 'club_joined_at', 'notes', 'total_orders', 'total_spent',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['club_joined_at', 'total_orders', 'total_spent', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError("Name must have at least 2 characters")
        return value

    def validate_phone(self, value):
        digits = re.sub(r'\D', '', value or '')
        if len(digits) < 10:
            raise serializers.ValidationError("Phone must have at least 10 digits")
        return value.strip()

    def validate_cpf(self, value):
        if not value:
            return None
        if len(re.sub(r'\D', '', value)) != 11:
            raise serializers.ValidationError("CPF must have 11 digits")
        return value

    def validate_email(self, value):
        return value or None

    def validate_address_state(self, value):
        return (value or '').upper()
