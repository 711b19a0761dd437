from rest_framework import serializers
from .models import ExpenseCategory, Expense


class ExpenseCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ExpenseCategory
        fields = ['id', 'name', 'color', 'icon', 'is_active', 'created_at']

    def validate_color(self, value):
        if not (value.startswith('#') and len(value) == 7):
            raise serializers.ValidationError("Color must be a hex value like #aabbcc")
        return value


class ExpenseSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = Expense
        fields = [
            'id', 'category', 'category_name', 'description', 'amount', 'expense_date',
            'payment_date', 'due_date', 'is_paid', 'is_overdue', 'is_recurring', 'recurrence_type',
            'payment_method', 'notes', 'user', 'created_at', 'updated_at'
        ]
        read_only_fields = ['user', 'created_at', 'updated_at']

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero")
        return value

    def validate(self, attrs):
        is_recurring = attrs.get('is_recurring', getattr(self.instance, 'is_recurring', False))
        recurrence_type = attrs.get('recurrence_type', getattr(self.instance, 'recurrence_type', None))
        if is_recurring and not recurrence_type:
            raise serializers.ValidationError({'recurrence_type': "Recurring expenses need a recurrence type"})
        if not is_recurring:
            attrs['recurrence_type'] = None
        return attrs
