"""
Stock movement application.

The product row is locked while the new stock level is computed so two
concurrent movements on the same product cannot both read the same
previous stock.
"""
import logging

from django.db import transaction

from backoffice.catalog.models import Product
from .models import StockMovement

logger = logging.getLogger(__name__)


class InsufficientStock(Exception):
    def __init__(self, product, available, requested):
        self.product = product
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {product.name}: {available} available, {requested} requested"
        )


def compute_new_stock(movement_type, previous, quantity):
    """Return (new_stock, recorded_quantity) for a movement"""
    if movement_type == 'entrada':
        return previous + quantity, quantity
    if movement_type == 'saida':
        return previous - quantity, quantity
    if movement_type == 'ajuste':
        # quantity is the target level; the movement records the distance moved
        return quantity, abs(quantity - previous)
    raise ValueError(f"Unknown movement type: {movement_type}")


def apply_movement(product_id, movement_type, quantity, user=None, unit_cost=None, reference='', notes=''):
    """Create a StockMovement and update the product's stock in one transaction"""
    with transaction.atomic():
        product = Product.objects.select_for_update().get(pk=product_id)
        previous = product.stock_quantity
        new_stock, recorded = compute_new_stock(movement_type, previous, quantity)
        if new_stock < 0:
            raise InsufficientStock(product, previous, quantity)

        movement = StockMovement.objects.create(
            product=product,
            movement_type=movement_type,
            quantity=recorded,
            unit_cost=unit_cost,
            previous_stock=previous,
            new_stock=new_stock,
            reference=reference or '',
            notes=notes or '',
            user=user,
        )
        product.stock_quantity = new_stock
        product.save(update_fields=['stock_quantity', 'updated_at'])

    logger.info(f"Stock {movement_type} on product {product.pk}: {previous} -> {new_stock}")
    return movement
