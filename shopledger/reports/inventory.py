"""Inventory reports: low stock and stock value."""

from decimal import Decimal

from shopledger.ledger.metrics import money_sum
from shopledger.models.ledger import LedgerSnapshot, Product


def reorder_level(product: Product, default_threshold: int) -> int:
    if product.min_stock_level is not None:
        return product.min_stock_level
    return default_threshold


def low_stock_products(snapshot: LedgerSnapshot) -> list[Product]:
    """
    Products at or below their reorder level, lowest stock first.

    A product without its own minimum uses the settings threshold.
    """
    threshold = snapshot.settings.low_stock_threshold
    low = [p for p in snapshot.products if p.stock <= reorder_level(p, threshold)]
    return sorted(low, key=lambda p: (p.stock, p.name.casefold()))


def inventory_value(snapshot: LedgerSnapshot) -> Decimal:
    """Stock on hand valued at selling price."""
    return money_sum(p.unit_price * p.stock for p in snapshot.products)


def inventory_cost(snapshot: LedgerSnapshot) -> Decimal:
    """Stock on hand valued at cost price (products without one count as zero)."""
    return money_sum(p.cost_price * p.stock for p in snapshot.products if p.cost_price is not None)
