from .catalog import Product
from .inventory import StockMovement, MOVEMENT_TYPES
from .sales import Sale, SaleItem, PAYMENT_METHODS, SALE_STATUSES

__all__ = [
    'Product',
    'StockMovement', 'MOVEMENT_TYPES',
    'Sale', 'SaleItem', 'PAYMENT_METHODS', 'SALE_STATUSES',
]
