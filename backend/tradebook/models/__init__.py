from .inventory import Item, InventoryTransaction, StockAdjustment
from .counterparties import Customer, Supplier
from .orders import Order, OrderItem, Payment
from .documents import DocumentSequence, IdempotencyKey

__all__ = [
    'Item', 'InventoryTransaction', 'StockAdjustment',
    'Customer', 'Supplier',
    'Order', 'OrderItem', 'Payment',
    'DocumentSequence', 'IdempotencyKey',
]
