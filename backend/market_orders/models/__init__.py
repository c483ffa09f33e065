from .auth import User
from .security import SecurityEvent
from .catalog import Category, Item
from .markets import Market, MarketLedgerEntry, LedgerEntryType
from .orders import Order, OrderItem, OrderStatus

__all__ = [
    'User', 'SecurityEvent',
    'Category', 'Item',
    'Market', 'MarketLedgerEntry', 'LedgerEntryType',
    'Order', 'OrderItem', 'OrderStatus',
]
