from .catalog import Input, InventoryItem, Product, ProductIngredient
from .pricing import Pricing, FixedCosts
from .orders import Customer, Order, OrderItem
from .notifications import NotificationMessage, StreamConnection
from .auth import User, SessionToken

__all__ = [
    'Input', 'InventoryItem', 'Product', 'ProductIngredient',
    'Pricing', 'FixedCosts',
    'Customer', 'Order', 'OrderItem',
    'NotificationMessage', 'StreamConnection',
    'User', 'SessionToken',
]
