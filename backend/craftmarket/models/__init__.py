from .users import User, Address, ArtisanProfile
from .commerce import Product, Cart, CartLine, Order, OrderLine, Review
from .security import SecurityEvent

__all__ = [
    'User', 'Address', 'ArtisanProfile',
    'Product', 'Cart', 'CartLine', 'Order', 'OrderLine', 'Review',
    'SecurityEvent',
]
