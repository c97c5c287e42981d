from .registration import Registration
from .cart import Cart, CartEvent

__all__ = [
    'Registration',
    'Cart', 'CartEvent',
]
