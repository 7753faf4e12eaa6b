from .inventory import Product
from .sales import Sale, SaleItem, PAYMENT_METHODS
from .auth import User, SessionToken, ROLES
from .activity import ActionLog
from .settings import StoreSetting

__all__ = [
    'Product',
    'Sale', 'SaleItem', 'PAYMENT_METHODS',
    'User', 'SessionToken', 'ROLES',
    'ActionLog',
    'StoreSetting',
]
