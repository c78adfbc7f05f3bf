from .catalog import Product, Supplier, Family
from .sales import Sale, SaleLine
from .auth import User, ROLE_ADMIN, ROLE_USER, ROLES

__all__ = [
    'Product', 'Supplier', 'Family',
    'Sale', 'SaleLine',
    'User', 'ROLE_ADMIN', 'ROLE_USER', 'ROLES',
]
