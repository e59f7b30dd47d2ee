from .inventory import Product
from .sales import Sale, SaleLine
from .customers import Customer
from .expenses import Expense
from .auth import User, SessionToken
from .settings import StoreSetting

__all__ = [
    'Product',
    'Sale', 'SaleLine',
    'Customer',
    'Expense',
    'User', 'SessionToken',
    'StoreSetting',
]
