from .inventory import Product, PRODUCT_CATEGORIES
from .customers import Customer
from .sales import Sale, SaleItem, DebtPayment, PAYMENT_TYPES, PAYMENT_METHODS

__all__ = [
    'Product', 'PRODUCT_CATEGORIES',
    'Customer',
    'Sale', 'SaleItem', 'DebtPayment', 'PAYMENT_TYPES', 'PAYMENT_METHODS',
]
