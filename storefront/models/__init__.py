"""Models package - exports all SQLAlchemy models."""
from storefront.models.mixins import TimestampMixin, SoftDeleteMixin
from storefront.models.product import Product
from storefront.models.employee import Employee
from storefront.models.cart import Cart, CartStatus
from storefront.models.cart_item import CartItem
from storefront.models.sale import Sale, SaleStatus, SalePaymentMethod
from storefront.models.sale_line import SaleLine
from storefront.models.simulated_payment import SimulatedPayment, CheckoutMethod, PaymentStatus

__all__ = [
    'TimestampMixin', 'SoftDeleteMixin',
    'Product', 'Employee',
    'Cart', 'CartStatus', 'CartItem',
    'Sale', 'SaleStatus', 'SalePaymentMethod', 'SaleLine',
    'SimulatedPayment', 'CheckoutMethod', 'PaymentStatus',
]
