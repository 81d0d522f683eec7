"""Simulated Payment model (stand-in for a payment gateway)."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from storefront.database import Base
from storefront.models.mixins import TimestampMixin
import enum


class CheckoutMethod(str, enum.Enum):
    """Payment methods accepted by web checkout."""
    QR = 'qr'
    CARD = 'card'


class PaymentStatus(str, enum.Enum):
    """Outcome of a simulated payment."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class SimulatedPayment(TimestampMixin, Base):
    """
    Simulated Payment - recorded payment outcome for a sale.

    Only the fields of the chosen method are populated: a QR payment has no
    card data and a card payment has no QR code.
    """

    __tablename__ = 'simulated_payment'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    sale_id = Column(BigInteger, ForeignKey('sale.id'), nullable=False, index=True)
    method = Column(String(20), nullable=False, default=CheckoutMethod.QR.value)
    amount = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    # QR only
    qr_code = Column(String(100), nullable=True)
    # Card only
    card_last_digits = Column(String(4), nullable=True)
    card_holder = Column(String(100), nullable=True)

    # Delivery metadata captured at checkout
    customer_name = Column(String(100), nullable=True)
    delivery_address = Column(String(200), nullable=True)
    phone = Column(String(20), nullable=True)

    paid_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    sale = relationship('Sale', back_populates='payments')

    def to_dict(self):
        return {
            'id': self.id,
            'sale_id': self.sale_id,
            'method': self.method,
            'amount': str(self.amount),
            'status': self.status,
            'qr_code': self.qr_code,
            'card_last_digits': self.card_last_digits,
            'card_holder': self.card_holder,
            'customer_name': self.customer_name,
            'delivery_address': self.delivery_address,
            'phone': self.phone,
            'paid_at': self.paid_at.isoformat() if self.paid_at else None,
        }

    def __repr__(self):
        return f"<SimulatedPayment(id={self.id}, sale_id={self.sale_id}, method={self.method}, amount={self.amount})>"
