"""Cart model (customer shopping cart)."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from storefront.database import Base
from storefront.models.mixins import TimestampMixin, SoftDeleteMixin
import enum


class CartStatus(str, enum.Enum):
    """Cart status enum."""
    ACTIVE = 'active'
    PAID = 'paid'
    CANCELLED = 'cancelled'
    PROCESSED = 'processed'


class Cart(TimestampMixin, SoftDeleteMixin, Base):
    """
    Cart - in-progress selection of products for one owner.

    The owner is either a registered customer (customer_id) or an anonymous
    visitor (customer_temp_id), never both and never neither.
    """

    __tablename__ = 'cart'
    __table_args__ = (
        CheckConstraint(
            '(customer_id IS NOT NULL AND customer_temp_id IS NULL) OR '
            '(customer_id IS NULL AND customer_temp_id IS NOT NULL)',
            name='ck_cart_single_owner',
        ),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    customer_id = Column(BigInteger, nullable=True, index=True)
    customer_temp_id = Column(String(50), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=CartStatus.ACTIVE.value)
    total = Column(Numeric(10, 2), nullable=False, default=0, server_default='0')

    # Relationships
    items = relationship('CartItem', back_populates='cart', cascade='all, delete-orphan',
                         order_by='CartItem.id')

    @property
    def is_active(self):
        return self.status == CartStatus.ACTIVE.value

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'customer_temp_id': self.customer_temp_id,
            'status': self.status,
            'total': str(self.total),
            'items': [item.to_dict() for item in self.items],
        }

    def __repr__(self):
        return f"<Cart(id={self.id}, status={self.status}, total={self.total})>"
