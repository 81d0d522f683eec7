"""Product model."""
from sqlalchemy import Column, BigInteger, Integer, String, Text, Boolean, Numeric, CheckConstraint
from storefront.database import Base
from storefront.models.mixins import TimestampMixin, SoftDeleteMixin


class Product(TimestampMixin, SoftDeleteMixin, Base):
    """
    Product with its current stock level.

    ``stock`` is the single source of truth for availability. Writers must
    hold the row lock (see ``stock_service.lock_products``) before reading it.
    """

    __tablename__ = 'product'
    __table_args__ = (
        CheckConstraint('stock >= 0', name='ck_product_stock_non_negative'),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0, server_default='0')
    active = Column(Boolean, nullable=False, default=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price': str(self.price),
            'stock': self.stock,
            'active': self.active,
        }

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.stock})>"
