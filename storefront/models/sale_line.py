"""Sale Line model."""
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from storefront.database import Base
from storefront.models.mixins import TimestampMixin, SoftDeleteMixin


class SaleLine(TimestampMixin, SoftDeleteMixin, Base):
    """Sale Line (one product row of a sale, priced at sale time)."""

    __tablename__ = 'sale_line'
    __table_args__ = (
        CheckConstraint('quantity >= 1', name='ck_sale_line_quantity_positive'),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    sale_id = Column(BigInteger, ForeignKey('sale.id'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False, index=True)
    product_name_snapshot = Column(String(100), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)

    # Relationships
    sale = relationship('Sale')
    product = relationship('Product')

    def to_dict(self):
        return {
            'id': self.id,
            'sale_id': self.sale_id,
            'product_id': self.product_id,
            'product_name_snapshot': self.product_name_snapshot,
            'quantity': self.quantity,
            'unit_price': str(self.unit_price),
            'subtotal': str(self.subtotal),
        }

    def __repr__(self):
        return f"<SaleLine(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
