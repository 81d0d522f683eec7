"""Sale model."""
from sqlalchemy import Column, BigInteger, Integer, String, Text, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from storefront.database import Base
from storefront.models.mixins import TimestampMixin, SoftDeleteMixin
import enum


class SaleStatus(str, enum.Enum):
    """Sale status enum."""
    COMPLETED = 'completed'
    REFUND = 'refund'
    DRAFT = 'draft'
    VOIDED = 'voided'


class SalePaymentMethod(str, enum.Enum):
    """How the sale was paid."""
    CASH = 'cash'
    CARD = 'card'
    TRANSFER = 'transfer'
    QR = 'qr'


class Sale(TimestampMixin, SoftDeleteMixin, Base):
    """
    Sale (finalized, priced transaction).

    ``total`` is derived: it always equals the sum of the subtotals of the
    sale's non-deleted lines once a ledger operation has committed.
    """

    __tablename__ = 'sale'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    sold_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    total = Column(Numeric(10, 2), nullable=False, default=0)
    payment_method = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=SaleStatus.COMPLETED.value, index=True)

    # Null for web-originated sales; the name snapshot survives employee edits
    employee_id = Column(BigInteger, ForeignKey('employee.id'), nullable=True)
    employee_name_snapshot = Column(String(120), nullable=True)

    customer_name = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    employee = relationship('Employee')
    lines = relationship(
        'SaleLine',
        primaryjoin='and_(Sale.id == SaleLine.sale_id, SaleLine.deleted_at.is_(None))',
        order_by='SaleLine.id',
        viewonly=True,
    )
    payments = relationship('SimulatedPayment', back_populates='sale', order_by='SimulatedPayment.id')

    def to_dict(self):
        return {
            'id': self.id,
            'sold_at': self.sold_at.isoformat() if self.sold_at else None,
            'total': str(self.total),
            'payment_method': self.payment_method,
            'status': self.status,
            'employee_id': self.employee_id,
            'employee_name_snapshot': self.employee_name_snapshot,
            'customer_name': self.customer_name,
            'notes': self.notes,
            'lines': [line.to_dict() for line in self.lines],
            'payments': [payment.to_dict() for payment in self.payments],
        }

    def __repr__(self):
        return f"<Sale(id={self.id}, total={self.total}, status={self.status})>"
