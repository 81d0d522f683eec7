"""Employee model (referenced by in-store sales)."""
from sqlalchemy import Column, BigInteger, Integer, String, Boolean
from storefront.database import Base
from storefront.models.mixins import TimestampMixin


class Employee(TimestampMixin, Base):
    """Employee."""

    __tablename__ = 'employee'

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Employee(id={self.id}, name='{self.name}')>"
