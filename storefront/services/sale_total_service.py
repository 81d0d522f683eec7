"""Sale total recalculation (runs inside the caller's transaction)."""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models import Sale, SaleLine
from storefront.utils.number_format import round2

logger = logging.getLogger(__name__)


def recalculate_sale_total(session: Session, sale_id: int) -> Optional[Decimal]:
    """
    Store on the sale the sum of its non-deleted line subtotals.

    Flushes pending line changes first so the aggregate sees them; never
    commits. A sale that vanished in the meantime is skipped and ``None``
    returned.
    """
    session.flush()

    line_sum = session.query(
        func.coalesce(func.sum(SaleLine.subtotal), 0)
    ).filter(
        SaleLine.sale_id == sale_id,
        SaleLine.not_deleted()
    ).scalar()

    sale = session.query(Sale).filter(Sale.id == sale_id).first()
    if not sale:
        logger.warning(f"Sale {sale_id} not found while recalculating total, skipping")
        return None

    sale.total = round2(line_sum if line_sum is not None else Decimal('0'))
    session.flush()
    return sale.total
