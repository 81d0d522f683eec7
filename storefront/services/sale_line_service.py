"""
Sale line ledger.

Creates, edits and removes individual sale lines while keeping product stock
and the sale total consistent. Each public function is one transaction on the
given session: product rows are locked FOR UPDATE (ascending id), stock is
checked and moved, the affected sale totals are recalculated, and the whole
unit is committed or rolled back together.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from storefront.exceptions import NotFoundError, SaasError
from storefront.models import Sale, SaleLine
from storefront.services.sale_total_service import recalculate_sale_total
from storefront.services.stock_service import find_product_for_update, lock_products, return_stock, take_stock
from storefront.utils.number_format import parse_int, parse_price, parse_quantity, round2

logger = logging.getLogger(__name__)


def _get_live_sale(session: Session, sale_id: int) -> Sale:
    sale = session.query(Sale).filter(Sale.id == sale_id, Sale.not_deleted()).first()
    if not sale:
        raise NotFoundError(f'Sale {sale_id} does not exist', payload={'sale_id': sale_id})
    return sale


def _get_live_line(session: Session, sale_line_id: int) -> SaleLine:
    line = session.query(SaleLine).filter(SaleLine.id == sale_line_id, SaleLine.not_deleted()).first()
    if not line:
        raise NotFoundError(f'Sale line {sale_line_id} does not exist', payload={'sale_line_id': sale_line_id})
    return line


def get_sale_line(session: Session, sale_line_id: int) -> SaleLine:
    """Fetch a non-deleted sale line."""
    return _get_live_line(session, parse_int(sale_line_id, 'sale_line_id'))


def create_sale_line(session: Session, sale_id: int, product_id: int, quantity, unit_price) -> SaleLine:
    """
    Add a line to a sale, taking its units from product stock.

    Steps:
        1. Verify the sale exists
        2. Lock the product row
        3. Reject if stock < quantity (InsufficientStockError)
        4. Decrement stock
        5. Insert the line (unit price and subtotal rounded to cents)
        6. Recalculate the sale total
        7. Commit

    Raises:
        InvalidInputError: malformed quantity or price (before any lock)
        NotFoundError: unknown sale or product
        InsufficientStockError: product has fewer units than requested
    """
    sale_id = parse_int(sale_id, 'sale_id')
    product_id = parse_int(product_id, 'product_id')
    quantity = parse_quantity(quantity)
    unit_price = parse_price(unit_price)

    try:
        _get_live_sale(session, sale_id)

        product = find_product_for_update(session, product_id)
        take_stock(product, quantity)

        line = SaleLine(
            sale_id=sale_id,
            product_id=product.id,
            product_name_snapshot=product.name,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=round2(unit_price * quantity),
        )
        session.add(line)

        recalculate_sale_total(session, sale_id)
        session.commit()

        logger.info(
            f"Sale line {line.id} created: sale={sale_id} product={product_id} "
            f"qty={quantity} stock_left={product.stock}"
        )
        return line

    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"Error creating sale line for sale {sale_id}")
        raise


def update_sale_line(
    session: Session,
    sale_line_id: int,
    product_id: Optional[int] = None,
    quantity=None,
    unit_price=None,
    sale_id: Optional[int] = None,
) -> SaleLine:
    """
    Edit a sale line; fields left as None keep their current value.

    Stock rules:
        - Product changed: the old product gets its full old quantity back
          and the new product gives the full new quantity (checked on the
          new product only). Both rows are locked together, ascending id.
        - Only quantity changed: the signed delta is applied to the single
          product; stock is checked only when the delta is positive.

    The subtotal is recomputed from the (possibly new) unit price. When the
    line moves to another sale both totals are recalculated. Any failure,
    including a stock check after the old product was credited, rolls back
    everything.
    """
    new_quantity = parse_quantity(quantity) if quantity is not None else None
    new_unit_price = parse_price(unit_price) if unit_price is not None else None
    new_product_id = parse_int(product_id, 'product_id') if product_id is not None else None
    new_sale_id = parse_int(sale_id, 'sale_id') if sale_id is not None else None

    try:
        line = _get_live_line(session, sale_line_id)

        old_product_id = line.product_id
        old_quantity = line.quantity
        old_sale_id = line.sale_id

        target_product_id = new_product_id if new_product_id is not None else old_product_id
        target_quantity = new_quantity if new_quantity is not None else old_quantity
        target_sale_id = new_sale_id if new_sale_id is not None else old_sale_id
        target_unit_price = new_unit_price if new_unit_price is not None else round2(line.unit_price)

        if target_sale_id != old_sale_id:
            _get_live_sale(session, target_sale_id)

        if target_product_id != old_product_id:
            products = lock_products(session, [old_product_id, target_product_id])
            return_stock(products[old_product_id], old_quantity)
            take_stock(products[target_product_id], target_quantity)
            line.product_name_snapshot = products[target_product_id].name
        elif target_quantity != old_quantity:
            product = find_product_for_update(session, old_product_id)
            delta = target_quantity - old_quantity
            if delta > 0:
                take_stock(product, delta)
            else:
                return_stock(product, -delta)

        line.product_id = target_product_id
        line.sale_id = target_sale_id
        line.quantity = target_quantity
        line.unit_price = target_unit_price
        line.subtotal = round2(target_unit_price * target_quantity)

        if target_sale_id != old_sale_id:
            recalculate_sale_total(session, old_sale_id)
        recalculate_sale_total(session, target_sale_id)

        session.commit()

        logger.info(
            f"Sale line {sale_line_id} updated: product {old_product_id}->{target_product_id}, "
            f"qty {old_quantity}->{target_quantity}, sale {old_sale_id}->{target_sale_id}"
        )
        return line

    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"Error updating sale line {sale_line_id}")
        raise


def remove_sale_line(session: Session, sale_line_id: int) -> SaleLine:
    """
    Soft-delete a sale line, returning its units to stock.

    The line is never hard-deleted; the sale total is recalculated over the
    remaining lines.
    """
    try:
        line = _get_live_line(session, sale_line_id)

        product = find_product_for_update(session, line.product_id)
        return_stock(product, line.quantity)

        line.soft_delete()
        recalculate_sale_total(session, line.sale_id)
        session.commit()

        logger.info(f"Sale line {sale_line_id} removed: {line.quantity} units returned to product {product.id}")
        return line

    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"Error removing sale line {sale_line_id}")
        raise
