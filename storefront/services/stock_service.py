"""
Product stock service.

Every stock mutation in the application goes through the helpers in this
module: rows are read with SELECT ... FOR UPDATE, always in ascending
product id order, and the lock is held until the caller's transaction ends.
"""
import logging
from typing import Dict, Iterable, Mapping

from sqlalchemy.orm import Session

from storefront.exceptions import InsufficientStockError, InvalidInputError, NotFoundError, SaasError
from storefront.models import Product
from storefront.utils.number_format import MAX_INT, parse_int

logger = logging.getLogger(__name__)


def find_product_for_update(session: Session, product_id: int) -> Product:
    """Lock a single product row for the rest of the transaction."""
    product_id = int(product_id)
    return lock_products(session, [product_id])[product_id]


def locked_products_query(session: Session, product_ids: Iterable[int]):
    """Live products with the given ids, ordered by id and read FOR UPDATE."""
    return (
        session.query(Product)
        .filter(Product.id.in_(list(product_ids)), Product.not_deleted())
        .order_by(Product.id.asc())
        .populate_existing()
        .with_for_update()
    )


def lock_products(session: Session, product_ids: Iterable[int]) -> Dict[int, Product]:
    """
    Lock product rows FOR UPDATE in ascending id order and return them by id.

    Two transactions that need the same pair of products always request the
    locks in the same order, so they queue instead of deadlocking.

    Raises:
        NotFoundError: if any id does not match a live product.
    """
    ids = sorted({int(pid) for pid in product_ids})
    if not ids:
        return {}

    products = locked_products_query(session, ids).all()
    found = {p.id: p for p in products}

    missing = [pid for pid in ids if pid not in found]
    if missing:
        raise NotFoundError(f'Product {missing[0]} does not exist', payload={'product_id': missing[0]})
    return found


def take_stock(product: Product, quantity: int) -> None:
    """
    Remove ``quantity`` units from a locked product.

    Raises:
        InsufficientStockError: if fewer units are available. Nothing is
        clamped; the caller's transaction must roll back.
    """
    if product.stock < quantity:
        raise InsufficientStockError(product.id, product.stock, quantity, product_name=product.name)
    product.stock -= quantity


def return_stock(product: Product, quantity: int) -> None:
    """Give ``quantity`` units back to a locked product."""
    product.stock += quantity


def take_stock_bulk(session: Session, quantities: Mapping[int, int]) -> Dict[int, Product]:
    """
    Lock every product in ``quantities`` and take the requested units.

    ``quantities`` maps product id to total units; callers sum repeated
    products first so the check sees the full demand.
    """
    products = lock_products(session, quantities.keys())
    for product_id in sorted(products):
        take_stock(products[product_id], quantities[product_id])
    return products


def adjust_stock(session: Session, product_id: int, delta) -> Product:
    """
    Apply a signed administrative correction to a product's stock (clamped at 0).

    Unlike sale lines this never fails for lack of stock: a correction of
    -100 on a product holding 3 units leaves it at 0.

    Raises:
        InvalidInputError: if delta is not a finite 32-bit integer (before any
            lock) or the corrected stock would not fit the column.
        NotFoundError: if the product does not exist.
    """
    delta = parse_int(delta, 'delta')

    try:
        product = find_product_for_update(session, product_id)
        old_stock = product.stock
        new_stock = max(0, old_stock + delta)
        if new_stock > MAX_INT:
            raise InvalidInputError(
                f'Stock for product {product_id} would exceed {MAX_INT}',
                payload={'product_id': product.id, 'stock': old_stock, 'delta': delta},
            )
        product.stock = new_stock
        session.commit()

        logger.info(f"Stock adjusted: product={product_id} delta={delta} {old_stock} -> {product.stock}")
        return product

    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"Error adjusting stock for product {product_id}")
        raise
