"""Cart service - customer cart and cart item operations."""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.exceptions import (
    BusinessLogicError, InsufficientStockError, InvalidInputError, InvalidStateError,
    NotFoundError, SaasError
)
from storefront.models import Cart, CartItem, CartStatus, Product
from storefront.utils.number_format import parse_int, parse_quantity, round2

logger = logging.getLogger(__name__)


def get_cart(session: Session, cart_id: int) -> Cart:
    """Fetch a non-deleted cart."""
    cart = session.query(Cart).filter(Cart.id == cart_id, Cart.not_deleted()).first()
    if not cart:
        raise NotFoundError(f'Cart {cart_id} does not exist', payload={'cart_id': cart_id})
    return cart


def _get_active_cart(session: Session, cart_id: int) -> Cart:
    cart = get_cart(session, cart_id)
    if not cart.is_active:
        raise InvalidStateError(
            f'Cart {cart_id} is not active (status: {cart.status})',
            payload={'cart_id': cart_id, 'cart_status': cart.status},
        )
    return cart


def _get_sellable_product(session: Session, product_id: int) -> Product:
    product = session.query(Product).filter(Product.id == product_id, Product.not_deleted()).first()
    if not product:
        raise NotFoundError(f'Product {product_id} does not exist', payload={'product_id': product_id})
    if not product.active:
        raise BusinessLogicError(f'Product "{product.name}" is not active')
    return product


def _item_subtotal(product: Product, quantity: int) -> Decimal:
    # Computed here from the current price; a client-sent subtotal is ignored
    return round2(round2(product.price) * quantity)


def create_cart(session: Session, customer_id: Optional[int] = None, customer_temp_id: Optional[str] = None) -> Cart:
    """Create an empty active cart owned by a customer or an anonymous visitor."""
    customer_temp_id = customer_temp_id.strip() if isinstance(customer_temp_id, str) else customer_temp_id
    if (customer_id is None) == (not customer_temp_id):
        raise InvalidInputError('Provide exactly one of customer_id or customer_temp_id')
    if customer_id is not None:
        customer_id = parse_int(customer_id, 'customer_id')

    cart = Cart(
        customer_id=customer_id,
        customer_temp_id=customer_temp_id or None,
        status=CartStatus.ACTIVE.value,
        total=Decimal('0.00'),
    )
    session.add(cart)
    session.commit()

    logger.info(f"Cart {cart.id} created")
    return cart


def recalculate_cart_total(session: Session, cart: Cart) -> Decimal:
    """Store on the cart the sum of its item subtotals (no commit)."""
    session.flush()
    item_sum = session.query(
        func.coalesce(func.sum(CartItem.subtotal), 0)
    ).filter(CartItem.cart_id == cart.id).scalar()
    cart.total = round2(item_sum)
    return cart.total


def add_item(session: Session, cart_id: int, product_id: int, quantity) -> CartItem:
    """
    Add a product to an active cart, merging with an existing line.

    Stock is only checked here (no reservation); checkout re-checks it under lock.
    """
    quantity = parse_quantity(quantity)
    product_id = parse_int(product_id, 'product_id')

    try:
        cart = _get_active_cart(session, cart_id)
        product = _get_sellable_product(session, product_id)

        item = session.query(CartItem).filter(
            CartItem.cart_id == cart.id,
            CartItem.product_id == product_id
        ).first()

        new_quantity = quantity + (item.quantity if item else 0)
        if product.stock < new_quantity:
            raise InsufficientStockError(product.id, product.stock, new_quantity, product_name=product.name)

        if item:
            item.quantity = new_quantity
            item.subtotal = _item_subtotal(product, new_quantity)
        else:
            item = CartItem(
                cart_id=cart.id,
                product_id=product_id,
                quantity=new_quantity,
                subtotal=_item_subtotal(product, new_quantity),
            )
            session.add(item)

        recalculate_cart_total(session, cart)
        session.commit()
        return item

    except SaasError:
        session.rollback()
        raise


def update_item(session: Session, item_id: int, quantity=None, product_id: Optional[int] = None) -> CartItem:
    """Change quantity and/or product of a cart item; the subtotal is always recomputed."""
    new_quantity = parse_quantity(quantity) if quantity is not None else None
    new_product_id = parse_int(product_id, 'product_id') if product_id is not None else None

    try:
        item = session.query(CartItem).filter(CartItem.id == item_id).first()
        if not item:
            raise NotFoundError(f'Cart item {item_id} does not exist', payload={'cart_item_id': item_id})
        cart = _get_active_cart(session, item.cart_id)

        target_product_id = new_product_id if new_product_id is not None else item.product_id
        target_quantity = new_quantity if new_quantity is not None else item.quantity
        product = _get_sellable_product(session, target_product_id)

        if product.stock < target_quantity:
            raise InsufficientStockError(product.id, product.stock, target_quantity, product_name=product.name)

        item.product_id = target_product_id
        item.quantity = target_quantity
        item.subtotal = _item_subtotal(product, target_quantity)

        recalculate_cart_total(session, cart)
        session.commit()
        return item

    except SaasError:
        session.rollback()
        raise


def remove_item(session: Session, item_id: int) -> None:
    """Delete a cart item (hard delete) and refresh the cart total."""
    try:
        item = session.query(CartItem).filter(CartItem.id == item_id).first()
        if not item:
            raise NotFoundError(f'Cart item {item_id} does not exist', payload={'cart_item_id': item_id})
        cart = _get_active_cart(session, item.cart_id)

        session.delete(item)
        recalculate_cart_total(session, cart)
        session.commit()

    except SaasError:
        session.rollback()
        raise


def carts_for_customer(session: Session, customer_id) -> List[Cart]:
    """Live carts of a registered customer, newest first."""
    customer_id = parse_int(customer_id, 'customer_id')
    return session.query(Cart).filter(
        Cart.customer_id == customer_id, Cart.not_deleted()
    ).order_by(Cart.id.desc()).all()


def carts_for_visitor(session: Session, customer_temp_id: str) -> List[Cart]:
    """Live carts of an anonymous visitor, newest first."""
    customer_temp_id = customer_temp_id.strip() if isinstance(customer_temp_id, str) else None
    if not customer_temp_id:
        raise InvalidInputError('customer_temp_id is required')
    return session.query(Cart).filter(
        Cart.customer_temp_id == customer_temp_id, Cart.not_deleted()
    ).order_by(Cart.id.desc()).all()


def cancel_cart(session: Session, cart_id: int) -> Cart:
    """Abandon an active cart. Only active carts can be cancelled; the status never goes back."""
    try:
        cart = _get_active_cart(session, cart_id)
        cart.status = CartStatus.CANCELLED.value
        session.commit()

        logger.info(f"Cart {cart_id} cancelled")
        return cart

    except SaasError:
        session.rollback()
        raise


def delete_cart(session: Session, cart_id: int) -> Cart:
    """Soft-delete a cart; it disappears from lookups and can no longer be checked out."""
    try:
        cart = get_cart(session, cart_id)
        cart.soft_delete()
        session.commit()

        logger.info(f"Cart {cart_id} soft-deleted")
        return cart

    except SaasError:
        session.rollback()
        raise
