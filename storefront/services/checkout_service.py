"""
Checkout service - turns an active cart into a finalized sale.

Everything happens in one transaction on the given session: the cart is
re-priced from current product prices, the sale, its lines and a simulated
payment are created, and the cart is marked processed. Any failure rolls
back every step.
"""
import logging
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from storefront.exceptions import (
    EmptyCartError, InvalidStateError, MissingPaymentDetailsError, NotFoundError, SaasError
)
from storefront.models import (
    Cart, CartItem, CartStatus, CheckoutMethod, PaymentStatus, Sale, SaleLine,
    SalePaymentMethod, SaleStatus
)
from storefront.services.payment_service import build_payment, card_fields, clean_text, parse_payment_method
from storefront.services.sale_service import WEB_EMPLOYEE_NAME
from storefront.services.stock_service import take_stock_bulk
from storefront.utils.number_format import round2

logger = logging.getLogger(__name__)

# Checkout method -> payment method recorded on the sale
SALE_METHOD_BY_CHECKOUT_METHOD = {
    CheckoutMethod.QR.value: SalePaymentMethod.QR.value,
    CheckoutMethod.CARD.value: SalePaymentMethod.CARD.value,
}


def price_cart_items(items: List[CartItem]) -> List[Dict[str, Any]]:
    """
    Re-price cart items from current product prices.

    The stored item subtotal is only trusted when the product is gone; then
    the unit price falls back to subtotal / quantity.
    """
    priced = []
    for item in items:
        product = item.product
        if product is not None and not product.is_deleted:
            unit_price = round2(product.price)
        else:
            unit_price = round2(Decimal(str(item.subtotal)) / item.quantity)

        priced.append({
            'item': item,
            'product_id': item.product_id,
            'product_name': product.name if product is not None else None,
            'quantity': item.quantity,
            'unit_price': unit_price,
            'subtotal': round2(unit_price * item.quantity),
        })
    return priced


def checkout_cart(
    session: Session,
    cart_id: int,
    payment_method: str,
    card_details: Optional[Dict[str, Any]] = None,
    customer_name: Optional[str] = None,
    delivery_address: Optional[str] = None,
    phone: Optional[str] = None,
    decrement_stock: bool = True,
) -> Sale:
    """
    Convert an active, non-empty cart into a completed sale.

    Process:
        1. Load the cart with items and products
        2. Validate: exists, active, not empty
        3. Re-price every item from the current product price
        4. Store the recomputed total on the cart
        5. Card payments need card number and holder name
        6. Take stock for every product (when decrement_stock is set)
        7. Create the sale (web origin, no employee)
        8. Create one sale line per cart item
        9. Create the approved simulated payment
        10. Mark the cart processed and commit

    Args:
        session: SQLAlchemy session (one transaction for the whole checkout)
        cart_id: Cart to process
        payment_method: 'qr' or 'card'
        card_details: {'card_number': str, 'card_holder': str} for card payments;
            anything other than a mapping is InvalidInputError
        customer_name, delivery_address, phone: optional delivery metadata
        decrement_stock: take the sold units from product stock, under row
            locks, rejecting with InsufficientStockError like sale lines do

    Returns:
        The created Sale (lines and payments loaded on access)

    Raises:
        InvalidInputError, NotFoundError, InvalidStateError, EmptyCartError,
        MissingPaymentDetailsError, InsufficientStockError
    """
    method = parse_payment_method(payment_method)
    card_number, card_holder = card_fields(card_details)

    try:
        # 1. Load cart with items and their products
        cart = session.query(Cart).options(
            selectinload(Cart.items).joinedload(CartItem.product)
        ).filter(
            Cart.id == cart_id,
            Cart.not_deleted()
        ).first()

        # 2. Validate
        if not cart:
            raise NotFoundError(f'Cart {cart_id} does not exist', payload={'cart_id': cart_id})
        if cart.status != CartStatus.ACTIVE.value:
            raise InvalidStateError(
                f'Cart {cart_id} is not active (status: {cart.status})',
                payload={'cart_id': cart_id, 'cart_status': cart.status},
            )
        if not cart.items:
            raise EmptyCartError(cart_id)

        # 3-4. Re-price and keep an audit trail of the real total on the cart
        priced = price_cart_items(cart.items)
        total = round2(sum((line['subtotal'] for line in priced), Decimal('0')))
        cart.total = total
        session.flush()

        # 5. Card data
        if method == CheckoutMethod.CARD.value and (not card_number or not card_holder):
            raise MissingPaymentDetailsError()

        # 6. Stock
        if decrement_stock:
            quantities = defaultdict(int)
            for line in priced:
                quantities[line['product_id']] += line['quantity']
            take_stock_bulk(session, quantities)

        # 7. Sale
        sale = Sale(
            sold_at=datetime.now(timezone.utc),
            total=total,
            payment_method=SALE_METHOD_BY_CHECKOUT_METHOD[method],
            status=SaleStatus.COMPLETED.value,
            employee_id=None,
            employee_name_snapshot=WEB_EMPLOYEE_NAME,
            customer_name=clean_text(customer_name),
            notes=f"Web order - {clean_text(delivery_address) or 'No address'} - Phone: {clean_text(phone) or 'N/A'}",
        )
        session.add(sale)
        session.flush()

        # 8. Sale lines
        for line in priced:
            session.add(SaleLine(
                sale_id=sale.id,
                product_id=line['product_id'],
                product_name_snapshot=line['product_name'],
                quantity=line['quantity'],
                unit_price=line['unit_price'],
                subtotal=line['subtotal'],
            ))

        # 9. Simulated payment (the other method's fields stay null)
        session.add(build_payment(
            sale.id,
            method,
            sale.total,
            PaymentStatus.APPROVED.value,
            card_number=card_number,
            card_holder=card_holder,
            customer_name=clean_text(customer_name),
            delivery_address=clean_text(delivery_address),
            phone=clean_text(phone),
        ))

        # 10. Close the cart
        cart.status = CartStatus.PROCESSED.value
        session.commit()

        logger.info(
            f"Cart {cart_id} checked out: sale={sale.id} total={total} method={method} "
            f"lines={len(priced)} stock_decremented={decrement_stock}"
        )
        return sale

    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"Error checking out cart {cart_id}")
        raise
