"""
Simulated payment service.

Payments are recorded against a sale. Web checkout creates them already
approved; in-store sales register a pending payment and complete (or reject)
it once the simulated gateway answers. A payment leaves ``pending`` exactly
once and never returns to it.
"""
import logging
import secrets
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional

from sqlalchemy.orm import Session

from storefront.exceptions import (
    InvalidInputError, InvalidStateError, MissingPaymentDetailsError, NotFoundError, SaasError
)
from storefront.models import CheckoutMethod, PaymentStatus, Sale, SimulatedPayment
from storefront.utils.number_format import parse_int, parse_price

logger = logging.getLogger(__name__)

PAYMENT_METHODS = {m.value for m in CheckoutMethod}
PAYMENT_STATUSES = {s.value for s in PaymentStatus}


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip a free-text field; blank becomes None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_payment_method(payment_method) -> str:
    method = payment_method.strip().lower() if isinstance(payment_method, str) else payment_method
    if method not in PAYMENT_METHODS:
        raise InvalidInputError(
            f'Unsupported payment method: {payment_method!r}. Use qr or card',
            payload={'payment_method': payment_method},
        )
    return method


def card_fields(card_details: Optional[Mapping[str, Any]]):
    """Return (card_number, card_holder) from a card payload, both cleaned."""
    if card_details is None:
        return None, None
    if not isinstance(card_details, Mapping):
        raise InvalidInputError('card must be an object with card_number and card_holder')
    return clean_text(card_details.get('card_number')), clean_text(card_details.get('card_holder'))


def new_qr_code() -> str:
    return f"QR-{secrets.token_hex(8).upper()}"


def build_payment(
    sale_id: int,
    method: str,
    amount: Decimal,
    status: str,
    card_number: Optional[str] = None,
    card_holder: Optional[str] = None,
    qr_code: Optional[str] = None,
    customer_name: Optional[str] = None,
    delivery_address: Optional[str] = None,
    phone: Optional[str] = None,
) -> SimulatedPayment:
    """
    Build (not add) a payment with only the chosen method's fields set.

    Only the last four digits of a card number are kept. An approved payment
    is stamped with ``paid_at``.
    """
    is_card = method == CheckoutMethod.CARD.value
    return SimulatedPayment(
        sale_id=sale_id,
        method=method,
        amount=amount,
        status=status,
        paid_at=datetime.now(timezone.utc) if status == PaymentStatus.APPROVED.value else None,
        qr_code=None if is_card else (qr_code or new_qr_code()),
        card_last_digits=card_number[-4:] if is_card else None,
        card_holder=card_holder if is_card else None,
        customer_name=customer_name,
        delivery_address=delivery_address,
        phone=phone,
    )


def _get_live_sale(session: Session, sale_id: int) -> Sale:
    sale = session.query(Sale).filter(Sale.id == sale_id, Sale.not_deleted()).first()
    if not sale:
        raise NotFoundError(f'Sale {sale_id} does not exist', payload={'sale_id': sale_id})
    return sale


def get_payment(session: Session, payment_id: int) -> SimulatedPayment:
    payment = session.query(SimulatedPayment).filter(SimulatedPayment.id == payment_id).first()
    if not payment:
        raise NotFoundError(f'Payment {payment_id} does not exist', payload={'payment_id': payment_id})
    return payment


def payments_for_sale(session: Session, sale_id: int) -> List[SimulatedPayment]:
    """All payments of a live sale, oldest first."""
    _get_live_sale(session, sale_id)
    return session.query(SimulatedPayment).filter(
        SimulatedPayment.sale_id == sale_id
    ).order_by(SimulatedPayment.id.asc()).all()


def create_payment(
    session: Session,
    sale_id: int,
    payment_method: str,
    amount=None,
    status: str = PaymentStatus.PENDING.value,
    card_details: Optional[Mapping[str, Any]] = None,
    qr_code: Optional[str] = None,
    customer_name: Optional[str] = None,
    delivery_address: Optional[str] = None,
    phone: Optional[str] = None,
) -> SimulatedPayment:
    """
    Register a payment for an existing sale.

    The amount defaults to the sale total. Card payments need card number and
    holder name; QR payments get a generated code unless one is given.

    Raises:
        InvalidInputError: unknown method or status, malformed amount or card
        MissingPaymentDetailsError: card payment without card data
        NotFoundError: unknown sale
    """
    sale_id = parse_int(sale_id, 'sale_id')
    method = parse_payment_method(payment_method)
    if status not in PAYMENT_STATUSES:
        raise InvalidInputError(f'Unsupported payment status: {status!r}')
    parsed_amount = parse_price(amount, 'amount') if amount is not None else None
    card_number, card_holder = card_fields(card_details)
    if method == CheckoutMethod.CARD.value and (not card_number or not card_holder):
        raise MissingPaymentDetailsError()

    try:
        sale = _get_live_sale(session, sale_id)

        payment = build_payment(
            sale.id,
            method,
            parsed_amount if parsed_amount is not None else sale.total,
            status,
            card_number=card_number,
            card_holder=card_holder,
            qr_code=clean_text(qr_code),
            customer_name=clean_text(customer_name),
            delivery_address=clean_text(delivery_address),
            phone=clean_text(phone),
        )
        session.add(payment)
        session.commit()

        logger.info(f"Payment {payment.id} registered for sale {sale_id}: {method} {payment.amount} ({status})")
        return payment

    except SaasError:
        session.rollback()
        raise


def _settle_payment(session: Session, payment_id: int, status: str) -> SimulatedPayment:
    try:
        payment = session.query(SimulatedPayment).filter(
            SimulatedPayment.id == payment_id
        ).populate_existing().with_for_update().first()
        if not payment:
            raise NotFoundError(f'Payment {payment_id} does not exist', payload={'payment_id': payment_id})
        if payment.status != PaymentStatus.PENDING.value:
            raise InvalidStateError(
                f'Payment {payment_id} is already {payment.status}',
                payload={'payment_id': payment_id, 'payment_status': payment.status},
            )

        payment.status = status
        if status == PaymentStatus.APPROVED.value:
            payment.paid_at = datetime.now(timezone.utc)
        session.commit()

        logger.info(f"Payment {payment_id} {status}")
        return payment

    except SaasError:
        session.rollback()
        raise


def complete_payment(session: Session, payment_id: int) -> SimulatedPayment:
    """Approve a pending payment and stamp ``paid_at`` (InvalidStateError otherwise)."""
    return _settle_payment(session, payment_id, PaymentStatus.APPROVED.value)


def reject_payment(session: Session, payment_id: int) -> SimulatedPayment:
    """Mark a pending payment as rejected (InvalidStateError otherwise)."""
    return _settle_payment(session, payment_id, PaymentStatus.REJECTED.value)
