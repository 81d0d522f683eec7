"""Sale header service (in-store sales created at the register)."""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from storefront.exceptions import InvalidInputError, InvalidStateError, NotFoundError, SaasError
from storefront.models import Employee, Sale, SalePaymentMethod, SaleStatus
from storefront.utils.number_format import parse_int

logger = logging.getLogger(__name__)

# Name snapshot for sales without an employee (web checkout)
WEB_EMPLOYEE_NAME = 'web system'

PAYMENT_METHODS = {m.value for m in SalePaymentMethod}
SALE_STATUSES = {s.value for s in SaleStatus}


def get_sale(session: Session, sale_id: int) -> Sale:
    """Fetch a non-deleted sale (lines exclude soft-deleted ones)."""
    sale = session.query(Sale).filter(Sale.id == sale_id, Sale.not_deleted()).first()
    if not sale:
        raise NotFoundError(f'Sale {sale_id} does not exist', payload={'sale_id': sale_id})
    return sale


def create_sale(
    session: Session,
    payment_method: str,
    employee_id: Optional[int] = None,
    customer_name: Optional[str] = None,
    notes: Optional[str] = None,
    status: str = SaleStatus.COMPLETED.value,
) -> Sale:
    """
    Open an empty sale; lines are added through the sale line ledger.

    The employee's current name is copied onto the sale so later edits to
    the employee record do not rewrite history.
    """
    if payment_method not in PAYMENT_METHODS:
        raise InvalidInputError(f'Unsupported payment method: {payment_method!r}')
    if status not in SALE_STATUSES:
        raise InvalidInputError(f'Unsupported sale status: {status!r}')

    try:
        employee_name = WEB_EMPLOYEE_NAME
        if employee_id is not None:
            employee_id = parse_int(employee_id, 'employee_id')
            employee = session.query(Employee).filter(Employee.id == employee_id).first()
            if not employee:
                raise NotFoundError(f'Employee {employee_id} does not exist', payload={'employee_id': employee_id})
            employee_name = employee.name

        sale = Sale(
            sold_at=datetime.now(timezone.utc),
            total=Decimal('0.00'),
            payment_method=payment_method,
            status=status,
            employee_id=employee_id,
            employee_name_snapshot=employee_name,
            customer_name=customer_name,
            notes=notes,
        )
        session.add(sale)
        session.commit()

        logger.info(f"Sale {sale.id} opened by {employee_name} ({payment_method})")
        return sale

    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception("Error creating sale")
        raise


def delete_sale(session: Session, sale_id: int) -> Sale:
    """Soft-delete a sale. Stock is not touched; remove lines first to return it."""
    try:
        sale = get_sale(session, sale_id)
        sale.soft_delete()
        session.commit()

        logger.info(f"Sale {sale_id} soft-deleted")
        return sale

    except SaasError:
        session.rollback()
        raise


# Allowed status changes; refunded and voided sales are final
STATUS_TRANSITIONS = {
    SaleStatus.DRAFT.value: {SaleStatus.COMPLETED.value, SaleStatus.VOIDED.value},
    SaleStatus.COMPLETED.value: {SaleStatus.REFUND.value, SaleStatus.VOIDED.value},
    SaleStatus.REFUND.value: set(),
    SaleStatus.VOIDED.value: set(),
}


def update_sale(
    session: Session,
    sale_id: int,
    status: Optional[str] = None,
    payment_method: Optional[str] = None,
    employee_id: Optional[int] = None,
    customer_name: Optional[str] = None,
    notes: Optional[str] = None,
) -> Sale:
    """
    Edit the header of a sale; arguments left as None keep their value.

    The total is never set here, it follows the lines. An empty string clears
    ``customer_name`` or ``notes``. Reassigning the employee refreshes the
    name snapshot.

    Status changes follow STATUS_TRANSITIONS:
        draft -> completed | voided
        completed -> refund | voided
        refund, voided -> (final)

    Raises:
        InvalidInputError: unknown status or payment method
        InvalidStateError: status change not allowed from the current status
        NotFoundError: unknown sale or employee
    """
    if status is not None and status not in SALE_STATUSES:
        raise InvalidInputError(f'Unsupported sale status: {status!r}')
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise InvalidInputError(f'Unsupported payment method: {payment_method!r}')
    if employee_id is not None:
        employee_id = parse_int(employee_id, 'employee_id')

    try:
        sale = get_sale(session, sale_id)

        if status is not None and status != sale.status:
            if status not in STATUS_TRANSITIONS[sale.status]:
                raise InvalidStateError(
                    f'Sale {sale_id} cannot go from {sale.status} to {status}',
                    payload={'sale_id': sale_id, 'sale_status': sale.status, 'requested_status': status},
                )
            sale.status = status

        if employee_id is not None:
            employee = session.query(Employee).filter(Employee.id == employee_id).first()
            if not employee:
                raise NotFoundError(f'Employee {employee_id} does not exist', payload={'employee_id': employee_id})
            sale.employee_id = employee.id
            sale.employee_name_snapshot = employee.name

        if payment_method is not None:
            sale.payment_method = payment_method
        if customer_name is not None:
            sale.customer_name = str(customer_name).strip() or None
        if notes is not None:
            sale.notes = str(notes).strip() or None

        session.commit()

        logger.info(f"Sale {sale_id} updated (status={sale.status})")
        return sale

    except SaasError:
        session.rollback()
        raise
