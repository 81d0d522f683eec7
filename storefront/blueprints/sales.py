"""Sales blueprint - in-store sales and the sale line ledger (JSON)."""
from flask import Blueprint, jsonify, request

from storefront.database import get_session
from storefront.models import PaymentStatus, SaleStatus
from storefront.services import payment_service, sale_line_service, sale_service

sales_bp = Blueprint('sales', __name__)


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@sales_bp.route('/sales', methods=['POST'])
def create_sale():
    data = _json_body()
    sale = sale_service.create_sale(
        get_session(),
        payment_method=data.get('payment_method'),
        employee_id=data.get('employee_id'),
        customer_name=data.get('customer_name'),
        notes=data.get('notes'),
        status=data.get('status', SaleStatus.COMPLETED.value),
    )
    return jsonify(sale.to_dict()), 201


@sales_bp.route('/sales/<int:sale_id>', methods=['GET'])
def get_sale(sale_id: int):
    sale = sale_service.get_sale(get_session(), sale_id)
    return jsonify(sale.to_dict())


@sales_bp.route('/sales/<int:sale_id>', methods=['PATCH'])
def update_sale(sale_id: int):
    """Edit status, payment method, employee, customer name or notes."""
    data = _json_body()
    sale = sale_service.update_sale(
        get_session(),
        sale_id,
        status=data.get('status'),
        payment_method=data.get('payment_method'),
        employee_id=data.get('employee_id'),
        customer_name=data.get('customer_name'),
        notes=data.get('notes'),
    )
    return jsonify(sale.to_dict())


@sales_bp.route('/sales/<int:sale_id>', methods=['DELETE'])
def delete_sale(sale_id: int):
    sale_service.delete_sale(get_session(), sale_id)
    return '', 204


@sales_bp.route('/sale-lines', methods=['POST'])
def create_sale_line():
    data = _json_body()
    line = sale_line_service.create_sale_line(
        get_session(),
        sale_id=data.get('sale_id'),
        product_id=data.get('product_id'),
        quantity=data.get('quantity'),
        unit_price=data.get('unit_price'),
    )
    return jsonify(line.to_dict()), 201


@sales_bp.route('/sale-lines/<int:sale_line_id>', methods=['GET'])
def get_sale_line(sale_line_id: int):
    line = sale_line_service.get_sale_line(get_session(), sale_line_id)
    return jsonify(line.to_dict())


@sales_bp.route('/sale-lines/<int:sale_line_id>', methods=['PATCH'])
def update_sale_line(sale_line_id: int):
    data = _json_body()
    line = sale_line_service.update_sale_line(
        get_session(),
        sale_line_id,
        product_id=data.get('product_id'),
        quantity=data.get('quantity'),
        unit_price=data.get('unit_price'),
        sale_id=data.get('sale_id'),
    )
    return jsonify(line.to_dict())


@sales_bp.route('/sale-lines/<int:sale_line_id>', methods=['DELETE'])
def delete_sale_line(sale_line_id: int):
    sale_line_service.remove_sale_line(get_session(), sale_line_id)
    return '', 204


@sales_bp.route('/sales/<int:sale_id>/payments', methods=['POST'])
def create_payment(sale_id: int):
    """
    Register a simulated payment for a sale.

    Body:
        payment_method: 'qr' | 'card'
        amount: defaults to the sale total
        status: 'pending' (default) | 'approved' | 'rejected'
        card: {'card_number', 'card_holder'} (card only)
        qr_code, customer_name, delivery_address, phone: optional
    """
    data = _json_body()
    payment = payment_service.create_payment(
        get_session(),
        sale_id,
        data.get('payment_method'),
        amount=data.get('amount'),
        status=data.get('status', PaymentStatus.PENDING.value),
        card_details=data.get('card'),
        qr_code=data.get('qr_code'),
        customer_name=data.get('customer_name'),
        delivery_address=data.get('delivery_address'),
        phone=data.get('phone'),
    )
    return jsonify(payment.to_dict()), 201


@sales_bp.route('/sales/<int:sale_id>/payments', methods=['GET'])
def list_payments(sale_id: int):
    payments = payment_service.payments_for_sale(get_session(), sale_id)
    return jsonify([payment.to_dict() for payment in payments])


@sales_bp.route('/payments/<int:payment_id>', methods=['GET'])
def get_payment(payment_id: int):
    payment = payment_service.get_payment(get_session(), payment_id)
    return jsonify(payment.to_dict())


@sales_bp.route('/payments/<int:payment_id>/complete', methods=['POST'])
def complete_payment(payment_id: int):
    payment = payment_service.complete_payment(get_session(), payment_id)
    return jsonify(payment.to_dict())


@sales_bp.route('/payments/<int:payment_id>/reject', methods=['POST'])
def reject_payment(payment_id: int):
    payment = payment_service.reject_payment(get_session(), payment_id)
    return jsonify(payment.to_dict())
