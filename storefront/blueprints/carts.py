"""Carts blueprint - customer carts, cart items and checkout (JSON)."""
from flask import Blueprint, current_app, jsonify, request

from storefront.blueprints.metrics import checkouts_total
from storefront.database import get_session
from storefront.exceptions import SaasError
from storefront.services import cart_service
from storefront.services.checkout_service import checkout_cart

carts_bp = Blueprint('carts', __name__)


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@carts_bp.route('/carts', methods=['POST'])
def create_cart():
    """Create an empty cart for a customer or an anonymous visitor."""
    data = _json_body()
    cart = cart_service.create_cart(
        get_session(),
        customer_id=data.get('customer_id'),
        customer_temp_id=data.get('customer_temp_id'),
    )
    return jsonify(cart.to_dict()), 201


@carts_bp.route('/carts/<int:cart_id>', methods=['GET'])
def get_cart(cart_id: int):
    cart = cart_service.get_cart(get_session(), cart_id)
    return jsonify(cart.to_dict())


@carts_bp.route('/carts', methods=['GET'])
def list_carts():
    """Carts of one owner: ?customer_id=<int> or ?customer_temp_id=<str>."""
    customer_id = request.args.get('customer_id')
    if customer_id is not None:
        carts = cart_service.carts_for_customer(get_session(), customer_id)
    else:
        carts = cart_service.carts_for_visitor(get_session(), request.args.get('customer_temp_id'))
    return jsonify([cart.to_dict() for cart in carts])


@carts_bp.route('/carts/<int:cart_id>/cancel', methods=['POST'])
def cancel_cart(cart_id: int):
    cart = cart_service.cancel_cart(get_session(), cart_id)
    return jsonify(cart.to_dict())


@carts_bp.route('/carts/<int:cart_id>', methods=['DELETE'])
def delete_cart(cart_id: int):
    cart_service.delete_cart(get_session(), cart_id)
    return '', 204


@carts_bp.route('/carts/<int:cart_id>/items', methods=['POST'])
def add_cart_item(cart_id: int):
    """Add a product to the cart. Any client-sent subtotal is ignored."""
    data = _json_body()
    item = cart_service.add_item(get_session(), cart_id, data.get('product_id'), data.get('quantity'))
    return jsonify(item.to_dict()), 201


@carts_bp.route('/cart-items/<int:item_id>', methods=['PATCH'])
def update_cart_item(item_id: int):
    data = _json_body()
    item = cart_service.update_item(
        get_session(),
        item_id,
        quantity=data.get('quantity'),
        product_id=data.get('product_id'),
    )
    return jsonify(item.to_dict())


@carts_bp.route('/cart-items/<int:item_id>', methods=['DELETE'])
def delete_cart_item(item_id: int):
    cart_service.remove_item(get_session(), item_id)
    return '', 204


@carts_bp.route('/carts/<int:cart_id>/checkout', methods=['POST'])
def checkout(cart_id: int):
    """
    Checkout an active cart.

    Body:
        payment_method: 'qr' | 'card'
        card: {'card_number', 'card_holder'} (card only)
        customer_name, delivery_address, phone: optional
    """
    data = _json_body()
    try:
        sale = checkout_cart(
            get_session(),
            cart_id,
            data.get('payment_method'),
            card_details=data.get('card'),
            customer_name=data.get('customer_name'),
            delivery_address=data.get('delivery_address'),
            phone=data.get('phone'),
            decrement_stock=current_app.config.get('CHECKOUT_DECREMENTS_STOCK', True),
        )
    except SaasError as e:
        checkouts_total.labels(outcome=type(e).__name__).inc()
        raise

    checkouts_total.labels(outcome='completed').inc()
    return jsonify(sale.to_dict()), 201
