"""Products blueprint - manual stock corrections (JSON)."""
from flask import Blueprint, jsonify, request

from storefront.blueprints.metrics import stock_adjustments_total
from storefront.database import get_session
from storefront.services.stock_service import adjust_stock
from storefront.utils.number_format import parse_int

products_bp = Blueprint('products', __name__)


@products_bp.route('/products/<int:product_id>/stock', methods=['PATCH'])
def adjust_product_stock(product_id: int):
    """Apply {"delta": int} to the product's stock, clamped at zero."""
    data = request.get_json(silent=True) or {}
    delta = parse_int(data.get('delta'), 'delta')
    product = adjust_stock(get_session(), product_id, delta)

    direction = 'in' if delta > 0 else 'out' if delta < 0 else 'none'
    stock_adjustments_total.labels(direction=direction).inc()
    return jsonify(product.to_dict())
