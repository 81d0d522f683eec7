"""
Integration tests for the JSON API: routing, status codes and error bodies.
"""

from decimal import Decimal

from storefront.blueprints.metrics import registry
from storefront.models import Cart, Product, Sale


class TestCheckoutEndpoint:

    def test_checkout_creates_sale(self, client, session, make_product, make_cart):
        product = make_product(price='10.00', stock=5)
        product_id = product.id
        cart_id = make_cart(items=[(product, 3, '1.00')]).id

        response = client.post(f'/carts/{cart_id}/checkout', json={
            'payment_method': 'card',
            'card': {'card_number': '4000000000009876', 'card_holder': 'Maria Perez'},
            'delivery_address': 'Main St 1',
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['total'] == '30.00'
        assert data['payment_method'] == 'card'
        assert data['payments'][0]['card_last_digits'] == '9876'
        assert len(data['lines']) == 1

        session.expire_all()
        assert session.get(Product, product_id).stock == 2
        assert session.get(Cart, cart_id).status == 'processed'

    def test_checkout_processed_cart_is_conflict(self, client, session, make_product, make_cart):
        cart_id = make_cart(items=[(make_product(), 1)], status='processed').id

        response = client.post(f'/carts/{cart_id}/checkout', json={'payment_method': 'qr'})

        assert response.status_code == 409
        assert response.get_json()['status'] == 'error'

    def test_checkout_empty_cart(self, client, session, make_cart):
        cart_id = make_cart().id
        response = client.post(f'/carts/{cart_id}/checkout', json={'payment_method': 'qr'})
        assert response.status_code == 400

    def test_checkout_card_without_details(self, client, session, make_product, make_cart):
        cart_id = make_cart(items=[(make_product(), 1)]).id
        response = client.post(f'/carts/{cart_id}/checkout', json={'payment_method': 'card'})
        assert response.status_code == 400

    def test_checkout_card_not_an_object(self, client, session, make_product, make_cart):
        cart_id = make_cart(items=[(make_product(), 1)]).id
        response = client.post(f'/carts/{cart_id}/checkout', json={
            'payment_method': 'card', 'card': '4111111111111234',
        })
        assert response.status_code == 422

    def test_checkout_insufficient_stock(self, client, session, make_product, make_cart):
        product = make_product(stock=1)
        product_id = product.id
        cart_id = make_cart(items=[(product, 2)]).id

        response = client.post(f'/carts/{cart_id}/checkout', json={'payment_method': 'qr'})

        assert response.status_code == 409
        body = response.get_json()
        assert body['product_id'] == product_id
        assert body['available'] == 1
        assert body['requested'] == 2

    def test_checkout_unknown_cart(self, client, session):
        response = client.post('/carts/999999/checkout', json={'payment_method': 'qr'})
        assert response.status_code == 404


class TestCartEndpoints:

    def test_cart_flow(self, client, session, make_product):
        product_id = make_product(price='2.50', stock=10).id

        response = client.post('/carts', json={'customer_temp_id': 'visitor-42'})
        assert response.status_code == 201
        cart_id = response.get_json()['id']

        response = client.post(f'/carts/{cart_id}/items', json={'product_id': product_id, 'quantity': 2})
        assert response.status_code == 201
        item_id = response.get_json()['id']

        response = client.patch(f'/cart-items/{item_id}', json={'quantity': 4})
        assert response.status_code == 200

        cart = client.get(f'/carts/{cart_id}').get_json()
        assert cart['total'] == '10.00'

        assert client.delete(f'/cart-items/{item_id}').status_code == 204
        assert client.get(f'/carts/{cart_id}').get_json()['total'] == '0.00'

    def test_cart_needs_owner(self, client, session):
        response = client.post('/carts', json={})
        assert response.status_code == 422


class TestSaleLineEndpoints:

    def test_sale_line_lifecycle(self, client, session, make_product):
        product_id = make_product(stock=5).id

        sale_id = client.post('/sales', json={'payment_method': 'cash'}).get_json()['id']

        response = client.post('/sale-lines', json={
            'sale_id': sale_id, 'product_id': product_id, 'quantity': 2, 'unit_price': '4.00',
        })
        assert response.status_code == 201
        line_id = response.get_json()['id']

        response = client.patch(f'/sale-lines/{line_id}', json={'quantity': 3})
        assert response.status_code == 200
        assert client.get(f'/sales/{sale_id}').get_json()['total'] == '12.00'

        assert client.delete(f'/sale-lines/{line_id}').status_code == 204
        assert client.get(f'/sale-lines/{line_id}').status_code == 404

        session.expire_all()
        assert session.get(Product, product_id).stock == 5
        assert session.get(Sale, sale_id).total == Decimal('0.00')

    def test_sale_line_insufficient_stock(self, client, session, make_product, make_sale):
        product_id = make_product(stock=1).id
        sale_id = make_sale().id

        response = client.post('/sale-lines', json={
            'sale_id': sale_id, 'product_id': product_id, 'quantity': 3, 'unit_price': '1.00',
        })

        assert response.status_code == 409
        body = response.get_json()
        assert body['available'] == 1
        assert body['requested'] == 3

    def test_sale_line_invalid_quantity(self, client, session, make_product, make_sale):
        product_id = make_product(stock=5).id
        sale_id = make_sale().id

        response = client.post('/sale-lines', json={
            'sale_id': sale_id, 'product_id': product_id, 'quantity': 1.5, 'unit_price': '1.00',
        })

        assert response.status_code == 422

    def test_sale_line_price_out_of_range(self, client, session, make_product, make_sale):
        product_id = make_product(stock=5).id
        sale_id = make_sale().id

        for unit_price in ('1e30', '123456789012'):
            response = client.post('/sale-lines', json={
                'sale_id': sale_id, 'product_id': product_id, 'quantity': 1, 'unit_price': unit_price,
            })
            assert response.status_code == 422
            assert response.get_json()['status'] == 'error'

        session.expire_all()
        assert session.get(Product, product_id).stock == 5

    def test_unknown_sale(self, client, session):
        assert client.get('/sales/424242').status_code == 404


class TestStockAdjustmentEndpoint:

    def test_adjust_stock_clamps(self, client, session, make_product):
        product_id = make_product(stock=3).id

        response = client.patch(f'/products/{product_id}/stock', json={'delta': -100})

        assert response.status_code == 200
        assert response.get_json()['stock'] == 0

    def test_adjust_stock_invalid_delta(self, client, session, make_product):
        product_id = make_product(stock=3).id

        response = client.patch(f'/products/{product_id}/stock', json={'delta': 1.5})

        assert response.status_code == 422
        session.expire_all()
        assert session.get(Product, product_id).stock == 3

    def test_adjust_unknown_product(self, client, session):
        response = client.patch('/products/999999/stock', json={'delta': 1})
        assert response.status_code == 404


class TestMetricsEndpoint:

    def test_metrics_exposes_counters(self, client, session, make_product):
        product_id = make_product(stock=3).id
        client.patch(f'/products/{product_id}/stock', json={'delta': 1})

        response = client.get('/metrics')

        assert response.status_code == 200
        assert b'stock_adjustments_total' in response.data
        assert b'http_requests_total' in response.data

    def test_zero_delta_counts_as_no_direction(self, client, session, make_product):
        product_id = make_product(stock=3).id

        def count(direction):
            return registry.get_sample_value('stock_adjustments_total', {'direction': direction}) or 0

        before_out, before_none = count('out'), count('none')
        response = client.patch(f'/products/{product_id}/stock', json={'delta': 0})

        assert response.status_code == 200
        assert count('none') == before_none + 1
        assert count('out') == before_out


class TestSaleHeaderAndPaymentEndpoints:

    def test_update_sale_status(self, client, session):
        sale_id = client.post('/sales', json={'payment_method': 'cash', 'status': 'draft'}).get_json()['id']

        response = client.patch(f'/sales/{sale_id}', json={'status': 'completed', 'notes': 'paid at counter'})
        assert response.status_code == 200
        assert response.get_json()['status'] == 'completed'

        response = client.patch(f'/sales/{sale_id}', json={'status': 'draft'})
        assert response.status_code == 409

    def test_payment_lifecycle(self, client, session, make_sale):
        sale_id = make_sale().id

        response = client.post(f'/sales/{sale_id}/payments', json={
            'payment_method': 'card', 'amount': '12.50',
            'card': {'card_number': '4111111111111111', 'card_holder': 'Maria Perez'},
        })
        assert response.status_code == 201
        payment = response.get_json()
        assert payment['status'] == 'pending'
        assert payment['card_last_digits'] == '1111'

        response = client.post(f"/payments/{payment['id']}/complete")
        assert response.status_code == 200
        assert response.get_json()['paid_at'] is not None

        assert client.post(f"/payments/{payment['id']}/complete").status_code == 409
        assert client.post(f"/payments/{payment['id']}/reject").status_code == 409

        listed = client.get(f'/sales/{sale_id}/payments').get_json()
        assert [p['status'] for p in listed] == ['approved']

    def test_payment_bad_amount(self, client, session, make_sale):
        sale_id = make_sale().id
        response = client.post(f'/sales/{sale_id}/payments', json={'payment_method': 'qr', 'amount': '1e30'})
        assert response.status_code == 422

    def test_unknown_payment(self, client, session):
        assert client.get('/payments/999999').status_code == 404


class TestCartLifecycleEndpoints:

    def test_cancel_and_delete(self, client, session):
        cart_id = client.post('/carts', json={'customer_id': 5}).get_json()['id']

        response = client.post(f'/carts/{cart_id}/cancel')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'cancelled'
        assert client.post(f'/carts/{cart_id}/cancel').status_code == 409

        assert client.delete(f'/carts/{cart_id}').status_code == 204
        assert client.get(f'/carts/{cart_id}').status_code == 404

    def test_list_carts_by_owner(self, client, session):
        cart_id = client.post('/carts', json={'customer_temp_id': 'visitor-77'}).get_json()['id']

        response = client.get('/carts', query_string={'customer_temp_id': 'visitor-77'})
        assert response.status_code == 200
        assert [c['id'] for c in response.get_json()] == [cart_id]

        assert client.get('/carts').status_code == 422
