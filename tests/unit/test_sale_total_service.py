"""
Unit tests for sale total recalculation.
"""

from decimal import Decimal

from storefront.models import Sale
from storefront.services.sale_total_service import recalculate_sale_total


class TestRecalculateSaleTotal:

    def test_sums_live_lines_only(self, session, make_product, make_sale, make_sale_line):
        product = make_product(stock=10)
        sale = make_sale()
        make_sale_line(sale, product, 2, '3.50')
        deleted = make_sale_line(sale, product, 1, '100.00')
        deleted.soft_delete()

        total = recalculate_sale_total(session, sale.id)
        session.commit()

        assert total == Decimal('7.00')
        assert session.get(Sale, sale.id).total == Decimal('7.00')

    def test_sale_without_lines_is_zero(self, session, make_sale):
        sale = make_sale()
        sale.total = Decimal('99.99')
        session.flush()

        assert recalculate_sale_total(session, sale.id) == Decimal('0.00')
        session.rollback()

    def test_missing_sale_is_skipped(self, session):
        assert recalculate_sale_total(session, 987654) is None

    def test_does_not_commit(self, session, make_product, make_sale, make_sale_line):
        product = make_product(stock=10)
        sale = make_sale()
        make_sale_line(sale, product, 1, '4.00')

        recalculate_sale_total(session, sale.id)
        session.rollback()

        assert session.get(Sale, sale.id).total == Decimal('0.00')
