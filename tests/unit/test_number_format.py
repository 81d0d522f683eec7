"""
Unit tests for money and quantity parsing.
"""

import pytest
from decimal import Decimal

from storefront.exceptions import InvalidInputError
from storefront.utils.number_format import parse_int, parse_price, parse_quantity, round2


class TestRound2:

    def test_rounds_half_up(self):
        assert round2(Decimal('10.005')) == Decimal('10.01')
        assert round2('2.344') == Decimal('2.34')
        assert round2(0) == Decimal('0.00')

    def test_float_goes_through_str(self):
        assert round2(10.1) == Decimal('10.10')


class TestParseInt:

    @pytest.mark.parametrize('value,expected', [(3, 3), (-2, -2), (4.0, 4), ('7', 7), (Decimal('5'), 5)])
    def test_accepts_integral_values(self, value, expected):
        assert parse_int(value, 'delta') == expected

    @pytest.mark.parametrize('value', [1.5, float('nan'), float('inf'), True, None, 'abc', '2.5', [1]])
    def test_rejects_non_integers(self, value):
        with pytest.raises(InvalidInputError):
            parse_int(value, 'delta')


class TestQuantityAndPrice:

    @pytest.mark.parametrize('value', [0, -1])
    def test_quantity_must_be_positive(self, value):
        with pytest.raises(InvalidInputError):
            parse_quantity(value)

    def test_price_rounded_and_non_negative(self):
        assert parse_price('10.005') == Decimal('10.01')
        with pytest.raises(InvalidInputError):
            parse_price('-1')
        with pytest.raises(InvalidInputError):
            parse_price('Infinity')


class TestOutOfRange:
    """Finite values that do not fit the database columns are input errors."""

    @pytest.mark.parametrize('value', ['1e30', '123456789012', '100000000', '99999999.995', Decimal('1E+40')])
    def test_price_above_numeric_bound(self, value):
        with pytest.raises(InvalidInputError):
            parse_price(value)

    def test_largest_price_accepted(self):
        assert parse_price('99999999.99') == Decimal('99999999.99')

    def test_round2_overflow_is_input_error(self):
        with pytest.raises(InvalidInputError):
            round2('1e30')

    @pytest.mark.parametrize('value', [2 ** 31, -(2 ** 31), '1e30', 1e30, Decimal('1E+40')])
    def test_int_above_integer_column(self, value):
        with pytest.raises(InvalidInputError):
            parse_int(value, 'delta')

    def test_quantity_above_integer_column(self):
        with pytest.raises(InvalidInputError):
            parse_quantity(2 ** 40)
