"""Money and quantity parsing utilities."""
import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from storefront.exceptions import InvalidInputError

CENTS = Decimal('0.01')

# Numeric(10, 2) columns hold at most 8 integer digits
MAX_AMOUNT = Decimal(10) ** 8

# Integer columns are 32-bit signed on PostgreSQL
MAX_INT = 2 ** 31 - 1


def round2(value) -> Decimal:
    """Round a monetary amount to 2 decimals, half away from zero."""
    try:
        return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidInputError('amount is out of range')


def to_decimal(value, field: str = 'amount') -> Decimal:
    """
    Convert user or database input to Decimal.

    Floats go through ``str`` so 10.1 becomes Decimal('10.1') and not its
    binary expansion.

    Raises:
        InvalidInputError: if the value is empty, not numeric or not finite.
    """
    if isinstance(value, Decimal):
        result = value
    elif value is None or isinstance(value, bool):
        raise InvalidInputError(f'{field} must be a number')
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidInputError(f'{field} must be a number')

    if not result.is_finite():
        raise InvalidInputError(f'{field} must be a finite number')
    return result


def parse_int(value, field: str) -> int:
    """
    Accept only finite integral numbers (1, 1.0, "3"); reject 1.5, NaN, inf, True.

    Values outside the 32-bit range of an Integer column are rejected too.

    Raises:
        InvalidInputError: if the value is not an integer.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f'{field} must be an integer')
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise InvalidInputError(f'{field} must be a finite integer')
        number = int(value)
    elif isinstance(value, (str, Decimal)):
        decimal_value = to_decimal(value, field)
        try:
            integral = decimal_value.to_integral_value()
        except InvalidOperation:
            raise InvalidInputError(f'{field} is out of range')
        if decimal_value != integral:
            raise InvalidInputError(f'{field} must be an integer')
        number = int(integral)
    else:
        raise InvalidInputError(f'{field} must be an integer')

    if abs(number) > MAX_INT:
        raise InvalidInputError(f'{field} is out of range', payload={'max': MAX_INT})
    return number


def parse_quantity(value, field: str = 'quantity') -> int:
    """Parse a line-item quantity (integer >= 1)."""
    quantity = parse_int(value, field)
    if quantity < 1:
        raise InvalidInputError(f'{field} must be at least 1')
    return quantity


def parse_price(value, field: str = 'unit_price') -> Decimal:
    """Parse a non-negative price rounded to cents that fits a Numeric(10, 2) column."""
    price = to_decimal(value, field)
    if abs(price) >= MAX_AMOUNT or abs(round2(price)) >= MAX_AMOUNT:
        raise InvalidInputError(f'{field} is out of range', payload={'max': str(MAX_AMOUNT - CENTS)})
    price = round2(price)
    if price < 0:
        raise InvalidInputError(f'{field} cannot be negative')
    return price
