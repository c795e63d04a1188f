"""
Numeric parsing for amounts, quantities and prices found in exports.
"""
import decimal
from decimal import Decimal
from typing import Optional

from wealth_import.utils.import_errors import MalformedNumber

CURRENCY_SYMBOLS = "$€£¥"


def parse_amount(raw: Optional[str]) -> Decimal:
    """
    Parse a currency-formatted number.

    Strips currency symbols, thousands separators and whitespace, and turns
    an accounting-style parenthesized value into a negative, so "$1,234.50"
    is 1234.50 and "(4.50)" is -4.50.

    Raises:
        MalformedNumber: if nothing numeric is left or the value is not finite
    """
    if raw is None:
        raise MalformedNumber('')

    cleaned = raw.strip()
    negative = False
    if cleaned.startswith('(') and cleaned.endswith(')'):
        negative = True
        cleaned = cleaned[1:-1]

    for symbol in CURRENCY_SYMBOLS:
        cleaned = cleaned.replace(symbol, '')
    cleaned = cleaned.replace(',', '').replace(' ', '')

    if not cleaned:
        raise MalformedNumber(raw)

    try:
        value = Decimal(cleaned)
    except decimal.InvalidOperation:
        raise MalformedNumber(raw)

    if not value.is_finite():
        raise MalformedNumber(raw)
    return -value if negative else value


def parse_optional_amount(raw: Optional[str]) -> Optional[Decimal]:
    """Like `parse_amount`, but returns None for blank or unparsable values."""
    if raw is None or not raw.strip():
        return None
    try:
        return parse_amount(raw)
    except MalformedNumber:
        return None
