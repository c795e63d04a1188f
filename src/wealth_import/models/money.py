import enum
from typing import Any, Optional


class Currency(str, enum.Enum):
    """Enum for currencies"""
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    JPY = "JPY"
    AUD = "AUD"
    CHF = "CHF"
    CNY = "CNY"
    OTHER = "other"


def to_currency(value: Any) -> Optional[Currency]:
    """
    Convert an input value to a Currency enum.

    Accepts ISO currency codes in any case, Currency enum objects, or None.
    Unknown codes return None rather than raising so that a statement with an
    exotic CURDEF still imports.

    Examples:
        >>> to_currency("usd")
        <Currency.USD: 'USD'>

        >>> to_currency("XYZ") is None
        True
    """
    if value is None:
        return None
    if isinstance(value, Currency):
        return value
    if isinstance(value, str):
        try:
            return Currency(value.strip().upper())
        except ValueError:
            return None
    return None
