"""
Normalized records produced by the format extractors.

These are transient: an extractor builds them, the import service turns each
one into a Transaction or Holding attached to an account, and they are
dropped when the import call returns.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class NormalizedTransactionRecord:
    """A transaction with a valid date and a derived signed amount."""
    date: date
    description: str
    amount: Decimal
    category: Optional[str] = None
    fit_id: Optional[str] = None


@dataclass(frozen=True)
class NormalizedHoldingRecord:
    """A position with a non-empty upper-case symbol and a quantity."""
    symbol: str
    quantity: Decimal
    price: Decimal = field(default_factory=lambda: Decimal(0))
    name: Optional[str] = None
    cost_basis: Optional[Decimal] = None
    asset_type: Optional[str] = None

    def __post_init__(self) -> None:
        symbol = (self.symbol or '').strip().upper()
        if not symbol:
            raise ValueError("Holding symbol cannot be empty")
        object.__setattr__(self, 'symbol', symbol)

    @property
    def effective_cost_basis(self) -> Decimal:
        return self.cost_basis if self.cost_basis is not None else self.price
