import uuid
import enum
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator, ConfigDict

logger = logging.getLogger(__name__)


class TransactionCategory(str, enum.Enum):
    """Canonical transaction categories."""
    INCOME = "income"
    SALARY = "salary"
    INVESTMENT = "investment"
    TRANSFER = "transfer"
    FOOD = "food"
    SHOPPING = "shopping"
    TRANSPORTATION = "transportation"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    TRAVEL = "travel"
    HOUSING = "housing"
    INSURANCE = "insurance"
    SUBSCRIPTIONS = "subscriptions"
    OTHER = "other"

    @property
    def is_expense(self) -> bool:
        return self not in (
            TransactionCategory.INCOME,
            TransactionCategory.SALARY,
            TransactionCategory.INVESTMENT,
            TransactionCategory.TRANSFER,
        )


class Transaction(BaseModel):
    """
    A transaction attached to an account, built from a normalized record.
    Positive amounts are inflows, negative amounts are outflows.
    """
    transaction_id: uuid.UUID = Field(default_factory=uuid.uuid4, alias="transactionId")
    account_id: uuid.UUID = Field(alias="accountId")
    date: date
    description: str = Field(max_length=1000)
    amount: Decimal
    category: TransactionCategory = TransactionCategory.OTHER
    raw_category: Optional[str] = Field(default=None, alias="rawCategory", max_length=255)
    fit_id: Optional[str] = Field(default=None, alias="fitId", max_length=255)
    import_order: Optional[int] = Field(default=None, alias="importOrder")
    created_at: int = Field(default_factory=lambda: int(datetime.now(timezone.utc).timestamp() * 1000), alias="createdAt")

    model_config = ConfigDict(
        populate_by_name=True,  # Allows using field names or aliases for population
        json_encoders={
            Decimal: str,       # Serialize Decimal as string in JSON
            uuid.UUID: str
        },
        use_enum_values=False
    )

    @field_validator('amount')
    @classmethod
    def check_finite_amount(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError(f"Amount must be a finite number, got {v}")
        return v
