"""
Account models for imported files.

An Account is the target container that imported transactions and holdings
are attached to. It is either supplied by the caller or synthesized by the
import service, one per imported file (or per statement for markup files).
"""
import enum
import uuid
import logging
from datetime import datetime, timezone
from typing import Optional
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, ConfigDict

from wealth_import.models.money import Currency

# Configure logging
logger = logging.getLogger(__name__)


class AccountType(str, enum.Enum):
    """Enum for account types"""
    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    CRYPTO = "crypto"
    CREDIT_CARD = "credit_card"
    LOAN = "loan"
    RETIREMENT = "retirement"
    OTHER = "other"

    @property
    def is_asset(self) -> bool:
        return self not in (AccountType.CREDIT_CARD, AccountType.LOAN)


class Account(BaseModel):
    """
    Represents a financial account in the system using Pydantic.
    """
    account_id: uuid.UUID = Field(default_factory=uuid.uuid4, alias="accountId")
    account_name: str = Field(max_length=100, alias="accountName")
    account_type: AccountType = Field(default=AccountType.CHECKING, alias="accountType")
    institution: str = Field(default="", max_length=100)
    balance: Decimal = Decimal(0)
    currency: Currency = Currency.USD
    is_manual: bool = Field(default=True, alias="isManual")
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: int = Field(default_factory=lambda: int(datetime.now(timezone.utc).timestamp() * 1000), alias="createdAt")

    model_config = ConfigDict(
        populate_by_name=True,
        json_encoders={
            Decimal: str,
            uuid.UUID: str
        },
        use_enum_values=False  # Preserve enum objects (not strings) for type safety
    )

    @field_validator('account_name', mode='before')
    @classmethod
    def trim_account_name(cls, v):
        if isinstance(v, str):
            v = v.strip()[:100]
            if not v:
                raise ValueError("Account name cannot be empty")
        return v

    @field_validator('created_at')
    @classmethod
    def check_positive_timestamp(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Timestamp must be a positive integer representing milliseconds since epoch")
        return v
