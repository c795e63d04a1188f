import uuid
import enum
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, ConfigDict


class AssetType(str, enum.Enum):
    """Enum for holding asset types"""
    STOCK = "stock"
    BOND = "bond"
    ETF = "etf"
    MUTUAL_FUND = "mutual_fund"
    CRYPTO = "crypto"
    CASH = "cash"
    OPTION = "option"
    OTHER = "other"


class Holding(BaseModel):
    """A security position attached to an account."""
    holding_id: uuid.UUID = Field(default_factory=uuid.uuid4, alias="holdingId")
    account_id: uuid.UUID = Field(alias="accountId")
    symbol: str = Field(min_length=1, max_length=50)
    name: str = Field(max_length=255)
    quantity: Decimal
    cost_basis: Decimal = Field(alias="costBasis")
    current_price: Decimal = Field(alias="currentPrice")
    asset_type: AssetType = Field(default=AssetType.STOCK, alias="assetType")

    model_config = ConfigDict(
        populate_by_name=True,
        json_encoders={
            Decimal: str,
            uuid.UUID: str
        },
        use_enum_values=False
    )

    @field_validator('symbol', mode='before')
    @classmethod
    def normalize_symbol(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def current_value(self) -> Decimal:
        return self.quantity * self.current_price

    @property
    def gain_loss(self) -> Decimal:
        return (self.current_price - self.cost_basis) * self.quantity
