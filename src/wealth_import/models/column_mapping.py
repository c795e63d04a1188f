"""
Column mapping inferred from the header row of a delimited file.
"""
import enum
from dataclasses import dataclass, replace
from typing import Dict, List, Optional


class DataType(str, enum.Enum):
    """Classification of a delimited dataset"""
    TRANSACTIONS = "transactions"
    HOLDINGS = "holdings"
    UNKNOWN = "unknown"


class ColumnRole(str, enum.Enum):
    """Semantic roles a delimited column can play"""
    DATE = "date"
    DESCRIPTION = "description"
    AMOUNT = "amount"
    DEBIT = "debit"
    CREDIT = "credit"
    CATEGORY = "category"
    SYMBOL = "symbol"
    NAME = "name"
    QUANTITY = "quantity"
    PRICE = "price"
    COST_BASIS = "cost_basis"
    ASSET_TYPE = "asset_type"


@dataclass(frozen=True)
class ColumnMapping:
    """
    One optional column index per semantic role, plus the resolved date
    format, the delimiter and the dataset classification.

    Built once per file from the header row. The date format is resolved
    later from the data rows, so it is attached with `with_date_format`,
    which returns a new mapping.
    """
    headers: List[str]
    columns: Dict[ColumnRole, int]
    data_type: DataType = DataType.UNKNOWN
    delimiter: str = ','
    date_format: Optional[str] = None

    def index_of(self, role: ColumnRole) -> Optional[int]:
        return self.columns.get(role)

    def has(self, role: ColumnRole) -> bool:
        return role in self.columns

    def header_for(self, role: ColumnRole) -> Optional[str]:
        index = self.columns.get(role)
        return self.headers[index] if index is not None else None

    def with_date_format(self, date_format: Optional[str]) -> 'ColumnMapping':
        return replace(self, date_format=date_format)
