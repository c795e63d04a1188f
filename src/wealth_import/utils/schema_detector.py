"""
Header-based schema detection for delimited files.

Each header cell is compared, lower-cased and trimmed, against an ordered
keyword table. Matching is exact, except for the few roles that also accept
a substring ("debit", "credit"). The first header matching a role wins, and a
single header may fill several roles (e.g. "type" is both a category and an
asset type column).
"""
import logging
from typing import Dict, List, Optional, Tuple

from wealth_import.models.column_mapping import ColumnMapping, ColumnRole, DataType

logger = logging.getLogger(__name__)

# (role, exact header names, substrings) in priority order
ROLE_KEYWORDS: List[Tuple[ColumnRole, Tuple[str, ...], Tuple[str, ...]]] = [
    (ColumnRole.DATE, ("date", "transaction date", "trans date", "posted date", "posting date", "trade date"), ()),
    (ColumnRole.DESCRIPTION, ("description", "desc", "memo", "payee", "merchant", "transaction", "details", "narration"), ()),
    (ColumnRole.AMOUNT, ("amount", "transaction amount", "value"), ()),
    (ColumnRole.DEBIT, ("withdrawal", "withdrawals"), ("debit",)),
    (ColumnRole.CREDIT, ("deposit", "deposits"), ("credit",)),
    (ColumnRole.CATEGORY, ("category", "type", "transaction type"), ()),
    (ColumnRole.SYMBOL, ("symbol", "ticker", "stock symbol"), ()),
    (ColumnRole.NAME, ("name", "security name", "stock name", "holding name", "security"), ()),
    (ColumnRole.QUANTITY, ("quantity", "shares", "qty", "units"), ()),
    (ColumnRole.PRICE, ("price", "current price", "market price", "last price", "share price"), ()),
    (ColumnRole.COST_BASIS, ("cost basis", "cost", "average cost", "purchase price", "avg cost"), ()),
    (ColumnRole.ASSET_TYPE, ("asset type", "type", "security type", "asset class"), ()),
]


def header_matches(header: str, exact: Tuple[str, ...], contains: Tuple[str, ...]) -> bool:
    """Case-insensitive exact match, or substring match for `contains` keywords."""
    normalized = header.strip().lower()
    if not normalized:
        return False
    if normalized in exact:
        return True
    return any(keyword in normalized for keyword in contains)


def detect_columns(headers: List[str]) -> Dict[ColumnRole, int]:
    """Assign each role to the first header that matches it."""
    columns: Dict[ColumnRole, int] = {}
    for index, header in enumerate(headers):
        for role, exact, contains in ROLE_KEYWORDS:
            if role in columns:
                continue
            if header_matches(header, exact, contains):
                columns[role] = index
    return columns


def classify_columns(columns: Dict[ColumnRole, int]) -> DataType:
    """
    Holdings when both symbol and quantity were found, otherwise transactions
    when both date and description were found, otherwise unknown. Holdings are
    checked first because symbol+quantity is the rarer, stronger signal.
    """
    if ColumnRole.SYMBOL in columns and ColumnRole.QUANTITY in columns:
        return DataType.HOLDINGS
    if ColumnRole.DATE in columns and ColumnRole.DESCRIPTION in columns:
        return DataType.TRANSACTIONS
    return DataType.UNKNOWN


def detect_column_mapping(headers: List[str], delimiter: str = ',',
                          data_type_hint: Optional[DataType] = None) -> ColumnMapping:
    """
    Build a ColumnMapping from a header row.

    Args:
        headers: Header fields as produced by the tokenizer
        delimiter: Delimiter the file was tokenized with
        data_type_hint: Forces the dataset classification when given and not UNKNOWN

    Returns:
        ColumnMapping with no date format resolved yet
    """
    columns = detect_columns(headers)
    data_type = classify_columns(columns)
    if data_type_hint is not None and data_type_hint != DataType.UNKNOWN:
        data_type = data_type_hint

    mapping = ColumnMapping(headers=list(headers), columns=columns, data_type=data_type, delimiter=delimiter)
    logger.info(
        f"Detected {data_type.value} schema: "
        + ", ".join(f"{role.value}={headers[index]!r}" for role, index in columns.items())
    )
    return mapping
