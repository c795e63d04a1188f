"""
Canonicalization of free-text category and asset-type labels.

Both tables are ordered: the first entry with a matching keyword wins.
"""
from typing import List, Optional, Tuple

from wealth_import.models.holding import AssetType
from wealth_import.models.transaction import TransactionCategory

CATEGORY_KEYWORDS: List[Tuple[TransactionCategory, Tuple[str, ...]]] = [
    (TransactionCategory.SALARY, ("income", "salary", "paycheck")),
    (TransactionCategory.FOOD, ("food", "restaurant", "dining", "grocery")),
    (TransactionCategory.SHOPPING, ("shop", "retail")),
    (TransactionCategory.TRANSPORTATION, ("transport", "gas", "fuel", "uber", "lyft")),
    (TransactionCategory.UTILITIES, ("utility", "electric", "water", "internet")),
    (TransactionCategory.ENTERTAINMENT, ("entertainment", "movie", "game")),
    (TransactionCategory.HEALTHCARE, ("health", "medical", "doctor", "pharmacy")),
    (TransactionCategory.EDUCATION, ("education", "school", "tuition")),
    (TransactionCategory.TRAVEL, ("travel", "hotel", "flight", "airline")),
    (TransactionCategory.HOUSING, ("rent", "mortgage", "housing")),
    (TransactionCategory.INSURANCE, ("insurance",)),
    (TransactionCategory.SUBSCRIPTIONS, ("subscription", "netflix", "spotify")),
    (TransactionCategory.TRANSFER, ("transfer",)),
    (TransactionCategory.INVESTMENT, ("invest", "dividend")),
]

ASSET_TYPE_KEYWORDS: List[Tuple[AssetType, Tuple[str, ...]]] = [
    (AssetType.STOCK, ("stock", "equity")),
    (AssetType.BOND, ("bond",)),
    (AssetType.ETF, ("etf",)),
    (AssetType.MUTUAL_FUND, ("mutual", "fund")),
    (AssetType.CRYPTO, ("crypto", "bitcoin", "ethereum")),
    (AssetType.CASH, ("cash", "money market")),
    (AssetType.OPTION, ("option",)),
]


def categorize_label(label: Optional[str]) -> TransactionCategory:
    """Map a raw category label to a TransactionCategory; unmatched labels are OTHER."""
    if not label:
        return TransactionCategory.OTHER
    lower = label.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return category
    return TransactionCategory.OTHER


def map_asset_type(label: Optional[str]) -> AssetType:
    """
    Map a raw asset-type label to an AssetType.

    A label that is already an AssetType value (as the markup extractor
    emits) is taken as is. Otherwise the keyword table decides, and anything
    unrecognised, including a missing label, is treated as a stock.
    """
    if not label:
        return AssetType.STOCK
    lower = label.strip().lower()
    try:
        return AssetType(lower)
    except ValueError:
        pass
    for asset_type, keywords in ASSET_TYPE_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return asset_type
    return AssetType.STOCK
