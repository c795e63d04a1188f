"""
Delimited record extractor.

Turns tokenized rows plus a detected ColumnMapping into normalized
transaction or holding records. Structural problems (missing required
columns) fail the whole file; a row that cannot produce a record is skipped
and its reason is recorded as a warning.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from wealth_import.models.column_mapping import ColumnMapping, ColumnRole, DataType
from wealth_import.models.records import NormalizedHoldingRecord, NormalizedTransactionRecord
from wealth_import.utils.amount_utils import parse_amount, parse_optional_amount
from wealth_import.utils.csv_tokenizer import tokenize
from wealth_import.utils.date_resolver import (
    DEFAULT_MATCH_THRESHOLD,
    DEFAULT_PROBE_COUNT,
    DEFAULT_SAMPLE_SIZE,
    parse_date,
    resolve_date_format,
)
from wealth_import.utils.import_errors import MalformedDate, MalformedNumber, MissingRequiredField
from wealth_import.utils.parsing_context import ParsingContext
from wealth_import.utils.schema_detector import detect_column_mapping

logger = logging.getLogger(__name__)


@dataclass
class CsvParseResult:
    """Outcome of parsing one delimited file"""
    mapping: ColumnMapping
    transactions: List[NormalizedTransactionRecord] = field(default_factory=list)
    holdings: List[NormalizedHoldingRecord] = field(default_factory=list)
    row_count: int = 0


def _cell(row: List[str], index: Optional[int]) -> Optional[str]:
    if index is None or index >= len(row):
        return None
    return row[index]


def _optional_text(row: List[str], index: Optional[int]) -> Optional[str]:
    value = _cell(row, index)
    if value is None:
        return None
    value = value.strip()
    return value or None


def date_samples(rows: List[List[str]], mapping: ColumnMapping, sample_size: int = DEFAULT_SAMPLE_SIZE) -> List[str]:
    """First `sample_size` raw values of the date column."""
    date_index = mapping.index_of(ColumnRole.DATE)
    if date_index is None:
        return []
    return [row[date_index] for row in rows[:sample_size] if date_index < len(row)]


def resolve_mapping_date_format(rows: List[List[str]], mapping: ColumnMapping,
                                sample_size: int = DEFAULT_SAMPLE_SIZE,
                                probe_count: int = DEFAULT_PROBE_COUNT,
                                threshold: int = DEFAULT_MATCH_THRESHOLD) -> ColumnMapping:
    """Return a copy of `mapping` with its date format resolved from the rows."""
    if mapping.date_format or not mapping.has(ColumnRole.DATE):
        return mapping
    samples = date_samples(rows, mapping, sample_size)
    return mapping.with_date_format(resolve_date_format(samples, probe_count, threshold))


def validate_transaction_columns(mapping: ColumnMapping) -> None:
    """
    Raises:
        MissingRequiredField: when date or description is absent, or when
            there is neither an amount column nor a debit/credit column
    """
    if not mapping.has(ColumnRole.DATE):
        raise MissingRequiredField("date")
    if not mapping.has(ColumnRole.DESCRIPTION):
        raise MissingRequiredField("description")
    if not (mapping.has(ColumnRole.AMOUNT) or mapping.has(ColumnRole.DEBIT) or mapping.has(ColumnRole.CREDIT)):
        raise MissingRequiredField("amount")


def validate_holding_columns(mapping: ColumnMapping) -> None:
    """
    Raises:
        MissingRequiredField: when symbol or quantity is absent
    """
    if not mapping.has(ColumnRole.SYMBOL):
        raise MissingRequiredField("symbol")
    if not mapping.has(ColumnRole.QUANTITY):
        raise MissingRequiredField("quantity")


def derive_amount(row: List[str], mapping: ColumnMapping) -> Decimal:
    """
    Signed amount for a row: the amount column when there is one, otherwise
    credit minus debit with a missing side counted as zero.

    Raises:
        MalformedNumber: if no amount can be derived
    """
    amount_index = mapping.index_of(ColumnRole.AMOUNT)
    if amount_index is not None:
        return parse_amount(_cell(row, amount_index))

    debit = parse_optional_amount(_cell(row, mapping.index_of(ColumnRole.DEBIT)))
    credit = parse_optional_amount(_cell(row, mapping.index_of(ColumnRole.CREDIT)))
    if debit is None and credit is None:
        raise MalformedNumber('')
    return (credit or Decimal(0)) - (debit or Decimal(0))


def parse_csv_transactions(rows: List[List[str]], mapping: ColumnMapping,
                           context: Optional[ParsingContext] = None) -> List[NormalizedTransactionRecord]:
    """
    Extract transaction records from tokenized rows.

    Args:
        rows: Data rows, already fitted to the header width
        mapping: Detected mapping; its date format is used first when set
        context: Collects skip reasons and carries the cancel signal

    Returns:
        Records in row order

    Raises:
        MissingRequiredField: before any row is read, if required columns are absent
    """
    validate_transaction_columns(mapping)
    context = context or ParsingContext()

    date_index = mapping.index_of(ColumnRole.DATE)
    desc_index = mapping.index_of(ColumnRole.DESCRIPTION)
    category_index = mapping.index_of(ColumnRole.CATEGORY)

    transactions: List[NormalizedTransactionRecord] = []
    total = len(rows)
    for i, row in enumerate(rows, 1):
        context.checkpoint(i, total)
        try:
            txn_date = parse_date(_cell(row, date_index) or '', mapping.date_format)
        except MalformedDate as e:
            context.warn(f"Row {i}: skipped, {e}")
            continue
        try:
            amount = derive_amount(row, mapping)
        except MalformedNumber as e:
            context.warn(f"Row {i}: skipped, no amount could be derived ({e})")
            continue

        transactions.append(NormalizedTransactionRecord(
            date=txn_date,
            description=(_cell(row, desc_index) or '').strip(),
            amount=amount,
            category=_optional_text(row, category_index),
        ))

    logger.info(f"Parsed {len(transactions)} of {total} delimited rows as transactions")
    return transactions


def parse_csv_holdings(rows: List[List[str]], mapping: ColumnMapping,
                       context: Optional[ParsingContext] = None) -> List[NormalizedHoldingRecord]:
    """
    Extract holding records from tokenized rows. Price defaults to 0 and
    cost basis stays None when its column is missing or unparsable.

    Raises:
        MissingRequiredField: before any row is read, if symbol or quantity is absent
    """
    validate_holding_columns(mapping)
    context = context or ParsingContext()

    symbol_index = mapping.index_of(ColumnRole.SYMBOL)
    quantity_index = mapping.index_of(ColumnRole.QUANTITY)
    price_index = mapping.index_of(ColumnRole.PRICE)
    cost_index = mapping.index_of(ColumnRole.COST_BASIS)
    name_index = mapping.index_of(ColumnRole.NAME)
    asset_type_index = mapping.index_of(ColumnRole.ASSET_TYPE)

    holdings: List[NormalizedHoldingRecord] = []
    total = len(rows)
    for i, row in enumerate(rows, 1):
        context.checkpoint(i, total)
        symbol = (_cell(row, symbol_index) or '').strip()
        if not symbol:
            context.warn(f"Row {i}: skipped, missing symbol")
            continue
        try:
            quantity = parse_amount(_cell(row, quantity_index))
        except MalformedNumber as e:
            context.warn(f"Row {i}: skipped, {e}")
            continue

        holdings.append(NormalizedHoldingRecord(
            symbol=symbol,
            quantity=quantity,
            price=parse_optional_amount(_cell(row, price_index)) or Decimal(0),
            name=_optional_text(row, name_index),
            cost_basis=parse_optional_amount(_cell(row, cost_index)),
            asset_type=_optional_text(row, asset_type_index),
        ))

    logger.info(f"Parsed {len(holdings)} of {total} delimited rows as holdings")
    return holdings


def parse_csv_content(text: str, delimiter: str = ',', context: Optional[ParsingContext] = None,
                      data_type_hint: Optional[DataType] = None,
                      sample_size: int = DEFAULT_SAMPLE_SIZE,
                      probe_count: int = DEFAULT_PROBE_COUNT,
                      threshold: int = DEFAULT_MATCH_THRESHOLD) -> CsvParseResult:
    """
    Tokenize, detect the schema, resolve the date format and extract records.

    Holdings-classified files go through the holdings extractor; everything
    else goes through the transaction extractor, whose column checks fail
    the file when the header carries no transaction schema either.
    """
    headers, rows = tokenize(text, delimiter)
    mapping = detect_column_mapping(headers, delimiter, data_type_hint)
    mapping = resolve_mapping_date_format(rows, mapping, sample_size, probe_count, threshold)
    result = CsvParseResult(mapping=mapping, row_count=len(rows))

    if mapping.data_type == DataType.HOLDINGS:
        result.holdings = parse_csv_holdings(rows, mapping, context)
    else:
        result.transactions = parse_csv_transactions(rows, mapping, context)
    return result
