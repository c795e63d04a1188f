"""
QIF (Quicken Interchange Format) line-protocol extractor.

Each line starts with a one-character field code; a `^` line ends the
record. Only the fields needed for a transaction are read:

    D  date          T / U  amount
    P  payee         L      category
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from wealth_import.models.account import AccountType
from wealth_import.models.records import NormalizedTransactionRecord
from wealth_import.utils.amount_utils import parse_amount
from wealth_import.utils.csv_tokenizer import split_lines
from wealth_import.utils.import_errors import EmptyInput, MalformedDate, MalformedNumber
from wealth_import.utils.parsing_context import ParsingContext

logger = logging.getLogger(__name__)

RECORD_TERMINATOR = '^'
DEFAULT_PAYEE = "Unknown"

QIF_DATE_FORMATS = [
    "%m/%d/%Y",
    "%m/%d/%y",
    "%Y-%m-%d",
]

# `!Type:` header value -> account type of a synthesized container
QIF_ACCOUNT_TYPES: Dict[str, AccountType] = {
    "bank": AccountType.CHECKING,
    "ccard": AccountType.CREDIT_CARD,
    "invst": AccountType.INVESTMENT,
    "cash": AccountType.OTHER,
    "oth a": AccountType.OTHER,
    "oth l": AccountType.OTHER,
}


@dataclass
class QifParseResult:
    """Records from one QIF file plus the account type named by its header"""
    transactions: List[NormalizedTransactionRecord] = field(default_factory=list)
    account_type: Optional[AccountType] = None


def parse_qif_date(raw: str) -> date:
    """
    Parse a QIF date. The Quicken shorthand `1/15'24` is read as `1/15/2024`
    and embedded spaces (`1/ 5/24`) are dropped before trying the formats.

    Raises:
        MalformedDate: if no format parses the value
    """
    cleaned = raw.replace("'", "/20").replace(' ', '')
    for fmt in QIF_DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    raise MalformedDate(raw)


def map_qif_account_type(header: str) -> AccountType:
    """Map a `!Type:` header line to an AccountType, defaulting to CHECKING."""
    value = header.split(':', 1)[1] if ':' in header else ''
    return QIF_ACCOUNT_TYPES.get(value.strip().lower(), AccountType.CHECKING)


def parse_qif_content(text: str, context: Optional[ParsingContext] = None,
                      unknown_payee: str = DEFAULT_PAYEE) -> QifParseResult:
    """
    Extract transaction records from QIF text.

    A record is emitted at its terminator only when both a date and an
    amount parsed; otherwise it is dropped with a warning. Unknown field
    codes are ignored. A record with no terminator at end of file is dropped.

    Raises:
        EmptyInput: if the text holds no non-blank lines
    """
    context = context or ParsingContext()
    lines = split_lines(text)
    if not lines:
        raise EmptyInput()

    result = QifParseResult()
    current: Dict[str, str] = {}
    record_index = 0
    total = sum(1 for line in lines if line == RECORD_TERMINATOR)

    for line in lines:
        if line.startswith('!'):
            if line.lower().startswith('!type:') and result.account_type is None:
                result.account_type = map_qif_account_type(line)
            continue

        code, value = line[0], line[1:].strip()
        if code != RECORD_TERMINATOR:
            current[code] = value
            continue

        record_index += 1
        context.checkpoint(record_index, total)
        record = _build_record(current, record_index, context, unknown_payee)
        if record is not None:
            result.transactions.append(record)
        current = {}

    if current:
        context.warn(f"Record {record_index + 1}: skipped, no record terminator before end of file")

    logger.info(f"Parsed {len(result.transactions)} of {record_index} QIF records")
    return result


def _build_record(fields: Dict[str, str], index: int, context: ParsingContext,
                  unknown_payee: str) -> Optional[NormalizedTransactionRecord]:
    raw_date = fields.get('D')
    raw_amount = fields.get('T', fields.get('U'))
    if raw_date is None or raw_amount is None:
        missing = "date" if raw_date is None else "amount"
        context.warn(f"Record {index}: skipped, {missing} missing")
        return None

    try:
        txn_date = parse_qif_date(raw_date)
        amount = parse_amount(raw_amount)
    except (MalformedDate, MalformedNumber) as e:
        context.warn(f"Record {index}: skipped, {e}")
        return None

    return NormalizedTransactionRecord(
        date=txn_date,
        description=fields.get('P') or unknown_payee,
        amount=amount,
        category=fields.get('L') or None,
    )
