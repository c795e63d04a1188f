"""
OFX/QFX markup normalizer and extractor.

OFX 1.x files are SGML tag soup: leaf elements are written as `<TAG>value`
with no closing tag. Parsing happens in three steps:

1. `normalize_ofx` drops the non-markup header block and rewrites every
   unclosed `<TAG>value` leaf into `<TAG>value</TAG>`.
2. `build_element_tree` tokenizes the result in a single pass and builds an
   element tree with a tag stack. Unclosed leaves are closed implicitly and
   stray close tags are ignored, so same-named blocks nest or sit side by
   side without ambiguity.
3. The extract functions walk the tree for bank, credit card and investment
   statements and read leaf values by exact tag name.
"""
import html
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Tuple

from wealth_import.models.account import AccountType
from wealth_import.models.holding import AssetType
from wealth_import.models.records import NormalizedHoldingRecord, NormalizedTransactionRecord
from wealth_import.models.transaction import TransactionCategory
from wealth_import.utils.amount_utils import parse_amount
from wealth_import.utils.import_errors import EmptyInput, MalformedDate, MalformedNumber, MissingRequiredField, RowError
from wealth_import.utils.parsing_context import ParsingContext

logger = logging.getLogger(__name__)

ROOT_PATTERN = re.compile(r'<OFX(?:\s[^>]*)?>', re.IGNORECASE)
LEAF_PATTERN = re.compile(r'<([A-Za-z0-9._]+)>([^<\r\n]*)')
TOKEN_PATTERN = re.compile(r'<!--.*?-->|<[?!][^>]*>|<(/?)([A-Za-z0-9._]+)[^>]*?(/?)>', re.DOTALL)

BANK_STATEMENT = "STMTRS"
CREDIT_CARD_STATEMENT = "CCSTMTRS"
INVESTMENT_STATEMENT = "INVSTMTRS"

OFX_ACCOUNT_TYPES: Dict[str, AccountType] = {
    "CHECKING": AccountType.CHECKING,
    "SAVINGS": AccountType.SAVINGS,
    "CREDITCARD": AccountType.CREDIT_CARD,
    "CREDITLINE": AccountType.CREDIT_CARD,
    "INVESTMENT": AccountType.INVESTMENT,
    "MONEYMRKT": AccountType.SAVINGS,
    "CD": AccountType.SAVINGS,
}

OFX_TRANSACTION_CATEGORIES: Dict[str, TransactionCategory] = {
    "CREDIT": TransactionCategory.INCOME,
    "DEP": TransactionCategory.INCOME,
    "DIRECTDEP": TransactionCategory.INCOME,
    "INT": TransactionCategory.INVESTMENT,
    "DIV": TransactionCategory.INVESTMENT,
    "XFER": TransactionCategory.TRANSFER,
    "ATM": TransactionCategory.OTHER,
    "CASH": TransactionCategory.OTHER,
    "CHECK": TransactionCategory.OTHER,
    "PAYMENT": TransactionCategory.SHOPPING,
    "DEBIT": TransactionCategory.SHOPPING,
    "POS": TransactionCategory.SHOPPING,
    "FEE": TransactionCategory.OTHER,
    "SRVCHG": TransactionCategory.OTHER,
}

# Position aggregate -> asset type, in the order they are reported
OFX_POSITION_TYPES: Dict[str, AssetType] = {
    "POSSTOCK": AssetType.STOCK,
    "POSMF": AssetType.MUTUAL_FUND,
    "POSDEBT": AssetType.BOND,
    "POSOPT": AssetType.OPTION,
    "POSOTHER": AssetType.OTHER,
}


def map_ofx_account_type(code: Optional[str]) -> AccountType:
    """Map an OFX ACCTTYPE code to an AccountType, defaulting to OTHER."""
    return OFX_ACCOUNT_TYPES.get((code or '').strip().upper(), AccountType.OTHER)


def map_ofx_transaction_category(code: Optional[str]) -> TransactionCategory:
    """Map an OFX TRNTYPE code to a TransactionCategory, defaulting to OTHER."""
    return OFX_TRANSACTION_CATEGORIES.get((code or '').strip().upper(), TransactionCategory.OTHER)


# =============================================================================
# NORMALIZATION
# =============================================================================

def strip_ofx_header(text: str) -> str:
    """
    Start the document at its first <OFX> root marker. The preceding block is
    dropped unless it is an XML declaration (OFX 2.x), which is kept.
    """
    match = ROOT_PATTERN.search(text)
    if not match:
        return text
    header = text[:match.start()]
    if '<?xml' in header.lower():
        return text
    return text[match.start():]


def close_leaf_tags(text: str) -> str:
    """Rewrite every `<TAG>value` without a matching `</TAG>` as `<TAG>value</TAG>`."""

    def _close(match: 're.Match[str]') -> str:
        tag, value = match.group(1), match.group(2)
        if not value.strip():
            return match.group(0)
        following = match.string[match.end():match.end() + len(tag) + 3]
        if following.upper() == f"</{tag.upper()}>":
            return match.group(0)
        return f"<{tag}>{value.strip()}</{tag}>"

    return LEAF_PATTERN.sub(_close, text)


def normalize_ofx(text: str) -> str:
    """Repair OFX tag soup into explicitly closed markup."""
    return close_leaf_tags(strip_ofx_header(text))


# =============================================================================
# ELEMENT TREE
# =============================================================================

@dataclass
class OfxElement:
    """A node of the parsed markup tree. Tags are stored upper-case."""
    tag: str
    text: str = ""
    children: List['OfxElement'] = field(default_factory=list)

    def iter(self) -> Iterator['OfxElement']:
        """Depth-first walk over descendants in document order."""
        for child in self.children:
            yield child
            yield from child.iter()

    def find(self, tag: str) -> Optional['OfxElement']:
        tag = tag.upper()
        return next((element for element in self.iter() if element.tag == tag), None)

    def find_all(self, *tags: str) -> List['OfxElement']:
        """
        Outermost descendants whose tag is one of `tags`, in document order.
        Matches nested inside another match are not returned separately.
        """
        wanted = {tag.upper() for tag in tags}
        found: List[OfxElement] = []

        def _walk(element: 'OfxElement') -> None:
            for child in element.children:
                if child.tag in wanted:
                    found.append(child)
                else:
                    _walk(child)

        _walk(self)
        return found

    def child_text(self, tag: str) -> Optional[str]:
        """Text of the first descendant leaf named `tag`, or None when absent or blank."""
        element = self.find(tag)
        if element is None:
            return None
        value = html.unescape(element.text).strip()
        return value or None


def build_element_tree(text: str) -> OfxElement:
    """
    Build an element tree from markup in one pass over the tags.

    A start tag arriving while the current element already holds text and no
    children closes that element first (an unclosed SGML leaf). A close tag
    pops back to the nearest open element of the same name; one with no open
    match is ignored.
    """
    document = OfxElement("#document")
    stack: List[OfxElement] = [document]
    position = 0

    def _append_text(chunk: str) -> None:
        if chunk.strip() and len(stack) > 1:
            current = stack[-1]
            current.text = (current.text + chunk).strip() if current.text else chunk.strip()

    for match in TOKEN_PATTERN.finditer(text):
        _append_text(text[position:match.start()])
        position = match.end()

        name = match.group(2)
        if name is None:
            continue  # comment, declaration or processing instruction
        tag = name.upper()

        if match.group(1):
            for depth in range(len(stack) - 1, 0, -1):
                if stack[depth].tag == tag:
                    del stack[depth:]
                    break
            continue

        current = stack[-1]
        if len(stack) > 1 and current.text and not current.children:
            stack.pop()
        element = OfxElement(tag)
        stack[-1].children.append(element)
        if not match.group(3):
            stack.append(element)

    _append_text(text[position:])
    return document


# =============================================================================
# EXTRACTION
# =============================================================================

@dataclass
class OfxStatement:
    """One statement block: account identity plus its leaf records."""
    account_id: str
    account_type_code: str
    account_type: AccountType
    institution_id: Optional[str] = None
    branch_id: Optional[str] = None
    currency: Optional[str] = None
    balance: Optional[Decimal] = None
    balance_date: Optional[date] = None
    transactions: List[NormalizedTransactionRecord] = field(default_factory=list)
    holdings: List[NormalizedHoldingRecord] = field(default_factory=list)


@dataclass
class OfxDocument:
    """Everything extracted from one OFX file."""
    organization: Optional[str] = None
    statements: List[OfxStatement] = field(default_factory=list)

    @property
    def transaction_count(self) -> int:
        return sum(len(s.transactions) for s in self.statements)

    @property
    def holding_count(self) -> int:
        return sum(len(s.holdings) for s in self.statements)


def parse_ofx_date(raw: Optional[str]) -> date:
    """
    Parse an OFX date (`yyyyMMdd` or `yyyyMMddHHmmss`), ignoring anything past
    14 characters such as fractional seconds or a `[-5:EST]` zone suffix.

    Raises:
        MalformedDate: if neither form parses
    """
    value = (raw or '').strip()[:14]
    for candidate, pattern in ((value, "%Y%m%d%H%M%S"), (value[:8], "%Y%m%d")):
        try:
            return datetime.strptime(candidate, pattern).date()
        except ValueError:
            continue
    raise MalformedDate(raw or '')


def _required_amount(element: OfxElement, tag: str) -> Decimal:
    raw = element.child_text(tag)
    if raw is None:
        raise MalformedNumber(f"{tag} missing")
    return parse_amount(raw)


def parse_ofx_transaction(element: OfxElement, index: int) -> Optional[NormalizedTransactionRecord]:
    """
    Build a record from a STMTTRN block.

    Returns None when the block has no TRNTYPE.

    Raises:
        RowError: when DTPOSTED or TRNAMT is missing or malformed
    """
    trn_type = element.child_text("TRNTYPE")
    if trn_type is None:
        return None

    try:
        posted = parse_ofx_date(element.child_text("DTPOSTED"))
        amount = _required_amount(element, "TRNAMT")
    except (MalformedDate, MalformedNumber) as e:
        raise RowError(index, str(e))

    parts = [part for part in (element.child_text("NAME"), element.child_text("MEMO")) if part]
    description = " - ".join(parts) if parts else trn_type

    return NormalizedTransactionRecord(
        date=posted,
        description=description,
        amount=amount,
        category=trn_type.upper(),
        fit_id=element.child_text("FITID"),
    )


def parse_security_list(document: OfxElement) -> Dict[str, Tuple[Optional[str], Optional[str]]]:
    """Map security UNIQUEID to (TICKER, SECNAME) from SECLIST, when present."""
    securities: Dict[str, Tuple[Optional[str], Optional[str]]] = {}
    seclist = document.find("SECLIST")
    if seclist is None:
        return securities
    for info in seclist.find_all("SECINFO"):
        unique_id = info.child_text("UNIQUEID")
        if unique_id:
            securities[unique_id] = (info.child_text("TICKER"), info.child_text("SECNAME"))
    return securities


def parse_ofx_position(element: OfxElement, index: int,
                       securities: Dict[str, Tuple[Optional[str], Optional[str]]]) -> NormalizedHoldingRecord:
    """
    Build a holding record from a POSSTOCK/POSMF/POSDEBT/POSOPT/POSOTHER block.

    Raises:
        RowError: when INVPOS or its security id is missing, or UNITS,
            UNITPRICE or MKTVAL is missing or malformed
    """
    invpos = element.find("INVPOS")
    if invpos is None:
        raise RowError(index, "INVPOS missing")
    secid = invpos.find("SECID")
    unique_id = secid.child_text("UNIQUEID") if secid is not None else None
    if not unique_id:
        raise RowError(index, "security id missing")

    try:
        units = _required_amount(invpos, "UNITS")
        unit_price = _required_amount(invpos, "UNITPRICE")
        _required_amount(invpos, "MKTVAL")
    except MalformedNumber as e:
        raise RowError(index, str(e))

    ticker, name = securities.get(unique_id, (None, None))
    return NormalizedHoldingRecord(
        symbol=ticker or unique_id,
        quantity=units,
        price=unit_price,
        name=name,
        asset_type=OFX_POSITION_TYPES.get(element.tag, AssetType.OTHER).value,
    )


def _read_ledger_balance(block: OfxElement, context: ParsingContext) -> Tuple[Optional[Decimal], Optional[date]]:
    ledger = block.find("LEDGERBAL")
    if ledger is None:
        return None, None
    balance: Optional[Decimal] = None
    as_of: Optional[date] = None
    raw_amount = ledger.child_text("BALAMT")
    if raw_amount is not None:
        try:
            balance = parse_amount(raw_amount)
        except MalformedNumber as e:
            context.warn(f"Ledger balance ignored: {e}")
    raw_date = ledger.child_text("DTASOF")
    if raw_date is not None:
        try:
            as_of = parse_ofx_date(raw_date)
        except MalformedDate:
            as_of = None
    return balance, as_of


def _collect_transactions(block: OfxElement, statement: OfxStatement,
                          context: ParsingContext, strict: bool) -> None:
    trn_blocks = block.find_all("STMTTRN")
    total = len(trn_blocks)
    for i, trn in enumerate(trn_blocks, 1):
        context.checkpoint(i, total)
        try:
            record = parse_ofx_transaction(trn, i)
        except RowError as e:
            if strict:
                raise
            context.warn(f"Account {statement.account_id} transaction {i}: skipped, {e.reason}")
            continue
        if record is None:
            context.warn(f"Account {statement.account_id} transaction {i}: skipped, TRNTYPE missing")
            continue
        statement.transactions.append(record)


def _collect_positions(block: OfxElement, statement: OfxStatement, context: ParsingContext,
                       securities: Dict[str, Tuple[Optional[str], Optional[str]]], strict: bool) -> None:
    positions = block.find_all(*OFX_POSITION_TYPES.keys())
    total = len(positions)
    for i, position in enumerate(positions, 1):
        context.checkpoint(i, total)
        try:
            statement.holdings.append(parse_ofx_position(position, i, securities))
        except RowError as e:
            if strict:
                raise
            context.warn(f"Account {statement.account_id} position {i}: skipped, {e.reason}")


def _parse_statement(block: OfxElement, identity_tag: str, default_type: Optional[str],
                     context: ParsingContext, securities: Dict[str, Tuple[Optional[str], Optional[str]]],
                     strict: bool) -> Optional[OfxStatement]:
    identity = block.find(identity_tag)
    if identity is None:
        context.warn(f"{block.tag} block skipped, {identity_tag} missing")
        return None

    type_code = default_type or identity.child_text("ACCTTYPE") or "CHECKING"
    statement = OfxStatement(
        account_id=identity.child_text("ACCTID") or "",
        account_type_code=type_code.upper(),
        account_type=map_ofx_account_type(type_code),
        institution_id=identity.child_text("BANKID") or identity.child_text("BROKERID"),
        branch_id=identity.child_text("BRANCHID"),
        currency=block.child_text("CURDEF"),
    )
    if block.tag != INVESTMENT_STATEMENT:
        statement.balance, statement.balance_date = _read_ledger_balance(block, context)

    _collect_transactions(block, statement, context, strict)
    if block.tag == INVESTMENT_STATEMENT:
        _collect_positions(block, statement, context, securities, strict)
    return statement


def parse_ofx_content(text: str, context: Optional[ParsingContext] = None, strict: bool = False) -> OfxDocument:
    """
    Parse OFX/QFX text into statements with their transactions and positions.

    Bank statements come first, then credit card, then investment, each in
    document order. A statement without an account identity block is
    skipped. Leaf records missing required fields are skipped with a
    warning, or raised as RowError when `strict` is set.

    Raises:
        EmptyInput: if the text is blank
        MissingRequiredField: if the text has no <OFX> root
    """
    if not text.strip():
        raise EmptyInput()
    if not ROOT_PATTERN.search(text):
        raise MissingRequiredField("OFX")

    context = context or ParsingContext()
    tree = build_element_tree(normalize_ofx(text))

    document = OfxDocument()
    signon = tree.find("SIGNONMSGSRSV1")
    fi = signon.find("FI") if signon is not None else None
    if fi is not None:
        document.organization = fi.child_text("ORG")

    securities = parse_security_list(tree)
    shapes = (
        (BANK_STATEMENT, "BANKACCTFROM", None),
        (CREDIT_CARD_STATEMENT, "CCACCTFROM", "CREDITCARD"),
        (INVESTMENT_STATEMENT, "INVACCTFROM", "INVESTMENT"),
    )
    for block_tag, identity_tag, default_type in shapes:
        for block in tree.find_all(block_tag):
            statement = _parse_statement(block, identity_tag, default_type, context, securities, strict)
            if statement is not None:
                document.statements.append(statement)

    logger.info(
        f"Parsed {len(document.statements)} OFX statement(s) with "
        f"{document.transaction_count} transaction(s) and {document.holding_count} position(s)"
    )
    return document
