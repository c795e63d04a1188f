"""
Import orchestration: turns the raw bytes of one statement export into
accounts, transactions and holdings.

A call moves through

    idle -> reading -> parsing -> materializing -> saving -> complete

or to `failed` from any of those states. File-level errors (unsupported
extension, undecodable bytes, empty input, missing required columns, an
unresolvable target account, a failed commit, cancellation) end the call with
no partial result. Rows that cannot be turned into records are dropped and
reported as warnings on the ImportResult.
"""
import logging
import logging.config
import os
import threading
import uuid
from typing import Callable, List, Optional, Union

from pydantic import ValidationError

from wealth_import.models.account import Account, AccountType
from wealth_import.models.holding import Holding
from wealth_import.models.import_job import ImportProgress, ImportResult, ImportStatus
from wealth_import.models.money import Currency, to_currency
from wealth_import.models.records import NormalizedHoldingRecord, NormalizedTransactionRecord
from wealth_import.models.transaction import Transaction, TransactionCategory
from wealth_import.models.transaction_file import FileFormat
from wealth_import.services.import_config import ImportConfig
from wealth_import.services.import_repository import ImportRepository
from wealth_import.utils.category_utils import categorize_label, map_asset_type
from wealth_import.utils.csv_parser import parse_csv_content
from wealth_import.utils.file_analyzer import decode_content, detect_format_from_extension, file_stem
from wealth_import.utils.import_errors import ImportFailure, PersistenceCommitFailed, TargetContainerUnresolvable
from wealth_import.utils.ofx_parser import OfxDocument, OfxStatement, map_ofx_transaction_category, parse_ofx_content
from wealth_import.utils.parsing_context import ParsingContext
from wealth_import.utils.qif_parser import parse_qif_content
from wealth_import.utils.warnings_collector import WarningsCollector

# Configure logging
log_conf = os.environ.get('LOGGING_CONFIG')
if log_conf:
    logging.config.fileConfig(log_conf)
else:
    logging.basicConfig(
        level=os.environ.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ImportProgress], None]
CompletionCallback = Callable[[ImportResult], None]

NO_RECORDS_WARNING = "No importable records were found in the file"
MAX_DESCRIPTION_LENGTH = 1000
MAX_RAW_CATEGORY_LENGTH = 255
MAX_INSTITUTION_LENGTH = 100

# Fraction ranges for the phases that report incremental progress
PARSE_START, PARSE_END = 0.1, 0.5
MATERIALIZE_START, MATERIALIZE_END = 0.5, 0.9
SAVE_FRACTION = 0.95


class ProgressTracker:
    """
    Tracks the state of one import call and forwards every change to the
    caller's callback. The reported fraction never decreases.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.status = ImportStatus.IDLE
        self.fraction = 0.0
        self.message = ""

    def update(self, status: ImportStatus, fraction: float, message: str = "") -> None:
        if status != self.status:
            logger.info(f"Import state {self.status.value} -> {status.value}")
        self.status = status
        self.fraction = min(1.0, max(self.fraction, fraction))
        self.message = message
        if self.callback is not None:
            self.callback(ImportProgress(status=self.status, fraction=self.fraction, message=self.message))

    def advance(self, status: ImportStatus, start: float, end: float, index: int, total: int, message: str = "") -> None:
        """Report `index` of `total` within the fraction range [start, end]."""
        share = index / total if total else 1.0
        self.update(status, start + (end - start) * share, message)

    def fail(self, message: str) -> None:
        self.update(ImportStatus.FAILED, self.fraction, message)


class FileImportService:
    """
    Imports CSV, OFX/QFX and QIF files into an ImportRepository.

    The service holds only its repository and configuration; every call
    builds its own parsing context and progress tracker, so independent calls
    share no mutable parsing state.
    """

    def __init__(self, repository: ImportRepository, config: Optional[ImportConfig] = None):
        self.repository = repository
        self.config = config or ImportConfig()

    def import_file(self, path: str,
                    target_account: Optional[Union[Account, uuid.UUID, str]] = None,
                    cancel_event: Optional[threading.Event] = None,
                    on_progress: Optional[ProgressCallback] = None,
                    on_complete: Optional[CompletionCallback] = None) -> ImportResult:
        """
        Read the file at `path` and import it. The file handle is closed
        before parsing starts, whatever the outcome.
        """
        with open(path, 'rb') as f:
            content = f.read()
        return self.import_bytes(
            content,
            os.path.basename(path),
            target_account=target_account,
            cancel_event=cancel_event,
            on_progress=on_progress,
            on_complete=on_complete,
        )

    def import_bytes(self, content: bytes, file_name: str,
                     target_account: Optional[Union[Account, uuid.UUID, str]] = None,
                     cancel_event: Optional[threading.Event] = None,
                     on_progress: Optional[ProgressCallback] = None,
                     on_complete: Optional[CompletionCallback] = None) -> ImportResult:
        """
        Import one file's content.

        Args:
            content: Raw file bytes
            file_name: Name of the file; its extension selects the format and
                its stem names a synthesized account
            target_account: Account (or account id) to attach every record to.
                When omitted, accounts are created from the file.
            cancel_event: Checked between rows; when set the call raises
                ImportCanceled and nothing is committed
            on_progress: Receives an ImportProgress on every state change and
                at row checkpoints
            on_complete: Receives the ImportResult after a successful commit

        Returns:
            ImportResult with counts and warnings for dropped rows

        Raises:
            ImportFailure: any file-level error; the call ends in FAILED
        """
        tracker = ProgressTracker(on_progress)
        context = ParsingContext(
            warnings=WarningsCollector(self.config.max_warnings),
            cancel_event=cancel_event,
            progress_interval=self.config.progress_interval,
        )
        context.on_progress = lambda index, total: tracker.advance(
            ImportStatus.PARSING, PARSE_START, PARSE_END, index, total, "Parsing..."
        )

        try:
            tracker.update(ImportStatus.READING, 0.0, f"Reading {file_name}...")
            file_format = detect_format_from_extension(file_name)
            text, encoding = decode_content(content, self.config.fallback_encoding)
            logger.info(f"Decoded {file_name} as {encoding}, format {file_format.value}")
            target = self._resolve_target(target_account)
            context.check_canceled()

            tracker.update(ImportStatus.PARSING, PARSE_START, f"Parsing {file_format.value.upper()}...")
            result = ImportResult()
            if file_format == FileFormat.CSV:
                self._import_csv(text, file_name, target, context, tracker, result)
            elif file_format.is_markup:
                self._import_ofx(text, target, context, tracker, result)
            else:
                self._import_qif(text, file_name, target, context, tracker, result)

            if result.records_imported == 0 and result.containers_created == 0:
                context.warn(NO_RECORDS_WARNING)
            else:
                context.check_canceled()
                tracker.update(ImportStatus.SAVING, SAVE_FRACTION, "Saving...")
                try:
                    self.repository.commit()
                except Exception as e:
                    raise PersistenceCommitFailed(e)

            result.warnings = context.warnings.to_list()
            tracker.update(ImportStatus.COMPLETE, 1.0, "Import complete")
        except ImportFailure as e:
            logger.error(f"Import of {file_name} failed: {str(e)}")
            self.repository.rollback()
            tracker.fail(str(e))
            raise
        except Exception as e:
            logger.error(f"Unexpected error importing {file_name}: {str(e)}")
            self.repository.rollback()
            tracker.fail(str(e))
            raise

        logger.info(
            f"Imported {file_name}: {result.containers_created} account(s), "
            f"{result.transactions_imported} transaction(s), {result.holdings_imported} holding(s), "
            f"{len(result.warnings)} warning(s)"
        )
        if on_complete is not None:
            on_complete(result)
        return result

    # -------------------------------------------------------------------------
    # Target accounts
    # -------------------------------------------------------------------------

    def _resolve_target(self, target: Optional[Union[Account, uuid.UUID, str]]) -> Optional[Account]:
        if target is None or isinstance(target, Account):
            return target
        try:
            account_id = target if isinstance(target, uuid.UUID) else uuid.UUID(str(target))
        except ValueError:
            raise TargetContainerUnresolvable(target)
        account = self.repository.get_account(account_id)
        if account is None:
            raise TargetContainerUnresolvable(account_id)
        return account

    def _default_currency(self) -> Currency:
        return to_currency(self.config.default_currency) or Currency.USD

    def _new_account(self, name: str, account_type: AccountType, institution: str, **kwargs) -> Account:
        account = Account(
            account_name=name,
            account_type=account_type,
            institution=institution[:MAX_INSTITUTION_LENGTH],
            is_manual=True,
            **kwargs,
        )
        self.repository.add_account(account)
        logger.info(f"Created account '{account.account_name}' ({account.account_type.value})")
        return account

    def _target_or_new(self, target: Optional[Account], file_name: str, account_type: AccountType,
                       result: ImportResult) -> Account:
        if target is not None:
            return target
        result.containers_created += 1
        return self._new_account(
            file_stem(file_name) or file_name,
            account_type,
            self.config.default_institution,
            currency=self._default_currency(),
        )

    # -------------------------------------------------------------------------
    # Per-format flows
    # -------------------------------------------------------------------------

    def _import_csv(self, text: str, file_name: str, target: Optional[Account], context: ParsingContext,
                    tracker: ProgressTracker, result: ImportResult) -> None:
        parsed = parse_csv_content(
            text,
            delimiter=self.config.delimiter,
            context=context,
            sample_size=self.config.date_sample_size,
            probe_count=self.config.date_probe_count,
            threshold=self.config.date_match_threshold,
        )
        tracker.update(ImportStatus.MATERIALIZING, MATERIALIZE_START, "Importing records...")
        if parsed.holdings:
            account = self._target_or_new(target, file_name, AccountType.INVESTMENT, result)
            result.holdings_imported = self._materialize_holdings(parsed.holdings, account, context, tracker)
        elif parsed.transactions:
            account = self._target_or_new(target, file_name, AccountType.CHECKING, result)
            result.transactions_imported = self._materialize_transactions(
                parsed.transactions, account, context, tracker, categorize_label
            )

    def _import_qif(self, text: str, file_name: str, target: Optional[Account], context: ParsingContext,
                    tracker: ProgressTracker, result: ImportResult) -> None:
        parsed = parse_qif_content(text, context, unknown_payee=self.config.unknown_payee)
        tracker.update(ImportStatus.MATERIALIZING, MATERIALIZE_START, "Importing records...")
        if parsed.transactions:
            account = self._target_or_new(target, file_name, parsed.account_type or AccountType.CHECKING, result)
            result.transactions_imported = self._materialize_transactions(
                parsed.transactions, account, context, tracker, categorize_label
            )

    def _import_ofx(self, text: str, target: Optional[Account], context: ParsingContext,
                    tracker: ProgressTracker, result: ImportResult) -> None:
        document = parse_ofx_content(text, context)
        tracker.update(ImportStatus.MATERIALIZING, MATERIALIZE_START, "Importing records...")
        if target is not None and not (document.transaction_count or document.holding_count):
            return

        for statement in document.statements:
            if target is not None:
                account = target
            else:
                account = self._account_for_statement(document, statement)
                result.containers_created += 1
            result.transactions_imported += self._materialize_transactions(
                statement.transactions, account, context, tracker, map_ofx_transaction_category
            )
            result.holdings_imported += self._materialize_holdings(statement.holdings, account, context, tracker)

    def _account_for_statement(self, document: OfxDocument, statement: OfxStatement) -> Account:
        suffix = statement.account_id[-4:]
        name = f"Account {suffix}" if suffix else "Account"
        return self._new_account(
            name,
            statement.account_type,
            document.organization or statement.institution_id or "Unknown",
            balance=statement.balance if statement.balance is not None else 0,
            currency=to_currency(statement.currency) or self._default_currency(),
        )

    # -------------------------------------------------------------------------
    # Materialization
    # -------------------------------------------------------------------------

    def _materialize_transactions(self, records: List[NormalizedTransactionRecord], account: Account,
                                  context: ParsingContext, tracker: ProgressTracker,
                                  categorize: Callable[[Optional[str]], TransactionCategory]) -> int:
        total = len(records)
        imported = 0
        for i, record in enumerate(records, 1):
            context.check_canceled()
            raw_category = record.category[:MAX_RAW_CATEGORY_LENGTH] if record.category else None
            try:
                transaction = Transaction(
                    account_id=account.account_id,
                    date=record.date,
                    description=record.description[:MAX_DESCRIPTION_LENGTH],
                    amount=record.amount,
                    category=categorize(record.category),
                    raw_category=raw_category,
                    fit_id=record.fit_id,
                    import_order=imported + 1,
                )
            except ValidationError as e:
                context.warn(f"Transaction {i}: skipped, {_validation_reason(e)}")
                continue
            self.repository.add_transaction(transaction)
            imported += 1
            if i % self.config.progress_interval == 0:
                tracker.advance(ImportStatus.MATERIALIZING, MATERIALIZE_START, MATERIALIZE_END, i, total,
                                f"Imported {imported} of {total} transactions")
        return imported

    def _materialize_holdings(self, records: List[NormalizedHoldingRecord], account: Account,
                              context: ParsingContext, tracker: ProgressTracker) -> int:
        total = len(records)
        imported = 0
        for i, record in enumerate(records, 1):
            context.check_canceled()
            cost_basis = record.effective_cost_basis
            try:
                holding = Holding(
                    account_id=account.account_id,
                    symbol=record.symbol,
                    name=(record.name or record.symbol)[:255],
                    quantity=record.quantity,
                    cost_basis=cost_basis,
                    current_price=record.price if record.price > 0 else cost_basis,
                    asset_type=map_asset_type(record.asset_type),
                )
            except ValidationError as e:
                context.warn(f"Holding {i}: skipped, {_validation_reason(e)}")
                continue
            self.repository.add_holding(holding)
            imported += 1
            if i % self.config.progress_interval == 0:
                tracker.advance(ImportStatus.MATERIALIZING, MATERIALIZE_START, MATERIALIZE_END, i, total,
                                f"Imported {imported} of {total} holdings")
        return imported


def _validation_reason(error: ValidationError) -> str:
    """First field error of a model validation failure, as 'field: message'."""
    first = error.errors()[0]
    location = '.'.join(str(part) for part in first['loc'])
    return f"{location}: {first['msg']}" if location else first['msg']
