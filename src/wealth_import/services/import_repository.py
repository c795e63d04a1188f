"""
Persistence collaborator used by the import service.

The import service only attaches records and commits once per file; storage
itself lives behind this interface.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from wealth_import.models.account import Account
from wealth_import.models.holding import Holding
from wealth_import.models.transaction import Transaction

logger = logging.getLogger(__name__)


class ImportRepository(ABC):
    """Writable store for accounts and the records attached to them."""

    @abstractmethod
    def get_account(self, account_id: uuid.UUID) -> Optional[Account]:
        pass

    @abstractmethod
    def add_account(self, account: Account) -> None:
        pass

    @abstractmethod
    def add_transaction(self, transaction: Transaction) -> None:
        pass

    @abstractmethod
    def add_holding(self, holding: Holding) -> None:
        pass

    @abstractmethod
    def commit(self) -> None:
        """Persist everything added since the last commit."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Discard everything added since the last commit."""
        pass


class InMemoryImportRepository(ImportRepository):
    """
    Dict-backed repository. Added objects are staged and only become visible
    through `accounts`, `transactions` and `holdings` after `commit`;
    `rollback` drops them.
    """

    def __init__(self, accounts: Optional[List[Account]] = None):
        self.accounts: Dict[uuid.UUID, Account] = {a.account_id: a for a in accounts or []}
        self.transactions: List[Transaction] = []
        self.holdings: List[Holding] = []
        self.commit_count = 0
        self._pending_accounts: List[Account] = []
        self._pending_transactions: List[Transaction] = []
        self._pending_holdings: List[Holding] = []

    def get_account(self, account_id: uuid.UUID) -> Optional[Account]:
        return self.accounts.get(account_id)

    def add_account(self, account: Account) -> None:
        self._pending_accounts.append(account)

    def add_transaction(self, transaction: Transaction) -> None:
        self._pending_transactions.append(transaction)

    def add_holding(self, holding: Holding) -> None:
        self._pending_holdings.append(holding)

    def commit(self) -> None:
        for account in self._pending_accounts:
            self.accounts[account.account_id] = account
        self.transactions.extend(self._pending_transactions)
        self.holdings.extend(self._pending_holdings)
        logger.info(
            f"Committed {len(self._pending_accounts)} account(s), "
            f"{len(self._pending_transactions)} transaction(s), {len(self._pending_holdings)} holding(s)"
        )
        self._pending_accounts = []
        self._pending_transactions = []
        self._pending_holdings = []
        self.commit_count += 1

    def rollback(self) -> None:
        logger.info(
            f"Discarded {len(self._pending_accounts)} account(s), "
            f"{len(self._pending_transactions)} transaction(s), {len(self._pending_holdings)} holding(s)"
        )
        self._pending_accounts = []
        self._pending_transactions = []
        self._pending_holdings = []

    def transactions_for(self, account_id: uuid.UUID) -> List[Transaction]:
        return [t for t in self.transactions if t.account_id == account_id]

    def holdings_for(self, account_id: uuid.UUID) -> List[Holding]:
        return [h for h in self.holdings if h.account_id == account_id]
