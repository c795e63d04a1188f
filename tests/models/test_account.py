import unittest
import uuid
from decimal import Decimal

from pydantic import ValidationError

from wealth_import.models.account import Account, AccountType
from wealth_import.models.money import Currency, to_currency


class TestAccount(unittest.TestCase):
    def test_defaults(self):
        account = Account(account_name="Everyday")
        self.assertIsInstance(account.account_id, uuid.UUID)
        self.assertEqual(account.account_type, AccountType.CHECKING)
        self.assertEqual(account.balance, Decimal(0))
        self.assertEqual(account.currency, Currency.USD)
        self.assertTrue(account.is_manual)
        self.assertGreater(account.created_at, 0)

    def test_populate_by_alias(self):
        account = Account(accountName="Brokerage", accountType="investment", institution="Vanguard")
        self.assertEqual(account.account_name, "Brokerage")
        self.assertEqual(account.account_type, AccountType.INVESTMENT)

    def test_name_is_trimmed_and_truncated(self):
        account = Account(account_name="  " + "x" * 150 + "  ")
        self.assertEqual(len(account.account_name), 100)

    def test_blank_name_rejected(self):
        with self.assertRaises(ValidationError):
            Account(account_name="   ")

    def test_asset_flag(self):
        self.assertTrue(AccountType.SAVINGS.is_asset)
        self.assertFalse(AccountType.CREDIT_CARD.is_asset)
        self.assertFalse(AccountType.LOAN.is_asset)


class TestCurrency(unittest.TestCase):
    def test_to_currency(self):
        self.assertEqual(to_currency("usd"), Currency.USD)
        self.assertEqual(to_currency(" EUR "), Currency.EUR)
        self.assertIs(to_currency(Currency.GBP), Currency.GBP)
        self.assertIsNone(to_currency("XYZ"))
        self.assertIsNone(to_currency(None))
