"""
Unit tests for the OFX/QFX normalizer and extractor.
"""
import unittest
from datetime import date
from decimal import Decimal

from wealth_import.models.account import AccountType
from wealth_import.models.holding import AssetType
from wealth_import.models.transaction import TransactionCategory
from wealth_import.utils.import_errors import EmptyInput, MalformedDate, MissingRequiredField, RowError
from wealth_import.utils.ofx_parser import (
    build_element_tree,
    close_leaf_tags,
    map_ofx_account_type,
    map_ofx_transaction_category,
    normalize_ofx,
    parse_ofx_content,
    parse_ofx_date,
    parse_ofx_transaction,
    strip_ofx_header,
)
from wealth_import.utils.parsing_context import ParsingContext

SGML_HEADER = """OFXHEADER:100
DATA:OFXSGML
VERSION:102
SECURITY:NONE
ENCODING:USASCII
CHARSET:1252
COMPRESSION:NONE
OLDFILEUID:NONE
NEWFILEUID:NONE

"""

BANK_OFX = SGML_HEADER + """<OFX>
<SIGNONMSGSRSV1>
<SONRS>
<STATUS>
<CODE>0
<SEVERITY>INFO
</STATUS>
<DTSERVER>20240131120000
<LANGUAGE>ENG
<FI>
<ORG>First Bank
<FID>1234
</FI>
</SONRS>
</SIGNONMSGSRSV1>
<BANKMSGSRSV1>
<STMTTRNRS>
<TRNUID>1
<STMTRS>
<CURDEF>EUR
<BANKACCTFROM>
<BANKID>111000025
<ACCTID>000123456789
<ACCTTYPE>SAVINGS
</BANKACCTFROM>
<BANKTRANLIST>
<DTSTART>20240101
<DTEND>20240131
<STMTTRN><TRNTYPE>DEBIT<DTPOSTED>20240105<TRNAMT>-12.34<FITID>1</STMTTRN>
<STMTTRN>
<TRNTYPE>DIRECTDEP
<DTPOSTED>20240115120000.000[-5:EST]
<TRNAMT>1500.00
<FITID>2
<NAME>ACME PAYROLL
<MEMO>Salary &amp; bonus
</STMTTRN>
<STMTTRN>
<TRNTYPE>POS
<DTPOSTED>garbage
<TRNAMT>-1.00
<FITID>3
</STMTTRN>
<STMTTRN>
<DTPOSTED>20240120
<TRNAMT>-5.00
<FITID>4
</STMTTRN>
</BANKTRANLIST>
<LEDGERBAL>
<BALAMT>2487.66
<DTASOF>20240131
</LEDGERBAL>
</STMTRS>
</STMTTRNRS>
</BANKMSGSRSV1>
</OFX>
"""

INVESTMENT_OFX = SGML_HEADER + """<OFX>
<INVSTMTMSGSRSV1>
<INVSTMTTRNRS>
<INVSTMTRS>
<DTASOF>20240131
<CURDEF>USD
<INVACCTFROM>
<BROKERID>broker.example.com
<ACCTID>99887766
</INVACCTFROM>
<INVPOSLIST>
<POSSTOCK>
<INVPOS>
<SECID><UNIQUEID>037833100<UNIQUEIDTYPE>CUSIP</SECID>
<HELDINACCT>CASH
<POSTYPE>LONG
<UNITS>10
<UNITPRICE>190.50
<MKTVAL>1905.00
<DTPRICEASOF>20240131
</INVPOS>
</POSSTOCK>
<POSMF>
<INVPOS>
<SECID><UNIQUEID>922908769<UNIQUEIDTYPE>CUSIP</SECID>
<UNITS>25.5
<UNITPRICE>250.00
<MKTVAL>6375.00
</INVPOS>
</POSMF>
<POSOTHER>
<INVPOS>
<SECID><UNIQUEID>XYZ<UNIQUEIDTYPE>OTHER</SECID>
<UNITS>1
</INVPOS>
</POSOTHER>
</INVPOSLIST>
</INVSTMTRS>
</INVSTMTTRNRS>
</INVSTMTMSGSRSV1>
<SECLISTMSGSRSV1>
<SECLIST>
<STOCKINFO>
<SECINFO>
<SECID><UNIQUEID>037833100<UNIQUEIDTYPE>CUSIP</SECID>
<SECNAME>Apple Inc
<TICKER>AAPL
</SECINFO>
</STOCKINFO>
</SECLIST>
</SECLISTMSGSRSV1>
</OFX>
"""

XML_OFX = """<?xml version="1.0" encoding="UTF-8" standalone="no"?>
<?OFX OFXHEADER="200" VERSION="220" SECURITY="NONE" OLDFILEUID="NONE" NEWFILEUID="NONE"?>
<OFX>
<CREDITCARDMSGSRSV1>
<CCSTMTTRNRS>
<CCSTMTRS>
<CURDEF>USD</CURDEF>
<CCACCTFROM><ACCTID>4111222233334444</ACCTID></CCACCTFROM>
<BANKTRANLIST>
<STMTTRN>
<TRNTYPE>PAYMENT</TRNTYPE>
<DTPOSTED>20240210</DTPOSTED>
<TRNAMT>-42.00</TRNAMT>
<NAME>Grocer</NAME>
</STMTTRN>
</BANKTRANLIST>
</CCSTMTRS>
</CCSTMTTRNRS>
</CREDITCARDMSGSRSV1>
</OFX>
"""


class TestNormalization(unittest.TestCase):
    def test_header_is_stripped(self):
        normalized = strip_ofx_header(BANK_OFX)
        self.assertTrue(normalized.startswith("<OFX>"))

    def test_xml_declaration_is_kept(self):
        self.assertEqual(strip_ofx_header(XML_OFX), XML_OFX)

    def test_text_without_root_is_unchanged(self):
        self.assertEqual(strip_ofx_header("no markup"), "no markup")

    def test_leaves_are_closed(self):
        soup = "<STMTTRN><TRNTYPE>DEBIT<DTPOSTED>20240105<TRNAMT>-12.34<FITID>1</STMTTRN>"
        self.assertEqual(
            close_leaf_tags(soup),
            "<STMTTRN><TRNTYPE>DEBIT</TRNTYPE><DTPOSTED>20240105</DTPOSTED>"
            "<TRNAMT>-12.34</TRNAMT><FITID>1</FITID></STMTTRN>",
        )

    def test_closed_leaves_are_not_closed_twice(self):
        text = "<NAME>Coffee</NAME>\n<MEMO>x</memo>"
        self.assertEqual(close_leaf_tags(text), text)

    def test_blank_values_are_left_alone(self):
        text = "<BANKTRANLIST>   \n<DTSTART>20240101\n"
        self.assertEqual(close_leaf_tags(text), "<BANKTRANLIST>   \n<DTSTART>20240101</DTSTART>\n")

    def test_normalize(self):
        normalized = normalize_ofx(SGML_HEADER + "<OFX>\n<CODE>0\n</OFX>")
        self.assertEqual(normalized, "<OFX>\n<CODE>0</CODE>\n</OFX>")


class TestElementTree(unittest.TestCase):
    def test_unclosed_leaves_close_implicitly(self):
        tree = build_element_tree("<A><B>1<C>2</A>")
        a = tree.find("a")
        self.assertEqual([child.tag for child in a.children], ["B", "C"])
        self.assertEqual(a.child_text("C"), "2")

    def test_stray_close_tags_are_ignored(self):
        tree = build_element_tree("<A></X><B>1</B></A>")
        self.assertEqual(tree.find("A").child_text("B"), "1")

    def test_sibling_blocks_with_same_name(self):
        tree = build_element_tree("<L><T><V>1</V></T><T><V>2</V></T></L>")
        blocks = tree.find_all("T")
        self.assertEqual([b.child_text("V") for b in blocks], ["1", "2"])

    def test_nested_blocks_with_same_name(self):
        tree = build_element_tree("<L><T><V>1</V><T><V>2</V></T></T></L>")
        outer = tree.find_all("T")
        self.assertEqual(len(outer), 1)
        self.assertEqual(outer[0].child_text("V"), "1")

    def test_tags_are_case_insensitive(self):
        tree = build_element_tree("<ofx><Code>0</code></ofx>")
        self.assertEqual(tree.find("OFX").child_text("CODE"), "0")

    def test_comments_and_declarations_are_skipped(self):
        tree = build_element_tree('<?xml version="1.0"?><!-- note --><OFX><A>1</A></OFX>')
        self.assertEqual([child.tag for child in tree.children], ["OFX"])

    def test_self_closing_tag(self):
        tree = build_element_tree("<A><EMPTY/><B>1</B></A>")
        self.assertEqual([c.tag for c in tree.find("A").children], ["EMPTY", "B"])


class TestBankStatement(unittest.TestCase):
    def setUp(self):
        self.context = ParsingContext()
        self.document = parse_ofx_content(BANK_OFX, self.context)

    def test_statement_identity(self):
        self.assertEqual(self.document.organization, "First Bank")
        self.assertEqual(len(self.document.statements), 1)
        statement = self.document.statements[0]
        self.assertEqual(statement.account_id, "000123456789")
        self.assertEqual(statement.account_type, AccountType.SAVINGS)
        self.assertEqual(statement.institution_id, "111000025")
        self.assertEqual(statement.currency, "EUR")
        self.assertEqual(statement.balance, Decimal("2487.66"))
        self.assertEqual(statement.balance_date, date(2024, 1, 31))

    def test_soup_transaction(self):
        first = self.document.statements[0].transactions[0]
        self.assertEqual(first.date, date(2024, 1, 5))
        self.assertEqual(first.amount, Decimal("-12.34"))
        self.assertEqual(first.description, "DEBIT")
        self.assertEqual(first.category, "DEBIT")
        self.assertEqual(first.fit_id, "1")

    def test_name_and_memo_description(self):
        second = self.document.statements[0].transactions[1]
        self.assertEqual(second.description, "ACME PAYROLL - Salary & bonus")
        self.assertEqual(second.date, date(2024, 1, 15))

    def test_bad_leaves_become_warnings(self):
        self.assertEqual(len(self.document.statements[0].transactions), 2)
        warnings = self.context.warnings.to_list()
        self.assertEqual(len(warnings), 2)
        self.assertIn("transaction 3", warnings[0])
        self.assertIn("TRNTYPE missing", warnings[1])

    def test_strict_mode_raises(self):
        with self.assertRaises(RowError) as ctx:
            parse_ofx_content(BANK_OFX, strict=True)
        self.assertEqual(ctx.exception.index, 3)


class TestOtherStatements(unittest.TestCase):
    def test_investment_positions(self):
        context = ParsingContext()
        document = parse_ofx_content(INVESTMENT_OFX, context)
        statement = document.statements[0]

        self.assertEqual(statement.account_type, AccountType.INVESTMENT)
        self.assertEqual(statement.institution_id, "broker.example.com")
        self.assertIsNone(statement.balance)

        apple, fund = statement.holdings
        self.assertEqual(apple.symbol, "AAPL")
        self.assertEqual(apple.name, "Apple Inc")
        self.assertEqual(apple.quantity, Decimal("10"))
        self.assertEqual(apple.price, Decimal("190.50"))
        self.assertEqual(apple.asset_type, AssetType.STOCK.value)

        self.assertEqual(fund.symbol, "922908769")
        self.assertIsNone(fund.name)
        self.assertEqual(fund.asset_type, AssetType.MUTUAL_FUND.value)

        self.assertEqual(context.warnings.total, 1)
        self.assertIn("position 3", context.warnings.to_list()[0])

    def test_xml_credit_card(self):
        document = parse_ofx_content(XML_OFX)
        statement = document.statements[0]
        self.assertEqual(statement.account_type, AccountType.CREDIT_CARD)
        self.assertEqual(statement.account_id, "4111222233334444")
        self.assertEqual(statement.transactions[0].description, "Grocer")
        self.assertEqual(statement.transactions[0].amount, Decimal("-42.00"))

    def test_statement_without_account_block_is_dropped(self):
        text = "<OFX><STMTRS><BANKTRANLIST><STMTTRN><TRNTYPE>DEBIT<DTPOSTED>20240105<TRNAMT>-1</STMTTRN></BANKTRANLIST></STMTRS></OFX>"
        context = ParsingContext()
        document = parse_ofx_content(text, context)
        self.assertEqual(document.statements, [])
        self.assertIn("BANKACCTFROM missing", context.warnings.to_list()[0])

    def test_sibling_statements(self):
        statement = (
            "<STMTTRNRS><STMTRS><BANKACCTFROM><ACCTID>{acct}<ACCTTYPE>CHECKING</BANKACCTFROM>"
            "<STMTTRN><TRNTYPE>CREDIT<DTPOSTED>20240105<TRNAMT>{amount}</STMTTRN></STMTRS></STMTTRNRS>"
        )
        text = "<OFX><BANKMSGSRSV1>" + statement.format(acct="1111", amount="1") + \
            statement.format(acct="2222", amount="2") + "</BANKMSGSRSV1></OFX>"
        document = parse_ofx_content(text)
        self.assertEqual([s.account_id for s in document.statements], ["1111", "2222"])
        self.assertEqual([s.transactions[0].amount for s in document.statements], [Decimal("1"), Decimal("2")])
        self.assertEqual(document.transaction_count, 2)

    def test_blank_text_is_empty_input(self):
        with self.assertRaises(EmptyInput):
            parse_ofx_content("\n  \n")

    def test_text_without_ofx_root(self):
        with self.assertRaises(MissingRequiredField) as cm:
            parse_ofx_content("Date,Description,Amount\n2024-01-01,x,1\n")
        self.assertEqual(cm.exception.name, "OFX")

    def test_idempotent(self):
        first = parse_ofx_content(BANK_OFX)
        second = parse_ofx_content(BANK_OFX)
        self.assertEqual(first, second)


class TestOfxHelpers(unittest.TestCase):
    def test_parse_ofx_date(self):
        self.assertEqual(parse_ofx_date("20240105"), date(2024, 1, 5))
        self.assertEqual(parse_ofx_date("20240105233000"), date(2024, 1, 5))
        self.assertEqual(parse_ofx_date("20240105120000.000[-5:EST]"), date(2024, 1, 5))
        with self.assertRaises(MalformedDate):
            parse_ofx_date("2024")
        with self.assertRaises(MalformedDate):
            parse_ofx_date(None)

    def test_missing_trntype_returns_none(self):
        tree = build_element_tree("<STMTTRN><DTPOSTED>20240105</DTPOSTED><TRNAMT>1</TRNAMT></STMTTRN>")
        self.assertIsNone(parse_ofx_transaction(tree.find("STMTTRN"), 1))

    def test_missing_amount_raises_row_error(self):
        tree = build_element_tree("<STMTTRN><TRNTYPE>DEP</TRNTYPE><DTPOSTED>20240105</DTPOSTED></STMTTRN>")
        with self.assertRaises(RowError):
            parse_ofx_transaction(tree.find("STMTTRN"), 7)

    def test_account_type_map(self):
        self.assertEqual(map_ofx_account_type("CHECKING"), AccountType.CHECKING)
        self.assertEqual(map_ofx_account_type("MONEYMRKT"), AccountType.SAVINGS)
        self.assertEqual(map_ofx_account_type("CREDITLINE"), AccountType.CREDIT_CARD)
        self.assertEqual(map_ofx_account_type("WEIRD"), AccountType.OTHER)
        self.assertEqual(map_ofx_account_type(None), AccountType.OTHER)

    def test_transaction_category_map(self):
        self.assertEqual(map_ofx_transaction_category("DIRECTDEP"), TransactionCategory.INCOME)
        self.assertEqual(map_ofx_transaction_category("div"), TransactionCategory.INVESTMENT)
        self.assertEqual(map_ofx_transaction_category("XFER"), TransactionCategory.TRANSFER)
        self.assertEqual(map_ofx_transaction_category("POS"), TransactionCategory.SHOPPING)
        self.assertEqual(map_ofx_transaction_category("HOLD"), TransactionCategory.OTHER)
