# ledger/tests/unit/test_service_clearing.py
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from ledger.models import Transaction
from ledger.tests.factories import InvoiceFactory, TransactionFactory


class TestClearDueTransactions:
    def test_clears_due_pending_and_scheduled(self, services, cash_account, today):
        pending = TransactionFactory(account=cash_account, date=date(2024, 3, 1))
        scheduled = TransactionFactory(
            account=cash_account,
            type=Transaction.INCOME,
            amount=Decimal("30"),
            date=today,
            status=Transaction.SCHEDULED,
        )
        future = TransactionFactory(account=cash_account, date=date(2024, 3, 11))

        assert services.clearing.clear_due_transactions() == 2

        for tx in (pending, scheduled, future):
            tx.refresh_from_db()
        assert pending.status == Transaction.CLEARED
        assert scheduled.status == Transaction.CLEARED
        assert future.status == Transaction.PENDING
        cash_account.refresh_from_db()
        assert cash_account.balance == Decimal("430.00")

    def test_card_expense_adds_to_invoice(self, services, credit_card):
        invoice = InvoiceFactory(account=credit_card)
        TransactionFactory(account=credit_card, invoice=invoice, amount=Decimal("25"))

        services.clearing.clear_due_transactions(today=date(2024, 3, 5))

        invoice.refresh_from_db()
        assert invoice.total == Decimal("25.00")

    def test_second_run_clears_nothing(self, services, cash_account):
        TransactionFactory(account=cash_account, date=date(2024, 3, 1))

        assert services.clearing.clear_due_transactions() == 1
        assert services.clearing.clear_due_transactions() == 0

        cash_account.refresh_from_db()
        assert cash_account.balance == Decimal("400.00")

    def test_failure_skips_item_and_continues(self, services, cash_account):
        broken = TransactionFactory(account=cash_account, date=date(2024, 3, 1))
        healthy = TransactionFactory(account=cash_account, date=date(2024, 3, 2))
        real_apply = services.impact.apply_impact

        def flaky_apply(transaction, account=None, invoice=None):
            if transaction.id == broken.id:
                raise RuntimeError("boom")
            return real_apply(transaction, account=account, invoice=invoice)

        with patch.object(services.impact, "apply_impact", side_effect=flaky_apply):
            with patch("ledger.services.clearing_service.logger") as mock_logger:
                cleared = services.clearing.clear_due_transactions()

        assert cleared == 1
        mock_logger.error.assert_called_once()
        broken.refresh_from_db()
        healthy.refresh_from_db()
        assert broken.status == Transaction.PENDING
        assert healthy.status == Transaction.CLEARED
        cash_account.refresh_from_db()
        assert cash_account.balance == Decimal("400.00")
