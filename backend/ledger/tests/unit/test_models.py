# ledger/tests/unit/test_models.py
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError, RestrictedError

from ledger.models import Account, Invoice, Transaction
from ledger.tests.factories import (
    CashAccountFactory,
    CreditCardFactory,
    InvoiceFactory,
    TransactionFactory,
)


@pytest.mark.django_db
class TestAccountModel:
    def test_cash_account_rejects_card_fields(self):
        account = CashAccountFactory.build(closing_day=5)

        with pytest.raises(ValidationError) as exc_info:
            account.clean()

        assert "closing_day" in exc_info.value.message_dict

    def test_card_requires_closing_and_due_day(self):
        card = CreditCardFactory.build(closing_day=None, due_day=None)

        with pytest.raises(ValidationError) as exc_info:
            card.clean()

        assert set(exc_info.value.message_dict) == {"closing_day", "due_day"}

    def test_properties(self):
        assert CashAccountFactory.build().is_cash
        assert CreditCardFactory.build().is_credit_card


@pytest.mark.django_db
class TestInvoiceModel:
    def test_one_invoice_per_account_and_month(self):
        invoice = InvoiceFactory(year=2024, month=3)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Invoice.objects.create(
                    user=invoice.user,
                    account=invoice.account,
                    year=2024,
                    month=3,
                    due_date=invoice.due_date,
                    closing_date=invoice.closing_date,
                )

    def test_str(self):
        invoice = InvoiceFactory(account__name="Visa", year=2024, month=3)

        assert str(invoice) == "Visa 03/2024 (open)"


@pytest.mark.django_db
class TestTransactionModel:
    def test_both_series_flags_invalid(self):
        tx = TransactionFactory.build(is_recurring=True, is_installment=True)

        with pytest.raises(ValidationError):
            tx.clean()

    def test_non_positive_amount_invalid(self):
        tx = TransactionFactory.build(amount=Decimal("0"))

        with pytest.raises(ValidationError):
            tx.clean()

    def test_master_and_occurrence_flags(self):
        master = TransactionFactory(is_recurring=True, frequency="month")
        child = TransactionFactory(account=master.account, parent=master)

        assert master.is_series_master and not master.is_occurrence
        assert child.is_occurrence and not child.is_series_master

        child.is_recurring = True
        with pytest.raises(ValidationError):
            child.clean()

    def test_master_cannot_be_deleted_under_its_occurrences(self):
        master = TransactionFactory(is_recurring=True, frequency="month")
        TransactionFactory(account=master.account, parent=master)

        with pytest.raises((RestrictedError, ProtectedError)):
            master.delete()

    def test_account_delete_removes_whole_series(self):
        master = TransactionFactory(is_recurring=True, frequency="month")
        TransactionFactory(account=master.account, parent=master)

        master.account.delete()

        assert not Transaction.objects.exists()
        assert not Account.objects.exists()
