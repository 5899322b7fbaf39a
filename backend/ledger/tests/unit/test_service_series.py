# ledger/tests/unit/test_service_series.py
from datetime import date
from decimal import Decimal

import pytest

from ledger.exceptions import LedgerBadRequest
from ledger.models import Invoice, Transaction


def series_payload(**overrides):
    payload = {
        "description": "Purchase",
        "amount": Decimal("100.00"),
        "type": Transaction.EXPENSE,
        "date": date(2024, 3, 1),
    }
    payload.update(overrides)
    return payload


class TestSingleTransaction:
    def test_past_transaction_is_cleared(self, services, cash_account):
        tx = services.series.create_series(cash_account.user, cash_account, series_payload())

        assert tx.status == Transaction.CLEARED
        cash_account.refresh_from_db()
        assert cash_account.balance == Decimal("400.00")

    def test_future_transaction_is_pending(self, services, cash_account):
        tx = services.series.create_series(
            cash_account.user, cash_account, series_payload(date=date(2024, 3, 11))
        )

        assert tx.status == Transaction.PENDING
        cash_account.refresh_from_db()
        assert cash_account.balance == Decimal("500.00")

    def test_forecast_is_never_cleared(self, services, cash_account):
        tx = services.series.create_series(
            cash_account.user, cash_account, series_payload(forecast=True)
        )

        assert tx.status == Transaction.PENDING
        cash_account.refresh_from_db()
        assert cash_account.balance == Decimal("500.00")

    def test_card_expense_gets_invoice_for_its_month(self, services, credit_card):
        tx = services.series.create_series(credit_card.user, credit_card, series_payload())

        assert (tx.invoice.year, tx.invoice.month) == (2024, 3)
        tx.invoice.refresh_from_db()
        assert tx.invoice.total == Decimal("100.00")

    def test_card_income_has_no_invoice(self, services, credit_card):
        tx = services.series.create_series(
            credit_card.user, credit_card, series_payload(type=Transaction.INCOME)
        )

        assert tx.invoice is None
        assert not Invoice.objects.exists()

    def test_cash_account_with_invoice_rejected(self, services, cash_account, credit_card):
        invoice = services.invoices.resolve(credit_card, date(2024, 3, 1))

        with pytest.raises(LedgerBadRequest) as exc_info:
            services.series.create_series(
                cash_account.user, cash_account, series_payload(invoice_id=invoice.id)
            )

        assert exc_info.value.fields == ["invoice_id"]
        assert not Transaction.objects.exists()


class TestInstallments:
    def test_three_installments_on_card(self, services, credit_card):
        master = services.series.create_series(
            credit_card.user,
            credit_card,
            series_payload(
                description="TV",
                amount=Decimal("300.00"),
                is_installment=True,
                installment_count=3,
                installment_unit="month",
            ),
        )

        children = list(master.children.order_by("date"))
        assert master.amount == Decimal("100.00")
        assert master.installment_index == 1
        assert master.status == Transaction.CLEARED
        assert [c.amount for c in children] == [Decimal("100.00"), Decimal("100.00")]
        assert [c.date for c in children] == [date(2024, 4, 1), date(2024, 5, 1)]
        assert [c.installment_index for c in children] == [2, 3]
        assert [c.description for c in children] == ["TV (2/3)", "TV (3/3)"]
        assert [(c.invoice.year, c.invoice.month) for c in children] == [(2024, 4), (2024, 5)]
        assert len({master.invoice_id, *[c.invoice_id for c in children]}) == 3
        assert all(c.status == Transaction.SCHEDULED for c in children)

    def test_children_carry_no_series_configuration(self, services, credit_card):
        master = services.series.create_series(
            credit_card.user,
            credit_card,
            series_payload(is_installment=True, installment_count=2, installment_unit="week"),
        )

        child = master.children.get()
        assert child.parent_id == master.id
        assert not child.is_installment and not child.is_recurring
        assert child.installment_count is None and child.installment_unit is None
        assert child.frequency is None

    def test_rounding_remainder_stays_on_master(self, services, cash_account):
        master = services.series.create_series(
            cash_account.user,
            cash_account,
            series_payload(
                date=date(2024, 4, 1),
                is_installment=True,
                installment_count=3,
                installment_unit="month",
            ),
        )

        amounts = [master.amount] + [c.amount for c in master.children.all()]
        assert master.amount == Decimal("33.34")
        assert sum(amounts) == Decimal("100.00")

    def test_future_series_master_is_scheduled(self, services, cash_account):
        master = services.series.create_series(
            cash_account.user,
            cash_account,
            series_payload(
                date=date(2024, 4, 1),
                is_installment=True,
                installment_count=2,
                installment_unit="month",
            ),
        )

        assert master.status == Transaction.SCHEDULED

    def test_single_installment_has_no_children(self, services, cash_account):
        master = services.series.create_series(
            cash_account.user,
            cash_account,
            series_payload(is_installment=True, installment_count=1, installment_unit="month"),
        )

        assert master.amount == Decimal("100.00")
        assert not master.children.exists()

    def test_amount_too_small_for_installment_count(self, services, cash_account):
        with pytest.raises(LedgerBadRequest) as exc:
            services.series.create_series(
                cash_account.user,
                cash_account,
                series_payload(
                    amount=Decimal("0.02"),
                    is_installment=True,
                    installment_count=3,
                    installment_unit="month",
                ),
            )

        assert exc.value.fields == ["amount", "installment_count"]
        assert not Transaction.objects.filter(account=cash_account).exists()
        cash_account.refresh_from_db()
        assert cash_account.balance == Decimal("500.00")

    def test_smallest_splittable_amount(self, services, cash_account):
        master = services.series.create_series(
            cash_account.user,
            cash_account,
            series_payload(
                amount=Decimal("0.03"),
                is_installment=True,
                installment_count=3,
                installment_unit="month",
            ),
        )

        amounts = [master.amount] + [c.amount for c in master.children.all()]
        assert amounts == [Decimal("0.01")] * 3


class TestRecurring:
    def test_monthly_capped_at_limit(self, services, cash_account):
        master = services.series.create_series(
            cash_account.user,
            cash_account,
            series_payload(date=date(2024, 3, 10), is_recurring=True, frequency="month"),
        )

        children = list(master.children.order_by("date"))
        assert len(children) == 24
        assert children[0].date == date(2024, 4, 10)
        assert children[-1].date == date(2026, 3, 10)
        assert master.series_start_date == date(2024, 3, 10)

    def test_yearly_limited_by_horizon(self, services, cash_account):
        master = services.series.create_series(
            cash_account.user,
            cash_account,
            series_payload(date=date(2024, 3, 10), is_recurring=True, frequency="year"),
        )

        assert [c.date for c in master.children.order_by("date")] == [
            date(2025, 3, 10),
            date(2026, 3, 10),
        ]

    def test_past_occurrences_settled_retroactively(self, services, cash_account):
        master = services.series.create_series(
            cash_account.user,
            cash_account,
            series_payload(
                date=date(2024, 1, 5),
                type=Transaction.INCOME,
                is_recurring=True,
                frequency="month",
            ),
        )

        cleared = master.children.filter(status=Transaction.CLEARED)
        assert [c.date for c in cleared.order_by("date")] == [date(2024, 2, 5), date(2024, 3, 5)]
        assert master.children.filter(status=Transaction.SCHEDULED).count() == 22
        cash_account.refresh_from_db()
        assert cash_account.balance == Decimal("800.00")

    def test_occurrences_copy_master_values(self, services, cash_account, expense_category):
        master = services.series.create_series(
            cash_account.user,
            cash_account,
            series_payload(date=date(2024, 4, 1), is_recurring=True, frequency="biweekly"),
            category=expense_category,
        )

        child = master.children.order_by("date").first()
        assert child.date == date(2024, 4, 16)
        assert child.amount == master.amount
        assert child.type == master.type
        assert child.category_id == expense_category.id
        assert child.description == master.description
        assert child.installment_index is None
