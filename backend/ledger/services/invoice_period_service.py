"""
Invoice period service.

Maps a credit-card account and a date to the monthly invoice that covers it,
creating invoices on demand.
"""

import logging
from datetime import date
from typing import Optional

from django.db import IntegrityError, transaction

from ..exceptions import LedgerBadRequest, LedgerConflict, LedgerNotFound
from ..models import Account, Invoice
from ..utils.date_utils import clamp_day, closing_period

logger = logging.getLogger(__name__)


class InvoicePeriodService:
    """Resolves and creates credit-card invoices per (account, year, month)."""

    def resolve(
        self, account: Account, on_date: date, explicit_invoice_id: Optional[int] = None
    ) -> Invoice:
        """
        Return the invoice a credit-card transaction on ``on_date`` belongs to.

        An explicit invoice id wins and must reference an invoice of ``account``.
        Otherwise the invoice for the date's calendar month is returned, created
        as ``open`` with zero totals when it does not exist yet.

        Args:
            account: Credit-card account
            on_date: Transaction date
            explicit_invoice_id: Invoice chosen by the caller, if any

        Returns:
            Invoice: Existing or newly created invoice

        Raises:
            LedgerNotFound: If the explicit invoice does not belong to the account
            LedgerBadRequest: If the account lacks closing or due day
        """
        if explicit_invoice_id is not None:
            invoice = Invoice.objects.filter(id=explicit_invoice_id, account=account).first()
            if invoice is None:
                logger.warning(
                    "Explicit invoice not found for account",
                    extra={
                        "account_id": account.id,
                        "invoice_id": explicit_invoice_id,
                        "action": "invoice_resolve_not_found",
                        "component": "InvoicePeriodService",
                        "severity": "medium",
                    },
                )
                raise LedgerNotFound("Invoice not found for this account")
            return invoice

        invoice = Invoice.objects.filter(
            account=account, year=on_date.year, month=on_date.month
        ).first()
        if invoice is not None:
            return invoice

        try:
            return self.create_invoice(account, on_date.year, on_date.month)
        except LedgerConflict:
            # Created concurrently between the lookup and the insert
            return Invoice.objects.get(account=account, year=on_date.year, month=on_date.month)

    def create_invoice(self, account: Account, year: int, month: int, **fields) -> Invoice:
        """
        Create the invoice for (account, year, month).

        Due and closing dates use the account's days clamped to the month
        length unless given in ``fields``.

        Raises:
            LedgerConflict: If an invoice already exists for that month
            LedgerBadRequest: If the account lacks closing or due day
        """
        self._ensure_card_days(account)

        if Invoice.objects.filter(account=account, year=year, month=month).exists():
            raise LedgerConflict(f"Invoice {month:02d}/{year} already exists for this account")

        defaults = {
            "due_date": clamp_day(year, month, account.due_day),
            "closing_date": clamp_day(year, month, account.closing_day),
            "status": Invoice.OPEN,
            "payment_status": Invoice.PAYMENT_UNPAID,
        }
        defaults.update(fields)

        try:
            with transaction.atomic():
                invoice = Invoice.objects.create(
                    user_id=account.user_id, account=account, year=year, month=month, **defaults
                )
        except IntegrityError:
            logger.warning(
                "Invoice creation hit unique constraint",
                extra={
                    "account_id": account.id,
                    "year": year,
                    "month": month,
                    "action": "invoice_create_conflict",
                    "component": "InvoicePeriodService",
                    "severity": "low",
                },
            )
            raise LedgerConflict(f"Invoice {month:02d}/{year} already exists for this account")

        logger.info(
            "Invoice created",
            extra={
                "account_id": account.id,
                "invoice_id": invoice.id,
                "year": year,
                "month": month,
                "action": "invoice_created",
                "component": "InvoicePeriodService",
            },
        )
        return invoice

    def invoice_period(self, account: Account, year: int, month: int):
        """(start, end) dates covered by the account's invoice for (year, month)."""
        self._ensure_card_days(account)
        return closing_period(account.closing_day, year, month)

    def _ensure_card_days(self, account):
        if not account.is_credit_card:
            raise LedgerBadRequest("Only credit card accounts have invoices", fields=["account_id"])
        if account.closing_day is None or account.due_day is None:
            logger.warning(
                "Credit card without closing/due day",
                extra={
                    "account_id": account.id,
                    "action": "invoice_card_days_missing",
                    "component": "InvoicePeriodService",
                    "severity": "medium",
                },
            )
            raise LedgerBadRequest(
                "Credit card account requires closing_day and due_day",
                fields=["closing_day", "due_day"],
            )
