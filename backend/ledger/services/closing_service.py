"""
Invoice closing service.

Scheduled job that closes credit-card invoices on each card's closing day,
recomputing their totals from the transactions in the closing period.
"""

import logging
from decimal import Decimal

from django.db import transaction as db_transaction
from django.db.models import Q, Sum
from django.utils import timezone

from ..exceptions import LedgerConflict
from ..models import Account, Invoice, Transaction
from ..utils.date_utils import effective_closing_day, shift_month

logger = logging.getLogger(__name__)


class InvoiceClosingService:
    """
    Moves invoices from open to closed, one atomic scope per card.

    A card that fails is rolled back and logged; the remaining cards are
    still processed and the failed one is retried on the next run.
    """

    def __init__(self, invoice_service, clock=timezone.localdate, future_invoices=2):
        self.invoice_service = invoice_service
        self.clock = clock
        self.future_invoices = future_invoices

    def close_invoices(self, today=None) -> int:
        """
        Close the open invoice of every card whose closing day is today.

        The closing day is clamped to the month length, so a card closing on
        the 31st closes on the 30th in April.

        Args:
            today: Reference date, defaults to the injected clock

        Returns:
            int: Number of invoices closed
        """
        today = today or self.clock()
        accounts = [
            account
            for account in Account.objects.filter(
                type=Account.CREDIT_CARD, closing_day__gte=today.day
            ).order_by("id")
            if effective_closing_day(account.closing_day, today) == today.day
        ]

        logger.info(
            "Invoice closing run started",
            extra={
                "date": today.isoformat(),
                "account_count": len(accounts),
                "action": "invoice_closing_start",
                "component": "InvoiceClosingService",
            },
        )

        closed = 0
        for account in accounts:
            try:
                if self.close_account_invoice(account, today):
                    closed += 1
            except Exception as e:
                logger.error(
                    "Invoice closing failed for account",
                    extra={
                        "account_id": account.id,
                        "date": today.isoformat(),
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                        "action": "invoice_closing_failed",
                        "component": "InvoiceClosingService",
                        "severity": "high",
                    },
                    exc_info=True,
                )

        logger.info(
            "Invoice closing run finished",
            extra={
                "date": today.isoformat(),
                "closed_count": closed,
                "action": "invoice_closing_success",
                "component": "InvoiceClosingService",
            },
        )
        return closed

    @db_transaction.atomic
    def close_account_invoice(self, account, today) -> bool:
        """
        Close the invoice of ``account`` for the month of ``today``.

        Older invoices left open (for instance by a backdated series) are not
        touched. Returns False when there is nothing to close: no invoice for
        this month, it is no longer open, or it closes later than ``today``.
        """
        invoice = (
            Invoice.objects.select_for_update()
            .filter(account=account, year=today.year, month=today.month)
            .first()
        )
        if invoice is None:
            logger.warning(
                "No open invoice to close",
                extra={
                    "account_id": account.id,
                    "date": today.isoformat(),
                    "action": "invoice_closing_no_open_invoice",
                    "component": "InvoiceClosingService",
                    "severity": "medium",
                },
            )
            return False

        if invoice.status != Invoice.OPEN or invoice.closing_date > today:
            logger.info(
                "Invoice not due for closing",
                extra={
                    "account_id": account.id,
                    "invoice_id": invoice.id,
                    "invoice_status": invoice.status,
                    "closing_date": invoice.closing_date.isoformat(),
                    "action": "invoice_closing_skipped",
                    "component": "InvoiceClosingService",
                },
            )
            return False

        period_start, period_end = self.invoice_service.invoice_period(
            account, invoice.year, invoice.month
        )
        expenses = Transaction.objects.filter(
            account=account,
            type=Transaction.EXPENSE,
            status=Transaction.CLEARED,
            date__gte=period_start,
            date__lte=period_end,
        ).filter(Q(invoice__isnull=True) | Q(invoice=invoice))

        assigned = expenses.filter(invoice__isnull=True).update(invoice=invoice)
        total = expenses.aggregate(total=Sum("amount"))["total"] or Decimal("0.00")

        invoice.total = total
        invoice.status = Invoice.CLOSED
        invoice.save(update_fields=["total", "status", "updated_at"])

        for offset in range(1, self.future_invoices + 1):
            year, month = shift_month(invoice.year, invoice.month, offset)
            try:
                self.invoice_service.create_invoice(account, year, month)
            except LedgerConflict:
                pass

        logger.info(
            "Invoice closed",
            extra={
                "account_id": account.id,
                "invoice_id": invoice.id,
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
                "assigned_count": assigned,
                "total": str(total),
                "action": "invoice_closed",
                "component": "InvoiceClosingService",
            },
        )
        return True
