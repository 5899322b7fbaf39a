"""
Invoice payment service.

Registers payments of closed credit-card invoices from cash accounts and
handles direct status edits of invoices.
"""

import logging
from decimal import Decimal

from django.db import transaction as db_transaction
from django.utils import timezone

from ..exceptions import LedgerBadRequest, LedgerNotFound
from ..models import Account, Invoice, Transaction
from ..validators import validate_amount, validate_date

logger = logging.getLogger(__name__)

PAYABLE_PAYMENT_STATUSES = (Invoice.PAYMENT_UNPAID, Invoice.PAYMENT_PARTIAL)
# Set by the closing and payment flows only
PROTECTED_INVOICE_FIELDS = ("account_id", "account", "year", "month", "total")
INVOICE_STATUSES = {choice for choice, _ in Invoice.STATUS_CHOICES}


def derive_payment_status(paid_amount, total):
    if paid_amount >= total and paid_amount > 0:
        return Invoice.PAYMENT_PAID
    if paid_amount > 0:
        return Invoice.PAYMENT_PARTIAL
    return Invoice.PAYMENT_UNPAID


class InvoicePaymentService:
    """Settles invoices with cleared expense transactions on cash accounts."""

    def __init__(self, impact_service, clock=timezone.localdate):
        self.impact_service = impact_service
        self.clock = clock

    @db_transaction.atomic
    def pay_invoice(self, user, invoice_id, amount, account_id, payment_date=None) -> Invoice:
        """
        Register a payment of a closed invoice.

        Creates a cleared settlement expense on the paying cash account,
        decrements its balance, adds ``amount`` to the invoice's paid amount
        and recomputes the payment status. A fully paid invoice moves to
        ``paid``.

        Args:
            user: Owner of the invoice and the paying account
            invoice_id: Invoice being paid
            amount: Payment amount, must be positive
            account_id: Cash account the money leaves from
            payment_date: Settlement date, defaults to today

        Returns:
            Invoice: The refreshed invoice

        Raises:
            LedgerNotFound: If invoice or account is not the user's
            LedgerBadRequest: If the invoice is not payable, the account is not
                cash, or the amount is invalid
        """
        invoice = (
            Invoice.objects.select_for_update()
            .select_related("account")
            .filter(id=invoice_id, user=user)
            .first()
        )
        if invoice is None:
            raise LedgerNotFound("Invoice not found")

        if invoice.status != Invoice.CLOSED or invoice.payment_status not in PAYABLE_PAYMENT_STATUSES:
            logger.warning(
                "Payment rejected for non-payable invoice",
                extra={
                    "user_id": user.id,
                    "invoice_id": invoice.id,
                    "status": invoice.status,
                    "payment_status": invoice.payment_status,
                    "action": "invoice_payment_rejected",
                    "component": "InvoicePaymentService",
                    "severity": "low",
                },
            )
            raise LedgerBadRequest(
                f"Invoice is not payable (status {invoice.status}, "
                f"payment status {invoice.payment_status})",
                fields=["invoice_id"],
            )

        account = Account.objects.select_for_update().filter(id=account_id, user=user).first()
        if account is None:
            raise LedgerNotFound("Paying account not found")
        if not account.is_cash:
            raise LedgerBadRequest("Invoices must be paid from a cash account", fields=["account_id"])

        amount = validate_amount(amount)
        payment_date = validate_date(payment_date, "date") if payment_date else self.clock()

        settlement = Transaction.objects.create(
            user=user,
            account=account,
            settled_invoice=invoice,
            description=(
                f"Invoice payment {invoice.account.name} {invoice.month:02d}/{invoice.year}"
            ),
            amount=amount,
            type=Transaction.EXPENSE,
            date=payment_date,
            status=Transaction.CLEARED,
        )
        self.impact_service.apply_impact(settlement, account=account)

        invoice.paid_amount = Decimal(invoice.paid_amount) + amount
        invoice.payment_status = derive_payment_status(invoice.paid_amount, invoice.total)
        if invoice.payment_status == Invoice.PAYMENT_PAID:
            invoice.status = Invoice.PAID
        invoice.save(update_fields=["paid_amount", "payment_status", "status", "updated_at"])
        invoice.refresh_from_db()

        logger.info(
            "Invoice payment registered",
            extra={
                "user_id": user.id,
                "invoice_id": invoice.id,
                "account_id": account.id,
                "settlement_id": settlement.id,
                "amount": str(amount),
                "payment_status": invoice.payment_status,
                "action": "invoice_payment_success",
                "component": "InvoicePaymentService",
            },
        )
        return invoice

    @db_transaction.atomic
    def update_invoice_status(self, user, invoice_id, patch) -> Invoice:
        """
        Edit ``status``, ``paid_amount`` or ``due_date`` of an invoice directly.

        Account, period and total are owned by the closing flow and cannot be
        changed here. When ``paid_amount`` changes without an explicit
        ``payment_status`` the payment status is derived from it.

        Raises:
            LedgerNotFound: If the invoice is not the user's
            LedgerBadRequest: If a protected field or an invalid value is sent
        """
        invoice = Invoice.objects.select_for_update().filter(id=invoice_id, user=user).first()
        if invoice is None:
            raise LedgerNotFound("Invoice not found")

        protected = [field for field in PROTECTED_INVOICE_FIELDS if field in patch]
        if protected:
            raise LedgerBadRequest(
                "Fields cannot be changed on an invoice: " + ", ".join(protected),
                fields=protected,
            )
        unknown = sorted(set(patch) - {"status", "payment_status", "paid_amount", "due_date"})
        if unknown:
            raise LedgerBadRequest("Unknown invoice fields: " + ", ".join(unknown), fields=unknown)

        if "status" in patch:
            if patch["status"] not in INVOICE_STATUSES:
                raise LedgerBadRequest("Invalid invoice status", fields=["status"])
            invoice.status = patch["status"]

        if "due_date" in patch:
            invoice.due_date = validate_date(patch["due_date"], "due_date")

        if "paid_amount" in patch:
            try:
                paid_amount = Decimal(str(patch["paid_amount"]))
            except ArithmeticError:
                raise LedgerBadRequest("paid_amount must be a number", fields=["paid_amount"])
            if not paid_amount.is_finite() or paid_amount < 0:
                raise LedgerBadRequest(
                    "paid_amount cannot be negative", fields=["paid_amount"]
                )
            invoice.paid_amount = paid_amount
            if "payment_status" not in patch:
                invoice.payment_status = derive_payment_status(paid_amount, invoice.total)

        if "payment_status" in patch:
            if patch["payment_status"] not in dict(Invoice.PAYMENT_STATUS_CHOICES):
                raise LedgerBadRequest("Invalid payment status", fields=["payment_status"])
            invoice.payment_status = patch["payment_status"]

        invoice.save()

        logger.info(
            "Invoice status updated",
            extra={
                "user_id": user.id,
                "invoice_id": invoice.id,
                "fields": sorted(patch),
                "status": invoice.status,
                "payment_status": invoice.payment_status,
                "action": "invoice_status_update_success",
                "component": "InvoicePaymentService",
            },
        )
        return invoice
