"""
Ledger impact service.

Applies and reverts the effect of a single transaction on the denormalized
aggregates: cash account balances and credit-card invoice totals.
"""

import logging
from decimal import Decimal

from django.db.models import F

from ..exceptions import LedgerIntegrityError
from ..models import Account, Invoice, Transaction

logger = logging.getLogger(__name__)


class LedgerImpactService:
    """
    Keeps account balances and invoice totals in step with cleared transactions.

    Must run inside the caller's atomic scope: updates are issued as ``F()``
    expressions so concurrent writers never lose increments, and the in-memory
    ``account``/``invoice`` instances handed in are refreshed afterwards.
    """

    def apply_impact(self, transaction: Transaction, account=None, invoice=None):
        """
        Apply the financial effect of ``transaction``.

        Cash account: income adds to the balance, expense subtracts.
        Credit card: an expense linked to an invoice adds to the invoice total.
        Anything else has no effect.

        Args:
            transaction: Transaction whose effect is applied
            account: Optional preloaded account instance to refresh
            invoice: Optional preloaded invoice instance to refresh

        Raises:
            LedgerIntegrityError: If the transaction's account no longer exists
        """
        self._change(transaction, account, invoice, sign=1)

    def revert_impact(self, transaction: Transaction, account=None, invoice=None):
        """Exact inverse of apply_impact for the same transaction values."""
        self._change(transaction, account, invoice, sign=-1)

    def _change(self, transaction, account, invoice, sign):
        account_id = account.id if account is not None else transaction.account_id
        account_type = (
            Account.objects.filter(id=account_id).values_list("type", flat=True).first()
        )
        if account_type is None:
            logger.error(
                "Account missing while changing transaction impact",
                extra={
                    "transaction_id": transaction.id,
                    "account_id": account_id,
                    "direction": "apply" if sign > 0 else "revert",
                    "action": "impact_account_missing",
                    "component": "LedgerImpactService",
                    "severity": "high",
                },
            )
            raise LedgerIntegrityError(f"Account {account_id} not found")

        amount = Decimal(transaction.amount)

        if account_type == Account.CASH:
            delta = amount if transaction.type == Transaction.INCOME else -amount
            delta *= sign
            Account.objects.filter(id=account_id).update(balance=F("balance") + delta)
            if account is not None:
                account.refresh_from_db(fields=["balance"])

            logger.info(
                "Cash balance updated",
                extra={
                    "transaction_id": transaction.id,
                    "account_id": account_id,
                    "delta": str(delta),
                    "action": "impact_balance_changed",
                    "component": "LedgerImpactService",
                },
            )
            return

        if transaction.type != Transaction.EXPENSE or transaction.invoice_id is None:
            return

        invoice_id = invoice.id if invoice is not None else transaction.invoice_id
        delta = amount * sign
        updated = Invoice.objects.filter(id=invoice_id).update(total=F("total") + delta)
        if not updated:
            logger.warning(
                "Invoice missing while changing transaction impact",
                extra={
                    "transaction_id": transaction.id,
                    "invoice_id": invoice_id,
                    "direction": "apply" if sign > 0 else "revert",
                    "action": "impact_invoice_missing",
                    "component": "LedgerImpactService",
                    "severity": "medium",
                },
            )
            return

        if invoice is not None:
            invoice.refresh_from_db(fields=["total"])

        logger.info(
            "Invoice total updated",
            extra={
                "transaction_id": transaction.id,
                "invoice_id": invoice_id,
                "delta": str(delta),
                "action": "impact_invoice_changed",
                "component": "LedgerImpactService",
            },
        )
