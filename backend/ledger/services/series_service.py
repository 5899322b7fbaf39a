"""
Transaction series service.

Creates a transaction together with the occurrences of its recurring or
installment series, settling whatever is already due.
"""

import logging
from decimal import ROUND_DOWN, Decimal

from dateutil.relativedelta import relativedelta
from django.db import transaction as db_transaction
from django.utils import timezone

from ..exceptions import LedgerBadRequest
from ..models import Transaction
from ..utils.date_utils import add_frequency

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class TransactionSeriesService:
    """
    Builds single transactions and series masters with their occurrences.

    Collaborators are injected: ``impact_service`` applies the effect of
    cleared entries and ``invoice_service`` resolves credit-card invoices.
    """

    def __init__(
        self,
        impact_service,
        invoice_service,
        clock=timezone.localdate,
        recurring_limit=24,
        recurring_horizon_years=2,
    ):
        self.impact_service = impact_service
        self.invoice_service = invoice_service
        self.clock = clock
        self.recurring_limit = recurring_limit
        self.recurring_horizon_years = recurring_horizon_years

    @db_transaction.atomic
    def create_series(self, user, account, data, category=None) -> Transaction:
        """
        Insert the master transaction and generate its occurrences.

        ``data`` is an already validated mapping with ``description``,
        ``amount`` (Decimal), ``type``, ``date`` and optionally ``notes``,
        ``forecast``, ``invoice_id`` and the series configuration.

        Args:
            user: Owner of the new transactions
            account: Target account (already ownership-checked)
            data: Validated transaction fields
            category: Optional category (already ownership-checked)

        Returns:
            Transaction: The master, with occurrences reachable via ``children``

        Raises:
            LedgerBadRequest: If an invoice is given for a cash account
            LedgerNotFound: If the explicit invoice is not the account's

        Example:
            >>> master = series_service.create_series(
            ...     user, card,
            ...     {"description": "TV", "amount": Decimal("300"), "type": "expense",
            ...      "date": date(2024, 3, 1), "is_installment": True,
            ...      "installment_count": 3, "installment_unit": "month"},
            ... )
            >>> master.children.count()
            2
        """
        today = self.clock()
        explicit_invoice_id = data.get("invoice_id")
        is_recurring = bool(data.get("is_recurring"))
        is_installment = bool(data.get("is_installment"))
        is_series = is_recurring or is_installment

        if account.is_cash and explicit_invoice_id is not None:
            logger.warning(
                "Invoice given for cash account transaction",
                extra={
                    "user_id": user.id,
                    "account_id": account.id,
                    "invoice_id": explicit_invoice_id,
                    "action": "series_cash_invoice_rejected",
                    "component": "TransactionSeriesService",
                    "severity": "medium",
                },
            )
            raise LedgerBadRequest(
                "Cash account transactions cannot be linked to an invoice",
                fields=["invoice_id"],
            )

        total_amount = data["amount"]
        count = data.get("installment_count") or 1
        if is_installment:
            child_amount = (total_amount / count).quantize(CENT, rounding=ROUND_DOWN)
            if child_amount <= 0:
                logger.warning(
                    "Installment amount below one cent",
                    extra={
                        "user_id": user.id,
                        "account_id": account.id,
                        "amount": str(total_amount),
                        "installment_count": count,
                        "action": "series_installment_amount_rejected",
                        "component": "TransactionSeriesService",
                        "severity": "low",
                    },
                )
                raise LedgerBadRequest(
                    "Amount is too small to split into that many installments",
                    fields=["amount", "installment_count"],
                )
            # Rounding remainder stays on the master so the series adds up
            master_amount = total_amount - child_amount * (count - 1)
        else:
            child_amount = master_amount = total_amount

        master_date = data["date"]
        if master_date <= today and not data.get("forecast"):
            status = Transaction.CLEARED
        elif is_series:
            status = Transaction.SCHEDULED
        else:
            status = Transaction.PENDING

        master = Transaction(
            user=user,
            account=account,
            category=category,
            invoice=self._invoice_for(account, data["type"], master_date, explicit_invoice_id),
            description=data["description"],
            notes=data.get("notes") or "",
            amount=master_amount,
            type=data["type"],
            date=master_date,
            status=status,
            is_recurring=is_recurring,
            frequency=data.get("frequency") if is_recurring else None,
            series_start_date=(data.get("series_start_date") or master_date)
            if is_recurring
            else None,
            is_installment=is_installment,
            installment_count=count if is_installment else None,
            installment_unit=data.get("installment_unit") if is_installment else None,
            installment_index=1 if is_installment else None,
        )
        master.save()

        if master.is_cleared:
            self.impact_service.apply_impact(master)

        if is_recurring:
            self._generate_recurring(master, today)
        elif is_installment:
            self._generate_installments(master, child_amount, today)

        logger.info(
            "Transaction created",
            extra={
                "user_id": user.id,
                "transaction_id": master.id,
                "account_id": account.id,
                "status": master.status,
                "is_recurring": is_recurring,
                "is_installment": is_installment,
                "occurrences": master.children.count() if is_series else 0,
                "action": "transaction_create_success",
                "component": "TransactionSeriesService",
            },
        )
        return master

    def _generate_recurring(self, master, today):
        horizon = master.date + relativedelta(years=self.recurring_horizon_years)
        current = master.date
        for _ in range(self.recurring_limit):
            current = add_frequency(current, master.frequency)
            if current is None or current > horizon:
                break
            self._create_occurrence(master, current, master.amount, master.description, None, today)

    def _generate_installments(self, master, child_amount, today):
        current = master.date
        for index in range(2, master.installment_count + 1):
            current = add_frequency(current, master.installment_unit)
            if current is None:
                break
            description = f"{master.description} ({index}/{master.installment_count})"
            self._create_occurrence(master, current, child_amount, description, index, today)

    def _create_occurrence(self, master, on_date, amount, description, index, today):
        occurrence = Transaction.objects.create(
            user_id=master.user_id,
            account=master.account,
            category_id=master.category_id,
            invoice=self._invoice_for(master.account, master.type, on_date, None),
            parent=master,
            description=description,
            notes=master.notes,
            amount=amount,
            type=master.type,
            date=on_date,
            # Past occurrences are settled right away
            status=Transaction.CLEARED if on_date <= today else Transaction.SCHEDULED,
            installment_index=index,
        )
        if occurrence.is_cleared:
            self.impact_service.apply_impact(occurrence)
        return occurrence

    def _invoice_for(self, account, transaction_type, on_date, explicit_invoice_id):
        if not account.is_credit_card:
            return None
        if transaction_type != Transaction.EXPENSE and explicit_invoice_id is None:
            return None
        return self.invoice_service.resolve(account, on_date, explicit_invoice_id)
