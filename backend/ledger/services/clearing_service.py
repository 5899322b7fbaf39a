"""
Due-transaction clearing service.

Scheduled job that settles pending and scheduled transactions once their date
has arrived.
"""

import logging

from django.db import transaction as db_transaction
from django.utils import timezone

from ..models import Transaction

logger = logging.getLogger(__name__)

DUE_STATUSES = (Transaction.PENDING, Transaction.SCHEDULED)


class DueTransactionClearingService:
    """Clears due transactions one by one; a failing item never blocks the batch."""

    def __init__(self, impact_service, clock=timezone.localdate):
        self.impact_service = impact_service
        self.clock = clock

    def clear_due_transactions(self, today=None) -> int:
        """
        Clear every pending or scheduled transaction dated on or before today.

        Args:
            today: Reference date, defaults to the injected clock

        Returns:
            int: Number of transactions cleared
        """
        today = today or self.clock()
        due_ids = list(
            Transaction.objects.filter(status__in=DUE_STATUSES, date__lte=today)
            .order_by("date", "id")
            .values_list("id", flat=True)
        )

        logger.info(
            "Due transaction clearing started",
            extra={
                "date": today.isoformat(),
                "due_count": len(due_ids),
                "action": "clearing_start",
                "component": "DueTransactionClearingService",
            },
        )

        cleared = 0
        for transaction_id in due_ids:
            try:
                if self._clear_one(transaction_id, today):
                    cleared += 1
            except Exception as e:
                logger.error(
                    "Failed to clear due transaction",
                    extra={
                        "transaction_id": transaction_id,
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                        "action": "clearing_item_failed",
                        "component": "DueTransactionClearingService",
                        "severity": "high",
                    },
                    exc_info=True,
                )

        logger.info(
            "Due transaction clearing finished",
            extra={
                "date": today.isoformat(),
                "due_count": len(due_ids),
                "cleared_count": cleared,
                "action": "clearing_success",
                "component": "DueTransactionClearingService",
            },
        )
        return cleared

    @db_transaction.atomic
    def _clear_one(self, transaction_id, today) -> bool:
        transaction = (
            Transaction.objects.select_for_update()
            .filter(id=transaction_id, status__in=DUE_STATUSES, date__lte=today)
            .first()
        )
        # Already cleared, edited or deleted since the batch was selected
        if transaction is None:
            return False

        transaction.status = Transaction.CLEARED
        transaction.save(update_fields=["status", "updated_at"])
        self.impact_service.apply_impact(transaction)
        return True
