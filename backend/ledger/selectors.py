"""
Read-side queries and derived values for the ledger.

Derived figures (remaining invoice amount, series size) are computed here and
never stored on the models.
"""

import logging
from decimal import Decimal

from django.db.models import Count, Q, Sum

from .exceptions import LedgerBadRequest
from .models import Invoice, Transaction
from .validators import validate_date

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

# filter key -> ORM lookup
TRANSACTION_FILTERS = {
    "account_id": "account_id",
    "category_id": "category_id",
    "invoice_id": "invoice_id",
    "parent_id": "parent_id",
    "type": "type",
    "status": "status",
}


def list_transactions(user, filters=None, page=1, page_size=20):
    """
    Page through a user's transactions, newest first.

    Supported filters: ``account_id``, ``category_id``, ``invoice_id``,
    ``parent_id``, ``type``, ``status``, ``start_date``, ``end_date``,
    ``search`` (case-insensitive description match) and ``top_level``
    (hide series occurrences).

    Returns:
        dict: ``{"rows": [Transaction, ...], "total": int}``
    """
    filters = filters or {}
    try:
        page = int(page)
        page_size = int(page_size)
    except (TypeError, ValueError):
        raise LedgerBadRequest("page and page_size must be integers", fields=["page", "page_size"])
    if page < 1 or page_size < 1:
        raise LedgerBadRequest("page and page_size must be positive", fields=["page", "page_size"])
    page_size = min(page_size, MAX_PAGE_SIZE)

    queryset = Transaction.objects.filter(user=user).select_related(
        "account", "category", "invoice"
    )

    lookups = {
        lookup: filters[key]
        for key, lookup in TRANSACTION_FILTERS.items()
        if filters.get(key) not in (None, "")
    }
    queryset = queryset.filter(**lookups)

    if filters.get("start_date"):
        queryset = queryset.filter(date__gte=validate_date(filters["start_date"], "start_date"))
    if filters.get("end_date"):
        queryset = queryset.filter(date__lte=validate_date(filters["end_date"], "end_date"))
    if filters.get("search"):
        queryset = queryset.filter(description__icontains=filters["search"])
    if filters.get("top_level"):
        queryset = queryset.filter(parent__isnull=True)

    total = queryset.count()
    offset = (page - 1) * page_size
    rows = list(queryset[offset : offset + page_size])

    logger.debug(
        "Transactions listed",
        extra={
            "user_id": user.id,
            "filters": sorted(lookups),
            "page": page,
            "total": total,
            "action": "transaction_list",
            "component": "list_transactions",
        },
    )
    return {"rows": rows, "total": total}


def remaining_amount(invoice: Invoice) -> Decimal:
    """Amount still owed on ``invoice`` (never negative)."""
    return max(Decimal(invoice.total) - Decimal(invoice.paid_amount), Decimal("0.00"))


def series_occurrence_count(master: Transaction) -> int:
    """Number of transactions in the master's series, the master included."""
    if not master.is_series_master:
        return 1
    return master.children.count() + 1


def invoice_summary(invoice: Invoice) -> dict:
    """
    Aggregated view of an invoice for display.

    ``computed_total`` is the live sum of the invoice's cleared expenses;
    it matches ``total`` right after closing and may differ while the invoice
    is still open.
    """
    stats = invoice.transactions.aggregate(
        transaction_count=Count("id"),
        computed_total=Sum(
            "amount",
            filter=Q(status=Transaction.CLEARED, type=Transaction.EXPENSE),
        ),
    )
    payments = invoice.payments.aggregate(payment_count=Count("id"), paid=Sum("amount"))

    return {
        "invoice_id": invoice.id,
        "account_id": invoice.account_id,
        "year": invoice.year,
        "month": invoice.month,
        "status": invoice.status,
        "payment_status": invoice.payment_status,
        "due_date": invoice.due_date,
        "closing_date": invoice.closing_date,
        "total": invoice.total,
        "paid_amount": invoice.paid_amount,
        "remaining_amount": remaining_amount(invoice),
        "transaction_count": stats["transaction_count"],
        "computed_total": stats["computed_total"] or Decimal("0.00"),
        "payment_count": payments["payment_count"],
        "payments_total": payments["paid"] or Decimal("0.00"),
    }
