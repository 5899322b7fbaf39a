# ledger/services/__init__.py
"""
Ledger service layer and its composition root.

Services receive their collaborators through the constructor;
``build_ledger_services()`` wires them once from ``settings.LEDGER``.
"""

from dataclasses import dataclass
from functools import lru_cache

from django.conf import settings
from django.utils import timezone

from .clearing_service import DueTransactionClearingService
from .closing_service import InvoiceClosingService
from .impact_service import LedgerImpactService
from .invoice_period_service import InvoicePeriodService
from .payment_service import InvoicePaymentService
from .series_service import TransactionSeriesService
from .transaction_service import TransactionService

DEFAULT_LEDGER_SETTINGS = {
    "FUTURE_INVOICES_COUNT": 2,
    "RECURRING_OCCURRENCES_LIMIT": 24,
    "RECURRING_HORIZON_YEARS": 2,
    "MAX_INSTALLMENTS": 120,
}


@dataclass(frozen=True)
class LedgerServices:
    impact: LedgerImpactService
    invoices: InvoicePeriodService
    series: TransactionSeriesService
    transactions: TransactionService
    closing: InvoiceClosingService
    payments: InvoicePaymentService
    clearing: DueTransactionClearingService


def build_ledger_services(clock=timezone.localdate, options=None) -> LedgerServices:
    """
    Wire every ledger service.

    Args:
        clock: Callable returning today's date, shared by all services
        options: Overrides for ``settings.LEDGER`` keys

    Example:
        >>> services = build_ledger_services(clock=lambda: date(2024, 3, 10))
        >>> services.closing.close_invoices()
    """
    config = {**DEFAULT_LEDGER_SETTINGS, **getattr(settings, "LEDGER", {}), **(options or {})}

    impact = LedgerImpactService()
    invoices = InvoicePeriodService()
    series = TransactionSeriesService(
        impact,
        invoices,
        clock=clock,
        recurring_limit=config["RECURRING_OCCURRENCES_LIMIT"],
        recurring_horizon_years=config["RECURRING_HORIZON_YEARS"],
    )
    return LedgerServices(
        impact=impact,
        invoices=invoices,
        series=series,
        transactions=TransactionService(
            series, impact, invoices, max_installments=config["MAX_INSTALLMENTS"]
        ),
        closing=InvoiceClosingService(
            invoices, clock=clock, future_invoices=config["FUTURE_INVOICES_COUNT"]
        ),
        payments=InvoicePaymentService(impact, clock=clock),
        clearing=DueTransactionClearingService(impact, clock=clock),
    )


@lru_cache(maxsize=None)
def get_ledger_services() -> LedgerServices:
    """Process-wide services built from the current settings."""
    return build_ledger_services()


__all__ = [
    "DueTransactionClearingService",
    "InvoiceClosingService",
    "InvoicePaymentService",
    "InvoicePeriodService",
    "LedgerImpactService",
    "LedgerServices",
    "TransactionSeriesService",
    "TransactionService",
    "build_ledger_services",
    "get_ledger_services",
]
