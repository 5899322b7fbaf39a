"""
Validation rules shared by the transaction create and update paths.
"""

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from django.utils.dateparse import parse_date

from .exceptions import LedgerBadRequest
from .models import Transaction
from .utils.date_utils import FREQUENCY_STEPS

logger = logging.getLogger(__name__)

RECURRING_FIELDS = ("is_recurring", "frequency", "series_start_date")
INSTALLMENT_FIELDS = ("is_installment", "installment_count", "installment_unit")
# Series configuration lives on the master only
SERIES_CONFIG_FIELDS = RECURRING_FIELDS + INSTALLMENT_FIELDS
# Managed by the series generator, never patched on an occurrence
OCCURRENCE_LOCKED_FIELDS = SERIES_CONFIG_FIELDS + ("installment_index",)
CENT = Decimal("0.01")
# Decimal(15, 2) columns
MAX_AMOUNT = Decimal("9999999999999.99")


def validate_series_fields(data, *, is_occurrence=False, max_installments=120):
    """
    Validate series configuration for a master or an occurrence.

    For an occurrence (``parent`` set) any series configuration key in ``data``
    is rejected, whatever its value. For anything else the recurring and
    installment flags must be mutually exclusive, their companion fields may
    only be sent together with the flag, and flagged series need a valid
    frequency / installment setup.

    Args:
        data: Field mapping (a create payload, an update patch, or the merged
            state of a master after applying a patch)
        is_occurrence: Whether ``data`` targets a series occurrence
        max_installments: Upper bound for ``installment_count``

    Raises:
        LedgerBadRequest: With ``fields`` naming the offending keys
    """
    if is_occurrence:
        offending = [field for field in OCCURRENCE_LOCKED_FIELDS if field in data]
        if offending:
            logger.warning(
                "Series field change rejected on occurrence",
                extra={
                    "fields": offending,
                    "action": "series_field_change_rejected",
                    "component": "validate_series_fields",
                    "severity": "medium",
                },
            )
            raise LedgerBadRequest(
                "Series fields cannot be changed on a series occurrence: "
                + ", ".join(offending),
                fields=offending,
            )
        return

    is_recurring = bool(data.get("is_recurring"))
    is_installment = bool(data.get("is_installment"))

    if is_recurring and is_installment:
        raise LedgerBadRequest(
            "A transaction cannot be both recurring and an installment series.",
            fields=["is_recurring", "is_installment"],
        )

    if not is_recurring:
        stray = [field for field in RECURRING_FIELDS[1:] if data.get(field)]
        if stray:
            raise LedgerBadRequest(
                "Recurring fields (" + ", ".join(stray) + ") require is_recurring.",
                fields=stray,
            )

    if not is_installment:
        stray = [field for field in INSTALLMENT_FIELDS[1:] if data.get(field)]
        if stray:
            raise LedgerBadRequest(
                "Installment fields (" + ", ".join(stray) + ") require is_installment.",
                fields=stray,
            )

    if is_recurring and data.get("frequency") not in FREQUENCY_STEPS:
        raise LedgerBadRequest(
            "Frequency must be one of: " + ", ".join(FREQUENCY_STEPS),
            fields=["frequency"],
        )

    if is_installment:
        count = data.get("installment_count")
        if not isinstance(count, int) or isinstance(count, bool):
            raise LedgerBadRequest(
                "Installment count must be an integer.", fields=["installment_count"]
            )
        if count < 1 or count > max_installments:
            raise LedgerBadRequest(
                f"Installment count must be between 1 and {max_installments}.",
                fields=["installment_count"],
            )
        if data.get("installment_unit") not in FREQUENCY_STEPS:
            raise LedgerBadRequest(
                "Installment unit must be one of: " + ", ".join(FREQUENCY_STEPS),
                fields=["installment_unit"],
            )


def validate_amount(value):
    """Return ``value`` as a positive Decimal or raise LedgerBadRequest."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise LedgerBadRequest("Amount must be a valid number", fields=["amount"])
    if not amount.is_finite() or amount <= 0:
        raise LedgerBadRequest("Amount must be positive", fields=["amount"])
    if amount > MAX_AMOUNT:
        raise LedgerBadRequest("Amount is too large", fields=["amount"])
    if amount.normalize().as_tuple().exponent < -2:
        raise LedgerBadRequest(
            "Amount must have at most two decimal places", fields=["amount"]
        )
    return amount.quantize(CENT)


def validate_transaction_type(value):
    if value not in (Transaction.INCOME, Transaction.EXPENSE):
        raise LedgerBadRequest("Type must be 'income' or 'expense'", fields=["type"])
    return value


def validate_date(value, field="date"):
    """Accept a date or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = parse_date(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise LedgerBadRequest(f"{field} must be a date in YYYY-MM-DD format", fields=[field])
    return parsed
