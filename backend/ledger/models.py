"""
Database models for the personal-finance ledger.

This module defines accounts (cash and credit card), categories, monthly
credit-card invoices and transactions, including the master/occurrence links
of recurring and installment series.
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

# Get structured logger for this module
logger = logging.getLogger(__name__)

DAY_OF_MONTH_VALIDATORS = [MinValueValidator(1), MaxValueValidator(31)]

# -------------------------------------------------------------------
# ACCOUNTS
# -------------------------------------------------------------------
# Cash accounts carry a balance, credit cards carry invoices


class Account(models.Model):
    """
    Cash account or credit card owned by a user.

    Cash accounts keep a running ``balance`` maintained by the impact service.
    Credit cards keep ``credit_limit`` and the ``closing_day``/``due_day``
    used to build their monthly invoices.
    """

    CASH = "cash"
    CREDIT_CARD = "credit_card"
    ACCOUNT_TYPES = [
        (CASH, "Cash"),
        (CREDIT_CARD, "Credit card"),
    ]
    CREDIT_CARD_FIELDS = ("credit_limit", "closing_day", "due_day")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="ledger_accounts"
    )
    name = models.CharField(max_length=100)
    type = models.CharField(max_length=12, choices=ACCOUNT_TYPES, default=CASH)
    balance = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    credit_limit = models.DecimalField(
        max_digits=15, decimal_places=2, null=True, blank=True
    )
    closing_day = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=DAY_OF_MONTH_VALIDATORS
    )
    due_day = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=DAY_OF_MONTH_VALIDATORS
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["user", "type"], name="ledger_acct_user_type_idx"),
            models.Index(fields=["type", "closing_day"], name="ledger_acct_type_closing_idx"),
        ]

    def __str__(self):
        """String representation of Account."""
        return f"{self.name} ({self.type})"

    @property
    def is_cash(self):
        return self.type == self.CASH

    @property
    def is_credit_card(self):
        return self.type == self.CREDIT_CARD

    def clean(self):
        """Validate that card-only fields match the account type."""
        super().clean()

        if self.is_cash:
            present = [
                field for field in self.CREDIT_CARD_FIELDS if getattr(self, field) is not None
            ]
            if present:
                logger.warning(
                    "Account validation failed - credit card fields on cash account",
                    extra={
                        "account_id": self.id if self.id else "new",
                        "fields": present,
                        "action": "account_validation_failed",
                        "component": "Account",
                        "severity": "medium",
                    },
                )
                raise ValidationError(
                    {field: "Only credit card accounts can set this field." for field in present}
                )

        if self.is_credit_card:
            missing = [
                field for field in ("closing_day", "due_day") if getattr(self, field) is None
            ]
            if missing:
                raise ValidationError(
                    {field: "Credit card accounts require this field." for field in missing}
                )


# -------------------------------------------------------------------
# CATEGORIES
# -------------------------------------------------------------------
# Flat per-user categories; managed by the category CRUD collaborator


class Category(models.Model):
    """Income or expense category owned by a user."""

    CATEGORY_TYPES = [
        ("income", "Income"),
        ("expense", "Expense"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="ledger_categories"
    )
    name = models.CharField(max_length=100)
    type = models.CharField(max_length=10, choices=CATEGORY_TYPES, default="expense")

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "Categories"

    def __str__(self):
        return self.name


# -------------------------------------------------------------------
# INVOICES
# -------------------------------------------------------------------
# One invoice per credit card and calendar month


class Invoice(models.Model):
    """
    Monthly credit-card invoice.

    ``total`` is maintained incrementally by the impact service while the
    invoice is open and recomputed from its transactions when it closes.
    ``paid_amount`` and ``payment_status`` move only through payments or
    direct status edits.
    """

    OPEN = "open"
    CLOSED = "closed"
    PAID = "paid"
    STATUS_CHOICES = [
        (OPEN, "Open"),
        (CLOSED, "Closed"),
        (PAID, "Paid"),
    ]

    PAYMENT_UNPAID = "unpaid"
    PAYMENT_PARTIAL = "partial"
    PAYMENT_PAID = "paid"
    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_UNPAID, "Unpaid"),
        (PAYMENT_PARTIAL, "Partially paid"),
        (PAYMENT_PAID, "Paid"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="ledger_invoices"
    )
    account = models.ForeignKey(Account, on_delete=models.CASCADE, related_name="invoices")
    year = models.PositiveSmallIntegerField(validators=[MinValueValidator(1900)])
    month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)]
    )
    total = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    paid_amount = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    due_date = models.DateField()
    closing_date = models.DateField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=OPEN)
    payment_status = models.CharField(
        max_length=10, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_UNPAID
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["year", "month"]
        constraints = [
            models.UniqueConstraint(
                fields=["account", "year", "month"],
                name="unique_invoice_per_account_month",
            )
        ]
        indexes = [
            models.Index(fields=["account", "status"], name="ledger_inv_account_status_idx"),
            models.Index(fields=["user", "due_date"], name="ledger_inv_user_due_idx"),
            models.Index(fields=["payment_status"], name="ledger_inv_payment_status_idx"),
        ]

    def __str__(self):
        """String representation of Invoice."""
        return f"{self.account.name} {self.month:02d}/{self.year} ({self.status})"


# -------------------------------------------------------------------
# TRANSACTIONS
# -------------------------------------------------------------------
# Single entries plus recurring/installment series (master + occurrences)


class Transaction(models.Model):
    """
    Financial transaction record.

    A transaction with ``parent`` unset is a series master when it is flagged
    recurring or installment; only masters carry the series configuration.
    Occurrences point to their master through ``parent`` and carry only
    ``installment_index``.
    """

    INCOME = "income"
    EXPENSE = "expense"
    TRANSACTION_TYPES = [
        (INCOME, "Income"),
        (EXPENSE, "Expense"),
    ]

    PENDING = "pending"
    SCHEDULED = "scheduled"
    CLEARED = "cleared"
    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (SCHEDULED, "Scheduled"),
        (CLEARED, "Cleared"),
    ]

    FREQUENCY_CHOICES = [
        ("day", "Daily"),
        ("week", "Weekly"),
        ("biweekly", "Biweekly"),
        ("month", "Monthly"),
        ("bimonthly", "Bimonthly"),
        ("quarter", "Quarterly"),
        ("year", "Yearly"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="ledger_transactions"
    )
    account = models.ForeignKey(Account, on_delete=models.CASCADE, related_name="transactions")
    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
    )
    # Invoice paid by this settlement transaction (set by the payment service)
    settled_invoice = models.ForeignKey(
        Invoice,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )
    parent = models.ForeignKey(
        "self",
        on_delete=models.RESTRICT,
        null=True,
        blank=True,
        related_name="children",
    )
    description = models.CharField(max_length=255)
    notes = models.TextField(blank=True)
    amount = models.DecimalField(
        max_digits=15, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))]
    )
    type = models.CharField(max_length=10, choices=TRANSACTION_TYPES)
    date = models.DateField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=PENDING)

    # Series configuration - masters only
    is_recurring = models.BooleanField(default=False)
    frequency = models.CharField(
        max_length=10, choices=FREQUENCY_CHOICES, null=True, blank=True
    )
    series_start_date = models.DateField(null=True, blank=True)
    is_installment = models.BooleanField(default=False)
    installment_count = models.PositiveSmallIntegerField(null=True, blank=True)
    installment_unit = models.CharField(
        max_length=10, choices=FREQUENCY_CHOICES, null=True, blank=True
    )
    # Position inside an installment series (1 for the master)
    installment_index = models.PositiveSmallIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["user", "date"], name="ledger_tx_user_date_idx"),
            models.Index(
                fields=["account", "type", "status", "date"], name="ledger_tx_acct_type_status_idx"
            ),
            models.Index(fields=["status", "date"], name="ledger_tx_status_date_idx"),
        ]
        ordering = ["-date", "-created_at"]

    def __str__(self):
        """String representation of Transaction."""
        return f"{self.description} | {self.type} | {self.amount} ({self.status})"

    @property
    def is_cleared(self):
        return self.status == self.CLEARED

    @property
    def is_series_master(self):
        return self.parent_id is None and (self.is_recurring or self.is_installment)

    @property
    def is_occurrence(self):
        return self.parent_id is not None

    def clean(self):
        """Validate transaction data and business rules."""
        super().clean()

        if self.amount is not None and self.amount <= 0:
            logger.warning(
                "Transaction validation failed - invalid amount",
                extra={
                    "transaction_id": self.id if self.id else "new",
                    "amount": str(self.amount),
                    "action": "transaction_validation_failed",
                    "component": "Transaction",
                    "severity": "medium",
                },
            )
            raise ValidationError("Transaction amount must be positive")

        if self.is_recurring and self.is_installment:
            raise ValidationError(
                "A transaction cannot be both recurring and an installment series."
            )

        if self.is_occurrence and (self.is_recurring or self.is_installment):
            raise ValidationError("Series occurrences cannot carry series flags.")
