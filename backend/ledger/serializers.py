"""
Read-side serializers for the ledger.

Writes go through the service layer; these serializers only render model
instances for the HTTP layer, with derived values taken from ``selectors``.
"""

import logging

from rest_framework import serializers

from . import selectors
from .models import Account, Invoice, Transaction

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------
# ACCOUNT SERIALIZER
# -------------------------------------------------------------------


class AccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = Account
        fields = [
            "id",
            "name",
            "type",
            "balance",
            "credit_limit",
            "closing_day",
            "due_day",
        ]
        read_only_fields = fields


# -------------------------------------------------------------------
# TRANSACTION SERIALIZERS
# -------------------------------------------------------------------


class OccurrenceSerializer(serializers.ModelSerializer):
    """Compact rendering of a series occurrence inside its master."""

    class Meta:
        model = Transaction
        fields = ["id", "description", "amount", "date", "status", "installment_index"]
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    """
    Transaction with its series context.

    Masters embed their occurrences ordered by date and the series size;
    occurrences expose ``parent_id`` only.
    """

    account_name = serializers.CharField(source="account.name", read_only=True)
    category_name = serializers.SerializerMethodField()
    occurrences = serializers.SerializerMethodField()
    series_size = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = [
            "id",
            "account_id",
            "account_name",
            "category_id",
            "category_name",
            "invoice_id",
            "settled_invoice_id",
            "parent_id",
            "description",
            "notes",
            "amount",
            "type",
            "date",
            "status",
            "is_recurring",
            "frequency",
            "series_start_date",
            "is_installment",
            "installment_count",
            "installment_unit",
            "installment_index",
            "occurrences",
            "series_size",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_category_name(self, obj):
        return obj.category.name if obj.category_id else None

    def get_occurrences(self, obj):
        if not obj.is_series_master:
            return []
        return OccurrenceSerializer(obj.children.order_by("date", "id"), many=True).data

    def get_series_size(self, obj):
        return selectors.series_occurrence_count(obj)


# -------------------------------------------------------------------
# INVOICE SERIALIZER
# -------------------------------------------------------------------


class InvoiceSerializer(serializers.ModelSerializer):
    account_name = serializers.CharField(source="account.name", read_only=True)
    remaining_amount = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = [
            "id",
            "account_id",
            "account_name",
            "year",
            "month",
            "total",
            "paid_amount",
            "remaining_amount",
            "due_date",
            "closing_date",
            "status",
            "payment_status",
        ]
        read_only_fields = fields

    def get_remaining_amount(self, obj):
        # Same string rendering as the model's DecimalFields
        return serializers.DecimalField(max_digits=15, decimal_places=2).to_representation(
            selectors.remaining_amount(obj)
        )
