"""
Transaction lifecycle service.

Create, read, update and delete user transactions while keeping account
balances and invoice totals consistent with every state change.
"""

import logging

from django.db import transaction as db_transaction

from .. import selectors
from ..exceptions import LedgerBadRequest, LedgerNotFound
from ..models import Account, Category, Invoice, Transaction
from ..validators import (
    OCCURRENCE_LOCKED_FIELDS,
    SERIES_CONFIG_FIELDS,
    validate_amount,
    validate_date,
    validate_series_fields,
    validate_transaction_type,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "description",
    "notes",
    "amount",
    "type",
    "date",
    "status",
    "account_id",
    "category_id",
    "invoice_id",
}
# Changes to these move money, so a cleared transaction is reverted first
IMPACT_FIELDS = ("status", "amount", "type", "account_id", "invoice_id")
STATUSES = {choice for choice, _ in Transaction.STATUS_CHOICES}


class TransactionService:
    """
    Entry point for transaction writes coming from the API layer.

    Ownership checks and input validation happen here; series generation is
    delegated to ``series_service`` and every balance/invoice change goes
    through ``impact_service``.
    """

    def __init__(self, series_service, impact_service, invoice_service, max_installments=120):
        self.series_service = series_service
        self.impact_service = impact_service
        self.invoice_service = invoice_service
        self.max_installments = max_installments

    # -------------------------------------------------------------------
    # CREATE
    # -------------------------------------------------------------------

    def create_transaction(self, user, data) -> Transaction:
        """
        Create a transaction, or the master and occurrences of a series.

        Args:
            user: Owner of the transaction
            data: Input mapping with ``account_id``, ``amount``, ``type``,
                ``date``, ``description`` and optionally ``category_id``,
                ``invoice_id``, ``notes``, ``forecast`` and series fields

        Returns:
            Transaction: Created transaction (series master for series)

        Raises:
            LedgerNotFound: If account, category or invoice is not the user's
            LedgerBadRequest: If input or series configuration is invalid
        """
        logger.info(
            "Transaction create initiated",
            extra={
                "user_id": user.id,
                "account_id": data.get("account_id"),
                "is_recurring": bool(data.get("is_recurring")),
                "is_installment": bool(data.get("is_installment")),
                "action": "transaction_create_start",
                "component": "TransactionService",
            },
        )

        account = self._get_account(user, data.get("account_id"))
        category = self._get_category(user, data.get("category_id"))

        description = (data.get("description") or "").strip()
        if not description:
            raise LedgerBadRequest("Description is required", fields=["description"])

        validate_series_fields(data, max_installments=self.max_installments)

        fields = {key: data[key] for key in SERIES_CONFIG_FIELDS if key in data}
        if fields.get("series_start_date"):
            fields["series_start_date"] = validate_date(
                fields["series_start_date"], "series_start_date"
            )
        fields.update(
            description=description,
            notes=data.get("notes") or "",
            amount=validate_amount(data.get("amount")),
            type=validate_transaction_type(data.get("type")),
            date=validate_date(data.get("date")),
            forecast=bool(data.get("forecast")),
            invoice_id=data.get("invoice_id"),
        )

        return self.series_service.create_series(user, account, fields, category=category)

    # -------------------------------------------------------------------
    # READ
    # -------------------------------------------------------------------

    def list_transactions(self, user, filters=None, page=1, page_size=20):
        """Paged listing, see ``selectors.list_transactions``."""
        return selectors.list_transactions(user, filters, page=page, page_size=page_size)

    def get_transaction(self, user, transaction_id) -> Transaction:
        transaction = (
            Transaction.objects.select_related("account", "category", "invoice", "parent")
            .filter(id=transaction_id, user=user)
            .first()
        )
        if transaction is None:
            raise LedgerNotFound("Transaction not found")
        return transaction

    # -------------------------------------------------------------------
    # UPDATE
    # -------------------------------------------------------------------

    @db_transaction.atomic
    def update_transaction(self, user, transaction_id, patch) -> Transaction:
        """
        Apply a partial update to a transaction.

        A cleared transaction whose status, amount, type, account or invoice
        changes has its old impact reverted before the update and the new
        impact applied afterwards if it is still cleared. Credit-card expenses
        moved to another account or date without an explicit invoice are
        re-assigned to the invoice covering the new date.

        Args:
            user: Owner of the transaction
            transaction_id: Transaction to update
            patch: Mapping of fields to change

        Returns:
            Transaction: Updated transaction

        Raises:
            LedgerNotFound: If the transaction or a new reference is not the user's
            LedgerBadRequest: If the patch touches series fields of an
                occurrence or carries invalid values
        """
        transaction = self._lock_transaction(user, transaction_id)

        unknown = sorted(set(patch) - EDITABLE_FIELDS - set(OCCURRENCE_LOCKED_FIELDS))
        if unknown:
            raise LedgerBadRequest(
                "Fields cannot be updated: " + ", ".join(unknown), fields=unknown
            )

        series_patch = {key: patch[key] for key in OCCURRENCE_LOCKED_FIELDS if key in patch}
        if transaction.is_occurrence:
            validate_series_fields(patch, is_occurrence=True)
        elif series_patch:
            if "installment_index" in series_patch:
                raise LedgerBadRequest(
                    "installment_index is managed by the series", fields=["installment_index"]
                )
            merged = {key: getattr(transaction, key) for key in SERIES_CONFIG_FIELDS}
            merged.update(series_patch)
            validate_series_fields(merged, max_installments=self.max_installments)

        new_values = self._resolve_new_values(user, transaction, patch)

        impact_changed = any(
            new_values[field] != getattr(transaction, field) for field in IMPACT_FIELDS
        )
        was_cleared = transaction.is_cleared
        if was_cleared and impact_changed:
            self.impact_service.revert_impact(transaction)

        for field, value in new_values.items():
            setattr(transaction, field, value)
        for field, value in series_patch.items():
            if field == "series_start_date" and value:
                value = validate_date(value, field)
            setattr(transaction, field, value)
        transaction.save()

        if transaction.is_cleared and impact_changed:
            self.impact_service.apply_impact(transaction)

        logger.info(
            "Transaction updated",
            extra={
                "user_id": user.id,
                "transaction_id": transaction.id,
                "fields": sorted(patch),
                "was_cleared": was_cleared,
                "impact_changed": impact_changed,
                "action": "transaction_update_success",
                "component": "TransactionService",
            },
        )
        return transaction

    def _resolve_new_values(self, user, transaction, patch):
        values = {
            "description": transaction.description,
            "notes": transaction.notes,
            "amount": transaction.amount,
            "type": transaction.type,
            "date": transaction.date,
            "status": transaction.status,
            "account_id": transaction.account_id,
            "category_id": transaction.category_id,
            "invoice_id": transaction.invoice_id,
        }

        if "description" in patch:
            description = (patch["description"] or "").strip()
            if not description:
                raise LedgerBadRequest("Description is required", fields=["description"])
            values["description"] = description
        if "notes" in patch:
            values["notes"] = patch["notes"] or ""
        if "amount" in patch:
            values["amount"] = validate_amount(patch["amount"])
        if "type" in patch:
            values["type"] = validate_transaction_type(patch["type"])
        if "date" in patch:
            values["date"] = validate_date(patch["date"])
        if "status" in patch:
            if patch["status"] not in STATUSES:
                raise LedgerBadRequest(
                    "Status must be one of: " + ", ".join(sorted(STATUSES)), fields=["status"]
                )
            values["status"] = patch["status"]
        if "category_id" in patch:
            category = self._get_category(user, patch["category_id"])
            values["category_id"] = category.id if category else None

        account = transaction.account
        if "account_id" in patch and patch["account_id"] != transaction.account_id:
            account = self._get_account(user, patch["account_id"])
        values["account_id"] = account.id

        if "invoice_id" in patch and patch["invoice_id"] is not None:
            if account.is_cash:
                raise LedgerBadRequest(
                    "Cash account transactions cannot be linked to an invoice",
                    fields=["invoice_id"],
                )
            invoice = Invoice.objects.filter(
                id=patch["invoice_id"], user=user, account=account
            ).first()
            if invoice is None:
                raise LedgerNotFound("Invoice not found for this account")
            values["invoice_id"] = invoice.id
        elif "invoice_id" in patch:
            values["invoice_id"] = None
        elif account.is_cash:
            values["invoice_id"] = None
        elif account.id != transaction.account_id or values["date"] != transaction.date:
            if values["type"] == Transaction.EXPENSE:
                values["invoice_id"] = self.invoice_service.resolve(account, values["date"]).id
            elif account.id != transaction.account_id:
                values["invoice_id"] = None

        return values

    # -------------------------------------------------------------------
    # DELETE
    # -------------------------------------------------------------------

    @db_transaction.atomic
    def delete_transaction(self, user, transaction_id, delete_series=False):
        """
        Delete a transaction, reverting its impact when it was cleared.

        Series masters can only be removed together with all their
        occurrences, requested through ``delete_series``.

        Returns:
            int: Number of transactions deleted

        Raises:
            LedgerNotFound: If the transaction is not the user's
            LedgerBadRequest: If a series master is deleted without delete_series
        """
        transaction = self._lock_transaction(user, transaction_id)

        deleted = 0
        if transaction.is_series_master:
            if not delete_series:
                logger.warning(
                    "Series master delete rejected without delete_series",
                    extra={
                        "user_id": user.id,
                        "transaction_id": transaction.id,
                        "action": "transaction_delete_rejected",
                        "component": "TransactionService",
                        "severity": "low",
                    },
                )
                raise LedgerBadRequest(
                    "This transaction starts a series; pass delete_series to delete "
                    "the whole series",
                    fields=["delete_series"],
                )

            children = list(transaction.children.select_for_update().order_by("date"))
            for child in children:
                if child.is_cleared:
                    self.impact_service.revert_impact(child)
            deleted += Transaction.objects.filter(
                id__in=[child.id for child in children]
            ).delete()[0]

        if transaction.is_cleared:
            self.impact_service.revert_impact(transaction)
        transaction.delete()
        deleted += 1

        logger.info(
            "Transaction deleted",
            extra={
                "user_id": user.id,
                "transaction_id": transaction_id,
                "deleted_count": deleted,
                "delete_series": delete_series,
                "action": "transaction_delete_success",
                "component": "TransactionService",
            },
        )
        return deleted

    # -------------------------------------------------------------------
    # LOOKUPS
    # -------------------------------------------------------------------

    def _lock_transaction(self, user, transaction_id):
        transaction = (
            Transaction.objects.select_for_update()
            .filter(id=transaction_id, user=user)
            .first()
        )
        if transaction is None:
            logger.warning(
                "Transaction not found for user",
                extra={
                    "user_id": user.id,
                    "transaction_id": transaction_id,
                    "action": "transaction_not_found",
                    "component": "TransactionService",
                    "severity": "low",
                },
            )
            raise LedgerNotFound("Transaction not found")
        return transaction

    def _get_account(self, user, account_id):
        if account_id is None:
            raise LedgerBadRequest("account_id is required", fields=["account_id"])
        account = Account.objects.filter(id=account_id, user=user).first()
        if account is None:
            raise LedgerNotFound("Account not found")
        return account

    def _get_category(self, user, category_id):
        if category_id is None:
            return None
        category = Category.objects.filter(id=category_id, user=user).first()
        if category is None:
            raise LedgerNotFound("Category not found")
        return category
