"""
Ledger error taxonomy.

Service-layer errors are REST framework exceptions so the API layer can render
them with the matching HTTP status without translation.
"""

from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, ValidationError


class LedgerNotFound(NotFound):
    """Referenced account, category, invoice or transaction is absent or not owned by the caller."""

    default_detail = "Resource not found."
    default_code = "not_found"


class LedgerBadRequest(ValidationError):
    """
    Business rule violation in the request.

    ``fields`` lists the offending input fields when the rule is field-specific
    (e.g. series configuration sent for a series occurrence).
    """

    default_code = "bad_request"

    def __init__(self, detail=None, code=None, fields=None):
        super().__init__(detail, code)
        self.fields = list(fields or [])


class LedgerConflict(APIException):
    """Duplicate invoice for the same account, year and month."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists."
    default_code = "conflict"


class LedgerIntegrityError(APIException):
    """Data-integrity fault, e.g. an account vanished before its impact was applied."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Ledger integrity error."
    default_code = "ledger_integrity_error"
