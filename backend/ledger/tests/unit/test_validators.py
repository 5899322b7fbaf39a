# ledger/tests/unit/test_validators.py
from datetime import date
from decimal import Decimal

import pytest

from ledger.exceptions import LedgerBadRequest
from ledger.validators import (
    validate_amount,
    validate_date,
    validate_series_fields,
    validate_transaction_type,
)


class TestSeriesFieldsOnOccurrence:
    @pytest.mark.parametrize(
        "field,value",
        [
            ("frequency", "month"),
            ("series_start_date", "2024-01-01"),
            ("installment_count", 3),
            ("installment_unit", "month"),
            ("is_recurring", False),
            ("installment_index", 2),
        ],
    )
    def test_any_series_key_rejected(self, field, value):
        with pytest.raises(LedgerBadRequest) as exc_info:
            validate_series_fields({field: value}, is_occurrence=True)

        assert exc_info.value.fields == [field]

    def test_all_offending_fields_named(self):
        with pytest.raises(LedgerBadRequest) as exc_info:
            validate_series_fields(
                {"frequency": "week", "installment_unit": "month", "amount": 10},
                is_occurrence=True,
            )

        assert exc_info.value.fields == ["frequency", "installment_unit"]
        assert "frequency" in str(exc_info.value.detail)

    def test_plain_fields_allowed(self):
        validate_series_fields({"amount": 10, "description": "x"}, is_occurrence=True)


class TestSeriesFieldsOnMaster:
    def test_both_flags_rejected(self):
        with pytest.raises(LedgerBadRequest) as exc_info:
            validate_series_fields(
                {
                    "is_recurring": True,
                    "frequency": "month",
                    "is_installment": True,
                    "installment_count": 2,
                    "installment_unit": "month",
                }
            )

        assert "both recurring and an installment" in str(exc_info.value.detail)

    def test_recurring_fields_without_flag(self):
        with pytest.raises(LedgerBadRequest) as exc_info:
            validate_series_fields({"frequency": "month"})

        assert exc_info.value.fields == ["frequency"]

    def test_installment_fields_without_flag(self):
        with pytest.raises(LedgerBadRequest) as exc_info:
            validate_series_fields({"installment_count": 3, "installment_unit": "month"})

        assert exc_info.value.fields == ["installment_count", "installment_unit"]

    def test_recurring_requires_known_frequency(self):
        with pytest.raises(LedgerBadRequest):
            validate_series_fields({"is_recurring": True, "frequency": "hourly"})

    @pytest.mark.parametrize("count", [0, 121, "3", None, True])
    def test_installment_count_bounds(self, count):
        with pytest.raises(LedgerBadRequest):
            validate_series_fields(
                {"is_installment": True, "installment_count": count, "installment_unit": "month"}
            )

    def test_custom_installment_ceiling(self):
        with pytest.raises(LedgerBadRequest):
            validate_series_fields(
                {"is_installment": True, "installment_count": 13, "installment_unit": "month"},
                max_installments=12,
            )

    def test_valid_configurations(self):
        validate_series_fields({})
        validate_series_fields({"is_recurring": True, "frequency": "biweekly"})
        validate_series_fields(
            {"is_installment": True, "installment_count": 120, "installment_unit": "month"}
        )
        validate_series_fields({"is_recurring": False, "frequency": None})


class TestScalarValidators:
    def test_amount(self):
        assert validate_amount("10.50") == Decimal("10.50")
        for bad in ("0", "-1", "abc", None, "NaN"):
            with pytest.raises(LedgerBadRequest):
                validate_amount(bad)

    def test_amount_rejects_sub_cent_precision(self):
        assert validate_amount("10.500") == Decimal("10.50")
        assert validate_amount(25) == Decimal("25.00")
        for bad in ("10.005", "0.001"):
            with pytest.raises(LedgerBadRequest) as exc:
                validate_amount(bad)
            assert exc.value.fields == ["amount"]

    def test_amount_rejects_values_beyond_column_size(self):
        with pytest.raises(LedgerBadRequest):
            validate_amount("10000000000000")

    def test_type(self):
        assert validate_transaction_type("income") == "income"
        with pytest.raises(LedgerBadRequest):
            validate_transaction_type("transfer")

    def test_date(self):
        assert validate_date("2024-03-01") == date(2024, 3, 1)
        assert validate_date(date(2024, 3, 1)) == date(2024, 3, 1)
        for bad in ("2024-02-30", "01/03/2024", None):
            with pytest.raises(LedgerBadRequest):
                validate_date(bad)
