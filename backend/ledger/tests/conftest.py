# ledger/tests/conftest.py
from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from ledger.models import Account, Category
from ledger.services import build_ledger_services

User = get_user_model()

# Fixed "today" for every service built by the fixtures below
TODAY = date(2024, 3, 10)

# =============================================================================
# USER FIXTURES
# =============================================================================


@pytest.fixture
def test_user(db):
    """Primary test user"""
    return User.objects.create_user(
        username="testuser", email="test@example.com", password="testpass123"
    )


@pytest.fixture
def other_user(db):
    """Second user for ownership checks"""
    return User.objects.create_user(
        username="otheruser", email="other@example.com", password="testpass123"
    )


# =============================================================================
# ACCOUNT FIXTURES
# =============================================================================


@pytest.fixture
def cash_account(test_user):
    return Account.objects.create(
        user=test_user, name="Checking", type=Account.CASH, balance=Decimal("500.00")
    )


@pytest.fixture
def credit_card(test_user):
    """Credit card closing on the 10th, due on the 20th"""
    return Account.objects.create(
        user=test_user,
        name="Visa",
        type=Account.CREDIT_CARD,
        credit_limit=Decimal("5000.00"),
        closing_day=10,
        due_day=20,
    )


@pytest.fixture
def expense_category(test_user):
    return Category.objects.create(user=test_user, name="Groceries", type="expense")


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def services(db, today):
    """Ledger services wired with a fixed clock"""
    return build_ledger_services(clock=lambda: today)
