"""
Test factories for the ledger models.
"""

from datetime import date
from decimal import Decimal

import factory
from django.contrib.auth import get_user_model
from factory.django import DjangoModelFactory
from faker import Faker

from ledger.models import Account, Category, Invoice, Transaction

fake = Faker()
User = get_user_model()


class UserFactory(DjangoModelFactory):
    class Meta:
        model = User
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"user_{n}")
    email = factory.Sequence(lambda n: f"user_{n}@example.com")
    password = factory.PostGenerationMethodCall("set_password", "testpass123")
    is_active = True
    first_name = factory.LazyAttribute(lambda _: fake.first_name())
    last_name = factory.LazyAttribute(lambda _: fake.last_name())

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override to use create_user method for proper password handling."""
        manager = cls._get_manager(model_class)
        return manager.create_user(*args, **kwargs)


class CashAccountFactory(DjangoModelFactory):
    class Meta:
        model = Account

    user = factory.SubFactory(UserFactory)
    name = factory.Sequence(lambda n: f"Checking {n}")
    type = Account.CASH
    balance = Decimal("0.00")


class CreditCardFactory(DjangoModelFactory):
    class Meta:
        model = Account

    user = factory.SubFactory(UserFactory)
    name = factory.LazyAttribute(lambda _: f"{fake.company()} Card")
    type = Account.CREDIT_CARD
    credit_limit = Decimal("5000.00")
    closing_day = 10
    due_day = 20


class CategoryFactory(DjangoModelFactory):
    class Meta:
        model = Category

    user = factory.SubFactory(UserFactory)
    name = factory.Sequence(lambda n: f"Category {n}")
    type = "expense"


class InvoiceFactory(DjangoModelFactory):
    class Meta:
        model = Invoice

    account = factory.SubFactory(CreditCardFactory)
    user = factory.LazyAttribute(lambda o: o.account.user)
    year = 2024
    month = 3
    due_date = factory.LazyAttribute(lambda o: date(o.year, o.month, o.account.due_day))
    closing_date = factory.LazyAttribute(lambda o: date(o.year, o.month, o.account.closing_day))


class TransactionFactory(DjangoModelFactory):
    class Meta:
        model = Transaction

    account = factory.SubFactory(CashAccountFactory)
    user = factory.LazyAttribute(lambda o: o.account.user)
    description = factory.LazyAttribute(lambda _: fake.sentence(nb_words=3))
    amount = Decimal("100.00")
    type = Transaction.EXPENSE
    date = date(2024, 3, 5)
    status = Transaction.PENDING
