import factory
from django.contrib.auth import get_user_model
from factory.django import DjangoModelFactory
from inventory.models import StockRecord


class UserFactory(DjangoModelFactory):
    class Meta:
        model = get_user_model()

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.Faker("email")
    password = factory.PostGenerationMethodCall("set_password", "pass")


class StaffUserFactory(UserFactory):
    is_staff = True


class StockRecordFactory(DjangoModelFactory):
    """Empty stock record; use the services to book stock so the ledger reconciles."""

    class Meta:
        model = StockRecord

    product = factory.SubFactory("catalog.tests.factories.ProductFactory")
    quantity_on_hand = 0
    reorder_level = 0
