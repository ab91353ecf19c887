import pytest
from django.contrib.auth import get_user_model

from ..models import Customer, Store


@pytest.fixture
def store(db):
    return Store.objects.create(name="Main store", currency="PYG")


@pytest.fixture
def other_store(db):
    return Store.objects.create(name="Other store", currency="PYG")


@pytest.fixture
def customer(store):
    return Customer.objects.create(
        store=store, name="Ana Benítez", phone="+595981000111"
    )


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username="staff", email="staff@example.com", password="password"
    )
