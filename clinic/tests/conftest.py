import pytest
from django.core.cache import cache

from .factories import make_admin, make_doctor, make_patient


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters and the doctor directory live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def patient(db):
    return make_patient()


@pytest.fixture
def doctor(db):
    return make_doctor()


@pytest.fixture
def admin(db):
    return make_admin()
