from io import StringIO

import pytest
from django.core.cache import cache
from django.core.management import call_command

from clinic.models import Doctor, Patient, User
from clinic.services import doctors as doctor_service

pytestmark = pytest.mark.django_db


def test_ensure_demo_users_is_idempotent():
    out = StringIO()
    call_command('ensure_demo_users', stdout=out)
    call_command('ensure_demo_users', '--password', 'Other-pass-2024', stdout=out)
    assert User.objects.filter(email__in=['admin@example.com', 'doctor@example.com', 'patient@example.com']).count() == 3
    assert Doctor.objects.get(user__email='doctor@example.com').license_number == 'DEMO-0001'
    assert Patient.objects.filter(user__email='patient@example.com').count() == 1
    assert User.objects.get(email='admin@example.com').check_password('Other-pass-2024')


def test_refresh_doctor_directory_warms_cache(doctor):
    out = StringIO()
    call_command('refresh_doctor_directory', stdout=out)
    assert 'Directory refreshed: 1 doctors, 1 accepting video calls' in out.getvalue()
    key = doctor_service.directory_cache_key()
    assert cache.get(key)['pagination']['total'] == 1
