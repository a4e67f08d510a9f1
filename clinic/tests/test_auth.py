import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from clinic.models import AuditEvent, Doctor, Patient, User
from clinic.tests.factories import PASSWORD, client_for, make_admin, make_doctor, make_patient

pytestmark = pytest.mark.django_db


def _register(client=None, **overrides):
    payload = {'email': 'new@example.com', 'password': PASSWORD, 'name': 'New Person'}
    payload.update(overrides)
    return (client or APIClient()).post(reverse('register'), payload, format='json')


def _login(email, password=PASSWORD):
    return APIClient().post(reverse('login'), {'email': email, 'password': password}, format='json')


def test_register_patient_defaults_role_and_creates_profile():
    r = _register(gender='female', bloodGroup='O+')
    assert r.status_code == 201, r.data
    assert r.data['message'] == 'User registered successfully'
    assert r.data['user']['role'] == 'patient'
    assert r.data['token'] and r.data['refresh']
    assert r.data['profile']['bloodGroup'] == 'O+'
    assert 'password' not in r.data['user']
    assert Patient.objects.filter(user__email='new@example.com').exists()


def test_register_normalizes_email_case():
    r = _register(email='  Mixed@Example.COM')
    assert r.status_code == 201
    assert r.data['user']['email'] == 'mixed@example.com'


def test_register_doctor_requires_professional_fields():
    r = _register(role='doctor')
    assert r.status_code == 400
    assert set(r.data['error']) >= {'specialty', 'qualification', 'licenseNumber'}

    r = _register(role='doctor', specialty='Cardiology', qualification='MD', licenseNumber='LIC1')
    assert r.status_code == 201
    assert r.data['profile']['licenseNumber'] == 'LIC1'
    assert Doctor.objects.get(user__email='new@example.com').specialty == 'Cardiology'


def test_register_rejects_duplicate_email():
    make_patient(email='taken@example.com')
    r = _register(email='TAKEN@example.com')
    assert r.status_code == 400
    assert r.data['error'] == {'email': ['User already exists with this email']}


def test_register_rejects_duplicate_license():
    make_doctor(license_number='LIC-DUP')
    r = _register(role='doctor', specialty='Neurology', qualification='MD', licenseNumber='LIC-DUP')
    assert r.status_code == 400
    assert 'licenseNumber' in r.data['error']
    assert not User.objects.filter(email='new@example.com').exists()


def test_register_rejects_weak_password():
    r = _register(password='password')
    assert r.status_code == 400
    assert 'password' in r.data['error']


def test_admin_accounts_need_an_admin_caller():
    r = _register(role='admin')
    assert r.status_code == 403
    assert r.data['message'] == 'Only admins can register admin accounts'

    r = _register(client_for(make_admin()), role='admin', email='second-admin@example.com')
    assert r.status_code == 201
    assert r.data['user']['role'] == 'admin'
    assert r.data['profile'] is None


def test_login_returns_tokens_usable_as_bearer():
    make_patient(email='p@example.com')
    r = _login('p@example.com')
    assert r.status_code == 200
    assert r.data['message'] == 'Login successful'

    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['token']}")
    me = client.get(reverse('profile'))
    assert me.status_code == 200
    assert me.data['user']['email'] == 'p@example.com'
    assert me.data['profile']['gender'] == 'female'


def test_login_failure_is_401_and_audited():
    make_patient(email='p@example.com')
    r = _login('p@example.com', 'wrong-password')
    assert r.status_code == 401
    assert r.data == {'message': 'Invalid credentials'}
    assert AuditEvent.objects.filter(action='login', detail__result='fail').exists()


def test_login_rejects_deactivated_account():
    patient = make_patient(email='p@example.com')
    patient.user.is_active = False
    patient.user.save()
    assert _login('p@example.com').status_code == 401


def test_profile_requires_authentication():
    r = APIClient().get(reverse('profile'))
    assert r.status_code == 401
    bad = APIClient()
    bad.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
    assert bad.get(reverse('profile')).status_code == 401


def test_refresh_rotates_and_blacklists_old_token():
    make_patient(email='p@example.com')
    refresh = _login('p@example.com').data['refresh']

    r = APIClient().post(reverse('token-refresh'), {'refresh': refresh}, format='json')
    assert r.status_code == 200
    assert r.data['token']
    assert r.data['refresh'] != refresh

    again = APIClient().post(reverse('token-refresh'), {'refresh': refresh}, format='json')
    assert again.status_code == 401


def test_logout_blacklists_refresh_token():
    make_patient(email='p@example.com')
    tokens = _login('p@example.com').data
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['token']}")

    r = client.post(reverse('logout'), {'refresh': tokens['refresh']}, format='json')
    assert r.status_code == 200
    r = APIClient().post(reverse('token-refresh'), {'refresh': tokens['refresh']}, format='json')
    assert r.status_code == 401


def test_logout_rejects_someone_elses_token():
    make_patient(email='p@example.com')
    other = make_patient(email='o@example.com')
    tokens = _login('p@example.com').data
    r = client_for(other.user).post(reverse('logout'), {'refresh': tokens['refresh']}, format='json')
    assert r.status_code == 400


def test_login_is_rate_limited():
    make_patient(email='p@example.com')
    for _ in range(10):
        _login('p@example.com', 'wrong-password')
    r = _login('p@example.com')
    assert r.status_code == 429


def test_users_endpoints(admin, patient):
    assert client_for(patient.user).get(reverse('users')).status_code == 403

    r = client_for(admin).get(reverse('users'), {'role': 'patient'})
    assert r.status_code == 200
    assert [u['email'] for u in r.data['users']] == [patient.user.email]

    url = reverse('user-detail', args=[patient.user.id])
    r = client_for(patient.user).put(url, {'name': 'Renamed', 'bloodGroup': 'AB-'}, format='json')
    assert r.status_code == 200
    patient.refresh_from_db()
    patient.user.refresh_from_db()
    assert patient.user.name == 'Renamed'
    assert patient.blood_group == 'AB-'

    assert client_for(patient.user).delete(url).status_code == 403
    assert client_for(admin).delete(url).status_code == 200
    assert not User.objects.filter(pk=patient.user.id).exists()
