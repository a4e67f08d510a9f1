"""End-to-end flows through the HTTP API with real JWTs."""
import pytest
from rest_framework.test import APIClient

from clinic.models import Appointment, MedicalRecord, TelemedicineSession
from clinic.tests.factories import PASSWORD

pytestmark = pytest.mark.django_db


def _signup(email, name, **extra):
    client = APIClient()
    r = client.post('/api/auth/register', {'email': email, 'password': PASSWORD, 'name': name, **extra},
                    format='json')
    assert r.status_code == 201, r.data
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['token']}")
    return client, r.data


def test_double_booking_then_record_completes_visit():
    doc_client, doc = _signup('card@example.com', 'Dr Heart', role='doctor',
                              specialty='Cardiology', qualification='MD', licenseNumber='LIC1')
    pat_client, pat = _signup('p1@example.com', 'First Patient')
    other_client, other = _signup('p2@example.com', 'Second Patient')
    doctor_id = doc['profile']['id']

    r = pat_client.post('/api/appointments', {
        'patientId': pat['profile']['id'], 'doctorId': doctor_id,
        'date': '2030-03-14', 'time': '09:00', 'type': 'in-person', 'reason': 'Chest pain',
    }, format='json')
    assert r.status_code == 201, r.data
    appt_id = r.data['appointment']['id']

    r = other_client.post('/api/appointments', {
        'patientId': other['profile']['id'], 'doctorId': doctor_id,
        'date': '2030-03-14', 'time': '09:00',
    }, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Doctor already has an appointment at this time'
    assert Appointment.objects.count() == 1

    r = doc_client.post('/api/medical-records', {
        'patientId': pat['profile']['id'], 'appointmentId': appt_id, 'diagnosis': 'Hypertension',
    }, format='json')
    assert r.status_code == 201, r.data
    record = MedicalRecord.objects.get()
    assert record.diagnosis == 'Hypertension'
    assert str(record.appointment_id) == appt_id
    assert Appointment.objects.get(pk=appt_id).status == 'completed'

    r = pat_client.get(f"/api/patients/{pat['profile']['id']}/medical-records")
    assert [x['diagnosis'] for x in r.data['medicalRecords']] == ['Hypertension']


def test_video_consultation_lifecycle():
    doc_client, doc = _signup('video@example.com', 'Dr Screen', role='doctor', specialty='Dermatology',
                              qualification='MD', licenseNumber='LIC2', isAvailableForVideoCall=True)
    _, pat = _signup('p@example.com', 'Video Patient')

    r = doc_client.post('/api/appointments', {
        'patientId': pat['profile']['id'], 'doctorId': doc['profile']['id'],
        'date': '2030-04-02', 'time': '15:30', 'type': 'video',
    }, format='json')
    assert r.status_code == 201, r.data
    session = r.data['appointment']['telemedicineSession']
    assert session['status'] == 'scheduled'

    r = doc_client.post(f"/api/telemedicine/{session['id']}/start")
    assert r.status_code == 200
    assert r.data['session']['status'] == 'in-progress'
    assert r.data['session']['startTime']

    r = doc_client.post(f"/api/telemedicine/{session['id']}/end", {'notes': 'Follow up in 2 weeks'}, format='json')
    assert r.status_code == 200
    assert r.data['session']['status'] == 'completed'
    assert r.data['session']['endTime']

    row = TelemedicineSession.objects.select_related('appointment').get(pk=session['id'])
    assert row.notes == 'Follow up in 2 weeks'
    assert row.appointment.status == 'completed'
