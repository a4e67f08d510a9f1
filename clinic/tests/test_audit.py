import pytest

from clinic.services import audit
from clinic.tests.factories import client_for

pytestmark = pytest.mark.django_db


def test_appointment_changes_are_audited(patient, doctor):
    r = client_for(patient.user).post('/api/appointments', {
        'patientId': str(patient.id), 'doctorId': str(doctor.id), 'date': '2030-05-02', 'time': '08:00',
    }, format='json')
    appt_id = r.data['appointment']['id']
    client_for(patient.user).put(f'/api/appointments/{appt_id}', {'status': 'cancelled'}, format='json')

    events = audit.events_for('appointment', appt_id)
    assert [e.action for e in events] == ['appointment_create', 'appointment_update']
    assert {e.user_id for e in events} == {patient.user.id}
