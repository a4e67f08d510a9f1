import json

import pytest
from asgiref.sync import async_to_sync
from channels.testing import WebsocketCommunicator
from rest_framework_simplejwt.tokens import AccessToken

from clinic.models import Appointment, TelemedicineSession
from clinic.tests.factories import make_appointment, make_doctor, make_patient
from telehealth.asgi import application

pytestmark = pytest.mark.django_db(transaction=True)


@pytest.fixture
def session():
    appt = make_appointment(make_patient(), make_doctor(), type=Appointment.TYPE_VIDEO)
    return TelemedicineSession.objects.get(appointment=appt)


def _path(session, user=None):
    path = f'/ws/telemedicine/{session.id}/'
    if user is not None:
        path += f'?token={AccessToken.for_user(user)}'
    return path


@async_to_sync
async def _connect(path):
    communicator = WebsocketCommunicator(application, path)
    connected, code = await communicator.connect()
    message = None
    if connected:
        message = json.loads(await communicator.receive_from())
        await communicator.disconnect()
    return connected, code, message


def test_participant_gets_current_status(session):
    connected, _, message = _connect(_path(session, session.appointment.patient.user))
    assert connected
    assert message == {
        'type': 'status',
        'sessionId': str(session.id),
        'appointmentId': str(session.appointment_id),
        'status': 'scheduled',
    }


def test_anonymous_socket_is_closed(session):
    connected, code, _ = _connect(_path(session))
    assert not connected
    assert code == 4001


def test_outsider_socket_is_closed(session):
    outsider = make_patient(email='out@example.com')
    connected, code, _ = _connect(_path(session, outsider.user))
    assert not connected
    assert code == 4003
