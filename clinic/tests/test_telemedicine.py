import datetime
from unittest import mock

import pytest
import requests
from django.db.models.query import QuerySet
from django.test import override_settings

from clinic.exceptions import ProviderError
from clinic.models import Appointment, TelemedicineSession
from clinic.services import telemedicine as session_service
from clinic.services.video import MockVideoProvider, ZoomVideoProvider, get_video_provider
from clinic.tests.factories import client_for, make_admin, make_appointment, make_doctor, make_patient

pytestmark = pytest.mark.django_db


@pytest.fixture
def video_appt(patient, doctor):
    return make_appointment(patient, doctor, type=Appointment.TYPE_VIDEO)


def _session(appt):
    return TelemedicineSession.objects.get(appointment=appt)


def test_mock_provider_fabricates_zoom_style_meeting():
    start = datetime.datetime(2030, 5, 1, 10, 0, tzinfo=datetime.timezone.utc)
    m = MockVideoProvider().create_meeting('topic', start, 30)
    assert len(m.meeting_id) == 9 and m.meeting_id.isdigit()
    assert len(m.password) == 8
    assert m.join_url == f'https://zoom.us/j/{m.meeting_id}?pwd={m.password}'
    assert m.host_url.startswith(f'https://zoom.us/s/{m.meeting_id}?')
    assert m.start_time == start and m.duration == 30


def test_provider_is_selected_from_settings():
    assert isinstance(get_video_provider(), MockVideoProvider)
    with override_settings(VIDEO_PROVIDER='clinic.services.video.ZoomVideoProvider'):
        assert isinstance(get_video_provider(), ZoomVideoProvider)


@override_settings(ZOOM_API_BASE='https://zoom.test/v2', ZOOM_USER_ID='me', ZOOM_ACCESS_TOKEN='tok')
def test_zoom_provider_posts_meeting_request():
    resp = mock.Mock()
    resp.raise_for_status.return_value = None
    resp.json.return_value = {
        'id': 123456789, 'password': 'pw', 'join_url': 'https://zoom.test/j/123456789',
        'start_url': 'https://zoom.test/s/123456789', 'duration': 45,
    }
    start = datetime.datetime(2030, 5, 1, 10, 0, tzinfo=datetime.timezone.utc)
    with mock.patch('clinic.services.video.requests.post', return_value=resp) as post:
        m = ZoomVideoProvider().create_meeting('Consult', start, 45)
    url = post.call_args.args[0]
    kwargs = post.call_args.kwargs
    assert url == 'https://zoom.test/v2/users/me/meetings'
    assert kwargs['headers'] == {'Authorization': 'Bearer tok'}
    assert kwargs['json']['start_time'] == '2030-05-01T10:00:00Z'
    assert m.meeting_id == '123456789'
    assert m.host_url == 'https://zoom.test/s/123456789'


def test_zoom_provider_failure_raises_provider_error():
    with mock.patch('clinic.services.video.requests.post', side_effect=requests.ConnectionError('down')):
        with pytest.raises(ProviderError):
            ZoomVideoProvider().create_meeting('Consult', datetime.datetime(2030, 5, 1, tzinfo=datetime.timezone.utc), 30)


def test_provision_fills_meeting_details(doctor, video_appt):
    r = client_for(doctor.user).post('/api/telemedicine', {'appointmentId': str(video_appt.id)}, format='json')
    assert r.status_code == 200
    assert r.data['message'] == 'Telemedicine session updated successfully'
    session = r.data['session']
    assert session['status'] == 'scheduled'
    assert session['meetingId'] and session['joinUrl'] and session['hostUrl']
    assert session['duration'] == 30
    assert session['startTime'].startswith('2030-05-01T10:00:00')


def test_provision_creates_missing_session(doctor, video_appt):
    TelemedicineSession.objects.filter(appointment=video_appt).delete()
    r = client_for(doctor.user).post('/api/telemedicine', {'appointmentId': str(video_appt.id)}, format='json')
    assert r.status_code == 201
    assert TelemedicineSession.objects.filter(appointment=video_appt).count() == 1


def test_provision_rejects_in_person_appointment(patient, doctor):
    appt = make_appointment(patient, doctor)
    r = client_for(doctor.user).post('/api/telemedicine', {'appointmentId': str(appt.id)}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Appointment is not a video consultation'


def test_provision_by_other_doctor_or_patient_is_forbidden(patient, video_appt):
    stranger = make_doctor(email='s@example.com', license_number='LIC-S')
    r = client_for(stranger.user).post('/api/telemedicine', {'appointmentId': str(video_appt.id)}, format='json')
    assert r.status_code == 403
    r = client_for(patient.user).post('/api/telemedicine', {'appointmentId': str(video_appt.id)}, format='json')
    assert r.status_code == 403


def test_provision_surfaces_provider_failure_as_502(doctor, video_appt):
    with mock.patch.object(MockVideoProvider, 'create_meeting', side_effect=ProviderError('boom')):
        r = client_for(doctor.user).post('/api/telemedicine', {'appointmentId': str(video_appt.id)}, format='json')
    assert r.status_code == 502
    assert r.data == {'message': 'boom'}


def test_start_then_end_completes_appointment(doctor, video_appt):
    client = client_for(doctor.user)
    session = _session(video_appt)
    client.post('/api/telemedicine', {'appointmentId': str(video_appt.id)}, format='json')

    r = client.post(f'/api/telemedicine/{session.id}/start')
    assert r.status_code == 200
    assert r.data['hostUrl']
    assert r.data['session']['status'] == 'in-progress'
    assert r.data['session']['startTime']

    r = client.post(f'/api/telemedicine/{session.id}/end',
                    {'notes': 'Follow up in 2 weeks', 'recordingUrl': 'https://rec.example.com/1'}, format='json')
    assert r.status_code == 200
    assert r.data['session']['status'] == 'completed'
    assert r.data['session']['notes'] == 'Follow up in 2 weeks'
    assert r.data['session']['endTime']
    video_appt.refresh_from_db()
    assert video_appt.status == 'completed'


def test_end_requires_session_in_progress(doctor, video_appt):
    session = _session(video_appt)
    r = client_for(doctor.user).post(f'/api/telemedicine/{session.id}/end', {}, format='json')
    assert r.status_code == 400
    assert r.data['message'] == 'Cannot change session status from scheduled to completed'
    video_appt.refresh_from_db()
    assert video_appt.status == 'scheduled'


def test_start_twice_is_rejected(doctor, video_appt):
    session = _session(video_appt)
    client = client_for(doctor.user)
    assert client.post(f'/api/telemedicine/{session.id}/start').status_code == 200
    assert client.post(f'/api/telemedicine/{session.id}/start').status_code == 400


def test_start_and_end_lock_the_appointment_before_the_session(doctor, video_appt):
    session = _session(video_appt)
    locked = []
    select_for_update = QuerySet.select_for_update

    def record(qs, *args, **kwargs):
        locked.append(qs.model)
        return select_for_update(qs, *args, **kwargs)

    with mock.patch.object(QuerySet, 'select_for_update', autospec=True, side_effect=record):
        session_service.start_session(doctor.user, session.id)
        assert locked == [Appointment, TelemedicineSession]
        locked.clear()
        session_service.end_session(doctor.user, session.id)
        assert locked == [Appointment, TelemedicineSession]


def test_patient_cannot_start_session(patient, video_appt):
    session = _session(video_appt)
    r = client_for(patient.user).post(f'/api/telemedicine/{session.id}/start')
    assert r.status_code == 403
    assert _session(video_appt).status == 'scheduled'


def test_provision_after_start_is_rejected(doctor, video_appt):
    session = _session(video_appt)
    client = client_for(doctor.user)
    client.post(f'/api/telemedicine/{session.id}/start')
    r = client.post('/api/telemedicine', {'appointmentId': str(video_appt.id)}, format='json')
    assert r.status_code == 400


def test_session_read_access(patient, doctor, video_appt):
    session = _session(video_appt)
    assert client_for(patient.user).get(f'/api/telemedicine/{session.id}').status_code == 200
    other = make_patient(email='x@example.com')
    assert client_for(other.user).get(f'/api/telemedicine/{session.id}').status_code == 403
    assert client_for(patient.user).get('/api/telemedicine').status_code == 403
    r = client_for(make_admin()).get('/api/telemedicine')
    assert r.status_code == 200
    assert [s['id'] for s in r.data['sessions']] == [str(session.id)]


def test_status_changes_are_broadcast_after_commit(doctor, video_appt, django_capture_on_commit_callbacks):
    session = _session(video_appt)
    layer = mock.Mock()
    sent = []

    async def group_send(group, message):
        sent.append((group, message))

    layer.group_send = group_send
    with mock.patch('clinic.services.telemedicine.get_channel_layer', return_value=layer):
        with django_capture_on_commit_callbacks(execute=True):
            session_service.start_session(doctor.user, session.id)
    assert sent == [(f'telemedicine.{session.id}', mock.ANY)]
    assert sent[0][1]['type'] == 'session.status'
    assert sent[0][1]['status'] == 'in-progress'
