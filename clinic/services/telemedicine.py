"""
Telemedicine session lifecycle.

A session belongs to exactly one video appointment and moves through
``scheduled -> in-progress -> completed`` (or ``scheduled -> cancelled``).
Each committed status change is pushed to the channel group
``telemedicine.<sessionId>`` so connected clients can follow the call.
"""
from __future__ import annotations

import logging
from datetime import datetime

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import InvalidTransition
from clinic.models import Appointment, TelemedicineSession
from clinic.permissions import ensure_access
from clinic.services.audit import log_action
from clinic.services.formatting import format_session
from clinic.services.video import get_video_provider

logger = logging.getLogger(__name__)


def group_name(session_id) -> str:
    return f"telemedicine.{session_id}"


def broadcast_status(session: TelemedicineSession) -> None:
    """Send the session state to its subscribers once the transaction commits."""
    payload = {
        'type': 'session.status',
        'sessionId': str(session.id),
        'appointmentId': str(session.appointment_id),
        'status': session.status,
        'startTime': session.start_time.isoformat() if session.start_time else None,
        'endTime': session.end_time.isoformat() if session.end_time else None,
    }

    def _send():
        channel_layer = get_channel_layer()
        if channel_layer is None:
            return
        async_to_sync(channel_layer.group_send)(group_name(session.id), payload)

    transaction.on_commit(_send)


def appointment_start(appt: Appointment) -> datetime:
    start = datetime.combine(appt.date, appt.time)
    return timezone.make_aware(start) if timezone.is_naive(start) else start


def transition(session: TelemedicineSession, new_status: str) -> None:
    if not session.can_transition(new_status):
        raise InvalidTransition(session.status, new_status, subject='session')
    session.status = new_status


def ensure_session_access(caller, session: TelemedicineSession, message='Not authorized to access this session'):
    appt = session.appointment
    ensure_access(caller, appt.patient.user_id, appt.doctor.user_id, message=message)


def list_sessions(*, status=None) -> list[dict]:
    qs = TelemedicineSession.objects.all()
    if status:
        qs = qs.filter(status=status)
    return [format_session(s) for s in qs.order_by('-created_at')]


def get_session(caller, pk) -> TelemedicineSession:
    session = (TelemedicineSession.objects
               .select_related('appointment__patient__user', 'appointment__doctor__user')
               .filter(pk=pk).first())
    if not session:
        raise NotFound('Telemedicine session not found')
    ensure_session_access(caller, session)
    return session


def _lock_pair(pk) -> tuple[Appointment, TelemedicineSession]:
    """Lock a session's appointment, then the session itself.

    Every writer that touches both rows takes them in this order.
    """
    appointment_id = TelemedicineSession.objects.filter(pk=pk).values_list('appointment_id', flat=True).first()
    if appointment_id is None:
        raise NotFound('Telemedicine session not found')
    appt = Appointment.objects.select_for_update().filter(pk=appointment_id).first()
    session = TelemedicineSession.objects.select_for_update().filter(pk=pk).first()
    if appt is None or session is None:
        raise NotFound('Telemedicine session not found')
    session.appointment = appt
    return appt, session


@transaction.atomic
def provision_session(caller, appointment_id) -> tuple[TelemedicineSession, bool]:
    """Create or refresh the meeting descriptor for a video appointment.

    Only a session that has not started yet can be (re)provisioned.
    Returns ``(session, created)``.
    """
    appt = (Appointment.objects.select_for_update()
            .filter(pk=appointment_id).first())
    if not appt:
        raise NotFound('Appointment not found')
    if appt.type != Appointment.TYPE_VIDEO:
        raise ValidationError('Appointment is not a video consultation')
    ensure_access(caller, None, appt.doctor.user_id, message='Not authorized to create a session for this appointment')
    if appt.status != Appointment.STATUS_SCHEDULED:
        raise ValidationError(f'Cannot set up a session for a {appt.status} appointment')

    session = TelemedicineSession.objects.select_for_update().filter(appointment=appt).first()
    if session is not None and session.status != TelemedicineSession.STATUS_SCHEDULED:
        raise ValidationError(f'Session is already {session.status}')

    start = appointment_start(appt)
    topic = f"Appointment with Dr. {appt.doctor.user.name} and {appt.patient.user.name}"
    meeting = get_video_provider().create_meeting(topic, start, appt.duration)

    created = session is None
    if created:
        session = TelemedicineSession(appointment=appt)
    session.meeting_id = meeting.meeting_id
    session.meeting_password = meeting.password
    session.join_url = meeting.join_url
    session.host_url = meeting.host_url
    session.start_time = meeting.start_time
    session.duration = meeting.duration
    session.save()

    log_action(user=caller, action='telemedicine_provision', object_type='telemedicine', object_id=session.id,
               detail={'appointmentId': str(appt.id), 'created': created})
    broadcast_status(session)
    return session, created


@transaction.atomic
def start_session(caller, pk) -> TelemedicineSession:
    appt, session = _lock_pair(pk)
    ensure_access(caller, None, appt.doctor.user_id, message='Not authorized to start this session')
    if appt.status != Appointment.STATUS_SCHEDULED:
        raise ValidationError(f'Cannot start a session for a {appt.status} appointment')
    transition(session, TelemedicineSession.STATUS_IN_PROGRESS)
    session.start_time = timezone.now()
    session.save(update_fields=['status', 'start_time', 'updated_at'])

    log_action(user=caller, action='telemedicine_start', object_type='telemedicine', object_id=session.id)
    broadcast_status(session)
    return session


@transaction.atomic
def end_session(caller, pk, *, notes=None, recording_url=None) -> TelemedicineSession:
    """Complete the session and its appointment together."""
    appt, session = _lock_pair(pk)
    ensure_access(caller, None, appt.doctor.user_id, message='Not authorized to end this session')
    transition(session, TelemedicineSession.STATUS_COMPLETED)
    if not appt.can_transition(Appointment.STATUS_COMPLETED):
        raise InvalidTransition(appt.status, Appointment.STATUS_COMPLETED)

    session.end_time = timezone.now()
    if session.start_time and session.end_time > session.start_time:
        session.duration = max(1, round((session.end_time - session.start_time).total_seconds() / 60))
    if notes is not None:
        session.notes = notes
    if recording_url is not None:
        session.recording_url = recording_url or None
    session.save()

    appt.status = Appointment.STATUS_COMPLETED
    appt.save(update_fields=['status', 'updated_at'])

    log_action(user=caller, action='telemedicine_end', object_type='telemedicine', object_id=session.id,
               detail={'appointmentId': str(appt.id)})
    broadcast_status(session)
    return session


def cancel_for_appointment(session: TelemedicineSession | None, *, reason: str) -> None:
    """Cancel a not-yet-started session alongside its appointment.

    Finished or already cancelled sessions are left as they are.
    """
    if session is None:
        return
    if session.status == TelemedicineSession.STATUS_IN_PROGRESS:
        raise ValidationError(f'Cannot {reason} while the video session is in progress')
    if session.status != TelemedicineSession.STATUS_SCHEDULED:
        return
    transition(session, TelemedicineSession.STATUS_CANCELLED)
    session.save(update_fields=['status', 'updated_at'])
    logger.info('session %s cancelled (%s)', session.id, reason)
    broadcast_status(session)
