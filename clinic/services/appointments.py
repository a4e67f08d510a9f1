"""
Appointment booking and lifecycle.

A doctor holds at most one appointment per (date, time).  The check
before insert answers the common case with a clear message; the
``uniq_doctor_slot`` constraint decides the race between two requests
that both pass it.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic.exceptions import InvalidTransition, SlotUnavailable
from clinic.models import Appointment, TelemedicineSession
from clinic.permissions import ensure_access
from clinic.services import telemedicine
from clinic.services.audit import log_action
from clinic.services.formatting import format_appointment, session_of
from clinic.services.profiles import doctor_for_caller, get_doctor, get_patient, patient_for_caller

logger = logging.getLogger(__name__)

VIDEO_UNAVAILABLE = 'Doctor is not available for video call appointments'
SLOT_CONSTRAINT = 'uniq_doctor_slot'


def _slot_taken(doctor, date, time, exclude=None) -> bool:
    qs = Appointment.objects.filter(doctor=doctor, date=date, time=time)
    if exclude is not None:
        qs = qs.exclude(pk=exclude)
    return qs.exists()


def _is_slot_conflict(exc: IntegrityError) -> bool:
    """True when ``exc`` comes from the one-appointment-per-slot constraint."""
    msg = str(exc)
    table = Appointment._meta.db_table
    # PostgreSQL/MySQL name the constraint, SQLite lists its columns
    return SLOT_CONSTRAINT in msg or f'{table}.doctor_id, {table}.date, {table}.time' in msg


def _base_queryset():
    return Appointment.objects.select_related('patient__user', 'doctor__user', 'telemedicine_session')


def list_appointments(caller, *, status: Optional[str]=None, type: Optional[str]=None, date=None) -> list[dict]:
    """Admins see all appointments, doctors and patients their own."""
    qs = _base_queryset()
    if caller.is_doctor:
        qs = qs.filter(doctor=doctor_for_caller(caller))
    elif caller.is_patient:
        qs = qs.filter(patient=patient_for_caller(caller))
    elif not caller.is_admin:
        qs = qs.none()
    if status:
        qs = qs.filter(status=status)
    if type:
        qs = qs.filter(type=type)
    if date:
        qs = qs.filter(date=date)
    return [format_appointment(a) for a in qs.order_by('-date', '-time')]


def get_appointment(caller, pk) -> Appointment:
    appt = _base_queryset().filter(pk=pk).first()
    if not appt:
        raise NotFound('Appointment not found')
    ensure_access(caller, appt.patient.user_id, appt.doctor.user_id,
                  message='Not authorized to view this appointment')
    return appt


def create_appointment(caller, *, patientId, doctorId, date, time, duration=None, type=Appointment.TYPE_IN_PERSON,
                       reason='') -> Appointment:
    patient = get_patient(patientId)
    doctor = get_doctor(doctorId)
    ensure_access(caller, patient.user_id, doctor.user_id,
                  message='Not authorized to create appointment for this patient')
    if type == Appointment.TYPE_VIDEO and not doctor.is_available_for_video_call:
        raise ValidationError(VIDEO_UNAVAILABLE)
    if _slot_taken(doctor, date, time):
        raise SlotUnavailable()

    attempts = max(1, int(settings.SLOT_RETRY_ATTEMPTS))
    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                appt = Appointment.objects.create(
                    patient=patient, doctor=doctor, date=date, time=time,
                    duration=duration or 30, type=type, reason=reason or '',
                    status=Appointment.STATUS_SCHEDULED,
                )
                if type == Appointment.TYPE_VIDEO:
                    TelemedicineSession.objects.create(appointment=appt)
                log_action(user=caller, action='appointment_create', object_type='appointment', object_id=appt.id,
                           detail={'doctorId': str(doctor.id), 'patientId': str(patient.id), 'type': type})
            return appt
        except IntegrityError as e:
            if Appointment.objects.filter(doctor=doctor, date=date, time=time).exists():
                logger.info('slot %s %s for doctor %s taken by a concurrent booking', date, time, doctor.id)
                raise SlotUnavailable()
            if not _is_slot_conflict(e):
                raise
            logger.warning('appointment insert conflict, attempt %d/%d', attempt, attempts)
    raise SlotUnavailable()


def _check_patient_update(data: dict) -> None:
    if set(data) != {'status'} or data['status'] != Appointment.STATUS_CANCELLED:
        raise PermissionDenied('Patients can only cancel appointments')


@transaction.atomic
def update_appointment(caller, pk, data: dict) -> Appointment:
    """Apply a partial update together with its session side effects."""
    appt = Appointment.objects.select_for_update().filter(pk=pk).first()
    if not appt:
        raise NotFound('Appointment not found')
    ensure_access(caller, appt.patient.user_id, appt.doctor.user_id,
                  message='Not authorized to update this appointment')
    if caller.is_patient:
        _check_patient_update(data)

    new_status = data.get('status')
    if new_status and not appt.can_transition(new_status):
        raise InvalidTransition(appt.status, new_status)

    session = session_of(appt)
    old_type = appt.type
    new_type = data.get('type', old_type)
    if new_type != old_type and (new_status or appt.status) != Appointment.STATUS_SCHEDULED:
        # the session follows the type only while the visit is still ahead
        raise ValidationError(f'Cannot change the type of a {new_status or appt.status} appointment')
    if new_type == Appointment.TYPE_VIDEO and old_type != Appointment.TYPE_VIDEO \
            and not appt.doctor.is_available_for_video_call:
        raise ValidationError(VIDEO_UNAVAILABLE)

    date, time = data.get('date', appt.date), data.get('time', appt.time)
    rescheduled = (date, time) != (appt.date, appt.time)
    if rescheduled and _slot_taken(appt.doctor_id, date, time, exclude=appt.pk):
        raise SlotUnavailable()

    for field in ('date', 'time', 'duration', 'type', 'reason', 'status', 'notes'):
        if field in data:
            setattr(appt, field, data[field])
    try:
        with transaction.atomic():
            appt.save()
    except IntegrityError as e:
        if not _is_slot_conflict(e):
            raise
        raise SlotUnavailable()

    if rescheduled and session is not None and session.status == TelemedicineSession.STATUS_SCHEDULED \
            and session.start_time:
        session.start_time = telemedicine.appointment_start(appt)
        session.save(update_fields=['start_time', 'updated_at'])

    if new_status == Appointment.STATUS_CANCELLED:
        telemedicine.cancel_for_appointment(session, reason='cancel an appointment')
    elif new_type != Appointment.TYPE_VIDEO and old_type == Appointment.TYPE_VIDEO:
        telemedicine.cancel_for_appointment(session, reason='change the appointment type')
    elif new_type == Appointment.TYPE_VIDEO and old_type != Appointment.TYPE_VIDEO:
        if session is not None and session.status == TelemedicineSession.STATUS_CANCELLED:
            # a cancelled session cannot be reopened; start over
            session.delete()
            session = None
        if session is None:
            TelemedicineSession.objects.create(appointment=appt)

    log_action(user=caller, action='appointment_update', object_type='appointment', object_id=appt.id,
               detail={'fields': sorted(data.keys())})
    return appt


@transaction.atomic
def delete_appointment(caller, pk) -> None:
    appt = Appointment.objects.select_for_update().filter(pk=pk).first()
    if not appt:
        raise NotFound('Appointment not found')
    TelemedicineSession.objects.filter(appointment=appt).delete()
    log_action(user=caller, action='appointment_delete', object_type='appointment', object_id=appt.id,
               detail={'doctorId': str(appt.doctor_id), 'patientId': str(appt.patient_id),
                       'date': appt.date.isoformat(), 'time': appt.time.isoformat()})
    appt.delete()
