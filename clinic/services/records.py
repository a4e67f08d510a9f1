from typing import Optional
from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import InvalidTransition
from clinic.models import Appointment, MedicalRecord
from clinic.permissions import ensure_access
from clinic.services.audit import log_action
from clinic.services.formatting import format_record
from clinic.services.profiles import doctor_for_caller, get_doctor, get_patient

RECORD_FIELDS = {
    'diagnosis': 'diagnosis',
    'symptoms': 'symptoms',
    'prescriptions': 'prescriptions',
    'testResults': 'test_results',
    'notes': 'notes',
    'followUpDate': 'follow_up_date',
}


def _base_queryset():
    return MedicalRecord.objects.select_related('patient__user', 'doctor__user')


def list_records(*, patient_id=None, doctor_id=None) -> list[dict]:
    qs = _base_queryset()
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if doctor_id:
        qs = qs.filter(doctor_id=doctor_id)
    return [format_record(r) for r in qs.order_by('-created_at')]


def get_record(caller, pk) -> MedicalRecord:
    record = _base_queryset().filter(pk=pk).first()
    if not record:
        raise NotFound('Medical record not found')
    ensure_access(caller, record.patient.user_id, record.doctor.user_id,
                  message='Not authorized to view this medical record')
    return record


@transaction.atomic
def create_record(caller, data: dict) -> MedicalRecord:
    """Write a record and complete the appointment it documents, if any.

    Doctors always write under their own profile; admins name the doctor.
    """
    if caller.is_doctor:
        doctor = doctor_for_caller(caller)
    else:
        if not data.get('doctorId'):
            raise ValidationError({'doctorId': 'This field is required.'})
        doctor = get_doctor(data['doctorId'])
    patient = get_patient(data['patientId'])

    appt: Optional[Appointment] = None
    if data.get('appointmentId'):
        appt = Appointment.objects.select_for_update().filter(pk=data['appointmentId']).first()
        if not appt:
            raise NotFound('Appointment not found')
        if appt.doctor_id != doctor.id or appt.patient_id != patient.id:
            raise ValidationError('Appointment does not match doctor and patient')
        if not appt.can_transition(Appointment.STATUS_COMPLETED):
            raise InvalidTransition(appt.status, Appointment.STATUS_COMPLETED)

    record = MedicalRecord(patient=patient, doctor=doctor, appointment=appt)
    for key, attr in RECORD_FIELDS.items():
        if key in data and data[key] is not None:
            setattr(record, attr, data[key])
    record.save()

    if appt is not None and appt.status != Appointment.STATUS_COMPLETED:
        appt.status = Appointment.STATUS_COMPLETED
        appt.save(update_fields=['status', 'updated_at'])

    log_action(user=caller, action='record_create', object_type='medical_record', object_id=record.id,
               detail={'patientId': str(patient.id), 'appointmentId': str(appt.id) if appt else None})
    return record


def update_record(caller, pk, data: dict) -> MedicalRecord:
    record = MedicalRecord.objects.select_related('doctor').filter(pk=pk).first()
    if not record:
        raise NotFound('Medical record not found')
    ensure_access(caller, None, record.doctor.user_id, message='Not authorized to update this medical record')
    for key, attr in RECORD_FIELDS.items():
        if key in data:
            setattr(record, attr, data[key])
    record.save()
    log_action(user=caller, action='record_update', object_type='medical_record', object_id=record.id,
               detail={'fields': sorted(data.keys())})
    return record


@transaction.atomic
def delete_record(caller, pk) -> None:
    record = MedicalRecord.objects.filter(pk=pk).first()
    if not record:
        raise NotFound('Medical record not found')
    log_action(user=caller, action='record_delete', object_type='medical_record', object_id=record.id,
               detail={'patientId': str(record.patient_id)})
    record.delete()
