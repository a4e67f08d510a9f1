from typing import Optional
from django.db.models import Q
from rest_framework.exceptions import PermissionDenied

from clinic.models import Appointment, MedicalRecord, Patient
from clinic.permissions import check_access
from clinic.services.audit import log_action
from clinic.services.formatting import format_appointment, format_patient, format_record
from clinic.services.profiles import PATIENT_FIELDS, apply_fields


def has_treated(caller, patient: Patient) -> bool:
    """True if ``caller`` is a doctor holding any appointment with ``patient``."""
    if not getattr(caller, 'is_doctor', False):
        return False
    return Appointment.objects.filter(patient=patient, doctor__user=caller).exists()


def ensure_patient_access(caller, patient: Patient, message='Not authorized to access this patient'):
    if check_access(caller, patient.user_id) or has_treated(caller, patient):
        return
    raise PermissionDenied(message)


def list_patients(caller, *, q: Optional[str]=None, page: int=1, page_size: int=50) -> tuple[list[dict], int]:
    """Admins see every patient, doctors only the ones they have appointments with."""
    qs = Patient.objects.select_related('user')
    if not caller.is_admin:
        qs = qs.filter(appointments__doctor__user=caller).distinct()
    if q:
        qs = qs.filter(Q(user__name__icontains=q) | Q(user__email__icontains=q))

    total = qs.count()
    page = max(1, int(page or 1))
    page_size = min(200, max(1, int(page_size or 50)))
    start = (page - 1) * page_size
    items = qs.order_by('user__name', 'id')[start:start + page_size]
    return [format_patient(p) for p in items], total


def update_patient(caller, patient: Patient, data: dict) -> Patient:
    """Patients edit their own profile; admins any."""
    if not check_access(caller, patient.user_id):
        raise PermissionDenied('Not authorized to update this patient')
    apply_fields(patient, data, PATIENT_FIELDS)
    patient.save()
    log_action(user=caller, action='patient_update', object_type='patient', object_id=patient.id,
               detail={'fields': sorted(data.keys())})
    return patient


def patient_appointments(caller, patient: Patient, *, status: Optional[str]=None) -> list[dict]:
    ensure_patient_access(caller, patient)
    qs = (Appointment.objects.filter(patient=patient)
          .select_related('patient__user', 'doctor__user', 'telemedicine_session'))
    if status:
        qs = qs.filter(status=status)
    return [format_appointment(a) for a in qs.order_by('-date', '-time')]


def patient_records(caller, patient: Patient) -> list[dict]:
    ensure_patient_access(caller, patient)
    qs = MedicalRecord.objects.filter(patient=patient).select_related('patient__user', 'doctor__user')
    return [format_record(r) for r in qs.order_by('-created_at')]
