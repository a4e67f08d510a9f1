from typing import Optional
from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Q
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from clinic.models import Appointment, Doctor, Patient, User
from clinic.permissions import ensure_access
from clinic.services.audit import log_action
from clinic.services.formatting import format_appointment, format_doctor, format_patient
from clinic.services.profiles import DOCTOR_FIELDS, apply_fields, ensure_unique

DIRECTORY_VERSION_KEY = 'doctors:version'


def directory_version() -> int:
    return cache.get_or_set(DIRECTORY_VERSION_KEY, 1, None)


def invalidate_directory() -> None:
    """Drop every cached directory page by moving to a new key version."""
    try:
        cache.incr(DIRECTORY_VERSION_KEY)
    except ValueError:
        cache.set(DIRECTORY_VERSION_KEY, 2, None)


def directory_cache_key(*, specialty=None, q=None, video_only=False, page=None, page_size=None) -> str:
    return (f"doctors:v={directory_version()}:s={(specialty or '').lower()}:q={q or ''}"
            f":video={int(bool(video_only))}:p={page}:ps={page_size}")


def list_doctors(*, specialty: Optional[str]=None, q: Optional[str]=None, video_only: bool=False,
                 page: Optional[int]=None, page_size: Optional[int]=None) -> tuple[list[dict], int]:
    qs = Doctor.objects.select_related('user').filter(user__is_active=True)
    if specialty:
        qs = qs.filter(specialty__iexact=specialty)
    if q:
        qs = qs.filter(Q(user__name__icontains=q) | Q(specialty__icontains=q) | Q(qualification__icontains=q))
    if video_only:
        qs = qs.filter(is_available_for_video_call=True)

    total = qs.count()
    qs = qs.order_by('user__name', 'id')
    if page and page_size:
        start = (page - 1) * page_size
        qs = qs[start:start + page_size]
    return [format_doctor(d) for d in qs], total


def cached_directory(*, specialty=None, q=None, video_only=False, page=None, page_size=None) -> dict:
    """Directory payload, served from the cache while the version key holds."""
    key = directory_cache_key(specialty=specialty, q=q, video_only=video_only, page=page, page_size=page_size)
    cached = cache.get(key)
    if cached:
        return cached
    doctors, total = list_doctors(specialty=specialty, q=q, video_only=video_only, page=page, page_size=page_size)
    payload = {
        'message': 'Doctors retrieved successfully',
        'doctors': doctors,
        'pagination': {'total': total, 'page': page or 1, 'pageSize': page_size or total},
    }
    cache.set(key, payload, settings.DOCTOR_DIRECTORY_CACHE_SECONDS)
    return payload


def update_doctor(caller, doctor: Doctor, data: dict) -> Doctor:
    ensure_access(caller, doctor.user_id, message='Not authorized to update this doctor')
    ensure_unique(license_number=data.get('licenseNumber'), exclude_doctor=doctor)
    apply_fields(doctor, data, DOCTOR_FIELDS)
    doctor.save()
    log_action(user=caller, action='doctor_update', object_type='doctor', object_id=doctor.id,
               detail={'fields': sorted(data.keys())})
    invalidate_directory()
    return doctor


@transaction.atomic
def save_profile(caller, data: dict, *, user_id=None) -> tuple[Doctor, bool]:
    """Create or update the doctor profile of ``caller`` (admins may name ``user_id``)."""
    target = caller
    if user_id and str(user_id) != str(caller.id):
        if not caller.is_admin:
            raise PermissionDenied('Not authorized to manage this doctor profile')
        target = User.objects.filter(pk=user_id).first()
        if target is None:
            raise NotFound('User not found')
    if target.role != User.ROLE_DOCTOR:
        raise ValidationError('User is not a doctor')

    doctor = Doctor.objects.select_for_update().filter(user=target).first()
    created = doctor is None
    if created:
        missing = [f for f in ('specialty', 'qualification', 'licenseNumber') if not data.get(f)]
        if missing:
            raise ValidationError({f: 'This field is required.' for f in missing})
        doctor = Doctor(user=target)

    ensure_unique(license_number=data.get('licenseNumber'), exclude_doctor=None if created else doctor)
    apply_fields(doctor, data, DOCTOR_FIELDS)
    doctor.save()
    log_action(user=caller, action='doctor_profile_create' if created else 'doctor_profile_update',
               object_type='doctor', object_id=doctor.id)
    transaction.on_commit(invalidate_directory)
    return doctor, created


def doctor_appointments(caller, doctor: Doctor, *, status: Optional[str]=None, date=None) -> list[dict]:
    ensure_access(caller, doctor.user_id, message='Not authorized to view these appointments')
    qs = (Appointment.objects.filter(doctor=doctor)
          .select_related('patient__user', 'doctor__user', 'telemedicine_session'))
    if status:
        qs = qs.filter(status=status)
    if date:
        qs = qs.filter(date=date)
    return [format_appointment(a) for a in qs.order_by('date', 'time')]


def doctor_patients(caller, doctor: Doctor) -> list[dict]:
    """Distinct patients with at least one appointment with ``doctor``."""
    ensure_access(caller, doctor.user_id, message='Not authorized to view these patients')
    qs = Patient.objects.filter(appointments__doctor=doctor).select_related('user').distinct().order_by('user__name')
    return [format_patient(p) for p in qs]
