"""
Lookups between users and their patient/doctor profiles.

Appointments and records point at profile rows while the caller is a
user, so most row-level checks start by resolving one into the other.
"""
from __future__ import annotations

from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import Doctor, Patient, User
from clinic.services.formatting import format_doctor, format_patient

PATIENT_FIELDS = {
    'dateOfBirth': 'date_of_birth',
    'gender': 'gender',
    'bloodGroup': 'blood_group',
    'emergencyContact': 'emergency_contact',
    'medicalHistory': 'medical_history',
    'allergies': 'allergies',
    'currentMedications': 'current_medications',
}

DOCTOR_FIELDS = {
    'specialty': 'specialty',
    'qualification': 'qualification',
    'experience': 'experience',
    'licenseNumber': 'license_number',
    'consultationFee': 'consultation_fee',
    'availableDays': 'available_days',
    'availableTimeStart': 'available_time_start',
    'availableTimeEnd': 'available_time_end',
    'isAvailableForVideoCall': 'is_available_for_video_call',
    'bio': 'bio',
}


def apply_fields(obj, data: dict, mapping: dict) -> list[str]:
    """Copy camelCase keys present in ``data`` onto model attributes."""
    changed = []
    for key, attr in mapping.items():
        if key in data:
            setattr(obj, attr, data[key])
            changed.append(attr)
    return changed


def ensure_unique(*, email=None, license_number=None, exclude_user=None, exclude_doctor=None):
    if email:
        qs = User.objects.filter(email__iexact=email)
        if exclude_user is not None:
            qs = qs.exclude(pk=exclude_user.pk)
        if qs.exists():
            raise ValidationError({'email': 'User already exists with this email'})
    if license_number:
        qs = Doctor.objects.filter(license_number=license_number)
        if exclude_doctor is not None:
            qs = qs.exclude(pk=exclude_doctor.pk)
        if qs.exists():
            raise ValidationError({'licenseNumber': 'License number already registered'})


def profile_for(user):
    """Return the Patient/Doctor row for ``user`` or None (admins, missing rows)."""
    if user.role == User.ROLE_PATIENT:
        return Patient.objects.filter(user=user).first()
    if user.role == User.ROLE_DOCTOR:
        return Doctor.objects.filter(user=user).first()
    return None


def format_profile(user) -> dict | None:
    profile = profile_for(user)
    if isinstance(profile, Patient):
        return format_patient(profile, with_user=False)
    if isinstance(profile, Doctor):
        return format_doctor(profile, with_user=False)
    return None


def patient_for_caller(user) -> Patient:
    patient = Patient.objects.filter(user=user).first()
    if not patient:
        raise NotFound('Patient profile not found')
    return patient


def doctor_for_caller(user) -> Doctor:
    doctor = Doctor.objects.filter(user=user).first()
    if not doctor:
        raise NotFound('Doctor profile not found')
    return doctor


def get_patient(patient_id) -> Patient:
    patient = Patient.objects.select_related('user').filter(pk=patient_id).first()
    if not patient:
        raise NotFound('Patient not found')
    return patient


def get_doctor(doctor_id) -> Doctor:
    doctor = Doctor.objects.select_related('user').filter(pk=doctor_id).first()
    if not doctor:
        raise NotFound('Doctor not found')
    return doctor
