"""
Registration and account maintenance.

Registration creates the user together with the profile matching its
role, inside one transaction.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.models import Doctor, Patient
from clinic.services import doctors as doctor_service
from clinic.services.audit import log_action
from clinic.services.profiles import DOCTOR_FIELDS, PATIENT_FIELDS, apply_fields, ensure_unique, profile_for

User = get_user_model()


def issue_tokens(user) -> dict:
    refresh = RefreshToken.for_user(user)
    return {'token': str(refresh.access_token), 'refresh': str(refresh)}


def register_user(caller, *, email, password, name, role='patient', phone='', address='', profile=None):
    """Create a user and its role profile.

    Admin accounts can only be created by an authenticated admin.
    Returns ``(user, profile_row_or_None)``.
    """
    profile = profile or {}
    if role == User.ROLE_ADMIN and getattr(caller, 'role', None) != User.ROLE_ADMIN:
        raise PermissionDenied('Only admins can register admin accounts')
    try:
        validate_password(password)
    except DjangoValidationError as e:
        raise ValidationError({'password': e.messages})
    ensure_unique(email=email, license_number=profile.get('licenseNumber'))

    try:
        with transaction.atomic():
            user = User.objects.create_user(
                email=email, password=password, name=name, role=role,
                phone=phone or '', address=address or '',
            )
            row = None
            if role == User.ROLE_PATIENT:
                row = Patient(user=user)
                apply_fields(row, profile, PATIENT_FIELDS)
                row.save()
            elif role == User.ROLE_DOCTOR:
                row = Doctor(user=user)
                apply_fields(row, profile, DOCTOR_FIELDS)
                row.save()
            log_action(user=user, action='register', object_type='user', object_id=user.id,
                       detail={'role': role, 'by': str(caller.id) if caller else None})
    except IntegrityError:
        # lost a race against a concurrent registration
        raise ValidationError('User already exists with this email or license number')
    if role == User.ROLE_DOCTOR:
        doctor_service.invalidate_directory()
    return user, row


def update_user(user, data: dict, profile_data: dict | None = None):
    """Update account fields and, when given, the role profile."""
    ensure_unique(email=data.get('email'), exclude_user=user)
    with transaction.atomic():
        for attr in ('name', 'email', 'phone', 'address'):
            if attr in data:
                setattr(user, attr, data[attr])
        user.save()
        if profile_data:
            row = profile_for(user)
            if isinstance(row, Patient):
                apply_fields(row, profile_data, PATIENT_FIELDS)
                row.save()
            elif isinstance(row, Doctor):
                ensure_unique(license_number=profile_data.get('licenseNumber'), exclude_doctor=row)
                apply_fields(row, profile_data, DOCTOR_FIELDS)
                row.save()
    if user.role == User.ROLE_DOCTOR:
        doctor_service.invalidate_directory()
    return user


def delete_user(caller, user) -> None:
    role = user.role
    with transaction.atomic():
        log_action(user=caller, action='user_delete', object_type='user', object_id=user.id,
                   detail={'email': user.email, 'role': role})
        user.delete()
    if role == User.ROLE_DOCTOR:
        doctor_service.invalidate_directory()
