"""
Database models for the telehealth backend.

These models capture the core concepts of the system: users and their
patient/doctor profiles, appointments, medical records and the video
consultation sessions attached to video appointments.  Field names
follow Django conventions; the JSON payloads built by the services use
the camelCase names the front-end expects.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models


class UserManager(BaseUserManager):
    """Manager for the e-mail based :class:`User` model."""

    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('The email must be set')
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            # Social-only accounts have no usable password
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', User.ROLE_ADMIN)
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Custom user model keyed by e-mail with a role.

    Roles mirror the front-end roles: 'patient', 'doctor' and 'admin'.
    The role is assigned at registration and no endpoint changes it.
    """
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    username = None
    first_name = None
    last_name = None
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)
    phone = models.CharField(max_length=32, blank=True)
    address = models.CharField(max_length=255, blank=True)
    google_id = models.CharField(max_length=128, unique=True, null=True, blank=True)
    facebook_id = models.CharField(max_length=128, unique=True, null=True, blank=True)
    apple_id = models.CharField(max_length=128, unique=True, null=True, blank=True)
    profile_picture = models.URLField(max_length=512, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    objects = UserManager()

    def get_full_name(self) -> str:
        return self.name

    def get_short_name(self) -> str:
        return self.name

    @property
    def is_admin(self) -> bool:
        return self.role == self.ROLE_ADMIN

    @property
    def is_doctor(self) -> bool:
        return self.role == self.ROLE_DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.role == self.ROLE_PATIENT

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class Patient(models.Model):
    """Demographic and medical-history data for a user with role 'patient'."""
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    blood_group = models.CharField(max_length=8, blank=True)
    emergency_contact = models.CharField(max_length=255, blank=True)
    medical_history = models.TextField(blank=True)
    allergies = models.TextField(blank=True)
    current_medications = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Patient {self.user.name}"


class Doctor(models.Model):
    """Professional profile for a user with role 'doctor'.

    ``available_days`` holds a JSON list of weekday names and the
    ``available_time_*`` pair bounds the daily consulting window.  Video
    appointments can only be booked while ``is_available_for_video_call``
    is set.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor_profile')
    specialty = models.CharField(max_length=128, db_index=True)
    qualification = models.CharField(max_length=255)
    experience = models.PositiveIntegerField(null=True, blank=True)
    license_number = models.CharField(max_length=64, unique=True)
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    available_days = models.JSONField(default=list, blank=True)
    available_time_start = models.TimeField(null=True, blank=True)
    available_time_end = models.TimeField(null=True, blank=True)
    is_available_for_video_call = models.BooleanField(default=True)
    bio = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Dr. {self.user.name} ({self.specialty})"


class Appointment(models.Model):
    """A booked slot between one patient and one doctor.

    A doctor holds at most one appointment per (date, time); the
    constraint below backs the pre-insert check in the booking service.
    """
    TYPE_IN_PERSON = 'in-person'
    TYPE_VIDEO = 'video'
    TYPE_CHOICES = ((TYPE_IN_PERSON, 'In person'), (TYPE_VIDEO, 'Video'))

    STATUS_SCHEDULED = 'scheduled'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_NO_SHOW = 'no-show'
    STATUS_CHOICES = (
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_NO_SHOW, 'No show'),
    )

    # completed, cancelled and no-show are terminal
    TRANSITIONS = {
        STATUS_SCHEDULED: (STATUS_COMPLETED, STATUS_CANCELLED, STATUS_NO_SHOW),
        STATUS_COMPLETED: (),
        STATUS_CANCELLED: (),
        STATUS_NO_SHOW: (),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='appointments')
    date = models.DateField()
    time = models.TimeField()
    duration = models.PositiveIntegerField(default=30, help_text="Length in minutes")
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_IN_PERSON)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED, db_index=True)
    reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['doctor', 'date', 'time'], name='uniq_doctor_slot'),
        ]
        indexes = [
            models.Index(fields=['patient', 'date']),
        ]

    def can_transition(self, new_status: str) -> bool:
        return new_status == self.status or new_status in self.TRANSITIONS.get(self.status, ())

    def __str__(self) -> str:
        return f"Appointment {self.date} {self.time} d={self.doctor_id} p={self.patient_id} ({self.status})"


class MedicalRecord(models.Model):
    """Free-text clinical notes written by a doctor for a patient.

    Updates overwrite the fields in place; no previous versions are kept.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='medical_records')
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='medical_records')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='medical_records'
    )
    diagnosis = models.TextField(blank=True)
    symptoms = models.TextField(blank=True)
    prescriptions = models.TextField(blank=True)
    test_results = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    follow_up_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', 'created_at']),
        ]

    def __str__(self) -> str:
        return f"Record {self.id} p={self.patient_id}"


class TelemedicineSession(models.Model):
    """Bookkeeping for the video call attached to a video appointment."""
    STATUS_SCHEDULED = 'scheduled'
    STATUS_IN_PROGRESS = 'in-progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    )

    TRANSITIONS = {
        STATUS_SCHEDULED: (STATUS_IN_PROGRESS, STATUS_CANCELLED),
        STATUS_IN_PROGRESS: (STATUS_COMPLETED,),
        STATUS_COMPLETED: (),
        STATUS_CANCELLED: (),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    appointment = models.OneToOneField(Appointment, on_delete=models.CASCADE, related_name='telemedicine_session')
    meeting_id = models.CharField(max_length=64, blank=True, null=True)
    meeting_password = models.CharField(max_length=64, blank=True, null=True)
    join_url = models.URLField(max_length=512, blank=True, null=True)
    host_url = models.URLField(max_length=1024, blank=True, null=True)
    start_time = models.DateTimeField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)
    duration = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SCHEDULED, db_index=True)
    recording_url = models.URLField(max_length=512, blank=True, null=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def can_transition(self, new_status: str) -> bool:
        return new_status in self.TRANSITIONS.get(self.status, ())

    def __str__(self) -> str:
        return f"Session {self.id} a={self.appointment_id} ({self.status})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
