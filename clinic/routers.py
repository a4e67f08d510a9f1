"""
URL mappings for the telehealth API.

All resource routes live under ``/api/`` and are grouped by resource.
Trailing slashes are omitted (``APPEND_SLASH = False``).
"""
from django.urls import path, include

from .views import appointments, auth, doctors, health, medical_records, patients, telemedicine, users

urlpatterns = [
    # Auth
    path('api/auth/register', auth.register_view, name='register'),
    path('api/auth/login', auth.login_view, name='login'),
    path('api/auth/profile', auth.profile_view, name='profile'),
    path('api/auth/refresh', auth.refresh_view, name='token-refresh'),
    path('api/auth/logout', auth.logout_view, name='logout'),

    # Users
    path('api/users', users.users_collection, name='users'),
    path('api/users/<uuid:pk>', users.user_detail, name='user-detail'),

    # Patients
    path('api/patients', patients.patients_collection, name='patients'),
    path('api/patients/<uuid:pk>', patients.patient_detail, name='patient-detail'),
    path('api/patients/<uuid:pk>/appointments', patients.patient_appointments, name='patient-appointments'),
    path('api/patients/<uuid:pk>/medical-records', patients.patient_medical_records, name='patient-records'),

    # Doctors
    path('api/doctors', doctors.doctors_collection, name='doctors'),
    path('api/doctors/profile', doctors.doctor_profile, name='doctor-profile'),
    path('api/doctors/<uuid:pk>', doctors.doctor_detail, name='doctor-detail'),
    path('api/doctors/<uuid:pk>/appointments', doctors.doctor_appointments, name='doctor-appointments'),
    path('api/doctors/<uuid:pk>/patients', doctors.doctor_patients, name='doctor-patients'),

    # Appointments
    path('api/appointments', appointments.appointments_collection, name='appointments'),
    path('api/appointments/<uuid:pk>', appointments.appointment_detail, name='appointment-detail'),

    # Medical records
    path('api/medical-records', medical_records.records_collection, name='medical-records'),
    path('api/medical-records/<uuid:pk>', medical_records.record_detail, name='medical-record-detail'),

    # Telemedicine
    path('api/telemedicine', telemedicine.sessions_collection, name='telemedicine'),
    path('api/telemedicine/<uuid:pk>', telemedicine.session_detail, name='telemedicine-detail'),
    path('api/telemedicine/<uuid:pk>/start', telemedicine.session_start, name='telemedicine-start'),
    path('api/telemedicine/<uuid:pk>/end', telemedicine.session_end, name='telemedicine-end'),

    # Prometheus metrics at /metrics
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
]
