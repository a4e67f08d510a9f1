"""camelCase payload builders shared by the services and views."""
from __future__ import annotations

from clinic.models import Appointment, Doctor, MedicalRecord, Patient, TelemedicineSession


def _iso(value):
    return value.isoformat() if value is not None else None


def format_user(user) -> dict:
    return {
        'id': str(user.id),
        'email': user.email,
        'name': user.name,
        'role': user.role,
        'phone': user.phone,
        'address': user.address,
        'isActive': user.is_active,
        'profilePicture': user.profile_picture,
        'createdAt': _iso(user.created_at),
    }


def format_user_summary(user) -> dict:
    return {'id': str(user.id), 'name': user.name, 'email': user.email}


def format_patient(patient: Patient, *, with_user: bool = True) -> dict:
    data = {
        'id': str(patient.id),
        'userId': str(patient.user_id),
        'dateOfBirth': _iso(patient.date_of_birth),
        'gender': patient.gender,
        'bloodGroup': patient.blood_group,
        'emergencyContact': patient.emergency_contact,
        'medicalHistory': patient.medical_history,
        'allergies': patient.allergies,
        'currentMedications': patient.current_medications,
    }
    if with_user:
        data['user'] = format_user_summary(patient.user)
    return data


def format_doctor(doctor: Doctor, *, with_user: bool = True) -> dict:
    fee = doctor.consultation_fee
    data = {
        'id': str(doctor.id),
        'userId': str(doctor.user_id),
        'specialty': doctor.specialty,
        'qualification': doctor.qualification,
        'experience': doctor.experience,
        'licenseNumber': doctor.license_number,
        'consultationFee': str(fee) if fee is not None else None,
        'availableDays': doctor.available_days or [],
        'availableTimeStart': _iso(doctor.available_time_start),
        'availableTimeEnd': _iso(doctor.available_time_end),
        'isAvailableForVideoCall': doctor.is_available_for_video_call,
        'bio': doctor.bio,
    }
    if with_user:
        data['user'] = format_user_summary(doctor.user)
    return data


def format_session(session: TelemedicineSession | None) -> dict | None:
    if session is None:
        return None
    return {
        'id': str(session.id),
        'appointmentId': str(session.appointment_id),
        'meetingId': session.meeting_id,
        'meetingPassword': session.meeting_password,
        'joinUrl': session.join_url,
        'hostUrl': session.host_url,
        'startTime': _iso(session.start_time),
        'endTime': _iso(session.end_time),
        'duration': session.duration,
        'status': session.status,
        'recordingUrl': session.recording_url,
        'notes': session.notes,
        'createdAt': _iso(session.created_at),
        'updatedAt': _iso(session.updated_at),
    }


def session_of(appointment: Appointment):
    # reverse one-to-one raises when absent
    try:
        return appointment.telemedicine_session
    except TelemedicineSession.DoesNotExist:
        return None


def format_appointment(appt: Appointment, *, with_session: bool = True) -> dict:
    data = {
        'id': str(appt.id),
        'patientId': str(appt.patient_id),
        'doctorId': str(appt.doctor_id),
        'date': _iso(appt.date),
        'time': appt.time.strftime('%H:%M:%S') if appt.time else None,
        'duration': appt.duration,
        'type': appt.type,
        'status': appt.status,
        'reason': appt.reason,
        'notes': appt.notes,
        'patient': format_user_summary(appt.patient.user),
        'doctor': {**format_user_summary(appt.doctor.user), 'specialty': appt.doctor.specialty},
        'createdAt': _iso(appt.created_at),
        'updatedAt': _iso(appt.updated_at),
    }
    if with_session:
        data['telemedicineSession'] = format_session(session_of(appt))
    return data


def format_record(record: MedicalRecord) -> dict:
    return {
        'id': str(record.id),
        'patientId': str(record.patient_id),
        'doctorId': str(record.doctor_id),
        'appointmentId': str(record.appointment_id) if record.appointment_id else None,
        'diagnosis': record.diagnosis,
        'symptoms': record.symptoms,
        'prescriptions': record.prescriptions,
        'testResults': record.test_results,
        'notes': record.notes,
        'followUpDate': _iso(record.follow_up_date),
        'patient': format_user_summary(record.patient.user),
        'doctor': {**format_user_summary(record.doctor.user), 'specialty': record.doctor.specialty},
        'createdAt': _iso(record.created_at),
        'updatedAt': _iso(record.updated_at),
    }
