"""
Patient endpoints.

A patient can be read by the patient themself, by an admin, or by a
doctor who has at least one appointment with them.  Listing is limited
to doctors (their own patients) and admins (everyone).
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsDoctorOrAdmin
from clinic.serializers.profiles import PatientProfileSerializer
from clinic.services import patients as patient_service
from clinic.services.formatting import format_patient
from clinic.services.profiles import get_patient


def _int_param(request, name):
    raw = request.query_params.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError({name: 'Must be an integer'})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorOrAdmin])
def patients_collection(request):
    q = (request.query_params.get('q') or '').strip() or None
    page = _int_param(request, 'page') or 1
    page_size = _int_param(request, 'pageSize') or 50
    patients, total = patient_service.list_patients(request.user, q=q, page=page, page_size=page_size)
    return Response({
        'message': 'Patients retrieved successfully',
        'patients': patients,
        'pagination': {'total': total, 'page': page, 'pageSize': page_size},
    })


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def patient_detail(request, pk):
    patient = get_patient(pk)
    if request.method == 'GET':
        patient_service.ensure_patient_access(request.user, patient)
        return Response({'message': 'Patient retrieved successfully', 'patient': format_patient(patient)})

    s = PatientProfileSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient_service.update_patient(request.user, patient, s.validated_data)
    return Response({'message': 'Patient updated successfully', 'patient': format_patient(patient)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_appointments(request, pk):
    patient = get_patient(pk)
    items = patient_service.patient_appointments(request.user, patient, status=request.query_params.get('status'))
    return Response({'message': 'Appointments retrieved successfully', 'appointments': items})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_medical_records(request, pk):
    patient = get_patient(pk)
    items = patient_service.patient_records(request.user, patient)
    return Response({'message': 'Medical records retrieved successfully', 'medicalRecords': items})
