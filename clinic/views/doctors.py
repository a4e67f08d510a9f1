from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsDoctorOrAdmin
from clinic.serializers.appointment import AppointmentFilterSerializer
from clinic.serializers.profiles import (
    DoctorListQuerySerializer,
    DoctorProfileSerializer,
    DoctorProfileWriteSerializer,
)
from clinic.services import doctors as doctor_service
from clinic.services.formatting import format_doctor
from clinic.services.profiles import get_doctor


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctors_collection(request):
    """Doctor directory.
    Query params:
      - specialty: exact specialty (case-insensitive)
      - q: name / specialty / qualification contains
      - videoOnly: only doctors accepting video calls
      - page, pageSize: pagination (optional)
    """
    q = DoctorListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    payload = doctor_service.cached_directory(
        specialty=(vd.get('specialty') or '').strip() or None,
        q=(vd.get('q') or '').strip() or None,
        video_only=vd.get('videoOnly', False),
        page=vd.get('page'),
        page_size=vd.get('pageSize'),
    )
    return Response(payload)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def doctor_detail(request, pk):
    doctor = get_doctor(pk)
    if request.method == 'GET':
        return Response({'message': 'Doctor retrieved successfully', 'doctor': format_doctor(doctor)})

    s = DoctorProfileSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor_service.update_doctor(request.user, doctor, s.validated_data)
    return Response({'message': 'Doctor updated successfully', 'doctor': format_doctor(doctor)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorOrAdmin])
def doctor_profile(request):
    """Create or update the caller's doctor profile; admins may pass ``userId``."""
    s = DoctorProfileWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = dict(s.validated_data)
    user_id = data.pop('userId', None)
    doctor, created = doctor_service.save_profile(request.user, data, user_id=user_id)
    if created:
        return Response({'message': 'Doctor profile created successfully', 'doctor': format_doctor(doctor)},
                        status=status.HTTP_201_CREATED)
    return Response({'message': 'Doctor profile updated successfully', 'doctor': format_doctor(doctor)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctor_appointments(request, pk):
    doctor = get_doctor(pk)
    f = AppointmentFilterSerializer(data=request.query_params)
    f.is_valid(raise_exception=True)
    items = doctor_service.doctor_appointments(
        request.user, doctor, status=f.validated_data.get('status'), date=f.validated_data.get('date'),
    )
    return Response({'message': 'Appointments retrieved successfully', 'appointments': items})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctor_patients(request, pk):
    doctor = get_doctor(pk)
    items = doctor_service.doctor_patients(request.user, doctor)
    return Response({'message': 'Patients retrieved successfully', 'patients': items})
