from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsDoctorOrAdmin
from clinic.serializers.records import (
    MedicalRecordCreateSerializer,
    MedicalRecordFilterSerializer,
    MedicalRecordUpdateSerializer,
)
from clinic.services import records as record_service
from clinic.services.formatting import format_record


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def records_collection(request):
    if request.method == 'GET':
        if not request.user.is_admin:
            raise PermissionDenied('Not authorized to access all medical records')
        f = MedicalRecordFilterSerializer(data=request.query_params)
        f.is_valid(raise_exception=True)
        items = record_service.list_records(
            patient_id=f.validated_data.get('patientId'),
            doctor_id=f.validated_data.get('doctorId'),
        )
        return Response({'message': 'Medical records retrieved successfully', 'medicalRecords': items})

    if not IsDoctorOrAdmin().has_permission(request, None):
        raise PermissionDenied('Only doctors can create medical records')
    s = MedicalRecordCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    record = record_service.create_record(request.user, s.validated_data)
    record = record_service.get_record(request.user, record.pk)
    return Response({'message': 'Medical record created successfully', 'medicalRecord': format_record(record)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def record_detail(request, pk):
    if request.method == 'GET':
        record = record_service.get_record(request.user, pk)
        return Response({'message': 'Medical record retrieved successfully', 'medicalRecord': format_record(record)})

    if request.method == 'DELETE':
        if not request.user.is_admin:
            raise PermissionDenied('Only admins can delete medical records')
        record_service.delete_record(request.user, pk)
        return Response({'message': 'Medical record deleted successfully'})

    s = MedicalRecordUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    record_service.update_record(request.user, pk, s.validated_data)
    record = record_service.get_record(request.user, pk)
    return Response({'message': 'Medical record updated successfully', 'medicalRecord': format_record(record)})
