from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.serializers.appointment import (
    AppointmentCreateSerializer,
    AppointmentFilterSerializer,
    AppointmentUpdateSerializer,
)
from clinic.services import appointments as appointment_service
from clinic.services.formatting import format_appointment


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments_collection(request):
    if request.method == 'GET':
        f = AppointmentFilterSerializer(data=request.query_params)
        f.is_valid(raise_exception=True)
        items = appointment_service.list_appointments(request.user, **f.validated_data)
        return Response({'message': 'Appointments retrieved successfully', 'appointments': items})

    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = appointment_service.create_appointment(request.user, **s.validated_data)
    appt = appointment_service.get_appointment(request.user, appt.pk)
    return Response({'message': 'Appointment created successfully', 'appointment': format_appointment(appt)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, pk):
    if request.method == 'GET':
        appt = appointment_service.get_appointment(request.user, pk)
        return Response({'message': 'Appointment retrieved successfully', 'appointment': format_appointment(appt)})

    if request.method == 'DELETE':
        if not request.user.is_admin:
            raise PermissionDenied('Only admins can delete appointments')
        appointment_service.delete_appointment(request.user, pk)
        return Response({'message': 'Appointment deleted successfully'})

    s = AppointmentUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appointment_service.update_appointment(request.user, pk, s.validated_data)
    appt = appointment_service.get_appointment(request.user, pk)
    return Response({'message': 'Appointment updated successfully', 'appointment': format_appointment(appt)})
