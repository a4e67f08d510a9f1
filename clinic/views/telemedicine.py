from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsDoctorOrAdmin
from clinic.serializers.telemedicine import SessionEndSerializer, SessionProvisionSerializer
from clinic.services import telemedicine as session_service
from clinic.services.formatting import format_session


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sessions_collection(request):
    if request.method == 'GET':
        if not request.user.is_admin:
            raise PermissionDenied('Not authorized to access all telemedicine sessions')
        items = session_service.list_sessions(status=request.query_params.get('status'))
        return Response({'message': 'Telemedicine sessions retrieved successfully', 'sessions': items})

    if not IsDoctorOrAdmin().has_permission(request, None):
        raise PermissionDenied('Only doctors can create telemedicine sessions')
    s = SessionProvisionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    session, created = session_service.provision_session(request.user, s.validated_data['appointmentId'])
    if created:
        return Response({'message': 'Telemedicine session created successfully', 'session': format_session(session)},
                        status=status.HTTP_201_CREATED)
    return Response({'message': 'Telemedicine session updated successfully', 'session': format_session(session)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def session_detail(request, pk):
    session = session_service.get_session(request.user, pk)
    return Response({'message': 'Telemedicine session retrieved successfully', 'session': format_session(session)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorOrAdmin])
def session_start(request, pk):
    session = session_service.start_session(request.user, pk)
    return Response({
        'message': 'Telemedicine session started successfully',
        'hostUrl': session.host_url,
        'session': format_session(session),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorOrAdmin])
def session_end(request, pk):
    s = SessionEndSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    session = session_service.end_session(
        request.user, pk,
        notes=s.validated_data.get('notes'),
        recording_url=s.validated_data.get('recordingUrl'),
    )
    return Response({'message': 'Telemedicine session ended successfully', 'session': format_session(session)})
