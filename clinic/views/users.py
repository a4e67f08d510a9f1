from django.contrib.auth import get_user_model
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsAdminRole, check_access
from clinic.serializers.profiles import DoctorProfileSerializer, PatientProfileSerializer, UserUpdateSerializer
from clinic.services.accounts import delete_user, update_user
from clinic.services.formatting import format_user
from clinic.services.profiles import format_profile

User = get_user_model()


def _get_user(pk):
    user = User.objects.filter(pk=pk).first()
    if not user:
        raise NotFound('User not found')
    return user


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def users_collection(request):
    qs = User.objects.all()
    role = request.query_params.get('role')
    if role:
        qs = qs.filter(role=role)
    users = [format_user(u) for u in qs.order_by('-created_at')]
    return Response({'message': 'Users retrieved successfully', 'users': users})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def user_detail(request, pk):
    user = _get_user(pk)

    if request.method == 'DELETE':
        if not request.user.is_admin:
            raise PermissionDenied('Only admins can delete users')
        delete_user(request.user, user)
        return Response({'message': 'User deleted successfully'})

    if not check_access(request.user, user.id):
        raise PermissionDenied('Not authorized to access this user')

    if request.method == 'GET':
        return Response({'message': 'User retrieved successfully', 'user': format_user(user),
                         'profile': format_profile(user)})

    s = UserUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    profile_data = None
    if user.is_patient:
        ps = PatientProfileSerializer(data=request.data)
        ps.is_valid(raise_exception=True)
        profile_data = ps.validated_data
    elif user.is_doctor:
        ps = DoctorProfileSerializer(data=request.data)
        ps.is_valid(raise_exception=True)
        profile_data = ps.validated_data
    update_user(user, s.validated_data, profile_data)
    return Response({'message': 'User updated successfully', 'user': format_user(user),
                     'profile': format_profile(user)})
