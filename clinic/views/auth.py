"""
Authentication endpoints.

Registration and login both answer with the user payload plus a JWT
access/refresh pair.  Refresh tokens rotate and are blacklisted on
rotation and on logout (``rest_framework_simplejwt.token_blacklist``).
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.serializers.auth import LoginSerializer, RegisterSerializer
from clinic.services.accounts import issue_tokens, register_user
from clinic.services.audit import log_action
from clinic.services.formatting import format_user
from clinic.services.profiles import format_profile


def _client_ip(request):
    return request.META.get('REMOTE_ADDR')


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    caller = request.user if request.user and request.user.is_authenticated else None
    user, _ = register_user(
        caller,
        email=vd['email'], password=vd['password'], name=vd['name'], role=vd.get('role') or 'patient',
        phone=vd.get('phone', ''), address=vd.get('address', ''), profile=vd.get('profile'),
    )
    return Response({
        'message': 'User registered successfully',
        'user': format_user(user),
        'profile': format_profile(user),
        **issue_tokens(user),
    }, status=status.HTTP_201_CREATED)

register_view.cls.throttle_scope = 'register'


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']

    user = authenticate(request, email=email, password=s.validated_data['password'])
    if not user:
        # only the submitted e-mail is recorded for failed attempts
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'email': email, 'ip': _client_ip(request)})
        raise AuthenticationFailed('Invalid credentials')

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': _client_ip(request)})
    return Response({'message': 'Login successful', 'user': format_user(user), **issue_tokens(user)})

# ScopedRateThrottle reads throttle_scope from the view class
login_view.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def profile_view(request):
    user = request.user
    return Response({
        'message': 'Profile retrieved successfully',
        'user': format_user(user),
        'profile': format_profile(user),
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_view(request):
    s = TokenRefreshSerializer(data={'refresh': request.data.get('refresh') or ''})
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise AuthenticationFailed(str(e))
    data = s.validated_data
    return Response({
        'message': 'Token refreshed successfully',
        'token': data['access'],
        'refresh': data.get('refresh', request.data.get('refresh')),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    raw = request.data.get('refresh')
    if not raw:
        raise ValidationError({'refresh': 'This field is required.'})
    try:
        token = RefreshToken(raw)
        if str(token.get('user_id')) != str(request.user.id):
            raise ValidationError('Refresh token does not belong to this user')
        token.blacklist()
    except TokenError as e:
        raise ValidationError(str(e))
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id)
    return Response({'message': 'Logged out successfully'})
