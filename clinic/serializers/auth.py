from rest_framework import serializers

from .fields import CleanCharField
from .profiles import PatientProfileSerializer, DoctorProfileSerializer


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)

    def validate_email(self, v):
        return (v or '').strip().lower()


class RegisterSerializer(serializers.Serializer):
    """Account fields plus the role profile fields in one flat payload.

    Patient and doctor profile fields are validated by the profile
    serializers in :meth:`validate`; unknown keys are ignored.
    """
    email = serializers.EmailField()
    password = serializers.CharField(min_length=8, trim_whitespace=False, write_only=True)
    name = CleanCharField(max_length=255)
    role = serializers.ChoiceField(choices=['patient', 'doctor', 'admin'], required=False, default='patient')
    phone = CleanCharField(max_length=32, required=False, allow_blank=True)
    address = CleanCharField(max_length=255, required=False, allow_blank=True)

    def validate_email(self, v):
        return v.strip().lower()

    def validate_name(self, v):
        v = v.strip()
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v

    def validate(self, attrs):
        role = attrs.get('role', 'patient')
        profile_cls = DoctorProfileSerializer if role == 'doctor' else PatientProfileSerializer
        if role == 'admin':
            attrs['profile'] = {}
            return attrs
        profile = profile_cls(data=self.initial_data, context={'creating': True})
        if not profile.is_valid():
            raise serializers.ValidationError(profile.errors)
        attrs['profile'] = profile.validated_data
        return attrs
