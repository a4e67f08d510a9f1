from rest_framework import serializers

from .fields import CleanCharField

WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


class PatientProfileSerializer(serializers.Serializer):
    dateOfBirth = serializers.DateField(required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=['male', 'female', 'other'], required=False, allow_blank=True)
    bloodGroup = CleanCharField(max_length=8, required=False, allow_blank=True)
    emergencyContact = CleanCharField(max_length=255, required=False, allow_blank=True)
    medicalHistory = CleanCharField(required=False, allow_blank=True)
    allergies = CleanCharField(required=False, allow_blank=True)
    currentMedications = CleanCharField(required=False, allow_blank=True)


class DoctorProfileSerializer(serializers.Serializer):
    """Doctor profile fields.

    On create (``context['creating']``) specialty, qualification and
    licenseNumber are mandatory; on update every field is optional.
    """
    specialty = CleanCharField(max_length=128, required=False)
    qualification = CleanCharField(max_length=255, required=False)
    experience = serializers.IntegerField(min_value=0, max_value=80, required=False, allow_null=True)
    licenseNumber = CleanCharField(max_length=64, required=False)
    consultationFee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True)
    availableDays = serializers.ListField(child=serializers.ChoiceField(choices=WEEKDAYS), required=False)
    availableTimeStart = serializers.TimeField(required=False, allow_null=True)
    availableTimeEnd = serializers.TimeField(required=False, allow_null=True)
    isAvailableForVideoCall = serializers.BooleanField(required=False)
    bio = CleanCharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if self.context.get('creating'):
            missing = [f for f in ('specialty', 'qualification', 'licenseNumber') if not attrs.get(f)]
            if missing:
                raise serializers.ValidationError({f: 'This field is required.' for f in missing})
        start, end = attrs.get('availableTimeStart'), attrs.get('availableTimeEnd')
        if start and end and start >= end:
            raise serializers.ValidationError({'availableTimeEnd': 'Must be later than availableTimeStart'})
        if 'availableDays' in attrs:
            attrs['availableDays'] = [d for d in WEEKDAYS if d in set(attrs['availableDays'])]
        return attrs


class DoctorProfileWriteSerializer(DoctorProfileSerializer):
    """Payload of ``POST /api/doctors/profile``; admins may name the doctor's user."""
    userId = serializers.UUIDField(required=False, allow_null=True)


class UserUpdateSerializer(serializers.Serializer):
    name = CleanCharField(max_length=255, required=False)
    email = serializers.EmailField(required=False)
    phone = CleanCharField(max_length=32, required=False, allow_blank=True)
    address = CleanCharField(max_length=255, required=False, allow_blank=True)

    def validate_email(self, v):
        return v.strip().lower()


class DoctorListQuerySerializer(serializers.Serializer):
    specialty = serializers.CharField(max_length=128, required=False)
    q = serializers.CharField(max_length=64, required=False)
    videoOnly = serializers.BooleanField(required=False, default=False)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200)
