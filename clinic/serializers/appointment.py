from rest_framework import serializers

from .fields import CleanCharField

TYPES = ['in-person', 'video']
STATUSES = ['scheduled', 'completed', 'cancelled', 'no-show']


class AppointmentCreateSerializer(serializers.Serializer):
    patientId = serializers.UUIDField()
    doctorId = serializers.UUIDField()
    date = serializers.DateField()
    time = serializers.TimeField()
    duration = serializers.IntegerField(min_value=5, max_value=480, required=False, allow_null=True)
    type = serializers.ChoiceField(choices=TYPES, required=False, default='in-person')
    reason = CleanCharField(required=False, allow_blank=True, max_length=2000)


class AppointmentUpdateSerializer(serializers.Serializer):
    """Partial update; only keys present in the payload are applied."""
    date = serializers.DateField(required=False)
    time = serializers.TimeField(required=False)
    duration = serializers.IntegerField(min_value=5, max_value=480, required=False)
    type = serializers.ChoiceField(choices=TYPES, required=False)
    reason = CleanCharField(required=False, allow_blank=True, max_length=2000)
    status = serializers.ChoiceField(choices=STATUSES, required=False)
    notes = CleanCharField(required=False, allow_blank=True, max_length=4000)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('No fields to update')
        return attrs


class AppointmentFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUSES, required=False)
    type = serializers.ChoiceField(choices=TYPES, required=False)
    date = serializers.DateField(required=False)
