from rest_framework import serializers

from .fields import CleanCharField


class SessionProvisionSerializer(serializers.Serializer):
    appointmentId = serializers.UUIDField()


class SessionEndSerializer(serializers.Serializer):
    notes = CleanCharField(required=False, allow_blank=True, max_length=4000)
    recordingUrl = serializers.URLField(required=False, allow_blank=True, allow_null=True, max_length=512)
