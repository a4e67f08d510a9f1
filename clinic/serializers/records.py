from rest_framework import serializers

from .fields import CleanCharField


class MedicalRecordUpdateSerializer(serializers.Serializer):
    diagnosis = CleanCharField(required=False, allow_blank=True)
    symptoms = CleanCharField(required=False, allow_blank=True)
    prescriptions = CleanCharField(required=False, allow_blank=True)
    testResults = CleanCharField(required=False, allow_blank=True)
    notes = CleanCharField(required=False, allow_blank=True)
    followUpDate = serializers.DateField(required=False, allow_null=True)


class MedicalRecordCreateSerializer(MedicalRecordUpdateSerializer):
    patientId = serializers.UUIDField()
    doctorId = serializers.UUIDField(required=False, allow_null=True)
    appointmentId = serializers.UUIDField(required=False, allow_null=True)


class MedicalRecordFilterSerializer(serializers.Serializer):
    patientId = serializers.UUIDField(required=False)
    doctorId = serializers.UUIDField(required=False)
