"""
Django admin registrations for the clinic models.

Superusers can inspect and correct appointments, records and sessions
through ``/admin/``.  Status transitions made here bypass the API rules,
so edits should be limited to data fixes.
"""

from django.contrib import admin

from .models import (
    User,
    Patient,
    Doctor,
    Appointment,
    MedicalRecord,
    TelemedicineSession,
    AuditEvent,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'role', 'is_active', 'is_staff', 'created_at')
    list_filter = ('role', 'is_active')
    search_fields = ('email', 'name')
    ordering = ('email',)
    exclude = ('password',)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('user', 'gender', 'date_of_birth', 'blood_group')
    search_fields = ('user__name', 'user__email')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('user', 'specialty', 'license_number', 'is_available_for_video_call')
    list_filter = ('specialty', 'is_available_for_video_call')
    search_fields = ('user__name', 'license_number', 'specialty')


class TelemedicineSessionInline(admin.StackedInline):
    model = TelemedicineSession
    extra = 0


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('date', 'time', 'doctor', 'patient', 'type', 'status')
    list_filter = ('status', 'type', 'date')
    search_fields = ('doctor__user__name', 'patient__user__name')
    inlines = [TelemedicineSessionInline]


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('patient', 'doctor', 'appointment', 'follow_up_date', 'created_at')
    search_fields = ('patient__user__name', 'doctor__user__name', 'diagnosis')


@admin.register(TelemedicineSession)
class TelemedicineSessionAdmin(admin.ModelAdmin):
    list_display = ('appointment', 'status', 'meeting_id', 'start_time', 'end_time')
    list_filter = ('status',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id',)
