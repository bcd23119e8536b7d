from django.contrib import admin
from .models import (
    Attachment, AuditEvent, Child, Illness, IllnessTypeEntry, Measurement, Visit, VisitIllness
)


class ReadOnlyAdminMixin:
    """Audited records change only through the API so every change is captured."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Child)
class ChildAdmin(admin.ModelAdmin):
    list_display = ['name', 'family', 'date_of_birth', 'gender', 'created_at']
    list_filter = ['gender']
    search_fields = ['name', 'family__name']
    readonly_fields = ['id', 'family', 'created_at', 'updated_at']


@admin.register(Measurement)
class MeasurementAdmin(admin.ModelAdmin):
    list_display = ['child', 'measurement_date', 'label', 'weight_value', 'height_value']
    search_fields = ['child__name', 'label']
    readonly_fields = ['id', 'created_at', 'updated_at']
    raw_id_fields = ['child']


class VisitIllnessInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = VisitIllness
    extra = 0


@admin.register(Visit)
class VisitAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['child', 'visit_date', 'visit_type', 'doctor_name', 'created_at']
    list_filter = ['visit_type']
    search_fields = ['child__name', 'doctor_name', 'location']
    inlines = [VisitIllnessInline]


class IllnessTypeEntryInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = IllnessTypeEntry
    extra = 0


@admin.register(Illness)
class IllnessAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['child', 'start_date', 'end_date', 'severity', 'created_at']
    search_fields = ['child__name']
    inlines = [IllnessTypeEntryInline]


@admin.register(Attachment)
class AttachmentAdmin(admin.ModelAdmin):
    list_display = ['stored_filename', 'child', 'document_type', 'file_type', 'file_size', 'created_at']
    list_filter = ['document_type']
    search_fields = ['stored_filename', 'child__name']
    readonly_fields = ['id', 'stored_filename', 'uploaded_by', 'created_at']
    raw_id_fields = ['child', 'visit', 'measurement']


@admin.register(AuditEvent)
class AuditEventAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['changed_at', 'entity_type', 'entity_id', 'action', 'user']
    list_filter = ['entity_type', 'action']
    search_fields = ['entity_id', 'user__email']
    ordering = ['-changed_at', '-id']
