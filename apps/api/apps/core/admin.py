from django.contrib import admin
from .models import InstanceSettings


@admin.register(InstanceSettings)
class InstanceSettingsAdmin(admin.ModelAdmin):
    list_display = ['id', 'registration_enabled', 'default_family_name', 'log_level', 'updated_at']
    readonly_fields = ['id', 'created_at', 'updated_at']

    def has_add_permission(self, request):
        # Single row, created on first access
        return not InstanceSettings.objects.exists()
