from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, UserAuditLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'username', 'is_active', 'is_instance_admin', 'is_staff', 'created_at']
    list_filter = ['is_active', 'is_instance_admin', 'is_staff']
    search_fields = ['email', 'username']
    readonly_fields = ['id', 'created_at', 'updated_at', 'last_login']

    fieldsets = (
        (None, {'fields': ('id', 'email', 'password')}),
        ('Profile', {'fields': ('username',)}),
        ('Permissions', {'fields': ('is_active', 'is_instance_admin', 'is_staff', 'is_superuser')}),
        ('Important dates', {'fields': ('last_login', 'created_at', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2', 'username', 'is_active', 'is_instance_admin'),
        }),
    )

    ordering = ['email']


@admin.register(UserAuditLog)
class UserAuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'action', 'actor_user', 'target_user']
    list_filter = ['action', 'created_at']
    search_fields = ['actor_user__email', 'target_user__email']
    readonly_fields = ['id', 'created_at', 'actor_user', 'target_user', 'action', 'metadata']

    def has_add_permission(self, request):
        # Audit logs should not be manually created
        return False

    def has_delete_permission(self, request, obj=None):
        # Audit logs should not be deleted
        return False
