from django.contrib import admin
from .models import Family, FamilyInvite, FamilyMember


class FamilyMemberInline(admin.TabularInline):
    model = FamilyMember
    extra = 0
    raw_id_fields = ['user']
    readonly_fields = ['created_at']


@admin.register(Family)
class FamilyAdmin(admin.ModelAdmin):
    list_display = ['name', 'default_owner', 'created_at']
    search_fields = ['name']
    readonly_fields = ['id', 'default_owner', 'created_at', 'updated_at']
    inlines = [FamilyMemberInline]


@admin.register(FamilyMember)
class FamilyMemberAdmin(admin.ModelAdmin):
    list_display = ['family', 'user', 'role', 'created_at']
    list_filter = ['role']
    search_fields = ['family__name', 'user__email']
    raw_id_fields = ['family', 'user']


@admin.register(FamilyInvite)
class FamilyInviteAdmin(admin.ModelAdmin):
    list_display = ['family', 'role', 'created_by', 'expires_at', 'used_at']
    list_filter = ['role']
    readonly_fields = ['id', 'token_hash', 'created_at', 'used_at', 'used_by']

    def has_add_permission(self, request):
        # Invites carry a one-time token; create them through the API
        return False
