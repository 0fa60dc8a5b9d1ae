from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import OwnerRegistration, User


@admin.register(User)
class PortalUserAdmin(UserAdmin):
    list_display = ['username', 'email', 'name', 'role', 'building_number', 'apartment_number', 'is_active']
    list_filter = ['role', 'is_verified_owner', 'preferred_language', 'is_active']
    search_fields = ['username', 'email', 'name', 'building_number', 'apartment_number']
    fieldsets = UserAdmin.fieldsets + (
        ('Portal', {
            'fields': (
                'name', 'role', 'is_verified_owner', 'building_number', 'apartment_number',
                'phone_number', 'preferred_language', 'whatsapp_opt_in', 'granted_permissions',
            ),
        }),
    )


@admin.register(OwnerRegistration)
class OwnerRegistrationAdmin(admin.ModelAdmin):
    list_display = ['email', 'name', 'building_number', 'apartment_number', 'status', 'created_at']
    list_filter = ['status', 'preferred_language']
    search_fields = ['email', 'name']
    readonly_fields = ['reviewed_by', 'reviewed_at', 'user']
