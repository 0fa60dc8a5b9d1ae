from django.contrib import admin
from .models import AuditLog, SystemSetting


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'action', 'entity_type', 'entity_label', 'user']
    list_filter = ['action', 'entity_type']
    search_fields = ['entity_label', 'entity_id', 'user__email']
    readonly_fields = [f.name for f in AuditLog._meta.fields]


@admin.register(SystemSetting)
class SystemSettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'updated_by', 'updated_at']
    search_fields = ['key']
