from django.contrib import admin
from .models import EmergencyAlert, WhatsAppContact, WhatsAppMessage


@admin.register(WhatsAppContact)
class WhatsAppContactAdmin(admin.ModelAdmin):
    list_display = ['phone_number', 'user', 'status', 'opted_in_at', 'opted_out_at']
    list_filter = ['status']
    search_fields = ['phone_number', 'user__username', 'user__name']


@admin.register(WhatsAppMessage)
class WhatsAppMessageAdmin(admin.ModelAdmin):
    list_display = ['phone_number', 'direction', 'message_type', 'status', 'notification_type', 'created_at']
    list_filter = ['direction', 'status', 'notification_type']
    search_fields = ['phone_number', 'content', 'whatsapp_id']
    readonly_fields = ['created_at', 'sent_at']


@admin.register(EmergencyAlert)
class EmergencyAlertAdmin(admin.ModelAdmin):
    list_display = ['title', 'severity', 'alert_type', 'recipients_count', 'success_count', 'created_at']
    list_filter = ['severity', 'alert_type']
