from django.contrib import admin
from .models import DocumentTranslationJob


@admin.register(DocumentTranslationJob)
class DocumentTranslationJobAdmin(admin.ModelAdmin):
    list_display = ['document', 'source_language', 'target_language', 'status', 'attempts', 'progress', 'created_at']
    list_filter = ['status', 'target_language', 'service_used']
    search_fields = ['document__title', 'error_message']
    readonly_fields = ['created_at', 'updated_at', 'started_at', 'completed_at']
