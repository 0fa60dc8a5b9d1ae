from django.contrib import admin
from .models import Document


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['title', 'category', 'language', 'is_translation', 'translation_status', 'is_published',
                    'download_count', 'created_at']
    list_filter = ['category', 'language', 'is_translation', 'is_published', 'translation_status']
    search_fields = ['title', 'description', 'file_name']
    raw_id_fields = ['original_document', 'created_by']
    readonly_fields = ['view_count', 'download_count', 'created_at', 'updated_at']
