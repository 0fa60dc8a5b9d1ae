from django.contrib import admin
from .models import Poll, PollOption, PollTranslation, Vote


class PollOptionInline(admin.TabularInline):
    model = PollOption
    extra = 0


@admin.register(Poll)
class PollAdmin(admin.ModelAdmin):
    list_display = ['question', 'poll_type', 'status', 'end_date', 'created_by', 'created_at']
    list_filter = ['status', 'poll_type']
    search_fields = ['question', 'description']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [PollOptionInline]


@admin.register(Vote)
class VoteAdmin(admin.ModelAdmin):
    list_display = ['poll', 'option', 'user', 'created_at']
    list_filter = ['poll']
    readonly_fields = ['created_at']


@admin.register(PollTranslation)
class PollTranslationAdmin(admin.ModelAdmin):
    list_display = ['poll', 'language', 'question', 'created_at']
    list_filter = ['language']
    search_fields = ['question']
