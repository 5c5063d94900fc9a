from django.contrib import admin
from .models import Election


@admin.register(Election)
class ElectionAdmin(admin.ModelAdmin):
    list_display = ['title', 'start_date', 'end_date', 'get_status', 'created_by']
    list_filter = ['start_date']
    search_fields = ['title', 'description']
    date_hierarchy = 'start_date'
    ordering = ['-start_date']
    readonly_fields = ['election_id', 'created_by', 'created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('election_id', 'title', 'description')
        }),
        ('Schedule', {
            'fields': ('start_date', 'end_date')
        }),
        ('Administration', {
            'fields': ('created_by', 'created_at')
        }),
    )

    def get_status(self, obj):
        return obj.status_at()
    get_status.short_description = 'Status'

    def has_change_permission(self, request, obj=None):
        # Elections are immutable once created
        return obj is None and super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        if not change:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)
