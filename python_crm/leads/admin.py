"""
Django admin configuration for leads app.
"""
from django.contrib import admin
from leads.models import Lead, LeadActivity


class LeadActivityInline(admin.TabularInline):
    """Inline display of activities for a lead."""
    model = LeadActivity
    extra = 0
    readonly_fields = ('type', 'description', 'created_at')
    can_delete = False


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    """Admin interface for Lead model."""

    list_display = ('id', 'name', 'email', 'company', 'status', 'created_at')
    list_filter = ('status', 'source', 'created_at')
    search_fields = ('id', 'name', 'email', 'company')
    readonly_fields = ('id', 'created_at', 'updated_at')

    fieldsets = (
        ('Contact', {
            'fields': ('id', 'name', 'email', 'company', 'phone')
        }),
        ('Project', {
            'fields': ('budget', 'project_type', 'message', 'source')
        }),
        ('Pipeline', {
            'fields': ('status', 'created_at', 'updated_at')
        }),
    )

    inlines = [LeadActivityInline]


@admin.register(LeadActivity)
class LeadActivityAdmin(admin.ModelAdmin):
    """Admin interface for LeadActivity model."""

    list_display = ('id', 'lead', 'type', 'created_at')
    list_filter = ('type', 'created_at')
    search_fields = ('lead__id', 'description')
    readonly_fields = ('created_at',)
