"""
Django Admin configuration for OPERATORS app.
"""

from django.contrib import admin
from .models import Operator, CommissionTierAudit


@admin.register(Operator)
class OperatorAdmin(admin.ModelAdmin):
    """
    Operator admin. The commission tier is read-only here: changes go
    through the tier transition API so they are gated and audited.
    """

    list_display = (
        'operator_code',
        'business_name',
        'primary_region',
        'commission_tier',
        'performance_score',
        'last_qualification_status',
        'next_tier_evaluation_date',
        'is_active'
    )
    list_filter = ('commission_tier', 'last_qualification_status', 'primary_region', 'is_active')
    search_fields = ('operator_code', 'business_name')
    ordering = ('business_name',)

    readonly_fields = (
        'id',
        'commission_tier',
        'tier_qualification_date',
        'last_qualification_status',
        'next_tier_evaluation_date',
        'created_at',
        'updated_at'
    )

    fieldsets = (
        ('Operator', {
            'fields': ('id', 'operator_code', 'business_name', 'primary_region', 'partnership_start_date', 'is_active')
        }),
        ('Commission tier', {
            'fields': ('commission_tier', 'tier_qualification_date', 'last_qualification_status', 'next_tier_evaluation_date')
        }),
        ('Performance', {
            'fields': ('performance_score', 'payment_consistency', 'utilization_percentile')
        }),
        ('History', {
            'fields': ('created_at', 'updated_at')
        }),
    )


@admin.register(CommissionTierAudit)
class CommissionTierAuditAdmin(admin.ModelAdmin):
    """Append-only audit trail: view only."""

    list_display = (
        'short_id',
        'short_operator',
        'actor_name',
        'previous_tier',
        'requested_tier',
        'new_tier',
        'outcome',
        'reason_code',
        'recorded_at'
    )
    list_filter = ('outcome', 'change_type', 'reason_code', 'recorded_at')
    search_fields = ('operator_id', 'actor_name', 'notes')
    ordering = ('-recorded_at',)
    date_hierarchy = 'recorded_at'

    def short_id(self, obj):
        return str(obj.id)[:8]
    short_id.short_description = "ID"

    def short_operator(self, obj):
        return str(obj.operator_id)[:8]
    short_operator.short_description = "Operator"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
