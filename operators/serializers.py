"""
Operators App Serializers - Commission tier changes & audit trail
"""

from rest_framework import serializers

from .models import Operator, CommissionTier, CommissionTierAudit


class OperatorTierSerializer(serializers.ModelSerializer):
    """Current commission tier state of an operator."""

    region_code = serializers.CharField(source='primary_region.code', read_only=True)

    class Meta:
        model = Operator
        fields = [
            'id', 'operator_code', 'business_name', 'primary_region', 'region_code',
            'commission_tier', 'tier_qualification_date', 'partnership_start_date',
            'performance_score', 'payment_consistency', 'utilization_percentile',
            'last_qualification_status', 'next_tier_evaluation_date',
        ]
        read_only_fields = fields


class CommissionTierChangeSerializer(serializers.Serializer):
    """Body of a commission tier change request."""

    target_tier = serializers.ChoiceField(choices=CommissionTier.choices)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)


class CommissionTierAuditSerializer(serializers.ModelSerializer):
    """Read-only audit trail entry."""

    class Meta:
        model = CommissionTierAudit
        fields = [
            'id', 'operator_id', 'actor_id', 'actor_name',
            'previous_tier', 'requested_tier', 'new_tier', 'change_type',
            'outcome', 'reason_code', 'qualification_snapshot',
            'financial_impact', 'notes', 'recorded_at',
        ]
        read_only_fields = fields
