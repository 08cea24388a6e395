"""
OPERATORS App - Operator & Commission Tier Models for XPRESS OPS

Handles: Fleet operators, their commission tier and the append-only
audit trail of every tier transition attempt.
"""

import uuid
from django.db import models
from django.utils import timezone


class CommissionTier(models.TextChoices):
    """Commission tier enumeration, declared in ascending order."""
    TIER_1 = 'tier_1', 'Tier 1 (1%)'
    TIER_2 = 'tier_2', 'Tier 2 (2%)'
    TIER_3 = 'tier_3', 'Tier 3 (3%)'


class QualificationStatus(models.TextChoices):
    QUALIFIED = 'qualified', 'Qualified'
    BELOW_THRESHOLD = 'below_threshold', 'Below threshold'


class ChangeType(models.TextChoices):
    UPGRADE = 'upgrade', 'Upgrade'
    DOWNGRADE = 'downgrade', 'Downgrade'


class AuditOutcome(models.TextChoices):
    APPLIED = 'applied', 'Applied'
    REJECTED = 'rejected', 'Rejected'
    ERRORED = 'errored', 'Errored'
    AUTH_REJECTED = 'auth_rejected', 'Authorization rejected'


class Operator(models.Model):
    """
    Fleet operator (TNVS / taxi operator) partnered with the platform.

    Key Business Logic:
    - commission_tier is only ever changed through the tier transition
      engine (operators.services.transitions), never edited directly
    - performance metrics are refreshed by the scoring pipeline; a NULL
      metric means "not yet computed" and blocks tier evaluation
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    operator_code = models.CharField(max_length=20, unique=True, verbose_name="Operator code")
    business_name = models.CharField(max_length=200, verbose_name="Business name")
    primary_region = models.ForeignKey(
        'core.Region',
        on_delete=models.PROTECT,
        related_name='operators',
        verbose_name="Primary region"
    )

    # Commission tier
    commission_tier = models.CharField(
        max_length=10,
        choices=CommissionTier.choices,
        default=CommissionTier.TIER_1,
        verbose_name="Commission tier"
    )
    tier_qualification_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Current tier since"
    )
    partnership_start_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Partnership start date"
    )

    # Performance metrics (refreshed by the scoring pipeline)
    performance_score = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Performance score (/100)"
    )
    payment_consistency = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Payment consistency (%)",
        help_text="Boundary fees paid on time over the last 6 months"
    )
    utilization_percentile = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Utilization percentile",
        help_text="Vehicle utilization percentile within the region"
    )

    # Last periodic evaluation (display only, never used for gating)
    last_qualification_status = models.CharField(
        max_length=20,
        choices=QualificationStatus.choices,
        blank=True,
        verbose_name="Last qualification status"
    )
    next_tier_evaluation_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Next tier evaluation"
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Operator"
        verbose_name_plural = "Operators"
        ordering = ['business_name']
        indexes = [
            models.Index(fields=['primary_region', 'commission_tier'], name='operators_o_primary_8c4f1a_idx'),
        ]
        permissions = [
            ('manage_operators', 'Can manage operators'),
            ('update_commission_tier', 'Can request commission tier changes'),
            ('update_commission_tier_unrestricted', 'Can apply commission tier changes'),
        ]

    def __str__(self):
        return f"{self.operator_code} - {self.business_name} ({self.commission_tier})"


class CommissionTierAudit(models.Model):
    """
    Append-only record of a commission tier transition attempt.

    One row per attempt (applied, rejected, errored or refused at
    authorization). Rows are never updated or deleted; operator_id is
    a plain value so the trail outlives the operator record.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    operator_id = models.UUIDField(db_index=True, verbose_name="Operator")
    actor_id = models.UUIDField(null=True, blank=True, verbose_name="Actor")
    actor_name = models.CharField(max_length=150, blank=True, verbose_name="Actor name")

    previous_tier = models.CharField(max_length=10, choices=CommissionTier.choices, blank=True)
    requested_tier = models.CharField(max_length=10, blank=True)
    new_tier = models.CharField(max_length=10, choices=CommissionTier.choices, blank=True)
    change_type = models.CharField(max_length=10, choices=ChangeType.choices, blank=True)

    outcome = models.CharField(max_length=20, choices=AuditOutcome.choices, db_index=True)
    reason_code = models.CharField(max_length=50, blank=True)

    qualification_snapshot = models.JSONField(null=True, blank=True)
    financial_impact = models.JSONField(null=True, blank=True)
    notes = models.TextField(blank=True)

    recorded_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = "Commission tier audit"
        verbose_name_plural = "Commission tier audit trail"
        ordering = ['-recorded_at']
        indexes = [
            models.Index(fields=['operator_id', 'recorded_at'], name='operators_c_operato_5b1e2d_idx'),
        ]

    def __str__(self):
        return (
            f"{str(self.operator_id)[:8]} | {self.previous_tier or '-'} → "
            f"{self.new_tier or self.requested_tier or '-'} | {self.outcome}"
        )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Commission tier audit entries are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Commission tier audit entries cannot be deleted")
