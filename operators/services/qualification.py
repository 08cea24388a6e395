"""
OPERATORS App - Commission Tier Qualification

Computes the highest tier an operator currently qualifies for.

Qualification is monotonic: an operator holds tier N only if every
criterion of every tier up to N passes. A strong score cannot carry an
operator past a lower-tier payment or tenure bar.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings
from django.utils import timezone

from operators.models import QualificationStatus
from operators.services.exceptions import IncompleteSnapshotError
from operators.services.ports import OperatorSnapshot
from operators.services.tier_policy import TierPolicy, get_tier_policy


# snapshot attribute -> (threshold attribute, criterion flag)
CRITERIA = (
    ('performance_score', 'min_score', 'score_qualified'),
    ('tenure_months', 'min_tenure_months', 'tenure_qualified'),
    ('payment_consistency', 'min_payment_consistency', 'payment_qualified'),
    ('utilization_percentile', 'min_utilization_percentile', 'utilization_qualified'),
)


def _as_number(value):
    if isinstance(value, Decimal):
        return float(value)
    return value


@dataclass(frozen=True)
class QualificationResult:
    """
    Outcome of a qualification evaluation (never persisted as such).

    The four *_qualified flags describe evaluated_tier: the lowest tier
    whose bar the operator fails, or the top tier when every bar is met.
    tier_breakdown carries the per-criterion detail for all tiers.
    """
    operator_id: str
    current_tier: str
    target_tier: str
    evaluated_tier: str
    score_qualified: bool
    tenure_qualified: bool
    payment_qualified: bool
    utilization_qualified: bool
    qualification_status: str
    meets_minimum: bool
    evaluation_date: date
    next_evaluation_date: date
    policy_version: str
    tier_breakdown: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def disqualification_reasons(self):
        reasons = []
        for tier, criteria in self.tier_breakdown.items():
            for name, detail in criteria.items():
                if not detail['qualified']:
                    reasons.append(
                        f"{tier}: {name} {detail['current']} < {detail['requirement']}"
                    )
        return reasons

    def to_dict(self) -> Dict[str, Any]:
        return {
            'operator_id': str(self.operator_id),
            'current_tier': self.current_tier,
            'target_tier': self.target_tier,
            'evaluated_tier': self.evaluated_tier,
            'qualification_status': self.qualification_status,
            'meets_minimum': self.meets_minimum,
            'score_qualified': self.score_qualified,
            'tenure_qualified': self.tenure_qualified,
            'payment_qualified': self.payment_qualified,
            'utilization_qualified': self.utilization_qualified,
            'tier_breakdown': self.tier_breakdown,
            'disqualification_reasons': self.disqualification_reasons,
            'evaluation_date': self.evaluation_date.isoformat(),
            'next_evaluation_date': self.next_evaluation_date.isoformat(),
            'policy_version': self.policy_version,
        }


class QualificationEvaluator:
    """Evaluates operator snapshots against a TierPolicy."""

    def __init__(self, policy: Optional[TierPolicy] = None, interval_days: Optional[int] = None):
        self.policy = policy or get_tier_policy()
        if interval_days is None:
            interval_days = getattr(settings, 'TIER_EVALUATION_INTERVAL_DAYS', 30)
        self.interval_days = interval_days

    def evaluate(self, snapshot: OperatorSnapshot, evaluation_date: Optional[date] = None) -> QualificationResult:
        """
        Compute the maximum qualified tier for a snapshot.

        Raises:
            IncompleteSnapshotError: a metric is missing from the snapshot.
        """
        missing = [attr for attr, _, _ in CRITERIA if getattr(snapshot, attr) is None]
        if missing:
            raise IncompleteSnapshotError(snapshot.operator_id, missing)

        evaluation_date = evaluation_date or timezone.localdate()
        order = self.policy.order()

        breakdown = {}
        flags_by_tier = {}
        for tier in order:
            thresholds = self.policy.thresholds(tier)
            criteria = {}
            flags = {}
            for attr, threshold_attr, flag in CRITERIA:
                current = getattr(snapshot, attr)
                requirement = getattr(thresholds, threshold_attr)
                qualified = current >= requirement
                flags[flag] = qualified
                criteria[attr] = {
                    'requirement': _as_number(requirement),
                    'current': _as_number(current),
                    'qualified': qualified,
                }
            breakdown[tier] = criteria
            flags_by_tier[tier] = flags

        # Walk up while every criterion holds; first failing tier stops it
        highest_index = -1
        for position, tier in enumerate(order):
            if not all(flags_by_tier[tier].values()):
                break
            highest_index = position

        meets_minimum = highest_index >= 0
        target_tier = order[max(highest_index, 0)]
        evaluated_tier = order[min(highest_index + 1, len(order) - 1)]

        if self.policy.index(target_tier) >= self.policy.index(snapshot.current_tier):
            status = QualificationStatus.QUALIFIED.value
        else:
            status = QualificationStatus.BELOW_THRESHOLD.value

        return QualificationResult(
            operator_id=snapshot.operator_id,
            current_tier=snapshot.current_tier,
            target_tier=target_tier,
            evaluated_tier=evaluated_tier,
            qualification_status=status,
            meets_minimum=meets_minimum,
            evaluation_date=evaluation_date,
            next_evaluation_date=evaluation_date + timedelta(days=self.interval_days),
            policy_version=self.policy.version,
            tier_breakdown=breakdown,
            **flags_by_tier[evaluated_tier],
        )
