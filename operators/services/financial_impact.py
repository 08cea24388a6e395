"""
OPERATORS App - Tier Change Financial Impact

First-order estimate of what a tier change means for an operator's
commission, based on an average monthly commission base.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from django.conf import settings

from operators.services.tier_policy import TierPolicy, get_tier_policy

CENTS = Decimal('0.01')


class ImpactType:
    INCREASE = 'increase'
    DECREASE = 'decrease'
    NO_CHANGE = 'no_change'


@dataclass(frozen=True)
class FinancialImpact:
    from_tier: str
    to_tier: str
    from_rate: Decimal
    to_rate: Decimal
    percentage_change: Decimal
    commission_base: Decimal
    monthly_change: Decimal
    annual_change: Decimal
    impact_type: str

    @property
    def calculation_notes(self) -> List[str]:
        if self.percentage_change > 0:
            verb = 'increased'
        elif self.percentage_change < 0:
            verb = 'decreased'
        else:
            verb = 'unchanged'
        return [
            f"Commission rate {verb} from {self.from_rate}% to {self.to_rate}%",
            f"Estimated monthly impact: ₱{self.monthly_change}",
            f"Based on average commission base of ₱{self.commission_base:,}",
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'commission_rate_change': {
                'from_rate': float(self.from_rate),
                'to_rate': float(self.to_rate),
                'percentage_change': float(self.percentage_change),
            },
            'estimated_impact': {
                'monthly_change': float(self.monthly_change),
                'annual_change': float(self.annual_change),
                'impact_type': self.impact_type,
            },
            'calculation_notes': self.calculation_notes,
        }


class FinancialImpactCalculator:
    """Pure rate-delta calculator; no I/O."""

    def __init__(self, policy: Optional[TierPolicy] = None):
        self.policy = policy or get_tier_policy()

    def estimate(self, from_tier, to_tier, commission_base_estimate=None) -> FinancialImpact:
        """
        Estimate the commission delta of moving from_tier -> to_tier.

        Args:
            from_tier: Current tier
            to_tier: Requested tier
            commission_base_estimate: Monthly commission base in PHP
                (default: settings.COMMISSION_BASE_ESTIMATE)

        Raises:
            ValueError: If either tier is not part of the policy
        """
        from_rate = self.policy.rate(from_tier)
        to_rate = self.policy.rate(to_tier)

        if commission_base_estimate is None:
            commission_base_estimate = getattr(settings, 'COMMISSION_BASE_ESTIMATE', 50000)
        base = Decimal(str(commission_base_estimate))

        percentage_change = to_rate - from_rate
        monthly_change = (base * percentage_change / Decimal('100')).quantize(CENTS, rounding=ROUND_HALF_UP)
        annual_change = (monthly_change * 12).quantize(CENTS, rounding=ROUND_HALF_UP)

        if monthly_change > 0:
            impact_type = ImpactType.INCREASE
        elif monthly_change < 0:
            impact_type = ImpactType.DECREASE
        else:
            impact_type = ImpactType.NO_CHANGE

        return FinancialImpact(
            from_tier=from_tier,
            to_tier=to_tier,
            from_rate=from_rate,
            to_rate=to_rate,
            percentage_change=percentage_change,
            commission_base=base,
            monthly_change=monthly_change,
            annual_change=annual_change,
            impact_type=impact_type,
        )
