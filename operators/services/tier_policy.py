"""
OPERATORS App - Commission Tier Policy for XPRESS OPS

Static rule table used by the tier engine:
- ordered tier list (tier_1 < tier_2 < tier_3)
- per-tier qualification thresholds
- per-tier commission rate (percent)

The policy is versioned and validated once at startup
(OperatorsConfig.ready); a non-monotonic table is a configuration
error, never a request-time error.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from operators.models import CommissionTier


# ============================================
# DEFAULT TIER TABLE
# ============================================

DEFAULT_POLICY_VERSION = '2025-09'

DEFAULT_TIER_TABLE = {
    CommissionTier.TIER_1: {
        'min_score': 70,
        'min_tenure_months': 6,
        'min_payment_consistency': 90,
        'min_utilization_percentile': 0,
        'rate': '1.00',
    },
    CommissionTier.TIER_2: {
        'min_score': 80,
        'min_tenure_months': 12,
        'min_payment_consistency': 90,
        'min_utilization_percentile': 50,
        'rate': '2.00',
    },
    CommissionTier.TIER_3: {
        'min_score': 90,
        'min_tenure_months': 18,
        'min_payment_consistency': 95,
        'min_utilization_percentile': 75,
        'rate': '3.00',
    },
}

THRESHOLD_FIELDS = (
    'min_score',
    'min_tenure_months',
    'min_payment_consistency',
    'min_utilization_percentile',
)


@dataclass(frozen=True)
class TierThresholds:
    """Minimum values an operator must reach to hold a tier."""
    min_score: Decimal
    min_tenure_months: int
    min_payment_consistency: Decimal
    min_utilization_percentile: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'min_performance_score': float(self.min_score),
            'min_tenure_months': self.min_tenure_months,
            'min_payment_consistency': float(self.min_payment_consistency),
            'min_utilization_percentile': float(self.min_utilization_percentile),
        }


@dataclass(frozen=True)
class TierPolicy:
    """
    Versioned commission tier policy.

    tiers holds the ascending order; thresholds and rates are keyed
    by tier value.
    """
    version: str
    tiers: Tuple[str, ...]
    thresholds_by_tier: Dict[str, TierThresholds] = field(hash=False)
    rates_by_tier: Dict[str, Decimal] = field(hash=False)

    def order(self) -> Tuple[str, ...]:
        return self.tiers

    def is_valid_tier(self, tier) -> bool:
        return tier in self.tiers

    def index(self, tier) -> int:
        try:
            return self.tiers.index(tier)
        except ValueError:
            raise ValueError(f"Unknown commission tier: {tier!r}") from None

    def thresholds(self, tier) -> TierThresholds:
        self.index(tier)
        return self.thresholds_by_tier[tier]

    def rate(self, tier) -> Decimal:
        self.index(tier)
        return self.rates_by_tier[tier]

    def next_tier(self, tier) -> Optional[str]:
        position = self.index(tier)
        if position + 1 < len(self.tiers):
            return self.tiers[position + 1]
        return None

    def requirements_for_next_tier(self, tier) -> Dict[str, Any]:
        """Requirements an operator at `tier` must meet for the next one."""
        next_tier = self.next_tier(tier)
        if next_tier is None:
            return {
                'next_tier': None,
                'message': 'Already at highest commission tier',
            }
        return {
            'next_tier': next_tier,
            'requirements': self.thresholds(next_tier).to_dict(),
            'commission_rate': float(self.rate(next_tier)),
        }

    def validate(self) -> None:
        """
        Check the table is complete and monotonic.

        Raises:
            ImproperlyConfigured: missing tier data, negative rate, or a
                threshold that loosens as the tier index increases.
        """
        if not self.tiers:
            raise ImproperlyConfigured("Commission tier policy defines no tiers")

        for tier in self.tiers:
            if tier not in self.thresholds_by_tier:
                raise ImproperlyConfigured(f"No thresholds configured for {tier}")
            if tier not in self.rates_by_tier:
                raise ImproperlyConfigured(f"No commission rate configured for {tier}")
            if self.rates_by_tier[tier] < 0:
                raise ImproperlyConfigured(f"Negative commission rate for {tier}")

        for lower, higher in zip(self.tiers, self.tiers[1:]):
            low = self.thresholds_by_tier[lower]
            high = self.thresholds_by_tier[higher]
            for name in THRESHOLD_FIELDS:
                if getattr(high, name) < getattr(low, name):
                    raise ImproperlyConfigured(
                        f"Tier policy {self.version}: {name} for {higher} "
                        f"({getattr(high, name)}) is looser than {lower} "
                        f"({getattr(low, name)})"
                    )


def build_tier_policy(table: Dict[str, Dict[str, Any]], version: str = DEFAULT_POLICY_VERSION) -> TierPolicy:
    """
    Build a TierPolicy from a plain dict keyed by tier value.

    Tier order always follows CommissionTier declaration order; a table
    may omit a tier only to have validate() reject it.
    """
    tiers = tuple(tier for tier in CommissionTier.values if tier in table)
    unknown = set(table) - set(CommissionTier.values)
    if unknown:
        raise ImproperlyConfigured(f"Unknown tiers in commission policy: {sorted(unknown)}")

    thresholds = {}
    rates = {}
    for tier in tiers:
        row = table[tier]
        try:
            thresholds[tier] = TierThresholds(
                min_score=Decimal(str(row['min_score'])),
                min_tenure_months=int(row['min_tenure_months']),
                min_payment_consistency=Decimal(str(row['min_payment_consistency'])),
                min_utilization_percentile=Decimal(str(row['min_utilization_percentile'])),
            )
            rates[tier] = Decimal(str(row['rate']))
        except KeyError as e:
            raise ImproperlyConfigured(f"Commission policy for {tier} is missing {e}") from e

    return TierPolicy(
        version=version,
        tiers=tiers,
        thresholds_by_tier=thresholds,
        rates_by_tier=rates,
    )


@lru_cache(maxsize=1)
def get_tier_policy() -> TierPolicy:
    """
    Active policy: defaults merged with settings.COMMISSION_TIER_POLICY.

    The override looks like {'version': '...', 'tiers': {'tier_2': {...}}};
    per-tier keys replace the defaults key by key.
    """
    override = getattr(settings, 'COMMISSION_TIER_POLICY', None) or {}
    table = {tier: dict(row) for tier, row in DEFAULT_TIER_TABLE.items()}
    for tier, row in override.get('tiers', {}).items():
        table.setdefault(tier, {}).update(row)
    return build_tier_policy(table, version=override.get('version', DEFAULT_POLICY_VERSION))
