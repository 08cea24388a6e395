"""
OPERATORS App - Operator directory backed by the Operator model

Storage side of the tier engine: fresh snapshots on every call (no
caching across requests) and a compare-and-swap tier update.
"""

import logging
from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.utils import timezone

from operators.models import Operator
from operators.services.exceptions import (
    OperatorNotFound, PersistenceFailure, TierUpdateConflict,
)
from operators.services.ports import OperatorSnapshot

logger = logging.getLogger(__name__)


def tenure_in_months(start: Optional[date], on: date) -> Optional[int]:
    """Whole months between the partnership start and `on`."""
    if start is None:
        return None
    delta = relativedelta(on, start)
    return max(0, delta.years * 12 + delta.months)


def snapshot_from_operator(operator: Operator, on: Optional[date] = None) -> OperatorSnapshot:
    on = on or timezone.localdate()
    return OperatorSnapshot(
        operator_id=str(operator.pk),
        current_tier=operator.commission_tier,
        primary_region_id=str(operator.primary_region_id),
        performance_score=operator.performance_score,
        tenure_months=tenure_in_months(operator.partnership_start_date, on),
        payment_consistency=operator.payment_consistency,
        utilization_percentile=operator.utilization_percentile,
        business_name=operator.business_name,
    )


class DatabaseOperatorDirectory:
    """OperatorDirectory over the operators table."""

    def get(self, operator_id) -> OperatorSnapshot:
        try:
            operator = Operator.objects.get(pk=operator_id)
        except (Operator.DoesNotExist, ValidationError, ValueError):
            raise OperatorNotFound(operator_id) from None
        except DatabaseError as e:
            logger.error(f"[TIERS] Operator lookup failed for {operator_id}: {e}")
            raise PersistenceFailure(str(e)) from e
        return snapshot_from_operator(operator)

    def update_tier(self, operator_id, expected_tier: str, new_tier: str) -> None:
        try:
            updated = Operator.objects.filter(
                pk=operator_id,
                commission_tier=expected_tier,
            ).update(
                commission_tier=new_tier,
                tier_qualification_date=timezone.localdate(),
                updated_at=timezone.now(),
            )
        except DatabaseError as e:
            logger.error(f"[TIERS] Tier update failed for operator {operator_id}: {e}")
            raise PersistenceFailure(str(e)) from e

        if updated == 0:
            raise TierUpdateConflict(operator_id, expected_tier)
