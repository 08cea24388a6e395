"""
OPERATORS App - Celery Tasks for Commission Tier Evaluation

Daily qualification sweep over active operators. Results are stored
for display and follow-up only: tiers are never changed here.
"""

import logging
from celery import shared_task
from django.db import DatabaseError
from django.utils import timezone

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=300)
def evaluate_commission_tiers(self):
    """
    Evaluate every active operator against the commission tier policy.

    Stores last_qualification_status and next_tier_evaluation_date on
    each operator and logs those eligible for an upgrade or below their
    current tier's threshold.
    """
    from operators.models import Operator, QualificationStatus
    from operators.services.directory import snapshot_from_operator
    from operators.services.qualification import QualificationEvaluator
    from operators.services.tier_policy import get_tier_policy

    policy = get_tier_policy()
    evaluator = QualificationEvaluator(policy)
    today = timezone.localdate()

    logger.info(f"[CELERY] Commission tier evaluation started (policy {policy.version})")

    evaluated = 0
    eligible_for_upgrade = 0
    below_threshold = 0
    errors = 0

    for operator in Operator.objects.filter(is_active=True).iterator():
        try:
            result = evaluator.evaluate(snapshot_from_operator(operator, on=today), evaluation_date=today)
            Operator.objects.filter(pk=operator.pk).update(
                last_qualification_status=result.qualification_status,
                next_tier_evaluation_date=result.next_evaluation_date,
            )
        except (ValueError, DatabaseError) as e:
            logger.warning(f"[CELERY] Tier evaluation failed for operator {operator.operator_code}: {e}")
            errors += 1
            continue

        evaluated += 1
        if policy.index(result.target_tier) > policy.index(operator.commission_tier):
            eligible_for_upgrade += 1
            logger.info(
                f"[CELERY] {operator.operator_code} eligible for upgrade: "
                f"{operator.commission_tier} → {result.target_tier}"
            )
        elif result.qualification_status == QualificationStatus.BELOW_THRESHOLD:
            below_threshold += 1
            logger.info(
                f"[CELERY] {operator.operator_code} below {operator.commission_tier} threshold "
                f"(qualifies for {result.target_tier})"
            )

    logger.info(
        f"[CELERY] Commission tier evaluation complete: {evaluated} evaluated, "
        f"{eligible_for_upgrade} eligible for upgrade, {below_threshold} below threshold, {errors} errors"
    )

    return {
        'evaluated': evaluated,
        'eligible_for_upgrade': eligible_for_upgrade,
        'below_threshold': below_threshold,
        'errors': errors,
    }
