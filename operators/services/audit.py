"""
OPERATORS App - Commission Tier Audit Recorder

Every transition attempt that passes the existence check produces one
AuditEntry, written under the same per-operator lock as the tier
mutation it describes so audit order matches application order.
"""

import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError

from operators.models import CommissionTierAudit
from operators.services.exceptions import AuditWriteError
from operators.services.ports import AuditEntry

logger = logging.getLogger(__name__)


class DatabaseAuditSink:
    """Appends audit entries to the CommissionTierAudit table."""

    def append(self, entry: AuditEntry) -> str:
        # Any failure to build or write the row surfaces as AuditWriteError
        try:
            record = CommissionTierAudit.objects.create(
                operator_id=entry.operator_id,
                actor_id=entry.actor_id,
                actor_name=entry.actor_name[:150],
                previous_tier=entry.previous_tier,
                requested_tier=entry.requested_tier,
                new_tier=entry.new_tier,
                change_type=entry.change_type,
                outcome=entry.outcome,
                reason_code=entry.reason_code,
                qualification_snapshot=entry.qualification_snapshot,
                financial_impact=entry.financial_impact,
                notes=entry.notes,
                recorded_at=entry.timestamp,
            )
        except (DatabaseError, ValidationError, ValueError, TypeError) as e:
            raise AuditWriteError(f"Audit write failed for operator {entry.operator_id}: {e}") from e

        logger.debug(
            f"[TIERS] Audit {str(record.id)[:8]} | operator={entry.operator_id} "
            f"outcome={entry.outcome} reason={entry.reason_code or '-'}"
        )
        return str(record.id)
