"""Collaborator contracts consumed by the tier transition engine.

Responsibilities:
  - Describe the operator snapshot the engine reads.
  - Describe the audit entry it writes.
  - Define the storage and audit interfaces it writes through.
Must not:
  - Implement logic; interfaces only.
  - Import models or any storage backend.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol

from django.utils import timezone


@dataclass(frozen=True)
class OperatorSnapshot:
    """
    Read-only view of an operator at request time.

    A metric left as None has not been computed yet; evaluation fails
    rather than treating it as zero.
    """
    operator_id: str
    current_tier: str
    primary_region_id: str
    performance_score: Optional[Decimal]
    tenure_months: Optional[int]
    payment_consistency: Optional[Decimal]
    utilization_percentile: Optional[Decimal]
    business_name: str = ''


@dataclass(frozen=True)
class AuditEntry:
    """Immutable record of one tier transition attempt."""
    operator_id: str
    actor_id: Optional[str]
    outcome: str
    reason_code: str = ''
    actor_name: str = ''
    previous_tier: str = ''
    requested_tier: str = ''
    new_tier: str = ''
    change_type: str = ''
    qualification_snapshot: Optional[Dict[str, Any]] = None
    financial_impact: Optional[Dict[str, Any]] = None
    notes: str = ''
    timestamp: datetime = field(default_factory=timezone.now)


class OperatorDirectory(Protocol):
    def get(self, operator_id) -> OperatorSnapshot:
        """Fresh snapshot; raises OperatorNotFound, PersistenceFailure when storage fails."""
        ...

    def update_tier(self, operator_id, expected_tier: str, new_tier: str) -> None:
        """
        Compare-and-swap the stored tier.

        Raises TierUpdateConflict when the stored tier is not
        expected_tier, PersistenceFailure when storage fails.
        """
        ...


class AuditSink(Protocol):
    def append(self, entry: AuditEntry) -> str:
        """Durably append entry, return its reference; raises AuditWriteError on any write failure."""
        ...
