"""
OPERATORS App - Commission Tier Transition Service for XPRESS OPS

The single entry point for changing an operator's commission tier.

Flow (per request):
    validate -> load operator -> authorize -> no-op guard
    -> [per-operator lock] -> fresh re-read -> evaluate -> classify
    -> gate -> financial impact -> compare-and-swap -> audit
    -> [release]

Every outcome is returned, never raised: a TransitionResult on success
or a TransitionError carrying one TransitionErrorCode. Once the
operator is known, every outcome also leaves one audit entry.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, FrozenSet, List, Optional, Union

from django.db import models
from django.utils import timezone

from operators.models import AuditOutcome, ChangeType
from operators.services.audit import DatabaseAuditSink
from operators.services.directory import DatabaseOperatorDirectory
from operators.services.exceptions import (
    AuditWriteError, IncompleteSnapshotError, OperatorBusy,
    OperatorNotFound, PersistenceFailure, TierUpdateConflict,
)
from operators.services.financial_impact import FinancialImpact, FinancialImpactCalculator
from operators.services.locks import OperatorLockManager
from operators.services.ports import AuditEntry, AuditSink, OperatorDirectory, OperatorSnapshot
from operators.services.qualification import QualificationEvaluator, QualificationResult
from operators.services.tier_policy import TierPolicy, get_tier_policy

logger = logging.getLogger(__name__)


UNRESTRICTED_PERMISSION = 'operators.update_commission_tier_unrestricted'
MAX_NOTES_LENGTH = 500


# ============================================
# OUTCOME TYPES
# ============================================

class TransitionErrorCode(models.TextChoices):
    NOT_FOUND = 'NOT_FOUND', 'Operator not found'
    REGION_ACCESS_DENIED = 'REGION_ACCESS_DENIED', 'Region access denied'
    INSUFFICIENT_PERMISSIONS = 'INSUFFICIENT_PERMISSIONS', 'Insufficient permissions'
    VALIDATION_ERROR = 'VALIDATION_ERROR', 'Invalid request'
    NO_TIER_CHANGE_NEEDED = 'NO_TIER_CHANGE_NEEDED', 'No tier change needed'
    TIER_QUALIFICATION_FAILED = 'TIER_QUALIFICATION_FAILED', 'Tier qualification failed'
    TIER_EVALUATION_ERROR = 'TIER_EVALUATION_ERROR', 'Tier evaluation error'
    BUSY = 'BUSY', 'Transition already in progress'
    CONFLICT = 'CONFLICT', 'Concurrent tier change'
    PERSISTENCE_ERROR = 'PERSISTENCE_ERROR', 'Tier update failed'


ERROR_HTTP_STATUS = {
    TransitionErrorCode.NOT_FOUND: 404,
    TransitionErrorCode.REGION_ACCESS_DENIED: 403,
    TransitionErrorCode.INSUFFICIENT_PERMISSIONS: 403,
    TransitionErrorCode.VALIDATION_ERROR: 400,
    TransitionErrorCode.NO_TIER_CHANGE_NEEDED: 400,
    TransitionErrorCode.TIER_QUALIFICATION_FAILED: 400,
    TransitionErrorCode.TIER_EVALUATION_ERROR: 503,
    TransitionErrorCode.BUSY: 409,
    TransitionErrorCode.CONFLICT: 409,
    TransitionErrorCode.PERSISTENCE_ERROR: 503,
}

RETRYABLE_CODES = frozenset({
    TransitionErrorCode.TIER_EVALUATION_ERROR,
    TransitionErrorCode.BUSY,
    TransitionErrorCode.CONFLICT,
    TransitionErrorCode.PERSISTENCE_ERROR,
})


@dataclass(frozen=True)
class ActorContext:
    """Who is asking, what they may do, and where."""
    actor_id: Optional[str]
    display_name: str
    permissions: FrozenSet[str] = frozenset()
    allowed_region_ids: FrozenSet[str] = frozenset()

    @classmethod
    def from_user(cls, user) -> 'ActorContext':
        return cls(
            actor_id=str(user.pk),
            display_name=user.display_name,
            permissions=frozenset(user.get_all_permissions()),
            allowed_region_ids=frozenset(str(region_id) for region_id in user.allowed_region_ids),
        )

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def can_access_region(self, region_id) -> bool:
        # No region restriction means nationwide scope
        return not self.allowed_region_ids or str(region_id) in self.allowed_region_ids


@dataclass(frozen=True)
class TransitionRequest:
    actor: ActorContext
    operator_id: Any
    target_tier: Any
    notes: Optional[str] = None


@dataclass(frozen=True)
class TransitionResult:
    operator_id: str
    previous_tier: str
    new_tier: str
    change_type: str
    effective_date: date
    financial_impact: FinancialImpact
    qualification: Optional[QualificationResult]
    changed_by: str
    notes: str
    requirements_for_next_tier: Dict[str, Any]
    audit_reference: Optional[str] = None
    audit_warning: Optional[str] = None

    ok = True

    def to_dict(self) -> Dict[str, Any]:
        qualification = self.qualification.to_dict() if self.qualification else None
        return {
            'operator_id': self.operator_id,
            'tier_change': {
                'previous_tier': self.previous_tier,
                'new_tier': self.new_tier,
                'change_type': self.change_type,
                'effective_date': self.effective_date.isoformat(),
                'changed_by': self.changed_by,
                'notes': self.notes,
            },
            'qualification_details': qualification,
            'financial_impact': self.financial_impact.to_dict(),
            'next_evaluation_date': qualification['next_evaluation_date'] if qualification else None,
            'requirements_for_next_tier': self.requirements_for_next_tier,
            'audit': {
                'reference': self.audit_reference,
                'warning': self.audit_warning,
            },
        }


@dataclass(frozen=True)
class TransitionError:
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    audit_reference: Optional[str] = None
    audit_warning: Optional[str] = None

    ok = False

    @property
    def retryable(self) -> bool:
        return self.code in RETRYABLE_CODES

    @property
    def http_status(self) -> int:
        return ERROR_HTTP_STATUS[self.code]

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'code': str(self.code),
            'message': self.message,
            'details': self.details,
            'retryable': self.retryable,
        }
        if self.audit_reference or self.audit_warning:
            payload['audit'] = {
                'reference': self.audit_reference,
                'warning': self.audit_warning,
            }
        return payload


TransitionOutcome = Union[TransitionResult, TransitionError]


# ============================================
# TRANSITION SERVICE
# ============================================

class TransitionOrchestrator:
    """
    Orchestrates commission tier transitions.

    Collaborators default to the Django-backed implementations; tests and
    batch jobs may inject their own.
    """

    def __init__(
        self,
        directory: Optional[OperatorDirectory] = None,
        audit_sink: Optional[AuditSink] = None,
        locks: Optional[OperatorLockManager] = None,
        policy: Optional[TierPolicy] = None,
        evaluator: Optional[QualificationEvaluator] = None,
        calculator: Optional[FinancialImpactCalculator] = None,
        commission_base=None,
    ):
        self.policy = policy or get_tier_policy()
        self.directory = directory or DatabaseOperatorDirectory()
        self.audit_sink = audit_sink or DatabaseAuditSink()
        self.locks = locks or OperatorLockManager()
        self.evaluator = evaluator or QualificationEvaluator(self.policy)
        self.calculator = calculator or FinancialImpactCalculator(self.policy)
        self.commission_base = commission_base

    # ------------------------------------------
    # Public operations
    # ------------------------------------------

    def request_transition(self, request: TransitionRequest) -> TransitionOutcome:
        """Validate, authorize and apply a commission tier change."""
        errors = self._validate(request)
        if errors:
            return TransitionError(
                TransitionErrorCode.VALIDATION_ERROR,
                'Invalid commission tier change request',
                {'errors': errors},
            )

        actor = request.actor
        operator_id = str(request.operator_id).strip()
        target_tier = str(request.target_tier)
        notes = request.notes or f"Commission tier updated by {actor.display_name}"

        try:
            snapshot = self.directory.get(operator_id)
        except OperatorNotFound:
            logger.info(f"[TIERS] Transition refused: operator {operator_id} not found")
            return TransitionError(
                TransitionErrorCode.NOT_FOUND,
                'Operator not found',
                {'operator_id': operator_id},
            )
        except PersistenceFailure as e:
            return self._lookup_failed(operator_id, e)

        denial = self._authorize(actor, snapshot)
        if denial is not None:
            return self._reject(
                denial,
                actor,
                snapshot,
                target_tier,
                notes,
                outcome=AuditOutcome.AUTH_REJECTED,
            )

        if snapshot.current_tier == target_tier:
            return self._no_change(actor, snapshot, target_tier, notes)

        try:
            with self.locks.hold(operator_id):
                return self._transition_locked(actor, snapshot, target_tier, notes)
        except OperatorBusy as e:
            return self._reject(
                TransitionError(
                    TransitionErrorCode.BUSY,
                    'Another commission tier change is in progress for this operator',
                    {'operator_id': operator_id, 'waited_seconds': round(e.waited, 2)},
                ),
                actor,
                snapshot,
                target_tier,
                notes,
                outcome=AuditOutcome.REJECTED,
            )

    def evaluate_operator(self, actor: ActorContext, operator_id) -> Union[QualificationResult, TransitionError]:
        """Read-only qualification check; no lock, no audit."""
        operator_id = str(operator_id or '').strip()
        if not operator_id:
            return TransitionError(
                TransitionErrorCode.VALIDATION_ERROR,
                'Operator id is required',
                {'errors': [{'field': 'operator_id', 'code': 'REQUIRED', 'message': 'Operator id is required'}]},
            )
        try:
            snapshot = self.directory.get(operator_id)
        except OperatorNotFound:
            return TransitionError(
                TransitionErrorCode.NOT_FOUND,
                'Operator not found',
                {'operator_id': operator_id},
            )
        except PersistenceFailure as e:
            return self._lookup_failed(operator_id, e)

        if not actor.can_access_region(snapshot.primary_region_id):
            return self._region_denied(actor, snapshot)

        try:
            return self.evaluator.evaluate(snapshot)
        except IncompleteSnapshotError as e:
            return TransitionError(
                TransitionErrorCode.TIER_EVALUATION_ERROR,
                'Failed to evaluate tier qualification',
                {'operator_id': operator_id, 'missing_metrics': list(e.missing)},
            )

    # ------------------------------------------
    # Steps
    # ------------------------------------------

    def _validate(self, request: TransitionRequest) -> List[Dict[str, str]]:
        errors = []
        if not isinstance(request.actor, ActorContext):
            errors.append({
                'field': 'actor', 'code': 'REQUIRED',
                'message': 'An authenticated actor is required',
            })
        if request.operator_id is None or not str(request.operator_id).strip():
            errors.append({
                'field': 'operator_id', 'code': 'REQUIRED',
                'message': 'Operator id is required',
            })
        if not request.target_tier:
            errors.append({
                'field': 'target_tier', 'code': 'REQUIRED',
                'message': 'Target tier is required',
            })
        elif not self.policy.is_valid_tier(request.target_tier):
            errors.append({
                'field': 'target_tier', 'code': 'INVALID_COMMISSION_TIER',
                'message': f"Target tier must be one of: {', '.join(self.policy.order())}",
            })
        if request.notes is not None and (
            not isinstance(request.notes, str) or len(request.notes) > MAX_NOTES_LENGTH
        ):
            errors.append({
                'field': 'notes', 'code': 'INVALID_NOTES',
                'message': f'Notes must be text of at most {MAX_NOTES_LENGTH} characters',
            })
        return errors

    def _authorize(self, actor: ActorContext, snapshot: OperatorSnapshot) -> Optional[TransitionError]:
        if not actor.can_access_region(snapshot.primary_region_id):
            return self._region_denied(actor, snapshot)
        if not actor.has_permission(UNRESTRICTED_PERMISSION):
            return TransitionError(
                TransitionErrorCode.INSUFFICIENT_PERMISSIONS,
                'Insufficient permissions to update commission tiers',
                {'required_permission': UNRESTRICTED_PERMISSION},
            )
        return None

    def _region_denied(self, actor: ActorContext, snapshot: OperatorSnapshot) -> TransitionError:
        return TransitionError(
            TransitionErrorCode.REGION_ACCESS_DENIED,
            'You do not have access to update commission tiers for operators in this region',
            {
                'region_id': snapshot.primary_region_id,
                'allowed_regions': sorted(actor.allowed_region_ids),
            },
        )

    def _lookup_failed(self, operator_id: str, error: PersistenceFailure) -> TransitionError:
        logger.warning(f"[TIERS] Operator {operator_id} could not be loaded: {error}")
        return TransitionError(
            TransitionErrorCode.PERSISTENCE_ERROR,
            'Failed to load operator; retry later',
            {'operator_id': operator_id, 'error': str(error)},
        )

    def _transition_locked(self, actor: ActorContext, known: OperatorSnapshot, target_tier: str, notes: str) -> TransitionOutcome:
        operator_id = known.operator_id
        # Re-read under the lock: a transition that just completed is visible here
        try:
            snapshot = self.directory.get(operator_id)
        except OperatorNotFound:
            return TransitionError(
                TransitionErrorCode.NOT_FOUND,
                'Operator not found',
                {'operator_id': operator_id},
            )
        except PersistenceFailure as e:
            return self._reject(
                self._lookup_failed(operator_id, e),
                actor, known, target_tier, notes,
                outcome=AuditOutcome.ERRORED,
            )

        current_tier = snapshot.current_tier
        if current_tier == target_tier:
            return self._no_change(actor, snapshot, target_tier, notes)

        is_downgrade = self.policy.index(target_tier) < self.policy.index(current_tier)
        change_type = ChangeType.DOWNGRADE.value if is_downgrade else ChangeType.UPGRADE.value

        try:
            qualification = self.evaluator.evaluate(snapshot)
        except IncompleteSnapshotError as e:
            if not is_downgrade:
                logger.warning(f"[TIERS] Evaluation failed for operator {operator_id}: {e}")
                return self._reject(
                    TransitionError(
                        TransitionErrorCode.TIER_EVALUATION_ERROR,
                        'Failed to evaluate tier qualification',
                        {'operator_id': operator_id, 'missing_metrics': list(e.missing)},
                    ),
                    actor, snapshot, target_tier, notes,
                    outcome=AuditOutcome.ERRORED,
                    change_type=change_type,
                )
            # Downgrades are not gated on qualification
            logger.info(f"[TIERS] Downgrade for {operator_id} proceeds without qualification: {e}")
            qualification = None

        if not is_downgrade and self.policy.index(target_tier) > self.policy.index(qualification.target_tier):
            return self._reject(
                TransitionError(
                    TransitionErrorCode.TIER_QUALIFICATION_FAILED,
                    f"Operator does not qualify for {target_tier}. "
                    f"Maximum qualified tier: {qualification.target_tier}",
                    {
                        'operator_id': operator_id,
                        'current_tier': current_tier,
                        'requested_tier': target_tier,
                        'max_qualified_tier': qualification.target_tier,
                        'qualification_status': qualification.qualification_status,
                        'requirements': {
                            'evaluated_tier': qualification.evaluated_tier,
                            'score_qualified': qualification.score_qualified,
                            'tenure_qualified': qualification.tenure_qualified,
                            'payment_qualified': qualification.payment_qualified,
                            'utilization_qualified': qualification.utilization_qualified,
                        },
                        'tier_breakdown': qualification.tier_breakdown,
                        'disqualification_reasons': qualification.disqualification_reasons,
                    },
                ),
                actor, snapshot, target_tier, notes,
                outcome=AuditOutcome.REJECTED,
                change_type=change_type,
                qualification=qualification,
            )

        impact = self.calculator.estimate(current_tier, target_tier, self.commission_base)

        try:
            self.directory.update_tier(operator_id, current_tier, target_tier)
        except TierUpdateConflict:
            return self._reject(
                TransitionError(
                    TransitionErrorCode.CONFLICT,
                    'Operator tier changed concurrently; reload and retry',
                    {'operator_id': operator_id, 'expected_tier': current_tier},
                ),
                actor, snapshot, target_tier, notes,
                outcome=AuditOutcome.ERRORED,
                change_type=change_type,
                qualification=qualification,
                impact=impact,
            )
        except PersistenceFailure as e:
            return self._reject(
                TransitionError(
                    TransitionErrorCode.PERSISTENCE_ERROR,
                    'Failed to persist commission tier change; check current tier before retrying',
                    {'operator_id': operator_id, 'error': str(e)},
                ),
                actor, snapshot, target_tier, notes,
                outcome=AuditOutcome.ERRORED,
                change_type=change_type,
                qualification=qualification,
                impact=impact,
            )

        logger.info(
            f"[TIERS] Operator {operator_id} {change_type}: {current_tier} → {target_tier} "
            f"by {actor.display_name} | monthly impact ₱{impact.monthly_change}"
        )

        reference, warning = self._audit(AuditEntry(
            operator_id=operator_id,
            actor_id=actor.actor_id,
            actor_name=actor.display_name,
            outcome=AuditOutcome.APPLIED.value,
            previous_tier=current_tier,
            requested_tier=target_tier,
            new_tier=target_tier,
            change_type=change_type,
            qualification_snapshot=qualification.to_dict() if qualification else None,
            financial_impact=impact.to_dict(),
            notes=notes,
        ))

        return TransitionResult(
            operator_id=operator_id,
            previous_tier=current_tier,
            new_tier=target_tier,
            change_type=change_type,
            effective_date=timezone.localdate(),
            financial_impact=impact,
            qualification=qualification,
            changed_by=actor.display_name,
            notes=notes,
            requirements_for_next_tier=self.policy.requirements_for_next_tier(target_tier),
            audit_reference=reference,
            audit_warning=warning,
        )

    # ------------------------------------------
    # Audit helpers
    # ------------------------------------------

    def _no_change(self, actor, snapshot, target_tier, notes) -> TransitionError:
        return self._reject(
            TransitionError(
                TransitionErrorCode.NO_TIER_CHANGE_NEEDED,
                'Operator is already at the requested commission tier',
                {'current_tier': snapshot.current_tier, 'target_tier': target_tier},
            ),
            actor, snapshot, target_tier, notes,
            outcome=AuditOutcome.REJECTED,
        )

    def _reject(
        self,
        error: TransitionError,
        actor: ActorContext,
        snapshot: OperatorSnapshot,
        target_tier: str,
        notes: str,
        outcome: str,
        change_type: str = '',
        qualification: Optional[QualificationResult] = None,
        impact: Optional[FinancialImpact] = None,
    ) -> TransitionError:
        logger.info(
            f"[TIERS] Transition {snapshot.current_tier} → {target_tier} for operator "
            f"{snapshot.operator_id} rejected: {error.code}"
        )
        reference, warning = self._audit(AuditEntry(
            operator_id=snapshot.operator_id,
            actor_id=actor.actor_id,
            actor_name=actor.display_name,
            outcome=str(outcome),
            reason_code=str(error.code),
            previous_tier=snapshot.current_tier,
            requested_tier=target_tier,
            change_type=change_type,
            qualification_snapshot=qualification.to_dict() if qualification else None,
            financial_impact=impact.to_dict() if impact else None,
            notes=notes,
        ))
        return TransitionError(
            code=error.code,
            message=error.message,
            details=error.details,
            audit_reference=reference,
            audit_warning=warning,
        )

    def _audit(self, entry: AuditEntry):
        """Append to the audit sink; a failure becomes a warning, never a rollback."""
        try:
            return self.audit_sink.append(entry), None
        except AuditWriteError as e:
            logger.error(
                f"[TIERS] Audit append failed for operator {entry.operator_id} "
                f"(outcome={entry.outcome}): {e}"
            )
            return None, f"Audit record could not be written: {e}"
