"""
Tests for the operator directory, the audit sink, the audit model and
DB-backed transitions.
"""

import uuid
from unittest.mock import patch

from dateutil.relativedelta import relativedelta
from django.db import DatabaseError, OperationalError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from operators.models import CommissionTierAudit, Operator
from operators.services import audit as audit_module
from operators.services.audit import DatabaseAuditSink
from operators.services.ports import AuditEntry
from operators.services.directory import DatabaseOperatorDirectory, tenure_in_months
from operators.services.exceptions import (
    AuditWriteError, OperatorNotFound, PersistenceFailure, TierUpdateConflict,
)
from operators.services.transitions import (
    ActorContext, TransitionErrorCode, TransitionOrchestrator, TransitionRequest,
    UNRESTRICTED_PERMISSION,
)
from operators.tests.factories import create_operator, create_region


class TestTenure(TestCase):

    def test_whole_months(self):
        today = timezone.localdate()
        self.assertEqual(tenure_in_months(today - relativedelta(months=18), today), 18)
        self.assertEqual(tenure_in_months(today - relativedelta(months=6, days=-1), today), 5)
        self.assertIsNone(tenure_in_months(None, today))


class TestDatabaseOperatorDirectory(TestCase):

    def setUp(self):
        self.region = create_region()
        self.operator = create_operator(self.region, tier='tier_1', months=14)
        self.directory = DatabaseOperatorDirectory()

    def test_snapshot(self):
        snapshot = self.directory.get(str(self.operator.pk))

        self.assertEqual(snapshot.operator_id, str(self.operator.pk))
        self.assertEqual(snapshot.current_tier, 'tier_1')
        self.assertEqual(snapshot.primary_region_id, str(self.region.pk))
        self.assertEqual(snapshot.tenure_months, 14)

    def test_unknown_or_malformed_id(self):
        with self.assertRaises(OperatorNotFound):
            self.directory.get('00000000-0000-0000-0000-000000000000')
        with self.assertRaises(OperatorNotFound):
            self.directory.get('not-a-uuid')

    def test_compare_and_swap(self):
        self.directory.update_tier(self.operator.pk, 'tier_1', 'tier_2')

        self.operator.refresh_from_db()
        self.assertEqual(self.operator.commission_tier, 'tier_2')
        self.assertEqual(self.operator.tier_qualification_date, timezone.localdate())

    def test_stale_expected_tier_conflicts(self):
        with self.assertRaises(TierUpdateConflict):
            self.directory.update_tier(self.operator.pk, 'tier_2', 'tier_3')

        self.operator.refresh_from_db()
        self.assertEqual(self.operator.commission_tier, 'tier_1')

    def test_database_error_is_persistence_failure(self):
        with patch.object(Operator.objects, 'filter', side_effect=DatabaseError('connection lost')):
            with self.assertRaises(PersistenceFailure):
                self.directory.update_tier(self.operator.pk, 'tier_1', 'tier_2')


class TestCommissionTierAudit(TestCase):

    def setUp(self):
        self.region = create_region()
        self.operator = create_operator(self.region)
        self.sink = DatabaseAuditSink()

    def entry(self, **overrides):
        values = {
            'operator_id': str(self.operator.pk),
            'actor_id': None,
            'actor_name': 'Ana Reyes',
            'outcome': 'applied',
            'previous_tier': 'tier_1',
            'requested_tier': 'tier_2',
            'new_tier': 'tier_2',
            'change_type': 'upgrade',
            'financial_impact': {'estimated_impact': {'monthly_change': 500.0}},
        }
        values.update(overrides)
        return AuditEntry(**values)

    def test_append_returns_reference(self):
        reference = self.sink.append(self.entry(notes='Quarterly review'))

        record = CommissionTierAudit.objects.get(pk=reference)
        self.assertEqual(record.outcome, 'applied')
        self.assertEqual(record.notes, 'Quarterly review')
        self.assertEqual(record.financial_impact['estimated_impact']['monthly_change'], 500.0)

    def test_entries_are_immutable(self):
        record = CommissionTierAudit.objects.get(pk=self.sink.append(self.entry()))

        record.notes = 'rewritten'
        with self.assertRaises(ValueError):
            record.save()
        with self.assertRaises(ValueError):
            record.delete()

    def test_database_error_is_audit_write_error(self):
        with patch.object(CommissionTierAudit.objects, 'create', side_effect=DatabaseError('disk full')):
            with self.assertRaises(AuditWriteError):
                self.sink.append(self.entry())

    def test_unstorable_actor_id_is_audit_write_error(self):
        """A non-UUID actor id fails field conversion, not with a raw ValidationError."""
        with self.assertRaises(AuditWriteError):
            self.sink.append(self.entry(actor_id='svc-batch'))
        self.assertFalse(CommissionTierAudit.objects.exists())


# ============================================
# DATABASE-BACKED TRANSITIONS
# ============================================

class TestDatabaseBackedTransitions(TestCase):

    def setUp(self):
        self.region = create_region()
        self.operator = create_operator(self.region, tier='tier_1')
        self.orchestrator = TransitionOrchestrator()

    def request(self, actor_id, target_tier='tier_2'):
        actor = ActorContext(
            actor_id=actor_id,
            display_name='Batch',
            permissions=frozenset({UNRESTRICTED_PERMISSION}),
        )
        return TransitionRequest(actor=actor, operator_id=str(self.operator.pk), target_tier=target_tier)

    def test_lookup_database_error_is_persistence_failure(self):
        with patch.object(Operator.objects, 'get', side_effect=OperationalError('db down')):
            with self.assertRaises(PersistenceFailure):
                DatabaseOperatorDirectory().get(str(self.operator.pk))

    def test_lookup_database_error_is_retryable(self):
        """Storage down during lookup: 503 retryable error, no audit row."""
        with patch.object(Operator.objects, 'get', side_effect=OperationalError('db down')):
            error = self.orchestrator.request_transition(self.request(str(uuid.uuid4())))

        self.assertFalse(error.ok)
        self.assertEqual(error.code, TransitionErrorCode.PERSISTENCE_ERROR)
        self.assertTrue(error.retryable)
        self.assertEqual(error.http_status, 503)
        self.assertFalse(CommissionTierAudit.objects.exists())

    def test_applied_transition_survives_unwritable_audit_entry(self):
        """The tier change stands; the failed audit write is reported as a warning."""
        result = self.orchestrator.request_transition(self.request('svc-batch'))

        self.assertTrue(result.ok)
        self.assertIsNone(result.audit_reference)
        self.assertTrue(result.audit_warning)
        self.operator.refresh_from_db()
        self.assertEqual(self.operator.commission_tier, 'tier_2')
        self.assertFalse(CommissionTierAudit.objects.exists())


# ============================================
# COLLABORATOR CONTRACTS
# ============================================

class TestPorts(SimpleTestCase):

    def test_audit_entry_is_defined_with_the_contracts(self):
        """The contracts module owns AuditEntry; the database sink only consumes it."""
        self.assertEqual(AuditEntry.__module__, 'operators.services.ports')
        self.assertIs(audit_module.AuditEntry, AuditEntry)
