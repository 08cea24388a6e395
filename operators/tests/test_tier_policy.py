"""
Tests for the commission tier policy table.
"""

from decimal import Decimal

from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, override_settings

from operators.services.tier_policy import (
    DEFAULT_POLICY_VERSION, DEFAULT_TIER_TABLE, build_tier_policy, get_tier_policy,
)


class TestDefaultPolicy(SimpleTestCase):

    def setUp(self):
        self.policy = build_tier_policy(DEFAULT_TIER_TABLE)

    def test_order_and_rates(self):
        self.assertEqual(self.policy.order(), ('tier_1', 'tier_2', 'tier_3'))
        self.assertEqual(self.policy.rate('tier_1'), Decimal('1.00'))
        self.assertEqual(self.policy.rate('tier_3'), Decimal('3.00'))
        self.assertEqual(self.policy.version, DEFAULT_POLICY_VERSION)

    def test_thresholds(self):
        tier_2 = self.policy.thresholds('tier_2')
        self.assertEqual(tier_2.min_score, Decimal('80'))
        self.assertEqual(tier_2.min_tenure_months, 12)
        self.assertEqual(tier_2.min_payment_consistency, Decimal('90'))
        self.assertEqual(tier_2.min_utilization_percentile, Decimal('50'))

    def test_default_table_is_valid(self):
        self.policy.validate()

    def test_unknown_tier(self):
        self.assertFalse(self.policy.is_valid_tier('tier_4'))
        with self.assertRaises(ValueError):
            self.policy.index('tier_4')
        with self.assertRaises(ValueError):
            self.policy.rate('gold')

    def test_requirements_for_next_tier(self):
        requirements = self.policy.requirements_for_next_tier('tier_1')
        self.assertEqual(requirements['next_tier'], 'tier_2')
        self.assertEqual(requirements['commission_rate'], 2.0)
        self.assertEqual(requirements['requirements']['min_performance_score'], 80.0)

        top = self.policy.requirements_for_next_tier('tier_3')
        self.assertIsNone(top['next_tier'])


class TestPolicyValidation(SimpleTestCase):

    def table(self, **tier_2_overrides):
        table = {tier: dict(row) for tier, row in DEFAULT_TIER_TABLE.items()}
        table['tier_2'].update(tier_2_overrides)
        return table

    def test_loosening_threshold_is_rejected(self):
        """tier_2 asking less tenure than tier_1 breaks monotonicity."""
        policy = build_tier_policy(self.table(min_tenure_months=3))
        with self.assertRaises(ImproperlyConfigured):
            policy.validate()

    def test_negative_rate_is_rejected(self):
        policy = build_tier_policy(self.table(rate='-1'))
        with self.assertRaises(ImproperlyConfigured):
            policy.validate()

    def test_missing_field_is_rejected(self):
        table = self.table()
        del table['tier_2']['min_score']
        with self.assertRaises(ImproperlyConfigured):
            build_tier_policy(table)

    def test_unknown_tier_is_rejected(self):
        table = self.table()
        table['tier_9'] = dict(table['tier_3'])
        with self.assertRaises(ImproperlyConfigured):
            build_tier_policy(table)


class TestSettingsOverride(SimpleTestCase):

    def tearDown(self):
        get_tier_policy.cache_clear()

    @override_settings(COMMISSION_TIER_POLICY={'version': '2026-01', 'tiers': {'tier_3': {'rate': '3.50'}}})
    def test_override_merges_with_defaults(self):
        get_tier_policy.cache_clear()
        policy = get_tier_policy()
        self.assertEqual(policy.version, '2026-01')
        self.assertEqual(policy.rate('tier_3'), Decimal('3.50'))
        self.assertEqual(policy.thresholds('tier_3').min_score, Decimal('90'))
