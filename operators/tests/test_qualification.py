"""
Tests for commission tier qualification.
"""

from datetime import date, timedelta

from django.test import SimpleTestCase

from operators.services.exceptions import IncompleteSnapshotError
from operators.services.qualification import QualificationEvaluator
from operators.services.tier_policy import DEFAULT_TIER_TABLE, build_tier_policy
from operators.tests.doubles import make_snapshot


class TestQualificationEvaluator(SimpleTestCase):

    def setUp(self):
        self.evaluator = QualificationEvaluator(build_tier_policy(DEFAULT_TIER_TABLE), interval_days=30)
        self.today = date(2026, 3, 1)

    def evaluate(self, **overrides):
        return self.evaluator.evaluate(make_snapshot(**overrides), evaluation_date=self.today)

    def test_qualifies_for_middle_tier(self):
        result = self.evaluate(current_tier='tier_1')

        self.assertEqual(result.target_tier, 'tier_2')
        self.assertEqual(result.evaluated_tier, 'tier_3')
        self.assertTrue(result.meets_minimum)
        self.assertEqual(result.qualification_status, 'qualified')
        # Flags describe tier_3, the first bar not cleared
        self.assertFalse(result.score_qualified)
        self.assertFalse(result.utilization_qualified)

    def test_qualifies_for_top_tier(self):
        result = self.evaluate(score='95', tenure=24, payment='97', utilization='80')

        self.assertEqual(result.target_tier, 'tier_3')
        self.assertEqual(result.evaluated_tier, 'tier_3')
        self.assertTrue(all([
            result.score_qualified, result.tenure_qualified,
            result.payment_qualified, result.utilization_qualified,
        ]))
        self.assertEqual(result.disqualification_reasons, [])

    def test_below_minimum_floors_at_lowest_tier(self):
        result = self.evaluate(current_tier='tier_1', score='60')

        self.assertEqual(result.target_tier, 'tier_1')
        self.assertFalse(result.meets_minimum)
        self.assertFalse(result.score_qualified)

    def test_below_current_tier_threshold(self):
        result = self.evaluate(current_tier='tier_3')

        self.assertEqual(result.target_tier, 'tier_2')
        self.assertEqual(result.qualification_status, 'below_threshold')

    def test_qualification_is_monotonic(self):
        """A tier_3 score cannot carry an operator past the tier_2 utilization bar."""
        result = self.evaluate(score='99', tenure=36, payment='99', utilization='40')

        self.assertEqual(result.target_tier, 'tier_1')
        self.assertTrue(result.tier_breakdown['tier_3']['performance_score']['qualified'])
        self.assertFalse(result.tier_breakdown['tier_2']['utilization_percentile']['qualified'])

    def test_thresholds_are_inclusive(self):
        result = self.evaluate(score='80', tenure=12, payment='90', utilization='50')

        self.assertEqual(result.target_tier, 'tier_2')

    def test_breakdown_values(self):
        result = self.evaluate()

        self.assertEqual(
            result.tier_breakdown['tier_2']['tenure_months'],
            {'requirement': 12, 'current': 14, 'qualified': True},
        )
        self.assertEqual(result.tier_breakdown['tier_3']['payment_consistency']['requirement'], 95.0)

    def test_evaluation_dates(self):
        result = self.evaluate()

        self.assertEqual(result.evaluation_date, self.today)
        self.assertEqual(result.next_evaluation_date, self.today + timedelta(days=30))
        self.assertEqual(result.to_dict()['next_evaluation_date'], '2026-03-31')

    def test_missing_metric_raises(self):
        with self.assertRaises(IncompleteSnapshotError) as context:
            self.evaluate(score=None, tenure=None)

        self.assertEqual(context.exception.missing, ('performance_score', 'tenure_months'))
