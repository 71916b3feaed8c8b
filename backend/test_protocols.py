import unittest
from neobili.models import RiskTier, ThresholdPair
from neobili.protocols import FollowUpPlanner, RiskClassifier, THRESHOLD_VIEW_RECOMMENDATION

class TestRiskClassification(unittest.TestCase):
    """
    Tier selection against a fixed threshold pair.
    48h, 38 to 39 weeks, no risk factors: phototherapy 17.0, exchange 20.0.
    """

    def setUp(self):
        self.thresholds = ThresholdPair(phototherapy=17.0, exchange=20.0)

    def tier(self, bili, thresholds=None):
        return RiskClassifier.classify(bili, thresholds or self.thresholds).tier

    def test_01_no_bilirubin_is_threshold_view(self):
        assessment = RiskClassifier.classify(0, self.thresholds)
        self.assertEqual(assessment.tier, RiskTier.THRESHOLD_VIEW)
        self.assertEqual(assessment.recommendation, THRESHOLD_VIEW_RECOMMENDATION)
        self.assertEqual(assessment.discontinuation_level, "")
        self.assertEqual(assessment.phototherapy, "")
        self.assertFalse(assessment.intensive_phototherapy)

    def test_02_critical_at_exchange(self):
        assessment = RiskClassifier.classify(20.0, self.thresholds)
        self.assertEqual(assessment.tier, RiskTier.CRITICAL)
        self.assertEqual(assessment.exchange, "IMMEDIATE exchange transfusion required")
        self.assertEqual(assessment.recommendation, "URGENT: Exchange transfusion indicated")
        self.assertTrue(assessment.intensive_phototherapy)
        self.assertEqual(self.tier(27.3), RiskTier.CRITICAL)

    def test_03_very_high_within_three_of_exchange(self):
        """exchange - 3 = 17.0 is checked before the phototherapy line."""
        self.assertEqual(self.tier(19.9), RiskTier.VERY_HIGH)
        assessment = RiskClassifier.classify(17.0, self.thresholds)
        self.assertEqual(assessment.tier, RiskTier.VERY_HIGH)
        self.assertEqual(assessment.phototherapy, "INTENSIVE phototherapy immediately")
        self.assertEqual(assessment.exchange, "")

    def test_04_moderate_and_low(self):
        self.assertEqual(self.tier(16.9), RiskTier.MODERATE)
        self.assertEqual(self.tier(15.0), RiskTier.MODERATE)
        low = RiskClassifier.classify(14.9, self.thresholds)
        self.assertEqual(low.tier, RiskTier.LOW)
        self.assertEqual(low.confirmatory, "Current level acceptable")

    def test_05_high_and_intensive_upgrade(self):
        """Needs a gap of more than 5 mg/dL between the lines to reach High."""
        wide = ThresholdPair(phototherapy=12.0, exchange=20.0)
        high = RiskClassifier.classify(13.0, wide)
        self.assertEqual(high.tier, RiskTier.HIGH)
        self.assertEqual(high.phototherapy, "Start phototherapy immediately")
        self.assertFalse(high.intensive_phototherapy)

        intensive = RiskClassifier.classify(14.5, wide)
        self.assertEqual(intensive.tier, RiskTier.HIGH)
        self.assertEqual(intensive.phototherapy, "INTENSIVE phototherapy immediately")
        self.assertTrue(intensive.intensive_phototherapy)

    def test_06_negative_bilirubin_is_accepted(self):
        self.assertEqual(self.tier(-3.0), RiskTier.LOW)

    def test_07_discontinuation_level(self):
        assessment = RiskClassifier.classify(16.0, self.thresholds)
        self.assertIn("less than 13.0 mg/dL", assessment.discontinuation_level)
        floored = RiskClassifier.classify(9.0, ThresholdPair(10.0, 13.0))
        self.assertIn("less than 8.0 mg/dL", floored.discontinuation_level)

    def test_08_tier_monotonic_in_bilirubin(self):
        """Raising the level never lowers the tier."""
        print("\nTEST 8: Monotonic tiers")
        pairs = [self.thresholds, ThresholdPair(12.0, 20.0), ThresholdPair(8.0, 12.0), ThresholdPair(20.0, 25.0)]
        for pair in pairs:
            previous = RiskTier.THRESHOLD_VIEW
            for tenth in range(1, 351):
                current = self.tier(tenth / 10, pair)
                self.assertGreaterEqual(current.severity, previous.severity,
                                        f"{pair} bili={tenth / 10}")
                previous = current
            self.assertEqual(previous, RiskTier.CRITICAL)

    def test_09_follow_up_actions(self):
        for tier in RiskTier:
            self.assertTrue(FollowUpPlanner.follow_up_actions(tier), f"No actions for {tier}")
        self.assertEqual(FollowUpPlanner.follow_up_actions(RiskTier.MODERATE),
                         FollowUpPlanner.follow_up_actions(RiskTier.HIGH))
        self.assertIn("Obtain bilirubin measurement for specific recommendations",
                      FollowUpPlanner.follow_up_actions(RiskTier.THRESHOLD_VIEW))

    def test_10_clinical_notes(self):
        plain = FollowUpPlanner.clinical_notes(False)
        with_risk = FollowUpPlanner.clinical_notes(True)
        self.assertEqual(plain[0], "These thresholds are based on AAP 2022 guidelines")
        self.assertEqual(len(with_risk), len(plain) + 1)
        self.assertEqual(with_risk[-1], "Risk factors present: Lower thresholds applied")

if __name__ == '__main__':
    unittest.main()
