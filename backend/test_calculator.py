import unittest
from neobili.calculator import (
    BiliCalculator,
    calculate_age_hours,
    calculate_rate_of_rise,
    describe_age,
    parse_float_prefix,
    parse_int_prefix,
    parse_measurements,
)
from neobili.constants import BILIRUBIN_RANGE_ALERT, MISSING_AGE_ALERT
from neobili.models import (
    BilirubinOutOfRangeError,
    FormData,
    Measurement,
    MissingAgeError,
    RiskTier,
    ThresholdPair,
)

class TestBiliCalculatorForm(unittest.TestCase):
    """
    The form component: submit, reset, age calculator and the blocking alert.
    """

    def setUp(self):
        self.calc = BiliCalculator()

    def fill(self, **fields):
        for name, value in fields.items():
            self.calc.update(name, value)

    # --- SUBMIT ---

    def test_01_empty_age_blocks_submission(self):
        print("\nTEST 1: Empty age -> alert, no result")
        with self.assertRaises(MissingAgeError):
            self.calc.submit()
        self.assertIsNone(self.calc.result)
        self.assertEqual(self.calc.alert, MISSING_AGE_ALERT)

    def test_02_unparseable_or_zero_age_blocks(self):
        for bad in ("abc", "0", "   ", "h48"):
            self.calc.update("age", bad)
            with self.assertRaises(MissingAgeError, msg=f"age={bad!r}"):
                self.calc.submit()
        self.assertIsNone(self.calc.result)

    def test_03_threshold_view_without_bilirubin(self):
        self.fill(age="48")
        result = self.calc.submit()
        self.assertIs(self.calc.result, result)
        self.assertEqual(result.thresholds, ThresholdPair(17.0, 20.0))
        self.assertEqual(result.risk_level, RiskTier.THRESHOLD_VIEW.value)
        self.assertEqual(result.bilirubin, 0.0)
        self.assertFalse(result.has_bilirubin)
        self.assertEqual(result.age_description, "48 hours (2 days 0 hours)")
        self.assertIsNone(self.calc.alert)

    def test_04_full_assessment(self):
        self.fill(age="48", bilirubin="18.5")
        result = self.calc.submit()
        self.assertEqual(result.tier, RiskTier.VERY_HIGH)
        self.assertEqual(result.bilirubin, 18.5)
        self.assertTrue(result.intensive_phototherapy)
        self.assertIn("less than 13.0 mg/dL", result.discontinuation_level)
        self.assertFalse(result.has_risk_factors)
        self.assertIsNone(result.no_risk_thresholds)

    def test_05_age_uses_integer_prefix(self):
        self.fill(age="36.7")
        result = self.calc.submit()
        self.assertEqual(result.age, 36)
        self.assertEqual(result.thresholds, ThresholdPair(16.0, 19.0))

    def test_06_risk_selector(self):
        self.fill(age="48", neurotoxicity="any-risk")
        self.assertEqual(self.calc.submit().thresholds, ThresholdPair(15.0, 17.0))

        self.fill(neurotoxicity="show-both")
        result = self.calc.submit()
        self.assertTrue(result.has_risk_factors)
        self.assertEqual(result.thresholds, ThresholdPair(15.0, 17.0))
        self.assertEqual(result.no_risk_thresholds, ThresholdPair(17.0, 20.0))
        self.assertIn("Risk factors present: Lower thresholds applied", result.clinical_notes)

    def test_07_display_preferences_do_not_change_values(self):
        self.fill(age="60", bilirubin="16")
        baseline = self.calc.submit()
        self.fill(plot_scale="full-sized", plot_choice="original")
        again = self.calc.submit()
        self.assertEqual(baseline.thresholds, again.thresholds)
        self.assertEqual(baseline.risk_level, again.risk_level)

    def test_08_failed_submit_keeps_previous_result(self):
        self.fill(age="48", bilirubin="16")
        first = self.calc.submit()
        self.calc.update("age", "")
        with self.assertRaises(MissingAgeError):
            self.calc.submit()
        self.assertIs(self.calc.result, first)
        self.assertEqual(self.calc.alert, MISSING_AGE_ALERT)

    def test_09_negative_bilirubin_calculated_not_displayed(self):
        self.fill(age="48", bilirubin="-2")
        result = self.calc.submit()
        self.assertEqual(result.tier, RiskTier.LOW)
        self.assertFalse(result.has_bilirubin)

    # --- RESET ---

    def test_10_reset_clears_everything(self):
        self.fill(age="48", bilirubin="16", gestation="35 to 36 weeks", neurotoxicity="any-risk",
                  date_of_birth="2025-03-01T08:00", date_of_measurement="2025-03-03T08:00")
        self.calc.calculate_age()
        self.calc.submit()
        self.calc.reset()
        self.assertEqual(self.calc.data, FormData())
        self.assertIsNone(self.calc.result)
        self.assertIsNone(self.calc.calculated_age)
        self.assertIsNone(self.calc.submitted)
        self.assertIsNone(self.calc.alert)
        self.assertEqual(self.calc.snapshot()["result"], None)

    # --- AGE CALCULATOR ---

    def test_11_age_calculator_rounds_up(self):
        self.fill(date_of_birth="2025-03-01T08:00", date_of_measurement="2025-03-03T10:30")
        self.assertEqual(self.calc.calculate_age(), 51)
        self.assertEqual(self.calc.data.age, "51")
        self.assertEqual(self.calc.calculated_age, 51)

    def test_12_age_calculator_order_and_missing_dates(self):
        self.assertEqual(calculate_age_hours("2025-03-03T08:00", "2025-03-01T08:00"), 48)
        self.assertIsNone(calculate_age_hours("", "2025-03-01T08:00"))

        self.fill(age="12", date_of_birth="2025-03-01T08:00")
        self.assertIsNone(self.calc.calculate_age())
        self.assertEqual(self.calc.data.age, "12")

    def test_13_age_calculator_ignores_bad_dates(self):
        self.fill(age="12", date_of_birth="yesterday", date_of_measurement="2025-03-01T08:00")
        self.assertIsNone(self.calc.calculate_age())
        self.assertEqual(self.calc.data.age, "12")

    # --- FORM PLUMBING ---

    def test_14_update_and_from_form(self):
        with self.assertRaises(KeyError):
            self.calc.update("weight", "3.2")
        calc = BiliCalculator.from_form({"age": "30", "bilirubin": "12", "csrf": "x"})
        self.assertEqual(calc.data.age, "30")
        self.assertEqual(calc.data.gestation, "38 to 39 weeks")

    # --- RESTORING THE SHOWN RESULT ---

    def test_15_restore_rebuilds_previous_result(self):
        self.fill(age="48", bilirubin="16")
        self.calc.submit()
        self.assertEqual(self.calc.submitted, FormData(age="48", bilirubin="16"))

        fresh = BiliCalculator(FormData(date_of_birth="2025-03-01T08:00",
                                        date_of_measurement="2025-03-03T10:30"))
        fresh.calculate_age()
        restored = fresh.restore(self.calc.submitted)
        self.assertEqual(restored.tier, RiskTier.MODERATE)
        self.assertEqual(restored.age, 48)
        self.assertEqual(fresh.data.age, "51")

    def test_16_restore_without_usable_inputs(self):
        self.assertIsNone(self.calc.restore(FormData(age="")))
        self.assertIsNone(self.calc.result)
        self.assertIsNone(self.calc.alert)

    def test_17_infinite_bilirubin_blocks_submission(self):
        self.fill(age="48", bilirubin="1e999")
        with self.assertRaises(BilirubinOutOfRangeError):
            self.calc.submit()
        self.assertEqual(self.calc.alert, BILIRUBIN_RANGE_ALERT)
        self.assertIsNone(self.calc.result)

class TestMeasurementParsing(unittest.TestCase):

    def test_01_prefix_parsers(self):
        self.assertEqual(parse_int_prefix(" 48 "), 48)
        self.assertEqual(parse_int_prefix("12h"), 12)
        self.assertEqual(parse_int_prefix("-5"), -5)
        self.assertIsNone(parse_int_prefix(""))
        self.assertEqual(parse_float_prefix("15.2 mg/dL"), 15.2)
        self.assertEqual(parse_float_prefix(".5"), 0.5)
        self.assertIsNone(parse_float_prefix("n/a"))

    def test_02_comma_separated_trend(self):
        print("\nTEST 2: Multiple time points")
        calc = BiliCalculator(FormData(age="24,36,48", bilirubin="10,12,14"))
        result = calc.submit()
        self.assertEqual(result.age, 48)
        self.assertEqual(result.bilirubin, 14.0)
        self.assertEqual(len(result.measurements), 3)
        self.assertEqual(result.rate_of_rise, 0.17)
        self.assertEqual(result.tier, RiskTier.LOW)

    def test_03_entries_are_ordered_by_age(self):
        measurements = parse_measurements("48, 24", "14, 10")
        self.assertEqual([m.age_hours for m in measurements], [24, 48])
        self.assertEqual(measurements[-1].bilirubin_mg_dl, 14.0)

    def test_04_missing_levels_and_blank_ages(self):
        measurements = parse_measurements("24,,48", "9")
        self.assertEqual(measurements, [Measurement(24, 9.0), Measurement(48, 0.0)])
        with self.assertRaises(MissingAgeError):
            parse_measurements("24,abc", "9,10")
        with self.assertRaises(MissingAgeError):
            parse_measurements(" , ", "")

    def test_05_rate_of_rise(self):
        self.assertIsNone(calculate_rate_of_rise([Measurement(24, 10.0)]))
        self.assertIsNone(calculate_rate_of_rise([Measurement(24, 10.0), Measurement(24, 12.0)]))
        # Unmeasured points are skipped
        self.assertEqual(calculate_rate_of_rise([Measurement(12, 6.0), Measurement(24, 0.0),
                                                 Measurement(36, 9.0)]), 0.12)

    def test_06_describe_age(self):
        self.assertEqual(describe_age(50), "50 hours (2 days 2 hours)")
        self.assertEqual(describe_age(7), "7 hours (0 days 7 hours)")
        # Days round down, hours keep the sign
        self.assertEqual(describe_age(-5), "-5 hours (-1 days -5 hours)")
        self.assertEqual(describe_age(-30), "-30 hours (-2 days -6 hours)")

if __name__ == '__main__':
    unittest.main()
