from dataclasses import dataclass
from typing import Tuple

VERSION = "1.0.0"
GUIDELINE_SHORT = "AAP 2022"
GUIDELINE = "AAP 2022 Hyperbilirubinemia management guidelines"

@dataclass(frozen=True)
class ThresholdBand:
    """
    One age band of a threshold curve.
    value = anchor_value + ((age - anchor_age) / span_hours) * rise
    """
    upper_age_hours: float
    anchor_age_hours: float
    anchor_value: float
    rise: float
    span_hours: float = 24.0

    def value_at(self, age_hours: float) -> float:
        return self.anchor_value + ((age_hours - self.anchor_age_hours) / self.span_hours) * self.rise

class PHOTOTHERAPY_CURVE:
    # Base curve for >=38 weeks, no neurotoxicity risk factors (mg/dL)
    BANDS: Tuple[ThresholdBand, ...] = (
        ThresholdBand(24, 12, 12.0, 0.2, span_hours=1.0),   # 12h -> 24h, 0.2 per hour
        ThresholdBand(48, 24, 15.0, 2.0),                   # 15 -> 17
        ThresholdBand(72, 48, 17.0, 1.0),                   # 17 -> 18
        ThresholdBand(96, 72, 18.0, 1.0),                   # 18 -> 19
        ThresholdBand(120, 96, 19.0, 1.0),                  # 19 -> 20
    )
    PLATEAU = 20.0

class EXCHANGE_CURVE:
    BANDS: Tuple[ThresholdBand, ...] = (
        ThresholdBand(24, 12, 15.0, 0.25, span_hours=1.0),
        ThresholdBand(48, 24, 18.0, 2.0),                   # 18 -> 20
        ThresholdBand(72, 48, 20.0, 1.5),                   # 20 -> 21.5
        ThresholdBand(96, 72, 21.5, 1.5),                   # 21.5 -> 23
        ThresholdBand(120, 96, 23.0, 2.0),                  # 23 -> 25
    )
    PLATEAU = 25.0

class GESTATION_OFFSETS:
    # Subtracted from the base curve. Prematurity is handled by these offsets,
    # not by the neurotoxicity flag.
    DEFAULT_WEEKS = 38
    PHOTOTHERAPY = {36: 2.5, 37: 1.5}
    EXCHANGE = {36: 3.0, 37: 2.0}

class RISK_OFFSETS:
    PHOTOTHERAPY = 2.0
    EXCHANGE = 3.0

class THRESHOLD_FLOORS:
    PHOTOTHERAPY = 8.0
    EXCHANGE = 12.0

class CLASSIFICATION_MARGINS:
    VERY_HIGH_BELOW_EXCHANGE = 3.0
    MODERATE_BELOW_PHOTOTHERAPY = 2.0
    INTENSIVE_ABOVE_PHOTOTHERAPY = 2.0
    # Discontinuation is usually ~3-4 mg/dL below the phototherapy threshold
    DISCONTINUE_BELOW_PHOTOTHERAPY = 4.0
    DISCONTINUE_FLOOR = 8.0

class AGE_LIMITS:
    # Displayed range of the age field. Not enforced by the calculator.
    MIN_HOURS = 1
    MAX_HOURS = 336
    HOURS_PER_DAY = 24

class CHART_GEOMETRY:
    WIDTH = 400
    HEIGHT = 200
    X_ORIGIN = 40
    X_END = 360
    Y_ORIGIN = 160
    Y_TOP = 20
    PX_PER_MG_DL = 4.0
    MAX_BILIRUBIN_LABEL = 30
    ZOOMED_HOURS = 168
    FULL_HOURS = 336
    SAMPLE_STEP_HOURS = 6

    PHOTOTHERAPY_COLOR = "#f59e0b"
    EXCHANGE_COLOR = "#dc2626"
    PATIENT_COLOR = "#059669"
    AXIS_COLOR = "#374151"
    GRID_COLOR = "#e5e7eb"

class FORM_LABELS:
    """Option labels shown on the form, keyed by submitted value."""
    NEUROTOXICITY = {
        "no-risk": "No risk factors",
        "any-risk": "ANY risk factors",
        "show-both": "Show both",
    }
    PLOT_SCALE = {
        "automatic": "Automatic",
        "full-sized": "Full-sized",
    }
    PLOT_CHOICE = {
        "peditools": "PediTools custom",
        "original": "Original publication",
    }

NEUROTOXICITY_RISK_FACTORS = [
    "albumin < 3 g/dL",
    "isoimmune hemolytic disease",
    "G6PD deficiency",
    "other hemolytic conditions",
    "sepsis",
    "clinical instability in previous 24 hours",
    "(prematurity accounted for by distinct threshold curves)",
]

MISSING_AGE_ALERT = "Please enter the age in hours"
BILIRUBIN_RANGE_ALERT = "Please enter a valid bilirubin level"

class RISK_PANEL_COLORS:
    # (background, text) for the risk assessment box, keyed by tier label
    STYLES = {
        "Low": ("#f0f9ff", "#1e40af"),
        "Moderate": ("#fef3c7", "#92400e"),
        "High": ("#fed7aa", "#9a3412"),
    }
    DEFAULT = ("#fecaca", "#991b1b")     # Very High / Critical

    @staticmethod
    def get(tier_label: str):
        return RISK_PANEL_COLORS.STYLES.get(tier_label, RISK_PANEL_COLORS.DEFAULT)
