"""
NeoBili: Data Dictionary
========================
Inputs (the form), the computed threshold pair, and the result record
shown after a submission.

NO LOGIC is implemented here beyond small lookups on the enums.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from neobili.constants import GESTATION_OFFSETS

class ClinicalInputError(ValueError):
    """An input the form cannot calculate with. The message is the alert shown to the user."""
    pass

class MissingAgeError(ClinicalInputError):
    """Raised when the age field is empty or not a number. Blocks the calculation."""
    pass

class BilirubinOutOfRangeError(ClinicalInputError):
    """Raised when a bilirubin entry overflows to infinity (e.g. "1e999")."""
    pass

# --- 1. ENUMS (Standardizing the Inputs) ---

class GestationalAge(Enum):
    """Values are the option labels of the 'Gestation at birth' select."""
    WEEKS_35_36 = "35 to 36 weeks"
    WEEKS_37_38 = "37 to 38 weeks"
    WEEKS_38_39 = "38 to 39 weeks"
    WEEKS_39_PLUS = "39+ weeks"

    @property
    def weeks(self) -> int:
        return _GESTATION_WEEKS[self]

    @classmethod
    def from_label(cls, label: str) -> "GestationalAge":
        """Lenient lookup used for raw form input. Unknown labels fall back to 38 weeks."""
        for bucket in cls:
            if bucket.value == label:
                return bucket
        # Partial matches ("35 to 36", "39+") are accepted like the select values
        for bucket in cls:
            if bucket.value.replace(" weeks", "") in (label or ""):
                return bucket
        return cls.WEEKS_38_39

_GESTATION_WEEKS = {
    GestationalAge.WEEKS_35_36: 36,
    GestationalAge.WEEKS_37_38: 37,
    GestationalAge.WEEKS_38_39: GESTATION_OFFSETS.DEFAULT_WEEKS,
    GestationalAge.WEEKS_39_PLUS: 39,
}

class NeurotoxicityRisk(Enum):
    NO_RISK = "no-risk"
    ANY_RISK = "any-risk"
    SHOW_BOTH = "show-both"     # Classifies against the risk curve, plots both

    @property
    def has_risk_factors(self) -> bool:
        return self in (NeurotoxicityRisk.ANY_RISK, NeurotoxicityRisk.SHOW_BOTH)

class PlotScale(Enum):
    AUTOMATIC = "automatic"
    FULL_SIZED = "full-sized"

class PlotChoice(Enum):
    PEDITOOLS = "peditools"
    ORIGINAL = "original"

class RiskTier(Enum):
    """Declared in order of increasing severity."""
    THRESHOLD_VIEW = "Threshold View"
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    VERY_HIGH = "Very High"
    CRITICAL = "Critical"

    @property
    def severity(self) -> int:
        return list(RiskTier).index(self)

    @classmethod
    def from_label(cls, label: str) -> "RiskTier":
        return cls(label)

# --- 2. INPUT LAYER (What the Clinician Enters) ---

@dataclass
class FormData:
    """
    Raw form state. Everything is kept as the typed string; parsing
    happens on submit so that an empty age can block the calculation.
    """
    gestation: str = GestationalAge.WEEKS_38_39.value
    age: str = ""                   # Hours, or a comma-separated list
    bilirubin: str = ""             # mg/dL (optional), or a comma-separated list
    neurotoxicity: str = NeurotoxicityRisk.NO_RISK.value

    # Display-only preferences (never change the computed values)
    plot_scale: str = PlotScale.AUTOMATIC.value
    plot_choice: str = PlotChoice.PEDITOOLS.value

    # Optional age calculator (datetime-local strings)
    date_of_birth: str = ""
    date_of_measurement: str = ""

@dataclass
class Measurement:
    age_hours: int
    bilirubin_mg_dl: float = 0.0    # 0 = not measured

# --- 3. COMPUTED LAYER ---

@dataclass(frozen=True)
class ThresholdPair:
    phototherapy: float     # mg/dL, one decimal
    exchange: float         # mg/dL, one decimal

@dataclass
class RiskAssessment:
    """Tier plus the fixed text that goes with it."""
    tier: RiskTier
    recommendation: str
    phototherapy: str = ""
    escalation: str = ""
    exchange: str = ""
    confirmatory: str = ""
    intensive_phototherapy: bool = False
    discontinuation_level: str = ""

# --- 4. OUTPUT LAYER (What the Panel Displays) ---

@dataclass
class BiliResult:
    """
    Created on submit, replaces any prior result, cleared on reset.
    Plain values, lists and nested dataclasses, so the API layer can serialise it directly.
    """
    age: int
    age_description: str            # e.g. "50 hours (2 days 2 hours)"
    bilirubin: float                # Exactly as entered (0 = none)
    thresholds: ThresholdPair
    risk_level: str                 # RiskTier label
    recommendation: str
    gestation: str
    neurotoxicity: str
    has_risk_factors: bool

    phototherapy: str = ""
    escalation: str = ""
    exchange: str = ""
    confirmatory: str = ""
    intensive_phototherapy: bool = False
    discontinuation_level: str = ""

    follow_up_actions: List[str] = field(default_factory=list)
    clinical_notes: List[str] = field(default_factory=list)

    # Trend support (comma-separated entries)
    measurements: List[Measurement] = field(default_factory=list)
    rate_of_rise: Optional[float] = None    # mg/dL per hour between last two levels

    # Only for "show-both": the curve without risk factors
    no_risk_thresholds: Optional[ThresholdPair] = None

    @property
    def tier(self) -> RiskTier:
        return RiskTier.from_label(self.risk_level)

    @property
    def has_bilirubin(self) -> bool:
        return self.bilirubin > 0
