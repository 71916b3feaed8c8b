"""
NeoBili: Form Component
=======================
Holds the form state (what the clinician typed), runs the engine on submit,
and keeps the last result until the next submit or a reset.
"""

import logging
import math
import re
from dataclasses import asdict, fields, replace
from datetime import datetime
from typing import List, Optional

from neobili.constants import AGE_LIMITS, BILIRUBIN_RANGE_ALERT, MISSING_AGE_ALERT
from neobili.core_thresholds import BiliThresholdEngine
from neobili.models import (
    BiliResult,
    BilirubinOutOfRangeError,
    ClinicalInputError,
    FormData,
    GestationalAge,
    Measurement,
    MissingAgeError,
    NeurotoxicityRisk,
)
from neobili.protocols import FollowUpPlanner, RiskClassifier

logger = logging.getLogger(__name__)

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

# --- 1. PARSING HELPERS ---

def parse_int_prefix(text: str) -> Optional[int]:
    """Leading integer of the text ("36.7" -> 36, "12h" -> 12), or None."""
    match = _INT_PREFIX.match(text or "")
    return int(match.group(1)) if match else None

def parse_float_prefix(text: str) -> Optional[float]:
    """Leading decimal of the text ("15.2 mg" -> 15.2), or None."""
    match = _FLOAT_PREFIX.match(text or "")
    return float(match.group(1)) if match else None

def parse_measurements(age_text: str, bilirubin_text: str) -> List[Measurement]:
    """
    Pairs comma-separated ages and bilirubin levels by position and orders
    them by age. Blank age entries are skipped; a bilirubin that is missing
    or unparseable counts as 0 (no level).

    Raises MissingAgeError if any age cannot be read or none was given.
    Zero hours counts as missing. A level too large for a float raises
    BilirubinOutOfRangeError.
    """
    age_entries = (age_text or "").split(",")
    bili_entries = (bilirubin_text or "").split(",")

    measurements = []
    for index, raw_age in enumerate(age_entries):
        if not raw_age.strip():
            continue
        age = parse_int_prefix(raw_age)
        if not age:
            raise MissingAgeError(MISSING_AGE_ALERT)
        raw_bili = bili_entries[index] if index < len(bili_entries) else ""
        bilirubin = parse_float_prefix(raw_bili) or 0.0
        if math.isinf(bilirubin):
            raise BilirubinOutOfRangeError(BILIRUBIN_RANGE_ALERT)
        measurements.append(Measurement(age_hours=age, bilirubin_mg_dl=bilirubin))

    if not measurements:
        raise MissingAgeError(MISSING_AGE_ALERT)

    return sorted(measurements, key=lambda m: m.age_hours)

def calculate_age_hours(date_of_birth: str, date_of_measurement: str) -> Optional[int]:
    """
    Hours between birth and measurement, rounded up. Order does not matter.
    None if either date is missing; ValueError if one cannot be parsed.
    """
    if not date_of_birth or not date_of_measurement:
        return None
    birth = datetime.fromisoformat(date_of_birth)
    measurement = datetime.fromisoformat(date_of_measurement)
    diff_seconds = abs((measurement - birth).total_seconds())
    return math.ceil(diff_seconds / 3600)

def describe_age(age_hours: int) -> str:
    # Days floor, leftover hours keep the sign of the age: -5 -> "-1 days -5 hours"
    days = age_hours // AGE_LIMITS.HOURS_PER_DAY
    hours = int(math.fmod(age_hours, AGE_LIMITS.HOURS_PER_DAY))
    return f"{age_hours} hours ({days} days {hours} hours)"

def calculate_rate_of_rise(measurements: List[Measurement]) -> Optional[float]:
    """mg/dL per hour between the last two measured levels."""
    measured = [m for m in measurements if m.bilirubin_mg_dl > 0]
    if len(measured) < 2:
        return None
    previous, latest = measured[-2], measured[-1]
    hours = latest.age_hours - previous.age_hours
    if hours == 0:
        return None
    return round((latest.bilirubin_mg_dl - previous.bilirubin_mg_dl) / hours, 2)

# --- 2. THE ASSESSMENT PIPELINE ---

def generate_assessment(form: FormData) -> BiliResult:
    """
    form -> parse -> thresholds -> tier -> text.
    Management is based on the latest age when several are entered.
    """
    measurements = parse_measurements(form.age, form.bilirubin)
    latest = measurements[-1]

    gestation = GestationalAge.from_label(form.gestation)
    try:
        risk = NeurotoxicityRisk(form.neurotoxicity)
    except ValueError:
        risk = NeurotoxicityRisk.NO_RISK
    has_risk_factors = risk.has_risk_factors

    thresholds = BiliThresholdEngine.calculate_thresholds(latest.age_hours, gestation, has_risk_factors)
    assessment = RiskClassifier.classify(latest.bilirubin_mg_dl, thresholds)

    no_risk_thresholds = None
    if risk == NeurotoxicityRisk.SHOW_BOTH:
        no_risk_thresholds = BiliThresholdEngine.calculate_thresholds(latest.age_hours, gestation, False)

    logger.info("Assessment: age=%sh gestation='%s' risk=%s bili=%s -> %s",
                latest.age_hours, form.gestation, risk.value, latest.bilirubin_mg_dl,
                assessment.tier.value)

    return BiliResult(
        age=latest.age_hours,
        age_description=describe_age(latest.age_hours),
        bilirubin=latest.bilirubin_mg_dl,
        thresholds=thresholds,
        risk_level=assessment.tier.value,
        recommendation=assessment.recommendation,
        gestation=form.gestation,
        neurotoxicity=form.neurotoxicity,
        has_risk_factors=has_risk_factors,
        phototherapy=assessment.phototherapy,
        escalation=assessment.escalation,
        exchange=assessment.exchange,
        confirmatory=assessment.confirmatory,
        intensive_phototherapy=assessment.intensive_phototherapy,
        discontinuation_level=assessment.discontinuation_level,
        follow_up_actions=FollowUpPlanner.follow_up_actions(assessment.tier),
        clinical_notes=FollowUpPlanner.clinical_notes(has_risk_factors),
        measurements=measurements,
        rate_of_rise=calculate_rate_of_rise(measurements),
        no_risk_thresholds=no_risk_thresholds,
    )

# --- 3. THE STATEFUL COMPONENT ---

class BiliCalculator:
    """
    One calculator form. State: the form fields, the age worked out by the
    optional age calculator, the last result, and the last blocking alert.
    """

    def __init__(self, data: Optional[FormData] = None):
        self.data = data if data is not None else FormData()
        self.calculated_age: Optional[int] = None
        self.result: Optional[BiliResult] = None
        self.alert: Optional[str] = None
        # Inputs behind `result`; the page posts them back so the panel survives other actions
        self.submitted: Optional[FormData] = None

    @classmethod
    def from_form(cls, submitted: dict) -> "BiliCalculator":
        """Builds the state from posted fields; missing fields keep their defaults."""
        known = {f.name for f in fields(FormData)}
        values = {k: str(v) for k, v in submitted.items() if k in known and v is not None}
        return cls(replace(FormData(), **values))

    def update(self, name: str, value: str) -> None:
        if name not in {f.name for f in fields(FormData)}:
            raise KeyError(f"Unknown form field '{name}'")
        setattr(self.data, name, value)

    def calculate_age(self) -> Optional[int]:
        """Fills the age field from the two dates. No-op unless both are set."""
        try:
            hours = calculate_age_hours(self.data.date_of_birth, self.data.date_of_measurement)
        except (ValueError, TypeError) as e:
            # TypeError: one date carries a UTC offset and the other does not
            logger.warning(f"Age calculator skipped, unreadable date: {e}")
            return None
        if hours is None:
            return None
        self.calculated_age = hours
        self.data.age = str(hours)
        return hours

    def submit(self) -> BiliResult:
        """
        Computes and stores a new result. On a blocking input error the alert is set,
        the previous result (if any) is left as it was, and the error
        propagates to the caller.
        """
        try:
            result = generate_assessment(self.data)
        except ClinicalInputError as e:
            logger.warning(f"Submission blocked: {e} (age={self.data.age!r} bilirubin={self.data.bilirubin!r})")
            self.alert = str(e)
            raise
        self.alert = None
        self.result = result
        self.submitted = replace(self.data)
        return result

    def restore(self, previous: FormData) -> Optional[BiliResult]:
        """
        Rebuilds the last result from the inputs it was submitted with.
        Leaves the current form fields and the alert untouched.
        """
        try:
            result = generate_assessment(previous)
        except ClinicalInputError:
            logger.debug(f"Nothing to restore (age field={previous.age!r})")
            return None
        self.result = result
        self.submitted = previous
        return result

    def reset(self) -> None:
        self.data = FormData()
        self.result = None
        self.submitted = None
        self.calculated_age = None
        self.alert = None

    def snapshot(self) -> dict:
        """Plain-dict view of the component."""
        return {
            "form": asdict(self.data),
            "calculated_age": self.calculated_age,
            "result": asdict(self.result) if self.result else None,
            "alert": self.alert,
        }
