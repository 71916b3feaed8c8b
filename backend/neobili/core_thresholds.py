"""
NeoBili: Threshold Engine
=========================
Translates (age in hours, gestation bucket, risk-factor flag) into the
phototherapy and exchange-transfusion thresholds of the AAP 2022 curves.

Each curve is a piecewise-linear function of age (six bands), shifted down
by flat offsets for gestation below 38 weeks and for neurotoxicity risk
factors, then floored.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Tuple, Type, Union

from neobili.constants import (
    PHOTOTHERAPY_CURVE,
    EXCHANGE_CURVE,
    GESTATION_OFFSETS,
    RISK_OFFSETS,
    THRESHOLD_FLOORS,
)
from neobili.models import GestationalAge, ThresholdPair

logger = logging.getLogger(__name__)

GestationInput = Union[GestationalAge, str]

class BiliThresholdEngine:
    """
    The Calculation Core.
    All methods are pure; nothing is cached between calls.
    """

    @staticmethod
    def round_to_tenth(value: float) -> float:
        """
        One decimal place, ties away from zero, applied to the exact binary value
        (22.25 -> 22.3). Python's round() would give 22.2 here.
        """
        return float(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

    @staticmethod
    def _resolve_gestation(gestation: GestationInput) -> GestationalAge:
        if isinstance(gestation, GestationalAge):
            return gestation
        return GestationalAge.from_label(gestation)

    @staticmethod
    def _base_curve_value(curve: Type, age_hours: float) -> float:
        """Picks the first band whose upper bound contains the age; plateau beyond."""
        for band in curve.BANDS:
            if age_hours <= band.upper_age_hours:
                return band.value_at(age_hours)
        return curve.PLATEAU

    @staticmethod
    def calculate_phototherapy_threshold(age_hours: float, gestation: GestationInput,
                                         has_risk_factors: bool) -> float:
        """Unrounded phototherapy threshold (mg/dL)."""
        weeks = BiliThresholdEngine._resolve_gestation(gestation).weeks
        threshold = BiliThresholdEngine._base_curve_value(PHOTOTHERAPY_CURVE, age_hours)

        # Lower thresholds for preterm (<=36 collapses onto the 36-week offset)
        if weeks <= 36:
            threshold -= GESTATION_OFFSETS.PHOTOTHERAPY[36]
        elif weeks == 37:
            threshold -= GESTATION_OFFSETS.PHOTOTHERAPY[37]

        if has_risk_factors:
            threshold -= RISK_OFFSETS.PHOTOTHERAPY

        return max(threshold, THRESHOLD_FLOORS.PHOTOTHERAPY)

    @staticmethod
    def calculate_exchange_threshold(age_hours: float, gestation: GestationInput,
                                     has_risk_factors: bool) -> float:
        """Unrounded exchange-transfusion threshold (mg/dL)."""
        weeks = BiliThresholdEngine._resolve_gestation(gestation).weeks
        threshold = BiliThresholdEngine._base_curve_value(EXCHANGE_CURVE, age_hours)

        if weeks <= 36:
            threshold -= GESTATION_OFFSETS.EXCHANGE[36]
        elif weeks == 37:
            threshold -= GESTATION_OFFSETS.EXCHANGE[37]

        if has_risk_factors:
            threshold -= RISK_OFFSETS.EXCHANGE

        return max(threshold, THRESHOLD_FLOORS.EXCHANGE)

    @staticmethod
    def calculate_thresholds(age_hours: float, gestation: GestationInput,
                             has_risk_factors: bool) -> ThresholdPair:
        """
        Main entry point. The 1-336 hour domain is not enforced:
        any age is calculated against the nearest band.
        """
        photo = BiliThresholdEngine.calculate_phototherapy_threshold(age_hours, gestation, has_risk_factors)
        exchange = BiliThresholdEngine.calculate_exchange_threshold(age_hours, gestation, has_risk_factors)

        pair = ThresholdPair(
            phototherapy=BiliThresholdEngine.round_to_tenth(photo),
            exchange=BiliThresholdEngine.round_to_tenth(exchange),
        )
        logger.debug("Thresholds age=%sh gestation=%s risk=%s -> photo=%s exchange=%s",
                     age_hours, gestation, has_risk_factors, pair.phototherapy, pair.exchange)
        return pair

    @staticmethod
    def threshold_curve(gestation: GestationInput, has_risk_factors: bool,
                        ages: Iterable[float]) -> List[Tuple[float, ThresholdPair]]:
        """Threshold pair for each age in `ages` (used to draw the nomogram)."""
        return [
            (age, BiliThresholdEngine.calculate_thresholds(age, gestation, has_risk_factors))
            for age in ages
        ]
