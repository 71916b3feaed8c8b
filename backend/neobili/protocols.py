# protocols.py
import logging
from typing import List

from neobili.constants import CLASSIFICATION_MARGINS, GUIDELINE_SHORT
from neobili.models import RiskAssessment, RiskTier, ThresholdPair

logger = logging.getLogger(__name__)

THRESHOLD_VIEW_RECOMMENDATION = "Thresholds displayed - enter bilirubin level for specific recommendations"

class RiskClassifier:
    @staticmethod
    def discontinuation_threshold(thresholds: ThresholdPair) -> float:
        return max(thresholds.phototherapy - CLASSIFICATION_MARGINS.DISCONTINUE_BELOW_PHOTOTHERAPY,
                   CLASSIFICATION_MARGINS.DISCONTINUE_FLOOR)

    @staticmethod
    def select_tier(bilirubin: float, thresholds: ThresholdPair) -> RiskTier:
        """Highest severity is checked first; 0 means no level was entered."""
        if bilirubin == 0:
            return RiskTier.THRESHOLD_VIEW
        if bilirubin >= thresholds.exchange:
            return RiskTier.CRITICAL
        if bilirubin >= thresholds.exchange - CLASSIFICATION_MARGINS.VERY_HIGH_BELOW_EXCHANGE:
            return RiskTier.VERY_HIGH
        if bilirubin >= thresholds.phototherapy:
            return RiskTier.HIGH
        if bilirubin >= thresholds.phototherapy - CLASSIFICATION_MARGINS.MODERATE_BELOW_PHOTOTHERAPY:
            return RiskTier.MODERATE
        return RiskTier.LOW

    @staticmethod
    def classify(bilirubin: float, thresholds: ThresholdPair) -> RiskAssessment:
        tier = RiskClassifier.select_tier(bilirubin, thresholds)

        if tier == RiskTier.THRESHOLD_VIEW:
            return RiskAssessment(tier=tier, recommendation=THRESHOLD_VIEW_RECOMMENDATION)

        discontinue_below = RiskClassifier.discontinuation_threshold(thresholds)
        discontinuation_level = (
            "If initiating phototherapy for this measurement, consider discontinuation "
            f"when bilirubin less than {discontinue_below:.1f} mg/dL"
        )

        if tier == RiskTier.CRITICAL:
            assessment = RiskAssessment(
                tier=tier,
                recommendation="URGENT: Exchange transfusion indicated",
                exchange="IMMEDIATE exchange transfusion required",
                escalation="Emergency neonatology consultation - do not delay",
                confirmatory="Confirm immediately with serum bilirubin",
                phototherapy="Intensive phototherapy while preparing for exchange",
                intensive_phototherapy=True,
            )
        elif tier == RiskTier.VERY_HIGH:
            assessment = RiskAssessment(
                tier=tier,
                recommendation="Intensive phototherapy + prepare for exchange",
                phototherapy="INTENSIVE phototherapy immediately",
                escalation="Prepare for possible exchange transfusion",
                confirmatory="Confirm with serum bilirubin immediately",
                intensive_phototherapy=True,
            )
        elif tier == RiskTier.HIGH:
            assessment = RiskAssessment(
                tier=tier,
                recommendation="Phototherapy indicated",
                phototherapy="Start phototherapy immediately",
                escalation="Monitor bilirubin every 4-6 hours",
                confirmatory="Confirm with serum bilirubin if TcB used",
            )
            # Well above the line: intensive even without the exchange margin
            if bilirubin >= thresholds.phototherapy + CLASSIFICATION_MARGINS.INTENSIVE_ABOVE_PHOTOTHERAPY:
                assessment.phototherapy = "INTENSIVE phototherapy immediately"
                assessment.intensive_phototherapy = True
        elif tier == RiskTier.MODERATE:
            assessment = RiskAssessment(
                tier=tier,
                recommendation="Close monitoring - approaching phototherapy threshold",
                phototherapy="Phototherapy may be needed soon",
                escalation="Repeat bilirubin in 2-4 hours",
                confirmatory="Confirm with serum bilirubin",
            )
        else:
            assessment = RiskAssessment(
                tier=tier,
                recommendation="Continue routine monitoring",
                phototherapy="No phototherapy needed at this time",
                escalation="Routine follow-up",
                confirmatory="Current level acceptable",
            )

        assessment.discontinuation_level = discontinuation_level
        logger.debug("Bilirubin %s vs %s -> %s", bilirubin, thresholds, tier.value)
        return assessment

class FollowUpPlanner:
    """Bullet lists for the 'Clinical Recommendations' panel."""

    ACTIONS = {
        RiskTier.THRESHOLD_VIEW: [
            "Obtain bilirubin measurement for specific recommendations",
            "Use transcutaneous or serum bilirubin measurement",
            "Consider timing of measurement based on clinical assessment",
        ],
        RiskTier.CRITICAL: [
            "URGENT: Immediate exchange transfusion preparation",
            "Intensive phototherapy while preparing for exchange",
            "Neonatal intensive care unit consultation",
        ],
        RiskTier.VERY_HIGH: [
            "Start intensive phototherapy immediately",
            "Prepare for possible exchange transfusion",
            "Neonatal intensive care unit consultation",
        ],
        RiskTier.HIGH: [
            "Initiate or intensify phototherapy immediately",
            "Monitor bilirubin levels every 4-6 hours",
            "Ensure adequate hydration and feeding",
        ],
        RiskTier.LOW: [
            "Continue routine monitoring",
            "Follow standard discharge planning",
            "Educate parents on jaundice monitoring",
        ],
    }
    ACTIONS[RiskTier.MODERATE] = ACTIONS[RiskTier.HIGH]

    @staticmethod
    def follow_up_actions(tier: RiskTier) -> List[str]:
        return list(FollowUpPlanner.ACTIONS[tier])

    @staticmethod
    def clinical_notes(has_risk_factors: bool) -> List[str]:
        notes = [
            f"These thresholds are based on {GUIDELINE_SHORT} guidelines",
            "Clinical judgment should always guide patient care decisions",
            "Consider individual patient factors and institutional protocols",
        ]
        if has_risk_factors:
            notes.append("Risk factors present: Lower thresholds applied")
        return notes
