"""Match-strength labelling and final assembly of recommendation results."""

from ..models import MatchStrength, RecommendationResult

STRONG_THRESHOLD = 80
MODERATE_THRESHOLD = 60


def match_strength(confidence: float) -> MatchStrength:
    """Tier a 0-100 confidence. Ties fall into the lower tier."""
    if confidence > STRONG_THRESHOLD:
        return "strong"
    if confidence > MODERATE_THRESHOLD:
        return "moderate"
    return "weak"


def rank(result: RecommendationResult) -> RecommendationResult:
    """Label every candidate from its judgment confidence.

    The primary stays whichever the judgment designated, and alternatives keep
    reply order, even when fusion gave an alternative a higher enhanced score.
    The new-folder suggestion is never compared against folder confidences.
    """
    for rec in result.candidates():
        rec.match_strength = match_strength(rec.confidence)
    return result
