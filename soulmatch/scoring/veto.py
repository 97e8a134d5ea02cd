"""
Veto (hard constraint) evaluation.

A candidate either passes every veto criterion of the user's partner
preferences or the pair scores exactly 0. Range checks are skipped when
the candidate does not report the attribute; non_smoker_only and
must_want_children need the candidate to confirm explicitly.
"""

import logging
from typing import List, Optional

from ..feature_engineering.geo import distance_between
from ..profiles.schema import PartnerPreferences, Profile

logger = logging.getLogger(__name__)


def _outside(value: Optional[float], low: Optional[float], high: Optional[float]) -> bool:
    if value is None:
        return False
    if low is not None and value < low:
        return True
    if high is not None and value > high:
        return True
    return False


def evaluate_veto(
    preferences: Optional[PartnerPreferences],
    candidate: Profile,
    user: Optional[Profile] = None
) -> List[str]:
    """
    Check a candidate against a user's veto criteria.

    Args:
        preferences: The user's PartnerPreferences (None means no constraints)
        candidate: Candidate profile
        user: The user's own profile, needed only for the distance limit

    Returns:
        Names of the violated criteria, in evaluation order (empty if none)
    """
    if preferences is None:
        return []

    facts = candidate.facts
    veto = preferences.veto
    reasons: List[str] = []

    if preferences.desired_age_range and _outside(facts.age, *preferences.desired_age_range):
        reasons.append("desired_age_range")

    if veto.interested_in_genders and facts.gender_identity:
        if facts.gender_identity.strip().lower() not in veto.interested_in_genders:
            reasons.append("interested_in_genders")

    if preferences.desired_height_range and _outside(facts.height_cm, *preferences.desired_height_range):
        reasons.append("desired_height_range")

    if veto.non_smoker_only and (facts.smoking or "").lower() != "never":
        reasons.append("non_smoker_only")

    if veto.must_want_children and (facts.family_plans or "").lower() != "wants children":
        reasons.append("must_want_children")

    if veto.must_not_have_children and (facts.family_plans or "").lower() == "has children":
        reasons.append("must_not_have_children")

    if _outside(facts.age, veto.minimum_age, None):
        reasons.append("minimum_age")
    if _outside(facts.age, None, veto.maximum_age):
        reasons.append("maximum_age")
    if _outside(facts.height_cm, veto.minimum_height, veto.maximum_height):
        reasons.append("height_limits")

    if veto.deal_breaker_interests and facts.interests & veto.deal_breaker_interests:
        reasons.append("deal_breaker_interests")

    if veto.required_interests and facts.interests:
        if not veto.required_interests <= facts.interests:
            reasons.append("required_interests")

    if veto.max_distance_km is not None and user is not None:
        distance = distance_between(user.location, candidate.location)
        if distance is not None and distance > veto.max_distance_km:
            reasons.append("max_distance_km")

    if reasons:
        logger.debug(f"Candidate {candidate.user_id} vetoed by {preferences.user_id}: {reasons}")
    return reasons
