"""Attribute similarity, weighting and score calculation for avatar matches."""

import logging
import math
from typing import Any, Optional

from ledger import (
    AttributeScoreDetail,
    AvatarConfig,
    MatchConfig,
    MatchQuality,
    MatchResult,
    MatchThresholds,
    MatchWeights,
)
from ledger.avatar import (
    ALL_MATCHING_ATTRIBUTES,
    AVATAR_OPTIONS,
    PRIMARY_MATCHING_ATTRIBUTES,
)

log = logging.getLogger(__name__)

DEFAULT_WEIGHTS = MatchWeights(
    skin_color=0.25,
    hair_color=0.15,
    top_type=0.12,
    facial_hair_type=0.05,
    facial_hair_color=0.03,
    eye_type=0.08,
    mouth_type=0.07,
    eyebrow_type=0.05,
    clothe_type=0.08,
    clothe_color=0.05,
    accessories_type=0.05,
    graphic_type=0.02,
)

DEFAULT_THRESHOLDS = MatchThresholds(excellent=85, good=70, fair=50)

DEFAULT_MATCH_CONFIG = MatchConfig(
    weights=DEFAULT_WEIGHTS,
    thresholds=DEFAULT_THRESHOLDS,
)

PRIMARY_WEIGHT = 2.0
SECONDARY_WEIGHT = 0.5

# Flat primary/secondary weighting; every attribute is always scored
FLAT_WEIGHTS = MatchWeights(**{
    name: PRIMARY_WEIGHT if name in PRIMARY_MATCHING_ATTRIBUTES else SECONDARY_WEIGHT
    for name in ALL_MATCHING_ATTRIBUTES
})

FLAT_MATCH_CONFIG = MatchConfig(
    weights=FLAT_WEIGHTS,
    thresholds=DEFAULT_THRESHOLDS,
    conditional_attributes=False,
)

DEFAULT_MATCH_THRESHOLD = 60
MIN_MATCH_THRESHOLD = 30
MAX_MATCH_THRESHOLD = 95

# Attribute-level similarity counted as a "match" in summaries
ATTRIBUTE_MATCH_SIMILARITY = 0.5

MATCH_QUALITIES = ('excellent', 'good', 'fair', 'poor')

SKIN_COLOR_GROUPS: dict[str, frozenset[str]] = {
    'light': frozenset({'Pale', 'Light', 'Yellow'}),
    'medium': frozenset({'Light', 'Tanned', 'Brown'}),
    'dark': frozenset({'Brown', 'DarkBrown', 'Black'}),
}

HAIR_COLOR_GROUPS: dict[str, frozenset[str]] = {
    'light': frozenset({'Blonde', 'BlondeGolden', 'Platinum', 'SilverGray'}),
    'brown': frozenset({'Auburn', 'Brown', 'BrownDark'}),
    'dark': frozenset({'Black', 'BrownDark'}),
    'colorful': frozenset({'PastelPink', 'Blue', 'Red'}),
}

SKIN_COLOR_SIMILARITY = 0.7
HAIR_COLOR_SIMILARITY = 0.6
SAME_HAIR_LENGTH_SIMILARITY = 0.5
ADJACENT_HAIR_LENGTH_SIMILARITY = 0.3
FACIAL_HAIR_SIMILARITY = 0.5
SIMILAR_GLASSES_SIMILARITY = 0.7
OTHER_ACCESSORY_SIMILARITY = 0.3

NO_FACIAL_HAIR = 'Blank'
NO_ACCESSORY = 'Blank'
GRAPHIC_SHIRT = 'GraphicShirt'


def _share_group(groups: dict[str, frozenset[str]], value1: str, value2: str) -> bool:
    return any(value1 in group and value2 in group for group in groups.values())


def get_hair_length_category(top_type: str) -> str:
    """Map a top type to none, short, long or covered (hats, hijab, turban)."""
    if top_type in ('NoHair', 'Eyepatch'):
        return 'none'
    if top_type.startswith('LongHair'):
        return 'long'
    if top_type.startswith('ShortHair'):
        return 'short'
    return 'covered'


def attribute_similarity(attribute: str, value1: Any, value2: Any) -> float:
    """Calculate how similar two values of one avatar attribute are.

    Values outside the attribute's option set are never similar to
    anything but themselves.

    Args:
        attribute: Attribute name (snake_case).
        value1: Value from the first avatar.
        value2: Value from the second avatar.

    Returns:
        1.0 for equal values, a partial credit for related values,
        0.0 otherwise.
    """
    if value1 == value2:
        return 1.0

    options = AVATAR_OPTIONS.get(attribute, ())
    if value1 not in options or value2 not in options:
        return 0.0

    if attribute == 'skin_color':
        return SKIN_COLOR_SIMILARITY if _share_group(SKIN_COLOR_GROUPS, value1, value2) else 0.0

    if attribute in ('hair_color', 'facial_hair_color'):
        return HAIR_COLOR_SIMILARITY if _share_group(HAIR_COLOR_GROUPS, value1, value2) else 0.0

    if attribute == 'top_type':
        categories = {get_hair_length_category(value1), get_hair_length_category(value2)}
        if len(categories) == 1:
            return SAME_HAIR_LENGTH_SIMILARITY
        if categories == {'short', 'none'}:
            return ADJACENT_HAIR_LENGTH_SIMILARITY
        return 0.0

    if attribute == 'facial_hair_type':
        # Beard vs. no beard is a hard distinction
        if NO_FACIAL_HAIR in (value1, value2):
            return 0.0
        return FACIAL_HAIR_SIMILARITY

    if attribute == 'accessories_type':
        if NO_ACCESSORY in (value1, value2):
            return 0.0
        if value1.startswith('Prescription') and value2.startswith('Prescription'):
            return SIMILAR_GLASSES_SIMILARITY
        if {value1, value2} == {'Sunglasses', 'Wayfarers'}:
            return SIMILAR_GLASSES_SIMILARITY
        return OTHER_ACCESSORY_SIMILARITY

    # Expressions and clothing get no partial credit
    return 0.0


def is_match_quality(value: Any) -> bool:
    """Check whether value is one of excellent, good, fair or poor."""
    return isinstance(value, str) and value in MATCH_QUALITIES


def validate_weights_sum(weights: MatchWeights, tolerance: float = 0.01) -> bool:
    """Check that the weights sum to 1.0 within tolerance."""
    return abs(sum(weights.as_dict().values()) - 1.0) <= tolerance


def validate_thresholds_order(thresholds: MatchThresholds) -> bool:
    """Check excellent > good > fair, with fair >= 0 and excellent <= 100."""
    return (
        thresholds.excellent > thresholds.good
        and thresholds.good > thresholds.fair
        and thresholds.fair >= 0
        and thresholds.excellent <= 100
    )


def validate_match_config(config: MatchConfig) -> list[str]:
    """Detect misconfigured weights or thresholds.

    Scoring still works with a bad configuration, so this is meant to be
    called once at startup.

    Args:
        config: Configuration to check.

    Returns:
        List of issue codes (WEIGHTS_SUM, NEGATIVE_WEIGHT, THRESHOLD_ORDER).
    """
    issues: list[str] = []
    if not validate_weights_sum(config.weights):
        issues.append('WEIGHTS_SUM')
    if any(w < 0 for w in config.weights.as_dict().values()):
        issues.append('NEGATIVE_WEIGHT')
    if not validate_thresholds_order(config.thresholds):
        issues.append('THRESHOLD_ORDER')

    for issue in issues:
        log.warning("Match configuration problem: %s", issue)
    return issues


def clamp_threshold(threshold: float) -> float:
    """Keep a match threshold within [MIN_MATCH_THRESHOLD, MAX_MATCH_THRESHOLD]."""
    return max(MIN_MATCH_THRESHOLD, min(MAX_MATCH_THRESHOLD, threshold))


def get_match_quality(score: float, thresholds: MatchThresholds = DEFAULT_THRESHOLDS) -> MatchQuality:
    """Map a 0-100 score to its quality tier; below the fair threshold is poor."""
    if score >= thresholds.excellent:
        return 'excellent'
    if score >= thresholds.good:
        return 'good'
    if score >= thresholds.fair:
        return 'fair'
    return 'poor'


def round_half_up(value: float) -> int:
    """Round .5 up (2.5 -> 3), unlike the built-in round."""
    return int(math.floor(value + 0.5))


def is_attribute_applicable(
    attribute: str,
    target: AvatarConfig,
    consumer: AvatarConfig,
) -> bool:
    """Check whether a conditional attribute should be scored.

    Facial hair color only matters when both avatars have facial hair,
    graphic print only when both wear a graphic shirt.
    """
    if attribute == 'facial_hair_color':
        return (
            target.facial_hair_type not in (None, NO_FACIAL_HAIR)
            and consumer.facial_hair_type not in (None, NO_FACIAL_HAIR)
        )
    if attribute == 'graphic_type':
        return target.clothe_type == GRAPHIC_SHIRT and consumer.clothe_type == GRAPHIC_SHIRT
    return True


def score_attributes(
    target: AvatarConfig,
    consumer: AvatarConfig,
    config: MatchConfig,
) -> dict[str, AttributeScoreDetail]:
    """Score every matchable attribute.

    Args:
        target: Avatar described in the post.
        consumer: The viewer's own avatar.
        config: Weights and conditional-attribute handling.

    Returns:
        Breakdown keyed by attribute name, in primary-then-secondary order.
    """
    weights = config.weights.as_dict()
    breakdown: dict[str, AttributeScoreDetail] = {}

    for attribute in ALL_MATCHING_ATTRIBUTES:
        weight = weights[attribute]
        similarity = attribute_similarity(
            attribute, getattr(target, attribute), getattr(consumer, attribute),
        )
        applicable: Optional[bool] = None
        if config.conditional_attributes and attribute in ('facial_hair_color', 'graphic_type'):
            applicable = is_attribute_applicable(attribute, target, consumer)

        contribution = similarity * weight if applicable is not False else 0.0
        breakdown[attribute] = AttributeScoreDetail(
            similarity=similarity,
            weight=weight,
            contribution=contribution,
            applicable=applicable,
        )

    return breakdown


def weighted_totals(breakdown: dict[str, AttributeScoreDetail]) -> tuple[float, float]:
    """Return (weighted score, max possible score) over applicable attributes."""
    weighted = 0.0
    max_possible = 0.0
    for detail in breakdown.values():
        if detail.applicable is False:
            continue
        weighted += detail.contribution
        max_possible += detail.weight
    return weighted, max_possible


def calculate_match_score(
    target: AvatarConfig,
    consumer: AvatarConfig,
    config: MatchConfig = DEFAULT_MATCH_CONFIG,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> MatchResult:
    """Calculate the 0-100 match score between a target and a consumer avatar.

    score = round(100 * sum(similarity * weight) / sum(weight)), where
    non-applicable conditional attributes are left out of both sums.

    Args:
        target: Avatar described in the post.
        consumer: The viewer's own avatar.
        config: Weights, quality thresholds and conditional handling.
        threshold: Minimum score for is_match, clamped to [30, 95].

    Returns:
        MatchResult with score, is_match, quality and breakdown.
    """
    breakdown = score_attributes(target, consumer, config)
    weighted, max_possible = weighted_totals(breakdown)

    score = round_half_up(100 * weighted / max_possible) if max_possible > 0 else 0
    min_threshold = clamp_threshold(threshold)

    return MatchResult(
        score=score,
        is_match=score >= min_threshold,
        quality=get_match_quality(score, config.thresholds),
        breakdown=breakdown,
        min_threshold=min_threshold,
    )
